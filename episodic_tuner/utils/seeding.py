"""
Seeded random number generators for reproducible training runs.

RNGs are created through ``gymnasium.utils.seeding.np_random`` so that an
agent seeded with the same value as a Gymnasium environment draws from the
same kind of generator.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Optional, Tuple

import gymnasium.utils.seeding
import numpy

from ..core.constants import SEED_MAX_VALUE, SEED_MIN_VALUE
from .exceptions import ConfigurationError

_logger = logging.getLogger(__name__)

__all__ = ["validate_seed", "create_seeded_rng", "derive_seed"]


def validate_seed(seed: Any) -> Tuple[bool, Optional[int], str]:
    """Validate a seed value.

    Returns:
        (is_valid, normalized_seed, error_message)
    """
    if seed is None:
        return True, None, ""
    if isinstance(seed, bool) or not isinstance(seed, (int, numpy.integer)):
        return False, None, f"seed must be an integer or None, got {type(seed).__name__}"
    value = int(seed)
    if not SEED_MIN_VALUE <= value <= SEED_MAX_VALUE:
        return (
            False,
            None,
            f"seed {value} outside [{SEED_MIN_VALUE}, {SEED_MAX_VALUE}]",
        )
    return True, value, ""


def create_seeded_rng(
    seed: Optional[int] = None,
) -> Tuple[numpy.random.Generator, Optional[int]]:
    """Create a Gymnasium-compatible generator.

    Args:
        seed: Seed value, None for an entropy-seeded generator

    Returns:
        (generator, seed_used)

    Raises:
        ConfigurationError: If the seed is malformed
    """
    is_valid, normalized, error_message = validate_seed(seed)
    if not is_valid:
        raise ConfigurationError(
            f"Invalid seed: {error_message}",
            config_parameter="seed",
            parameter_value=seed,
        )
    np_random, seed_used = gymnasium.utils.seeding.np_random(normalized)
    _logger.debug("Created seeded RNG with seed: %s", seed_used)
    return np_random, seed_used


def derive_seed(base_seed: int, label: str) -> int:
    """Derive a deterministic child seed for a named component."""
    digest = hashlib.sha256(f"{base_seed}:{label}".encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big") % (SEED_MAX_VALUE + 1)
