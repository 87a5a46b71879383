"""Shared utilities: error taxonomy, seeding and plotting."""

from .exceptions import (
    ConfigurationError,
    ErrorSeverity,
    InvalidActionError,
    PreconditionTimeoutError,
    SafetyAbortError,
    StateError,
    TunerError,
    log_exception_with_recovery,
)
from .seeding import create_seeded_rng, derive_seed, validate_seed

__all__ = [
    "ConfigurationError",
    "ErrorSeverity",
    "InvalidActionError",
    "PreconditionTimeoutError",
    "SafetyAbortError",
    "StateError",
    "TunerError",
    "create_seeded_rng",
    "derive_seed",
    "log_exception_with_recovery",
    "validate_seed",
]
