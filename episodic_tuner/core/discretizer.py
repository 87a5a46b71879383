"""
State discretization: continuous measurements to structural bin keys.

Each dimension has an ordered list of upper-bound thresholds. A value falls in
the first bin whose threshold it is strictly less than, or in the overflow bin
``len(thresholds)`` when none match, so a dimension with ``k`` thresholds has
``k + 1`` bins.
"""

from __future__ import annotations

import math
from typing import Iterable, List, Sequence, Tuple

from ..utils.exceptions import ConfigurationError
from .types import StateKey

__all__ = ["bin_index", "StateDiscretizer"]


def bin_index(value: float, thresholds: Sequence[float]) -> int:
    """Return the index of the first threshold ``value`` is strictly less than.

    Ties go to the upper bin: a value equal to a threshold is not less than it.
    NaN compares false against every threshold and lands in the overflow bin.
    """
    for index, upper in enumerate(thresholds):
        if value < upper:
            return index
    return len(thresholds)


class StateDiscretizer:
    """Map an observation vector to a ``StateKey``.

    Args:
        thresholds: One ordered threshold list per dimension
        names: Optional dimension labels used in logs and ``describe``

    Raises:
        ConfigurationError: If a threshold list is empty, not strictly
            increasing, or contains non-finite values
    """

    def __init__(
        self,
        thresholds: Sequence[Sequence[float]],
        names: Sequence[str] = (),
    ) -> None:
        if not thresholds:
            raise ConfigurationError(
                "Discretizer requires at least one dimension",
                config_parameter="thresholds",
                parameter_value=thresholds,
            )
        validated: List[Tuple[float, ...]] = []
        for dim, edges in enumerate(thresholds):
            edges = tuple(float(e) for e in edges)
            if not edges:
                raise ConfigurationError(
                    f"Dimension {dim} has no thresholds",
                    config_parameter="thresholds",
                    parameter_value=edges,
                )
            if not all(math.isfinite(e) for e in edges):
                raise ConfigurationError(
                    f"Dimension {dim} has non-finite thresholds",
                    config_parameter="thresholds",
                    parameter_value=edges,
                )
            if any(b <= a for a, b in zip(edges, edges[1:])):
                raise ConfigurationError(
                    f"Dimension {dim} thresholds must be strictly increasing",
                    config_parameter="thresholds",
                    parameter_value=edges,
                )
            validated.append(edges)
        if names and len(names) != len(validated):
            raise ConfigurationError(
                f"Got {len(names)} names for {len(validated)} dimensions",
                config_parameter="names",
                parameter_value=list(names),
            )
        self._thresholds: Tuple[Tuple[float, ...], ...] = tuple(validated)
        self._names: Tuple[str, ...] = tuple(names) or tuple(
            f"dim{i}" for i in range(len(validated))
        )

    @property
    def n_dimensions(self) -> int:
        return len(self._thresholds)

    @property
    def thresholds(self) -> Tuple[Tuple[float, ...], ...]:
        return self._thresholds

    @property
    def shape(self) -> Tuple[int, ...]:
        """Number of bins per dimension."""
        return tuple(len(edges) + 1 for edges in self._thresholds)

    @property
    def n_states(self) -> int:
        return math.prod(self.shape)

    def bins(self, values: Iterable[float]) -> Tuple[int, ...]:
        values = tuple(float(v) for v in values)
        if len(values) != self.n_dimensions:
            raise ValueError(
                f"Expected {self.n_dimensions} values, got {len(values)}"
            )
        return tuple(bin_index(v, edges) for v, edges in zip(values, self._thresholds))

    def discretize(self, values: Iterable[float], visited: int = 0) -> StateKey:
        """Return the StateKey for ``values``. Pure and deterministic."""
        return StateKey(bins=self.bins(values), visited=visited)

    def origin(self) -> StateKey:
        """Key with every dimension in its lowest bin."""
        return StateKey(bins=(0,) * self.n_dimensions)

    def describe(self, key: StateKey) -> str:
        return ", ".join(f"{name}={b}" for name, b in zip(self._names, key.bins))
