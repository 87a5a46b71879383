"""
Tabular action-value store.

The table maps ``(StateKey, action index)`` to a float with an implicit value
of 0 for unseen pairs. Pairs rejected as invalid are blocked permanently and
pinned to ``INVALID_ACTION_VALUE``; later writes to a blocked pair are ignored.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, Mapping, Optional, Sequence, Set, Tuple

from .constants import INVALID_ACTION_VALUE
from .types import Action, StateKey

logger = logging.getLogger(__name__)

QKey = Tuple[StateKey, int]

__all__ = ["QTable", "QKey"]


def _index(action: "Action | int") -> int:
    return action.index if isinstance(action, Action) else int(action)


class QTable:
    """Dictionary-backed Q-table with blocked-pair tracking."""

    def __init__(
        self,
        initial: Optional[Mapping[QKey, float]] = None,
        invalid_value: float = INVALID_ACTION_VALUE,
    ) -> None:
        self._values: Dict[QKey, float] = {}
        self._blocked: Set[QKey] = set()
        self.invalid_value = float(invalid_value)
        if initial:
            self.seed_from(initial)

    def get(self, state: StateKey, action: "Action | int") -> float:
        return self._values.get((state, _index(action)), 0.0)

    def set(self, state: StateKey, action: "Action | int", value: float) -> None:
        key = (state, _index(action))
        if key in self._blocked:
            logger.debug("Ignoring write to blocked pair %s/%s", state, key[1])
            return
        self._values[key] = float(value)

    def block(self, state: StateKey, action: "Action | int") -> None:
        key = (state, _index(action))
        self._blocked.add(key)
        self._values[key] = self.invalid_value

    def is_blocked(self, state: StateKey, action: "Action | int") -> bool:
        return (state, _index(action)) in self._blocked

    def values_for(self, state: StateKey, actions: Sequence[Action]) -> Tuple[float, ...]:
        return tuple(self.get(state, a) for a in actions)

    def argmax(self, state: StateKey, actions: Sequence[Action]) -> Action:
        """Greedy action; ties resolve to the earliest action in ``actions``."""
        if not actions:
            raise ValueError("argmax over an empty action set")
        best = actions[0]
        best_value = self.get(state, best)
        for action in actions[1:]:
            value = self.get(state, action)
            if value > best_value:
                best, best_value = action, value
        return best

    def max_value(self, state: StateKey, actions: Sequence[Action]) -> float:
        if not actions:
            return 0.0
        return max(self.values_for(state, actions))

    def seed_from(self, values: Mapping[QKey, float]) -> None:
        """Load values from a prior run."""
        for (state, action), value in values.items():
            self._values[(state, int(action))] = float(value)

    def snapshot(self) -> Dict[QKey, float]:
        return dict(self._values)

    def states(self) -> Set[StateKey]:
        return {state for state, _ in self._values}

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[QKey]:
        return iter(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values
