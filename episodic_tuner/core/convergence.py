"""
Convergence monitoring: best reward seen and consecutive non-improving episodes.

Higher reward is better. ``stable_count`` resets on every new best and
otherwise increments once per recorded episode.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..utils.exceptions import ConfigurationError

__all__ = ["ConvergenceTracker", "ConvergenceMonitor"]


@dataclass
class ConvergenceTracker:
    best_reward: float = -math.inf
    best_episode_id: Optional[int] = None
    stable_count: int = 0
    stable_threshold: int = 50
    episodes_recorded: int = 0
    best_payload: Dict[str, Any] = field(default_factory=dict)


class ConvergenceMonitor:
    """Track the best episode and signal when training has stabilized."""

    def __init__(self, stable_threshold: int) -> None:
        if int(stable_threshold) < 1:
            raise ConfigurationError(
                f"stable_threshold must be >= 1, got {stable_threshold}",
                config_parameter="stable_threshold",
                parameter_value=stable_threshold,
            )
        self.tracker = ConvergenceTracker(stable_threshold=int(stable_threshold))

    @property
    def best_reward(self) -> float:
        return self.tracker.best_reward

    @property
    def best_episode_id(self) -> Optional[int]:
        return self.tracker.best_episode_id

    @property
    def best_payload(self) -> Dict[str, Any]:
        return dict(self.tracker.best_payload)

    @property
    def stable_count(self) -> int:
        return self.tracker.stable_count

    def record(
        self,
        episode_id: int,
        reward: float,
        payload: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Record a completed episode.

        Returns:
            True if the episode set a new best reward
        """
        t = self.tracker
        t.episodes_recorded += 1
        if reward > t.best_reward:
            t.best_reward = float(reward)
            t.best_episode_id = episode_id
            t.best_payload = dict(payload or {})
            t.stable_count = 0
            return True
        t.stable_count += 1
        return False

    def should_stop(self) -> bool:
        return self.tracker.stable_count >= self.tracker.stable_threshold
