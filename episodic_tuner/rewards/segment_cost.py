"""
Segment cost reward - energy or elapsed time per flown leg.

Contract: a sequential episode is split into segments, one per sub-goal.
Each segment's reward is its negated cost; the episode reward is the negated
total cost minus event penalties.
"""

from __future__ import annotations

from typing import Any, Dict, List, Set

from ..core.constants import DEFAULT_EVENT_PENALTY
from ..core.enums import AbortReason
from ..core.types import RewardBreakdown, TickSample

__all__ = ["SegmentCostAggregator", "COST_METRICS"]

COST_METRICS = ("energy", "time")


class SegmentCostAggregator:
    """Negated per-segment cost for tour tasks.

    Satisfies RewardAggregator protocol via duck typing.

    Cost per tick is ``power_w * dt`` (joules) for the ``energy`` metric or
    ``dt`` for the ``time`` metric.

    Example:
        >>> agg = SegmentCostAggregator(metric="time")
        >>> agg.accumulate(TickSample(), dt=0.5)
        >>> agg.close_segment()
        -0.5
    """

    def __init__(self, metric: str = "energy", event_penalty: float = DEFAULT_EVENT_PENALTY):
        """Initialize SegmentCostAggregator.

        Args:
            metric: ``"energy"`` or ``"time"``
            event_penalty: Charged once per distinct violation category

        Raises:
            ValueError: If metric is unknown or event_penalty is negative
        """
        if metric not in COST_METRICS:
            raise ValueError(f"metric must be one of {COST_METRICS}, got {metric!r}")
        if event_penalty < 0.0:
            raise ValueError(f"event_penalty must be non-negative, got {event_penalty}")
        self.metric = metric
        self.event_penalty = float(event_penalty)
        self.reset()

    def reset(self) -> None:
        self._segment_cost = 0.0
        self._closed: List[float] = []
        self._events: Set[AbortReason] = set()

    def accumulate(self, sample: TickSample, dt: float) -> None:
        if dt < 0.0:
            raise ValueError(f"dt must be non-negative, got {dt}")
        if self.metric == "energy":
            self._segment_cost += max(0.0, float(sample.power_w)) * dt
        else:
            self._segment_cost += dt

    def record_violation(self, reason: AbortReason) -> None:
        self._events.add(reason)

    def close_segment(self) -> float:
        """End the current leg and return its reward (negated cost)."""
        cost = self._segment_cost
        self._closed.append(cost)
        self._segment_cost = 0.0
        return -cost

    @property
    def segment_costs(self) -> List[float]:
        return list(self._closed)

    @property
    def total_cost(self) -> float:
        return sum(self._closed) + self._segment_cost

    def finalize(self) -> RewardBreakdown:
        """Reduce the episode; the open segment is credited to the last decision."""
        penalty = self.event_penalty * len(self._events)
        total_cost = self.total_cost
        return RewardBreakdown(
            total=-total_cost - penalty,
            final_segment=-self._segment_cost - penalty,
            tracking=-total_cost,
            event_penalty=-penalty,
            events=tuple(sorted(event.value for event in self._events)),
            metrics={
                "total_cost": total_cost,
                "segments": float(len(self._closed) + 1),
                "last_segment_cost": self._segment_cost,
            },
        )

    def get_metadata(self) -> Dict[str, Any]:
        return {
            "type": "segment_cost_reward",
            "metric": self.metric,
            "event_penalty": self.event_penalty,
        }
