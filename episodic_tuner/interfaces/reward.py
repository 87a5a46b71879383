"""
Reward Aggregator Protocol Definition.

Aggregators accumulate per-tick samples over one episode and reduce them to a
single scalar reward at the end. Higher reward is better.
"""

from typing import TYPE_CHECKING, Dict, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..core.enums import AbortReason
    from ..core.types import RewardBreakdown, TickSample


@runtime_checkable
class RewardAggregator(Protocol):
    """Protocol defining the reward aggregator interface.

    Universal Properties:
        1. Ordered: samples are accumulated in simulation tick order
        2. Bounded penalties: each violation category is charged at most once
           per episode regardless of how many ticks it lasted
        3. Finite: ``finalize`` always returns finite values
    """

    def reset(self) -> None:
        """Clear all per-episode accumulators."""
        ...

    def accumulate(self, sample: "TickSample", dt: float) -> None:
        """Fold one tick of measurements into the running sums."""
        ...

    def record_violation(self, reason: "AbortReason") -> None:
        """Register a violation category for the event penalty."""
        ...

    def close_segment(self) -> float:
        """End the current sub-goal segment and return its reward."""
        ...

    def finalize(self) -> "RewardBreakdown":
        """Reduce the episode to its reward breakdown."""
        ...

    def get_metadata(self) -> Dict[str, object]:
        """Return aggregator configuration for logging/reproducibility."""
        ...
