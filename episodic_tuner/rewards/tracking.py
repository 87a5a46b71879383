"""
Tracking reward - shaped episode reward for controller tuning trials.

Folds per-tick samples into integral absolute error per tracking channel,
online control-signal variance, RMS oscillation and saturation statistics,
then reduces them to one scalar at the end of the episode.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Set

from ..core.enums import AbortReason
from ..core.types import RewardBreakdown, TickSample

if TYPE_CHECKING:
    from ..config.training import RewardWeights

__all__ = ["TrackingRewardAggregator"]


class TrackingRewardAggregator:
    """Shaped reward: tracking error, smoothness and event penalties.

    Satisfies RewardAggregator protocol via duck typing.

    Reward Structure:
        - ``-sum(w_i * IAE_i)`` over tracking channels
        - ``-(w_var * var(control) + w_osc * rms(oscillation))``
        - ``-event_penalty`` once per distinct violation category

    Violation categories come from ``record_violation`` (safety aborts) and
    from the aggregator itself: a channel whose peak error exceeds its
    deviation limit adds EXCESSIVE_DEVIATION, and a saturated-tick fraction
    above the limit adds SATURATION_STREAK.

    Properties:
        - Bounded penalties: a category is charged once however long it lasts
        - Finite: empty episodes reduce to 0 before penalties

    Example:
        >>> agg = TrackingRewardAggregator(RewardWeights(tracking=(1.0,)))
        >>> agg.accumulate(TickSample(tracking_errors=(0.5,)), dt=0.1)
        >>> agg.finalize().total
        -0.05
    """

    def __init__(self, weights: "RewardWeights"):
        """Initialize TrackingRewardAggregator.

        Args:
            weights: Reward weights and violation thresholds
        """
        self.weights = weights
        self.reset()

    def reset(self) -> None:
        self._duration_s = 0.0
        self._iae: List[float] = []
        self._peak: List[float] = []
        # Welford accumulators for the control signal
        self._control_n = 0
        self._control_mean = 0.0
        self._control_m2 = 0.0
        self._osc_sq_sum = 0.0
        self._ticks = 0
        self._saturated_ticks = 0
        self._events: Set[AbortReason] = set()

    def accumulate(self, sample: TickSample, dt: float) -> None:
        """Fold one tick into the running sums.

        Args:
            sample: Measurements for this tick
            dt: Tick duration in seconds

        Raises:
            ValueError: If dt is negative
        """
        if dt < 0.0:
            raise ValueError(f"dt must be non-negative, got {dt}")

        errors = sample.tracking_errors
        while len(self._iae) < len(errors):
            self._iae.append(0.0)
            self._peak.append(0.0)
        for channel, error in enumerate(errors):
            magnitude = abs(float(error))
            self._iae[channel] += magnitude * dt
            self._peak[channel] = max(self._peak[channel], magnitude)

        if sample.control_signal is not None:
            self._control_n += 1
            delta = sample.control_signal - self._control_mean
            self._control_mean += delta / self._control_n
            self._control_m2 += delta * (sample.control_signal - self._control_mean)

        self._osc_sq_sum += float(sample.oscillation) ** 2
        self._ticks += 1
        if sample.saturated:
            self._saturated_ticks += 1
        self._duration_s += dt

    def record_violation(self, reason: AbortReason) -> None:
        self._events.add(reason)

    def close_segment(self) -> float:
        # Single-decision task: the whole episode is one segment
        return self.finalize().total

    @property
    def control_variance(self) -> float:
        if self._control_n < 2:
            return 0.0
        return self._control_m2 / (self._control_n - 1)

    @property
    def rms_oscillation(self) -> float:
        if self._ticks == 0:
            return 0.0
        return math.sqrt(self._osc_sq_sum / self._ticks)

    @property
    def saturation_fraction(self) -> float:
        if self._ticks == 0:
            return 0.0
        return self._saturated_ticks / self._ticks

    def mean_errors(self) -> List[float]:
        if self._duration_s <= 0.0:
            return [0.0 for _ in self._iae]
        return [iae / self._duration_s for iae in self._iae]

    def _derived_events(self) -> Set[AbortReason]:
        events = set(self._events)
        limits: Optional[tuple] = self.weights.deviation_limits
        if limits:
            for channel, peak in enumerate(self._peak):
                if channel < len(limits) and peak > limits[channel]:
                    events.add(AbortReason.EXCESSIVE_DEVIATION)
        if self.saturation_fraction > self.weights.saturation_fraction_limit:
            events.add(AbortReason.SATURATION_STREAK)
        return events

    def finalize(self) -> RewardBreakdown:
        """Reduce the episode to its reward breakdown.

        Returns:
            RewardBreakdown whose ``total`` and ``final_segment`` coincide

        Postconditions:
            C1: every field is finite
            C2: ``event_penalty`` is a multiple of the configured penalty
        """
        tracking = sum(
            self.weights.weight(channel) * iae for channel, iae in enumerate(self._iae)
        )
        smoothness = (
            self.weights.control_variance * self.control_variance
            + self.weights.oscillation_rms * self.rms_oscillation
        )
        events = self._derived_events()
        penalty = self.weights.event_penalty * len(events)
        total = -tracking - smoothness - penalty

        metrics: Dict[str, float] = {
            f"mean_error_{channel}": value
            for channel, value in enumerate(self.mean_errors())
        }
        metrics.update(
            {
                "rms_oscillation": self.rms_oscillation,
                "control_variance": self.control_variance,
                "saturation_fraction": self.saturation_fraction,
                "duration_s": self._duration_s,
            }
        )
        return RewardBreakdown(
            total=total,
            final_segment=total,
            tracking=-tracking,
            smoothness=-smoothness,
            event_penalty=-penalty,
            events=tuple(sorted(event.value for event in events)),
            metrics=metrics,
        )

    def get_metadata(self) -> Dict[str, Any]:
        """Return reward configuration."""
        return {
            "type": "tracking_reward",
            "tracking_weights": [float(w) for w in self.weights.tracking],
            "control_variance_weight": float(self.weights.control_variance),
            "oscillation_rms_weight": float(self.weights.oscillation_rms),
            "event_penalty": float(self.weights.event_penalty),
            "saturation_fraction_limit": float(self.weights.saturation_fraction_limit),
            "deviation_limits": (
                None
                if self.weights.deviation_limits is None
                else [float(v) for v in self.weights.deviation_limits]
            ),
        }
