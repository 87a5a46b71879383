"""
Safety envelope evaluated on every RUN tick.

A breach raises ``SafetyAbortError``; the episode manager turns it into an
aborted episode and charges the event penalty for that category.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from ..utils.exceptions import SafetyAbortError
from .enums import AbortReason
from .types import Observation, TickSample

if TYPE_CHECKING:
    from ..config.training import SafetyConfig

logger = logging.getLogger(__name__)

__all__ = ["SafetyEnvelope"]


class SafetyEnvelope:
    """Stateful per-episode envelope check.

    Predicates left unset in the config are skipped. The saturation streak
    is the only stateful predicate and is cleared by ``reset``.
    """

    def __init__(self, config: "SafetyConfig", home_altitude: float = 0.0) -> None:
        self.config = config
        self.home_altitude = home_altitude
        self._saturated_for_s = 0.0

    def reset(self, home_altitude: Optional[float] = None) -> None:
        self._saturated_for_s = 0.0
        if home_altitude is not None:
            self.home_altitude = home_altitude

    @property
    def saturated_for_s(self) -> float:
        return self._saturated_for_s

    def check(self, observation: Observation, sample: TickSample, dt: float) -> None:
        """Raise SafetyAbortError if ``observation`` is outside the envelope."""
        cfg = self.config
        airspeed = observation.airspeed
        if airspeed is not None:
            if cfg.min_airspeed is not None and airspeed < cfg.min_airspeed:
                raise SafetyAbortError(
                    AbortReason.STALL,
                    f"Airspeed {airspeed:.2f} m/s below {cfg.min_airspeed:.2f} m/s",
                )
            if cfg.max_airspeed is not None and airspeed > cfg.max_airspeed:
                raise SafetyAbortError(
                    AbortReason.OVERSPEED,
                    f"Airspeed {airspeed:.2f} m/s above {cfg.max_airspeed:.2f} m/s",
                )

        height = observation.altitude - self.home_altitude
        if cfg.min_altitude_m is not None and height < cfg.min_altitude_m:
            raise SafetyAbortError(
                AbortReason.GROUND_PROXIMITY,
                f"Height {height:.2f} m below floor {cfg.min_altitude_m:.2f} m",
            )

        if cfg.max_tracking_error is not None:
            for channel, error in enumerate(sample.tracking_errors):
                if abs(error) > cfg.max_tracking_error:
                    raise SafetyAbortError(
                        AbortReason.EXCESSIVE_DEVIATION,
                        f"Channel {channel} error {abs(error):.2f} exceeds "
                        f"{cfg.max_tracking_error:.2f}",
                    )

        if sample.saturated:
            self._saturated_for_s += dt
        else:
            self._saturated_for_s = 0.0
        if (
            cfg.saturation_streak_s is not None
            and self._saturated_for_s >= cfg.saturation_streak_s
        ):
            raise SafetyAbortError(
                AbortReason.SATURATION_STREAK,
                f"Actuator saturated for {self._saturated_for_s:.2f} s",
            )
