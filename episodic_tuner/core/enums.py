"""
Core enumerations for the episodic tuning engine.
"""

from enum import Enum


class EpisodePhase(Enum):
    """Phases of the episode state machine."""

    AWAIT_READY = "await_ready"
    LAUNCH = "launch"
    RUN = "run"
    EVALUATE = "evaluate"
    RESET = "reset"
    STOPPED = "stopped"

    def is_active(self) -> bool:
        """Check if the phase is part of a live episode."""
        return self in (EpisodePhase.LAUNCH, EpisodePhase.RUN, EpisodePhase.EVALUATE)

    def is_terminal(self) -> bool:
        return self == EpisodePhase.STOPPED


class AbortReason(Enum):
    """Categories of early episode termination.

    Each category contributes its event penalty at most once per episode.
    """

    STALL = "stall"
    OVERSPEED = "overspeed"
    GROUND_PROXIMITY = "ground_proximity"
    SATURATION_STREAK = "saturation_streak"
    EXCESSIVE_DEVIATION = "excessive_deviation"
    LAUNCH_TIMEOUT = "launch_timeout"
    RUN_TIMEOUT = "run_timeout"

    def is_safety_abort(self) -> bool:
        """Check if the reason is an out-of-envelope condition seen in RUN."""
        return self not in (AbortReason.LAUNCH_TIMEOUT, AbortReason.RUN_TIMEOUT)
