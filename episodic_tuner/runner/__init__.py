"""Host-side loop and training wiring."""

from .scheduler import SchedulerResult, TickScheduler
from .training import build_manager, train

__all__ = ["SchedulerResult", "TickScheduler", "build_manager", "train"]
