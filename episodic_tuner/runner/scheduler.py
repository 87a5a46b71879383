"""
Host loop for the episode manager.

The manager never blocks; the scheduler owns time. Each iteration calls
``manager.tick()``, advances the attached simulation by the requested delay
and, in realtime mode, sleeps for it.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..core.episode_manager import EpisodeManager
from ..core.types import RunSummary

logger = logging.getLogger(__name__)

__all__ = ["TickScheduler", "SchedulerResult"]


@dataclass
class SchedulerResult:
    ticks: int
    simulated_s: float
    stopped: bool
    summary: Optional[RunSummary]


class TickScheduler:
    """Drive ``manager`` until it stops or the tick budget runs out.

    Args:
        manager: The episode manager to tick
        physics_step: Called with the delay in seconds after every tick,
            e.g. ``KinematicVehicle.advance``
        realtime: Sleep for each requested delay
        max_ticks: Upper bound on ticks for this scheduler
    """

    def __init__(
        self,
        manager: EpisodeManager,
        physics_step: Optional[Callable[[float], None]] = None,
        realtime: bool = False,
        max_ticks: Optional[int] = None,
    ) -> None:
        if max_ticks is not None and max_ticks < 1:
            raise ValueError(f"max_ticks must be positive, got {max_ticks}")
        self.manager = manager
        self.physics_step = physics_step
        self.realtime = realtime
        self.max_ticks = max_ticks
        self.ticks = 0
        self.simulated_s = 0.0
        self._cancelled = False

    def cancel(self) -> None:
        """Stop the loop at the next tick boundary."""
        self._cancelled = True

    def step(self) -> Optional[int]:
        delay_ms = self.manager.tick()
        self.ticks += 1
        if delay_ms is None:
            return None
        delay_s = delay_ms / 1000.0
        if self.physics_step is not None:
            self.physics_step(delay_s)
        self.simulated_s += delay_s
        if self.realtime:
            time.sleep(delay_s)
        return delay_ms

    def run(self) -> SchedulerResult:
        self._cancelled = False
        while not self._cancelled:
            if self.max_ticks is not None and self.ticks >= self.max_ticks:
                logger.warning(
                    "Tick budget of %d exhausted in phase %s",
                    self.max_ticks,
                    self.manager.phase.value,
                )
                break
            if self.step() is None:
                break
        return SchedulerResult(
            ticks=self.ticks,
            simulated_s=self.simulated_s,
            stopped=self.manager.stopped,
            summary=self.manager.summary,
        )
