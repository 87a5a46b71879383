"""
Convenience wiring for a complete training run.

Example:
    >>> from episodic_tuner import KinematicVehicle, WaypointTourTask, train
    >>> vehicle = KinematicVehicle()
    >>> summary = train({"seed": 7, "max_episodes": 20}, vehicle, WaypointTourTask())
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Union

from ..config.training import TrainingConfig, validated
from ..core.episode_manager import EpisodeManager
from ..core.types import RunSummary
from ..interfaces.environment import EnvironmentAdapter
from ..interfaces.telemetry import TelemetrySink
from ..tasks.base import EpisodeTask
from ..utils.exceptions import StateError
from .scheduler import TickScheduler

__all__ = ["build_manager", "train"]


def build_manager(
    config: Union[TrainingConfig, Mapping[str, Any], None],
    env: EnvironmentAdapter,
    task: EpisodeTask,
    sink: Optional[TelemetrySink] = None,
) -> EpisodeManager:
    return EpisodeManager(validated(config), env, task, sink)


def train(
    config: Union[TrainingConfig, Mapping[str, Any], None],
    env: EnvironmentAdapter,
    task: EpisodeTask,
    sink: Optional[TelemetrySink] = None,
    *,
    physics_step: Optional[Callable[[float], None]] = None,
    realtime: bool = False,
    max_ticks: Optional[int] = None,
) -> RunSummary:
    """Run training to completion and return the run summary.

    ``physics_step`` defaults to ``env.advance`` when the environment has one.

    Raises:
        ConfigurationError: On invalid configuration, before any episode
        StateError: If the tick budget runs out before the run stops
    """
    manager = build_manager(config, env, task, sink)
    if physics_step is None:
        physics_step = getattr(env, "advance", None)
    scheduler = TickScheduler(
        manager, physics_step=physics_step, realtime=realtime, max_ticks=max_ticks
    )
    result = scheduler.run()
    if result.summary is None:
        raise StateError(
            f"Run did not stop within {result.ticks} ticks",
            current_state=manager.phase.value,
            expected_state="stopped",
        )
    return result.summary
