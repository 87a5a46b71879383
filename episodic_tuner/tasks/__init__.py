"""Concrete tuning problems driven by the episode manager."""

from .base import EpisodeTask
from .parameter_tuning import (
    STATE_SOURCES,
    Maneuver,
    ParameterSpace,
    ParameterSpec,
    ParameterTuningTask,
)
from .waypoint_tour import HOME_BIN, WaypointTourTask

__all__ = [
    "EpisodeTask",
    "HOME_BIN",
    "Maneuver",
    "ParameterSpace",
    "ParameterSpec",
    "ParameterTuningTask",
    "STATE_SOURCES",
    "WaypointTourTask",
]
