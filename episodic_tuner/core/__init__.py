"""
Core learning components: discretizer, Q-table, agent, convergence monitor,
safety envelope and reset controller.

``EpisodeManager`` lives in ``episodic_tuner.core.episode_manager`` and is
re-exported from the top-level package.
"""

from .agent import QLearningAgent
from .convergence import ConvergenceMonitor, ConvergenceTracker
from .discretizer import StateDiscretizer, bin_index
from .enums import AbortReason, EpisodePhase
from .q_table import QTable
from .reset_controller import ResetController
from .safety import SafetyEnvelope
from .types import (
    Action,
    Episode,
    EpisodeRecord,
    NavigationCommand,
    Observation,
    ParameterCommand,
    PolicyParameters,
    Pose,
    RewardBreakdown,
    RunSummary,
    StateKey,
    TickSample,
)

__all__ = [
    "AbortReason",
    "Action",
    "ConvergenceMonitor",
    "ConvergenceTracker",
    "Episode",
    "EpisodePhase",
    "EpisodeRecord",
    "NavigationCommand",
    "Observation",
    "ParameterCommand",
    "PolicyParameters",
    "Pose",
    "QLearningAgent",
    "QTable",
    "ResetController",
    "RewardBreakdown",
    "RunSummary",
    "SafetyEnvelope",
    "StateDiscretizer",
    "StateKey",
    "TickSample",
    "bin_index",
]
