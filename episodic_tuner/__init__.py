"""
episodic_tuner: episodic tabular Q-learning for tuning simulated vehicles.

A tick-driven episode manager sequences launch, a measured trial, evaluation
and a deterministic teleport reset, and learns from each trial's reward
with a tabular epsilon-greedy agent.
"""

from .config import LaunchConfig, RewardWeights, SafetyConfig, TrainingConfig, load_config
from .core import (
    AbortReason,
    Action,
    ConvergenceMonitor,
    EpisodePhase,
    EpisodeRecord,
    Observation,
    Pose,
    QLearningAgent,
    QTable,
    ResetController,
    RunSummary,
    StateDiscretizer,
    StateKey,
)
from .core.constants import PACKAGE_VERSION
from .core.episode_manager import EpisodeManager
from .envs import KinematicVehicle
from .interfaces import EnvironmentAdapter, RewardAggregator, TelemetrySink
from .rewards import SegmentCostAggregator, TrackingRewardAggregator
from .runner import TickScheduler, build_manager, train
from .tasks import (
    EpisodeTask,
    Maneuver,
    ParameterSpace,
    ParameterSpec,
    ParameterTuningTask,
    WaypointTourTask,
)
from .telemetry import InMemoryTelemetrySink, LoggingTelemetrySink
from .utils.exceptions import (
    ConfigurationError,
    InvalidActionError,
    PreconditionTimeoutError,
    SafetyAbortError,
    StateError,
    TunerError,
)

__version__ = PACKAGE_VERSION

__all__ = [
    "AbortReason",
    "Action",
    "ConfigurationError",
    "ConvergenceMonitor",
    "EnvironmentAdapter",
    "EpisodeManager",
    "EpisodePhase",
    "EpisodeRecord",
    "EpisodeTask",
    "InMemoryTelemetrySink",
    "InvalidActionError",
    "KinematicVehicle",
    "LaunchConfig",
    "LoggingTelemetrySink",
    "Maneuver",
    "Observation",
    "ParameterSpace",
    "ParameterSpec",
    "ParameterTuningTask",
    "Pose",
    "PreconditionTimeoutError",
    "QLearningAgent",
    "QTable",
    "ResetController",
    "RewardAggregator",
    "RewardWeights",
    "RunSummary",
    "SafetyAbortError",
    "SafetyConfig",
    "SegmentCostAggregator",
    "StateDiscretizer",
    "StateError",
    "StateKey",
    "TelemetrySink",
    "TickScheduler",
    "TrackingRewardAggregator",
    "TrainingConfig",
    "TunerError",
    "WaypointTourTask",
    "__version__",
    "build_manager",
    "load_config",
    "train",
]
