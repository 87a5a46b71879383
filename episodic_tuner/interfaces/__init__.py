"""
Protocol definitions for the external collaborators of the tuning engine.

- EnvironmentAdapter: the simulated vehicle
- RewardAggregator: episode-level reward reduction
- TelemetrySink: per-episode records and the run summary
"""

from .environment import EnvironmentAdapter
from .reward import RewardAggregator
from .telemetry import TelemetrySink

__all__ = [
    "EnvironmentAdapter",
    "RewardAggregator",
    "TelemetrySink",
]
