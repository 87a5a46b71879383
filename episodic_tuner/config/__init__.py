"""Configuration package: pydantic models for training runs."""

from .training import (
    LaunchConfig,
    RewardWeights,
    SafetyConfig,
    TrainingConfig,
    load_config,
    validated,
)

__all__ = [
    "LaunchConfig",
    "RewardWeights",
    "SafetyConfig",
    "TrainingConfig",
    "load_config",
    "validated",
]
