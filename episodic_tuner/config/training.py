"""
Pydantic configuration models for a training run.

Every hyperparameter the operator can touch lives here: learning rates and
exploration schedule, stopping criteria, tick periods, launch preconditions,
safety envelope and reward weights. Validation failures surface as
``ConfigurationError``, which is fatal.

Example:
    >>> from episodic_tuner.config import TrainingConfig
    >>>
    >>> cfg = TrainingConfig(alpha=0.1, gamma=0.95, stable_threshold=20)
    >>> cfg = load_config("runs/tecs.json")
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..core import constants as C
from ..core.types import PolicyParameters
from ..utils.exceptions import ConfigurationError

__all__ = [
    "LaunchConfig",
    "SafetyConfig",
    "RewardWeights",
    "TrainingConfig",
    "load_config",
    "validated",
]


class LaunchConfig(BaseModel):
    """Arm and climb preconditions checked in the LAUNCH phase.

    Attributes:
        altitude_m: Climb target above home before the measured trial starts
        tolerance_m: Altitude counts as reached at ``altitude_m - tolerance_m``
        timeout_ticks: Ticks allowed before the episode aborts
    """

    altitude_m: float = Field(default=C.DEFAULT_TAKEOFF_ALT_M, gt=0.0)
    tolerance_m: float = Field(default=C.DEFAULT_TAKEOFF_TOLERANCE_M, ge=0.0)
    timeout_ticks: int = Field(default=C.DEFAULT_LAUNCH_TIMEOUT_TICKS, ge=1)

    model_config = ConfigDict(validate_assignment=True, extra="forbid")


class SafetyConfig(BaseModel):
    """Envelope checked every RUN tick. ``None`` disables a predicate."""

    min_airspeed: Optional[float] = Field(default=None, description="Stall below this (m/s)")
    max_airspeed: Optional[float] = Field(default=None, description="Overspeed above this (m/s)")
    min_altitude_m: Optional[float] = Field(
        default=None, description="Ground proximity below this height above home"
    )
    saturation_streak_s: Optional[float] = Field(
        default=None, gt=0.0, description="Continuous actuator saturation allowed (s)"
    )
    max_tracking_error: Optional[float] = Field(
        default=None, gt=0.0, description="Abort when any tracking error exceeds this"
    )

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    @model_validator(mode="after")
    def _check_airspeed_band(self) -> "SafetyConfig":
        if (
            self.min_airspeed is not None
            and self.max_airspeed is not None
            and self.min_airspeed >= self.max_airspeed
        ):
            raise ValueError("min_airspeed must be below max_airspeed")
        return self


class RewardWeights(BaseModel):
    """Weights for the shaped tracking reward.

    Attributes:
        tracking: Weight per tracking channel; missing channels weigh 1.0
        control_variance: Weight on the variance of the control signal
        oscillation_rms: Weight on the RMS oscillation measure
        event_penalty: Charged once per distinct violation category
        saturation_fraction_limit: Saturated-tick fraction counted as a
            sustained-saturation violation
        deviation_limits: Per-channel peak error counted as excessive deviation
    """

    tracking: Tuple[float, ...] = Field(default=(1.0, 0.1))
    control_variance: float = Field(default=C.DEFAULT_CONTROL_VARIANCE_WEIGHT, ge=0.0)
    oscillation_rms: float = Field(default=C.DEFAULT_OSCILLATION_RMS_WEIGHT, ge=0.0)
    event_penalty: float = Field(default=C.DEFAULT_EVENT_PENALTY, ge=0.0)
    saturation_fraction_limit: float = Field(
        default=C.DEFAULT_SATURATION_FRACTION_LIMIT, gt=0.0, le=1.0
    )
    deviation_limits: Optional[Tuple[float, ...]] = None

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    def weight(self, channel: int) -> float:
        return self.tracking[channel] if channel < len(self.tracking) else 1.0


class TrainingConfig(BaseModel):
    """Complete run configuration."""

    enabled: bool = True
    alpha: float = Field(default=C.DEFAULT_ALPHA, gt=0.0, le=1.0)
    gamma: float = Field(default=C.DEFAULT_GAMMA, ge=0.0, le=1.0)
    epsilon_init: float = Field(default=C.DEFAULT_EPSILON_INIT, ge=0.0, le=1.0)
    epsilon_decay: float = Field(default=C.DEFAULT_EPSILON_DECAY, gt=0.0, le=1.0)
    epsilon_min: float = Field(default=C.DEFAULT_EPSILON_MIN, ge=0.0, le=1.0)
    stable_threshold: int = Field(default=C.DEFAULT_STABLE_THRESHOLD, ge=1)
    max_episodes: Optional[int] = Field(default=None, ge=1)
    tick_period_ms: int = Field(default=C.LOOP_FAST_MS, ge=1)
    idle_period_ms: int = Field(default=C.LOOP_IDLE_MS, ge=1)
    run_timeout_s: Optional[float] = Field(default=None, gt=0.0)
    reset_tolerance_m: float = Field(default=C.DEFAULT_RESET_TOLERANCE_M, gt=0.0)
    reset_tolerance_rad: float = Field(default=C.DEFAULT_RESET_TOLERANCE_RAD, gt=0.0)
    seed: Optional[int] = Field(default=None, ge=C.SEED_MIN_VALUE, le=C.SEED_MAX_VALUE)
    launch: LaunchConfig = Field(default_factory=LaunchConfig)
    safety: SafetyConfig = Field(default_factory=SafetyConfig)
    reward: RewardWeights = Field(default_factory=RewardWeights)

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    @model_validator(mode="after")
    def _check_epsilon_floor(self) -> "TrainingConfig":
        if self.epsilon_min > self.epsilon_init:
            raise ValueError("epsilon_min must not exceed epsilon_init")
        return self

    @property
    def tick_period_s(self) -> float:
        return self.tick_period_ms / 1000.0

    def policy_parameters(self) -> PolicyParameters:
        return PolicyParameters(
            alpha=self.alpha,
            gamma=self.gamma,
            epsilon=self.epsilon_init,
            epsilon_decay=self.epsilon_decay,
            epsilon_min=self.epsilon_min,
        )

    @classmethod
    def from_env(
        cls,
        prefix: str = "EPTUNE_",
        environ: Optional[Mapping[str, str]] = None,
        **overrides: Any,
    ) -> "TrainingConfig":
        """Build a config from ``PREFIX_<FIELD>`` environment variables.

        Only top-level scalar fields are read; nested sections come from
        ``overrides`` or their defaults.
        """
        source = os.environ if environ is None else environ
        data: Dict[str, Any] = {}
        for name in cls.model_fields:
            key = f"{prefix}{name.upper()}"
            if key in source:
                data[name] = source[key]
        data.update(overrides)
        return validated(data)

    def clone_with_overrides(self, **overrides: Any) -> "TrainingConfig":
        data = self.model_dump()
        data.update(overrides)
        return validated(data)


def validated(data: Union[Mapping[str, Any], TrainingConfig, None]) -> TrainingConfig:
    """Validate ``data`` into a TrainingConfig, raising ConfigurationError."""
    if isinstance(data, TrainingConfig):
        return data
    try:
        return TrainingConfig.model_validate(dict(data or {}))
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or None
        raise ConfigurationError(
            f"Invalid training configuration: {first.get('msg', exc)}",
            config_parameter=location,
            parameter_value=first.get("input"),
        ) from exc


def load_config(path: Union[str, Path], **overrides: Any) -> TrainingConfig:
    """Load a JSON configuration file.

    Raises:
        ConfigurationError: If the file is missing, is not valid JSON, or
            fails validation
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigurationError(
            f"Configuration file not found: {path}",
            config_parameter="path",
            parameter_value=str(path),
        ) from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(
            f"Configuration file is not valid JSON: {path} ({exc.msg})",
            config_parameter="path",
            parameter_value=str(path),
        ) from exc
    if not isinstance(data, dict):
        raise ConfigurationError(
            "Configuration file must contain a JSON object",
            config_parameter="path",
            parameter_value=str(path),
        )
    data.update(overrides)
    return validated(data)
