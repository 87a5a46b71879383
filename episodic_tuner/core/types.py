"""
Core data types for the episodic tuning engine.

Positions are local north/east/up coordinates in metres relative to the
environment origin; attitudes are (roll, pitch, yaw) in radians.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

Vector3 = Tuple[float, float, float]

ZERO_VECTOR: Vector3 = (0.0, 0.0, 0.0)

__all__ = [
    "Vector3",
    "ZERO_VECTOR",
    "StateKey",
    "Action",
    "Pose",
    "Observation",
    "ParameterCommand",
    "NavigationCommand",
    "Command",
    "TickSample",
    "RewardBreakdown",
    "Segment",
    "Episode",
    "EpisodeRecord",
    "RunSummary",
    "PolicyParameters",
    "as_vector3",
    "wrap_angle",
]


def as_vector3(values: Any) -> Vector3:
    """Coerce a 3-sequence to a tuple of floats."""
    arr = np.asarray(values, dtype=float).reshape(-1)
    if arr.shape != (3,):
        raise ValueError(f"Expected 3 components, got shape {arr.shape}")
    return (float(arr[0]), float(arr[1]), float(arr[2]))


def wrap_angle(angle: float) -> float:
    """Wrap an angle to [-pi, pi)."""
    return (angle + math.pi) % (2.0 * math.pi) - math.pi


@dataclass(frozen=True, order=True)
class StateKey:
    """Structurally hashable discrete state.

    Attributes:
        bins: One bin index per discretized observation dimension
        visited: Bitmask of already-visited choices (sequential tasks only)
    """

    bins: Tuple[int, ...]
    visited: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "bins", tuple(int(b) for b in self.bins))
        if self.visited < 0:
            raise ValueError(f"visited mask must be non-negative, got {self.visited}")

    def with_visit(self, choice: int, bins: Optional[Tuple[int, ...]] = None) -> "StateKey":
        """Return the successor key with ``choice`` marked visited."""
        return StateKey(
            bins=self.bins if bins is None else bins,
            visited=self.visited | (1 << choice),
        )

    def is_visited(self, choice: int) -> bool:
        return bool(self.visited & (1 << choice))

    def __str__(self) -> str:
        core = "-".join(str(b) for b in self.bins)
        return f"{core}|{self.visited:b}" if self.visited else core


@dataclass(frozen=True)
class Action:
    """One member of a closed, enumerated action set.

    Attributes:
        index: Position in the action set (stable Q-table column)
        name: Human-readable label, e.g. ``"ALT_KP+"`` or ``"WP3"``
        parameter: Parameter changed by ``delta`` or set to ``value``, None otherwise
        delta: Signed change applied to ``parameter``
        choice: Index into a discrete choice set (waypoint, gain value)
        value: Absolute value written to ``parameter`` when the action is taken
    """

    index: int
    name: str
    parameter: Optional[str] = None
    delta: float = 0.0
    choice: Optional[int] = None
    value: Optional[float] = None

    @property
    def is_noop(self) -> bool:
        return self.parameter is None and self.choice is None

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Pose:
    """Full rigid-body pose used for teleport resets."""

    position: Vector3
    attitude: Vector3 = ZERO_VECTOR
    velocity: Vector3 = ZERO_VECTOR
    angular_velocity: Vector3 = ZERO_VECTOR

    def __post_init__(self) -> None:
        object.__setattr__(self, "position", as_vector3(self.position))
        object.__setattr__(self, "attitude", as_vector3(self.attitude))
        object.__setattr__(self, "velocity", as_vector3(self.velocity))
        object.__setattr__(self, "angular_velocity", as_vector3(self.angular_velocity))

    @classmethod
    def nominal(cls, position: Any, attitude: Any = ZERO_VECTOR) -> "Pose":
        """Pose at rest: zero linear and angular velocity."""
        return cls(position=as_vector3(position), attitude=as_vector3(attitude))

    def position_error(self, other: "Pose") -> float:
        return float(np.linalg.norm(np.subtract(self.position, other.position)))

    def attitude_error(self, other: "Pose") -> float:
        return max(abs(wrap_angle(a - b)) for a, b in zip(self.attitude, other.attitude))

    def speed_error(self, other: "Pose") -> float:
        linear = np.linalg.norm(np.subtract(self.velocity, other.velocity))
        angular = np.linalg.norm(np.subtract(self.angular_velocity, other.angular_velocity))
        return float(max(linear, angular))

    def is_close(self, other: "Pose", tolerance_m: float, tolerance_rad: float) -> bool:
        """Check pose agreement within position/velocity and attitude tolerances."""
        return (
            self.position_error(other) <= tolerance_m
            and self.speed_error(other) <= tolerance_m
            and self.attitude_error(other) <= tolerance_rad
        )


@dataclass(frozen=True)
class Observation:
    """Snapshot of vehicle state returned by ``EnvironmentAdapter.observe``."""

    position: Vector3
    velocity: Vector3 = ZERO_VECTOR
    attitude: Vector3 = ZERO_VECTOR
    angular_velocity: Vector3 = ZERO_VECTOR
    airspeed: Optional[float] = None
    throttle: Optional[float] = None
    battery_voltage: float = 0.0
    battery_current: float = 0.0
    armed: bool = False
    time_s: float = 0.0

    @property
    def altitude(self) -> float:
        return self.position[2]

    @property
    def vertical_speed(self) -> float:
        return self.velocity[2]

    @property
    def pitch_rate(self) -> float:
        return self.angular_velocity[1]

    @property
    def power_w(self) -> float:
        return self.battery_voltage * self.battery_current

    @property
    def ground_speed(self) -> float:
        return math.hypot(self.velocity[0], self.velocity[1])

    def pose(self) -> Pose:
        return Pose(
            position=self.position,
            attitude=self.attitude,
            velocity=self.velocity,
            angular_velocity=self.angular_velocity,
        )


@dataclass(frozen=True)
class ParameterCommand:
    """Set a named controller parameter on the vehicle."""

    name: str
    value: float


@dataclass(frozen=True)
class NavigationCommand:
    """Fly toward a target position (guided mode)."""

    target: Vector3

    def __post_init__(self) -> None:
        object.__setattr__(self, "target", as_vector3(self.target))


Command = Union[ParameterCommand, NavigationCommand]


@dataclass(frozen=True)
class TickSample:
    """Per-tick measurements fed to a reward aggregator.

    Attributes:
        tracking_errors: Absolute error per tracking channel
        control_signal: Normalized actuator output (throttle), if available
        oscillation: Oscillation measure, e.g. absolute pitch rate
        saturated: Actuator at a saturation limit this tick
        power_w: Instantaneous electrical power draw
    """

    tracking_errors: Tuple[float, ...] = ()
    control_signal: Optional[float] = None
    oscillation: float = 0.0
    saturated: bool = False
    power_w: float = 0.0


@dataclass(frozen=True)
class RewardBreakdown:
    """Episode-level reward produced by an aggregator's ``finalize``.

    ``total`` is the episode reward; ``final_segment`` is the reward credited
    to the last decision (equal to ``total`` for single-decision tasks).
    """

    total: float
    final_segment: float
    tracking: float = 0.0
    smoothness: float = 0.0
    event_penalty: float = 0.0
    events: Tuple[str, ...] = ()
    metrics: Dict[str, float] = field(default_factory=dict)


@dataclass
class Segment:
    """One decision inside a sequential episode."""

    state: StateKey
    action: Action
    reward: float = 0.0


@dataclass
class Episode:
    """Mutable per-episode record owned by the episode manager.

    Created when the manager leaves AWAIT_READY and discarded after RESET.
    """

    id: int
    start_state: StateKey
    action: Action
    accumulated_cost: float = 0.0
    total_reward: float = 0.0
    aborted: bool = False
    abort_reason: Optional[str] = None
    launch_ticks: int = 0
    run_ticks: int = 0
    segments: List[Segment] = field(default_factory=list)
    chosen: Dict[str, Any] = field(default_factory=dict)

    def abort(self, reason: Any) -> None:
        """Mark aborted. The first reason wins."""
        if not self.aborted:
            self.aborted = True
            self.abort_reason = getattr(reason, "value", str(reason))

    @property
    def actions(self) -> List[Action]:
        return [segment.action for segment in self.segments]


@dataclass(frozen=True)
class EpisodeRecord:
    """Telemetry record emitted once per completed episode."""

    episode_id: int
    total_reward: float
    aborted: bool
    abort_reason: Optional[str]
    chosen_action_or_params: Dict[str, Any]
    epsilon: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "episode_id": self.episode_id,
            "total_reward": self.total_reward,
            "aborted": self.aborted,
            "abort_reason": self.abort_reason,
            "chosen_action_or_params": dict(self.chosen_action_or_params),
            "epsilon": self.epsilon,
        }


@dataclass(frozen=True)
class RunSummary:
    """Telemetry record emitted once when the run stops."""

    best_episode_id: Optional[int]
    best_reward: float
    best_action_or_params: Dict[str, Any]
    episodes_completed: int = 0
    stop_reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "best_episode_id": self.best_episode_id,
            "best_reward": self.best_reward,
            "best_action_or_params": dict(self.best_action_or_params),
            "episodes_completed": self.episodes_completed,
            "stop_reason": self.stop_reason,
        }


@dataclass
class PolicyParameters:
    """Learning hyperparameters. ``epsilon`` only ever decreases."""

    alpha: float
    gamma: float
    epsilon: float
    epsilon_decay: float
    epsilon_min: float

    def validate(self) -> None:
        """Raise ConfigurationError on out-of-range values."""
        from ..utils.exceptions import ConfigurationError

        checks = [
            ("alpha", 0.0 < self.alpha <= 1.0, self.alpha),
            ("gamma", 0.0 <= self.gamma <= 1.0, self.gamma),
            ("epsilon", 0.0 <= self.epsilon <= 1.0, self.epsilon),
            ("epsilon_decay", 0.0 < self.epsilon_decay <= 1.0, self.epsilon_decay),
            ("epsilon_min", 0.0 <= self.epsilon_min <= 1.0, self.epsilon_min),
        ]
        for name, ok, value in checks:
            if not ok or not math.isfinite(value):
                raise ConfigurationError(
                    f"{name} out of range: {value}",
                    config_parameter=name,
                    parameter_value=value,
                )
        if self.epsilon_min > self.epsilon:
            raise ConfigurationError(
                f"epsilon_min ({self.epsilon_min}) exceeds initial epsilon ({self.epsilon})",
                config_parameter="epsilon_min",
                parameter_value=self.epsilon_min,
            )

    def decay(self) -> float:
        self.epsilon = max(self.epsilon_min, self.epsilon * self.epsilon_decay)
        return self.epsilon
