"""
Controller gain tuning by single-decision episodes.

Each episode nudges one parameter by a fixed step (or leaves everything
unchanged), flies a scripted altitude maneuver and scores how well the
vehicle tracked a smoothed reference. Parameter values persist across
episodes, so the run walks a trajectory through the parameter space.

Example:
    >>> space = ParameterSpace([
    ...     ParameterSpec("ALT_KP", initial=1.0, lower=0.2, upper=3.0, step=0.1),
    ...     ParameterSpec("ALT_KD", initial=0.5, lower=0.0, upper=2.0, step=0.05),
    ... ])
    >>> task = ParameterTuningTask(space, Maneuver.step(10.0, 15.0))
    >>> [a.name for a in task.actions]
    ['NoChange', 'ALT_KP+', 'ALT_KP-', 'ALT_KD+', 'ALT_KD-']
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..core.constants import THROTTLE_SATURATION_HIGH, THROTTLE_SATURATION_LOW
from ..core.discretizer import StateDiscretizer
from ..core.types import (
    Action,
    NavigationCommand,
    Observation,
    ParameterCommand,
    Pose,
    RewardBreakdown,
    StateKey,
    TickSample,
)
from ..interfaces.environment import EnvironmentAdapter
from ..rewards.tracking import TrackingRewardAggregator
from ..utils.exceptions import ConfigurationError, InvalidActionError
from .base import EpisodeTask

if TYPE_CHECKING:
    from ..config.training import RewardWeights

logger = logging.getLogger(__name__)

__all__ = [
    "ParameterSpec",
    "ParameterSpace",
    "Maneuver",
    "ParameterTuningTask",
    "STATE_SOURCES",
]

STATE_SOURCES = ("observation", "metrics")

# Values are rounded to this many decimals so repeated steps do not drift.
_VALUE_DECIMALS = 9


@dataclass(frozen=True)
class ParameterSpec:
    """A bounded, stepped controller parameter."""

    name: str
    initial: float
    lower: float
    upper: float
    step: float

    def __post_init__(self) -> None:
        if not self.name:
            raise ConfigurationError("Parameter name must not be empty", config_parameter="name")
        if not self.lower <= self.initial <= self.upper:
            raise ConfigurationError(
                f"{self.name}: initial {self.initial} outside [{self.lower}, {self.upper}]",
                config_parameter=self.name,
                parameter_value=self.initial,
            )
        if self.step <= 0.0 or not math.isfinite(self.step):
            raise ConfigurationError(
                f"{self.name}: step must be positive, got {self.step}",
                config_parameter=self.name,
                parameter_value=self.step,
            )

    def contains(self, value: float) -> bool:
        eps = 1e-9 * max(1.0, abs(self.step))
        return self.lower - eps <= value <= self.upper + eps


class ParameterSpace:
    """Current values of a set of parameters plus their delta action set.

    Action 0 is ``NoChange``; each parameter then contributes ``NAME+`` and
    ``NAME-`` in declaration order.
    """

    def __init__(self, specs: Iterable[ParameterSpec]) -> None:
        self.specs: Tuple[ParameterSpec, ...] = tuple(specs)
        if not self.specs:
            raise ConfigurationError(
                "Parameter space must contain at least one parameter",
                config_parameter="specs",
                parameter_value=[],
            )
        names = [spec.name for spec in self.specs]
        if len(set(names)) != len(names):
            raise ConfigurationError(
                "Parameter names must be unique",
                config_parameter="specs",
                parameter_value=names,
            )
        self._by_name = {spec.name: spec for spec in self.specs}
        self._values: Dict[str, float] = {spec.name: spec.initial for spec in self.specs}
        actions: List[Action] = [Action(index=0, name="NoChange")]
        for spec in self.specs:
            for sign, suffix in ((1.0, "+"), (-1.0, "-")):
                actions.append(
                    Action(
                        index=len(actions),
                        name=f"{spec.name}{suffix}",
                        parameter=spec.name,
                        delta=sign * spec.step,
                    )
                )
        self.actions: Tuple[Action, ...] = tuple(actions)

    @property
    def values(self) -> Dict[str, float]:
        return dict(self._values)

    def value(self, name: str) -> float:
        return self._values[name]

    def propose(self, action: Action) -> Optional[Tuple[str, float]]:
        """Value the action would produce, without applying it.

        Returns:
            ``(name, value)``, or None for the no-op action

        Raises:
            InvalidActionError: If the result leaves the parameter's range
        """
        if action.parameter is None:
            return None
        spec = self._by_name.get(action.parameter)
        if spec is None:
            raise InvalidActionError(
                f"Unknown parameter {action.parameter!r}",
                action_name=action.name,
                parameter_name=action.parameter,
            )
        value = round(self._values[spec.name] + action.delta, _VALUE_DECIMALS)
        if not spec.contains(value):
            raise InvalidActionError(
                f"{action.name} would move {spec.name} to {value:g}, outside "
                f"[{spec.lower:g}, {spec.upper:g}]",
                action_name=action.name,
                parameter_name=spec.name,
                attempted_value=value,
            )
        return spec.name, min(max(value, spec.lower), spec.upper)

    def apply(self, action: Action) -> Optional[Tuple[str, float]]:
        change = self.propose(action)
        if change is not None:
            name, value = change
            self._values[name] = value
        return change

    def reset(self) -> None:
        self._values = {spec.name: spec.initial for spec in self.specs}


@dataclass(frozen=True)
class Maneuver:
    """Scripted altitude profile.

    Attributes:
        setpoints: ``(time_s, height_m)`` pairs, heights above home, sorted by
            time; the first must start at t=0
        duration_s: Length of the measured trial
        ref_tau_s: Time constant of the first-order reference filter
        cruise_airspeed: Adds an airspeed tracking channel when set
    """

    setpoints: Tuple[Tuple[float, float], ...]
    duration_s: float
    ref_tau_s: float = 1.0
    cruise_airspeed: Optional[float] = None

    def __post_init__(self) -> None:
        points = tuple((float(t), float(h)) for t, h in self.setpoints)
        object.__setattr__(self, "setpoints", points)
        if not points or points[0][0] != 0.0:
            raise ConfigurationError(
                "Maneuver must start with a setpoint at t=0",
                config_parameter="setpoints",
                parameter_value=points,
            )
        if any(b[0] <= a[0] for a, b in zip(points, points[1:])):
            raise ConfigurationError(
                "Maneuver setpoint times must be strictly increasing",
                config_parameter="setpoints",
                parameter_value=points,
            )
        if self.duration_s <= 0.0:
            raise ConfigurationError(
                f"duration_s must be positive, got {self.duration_s}",
                config_parameter="duration_s",
                parameter_value=self.duration_s,
            )
        if self.ref_tau_s <= 0.0:
            raise ConfigurationError(
                f"ref_tau_s must be positive, got {self.ref_tau_s}",
                config_parameter="ref_tau_s",
                parameter_value=self.ref_tau_s,
            )

    @classmethod
    def step(
        cls,
        start_m: float,
        target_m: float,
        *,
        at_s: float = 2.0,
        duration_s: float = 20.0,
        ref_tau_s: float = 1.5,
    ) -> "Maneuver":
        """Hold ``start_m``, then step to ``target_m`` at ``at_s``."""
        return cls(
            setpoints=((0.0, start_m), (at_s, target_m)),
            duration_s=duration_s,
            ref_tau_s=ref_tau_s,
        )

    def setpoint_at(self, t: float) -> float:
        current = self.setpoints[0][1]
        for time_s, height in self.setpoints:
            if t < time_s:
                break
            current = height
        return current


class ParameterTuningTask(EpisodeTask):
    """Single-decision gain tuning over a scripted maneuver.

    Args:
        space: Tunable parameters and their current values
        maneuver: Altitude profile flown during RUN
        state_source: ``"observation"`` bins altitude error and vertical speed
            at the decision point and makes every update strictly terminal;
            ``"metrics"`` bins the previous episode's mean tracking errors and
            RMS oscillation, and bootstraps on the newly observed metric state
        discretizer: Overrides the default thresholds for the chosen source
    """

    name = "parameter_tuning"
    sequential = False

    def __init__(
        self,
        space: ParameterSpace,
        maneuver: Maneuver,
        *,
        state_source: str = "observation",
        discretizer: Optional[StateDiscretizer] = None,
    ) -> None:
        if state_source not in STATE_SOURCES:
            raise ConfigurationError(
                f"state_source must be one of {STATE_SOURCES}, got {state_source!r}",
                config_parameter="state_source",
                parameter_value=state_source,
            )
        self.space = space
        self.maneuver = maneuver
        self.state_source = state_source
        self.discretizer = discretizer or self._default_discretizer()
        self._metric_state: Optional[StateKey] = None
        self._home_altitude = 0.0
        self._reference = 0.0
        self._last_elapsed = 0.0
        self._commanded: Optional[float] = None
        self._home: Optional[Pose] = None

    def _default_discretizer(self) -> StateDiscretizer:
        if self.state_source == "observation":
            return StateDiscretizer(
                [(-5.0, -1.0, 1.0, 5.0), (-1.0, -0.2, 0.2, 1.0)],
                names=("alt_error", "vertical_speed"),
            )
        thresholds: List[Sequence[float]] = [(0.25, 0.5, 1.0, 2.0)]
        names = ["mean_alt_error"]
        if self.maneuver.cruise_airspeed is not None:
            thresholds.append((0.5, 1.0, 2.0))
            names.append("mean_airspeed_error")
        thresholds.append((0.05, 0.1, 0.2))
        names.append("rms_oscillation")
        return StateDiscretizer(thresholds, names=names)

    @property
    def actions(self) -> Tuple[Action, ...]:
        return self.space.actions

    def create_aggregator(self, weights: "RewardWeights") -> TrackingRewardAggregator:
        return TrackingRewardAggregator(weights)

    def begin_episode(self, env: EnvironmentAdapter, home: Pose) -> None:
        # A teleport reset does not restore gains; push the whole trajectory point.
        self._home = home
        for name, value in self.space.values.items():
            env.apply_action(ParameterCommand(name, value))

    def initial_state(self, observation: Observation, home: Pose) -> StateKey:
        if self.state_source == "metrics":
            return self._metric_state or self.discretizer.origin()
        first_target = home.position[2] + self.maneuver.setpoints[0][1]
        return self.discretizer.discretize(
            (observation.altitude - first_target, observation.vertical_speed)
        )

    def commit(self, env: EnvironmentAdapter, action: Action) -> None:
        change = self.space.apply(action)
        if change is not None:
            name, value = change
            env.apply_action(ParameterCommand(name, value))
            logger.debug("Set %s = %g", name, value)

    def start_run(self, env: EnvironmentAdapter, observation: Observation, home: Pose) -> None:
        self._home = home
        self._home_altitude = home.position[2]
        self._reference = observation.altitude
        self._last_elapsed = 0.0
        self._commanded = None
        self._command_setpoint(env, 0.0)

    def _command_setpoint(self, env: EnvironmentAdapter, elapsed_s: float) -> float:
        target = self._home_altitude + self.maneuver.setpoint_at(elapsed_s)
        if self._commanded != target and self._home is not None:
            north, east, _ = self._home.position
            env.apply_action(NavigationCommand((north, east, target)))
            self._commanded = target
        return target

    def measure(
        self, env: EnvironmentAdapter, observation: Observation, elapsed_s: float
    ) -> TickSample:
        target = self._command_setpoint(env, elapsed_s)
        dt = max(0.0, elapsed_s - self._last_elapsed)
        self._last_elapsed = elapsed_s
        # First-order reference filter, exact discretization.
        self._reference += (target - self._reference) * (
            1.0 - math.exp(-dt / self.maneuver.ref_tau_s)
        )
        errors = [abs(self._reference - observation.altitude)]
        if self.maneuver.cruise_airspeed is not None and observation.airspeed is not None:
            errors.append(abs(self.maneuver.cruise_airspeed - observation.airspeed))
        throttle = observation.throttle
        saturated = throttle is not None and (
            throttle >= THROTTLE_SATURATION_HIGH or throttle <= THROTTLE_SATURATION_LOW
        )
        return TickSample(
            tracking_errors=tuple(errors),
            control_signal=throttle,
            oscillation=abs(observation.pitch_rate),
            saturated=saturated,
            power_w=observation.power_w,
        )

    def run_complete(
        self, env: EnvironmentAdapter, observation: Observation, elapsed_s: float
    ) -> bool:
        return elapsed_s >= self.maneuver.duration_s

    def terminal_state(self, breakdown: RewardBreakdown) -> Optional[StateKey]:
        if self.state_source != "metrics":
            return None
        metrics = breakdown.metrics
        values = [metrics.get("mean_error_0", 0.0)]
        if self.maneuver.cruise_airspeed is not None:
            values.append(metrics.get("mean_error_1", 0.0))
        values.append(metrics.get("rms_oscillation", 0.0))
        self._metric_state = self.discretizer.discretize(values)
        return self._metric_state

    def snapshot(self) -> Dict[str, Any]:
        return self.space.values

    def describe(self) -> Dict[str, Any]:
        info = super().describe()
        info.update(
            {
                "state_source": self.state_source,
                "parameters": [spec.name for spec in self.space.specs],
                "duration_s": self.maneuver.duration_s,
            }
        )
        return info
