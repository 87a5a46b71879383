"""
Waypoint tour: learn the visiting order that minimizes energy or flight time.

The vehicle starts at home, then repeatedly picks the next unvisited
waypoint. Each leg is a segment whose reward is its negated cost. With
``speed_options`` every decision also picks the ``WPNAV_SPEED`` flown on
that leg.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..core.constants import DEFAULT_ARRIVAL_THRESHOLD_M, DEFAULT_TOUR_OFFSETS
from ..core.types import (
    Action,
    NavigationCommand,
    ParameterCommand,
    Observation,
    Pose,
    StateKey,
    TickSample,
    Vector3,
    as_vector3,
)
from ..interfaces.environment import EnvironmentAdapter
from ..rewards.segment_cost import COST_METRICS, SegmentCostAggregator
from ..utils.exceptions import ConfigurationError, InvalidActionError
from .base import EpisodeTask

if TYPE_CHECKING:
    from ..config.training import RewardWeights

logger = logging.getLogger(__name__)

__all__ = ["WaypointTourTask", "HOME_BIN", "SPEED_PARAMETER"]

# bins[0] of a tour state: 0 at home, i + 1 at waypoint i.
HOME_BIN = 0

SPEED_PARAMETER = "WPNAV_SPEED"


class WaypointTourTask(EpisodeTask):
    """Sequential tour over a fixed set of waypoints.

    State is ``StateKey(bins=(position,), visited=mask)`` where ``position``
    is ``HOME_BIN`` or ``waypoint + 1``. The action set in a state is the
    unvisited waypoints, so an episode makes exactly ``len(waypoints)``
    decisions unless it aborts.

    With ``speed_options`` the action set is every (speed, waypoint) pair,
    laid out speed-major: action ``s * len(waypoints) + w`` flies to
    waypoint ``w`` at ``speed_options[s]``.

    Args:
        offsets: Waypoints as (north, east, up) offsets from home in metres
        metric: ``"energy"`` (joules) or ``"time"`` (seconds)
        arrival_threshold_m: Distance at which a waypoint counts as reached
        speed_options: ``WPNAV_SPEED`` values (m/s) to choose from per leg
    """

    name = "waypoint_tour"
    sequential = True

    def __init__(
        self,
        offsets: Sequence[Sequence[float]] = DEFAULT_TOUR_OFFSETS,
        *,
        metric: str = "energy",
        arrival_threshold_m: float = DEFAULT_ARRIVAL_THRESHOLD_M,
        speed_options: Optional[Sequence[float]] = None,
    ) -> None:
        if not offsets:
            raise ConfigurationError(
                "Tour needs at least one waypoint",
                config_parameter="offsets",
                parameter_value=[],
            )
        if metric not in COST_METRICS:
            raise ConfigurationError(
                f"metric must be one of {COST_METRICS}, got {metric!r}",
                config_parameter="metric",
                parameter_value=metric,
            )
        if arrival_threshold_m <= 0.0:
            raise ConfigurationError(
                f"arrival_threshold_m must be positive, got {arrival_threshold_m}",
                config_parameter="arrival_threshold_m",
                parameter_value=arrival_threshold_m,
            )
        if speed_options is not None and (
            not speed_options or any(not s > 0.0 for s in speed_options)
        ):
            raise ConfigurationError(
                "speed_options must be a non-empty list of positive speeds",
                config_parameter="speed_options",
                parameter_value=list(speed_options),
            )
        self.offsets: Tuple[Vector3, ...] = tuple(as_vector3(o) for o in offsets)
        self.metric = metric
        self.arrival_threshold_m = float(arrival_threshold_m)
        self.speed_options: Optional[Tuple[float, ...]] = (
            tuple(float(s) for s in speed_options) if speed_options is not None else None
        )
        self._actions = self._build_actions()
        self._home: Optional[Pose] = None
        self._target: Optional[Vector3] = None
        self._running = False
        self._path: List[int] = []
        self._speeds: List[float] = []

    def _build_actions(self) -> Tuple[Action, ...]:
        n = len(self.offsets)
        if self.speed_options is None:
            return tuple(Action(index=i, name=f"WP{i + 1}", choice=i) for i in range(n))
        return tuple(
            Action(
                index=s * n + w,
                name=f"WP{w + 1}@{speed:g}",
                parameter=SPEED_PARAMETER,
                choice=w,
                value=speed,
            )
            for s, speed in enumerate(self.speed_options)
            for w in range(n)
        )

    @property
    def actions(self) -> Tuple[Action, ...]:
        return self._actions

    @property
    def path(self) -> List[int]:
        return list(self._path)

    @property
    def speeds(self) -> List[float]:
        return list(self._speeds)

    @property
    def target(self) -> Optional[Vector3]:
        return self._target

    def create_aggregator(self, weights: "RewardWeights") -> SegmentCostAggregator:
        return SegmentCostAggregator(metric=self.metric, event_penalty=weights.event_penalty)

    def begin_episode(self, env: EnvironmentAdapter, home: Pose) -> None:
        self._home = home
        self._target = None
        self._running = False
        self._path = []
        self._speeds = []

    def initial_state(self, observation: Observation, home: Pose) -> StateKey:
        return StateKey(bins=(HOME_BIN,), visited=0)

    def action_set(self, state: StateKey) -> Tuple[Action, ...]:
        return tuple(a for a in self._actions if not state.is_visited(a.choice))

    def waypoint(self, choice: int) -> Vector3:
        """Absolute position of waypoint ``choice``."""
        if self._home is None:
            raise InvalidActionError(
                "Home position not set", action_name=f"WP{choice + 1}"
            )
        return as_vector3(np.add(self._home.position, self.offsets[choice]))

    def commit(self, env: EnvironmentAdapter, action: Action) -> None:
        choice = action.choice
        if choice is None or not 0 <= choice < len(self.offsets):
            raise InvalidActionError(
                f"{action.name} is not a waypoint of this tour", action_name=action.name
            )
        if choice in self._path:
            raise InvalidActionError(
                f"{action.name} was already visited", action_name=action.name
            )
        self._target = self.waypoint(choice)
        if action.value is not None:
            # speed first so the leg is flown at the chosen WPNAV_SPEED
            env.apply_action(
                ParameterCommand(action.parameter or SPEED_PARAMETER, action.value)
            )
            self._speeds.append(action.value)
        self._path.append(choice)
        if self._running:
            env.apply_action(NavigationCommand(self._target))
        logger.debug("Next waypoint %s at %s", action.name, self._target)

    def start_run(self, env: EnvironmentAdapter, observation: Observation, home: Pose) -> None:
        self._running = True
        if self._target is not None:
            env.apply_action(NavigationCommand(self._target))

    def measure(
        self, env: EnvironmentAdapter, observation: Observation, elapsed_s: float
    ) -> TickSample:
        return TickSample(power_w=observation.power_w)

    def run_complete(
        self, env: EnvironmentAdapter, observation: Observation, elapsed_s: float
    ) -> bool:
        if self._target is None:
            return False
        return env.distance_to(self._target) <= self.arrival_threshold_m

    def advance(self, state: StateKey, action: Action, observation: Observation) -> StateKey:
        return state.with_visit(action.choice, bins=(action.choice + 1,))

    def snapshot(self) -> Dict[str, Any]:
        snap: Dict[str, Any] = {
            "path": [f"WP{i + 1}" for i in self._path],
            "metric": self.metric,
        }
        if self.speed_options is not None:
            snap["speeds"] = list(self._speeds)
        return snap

    def describe(self) -> Dict[str, Any]:
        info = super().describe()
        info.update({"metric": self.metric, "waypoints": len(self.offsets)})
        if self.speed_options is not None:
            info["speed_options"] = list(self.speed_options)
        return info
