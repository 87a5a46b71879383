"""
Episode task abstraction.

A task is the seam between the generic episode state machine and one
concrete tuning problem. It owns the closed action set, maps observations to
state keys, applies actions to the environment, and decides when the
measured trial is over.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

from ..core.types import Action, Observation, Pose, RewardBreakdown, StateKey, TickSample
from ..interfaces.environment import EnvironmentAdapter
from ..interfaces.reward import RewardAggregator

if TYPE_CHECKING:
    from ..config.training import RewardWeights

__all__ = ["EpisodeTask"]


class EpisodeTask(abc.ABC):
    """Abstract base for tuning problems driven by the episode manager.

    Lifecycle per episode, as seen by the manager:

    1. ``begin_episode`` once the environment is ready
    2. ``initial_state`` then ``commit`` of the selected action
    3. ``start_run`` after launch preconditions are met
    4. ``measure`` and ``run_complete`` every RUN tick
    5. sequential tasks only: ``advance`` and ``commit`` at each sub-goal
    6. ``terminal_state`` and ``snapshot`` in EVALUATE

    Attributes:
        name: Short identifier used in logs and telemetry
        sequential: True when one episode holds several decisions
    """

    name: str = "task"
    sequential: bool = False

    @property
    @abc.abstractmethod
    def actions(self) -> Tuple[Action, ...]:
        """The closed action set, indexed 0..n-1."""

    @abc.abstractmethod
    def create_aggregator(self, weights: "RewardWeights") -> RewardAggregator:
        """Build the reward aggregator used for every episode of this task."""

    @abc.abstractmethod
    def initial_state(self, observation: Observation, home: Pose) -> StateKey:
        """State key at the first decision point of an episode."""

    def action_set(self, state: StateKey) -> Tuple[Action, ...]:
        """Actions valid in ``state``. Defaults to the full set."""
        return self.actions

    @abc.abstractmethod
    def commit(self, env: EnvironmentAdapter, action: Action) -> None:
        """Apply ``action``.

        Raises:
            InvalidActionError: If the action would leave a valid range; the
                environment must be left untouched in that case
        """

    def noop_action(self) -> Optional[Action]:
        """Substitute used when every candidate action is blocked."""
        for action in self.actions:
            if action.is_noop:
                return action
        return None

    def begin_episode(self, env: EnvironmentAdapter, home: Pose) -> None:
        pass

    def start_run(self, env: EnvironmentAdapter, observation: Observation, home: Pose) -> None:
        pass

    @abc.abstractmethod
    def measure(
        self, env: EnvironmentAdapter, observation: Observation, elapsed_s: float
    ) -> TickSample:
        """Per-tick measurements for the reward aggregator."""

    @abc.abstractmethod
    def run_complete(
        self, env: EnvironmentAdapter, observation: Observation, elapsed_s: float
    ) -> bool:
        """True when the current sub-goal (or the whole trial) is finished."""

    def advance(self, state: StateKey, action: Action, observation: Observation) -> StateKey:
        """Successor state after a completed sub-goal."""
        return state

    def terminal_state(self, breakdown: RewardBreakdown) -> Optional[StateKey]:
        """State to bootstrap the terminal update from; None for a strict terminal."""
        return None

    def snapshot(self) -> Dict[str, Any]:
        """Chosen parameters or path of the current episode, for reporting."""
        return {}

    def describe(self) -> Dict[str, Any]:
        return {
            "task": self.name,
            "sequential": self.sequential,
            "n_actions": len(self.actions),
        }
