"""
Tabular Q-learning agent with epsilon-greedy exploration.

The agent owns the Q-table and the exploration rate. It never touches the
controlled system: the episode manager applies whatever action the agent
selects, and reports back rewards through ``update``.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

import gymnasium as gym
import numpy as np

from ..utils.exceptions import ConfigurationError
from ..utils.seeding import create_seeded_rng
from .q_table import QTable
from .types import Action, PolicyParameters, StateKey

logger = logging.getLogger(__name__)

__all__ = ["QLearningAgent"]


class QLearningAgent:
    """Epsilon-greedy tabular Q-learning over a closed action set.

    Args:
        actions: The full action set, indexed 0..n-1 in order
        params: Learning hyperparameters; validated on construction
        seed: Seed for the exploration RNG
        q_table: Optional pre-seeded table from a prior run

    Raises:
        ConfigurationError: If the action set is empty, the indices are not
            0..n-1 in order, or a hyperparameter is out of range
    """

    def __init__(
        self,
        actions: Sequence[Action],
        params: PolicyParameters,
        *,
        seed: Optional[int] = None,
        q_table: Optional[QTable] = None,
    ) -> None:
        actions = tuple(actions)
        if not actions:
            raise ConfigurationError(
                "Action set must not be empty",
                config_parameter="actions",
                parameter_value=[],
            )
        if [a.index for a in actions] != list(range(len(actions))):
            raise ConfigurationError(
                "Action indices must be 0..n-1 in order",
                config_parameter="actions",
                parameter_value=[a.index for a in actions],
            )
        params.validate()
        self._actions: Tuple[Action, ...] = actions
        self.params = params
        self.q_table = q_table if q_table is not None else QTable()
        self._rng, self.seed = create_seeded_rng(seed)
        self._action_space = gym.spaces.Discrete(len(actions), seed=self.seed)

    @property
    def actions(self) -> Tuple[Action, ...]:
        return self._actions

    @property
    def action_space(self) -> gym.spaces.Discrete:
        return self._action_space

    @property
    def epsilon(self) -> float:
        return self.params.epsilon

    def available(
        self, state: StateKey, candidates: Optional[Sequence[Action]] = None
    ) -> Tuple[Action, ...]:
        """Candidates that are not blocked for ``state``."""
        pool = self._actions if candidates is None else tuple(candidates)
        for action in pool:
            if not self._action_space.contains(action.index):
                raise ValueError(f"Action {action} is not part of the action set")
        return tuple(a for a in pool if not self.q_table.is_blocked(state, a))

    def select_action(
        self,
        state: StateKey,
        valid_actions: Optional[Sequence[Action]] = None,
        *,
        explore: bool = True,
    ) -> Optional[Action]:
        """Pick an action with the epsilon-greedy rule.

        With probability epsilon a uniformly random valid action is returned,
        otherwise the greedy action (ties resolved by action-set order).

        Returns:
            The chosen action, or None when no valid action remains
        """
        candidates = self.available(state, valid_actions)
        if not candidates:
            return None
        # Draw the exploration coin unconditionally so the RNG stream does not
        # depend on the Q-table contents.
        coin = self._rng.random()
        if explore and coin < self.params.epsilon:
            return candidates[int(self._rng.integers(len(candidates)))]
        return self.q_table.argmax(state, candidates)

    def greedy_action(
        self, state: StateKey, valid_actions: Optional[Sequence[Action]] = None
    ) -> Optional[Action]:
        candidates = self.available(state, valid_actions)
        if not candidates:
            return None
        return self.q_table.argmax(state, candidates)

    def action_probabilities(
        self, state: StateKey, valid_actions: Optional[Sequence[Action]] = None
    ) -> np.ndarray:
        """Selection distribution over the full action set for ``state``."""
        probs = np.zeros(len(self._actions), dtype=float)
        candidates = self.available(state, valid_actions)
        if not candidates:
            return probs
        share = self.params.epsilon / len(candidates)
        for action in candidates:
            probs[action.index] += share
        greedy = self.q_table.argmax(state, candidates)
        probs[greedy.index] += 1.0 - self.params.epsilon
        return probs

    def update(
        self,
        state: StateKey,
        action: Action,
        reward: float,
        next_state: Optional[StateKey] = None,
        next_actions: Optional[Sequence[Action]] = None,
    ) -> float:
        """Apply one Q-learning backup and return the new value.

        ``Q(s,a) += alpha * (r + gamma * max_a' Q(s',a') - Q(s,a))``. When
        ``next_state`` is None, or no action is valid there, the episode is
        terminal and the bootstrap term is dropped.
        """
        old = self.q_table.get(state, action)
        future = 0.0
        if next_state is not None:
            successors = self.available(next_state, next_actions)
            if successors:
                future = self.q_table.max_value(next_state, successors)
        new = old + self.params.alpha * (reward + self.params.gamma * future - old)
        self.q_table.set(state, action, new)
        logger.debug(
            "Q[%s, %s]: %.4f -> %.4f (r=%.4f, future=%.4f)",
            state,
            action,
            old,
            new,
            reward,
            future,
        )
        return new

    def penalize_invalid(self, state: StateKey, action: Action) -> None:
        """Block ``action`` for ``state`` so it is never selected again."""
        self.q_table.block(state, action)
        logger.warning("Blocked invalid action %s for state %s", action, state)

    def decay_epsilon(self) -> float:
        return self.params.decay()
