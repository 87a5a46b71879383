"""
Episode manager: the tick-driven state machine that runs a training loop.

One call to ``tick`` performs at most one state-machine step and returns the
delay in milliseconds the host should wait before the next call, or None
once the run has stopped. Nothing inside a tick blocks; waiting phases
(``AWAIT_READY`` and the climb in ``LAUNCH``) are repeated cheap ticks that
re-check a condition.

Phases cycle ``AWAIT_READY -> LAUNCH -> RUN -> EVALUATE -> RESET`` and end in
``STOPPED`` when the convergence monitor or the episode budget says so.

Per-episode failures (launch timeouts, safety aborts, rejected actions) are
absorbed and turned into a learning signal. ``ConfigurationError`` escapes
from the constructor and is otherwise the only error that leaves the
manager, with one exception: ``StateError`` escapes from ``tick`` once the
vehicle has failed to settle at the nominal pose after
``MAX_RESET_ATTEMPTS`` consecutive resets; that failure ends the run.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Sequence, Union

from typing_extensions import TypedDict

from ..config.training import TrainingConfig, validated
from ..interfaces.environment import EnvironmentAdapter
from ..interfaces.telemetry import TelemetrySink
from ..tasks.base import EpisodeTask
from ..utils.exceptions import (
    ConfigurationError,
    InvalidActionError,
    PreconditionTimeoutError,
    SafetyAbortError,
    StateError,
    log_exception_with_recovery,
)
from .agent import QLearningAgent
from .constants import MAX_RESET_ATTEMPTS
from .convergence import ConvergenceMonitor
from .enums import AbortReason, EpisodePhase
from .reset_controller import ResetController
from .safety import SafetyEnvelope
from .types import (
    Action,
    Episode,
    EpisodeRecord,
    NavigationCommand,
    Observation,
    Pose,
    RunSummary,
    Segment,
    StateKey,
)

logger = logging.getLogger(__name__)

__all__ = ["EpisodeManager", "ManagerStatistics"]


class ManagerStatistics(TypedDict):
    phase: str
    episodes_completed: int
    episodes_aborted: int
    epsilon: float
    best_reward: float
    best_episode_id: Optional[int]
    stable_count: int
    ticks: int
    episode_active: bool
    stop_reason: Optional[str]


class EpisodeManager:
    """Drive episodes of ``task`` against ``env`` and learn from them.

    Args:
        config: Training configuration (model or plain mapping)
        env: Environment adapter for the single simulated vehicle
        task: Tuning problem supplying actions, states and completion
        sink: Receives one record per episode and the final summary
        agent: Pre-built agent, e.g. with a seeded Q-table

    Raises:
        ConfigurationError: If the configuration, the action set or the
            environment binding is invalid
    """

    def __init__(
        self,
        config: Union[TrainingConfig, Mapping[str, Any], None],
        env: EnvironmentAdapter,
        task: EpisodeTask,
        sink: Optional[TelemetrySink] = None,
        *,
        agent: Optional[QLearningAgent] = None,
    ) -> None:
        self.config = validated(config)
        if not isinstance(env, EnvironmentAdapter):
            raise ConfigurationError(
                f"{type(env).__name__} does not implement EnvironmentAdapter",
                config_parameter="env",
                parameter_value=type(env).__name__,
            )
        if not isinstance(task, EpisodeTask):
            raise ConfigurationError(
                f"{type(task).__name__} is not an EpisodeTask",
                config_parameter="task",
                parameter_value=type(task).__name__,
            )
        self.env = env
        self.task = task
        self.sink = sink
        self.agent = agent or QLearningAgent(
            task.actions, self.config.policy_parameters(), seed=self.config.seed
        )
        if len(self.agent.actions) != len(task.actions):
            raise ConfigurationError(
                "Agent action set does not match the task action set",
                config_parameter="agent",
                parameter_value=len(self.agent.actions),
            )
        self.aggregator = task.create_aggregator(self.config.reward)
        self.monitor = ConvergenceMonitor(self.config.stable_threshold)
        self.reset_controller = ResetController(
            env,
            tolerance_m=self.config.reset_tolerance_m,
            tolerance_rad=self.config.reset_tolerance_rad,
        )
        self.safety = SafetyEnvelope(self.config.safety)

        self.enabled = self.config.enabled
        self._phase = EpisodePhase.AWAIT_READY
        self._episode: Optional[Episode] = None
        self._home: Optional[Pose] = None
        self._climb_commanded = False
        self._reset_attempts = 0
        self._stop_reason: Optional[str] = None
        self._summary: Optional[RunSummary] = None
        self.episodes_completed = 0
        self.episodes_aborted = 0
        self.ticks = 0
        self.history: List[EpisodeRecord] = []

        logger.info(
            "Episode manager ready: task=%s actions=%d alpha=%.3f gamma=%.3f "
            "epsilon=%.3f stable_threshold=%d seed=%s",
            task.name,
            len(task.actions),
            self.config.alpha,
            self.config.gamma,
            self.agent.epsilon,
            self.config.stable_threshold,
            self.agent.seed,
        )

    # ------------------------------------------------------------------
    # Run control
    # ------------------------------------------------------------------

    @property
    def phase(self) -> EpisodePhase:
        return self._phase

    @property
    def episode(self) -> Optional[Episode]:
        return self._episode

    @property
    def stopped(self) -> bool:
        return self._phase.is_terminal()

    @property
    def stop_reason(self) -> Optional[str]:
        return self._stop_reason

    @property
    def summary(self) -> Optional[RunSummary]:
        return self._summary

    @property
    def home(self) -> Optional[Pose]:
        return self._home

    def enable(self) -> None:
        if self.stopped:
            raise StateError(
                "Cannot resume a stopped run",
                current_state=self._phase.value,
                expected_state="any active phase",
            )
        self.enabled = True

    def disable(self) -> None:
        """Halt progression at the next tick boundary. State is kept as-is."""
        if self.enabled and self._phase.is_active():
            logger.info(
                "Disabled during episode %s in phase %s; it resumes there when re-enabled",
                self._episode.id if self._episode else "?",
                self._phase.value,
            )
        self.enabled = False

    def statistics(self) -> ManagerStatistics:
        return ManagerStatistics(
            phase=self._phase.value,
            episodes_completed=self.episodes_completed,
            episodes_aborted=self.episodes_aborted,
            epsilon=self.agent.epsilon,
            best_reward=self.monitor.best_reward,
            best_episode_id=self.monitor.best_episode_id,
            stable_count=self.monitor.stable_count,
            ticks=self.ticks,
            episode_active=self._phase.is_active(),
            stop_reason=self._stop_reason,
        )

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def tick(self) -> Optional[int]:
        """Advance the state machine by at most one step.

        Returns:
            Delay in milliseconds before the next tick, or None once STOPPED
        """
        if self.stopped:
            return None
        if not self.enabled:
            return self.config.idle_period_ms
        self.ticks += 1
        handler = {
            EpisodePhase.AWAIT_READY: self._tick_await_ready,
            EpisodePhase.LAUNCH: self._tick_launch,
            EpisodePhase.RUN: self._tick_run,
            EpisodePhase.EVALUATE: self._tick_evaluate,
            EpisodePhase.RESET: self._tick_reset,
        }[self._phase]
        return handler()

    def _transition(self, phase: EpisodePhase) -> None:
        logger.debug("Phase %s -> %s", self._phase.value, phase.value)
        self._phase = phase

    def _tick_await_ready(self) -> int:
        if not self.env.is_ready():
            return self.config.idle_period_ms

        observation = self.env.observe()
        if not self.reset_controller.captured:
            nominal = self.reset_controller.capture(observation)
            self._home = nominal
        home = self._require_home()

        self.task.begin_episode(self.env, home)
        state = self.task.initial_state(observation, home)
        action = self._choose_action(state)
        self._episode = Episode(
            id=self.episodes_completed + 1,
            start_state=state,
            action=action,
            segments=[Segment(state=state, action=action)],
        )
        self.aggregator.reset()
        self.safety.reset(home_altitude=home.position[2])
        self._climb_commanded = False
        logger.debug(
            "Episode %d: state %s, action %s", self._episode.id, state, action
        )
        self._transition(EpisodePhase.LAUNCH)
        return self.config.tick_period_ms

    def _tick_launch(self) -> int:
        episode = self._require_episode()
        episode.launch_ticks += 1
        try:
            self._check_launch_timeout(episode)
        except PreconditionTimeoutError as exc:
            log_exception_with_recovery(exc, logger, operation="launch")
            self._abort(episode, AbortReason.LAUNCH_TIMEOUT)
            return self.config.tick_period_ms

        if not self.env.is_armed() and not self.env.arm():
            return self.config.tick_period_ms

        launch = self.config.launch
        home = self._require_home()
        if not self._climb_commanded:
            north, east, up = home.position
            self.env.apply_action(NavigationCommand((north, east, up + launch.altitude_m)))
            self._climb_commanded = True

        observation = self.env.observe()
        if observation.altitude - home.position[2] >= launch.altitude_m - launch.tolerance_m:
            self.task.start_run(self.env, observation, home)
            self._transition(EpisodePhase.RUN)
        return self.config.tick_period_ms

    def _check_launch_timeout(self, episode: Episode) -> None:
        timeout = self.config.launch.timeout_ticks
        if episode.launch_ticks > timeout:
            raise PreconditionTimeoutError(
                f"Launch preconditions not met within {timeout} ticks",
                elapsed_ticks=episode.launch_ticks,
                timeout_ticks=timeout,
            )

    def _tick_run(self) -> int:
        episode = self._require_episode()
        dt = self.config.tick_period_s
        episode.run_ticks += 1
        elapsed = episode.run_ticks * dt
        observation = self.env.observe()

        sample = self.task.measure(self.env, observation, elapsed)
        self.aggregator.accumulate(sample, dt)
        try:
            self.safety.check(observation, sample, dt)
        except SafetyAbortError as exc:
            log_exception_with_recovery(exc, logger, operation=f"episode {episode.id} run")
            self._abort(episode, exc.reason)
            return self.config.tick_period_ms

        if self.task.run_complete(self.env, observation, elapsed):
            if self.task.sequential:
                self._complete_segment(episode, observation)
            else:
                self._transition(EpisodePhase.EVALUATE)
            return self.config.tick_period_ms

        run_timeout = self.config.run_timeout_s
        if run_timeout is not None and elapsed >= run_timeout:
            logger.warning(
                "Episode %d exceeded run timeout of %.1f s", episode.id, run_timeout
            )
            self._abort(episode, AbortReason.RUN_TIMEOUT)
        return self.config.tick_period_ms

    def _complete_segment(self, episode: Episode, observation: Observation) -> None:
        segment = episode.segments[-1]
        next_state = self.task.advance(segment.state, segment.action, observation)
        next_actions = self.task.action_set(next_state)
        if not self.agent.available(next_state, next_actions):
            self._transition(EpisodePhase.EVALUATE)
            return

        segment.reward = self.aggregator.close_segment()
        self.agent.update(
            segment.state, segment.action, segment.reward, next_state, next_actions
        )
        action = self._choose_action(next_state)
        episode.segments.append(Segment(state=next_state, action=action))
        logger.debug(
            "Episode %d: segment %d reward %.3f, next %s",
            episode.id,
            len(episode.segments) - 1,
            segment.reward,
            action,
        )

    def _tick_evaluate(self) -> int:
        episode = self._require_episode()
        breakdown = self.aggregator.finalize()
        segment = episode.segments[-1]
        reward = breakdown.final_segment if self.task.sequential else breakdown.total
        segment.reward = reward

        next_state = self.task.terminal_state(breakdown)
        next_actions = self.task.action_set(next_state) if next_state is not None else None
        self.agent.update(segment.state, segment.action, reward, next_state, next_actions)

        episode.total_reward = breakdown.total
        episode.accumulated_cost = -(breakdown.tracking + breakdown.smoothness)
        episode.chosen = self.task.snapshot()
        if not episode.chosen:
            episode.chosen = {"actions": [a.name for a in episode.actions]}

        epsilon_used = self.agent.epsilon
        improved = self.monitor.record(episode.id, episode.total_reward, episode.chosen)
        self.agent.decay_epsilon()
        self.episodes_completed += 1
        if episode.aborted:
            self.episodes_aborted += 1

        record = EpisodeRecord(
            episode_id=episode.id,
            total_reward=episode.total_reward,
            aborted=episode.aborted,
            abort_reason=episode.abort_reason,
            chosen_action_or_params=dict(episode.chosen),
            epsilon=epsilon_used,
        )
        self.history.append(record)
        logger.info(
            "Episode %d: reward=%.3f%s aborted=%s%s epsilon=%.4f best=%.3f (ep %s) "
            "stable=%d/%d",
            episode.id,
            episode.total_reward,
            " (new best)" if improved else "",
            episode.aborted,
            f" ({episode.abort_reason})" if episode.aborted else "",
            epsilon_used,
            self.monitor.best_reward,
            self.monitor.best_episode_id,
            self.monitor.stable_count,
            self.config.stable_threshold,
        )
        if breakdown.events:
            logger.debug("Episode %d events: %s", episode.id, ", ".join(breakdown.events))
        if self.sink is not None:
            self.sink.emit_episode(record)

        if self.monitor.should_stop():
            self._stop_reason = "converged"
        elif (
            self.config.max_episodes is not None
            and self.episodes_completed >= self.config.max_episodes
        ):
            self._stop_reason = "max_episodes"
        self._reset_attempts = 0
        self._transition(EpisodePhase.RESET)
        return self.config.tick_period_ms

    def _tick_reset(self) -> Optional[int]:
        self.reset_controller.reset()
        if not self.reset_controller.verify():
            self._reset_attempts += 1
            if self._reset_attempts >= MAX_RESET_ATTEMPTS:
                raise StateError(
                    f"Vehicle did not settle at the nominal pose after "
                    f"{self._reset_attempts} resets",
                    current_state=EpisodePhase.RESET.value,
                    expected_state=EpisodePhase.AWAIT_READY.value,
                )
            return self.config.tick_period_ms

        self.aggregator.reset()
        self.safety.reset()
        self._episode = None
        self._climb_commanded = False
        if self._stop_reason is not None:
            self._stop()
            return None
        self._transition(EpisodePhase.AWAIT_READY)
        return self.config.tick_period_ms

    def _stop(self) -> None:
        self._summary = RunSummary(
            best_episode_id=self.monitor.best_episode_id,
            best_reward=self.monitor.best_reward,
            best_action_or_params=self.monitor.best_payload,
            episodes_completed=self.episodes_completed,
            stop_reason=self._stop_reason or "",
        )
        self._transition(EpisodePhase.STOPPED)
        logger.info(
            "Run stopped (%s) after %d episodes: best reward %.3f in episode %s with %s",
            self._stop_reason,
            self.episodes_completed,
            self._summary.best_reward,
            self._summary.best_episode_id,
            self._summary.best_action_or_params,
        )
        if self.sink is not None:
            self.sink.emit_summary(self._summary)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_episode(self) -> Episode:
        if self._episode is None:
            raise StateError(
                f"No active episode in phase {self._phase.value}",
                current_state=self._phase.value,
                expected_state=EpisodePhase.AWAIT_READY.value,
            )
        return self._episode

    def _require_home(self) -> Pose:
        if self._home is None:
            raise StateError(
                "Nominal pose has not been captured",
                current_state=self._phase.value,
                expected_state=EpisodePhase.AWAIT_READY.value,
            )
        return self._home

    def _abort(self, episode: Episode, reason: AbortReason) -> None:
        episode.abort(reason)
        self.aggregator.record_violation(reason)
        kind = "safety abort" if reason.is_safety_abort() else "timeout"
        logger.warning("Episode %d aborted (%s): %s", episode.id, kind, reason.value)
        self._transition(EpisodePhase.EVALUATE)

    def _choose_action(self, state: StateKey) -> Action:
        """Select and apply an action, blocking any the task rejects.

        Every rejection blocks one (state, action) pair, so the loop ends
        after at most ``len(actions)`` attempts.
        """
        candidates: Sequence[Action] = self.task.action_set(state)
        while True:
            action = self.agent.select_action(state, candidates)
            if action is None:
                action = self.task.noop_action()
                if action is None:
                    raise StateError(
                        f"No valid action in state {state} and no no-op fallback",
                        current_state=self._phase.value,
                    )
                logger.warning("All actions blocked in state %s; using %s", state, action)
            try:
                self.task.commit(self.env, action)
            except InvalidActionError as exc:
                log_exception_with_recovery(exc, logger, operation="action selection")
                if action.is_noop:
                    raise
                self.agent.penalize_invalid(state, action)
                continue
            return action
