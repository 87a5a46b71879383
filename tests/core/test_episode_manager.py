import logging

import pytest

from episodic_tuner import EpisodeManager, TrainingConfig
from episodic_tuner.core.agent import QLearningAgent
from episodic_tuner.core.constants import INVALID_ACTION_VALUE, MAX_RESET_ATTEMPTS
from episodic_tuner.core.enums import EpisodePhase
from episodic_tuner.core.q_table import QTable
from episodic_tuner.core.types import NavigationCommand, StateKey
from episodic_tuner.tasks.parameter_tuning import (
    Maneuver,
    ParameterSpace,
    ParameterSpec,
    ParameterTuningTask,
)
from episodic_tuner.telemetry import InMemoryTelemetrySink
from episodic_tuner.utils.exceptions import ConfigurationError, StateError
from tests.doubles import BanditTask, FakeEnvironment, bandit_config, run_to_stop


def make_manager(task=None, env=None, sink=None, **overrides):
    return EpisodeManager(
        bandit_config(**overrides),
        env or FakeEnvironment(),
        task or BanditTask([10.0, 5.0, 1.0]),
        sink,
    )


class TestConstruction:
    @pytest.mark.parametrize(
        "overrides",
        [{"alpha": 0.0}, {"gamma": -0.1}, {"epsilon_init": 0.1, "epsilon_min": 0.5},
         {"stable_threshold": 0}, {"unknown_field": 1}],
    )
    def test_invalid_config_is_fatal(self, overrides):
        with pytest.raises(ConfigurationError):
            make_manager(**overrides)

    def test_empty_action_set_is_fatal(self):
        with pytest.raises(ConfigurationError):
            make_manager(task=BanditTask([]))

    def test_env_must_implement_adapter(self, bandit_task):
        with pytest.raises(ConfigurationError):
            EpisodeManager(bandit_config(), object(), bandit_task)

    def test_agent_must_match_action_set(self, bandit_task, policy_params):
        agent = QLearningAgent(BanditTask([1.0]).actions, policy_params)
        with pytest.raises(ConfigurationError):
            EpisodeManager(bandit_config(), FakeEnvironment(), bandit_task, agent=agent)

    def test_starts_in_await_ready(self):
        manager = make_manager()
        assert manager.phase is EpisodePhase.AWAIT_READY
        assert manager.episode is None
        assert manager.summary is None


class TestPhaseCycle:
    def test_one_episode_walks_every_phase(self):
        manager = make_manager()
        phases = []
        for _ in range(5):
            manager.tick()
            phases.append(manager.phase)
        assert phases == [
            EpisodePhase.LAUNCH,
            EpisodePhase.RUN,
            EpisodePhase.EVALUATE,
            EpisodePhase.RESET,
            EpisodePhase.AWAIT_READY,
        ]
        assert manager.episodes_completed == 1

    def test_waits_for_readiness_with_idle_period(self):
        env = FakeEnvironment(ready_after_polls=3)
        manager = make_manager(env=env, idle_period_ms=250)
        assert [manager.tick() for _ in range(3)] == [250, 250, 250]
        assert manager.phase is EpisodePhase.AWAIT_READY
        assert manager.tick() == 1000
        assert manager.phase is EpisodePhase.LAUNCH

    def test_launch_arms_and_climbs_to_altitude(self):
        env = FakeEnvironment(home=(1.0, 2.0, 3.0))
        manager = make_manager(env=env)
        manager.tick()
        manager.tick()
        assert env.armed
        assert env.commands == [NavigationCommand((1.0, 2.0, 13.0))]
        assert manager.phase is EpisodePhase.RUN

    def test_home_is_captured_once(self):
        env = FakeEnvironment(home=(0.0, 0.0, 5.0))
        manager = make_manager(env=env, max_episodes=2)
        run_to_stop(manager)
        assert manager.home.position == (0.0, 0.0, 5.0)
        assert len(env.resets) == 2
        assert all(pose.position == (0.0, 0.0, 5.0) for pose in env.resets)

    def test_stopped_tick_returns_none(self):
        manager = make_manager(max_episodes=1)
        run_to_stop(manager)
        assert manager.tick() is None
        assert manager.tick() is None


class TestEnableFlag:
    def test_disabled_manager_idles_without_progress(self):
        manager = make_manager(enabled=False, idle_period_ms=300)
        assert manager.tick() == 300
        assert manager.phase is EpisodePhase.AWAIT_READY
        assert manager.ticks == 0

    def test_disable_mid_episode_freezes_state(self, caplog):
        caplog.set_level(logging.INFO, logger="episodic_tuner.core.episode_manager")
        manager = make_manager()
        manager.tick()
        assert manager.statistics()["episode_active"]
        manager.disable()
        assert "Disabled during episode 1 in phase launch" in caplog.text
        for _ in range(5):
            manager.tick()
        assert manager.phase is EpisodePhase.LAUNCH
        manager.enable()
        manager.tick()
        assert manager.phase is EpisodePhase.RUN

    def test_enable_after_stop_is_a_state_error(self):
        manager = make_manager(max_episodes=1)
        run_to_stop(manager)
        with pytest.raises(StateError):
            manager.enable()


class TestLearning:
    def test_bandit_converges_to_cheapest_action(self):
        task = BanditTask([10.0, 5.0, 1.0])
        manager = make_manager(task=task, max_episodes=200)
        run_to_stop(manager)
        state = StateKey((0,))
        assert manager.agent.greedy_action(state).name == "a3"
        probs = manager.agent.action_probabilities(state)
        assert probs[2] == pytest.approx(1.0, abs=1e-6)
        assert manager.summary.best_action_or_params == {"action": "a3"}
        assert manager.summary.best_reward == pytest.approx(-1.0)

    def test_episode_reward_is_negated_cost(self):
        sink = InMemoryTelemetrySink()
        manager = make_manager(sink=sink, epsilon_init=0.0, max_episodes=3)
        run_to_stop(manager)
        assert sink.rewards == pytest.approx([-10.0, -5.0, -1.0])
        assert [r.chosen_action_or_params["action"] for r in sink.records] == ["a1", "a2", "a3"]

    def test_abort_lowers_value_estimate(self):
        env = FakeEnvironment()
        task = BanditTask([1.0], names=["only"])
        manager = make_manager(
            task=task, env=env, max_episodes=2, safety={"min_airspeed": 5.0}
        )
        state, action = StateKey((0,)), task.actions[0]
        while manager.episodes_completed < 1:
            manager.tick()
        first = manager.agent.q_table.get(state, action)
        assert first == pytest.approx(-0.5)

        env.airspeed = 0.0
        run_to_stop(manager)
        second = manager.agent.q_table.get(state, action)
        record = manager.history[-1]
        assert record.aborted
        assert record.abort_reason == "stall"
        assert record.total_reward == pytest.approx(-501.0)
        assert record.total_reward < manager.history[0].total_reward
        assert second < first
        assert manager.episodes_aborted == 1

    def test_safety_breach_ends_trial_on_first_tick(self, caplog):
        env = FakeEnvironment(airspeed=0.0)
        manager = make_manager(
            task=BanditTask([1.0], duration_s=5.0),
            env=env,
            max_episodes=1,
            safety={"min_airspeed": 5.0},
        )
        run_to_stop(manager)
        assert manager.history[0].total_reward == pytest.approx(-501.0)
        assert "aborted (safety abort): stall" in caplog.text


class TestLaunchTimeout:
    def test_arming_failure_aborts_with_penalty(self, caplog):
        env = FakeEnvironment(arm_ok=False)
        manager = make_manager(env=env, max_episodes=1, launch={"timeout_ticks": 3})
        ticks = run_to_stop(manager)
        record = manager.history[0]
        assert record.aborted
        assert record.abort_reason == "launch_timeout"
        assert "aborted (timeout): launch_timeout" in caplog.text
        assert record.total_reward == pytest.approx(-500.0)
        assert env.calls.count("arm") == 3
        assert not any(isinstance(c, NavigationCommand) for c in env.commands)
        # await + 4 launch + evaluate + reset
        assert ticks == 7


class TestRunTimeout:
    def test_overlong_run_is_aborted(self):
        manager = make_manager(
            task=BanditTask([1.0], duration_s=10.0), max_episodes=1, run_timeout_s=2.0
        )
        ticks = run_to_stop(manager)
        record = manager.history[0]
        assert record.aborted
        assert record.abort_reason == "run_timeout"
        # two seconds of unit error plus one event penalty
        assert record.total_reward == pytest.approx(-502.0)
        # await + launch + 2 run + evaluate + reset
        assert ticks == 6


class TestStopping:
    def test_max_episodes(self):
        sink = InMemoryTelemetrySink()
        manager = make_manager(sink=sink, max_episodes=4)
        run_to_stop(manager)
        assert manager.stop_reason == "max_episodes"
        assert manager.episodes_completed == 4
        assert len(sink.records) == 4
        assert sink.summary is manager.summary
        assert sink.summary.episodes_completed == 4

    def test_converged_after_stable_threshold(self):
        manager = make_manager(epsilon_init=0.0, stable_threshold=3)
        run_to_stop(manager)
        summary = manager.summary
        assert manager.stop_reason == "converged"
        assert summary.stop_reason == "converged"
        # a1, a2, a3 each improve; three more a3 episodes do not.
        assert manager.episodes_completed == 6
        assert summary.best_episode_id == 3
        assert summary.best_reward == pytest.approx(-1.0)
        assert summary.best_action_or_params == {"action": "a3"}

    def test_statistics(self):
        manager = make_manager(max_episodes=2)
        run_to_stop(manager)
        stats = manager.statistics()
        assert stats["phase"] == "stopped"
        assert stats["episodes_completed"] == 2
        assert stats["stop_reason"] == "max_episodes"
        assert stats["ticks"] == manager.ticks


class TestExploration:
    def test_epsilon_recorded_per_episode_never_increases(self):
        manager = make_manager(max_episodes=20)
        run_to_stop(manager)
        epsilons = [r.epsilon for r in manager.history]
        assert epsilons[0] == pytest.approx(0.3)
        assert all(b <= a for a, b in zip(epsilons, epsilons[1:]))
        assert manager.agent.epsilon == pytest.approx(0.3 * 0.9**20)

    def test_same_seed_same_run(self):
        first = make_manager(max_episodes=30, epsilon_decay=1.0, seed=11)
        second = make_manager(max_episodes=30, epsilon_decay=1.0, seed=11)
        run_to_stop(first)
        run_to_stop(second)
        assert [r.to_dict() for r in first.history] == [r.to_dict() for r in second.history]
        assert first.task.committed == second.task.committed
        assert first.agent.q_table.snapshot() == second.agent.q_table.snapshot()


class TestInvalidActions:
    def test_out_of_range_action_is_blocked_and_reselected(self):
        space = ParameterSpace([ParameterSpec("P", initial=1.0, lower=0.0, upper=1.0, step=0.5)])
        task = ParameterTuningTask(
            space, Maneuver.step(0.0, 1.0, duration_s=1.0), state_source="metrics"
        )
        state = StateKey((0, 0))
        table = QTable({(state, 1): 1.0})
        config = bandit_config(epsilon_init=0.0)
        agent = QLearningAgent(
            task.actions,
            TrainingConfig.model_validate(config).policy_parameters(),
            seed=0,
            q_table=table,
        )
        env = FakeEnvironment()
        manager = EpisodeManager(config, env, task, agent=agent)
        manager.tick()

        assert manager.episode.action.name == "NoChange"
        assert agent.q_table.get(state, task.actions[1]) == INVALID_ACTION_VALUE
        assert agent.q_table.is_blocked(state, task.actions[1])
        assert all(c.value != 1.5 for c in env.parameter_commands())
        assert space.value("P") == 1.0


class TestResetFailure:
    def test_missing_home_is_a_state_error(self):
        manager = make_manager()
        manager.tick()
        manager._home = None
        with pytest.raises(StateError):
            manager.tick()

    def test_vehicle_that_never_settles_raises(self):
        env = FakeEnvironment(reset_moves_vehicle=False)
        manager = make_manager(env=env)
        with pytest.raises(StateError):
            run_to_stop(manager, max_ticks=100)
        assert len(env.resets) == MAX_RESET_ATTEMPTS
        assert manager.phase is EpisodePhase.RESET
