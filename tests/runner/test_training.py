import pytest

from episodic_tuner import (
    ConfigurationError,
    KinematicVehicle,
    StateError,
    WaypointTourTask,
    build_manager,
    train,
)
from episodic_tuner.telemetry import InMemoryTelemetrySink
from tests.doubles import BanditTask, FakeEnvironment, bandit_config

SMALL_TOUR = ((10.0, 0.0, 10.0), (0.0, 10.0, 10.0), (-10.0, 0.0, 10.0))


def test_train_returns_summary():
    sink = InMemoryTelemetrySink()
    summary = train(bandit_config(max_episodes=5), FakeEnvironment(), BanditTask([3.0, 1.0]), sink)
    assert summary.episodes_completed == 5
    assert summary is sink.summary
    assert len(sink.records) == 5


def test_train_rejects_bad_config_before_any_episode():
    env = FakeEnvironment()
    with pytest.raises(ConfigurationError):
        train({"alpha": 5.0}, env, BanditTask([1.0]))
    assert env.calls == []


def test_train_raises_when_budget_runs_out():
    with pytest.raises(StateError):
        train(bandit_config(), FakeEnvironment(), BanditTask([1.0]), max_ticks=10)


def test_build_manager_accepts_mapping():
    manager = build_manager(bandit_config(seed=9), FakeEnvironment(), BanditTask([1.0]))
    assert manager.agent.seed == 9


def test_tour_on_kinematic_vehicle():
    vehicle = KinematicVehicle()
    task = WaypointTourTask(SMALL_TOUR, metric="energy", arrival_threshold_m=0.5)
    sink = InMemoryTelemetrySink()
    summary = train(
        {"seed": 1, "max_episodes": 3, "run_timeout_s": 120.0},
        vehicle,
        task,
        sink,
        max_ticks=50_000,
    )
    assert summary.episodes_completed == 3
    assert vehicle.resets == 3
    for record in sink.records:
        assert not record.aborted
        assert sorted(record.chosen_action_or_params["path"]) == ["WP1", "WP2", "WP3"]
        assert record.total_reward < 0.0
    assert vehicle.position == (0.0, 0.0, 0.0)
