import pytest

from episodic_tuner import EpisodeManager
from episodic_tuner.runner import TickScheduler
from tests.doubles import BanditTask, FakeEnvironment, bandit_config


def make_manager(duration_s=1.0, **overrides):
    return EpisodeManager(
        bandit_config(**overrides),
        FakeEnvironment(),
        BanditTask([2.0, 1.0], duration_s=duration_s),
    )


def test_runs_until_stopped():
    manager = make_manager(max_episodes=3)
    result = TickScheduler(manager).run()
    assert result.stopped
    assert result.summary is manager.summary
    assert result.summary.episodes_completed == 3
    # five ticks per episode; the final RESET tick returns no delay
    assert result.ticks == 15
    assert result.simulated_s == pytest.approx(14.0)


def test_physics_step_receives_each_delay():
    steps = []
    # RUN lasts exactly one 200 ms tick
    manager = make_manager(duration_s=0.2, max_episodes=1, tick_period_ms=200)
    TickScheduler(manager, physics_step=steps.append).run()
    assert steps == [0.2, 0.2, 0.2, 0.2]


def test_tick_budget(caplog):
    manager = make_manager()
    result = TickScheduler(manager, max_ticks=7).run()
    assert result.ticks == 7
    assert not result.stopped
    assert result.summary is None
    assert "Tick budget" in caplog.text


def test_budget_must_be_positive():
    with pytest.raises(ValueError):
        TickScheduler(make_manager(), max_ticks=0)


def test_cancel_from_physics_step():
    manager = make_manager()
    scheduler = TickScheduler(manager)

    def step(dt):
        if scheduler.ticks >= 3:
            scheduler.cancel()

    scheduler.physics_step = step
    result = scheduler.run()
    assert result.ticks == 3
    assert not result.stopped


def test_realtime_sleeps(monkeypatch):
    slept = []
    monkeypatch.setattr("episodic_tuner.runner.scheduler.time.sleep", slept.append)
    manager = make_manager(duration_s=0.01, max_episodes=1, tick_period_ms=10)
    TickScheduler(manager, realtime=True).run()
    assert slept == [0.01] * 4


def test_longer_run_phase_adds_delays():
    steps = []
    manager = make_manager(max_episodes=1, tick_period_ms=200)
    TickScheduler(manager, physics_step=steps.append).run()
    # a one-second RUN at 200 ms is five ticks instead of one
    assert steps == [0.2] * 8
