import pytest

from episodic_tuner.core.enums import AbortReason, EpisodePhase


@pytest.mark.parametrize(
    "phase,active",
    [
        (EpisodePhase.AWAIT_READY, False),
        (EpisodePhase.LAUNCH, True),
        (EpisodePhase.RUN, True),
        (EpisodePhase.EVALUATE, True),
        (EpisodePhase.RESET, False),
        (EpisodePhase.STOPPED, False),
    ],
)
def test_active_phases(phase, active):
    assert phase.is_active() is active


def test_only_stopped_is_terminal():
    assert [p for p in EpisodePhase if p.is_terminal()] == [EpisodePhase.STOPPED]


def test_timeouts_are_not_safety_aborts():
    safety = {r for r in AbortReason if r.is_safety_abort()}
    assert AbortReason.LAUNCH_TIMEOUT not in safety
    assert AbortReason.RUN_TIMEOUT not in safety
    assert {AbortReason.STALL, AbortReason.OVERSPEED, AbortReason.SATURATION_STREAK} <= safety
