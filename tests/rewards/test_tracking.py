import math

import numpy as np
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from episodic_tuner.config import RewardWeights
from episodic_tuner.core.enums import AbortReason
from episodic_tuner.core.types import TickSample
from episodic_tuner.interfaces import RewardAggregator
from episodic_tuner.rewards import TrackingRewardAggregator


def plain_weights(**overrides):
    values = dict(tracking=(1.0,), control_variance=0.0, oscillation_rms=0.0, event_penalty=100.0)
    values.update(overrides)
    return RewardWeights(**values)


def test_satisfies_protocol():
    assert isinstance(TrackingRewardAggregator(RewardWeights()), RewardAggregator)


def test_empty_episode_is_zero():
    breakdown = TrackingRewardAggregator(RewardWeights()).finalize()
    assert breakdown.total == 0.0
    assert breakdown.events == ()
    assert breakdown.metrics["duration_s"] == 0.0


def test_integral_absolute_error():
    agg = TrackingRewardAggregator(plain_weights(tracking=(2.0, 0.5)))
    agg.accumulate(TickSample(tracking_errors=(1.0, -4.0)), 0.5)
    agg.accumulate(TickSample(tracking_errors=(-3.0, 2.0)), 0.5)
    breakdown = agg.finalize()
    # IAE = (2.0, 3.0); weighted 2*2 + 0.5*3
    assert breakdown.tracking == pytest.approx(-5.5)
    assert breakdown.total == pytest.approx(-5.5)
    assert breakdown.metrics["mean_error_0"] == pytest.approx(2.0)
    assert breakdown.metrics["mean_error_1"] == pytest.approx(3.0)


def test_channels_beyond_weights_weigh_one():
    agg = TrackingRewardAggregator(plain_weights(tracking=(0.5,)))
    agg.accumulate(TickSample(tracking_errors=(2.0, 2.0)), 1.0)
    assert agg.finalize().total == pytest.approx(-3.0)


def test_control_variance_matches_numpy():
    signals = [0.2, 0.5, 0.45, 0.9, 0.1]
    agg = TrackingRewardAggregator(plain_weights(control_variance=2.0))
    for value in signals:
        agg.accumulate(TickSample(control_signal=value), 0.1)
    expected = np.var(signals, ddof=1)
    assert agg.control_variance == pytest.approx(expected)
    assert agg.finalize().smoothness == pytest.approx(-2.0 * expected)


def test_rms_oscillation():
    agg = TrackingRewardAggregator(plain_weights(oscillation_rms=1.0))
    for value in (3.0, -4.0):
        agg.accumulate(TickSample(oscillation=value), 0.1)
    assert agg.rms_oscillation == pytest.approx(math.sqrt(12.5))


def test_violation_charged_once_per_category():
    agg = TrackingRewardAggregator(plain_weights())
    for _ in range(5):
        agg.record_violation(AbortReason.STALL)
    agg.record_violation(AbortReason.GROUND_PROXIMITY)
    breakdown = agg.finalize()
    assert breakdown.event_penalty == pytest.approx(-200.0)
    assert breakdown.events == ("ground_proximity", "stall")


def test_deviation_limit_adds_category():
    agg = TrackingRewardAggregator(plain_weights(deviation_limits=(1.0,)))
    agg.accumulate(TickSample(tracking_errors=(1.5,)), 0.1)
    agg.accumulate(TickSample(tracking_errors=(1.7,)), 0.1)
    agg.record_violation(AbortReason.EXCESSIVE_DEVIATION)
    breakdown = agg.finalize()
    assert breakdown.events == ("excessive_deviation",)
    assert breakdown.event_penalty == pytest.approx(-100.0)


def test_saturation_fraction_limit():
    agg = TrackingRewardAggregator(plain_weights(saturation_fraction_limit=0.5))
    for saturated in (True, True, False):
        agg.accumulate(TickSample(saturated=saturated), 0.1)
    assert agg.saturation_fraction == pytest.approx(2 / 3)
    assert agg.finalize().events == ("saturation_streak",)


def test_reset_clears_everything():
    agg = TrackingRewardAggregator(plain_weights())
    agg.accumulate(TickSample(tracking_errors=(5.0,), control_signal=0.5), 1.0)
    agg.record_violation(AbortReason.STALL)
    agg.reset()
    assert agg.finalize().total == 0.0


def test_negative_dt_rejected():
    with pytest.raises(ValueError):
        TrackingRewardAggregator(plain_weights()).accumulate(TickSample(), -0.1)


def test_close_segment_matches_total():
    agg = TrackingRewardAggregator(plain_weights())
    agg.accumulate(TickSample(tracking_errors=(2.0,)), 0.5)
    assert agg.close_segment() == agg.finalize().total == agg.finalize().final_segment


def test_metadata():
    meta = TrackingRewardAggregator(plain_weights(deviation_limits=(2.0,))).get_metadata()
    assert meta["type"] == "tracking_reward"
    assert meta["deviation_limits"] == [2.0]


@given(
    samples=st.lists(
        st.tuples(
            st.floats(min_value=-100, max_value=100),
            st.floats(min_value=0.0, max_value=1.0),
            st.floats(min_value=-10, max_value=10),
            st.booleans(),
        ),
        max_size=40,
    ),
    dt=st.floats(min_value=0.0, max_value=1.0),
)
@settings(max_examples=50, deadline=None)
def test_reward_is_finite_and_non_positive(samples, dt):
    agg = TrackingRewardAggregator(RewardWeights())
    for error, control, osc, saturated in samples:
        agg.accumulate(
            TickSample(
                tracking_errors=(error,),
                control_signal=control,
                oscillation=osc,
                saturated=saturated,
            ),
            dt,
        )
    breakdown = agg.finalize()
    assert math.isfinite(breakdown.total)
    assert breakdown.total <= 0.0
    assert breakdown.event_penalty in (0.0, -500.0, -1000.0)
