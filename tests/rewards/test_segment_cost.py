import pytest

from episodic_tuner.core.enums import AbortReason
from episodic_tuner.core.types import TickSample
from episodic_tuner.interfaces import RewardAggregator
from episodic_tuner.rewards import SegmentCostAggregator


def test_satisfies_protocol():
    assert isinstance(SegmentCostAggregator(), RewardAggregator)


@pytest.mark.parametrize("kwargs", [{"metric": "distance"}, {"event_penalty": -1.0}])
def test_invalid_arguments(kwargs):
    with pytest.raises(ValueError):
        SegmentCostAggregator(**kwargs)


def test_energy_integrates_power():
    agg = SegmentCostAggregator(metric="energy")
    agg.accumulate(TickSample(power_w=200.0), 0.5)
    agg.accumulate(TickSample(power_w=-50.0), 0.5)
    assert agg.close_segment() == pytest.approx(-100.0)


def test_time_counts_seconds():
    agg = SegmentCostAggregator(metric="time")
    for _ in range(4):
        agg.accumulate(TickSample(power_w=1e6), 0.25)
    assert agg.close_segment() == pytest.approx(-1.0)


def test_segments_and_final_breakdown():
    agg = SegmentCostAggregator(metric="time", event_penalty=10.0)
    agg.accumulate(TickSample(), 2.0)
    agg.close_segment()
    agg.accumulate(TickSample(), 3.0)
    agg.close_segment()
    agg.accumulate(TickSample(), 1.0)
    assert agg.segment_costs == [2.0, 3.0]
    assert agg.total_cost == pytest.approx(6.0)

    breakdown = agg.finalize()
    assert breakdown.total == pytest.approx(-6.0)
    assert breakdown.final_segment == pytest.approx(-1.0)
    assert breakdown.metrics["segments"] == 3.0


def test_violation_penalizes_total_and_final_segment():
    agg = SegmentCostAggregator(metric="time", event_penalty=10.0)
    agg.accumulate(TickSample(), 1.0)
    agg.record_violation(AbortReason.RUN_TIMEOUT)
    agg.record_violation(AbortReason.RUN_TIMEOUT)
    breakdown = agg.finalize()
    assert breakdown.total == pytest.approx(-11.0)
    assert breakdown.final_segment == pytest.approx(-11.0)
    assert breakdown.events == ("run_timeout",)


def test_reset():
    agg = SegmentCostAggregator(metric="time")
    agg.accumulate(TickSample(), 1.0)
    agg.close_segment()
    agg.reset()
    assert agg.segment_costs == []
    assert agg.total_cost == 0.0
    assert agg.get_metadata()["metric"] == "time"
