import json
import logging

from episodic_tuner.core.types import EpisodeRecord, RunSummary
from episodic_tuner.interfaces import TelemetrySink
from episodic_tuner.telemetry import InMemoryTelemetrySink, LoggingTelemetrySink, MultiSink

RECORD = EpisodeRecord(
    episode_id=1,
    total_reward=-3.5,
    aborted=True,
    abort_reason="stall",
    chosen_action_or_params={"ALT_KP": 1.2},
    epsilon=0.2,
)
SUMMARY = RunSummary(
    best_episode_id=1,
    best_reward=-3.5,
    best_action_or_params={"ALT_KP": 1.2},
    episodes_completed=1,
    stop_reason="max_episodes",
)


def test_sinks_satisfy_protocol():
    for sink in (InMemoryTelemetrySink(), LoggingTelemetrySink(), MultiSink([])):
        assert isinstance(sink, TelemetrySink)


def test_in_memory_sink():
    sink = InMemoryTelemetrySink()
    sink.emit_episode(RECORD)
    sink.emit_summary(SUMMARY)
    assert sink.records == [RECORD]
    assert sink.rewards == [-3.5]
    assert sink.summary is SUMMARY
    sink.clear()
    assert sink.records == [] and sink.summary is None


def test_logging_sink_writes_json(caplog):
    sink = LoggingTelemetrySink(logging.getLogger("telemetry-test"))
    with caplog.at_level(logging.INFO, logger="telemetry-test"):
        sink.emit_episode(RECORD)
        sink.emit_summary(SUMMARY)
    episode_msg, summary_msg = [r.getMessage() for r in caplog.records]
    assert json.loads(episode_msg.split(" ", 1)[1]) == RECORD.to_dict()
    assert json.loads(summary_msg.split(" ", 1)[1])["stop_reason"] == "max_episodes"


def test_multi_sink_fans_out_in_order():
    first, second = InMemoryTelemetrySink(), InMemoryTelemetrySink()
    sink = MultiSink([first, second])
    sink.emit_episode(RECORD)
    sink.emit_summary(SUMMARY)
    assert first.records == second.records == [RECORD]
    assert first.summary is second.summary is SUMMARY
