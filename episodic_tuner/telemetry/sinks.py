"""
Telemetry sinks satisfying the TelemetrySink protocol.

Durable storage is left to callers; these sinks keep records in memory or
write them to the log.
"""

from __future__ import annotations

import json
import logging
from typing import Iterable, List, Optional

from ..core.types import EpisodeRecord, RunSummary

__all__ = ["InMemoryTelemetrySink", "LoggingTelemetrySink", "MultiSink"]


class InMemoryTelemetrySink:
    """Keep every episode record and the run summary."""

    def __init__(self) -> None:
        self.records: List[EpisodeRecord] = []
        self.summary: Optional[RunSummary] = None

    def emit_episode(self, record: EpisodeRecord) -> None:
        self.records.append(record)

    def emit_summary(self, summary: RunSummary) -> None:
        self.summary = summary

    @property
    def rewards(self) -> List[float]:
        return [r.total_reward for r in self.records]

    def clear(self) -> None:
        self.records.clear()
        self.summary = None


class LoggingTelemetrySink:
    """Write records to a logger as compact JSON lines."""

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.INFO) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self.level = level

    def emit_episode(self, record: EpisodeRecord) -> None:
        self.logger.log(self.level, "episode %s", json.dumps(record.to_dict(), default=str))

    def emit_summary(self, summary: RunSummary) -> None:
        self.logger.log(self.level, "summary %s", json.dumps(summary.to_dict(), default=str))


class MultiSink:
    """Fan records out to several sinks in order."""

    def __init__(self, sinks: Iterable[object]) -> None:
        self.sinks = list(sinks)

    def emit_episode(self, record: EpisodeRecord) -> None:
        for sink in self.sinks:
            sink.emit_episode(record)

    def emit_summary(self, summary: RunSummary) -> None:
        for sink in self.sinks:
            sink.emit_summary(summary)
