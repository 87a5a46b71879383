"""
Telemetry Sink Protocol Definition.

The engine emits one record per completed episode and one summary when the
run stops. Durable storage is the sink's business.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..core.types import EpisodeRecord, RunSummary


@runtime_checkable
class TelemetrySink(Protocol):
    def emit_episode(self, record: "EpisodeRecord") -> None:
        pass

    def emit_summary(self, summary: "RunSummary") -> None:
        pass
