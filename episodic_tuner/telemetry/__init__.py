"""Telemetry sinks for episode records and run summaries."""

from .sinks import InMemoryTelemetrySink, LoggingTelemetrySink, MultiSink

__all__ = ["InMemoryTelemetrySink", "LoggingTelemetrySink", "MultiSink"]
