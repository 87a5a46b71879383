"""Logging bootstrap: loguru sinks with a stdlib bridge."""

from .loguru_bootstrap import LOG_FORMAT, InterceptHandler, get_logger, setup_logging

__all__ = ["LOG_FORMAT", "InterceptHandler", "get_logger", "setup_logging"]
