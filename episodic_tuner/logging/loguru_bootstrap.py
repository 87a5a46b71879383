"""
Loguru sinks for training runs, with engine modules logging through stdlib.

Every module in the package calls ``logging.getLogger(__name__)``;
``setup_logging`` installs loguru sinks and routes those stdlib records into
loguru, tagging each one with the originating logger name as ``component``.
Importing this module configures nothing.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from loguru import logger as _logger

from ..utils.exceptions import ConfigurationError

__all__ = ["InterceptHandler", "setup_logging", "get_logger", "LOG_FORMAT"]

LOG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> | {message}"
)

ROOT_COMPONENT = "episodic_tuner"
# loguru level name -> stdlib numeric level
LEVELS = {
    "TRACE": 5,
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "SUCCESS": 25,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Third-party loggers that flood DEBUG output during plotting.
QUIET_LOGGERS = ("matplotlib", "PIL")


class InterceptHandler(logging.Handler):
    """Forward stdlib records to loguru under their logger name."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: Union[str, int] = _logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        _logger.bind(component=record.name).opt(
            depth=depth, exception=record.exc_info
        ).log(level, record.getMessage())


def _normalise_level(level: str) -> str:
    lvl = str(level).upper()
    if lvl not in LEVELS:
        raise ConfigurationError(
            f"Unknown log level {level!r}; expected one of {', '.join(LEVELS)}",
            config_parameter="log_level",
            parameter_value=level,
        )
    return lvl


def _sink_options(level: str, serialize: bool) -> Dict[str, Any]:
    return {
        "level": level,
        "format": LOG_FORMAT,
        "backtrace": False,
        "diagnose": False,
        "serialize": serialize,
    }


def setup_logging(
    *,
    level: str = "INFO",
    console: bool = True,
    file_path: Optional[Union[str, Path]] = None,
    rotation: Optional[Union[str, int]] = None,
    retention: Optional[Union[str, int]] = None,
    serialize: bool = False,
    context: Optional[Mapping[str, Any]] = None,
) -> None:
    """Replace all loguru sinks with the ones a training run needs.

    Args:
        level: Minimum level for every sink and for the stdlib root logger
        console: Add a stderr sink
        file_path: Add a file sink at this path (parent directories created)
        rotation: Loguru rotation policy for the file sink
        retention: Loguru retention policy for the file sink
        serialize: Write JSON records instead of formatted text
        context: Extra fields bound to every record, e.g. task and seed

    Raises:
        ConfigurationError: If ``level`` is not a loguru level name
    """
    lvl = _normalise_level(level)
    _logger.remove()
    _logger.configure(extra={"component": ROOT_COMPONENT, **dict(context or {})})
    if console:
        _logger.add(sys.stderr, **_sink_options(lvl, serialize))
    if file_path:
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        _logger.add(
            str(path),
            rotation=rotation,
            retention=retention,
            **_sink_options(lvl, serialize),
        )
    _bridge_stdlib(level=lvl)


def _bridge_stdlib(level: str = "INFO") -> None:
    """Send every stdlib logger through a single root ``InterceptHandler``."""
    logging.root.handlers = [InterceptHandler()]
    logging.root.setLevel(LEVELS[level])
    for name in list(logging.Logger.manager.loggerDict):
        existing = logging.getLogger(name)
        existing.handlers = []
        existing.propagate = True
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger():
    """Return the shared loguru logger."""
    return _logger
