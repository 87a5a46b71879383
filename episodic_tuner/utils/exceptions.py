"""
Exception hierarchy for episodic_tuner.

The taxonomy mirrors how failures are handled by the episode manager:

- ``ConfigurationError`` is fatal and is the only error that escapes the
  manager to the caller.
- ``PreconditionTimeoutError`` and ``SafetyAbortError`` end an episode early;
  the manager absorbs them and converts them into a penalized learning signal.
- ``InvalidActionError`` rejects an action before it reaches the controlled
  system; the manager penalizes the action and re-selects.
- ``StateError`` flags illegal use of a component (for example resuming a
  stopped manager) and a vehicle that never settles after a reset.

An unready environment is not an error at all: it is re-polled.
"""

from __future__ import annotations

import enum
import logging
import time
import uuid
from typing import Any, Dict, Optional, Union

__all__ = [
    "ErrorSeverity",
    "TunerError",
    "ConfigurationError",
    "PreconditionTimeoutError",
    "SafetyAbortError",
    "InvalidActionError",
    "StateError",
    "log_exception_with_recovery",
]


class ErrorSeverity(enum.IntEnum):
    """Severity levels used to pick a log level and decide escalation."""

    LOW = 1  # absorbed, informational
    MEDIUM = 2  # recoverable per-episode failure
    HIGH = 3  # component misuse
    CRITICAL = 4  # fatal, run cannot start

    def get_description(self) -> str:
        descriptions = {
            ErrorSeverity.LOW: "Minor issue absorbed by the manager",
            ErrorSeverity.MEDIUM: "Recoverable per-episode failure",
            ErrorSeverity.HIGH: "Component misuse requiring attention",
            ErrorSeverity.CRITICAL: "Fatal condition, the run cannot continue",
        }
        return descriptions.get(self, "Unknown severity level")

    def should_escalate(self) -> bool:
        return self in (ErrorSeverity.HIGH, ErrorSeverity.CRITICAL)

    def to_logging_level(self) -> int:
        return {
            ErrorSeverity.LOW: logging.INFO,
            ErrorSeverity.MEDIUM: logging.WARNING,
            ErrorSeverity.HIGH: logging.ERROR,
            ErrorSeverity.CRITICAL: logging.CRITICAL,
        }[self]


class TunerError(Exception):
    """Base class for all episodic_tuner errors.

    Args:
        message: Primary error description
        context: Optional mapping with debugging details
        severity: ErrorSeverity or its name
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        severity: Union[ErrorSeverity, str] = ErrorSeverity.MEDIUM,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})
        if isinstance(severity, str):
            try:
                self.severity = ErrorSeverity[severity.upper()]
            except KeyError:
                self.severity = ErrorSeverity.MEDIUM
        else:
            self.severity = severity
        self.timestamp = time.time()
        self.error_id = str(uuid.uuid4())
        self.recovery_suggestion: Optional[str] = None

    def set_recovery_suggestion(self, suggestion: str) -> None:
        self.recovery_suggestion = suggestion

    def get_error_details(self) -> Dict[str, Any]:
        """Return a serializable description of the error."""
        details: Dict[str, Any] = {
            "error_id": self.error_id,
            "message": self.message,
            "timestamp": self.timestamp,
            "severity": self.severity.name,
            "severity_description": self.severity.get_description(),
            "exception_type": self.__class__.__name__,
        }
        if self.context:
            details["context"] = dict(self.context)
        if self.recovery_suggestion:
            details["recovery_suggestion"] = self.recovery_suggestion
        return details

    def format_for_user(self, include_suggestions: bool = True) -> str:
        text = f"{self.__class__.__name__}: {self.message}"
        if include_suggestions and self.recovery_suggestion:
            text = f"{text} ({self.recovery_suggestion})"
        return text


class ConfigurationError(TunerError, ValueError):
    """Malformed configuration. Fatal: the run stops before the first episode.

    Args:
        message: Description of what is wrong
        config_parameter: Name of the offending parameter, if known
        parameter_value: Value that was rejected
    """

    def __init__(
        self,
        message: str,
        config_parameter: Optional[str] = None,
        parameter_value: Optional[Any] = None,
    ) -> None:
        context: Dict[str, Any] = {}
        if config_parameter is not None:
            context["config_parameter"] = config_parameter
            context["parameter_value"] = parameter_value
        super().__init__(message, context=context, severity=ErrorSeverity.CRITICAL)
        self.config_parameter = config_parameter
        self.parameter_value = parameter_value
        if config_parameter:
            self.set_recovery_suggestion(
                f"Check the value supplied for '{config_parameter}'"
            )
        else:
            self.set_recovery_suggestion("Check configuration parameters")


class PreconditionTimeoutError(TunerError):
    """A launch precondition (arming, climb to altitude) was not met in time."""

    def __init__(self, message: str, elapsed_ticks: int, timeout_ticks: int) -> None:
        super().__init__(
            message,
            context={"elapsed_ticks": elapsed_ticks, "timeout_ticks": timeout_ticks},
            severity=ErrorSeverity.MEDIUM,
        )
        self.elapsed_ticks = elapsed_ticks
        self.timeout_ticks = timeout_ticks


class SafetyAbortError(TunerError):
    """The vehicle left its safe envelope during the measured trial.

    Args:
        reason: The AbortReason that triggered the abort
        message: Optional description; defaults to the reason name
    """

    def __init__(self, reason: Any, message: Optional[str] = None) -> None:
        name = getattr(reason, "name", str(reason))
        super().__init__(
            message or f"Safety abort: {name}",
            context={"reason": name},
            severity=ErrorSeverity.MEDIUM,
        )
        self.reason = reason


class InvalidActionError(TunerError):
    """An action would push a controlled parameter outside its valid range."""

    def __init__(
        self,
        message: str,
        action_name: Optional[str] = None,
        parameter_name: Optional[str] = None,
        attempted_value: Optional[float] = None,
    ) -> None:
        super().__init__(
            message,
            context={
                "action": action_name,
                "parameter": parameter_name,
                "attempted_value": attempted_value,
            },
            severity=ErrorSeverity.LOW,
        )
        self.action_name = action_name
        self.parameter_name = parameter_name
        self.attempted_value = attempted_value


class StateError(TunerError):
    """A component was used in a state that does not allow the operation."""

    def __init__(
        self,
        message: str,
        current_state: Optional[str] = None,
        expected_state: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            context={"current_state": current_state, "expected_state": expected_state},
            severity=ErrorSeverity.HIGH,
        )
        self.current_state = current_state
        self.expected_state = expected_state


def log_exception_with_recovery(
    exc: BaseException,
    logger: logging.Logger,
    *,
    operation: str,
    recovered: bool = True,
) -> None:
    """Log an exception at a level matching its severity.

    Absorbed errors are logged without a traceback; anything that escapes is
    logged with one.
    """
    if isinstance(exc, TunerError):
        level = exc.severity.to_logging_level()
        message = exc.format_for_user()
    else:
        level = logging.ERROR
        message = f"{exc.__class__.__name__}: {exc}"
    suffix = "recovered" if recovered else "not recovered"
    logger.log(
        level,
        "%s during %s (%s)",
        message,
        operation,
        suffix,
        exc_info=None if recovered else exc,
    )
