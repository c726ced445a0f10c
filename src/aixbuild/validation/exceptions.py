"""
Exception taxonomy and error handling helpers.

This module defines the errors raised by the build orchestration core and
the small set of helpers used to log and optionally re-raise them with a
consistent message format.
"""

import logging
import sys
from enum import Enum
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity levels for error handling."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ValidationError(Exception):
    """
    Exception raised when configuration or user input fails validation.
    """

    def __init__(self, message: str, field_name: Optional[str] = None,
                 value: Any = None, severity: ErrorSeverity = ErrorSeverity.ERROR):
        super().__init__(message)
        self.field_name = field_name
        self.value = value
        self.severity = severity


class AixBuildError(Exception):
    """Base class for every error raised by the build core."""


class PreconditionError(AixBuildError):
    """The project path or build descriptor required by an operation is missing."""


class SpawnError(AixBuildError):
    """The toolchain executable could not be started."""

    def __init__(self, message: str, command: Optional[str] = None):
        super().__init__(message)
        self.command = command


class ProcessError(AixBuildError):
    """
    The toolchain exited with a non-zero status.

    The captured streams are kept so callers can surface the diagnostic tail.
    """

    def __init__(self, message: str, exit_code: int, stdout: str = "", stderr: str = ""):
        super().__init__(message)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr

    @property
    def output(self) -> str:
        return self.stdout + self.stderr


class ToolchainTimeoutError(AixBuildError, TimeoutError):
    """
    The toolchain ran longer than its allotted time.

    Raised only after the process tree has been terminated and reaped.
    """

    def __init__(self, message: str, timeout: float, pid: Optional[int] = None,
                 stdout: str = "", stderr: str = ""):
        super().__init__(message)
        self.timeout = timeout
        self.pid = pid
        self.stdout = stdout
        self.stderr = stderr

    @property
    def output(self) -> str:
        return self.stdout + self.stderr


class BuildCancelledError(AixBuildError):
    """The caller signalled cancellation while the toolchain was running."""

    def __init__(self, message: str, pid: Optional[int] = None,
                 stdout: str = "", stderr: str = ""):
        super().__init__(message)
        self.pid = pid
        self.stdout = stdout
        self.stderr = stderr

    @property
    def output(self) -> str:
        return self.stdout + self.stderr


class ArtifactError(AixBuildError):
    """The build succeeded but no single artifact could be identified in the distribution directory."""


class ProjectBusyError(AixBuildError):
    """Another operation held the project lock for longer than the lock timeout."""


class PersistenceError(AixBuildError):
    """The build history could not be read or written."""


def handle_error(
    error: Exception,
    context: str,
    severity: Union[ErrorSeverity, str] = ErrorSeverity.ERROR,
    reraise: bool = True,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Handle errors with consistent logging and optional re-raising.

    Args:
        error: The exception that occurred
        context: Context description of where the error occurred
        severity: Severity level for logging
        reraise: Whether to re-raise the exception after logging
        logger: Logger instance to use (defaults to module logger)
    """
    effective_logger = logger or globals()['logger']

    error_msg = f"Error in {context}: {error}"

    if isinstance(severity, str):
        severity_str = severity.lower()
    else:
        severity_str = severity.value

    if severity_str == "debug":
        effective_logger.debug(error_msg, exc_info=True)
    elif severity_str == "info":
        effective_logger.info(error_msg)
    elif severity_str == "warning":
        effective_logger.warning(error_msg)
    elif severity_str == "error":
        effective_logger.error(error_msg)
    elif severity_str == "critical":
        effective_logger.critical(error_msg, exc_info=True)

    if reraise:
        raise error


def handle_config_error(error: Exception, context: str, **kwargs) -> None:
    """Handle configuration-related errors."""
    handle_error(error, f"config {context}", **kwargs)


def handle_subprocess_error(error: Exception, command: str, **kwargs) -> None:
    """Handle subprocess-related errors."""
    handle_error(error, f"subprocess command '{command}'", **kwargs)


def handle_persistence_error(error: Exception, context: str, **kwargs) -> None:
    """Handle history read/write errors; these never propagate."""
    kwargs.setdefault("severity", ErrorSeverity.WARNING)
    kwargs["reraise"] = False
    handle_error(PersistenceError(str(error)), f"history {context}", **kwargs)


def handle_cli_error(error: Exception, context: str, **kwargs) -> None:
    """Log a CLI error and exit with the given status code."""
    exit_code = kwargs.pop('exit_code', 1)
    kwargs.pop('include_traceback', None)

    severity = kwargs.pop('severity', ErrorSeverity.ERROR)
    handle_error(error, f"CLI {context}", severity=severity, reraise=False, **kwargs)

    sys.exit(exit_code)
