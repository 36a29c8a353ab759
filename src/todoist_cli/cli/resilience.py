"""CLI resilience wrappers: command timeout, Ctrl+C, and error translation.

Core code raises; ``handle_errors`` is the single place where exceptions
become an error envelope (or stderr diagnostic) and exit code 1.
"""

import signal
import sys
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from todoist_cli.cli.logging import get_cli_logger
from todoist_cli.cli.output import emit_error, emit_failure
from todoist_cli.config import ConfigError
from todoist_cli.core.client import (
    APITimeoutError,
    AuthenticationError,
    RateLimitError,
    SyncCommandError,
    TodoistAPIError,
)
from todoist_cli.core.commands import ValidationError
from todoist_cli.core.resilience import (
    FAST_TIMEOUT,
    MEDIUM_TIMEOUT,
    SLOW_TIMEOUT,
    TimeoutException,
)
from todoist_cli.core.resolver import (
    AmbiguousError,
    EmptyTokenError,
    NotFoundError,
    ResolutionError,
)
from todoist_cli.core.responses import (
    ErrorCode,
    ErrorType,
    ambiguous_error,
    not_found_error,
    validation_error,
)
from todoist_cli.core.sections import SectionNotEmptyError

__all__ = [
    "FAST_TIMEOUT",
    "MEDIUM_TIMEOUT",
    "SLOW_TIMEOUT",
    "TimeoutException",
    "with_sync_timeout",
    "handle_keyboard_interrupt",
    "handle_errors",
    "report_exception",
]

T = TypeVar("T")

logger = get_cli_logger()


class _TimeoutHandler:
    """Context manager for signal-based timeout on Unix systems."""

    def __init__(self, seconds: float, error_message: str):
        self.seconds = int(seconds)  # signal.alarm requires int
        self.error_message = error_message
        self._old_handler = None

    def _timeout_handler(self, signum: int, frame: Any) -> None:
        raise TimeoutException(
            self.error_message,
            timeout_seconds=float(self.seconds),
            operation="cli_command",
        )

    def __enter__(self) -> "_TimeoutHandler":
        if sys.platform != "win32":
            self._old_handler = signal.signal(signal.SIGALRM, self._timeout_handler)
            signal.alarm(self.seconds)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if sys.platform != "win32":
            signal.alarm(0)
            if self._old_handler is not None:
                signal.signal(signal.SIGALRM, self._old_handler)


def with_sync_timeout(
    seconds: float = SLOW_TIMEOUT,
    error_message: Optional[str] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Bound a whole command's wall-clock time (SIGALRM; no-op on Windows).

    Example:
        >>> @with_sync_timeout(SLOW_TIMEOUT, "Batch move timed out")
        ... def batch_move(...):
        ...     ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            msg = error_message or f"{func.__name__} timed out after {seconds}s"

            if sys.platform == "win32":
                return func(*args, **kwargs)

            with _TimeoutHandler(seconds, msg):
                return func(*args, **kwargs)

        return wrapper

    return decorator


def handle_keyboard_interrupt(
    cleanup: Optional[Callable[[], None]] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Exit with code 130 on Ctrl+C, after an optional cleanup."""

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return func(*args, **kwargs)
            except KeyboardInterrupt:
                if cleanup:
                    cleanup()
                # 128 + SIGINT
                sys.exit(130)

        return wrapper

    return decorator


def report_exception(exc: Exception) -> None:
    """Translate a known exception into an error report and exit 1.

    Unknown exceptions are re-raised.
    """
    logger.debug(f"Command failed: {type(exc).__name__}: {exc}")

    if isinstance(exc, ConfigError):
        if exc.missing_credential:
            emit_error(
                str(exc),
                ErrorCode.MISSING_CREDENTIAL.value,
                error_type=ErrorType.AUTHENTICATION.value,
                remediation="Set TODOIST_API_TOKEN or add [api] token to todoist-cli.toml.",
            )
        emit_error(str(exc), ErrorCode.VALIDATION_ERROR.value, error_type=ErrorType.VALIDATION.value)

    if isinstance(exc, AmbiguousError):
        response = ambiguous_error(
            exc.kind,
            exc.token,
            [c.to_dict() for c in exc.candidates],
            message=str(exc),
        )
        emit_failure(response, exc.candidate_lines())

    if isinstance(exc, EmptyTokenError):
        emit_failure(validation_error(str(exc), field=exc.kind))

    if isinstance(exc, NotFoundError):
        emit_failure(not_found_error(exc.kind, exc.token, message=str(exc), scope=exc.scope))

    if isinstance(exc, ResolutionError):
        emit_error(str(exc), ErrorCode.VALIDATION_ERROR.value, error_type=ErrorType.VALIDATION.value)

    if isinstance(exc, SectionNotEmptyError):
        emit_error(
            str(exc),
            ErrorCode.CONFLICT.value,
            error_type=ErrorType.CONFLICT.value,
            details=exc.to_dict(),
            lines=exc.task_lines(),
        )

    if isinstance(exc, ValidationError):
        emit_failure(validation_error(str(exc), field=exc.field))

    if isinstance(exc, AuthenticationError):
        emit_error(
            exc.message,
            ErrorCode.UNAUTHORIZED.value,
            error_type=ErrorType.AUTHENTICATION.value,
            remediation="Check TODOIST_API_TOKEN.",
        )

    if isinstance(exc, RateLimitError):
        emit_error(
            exc.message,
            ErrorCode.RATE_LIMIT_EXCEEDED.value,
            error_type=ErrorType.RATE_LIMIT.value,
            details={"retry_after": exc.retry_after} if exc.retry_after else None,
            remediation="Wait before retrying.",
        )

    if isinstance(exc, (APITimeoutError, TimeoutException)):
        emit_error(str(exc), ErrorCode.TIMEOUT.value, error_type=ErrorType.UNAVAILABLE.value)

    if isinstance(exc, SyncCommandError):
        emit_error(
            exc.message,
            ErrorCode.SYNC_COMMAND_FAILED.value,
            error_type=ErrorType.CONFLICT.value,
            details={
                "failures": [f.to_dict() for f in exc.failures],
                "succeeded": exc.succeeded,
            },
            lines=[
                f"  {f.type} {f.target_id or '-'} ({f.uuid}): {f.error}" for f in exc.failures
            ],
        )

    if isinstance(exc, TodoistAPIError):
        emit_error(
            exc.message,
            ErrorCode.API_ERROR.value,
            error_type=(ErrorType.UNAVAILABLE if exc.retryable else ErrorType.INTERNAL).value,
            details={"status_code": exc.status_code} if exc.status_code else None,
        )

    raise exc


def handle_errors() -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Translate core exceptions raised by a command into exit code 1."""

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return func(*args, **kwargs)
            except (
                ConfigError,
                ResolutionError,
                ValidationError,
                TodoistAPIError,
                TimeoutException,
            ) as exc:
                report_exception(exc)
                raise

        return wrapper

    return decorator
