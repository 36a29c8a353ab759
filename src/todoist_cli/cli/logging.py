"""Structured logging hooks for CLI commands.

Every command runs inside a request-id context so log lines and the JSON
envelope share one correlation id. Extra log fields pass through secret
redaction before they reach a handler.
"""

import logging
import time
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from todoist_cli.core.observability import (
    generate_request_id,
    get_request_id,
    redact_sensitive_data,
    reset_request_id,
    set_request_id,
)

__all__ = [
    "generate_request_id",
    "get_request_id",
    "set_request_id",
    "cli_command",
    "get_cli_logger",
    "CLILogContext",
]

T = TypeVar("T")


class CLILogContext:
    """Context manager that sets a request id for the duration of a command.

    Example:
        >>> with CLILogContext() as ctx:
        ...     logger.info("Processing", extra={"request_id": ctx.request_id})
    """

    def __init__(self, request_id: Optional[str] = None):
        self.request_id = request_id or generate_request_id()
        self._token = None

    def __enter__(self) -> "CLILogContext":
        self._token = set_request_id(self.request_id)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._token is not None:
            reset_request_id(self._token)


class CLILogger:
    """Logger for CLI commands with request id and redacted context."""

    def __init__(self, name: str = "todoist_cli.cli"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, message: str, **extra: Any) -> None:
        context = {
            "request_id": get_request_id(),
            **redact_sensitive_data(extra),
        }
        self._logger.log(level, redact_sensitive_data(message), extra={"cli_context": context})

    def debug(self, message: str, **extra: Any) -> None:
        self._log(logging.DEBUG, message, **extra)

    def info(self, message: str, **extra: Any) -> None:
        self._log(logging.INFO, message, **extra)

    def warning(self, message: str, **extra: Any) -> None:
        self._log(logging.WARNING, message, **extra)

    def error(self, message: str, **extra: Any) -> None:
        self._log(logging.ERROR, message, **extra)


_cli_logger = CLILogger()


def get_cli_logger() -> CLILogger:
    """Get the global CLI logger."""
    return _cli_logger


def cli_command(
    command_name: Optional[str] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for CLI commands: request id plus start/end debug lines.

    Example:
        >>> @cli_command("tasks-move")
        ... def move(ctx, task):
        ...     ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        name = command_name or func.__name__

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            with CLILogContext():
                start = time.perf_counter()
                success = True
                error_msg = None

                _cli_logger.debug(f"CLI command started: {name}", command=name)

                try:
                    return func(*args, **kwargs)
                except SystemExit as e:
                    success = e.code in (0, None)
                    raise
                except Exception as e:
                    success = False
                    error_msg = str(e)
                    raise
                finally:
                    duration_ms = (time.perf_counter() - start) * 1000
                    _cli_logger.debug(
                        f"CLI command completed: {name}",
                        command=name,
                        success=success,
                        duration_ms=round(duration_ms, 2),
                        error=error_msg,
                    )

        return wrapper

    return decorator
