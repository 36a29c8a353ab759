"""todoist CLI - command-line utilities for the Todoist API.

Text output by default; ``--json`` emits response-v2 envelopes.
"""

from todoist_cli.cli.config import CLIContext, create_context
from todoist_cli.cli.logging import (
    CLILogContext,
    cli_command,
    get_cli_logger,
    get_request_id,
    set_request_id,
)
from todoist_cli.cli.main import cli
from todoist_cli.cli.output import emit, emit_error, emit_success, emit_text
from todoist_cli.cli.registry import get_context
from todoist_cli.cli.resilience import (
    FAST_TIMEOUT,
    MEDIUM_TIMEOUT,
    SLOW_TIMEOUT,
    handle_errors,
    handle_keyboard_interrupt,
    with_sync_timeout,
)

__all__ = [
    # Entry point
    "cli",
    # Context
    "CLIContext",
    "create_context",
    "get_context",
    # Output
    "emit",
    "emit_error",
    "emit_success",
    "emit_text",
    # Logging
    "CLILogContext",
    "cli_command",
    "get_cli_logger",
    "get_request_id",
    "set_request_id",
    # Resilience
    "FAST_TIMEOUT",
    "MEDIUM_TIMEOUT",
    "SLOW_TIMEOUT",
    "handle_errors",
    "handle_keyboard_interrupt",
    "with_sync_timeout",
]
