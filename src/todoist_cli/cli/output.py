"""Output helpers for the todoist CLI.

Two renderings share one code path:

- ``--json``: the response-v2 envelope from ``todoist_cli.core.responses``;
  success goes to stdout, errors to stderr.
- text (default): line-oriented output on stdout; diagnostics on stderr.

Commands build a result dict once and hand ``emit_success`` a renderer that
turns it into text lines, so both modes always report the same data.
"""

import json
import sys
from dataclasses import asdict
from typing import Any, Callable, Iterable, Mapping, NoReturn, Optional, Sequence

import click

from todoist_cli.cli.logging import generate_request_id, get_request_id, set_request_id
from todoist_cli.core.responses import ToolResponse, error_response, success_response

TextRenderer = Callable[[Mapping[str, Any]], Iterable[str]]


def _ensure_request_id() -> str:
    request_id = get_request_id()
    if request_id:
        return request_id
    request_id = generate_request_id()
    set_request_id(request_id)
    return request_id


def json_mode() -> bool:
    """Whether the running command was invoked with ``--json``."""
    ctx = click.get_current_context(silent=True)
    if ctx is None:
        return False
    obj = ctx.find_root().obj
    if isinstance(obj, dict) and "cli_context" in obj:
        return bool(obj["cli_context"].json_output)
    return False


def emit(data: Any) -> None:
    """Emit JSON to stdout."""
    click.echo(json.dumps(data, separators=(",", ":"), default=str, ensure_ascii=False))


def emit_text(lines: Iterable[str], *, err: bool = False) -> None:
    for line in lines:
        click.echo(line, err=err)


def emit_success(
    data: Any,
    *,
    text: Optional[TextRenderer] = None,
    warnings: Optional[Sequence[str]] = None,
    meta: Optional[Mapping[str, Any]] = None,
) -> None:
    """Emit a command result.

    Args:
        data: The operation-specific payload.
        text: Renders ``data`` as text lines for the default output mode.
        warnings: Non-fatal issues (``meta.warnings`` or stderr lines).
        meta: Additional metadata to merge into the envelope's meta.
    """
    payload = data if isinstance(data, dict) else {"result": data}

    if json_mode() or text is None:
        response = success_response(
            data=payload,
            warnings=warnings,
            meta=meta,
            request_id=_ensure_request_id(),
        )
        emit(asdict(response))
        return

    emit_text(text(payload))
    if warnings:
        emit_text((f"Warning: {w}" for w in warnings), err=True)


def emit_failure(response: ToolResponse, lines: Sequence[str] = ()) -> NoReturn:
    """Report a failed command on stderr and exit with code 1.

    ``lines`` (ambiguity candidates, blocking tasks, failed commands) are
    printed to stderr in both output modes.
    """
    if json_mode():
        emit_text(lines, err=True)
        click.echo(
            json.dumps(asdict(response), separators=(",", ":"), default=str, ensure_ascii=False),
            err=True,
        )
    else:
        click.echo(f"Error: {response.error}", err=True)
        emit_text(lines, err=True)
        remediation = response.data.get("remediation")
        if remediation:
            click.echo(remediation, err=True)
    sys.exit(1)


def emit_error(
    message: str,
    code: str = "INTERNAL_ERROR",
    *,
    error_type: str = "internal",
    remediation: Optional[str] = None,
    details: Optional[Mapping[str, Any]] = None,
    lines: Sequence[str] = (),
) -> NoReturn:
    """Emit an error envelope (or text diagnostic) and exit with code 1.

    Args:
        message: Human-readable error description.
        code: Error code in SCREAMING_SNAKE_CASE (e.g. VALIDATION_ERROR).
        error_type: Error category (validation, not_found, ...).
        remediation: Actionable guidance for resolving the error.
        details: Optional additional error context.
        lines: Extra diagnostic lines for stderr.
    """
    response = error_response(
        message=message,
        error_code=code,
        error_type=error_type,
        remediation=remediation,
        details=details,
        request_id=_ensure_request_id(),
    )
    emit_failure(response, lines)
