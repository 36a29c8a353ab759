"""Log hygiene for the Todoist CLI.

Two concerns live here:

* Request correlation: one id per CLI invocation, stored in a ``ContextVar``
  so response envelopes and log lines can carry it without threading it
  through every call.
* Redaction: API tokens must never reach logs or error envelopes.
  ``redact_sensitive_data`` scrubs strings, dicts and lists recursively.
"""

import re
import uuid
from contextvars import ContextVar
from typing import Any, Final, List, Optional, Tuple

_request_id: ContextVar[str] = ContextVar("todoist_cli_request_id", default="")


def generate_request_id() -> str:
    """Short id suitable for log correlation."""
    return f"cli_{uuid.uuid4().hex[:12]}"


def get_request_id() -> str:
    """Current request id, or an empty string outside a command."""
    return _request_id.get()


def set_request_id(request_id: str):
    """Set the request id; returns the token for ``reset_request_id``."""
    return _request_id.set(request_id)


def reset_request_id(token) -> None:
    _request_id.reset(token)


SENSITIVE_PATTERNS: Final[List[Tuple[str, str]]] = [
    (r"(?i)bearer\s+([a-zA-Z0-9_\-\.]+)", "BEARER_TOKEN"),
    (
        r"(?i)(api[_-]?token|api[_-]?key|apikey)\s*[:=]\s*['\"]?([a-zA-Z0-9_\-]{20,})['\"]?",
        "API_TOKEN",
    ),
    # Todoist personal tokens are 40 hex characters
    (r"\b[0-9a-f]{40}\b", "TODOIST_TOKEN"),
]
"""Patterns for secrets that may leak into log messages."""

SENSITIVE_KEYS: Final[frozenset] = frozenset(
    {
        "token",
        "api_token",
        "api_key",
        "apikey",
        "access_token",
        "authorization",
        "auth",
        "secret",
        "password",
    }
)


def redact_sensitive_data(
    data: Any,
    *,
    patterns: Optional[List[Tuple[str, str]]] = None,
    redaction_format: str = "[REDACTED:{label}]",
    max_depth: int = 10,
) -> Any:
    """Recursively redact secrets from strings, dicts, and lists.

    Values under a sensitive key name are replaced entirely; other strings are
    scanned against ``patterns``.

    Example:
        >>> redact_sensitive_data({"token": "abc", "project": "Work"})
        {'token': '[REDACTED]', 'project': 'Work'}
    """
    if max_depth <= 0:
        return "[MAX_DEPTH_EXCEEDED]"

    check_patterns = patterns if patterns is not None else SENSITIVE_PATTERNS

    if isinstance(data, str):
        result = data
        for pattern, label in check_patterns:
            result = re.sub(pattern, redaction_format.format(label=label), result)
        return result

    if isinstance(data, dict):
        redacted = {}
        for key, value in data.items():
            if str(key).lower().replace("-", "_") in SENSITIVE_KEYS:
                redacted[key] = "[REDACTED]"
            else:
                redacted[key] = redact_sensitive_data(
                    value,
                    patterns=check_patterns,
                    redaction_format=redaction_format,
                    max_depth=max_depth - 1,
                )
        return redacted

    if isinstance(data, (list, tuple)):
        items = [
            redact_sensitive_data(
                item,
                patterns=check_patterns,
                redaction_format=redaction_format,
                max_depth=max_depth - 1,
            )
            for item in data
        ]
        return type(data)(items) if isinstance(data, tuple) else items

    return data
