"""
Standard response envelope for CLI output.

Every ``--json`` response, success or failure, has the same shape:

    {
        "success": bool,       # operation success/failure
        "data": {...},         # primary payload (error details on failure)
        "error": str | null,   # error message or null on success
        "meta": {
            "version": "response-v2",
            "request_id": "cli_abc123"?,
            "warnings": ["..."]?
        }
    }

Key Principle:
    - ``success=True`` means the command ran correctly, even with empty results.
    - ``success=False`` means it failed; ``data`` carries ``error_code``,
      ``error_type`` and, where useful, ``remediation`` and ``details``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Union

from todoist_cli.core.observability import get_request_id


class ErrorCode(str, Enum):
    """Machine-readable error codes for CLI responses."""

    # Input errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_CREDENTIAL = "MISSING_CREDENTIAL"

    # Resolution errors
    NOT_FOUND = "NOT_FOUND"
    AMBIGUOUS_MATCH = "AMBIGUOUS_MATCH"
    CONFLICT = "CONFLICT"

    # Remote errors
    UNAUTHORIZED = "UNAUTHORIZED"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    TIMEOUT = "TIMEOUT"
    API_ERROR = "API_ERROR"
    SYNC_COMMAND_FAILED = "SYNC_COMMAND_FAILED"

    # Local errors
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorType(str, Enum):
    """Error categories, so callers can decide whether retrying makes sense."""

    VALIDATION = "validation"  # fix input
    AUTHENTICATION = "authentication"  # fix credentials
    NOT_FOUND = "not_found"  # fix input
    CONFLICT = "conflict"  # check state
    RATE_LIMIT = "rate_limit"  # retry after delay
    UNAVAILABLE = "unavailable"  # retry with backoff
    INTERNAL = "internal"


@dataclass
class ToolResponse:
    """
    Standard response structure for CLI commands.

    Attributes:
        success: Whether the command completed successfully
        data: The primary payload
        error: Error message if success is False, None otherwise
        meta: Response metadata including version identifier
    """

    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=lambda: {"version": "response-v2"})


def _build_meta(
    *,
    request_id: Optional[str] = None,
    warnings: Optional[Sequence[str]] = None,
    extra: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Construct a metadata payload that always includes the response version.

    The request id falls back to the one set for the running command.
    """
    meta: Dict[str, Any] = {"version": "response-v2"}

    effective_request_id = request_id or get_request_id() or None
    if effective_request_id:
        meta["request_id"] = effective_request_id
    if warnings:
        meta["warnings"] = list(warnings)
    if extra:
        meta.update(dict(extra))

    return meta


def success_response(
    data: Optional[Mapping[str, Any]] = None,
    *,
    warnings: Optional[Sequence[str]] = None,
    request_id: Optional[str] = None,
    meta: Optional[Mapping[str, Any]] = None,
    **fields: Any,
) -> ToolResponse:
    """Create a standardized success response.

    Args:
        data: Optional mapping used as the base payload.
        warnings: Non-fatal issues to surface in ``meta.warnings``.
        request_id: Correlation identifier.
        meta: Extra metadata to merge into ``meta``.
        **fields: Additional payload fields (shorthand for ``data.update``).
    """
    payload: Dict[str, Any] = {}
    if data:
        payload.update(dict(data))
    if fields:
        payload.update(fields)

    return ToolResponse(
        success=True,
        data=payload,
        error=None,
        meta=_build_meta(request_id=request_id, warnings=warnings, extra=meta),
    )


def _enum_value(value: Union[Enum, str]) -> str:
    return value.value if isinstance(value, Enum) else value


def error_response(
    message: str,
    *,
    data: Optional[Mapping[str, Any]] = None,
    error_code: Optional[Union[ErrorCode, str]] = None,
    error_type: Optional[Union[ErrorType, str]] = None,
    remediation: Optional[str] = None,
    details: Optional[Mapping[str, Any]] = None,
    request_id: Optional[str] = None,
    meta: Optional[Mapping[str, Any]] = None,
) -> ToolResponse:
    """Create a standardized error response.

    Args:
        message: Human-readable description of the failure.
        data: Optional mapping with additional machine-readable context.
        error_code: Canonical error code (defaults to ``INTERNAL_ERROR``).
        error_type: Error category (defaults to ``internal``).
        remediation: User-facing guidance on how to fix the issue.
        details: Nested structure describing the failure.
        request_id: Correlation identifier.
        meta: Extra metadata to merge into ``meta``.

    Example:
        >>> error_response(
        ...     "Section not found: Backlog",
        ...     error_code=ErrorCode.NOT_FOUND,
        ...     error_type=ErrorType.NOT_FOUND,
        ... )
    """
    payload: Dict[str, Any] = {}
    if data:
        payload.update(dict(data))

    payload.setdefault("error_code", _enum_value(error_code or ErrorCode.INTERNAL_ERROR))
    payload.setdefault("error_type", _enum_value(error_type or ErrorType.INTERNAL))
    if remediation is not None and "remediation" not in payload:
        payload["remediation"] = remediation
    if details and "details" not in payload:
        payload["details"] = dict(details)

    return ToolResponse(
        success=False,
        data=payload,
        error=message,
        meta=_build_meta(request_id=request_id, extra=meta),
    )


# ---------------------------------------------------------------------------
# Specialized Error Helpers
# ---------------------------------------------------------------------------


def validation_error(
    message: str,
    *,
    field: Optional[str] = None,
    remediation: Optional[str] = None,
) -> ToolResponse:
    """Create a validation error response."""
    return error_response(
        message,
        error_code=ErrorCode.VALIDATION_ERROR,
        error_type=ErrorType.VALIDATION,
        details={"field": field} if field else None,
        remediation=remediation,
    )


def not_found_error(
    resource_type: str,
    token: str,
    *,
    message: Optional[str] = None,
    scope: Optional[str] = None,
    remediation: Optional[str] = None,
) -> ToolResponse:
    """Create a not found error response naming the token the user gave.

    Example:
        >>> not_found_error("project", "Wrok")
    """
    data: Dict[str, Any] = {"resource_type": resource_type, "token": token}
    if scope:
        data["scope"] = scope
    return error_response(
        message or f"{resource_type.capitalize()} not found: {token}",
        error_code=ErrorCode.NOT_FOUND,
        error_type=ErrorType.NOT_FOUND,
        data=data,
        remediation=remediation
        or f"Check the {resource_type} name, or pass its ID.",
    )


def ambiguous_error(
    resource_type: str,
    token: str,
    candidates: Sequence[Mapping[str, Any]],
    *,
    message: Optional[str] = None,
) -> ToolResponse:
    """Create an ambiguity error response listing every candidate."""
    return error_response(
        message or f"Multiple matching {resource_type}s found for '{token}'",
        error_code=ErrorCode.AMBIGUOUS_MATCH,
        error_type=ErrorType.VALIDATION,
        data={"resource_type": resource_type, "token": token},
        details={"candidates": [dict(c) for c in candidates]},
        remediation=f"Specify the {resource_type} by ID to avoid ambiguity.",
    )
