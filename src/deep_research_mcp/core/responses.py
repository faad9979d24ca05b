"""
Standard response contracts for MCP tool operations.
Provides consistent response structures across all deep-research tools.

Response Schema Contract
========================

All MCP tool responses follow a standard structure:

    {
        "success": bool,       # Required: operation success/failure
        "data": {...},         # Required: primary payload
        "error": str | null,   # Required: error message or null on success
        "meta": {              # Required: response metadata
            "version": "response-v2",
            "request_id": "corr_abc123"?,
            "warnings": ["..."]?
        }
    }

``meta.request_id`` is the correlation ID of the tool call; the research
request ID, when there is one, lives in ``data.request_id``.

Status Tags
-----------

Research tools always carry a ``status`` key inside ``data`` so callers can
branch on a single field whether or not the call succeeded:

    {"success": True,  "data": {"request_id": "req_...", "status": "pending"}, "error": None}
    {"success": False, "data": {"status": "not_found", ...}, "error": "Request ID req_x not found"}

Key Principle:
    - `success=True` means the operation executed correctly.
    - `success=False` means it could not; `error` carries an actionable message.
    - Failures never raise out of a tool; they are returned as envelopes.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence

from deep_research_mcp.core.context import get_correlation_id

logger = logging.getLogger(__name__)

RESPONSE_VERSION = "response-v2"


class ErrorCode(str, Enum):
    """Machine-readable error codes for MCP tool responses."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    NOT_READY = "NOT_READY"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # Research engine errors
    ENGINE_START_FAILED = "ENGINE_START_FAILED"
    ENGINE_QUERY_FAILED = "ENGINE_QUERY_FAILED"
    MALFORMED_RESULT = "MALFORMED_RESULT"


class ErrorType(str, Enum):
    """Error categories for routing and client-side handling.

    Each type corresponds to an HTTP status code analog and indicates
    whether the operation should be retried.
    """

    VALIDATION = "validation"  # 400 - No retry, fix input
    AUTHENTICATION = "authentication"  # 401 - No retry, fix credentials
    NOT_FOUND = "not_found"  # 404 - No retry
    NOT_READY = "not_ready"  # 409 - Retry after polling status
    RATE_LIMIT = "rate_limit"  # 429 - Yes, after delay
    INTERNAL = "internal"  # 500 - Yes, with backoff
    UNAVAILABLE = "unavailable"  # 503 - Yes, with backoff
    ENGINE = "engine"  # Engine rejected the request - no retry


def engine_error_type(status_code: Optional[int], retryable: bool) -> ErrorType:
    """Classify an engine failure from its HTTP status and retryability."""
    if status_code == 401:
        return ErrorType.AUTHENTICATION
    if status_code == 429:
        return ErrorType.RATE_LIMIT
    if retryable:
        return ErrorType.UNAVAILABLE
    return ErrorType.ENGINE


@dataclass
class ToolResponse:
    """
    Standard response structure for MCP tool operations.

    Attributes:
        success: Whether the operation completed successfully
        data: The primary payload (operation-specific structured data)
        error: Error message if success is False, None otherwise
        meta: Response metadata including version identifier
    """

    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=lambda: {"version": RESPONSE_VERSION})


def _build_meta(warnings: Optional[Sequence[str]] = None) -> Dict[str, Any]:
    """Construct a metadata payload that always includes the response version.

    The correlation ID of the active request context is injected as
    ``request_id`` when there is one.
    """
    meta: Dict[str, Any] = {"version": RESPONSE_VERSION}

    correlation_id = get_correlation_id()
    if correlation_id:
        meta["request_id"] = correlation_id
    if warnings:
        meta["warnings"] = list(warnings)

    return meta


def success_response(
    data: Optional[Mapping[str, Any]] = None,
    *,
    warnings: Optional[Sequence[str]] = None,
) -> ToolResponse:
    """Create a standardized success response.

    Args:
        data: Payload; research tools always include ``status``.
        warnings: Non-fatal issues to surface in ``meta.warnings``.
    """
    return ToolResponse(
        success=True,
        data=dict(data) if data else {},
        error=None,
        meta=_build_meta(warnings),
    )


def error_response(
    message: str,
    *,
    data: Optional[Mapping[str, Any]] = None,
    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
    error_type: ErrorType = ErrorType.INTERNAL,
    remediation: Optional[str] = None,
    details: Optional[Mapping[str, Any]] = None,
) -> ToolResponse:
    """Create a standardized error response.

    Args:
        message: Human-readable description of the failure.
        data: Machine-readable context (research tools put the ``status``
            tag here).
        error_code: Canonical error code.
        error_type: Error category for routing.
        remediation: User-facing guidance on how to fix the issue.
        details: Nested structure describing validation failures.

    Example:
        >>> error_response(
        ...     "Request ID req_1 not found",
        ...     data={"status": "not_found"},
        ...     error_code=ErrorCode.NOT_FOUND,
        ...     error_type=ErrorType.NOT_FOUND,
        ... )
    """
    payload: Dict[str, Any] = dict(data) if data else {}
    payload["error_code"] = error_code.value
    payload["error_type"] = error_type.value
    if remediation is not None:
        payload["remediation"] = remediation
    if details:
        payload["details"] = dict(details)

    return ToolResponse(success=False, data=payload, error=message, meta=_build_meta())


# ---------------------------------------------------------------------------
# Specialized Error Helpers
# ---------------------------------------------------------------------------


def validation_error(
    message: str,
    *,
    field: str,
    data: Optional[Mapping[str, Any]] = None,
    remediation: Optional[str] = None,
) -> ToolResponse:
    """Create a validation error response (HTTP 400 analog)."""
    return error_response(
        message,
        data=data,
        error_code=ErrorCode.VALIDATION_ERROR,
        error_type=ErrorType.VALIDATION,
        details={"field": field},
        remediation=remediation,
    )


def not_found_error(
    resource_type: str,
    resource_id: str,
    *,
    message: str,
    data: Optional[Mapping[str, Any]] = None,
    remediation: Optional[str] = None,
) -> ToolResponse:
    """Create a not found error response (HTTP 404 analog).

    Args:
        resource_type: Type of resource (e.g., "Research request").
        resource_id: Identifier of the missing resource.
        message: Error message shown to the caller.
        data: Extra payload merged into ``data``.
        remediation: Guidance on how to resolve (defaults to verification hint).
    """
    payload: Dict[str, Any] = {
        "resource_type": resource_type,
        "resource_id": resource_id,
    }
    if data:
        payload.update(dict(data))

    return error_response(
        message,
        error_code=ErrorCode.NOT_FOUND,
        error_type=ErrorType.NOT_FOUND,
        data=payload,
        remediation=remediation or f"Verify the {resource_type.lower()} ID exists.",
    )


def internal_error(
    message: str,
    *,
    data: Optional[Mapping[str, Any]] = None,
) -> ToolResponse:
    """Create an internal error response (HTTP 500 analog)."""
    return error_response(
        message,
        data=data,
        error_code=ErrorCode.INTERNAL_ERROR,
        error_type=ErrorType.INTERNAL,
        remediation="Check server logs for details and retry.",
    )


def sanitize_error_message(exc: Exception, context: str) -> str:
    """
    Convert an unexpected exception to a user-safe message.

    The full exception is logged server-side; the caller only sees a
    generic description and the exception type, without paths or state.

    Args:
        exc: The exception to sanitize
        context: Operation name for the debug log (e.g., "get results")

    Returns:
        User-safe error message
    """
    logger.debug(f"Error in {context}: {exc}", exc_info=True)

    type_name = type(exc).__name__

    if isinstance(exc, json.JSONDecodeError):
        return "Invalid JSON format"
    if isinstance(exc, TimeoutError):
        return "Operation timed out"
    if isinstance(exc, ValueError):
        return f"Invalid value provided ({type_name})"
    if isinstance(exc, KeyError):
        return "Required key not found"
    if isinstance(exc, ConnectionError):
        return "Connection failed - service may be unavailable"

    return f"An internal error occurred ({type_name})"
