"""Request context propagation for tool invocations.

Every MCP tool call runs inside a request context that carries a
correlation ID. The ID is attached to log records by
``logging_config.ContextFilter`` and echoed back to the caller in the
``meta.request_id`` field of the response envelope.

Correlation IDs use the ``corr_`` prefix so they cannot be mistaken for the
``req_`` research request IDs carried in ``data.request_id``.

Usage:
    from deep_research_mcp.core.context import request_context, get_correlation_id

    async with request_context() as ctx:
        print(ctx.correlation_id)  # e.g., "corr_a1b2c3d4e5f6"
"""

from __future__ import annotations

import secrets
import time
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import AsyncGenerator, Optional

__all__ = [
    "CORRELATION_ID_PREFIX",
    "correlation_id_var",
    "start_time_var",
    "RequestContext",
    "generate_correlation_id",
    "request_context",
    "get_correlation_id",
    "get_start_time",
]

CORRELATION_ID_PREFIX = "corr"

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
"""Request correlation ID for tracing requests across components."""

start_time_var: ContextVar[float] = ContextVar("start_time", default=0.0)
"""Request start time as Unix timestamp."""


@dataclass(frozen=True)
class RequestContext:
    """Snapshot of the current request context.

    Attributes:
        correlation_id: Unique ID for this tool call
        start_time: Unix timestamp when the call started
    """

    correlation_id: str
    start_time: float = 0.0


def generate_correlation_id() -> str:
    """Generate a new correlation ID of the form ``corr_<12 hex chars>``."""
    return f"{CORRELATION_ID_PREFIX}_{secrets.token_hex(6)}"


@asynccontextmanager
async def request_context(
    correlation_id: Optional[str] = None,
) -> AsyncGenerator[RequestContext, None]:
    """Set up request context for one tool call.

    Args:
        correlation_id: Explicit correlation ID (generated if omitted)

    Yields:
        The active RequestContext
    """
    ctx = RequestContext(
        correlation_id=correlation_id or generate_correlation_id(),
        start_time=time.time(),
    )
    id_token = correlation_id_var.set(ctx.correlation_id)
    time_token = start_time_var.set(ctx.start_time)
    try:
        yield ctx
    finally:
        start_time_var.reset(time_token)
        correlation_id_var.reset(id_token)


def get_correlation_id() -> str:
    """Return the current correlation ID, or an empty string outside a request."""
    return correlation_id_var.get()


def get_start_time() -> float:
    """Return the current request start time (0.0 outside a request)."""
    return start_time_var.get()
