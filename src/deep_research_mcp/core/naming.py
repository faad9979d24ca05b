"""Naming helpers for MCP tool registration."""

from __future__ import annotations

import functools
import json
import logging
import time
from typing import Any, Awaitable, Callable

from mcp.server.fastmcp import FastMCP
from mcp.types import TextContent

from deep_research_mcp.core.context import request_context

logger = logging.getLogger(__name__)

ToolHandler = Callable[..., Awaitable[dict[str, Any]]]


def _minify_response(result: dict[str, Any]) -> TextContent:
    """Convert dict to TextContent with minified JSON.

    Args:
        result: Dictionary to serialize

    Returns:
        TextContent with minified JSON string
    """
    return TextContent(
        type="text",
        text=json.dumps(result, separators=(",", ":"), default=str),
    )


def canonical_tool(
    mcp: FastMCP,
    *,
    canonical_name: str,
    **tool_kwargs: Any,
) -> Callable[[ToolHandler], Callable[..., Awaitable[TextContent]]]:
    """Decorator that registers an async tool under its canonical name.

    This decorator wraps the tool function to:
    1. Run it inside a fresh request context (correlation ID)
    2. Serialize the envelope dict as minified JSON text content
    3. Log duration and any escaping exception
    4. Register it with FastMCP under the canonical name

    Args:
        mcp: FastMCP instance
        canonical_name: The canonical name for the tool
        **tool_kwargs: Additional kwargs passed to mcp.tool()

    Returns:
        Decorated function registered as an MCP tool
    """

    def decorator(func: ToolHandler) -> Callable[..., Awaitable[TextContent]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> TextContent:
            async with request_context():
                start_time = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _log_tool_error(canonical_name, e, start_time)
                    raise
                _log_tool_call(canonical_name, start_time)
                return _minify_response(result)

        return mcp.tool(name=canonical_name, **tool_kwargs)(wrapper)

    return decorator


def _log_tool_call(tool_name: str, start_time: float) -> None:
    duration_ms = (time.perf_counter() - start_time) * 1000
    logger.debug(
        "Tool %s completed in %.1fms",
        tool_name,
        duration_ms,
        extra={"tool": tool_name, "duration_ms": round(duration_ms, 2)},
    )


def _log_tool_error(tool_name: str, error: Exception, start_time: float) -> None:
    duration_ms = (time.perf_counter() - start_time) * 1000
    logger.error(
        "Tool %s raised %s after %.1fms: %s",
        tool_name,
        type(error).__name__,
        duration_ms,
        error,
        extra={"tool": tool_name, "duration_ms": round(duration_ms, 2)},
    )
