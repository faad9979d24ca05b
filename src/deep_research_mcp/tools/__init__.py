"""MCP tools for deep research requests."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .research import register_research_tools

if TYPE_CHECKING:  # pragma: no cover - import-time typing only
    from mcp.server.fastmcp import FastMCP
    from deep_research_mcp.config import ServerConfig


def register_tools(mcp: "FastMCP", config: "ServerConfig") -> None:
    """Register every tool exposed by the server."""
    register_research_tools(mcp, config)


__all__ = [
    "register_tools",
    "register_research_tools",
]
