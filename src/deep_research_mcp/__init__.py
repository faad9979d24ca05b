"""Deep Research MCP - MCP server for OpenAI deep research requests."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("deep-research-mcp")
except PackageNotFoundError:
    # Package not installed (development mode without editable install)
    __version__ = "1.0.0"

from deep_research_mcp.server import create_server, main

__all__ = ["__version__", "create_server", "main"]
