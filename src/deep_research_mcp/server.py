"""FastMCP server for deep-research-mcp.

Exposes three tools over stdio that create, poll and read long-running
OpenAI deep research requests. Requests are tracked in memory for the
lifetime of the process.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from mcp.server.fastmcp import FastMCP

from deep_research_mcp.config import ServerConfig, get_config
from deep_research_mcp.tools import register_tools

logger = logging.getLogger(__name__)


def create_server(config: Optional[ServerConfig] = None) -> FastMCP:
    """Create and configure the FastMCP server instance."""

    if config is None:
        config = get_config()

    config.setup_logging()

    if not config.engine.has_credentials:
        # Only create calls need the key; status and results still work
        logger.warning(
            "OPENAI_API_KEY is not set; research requests will fail to start"
        )

    mcp = FastMCP(name=config.server_name)
    register_tools(mcp, config)

    logger.info("Server created: %s v%s", config.server_name, config.server_version)
    return mcp


def main() -> None:
    """Main entry point for the deep-research-mcp server."""

    try:
        config = get_config()
        server = create_server(config)

        logger.info("Starting %s v%s", config.server_name, config.server_version)
        server.run()

    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
        sys.exit(0)
    except Exception as exc:
        logger.error("Server error: %s: %s", type(exc).__name__, exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
