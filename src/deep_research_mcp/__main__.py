"""Allow ``python -m deep_research_mcp``."""

from deep_research_mcp.server import main

main()
