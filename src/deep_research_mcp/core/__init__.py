"""Core infrastructure for deep-research-mcp: context, logging, responses and research jobs."""
