"""Human-in-the-loop MCP server that asks people questions on Slack."""

__version__ = "0.1.0"
