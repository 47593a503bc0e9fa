"""Caller-facing surfaces: MCP server and CLI."""
