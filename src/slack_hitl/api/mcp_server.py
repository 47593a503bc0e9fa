"""Human-in-the-Loop Slack MCP Server.

Provides one tool:
- ask_on_slack: post a question to the configured Slack channel, tag the
  configured user, and return their threaded reply.

The Slack connection is opened lazily on the first tool call.
"""

from __future__ import annotations

from typing import Any

import structlog
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import CallToolResult, TextContent, Tool

from slack_hitl import __version__
from slack_hitl.application.factory import build_service
from slack_hitl.application.service import HumanInSlack
from slack_hitl.application.settings import HitlSettings
from slack_hitl.core.domain.errors import HitlError

logger = structlog.get_logger(__name__)

SERVER_NAME = "Human in the loop - Slack"
ASK_TOOL_NAME = "ask_on_slack"

TOOLS = [
    Tool(
        name=ASK_TOOL_NAME,
        description=(
            "Ask a human for information that only they would know.\n\n"
            "Use this tool when you need information such as:\n"
            "- Personal preferences\n"
            "- Project-specific context\n"
            "- Local environment details\n"
            "- Non-public information"
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "question": {
                    "type": "string",
                    "description": "The question to ask the human. Be specific and provide context.",
                }
            },
            "required": ["question"],
        },
    ),
]


def _text_result(text: str, *, is_error: bool = False) -> CallToolResult:
    return CallToolResult(content=[TextContent(type="text", text=text)], isError=is_error)


async def handle_ask_on_slack(human: HumanInSlack, arguments: dict[str, Any]) -> CallToolResult:
    """Handle an ask_on_slack tool call."""
    question = (arguments or {}).get("question")
    if not isinstance(question, str) or not question.strip():
        return _text_result("Error: Missing required parameter: question", is_error=True)

    try:
        answer = await human.ask(question)
    except HitlError as exc:
        logger.warning("tool_failed", tool=ASK_TOOL_NAME, code=exc.code, error=exc.message)
        return _text_result(f"Error asking human: {exc.message}", is_error=True)

    return _text_result(answer)


def create_server(human: HumanInSlack) -> Server:
    """Create an MCP server whose tools are backed by ``human``."""
    server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """Return list of available tools."""
        return TOOLS

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> CallToolResult:
        """Execute a tool and return results."""
        logger.info("tool_called", tool=name)

        if name != ASK_TOOL_NAME:
            return _text_result(f"Error: Unknown tool: {name}", is_error=True)

        try:
            result = await handle_ask_on_slack(human, arguments)
        except Exception as e:
            logger.exception("tool_error", tool=name, error=str(e))
            return _text_result(f"Error asking human: {e}", is_error=True)

        logger.info("tool_completed", tool=name, success=not result.isError)
        return result

    return server


async def run_server(settings: HitlSettings) -> None:
    """Run the MCP server on stdio until the client disconnects."""
    settings.validate_required()
    human = build_service(settings)
    server = create_server(human)

    logger.info(
        "starting_human_in_the_loop_mcp_server",
        channel=settings.slack_channel_id,
        transport=settings.resolved_transport.value,
    )
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        await human.stop()
