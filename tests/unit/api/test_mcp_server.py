"""Tests for the MCP server tool surface."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from mcp import types

from slack_hitl.api.mcp_server import (
    ASK_TOOL_NAME,
    SERVER_NAME,
    TOOLS,
    create_server,
    handle_ask_on_slack,
    run_server,
)
from slack_hitl.application.settings import HitlSettings
from slack_hitl.core.domain.errors import (
    ConfigError,
    NotReadyError,
    QuestionTimeoutError,
    SendFailedError,
)


def _human(answer: str = "it's abc123", error: Exception | None = None) -> MagicMock:
    human = MagicMock()
    human.ask = AsyncMock(return_value=answer, side_effect=error)
    return human


def _text(result: types.CallToolResult) -> str:
    return result.content[0].text


# ---------------------------------------------------------------------------
# Tool definition
# ---------------------------------------------------------------------------


def test_single_tool_with_required_question():
    assert [tool.name for tool in TOOLS] == ["ask_on_slack"]
    schema = TOOLS[0].inputSchema
    assert schema["required"] == ["question"]
    assert schema["properties"]["question"]["type"] == "string"


def test_server_name():
    server = create_server(_human())
    assert server.name == SERVER_NAME == "Human in the loop - Slack"


@pytest.mark.asyncio
async def test_list_tools_handler():
    server = create_server(_human())
    handler = server.request_handlers[types.ListToolsRequest]

    result = await handler(types.ListToolsRequest(method="tools/list"))

    assert [tool.name for tool in result.root.tools] == [ASK_TOOL_NAME]


# ---------------------------------------------------------------------------
# ask_on_slack
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_answer_is_returned_as_text():
    human = _human("it's abc123")

    result = await handle_ask_on_slack(human, {"question": "What's the API key?"})

    assert not result.isError
    assert _text(result) == "it's abc123"
    human.ask.assert_awaited_once_with("What's the API key?")


@pytest.mark.asyncio
@pytest.mark.parametrize("arguments", [{}, {"question": ""}, {"question": "   "}, {"question": 7}, None])
async def test_missing_question(arguments):
    human = _human()

    result = await handle_ask_on_slack(human, arguments)

    assert result.isError
    assert _text(result) == "Error: Missing required parameter: question"
    human.ask.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("error", "message"),
    [
        (
            QuestionTimeoutError("Timeout waiting for human response in Slack", timeout_seconds=60),
            "Timeout waiting for human response in Slack",
        ),
        (NotReadyError("Slack connection is not ready"), "Slack connection is not ready"),
        (SendFailedError("Failed to send message: channel_not_found"), "Failed to send message"),
    ],
    ids=["timeout", "not_ready", "send_failed"],
)
async def test_failures_become_error_results(error, message):
    result = await handle_ask_on_slack(_human(error=error), {"question": "q"})

    assert result.isError
    assert _text(result).startswith("Error asking human: ")
    assert message in _text(result)


# ---------------------------------------------------------------------------
# call_tool handler registered on the server
# ---------------------------------------------------------------------------


async def _call(server, name: str, arguments: dict) -> types.CallToolResult:
    handler = server.request_handlers[types.CallToolRequest]
    request = types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name=name, arguments=arguments),
    )
    response = await handler(request)
    return response.root


@pytest.mark.asyncio
async def test_call_tool_returns_answer():
    human = _human("it's abc123")
    server = create_server(human)

    result = await _call(server, ASK_TOOL_NAME, {"question": "What's the API key?"})

    assert result.isError is False
    assert _text(result) == "it's abc123"
    human.ask.assert_awaited_once_with("What's the API key?")


@pytest.mark.asyncio
async def test_call_tool_reports_timeout():
    error = QuestionTimeoutError("Timeout waiting for human response in Slack", timeout_seconds=60)
    server = create_server(_human(error=error))

    result = await _call(server, ASK_TOOL_NAME, {"question": "Anyone?"})

    assert result.isError is True
    assert _text(result) == "Error asking human: Timeout waiting for human response in Slack"


@pytest.mark.asyncio
async def test_call_tool_contains_unexpected_errors():
    server = create_server(_human(error=RuntimeError("boom")))

    result = await _call(server, ASK_TOOL_NAME, {"question": "q"})

    assert result.isError is True
    assert "boom" in _text(result)


@pytest.mark.asyncio
async def test_call_tool_rejects_unknown_tool():
    human = _human()
    server = create_server(human)

    result = await _call(server, "ask_on_discord", {"question": "q"})

    assert result.isError is True
    assert _text(result) == "Error: Unknown tool: ask_on_discord"
    human.ask.assert_not_awaited()


# ---------------------------------------------------------------------------
# run_server
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_run_server_requires_slack_settings():
    with pytest.raises(ConfigError, match="slack_bot_token"):
        await run_server(HitlSettings())
