"""Serve command - run the stdio MCP server."""

from __future__ import annotations

import asyncio
from typing import Optional

import typer

from slack_hitl.api.cli.options import (
    AppTokenOption,
    BotTokenOption,
    ChannelOption,
    TimeoutOption,
    TransportOption,
    UserOption,
    err_console,
    require_slack,
    resolve_settings,
)


def serve(
    ctx: typer.Context,
    slack_bot_token: Optional[str] = BotTokenOption,
    slack_app_token: Optional[str] = AppTokenOption,
    slack_channel_id: Optional[str] = ChannelOption,
    slack_user_id: Optional[str] = UserOption,
    transport: Optional[str] = TransportOption,
    timeout: Optional[float] = TimeoutOption,
) -> None:
    """Run the Human-in-the-Loop MCP server on stdio."""
    from slack_hitl.api.mcp_server import run_server

    settings = resolve_settings(
        ctx,
        slack_bot_token=slack_bot_token,
        slack_app_token=slack_app_token,
        slack_channel_id=slack_channel_id,
        slack_user_id=slack_user_id,
        transport=transport,
        answer_timeout_seconds=timeout,
    )
    require_slack(settings)

    try:
        asyncio.run(run_server(settings))
    except KeyboardInterrupt:
        err_console.print("[yellow]Server stopped.[/yellow]")
