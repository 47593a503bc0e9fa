"""Ask command - post one question from the terminal and print the answer."""

from __future__ import annotations

import asyncio
from typing import Optional

import typer
from rich.console import Console

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
from slack_hitl.application.factory import build_service
from slack_hitl.application.settings import HitlSettings
from slack_hitl.core.domain.errors import HitlError

console = Console()


def ask(
    ctx: typer.Context,
    question: str = typer.Argument(..., help="Question to ask"),
    slack_bot_token: Optional[str] = BotTokenOption,
    slack_app_token: Optional[str] = AppTokenOption,
    slack_channel_id: Optional[str] = ChannelOption,
    slack_user_id: Optional[str] = UserOption,
    transport: Optional[str] = TransportOption,
    timeout: Optional[float] = TimeoutOption,
) -> None:
    """Ask the configured user a question on Slack and print the reply."""
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
        answer = asyncio.run(_ask(settings, question))
    except HitlError as exc:
        err_console.print(f"[red]Error asking human ({exc.code}):[/red] {exc.message}")
        raise typer.Exit(1) from exc

    console.print(answer, markup=False, highlight=False)


async def _ask(settings: HitlSettings, question: str) -> str:
    human = build_service(settings)
    err_console.print(
        f"[dim]Waiting up to {settings.answer_timeout_seconds:.0f}s for "
        f"{settings.slack_user_id} in {settings.slack_channel_id}...[/dim]"
    )
    try:
        return await human.ask(question)
    finally:
        await human.stop()
