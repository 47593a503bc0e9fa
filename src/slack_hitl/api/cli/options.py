"""Shared CLI options and settings resolution."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console

from slack_hitl.api.logging_config import configure_logging
from slack_hitl.application.settings import HitlSettings, load_settings
from slack_hitl.core.domain.errors import ConfigError

# Logs and errors go to stderr; stdout is reserved for answers and MCP traffic.
err_console = Console(stderr=True)

BotTokenOption = typer.Option(None, "--slack-bot-token", help="Slack bot token (xoxb-...)")
AppTokenOption = typer.Option(
    None, "--slack-app-token", help="Slack app token for Socket Mode (xapp-...)"
)
ChannelOption = typer.Option(None, "--slack-channel-id", help="Slack channel ID (C...)")
UserOption = typer.Option(None, "--slack-user-id", help="Slack user ID (U...)")
TransportOption = typer.Option(
    None, "--transport", "-t", help="Transport: auto, socket, or polling"
)
TimeoutOption = typer.Option(
    None, "--timeout", help="Seconds to wait for an answer (default 60)"
)


def resolve_settings(ctx: typer.Context, **overrides: Any) -> HitlSettings:
    """Merge global options, environment and command overrides; exit on error."""
    global_opts = ctx.obj or {}
    config_path: Optional[Path] = global_opts.get("config")
    merged = {
        "log_level": global_opts.get("log_level"),
        "log_format": global_opts.get("log_format"),
        **overrides,
    }
    try:
        settings = load_settings(config_path, overrides=merged)
    except ConfigError as exc:
        err_console.print(f"[red]Configuration error:[/red] {exc.message}")
        raise typer.Exit(2) from exc

    configure_logging(settings.log_level, settings.log_format)
    return settings


def require_slack(settings: HitlSettings) -> None:
    """Exit with a readable message if Slack settings are incomplete."""
    try:
        settings.validate_required()
    except ConfigError as exc:
        err_console.print(f"[red]{exc.message}[/red]")
        err_console.print(
            "Set them with CLI options, environment variables "
            "(SLACK_BOT_TOKEN, SLACK_APP_TOKEN, SLACK_CHANNEL_ID, SLACK_USER_ID) "
            "or a --config file."
        )
        raise typer.Exit(2) from exc
