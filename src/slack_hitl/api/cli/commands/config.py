"""Config command - show the effective configuration."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from slack_hitl.api.cli.options import resolve_settings

console = Console()


def show_config(ctx: typer.Context) -> None:
    """Show the effective settings (tokens masked)."""
    settings = resolve_settings(ctx)

    table = Table(title="Human-in-the-Loop Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")

    for key, value in settings.masked().items():
        display = "" if value is None else str(value)
        table.add_row(key, display or "[dim](not set)[/dim]")

    console.print(table)
