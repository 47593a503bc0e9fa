"""Human-in-the-Loop Slack CLI entry point."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from slack_hitl.api.cli.commands import ask, config, serve

app = typer.Typer(
    name="human-in-the-loop-slack",
    help="Human-in-the-Loop Slack MCP Server - lets AI assistants ask humans via Slack",
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

app.command("serve")(serve.serve)
app.command("ask")(ask.ask)
app.command("config")(config.show_config)


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML settings file", exists=True, dir_okay=False
    ),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", "-l", help="Log level (DEBUG, INFO, WARN, ERROR)"
    ),
    log_format: Optional[str] = typer.Option(None, "--log-format", help="console or json"),
):
    """Human-in-the-Loop Slack CLI."""
    # Store global options in context for subcommands
    ctx.obj = {"config": config_path, "log_level": log_level, "log_format": log_format}


@app.command()
def version():
    """Show version."""
    from slack_hitl import __version__

    console.print(f"[bold blue]Version:[/bold blue] [cyan]{__version__}[/cyan]")


if __name__ == "__main__":
    app()
