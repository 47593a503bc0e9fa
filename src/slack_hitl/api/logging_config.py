"""structlog configuration for the stdio server and the CLI.

All log output goes to stderr: stdout carries the MCP protocol.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog


def configure_logging(level: str = "INFO", log_format: str = "console") -> None:
    """Route structlog through stdlib logging on stderr.

    Args:
        level: Standard logging level name.
        log_format: ``console`` for human-readable lines, ``json`` for one
            JSON object per line.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(level=numeric_level, stream=sys.stderr, format="%(message)s", force=True)
    # slack_sdk logs every websocket frame at DEBUG.
    logging.getLogger("slack_sdk").setLevel(max(numeric_level, logging.WARNING))

    if log_format == "json":
        renderers: list[Any] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=False)]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            *renderers,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )
