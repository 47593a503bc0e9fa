"""
Settings
========

Resolves the server configuration from, in increasing precedence:

1. built-in defaults,
2. an optional YAML file,
3. environment variables,
4. explicit overrides (CLI options).

The merged values are validated with a Pydantic model so errors name the
offending field.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from slack_hitl.core.domain.errors import ConfigError

logger = structlog.get_logger(__name__)

# Environment variable -> settings field
ENV_VARS: dict[str, str] = {
    "SLACK_BOT_TOKEN": "slack_bot_token",
    "SLACK_APP_TOKEN": "slack_app_token",
    "SLACK_CHANNEL_ID": "slack_channel_id",
    "SLACK_USER_ID": "slack_user_id",
    "HITL_TRANSPORT": "transport",
    "HITL_LOG_LEVEL": "log_level",
    "HITL_LOG_FORMAT": "log_format",
    "HITL_ANSWER_TIMEOUT": "answer_timeout_seconds",
}

_SECRET_FIELDS = ("slack_bot_token", "slack_app_token")


class TransportMode(str, Enum):
    """How inbound replies are received."""

    AUTO = "auto"
    SOCKET = "socket"
    POLLING = "polling"


class HitlSettings(BaseModel):
    """Validated server settings."""

    model_config = ConfigDict(extra="forbid")

    slack_bot_token: str = Field("", description="Bot token (xoxb-...)")
    slack_app_token: str = Field("", description="App-level token for Socket Mode (xapp-...)")
    slack_channel_id: str = Field("", description="Channel questions are posted to (C...)")
    slack_user_id: str = Field("", description="User expected to answer (U...)")
    transport: TransportMode = Field(
        TransportMode.AUTO,
        description="socket, polling, or auto (socket when an app token is set)",
    )
    answer_timeout_seconds: float = Field(60.0, gt=0)
    poll_interval_seconds: float = Field(2.0, gt=0)
    connect_timeout_seconds: float = Field(5.0, ge=0)
    ready_wait_seconds: float = Field(10.0, ge=0)
    log_level: str = Field("INFO")
    log_format: str = Field("console", pattern="^(console|json)$")

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level == "WARN":
            level = "WARNING"
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return level

    @property
    def resolved_transport(self) -> TransportMode:
        if self.transport is TransportMode.AUTO:
            return TransportMode.SOCKET if self.slack_app_token else TransportMode.POLLING
        return self.transport

    def validate_required(self) -> None:
        """Check that everything needed to talk to Slack is present.

        Raises:
            ConfigError: Listing every missing value.
        """
        missing = [
            name
            for name in ("slack_bot_token", "slack_channel_id", "slack_user_id")
            if not getattr(self, name)
        ]
        if self.resolved_transport is TransportMode.SOCKET and not self.slack_app_token:
            missing.append("slack_app_token")
        if missing:
            raise ConfigError(
                "Missing required settings: " + ", ".join(missing),
                details={"missing": missing},
            )

    def masked(self) -> dict[str, Any]:
        """Settings as a dict with tokens shortened for display."""
        data = self.model_dump(mode="json")
        for name in _SECRET_FIELDS:
            data[name] = mask_token(data[name])
        data["resolved_transport"] = self.resolved_transport.value
        return data


def mask_token(token: str) -> str:
    """Shorten a token to its first 10 and last 5 characters."""
    if not token:
        return ""
    if len(token) <= 15:
        return "*" * len(token)
    return f"{token[:10]}...{token[-5:]}"


def load_settings(
    config_path: Path | str | None = None,
    *,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> HitlSettings:
    """Build settings from file, environment, and overrides.

    Args:
        config_path: Optional YAML file with settings keys at top level.
        overrides: Explicit values; ``None`` entries are ignored.
        environ: Environment mapping, defaults to ``os.environ``.

    Returns:
        Validated settings. Required Slack values are not checked here; call
        ``validate_required`` before connecting.

    Raises:
        ConfigError: If the file cannot be read or a value is invalid.
    """
    values: dict[str, Any] = {}

    if config_path is not None:
        values.update(_load_yaml(Path(config_path)))

    env = os.environ if environ is None else environ
    for var, name in ENV_VARS.items():
        if env.get(var):
            values[name] = env[var]

    for name, value in (overrides or {}).items():
        if value is not None:
            values[name] = value

    try:
        settings = HitlSettings(**values)
    except ValidationError as exc:
        raise ConfigError(
            f"Invalid configuration: {exc}",
            details={"errors": exc.errors(include_url=False)},
        ) from exc

    logger.debug("settings.loaded", source=str(config_path) if config_path else None)
    return settings


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}", details={"path": str(path)})
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}", details={"path": str(path)}) from exc
    if not isinstance(data, dict):
        raise ConfigError(
            f"Config file must contain a mapping: {path}", details={"path": str(path)}
        )
    return data
