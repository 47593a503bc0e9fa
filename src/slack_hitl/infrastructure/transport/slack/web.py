"""Slack Web API plumbing shared by the Socket Mode and polling transports."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

import aiohttp
import structlog
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from slack_hitl.core.domain.errors import ConfigError, TransportError
from slack_hitl.infrastructure.transport.base import QueuedEventFeed

logger = structlog.get_logger(__name__)

# Slack error codes with an actionable explanation.
_AUTH_ERROR_HINTS: dict[str, str] = {
    "invalid_auth": "Invalid bot token. Please check your SLACK_BOT_TOKEN.",
    "not_authed": "No bot token provided. Please set SLACK_BOT_TOKEN.",
    "account_inactive": "The bot token belongs to a deactivated app or user.",
    "token_revoked": "The bot token has been revoked.",
}


@dataclass(frozen=True)
class SlackIdentity:
    """Who the bot is, as reported by ``auth.test``."""

    user_id: str
    user: str
    team: str


def slack_error_code(exc: SlackApiError) -> str:
    """Extract the Slack ``error`` field from an API exception."""
    response = getattr(exc, "response", None)
    if response is None:
        return "unknown_error"
    try:
        return str(response.get("error") or "unknown_error")
    except AttributeError:
        return "unknown_error"


class SlackWebTransport(QueuedEventFeed):
    """Sends through ``chat.postMessage`` and tracks readiness.

    Subclasses decide how inbound events reach the queue.
    """

    mode = "web"

    def __init__(
        self,
        *,
        bot_token: str,
        web_client: AsyncWebClient | None = None,
    ) -> None:
        super().__init__()
        self._bot_token = bot_token
        self._web = web_client or AsyncWebClient(token=bot_token)
        self._identity: SlackIdentity | None = None
        self._ready = False
        self._started = False

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def identity(self) -> SlackIdentity | None:
        return self._identity

    @property
    def web_client(self) -> AsyncWebClient:
        return self._web

    async def authenticate(self) -> SlackIdentity:
        """Call ``auth.test`` and remember the bot identity.

        Raises:
            ConfigError: If Slack rejects the token.
            TransportError: If Slack cannot be reached.
        """
        logger.info("slack.auth_testing", mode=self.mode)
        try:
            response = await self._web.auth_test()
        except SlackApiError as exc:
            code = slack_error_code(exc)
            logger.error("slack.auth_failed", error=code)
            hint = _AUTH_ERROR_HINTS.get(code, f"Auth test failed: {code}")
            raise ConfigError(hint, details={"slack_error": code}) from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.error("slack.auth_unreachable", error=str(exc))
            raise TransportError(f"Slack is unreachable: {exc}") from exc

        self._identity = SlackIdentity(
            user_id=str(response.get("user_id") or ""),
            user=str(response.get("user") or ""),
            team=str(response.get("team") or ""),
        )
        logger.info(
            "slack.bot_ready",
            user=self._identity.user,
            team=self._identity.team,
        )
        return self._identity

    async def send(self, *, text: str, destination: str) -> str:
        """Post a message and return its ``ts``.

        Raises:
            TransportError: With Slack's error code on rejection.
        """
        try:
            response = await self._web.chat_postMessage(channel=destination, text=text)
        except SlackApiError as exc:
            code = slack_error_code(exc)
            raise TransportError(code, details={"slack_error": code, "channel": destination}) from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TransportError(str(exc) or type(exc).__name__, details={"channel": destination}) from exc

        ts = response.get("ts")
        if not ts:
            raise TransportError("chat.postMessage returned no ts", details={"channel": destination})
        self._on_sent(destination, str(ts))
        return str(ts)

    def _on_sent(self, destination: str, ts: str) -> None:
        """Hook for subclasses that need to know about outbound messages."""

    @property
    def self_user_id(self) -> str | None:
        return self._identity.user_id if self._identity else None
