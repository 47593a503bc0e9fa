"""Slack Socket Mode transport.

Inbound ``message`` events are pushed over a websocket by Slack. Every
envelope is acknowledged before it is parsed so Slack never redelivers
because of slow processing downstream.

Usage::

    transport = SlackSocketModeTransport(bot_token="xoxb-...", app_token="xapp-...")
    await transport.start()
    ts = await transport.send(text="hello", destination="C123")
    async for event in transport.events():
        ...
    await transport.stop()
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

import structlog
from slack_sdk.socket_mode.aiohttp import SocketModeClient
from slack_sdk.socket_mode.request import SocketModeRequest
from slack_sdk.socket_mode.response import SocketModeResponse
from slack_sdk.web.async_client import AsyncWebClient

from slack_hitl.core.domain.errors import ConfigError, TransportError
from slack_hitl.infrastructure.transport.slack.events import parse_message_event
from slack_hitl.infrastructure.transport.slack.web import SlackWebTransport

logger = structlog.get_logger(__name__)

# Substrings of Socket Mode start failures -> explanation for the operator.
_SOCKET_ERROR_HINTS: tuple[tuple[str, str], ...] = (
    ("invalid_auth", "Invalid app token. Please check your SLACK_APP_TOKEN."),
    (
        "not_allowed_token_type",
        "App token must be an app-level token (xapp-). Please check your SLACK_APP_TOKEN.",
    ),
    (
        "server explicit disconnect",
        "Socket Mode connection rejected. Please verify: 1) Socket Mode is enabled "
        "in your Slack app, 2) App token has connections:write scope, "
        "3) Event subscriptions are configured.",
    ),
)


class SlackSocketModeTransport(SlackWebTransport):
    """Push-based transport over Slack Socket Mode."""

    mode = "socket"

    def __init__(
        self,
        *,
        bot_token: str,
        app_token: str,
        web_client: AsyncWebClient | None = None,
        socket_client: SocketModeClient | None = None,
        connect_timeout: float = 5.0,
        monitor_interval: float = 5.0,
    ) -> None:
        super().__init__(bot_token=bot_token, web_client=web_client)
        self._app_token = app_token
        self._socket_client = socket_client
        self._connect_timeout = connect_timeout
        self._monitor_interval = monitor_interval
        self._monitor_task: asyncio.Task[None] | None = None

    @property
    def _socket(self) -> SocketModeClient:
        # The aiohttp client schedules work on construction, so it is built
        # lazily from inside the running loop.
        if self._socket_client is None:
            self._socket_client = SocketModeClient(app_token=self._app_token, web_client=self._web)
        if self._on_request not in self._socket_client.socket_mode_request_listeners:
            self._socket_client.socket_mode_request_listeners.append(self._on_request)
        return self._socket_client

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Authenticate, open the websocket and start the connection monitor."""
        if self._started:
            return
        await self.authenticate()

        logger.info("socket_mode.starting")
        try:
            await self._socket.connect()
        except Exception as exc:
            raise self._translate_start_error(exc) from exc

        if not await self._wait_connected(self._connect_timeout):
            # Slack sometimes reports the session late; keep going.
            logger.warning(
                "socket_mode.connect_timeout_proceeding",
                timeout_s=self._connect_timeout,
            )

        self._started = True
        self._ready = True
        self._monitor_task = asyncio.create_task(
            self._monitor_connection(), name="slack-socket-monitor"
        )
        logger.info("socket_mode.started")

    async def stop(self) -> None:
        """Stop monitoring and close the websocket."""
        if self._monitor_task is not None:
            self._monitor_task.cancel()
            try:
                await self._monitor_task
            except asyncio.CancelledError:
                pass
            self._monitor_task = None
        if self._socket_client is not None:
            try:
                await self._socket_client.disconnect()
                await self._socket_client.close()
            except Exception as exc:
                logger.warning("socket_mode.close_failed", error=str(exc))
        self._ready = False
        self._started = False
        logger.info("socket_mode.stopped")

    async def ensure_ready(self, wait_seconds: float) -> bool:
        """Reconnect the websocket if it dropped, waiting up to ``wait_seconds``."""
        if not self._started:
            await self.start()
            return self._ready
        if await self._is_connected():
            self._ready = True
            return True

        logger.info("socket_mode.reconnecting")
        try:
            await self._socket.connect()
        except Exception as exc:
            logger.error("socket_mode.reconnect_failed", error=str(exc))
            return False

        self._ready = await self._wait_connected(wait_seconds)
        if not self._ready:
            logger.warning("socket_mode.reconnect_timeout", timeout_s=wait_seconds)
        return self._ready

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def _on_request(self, client: SocketModeClient, req: SocketModeRequest) -> None:
        """Acknowledge the envelope, then queue its message event."""
        started = time.monotonic()
        await client.send_socket_mode_response(SocketModeResponse(envelope_id=req.envelope_id))
        ack_ms = (time.monotonic() - started) * 1000
        if ack_ms > 10:
            logger.warning("socket_mode.slow_ack", ack_ms=round(ack_ms))

        if req.type != "events_api":
            return
        raw: Any = (req.payload or {}).get("event")
        try:
            event = parse_message_event(raw, self_user_id=self.self_user_id)
        except ValueError as exc:
            logger.warning("socket_mode.malformed_event", error=str(exc))
            return
        if event is not None:
            self.publish(event)

    # ------------------------------------------------------------------
    # Connection state
    # ------------------------------------------------------------------

    async def _is_connected(self) -> bool:
        try:
            return bool(await self._socket.is_connected())
        except Exception:
            return False

    async def _wait_connected(self, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        while True:
            if await self._is_connected():
                logger.info("socket_mode.connected")
                return True
            if time.monotonic() >= deadline:
                return False
            await asyncio.sleep(0.05)

    async def _monitor_connection(self) -> None:
        while True:
            await asyncio.sleep(self._monitor_interval)
            connected = await self._is_connected()
            if connected != self._ready:
                if connected:
                    logger.info("socket_mode.connection_restored")
                else:
                    logger.warning("socket_mode.connection_lost")
            self._ready = connected

    @staticmethod
    def _translate_start_error(exc: Exception) -> Exception:
        text = str(exc)
        for needle, hint in _SOCKET_ERROR_HINTS:
            if needle in text:
                logger.error("socket_mode.start_failed", error=text, hint=hint)
                return ConfigError(hint, details={"error": text})
        logger.error("socket_mode.start_failed", error=text)
        return TransportError(f"Failed to start Socket Mode: {text}")
