"""Tests for the Slack Socket Mode transport with mocked Slack clients."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from slack_sdk.errors import SlackApiError

from slack_hitl.core.domain.errors import ConfigError, TransportError
from slack_hitl.infrastructure.transport.slack.socket_mode import SlackSocketModeTransport


def _web_client() -> AsyncMock:
    web = AsyncMock()
    web.auth_test.return_value = {"ok": True, "user_id": "UBOT", "user": "hitl", "team": "acme"}
    web.chat_postMessage.return_value = {"ok": True, "ts": "1700000000.000100"}
    return web


def _socket_client(connected: bool = True) -> MagicMock:
    socket = MagicMock()
    socket.socket_mode_request_listeners = []
    socket.connect = AsyncMock()
    socket.disconnect = AsyncMock()
    socket.close = AsyncMock()
    socket.is_connected = AsyncMock(return_value=connected)
    socket.send_socket_mode_response = AsyncMock()
    return socket


def _transport(web=None, socket=None, **kwargs) -> SlackSocketModeTransport:
    return SlackSocketModeTransport(
        bot_token="xoxb-test",
        app_token="xapp-test",
        web_client=web or _web_client(),
        socket_client=socket or _socket_client(),
        **kwargs,
    )


def _request(event=None, *, type_="events_api"):
    return SimpleNamespace(envelope_id="env-1", type=type_, payload={"event": event})


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_connects_and_becomes_ready(self):
        socket = _socket_client()
        transport = _transport(socket=socket)

        await transport.start()

        assert transport.is_started
        assert transport.is_ready
        assert transport.self_user_id == "UBOT"
        socket.connect.assert_awaited_once()
        assert transport._on_request in socket.socket_mode_request_listeners

        await transport.stop()
        assert not transport.is_ready
        socket.disconnect.assert_awaited_once()
        socket.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_slow_connection_proceeds(self):
        transport = _transport(socket=_socket_client(connected=False), connect_timeout=0.05)

        await transport.start()

        assert transport.is_ready
        await transport.stop()

    @pytest.mark.asyncio
    async def test_invalid_bot_token(self):
        web = _web_client()
        web.auth_test.side_effect = SlackApiError("auth failed", {"ok": False, "error": "invalid_auth"})
        transport = _transport(web=web)

        with pytest.raises(ConfigError, match="SLACK_BOT_TOKEN"):
            await transport.start()
        assert not transport.is_started

    @pytest.mark.asyncio
    async def test_rejected_app_token(self):
        socket = _socket_client()
        socket.connect.side_effect = Exception("not_allowed_token_type")

        with pytest.raises(ConfigError, match="xapp-"):
            await _transport(socket=socket).start()

    @pytest.mark.asyncio
    async def test_unexpected_connect_failure(self):
        socket = _socket_client()
        socket.connect.side_effect = Exception("boom")

        with pytest.raises(TransportError, match="boom"):
            await _transport(socket=socket).start()

    @pytest.mark.asyncio
    async def test_monitor_tracks_connection_loss(self):
        socket = _socket_client()
        transport = _transport(socket=socket, monitor_interval=0.01)
        await transport.start()

        socket.is_connected.return_value = False
        for _ in range(50):
            if not transport.is_ready:
                break
            await asyncio.sleep(0.01)

        assert not transport.is_ready
        await transport.stop()


class TestEnsureReady:
    @pytest.mark.asyncio
    async def test_connected_is_ready(self):
        transport = _transport()
        await transport.start()

        assert await transport.ensure_ready(1) is True
        await transport.stop()

    @pytest.mark.asyncio
    async def test_reconnects_dropped_socket(self):
        socket = _socket_client()
        transport = _transport(socket=socket)
        await transport.start()
        socket.is_connected.side_effect = [False, True]

        assert await transport.ensure_ready(1) is True
        assert socket.connect.await_count == 2
        socket.is_connected.side_effect = None
        await transport.stop()

    @pytest.mark.asyncio
    async def test_reconnect_failure(self):
        socket = _socket_client()
        transport = _transport(socket=socket)
        await transport.start()
        socket.is_connected.return_value = False
        socket.connect.side_effect = Exception("network down")

        assert await transport.ensure_ready(0.05) is False
        await transport.stop()


# ---------------------------------------------------------------------------
# Sending
# ---------------------------------------------------------------------------


class TestSend:
    @pytest.mark.asyncio
    async def test_send_returns_ts(self):
        web = _web_client()
        transport = _transport(web=web)

        ts = await transport.send(text="<@U1> hi", destination="C1")

        assert ts == "1700000000.000100"
        web.chat_postMessage.assert_awaited_once_with(channel="C1", text="<@U1> hi")

    @pytest.mark.asyncio
    async def test_slack_rejection(self):
        web = _web_client()
        web.chat_postMessage.side_effect = SlackApiError(
            "rejected", {"ok": False, "error": "channel_not_found"}
        )

        with pytest.raises(TransportError) as exc_info:
            await _transport(web=web).send(text="x", destination="C404")

        assert exc_info.value.message == "channel_not_found"
        assert exc_info.value.details["channel"] == "C404"

    @pytest.mark.asyncio
    async def test_missing_ts(self):
        web = _web_client()
        web.chat_postMessage.return_value = {"ok": True}

        with pytest.raises(TransportError):
            await _transport(web=web).send(text="x", destination="C1")


# ---------------------------------------------------------------------------
# Inbound envelopes
# ---------------------------------------------------------------------------


class TestInbound:
    @pytest.mark.asyncio
    async def test_message_event_is_acked_and_queued(self):
        socket = _socket_client()
        transport = _transport(socket=socket)
        event = {
            "type": "message",
            "channel": "C1",
            "user": "U1",
            "text": "answer",
            "ts": "2.0",
            "thread_ts": "1.0",
        }

        await transport._on_request(socket, _request(event))

        response = socket.send_socket_mode_response.await_args.args[0]
        assert response.envelope_id == "env-1"
        assert transport.queued == 1

    @pytest.mark.asyncio
    async def test_non_events_api_is_acked_only(self):
        socket = _socket_client()
        transport = _transport(socket=socket)

        await transport._on_request(socket, _request(type_="interactive"))

        socket.send_socket_mode_response.assert_awaited_once()
        assert transport.queued == 0

    @pytest.mark.asyncio
    async def test_malformed_event_is_dropped(self):
        socket = _socket_client()
        transport = _transport(socket=socket)

        await transport._on_request(socket, _request({"type": "message", "text": "no ts"}))

        socket.send_socket_mode_response.assert_awaited_once()
        assert transport.queued == 0

    @pytest.mark.asyncio
    async def test_own_messages_are_flagged(self):
        socket = _socket_client()
        transport = _transport(socket=socket)
        await transport.start()

        await transport._on_request(
            socket,
            _request({"type": "message", "channel": "C1", "user": "UBOT", "text": "q", "ts": "1.0"}),
        )

        event = await asyncio.wait_for(transport.events().__anext__(), timeout=1)
        assert event.is_self_originated
        await transport.stop()
