"""Slack Web API polling transport.

For environments where Socket Mode is unavailable. Every message this
transport sends becomes a watched thread; a background task pulls
``conversations.replies`` for each watched thread and feeds replies it has
not seen before into the inbound queue, so the dispatcher cannot tell it
apart from the push-based transport.

Usage::

    transport = SlackPollingTransport(bot_token="xoxb-...", poll_interval=2.0)
    await transport.start()   # runs in background
    ...
    await transport.stop()
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

import structlog
from slack_sdk.errors import SlackApiError
from slack_sdk.web.async_client import AsyncWebClient

from slack_hitl.infrastructure.transport.slack.events import parse_message_event
from slack_hitl.infrastructure.transport.slack.web import SlackWebTransport, slack_error_code

logger = structlog.get_logger(__name__)


@dataclass
class WatchedThread:
    """A thread whose replies are pulled on every poll cycle."""

    channel: str
    anchor: str
    expires_at: float
    seen: set[str] = field(default_factory=set)


class SlackPollingTransport(SlackWebTransport):
    """Poll-based transport that synthesizes the inbound feed."""

    mode = "polling"

    def __init__(
        self,
        *,
        bot_token: str,
        web_client: AsyncWebClient | None = None,
        poll_interval: float = 2.0,
        watch_ttl: float = 90.0,
        replies_limit: int = 50,
    ) -> None:
        super().__init__(bot_token=bot_token, web_client=web_client)
        self._poll_interval = poll_interval
        self._watch_ttl = watch_ttl
        self._replies_limit = replies_limit
        self._watched: dict[str, WatchedThread] = {}
        self._task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Authenticate and start the background polling task."""
        if self._started:
            return
        await self.authenticate()
        self._started = True
        self._ready = True
        self._task = asyncio.create_task(self._poll_loop(), name="slack-thread-poller")
        logger.info("slack_poller.started", interval_s=self._poll_interval)

    async def stop(self) -> None:
        """Cancel the background polling task."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self._ready = False
        self._started = False
        logger.info("slack_poller.stopped")

    async def ensure_ready(self, wait_seconds: float) -> bool:
        """Re-run the auth check; polling has no connection to restore."""
        if not self._started:
            await self.start()
            return self._ready
        try:
            await asyncio.wait_for(self.authenticate(), timeout=wait_seconds or None)
        except Exception as exc:
            logger.error("slack_poller.not_ready", error=str(exc))
            self._ready = False
        else:
            self._ready = True
        return self._ready

    @property
    def watched_threads(self) -> list[WatchedThread]:
        return list(self._watched.values())

    def _on_sent(self, destination: str, ts: str) -> None:
        self._watched[ts] = WatchedThread(
            channel=destination,
            anchor=ts,
            expires_at=time.monotonic() + self._watch_ttl,
        )

    # ------------------------------------------------------------------
    # Internal polling loop
    # ------------------------------------------------------------------

    async def _poll_loop(self) -> None:
        """Poll every watched thread until cancelled."""
        while True:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("slack_poller.poll_error", error=str(exc))
            await asyncio.sleep(self._poll_interval)

    async def poll_once(self) -> int:
        """Pull replies for every watched thread once.

        Returns:
            Number of new events published.
        """
        self._expire_watches()
        published = 0
        for thread in list(self._watched.values()):
            try:
                messages = await self._fetch_replies(thread)
            except SlackApiError as exc:
                logger.warning(
                    "slack_poller.replies_failed",
                    channel=thread.channel,
                    anchor=thread.anchor,
                    error=slack_error_code(exc),
                )
                continue
            published += self._publish_new(thread, messages)
        return published

    async def _fetch_replies(self, thread: WatchedThread) -> list[dict[str, Any]]:
        """Fetch the whole thread, following ``next_cursor`` across pages.

        Slack returns a thread oldest first, so a fresh reply in a long
        thread is only on the last page.
        """
        messages: list[dict[str, Any]] = []
        cursor: str | None = None
        while True:
            params: dict[str, Any] = {
                "channel": thread.channel,
                "ts": thread.anchor,
                "limit": self._replies_limit,
            }
            if cursor:
                params["cursor"] = cursor
            response = await self._web.conversations_replies(**params)
            messages.extend(response.get("messages") or [])
            cursor = (response.get("response_metadata") or {}).get("next_cursor")
            if not cursor:
                return messages

    def _publish_new(self, thread: WatchedThread, messages: list[dict[str, Any]]) -> int:
        published = 0
        for message in messages:
            ts = message.get("ts")
            if not ts or ts == thread.anchor or ts in thread.seen:
                continue
            thread.seen.add(ts)
            try:
                event = parse_message_event(
                    message,
                    self_user_id=self.self_user_id,
                    default_channel=thread.channel,
                )
            except ValueError as exc:
                logger.warning("slack_poller.malformed_message", error=str(exc))
                continue
            if event is None:
                continue
            self.publish(event)
            published += 1
        return published

    def _expire_watches(self) -> None:
        now = time.monotonic()
        for anchor, thread in list(self._watched.items()):
            if thread.expires_at <= now:
                del self._watched[anchor]
                logger.debug("slack_poller.watch_expired", anchor=anchor)
