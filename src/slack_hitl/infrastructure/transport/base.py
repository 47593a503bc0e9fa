"""Shared inbound feed for transport adapters.

Transports push normalized events into an ``asyncio.Queue``; the dispatcher
consumes them through ``events()`` in arrival order.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

import structlog

from slack_hitl.core.domain.question import InboundEvent

logger = structlog.get_logger(__name__)


class QueuedEventFeed:
    """Base for transports that buffer inbound events in a queue."""

    def __init__(self, max_queue_size: int = 0) -> None:
        self._queue: asyncio.Queue[InboundEvent] = asyncio.Queue(maxsize=max_queue_size)

    def publish(self, event: InboundEvent) -> None:
        """Enqueue an event without blocking. Drops it if the queue is full."""
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(
                "transport.queue_full_event_dropped",
                source_id=event.source_id,
                timestamp=event.timestamp,
            )

    async def events(self) -> AsyncIterator[InboundEvent]:
        while True:
            event = await self._queue.get()
            yield event

    @property
    def queued(self) -> int:
        return self._queue.qsize()
