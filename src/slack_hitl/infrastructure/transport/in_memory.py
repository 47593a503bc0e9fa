"""In-memory transport for local development and tests."""

from __future__ import annotations

import itertools
from dataclasses import dataclass

from slack_hitl.core.domain.errors import TransportError
from slack_hitl.core.domain.question import InboundEvent
from slack_hitl.infrastructure.transport.base import QueuedEventFeed


@dataclass(frozen=True)
class SentMessage:
    """Record of one outbound message."""

    message_id: str
    destination: str
    text: str


class InMemoryTransport(QueuedEventFeed):
    """Transport that keeps outbound messages in a list and takes injected replies.

    ``inject`` plays the part of the chat backend delivering an event;
    ``fail_next_send`` makes the next ``send`` raise ``TransportError``.
    """

    def __init__(self, *, ready: bool = True) -> None:
        super().__init__()
        self._ready = ready
        self._started = False
        self._ids = itertools.count(1)
        self._send_error: str | None = None
        self.sent: list[SentMessage] = []

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def is_started(self) -> bool:
        return self._started

    def set_ready(self, ready: bool) -> None:
        self._ready = ready

    async def start(self) -> None:
        self._started = True

    async def stop(self) -> None:
        self._started = False

    async def ensure_ready(self, wait_seconds: float) -> bool:
        return self._ready

    def fail_next_send(self, error: str) -> None:
        self._send_error = error

    async def send(self, *, text: str, destination: str) -> str:
        if self._send_error is not None:
            error, self._send_error = self._send_error, None
            raise TransportError(error, details={"channel": destination})
        message_id = f"{next(self._ids)}.000100"
        self.sent.append(SentMessage(message_id=message_id, destination=destination, text=text))
        return message_id

    def inject(self, event: InboundEvent) -> None:
        self.publish(event)

    def reply_to(self, message: SentMessage, *, author_id: str, text: str) -> InboundEvent:
        """Inject a threaded reply to ``message`` and return it."""
        event = InboundEvent(
            source_id=message.destination,
            author_id=author_id,
            text=text,
            timestamp=f"{next(self._ids)}.000200",
            parent_message_id=message.message_id,
        )
        self.inject(event)
        return event
