"""Helpers shared by unit and integration tests."""

from __future__ import annotations

import asyncio

from slack_hitl.core.domain.question import InboundEvent, PendingQuestion
from slack_hitl.infrastructure.transport.in_memory import InMemoryTransport

CHANNEL = "C1"
USER = "U1"

# InMemoryTransport numbers outbound messages "1.000100", "2.000100", ...
FIRST_ANCHOR = "1.000100"


def reply(
    *,
    channel: str = CHANNEL,
    user: str | None = USER,
    text: str = "answer",
    parent: str | None = FIRST_ANCHOR,
    ts: str = "9.000900",
    is_self: bool = False,
) -> InboundEvent:
    """Build an inbound event, by default a reply to the first sent message."""
    return InboundEvent(
        source_id=channel,
        author_id=user,
        text=text,
        timestamp=ts,
        parent_message_id=parent,
        is_self_originated=is_self,
    )


async def wait_for_sent(transport: InMemoryTransport, count: int = 1) -> None:
    """Yield to the loop until ``count`` messages have been sent."""
    for _ in range(1000):
        if len(transport.sent) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {count} sent messages, got {len(transport.sent)}")


def make_pending(
    question_id: str = "q_1",
    *,
    destination: str = CHANNEL,
    author: str = USER,
    anchor: str | None = FIRST_ANCHOR,
    question: str = "What's the API key?",
) -> PendingQuestion:
    """Build a waiting question. Must be called with a running event loop."""
    return PendingQuestion(
        id=question_id,
        destination=destination,
        expected_author=author,
        question=question,
        future=asyncio.get_running_loop().create_future(),
        correlation_anchor=anchor,
    )


class RecordingLogger:
    """LoggerProtocol implementation that keeps every call for assertions."""

    def __init__(self) -> None:
        self.records: list[tuple[str, str, dict]] = []

    def _log(self, level: str, event: str, **kwargs) -> None:
        self.records.append((level, event, kwargs))

    def debug(self, event: str, **kwargs) -> None:
        self._log("debug", event, **kwargs)

    def info(self, event: str, **kwargs) -> None:
        self._log("info", event, **kwargs)

    def warning(self, event: str, **kwargs) -> None:
        self._log("warning", event, **kwargs)

    def error(self, event: str, **kwargs) -> None:
        self._log("error", event, **kwargs)

    def exception(self, event: str, **kwargs) -> None:
        self._log("exception", event, **kwargs)

    def events(self, level: str | None = None) -> list[str]:
        return [event for lvl, event, _ in self.records if level is None or lvl == level]
