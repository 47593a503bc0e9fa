"""Domain models for pending questions and inbound chat events.

A ``PendingQuestion`` carries both its lifecycle state and the future that
wakes the caller blocked in ``QuestionEngine.ask``; the two are never
tracked in separate maps.
"""

from __future__ import annotations

import asyncio
import itertools
import time
from dataclasses import dataclass, field
from enum import Enum


class QuestionState(str, Enum):
    """Lifecycle state of a pending question."""

    WAITING = "waiting"
    RESOLVED = "resolved"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not QuestionState.WAITING


@dataclass(frozen=True)
class InboundEvent:
    """Normalized inbound chat message.

    Attributes:
        source_id: Channel the message was posted in.
        author_id: User who posted it (``None`` for some system messages).
        text: Message body.
        timestamp: Backend message id of this event (Slack ``ts``).
        parent_message_id: Thread anchor the message replies in, if any.
        is_self_originated: True for messages sent by this bot or any bot.
    """

    source_id: str
    author_id: str | None
    text: str
    timestamp: str = ""
    parent_message_id: str | None = None
    is_self_originated: bool = False

    @property
    def is_threaded_reply(self) -> bool:
        return bool(self.parent_message_id)


@dataclass(eq=False)
class PendingQuestion:
    """An in-flight question awaiting a human reply or a timeout.

    Attributes:
        id: Unique question identifier.
        destination: Channel the question was posted to.
        expected_author: User expected to answer.
        question: The question text as asked (without the mention prefix).
        future: Single-assignment result slot; also the caller's wake signal.
        correlation_anchor: Id of the outbound message replies must thread
            under. ``None`` while the send is still in flight.
        state: Current lifecycle state.
        created_at: Monotonic creation time.
    """

    id: str
    destination: str
    expected_author: str
    question: str
    future: asyncio.Future[str]
    correlation_anchor: str | None = None
    state: QuestionState = QuestionState.WAITING
    created_at: float = field(default_factory=time.monotonic)

    @property
    def is_waiting(self) -> bool:
        return self.state is QuestionState.WAITING

    def matches(self, event: InboundEvent) -> bool:
        """Return True if ``event`` is a qualifying reply to this question.

        Source, author and thread anchor must all agree. Events without a
        thread parent never match, neither do questions whose anchor is not
        bound yet.
        """
        if event.source_id != self.destination:
            return False
        if event.author_id != self.expected_author:
            return False
        if not event.parent_message_id or self.correlation_anchor is None:
            return False
        return event.parent_message_id == self.correlation_anchor

    def age_seconds(self) -> float:
        return time.monotonic() - self.created_at


class QuestionIdGenerator:
    """Generate question ids unique within the process lifetime.

    Ids combine the wall-clock nanosecond timestamp with a process-wide
    monotonic counter, so two ids minted in the same nanosecond still differ.
    """

    _counter = itertools.count(1)

    def __init__(self, prefix: str = "q") -> None:
        self._prefix = prefix

    def next_id(self) -> str:
        return f"{self._prefix}_{time.time_ns()}_{next(self._counter)}"
