"""Dispatcher: drain the inbound event feed and resolve pending questions.

The dispatcher runs as one background ``asyncio.Task``. Handling an event
never awaits: a match is delivered by completing the question's future, so a
slow caller can never stall the feed.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Any

import structlog

from slack_hitl.application.correlation_store import CorrelationStore
from slack_hitl.core.domain.errors import InvariantViolationError
from slack_hitl.core.domain.question import InboundEvent
from slack_hitl.core.interfaces.logging import LoggerProtocol
from slack_hitl.core.interfaces.transport import TransportAdapterProtocol

RECENT_EVENTS_LIMIT = 50


class Dispatcher:
    """Match inbound events against waiting questions, first match wins.

    A candidate reply must come from the question's channel, from the
    expected author, and be threaded under the question's anchor. Replies
    from the right person in the wrong thread are logged and dropped.
    """

    def __init__(
        self,
        *,
        store: CorrelationStore,
        transport: TransportAdapterProtocol,
        history_size: int = RECENT_EVENTS_LIMIT,
        logger: LoggerProtocol | None = None,
    ) -> None:
        self._store = store
        self._transport = transport
        self._recent: deque[dict[str, Any]] = deque(maxlen=history_size)
        self._event_count = 0
        self._matched_count = 0
        self._task: asyncio.Task[None] | None = None
        self._logger = logger or structlog.get_logger(__name__)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def event_count(self) -> int:
        return self._event_count

    @property
    def recent_events(self) -> list[dict[str, Any]]:
        """Summaries of the most recent inbound events, oldest first."""
        return list(self._recent)

    async def start(self) -> None:
        """Start draining the transport feed in the background."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self.run(), name="hitl-dispatcher")
        self._logger.info("dispatcher.started")

    async def stop(self) -> None:
        """Cancel the background task."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self._logger.info(
            "dispatcher.stopped", events=self._event_count, matched=self._matched_count
        )

    async def run(self) -> None:
        """Consume the feed until cancelled or the feed ends or fails."""
        try:
            async for event in self._transport.events():
                self.handle_event(event)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._logger.exception("dispatcher.feed_failed", error=str(exc))
            return
        self._logger.warning("dispatcher.feed_ended")

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    def handle_event(self, event: InboundEvent) -> bool:
        """Process one inbound event. Never raises.

        Returns:
            True if the event resolved a pending question.
        """
        self._event_count += 1
        try:
            self._record(event)
            return self._dispatch(event)
        except InvariantViolationError as exc:
            self._logger.error(
                "dispatcher.invariant_violation", error=exc.message, **(exc.details or {})
            )
        except Exception as exc:
            self._logger.exception(
                "dispatcher.event_failed",
                error=str(exc),
                source_id=getattr(event, "source_id", None),
            )
        return False

    def _dispatch(self, event: InboundEvent) -> bool:
        if event.is_self_originated:
            self._logger.debug("dispatcher.self_originated_skipped", source_id=event.source_id)
            return False

        self._logger.debug(
            "dispatcher.message_received",
            source_id=event.source_id,
            author_id=event.author_id,
            parent=event.parent_message_id,
            text=event.text[:50],
            pending=len(self._store),
        )

        question = self._store.find_waiting_matching(lambda q: q.matches(event))
        if question is None:
            self._log_near_misses(event)
            self._store.remember_unmatched(event)
            return False

        if not self._store.try_resolve(question.id, event.text):
            # Lost to a timeout or cancel between lookup and claim.
            self._logger.info("dispatcher.resolve_lost_race", question_id=question.id)
            return False

        self._matched_count += 1
        self._logger.info(
            "dispatcher.matched",
            question_id=question.id,
            anchor=question.correlation_anchor,
            latency_ms=round(question.age_seconds() * 1000),
        )
        return True

    def _log_near_misses(self, event: InboundEvent) -> None:
        for question in self._store.snapshot():
            if not question.is_waiting:
                continue
            if (
                event.source_id == question.destination
                and event.author_id == question.expected_author
            ):
                self._logger.info(
                    "dispatcher.thread_mismatch",
                    question_id=question.id,
                    got=event.parent_message_id,
                    expected=question.correlation_anchor,
                )

    def _record(self, event: InboundEvent) -> None:
        self._recent.append(
            {
                "received_at": time.time(),
                "channel": event.source_id,
                "user": event.author_id,
                "text": event.text[:50],
                "thread_ts": event.parent_message_id,
                "self": event.is_self_originated,
            }
        )
