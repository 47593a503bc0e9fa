"""Question engine: ask a human on chat and wait for the threaded reply.

Flow of one ``ask``:

1. mint a question id and insert a ``WAITING`` record into the store,
2. post the question (tagging the expected author) through the transport,
3. bind the returned message id as the thread anchor,
4. suspend on the record's future until the dispatcher resolves it or the
   answer window elapses,
5. remove the record, whatever the outcome.
"""

from __future__ import annotations

import asyncio

import structlog

from slack_hitl.application.correlation_store import CorrelationStore
from slack_hitl.core.domain.errors import (
    NotReadyError,
    QuestionCancelledError,
    QuestionTimeoutError,
    SendFailedError,
    TransportError,
)
from slack_hitl.core.domain.question import PendingQuestion, QuestionIdGenerator, QuestionState
from slack_hitl.core.interfaces.logging import LoggerProtocol
from slack_hitl.core.interfaces.transport import TransportAdapterProtocol

DEFAULT_ANSWER_TIMEOUT_SECONDS = 60.0


def format_question(user_id: str, question: str) -> str:
    """Prefix the question with a Slack mention of ``user_id``."""
    return f"<@{user_id}> {question}"


class QuestionEngine:
    """Orchestrates ask, wait, and resolve-or-timeout for pending questions.

    Any number of ``ask`` calls may be in flight at once; each owns exactly
    one record in the shared ``CorrelationStore``.
    """

    def __init__(
        self,
        *,
        transport: TransportAdapterProtocol,
        store: CorrelationStore,
        destination: str,
        expected_author: str,
        timeout_seconds: float = DEFAULT_ANSWER_TIMEOUT_SECONDS,
        id_generator: QuestionIdGenerator | None = None,
        logger: LoggerProtocol | None = None,
    ) -> None:
        self._transport = transport
        self._store = store
        self._destination = destination
        self._expected_author = expected_author
        self._timeout_seconds = timeout_seconds
        self._ids = id_generator or QuestionIdGenerator()
        self._logger = logger or structlog.get_logger(__name__)

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    @property
    def store(self) -> CorrelationStore:
        return self._store

    async def ask(self, question: str) -> str:
        """Post ``question`` and return the expected author's threaded reply.

        Raises:
            NotReadyError: The transport cannot send right now. Nothing is sent.
            SendFailedError: The backend rejected the outbound message.
            QuestionTimeoutError: No qualifying reply within the answer window.
            QuestionCancelledError: The question was cancelled while waiting.
        """
        if not self._transport.is_ready:
            self._logger.error(
                "question_engine.not_ready",
                started=self._transport.is_started,
            )
            raise NotReadyError("Slack connection is not ready")

        loop = asyncio.get_running_loop()
        pending = PendingQuestion(
            id=self._ids.next_id(),
            destination=self._destination,
            expected_author=self._expected_author,
            question=question,
            future=loop.create_future(),
        )
        # Insert before sending so a fast reply always finds a record.
        self._store.insert(pending)

        try:
            await self._send(pending)
            return await self._wait_for_answer(pending)
        finally:
            if self._store.try_cancel(pending.id):
                self._logger.info("question_engine.abandoned", question_id=pending.id)
            self._store.remove(pending.id)

    def cancel(self, question_id: str) -> bool:
        """Cancel a waiting question. The blocked ``ask`` raises QuestionCancelledError.

        Returns:
            True if this call moved the question out of ``WAITING``.
        """
        cancelled = self._store.try_cancel(question_id)
        if cancelled:
            self._logger.info("question_engine.cancelled", question_id=question_id)
        return cancelled

    async def _send(self, pending: PendingQuestion) -> None:
        started = asyncio.get_running_loop().time()
        try:
            anchor = await self._transport.send(
                text=format_question(pending.expected_author, pending.question),
                destination=pending.destination,
            )
        except TransportError as exc:
            self._logger.error(
                "question_engine.send_failed",
                question_id=pending.id,
                error=exc.message,
            )
            raise SendFailedError(
                f"Failed to send message: {exc.message}",
                details={"question_id": pending.id, **(exc.details or {})},
            ) from exc

        self._logger.info(
            "question_engine.asked",
            question_id=pending.id,
            destination=pending.destination,
            anchor=anchor,
            send_ms=round((asyncio.get_running_loop().time() - started) * 1000),
            question=pending.question[:50],
        )
        self._store.bind_anchor(pending.id, anchor)

    async def _wait_for_answer(self, pending: PendingQuestion) -> str:
        # asyncio.wait leaves the future alone on timeout; the store decides
        # who wins.
        await asyncio.wait({pending.future}, timeout=self._timeout_seconds)

        if not pending.future.done() and self._store.try_timeout(pending.id):
            self._logger.warning(
                "question_engine.timeout",
                question_id=pending.id,
                expected_author=pending.expected_author,
                timeout_seconds=self._timeout_seconds,
            )
            raise QuestionTimeoutError(
                "Timeout waiting for human response in Slack",
                question_id=pending.id,
                timeout_seconds=self._timeout_seconds,
            )

        if pending.state is QuestionState.RESOLVED:
            answer = pending.future.result()
            self._logger.info(
                "question_engine.answered",
                question_id=pending.id,
                response_ms=round(pending.age_seconds() * 1000),
                answer=answer[:50],
            )
            return answer

        raise QuestionCancelledError(
            f"Question {pending.id} was cancelled",
            details={"question_id": pending.id, "state": pending.state.value},
        )
