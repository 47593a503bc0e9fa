"""In-memory correlation store for pending questions.

The store is the single authority on which questions are still waiting for
an answer. Every transition out of ``WAITING`` goes through ``_claim``, which
runs under one lock, so a dispatcher resolve racing a timeout (or a cancel)
has exactly one winner.

It also remembers a bounded backlog of recent threaded replies that matched
nothing. When a question's anchor is bound after its send completes, the
backlog is checked so a reply processed before the binding is not lost.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable
from typing import Any

import structlog

from slack_hitl.core.domain.errors import InvariantViolationError
from slack_hitl.core.domain.question import InboundEvent, PendingQuestion, QuestionState

logger = structlog.get_logger(__name__)

DEFAULT_BACKLOG_SIZE = 50


class CorrelationStore:
    """Concurrency-safe mapping from question id to ``PendingQuestion``."""

    def __init__(self, backlog_size: int = DEFAULT_BACKLOG_SIZE) -> None:
        self._questions: dict[str, PendingQuestion] = {}
        self._unmatched: deque[InboundEvent] = deque(maxlen=backlog_size)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._questions)

    def __contains__(self, question_id: object) -> bool:
        with self._lock:
            return question_id in self._questions

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def insert(self, question: PendingQuestion) -> None:
        """Add a new waiting question.

        Raises:
            InvariantViolationError: If the id is already present or the
                question is not ``WAITING``.
        """
        with self._lock:
            if question.id in self._questions:
                raise InvariantViolationError(
                    f"Duplicate question id: {question.id}",
                    details={"question_id": question.id},
                )
            if not question.is_waiting:
                raise InvariantViolationError(
                    f"Question {question.id} inserted in state {question.state.value}",
                    details={"question_id": question.id, "state": question.state.value},
                )
            self._questions[question.id] = question
        logger.debug("correlation_store.inserted", question_id=question.id)

    def remove(self, question_id: str) -> PendingQuestion | None:
        """Remove a question regardless of its state. Unknown ids are ignored."""
        with self._lock:
            question = self._questions.pop(question_id, None)
        if question is not None:
            logger.debug(
                "correlation_store.removed",
                question_id=question_id,
                state=question.state.value,
            )
        return question

    def get(self, question_id: str) -> PendingQuestion | None:
        with self._lock:
            return self._questions.get(question_id)

    def snapshot(self) -> list[PendingQuestion]:
        """Return the current questions in insertion order."""
        with self._lock:
            return list(self._questions.values())

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def find_waiting_matching(
        self, predicate: Callable[[PendingQuestion], bool]
    ) -> PendingQuestion | None:
        """Return the first waiting question satisfying ``predicate``."""
        with self._lock:
            for question in self._questions.values():
                if question.is_waiting and predicate(question):
                    return question
        return None

    def bind_anchor(self, question_id: str, anchor: str) -> bool:
        """Record the outbound message id replies must thread under.

        If a reply for this anchor already arrived and is sitting in the
        unmatched backlog, the question is resolved with it immediately.

        Returns:
            True if the question was resolved from the backlog.
        """
        with self._lock:
            question = self._questions.get(question_id)
            if question is None or not question.is_waiting:
                return False
            question.correlation_anchor = anchor
            early = next(
                (event for event in self._unmatched if question.matches(event)),
                None,
            )
            if early is None:
                return False
            self._unmatched.remove(early)
            resolved = self._claim_locked(question, QuestionState.RESOLVED, early.text)
        if resolved:
            logger.info(
                "correlation_store.resolved_from_backlog",
                question_id=question_id,
                anchor=anchor,
            )
        return resolved

    def remember_unmatched(self, event: InboundEvent) -> None:
        """Keep a threaded reply that matched nothing, for late anchor binding."""
        if not event.is_threaded_reply or event.is_self_originated:
            return
        with self._lock:
            self._unmatched.append(event)

    # ------------------------------------------------------------------
    # Terminal-state claims
    # ------------------------------------------------------------------

    def try_resolve(self, question_id: str, text: str) -> bool:
        """Claim ``RESOLVED`` and deliver ``text``. False if already terminal."""
        return self._claim(question_id, QuestionState.RESOLVED, text)

    def try_timeout(self, question_id: str) -> bool:
        """Claim ``TIMED_OUT``. False if the question already left ``WAITING``."""
        return self._claim(question_id, QuestionState.TIMED_OUT)

    def try_cancel(self, question_id: str) -> bool:
        """Claim ``CANCELLED``. False if the question already left ``WAITING``."""
        return self._claim(question_id, QuestionState.CANCELLED)

    def _claim(self, question_id: str, target: QuestionState, answer: str | None = None) -> bool:
        with self._lock:
            question = self._questions.get(question_id)
            if question is None:
                return False
            return self._claim_locked(question, target, answer)

    def _claim_locked(
        self, question: PendingQuestion, target: QuestionState, answer: str | None
    ) -> bool:
        if not question.is_waiting:
            return False
        if question.future.done():
            raise InvariantViolationError(
                f"Question {question.id} is waiting but its result slot is already set",
                details={"question_id": question.id, "target": target.value},
            )

        question.state = target
        if target is QuestionState.RESOLVED:
            question.future.set_result(answer or "")
        else:
            question.future.cancel()
        return True

    def stats(self) -> dict[str, Any]:
        with self._lock:
            waiting = sum(1 for q in self._questions.values() if q.is_waiting)
            return {
                "pending": len(self._questions),
                "waiting": waiting,
                "unmatched_backlog": len(self._unmatched),
            }
