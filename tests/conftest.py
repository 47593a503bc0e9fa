"""Test configuration and shared fixtures."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from slack_hitl.application.correlation_store import CorrelationStore
from slack_hitl.application.dispatcher import Dispatcher
from slack_hitl.application.question_engine import QuestionEngine
from slack_hitl.infrastructure.transport.in_memory import InMemoryTransport
from tests.helpers import CHANNEL, USER


@pytest.fixture
def transport() -> InMemoryTransport:
    return InMemoryTransport()


@pytest.fixture
def store() -> CorrelationStore:
    return CorrelationStore()


@pytest.fixture
def dispatcher(store: CorrelationStore, transport: InMemoryTransport) -> Dispatcher:
    return Dispatcher(store=store, transport=transport)


@pytest.fixture
def make_engine(
    store: CorrelationStore, transport: InMemoryTransport
) -> Callable[..., QuestionEngine]:
    """Build engines sharing the fixture store and transport."""

    def _make(
        *, destination: str = CHANNEL, author: str = USER, timeout: float = 1.0
    ) -> QuestionEngine:
        return QuestionEngine(
            transport=transport,
            store=store,
            destination=destination,
            expected_author=author,
            timeout_seconds=timeout,
        )

    return _make


@pytest.fixture
def engine(make_engine: Callable[..., QuestionEngine]) -> QuestionEngine:
    return make_engine()
