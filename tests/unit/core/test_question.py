"""Tests for pending question matching and id generation."""

from __future__ import annotations

import pytest

from slack_hitl.core.domain.question import (
    InboundEvent,
    QuestionIdGenerator,
    QuestionState,
)
from tests.helpers import make_pending, reply


@pytest.fixture
def pending_factory():
    return lambda: make_pending(destination="C1", author="U1", anchor="T1")


class TestMatching:
    """A reply matches only if channel, author and thread anchor all agree."""

    @pytest.mark.asyncio
    async def test_all_fields_agree(self, pending_factory):
        pending = pending_factory()
        assert pending.matches(reply(channel="C1", user="U1", parent="T1"))

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "event",
        [
            reply(channel="C2", user="U1", parent="T1"),
            reply(channel="C1", user="U2", parent="T1"),
            reply(channel="C1", user="U1", parent="T2"),
        ],
        ids=["wrong-channel", "wrong-author", "wrong-thread"],
    )
    async def test_single_field_change_prevents_match(self, pending_factory, event):
        pending = pending_factory()
        assert not pending.matches(event)

    @pytest.mark.asyncio
    async def test_top_level_message_never_matches(self, pending_factory):
        pending = pending_factory()
        assert not pending.matches(reply(channel="C1", user="U1", parent=None))

    @pytest.mark.asyncio
    async def test_unbound_anchor_never_matches(self, pending_factory):
        pending = pending_factory()
        pending.correlation_anchor = None
        assert not pending.matches(reply(channel="C1", user="U1", parent="T1"))

    @pytest.mark.asyncio
    async def test_missing_author_never_matches(self, pending_factory):
        pending = pending_factory()
        assert not pending.matches(reply(channel="C1", user=None, parent="T1"))


class TestState:
    @pytest.mark.asyncio
    async def test_new_question_is_waiting(self, pending_factory):
        pending = pending_factory()
        assert pending.state is QuestionState.WAITING
        assert pending.is_waiting

    def test_terminal_states(self):
        assert not QuestionState.WAITING.is_terminal
        assert QuestionState.RESOLVED.is_terminal
        assert QuestionState.TIMED_OUT.is_terminal
        assert QuestionState.CANCELLED.is_terminal


def test_threaded_reply_flag():
    assert InboundEvent(source_id="C1", author_id="U1", text="x", parent_message_id="T1").is_threaded_reply
    assert not InboundEvent(source_id="C1", author_id="U1", text="x").is_threaded_reply


def test_ids_are_unique_across_generators():
    first = QuestionIdGenerator()
    second = QuestionIdGenerator()
    ids = {first.next_id() for _ in range(500)} | {second.next_id() for _ in range(500)}
    assert len(ids) == 1000


def test_id_format():
    question_id = QuestionIdGenerator(prefix="ask").next_id()
    prefix, timestamp, counter = question_id.split("_")
    assert prefix == "ask"
    assert timestamp.isdigit()
    assert counter.isdigit()
