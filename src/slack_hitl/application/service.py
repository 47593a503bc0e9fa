"""Human-in-Slack service: the single entry point callers use to ask.

Owns the transport lifecycle and the dispatcher task. The transport is
started lazily on the first ask unless ``start()`` was called explicitly,
and a dropped connection gets one bounded attempt to come back before the
ask fails with ``NotReadyError``.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from slack_hitl.application.dispatcher import Dispatcher
from slack_hitl.application.question_engine import QuestionEngine
from slack_hitl.core.domain.errors import NotReadyError
from slack_hitl.core.interfaces.transport import TransportAdapterProtocol

logger = structlog.get_logger(__name__)


class HumanInSlack:
    """Ask a human a question on Slack and wait for the answer."""

    def __init__(
        self,
        *,
        transport: TransportAdapterProtocol,
        engine: QuestionEngine,
        dispatcher: Dispatcher,
        ready_wait_seconds: float = 10.0,
    ) -> None:
        self._transport = transport
        self._engine = engine
        self._dispatcher = dispatcher
        self._ready_wait_seconds = ready_wait_seconds
        self._start_lock = asyncio.Lock()

    @property
    def transport(self) -> TransportAdapterProtocol:
        return self._transport

    @property
    def engine(self) -> QuestionEngine:
        return self._engine

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    async def start(self) -> None:
        """Start the transport and the dispatcher. Safe to call repeatedly."""
        async with self._start_lock:
            if not self._transport.is_started:
                logger.info("human_in_slack.starting")
                await self._transport.start()
            await self._dispatcher.start()

    async def stop(self) -> None:
        await self._dispatcher.stop()
        if self._transport.is_started:
            await self._transport.stop()
        logger.info("human_in_slack.stopped")

    async def ask(self, question: str) -> str:
        """Post ``question`` and wait for the human's threaded reply.

        Raises:
            NotReadyError: The connection could not be brought up.
            SendFailedError: Slack rejected the message.
            QuestionTimeoutError: No answer within the answer window.
        """
        if not self._transport.is_started or not self._dispatcher.is_running:
            await self.start()

        if not self._transport.is_ready:
            logger.info("human_in_slack.not_ready_retrying", wait_s=self._ready_wait_seconds)
            if not await self._transport.ensure_ready(self._ready_wait_seconds):
                raise NotReadyError(
                    f"Slack not ready after waiting {self._ready_wait_seconds:.0f}s"
                )

        return await self._engine.ask(question)

    def status(self) -> dict[str, Any]:
        """Diagnostic snapshot for logs and the CLI."""
        return {
            "transport_started": self._transport.is_started,
            "transport_ready": self._transport.is_ready,
            "dispatcher_running": self._dispatcher.is_running,
            "events_received": self._dispatcher.event_count,
            **self._engine.store.stats(),
        }
