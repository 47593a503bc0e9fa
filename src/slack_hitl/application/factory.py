"""Build transports and the question service from settings."""

from __future__ import annotations

import structlog

from slack_hitl.application.correlation_store import CorrelationStore
from slack_hitl.application.dispatcher import Dispatcher
from slack_hitl.application.question_engine import QuestionEngine
from slack_hitl.application.service import HumanInSlack
from slack_hitl.application.settings import HitlSettings, TransportMode
from slack_hitl.core.interfaces.transport import TransportAdapterProtocol
from slack_hitl.infrastructure.transport.slack import (
    SlackPollingTransport,
    SlackSocketModeTransport,
)

logger = structlog.get_logger(__name__)

# Polling watches outlive the answer window so a reply in the last poll
# cycle is still picked up.
_WATCH_TTL_MARGIN_SECONDS = 30.0


def build_transport(settings: HitlSettings) -> TransportAdapterProtocol:
    """Create the Slack transport selected by ``settings.transport``."""
    mode = settings.resolved_transport
    logger.info("factory.transport_selected", mode=mode.value)

    if mode is TransportMode.SOCKET:
        return SlackSocketModeTransport(
            bot_token=settings.slack_bot_token,
            app_token=settings.slack_app_token,
            connect_timeout=settings.connect_timeout_seconds,
        )
    return SlackPollingTransport(
        bot_token=settings.slack_bot_token,
        poll_interval=settings.poll_interval_seconds,
        watch_ttl=settings.answer_timeout_seconds + _WATCH_TTL_MARGIN_SECONDS,
    )


def build_service(
    settings: HitlSettings,
    *,
    transport: TransportAdapterProtocol | None = None,
) -> HumanInSlack:
    """Wire store, engine, dispatcher and transport into a service.

    Args:
        settings: Validated settings.
        transport: Optional transport override (tests, local development).
    """
    transport = transport or build_transport(settings)
    store = CorrelationStore()
    engine = QuestionEngine(
        transport=transport,
        store=store,
        destination=settings.slack_channel_id,
        expected_author=settings.slack_user_id,
        timeout_seconds=settings.answer_timeout_seconds,
    )
    dispatcher = Dispatcher(store=store, transport=transport)
    return HumanInSlack(
        transport=transport,
        engine=engine,
        dispatcher=dispatcher,
        ready_wait_seconds=settings.ready_wait_seconds,
    )
