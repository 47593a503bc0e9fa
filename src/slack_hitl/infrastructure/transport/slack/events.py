"""Normalize Slack message payloads into ``InboundEvent`` objects."""

from __future__ import annotations

from typing import Any

from slack_hitl.core.domain.question import InboundEvent

# Subtypes that still carry a human-authored message body.
_ACCEPTED_SUBTYPES = frozenset({"thread_broadcast", "bot_message", "file_share", "me_message"})


def parse_message_event(
    raw: dict[str, Any],
    *,
    self_user_id: str | None = None,
    default_channel: str | None = None,
) -> InboundEvent | None:
    """Convert a Slack ``message`` event (or history message) to an InboundEvent.

    Args:
        raw: Event payload as delivered by Socket Mode or ``conversations.replies``.
        self_user_id: The bot's own user id, used to flag its own traffic.
        default_channel: Channel to assume when the payload has none, as in
            ``conversations.replies`` results.

    Returns:
        The normalized event, or ``None`` for non-message events and edits,
        deletions, joins and similar housekeeping subtypes.

    Raises:
        ValueError: If a message payload lacks its channel or timestamp.
    """
    if not isinstance(raw, dict):
        raise ValueError(f"Slack event must be a dict, got {type(raw).__name__}")

    if raw.get("type", "message") != "message":
        return None

    subtype = raw.get("subtype")
    if subtype and subtype not in _ACCEPTED_SUBTYPES:
        return None

    channel = raw.get("channel") or default_channel
    ts = raw.get("ts")
    if not channel or not ts:
        raise ValueError("Slack message event is missing 'channel' or 'ts'")

    user = raw.get("user")
    thread_ts = raw.get("thread_ts")
    # A thread parent carries thread_ts == ts; only replies have a parent.
    parent = thread_ts if thread_ts and thread_ts != ts else None

    is_self = bool(raw.get("bot_id")) or subtype == "bot_message"
    if self_user_id and user == self_user_id:
        is_self = True

    return InboundEvent(
        source_id=str(channel),
        author_id=str(user) if user else None,
        text=str(raw.get("text") or ""),
        timestamp=str(ts),
        parent_message_id=str(parent) if parent else None,
        is_self_originated=is_self,
    )
