"""Slack transport adapters (Socket Mode and Web API polling)."""

from slack_hitl.infrastructure.transport.slack.events import parse_message_event
from slack_hitl.infrastructure.transport.slack.polling import SlackPollingTransport
from slack_hitl.infrastructure.transport.slack.socket_mode import SlackSocketModeTransport
from slack_hitl.infrastructure.transport.slack.web import SlackIdentity, SlackWebTransport

__all__ = [
    "SlackIdentity",
    "SlackPollingTransport",
    "SlackSocketModeTransport",
    "SlackWebTransport",
    "parse_message_event",
]
