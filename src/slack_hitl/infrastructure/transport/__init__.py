"""Transport adapters implementing TransportAdapterProtocol."""

from slack_hitl.infrastructure.transport.base import QueuedEventFeed
from slack_hitl.infrastructure.transport.in_memory import InMemoryTransport, SentMessage

__all__ = [
    "InMemoryTransport",
    "QueuedEventFeed",
    "SentMessage",
]
