"""Protocol for the messaging transport used by the question engine.

The transport owns the connection to the chat backend. The engine and the
dispatcher only ever see this capability interface, so a push-based
(Socket Mode) and a poll-based (Web API) implementation are interchangeable.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol

from slack_hitl.core.domain.question import InboundEvent


class TransportAdapterProtocol(Protocol):
    """Send outbound messages and expose the inbound event feed."""

    @property
    def is_ready(self) -> bool:
        """Whether the transport can currently send and receive."""
        ...

    @property
    def is_started(self) -> bool:
        """Whether ``start()`` has completed successfully."""
        ...

    async def start(self) -> None:
        """Authenticate and open the connection.

        Raises:
            ConfigError: If the credentials are rejected by the backend.
            TransportError: If the backend cannot be reached.
        """
        ...

    async def stop(self) -> None:
        """Close the connection and release resources."""
        ...

    async def ensure_ready(self, wait_seconds: float) -> bool:
        """Try to restore a dropped connection.

        Args:
            wait_seconds: Upper bound on how long to wait for readiness.

        Returns:
            The readiness after the attempt.
        """
        ...

    async def send(self, *, text: str, destination: str) -> str:
        """Post ``text`` to ``destination``.

        Args:
            text: Message body.
            destination: Channel identifier.

        Returns:
            The backend identifier of the posted message.

        Raises:
            TransportError: If the backend rejects the message.
        """
        ...

    def events(self) -> AsyncIterator[InboundEvent]:
        """Iterate inbound events in arrival order for the process lifetime."""
        ...
