"""
Core Protocol Interfaces

Contracts for the external collaborators of the correlation engine:
    - TransportAdapterProtocol: outbound send and inbound event feed
    - LoggerProtocol: structured logging
"""

from slack_hitl.core.interfaces.logging import LoggerProtocol
from slack_hitl.core.interfaces.transport import TransportAdapterProtocol

__all__ = [
    "LoggerProtocol",
    "TransportAdapterProtocol",
]
