"""
Domain Models and Errors

- Pending question lifecycle and inbound events
- Error taxonomy
"""

from slack_hitl.core.domain.errors import (
    ConfigError,
    HitlError,
    InvariantViolationError,
    NotReadyError,
    QuestionCancelledError,
    QuestionTimeoutError,
    SendFailedError,
    TransportError,
)
from slack_hitl.core.domain.question import (
    InboundEvent,
    PendingQuestion,
    QuestionIdGenerator,
    QuestionState,
)

__all__ = [
    "ConfigError",
    "HitlError",
    "InboundEvent",
    "InvariantViolationError",
    "NotReadyError",
    "PendingQuestion",
    "QuestionCancelledError",
    "QuestionIdGenerator",
    "QuestionState",
    "QuestionTimeoutError",
    "SendFailedError",
    "TransportError",
]
