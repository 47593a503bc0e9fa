"""Domain-specific exception types for the human-in-the-loop server."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class HitlError(Exception):
    """Base exception for human-in-the-loop domain errors."""

    message: str
    code: str = "hitl_error"
    details: Dict[str, Any] | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)
        if self.details is None:
            self.details = {}


class NotReadyError(HitlError):
    """The transport cannot currently send. Callers may retry later."""

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="not_ready", details=details)


class TransportError(HitlError):
    """Raised by transport adapters when the messaging backend rejects a call."""

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="transport_error", details=details)


class SendFailedError(HitlError):
    """The outbound question could not be delivered. Never retried internally."""

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="send_failed", details=details)


class QuestionTimeoutError(HitlError):
    """No qualifying reply arrived within the answer window."""

    def __init__(
        self,
        message: str,
        *,
        question_id: str | None = None,
        timeout_seconds: float | None = None,
        details: Dict[str, Any] | None = None,
    ) -> None:
        details = dict(details or {})
        if question_id:
            details.setdefault("question_id", question_id)
        if timeout_seconds is not None:
            details.setdefault("timeout_seconds", timeout_seconds)
        self.question_id = question_id
        super().__init__(message=message, code="timeout", details=details)


class QuestionCancelledError(HitlError):
    """The pending question was cancelled before a reply arrived."""

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="cancelled", details=details)


class InvariantViolationError(HitlError):
    """A pending question was observed in an impossible state."""

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="invariant_violation", details=details)


class ConfigError(HitlError):
    """Error raised for configuration failures."""

    def __init__(self, message: str, *, details: Dict[str, Any] | None = None) -> None:
        super().__init__(message=message, code="config_error", details=details)


def error_payload(error: HitlError, extra: Dict[str, Any] | None = None) -> Dict[str, Any]:
    """Convert a HitlError into a standardized response payload."""
    payload = {
        "success": False,
        "error": str(error),
        "error_type": type(error).__name__,
        "code": error.code,
        "details": error.details or {},
    }
    if extra:
        payload.update(extra)
    return payload
