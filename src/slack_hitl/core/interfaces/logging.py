"""
Logger protocol for the correlation engine.

The engine and dispatcher emit structlog-style events (an event name plus
keyword context). Anything with these methods can be injected in place of
a structlog logger, e.g. a recording logger in tests.
"""

from typing import Any, Protocol


class LoggerProtocol(Protocol):
    """Structured logger accepted by QuestionEngine and Dispatcher."""

    def debug(self, event: str, **kwargs: Any) -> Any: ...

    def info(self, event: str, **kwargs: Any) -> Any: ...

    def warning(self, event: str, **kwargs: Any) -> Any: ...

    def error(self, event: str, **kwargs: Any) -> Any: ...

    def exception(self, event: str, **kwargs: Any) -> Any:
        """Log at error level with the active exception attached."""
        ...
