"""
Structured logging configuration with request/trace ID correlation.

The HTTP layer logs through :class:`StructuredLogger`, which adds the
request, trace, child and session ids of the current request to every event.
Monitoring services use plain ``logging`` loggers; both end up on the same
stdlib handlers once :func:`configure_logging` has run.
"""

import logging
import uuid
from contextvars import ContextVar
from typing import Any, Dict, List, Optional, Tuple

import structlog
from structlog.stdlib import LoggerFactory

# Context variables for request correlation
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
trace_id_var: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)
child_id_var: ContextVar[Optional[str]] = ContextVar("child_id", default=None)
session_id_var: ContextVar[Optional[str]] = ContextVar("session_id", default=None)

_CONTEXT_VARS: Tuple[Tuple[str, ContextVar[Optional[str]]], ...] = (
    ("request_id", request_id_var),
    ("trace_id", trace_id_var),
    ("child_id", child_id_var),
    ("session_id", session_id_var),
)


def current_context() -> Dict[str, str]:
    """Correlation ids set for the current request."""
    return {key: value for key, var in _CONTEXT_VARS if (value := var.get())}


class StructuredLogger:
    """Structured logger with request correlation support."""

    def __init__(self, name: str):
        self.name = name
        self.logger = structlog.get_logger(name)

    def _event(self, kwargs: Dict[str, Any]) -> Dict[str, Any]:
        event = current_context()
        event.update(kwargs)
        return event

    def debug(self, message: str, **kwargs: Any) -> None:
        self.logger.debug(message, **self._event(kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        self.logger.info(message, **self._event(kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        self.logger.warning(message, **self._event(kwargs))

    def error(self, message: str, **kwargs: Any) -> None:
        self.logger.error(message, **self._event(kwargs))

    def critical(self, message: str, **kwargs: Any) -> None:
        self.logger.critical(message, **self._event(kwargs))

    def log_api_request(
        self,
        method: str,
        path: str,
        status_code: int,
        duration_ms: float,
        **kwargs: Any,
    ) -> None:
        """Log API request with timing and status."""
        self.info(
            f"API request: {method} {path}",
            method=method,
            path=path,
            status_code=status_code,
            duration_ms=duration_ms,
            **kwargs,
        )

    def log_session_event(
        self, event_type: str, session_id: str, subject_id: str, **kwargs: Any
    ) -> None:
        """Log a monitoring session lifecycle event."""
        self.info(
            f"Session event: {event_type}",
            event_type=event_type,
            session_id=session_id,
            subject_id=subject_id,
            **kwargs,
        )

    def log_alert(
        self, kind: str, severity: str, subject_id: Optional[str], **kwargs: Any
    ) -> None:
        """Log an alert raised for a parent."""
        self.warning(
            f"Alert raised: {kind}",
            kind=kind,
            severity=severity,
            subject_id=subject_id,
            **kwargs,
        )


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance."""
    return StructuredLogger(name)


def set_request_context(
    request_id: Optional[str] = None,
    trace_id: Optional[str] = None,
    child_id: Optional[str] = None,
    session_id: Optional[str] = None,
) -> None:
    """Set the correlation ids that are given; others keep their value."""
    values = {
        "request_id": request_id,
        "trace_id": trace_id,
        "child_id": child_id,
        "session_id": session_id,
    }
    for key, var in _CONTEXT_VARS:
        if values[key]:
            var.set(values[key])


def clear_request_context() -> None:
    for _, var in _CONTEXT_VARS:
        var.set(None)


def generate_request_id() -> str:
    return str(uuid.uuid4())


def generate_trace_id() -> str:
    return str(uuid.uuid4())


def configure_logging(level: str = "INFO", json_format: bool = True) -> None:
    """Configure structlog and the stdlib root logger.

    ``json_format`` selects JSON lines (production) or the colored console
    renderer (development and tests).
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer()
    )
    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.add_log_level,
        renderer,
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # force=True so a second app in the same process can change the level
    logging.basicConfig(
        level=numeric_level,
        format="%(message)s",
        handlers=[logging.StreamHandler()],
        force=True,
    )
