"""
Correlation ID propagation.

Stores the request correlation ID in a ContextVar so that log records and
background tasks spawned during a request carry the same identifier.

Dependencies: contextvars, logging (stdlib)
System role: Request tracing across log lines
"""

import logging
from contextvars import ContextVar

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Return the correlation ID bound to the current context, if any."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    """Bind a correlation ID to the current context."""
    _correlation_id.set(correlation_id)


class CorrelationIdFilter(logging.Filter):
    """Logging filter that adds `correlation_id` to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        return True
