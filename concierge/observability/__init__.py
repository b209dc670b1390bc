"""
Observability module.

Logging configuration, correlation IDs and request logging middleware.
"""

from concierge.observability.correlation import get_correlation_id, set_correlation_id
from concierge.observability.logger import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_correlation_id",
    "get_logger",
    "set_correlation_id",
]
