"""
Retry policy for outbound HTTP calls.

Transport-level failures (connection resets, timeouts) are retried with
exponential backoff and jitter. HTTP error statuses are not retried: they are
raised to the caller, which decides how to degrade.

Requests with side effects (placing a call, sending an SMS, starting a flow)
retry only when the connection was never established, since a read timeout
may arrive after the server already acted.

Dependencies: httpx, tenacity
System role: Shared resilience for Vapi, Kestra, Places and Twilio clients
"""

import logging

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

logger = logging.getLogger(__name__)

# Failures where the request never reached the server
CONNECT_ERRORS: tuple[type[Exception], ...] = (httpx.ConnectError, httpx.ConnectTimeout)


def http_retry(
    operation: str,
    attempts: int = 3,
    retry_on: tuple[type[Exception], ...] = (httpx.TransportError,),
):
    """
    Build a tenacity retry decorator for an HTTP operation.

    Args:
        operation: Name used in retry log lines
        attempts: Maximum attempts including the first
        retry_on: Exception types that trigger another attempt; pass
            CONNECT_ERRORS for non-idempotent requests

    Returns:
        Decorator retrying on the given exception types
    """
    return retry(
        retry=retry_if_exception_type(retry_on),
        stop=stop_after_attempt(attempts),
        wait=wait_exponential_jitter(initial=1, max=10, jitter=1),
        before_sleep=lambda retry_state: logger.warning(
            f"{__name__}:{operation} - Retry {retry_state.attempt_number}/{attempts} "
            f"after {type(retry_state.outcome.exception()).__name__}"
        ),
        reraise=True,
    )
