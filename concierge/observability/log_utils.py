"""
Structured logging helpers for call and SMS traffic.

Log records here carry transcripts, LLM output and phone numbers. Long
values are cut down to a preview, and numbers of the people we call or
text are masked to their last four digits before they reach a handler.

Dependencies: logging (stdlib)
System role: Logging helper functions
"""

import logging
from typing import Any

PHONE_KEYS = frozenset({"phone", "to", "from_phone", "user_phone", "provider_phone", "customer_phone"})


def mask_phone(phone: str | None) -> str:
    """Keep only the last four digits, e.g. "+18645550100" -> "***0100"."""
    if not phone:
        return "None"
    digits = "".join(char for char in phone if char.isdigit())
    return f"***{digits[-4:]}" if len(digits) >= 4 else "***"


def safe_log_value(value: Any, max_length: int = 500) -> str:
    """
    Render a value for a log record.

    Collections are summarized by size; strings longer than `max_length`
    (transcripts mostly) are truncated with their full length noted.
    """
    try:
        if value is None:
            return "None"
        if isinstance(value, str):
            text = value
        elif isinstance(value, (list, tuple)):
            text = f"{type(value).__name__}({len(value)} items)"
        elif isinstance(value, dict):
            text = f"dict({len(value)} keys)"
        else:
            text = str(value)

        if len(text) > max_length:
            return text[:max_length] + f"... (truncated, {len(text)} total)"
        return text
    except Exception as e:
        return f"<unable to log: {type(e).__name__}>"


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    **context,
) -> None:
    """Log `message` with `context` as extra fields, masking phone keys."""
    safe_context = {
        key: mask_phone(val) if key in PHONE_KEYS else safe_log_value(val)
        for key, val in context.items()
    }
    logger.log(level, message, extra=safe_context)
