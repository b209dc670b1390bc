"""
Phone number helpers.

US numbers only: everything is normalized to +1XXXXXXXXXX before it is
handed to Vapi or Twilio.

Dependencies: re (stdlib)
System role: Shared phone normalization for calling and SMS
"""

import re

E164_US_PATTERN = r"^\+1\d{10}$"

_E164_RE = re.compile(E164_US_PATTERN)
_NON_DIGITS = re.compile(r"\D")


def normalize_phone_to_e164(raw: str | None) -> str | None:
    """
    Normalize a free-form US phone number to E.164.

    Args:
        raw: Phone number in any common format, e.g. "(864) 555-1234"

    Returns:
        str | None: "+18645551234" style number, or None if it cannot be normalized
    """
    if not raw:
        return None

    digits = _NON_DIGITS.sub("", raw)
    if len(digits) == 10:
        return f"+1{digits}"
    if len(digits) == 11 and digits.startswith("1"):
        return f"+{digits}"
    return None


def is_valid_e164(phone: str | None) -> bool:
    """Check a phone number is a +1 E.164 number."""
    return bool(phone) and bool(_E164_RE.match(phone))
