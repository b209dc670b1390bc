"""Tests for the structured logging helpers."""

import logging

import pytest

from concierge.observability.log_utils import log_with_context, mask_phone, safe_log_value


@pytest.mark.parametrize(
    ("phone", "expected"),
    [("+18645550100", "***0100"), ("864-555-0111", "***0111"), ("12", "***"), (None, "None")],
)
def test_mask_phone(phone, expected):
    assert mask_phone(phone) == expected


def test_safe_log_value_truncates_long_transcripts():
    transcript = "AI: hello\n" * 100

    rendered = safe_log_value(transcript, max_length=20)

    assert rendered.startswith(transcript[:20])
    assert rendered.endswith(f"(truncated, {len(transcript)} total)")
    assert safe_log_value(["a", "b"]) == "list(2 items)"
    assert safe_log_value({"a": 1}) == "dict(1 keys)"


def test_log_with_context_masks_phone_numbers(caplog):
    logger = logging.getLogger("concierge.tests.log_utils")

    with caplog.at_level(logging.INFO, logger="concierge.tests.log_utils"):
        log_with_context(logger, logging.INFO, "SMS sent", to="+18645550100", message_sid="SM1")

    record = caplog.records[-1]
    assert record.to == "***0100"
    assert record.message_sid == "SM1"
