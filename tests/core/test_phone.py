"""Tests for US phone normalization."""

import pytest

from concierge.core.phone import is_valid_e164, normalize_phone_to_e164


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("(864) 555-1234", "+18645551234"),
        ("864.555.1234", "+18645551234"),
        ("1-864-555-1234", "+18645551234"),
        ("+1 864 555 1234", "+18645551234"),
    ],
)
def test_normalize_common_formats(raw, expected):
    assert normalize_phone_to_e164(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "555-1234", "2-864-555-1234", "not a phone"])
def test_normalize_rejects_unusable_numbers(raw):
    assert normalize_phone_to_e164(raw) is None


def test_is_valid_e164():
    assert is_valid_e164("+18645551234")
    assert not is_valid_e164("8645551234")
    assert not is_valid_e164("+448645551234")
    assert not is_valid_e164(None)
