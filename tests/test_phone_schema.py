# tests/test_phone_schema.py
"""Tests for phone normalization and masking."""

import pytest
from pydantic import ValidationError

from nearbuy.schemas.phone_schema import PhoneSchema, mask_phone, normalize_phone


@pytest.mark.parametrize("raw", [
    "9876543210",
    "+91 98765 43210",
    "91-98765-43210",
    "0091 98765 43210",
    "09876543210",
])
def test_indian_numbers_normalize_to_the_same_phone(raw):
    assert normalize_phone(raw) == "919876543210"


def test_foreign_number_is_kept():
    assert normalize_phone("+44 7911 123456") == "447911123456"


@pytest.mark.parametrize("raw", ["12345", "abc", "1234567890123456"])
def test_invalid_numbers_raise(raw):
    with pytest.raises(ValidationError):
        PhoneSchema(phone=raw)


def test_mask_phone():
    assert mask_phone("919876543210") == "919****210"
    assert mask_phone("") == "<sin-telefono>"
    assert mask_phone("12345") == "*****"
