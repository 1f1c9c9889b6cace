"""Unit tests for shared configuration parsing helpers."""

import pytest

from lingocache.parsing import (
    normalize_language,
    normalize_optional_string,
    parse_positive_float,
    parse_positive_int,
)


def test_normalize_optional_string_handles_blank_values() -> None:
    """Normalization should return `None` for `None` and blank textual values."""

    assert normalize_optional_string(None) is None
    assert normalize_optional_string("") is None
    assert normalize_optional_string("   ") is None


def test_normalize_optional_string_strips_non_blank_values() -> None:
    """Normalization should return stripped content for non-empty values."""

    assert normalize_optional_string("  value  ") == "value"
    assert normalize_optional_string(42) == "42"


def test_normalize_language_casefolds_and_trims() -> None:
    """Language keys should compare case-insensitively after trimming."""

    assert normalize_language("  Spanish ") == "spanish"
    assert normalize_language("ESPAÑOL") == "español"
    assert normalize_language(" ") is None


@pytest.mark.parametrize(("value", "expected"), [(2, 2.0), ("0.5", 0.5), (" 4.5 ", 4.5)])
def test_parse_positive_float_accepts_numbers_and_text(value: object, expected: float) -> None:
    """Positive float parsing should accept numeric and textual input."""

    assert parse_positive_float(value, "min_interval_seconds") == expected


@pytest.mark.parametrize("value", [0, -1.0, "abc", "", True])
def test_parse_positive_float_rejects_invalid_values(value: object) -> None:
    """Positive float parsing should name the field in its error message."""

    with pytest.raises(ValueError, match=r"`min_interval_seconds` must be a positive number\."):
        parse_positive_float(value, "min_interval_seconds")


@pytest.mark.parametrize("value", [0, "-3", "2.5", False])
def test_parse_positive_int_rejects_invalid_values(value: object) -> None:
    """Positive integer parsing should reject zero, negatives, fractions, and booleans."""

    with pytest.raises(ValueError, match=r"`batch_limit` must be a positive integer\."):
        parse_positive_int(value, "batch_limit")


def test_parse_positive_int_accepts_text() -> None:
    """Positive integer parsing should strip textual input."""

    assert parse_positive_int(" 12 ", "batch_limit") == 12
