"""
Month Keys

A month key is a ``YYYY-MM`` string and the only temporal identifier the
engine uses. Zero-padded keys sort lexicographically in chronological order,
so plain string comparison is used throughout.

Malformed keys are rejected loudly. There is no fallback to "this month".
"""

import re
from datetime import date
from typing import Iterator

_MONTH_KEY_RE = re.compile(r"^(\d{4})-(\d{2})$")


class InvalidMonthKeyError(ValueError):
    """Month key is not a valid YYYY-MM string."""
    pass


def parse_month_key(month_key: str) -> tuple[int, int]:
    """
    Split a month key into (year, month).

    Raises:
        InvalidMonthKeyError: non-numeric parts or a month outside 1-12
    """
    if not isinstance(month_key, str):
        raise InvalidMonthKeyError(f"Month key must be a string, got {type(month_key).__name__}")

    match = _MONTH_KEY_RE.match(month_key.strip())
    if match is None:
        raise InvalidMonthKeyError(f"Invalid month key: {month_key!r} (expected YYYY-MM)")

    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise InvalidMonthKeyError(f"Invalid month in key {month_key!r}: {month}")
    if year < 1:
        raise InvalidMonthKeyError(f"Invalid year in key {month_key!r}: {year}")
    return year, month


def format_month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def validate_month_key(month_key: str) -> str:
    """Return the normalized key, raising on malformed input."""
    return format_month_key(*parse_month_key(month_key))


def shift_month_key(month_key: str, months: int) -> str:
    """Move a month key forward (positive) or backward (negative)."""
    year, month = parse_month_key(month_key)
    index = year * 12 + (month - 1) + months
    return format_month_key(index // 12, index % 12 + 1)


def previous_month_key(month_key: str) -> str:
    return shift_month_key(month_key, -1)


def next_month_key(month_key: str) -> str:
    return shift_month_key(month_key, 1)


def month_span(start_key: str, end_key: str) -> int:
    """Inclusive number of months from start_key to end_key (0 if end is before start)."""
    start_year, start_month = parse_month_key(start_key)
    end_year, end_month = parse_month_key(end_key)
    count = (end_year - start_year) * 12 + (end_month - start_month) + 1
    return max(count, 0)


def iter_month_keys(start_key: str, end_key: str) -> Iterator[str]:
    """Yield every month key from start_key through end_key inclusive."""
    for offset in range(month_span(start_key, end_key)):
        yield shift_month_key(start_key, offset)


def month_key_for_date(d: date) -> str:
    return format_month_key(d.year, d.month)
