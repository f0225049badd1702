"""
Local calendar date helpers.

All timeline arithmetic works on ``datetime.date`` values so that a day is a
calendar day in the viewer's local calendar, never a UTC instant. Keys used
by the date index are "YYYY-MM-DD" strings produced by ``format_local_date``.
"""

from datetime import date, datetime, timedelta
from typing import Optional, Union

DateLike = Union[str, date, datetime, None]


def parse_local_date(value: DateLike) -> Optional[date]:
    """
    Parse a date-like value into a local calendar date.

    Strings may carry a time suffix ("2024-06-10T23:00:00Z"); only the
    calendar part before "T" is used, so no timezone conversion happens.

    Args:
        value: "YYYY-MM-DD" string, date, datetime, or None/"".

    Returns:
        The calendar date, or None for empty input.

    Raises:
        ValueError: If a non-empty string is not a valid date.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    date_only = str(value).strip().split("T")[0]
    try:
        year, month, day = (int(part) for part in date_only.split("-"))
    except ValueError:
        raise ValueError(f"Invalid date: {value!r}")
    return date(year, month, day)


def format_local_date(value: date) -> str:
    """Format a date as the "YYYY-MM-DD" key used throughout the engine."""
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def shift_days(value: date, days: int) -> date:
    return value + timedelta(days=days)


def inclusive_days(start: date, end: date) -> int:
    """Number of calendar days covered by [start, end], both inclusive."""
    return (end - start).days + 1


def is_weekend(value: date) -> bool:
    return value.weekday() >= 5


def iso_week_number(value: date) -> int:
    """ISO 8601 week number (weeks start Monday, week 1 holds a Thursday)."""
    return value.isocalendar()[1]


def date_range(start: date, end: date):
    """Yield every calendar day from start to end, inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
