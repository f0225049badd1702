"""Unit tests for the dates module."""

from datetime import date, datetime

import pytest

from ganttflow.dates import (
    date_range,
    format_local_date,
    inclusive_days,
    is_weekend,
    iso_week_number,
    parse_local_date,
    shift_days,
)


class TestParseLocalDate:
    """Tests for parse_local_date."""

    def test_plain_string(self):
        """Test a YYYY-MM-DD string parses to that calendar day."""
        assert parse_local_date("2024-06-10") == date(2024, 6, 10)

    def test_time_suffix_is_ignored(self):
        """Test a late-evening UTC timestamp keeps its calendar day."""
        assert parse_local_date("2024-06-10T23:30:00Z") == date(2024, 6, 10)
        assert parse_local_date("2024-06-10T00:00:00+09:00") == date(2024, 6, 10)

    def test_empty_values(self):
        """Test None and empty string give None."""
        assert parse_local_date(None) is None
        assert parse_local_date("") is None

    def test_date_and_datetime(self):
        """Test date objects pass through and datetimes are truncated."""
        assert parse_local_date(date(2024, 1, 2)) == date(2024, 1, 2)
        assert parse_local_date(datetime(2024, 1, 2, 23, 59)) == date(2024, 1, 2)

    @pytest.mark.parametrize("value", ["not-a-date", "2024-06", "2024-13-01", "2024-02-30"])
    def test_invalid_strings_raise(self, value):
        """Test malformed strings raise ValueError."""
        with pytest.raises(ValueError):
            parse_local_date(value)


class TestDateHelpers:
    """Tests for formatting and arithmetic helpers."""

    def test_format_pads(self):
        """Test keys are zero padded."""
        assert format_local_date(date(2024, 3, 7)) == "2024-03-07"

    def test_shift_days_crosses_month(self):
        """Test shifting crosses month boundaries."""
        assert shift_days(date(2024, 1, 31), 1) == date(2024, 2, 1)
        assert shift_days(date(2024, 3, 1), -1) == date(2024, 2, 29)

    def test_inclusive_days(self):
        """Test a single-day span counts as one day."""
        assert inclusive_days(date(2024, 6, 10), date(2024, 6, 10)) == 1
        assert inclusive_days(date(2024, 6, 3), date(2024, 6, 10)) == 8

    def test_is_weekend(self):
        """Test Saturday and Sunday are weekend days."""
        assert is_weekend(date(2024, 6, 8))
        assert is_weekend(date(2024, 6, 9))
        assert not is_weekend(date(2024, 6, 10))

    def test_iso_week_number(self):
        """Test ISO week numbering at a year boundary."""
        assert iso_week_number(date(2024, 12, 30)) == 1
        assert iso_week_number(date(2021, 1, 3)) == 53

    def test_date_range_inclusive(self):
        """Test date_range yields both ends."""
        days = list(date_range(date(2024, 2, 27), date(2024, 3, 1)))
        assert days == [
            date(2024, 2, 27),
            date(2024, 2, 28),
            date(2024, 2, 29),
            date(2024, 3, 1),
        ]

    def test_date_range_empty_when_reversed(self):
        assert list(date_range(date(2024, 3, 2), date(2024, 3, 1))) == []
