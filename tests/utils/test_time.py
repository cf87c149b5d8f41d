"""
Tests for time utilities.

Verifies timestamp formatting for outbound messages, tolerant parsing of
collaborator timestamps and the calendar helpers used for revenue buckets.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from airhost_rt.utils.time import (
    days_until,
    format_timestamp,
    iter_days,
    parse_timestamp,
    start_of_month,
    start_of_week,
    start_of_year,
    to_date,
)


class TestFormatTimestamp:
    """Test outbound timestamp formatting."""

    def test_utc_with_milliseconds(self):
        ts = datetime(2024, 5, 15, 12, 30, 0, 123456, tzinfo=timezone.utc)
        assert format_timestamp(ts) == "2024-05-15T12:30:00.123Z"

    def test_naive_is_treated_as_utc(self):
        assert format_timestamp(datetime(2024, 1, 1)) == "2024-01-01T00:00:00.000Z"

    def test_converts_other_zones(self):
        ts = datetime(2024, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(ts) == "2024-01-01T00:00:00.000Z"

    def test_defaults_to_now(self):
        assert format_timestamp().endswith("Z")


class TestParseTimestamp:
    """Test collaborator timestamp parsing."""

    def test_z_suffix(self):
        assert parse_timestamp("2024-05-15T12:00:00Z") == datetime(2024, 5, 15, 12, tzinfo=timezone.utc)

    def test_offset_is_normalized(self):
        parsed = parse_timestamp("2024-05-15T14:00:00+02:00")
        assert parsed == datetime(2024, 5, 15, 12, tzinfo=timezone.utc)
        assert parsed.tzinfo == timezone.utc

    def test_naive_string_assumed_utc(self):
        assert parse_timestamp("2024-05-15T12:00:00").tzinfo == timezone.utc

    @pytest.mark.parametrize("value", [None, "", "yesterday", 12345])
    def test_unparseable_gives_none(self, value):
        assert parse_timestamp(value) is None


class TestCalendarHelpers:
    """Test date coercion and period starts."""

    def test_to_date_variants(self):
        assert to_date(date(2024, 7, 1)) == date(2024, 7, 1)
        assert to_date(datetime(2024, 7, 1, 23, 59)) == date(2024, 7, 1)
        assert to_date("2024-07-01") == date(2024, 7, 1)
        assert to_date("2024-07-01T10:00:00Z") == date(2024, 7, 1)

    def test_to_date_rejects_garbage(self):
        with pytest.raises(ValueError):
            to_date("July 1st")

    def test_days_until(self):
        assert days_until(date(2024, 7, 10), today=date(2024, 7, 1)) == 9
        assert days_until(date(2024, 6, 30), today=date(2024, 7, 1)) == -1

    def test_iter_days_inclusive(self):
        days = list(iter_days(date(2024, 2, 28), date(2024, 3, 1)))
        assert days == [date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1)]

    def test_week_starts_on_sunday(self):
        wednesday = datetime(2024, 5, 15, 12, tzinfo=timezone.utc)
        assert start_of_week(wednesday) == datetime(2024, 5, 12, tzinfo=timezone.utc)

        sunday = datetime(2024, 5, 12, 8, tzinfo=timezone.utc)
        assert start_of_week(sunday) == datetime(2024, 5, 12, tzinfo=timezone.utc)

    def test_month_and_year_start(self):
        ts = datetime(2024, 5, 15, 12, tzinfo=timezone.utc)
        assert start_of_month(ts) == datetime(2024, 5, 1, tzinfo=timezone.utc)
        assert start_of_year(ts) == datetime(2024, 1, 1, tzinfo=timezone.utc)
