"""
Time utilities for wall-clock timestamps and calendar-date arithmetic.

Wall-clock time is only used for the timestamps placed in outbound messages
and for bucketing reservations by period. Cache freshness uses a monotonic
clock so that wall-clock adjustments never resurrect or expire entries.
"""

import time
from collections.abc import Iterator
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional, Union

Clock = Callable[[], float]

DateLike = Union[date, datetime, str]


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def monotonic_clock() -> float:
    """Default clock for cache ages, in seconds."""
    return time.monotonic()


def format_timestamp(ts: Optional[datetime] = None) -> str:
    """
    Format a timestamp for outbound protocol messages.

    Args:
        ts: Timestamp to format, defaults to now

    Returns:
        ISO8601 string with millisecond precision and a ``Z`` suffix
    """
    if ts is None:
        ts = utc_now()
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_date(value: DateLike) -> date:
    """
    Coerce a date, datetime or ISO string into a calendar date.

    Raises:
        ValueError: If a string is not an ISO8601 date or datetime
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        if len(text) == 10:
            return date.fromisoformat(text)
        return datetime.fromisoformat(text).date()
    raise ValueError(f"Unsupported date value: {value!r}")


def days_until(target: date, today: Optional[date] = None) -> int:
    """Whole days from today to target (negative for past dates)."""
    if today is None:
        today = utc_now().date()
    return (target - today).days


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from start to end, both inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def start_of_day(ts: datetime) -> datetime:
    return ts.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(ts: datetime) -> datetime:
    """Weeks start on Sunday."""
    day = start_of_day(ts)
    return day - timedelta(days=(day.weekday() + 1) % 7)


def start_of_month(ts: datetime) -> datetime:
    return start_of_day(ts).replace(day=1)


def start_of_year(ts: datetime) -> datetime:
    return start_of_day(ts).replace(month=1, day=1)


def parse_timestamp(value: Union[datetime, str, None]) -> Optional[datetime]:
    """
    Parse a collaborator timestamp into an aware UTC datetime.

    Naive values are assumed to be UTC. Unparseable values yield None.
    """
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
