"""Time Helpers — UTC normalization and local-date projection, pure.

Invariants:
    - Every datetime leaving this module is timezone-aware
    - Naive datetimes are interpreted as UTC (SQLite drops tzinfo on read)

Design Decisions:
    - zoneinfo over fixed offsets: stats timezone configurable without code changes
"""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_date(value: datetime, tz_name: str) -> date:
    """Calendar date of `value` in the given IANA timezone."""
    return as_utc(value).astimezone(ZoneInfo(tz_name)).date()


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def end_of_day(day: date) -> datetime:
    """Inclusive upper bound: last microsecond of the UTC day."""
    return start_of_day(day) + timedelta(days=1) - timedelta(microseconds=1)


def whole_minutes(start: datetime, end: datetime) -> int:
    """Rounded minutes between two instants, never negative."""
    seconds = (as_utc(end) - as_utc(start)).total_seconds()
    return max(0, round(seconds / 60))
