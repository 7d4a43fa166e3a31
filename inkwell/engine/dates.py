"""
inkwell.engine.dates — UTC Day Helpers
=======================================

A "day" in the economy is always a **UTC calendar day**.  Nothing here
guesses a user's local time zone; every comparison first normalizes both
sides to UTC midnight.

Databases without timezone support (SQLite) hand back naive datetimes.
Those are interpreted as UTC by :func:`ensure_utc`.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time

# Sentinel stored as ``last_check_in_date`` for users who never checked in
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def utc_now() -> datetime:
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Return *value* as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def utc_day(value: datetime) -> date:
    """The UTC calendar day *value* falls on."""
    return ensure_utc(value).date()


def day_key(value: datetime) -> str:
    """``YYYY-MM-DD`` key of the UTC day — used for day-unique records."""
    return utc_day(value).isoformat()


def start_of_day(value: datetime) -> datetime:
    return datetime.combine(utc_day(value), time.min, tzinfo=UTC)


def end_of_day(value: datetime) -> datetime:
    """Last representable instant of the UTC day (23:59:59.999999)."""
    return datetime.combine(utc_day(value), time.max, tzinfo=UTC)


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole UTC days from *earlier*'s day to *later*'s day (0 = same day)."""
    return (utc_day(later) - utc_day(earlier)).days


def is_same_day(a: datetime, b: datetime) -> bool:
    return utc_day(a) == utc_day(b)


def month_start(value: datetime) -> datetime:
    """First instant of the UTC calendar month containing *value*."""
    day = utc_day(value)
    return datetime(day.year, day.month, 1, tzinfo=UTC)
