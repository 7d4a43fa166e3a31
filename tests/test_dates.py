"""
tests/test_dates.py — UTC Day Helpers
======================================
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

from inkwell.engine.dates import (
    EPOCH,
    day_key,
    days_between,
    end_of_day,
    ensure_utc,
    is_same_day,
    month_start,
    start_of_day,
)


class TestEnsureUtc:
    def test_naive_is_taken_as_utc(self):
        naive = datetime(2026, 3, 15, 23, 30)
        assert ensure_utc(naive) == datetime(2026, 3, 15, 23, 30, tzinfo=UTC)

    def test_offset_is_converted(self):
        tokyo = timezone(timedelta(hours=9))
        value = datetime(2026, 3, 16, 1, 0, tzinfo=tokyo)
        assert ensure_utc(value) == datetime(2026, 3, 15, 16, 0, tzinfo=UTC)


class TestDayBoundaries:
    def test_day_key(self):
        assert day_key(datetime(2026, 3, 15, 0, 0, 1, tzinfo=UTC)) == "2026-03-15"

    def test_day_key_uses_utc_not_local(self):
        # 01:00 in UTC+9 is still the previous UTC day
        tokyo = timezone(timedelta(hours=9))
        assert day_key(datetime(2026, 3, 16, 1, 0, tzinfo=tokyo)) == "2026-03-15"

    def test_start_and_end_of_day(self):
        now = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)
        assert start_of_day(now) == datetime(2026, 3, 15, tzinfo=UTC)
        assert end_of_day(now) == datetime(2026, 3, 15, 23, 59, 59, 999999, tzinfo=UTC)

    def test_month_start(self):
        assert month_start(datetime(2026, 3, 15, 12, tzinfo=UTC)) == datetime(2026, 3, 1, tzinfo=UTC)


class TestDaysBetween:
    def test_same_day(self):
        a = datetime(2026, 3, 15, 0, 1, tzinfo=UTC)
        b = datetime(2026, 3, 15, 23, 59, tzinfo=UTC)
        assert days_between(a, b) == 0
        assert is_same_day(a, b)

    def test_across_midnight_is_one_day(self):
        a = datetime(2026, 3, 14, 23, 59, tzinfo=UTC)
        b = datetime(2026, 3, 15, 0, 1, tzinfo=UTC)
        assert days_between(a, b) == 1
        assert not is_same_day(a, b)

    def test_from_epoch_sentinel(self):
        assert days_between(EPOCH, datetime(1970, 1, 3, tzinfo=UTC)) == 2

    def test_mixed_naive_and_aware(self):
        assert days_between(datetime(2026, 3, 14, 8), datetime(2026, 3, 15, 8, tzinfo=UTC)) == 1
