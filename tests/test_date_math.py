from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from goal_engine.utils.date_math import (
    date_only,
    days_between,
    end_of_month,
    end_of_week,
    format_date_label,
    months_between,
    period_ends,
    period_key,
)


def test_date_only_ignores_time_and_offset():
    assert date_only("2025-01-01T17:00:00.000Z") == date(2025, 1, 1)
    assert date_only("2025-01-01T23:59:59+07:00") == date(2025, 1, 1)
    assert date_only("2025-01-01") == date(2025, 1, 1)
    tz = timezone(timedelta(hours=7))
    assert date_only(datetime(2025, 1, 1, 23, 30, tzinfo=tz)) == date(2025, 1, 1)
    assert date_only(None) is None
    assert date_only("") is None


def test_date_only_rejects_garbage():
    with pytest.raises(ValueError):
        date_only("not-a-date")


def test_days_between_leap_and_dst():
    assert days_between(date(2024, 2, 28), date(2024, 3, 1)) == 2
    assert days_between(date(2023, 2, 28), date(2023, 3, 1)) == 1
    assert days_between("2025-03-10", "2025-03-09T23:00:00Z") == 1
    assert days_between(date(2025, 11, 1), date(2025, 11, 3)) == 2
    assert days_between("2025-01-01", "2025-02-01") == 31


def test_months_between_fractional_days():
    assert months_between("2025-01-15", "2025-03-15") == 2.0
    assert months_between("2025-01-15", "2025-02-20") == pytest.approx(1 + 5 / 30)
    assert months_between("2025-03-15", "2025-01-15") == -2.0
    assert months_between("2025-01-01", "2025-01-16") == pytest.approx(0.5)


def test_end_of_month_handles_leap_years():
    assert end_of_month(date(2024, 2, 10)) == date(2024, 2, 29)
    assert end_of_month(date(2023, 2, 10)) == date(2023, 2, 28)
    assert end_of_month(date(2025, 4, 30)) == date(2025, 4, 30)


def test_end_of_week_respects_week_start():
    # 2025-01-01 is a Wednesday
    assert end_of_week(date(2025, 1, 1), "sunday") == date(2025, 1, 4)
    assert end_of_week(date(2025, 1, 1), "monday") == date(2025, 1, 5)
    assert end_of_week(date(2025, 1, 4), "sunday") == date(2025, 1, 4)


def test_period_ends_months_and_years():
    assert period_ends(date(2024, 1, 15), date(2024, 4, 2), "months") == [
        date(2024, 1, 31),
        date(2024, 2, 29),
        date(2024, 3, 31),
        date(2024, 4, 30),
    ]
    assert period_ends(date(2025, 1, 1), date(2027, 6, 1), "years") == [
        date(2025, 12, 31),
        date(2026, 12, 31),
        date(2027, 12, 31),
    ]
    assert period_ends(date(2025, 5, 1), date(2025, 4, 1), "months") == []


def test_period_key_buckets():
    assert period_key(date(2025, 4, 10), "months") == "2025-04"
    assert period_key(date(2025, 4, 10), "all") == "2025"
    assert period_key(date(2025, 4, 10), "weeks") == period_key(date(2025, 4, 12), "weeks")
    assert period_key(date(2025, 4, 12), "weeks") != period_key(date(2025, 4, 13), "weeks")


def test_format_date_label():
    assert format_date_label(date(2025, 3, 7), "weeks") == "7 Mar"
    assert format_date_label(date(2025, 3, 7), "months") == "Mar '25"
    assert format_date_label(date(2025, 3, 7), "years") == "2025"
    assert format_date_label(date(2025, 3, 7), "all") == "2025"
