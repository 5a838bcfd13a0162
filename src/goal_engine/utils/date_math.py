from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import List, Literal, Optional, Union

from dateutil.relativedelta import relativedelta

DateLike = Union[date, datetime, str]
Period = Literal["weeks", "months", "years", "all"]

# Python weekday(): Monday=0 .. Sunday=6
_WEEK_START = {"monday": 0, "sunday": 6}


def date_only(value: Optional[DateLike]) -> Optional[date]:
    """
    Calendar date of a timestamp, ignoring time-of-day and UTC offset.

    "2025-01-01T17:00:00.000Z" is 2025-01-01 everywhere: the date part is cut
    from the string before any timezone arithmetic could shift it.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None
    s = s.split("T")[0].split(" ")[0]
    return date.fromisoformat(s)


def require_date(value: Optional[DateLike], field: str = "date") -> date:
    d = date_only(value)
    if d is None:
        raise ValueError(f"{field} is required")
    return d


def today() -> date:
    return date.today()


def days_between(a: DateLike, b: DateLike) -> int:
    # date subtraction counts calendar days, so DST transitions never apply
    return abs((require_date(b) - require_date(a)).days)


def months_between(a: DateLike, b: DateLike) -> float:
    """Whole months from a to b plus leftover days / 30. Negative when b < a."""
    start = require_date(a)
    end = require_date(b)
    if end < start:
        return -months_between(end, start)

    rd = relativedelta(end, start)
    whole = rd.years * 12 + rd.months
    anchor = start + relativedelta(months=whole)
    return whole + (end - anchor).days / 30


def start_of_week(d: date, week_starts_on: str = "sunday") -> date:
    first = _WEEK_START.get(week_starts_on, 6)
    return d - timedelta(days=(d.weekday() - first) % 7)


def end_of_week(d: date, week_starts_on: str = "sunday") -> date:
    return start_of_week(d, week_starts_on) + timedelta(days=6)


def end_of_month(d: date) -> date:
    return d + relativedelta(day=31)


def end_of_year(d: date) -> date:
    return date(d.year, 12, 31)


def end_of_period(d: date, period: Period, week_starts_on: str = "sunday") -> date:
    if period == "weeks":
        return end_of_week(d, week_starts_on)
    if period == "months":
        return end_of_month(d)
    return end_of_year(d)


def period_key(d: date, period: Period, week_starts_on: str = "sunday") -> str:
    """Identifies the bucket a date falls in ("all" buckets by year)."""
    if period == "weeks":
        return start_of_week(d, week_starts_on).isoformat()
    if period == "months":
        return f"{d.year:04d}-{d.month:02d}"
    return f"{d.year:04d}"


def shift(d: date, period: Period, n: int) -> date:
    if period == "weeks":
        return d + relativedelta(weeks=n)
    if period == "months":
        return d + relativedelta(months=n)
    return d + relativedelta(years=n)


def period_ends(start: date, end: date, period: Period, week_starts_on: str = "sunday") -> List[date]:
    """End date of every bucket that intersects [start, end], in order."""
    if end < start:
        return []

    out: List[date] = []
    cursor = end_of_period(start, period, week_starts_on)
    while True:
        out.append(cursor)
        if cursor >= end:
            break
        cursor = end_of_period(cursor + timedelta(days=1), period, week_starts_on)
    return out


def format_date_label(d: date, period: Period) -> str:
    if period == "weeks":
        return f"{d.day} {d.strftime('%b')}"
    if period == "months":
        return d.strftime("%b '%y")
    return d.strftime("%Y")
