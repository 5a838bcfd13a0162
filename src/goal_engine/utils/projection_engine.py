from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, getcontext
from typing import TYPE_CHECKING

from goal_engine.core.errors import InvalidRangeError
from goal_engine.utils.date_math import DateLike, days_between, require_date

if TYPE_CHECKING:
    from goal_engine.core.schemas import Goal

getcontext().prec = 28

DAYS_PER_YEAR = Decimal(365)
# Monthly amounts become daily ones by dividing by 30, not by the calendar
# month length. Changing this shifts every projected value.
DAYS_PER_MONTH = Decimal(30)


def to_decimal(x) -> Decimal:
    if isinstance(x, Decimal):
        return x
    if x is None:
        return Decimal(0)
    return Decimal(str(x))


def round_currency(x, decimals: int = 2) -> float:
    q = Decimal(1).scaleb(-decimals)
    return float(to_decimal(x).quantize(q, rounding=ROUND_HALF_UP))


def daily_rate(annual_rate_pct) -> Decimal:
    r = to_decimal(annual_rate_pct)
    if r < 0:
        raise ValueError("annual return rate cannot be negative")
    return r / Decimal(100) / DAYS_PER_YEAR


def daily_contribution_from_monthly(monthly) -> Decimal:
    return to_decimal(monthly) / DAYS_PER_MONTH


def _annuity_factor(rate: Decimal, n: int) -> Decimal:
    if rate == 0:
        return Decimal(n)
    return ((Decimal(1) + rate) ** n - Decimal(1)) / rate


def project_contributions(daily_contribution, annual_rate_pct, start: DateLike, as_of: DateLike) -> Decimal:
    """
    Future value of a daily contribution stream under daily compounding.

    Principal is not part of this curve: only the recurring contributions made
    since `start` are grown. 0 on or before the start date.
    """
    start_d = require_date(start, "start_date")
    as_of_d = require_date(as_of, "as_of")
    if as_of_d < start_d:
        return Decimal(0)

    n = days_between(start_d, as_of_d)
    if n == 0:
        return Decimal(0)

    pmt = to_decimal(daily_contribution)
    if pmt <= 0:
        return Decimal(0)

    return pmt * _annuity_factor(daily_rate(annual_rate_pct), n)


def required_daily_contribution(target_amount, annual_rate_pct, start: DateLike, due: DateLike) -> Decimal:
    """Daily contribution whose projection reaches `target_amount` exactly on `due`."""
    start_d = require_date(start, "start_date")
    due_d = require_date(due, "due_date")
    if due_d <= start_d:
        raise InvalidRangeError(start_d, due_d)

    total_days = days_between(start_d, due_d)
    return to_decimal(target_amount) / _annuity_factor(daily_rate(annual_rate_pct), total_days)


def required_monthly_investment(target_amount, annual_rate_pct, start: DateLike, due: DateLike) -> Decimal:
    return required_daily_contribution(target_amount, annual_rate_pct, start, due) * DAYS_PER_MONTH


def project_goal_value(goal: "Goal", as_of: DateLike) -> Decimal:
    """Projected value of a goal's contribution stream; 0 for goals without a start date."""
    if goal.start_date is None:
        return Decimal(0)
    return project_contributions(
        daily_contribution_from_monthly(goal.effective_monthly_investment()),
        goal.target_return_rate,
        goal.start_date,
        as_of,
    )


def projected_future_value(goal: "Goal") -> Decimal:
    """Projection evaluated exactly at the due date."""
    return project_goal_value(goal, goal.due_date)


def project_contributions_monthly(monthly_investment, annual_rate_pct, months_from_start: float) -> Decimal:
    """
    Legacy monthly-compounding projection, kept for older displays only.

    Day 0 shows one day's worth (monthly / 30) of contribution; zero rate is a
    plain sum. Use project_contributions for anything new.
    """
    if months_from_start < 0:
        return Decimal(0)

    monthly = to_decimal(monthly_investment)
    if months_from_start == 0:
        return monthly / DAYS_PER_MONTH

    n = to_decimal(months_from_start)
    r = to_decimal(annual_rate_pct) / Decimal(100) / Decimal(12)
    if r == 0:
        return monthly * n

    return monthly * (((Decimal(1) + r) ** n - Decimal(1)) / r)

