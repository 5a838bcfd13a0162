from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd
from dateutil.relativedelta import relativedelta

from goal_engine.core.config import SETTINGS, Settings
from goal_engine.core.schemas import Goal, GoalAllocation
from goal_engine.utils.allocation_attribution import attribute_allocation
from goal_engine.utils.date_math import (
    DateLike,
    date_only,
    format_date_label,
    period_ends,
    period_key,
    shift,
    today as _today,
)
from goal_engine.utils.logging import get_logger, set_goal
from goal_engine.utils.progress_models import ChartDataPoint, GoalValuationHistory, TimePeriod
from goal_engine.utils.projection_engine import project_goal_value, projected_future_value, round_currency
from goal_engine.utils.valuation_lookup import ValuationLookup

logger = get_logger("valuation_history")


def _window(period: TimePeriod, settings: Settings) -> Tuple[int, int]:
    if period == "weeks":
        return settings.weeks_past, settings.weeks_future
    if period == "months":
        return settings.months_past, settings.months_future
    return settings.years_past, settings.years_future


def effective_start(goal: Goal, today: date) -> date:
    if goal.start_date is not None:
        return goal.start_date
    # Goals saved before start dates existed are charted from one year ago,
    # never later than the day before their due date
    return min(today - relativedelta(years=1), goal.due_date - timedelta(days=1))


def with_effective_start(goal: Goal, today: Optional[DateLike] = None) -> Goal:
    """The goal as charted: legacy goals get their synthesized start date."""
    if goal.start_date is not None:
        return goal
    t = date_only(today) or _today()
    return goal.model_copy(update={"start_date": effective_start(goal, t)})


def history_fetch_window(goal: Goal, today: Optional[DateLike] = None) -> Tuple[date, date]:
    """Date range to request historical valuations for when charting `goal`."""
    t = date_only(today) or _today()
    start = effective_start(goal, t)
    return min(start, t), goal.due_date + relativedelta(years=1)


def display_range(
    period: TimePeriod,
    goal_start: date,
    goal_due: date,
    today: date,
    settings: Settings = SETTINGS,
) -> Tuple[date, date]:
    """Visible range: whole lifetime for "all", else a window around today kept inside the lifetime."""
    if period == "all":
        return goal_start, goal_due

    past, future = _window(period, settings)
    start = shift(today, period, -past)
    end = shift(today, period, future)

    start = min(max(start, goal_start), goal_due)
    end = max(min(end, goal_due), goal_start)
    return start, end


def bucket_dates(
    period: TimePeriod,
    start: date,
    end: date,
    goal_due: date,
    week_starts_on: str = "sunday",
) -> List[date]:
    """
    One date per bucket, the bucket's last day. "all" uses yearly buckets.

    The bucket holding the due date is dated on the due date itself, so the
    series never runs past it and its last point is the due-date projection.
    """
    out: List[date] = []
    for d in period_ends(start, end, period, week_starts_on):
        d = min(d, goal_due)
        if not out or out[-1] != d:
            out.append(d)
    return out


def actual_value_at(
    goal: Goal,
    allocations: Iterable[GoalAllocation],
    lookup: ValuationLookup,
    on: date,
) -> Optional[Decimal]:
    """
    Sum of the goal's allocation values from the latest valuations on or before `on`.

    Principal always counts; growth only where a valuation exists. None when
    no account has any valuation on or before `on`.
    """
    total = Decimal(0)
    seen_valuation = False
    for a in allocations:
        if a.goal_id != goal.id:
            continue
        if a.end_date is not None and on > a.end_date:
            continue
        att = attribute_allocation(a, goal, lookup, on)
        total += att.value
        seen_valuation = seen_valuation or att.has_valuation
    return total if seen_valuation else None


def build_valuation_history(
    goal: Goal,
    allocations: Iterable[GoalAllocation],
    lookup: ValuationLookup,
    period: TimePeriod = "months",
    today: Optional[DateLike] = None,
    settings: Settings = SETTINGS,
) -> GoalValuationHistory:
    """
    Chart series of {date, projected, actual} for one goal.

    - projected: daily-compounded contribution curve, principal excluded
    - actual: nearest-prior valuations, principal included; None in the future
    - the bucket containing today shows the latest known actual value
    """
    t = date_only(today) or _today()
    set_goal(goal.id)
    allocations = [a for a in allocations if a.goal_id == goal.id]
    warnings: List[str] = []

    if goal.start_date is None:
        warnings.append("MISSING_START_DATE: charted from one year ago")
        goal = with_effective_start(goal, t)
    start = goal.start_date
    if not allocations:
        warnings.append("NO_ALLOCATIONS")
    for account_id in sorted({a.account_id for a in allocations}):
        if not lookup.has_history(account_id):
            warnings.append(f"NO_VALUATION_HISTORY:{account_id}")

    display_start, display_end = display_range(period, start, goal.due_date, t, settings)
    dates = bucket_dates(period, display_start, display_end, goal.due_date, settings.week_starts_on)

    decimals = settings.currency_decimals
    today_key = period_key(t, period, settings.week_starts_on)

    points: List[ChartDataPoint] = []
    for d in dates:
        projected = project_goal_value(goal, d)

        actual: Optional[Decimal] = None
        is_current = period_key(d, period, settings.week_starts_on) == today_key
        as_of = min(d, t)
        if (d <= t or is_current) and as_of >= start:
            actual = actual_value_at(goal, allocations, lookup, as_of)
            if actual is None and is_current:
                actual = actual_value_at(goal, allocations, lookup, t)

        points.append(
            ChartDataPoint(
                date=d,
                date_label=format_date_label(d, period),
                projected=round_currency(projected, decimals),
                actual=round_currency(actual, decimals) if actual is not None else None,
            )
        )

    allocation_values: Dict[str, Decimal] = {}
    for a in allocations:
        if a.end_date is not None and t > a.end_date:
            continue
        att = attribute_allocation(a, goal, lookup, t)
        allocation_values[a.account_id] = allocation_values.get(a.account_id, Decimal(0)) + att.value

    logger.info(f"valuation_history_built period={period} points={len(points)} today={t.isoformat()}")
    return GoalValuationHistory(
        goal_id=goal.id,
        period=period,
        chart_data=points,
        allocation_values={k: round_currency(v, decimals) for k, v in allocation_values.items()},
        projected_future_value=round_currency(projected_future_value(goal), decimals),
        warnings=warnings,
    )


def chart_data_frame(points: Iterable[ChartDataPoint]) -> pd.DataFrame:
    rows = [p.model_dump() for p in points]
    if not rows:
        return pd.DataFrame(columns=["date_label", "projected", "actual"])
    df = pd.DataFrame(rows)
    df["date"] = pd.to_datetime(df["date"])
    return df.set_index("date")[["date_label", "projected", "actual"]]
