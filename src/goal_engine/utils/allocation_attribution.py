from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from goal_engine.core.errors import AllocationConflictError
from goal_engine.core.schemas import Goal, GoalAllocation
from goal_engine.utils.date_math import DateLike, date_only, require_date
from goal_engine.utils.logging import get_logger
from goal_engine.utils.progress_models import AllocationDetail
from goal_engine.utils.projection_engine import to_decimal
from goal_engine.utils.valuation_lookup import ValuationLookup

logger = get_logger("allocation_attribution")


def contributed_value(
    allocation: GoalAllocation,
    account_value_at_baseline,
    account_value_at_query,
    baseline_date: DateLike,
    query_date: DateLike,
) -> Decimal:
    """
    initial contribution + allocated share of the account's growth since baseline.

    Growth can be negative, so the result can fall below the initial
    contribution. 0 before the baseline date.
    """
    if require_date(query_date) < require_date(baseline_date):
        return Decimal(0)

    account_growth = to_decimal(account_value_at_query) - to_decimal(account_value_at_baseline)
    allocated_growth = account_growth * (to_decimal(allocation.allocated_percent) / Decimal(100))
    return to_decimal(allocation.initial_contribution) + allocated_growth


def resolve_baseline_date(allocation: GoalAllocation, goal: Optional[Goal]) -> Optional[date]:
    if allocation.start_date is not None:
        return allocation.start_date
    if allocation.allocation_date is not None:
        return allocation.allocation_date
    return goal.start_date if goal is not None else None


def allocation_window(allocation: GoalAllocation, goal: Optional[Goal]) -> Tuple[Optional[date], Optional[date]]:
    start = allocation.window_start or (goal.start_date if goal is not None else None)
    end = allocation.end_date or (goal.due_date if goal is not None else None)
    return start, end


def is_allocation_active(allocation: GoalAllocation, on: DateLike, goal: Optional[Goal] = None) -> bool:
    d = require_date(on)
    if allocation.start_date is not None or allocation.end_date is not None:
        if allocation.start_date is not None and d < allocation.start_date:
            return False
        if allocation.end_date is not None and d > allocation.end_date:
            return False
        return True
    if allocation.allocation_date is not None:
        return allocation.allocation_date <= d
    if goal is not None and goal.start_date is not None:
        return goal.start_date <= d
    return True


def allocations_active_on(
    allocations: Iterable[GoalAllocation],
    goal: Goal,
    on: DateLike,
) -> List[GoalAllocation]:
    return [a for a in allocations if a.goal_id == goal.id and is_allocation_active(a, on, goal)]


@dataclass
class Attribution:
    allocation: GoalAllocation
    baseline_date: Optional[date]
    value_at_baseline: Decimal
    value_at_query: Optional[Decimal]
    account_growth: Decimal
    allocated_growth: Decimal
    value: Decimal

    @property
    def has_valuation(self) -> bool:
        return self.value_at_query is not None

    def to_detail(self) -> AllocationDetail:
        return AllocationDetail(
            allocation_id=self.allocation.id,
            account_id=self.allocation.account_id,
            allocated_percent=float(self.allocation.allocated_percent),
            initial_contribution=float(self.allocation.initial_contribution),
            baseline_date=self.baseline_date,
            account_value_at_baseline=float(self.value_at_baseline),
            account_value_at_query=float(self.value_at_query) if self.value_at_query is not None else None,
            account_growth=float(self.account_growth),
            allocated_growth=float(self.allocated_growth),
            contributed_value=float(self.value),
        )


def attribute_allocation(
    allocation: GoalAllocation,
    goal: Optional[Goal],
    lookup: ValuationLookup,
    query_date: DateLike,
) -> Attribution:
    """
    Value of one allocation at `query_date` from the supplied valuation history.

    Missing data never raises:
    - no valuation on/before the query date -> principal only
    - no valuation on/before the baseline -> baseline value 0
    """
    q = require_date(query_date)
    baseline = resolve_baseline_date(allocation, goal)
    initial = to_decimal(allocation.initial_contribution)

    if baseline is not None and q < baseline:
        return Attribution(allocation, baseline, Decimal(0), None, Decimal(0), Decimal(0), Decimal(0))

    current = lookup.value_on_or_before(allocation.account_id, q)
    if current is None or baseline is None:
        logger.debug(f"no_valuation_history account={allocation.account_id} query={q.isoformat()} value=principal")
        return Attribution(allocation, baseline, Decimal(0), current, Decimal(0), Decimal(0), initial)

    at_baseline = lookup.baseline_value(allocation.account_id, baseline)
    if q == baseline:
        # growth is measured from this very date
        current = at_baseline
    value = contributed_value(allocation, at_baseline, current, baseline, q)
    growth = current - at_baseline
    return Attribution(
        allocation=allocation,
        baseline_date=baseline,
        value_at_baseline=at_baseline,
        value_at_query=current,
        account_growth=growth,
        allocated_growth=value - initial,
        value=value,
    )


# -------------------------
# Account capacity helpers
# -------------------------

def unallocated_balance(account_value, other_contributed_values: Iterable) -> Decimal:
    total = sum((to_decimal(v) for v in other_contributed_values), Decimal(0))
    return max(Decimal(0), to_decimal(account_value) - total)


def unallocated_percentage(other_percents: Iterable) -> Decimal:
    total = sum((to_decimal(p) for p in other_percents), Decimal(0))
    return max(Decimal(0), Decimal(100) - total)


def date_ranges_overlap(
    start_a: Optional[DateLike],
    end_a: Optional[DateLike],
    start_b: Optional[DateLike],
    end_b: Optional[DateLike],
) -> bool:
    """Strict overlap; touching ranges and ranges with a missing bound never overlap."""
    sa, ea, sb, eb = (date_only(x) for x in (start_a, end_a, start_b, end_b))
    if sa is None or ea is None or sb is None or eb is None:
        return False
    return sa < eb and ea > sb


def _goal_map(goals: Iterable[Goal]) -> Dict[str, Goal]:
    return {g.id: g for g in goals}


def _is_released(goal_id: str, goals_by_id: Mapping[str, Goal]) -> bool:
    g = goals_by_id.get(goal_id)
    return g is not None and g.is_achieved


def other_goals_percentage(
    account_id: str,
    goal: Goal,
    allocations: Iterable[GoalAllocation],
    goals: Iterable[Goal],
) -> Decimal:
    """Percent of the account already claimed by other, non-achieved goals overlapping `goal`."""
    goals_by_id = _goal_map(goals)
    total = Decimal(0)
    for a in allocations:
        if a.goal_id == goal.id or a.account_id != account_id:
            continue
        if _is_released(a.goal_id, goals_by_id):
            continue
        start, end = allocation_window(a, goals_by_id.get(a.goal_id))
        if date_ranges_overlap(goal.start_date, goal.due_date, start, end):
            total += to_decimal(a.allocated_percent)
    return total


def validate_allocation_conflicts(
    account_id: str,
    start_date: DateLike,
    end_date: DateLike,
    allocated_percent,
    allocations: Iterable[GoalAllocation],
    goals: Iterable[Goal],
    *,
    exclude_allocation_id: Optional[str] = None,
) -> Decimal:
    """
    Write-time check that overlapping allocations on one account stay <= 100%.

    Returns the combined percent; raises AllocationConflictError above 100.
    Allocations of achieved goals are released and not counted.
    """
    goals_by_id = _goal_map(goals)
    total = to_decimal(allocated_percent)
    for a in allocations:
        if a.account_id != account_id or a.id == exclude_allocation_id:
            continue
        if _is_released(a.goal_id, goals_by_id):
            continue
        start, end = allocation_window(a, goals_by_id.get(a.goal_id))
        if date_ranges_overlap(start_date, end_date, start, end):
            total += to_decimal(a.allocated_percent)

    if total > 100:
        raise AllocationConflictError(account_id, total)
    return total


def warn_if_overcommitted(
    account_id: str,
    allocations: Sequence[GoalAllocation],
    goals_by_id: Mapping[str, Goal],
    on: date,
) -> Decimal:
    """Sum of active percents on an account; logged when above 100, never fatal."""
    total = Decimal(0)
    for a in allocations:
        if a.account_id != account_id or _is_released(a.goal_id, goals_by_id):
            continue
        if is_allocation_active(a, on, goals_by_id.get(a.goal_id)):
            total += to_decimal(a.allocated_percent)
    if total > 100:
        logger.warning(f"allocation_overcommitted account={account_id} total_percent={total} on={on.isoformat()}")
    return total


def backfill_allocation_dates(allocations: Iterable[GoalAllocation], goals: Iterable[Goal]) -> List[GoalAllocation]:
    """Fill missing allocation start/end dates from the owning goal."""
    goals_by_id = _goal_map(goals)
    out: List[GoalAllocation] = []
    for a in allocations:
        g = goals_by_id.get(a.goal_id)
        update = {}
        if g is not None:
            if a.start_date is None and g.start_date is not None:
                update["start_date"] = g.start_date
            if a.end_date is None:
                update["end_date"] = g.due_date
        out.append(a.model_copy(update=update) if update else a)
    return out


def available_balances(
    goal: Goal,
    account_ids: Iterable[str],
    allocations: Iterable[GoalAllocation],
    goals: Iterable[Goal],
    lookup: ValuationLookup,
    current_values: Mapping[str, object],
    today: DateLike,
) -> Dict[str, Decimal]:
    """
    Unallocated balance per account as of the editing goal's start date.

    A goal that already started is measured against the account value at its
    start; a future goal against the current value. Other goals' allocations
    are valued at that same date; achieved goals' allocations are released.
    """
    t = require_date(today)
    goals_by_id = _goal_map(goals)
    allocations = list(allocations)
    is_past_goal = goal.start_date is not None and goal.start_date <= t
    query = goal.start_date or t

    out: Dict[str, Decimal] = {}
    for account_id in account_ids:
        if is_past_goal:
            account_value = lookup.baseline_value(account_id, goal.start_date)
        else:
            account_value = to_decimal(current_values.get(account_id, 0))

        others: List[Decimal] = []
        for a in allocations:
            if a.goal_id == goal.id or a.account_id != account_id:
                continue
            if _is_released(a.goal_id, goals_by_id):
                continue
            alloc_start = a.window_start
            if alloc_start is None:
                continue
            at_alloc_start = lookup.baseline_value(account_id, alloc_start)
            others.append(contributed_value(a, at_alloc_start, account_value, alloc_start, query))

        out[account_id] = unallocated_balance(account_value, others)
    return out
