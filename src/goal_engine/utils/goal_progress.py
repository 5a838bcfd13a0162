from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from goal_engine.core.schemas import Goal, GoalAllocation
from goal_engine.utils.allocation_attribution import (
    allocations_active_on,
    attribute_allocation,
    resolve_baseline_date,
    warn_if_overcommitted,
)
from goal_engine.utils.date_math import DateLike, date_only, today as _today
from goal_engine.utils.logging import get_logger, set_goal
from goal_engine.utils.on_track import is_on_track
from goal_engine.utils.progress_models import GoalProgress, GoalProgressResult
from goal_engine.utils.projection_engine import project_goal_value, to_decimal
from goal_engine.utils.valuation_lookup import ValuationLookup

logger = get_logger("goal_progress")


def _pct_of_target(value: Decimal, target: Decimal) -> float:
    if target <= 0:
        return 0.0
    return float(min(value / target, Decimal(1)) * Decimal(100))


def snapshot_goal(
    goal: Goal,
    allocations: Iterable[GoalAllocation],
    lookup: ValuationLookup,
    as_of: Optional[DateLike] = None,
) -> GoalProgress:
    """
    Progress of one goal as of a date (today by default).

    Only allocations active on that date count. A goal without a start date
    projects 0, so it is trivially on track.
    """
    d = date_only(as_of) or _today()
    set_goal(goal.id)
    warnings: List[str] = []

    current = Decimal(0)
    start_value = Decimal(0)
    details = []
    for a in allocations_active_on(allocations, goal, d):
        att = attribute_allocation(a, goal, lookup, d)
        current += att.value
        start_value += to_decimal(a.initial_contribution)
        details.append(att.to_detail())
        if not att.has_valuation:
            warnings.append(f"NO_VALUATION:{a.account_id}")

    if goal.start_date is None:
        warnings.append("MISSING_START_DATE: projected value is 0")
    projected = project_goal_value(goal, d)
    target = to_decimal(goal.target_amount)

    return GoalProgress(
        goal_id=goal.id,
        as_of=d,
        current_value=float(current),
        target_amount=float(target),
        progress=_pct_of_target(current, target),
        expected_progress=_pct_of_target(projected, target),
        projected_value=float(projected),
        start_value=float(start_value),
        is_on_track=is_on_track(current, projected),
        allocations=details,
        warnings=warnings,
    )


def calculate_goal_progress(
    goals: Iterable[Goal],
    allocations: Iterable[GoalAllocation],
    lookup: ValuationLookup,
    today: Optional[DateLike] = None,
) -> GoalProgressResult:
    d = date_only(today) or _today()
    goals = list(goals)
    allocations = list(allocations)
    goals_by_id = {g.id: g for g in goals}

    for account_id in sorted({a.account_id for a in allocations}):
        warn_if_overcommitted(account_id, allocations, goals_by_id, d)

    result = GoalProgressResult()
    for goal in goals:
        gp = snapshot_goal(goal, allocations, lookup, d)
        result.goal_progress[goal.id] = gp
        for detail in gp.allocations:
            result.allocation_values[detail.allocation_id] = detail.contributed_value

    logger.info(f"goal_progress_computed goals={len(goals)} allocations={len(allocations)} as_of={d.isoformat()}")
    return result


def history_requests(goals: Iterable[Goal], allocations: Iterable[GoalAllocation]) -> List[Tuple[str, date]]:
    """Unique (account_id, baseline date) pairs whose valuations a snapshot needs."""
    goals_by_id: Dict[str, Goal] = {g.id: g for g in goals}
    seen = set()
    out: List[Tuple[str, date]] = []
    for a in allocations:
        goal = goals_by_id.get(a.goal_id)
        if goal is None:
            continue
        baseline = resolve_baseline_date(a, goal)
        if baseline is None:
            continue
        key = (a.account_id, baseline)
        if key not in seen:
            seen.add(key)
            out.append(key)
    return out
