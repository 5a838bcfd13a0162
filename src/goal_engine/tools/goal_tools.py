from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from goal_engine.core.errors import GoalEngineError
from goal_engine.core.schemas import AccountValuation, ErrorEnvelope, Goal, GoalAllocation
from goal_engine.utils.allocation_attribution import validate_allocation_conflicts
from goal_engine.utils.date_math import date_only, today as _today
from goal_engine.utils.goal_progress import calculate_goal_progress
from goal_engine.utils.on_track import goal_status
from goal_engine.utils.projection_engine import (
    projected_future_value,
    required_daily_contribution,
    required_monthly_investment,
    round_currency,
)
from goal_engine.utils.valuation_history import build_valuation_history, with_effective_start
from goal_engine.utils.valuation_lookup import ValuationLookup


def _error(e: Exception) -> Dict[str, Any]:
    if isinstance(e, GoalEngineError):
        env = ErrorEnvelope(code=e.code, message=str(e), details=e.details(), retriable=e.retriable)
    else:
        env = ErrorEnvelope(code="INVALID_INPUT", message=str(e))
    return {"ok": False, "error": env.model_dump()}


def _alias(p: Dict[str, Any], canonical: str, *aliases: str) -> None:
    if canonical in p:
        return
    for a in aliases:
        if a in p:
            p[canonical] = p[a]
            return


def _parse_inputs(p: Dict[str, Any]):
    _alias(p, "allocations", "goalsAllocation", "goals_allocation")
    goals = [Goal(**g) for g in p.get("goals") or []]
    allocations = [GoalAllocation(**a) for a in p.get("allocations") or []]
    lookup = ValuationLookup.from_valuations(AccountValuation(**v) for v in p.get("valuations") or [])
    return goals, allocations, lookup


def tool_compute_goal_progress(payload: Dict[str, Any]) -> Dict[str, Any]:
    p = dict(payload or {})
    try:
        goals, allocations, lookup = _parse_inputs(p)
        today = date_only(p.get("today")) or _today()
        result = calculate_goal_progress(goals, allocations, lookup, today)
    except (GoalEngineError, ValidationError, ValueError) as e:
        return _error(e)

    goals_out: List[Dict[str, Any]] = []
    for goal in goals:
        gp = result.goal_progress[goal.id]
        row = gp.model_dump(mode="json")
        row["status"] = goal_status(goal, gp.is_on_track, today).model_dump()
        row["projected_future_value"] = round_currency(projected_future_value(with_effective_start(goal, today)))
        goals_out.append(row)

    return {"ok": True, "goals": goals_out, "allocation_values": result.allocation_values}


def tool_build_goal_chart(payload: Dict[str, Any]) -> Dict[str, Any]:
    p = dict(payload or {})
    _alias(p, "period", "timePeriod", "time_period")
    try:
        goals, allocations, lookup = _parse_inputs(p)
        if "goal" in p:
            goals = [Goal(**p["goal"])]
        if not goals:
            raise ValueError("a goal is required")
        history = build_valuation_history(
            goals[0],
            allocations,
            lookup,
            period=p.get("period") or "months",
            today=p.get("today"),
        )
    except (GoalEngineError, ValidationError, ValueError) as e:
        return _error(e)
    return {"ok": True, **history.model_dump(mode="json")}


def tool_required_contribution(payload: Dict[str, Any]) -> Dict[str, Any]:
    p = dict(payload or {})
    _alias(p, "target_amount", "targetAmount")
    _alias(p, "target_return_rate", "targetReturnRate", "annual_return_rate")
    _alias(p, "start_date", "startDate")
    _alias(p, "due_date", "dueDate")
    try:
        rate = p.get("target_return_rate") or 0
        daily = required_daily_contribution(p["target_amount"], rate, p["start_date"], p["due_date"])
        monthly = required_monthly_investment(p["target_amount"], rate, p["start_date"], p["due_date"])
    except KeyError as e:
        return _error(ValueError(f"missing field {e.args[0]}"))
    except (GoalEngineError, ValueError) as e:
        return _error(e)
    return {
        "ok": True,
        "required_daily_contribution": round_currency(daily),
        "required_monthly_investment": round_currency(monthly),
    }


def tool_validate_allocation(payload: Dict[str, Any], existing: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    p = dict(payload or {})
    _alias(p, "account_id", "accountId")
    _alias(p, "start_date", "startDate")
    _alias(p, "end_date", "endDate")
    _alias(p, "allocated_percent", "allocatedPercent", "percent_allocation", "percentAllocation")
    _alias(p, "exclude_allocation_id", "excludeAllocationId")
    try:
        goals, allocations, _ = _parse_inputs(dict(existing or {}))
        total = validate_allocation_conflicts(
            p["account_id"],
            p.get("start_date"),
            p.get("end_date"),
            p.get("allocated_percent") or 0,
            allocations,
            goals,
            exclude_allocation_id=p.get("exclude_allocation_id"),
        )
    except (GoalEngineError, ValidationError, ValueError) as e:
        return {"valid": False, "message": str(e)}
    except KeyError as e:
        return {"valid": False, "message": f"missing field {e.args[0]}"}
    return {"valid": True, "message": "No allocation conflicts", "total_percent": float(total)}
