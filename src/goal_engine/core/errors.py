from __future__ import annotations

from typing import Any, Dict, Optional


class GoalEngineError(Exception):
    code = "GOAL_ENGINE_ERROR"
    retriable = False

    def details(self) -> Optional[Dict[str, Any]]:
        return None


class InvalidRangeError(GoalEngineError, ValueError):
    """Due date is not after the start date."""

    code = "INVALID_RANGE"

    def __init__(self, start, due) -> None:
        self.start = start
        self.due = due
        super().__init__(f"due date {due} must be after start date {start}")

    def details(self) -> Optional[Dict[str, Any]]:
        return {"start_date": str(self.start), "due_date": str(self.due)}


class AllocationConflictError(GoalEngineError):
    code = "ALLOCATION_CONFLICT"

    def __init__(self, account_id: str, total_percent) -> None:
        self.account_id = account_id
        self.total_percent = total_percent
        super().__init__(
            f"Total allocation {total_percent}% exceeds 100% on account {account_id} during this period"
        )

    def details(self) -> Optional[Dict[str, Any]]:
        return {"account_id": self.account_id, "total_percent": float(self.total_percent)}


class ValuationSourceError(GoalEngineError):
    code = "VALUATION_SOURCE_ERROR"


class ValuationSourceUnavailable(ValuationSourceError):
    code = "VALUATION_SOURCE_UNAVAILABLE"
    retriable = True
