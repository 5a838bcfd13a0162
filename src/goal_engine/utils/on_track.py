from __future__ import annotations

from goal_engine.core.schemas import Goal
from goal_engine.utils.date_math import DateLike, require_date
from goal_engine.utils.progress_models import GoalStatusView
from goal_engine.utils.projection_engine import to_decimal


def is_on_track(actual, projected) -> bool:
    """actual (principal included) >= projected (principal excluded) at the same instant."""
    return to_decimal(actual) >= to_decimal(projected)


def is_scheduled(goal: Goal, today: DateLike) -> bool:
    if goal.start_date is None:
        return False
    return require_date(today) < goal.start_date


def goal_status(goal: Goal, on_track: bool, today: DateLike) -> GoalStatusView:
    """
    Display status. Precedence: completed, scheduled, then on/off track.

    A goal that has not started compares 0 >= 0 and would read "on track";
    it is reported as scheduled instead.
    """
    if goal.is_achieved:
        return GoalStatusView(status="completed", text="Done", status_text="Completed")

    if is_scheduled(goal, today):
        starts = f"{goal.start_date.strftime('%b')} {goal.start_date.day}, {goal.start_date.year}"
        return GoalStatusView(status="scheduled", text="Scheduled", status_text=f"Starts {starts}")

    if on_track:
        return GoalStatusView(status="on_track", text="On track", status_text="Ongoing")
    return GoalStatusView(status="off_track", text="Off track", status_text="Ongoing")
