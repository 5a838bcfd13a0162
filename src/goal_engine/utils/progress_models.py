from __future__ import annotations

import datetime as dt
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

TimePeriod = Literal["weeks", "months", "years", "all"]
GoalStatusCode = Literal["completed", "scheduled", "on_track", "off_track"]


class AllocationDetail(BaseModel):
    allocation_id: str
    account_id: str
    allocated_percent: float
    initial_contribution: float
    baseline_date: Optional[dt.date] = None
    account_value_at_baseline: float = 0.0
    account_value_at_query: Optional[float] = None
    account_growth: float = 0.0
    allocated_growth: float = 0.0
    contributed_value: float = 0.0


class GoalProgress(BaseModel):
    goal_id: str
    as_of: dt.date
    current_value: float
    target_amount: float
    progress: float = Field(..., description="Percent of target reached, capped at 100")
    expected_progress: float = Field(0.0, description="Projected value as percent of target, capped at 100")
    projected_value: float
    start_value: float = Field(..., description="Sum of initial contributions of the counted allocations")
    is_on_track: bool
    allocations: List[AllocationDetail] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class GoalProgressResult(BaseModel):
    goal_progress: Dict[str, GoalProgress] = Field(default_factory=dict)
    allocation_values: Dict[str, float] = Field(default_factory=dict)


class GoalStatusView(BaseModel):
    status: GoalStatusCode
    text: str
    status_text: str


class ChartDataPoint(BaseModel):
    date: dt.date
    date_label: str
    projected: Optional[float] = None
    actual: Optional[float] = None


class GoalValuationHistory(BaseModel):
    goal_id: str
    period: TimePeriod
    chart_data: List[ChartDataPoint] = Field(default_factory=list)
    allocation_values: Dict[str, float] = Field(default_factory=dict)
    projected_future_value: float = 0.0
    warnings: List[str] = Field(default_factory=list)
