from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, condecimal, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict

from goal_engine.utils.date_math import date_only


class _EngineModel(BaseModel):
    # camelCase from the storage/API layer, snake_case from Python callers
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _coerce_date(v: Any) -> Any:
    if v is None or v == "":
        return None
    if isinstance(v, (str, date)):
        return date_only(v)
    return v


# -------------------------
# Goals
# -------------------------

class Goal(_EngineModel):
    id: str
    title: str
    description: Optional[str] = None
    target_amount: condecimal(gt=0)
    target_return_rate: condecimal(ge=0, le=100) = Decimal("0")
    start_date: Optional[date] = None
    due_date: date
    monthly_investment: Optional[condecimal(ge=0)] = None
    is_achieved: bool = False

    @field_validator("start_date", "due_date", mode="before")
    @classmethod
    def _dates(cls, v: Any) -> Any:
        return _coerce_date(v)

    @model_validator(mode="after")
    def _start_before_due(self) -> "Goal":
        if self.start_date is not None and self.start_date >= self.due_date:
            raise ValueError("start_date must be before due_date")
        return self

    def effective_monthly_investment(self) -> Decimal:
        """Declared monthly investment, or the one implied by target/rate/dates."""
        if self.monthly_investment is not None:
            return Decimal(self.monthly_investment)
        if self.start_date is None:
            return Decimal(0)

        from goal_engine.utils.projection_engine import required_monthly_investment

        return required_monthly_investment(
            self.target_amount, self.target_return_rate, self.start_date, self.due_date
        )


# -------------------------
# Allocations
# -------------------------

_LEGACY_CONTRIBUTION_KEYS = ("allocationAmount", "allocation_amount", "initAmount", "init_amount")
_LEGACY_PERCENT_KEYS = (
    "percentAllocation",
    "percent_allocation",
    "allocationPercentage",
    "allocation_percentage",
)


class GoalAllocation(_EngineModel):
    id: str
    goal_id: str
    account_id: str
    initial_contribution: condecimal(ge=0) = Decimal("0")
    allocated_percent: condecimal(ge=0, le=100) = Decimal("0")
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    allocation_date: Optional[date] = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_legacy(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        d: Dict[str, Any] = dict(data)

        if "initial_contribution" not in d and "initialContribution" not in d:
            for k in _LEGACY_CONTRIBUTION_KEYS:
                if d.get(k) is not None:
                    d["initial_contribution"] = d[k]
                    break
        if "allocated_percent" not in d and "allocatedPercent" not in d:
            for k in _LEGACY_PERCENT_KEYS:
                if d.get(k) is not None:
                    d["allocated_percent"] = d[k]
                    break

        for k in _LEGACY_CONTRIBUTION_KEYS + _LEGACY_PERCENT_KEYS:
            d.pop(k, None)
        return d

    @field_validator("start_date", "end_date", "allocation_date", mode="before")
    @classmethod
    def _dates(cls, v: Any) -> Any:
        return _coerce_date(v)

    @property
    def window_start(self) -> Optional[date]:
        return self.start_date or self.allocation_date


# -------------------------
# Valuations
# -------------------------

class AccountValuation(_EngineModel):
    account_id: str
    valuation_date: date
    total_value: Decimal
    base_currency: str = "USD"
    fx_rate_to_base: Decimal = Field(default=Decimal("1"))

    @field_validator("valuation_date", mode="before")
    @classmethod
    def _dates(cls, v: Any) -> Any:
        return _coerce_date(v)


class ErrorEnvelope(BaseModel):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None
    retriable: bool = False
