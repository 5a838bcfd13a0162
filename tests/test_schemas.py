from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from goal_engine.core.schemas import AccountValuation, Goal, GoalAllocation


def test_goal_accepts_camel_case_and_timestamps():
    g = Goal(
        id="g1",
        title="House",
        targetAmount="100000",
        targetReturnRate="7",
        startDate="2025-01-01T17:00:00.000Z",
        dueDate="2030-01-01",
        isAchieved=True,
    )
    assert g.start_date == date(2025, 1, 1)
    assert g.target_return_rate == Decimal("7")
    assert g.is_achieved


def test_goal_rejects_start_on_or_after_due():
    with pytest.raises(ValidationError):
        Goal(id="g1", title="x", target_amount="10", start_date="2025-01-01", due_date="2025-01-01")
    with pytest.raises(ValidationError):
        Goal(id="g1", title="x", target_amount="0", due_date="2025-01-01")


def test_allocation_legacy_keys_normalized():
    a = GoalAllocation(id="a1", goalId="g1", accountId="acc", allocationAmount="500", percentAllocation="40")
    assert a.initial_contribution == Decimal("500")
    assert a.allocated_percent == Decimal("40")

    b = GoalAllocation(id="a2", goal_id="g1", account_id="acc", init_amount=250, allocation_percentage=10)
    assert b.initial_contribution == Decimal("250")
    assert b.allocated_percent == Decimal("10")


def test_allocation_canonical_keys_win_over_legacy():
    a = GoalAllocation(
        id="a1", goal_id="g1", account_id="acc",
        initialContribution="100", allocationAmount="999",
        allocatedPercent="20", percentAllocation="90",
    )
    assert a.initial_contribution == Decimal("100")
    assert a.allocated_percent == Decimal("20")


def test_allocation_window_start():
    a = GoalAllocation(id="a1", goal_id="g1", account_id="acc", allocation_date="2025-02-01")
    assert a.window_start == date(2025, 2, 1)
    b = a.model_copy(update={"start_date": date(2025, 3, 1)})
    assert b.window_start == date(2025, 3, 1)


def test_allocation_percent_bounds():
    with pytest.raises(ValidationError):
        GoalAllocation(id="a1", goal_id="g1", account_id="acc", allocated_percent=120)


def test_valuation_parses_camel_case():
    v = AccountValuation(accountId="acc", valuationDate="2025-03-31T00:00:00Z", totalValue="1234.5")
    assert v.valuation_date == date(2025, 3, 31)
    assert v.total_value == Decimal("1234.5")
