from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

import pytest

from goal_engine.core.errors import InvalidRangeError
from goal_engine.core.schemas import Goal
from goal_engine.utils.projection_engine import (
    daily_contribution_from_monthly,
    project_contributions,
    project_contributions_monthly,
    project_goal_value,
    projected_future_value,
    required_daily_contribution,
    required_monthly_investment,
    round_currency,
)


def test_zero_contribution_projects_zero():
    for days in (0, 1, 30, 365, 4000):
        as_of = date(2025, 1, 1) + timedelta(days=days)
        assert project_contributions(0, 7, "2025-01-01", as_of) == 0


def test_zero_rate_is_linear():
    daily = daily_contribution_from_monthly(Decimal("900"))
    assert daily == Decimal(30)
    assert project_contributions(daily, 0, "2025-01-01", "2025-02-15") == Decimal(30) * 45


def test_projection_is_zero_on_or_before_start():
    assert project_contributions(100, 7, "2025-03-01", "2025-02-01") == 0
    assert project_contributions(100, 7, "2025-03-01", "2025-03-01") == 0


def test_projection_is_monotonic():
    start = date(2025, 1, 1)
    prev = Decimal(0)
    for days in range(0, 800, 7):
        v = project_contributions(Decimal("12.5"), 7, start, start + timedelta(days=days))
        assert v >= prev
        prev = v


def test_scenario_one_month_of_contributions():
    # 1,000,000 a month at 7% for 31 days, principal excluded
    daily = daily_contribution_from_monthly(1_000_000)
    v = project_contributions(daily, 7, "2025-01-01", "2025-02-01")
    assert float(v) == pytest.approx(1_036_311, rel=1e-4)
    assert float(v) > 31 * float(daily)


@pytest.mark.parametrize("rate", [0, 3.5, 7, 12])
def test_required_contribution_round_trip(rate):
    target = Decimal("100000")
    daily = required_daily_contribution(target, rate, "2025-01-01", "2030-01-01")
    fv = project_contributions(daily, rate, "2025-01-01", "2030-01-01")
    assert abs(fv - target) / target < Decimal("1e-6")


def test_required_monthly_is_thirty_days():
    daily = required_daily_contribution(50000, 5, "2025-01-01", "2027-01-01")
    assert required_monthly_investment(50000, 5, "2025-01-01", "2027-01-01") == daily * 30


@pytest.mark.parametrize("due", ["2025-01-01", "2024-12-31"])
def test_required_contribution_rejects_empty_range(due):
    with pytest.raises(InvalidRangeError) as ei:
        required_daily_contribution(1000, 5, "2025-01-01", due)
    assert isinstance(ei.value, ValueError)
    assert ei.value.code == "INVALID_RANGE"


def test_negative_rate_rejected():
    with pytest.raises(ValueError):
        project_contributions(10, -1, "2025-01-01", "2025-02-01")


def test_goal_without_monthly_investment_hits_target_at_due():
    g = Goal(id="g1", title="Car", target_amount="20000", target_return_rate="6",
             start_date="2025-01-01", due_date="2028-01-01")
    assert float(projected_future_value(g)) == pytest.approx(20000, rel=1e-6)
    assert project_goal_value(g, "2024-06-01") == 0


def test_goal_without_start_date_projects_zero():
    g = Goal(id="g1", title="Legacy", target_amount="1000", due_date="2030-01-01", monthly_investment="100")
    assert project_goal_value(g, "2026-01-01") == 0


def test_legacy_monthly_projection():
    assert project_contributions_monthly(1000, 12, -1) == 0
    assert project_contributions_monthly(900, 12, 0) == Decimal(30)
    assert project_contributions_monthly(1000, 0, 6) == Decimal(6000)
    assert float(project_contributions_monthly(1000, 12, 12)) == pytest.approx(12682.50, abs=0.01)


def test_round_currency_half_up():
    assert round_currency(1.005) == 1.01
    assert round_currency(Decimal("2.344")) == 2.34
    assert round_currency("7.5", 0) == 8.0


def test_goal_with_zero_monthly_investment_never_projects():
    g = Goal(id="g1", title="Idle", target_amount="1000", target_return_rate="9",
             start_date="2025-01-01", due_date="2030-01-01", monthly_investment="0")
    for as_of in ("2024-01-01", "2025-01-01", "2027-07-07", "2030-01-01"):
        assert project_goal_value(g, as_of) == 0
