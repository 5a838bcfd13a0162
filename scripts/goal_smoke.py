from __future__ import annotations

from datetime import date

from goal_engine.core.config import SETTINGS
from goal_engine.core.schemas import AccountValuation, Goal, GoalAllocation
from goal_engine.services.valuation_source import (
    InMemoryGoalRepository,
    InMemoryValuationSource,
    fetch_historical_valuations,
)
from goal_engine.tools.goal_tools import tool_compute_goal_progress, tool_required_contribution
from goal_engine.utils.logging import set_log_context, setup_logging
from goal_engine.utils.valuation_history import build_valuation_history, chart_data_frame


def main():
    setup_logging(SETTINGS.log_level)
    set_log_context(request_id="smoke")
    today = date(2025, 6, 30)

    goal = Goal(
        id="house",
        title="House deposit",
        targetAmount="100000",
        targetReturnRate="7",
        startDate="2025-01-01T17:00:00.000Z",
        dueDate="2030-01-01",
        monthlyInvestment="1000",
    )
    allocations = [
        GoalAllocation(id="a1", goalId="house", accountId="brokerage", initialContribution="20000", allocatedPercent="50"),
        GoalAllocation(id="a2", goalId="house", accountId="savings", allocationAmount="5000", percentAllocation="100"),
    ]
    valuations = [
        AccountValuation(accountId="brokerage", valuationDate="2025-01-01", totalValue="40000"),
        AccountValuation(accountId="brokerage", valuationDate="2025-03-31", totalValue="43000"),
        AccountValuation(accountId="brokerage", valuationDate="2025-06-27", totalValue="46000"),
        AccountValuation(accountId="savings", valuationDate="2025-02-15", totalValue="5200"),
        AccountValuation(accountId="savings", valuationDate="2025-06-30", totalValue="6100"),
    ]

    repo = InMemoryGoalRepository([goal], allocations)
    source = InMemoryValuationSource(valuations)
    lookup = fetch_historical_valuations(source, [a.account_id for a in allocations], "2025-01-01", "2031-01-01")

    progress = tool_compute_goal_progress({
        "goals": [g.model_dump(mode="json") for g in repo.get_goals()],
        "allocations": [a.model_dump(mode="json") for a in repo.get_goals_allocation()],
        "valuations": [v.model_dump(mode="json") for v in valuations],
        "today": today.isoformat(),
    })
    for g in progress["goals"]:
        print("Goal:", g["goal_id"], g["status"]["text"])
        print("  current:", round(g["current_value"], 2), "projected:", round(g["projected_value"], 2))
        print("  progress %:", round(g["progress"], 2), "projected future value:", g["projected_future_value"])

    req = tool_required_contribution({
        "targetAmount": "100000",
        "targetReturnRate": "7",
        "startDate": "2025-01-01",
        "dueDate": "2030-01-01",
    })
    print("Required monthly investment:", req["required_monthly_investment"])

    for period in ("months", "all"):
        history = build_valuation_history(goal, allocations, lookup, period=period, today=today)
        print(f"\n{period} chart:")
        print(chart_data_frame(history.chart_data).to_string())


if __name__ == "__main__":
    main()
