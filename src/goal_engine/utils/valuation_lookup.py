from __future__ import annotations

from bisect import bisect_right
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from goal_engine.core.schemas import AccountValuation
from goal_engine.utils.logging import get_logger

logger = get_logger("valuation_lookup")


class ValuationLookup:
    """
    Read-only map of account -> date-sorted valuation history.

    Built once from whatever the valuation source returned (in any order) and
    passed explicitly into the engine functions.
    - lookups never interpolate and never look forward
    - an account missing from the map means "no valuation data", not zero
    """

    def __init__(self, valuations_by_account: Optional[Mapping[str, Iterable[AccountValuation]]] = None) -> None:
        self._dates: Dict[str, List[date]] = {}
        self._values: Dict[str, List[Decimal]] = {}
        for account_id, vals in (valuations_by_account or {}).items():
            self._index(account_id, vals)

    @classmethod
    def from_valuations(cls, valuations: Iterable[AccountValuation]) -> "ValuationLookup":
        grouped: Dict[str, List[AccountValuation]] = {}
        for v in valuations:
            grouped.setdefault(v.account_id, []).append(v)
        return cls(grouped)

    def _index(self, account_id: str, vals: Iterable[AccountValuation]) -> None:
        # Same-day duplicates: the last one wins, regardless of input order of other days
        by_day: Dict[date, Decimal] = {}
        for v in vals:
            by_day[v.valuation_date] = Decimal(v.total_value)
        if not by_day:
            return
        days = sorted(by_day)
        self._dates[account_id] = days
        self._values[account_id] = [by_day[d] for d in days]

    @property
    def account_ids(self) -> List[str]:
        return sorted(self._dates)

    def has_history(self, account_id: str) -> bool:
        return bool(self._dates.get(account_id))

    def series(self, account_id: str) -> List[Tuple[date, Decimal]]:
        return list(zip(self._dates.get(account_id, []), self._values.get(account_id, [])))

    def value_on(self, account_id: str, on: date) -> Optional[Decimal]:
        days = self._dates.get(account_id)
        if not days:
            return None
        i = bisect_right(days, on)
        if i and days[i - 1] == on:
            return self._values[account_id][i - 1]
        return None

    def value_on_or_before(self, account_id: str, on: date) -> Optional[Decimal]:
        entry = self.entry_on_or_before(account_id, on)
        return entry[1] if entry else None

    def entry_on_or_before(self, account_id: str, on: date) -> Optional[Tuple[date, Decimal]]:
        days = self._dates.get(account_id)
        if not days:
            return None
        i = bisect_right(days, on)
        if i == 0:
            return None
        return days[i - 1], self._values[account_id][i - 1]

    def latest(self, account_id: str) -> Optional[Tuple[date, Decimal]]:
        days = self._dates.get(account_id)
        if not days:
            return None
        return days[-1], self._values[account_id][-1]

    def baseline_value(self, account_id: str, baseline: date) -> Decimal:
        """
        Account value growth is measured from.

        Exact valuation on the baseline date if recorded, else the earliest
        valuation at or before it, else 0 (account did not exist yet, so all
        of its later value counts as growth).

        The fallback is the account's first-ever valuation, not the nearest
        one before the baseline: with long earlier history supplied, growth
        is measured from that first record. Callers that want a tighter
        baseline should fetch history starting at the baseline date
        (see `history_requests`).
        """
        exact = self.value_on(account_id, baseline)
        if exact is not None:
            return exact

        days = self._dates.get(account_id) or []
        if days and days[0] <= baseline:
            return self._values[account_id][0]

        logger.info(f"missing_baseline account={account_id} baseline={baseline.isoformat()} fallback=0")
        return Decimal(0)
