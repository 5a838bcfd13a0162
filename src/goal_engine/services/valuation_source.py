from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

import requests

from goal_engine.core.config import SETTINGS
from goal_engine.core.errors import ValuationSourceError, ValuationSourceUnavailable
from goal_engine.core.schemas import AccountValuation, Goal, GoalAllocation
from goal_engine.utils.date_math import DateLike, require_date
from goal_engine.utils.logging import get_logger
from goal_engine.utils.valuation_lookup import ValuationLookup

logger = get_logger("valuation_source")


class ValuationSource(Protocol):
    def get_latest_valuations(self, account_ids: Sequence[str]) -> List[AccountValuation]: ...

    def get_historical_valuations(
        self, account_id: str, start_date: DateLike, end_date: DateLike
    ) -> List[AccountValuation]: ...


class GoalRepository(Protocol):
    def get_goals(self) -> List[Goal]: ...

    def get_goals_allocation(self) -> List[GoalAllocation]: ...


class InMemoryValuationSource:
    def __init__(self, valuations: Iterable[AccountValuation] = ()) -> None:
        self._by_account: Dict[str, List[AccountValuation]] = {}
        for v in valuations:
            self._by_account.setdefault(v.account_id, []).append(v)

    def get_latest_valuations(self, account_ids: Sequence[str]) -> List[AccountValuation]:
        out = []
        for account_id in account_ids:
            vals = self._by_account.get(account_id)
            if vals:
                out.append(max(vals, key=lambda v: v.valuation_date))
        return out

    def get_historical_valuations(self, account_id: str, start_date: DateLike, end_date: DateLike) -> List[AccountValuation]:
        start = require_date(start_date, "start_date")
        end = require_date(end_date, "end_date")
        return [v for v in self._by_account.get(account_id, []) if start <= v.valuation_date <= end]


class InMemoryGoalRepository:
    def __init__(self, goals: Iterable[Goal] = (), allocations: Iterable[GoalAllocation] = ()) -> None:
        self._goals = list(goals)
        self._allocations = list(allocations)

    def get_goals(self) -> List[Goal]:
        return list(self._goals)

    def get_goals_allocation(self) -> List[GoalAllocation]:
        return list(self._allocations)


class HttpValuationSource:
    """
    Valuation + goal reads from the portfolio server's JSON API.
    - Retries with backoff for 429/5xx and network errors
    - Models accept the server's camelCase payloads directly
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        retries: Optional[int] = None,
        timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or SETTINGS.valuation_api_base_url).rstrip("/")
        self.retries = int(retries or SETTINGS.valuation_api_retries)
        self.timeout = int(timeout or SETTINGS.valuation_api_timeout_seconds)
        self.session = session or requests.Session()

    def get_latest_valuations(self, account_ids: Sequence[str]) -> List[AccountValuation]:
        if not account_ids:
            return []
        data = self._get_json("/valuations/latest", params={"accountIds": ",".join(account_ids)})
        return [AccountValuation(**row) for row in data or []]

    def get_historical_valuations(self, account_id: str, start_date: DateLike, end_date: DateLike) -> List[AccountValuation]:
        params = {
            "accountId": account_id,
            "startDate": require_date(start_date, "start_date").isoformat(),
            "endDate": require_date(end_date, "end_date").isoformat(),
        }
        data = self._get_json("/valuations/history", params=params)
        return [AccountValuation(**row) for row in data or []]

    def get_goals(self) -> List[Goal]:
        return [Goal(**row) for row in self._get_json("/goals") or []]

    def get_goals_allocation(self) -> List[GoalAllocation]:
        return [GoalAllocation(**row) for row in self._get_json("/goals/allocations") or []]

    def _get_json(self, path: str, *, params: Optional[dict] = None) -> Any:
        url = f"{self.base_url}{path}"
        last_err: Optional[Exception] = None
        for attempt in range(1, self.retries + 1):
            try:
                r = self.session.get(url, params=params, timeout=self.timeout)
                r.raise_for_status()
                return r.json()
            except requests.HTTPError as e:
                last_err = e
                code = getattr(e.response, "status_code", None)
                if code in (429, 500, 502, 503, 504):
                    logger.warning(f"valuation_fetch_failed path={path} attempt={attempt} status={code}")
                    time.sleep(min(8.0, 0.8 * (2 ** (attempt - 1))))
                    continue
                raise ValuationSourceError(f"GET {path} failed with status {code}") from e
            except (requests.Timeout, requests.ConnectionError) as e:
                last_err = e
                logger.warning(f"valuation_fetch_failed path={path} attempt={attempt} err={type(e).__name__}")
                time.sleep(min(8.0, 0.8 * (2 ** (attempt - 1))))
        raise ValuationSourceUnavailable(f"GET {path} failed after {self.retries} attempts: {last_err}")


def fetch_historical_valuations(
    source: ValuationSource,
    account_ids: Iterable[str],
    start_date: DateLike,
    end_date: DateLike,
    *,
    max_workers: Optional[int] = None,
) -> ValuationLookup:
    """
    Fetch each account's history concurrently and wait for all of them.

    The lookup is only built once every read has finished, so an account that
    is still loading is never mistaken for one without data.
    """
    ids = sorted(set(account_ids))
    if not ids:
        return ValuationLookup()

    workers = max(1, min(len(ids), int(max_workers or SETTINGS.valuation_fetch_workers)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {
            account_id: pool.submit(source.get_historical_valuations, account_id, start_date, end_date)
            for account_id in ids
        }
        results = {account_id: f.result() for account_id, f in futures.items()}

    return ValuationLookup(results)


def fetch_latest_lookup(source: ValuationSource, account_ids: Iterable[str]) -> ValuationLookup:
    return ValuationLookup.from_valuations(source.get_latest_valuations(sorted(set(account_ids))))
