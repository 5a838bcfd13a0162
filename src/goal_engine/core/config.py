from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict

import yaml
from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    env: str
    log_level: str

    currency_decimals: int

    week_starts_on: str
    weeks_past: int
    weeks_future: int
    months_past: int
    months_future: int
    years_past: int
    years_future: int

    valuation_api_base_url: str
    valuation_api_retries: int
    valuation_api_timeout_seconds: int
    valuation_fetch_workers: int


def _deep_get(d: Dict[str, Any], path: str, default=None):
    cur = d
    for part in path.split("."):
        if not isinstance(cur, dict) or part not in cur:
            return default
        cur = cur[part]
    return cur


def load_settings(config_path: str = "config.yaml") -> Settings:
    """
    Loads config.yaml + overrides from .env/environment variables.
    """
    load_dotenv()  # loads .env into env vars

    cfg: Dict[str, Any] = {}
    if os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}

    # Empty env vars count as "not set" so they never mask config.yaml.
    def _env_or_cfg(key: str, cfg_path: str, default):
        v = os.getenv(key)
        if v is None:
            return _deep_get(cfg, cfg_path, default)
        v = v.strip()
        return _deep_get(cfg, cfg_path, default) if v == "" else v

    env = _env_or_cfg("APP_ENV", "app.env", "dev")
    log_level = _env_or_cfg("LOG_LEVEL", "app.log_level", "INFO")

    currency_decimals = int(_env_or_cfg("CURRENCY_DECIMALS", "engine.currency_decimals", 2))

    week_starts_on = str(_env_or_cfg("CHART_WEEK_STARTS_ON", "chart.week_starts_on", "sunday")).strip().lower()
    if week_starts_on not in ("sunday", "monday"):
        week_starts_on = "sunday"

    weeks_past = int(_deep_get(cfg, "chart.weeks.past", 12))
    weeks_future = int(_deep_get(cfg, "chart.weeks.future", 12))
    months_past = int(_deep_get(cfg, "chart.months.past", 12))
    months_future = int(_deep_get(cfg, "chart.months.future", 12))
    years_past = int(_deep_get(cfg, "chart.years.past", 3))
    years_future = int(_deep_get(cfg, "chart.years.future", 5))

    valuation_api_base_url = str(
        _env_or_cfg("VALUATION_API_BASE_URL", "valuation_api.base_url", "http://localhost:8088/api/v1")
    ).rstrip("/")
    valuation_api_retries = int(_env_or_cfg("VALUATION_API_RETRIES", "valuation_api.retries", 3))
    valuation_api_timeout_seconds = int(_env_or_cfg("VALUATION_API_TIMEOUT_SECONDS", "valuation_api.timeout_seconds", 20))
    valuation_fetch_workers = int(_env_or_cfg("VALUATION_FETCH_WORKERS", "valuation_api.fetch_workers", 4))

    return Settings(
        env=env,
        log_level=log_level,
        currency_decimals=currency_decimals,
        week_starts_on=week_starts_on,
        weeks_past=weeks_past,
        weeks_future=weeks_future,
        months_past=months_past,
        months_future=months_future,
        years_past=years_past,
        years_future=years_future,
        valuation_api_base_url=valuation_api_base_url,
        valuation_api_retries=max(1, valuation_api_retries),
        valuation_api_timeout_seconds=valuation_api_timeout_seconds,
        valuation_fetch_workers=max(1, valuation_fetch_workers),
    )


# Optional convenience singleton
SETTINGS = load_settings()
