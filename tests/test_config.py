from __future__ import annotations

from goal_engine.core.config import load_settings


def _write(tmp_path):
    p = tmp_path / "config.yaml"
    p.write_text(
        "app:\n  env: test\n  log_level: DEBUG\n"
        "chart:\n  week_starts_on: monday\n  months:\n    past: 6\n    future: 18\n"
        "valuation_api:\n  base_url: http://cfg.test/api/\n  retries: 2\n",
        encoding="utf-8",
    )
    return str(p)


def test_settings_from_yaml(tmp_path, monkeypatch):
    for k in ("APP_ENV", "LOG_LEVEL", "CHART_WEEK_STARTS_ON", "VALUATION_API_BASE_URL", "VALUATION_API_RETRIES"):
        monkeypatch.delenv(k, raising=False)
    s = load_settings(_write(tmp_path))
    assert s.env == "test"
    assert s.log_level == "DEBUG"
    assert s.week_starts_on == "monday"
    assert (s.months_past, s.months_future) == (6, 18)
    assert (s.years_past, s.years_future) == (3, 5)
    assert s.valuation_api_base_url == "http://cfg.test/api"
    assert s.valuation_api_retries == 2


def test_env_overrides_and_empty_env_is_ignored(tmp_path, monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "")
    monkeypatch.setenv("VALUATION_API_RETRIES", "5")
    monkeypatch.setenv("CHART_WEEK_STARTS_ON", "friday")
    s = load_settings(_write(tmp_path))
    assert s.log_level == "DEBUG"
    assert s.valuation_api_retries == 5
    assert s.week_starts_on == "sunday"


def test_missing_config_file_uses_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("VALUATION_FETCH_WORKERS", raising=False)
    s = load_settings(str(tmp_path / "nope.yaml"))
    assert s.currency_decimals == 2
    assert s.valuation_fetch_workers == 4
