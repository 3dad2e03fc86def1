from __future__ import annotations

import pandas as pd

from sleep_impact.utils.settings import get_settings

_ENV_NAMES = (
    "SLEEP_IMPACT_ROOT",
    "SLEEP_IMPACT_MOVING_AVG_DAYS",
    "SLEEP_IMPACT_TIMEZONE",
    "SLEEP_IMPACT_EVENT_DATE",
    "SLEEP_IMPACT_ALPHA",
    "SLEEP_IMPACT_SEED",
    "SLEEP_IMPACT_REPORT_PATH",
    "LOG_LEVEL",
)


def _clear_env(monkeypatch) -> None:
    for name in _ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch) -> None:
    _clear_env(monkeypatch)

    settings = get_settings()

    assert settings.root == "."
    assert settings.moving_avg_days == 7
    assert settings.timezone == "EST"
    assert settings.event_date == pd.Timestamp("2020-03-22")
    assert settings.alpha == 0.05
    assert settings.seed is None
    assert settings.report_path == "reports"
    assert settings.log_level == "INFO"


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("SLEEP_IMPACT_ROOT", str(tmp_path))
    monkeypatch.setenv("SLEEP_IMPACT_MOVING_AVG_DAYS", "3")
    monkeypatch.setenv("SLEEP_IMPACT_TIMEZONE", "UTC")
    monkeypatch.setenv("SLEEP_IMPACT_EVENT_DATE", "2020-04-01")
    monkeypatch.setenv("SLEEP_IMPACT_ALPHA", "0.1")
    monkeypatch.setenv("SLEEP_IMPACT_SEED", "42")
    monkeypatch.setenv("SLEEP_IMPACT_REPORT_PATH", str(tmp_path / "out"))
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = get_settings()

    assert settings.root == str(tmp_path)
    assert settings.moving_avg_days == 3
    assert settings.timezone == "UTC"
    assert settings.event_date == pd.Timestamp("2020-04-01")
    assert settings.alpha == 0.1
    assert settings.seed == 42
    assert settings.report_path == str(tmp_path / "out")
    assert settings.log_level == "DEBUG"


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("SLEEP_IMPACT_MOVING_AVG_DAYS", "0")
    monkeypatch.setenv("SLEEP_IMPACT_ALPHA", "2")
    monkeypatch.setenv("SLEEP_IMPACT_SEED", "abc")
    monkeypatch.setenv("SLEEP_IMPACT_EVENT_DATE", "not-a-date")
    monkeypatch.setenv("SLEEP_IMPACT_ROOT", "   ")

    settings = get_settings()

    assert settings.moving_avg_days == 7
    assert settings.alpha == 0.05
    assert settings.seed is None
    assert settings.event_date == pd.Timestamp("2020-03-22")
    assert settings.root == "."


def test_settings_are_cached_until_cleared(monkeypatch) -> None:
    _clear_env(monkeypatch)
    first = get_settings()
    monkeypatch.setenv("SLEEP_IMPACT_MOVING_AVG_DAYS", "14")

    assert get_settings() is first

    get_settings.cache_clear()
    assert get_settings().moving_avg_days == 14


def test_missing_event_date_marker_falls_back_to_default(monkeypatch) -> None:
    _clear_env(monkeypatch)
    monkeypatch.setenv("SLEEP_IMPACT_EVENT_DATE", "NaT")

    assert get_settings().event_date == pd.Timestamp("2020-03-22")
