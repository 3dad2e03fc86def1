# sleep_impact/utils/settings.py
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

import pandas as pd

_ROOT_ENV = "SLEEP_IMPACT_ROOT"
_MOVING_AVG_ENV = "SLEEP_IMPACT_MOVING_AVG_DAYS"
_TIMEZONE_ENV = "SLEEP_IMPACT_TIMEZONE"
_EVENT_DATE_ENV = "SLEEP_IMPACT_EVENT_DATE"
_ALPHA_ENV = "SLEEP_IMPACT_ALPHA"
_SEED_ENV = "SLEEP_IMPACT_SEED"
_REPORT_PATH_ENV = "SLEEP_IMPACT_REPORT_PATH"
_LOG_LEVEL_ENV = "LOG_LEVEL"

# New York "PAUSE" stay-at-home order took effect
DEFAULT_EVENT_DATE = "2020-03-22"


@dataclass(frozen=True)
class Settings:
    root: str
    moving_avg_days: int
    timezone: str
    event_date: pd.Timestamp
    alpha: float
    seed: Optional[int]
    report_path: str
    log_level: str


def _read_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    candidate = value.strip()
    return candidate or None


def _read_str_env(name: str, default: str) -> str:
    return _read_env(name) or default


def _read_moving_avg_days(default: int) -> int:
    candidate = _read_env(_MOVING_AVG_ENV)
    if candidate is None:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed >= 1 else default


def _read_alpha(default: float) -> float:
    candidate = _read_env(_ALPHA_ENV)
    if candidate is None:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if 0 < parsed < 1 else default


def _read_seed() -> Optional[int]:
    candidate = _read_env(_SEED_ENV)
    if candidate is None:
        return None
    try:
        return int(candidate)
    except ValueError:
        return None


def _read_event_date(default: str) -> pd.Timestamp:
    candidate = _read_env(_EVENT_DATE_ENV)
    if candidate is not None:
        try:
            parsed = pd.Timestamp(candidate)
        except ValueError:
            parsed = pd.NaT
        if parsed is not pd.NaT:
            return parsed.normalize()
    return pd.Timestamp(default)


@lru_cache
def get_settings() -> Settings:
    return Settings(
        root=_read_str_env(_ROOT_ENV, "."),
        moving_avg_days=_read_moving_avg_days(7),
        timezone=_read_str_env(_TIMEZONE_ENV, "EST"),
        event_date=_read_event_date(DEFAULT_EVENT_DATE),
        alpha=_read_alpha(0.05),
        seed=_read_seed(),
        report_path=_read_str_env(_REPORT_PATH_ENV, "reports"),
        log_level=_read_str_env(_LOG_LEVEL_ENV, "INFO").upper(),
    )
