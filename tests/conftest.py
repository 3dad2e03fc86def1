from __future__ import annotations

from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence, Tuple

import pandas as pd
import pytest

from sleep_impact.utils.settings import get_settings

WeatherRow = Tuple[str, Optional[float], Optional[float], Optional[float]]


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def write_sleep() -> Callable[..., Path]:
    """Write ``data/sleep-scores.csv`` under a root from (dt, score) pairs."""

    def _write(root: Path, rows: Iterable[Tuple[str, object]]) -> Path:
        data_dir = root / "data"
        data_dir.mkdir(parents=True, exist_ok=True)
        path = data_dir / "sleep-scores.csv"
        pd.DataFrame(list(rows), columns=["dt", "sleep_score"]).to_csv(path, index=False)
        return path

    return _write


@pytest.fixture()
def write_weather() -> Callable[..., Path]:
    """Write an OpenWeather style ``data/weather.csv`` from (dt_iso, temp_min, temp_max, humidity)."""

    def _write(root: Path, rows: Sequence[WeatherRow]) -> Path:
        data_dir = root / "data"
        data_dir.mkdir(parents=True, exist_ok=True)
        path = data_dir / "weather.csv"
        frame = pd.DataFrame(list(rows), columns=["dt_iso", "temp_min", "temp_max", "humidity"])
        frame.insert(1, "city_name", "New York")
        frame["sea_level"] = None
        frame["grnd_level"] = None
        frame["weather_main"] = "Clouds"
        frame["weather_description"] = "overcast clouds"
        frame["weather_icon"] = "04n"
        frame.to_csv(path, index=False)
        return path

    return _write


def hourly_rows(start: str, days: int) -> list:
    """Three UTC-midday observations per day, all inside the same EST date."""
    rows = []
    for day in pd.date_range(start, periods=days, freq="D"):
        for offset, (low, high, humidity) in enumerate(((30.0, 35.0, 60.0), (32.0, 40.0, 70.0), (29.0, 38.0, 65.0))):
            stamp = day + pd.Timedelta(hours=12 + 3 * offset)
            rows.append((f"{stamp:%Y-%m-%d %H:%M:%S} +0000 UTC", low, high, humidity))
    return rows


@pytest.fixture()
def daily_weather(write_weather) -> Callable[..., Path]:
    def _write(root: Path, start: str, days: int) -> Path:
        return write_weather(root, hourly_rows(start, days))

    return _write


class FakeImpact:
    """Stands in for ``causalimpact.CausalImpact``: records calls, mimics the result surface."""

    calls: list = []

    def __init__(self, data, pre_period, post_period, model=None, model_args=None, alpha=0.05):
        # The real estimator accepts None only for `model`
        for name, value in (("data", data), ("pre_period", pre_period), ("post_period", post_period),
                            ("model_args", model_args), ("alpha", alpha)):
            if value is None:
                raise ValueError(f"{name} input argument cannot be empty")
        self.data = data
        self.pre_period = pre_period
        self.post_period = post_period
        self.model_args = model_args
        self.alpha = alpha
        self.p_value = 0.031
        self.summary_data = pd.DataFrame(
            {"average": [70.0, 75.0, -5.0, -0.066], "cumulative": [700.0, 750.0, -50.0, -0.066]},
            index=["actual", "predicted", "abs_effect", "rel_effect"],
        )
        FakeImpact.calls.append(self)

    def summary(self, output="summary"):
        return f"fake {output}"

    def plot(self, show=True):
        import matplotlib.pyplot as plt

        plt.figure()
        plt.plot(self.data.index, self.data.iloc[:, 0])
