# sleep_impact/analysis/preprocessing.py
import logging
import numbers
from pathlib import Path
from typing import Union

import pandas as pd

from sleep_impact.utils.errors import DataLoadError, EmptyResultError, InvalidRangeError

logger = logging.getLogger(__name__)

SLEEP_FILE = Path("data") / "sleep-scores.csv"
WEATHER_FILE = Path("data") / "weather.csv"

RESPONSE_COLUMN = 'sleep_score'
COVARIATE_COLUMNS = [
    'min_daily_temp',
    'max_daily_temp',
    'min_daily_humidity',
    'max_daily_humidity',
]

# Fixed UTC-5 offset, no daylight saving
DEFAULT_TIMEZONE = 'EST'

DateLike = Union[str, pd.Timestamp]


def _read_csv(path: Path, required: set) -> pd.DataFrame:
    """Read a source CSV and check that the required columns are present"""
    try:
        df = pd.read_csv(path)
    except FileNotFoundError as e:
        raise DataLoadError(f"Source file not found: {path}") from e
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
        raise DataLoadError(f"Could not parse {path}: {e}") from e

    missing_cols = required - set(df.columns)
    if missing_cols:
        raise DataLoadError(f"Missing required columns in {path.name}: {sorted(missing_cols)}")
    return df


def _to_numeric(df: pd.DataFrame, column: str, path: Path) -> pd.Series:
    try:
        return pd.to_numeric(df[column], errors='raise').astype('float64')
    except (TypeError, ValueError) as e:
        raise DataLoadError(f"Non-numeric values in column '{column}' of {path.name}: {e}") from e


def _as_date(value: DateLike) -> pd.Timestamp:
    """Coerce a date-like value to a naive midnight timestamp"""
    stamp = pd.Timestamp(value)
    if stamp is pd.NaT:
        raise ValueError("Date must not be missing")
    if stamp.tzinfo is not None:
        stamp = stamp.tz_localize(None)
    return stamp.normalize()


def load_sleep_data(root: Union[str, Path], rolling_average_window: int = 1) -> pd.DataFrame:
    """
    Load nightly sleep scores and smooth them with a trailing moving average.

    Args:
        root: Project root holding ``data/sleep-scores.csv``
        rolling_average_window: Number of consecutive nights averaged into
            each score (1 leaves the scores untouched)

    Returns:
        pd.DataFrame: ``sleep_score`` column (nullable Float64) indexed by a
        sorted, unique ``date`` index. The first ``window - 1`` scores are
        missing because there is not enough history to average.

    Raises:
        ValueError: If the window is not a positive integer
        DataLoadError: If the file is absent or malformed
    """
    if isinstance(rolling_average_window, bool) or not isinstance(rolling_average_window, numbers.Integral):
        raise ValueError("rolling_average_window must be a positive integer")
    if rolling_average_window < 1:
        raise ValueError("rolling_average_window must be a positive integer")

    path = Path(root) / SLEEP_FILE
    df = _read_csv(path, {'dt', RESPONSE_COLUMN})

    try:
        dates = pd.to_datetime(df['dt'], errors='raise')
    except (TypeError, ValueError) as e:
        raise DataLoadError(f"Could not parse dates in {path.name}: {e}") from e
    if dates.isna().any():
        raise DataLoadError(f"Missing dates in {path.name}")
    if dates.dt.tz is not None:
        dates = dates.dt.tz_localize(None)

    sleep = pd.DataFrame({
        'date': dates.dt.normalize(),
        RESPONSE_COLUMN: _to_numeric(df, RESPONSE_COLUMN, path),
    })

    duplicated = sleep['date'].duplicated()
    if duplicated.any():
        dupes = sorted(sleep.loc[duplicated, 'date'].dt.date.astype(str).unique())
        raise DataLoadError(f"Duplicate dates in {path.name}: {dupes}")

    sleep = sleep.sort_values('date').set_index('date')

    scores = sleep[RESPONSE_COLUMN]
    if rolling_average_window > 1:
        scores = scores.rolling(window=rolling_average_window, min_periods=rolling_average_window).mean()
    sleep[RESPONSE_COLUMN] = scores.astype('Float64')

    logger.info(f"Loaded {len(sleep)} nights of sleep data (window={rolling_average_window})")
    return sleep


def _parse_observation_dates(raw: pd.Series, tz: str, path: Path) -> pd.Series:
    """Turn OpenWeather ``dt_iso`` stamps into calendar dates in ``tz``"""
    # "2020-01-01 05:00:00 +0000 UTC": the trailing zone label duplicates the offset
    cleaned = raw.astype('string').str.strip().str.replace(r'\s+UTC$', '', regex=True)
    try:
        stamps = pd.to_datetime(cleaned, utc=True, format='mixed')
    except (TypeError, ValueError) as e:
        raise DataLoadError(f"Could not parse timestamps in {path.name}: {e}") from e
    if stamps.isna().any():
        raise DataLoadError(f"Missing timestamps in {path.name}")
    return stamps.dt.tz_convert(tz).dt.tz_localize(None).dt.normalize()


def load_weather_data(root: Union[str, Path],
                      min_date: DateLike,
                      max_date: DateLike,
                      tz: str = DEFAULT_TIMEZONE) -> pd.DataFrame:
    """
    Load hourly weather observations and reduce them to daily extremes.

    Args:
        root: Project root holding ``data/weather.csv``
        min_date: First date to keep (inclusive)
        max_date: Last date to keep (inclusive)
        tz: Reference time zone used to assign observations to dates

    Returns:
        pd.DataFrame: Daily min/max temperature and humidity (nullable
        Float64) indexed by a sorted ``date`` index within [min_date, max_date]

    Raises:
        InvalidRangeError: If min_date is after max_date
        DataLoadError: If the file is absent or malformed
    """
    start = _as_date(min_date)
    end = _as_date(max_date)
    if start > end:
        raise InvalidRangeError(f"min_date {start.date()} is after max_date {end.date()}")

    path = Path(root) / WEATHER_FILE
    df = _read_csv(path, {'dt_iso', 'temp_min', 'temp_max', 'humidity'})

    observations = pd.DataFrame({
        'date': _parse_observation_dates(df['dt_iso'], tz, path),
        'temp_min': _to_numeric(df, 'temp_min', path),
        'temp_max': _to_numeric(df, 'temp_max', path),
        'humidity': _to_numeric(df, 'humidity', path),
    })

    # min/max skip NaN; an all-NaN group stays NaN
    daily = (
        observations
        .groupby('date')
        .agg(
            min_daily_temp=('temp_min', 'min'),
            max_daily_temp=('temp_max', 'max'),
            min_daily_humidity=('humidity', 'min'),
            max_daily_humidity=('humidity', 'max'),
        )
        .sort_index()
        .astype('Float64')
    )

    daily = daily.loc[(daily.index >= start) & (daily.index <= end)]

    logger.info(
        f"Aggregated {len(observations)} weather observations into {len(daily)} days "
        f"between {start.date()} and {end.date()}"
    )
    return daily


def join_daily(sleep: pd.DataFrame, weather: pd.DataFrame) -> pd.DataFrame:
    """Inner-join sleep and daily weather on their date index, keeping missing cells"""
    joined = sleep[[RESPONSE_COLUMN]].join(weather, how='inner').sort_index()
    joined.index.name = 'date'
    return joined


def load_causal_input(root: Union[str, Path],
                      moving_avg_days: int,
                      tz: str = DEFAULT_TIMEZONE) -> pd.DataFrame:
    """
    Build the date-indexed table handed to the causal impact estimator.

    The weather window spans every sleep date, including the leading nights
    whose smoothed score is missing; those rows fall out at the final drop.

    Args:
        root: Project root holding the ``data`` directory
        moving_avg_days: Moving average window for the sleep scores
        tz: Reference time zone for weather dates

    Returns:
        pd.DataFrame: ``sleep_score`` followed by the weather covariates,
        only complete rows, strictly ordered by date

    Raises:
        DataLoadError: If either source file is absent or malformed
        EmptyResultError: If no complete row survives the join
    """
    sleep = load_sleep_data(root, moving_avg_days)
    if sleep.empty:
        raise EmptyResultError("Sleep data has no rows")

    min_date = sleep.index.min()
    max_date = sleep.index.max()
    weather = load_weather_data(root, min_date, max_date, tz=tz)

    joined = join_daily(sleep, weather)
    complete = joined.dropna(how='any')[[RESPONSE_COLUMN] + COVARIATE_COLUMNS]

    if complete.empty:
        raise EmptyResultError(
            f"No complete rows after joining {len(sleep)} sleep days with {len(weather)} weather days"
        )

    dropped = len(joined) - len(complete)
    if dropped:
        logger.info(f"Dropped {dropped} joined rows with missing values")
    logger.info(
        f"Prepared {len(complete)} days for causal analysis "
        f"({complete.index.min().date()} to {complete.index.max().date()})"
    )
    return complete
