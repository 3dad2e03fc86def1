# sleep_impact/analysis/causal_analysis.py
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
import tensorflow as tf
from causalimpact import CausalImpact

from sleep_impact.analysis.preprocessing import RESPONSE_COLUMN
from sleep_impact.utils.errors import InvalidRangeError

logger = logging.getLogger(__name__)


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder for numpy scalars/arrays and pandas timestamps"""
    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        elif isinstance(obj, np.floating):
            return float(obj)
        elif isinstance(obj, np.ndarray):
            return obj.tolist()
        elif isinstance(obj, pd.Timestamp):
            return obj.isoformat()
        elif hasattr(obj, 'to_dict'):  # For pandas DataFrames/Series
            return obj.to_dict()
        return super().default(obj)


class CausalImpactAnalyzer:
    """
    Causal impact of a single event on smoothed nightly sleep scores.

    Wraps the Bayesian structural time-series estimator from ``causalimpact``:
    - validation of the prepared sleep/weather table
    - pre/post period split around the event date
    - summary, narrative report and point estimates
    - figures and JSON results for the presentation
    """

    def __init__(self,
                 series: pd.DataFrame,
                 event_date,
                 alpha: float = 0.05,
                 model_args: Optional[Dict[str, Any]] = None,
                 seed: Optional[int] = None,
                 report_path: str = "reports"):
        """
        Args:
            series: Date-indexed table with ``sleep_score`` and weather covariates
            event_date: First day of the post-period (the treatment)
            alpha: Significance level of the posterior intervals
            model_args: Extra arguments forwarded to the estimator's model
            seed: TensorFlow seed applied right before fitting
            report_path: Directory for JSON results and figures
        """
        if not 0 < alpha < 1:
            raise ValueError("alpha must be between 0 and 1")

        self.series = self._validate_series(series)
        self.event_date = pd.Timestamp(event_date).normalize()
        self.alpha = alpha
        self.model_args = dict(model_args or {})
        self.seed = seed
        self.REPORT_PATH = Path(report_path)
        self._setup_reporting()
        self.pre_period, self.post_period = self._split_periods()
        self.impact: Optional[CausalImpact] = None

        logger.info(
            f"CausalImpactAnalyzer initialized: pre {self.pre_period[0].date()}..{self.pre_period[1].date()}, "
            f"post {self.post_period[0].date()}..{self.post_period[1].date()}"
        )

    @property
    def covariates(self) -> List[str]:
        return [col for col in self.series.columns if col != RESPONSE_COLUMN]

    def _validate_series(self, df: pd.DataFrame) -> pd.DataFrame:
        """Check the prepared table matches what the estimator expects"""
        if not isinstance(df, pd.DataFrame):
            raise TypeError("series must be a pandas DataFrame")

        if df.empty:
            raise ValueError("series cannot be empty")

        if not isinstance(df.index, pd.DatetimeIndex):
            raise ValueError("series must have a DatetimeIndex")

        if RESPONSE_COLUMN not in df.columns:
            raise ValueError(f"series is missing the response column '{RESPONSE_COLUMN}'")

        if len(df.columns) < 2:
            raise ValueError("series needs at least one covariate column")

        if df.isna().any().any():
            raise ValueError("series contains missing values")

        if not (df.index.is_unique and df.index.is_monotonic_increasing):
            raise ValueError("series dates must be unique and sorted ascending")

        # Response first, covariates after
        return df[[RESPONSE_COLUMN] + [col for col in df.columns if col != RESPONSE_COLUMN]]

    def _split_periods(self):
        dates = self.series.index
        pre = dates[dates < self.event_date]
        post = dates[dates >= self.event_date]

        if pre.empty:
            raise InvalidRangeError(f"No data before the event date {self.event_date.date()}")
        if post.empty:
            raise InvalidRangeError(f"No data on or after the event date {self.event_date.date()}")

        return [pre.min(), pre.max()], [post.min(), post.max()]

    def _setup_reporting(self):
        """Create reporting directory structure"""
        self.REPORT_PATH.mkdir(parents=True, exist_ok=True)
        self.figure_path = self.REPORT_PATH / "figures"
        self.figure_path.mkdir(exist_ok=True)

    def _require_fit(self) -> CausalImpact:
        if self.impact is None:
            raise ValueError("Model has not been fitted yet")
        return self.impact

    def run(self) -> CausalImpact:
        """Fit the structural time-series model and cache the result"""
        data = self.series.astype('float64')
        pre_period = [str(d.date()) for d in self.pre_period]
        post_period = [str(d.date()) for d in self.post_period]

        if self.seed is not None:
            tf.random.set_seed(self.seed)

        logger.info(
            f"Fitting causal impact on {len(data)} days with covariates {self.covariates}"
        )
        self.impact = CausalImpact(
            data,
            pre_period,
            post_period,
            model_args=self.model_args,
            alpha=self.alpha,
        )
        logger.info("Causal impact fit completed")
        return self.impact

    def summary(self) -> str:
        return self._require_fit().summary()

    def report(self) -> str:
        return self._require_fit().summary(output='report')

    def estimates(self) -> Dict[str, Any]:
        """Point estimates and intervals in a JSON-friendly shape"""
        impact = self._require_fit()
        summary_data = impact.summary_data

        p_value = getattr(impact, 'p_value', None)
        return {
            'event_date': self.event_date.date().isoformat(),
            'pre_period': [d.date().isoformat() for d in self.pre_period],
            'post_period': [d.date().isoformat() for d in self.post_period],
            'alpha': self.alpha,
            'p_value': float(p_value) if p_value is not None else None,
            'average': summary_data['average'].astype(float).to_dict(),
            'cumulative': summary_data['cumulative'].astype(float).to_dict(),
        }

    def plot_input_series(self) -> plt.Figure:
        """Smoothed sleep score above the weather covariates, event marked"""
        data = self.series.astype('float64').rename_axis('date')
        covariates = (
            data[self.covariates]
            .reset_index()
            .melt(id_vars='date', var_name='covariate', value_name='value')
        )

        fig, (ax_sleep, ax_weather) = plt.subplots(2, 1, figsize=(12, 8), sharex=True)

        sns.lineplot(x=data.index, y=data[RESPONSE_COLUMN], ax=ax_sleep, color='tab:blue')
        ax_sleep.set_ylabel('Sleep score (moving average)')
        ax_sleep.set_title('Nightly sleep quality and daily weather')

        sns.lineplot(data=covariates, x='date', y='value', hue='covariate', ax=ax_weather)
        ax_weather.set_ylabel('Temperature / humidity')
        ax_weather.set_xlabel('Date')

        for ax in (ax_sleep, ax_weather):
            ax.axvline(self.event_date, color='red', linestyle='--', alpha=0.6)
            ax.grid(alpha=0.3)

        fig.tight_layout()
        return fig

    def plot_impact(self) -> plt.Figure:
        """Original, pointwise and cumulative panels drawn by the estimator"""
        impact = self._require_fit()
        impact.plot(show=False)
        fig = plt.gcf()
        fig.suptitle(f"Effect on sleep score from {self.event_date.date()}")
        return fig

    def save_figures(self) -> Dict[str, Path]:
        plot_paths = {}

        fig = self.plot_input_series()
        path = self.figure_path / "input_series.png"
        fig.savefig(path, dpi=150, bbox_inches='tight')
        plot_paths['input_series'] = path
        plt.close(fig)

        fig = self.plot_impact()
        path = self.figure_path / "causal_impact.png"
        fig.savefig(path, dpi=150, bbox_inches='tight')
        plot_paths['causal_impact'] = path
        plt.close(fig)

        logger.info(f"Figures saved to {self.figure_path}")
        return plot_paths

    def save_results(self, results: Dict[str, Any], filename: str = "results.json") -> Path:
        """Save analysis results to JSON file with proper serialization"""
        report_path = self.REPORT_PATH / filename

        with open(report_path, 'w') as f:
            json.dump(results, f, indent=2, cls=NumpyEncoder)

        logger.info(f"Results saved to {report_path}")
        return report_path
