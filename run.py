import logging
from pathlib import Path
from typing import Optional

import matplotlib
matplotlib.use("Agg")
import typer

from sleep_impact.analysis.causal_analysis import CausalImpactAnalyzer
from sleep_impact.analysis.preprocessing import load_causal_input
from sleep_impact.utils.errors import SleepImpactError
from sleep_impact.utils.logging_config import configure_logging
from sleep_impact.utils.settings import get_settings

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Estimate the effect of an event on nightly sleep quality.",
    context_settings={"help_option_names": ["-h", "--help"]},
    add_completion=False,
)


@app.command()
def main(
    root: Optional[Path] = typer.Argument(
        None,
        file_okay=False,
        help="Project root holding the data directory (defaults to SLEEP_IMPACT_ROOT or '.').",
    ),
) -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    data_root = root if root is not None else Path(settings.root)

    try:
        series = load_causal_input(data_root, settings.moving_avg_days, tz=settings.timezone)

        analyzer = CausalImpactAnalyzer(
            series,
            settings.event_date,
            alpha=settings.alpha,
            seed=settings.seed,
            report_path=settings.report_path,
        )
        analyzer.run()
    except SleepImpactError as e:
        logger.error(f"Analysis halted: {e}")
        raise typer.Exit(code=1)

    typer.echo(analyzer.summary())
    typer.echo(analyzer.report())

    analyzer.save_results(analyzer.estimates())
    analyzer.save_figures()

    logger.info("Analysis completed successfully")


if __name__ == "__main__":
    app()
