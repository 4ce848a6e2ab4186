#!/usr/bin/env python3
"""Run the county analysis end to end and write a human-readable report.

Usage:

    python -m congregate.report --download
    python -m congregate.report --races black white --quantile 0.8 --no-maps

Outputs land in ``data/reports`` unless ``--output-dir`` says otherwise:

 - summary.md: county counts, descriptive statistics, correlation tables
 - correlations.csv: every cohort/measure Pearson test
 - scatter_*.png, heatmap_all.png: static figures
 - map_*.html: county choropleths
"""

import argparse
import logging
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Sequence

import pandas as pd

from congregate.abt import build_abt as abt_builder
from congregate.abt.cohorts import race_cohorts, trim_outliers
from congregate.abt.features import add_rates
from congregate.analysis import plots
from congregate.analysis.correlation import (
    MIN_OBSERVATIONS,
    cohort_correlations,
    correlation_matrix,
)
from congregate.data import DATA_DIR, geography, run_pipeline

logger = logging.getLogger(__name__)

OUTCOME = "cases_per_100k"

# Measures tested against the outcome, in report order
RELIGION_MEASURES: List[str] = [
    "adherents_per_1k",
    "congregations_per_10k",
    "congregations_per_sqmi",
    "evangelical_adherents_per_1k",
    "black_protestant_adherents_per_1k",
    "mainline_adherents_per_1k",
    "catholic_adherents_per_1k",
    "orthodox_adherents_per_1k",
    "other_adherents_per_1k",
]

# Measures that get a scatterplot per cohort
SCATTER_MEASURES: List[str] = ["adherents_per_1k", "congregations_per_10k"]

MAP_COLUMNS: List[str] = [OUTCOME, "adherents_per_1k", "congregations_per_10k"]

DESCRIBE_COLUMNS: List[str] = [
    OUTCOME,
    "new_cases_per_100k",
    "adherents_per_1k",
    "congregations_per_10k",
    "congregations_per_sqmi",
    "pop_density",
    "pct_white",
    "pct_black",
]


class ReportOptions(NamedTuple):
    output_dir: Path = DATA_DIR / "reports"
    races: Sequence[str] = ("black", "white")
    quantile: float = 0.75
    min_population: Optional[float] = None
    outlier_quantile: Optional[float] = 0.99
    maps: bool = True


def _present(df: pd.DataFrame, columns: Sequence[str]) -> List[str]:
    return [c for c in columns if c in df.columns]


def case_window(abt: pd.DataFrame) -> str:
    """Describe the case window the ABT was built with."""

    def _bound(column: str, default: str) -> str:
        if column not in abt.columns:
            return default
        values = abt[column].dropna()
        return str(values.iloc[0]) if not values.empty else default

    return (
        f"{_bound('case_window_start', 'start of series')} to "
        f"{_bound('case_window_end', 'end of series')}"
    )


def _write_summary(
    path: Path,
    options: ReportOptions,
    cohorts: Dict[str, pd.DataFrame],
    correlations: pd.DataFrame,
    figures: List[Path],
) -> None:
    full = cohorts["all"]
    lines = [
        "# COVID-19 case rates and religious adherence by county",
        "",
        f"- Counties analysed: {len(full)}",
        f"- Case window: {case_window(full)}",
        f"- Cohort quantile: {options.quantile}",
        f"- Outlier trim quantile: {options.outlier_quantile}",
        f"- Minimum population: {options.min_population}",
        "",
        "## Cohorts",
        "",
    ]
    lines += [f"- {name}: {len(df)} counties" for name, df in cohorts.items()]

    describe = _present(full, DESCRIBE_COLUMNS)
    lines += ["", "## Descriptive statistics", "", "```"]
    lines += [full[describe].describe().T.to_string(float_format="{:.3f}".format)]
    lines += ["```", ""]

    for name, table in correlations.groupby("cohort", sort=False):
        lines += [f"## Pearson correlation with {OUTCOME}: {name}", "", "```"]
        shown = table.drop(columns=["cohort", "y"]).set_index("x")
        lines += [shown.to_string(float_format="{:.4f}".format)]
        lines += ["```", ""]

    if figures:
        lines += ["## Figures", ""]
        lines += [f"- [{p.name}]({p.name})" for p in figures]

    path.write_text("\n".join(lines) + "\n")


def run_report(
    abt: pd.DataFrame, options: ReportOptions = ReportOptions(), geojson: Optional[Dict] = None
) -> pd.DataFrame:
    """Cohorts, correlations and figures for one ABT.

    Returns:
        (DataFrame) stacked Pearson tests, one row per cohort and measure
    """
    output_dir = Path(options.output_dir)
    output_dir.mkdir(exist_ok=True, parents=True)

    if OUTCOME not in abt.columns:
        abt = add_rates(abt)
    if options.outlier_quantile is not None:
        abt = trim_outliers(abt, [OUTCOME], q=options.outlier_quantile)

    races = [r for r in options.races if f"pct_{r}" in abt.columns]
    if len(races) != len(options.races):
        logger.warning(f"No race share columns for {set(options.races) - set(races)}")
    cohorts = race_cohorts(
        abt, races, q=options.quantile, min_population=options.min_population
    )

    measures = _present(abt, RELIGION_MEASURES)
    if not measures:
        raise KeyError("ABT has none of the religion measures")
    correlations = cohort_correlations(cohorts, measures, OUTCOME)
    correlations.to_csv(output_dir / "correlations.csv", index=False)

    figures: List[Path] = []
    for name, cohort in cohorts.items():
        if len(cohort) < MIN_OBSERVATIONS:
            logger.warning(f"Cohort {name} has {len(cohort)} counties, no figures")
            continue
        for x in _present(cohort, SCATTER_MEASURES):
            figures.append(
                plots.scatterplot(cohort, x, OUTCOME, output_dir / f"scatter_{name}_{x}.png")
            )

    full = cohorts["all"]
    if len(full) < MIN_OBSERVATIONS:
        _write_summary(output_dir / "summary.md", options, cohorts, correlations, figures)
        logger.warning("Too few counties for the overall figures")
        return correlations

    if {"majority_race", "adherents_per_1k"} <= set(full.columns):
        figures.append(
            plots.scatterplot(
                full,
                "adherents_per_1k",
                OUTCOME,
                output_dir / "scatter_all_by_majority_race.png",
                hue="majority_race",
            )
        )

    r_matrix, _ = correlation_matrix(full, [OUTCOME] + measures)
    figures.append(
        plots.correlation_heatmap(
            r_matrix, output_dir / "heatmap_all.png", title="Pearson r, all counties"
        )
    )

    if options.maps and geojson is not None:
        for column in _present(full, MAP_COLUMNS):
            figures.append(
                plots.choropleth(full, column, geojson, output_dir / f"map_{column}.html")
            )

    _write_summary(output_dir / "summary.md", options, cohorts, correlations, figures)
    logger.info(f"Report written to {output_dir}")
    return correlations


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--download", action="store_true", help="fetch all sources first")
    parser.add_argument("--rebuild", action="store_true", help="rebuild the ABT")
    parser.add_argument("--start", help="first date of the case window (YYYY-MM-DD)")
    parser.add_argument("--end", help="last date of the case window (YYYY-MM-DD)")
    parser.add_argument("--races", nargs="+", default=list(ReportOptions().races))
    parser.add_argument("--quantile", type=float, default=ReportOptions().quantile)
    parser.add_argument("--min-population", type=float)
    parser.add_argument(
        "--outlier-quantile", type=float, default=ReportOptions().outlier_quantile
    )
    parser.add_argument("--output-dir", type=Path, default=ReportOptions().output_dir)
    parser.add_argument("--no-maps", action="store_true")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    options = ReportOptions(
        output_dir=args.output_dir,
        races=args.races,
        quantile=args.quantile,
        min_population=args.min_population,
        outlier_quantile=args.outlier_quantile,
        maps=not args.no_maps,
    )

    if args.download:
        run_pipeline()

    windowed = args.start is not None or args.end is not None
    if args.rebuild or args.download or windowed:
        abt = abt_builder.build_abt(start=args.start, end=args.end)
    else:
        try:
            abt = abt_builder.load_abt()
        except FileNotFoundError:
            logger.info("No ABT on disk, building it")
            abt = abt_builder.build_abt()

    geojson = geography.get_county_geojson() if options.maps else None
    run_report(abt, options, geojson=geojson)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
