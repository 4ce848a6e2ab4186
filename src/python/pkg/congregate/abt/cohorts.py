"""Quantile-based county cohorts."""

import logging
from typing import Dict, Iterable, Optional

import pandas as pd

logger = logging.getLogger(__name__)


def _check_quantile(q: Optional[float], name: str) -> None:
    if q is not None and not 0 <= q <= 1:
        raise ValueError(f"{name} quantile {q} is outside [0, 1]")


def quantile_filter(
    df: pd.DataFrame,
    column: str,
    lower: Optional[float] = None,
    upper: Optional[float] = None,
) -> pd.DataFrame:
    """Keep rows whose ``column`` lies within the [lower, upper] quantile range.

    Bounds are inclusive and computed over the non-missing values; rows with a
    missing value are always dropped.

    Args:
        df (DataFrame): county table
        column (str): column to threshold
        lower (optional float): lower quantile, e.g. 0.75 keeps the top quarter
        upper (optional float): upper quantile

    Returns:
        (DataFrame) filtered copy
    """
    if column not in df.columns:
        raise ValueError(f"unknown column {column!r}")
    _check_quantile(lower, "lower")
    _check_quantile(upper, "upper")
    if lower is not None and upper is not None and lower > upper:
        raise ValueError(f"lower quantile {lower} is above upper {upper}")

    values = pd.to_numeric(df[column], errors="coerce")
    mask = values.notna()
    if not mask.any():
        logger.warning(f"{column} has no values, cohort is empty")
        return df.loc[mask].copy()

    if lower is not None:
        mask &= values >= values.quantile(lower)
    if upper is not None:
        mask &= values <= values.quantile(upper)

    logger.info(f"{column} in [{lower}, {upper}]: kept {int(mask.sum())} of {len(df)}")
    return df.loc[mask].copy()


def trim_outliers(df: pd.DataFrame, columns: Iterable[str], q: float = 0.99) -> pd.DataFrame:
    """Drop rows above the ``q`` quantile of any of ``columns``; missing values are kept."""
    _check_quantile(q, "outlier")
    out = df
    for column in columns:
        # Thresholds come from the untrimmed table
        threshold = pd.to_numeric(df[column], errors="coerce").quantile(q)
        values = pd.to_numeric(out[column], errors="coerce")
        keep = values.isna() | (values <= threshold)
        out = out.loc[keep]
    logger.info(f"Trimmed {len(df) - len(out)} outlier counties at q={q}")
    return out.copy()


def race_cohorts(
    df: pd.DataFrame,
    races: Iterable[str],
    q: float = 0.75,
    min_population: Optional[float] = None,
) -> Dict[str, pd.DataFrame]:
    """Split the table into high/low share cohorts for each race.

    ``<race>_high`` holds counties at or above the ``q`` quantile of
    ``pct_<race>``, ``<race>_low`` those at or below the ``1 - q`` quantile.
    The full table is returned under ``all``.
    """
    _check_quantile(q, "cohort")
    if min_population is not None:
        df = df.loc[pd.to_numeric(df["acs_pop_total"], errors="coerce") >= min_population]
        logger.info(f"{len(df)} counties with population >= {min_population}")

    cohorts = {"all": df.copy()}
    for race in races:
        column = f"pct_{race}"
        cohorts[f"{race}_high"] = quantile_filter(df, column, lower=q)
        cohorts[f"{race}_low"] = quantile_filter(df, column, upper=1 - q)
    return cohorts
