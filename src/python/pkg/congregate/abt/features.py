"""Per-capita normalisation of the joined county table."""

import logging
from typing import List

import numpy as np
import pandas as pd

from congregate.data.religion import FAMILIES

logger = logging.getLogger(__name__)

CASES_SCALE = 100_000
ADHERENTS_SCALE = 1_000
CONGREGATIONS_SCALE = 10_000

RACES: List[str] = [
    "white",
    "black",
    "am_ind",
    "asian",
    "hawaiian",
    "other_single",
    "two_or_more",
]


def safe_ratio(numerator: pd.Series, denominator: pd.Series, scale: float = 1) -> pd.Series:
    """numerator / denominator * scale, NaN where the denominator is 0 or missing."""
    num = pd.to_numeric(numerator, errors="coerce").astype(float)
    den = pd.to_numeric(denominator, errors="coerce").astype(float)
    den = den.where(den != 0)
    return (num / den * scale).replace([np.inf, -np.inf], np.nan)


def add_rates(df: pd.DataFrame) -> pd.DataFrame:
    """Return a copy of the ABT with the derived rate columns.

    Columns that a rate needs but the table lacks are skipped with a warning,
    so partial tables (e.g. without land area) still get the rest.
    """
    out = df.copy()

    def _has(*cols: str) -> bool:
        missing = [c for c in cols if c not in out.columns]
        if missing:
            logger.warning(f"Skipping rate, missing columns {missing}")
        return not missing

    if _has("peak_cases", "acs_pop_total"):
        out["cases_per_100k"] = safe_ratio(out.peak_cases, out.acs_pop_total, CASES_SCALE)

    if "peak_new_cases_avg" in out.columns and "acs_pop_total" in out.columns:
        out["new_cases_per_100k"] = safe_ratio(
            out.peak_new_cases_avg, out.acs_pop_total, CASES_SCALE
        )

    # Adherence is relative to the religion census' own 2010 population
    for family in FAMILIES.values():
        col = f"rel_{family}_adherents"
        if col not in out.columns or "rel_pop2010" not in out.columns:
            continue
        name = "adherents_per_1k" if family == "total" else f"{family}_adherents_per_1k"
        out[name] = safe_ratio(out[col], out.rel_pop2010, ADHERENTS_SCALE)

    if _has("rel_total_congregations", "acs_pop_total"):
        out["congregations_per_10k"] = safe_ratio(
            out.rel_total_congregations, out.acs_pop_total, CONGREGATIONS_SCALE
        )

    if _has("rel_total_congregations", "land_area_sqmi"):
        out["congregations_per_sqmi"] = safe_ratio(
            out.rel_total_congregations, out.land_area_sqmi
        )

    if _has("acs_pop_total", "land_area_sqmi"):
        out["pop_density"] = safe_ratio(out.acs_pop_total, out.land_area_sqmi)

    race_cols = [f"acs_race_{r}" for r in RACES if f"acs_race_{r}" in out.columns]
    if "acs_race_total" in out.columns and race_cols:
        for col in race_cols:
            race = col[len("acs_race_"):]
            out[f"pct_{race}"] = safe_ratio(out[col], out.acs_race_total, 100)

        shares = out[[f"pct_{c[len('acs_race_'):]}" for c in race_cols]]
        has_share = shares.notna().any(axis=1)
        out["majority_race"] = pd.Series(pd.NA, index=out.index, dtype=object)
        out.loc[has_share, "majority_race"] = (
            shares.loc[has_share].idxmax(axis=1).str.replace("pct_", "", regex=False)
        )

    return out
