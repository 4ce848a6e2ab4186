#!/usr/bin/env python3
import logging
from pathlib import Path
from typing import Optional

import pandas as pd

from congregate.abt.features import add_rates
from congregate.data import DATA_DIR, census, geography, religion, usafacts


""" Overview

In this script we combine the following tables to construct the county ABT:
- USAFacts peak cumulative cases (county level)
- Religion census congregations and adherents (county level)
- ACS population and race (county level)
- Census Gazetteer land area (county level)

Note:

- Every source is keyed on the 5 character fips built in congregate.data.fips.

- Joins are inner: a county has to be present in every source to be analysed.
  The counties lost at each step are logged.

- The case table acts as our left table as it carries the outcome.

"""

ABT_FILE = "county_abt.csv"

logger = logging.getLogger(__name__)


# ------- Main Function ------- #


def _join(left: pd.DataFrame, right: pd.DataFrame, name: str) -> pd.DataFrame:
    joined = pd.merge(
        left,
        right,
        how="inner",
        left_on=["fips"],
        right_on=["fips"],
        suffixes=("", "_dropMe"),
    )
    joined.drop(joined.filter(regex="_dropMe$").columns.tolist(), axis=1, inplace=True)

    lost = set(left.fips).difference(joined.fips)
    if lost:
        logger.warning(f"{len(lost)} counties without {name} data dropped")
    logger.info(f"Added {name} data: ABT.shape = {joined.shape}")
    return joined


def join_all_data(
    cases: pd.DataFrame,
    religion_df: pd.DataFrame,
    demographics: pd.DataFrame,
    land_area: Optional[pd.DataFrame] = None,
) -> pd.DataFrame:
    """Inner join the per-county source tables on fips."""
    for name, df in [("cases", cases), ("religion", religion_df), ("census", demographics)]:
        if "fips" not in df.columns:
            raise KeyError(f"{name} table has no fips column")
        if df.fips.duplicated().any():
            raise ValueError(f"{name} table has more than one row per county")

    # STEP 1: cases + religion census
    abt = _join(cases, religion_df, "religion")

    # STEP 2: ACS population and race
    abt = _join(abt, demographics, "census")

    # STEP 3: land area -> used for densities
    if land_area is not None:
        abt = _join(abt, land_area, "land area")

    return abt.sort_values("fips").reset_index(drop=True)


def _window_bound(value) -> Optional[str]:
    return None if value is None else pd.Timestamp(value).date().isoformat()


def build_abt(start=None, end=None, path: Optional[Path] = None) -> pd.DataFrame:
    """Load the intermediate tables, join them, add rates and write the ABT.

    ``start``/``end`` bound the case window; without them the stored case
    summary is used as-is. The window is recorded in the ``case_window_start``
    and ``case_window_end`` columns, blank for an open end.
    """
    if start is None and end is None:
        cases = usafacts.load_peak_cases()
    else:
        cases = usafacts.case_summary(usafacts.transform_usafacts_cases(), start, end)

    abt = join_all_data(
        cases=cases,
        religion_df=religion.load_religion_census(),
        demographics=census.load_demographics(),
        land_area=geography.load_land_area(),
    )
    abt = add_rates(abt)
    abt["case_window_start"] = _window_bound(start)
    abt["case_window_end"] = _window_bound(end)

    path = Path(path) if path is not None else DATA_DIR / "processed" / ABT_FILE
    path.parent.mkdir(exist_ok=True, parents=True)
    abt.to_csv(path, index=False)
    logger.info(f"Wrote ABT {abt.shape} to {path}")
    return abt


def load_abt(path: Optional[Path] = None) -> pd.DataFrame:
    path = Path(path) if path is not None else DATA_DIR / "processed" / ABT_FILE
    if not path.exists():
        raise FileNotFoundError(path)
    return pd.read_csv(
        path,
        dtype={"fips": str, "case_window_start": str, "case_window_end": str},
        parse_dates=["peak_date"],
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    build_abt()
