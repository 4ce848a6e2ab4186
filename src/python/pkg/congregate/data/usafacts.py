#!/usr/bin/env python3

import logging
from pathlib import Path
from typing import Optional, Union

import pandas as pd
import requests

from congregate.data import DATA_DIR
from congregate.data.fips import add_fips_column

CASES_URL = "https://usafactsstatic.blob.core.windows.net/public/data/covid-19/covid_confirmed_usafacts.csv"
RAW_FILE = "covid_confirmed_usafacts.csv"
PEAK_FILE = "usafacts_peak_cases.csv"

# Rows that are not counties and so have no fips
NON_COUNTY_ROWS = [
    "Statewide Unallocated",
    "New York City Unallocated/Probable",
    "Grand Princess Cruise Ship",
    "Wade Hampton Census Area",
]

REQUIRED_COLUMNS = ["countyFIPS", "County Name", "State"]

logger = logging.getLogger(__name__)


def download_usafacts_cases(path: Optional[Path] = None) -> Path:
    """Download the cumulative confirmed cases by county from USAFacts."""
    path = Path(path) if path is not None else DATA_DIR / "raw" / RAW_FILE

    logger.info(f"Downloading {RAW_FILE}")
    r = requests.get(CASES_URL)
    r.raise_for_status()

    logger.info(f"Writing {RAW_FILE} to {path}")
    path.parent.mkdir(exist_ok=True, parents=True)
    path.write_text(r.content.decode("utf-8"))
    return path


def transform_usafacts_cases(path: Optional[Union[str, Path]] = None) -> pd.DataFrame:
    """
    Transform the raw USAFacts file into a long table.

    The raw file has one column per date:

    countyFIPS | County Name | State | StateFIPS | 2020-01-22 | 2020-01-23 ...
        ...    |   ...       |  ...  |  ...      | ....       |  ...

    and is mapped to:

    fips  | county | state_code | date       | confirmed
    01001 | ...    | AL         | 2020-01-22 | ...
    """
    path = Path(path) if path is not None else DATA_DIR / "raw" / RAW_FILE
    if not path.exists():
        raise FileNotFoundError(path)

    raw = pd.read_csv(path)
    # Older exports use "stateFIPS"
    raw = raw.rename(columns={"stateFIPS": "StateFIPS"})
    missing = [c for c in REQUIRED_COLUMNS if c not in raw.columns]
    if missing:
        raise KeyError(f"{path.name} is missing columns {missing}")

    raw["County Name"] = raw["County Name"].str.strip()
    raw = raw[~raw["County Name"].isin(NON_COUNTY_ROWS)]

    raw = add_fips_column(raw, code_col="countyFIPS")
    raw = raw.drop(columns=["countyFIPS", "StateFIPS"], errors="ignore")
    raw = raw.rename(columns={"County Name": "county", "State": "state_code"})

    long_df = raw.melt(
        id_vars=["fips", "county", "state_code"], var_name="date", value_name="confirmed"
    )
    long_df["date"] = pd.to_datetime(long_df["date"])
    long_df["confirmed"] = pd.to_numeric(long_df["confirmed"], errors="coerce")

    logger.info(
        f"USAFacts cases: {long_df.fips.nunique()} counties, "
        f"{long_df.date.nunique()} dates"
    )
    return long_df.sort_values(["fips", "date"]).reset_index(drop=True)


def _window(long_df: pd.DataFrame, start=None, end=None) -> pd.DataFrame:
    if start is not None and end is not None and pd.Timestamp(start) > pd.Timestamp(end):
        raise ValueError(f"start {start} is after end {end}")
    mask = pd.Series(True, index=long_df.index)
    if start is not None:
        mask &= long_df["date"] >= pd.Timestamp(start)
    if end is not None:
        mask &= long_df["date"] <= pd.Timestamp(end)
    return long_df.loc[mask & long_df["confirmed"].notna()]


def peak_cases(long_df: pd.DataFrame, start=None, end=None) -> pd.DataFrame:
    """Collapse each county's cumulative series to its peak.

    Cumulative series get revised downward now and then, so the max is taken
    rather than the last value. ``peak_date`` is the first date the max was
    reached.

    Args:
        long_df (DataFrame): output of ``transform_usafacts_cases``
        start, end (optional date-like): inclusive window

    Returns:
        (DataFrame) fips | county | state_code | peak_cases | peak_date
    """
    windowed = _window(long_df, start, end)
    if windowed.empty:
        logger.warning("No case rows in the requested window")
        return pd.DataFrame(
            columns=["fips", "county", "state_code", "peak_cases", "peak_date"]
        )

    ordered = windowed.sort_values(["fips", "date"])
    idx = ordered.groupby("fips")["confirmed"].idxmax()
    peaks = ordered.loc[idx, ["fips", "county", "state_code", "confirmed", "date"]]
    peaks = peaks.rename(columns={"confirmed": "peak_cases", "date": "peak_date"})

    logger.info(f"Peak cases for {len(peaks)} counties")
    return peaks.reset_index(drop=True)


def new_case_peaks(
    long_df: pd.DataFrame, window: int = 7, start=None, end=None
) -> pd.DataFrame:
    """Highest trailing ``window``-day mean of daily new cases per county.

    Each county's cumulative series is put on a daily calendar first, with
    missing days linearly interpolated, so the window spans calendar days and
    a gap's cases are spread over it. The first day of a series has no
    previous count and contributes no new cases.
    """
    if window < 1:
        raise ValueError("window must be positive")

    def _peak(group: pd.DataFrame) -> float:
        cumulative = group.set_index("date")["confirmed"].sort_index()
        cumulative = cumulative[~cumulative.index.duplicated(keep="last")]
        cumulative = cumulative.asfreq("D").interpolate(limit_area="inside")
        # Downward revisions show up as negative new cases
        new_cases = cumulative.diff().clip(lower=0)
        return new_cases.rolling(window, min_periods=1).mean().max()

    windowed = _window(long_df, start, end)
    if windowed.empty:
        return pd.DataFrame(columns=["fips", "peak_new_cases_avg"])

    out = windowed.groupby("fips")[["date", "confirmed"]].apply(_peak)
    return out.rename("peak_new_cases_avg").reset_index()


def case_summary(
    long_df: pd.DataFrame, start=None, end=None, window: int = 7
) -> pd.DataFrame:
    """Peak cumulative cases plus the peak ``window``-day new case average."""
    peaks = peak_cases(long_df, start, end)
    new = new_case_peaks(long_df, window=window, start=start, end=end)
    return pd.merge(peaks, new, how="left", on="fips")


def write_peak_cases(peaks: pd.DataFrame, path: Optional[Path] = None) -> Path:
    path = Path(path) if path is not None else DATA_DIR / "intermediate" / PEAK_FILE
    path.parent.mkdir(exist_ok=True, parents=True)
    peaks.to_csv(path, index=False)
    return path


def load_peak_cases(path: Optional[Path] = None) -> pd.DataFrame:
    path = Path(path) if path is not None else DATA_DIR / "intermediate" / PEAK_FILE
    if not path.exists():
        raise FileNotFoundError(path)
    return pd.read_csv(path, dtype={"fips": str}, parse_dates=["peak_date"])


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    download_usafacts_cases()
    write_peak_cases(case_summary(transform_usafacts_cases()))
