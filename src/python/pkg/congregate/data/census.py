"""Download Census demographics for the county analysis.

We need, per county:

 - Total population (denominator for per-capita rates)
 - Race (to stratify counties into cohorts)

2018 ACS5 is used because it is more complete for smaller counties. This is
easy to change through API_YEAR.


ACS tables:

| What  | Table  | Fields | Notes                               |
| ---   | ---    | ---    | ---                                 |
| Pop.  | B01003 | 001E   | No errors reported for any measures |
| Race  | B02001 | 001-008E | Single races plus two or more     |


Output table format:

 | fips | state_fips | county_fips | <cols ...> |


Usage:

    demographics = congregate.data.census.fetch_demographics()


NB: This product uses the Census Bureau Data API but is not endorsed or certified
by the Census Bureau.
"""

import logging
import os
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import census
import pandas as pd

from congregate.data import DATA_DIR
from congregate.data.fips import add_fips_column

__all__ = [
    "check_for_api_key",
    "fetch_demographics",
    "get_dem_pop",
    "get_dem_race",
    "get_fields_per_county",
    "load_demographics",
]


_API_KEY_NAME = "CENSUS_API_KEY"

# Tracks the session over time
API_SESSION: Optional[census.core.ACSClient] = None

# Changing these module constants would change the underlying source
API_DATASET = "acs5"
API_YEAR = 2018

DEMOGRAPHICS_FILE = "acs_demographics.csv"

POP_FIELDS = {"B01003_001E": "acs_pop_total"}

RACE_FIELDS = {
    "B02001_001E": "acs_race_total",
    "B02001_002E": "acs_race_white",
    "B02001_003E": "acs_race_black",
    "B02001_004E": "acs_race_am_ind",
    "B02001_005E": "acs_race_asian",
    "B02001_006E": "acs_race_hawaiian",
    "B02001_007E": "acs_race_other_single",
    "B02001_008E": "acs_race_two_or_more",
}


logger = logging.getLogger(__name__)


# Private functions ------------------------------------------------------------


def _get_api_key() -> str:
    """Fetch the API key from the environment."""
    logger.info("Getting API key")

    check_for_api_key()
    return os.environ[_API_KEY_NAME]


def _get_api_client(key: Optional[str] = None) -> census.core.ACSClient:
    """Return an ACS client, creating a new session if needed."""
    global API_SESSION

    if API_SESSION is None:
        if key is None:
            key = _get_api_key()
        else:
            logger.info("Setting API key from string")

        logger.info("Creating new session")
        co = census.Census(key=key, year=API_YEAR)
        API_SESSION = getattr(co, API_DATASET)
    return API_SESSION


def _translate_state_county_result(
    result: List[Dict], map_dict: Dict[str, str]
) -> List[Dict]:
    """Rename Census fields, keeping the "state" and "county" parts.

    Args:
        result (list[dict]): the API output, including *at least*
            "state" and "county"
        map_dict (dict[str, str]): a mapper from Census fields to usable
            column names

    Returns:
        (list[dict]) a transformed version of the input list
    """
    output: List[Dict] = []
    for d in result:
        entry = {"state_fips": d["state"], "county_fips": d["county"]}
        for old, new in map_dict.items():
            entry[new] = d[old]
        output.append(entry)
    return output


def _mark_missings_as_na(
    result: List[Dict], exclude_cols: Iterable[str] = ()
) -> List[Dict]:
    """Mark Census results < 0 or None as NA.

    The API returns large negative sentinels (e.g. -666666666) when a value
    is not available, and sometimes None.

    This should be called _before_ any mapping!
    """
    cols_to_exclude = {"state", "county"}.union(exclude_cols)
    # Count the values we changed
    missing_counts: Dict[Any, int] = defaultdict(lambda: 0)
    output = []
    for entry in result:
        entry = dict(entry)
        for field in set(entry).difference(cols_to_exclude):
            if entry[field] is None or entry[field] < 0:
                missing_counts[entry[field]] += 1
                entry[field] = pd.NA
        output.append(entry)

    for k in missing_counts:
        logger.info(f"Marked {missing_counts[k]} {k} results as NA")

    return output


def _collect(fields: Dict[str, str], api_key: Optional[str] = None) -> List[Dict]:
    result = get_fields_per_county(list(fields), api_key=api_key)
    result = _mark_missings_as_na(result)
    return _translate_state_county_result(result, map_dict=fields)


# Public functions -------------------------------------------------------------


def check_for_api_key() -> None:
    """Check for the existence of a Census API key in system variables."""
    if _API_KEY_NAME not in os.environ:
        raise KeyError(f"{_API_KEY_NAME} not found on the environment")


def get_fields_per_county(
    fields: Iterable[str],
    state_fips: str = "*",
    county_fips: str = "*",
    api_key: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """Collect arbitrary fields at the county level.

    Args:
        fields (list[str]): fields to collect
        state_fips (str): state FIPS codes, default to all
        county_fips (str): county FIPS codes, default to all
        api_key (optional str): API key

    Returns:
        a list of ACS dictionary entries
    """
    logger.info("Gathering fields per county")

    api = _get_api_client(api_key)
    return api.state_county(
        fields=list(fields), state_fips=state_fips, county_fips=county_fips
    )


def get_dem_pop(api_key: Optional[str] = None) -> List[Dict]:
    """Collect per-county population.

    Returns:
        (list[dict]) rows of a data frame, keys are
            'state_fips' and 'county_fips'
    """
    return _collect(POP_FIELDS, api_key=api_key)


def get_dem_race(api_key: Optional[str] = None) -> List[Dict]:
    """Collect racial demographics by county.

    Returns:
        (list[dict]) rows of a data frame, keys are
            'state_fips' and 'county_fips'
    """
    return _collect(RACE_FIELDS, api_key=api_key)


def fetch_demographics(
    api_key: Optional[str] = None, path: Optional[Path] = None
) -> pd.DataFrame:
    """Pull population and race, join them and cache the result as CSV."""
    pop = pd.DataFrame(get_dem_pop(api_key=api_key))
    race = pd.DataFrame(get_dem_race(api_key=api_key))
    logger.info(f"ACS pop {pop.shape}, race {race.shape}")

    # Both tables come from the same county list, so inner join loses nothing
    demographics = pd.merge(
        pop,
        race,
        how="inner",
        on=["state_fips", "county_fips"],
        suffixes=("", "_dropMe"),
    )
    demographics = demographics.drop(
        demographics.filter(regex="_dropMe$").columns.tolist(), axis=1
    )
    demographics = add_fips_column(
        demographics, state_col="state_fips", county_col="county_fips"
    )

    path = Path(path) if path is not None else DATA_DIR / "intermediate" / DEMOGRAPHICS_FILE
    path.parent.mkdir(exist_ok=True, parents=True)
    demographics.to_csv(path, index=False)
    logger.info(f"Wrote {demographics.shape} demographics to {path}")
    return demographics


def load_demographics(path: Optional[Path] = None) -> pd.DataFrame:
    path = Path(path) if path is not None else DATA_DIR / "intermediate" / DEMOGRAPHICS_FILE
    if not path.exists():
        raise FileNotFoundError(path)
    return pd.read_csv(
        path, dtype={"fips": str, "state_fips": str, "county_fips": str}
    )
