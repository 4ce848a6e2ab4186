"""Build the county join key shared by every source.

Each source identifies a county differently:

| Source             | Columns                   | Example         |
| ---                | ---                       | ---             |
| USAFacts           | countyFIPS (int)          | 1001            |
| Census API         | state, county (str)       | "01", "001"     |
| Religion census    | FIPS or STCODE + CNTYCODE | 1001 / 1, 1     |
| Gazetteer          | GEOID (str)               | "01001"         |

All of them are normalised to ``fips``: a 5 character, zero padded string,
2 digits of state followed by 3 digits of county.
"""

import logging
from typing import Any, Optional

import pandas as pd

__all__ = [
    "FIPS_COLUMN",
    "add_fips_column",
    "make_fips",
    "normalize_fips",
    "parse_county",
    "parse_state",
]

FIPS_COLUMN = "fips"

logger = logging.getLogger(__name__)


def _as_int(value: Any, what: str) -> Optional[int]:
    """Coerce a code to int; None for missing values."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        if not value.isdigit():
            raise ValueError(f"{what} code {value!r} is not numeric")
        return int(value)
    if float(value) != int(value):
        raise ValueError(f"{what} code {value!r} is not an integer")
    return int(value)


def make_fips(state: Any, county: Any) -> str:
    """Build a 5 character key from a state and a county code.

    Args:
        state: state FIPS code, 1..99 (int, float or digit string)
        county: county FIPS code within the state, 1..999

    Returns:
        (str) e.g. "01001"
    """
    s = _as_int(state, "state")
    c = _as_int(county, "county")
    if s is None or c is None:
        raise ValueError(f"missing state or county code: {state!r}, {county!r}")
    if not 1 <= s <= 99:
        raise ValueError(f"state code {s} out of range")
    if not 1 <= c <= 999:
        raise ValueError(f"county code {c} out of range")
    return f"{s:02d}{c:03d}"


def normalize_fips(value: Any) -> Optional[str]:
    """Normalise a full county code to the 5 character key.

    USAFacts stores "unallocated" rows under code 0, so zero is treated as
    missing along with None/NaN/blank. Returns None for those.
    """
    code = _as_int(value, "county FIPS")
    if code is None or code == 0:
        return None
    if code > 99999:
        raise ValueError(f"county FIPS {value!r} has more than 5 digits")
    return make_fips(code // 1000, code % 1000)


def _require_fips(fips: str) -> str:
    key = normalize_fips(fips)
    if key is None:
        raise ValueError(f"{fips!r} is not a county code")
    return key


def parse_state(fips: str) -> str:
    """State part (first two digits) of a key."""
    return _require_fips(fips)[:2]


def parse_county(fips: str) -> str:
    """County part (last three digits) of a key."""
    return _require_fips(fips)[2:]


def add_fips_column(
    df: pd.DataFrame,
    code_col: Optional[str] = None,
    state_col: Optional[str] = None,
    county_col: Optional[str] = None,
) -> pd.DataFrame:
    """Return a copy of ``df`` with a ``fips`` key column.

    Pass either ``code_col`` (a full county code) or both ``state_col`` and
    ``county_col``. Rows whose key can't be built are dropped.
    """
    if (code_col is not None) == (state_col is not None or county_col is not None):
        raise ValueError("give either code_col or state_col and county_col")
    if code_col is None and (state_col is None or county_col is None):
        raise ValueError("state_col and county_col must be given together")

    def _safe_full(v: Any) -> Optional[str]:
        try:
            return normalize_fips(v)
        except ValueError:
            return None

    def _safe_pair(row: pd.Series) -> Optional[str]:
        try:
            return make_fips(row[state_col], row[county_col])
        except ValueError:
            return None

    out = df.copy()
    if code_col is not None:
        keys = out[code_col].map(_safe_full)
    elif out.empty:
        keys = pd.Series([], index=out.index, dtype=object)
    else:
        keys = out.apply(_safe_pair, axis=1)

    out[FIPS_COLUMN] = keys
    missing = out[FIPS_COLUMN].isna()
    if missing.any():
        logger.warning(f"Dropped {int(missing.sum())} rows without a county key")
    return out.loc[~missing].reset_index(drop=True)
