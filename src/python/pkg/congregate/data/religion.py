"""Load the 2010 U.S. Religion Census county file.

Source: Religious Congregations and Membership Study, 2010 (County File),
Association of Religion Data Archives (https://www.thearda.com). The archive
requires a manual download; place the Stata (.DTA) or CSV export in
``data/raw``.

Each tradition family carries a congregation count (``*CNG``) and an adherent
count (``*ADH``):

| Prefix | Family                |
| ---    | ---                   |
| TOT    | all groups            |
| EVAN   | evangelical protestant|
| BPRT   | black protestant      |
| MPRT   | mainline protestant   |
| CATH   | catholic              |
| ORTH   | orthodox              |
| OTH    | other                 |

Output table format:

 | fips | rel_pop2010 | rel_<family>_congregations | rel_<family>_adherents |
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Union

import pandas as pd

from congregate.data import DATA_DIR
from congregate.data.fips import add_fips_column

__all__ = ["FAMILIES", "load_religion_census", "religion_columns"]

RAW_FILES = ["rcms2010_county.dta", "rcms2010_county.csv"]

FAMILIES: Dict[str, str] = {
    "TOT": "total",
    "EVAN": "evangelical",
    "BPRT": "black_protestant",
    "MPRT": "mainline",
    "CATH": "catholic",
    "ORTH": "orthodox",
    "OTH": "other",
}

logger = logging.getLogger(__name__)


def religion_columns() -> Dict[str, str]:
    """Map raw census columns to output names."""
    columns = {"POP2010": "rel_pop2010"}
    for prefix, family in FAMILIES.items():
        columns[f"{prefix}CNG"] = f"rel_{family}_congregations"
        columns[f"{prefix}ADH"] = f"rel_{family}_adherents"
    return columns


def _find_raw_file() -> Path:
    for name in RAW_FILES:
        candidate = DATA_DIR / "raw" / name
        if candidate.exists():
            return candidate
    raise FileNotFoundError(
        f"Religion census county file not found; download it from "
        f"https://www.thearda.com and save it as {DATA_DIR / 'raw' / RAW_FILES[0]}"
    )


def _read(path: Path) -> pd.DataFrame:
    if path.suffix.lower() == ".dta":
        return pd.read_stata(path, convert_categoricals=False)
    return pd.read_csv(path)


def load_religion_census(path: Optional[Union[str, Path]] = None) -> pd.DataFrame:
    """Read the county file and return one row per county.

    Args:
        path (optional str or Path): file to read, defaults to the first
            of ``RAW_FILES`` found in ``data/raw``

    Returns:
        (DataFrame) religion census counts keyed by ``fips``
    """
    path = Path(path) if path is not None else _find_raw_file()
    if not path.exists():
        raise FileNotFoundError(path)

    logger.info(f"Reading religion census from {path}")
    raw = _read(path)
    raw.columns = [str(c).upper() for c in raw.columns]

    if "FIPS" in raw.columns:
        raw = add_fips_column(raw, code_col="FIPS")
    elif {"STCODE", "CNTYCODE"} <= set(raw.columns):
        raw = add_fips_column(raw, state_col="STCODE", county_col="CNTYCODE")
    else:
        raise KeyError(f"{path.name} has neither FIPS nor STCODE/CNTYCODE")

    columns = religion_columns()
    for required in ("TOTCNG", "TOTADH", "POP2010"):
        if required not in raw.columns:
            raise KeyError(f"{path.name} is missing required column {required}")

    absent = [c for c in columns if c not in raw.columns]
    if absent:
        logger.warning(f"Skipping columns absent from {path.name}: {absent}")
    present = {k: v for k, v in columns.items() if k in raw.columns}

    out = raw[["fips"] + list(present)].rename(columns=present)
    counts = [v for v in present.values() if v != "rel_pop2010"]
    # Blank counts mean the group reported no congregations in the county
    out[counts] = out[counts].apply(pd.to_numeric, errors="coerce").fillna(0)
    out["rel_pop2010"] = pd.to_numeric(out["rel_pop2010"], errors="coerce")

    dupes = out.fips.duplicated()
    if dupes.any():
        logger.warning(f"Dropping {int(dupes.sum())} duplicated counties")
        out = out.loc[~dupes]

    logger.info(f"Religion census: {len(out)} counties")
    return out.reset_index(drop=True)
