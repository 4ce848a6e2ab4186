#!/usr/bin/env python3
import io
import json
import logging
import zipfile
from pathlib import Path
from typing import Dict, Optional

import pandas as pd
import requests

from congregate.data import DATA_DIR
from congregate.data.fips import add_fips_column

"""
Overview:

County geography used to normalise by area and to draw maps.

- Census Gazetteer county file: land area (square miles) per county
  url: https://www.census.gov/geographies/reference-files/time-series/geo/gazetteer-files.html
- plotly's county GeoJSON, whose feature ids are the 5 digit fips

"""

GAZETTEER_URL = "https://www2.census.gov/geo/docs/maps-data/data/gazetteer/2019_Gazetteer/2019_Gaz_counties_national.zip"
GAZETTEER_FILE = "gazetteer_counties.txt"

GEOJSON_URL = "https://raw.githubusercontent.com/plotly/datasets/master/geojson-counties-fips.json"
GEOJSON_FILE = "geojson-counties-fips.json"

logger = logging.getLogger(__name__)


# ------- Functions ------- #


def download_gazetteer(path: Optional[Path] = None) -> Path:
    """Download the zipped Gazetteer county file and unpack the table."""
    path = Path(path) if path is not None else DATA_DIR / "raw" / GAZETTEER_FILE
    logger.info("Downloading Census Gazetteer counties")

    r = requests.get(GAZETTEER_URL)
    r.raise_for_status()

    with zipfile.ZipFile(io.BytesIO(r.content)) as archive:
        members = [m for m in archive.namelist() if m.endswith(".txt")]
        if not members:
            raise ValueError("Gazetteer archive has no .txt member")
        text = archive.read(members[0]).decode("latin-1")

    path.parent.mkdir(exist_ok=True, parents=True)
    path.write_text(text)
    logger.info(f"Wrote Gazetteer counties to {path}")
    return path


def load_land_area(path: Optional[Path] = None) -> pd.DataFrame:
    """Read the Gazetteer file.

    Returns:
        (DataFrame) fips | county_name | land_area_sqmi
    """
    path = Path(path) if path is not None else DATA_DIR / "raw" / GAZETTEER_FILE
    if not path.exists():
        raise FileNotFoundError(path)

    gaz = pd.read_csv(path, sep="\t", dtype={"GEOID": str})
    # The last header carries trailing whitespace in the published files
    gaz.columns = [c.strip() for c in gaz.columns]

    gaz = add_fips_column(gaz, code_col="GEOID")
    gaz = gaz.rename(columns={"NAME": "county_name", "ALAND_SQMI": "land_area_sqmi"})
    gaz["land_area_sqmi"] = pd.to_numeric(gaz["land_area_sqmi"], errors="coerce")

    logger.info(f"Land area for {len(gaz)} counties")
    return gaz.loc[:, ["fips", "county_name", "land_area_sqmi"]]


def get_county_geojson(path: Optional[Path] = None) -> Dict:
    """County polygons keyed by fips, downloaded once and cached."""
    path = Path(path) if path is not None else DATA_DIR / "raw" / GEOJSON_FILE
    if not path.exists():
        logger.info(f"{path} does not exist, downloading county GeoJSON")
        r = requests.get(GEOJSON_URL)
        r.raise_for_status()
        path.parent.mkdir(exist_ok=True, parents=True)
        path.write_text(r.content.decode("utf-8"))

    with path.open() as f:
        return json.load(f)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    download_gazetteer()
    get_county_geojson()
