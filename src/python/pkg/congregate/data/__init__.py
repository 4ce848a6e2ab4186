"""Data management."""

import logging
import os
import pathlib

# placing this first to avoid circular imports
DATA_DIR = pathlib.Path(
    os.environ.get(
        "CONGREGATE_DATA_DIR", pathlib.Path(__file__).resolve().parents[5] / "data"
    )
)

from congregate.data import census, geography, usafacts  # noqa: F401, E402

logger = logging.getLogger(__name__)


def run_pipeline() -> None:
    """Download every fetchable source and write the intermediate tables.

    The religion census is not fetched: ARDA requires a manual download, so the
    county file has to be placed in ``data/raw`` by hand.
    """
    usafacts.download_usafacts_cases()
    cases = usafacts.transform_usafacts_cases()
    usafacts.write_peak_cases(usafacts.case_summary(cases))

    census.fetch_demographics()

    geography.download_gazetteer()
    geography.get_county_geojson()
    logger.info("Pipeline complete")
