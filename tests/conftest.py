"""Shared synthetic county tables.

Nothing here touches the network or the real data directory.
"""

import numpy as np
import pandas as pd
import pytest

N_COUNTIES = 40


def _fips(i: int) -> str:
    return f"{1 + i % 4:02d}{1 + 2 * i:03d}"


@pytest.fixture
def cases() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "fips": [_fips(i) for i in range(N_COUNTIES)],
            "county": [f"County {i}" for i in range(N_COUNTIES)],
            "state_code": ["AL", "AK", "AZ", "AR"] * (N_COUNTIES // 4),
            "peak_cases": [100 * (i + 1) for i in range(N_COUNTIES)],
            "peak_date": pd.to_datetime("2020-12-01"),
        }
    )


@pytest.fixture
def religion_table() -> pd.DataFrame:
    rng = np.random.default_rng(0)
    return pd.DataFrame(
        {
            "fips": [_fips(i) for i in range(N_COUNTIES)],
            "rel_pop2010": 10_000.0,
            "rel_total_congregations": rng.integers(5, 50, N_COUNTIES).astype(float),
            "rel_total_adherents": [3000.0 + 50 * i for i in range(N_COUNTIES)],
            "rel_evangelical_adherents": [1000.0 + 10 * i for i in range(N_COUNTIES)],
            "rel_catholic_adherents": rng.integers(0, 2000, N_COUNTIES).astype(float),
        }
    )


@pytest.fixture
def demographics() -> pd.DataFrame:
    black = [50.0 * i for i in range(N_COUNTIES)]
    return pd.DataFrame(
        {
            "fips": [_fips(i) for i in range(N_COUNTIES)],
            "state_fips": [_fips(i)[:2] for i in range(N_COUNTIES)],
            "county_fips": [_fips(i)[2:] for i in range(N_COUNTIES)],
            "acs_pop_total": 20_000.0,
            "acs_race_total": 20_000.0,
            "acs_race_white": [20_000.0 - b - 500 for b in black],
            "acs_race_black": black,
            "acs_race_asian": 500.0,
        }
    )


@pytest.fixture
def land_area() -> pd.DataFrame:
    return pd.DataFrame(
        {
            "fips": [_fips(i) for i in range(N_COUNTIES)],
            "county_name": [f"County {i}" for i in range(N_COUNTIES)],
            "land_area_sqmi": [500.0 + i for i in range(N_COUNTIES)],
        }
    )


@pytest.fixture
def county_geojson() -> dict:
    features = []
    for i in range(N_COUNTIES):
        x, y = -90.0 + i * 0.1, 35.0
        features.append(
            {
                "type": "Feature",
                "id": _fips(i),
                "properties": {},
                "geometry": {
                    "type": "Polygon",
                    "coordinates": [
                        [[x, y], [x + 0.1, y], [x + 0.1, y + 0.1], [x, y + 0.1], [x, y]]
                    ],
                },
            }
        )
    return {"type": "FeatureCollection", "features": features}
