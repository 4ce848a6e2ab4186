import pandas as pd
import pytest

from congregate.data import census


class FakeACS:
    """Stands in for census.Census(...).acs5."""

    def __init__(self):
        self.calls = []

    def state_county(self, fields, state_fips, county_fips):
        self.calls.append(list(fields))
        rows = [
            {"state": "01", "county": "001"},
            {"state": "06", "county": "037"},
        ]
        for row in rows:
            for i, field in enumerate(fields):
                row[field] = 1000.0 * (i + 1)
        # Sentinel for "not available"
        rows[1][fields[-1]] = -666666666.0
        return rows


@pytest.fixture
def fake_api(monkeypatch):
    api = FakeACS()
    monkeypatch.setattr(census, "API_SESSION", api)
    return api


def test_check_for_api_key(monkeypatch):
    monkeypatch.delenv("CENSUS_API_KEY", raising=False)
    with pytest.raises(KeyError):
        census.check_for_api_key()
    monkeypatch.setenv("CENSUS_API_KEY", "abc")
    census.check_for_api_key()


def test_client_needs_key(monkeypatch):
    monkeypatch.setattr(census, "API_SESSION", None)
    monkeypatch.delenv("CENSUS_API_KEY", raising=False)
    with pytest.raises(KeyError):
        census.get_dem_pop()


def test_mark_missings_as_na():
    rows = [{"state": "01", "county": "001", "a": -999.0, "b": None, "c": 4.0}]
    out = census._mark_missings_as_na(rows)
    assert out[0]["a"] is pd.NA
    assert out[0]["b"] is pd.NA
    assert out[0]["c"] == 4.0
    # Input rows are left alone
    assert rows[0]["a"] == -999.0


def test_get_dem_pop(fake_api):
    rows = census.get_dem_pop()
    assert fake_api.calls == [["B01003_001E"]]
    assert rows[0] == {"state_fips": "01", "county_fips": "001", "acs_pop_total": 1000.0}
    assert rows[1]["acs_pop_total"] is pd.NA


def test_get_dem_race_names(fake_api):
    rows = census.get_dem_race()
    assert set(rows[0]) == {"state_fips", "county_fips"} | set(census.RACE_FIELDS.values())


def test_fetch_and_load_demographics(fake_api, tmp_path):
    path = tmp_path / "acs.csv"
    df = census.fetch_demographics(path=path)
    assert df.fips.tolist() == ["01001", "06037"]
    assert "acs_pop_total" in df.columns and "acs_race_black" in df.columns

    loaded = census.load_demographics(path)
    assert loaded.fips.tolist() == ["01001", "06037"]
    assert loaded.state_fips.tolist() == ["01", "06"]
