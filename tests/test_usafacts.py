import pandas as pd
import pytest

from congregate.data import usafacts

RAW = """countyFIPS,County Name,State,StateFIPS,2020-03-01,2020-03-02,2020-03-03,2020-03-04
0,Statewide Unallocated,AL,1,0,1,2,2
1001,Autauga County ,AL,1,0,5,4,6
1003,Baldwin County,AL,1,1,3,9,8
6037,Los Angeles County,CA,6,10,10,10,10
6000,Grand Princess Cruise Ship,CA,6,1,2,3,4
"""


@pytest.fixture
def raw_file(tmp_path):
    path = tmp_path / "covid_confirmed_usafacts.csv"
    path.write_text(RAW)
    return path


@pytest.fixture
def long_df(raw_file):
    return usafacts.transform_usafacts_cases(raw_file)


def test_transform_to_long(long_df):
    assert list(long_df.columns) == ["fips", "county", "state_code", "date", "confirmed"]
    assert sorted(long_df.fips.unique()) == ["01001", "01003", "06037"]
    assert long_df.date.nunique() == 4
    assert long_df.date.dtype.kind == "M"
    # County names are stripped
    assert "Autauga County" in set(long_df.county)


def test_transform_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        usafacts.transform_usafacts_cases(tmp_path / "nope.csv")


def test_transform_missing_columns(tmp_path):
    path = tmp_path / "bad.csv"
    path.write_text("fips,2020-03-01\n1001,1\n")
    with pytest.raises(KeyError):
        usafacts.transform_usafacts_cases(path)


def test_peak_is_max_not_last(long_df):
    peaks = usafacts.peak_cases(long_df).set_index("fips")
    assert peaks.loc["01001", "peak_cases"] == 6
    assert peaks.loc["01003", "peak_cases"] == 9
    assert peaks.loc["01003", "peak_date"] == pd.Timestamp("2020-03-03")


def test_peak_date_is_first_time_reached(long_df):
    peaks = usafacts.peak_cases(long_df).set_index("fips")
    assert peaks.loc["06037", "peak_date"] == pd.Timestamp("2020-03-01")


def test_peak_window(long_df):
    peaks = usafacts.peak_cases(long_df, end="2020-03-02").set_index("fips")
    assert peaks.loc["01001", "peak_cases"] == 5
    assert peaks.loc["01003", "peak_cases"] == 3


def test_peak_empty_window(long_df):
    peaks = usafacts.peak_cases(long_df, start="2021-01-01")
    assert peaks.empty
    assert "peak_cases" in peaks.columns


def test_peak_window_reversed(long_df):
    with pytest.raises(ValueError):
        usafacts.peak_cases(long_df, start="2020-03-04", end="2020-03-01")


def test_new_case_peaks(long_df):
    out = usafacts.new_case_peaks(long_df, window=2).set_index("fips")
    # Baldwin: new cases -, 2, 6, 0 -> 2 day means 2, 4, 3
    assert out.loc["01003", "peak_new_cases_avg"] == pytest.approx(4.0)
    # Autauga's downward revision is clipped to zero: -, 5, 0, 2
    assert out.loc["01001", "peak_new_cases_avg"] == pytest.approx(5.0)
    assert out.loc["06037", "peak_new_cases_avg"] == pytest.approx(0.0)


def _series(dates, confirmed, fips="01001"):
    return pd.DataFrame(
        {
            "fips": fips,
            "county": "Autauga County",
            "state_code": "AL",
            "date": pd.to_datetime(dates),
            "confirmed": confirmed,
        }
    )


def test_new_case_peaks_ignores_starting_total():
    long_df = _series(
        ["2020-06-01", "2020-06-02", "2020-06-03", "2020-06-04"], [5000, 5010, 5020, 5030]
    )
    out = usafacts.new_case_peaks(long_df, window=7)
    assert out.peak_new_cases_avg.tolist() == pytest.approx([10.0])


def test_new_case_peaks_spreads_gaps_over_calendar_days():
    # 03-02 is missing: its cases are spread over the two days
    long_df = _series(["2020-03-01", "2020-03-03", "2020-03-04"], [0, 20, 21])
    out = usafacts.new_case_peaks(long_df, window=1)
    assert out.peak_new_cases_avg.tolist() == pytest.approx([10.0])


def test_new_case_peaks_window(long_df):
    out = usafacts.new_case_peaks(long_df, window=2, end="2020-03-02").set_index("fips")
    assert out.loc["01003", "peak_new_cases_avg"] == pytest.approx(2.0)


def test_case_summary_joins_both_metrics(long_df):
    out = usafacts.case_summary(long_df, window=2).set_index("fips")
    assert list(out.columns) == [
        "county",
        "state_code",
        "peak_cases",
        "peak_date",
        "peak_new_cases_avg",
    ]
    assert out.loc["01001", "peak_cases"] == 6
    assert out.loc["01001", "peak_new_cases_avg"] == pytest.approx(5.0)


def test_new_case_peaks_window_check(long_df):
    with pytest.raises(ValueError):
        usafacts.new_case_peaks(long_df, window=0)


def test_peaks_round_trip_through_csv(long_df, tmp_path):
    path = usafacts.write_peak_cases(usafacts.peak_cases(long_df), tmp_path / "p.csv")
    loaded = usafacts.load_peak_cases(path)
    assert loaded.fips.tolist() == ["01001", "01003", "06037"]


def test_download(monkeypatch, tmp_path):
    class FakeResponse:
        content = RAW.encode("utf-8")

        def raise_for_status(self):
            pass

    monkeypatch.setattr(usafacts.requests, "get", lambda url: FakeResponse())
    path = usafacts.download_usafacts_cases(tmp_path / "raw" / "cases.csv")
    assert path.read_text() == RAW
