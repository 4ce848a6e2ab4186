import numpy as np
import pandas as pd
import pytest

from congregate.abt.build_abt import join_all_data
from congregate.abt.features import add_rates, safe_ratio


@pytest.fixture
def abt(cases, religion_table, demographics, land_area):
    return join_all_data(cases, religion_table, demographics, land_area)


class TestJoin:
    def test_one_row_per_county(self, abt, cases):
        assert len(abt) == len(cases)
        assert abt.fips.is_unique
        assert abt.fips.is_monotonic_increasing

    def test_columns_from_every_source(self, abt):
        for col in ["peak_cases", "rel_total_adherents", "acs_pop_total", "land_area_sqmi"]:
            assert col in abt.columns
        assert not abt.filter(regex="_dropMe$").columns.tolist()

    def test_inner_join_drops_unmatched(self, cases, religion_table, demographics):
        abt = join_all_data(cases, religion_table.iloc[:10], demographics)
        assert len(abt) == 10

    def test_land_area_optional(self, cases, religion_table, demographics):
        abt = join_all_data(cases, religion_table, demographics)
        assert "land_area_sqmi" not in abt.columns

    def test_requires_key(self, cases, religion_table, demographics):
        with pytest.raises(KeyError):
            join_all_data(cases.drop(columns=["fips"]), religion_table, demographics)

    def test_rejects_duplicated_counties(self, cases, religion_table, demographics):
        doubled = pd.concat([religion_table, religion_table.iloc[[0]]])
        with pytest.raises(ValueError):
            join_all_data(cases, doubled, demographics)


class TestRates:
    def test_safe_ratio_zero_and_missing(self):
        out = safe_ratio(pd.Series([1.0, 2.0, 3.0]), pd.Series([2.0, 0.0, np.nan]), 10)
        assert out[0] == pytest.approx(5.0)
        assert np.isnan(out[1]) and np.isnan(out[2])

    def test_per_capita_columns(self, abt):
        out = add_rates(abt)
        row = out.iloc[0]
        assert row.cases_per_100k == pytest.approx(row.peak_cases / 20_000 * 100_000)
        assert row.adherents_per_1k == pytest.approx(row.rel_total_adherents / 10)
        assert row.evangelical_adherents_per_1k == pytest.approx(
            row.rel_evangelical_adherents / 10
        )
        assert row.congregations_per_10k == pytest.approx(
            row.rel_total_congregations / 2
        )
        assert row.congregations_per_sqmi == pytest.approx(
            row.rel_total_congregations / row.land_area_sqmi
        )
        assert row.pop_density == pytest.approx(20_000 / row.land_area_sqmi)

    def test_race_shares(self, abt):
        out = add_rates(abt)
        shares = out[["pct_white", "pct_black", "pct_asian"]].sum(axis=1)
        assert shares.tolist() == pytest.approx([100.0] * len(out))
        assert set(out.majority_race) == {"white"}

    def test_zero_population_gives_nan(self, abt):
        abt.loc[0, "acs_pop_total"] = 0
        out = add_rates(abt)
        assert np.isnan(out.loc[0, "cases_per_100k"])
        assert np.isfinite(out.cases_per_100k.iloc[1:]).all()

    def test_new_case_rate(self, abt):
        abt["peak_new_cases_avg"] = 30.0
        out = add_rates(abt)
        assert out.new_cases_per_100k.tolist() == pytest.approx([150.0] * len(out))

    def test_missing_inputs_skip_rates(self, abt):
        out = add_rates(abt.drop(columns=["land_area_sqmi"]))
        assert "pop_density" not in out.columns
        assert "new_cases_per_100k" not in out.columns
        assert "cases_per_100k" in out.columns

    def test_input_untouched(self, abt):
        add_rates(abt)
        assert "cases_per_100k" not in abt.columns
