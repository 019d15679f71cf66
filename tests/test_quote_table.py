"""
Tests for quote tables.
"""

import numpy as np
import pandas as pd
import pytest

from sabrcube.data.quote_table import QuoteTable, TableConvention
from sabrcube.exceptions import MissingCoverageError


@pytest.fixture
def atm_table():
    """Sparse ATM normal vol grid: 24M x 120M is not quoted."""
    return QuoteTable(
        "ATM normal vols",
        TableConvention.MONTHS,
        maturities=[12, 12, 24, 60],
        tenors=[60, 120, 60, 120],
        values=[0.0065, 0.0070, 0.0068, 0.0],
    )


class TestQuoteTable:

    def test_value(self, atm_table):
        assert atm_table.value(12, 60) == 0.0065
        assert atm_table.value(24, 60) == 0.0068

    def test_stored_zero_is_not_missing(self, atm_table):
        assert atm_table.value(60, 120) == 0.0
        assert atm_table.contains(60, 120)

    def test_missing_cell_raises(self, atm_table):
        with pytest.raises(MissingCoverageError) as exc_info:
            atm_table.value(24, 120)
        assert exc_info.value.key == (24, 120)
        assert "ATM normal vols" in str(exc_info.value)

    def test_missing_coverage_is_lookup_error(self, atm_table):
        with pytest.raises(LookupError):
            atm_table.value(1, 1)

    def test_get_default(self, atm_table):
        assert atm_table.get(24, 120) is None
        assert atm_table.get(24, 120, -1.0) == -1.0

    def test_axes(self, atm_table):
        assert atm_table.maturities() == [12, 24, 60]
        assert atm_table.tenors() == [60, 120]
        assert atm_table.tenors_for_maturity(12) == [60, 120]
        assert atm_table.maturities_for_tenor(60) == [12, 24]
        assert len(atm_table) == 4

    def test_iteration_sorted(self, atm_table):
        keys = [key for key, _ in atm_table]
        assert keys == sorted(keys)

    def test_duplicate_key(self):
        with pytest.raises(ValueError):
            QuoteTable("dup", TableConvention.MONTHS, [12, 12], [60, 60], [0.1, 0.2])

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            QuoteTable("bad", TableConvention.MONTHS, [12], [60, 120], [0.1])

    def test_entries_read_only(self, atm_table):
        with pytest.raises(TypeError):
            atm_table.entries[(1, 1)] = 0.0

    def test_immutable(self, atm_table):
        with pytest.raises(AttributeError):
            atm_table.name = "other"


class TestConventionConversion:

    def test_months_to_years(self, atm_table):
        years = atm_table.to_convention(TableConvention.YEARS)
        assert years.convention == TableConvention.YEARS
        assert years.value(1.0, 5.0) == 0.0065
        assert years.value(2.0, 5.0) == 0.0068
        # original untouched
        assert atm_table.convention == TableConvention.MONTHS

    def test_years_to_months_rounds(self):
        table = QuoteTable("y", TableConvention.YEARS, [0.5, 1.0], [2.0, 10.0], [1.0, 2.0])
        months = table.to_convention(TableConvention.MONTHS)
        assert months.value(6, 24) == 1.0
        assert months.value(12, 120) == 2.0

    def test_same_convention(self, atm_table):
        same = atm_table.to_convention(TableConvention.MONTHS)
        assert dict(same.entries) == dict(atm_table.entries)


class TestFrames:

    def test_to_frame_pivot(self, atm_table):
        frame = atm_table.to_frame()
        assert list(frame.index) == [12, 24, 60]
        assert list(frame.columns) == [60, 120]
        assert np.isnan(frame.loc[24, 120])
        assert frame.loc[12, 120] == 0.0070

    def test_frame_round_trip(self, atm_table):
        back = QuoteTable.from_frame("copy", atm_table.to_frame())
        assert dict(back.entries) == dict(atm_table.entries)

    def test_from_frame_skips_nan(self):
        frame = pd.DataFrame([[0.1, np.nan], [np.nan, 0.4]], index=[12, 24], columns=[60, 120])
        table = QuoteTable.from_frame("sparse", frame)
        assert len(table) == 2
        assert not table.contains(12, 120)

    def test_csv_round_trip(self, atm_table, tmp_path):
        path = tmp_path / "atm.csv"
        atm_table.to_csv(path)
        loaded = QuoteTable.read_csv(path, name="ATM normal vols")

        assert loaded.name == "ATM normal vols"
        assert loaded.convention == TableConvention.MONTHS
        assert loaded.maturities() == atm_table.maturities()
        for key, value in atm_table:
            assert loaded.value(*key) == pytest.approx(value, abs=1e-15)

    def test_csv_default_name(self, atm_table, tmp_path):
        path = tmp_path / "payer_cash.csv"
        atm_table.to_csv(path)
        assert QuoteTable.read_csv(path).name == "payer_cash"
