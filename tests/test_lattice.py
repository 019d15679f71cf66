"""
Tests for the swaption lattice, its builder and table assembly.
"""

import pytest

from sabrcube.conversion import convert_table_to_lattice, convert_tables_to_lattice
from sabrcube.data.lattice import LatticeBuilder, QuotingConvention, SwaptionLattice
from sabrcube.data.quote_table import QuoteTable, TableConvention
from sabrcube.exceptions import InvalidConventionError, LatticeCollisionError, MissingCoverageError
from sabrcube.schedule import SchedulePrototype

from conftest import DISCOUNT_CURVE, FORWARD_CURVE, REFERENCE_DATE

SMILE = {
    (12, 60, 0): 0.0065,
    (12, 60, 50): 0.0068,
    (12, 60, -50): 0.0070,
    (24, 60, 0): 0.0066,
    (12, 120, 0): 0.0071,
    (24, 120, 100): 0.0075,
}


@pytest.fixture
def smile_lattice(make_lattice):
    return make_lattice(QuotingConvention.PAYER_VOL_NORMAL, SMILE)


class TestQuotingConvention:

    def test_flags(self):
        assert QuotingConvention.PAYER_PRICE.is_price
        assert QuotingConvention.RECEIVER_PRICE.is_price
        assert not QuotingConvention.PAYER_VOL_NORMAL.is_price
        assert QuotingConvention.PAYER_VOL_LOGNORMAL.is_payer
        assert not QuotingConvention.RECEIVER_VOL_NORMAL.is_payer
        assert QuotingConvention.PAYER_VOL_LOGNORMAL.is_lognormal


class TestSwaptionLattice:

    def test_metadata(self, smile_lattice, fix_prototype):
        assert smile_lattice.reference_date == REFERENCE_DATE
        assert smile_lattice.discount_curve_name == DISCOUNT_CURVE
        assert smile_lattice.forward_curve_name == FORWARD_CURVE
        assert smile_lattice.fix_schedule == fix_prototype
        assert smile_lattice.displacement == 0.0

    def test_value(self, smile_lattice):
        assert smile_lattice.value(12, 60, 50) == 0.0068
        assert smile_lattice.value(24, 120, 100) == 0.0075

    def test_missing_coverage(self, smile_lattice):
        with pytest.raises(MissingCoverageError) as exc_info:
            smile_lattice.value(24, 60, 50)
        assert exc_info.value.key == (24, 60, 50)
        assert smile_lattice.get(24, 60, 50) is None

    def test_queries(self, smile_lattice):
        assert smile_lattice.moneyness() == [-50, 0, 50, 100]
        assert smile_lattice.maturities() == [12, 24]
        assert smile_lattice.maturities(moneyness=100) == [24]
        assert smile_lattice.tenors() == [60, 120]
        assert smile_lattice.tenors(moneyness=0, maturity=24) == [60]
        assert smile_lattice.contains(12, 60, -50)
        assert not smile_lattice.contains(12, 60, 100)
        assert len(smile_lattice) == len(SMILE)

    def test_entries_sorted(self, smile_lattice):
        keys = [key for key, _ in smile_lattice.entries()]
        assert keys == sorted(SMILE)
        assert dict(smile_lattice.entries()) == SMILE

    def test_columns_read_only(self, smile_lattice):
        maturities, _, _, values = smile_lattice.arrays()
        with pytest.raises(ValueError):
            values[0] = 1.0
        assert maturities.dtype.kind == "i"

    def test_duplicate_key_rejected(self, fix_prototype, float_prototype):
        with pytest.raises(LatticeCollisionError):
            SwaptionLattice.from_arrays(
                QuotingConvention.PAYER_PRICE, REFERENCE_DATE, DISCOUNT_CURVE, FORWARD_CURVE,
                fix_prototype, float_prototype,
                maturities=[12, 12], tenors=[60, 60], moneyness=[0, 0], values=[1.0, 2.0],
            )

    def test_length_mismatch(self, fix_prototype, float_prototype):
        with pytest.raises(ValueError):
            SwaptionLattice.from_arrays(
                QuotingConvention.PAYER_PRICE, REFERENCE_DATE, DISCOUNT_CURVE, FORWARD_CURVE,
                fix_prototype, float_prototype,
                maturities=[12], tenors=[60, 120], moneyness=[0], values=[1.0],
            )

    def test_to_frame(self, smile_lattice):
        frame = smile_lattice.to_frame()
        assert list(frame.columns) == ["maturity", "tenor", "moneyness", "value"]
        assert len(frame) == len(SMILE)
        assert frame["value"].sum() == pytest.approx(sum(SMILE.values()))

    def test_convert_to_own_convention_is_identity(self, smile_lattice):
        assert smile_lattice.convert(QuotingConvention.PAYER_VOL_NORMAL) is smile_lattice

    def test_convert_without_model(self, smile_lattice):
        with pytest.raises(ValueError):
            smile_lattice.convert(QuotingConvention.PAYER_PRICE)


class TestAppend:

    def test_append_disjoint(self, smile_lattice, make_lattice):
        extra = make_lattice(QuotingConvention.PAYER_VOL_NORMAL, {(60, 60, 0): 0.0062})
        merged = smile_lattice.append(extra)

        assert len(merged) == len(SMILE) + 1
        assert merged.value(60, 60, 0) == 0.0062
        # inputs are untouched
        assert len(smile_lattice) == len(SMILE)

    def test_append_collision(self, smile_lattice, make_lattice):
        extra = make_lattice(QuotingConvention.PAYER_VOL_NORMAL, {(12, 60, 50): 0.0069})
        with pytest.raises(LatticeCollisionError) as exc_info:
            smile_lattice.append(extra)
        assert exc_info.value.key == (12, 60, 50)

    def test_append_metadata_mismatch(self, smile_lattice, float_prototype):
        other = SwaptionLattice.from_arrays(
            QuotingConvention.PAYER_VOL_NORMAL, REFERENCE_DATE, DISCOUNT_CURVE, FORWARD_CURVE,
            SchedulePrototype(frequency_months=6), float_prototype,
            maturities=[60], tenors=[60], moneyness=[0], values=[0.006],
        )
        with pytest.raises(ValueError):
            smile_lattice.append(other)

    def test_append_converts_other(self, make_lattice, market_model):
        payer_vols = make_lattice(QuotingConvention.PAYER_VOL_NORMAL, {(12, 60, 0): 0.0065})
        receiver_vols = make_lattice(QuotingConvention.RECEIVER_VOL_NORMAL, {(24, 60, 25): 0.0070})

        merged = payer_vols.append(receiver_vols, market_model)
        # receiver at +25bp is the payer at -25bp with the same strike and vol
        assert merged.value(24, 60, -25) == pytest.approx(0.0070, rel=1e-8)


class TestLatticeBuilder:

    def test_build(self, smile_lattice):
        builder = LatticeBuilder(QuotingConvention.PAYER_VOL_NORMAL, smile_lattice.metadata)
        for (maturity, tenor, moneyness), value in reversed(list(SMILE.items())):
            builder.add(maturity, tenor, moneyness, value)
        lattice = builder.build()

        assert len(builder) == len(SMILE)
        assert dict(lattice.entries()) == dict(smile_lattice.entries())

    def test_duplicate(self, smile_lattice):
        builder = LatticeBuilder(QuotingConvention.PAYER_PRICE, smile_lattice.metadata)
        builder.add(12, 60, 0, 0.01)
        with pytest.raises(LatticeCollisionError):
            builder.add(12, 60, 0, 0.02)


class TestTableAssembly:

    def test_round_trip(self, smile_lattice, fix_prototype, float_prototype):
        """Lattice -> tables per moneyness -> lattice reproduces every entry."""
        tables = smile_lattice.to_tables()
        assert sorted(tables) == smile_lattice.moneyness()

        rebuilt = convert_tables_to_lattice(
            tables, QuotingConvention.PAYER_VOL_NORMAL, REFERENCE_DATE,
            DISCOUNT_CURVE, FORWARD_CURVE, fix_prototype, float_prototype,
        )
        assert dict(rebuilt.entries()) == SMILE
        assert rebuilt.metadata == smile_lattice.metadata

    def test_single_table_is_atm(self, fix_prototype, float_prototype):
        table = QuoteTable("atm", TableConvention.MONTHS, [12, 24], [60, 60], [0.0065, 0.0066])
        lattice = convert_table_to_lattice(
            table, QuotingConvention.PAYER_VOL_NORMAL, REFERENCE_DATE,
            DISCOUNT_CURVE, FORWARD_CURVE, fix_prototype, float_prototype,
        )
        assert lattice.moneyness() == [0]
        assert lattice.value(24, 60, 0) == 0.0066

    def test_years_table_rejected(self, fix_prototype, float_prototype):
        table = QuoteTable("atm", TableConvention.YEARS, [1.0], [5.0], [0.0065])
        with pytest.raises(InvalidConventionError):
            convert_tables_to_lattice(
                {0: table}, QuotingConvention.PAYER_VOL_NORMAL, REFERENCE_DATE,
                DISCOUNT_CURVE, FORWARD_CURVE, fix_prototype, float_prototype,
            )

    def test_empty_tables(self, fix_prototype, float_prototype):
        lattice = convert_tables_to_lattice(
            {}, QuotingConvention.PAYER_PRICE, REFERENCE_DATE,
            DISCOUNT_CURVE, FORWARD_CURVE, fix_prototype, float_prototype,
        )
        assert len(lattice) == 0
        assert lattice.moneyness() == []
