"""
Shared fixtures: a 2017-08-30 EUR style market with an annual 30/360 fixed
leg, a semi-annual ACT/360 floating leg and flat curves.
"""

from datetime import date

import pytest

from sabrcube.conventions import DayCount
from sabrcube.curves import create_flat_curve, create_forward_curve
from sabrcube.data.lattice import SwaptionLattice
from sabrcube.market_model import MarketModel
from sabrcube.schedule import SchedulePrototype
from sabrcube.vol.cube import SabrTenorParameters, VolatilityCube

REFERENCE_DATE = date(2017, 8, 30)
DISCOUNT_CURVE = "EUR-OIS"
FORWARD_CURVE = "EUR-6M"
CUBE_NAME = "EUR-SABR"


@pytest.fixture(scope="session")
def reference_date():
    return REFERENCE_DATE


@pytest.fixture(scope="session")
def fix_prototype():
    return SchedulePrototype(frequency_months=12, day_count=DayCount.THIRTY_360)


@pytest.fixture(scope="session")
def float_prototype():
    return SchedulePrototype(frequency_months=6, day_count=DayCount.ACT_360)


@pytest.fixture(scope="session")
def market_model():
    """OIS discounting at 0.5%, 6M index projected at 1.2%."""
    return MarketModel([
        create_flat_curve(DISCOUNT_CURVE, REFERENCE_DATE, 0.005),
        create_forward_curve(FORWARD_CURVE, REFERENCE_DATE, 0.012),
    ])


@pytest.fixture(scope="session")
def tenor_parameters():
    return SabrTenorParameters.from_nodes(
        maturities=[12, 24],
        base_volatilities=[0.012, 0.011],
        volvols=[0.35, 0.30],
        rhos=[-0.25, -0.30],
        displacement=0.25,
        beta=0.5,
        correlation_decay=0.045,
        ibor_ois_decorrelation=1.2,
    )


@pytest.fixture(scope="session")
def sabr_cube(tenor_parameters):
    return VolatilityCube(CUBE_NAME, REFERENCE_DATE, {12: tenor_parameters, 60: tenor_parameters, 120: tenor_parameters})


@pytest.fixture(scope="session")
def model_with_cube(market_model, sabr_cube):
    return market_model.with_volatility_cube(sabr_cube)


@pytest.fixture(scope="session")
def make_lattice(fix_prototype, float_prototype):
    """Build a lattice on the shared market from {(maturity, tenor, moneyness): value}."""
    def make(convention, entries, displacement=0.0):
        keys = list(entries)
        return SwaptionLattice.from_arrays(
            convention,
            REFERENCE_DATE,
            DISCOUNT_CURVE,
            FORWARD_CURVE,
            fix_prototype,
            float_prototype,
            maturities=[k[0] for k in keys],
            tenors=[k[1] for k in keys],
            moneyness=[k[2] for k in keys],
            values=[entries[k] for k in keys],
            displacement=displacement,
        )
    return make
