"""
SabrCube: SABR Volatility Cube Calibration for Cash Settled Swaptions

A modular library for:
- Storing sparse swaption quotes by (maturity, tenor, moneyness)
- Converting between price and normal volatility quotes, and transporting
  cash settled smiles onto physical ATM levels
- Pricing cash settled swaptions by static replication with annuity mappings
- Calibrating a per-tenor SABR cube to cash and physical swaption prices

Maturities and tenors are in months, moneyness in basis points.
"""

__version__ = "0.1.0"

# Core modules
from .conventions import BusinessDayConvention, DayCount, year_fraction
from .exceptions import (
    ImpliedVolatilityInversionError,
    InvalidConventionError,
    LatticeCollisionError,
    MissingCoverageError,
    MissingCubeTenorError,
    MissingCurveError,
    SabrCubeError,
    SolverFailureError,
)
from .schedule import Schedule, SchedulePrototype

# Curves and market model
from .curves import DiscountCurve, ForwardCurve, create_flat_curve, create_forward_curve
from .market_model import MarketModel

# Market data
from .data import LatticeBuilder, LatticeMetadata, QuoteTable, QuotingConvention, SwaptionLattice, TableConvention

# Pricers
from .options import (
    AnnuityMappingType,
    CashSettledSwaption,
    PhysicalSwaption,
    ReplicationSettings,
    cash_function,
    implied_vol_bachelier,
)

# Volatility (SABR)
from .vol import CalibrationState, SabrCubeCalibrator, SabrTenorParameters, VolatilityCube, hagan_normal_vol

# Conversions
from .conversion import (
    convert_cash_lattice_to_normal_volatility,
    convert_lattice,
    convert_normal_volatility_to_cash_price,
    convert_table_to_lattice,
    convert_tables_to_lattice,
    shift_cash_to_physical_smile,
)

__all__ = [
    # Core
    "DayCount",
    "BusinessDayConvention",
    "year_fraction",
    "Schedule",
    "SchedulePrototype",
    # Errors
    "SabrCubeError",
    "InvalidConventionError",
    "MissingCoverageError",
    "MissingCubeTenorError",
    "MissingCurveError",
    "LatticeCollisionError",
    "ImpliedVolatilityInversionError",
    "SolverFailureError",
    # Curves
    "DiscountCurve",
    "ForwardCurve",
    "create_flat_curve",
    "create_forward_curve",
    "MarketModel",
    # Data
    "QuoteTable",
    "TableConvention",
    "QuotingConvention",
    "LatticeMetadata",
    "SwaptionLattice",
    "LatticeBuilder",
    # Pricers
    "AnnuityMappingType",
    "CashSettledSwaption",
    "PhysicalSwaption",
    "ReplicationSettings",
    "cash_function",
    "implied_vol_bachelier",
    # Vol
    "hagan_normal_vol",
    "SabrTenorParameters",
    "VolatilityCube",
    "CalibrationState",
    "SabrCubeCalibrator",
    # Conversions
    "convert_table_to_lattice",
    "convert_tables_to_lattice",
    "convert_cash_lattice_to_normal_volatility",
    "convert_normal_volatility_to_cash_price",
    "shift_cash_to_physical_smile",
    "convert_lattice",
]
