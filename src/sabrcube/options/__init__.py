"""
Options package - option formulas and swaption pricers.

Provides:
- Bachelier and shifted Black formulas with implied volatility inversion
- Physically settled swaption analytics
- Annuity mappings and the replication pricer for cash settled swaptions
"""

from .base_models import (
    bachelier_call,
    bachelier_put,
    black76_call,
    black76_put,
    implied_vol_bachelier,
    implied_vol_shifted_black,
    shifted_black_call,
    shifted_black_put,
)
from .swaption import (
    PhysicalSwaption,
    SwapUnderlying,
    build_underlying,
    cash_annuity,
    cash_function,
    forward_swap_rate,
    physical_swaption_value,
    swap_annuity,
)
from .annuity_mapping import AnnuityMapping, AnnuityMappingType, create_annuity_mapping
from .cash_settled import CashSettledSwaption, ReplicationGrid, ReplicationSettings

__all__ = [
    "bachelier_call",
    "bachelier_put",
    "black76_call",
    "black76_put",
    "shifted_black_call",
    "shifted_black_put",
    "implied_vol_bachelier",
    "implied_vol_shifted_black",
    "swap_annuity",
    "forward_swap_rate",
    "cash_annuity",
    "cash_function",
    "SwapUnderlying",
    "build_underlying",
    "physical_swaption_value",
    "PhysicalSwaption",
    "AnnuityMapping",
    "AnnuityMappingType",
    "create_annuity_mapping",
    "ReplicationSettings",
    "ReplicationGrid",
    "CashSettledSwaption",
]
