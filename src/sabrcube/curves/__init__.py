"""
Curves package - discount and forward curves consumed by the pricers.

Provides:
- DiscountCurve: Named curve with discount factors and zero rates
- ForwardCurve: Index forward rates from a projection curve
- Interpolators used by the curves
"""

from .curve import DiscountCurve, ForwardCurve, create_flat_curve, create_forward_curve
from .interpolation import (
    Interpolator,
    LinearInterpolator,
    LogLinearInterpolator,
    create_interpolator,
)

__all__ = [
    "DiscountCurve",
    "ForwardCurve",
    "create_flat_curve",
    "create_forward_curve",
    "Interpolator",
    "LinearInterpolator",
    "LogLinearInterpolator",
    "create_interpolator",
]
