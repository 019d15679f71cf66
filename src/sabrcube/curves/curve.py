"""
Discount and forward curves.

The DiscountCurve class provides:
- Discount factor P(0,t)
- Continuously compounded zero rate z(t)

The ForwardCurve class derives simple forward rates of a floating index
from its own projection (pseudo-discount) curve, so the forward and the
discount curve of a swap can differ.

Conventions:
    - Times are ACT/365 year fractions from the reference date
    - Zero rates are continuously compounded
    - Discount factor at t=0 is 1.0
"""

from datetime import date
from typing import Sequence, Union
import numpy as np

from .interpolation import ArrayLike, LogLinearInterpolator, create_interpolator


class DiscountCurve:
    """
    Named discount curve interpolated on zero rates.

    Attributes:
        name: Name under which the market model resolves the curve
        reference_date: Valuation date (time 0)
        interpolation_method: Name of the interpolation method
    """

    def __init__(
        self,
        name: str,
        reference_date: date,
        times: Sequence[float],
        discount_factors: Sequence[float],
        interpolation_method: str = "linear"
    ):
        times = np.asarray(times, dtype=float)
        discount_factors = np.asarray(discount_factors, dtype=float)
        if np.any(times <= 0):
            raise ValueError("Curve node times must be positive")
        if np.any(discount_factors <= 0):
            raise ValueError("Discount factors must be positive")

        self.name = name
        self.reference_date = reference_date
        self.interpolation_method = interpolation_method
        self._times = times
        self._zero_rates = -np.log(discount_factors) / times
        self._interpolator = create_interpolator(interpolation_method)
        self._on_discount_factors = isinstance(self._interpolator, LogLinearInterpolator)

        if self._on_discount_factors:
            # log-linear works on P(0,t) anchored at P(0,0) = 1
            self._interpolator.fit(np.concatenate([[0.0], times]), np.concatenate([[1.0], discount_factors]))
        elif len(times) == 1:
            # single node: flat zero curve
            self._interpolator.fit(np.array([times[0], times[0] + 1.0]), np.repeat(self._zero_rates, 2))
        else:
            self._interpolator.fit(times, self._zero_rates)

    def zero_rate(self, t: ArrayLike) -> ArrayLike:
        """Continuously compounded zero rate, flat before the first node."""
        if not self._on_discount_factors:
            return self._interpolator.interpolate(t)
        t_arr = np.maximum(np.asarray(t, dtype=float), 1e-8)
        zr = -np.log(self._interpolator.interpolate(t_arr)) / t_arr
        return float(zr) if np.ndim(zr) == 0 else zr

    def discount_factor(self, t: ArrayLike) -> ArrayLike:
        """
        Get discount factor P(0,t).

        Args:
            t: Year fraction(s) from the reference date

        Returns:
            Discount factor(s)
        """
        t_arr = np.asarray(t, dtype=float)
        df = np.exp(-self.zero_rate(np.maximum(t_arr, 0.0)) * t_arr)
        return float(df) if np.ndim(df) == 0 else df

    def __repr__(self) -> str:
        return (f"DiscountCurve(name={self.name!r}, reference_date={self.reference_date}, "
                f"nodes={len(self._times)}, method={self.interpolation_method})")


class ForwardCurve:
    """
    Forward curve of a floating index, derived from a projection curve.

    forward_rate(s, e) = (P_f(s) / P_f(e) - 1) / (e - s)
    """

    def __init__(self, name: str, projection_curve: DiscountCurve):
        self.name = name
        self.projection_curve = projection_curve

    @property
    def reference_date(self) -> date:
        return self.projection_curve.reference_date

    def forward_rate(self, start: ArrayLike, end: ArrayLike) -> ArrayLike:
        """
        Simple forward rate over [start, end].

        Args:
            start: Period start time(s)
            end: Period end time(s)

        Returns:
            Forward rate(s)
        """
        start = np.asarray(start, dtype=float)
        end = np.asarray(end, dtype=float)
        if np.any(end <= start):
            raise ValueError("end must be greater than start")
        df_start = self.projection_curve.discount_factor(start)
        df_end = self.projection_curve.discount_factor(end)
        fwd = (df_start / df_end - 1.0) / (end - start)
        return float(fwd) if np.ndim(fwd) == 0 else fwd

    def __repr__(self) -> str:
        return f"ForwardCurve(name={self.name!r}, projection={self.projection_curve.name!r})"


def create_flat_curve(
    name: str,
    reference_date: date,
    rate: float,
    max_tenor_years: float = 60.0
) -> DiscountCurve:
    """
    Create a flat discount curve.

    Args:
        name: Curve name
        reference_date: Valuation date
        rate: Flat continuously compounded rate
        max_tenor_years: Last node of the curve

    Returns:
        Flat curve
    """
    times = np.array([0.25, 0.5, 1, 2, 5, 10, 20, 30, max_tenor_years], dtype=float)
    times = np.unique(times[times <= max_tenor_years])
    return DiscountCurve(name, reference_date, times, np.exp(-rate * times))


def create_forward_curve(
    name: str,
    reference_date: date,
    rate: float,
    max_tenor_years: float = 60.0
) -> ForwardCurve:
    """Forward curve on a flat projection curve named after the index."""
    projection = create_flat_curve(f"{name}-projection", reference_date, rate, max_tenor_years)
    return ForwardCurve(name, projection)


__all__ = [
    "DiscountCurve",
    "ForwardCurve",
    "create_flat_curve",
    "create_forward_curve",
]
