"""
Annuity mapping functions for cash settled swaptions.

Under the annuity measure the cash settled payoff C(S) (S - K)^+ paid at the
settlement date Tp has value

    V = A0 * E^A[ C(S) (S - K)^+ P(T, Tp) / A(T) ]
      = A0 * E^A[ alpha(S) C(S) (S - K)^+ ]

with the annuity mapping alpha(s) = E^A[ P(T, Tp) / A(T) | S(T) = s ].
Every mapping here satisfies alpha(F) = P_d(0, Tp) / A0.

Mappings:
- BASIC_PITERBARG: alpha(s) proportional to 1 / C(s), which makes
  alpha * C constant
- SIMPLIFIED_LINEAR: first order expansion of the basic mapping at F
- MULTI_PITERBARG: one factor Gaussian model for the curve moves, with
  separate loadings for the forward and the discount curve

References:
- Piterbarg, V. (2006). "Markovian projection for volatility calibration"
- Andersen, L. & Piterbarg, V. (2010). "Interest Rate Modeling", Vol. III
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Union

import numpy as np

from ..curves.curve import DiscountCurve, ForwardCurve
from ..schedule import Schedule
from .swaption import cash_function

ArrayLike = Union[float, np.ndarray]

# Step for the finite difference derivatives in swap rate
DERIVATIVE_STEP = 1e-4


class AnnuityMappingType(Enum):
    BASIC_PITERBARG = "BASIC_PITERBARG"
    SIMPLIFIED_LINEAR = "SIMPLIFIED_LINEAR"
    MULTI_PITERBARG = "MULTI_PITERBARG"


class AnnuityMapping(ABC):
    """
    Vectorised annuity mapping alpha(s).

    Attributes:
        forward: Forward swap rate F
        level: alpha(F) = P_d(0, Tp) / A0
    """

    def __init__(self, forward: float, level: float):
        self.forward = forward
        self.level = level

    @abstractmethod
    def __call__(self, s: ArrayLike) -> ArrayLike:
        """alpha(s)."""

    def first_derivative(self, s: ArrayLike, h: float = DERIVATIVE_STEP) -> ArrayLike:
        s = np.asarray(s, dtype=float)
        return (self(s + h) - self(s - h)) / (2 * h)

    def second_derivative(self, s: ArrayLike, h: float = DERIVATIVE_STEP) -> ArrayLike:
        s = np.asarray(s, dtype=float)
        return (self(s + h) - 2 * self(s) + self(s - h)) / (h * h)


class BasicPiterbargMapping(AnnuityMapping):
    """alpha(s) = level * C(F) / C(s)."""

    def __init__(self, forward: float, level: float, fix_schedule: Schedule):
        super().__init__(forward, level)
        self.fix_schedule = fix_schedule
        self._cash_at_forward = cash_function(forward, fix_schedule)

    def __call__(self, s: ArrayLike) -> ArrayLike:
        return self.level * self._cash_at_forward / cash_function(s, self.fix_schedule)


class SimplifiedLinearMapping(AnnuityMapping):
    """alpha(s) = level + slope * (s - F), slope taken from the basic mapping at F."""

    def __init__(self, forward: float, level: float, fix_schedule: Schedule):
        super().__init__(forward, level)
        self.slope = float(BasicPiterbargMapping(forward, level, fix_schedule).first_derivative(forward))

    def __call__(self, s: ArrayLike) -> ArrayLike:
        value = self.level + self.slope * (np.asarray(s, dtype=float) - self.forward)
        return float(value) if np.ndim(value) == 0 else value


class MultiPiterbargMapping(AnnuityMapping):
    """
    Mapping from a one factor model of the curves at expiry T.

    Conditional on the factor x, forward curve discount factors move as
        P_f(T, t; x) = P_f(0, t) / P_f(0, T) * exp(-x B(t - T))
    and discount curve factors as
        P_d(T, t; x) = P_d(0, t) / P_d(0, T) * exp(-(x / d) B(t - T))
    with B(tau) = (1 - exp(-kappa tau)) / kappa, kappa the correlation decay
    and d the ibor/ois decorrelation. The swap rate S(x) is linearised around
    x = 0 to map s back to x, and

        alpha(s) = level * r(x(s)) / r(0),   r(x) = P_d(T, Tp; x) / A(x)
    """

    def __init__(
        self,
        forward: float,
        level: float,
        fix_schedule: Schedule,
        float_schedule: Schedule,
        forward_curve: ForwardCurve,
        discount_curve: DiscountCurve,
        correlation_decay: float,
        ibor_ois_decorrelation: float
    ):
        super().__init__(forward, level)
        if ibor_ois_decorrelation == 0:
            raise ValueError("ibor_ois_decorrelation must be non-zero")
        self.correlation_decay = correlation_decay
        self.ibor_ois_decorrelation = ibor_ois_decorrelation

        expiry = max(fix_schedule.fixing_time(0), 0.0)
        projection = forward_curve.projection_curve
        pd_expiry = discount_curve.discount_factor(expiry)
        pf_expiry = projection.discount_factor(expiry)

        settlement = fix_schedule.period_start_time(0)
        self._settle_df = discount_curve.discount_factor(settlement) / pd_expiry
        self._settle_b = self._loading(settlement - expiry)

        fix_pay = fix_schedule.payment_times
        self._fix_accruals = fix_schedule.period_lengths
        self._fix_df = discount_curve.discount_factor(fix_pay) / pd_expiry
        self._fix_b = self._loading(fix_pay - expiry)

        flt_pay = float_schedule.payment_times
        flt_start = float_schedule.period_start_times
        flt_end = float_schedule.period_end_times
        self._flt_df = discount_curve.discount_factor(flt_pay) / pd_expiry
        self._flt_b = self._loading(flt_pay - expiry)
        self._start_df = projection.discount_factor(flt_start) / pf_expiry
        self._start_b = self._loading(flt_start - expiry)
        self._end_df = projection.discount_factor(flt_end) / pf_expiry
        self._end_b = self._loading(flt_end - expiry)

        h = DERIVATIVE_STEP
        self._swap_rate_slope = float((self._swap_rate(h) - self._swap_rate(-h)) / (2 * h))
        if self._swap_rate_slope == 0:
            raise ValueError("Swap rate is insensitive to the curve factor")
        self._ratio_at_forward = float(self._ratio(0.0))

    def _loading(self, tau: ArrayLike) -> ArrayLike:
        tau = np.maximum(np.asarray(tau, dtype=float), 0.0)
        kappa = self.correlation_decay
        if abs(kappa) < 1e-12:
            return tau
        return (1.0 - np.exp(-kappa * tau)) / kappa

    def _discount_shift(self, x: np.ndarray, loading: ArrayLike) -> np.ndarray:
        return np.exp(-np.multiply.outer(x / self.ibor_ois_decorrelation, loading))

    def _annuity(self, x: np.ndarray) -> np.ndarray:
        dfs = self._fix_df * self._discount_shift(x, self._fix_b)
        return dfs @ self._fix_accruals

    def _swap_rate(self, x: ArrayLike) -> np.ndarray:
        x = np.asarray(x, dtype=float)
        start = self._start_df * np.exp(-np.multiply.outer(x, self._start_b))
        end = self._end_df * np.exp(-np.multiply.outer(x, self._end_b))
        pay = self._flt_df * self._discount_shift(x, self._flt_b)
        float_leg = np.sum((start / end - 1.0) * pay, axis=-1)
        return float_leg / self._annuity(x)

    def _ratio(self, x: ArrayLike) -> np.ndarray:
        x = np.asarray(x, dtype=float)
        settle = self._settle_df * np.exp(-(x / self.ibor_ois_decorrelation) * self._settle_b)
        return settle / self._annuity(x)

    def factor(self, s: ArrayLike) -> ArrayLike:
        """Curve factor x(s) implied by swap rate s (linearised)."""
        return (np.asarray(s, dtype=float) - self.forward) / self._swap_rate_slope

    def __call__(self, s: ArrayLike) -> ArrayLike:
        value = self.level * self._ratio(self.factor(s)) / self._ratio_at_forward
        return float(value) if np.ndim(value) == 0 else value


def create_annuity_mapping(
    mapping_type: AnnuityMappingType,
    fix_schedule: Schedule,
    float_schedule: Schedule,
    forward_curve: ForwardCurve,
    discount_curve: DiscountCurve,
    forward: float,
    annuity: float,
    correlation_decay: float = 0.0,
    ibor_ois_decorrelation: float = 1.0
) -> AnnuityMapping:
    """
    Factory function to create an annuity mapping.

    Args:
        mapping_type: Which mapping to build
        fix_schedule: Fixed leg schedule (settlement is its first period start)
        float_schedule: Floating leg schedule (multi-curve mapping only)
        forward_curve: Projection curve (multi-curve mapping only)
        discount_curve: Discounting curve
        forward: Forward swap rate
        annuity: Physical annuity A0
        correlation_decay: Mean reversion of the curve factor
        ibor_ois_decorrelation: Ratio of forward to discount curve loadings

    Returns:
        AnnuityMapping instance
    """
    settlement = fix_schedule.period_start_time(0)
    level = discount_curve.discount_factor(settlement) / annuity

    if mapping_type == AnnuityMappingType.BASIC_PITERBARG:
        return BasicPiterbargMapping(forward, level, fix_schedule)
    elif mapping_type == AnnuityMappingType.SIMPLIFIED_LINEAR:
        return SimplifiedLinearMapping(forward, level, fix_schedule)
    elif mapping_type == AnnuityMappingType.MULTI_PITERBARG:
        return MultiPiterbargMapping(
            forward, level, fix_schedule, float_schedule, forward_curve, discount_curve,
            correlation_decay, ibor_ois_decorrelation,
        )
    raise ValueError(f"Unknown annuity mapping type: {mapping_type}")


__all__ = [
    "AnnuityMappingType",
    "AnnuityMapping",
    "BasicPiterbargMapping",
    "SimplifiedLinearMapping",
    "MultiPiterbargMapping",
    "create_annuity_mapping",
]
