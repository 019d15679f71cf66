"""
Swaption analytics on generated schedules.

A swaption is an option to enter into an interest rate swap.
- Payer swaption: right to pay fixed, receive floating
- Receiver swaption: right to receive fixed, pay floating

Physically settled pricing:
    V = A * Bachelier(S, K, T, sigma_N)

where:
    - A = sum_i delta_i * P_d(0, pay_i) over the fixed leg (annuity)
    - S = float leg PV / A (forward swap rate, projection and discounting
      on separate curves)
    - T = time to the first fixing of the fixed leg

Cash settled swaptions replace the annuity by the cash annuity C(S), see
`cash_function`, and are priced by replication in cash_settled.py.
"""

from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Tuple, Union

import numpy as np

from ..curves.curve import DiscountCurve, ForwardCurve
from ..schedule import Schedule, SchedulePrototype
from .base_models import bachelier_call, bachelier_put

if TYPE_CHECKING:
    from ..market_model import MarketModel

ArrayLike = Union[float, np.ndarray]

# Swap rates closer to zero than this use the zero-rate limit of the cash annuity
CASH_RATE_EPS = 1e-10


def swap_annuity(fix_schedule: Schedule, discount_curve: DiscountCurve) -> float:
    """Annuity (PV01 per unit rate) of the fixed leg."""
    dfs = discount_curve.discount_factor(fix_schedule.payment_times)
    return float(np.sum(fix_schedule.period_lengths * dfs))


def float_leg_value(
    float_schedule: Schedule,
    forward_curve: ForwardCurve,
    discount_curve: DiscountCurve
) -> float:
    """PV of the floating leg: sum_j (P_f(s_j) / P_f(e_j) - 1) * P_d(pay_j)."""
    projection = forward_curve.projection_curve
    growth = (projection.discount_factor(float_schedule.period_start_times)
              / projection.discount_factor(float_schedule.period_end_times))
    dfs = discount_curve.discount_factor(float_schedule.payment_times)
    return float(np.sum((growth - 1.0) * dfs))


def forward_swap_rate(
    fix_schedule: Schedule,
    float_schedule: Schedule,
    forward_curve: ForwardCurve,
    discount_curve: DiscountCurve
) -> Tuple[float, float]:
    """
    Compute forward swap rate and annuity.

    Returns:
        Tuple of (forward_swap_rate, annuity)
    """
    annuity = swap_annuity(fix_schedule, discount_curve)
    if annuity <= 0:
        raise ValueError(f"Non-positive annuity {annuity} for schedule starting {fix_schedule.period_starts[0]}")
    return float_leg_value(float_schedule, forward_curve, discount_curve) / annuity, annuity


def cash_annuity(swap_rate: ArrayLike, number_of_periods: int, period_length: float) -> ArrayLike:
    """
    Cash annuity (1 - (1 + delta * S)^(-N)) / S, equal to N * delta at S = 0.

    Vectorised over `swap_rate`.
    """
    s = np.asarray(swap_rate, dtype=float)
    near_zero = np.abs(s) < CASH_RATE_EPS
    safe_s = np.where(near_zero, 1.0, s)
    value = np.where(
        near_zero,
        number_of_periods * period_length,
        (1.0 - (1.0 + period_length * safe_s) ** (-number_of_periods)) / safe_s,
    )
    return float(value) if np.ndim(value) == 0 else value


def cash_function(swap_rate: ArrayLike, schedule: Schedule) -> ArrayLike:
    """Cash annuity of `schedule` using its average period length."""
    return cash_annuity(swap_rate, schedule.number_of_periods, schedule.average_period_length)


@dataclass(frozen=True)
class SwapUnderlying:
    """
    The forward starting swap behind a (maturity, tenor) lattice point.

    Attributes:
        maturity: Option maturity in months
        tenor: Swap tenor in months
        fix_schedule: Fixed leg schedule
        float_schedule: Floating leg schedule
        forward: Forward swap rate
        annuity: Physical annuity at the reference date
        expiry: Time to the first fixing (option expiry)
    """
    maturity: int
    tenor: int
    fix_schedule: Schedule
    float_schedule: Schedule
    forward: float
    annuity: float
    expiry: float

    @property
    def cash_annuity(self) -> float:
        return cash_function(self.forward, self.fix_schedule)


def build_underlying(
    model: "MarketModel",
    reference_date: date,
    maturity: int,
    tenor: int,
    fix_prototype: SchedulePrototype,
    float_prototype: SchedulePrototype,
    discount_curve_name: str,
    forward_curve_name: str
) -> SwapUnderlying:
    """Generate the schedules of a lattice point and value its swap on the model's curves."""
    fix_schedule = fix_prototype.generate_schedule(reference_date, maturity, tenor)
    float_schedule = float_prototype.generate_schedule(reference_date, maturity, tenor)
    discount_curve = model.get_discount_curve(discount_curve_name)
    forward_curve = model.get_forward_curve(forward_curve_name)

    forward, annuity = forward_swap_rate(fix_schedule, float_schedule, forward_curve, discount_curve)
    return SwapUnderlying(
        maturity=maturity,
        tenor=tenor,
        fix_schedule=fix_schedule,
        float_schedule=float_schedule,
        forward=forward,
        annuity=annuity,
        expiry=fix_schedule.fixing_time(0),
    )


def physical_swaption_value(
    forward: float,
    strike: ArrayLike,
    expiry: float,
    annuity: float,
    normal_vol: ArrayLike,
    is_payer: bool = True
) -> ArrayLike:
    """Physically settled swaption: annuity times the Bachelier call (payer) or put (receiver)."""
    pricer = bachelier_call if is_payer else bachelier_put
    return pricer(forward, strike, expiry, normal_vol, annuity)


@dataclass(frozen=True)
class PhysicalSwaption:
    """
    Physically settled European swaption priced with a SABR volatility cube.

    Attributes:
        maturity: Option maturity in months
        tenor: Swap tenor in months
        fix_schedule: Fixed leg schedule
        float_schedule: Floating leg schedule
        strike: Fixed rate
        discount_curve_name: Discounting curve in the market model
        forward_curve_name: Projection curve in the market model
        cube_name: Volatility cube in the market model
        is_payer: Payer (True) or receiver (False)
    """
    maturity: int
    tenor: int
    fix_schedule: Schedule
    float_schedule: Schedule
    strike: float
    discount_curve_name: str
    forward_curve_name: str
    cube_name: str
    is_payer: bool = True

    def value(self, model: "MarketModel") -> float:
        discount_curve = model.get_discount_curve(self.discount_curve_name)
        forward_curve = model.get_forward_curve(self.forward_curve_name)
        cube = model.get_volatility_cube(self.cube_name)

        forward, annuity = forward_swap_rate(self.fix_schedule, self.float_schedule, forward_curve, discount_curve)
        expiry = self.fix_schedule.fixing_time(0)
        sigma = cube.normal_volatility(self.maturity, self.tenor, forward, self.strike, expiry)
        return float(physical_swaption_value(forward, self.strike, expiry, annuity, sigma, self.is_payer))


__all__ = [
    "swap_annuity",
    "float_leg_value",
    "forward_swap_rate",
    "cash_annuity",
    "cash_function",
    "SwapUnderlying",
    "build_underlying",
    "physical_swaption_value",
    "PhysicalSwaption",
]
