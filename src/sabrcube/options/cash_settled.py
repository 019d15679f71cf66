"""
Cash settled swaptions priced by static replication.

With g(s) = alpha(s) C(s) (annuity mapping times cash annuity) the payer
payoff g(S) (S - K)^+ is replicated by physical payer swaptions:

    V = A0 * [ g(K) V(K) + int_K^inf w(k) V(k) dk ]
    w(k) = g''(k) (k - K) + 2 g'(k)

and the receiver by physical receivers:

    V = A0 * [ g(K) V(K) + int_-inf^K w(k) V(k) dk ]
    w(k) = g''(k) (K - k) - 2 g'(k)

where V(k) is the unit-annuity Bachelier call (put) at the smile volatility
of strike k. The integral is truncated at the replication bound b; beyond b
the weight is frozen at w(b), which leaves

    1/2 * w(b) * E[((S - b)^+)^2]     (payer; mirrored for receivers)

evaluated under Bachelier at the volatility of b.

A displaced forward never falls below -d, so receiver grids stop just above
that floor and a receiver struck at or below it is worthless.
"""

from dataclasses import dataclass
from typing import Callable, Optional, TYPE_CHECKING

import numpy as np
from scipy.integrate import simpson, trapezoid
from scipy.stats import norm

from ..schedule import Schedule
from .annuity_mapping import AnnuityMapping, AnnuityMappingType, DERIVATIVE_STEP, create_annuity_mapping
from .base_models import bachelier_call, bachelier_put
from .swaption import cash_function, forward_swap_rate

if TYPE_CHECKING:
    from ..market_model import MarketModel

VolatilityFunction = Callable[[np.ndarray], np.ndarray]

# Distance kept between a receiver grid and the displacement floor
FLOOR_OFFSET = 1e-4


@dataclass
class ReplicationSettings:
    """
    Replication grid settings.

    Attributes:
        use_as_offset: Bounds are offsets from the forward (True) or absolute rates
        lower_bound: Lower end of the receiver integration range
        upper_bound: Upper end of the payer integration range
        number_of_points: Grid points of the integration
        use_linear_interpolation: Trapezoid rule (True) or Simpson's rule
    """
    use_as_offset: bool = True
    lower_bound: float = -0.15
    upper_bound: float = 0.15
    number_of_points: int = 50
    use_linear_interpolation: bool = True

    def __post_init__(self):
        if self.number_of_points < 2:
            raise ValueError(f"number_of_points must be at least 2, got {self.number_of_points}")
        if self.lower_bound >= self.upper_bound:
            raise ValueError(
                f"lower_bound ({self.lower_bound}) must be below upper_bound ({self.upper_bound})"
            )

    def bounds(self, forward: float):
        """Absolute (lower, upper) integration bounds."""
        if self.use_as_offset:
            return forward + self.lower_bound, forward + self.upper_bound
        return self.lower_bound, self.upper_bound


def _second_moment_beyond(forward: float, bound: float, std: float, upper: bool) -> float:
    """E[((S - b)^+)^2] (upper) or E[((b - S)^+)^2] for S ~ N(forward, std^2)."""
    m = (forward - bound) if upper else (bound - forward)
    if std <= 0:
        return max(m, 0.0) ** 2
    d = m / std
    return float((m * m + std * std) * norm.cdf(d) + m * std * norm.pdf(d))


class ReplicationGrid:
    """
    The volatility independent part of a replication: strikes, weights and
    the boundary weight. `price` only needs the smile.

    Attributes:
        forward: Forward swap rate
        strike: Option strike
        expiry: Time to expiry
        annuity: Physical annuity A0
        is_payer: Payer (True) or receiver (False)
        strikes: Integration grid
        weights: w(k) on the grid
        bound: Strike from which the boundary term is taken
        floor: Lowest rate the displaced forward can reach (-displacement)
    """

    def __init__(
        self,
        forward: float,
        strike: float,
        expiry: float,
        annuity: float,
        is_payer: bool,
        mapping: AnnuityMapping,
        fix_schedule: Schedule,
        settings: ReplicationSettings,
        displacement: float
    ):
        self.forward = forward
        self.strike = strike
        self.expiry = expiry
        self.annuity = annuity
        self.is_payer = is_payer
        self.use_linear_interpolation = settings.use_linear_interpolation
        self.floor = -displacement
        self.worthless = not is_payer and strike <= self.floor

        def g(s):
            return mapping(s) * cash_function(s, fix_schedule)

        h = DERIVATIVE_STEP

        def weight(k):
            k = np.asarray(k, dtype=float)
            g1 = (g(k + h) - g(k - h)) / (2 * h)
            g2 = (g(k + h) - 2 * g(k) + g(k - h)) / (h * h)
            if is_payer:
                return g2 * (k - strike) + 2 * g1
            return g2 * (strike - k) - 2 * g1

        lower, upper = settings.bounds(forward)
        n = settings.number_of_points
        if is_payer:
            self.bound = max(upper, strike)
            self.strikes = np.linspace(strike, self.bound, n) if strike < upper else np.array([strike])
        else:
            lower = max(lower, self.floor + FLOOR_OFFSET)
            self.bound = min(lower, strike)
            self.strikes = np.linspace(self.bound, strike, n) if strike > lower else np.array([strike])

        self.strike_factor = float(g(strike))
        self.weights = np.asarray(weight(self.strikes), dtype=float)
        self.bound_weight = float(weight(self.bound))
        self._evaluation_strikes = np.concatenate([[strike], self.strikes, [self.bound]])

    def _integrate(self, values: np.ndarray) -> float:
        if len(self.strikes) < 2:
            return 0.0
        if self.use_linear_interpolation:
            return float(trapezoid(values, x=self.strikes))
        return float(simpson(values, x=self.strikes))

    def price(self, volatility_function: VolatilityFunction) -> float:
        """
        Replicated cash settled price for a smile.

        Args:
            volatility_function: Normal volatility as a function of strike
                (vectorised)

        Returns:
            Price
        """
        if self.worthless:
            return 0.0
        vols = np.asarray(volatility_function(self._evaluation_strikes), dtype=float)
        if vols.shape != self._evaluation_strikes.shape:
            vols = np.broadcast_to(vols, self._evaluation_strikes.shape)
        strike_vol, grid_vols, bound_vol = vols[0], vols[1:-1], vols[-1]

        pricer = bachelier_call if self.is_payer else bachelier_put
        strike_value = pricer(self.forward, self.strike, self.expiry, strike_vol)
        grid_values = pricer(self.forward, self.strikes, self.expiry, grid_vols)

        integral = self._integrate(self.weights * grid_values)
        std = float(bound_vol) * np.sqrt(max(self.expiry, 0.0))
        tail = 0.5 * self.bound_weight * _second_moment_beyond(self.forward, self.bound, std, self.is_payer)

        return float(self.annuity * (self.strike_factor * strike_value + integral + tail))


@dataclass(frozen=True)
class CashSettledSwaption:
    """
    Cash settled European swaption priced by replication on a SABR cube.

    Attributes:
        maturity: Option maturity in months
        tenor: Swap tenor in months
        fix_schedule: Fixed leg schedule (drives the cash annuity)
        float_schedule: Floating leg schedule
        strike: Fixed rate
        discount_curve_name: Discounting curve in the market model
        forward_curve_name: Projection curve in the market model
        cube_name: Volatility cube in the market model
        mapping_type: Annuity mapping
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
    mapping_type: AnnuityMappingType = AnnuityMappingType.MULTI_PITERBARG
    is_payer: bool = True

    def prepare(
        self,
        model: "MarketModel",
        settings: ReplicationSettings,
        correlation_decay: Optional[float] = None,
        ibor_ois_decorrelation: Optional[float] = None,
        displacement: Optional[float] = None
    ) -> ReplicationGrid:
        """
        Build the replication grid.

        The mapping parameters and the displacement default to the cube's
        parameters for this tenor; a calibration passes them explicitly since
        the cube does not exist yet.
        """
        discount_curve = model.get_discount_curve(self.discount_curve_name)
        forward_curve = model.get_forward_curve(self.forward_curve_name)

        if None in (correlation_decay, ibor_ois_decorrelation, displacement):
            params = model.get_volatility_cube(self.cube_name).tenor_parameters(self.tenor)
            if correlation_decay is None:
                correlation_decay = params.correlation_decay
            if ibor_ois_decorrelation is None:
                ibor_ois_decorrelation = params.ibor_ois_decorrelation
            if displacement is None:
                displacement = params.displacement

        forward, annuity = forward_swap_rate(self.fix_schedule, self.float_schedule, forward_curve, discount_curve)
        mapping = create_annuity_mapping(
            self.mapping_type, self.fix_schedule, self.float_schedule, forward_curve, discount_curve,
            forward, annuity, correlation_decay, ibor_ois_decorrelation,
        )
        return ReplicationGrid(
            forward, self.strike, self.fix_schedule.fixing_time(0), annuity,
            self.is_payer, mapping, self.fix_schedule, settings, displacement,
        )

    def value(self, model: "MarketModel", settings: Optional[ReplicationSettings] = None) -> float:
        """
        Price with the smile of the model's volatility cube.

        Raises:
            MissingCubeTenorError: If the cube has no parameters for the tenor
        """
        settings = settings or ReplicationSettings()
        cube = model.get_volatility_cube(self.cube_name)
        grid = self.prepare(model, settings)
        return grid.price(
            lambda k: cube.normal_volatility(self.maturity, self.tenor, grid.forward, k, grid.expiry)
        )


__all__ = [
    "ReplicationSettings",
    "ReplicationGrid",
    "CashSettledSwaption",
]
