"""
SABR volatility cube.

The cube holds, per swap tenor, SABR parameters at a set of option
maturities. Between maturities alpha, nu and rho are interpolated linearly;
outside the calibrated range they are held flat. Structural parameters
(displacement, beta and the annuity mapping's correlation parameters) are
fixed per tenor.

Axes are in months, like the swaption lattice.
"""

from dataclasses import dataclass
from datetime import date
from types import MappingProxyType
from typing import Dict, List, Mapping, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..exceptions import MissingCubeTenorError
from .sabr import SabrParams, hagan_normal_vol

ArrayLike = Union[float, np.ndarray]


@dataclass(frozen=True)
class SabrTenorParameters:
    """
    SABR parameters of one swap tenor.

    Attributes:
        maturities: Option maturities (months) of the calibrated nodes, ascending
        base_volatilities: SABR alpha at each node
        volvols: SABR nu at each node
        rhos: SABR rho at each node
        displacement: Shift of forward and strike
        beta: CEV exponent
        correlation_decay: Mean reversion used by the multi-curve annuity mapping
        ibor_ois_decorrelation: Forward/discount loading ratio of the same mapping
    """
    maturities: Tuple[int, ...]
    base_volatilities: Tuple[float, ...]
    volvols: Tuple[float, ...]
    rhos: Tuple[float, ...]
    displacement: float
    beta: float
    correlation_decay: float
    ibor_ois_decorrelation: float

    def __post_init__(self):
        n = len(self.maturities)
        if n == 0:
            raise ValueError("At least one maturity node is required")
        if not (len(self.base_volatilities) == len(self.volvols) == len(self.rhos) == n):
            raise ValueError("Parameter node lists must match the maturities")
        if any(b <= a for a, b in zip(self.maturities, self.maturities[1:])):
            raise ValueError(f"Maturities must be strictly increasing: {self.maturities}")

    @classmethod
    def from_nodes(
        cls,
        maturities: Sequence[int],
        base_volatilities: Sequence[float],
        volvols: Sequence[float],
        rhos: Sequence[float],
        displacement: float,
        beta: float,
        correlation_decay: float,
        ibor_ois_decorrelation: float
    ) -> "SabrTenorParameters":
        order = np.argsort(maturities)

        def ordered(values):
            return tuple(float(v) for v in np.asarray(values, dtype=float)[order])

        return cls(
            maturities=tuple(int(m) for m in np.asarray(maturities)[order]),
            base_volatilities=ordered(base_volatilities),
            volvols=ordered(volvols),
            rhos=ordered(rhos),
            displacement=displacement,
            beta=beta,
            correlation_decay=correlation_decay,
            ibor_ois_decorrelation=ibor_ois_decorrelation,
        )

    def parameters_at(self, maturity: float) -> SabrParams:
        """SABR parameters at `maturity` months (linear, flat extrapolation)."""
        x = np.asarray(self.maturities, dtype=float)
        return SabrParams(
            alpha=float(np.interp(maturity, x, self.base_volatilities)),
            beta=self.beta,
            rho=float(np.interp(maturity, x, self.rhos)),
            nu=float(np.interp(maturity, x, self.volvols)),
            displacement=self.displacement,
        )


class VolatilityCube:
    """
    Named, immutable SABR volatility cube.

    Example:
        cube = VolatilityCube("EUR-SABR", ref_date, {60: params_5y})
        sigma = cube.normal_volatility(12, 60, forward, strikes, expiry)
    """

    def __init__(self, name: str, reference_date: date, parameters: Mapping[int, SabrTenorParameters]):
        self.name = name
        self.reference_date = reference_date
        self._parameters: Dict[int, SabrTenorParameters] = dict(sorted(parameters.items()))

    @property
    def parameters(self) -> Mapping[int, SabrTenorParameters]:
        return MappingProxyType(self._parameters)

    def tenors(self) -> List[int]:
        return list(self._parameters)

    def tenor_parameters(self, tenor: int) -> SabrTenorParameters:
        """
        Raises:
            MissingCubeTenorError: If the tenor was not calibrated
        """
        params = self._parameters.get(tenor)
        if params is None:
            raise MissingCubeTenorError(tenor, self.name)
        return params

    def sabr_parameters(self, maturity: float, tenor: int) -> SabrParams:
        return self.tenor_parameters(tenor).parameters_at(maturity)

    def normal_volatility(
        self,
        maturity: float,
        tenor: int,
        forward: float,
        strike: ArrayLike,
        expiry: float
    ) -> ArrayLike:
        """
        Normal implied volatility from the cube.

        Args:
            maturity: Option maturity (months), selects the SABR parameters
            tenor: Swap tenor (months)
            forward: Forward swap rate
            strike: Strike(s)
            expiry: Time to expiry (years) used in the SABR expansion

        Returns:
            Normal volatility (same shape as strike)
        """
        p = self.sabr_parameters(maturity, tenor)
        return hagan_normal_vol(forward, strike, expiry, p.alpha, p.beta, p.rho, p.nu, p.displacement)

    def parameters_frame(self) -> pd.DataFrame:
        """One row per (tenor, maturity) node."""
        rows = []
        for tenor, params in self._parameters.items():
            for i, maturity in enumerate(params.maturities):
                rows.append({
                    "tenor": tenor,
                    "maturity": maturity,
                    "base_volatility": params.base_volatilities[i],
                    "volvol": params.volvols[i],
                    "rho": params.rhos[i],
                    "displacement": params.displacement,
                    "beta": params.beta,
                    "correlation_decay": params.correlation_decay,
                    "ibor_ois_decorrelation": params.ibor_ois_decorrelation,
                })
        return pd.DataFrame(rows)

    def __repr__(self) -> str:
        return f"VolatilityCube(name={self.name!r}, reference_date={self.reference_date}, tenors={self.tenors()})"


__all__ = ["SabrTenorParameters", "VolatilityCube"]
