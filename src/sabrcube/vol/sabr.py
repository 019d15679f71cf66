"""
SABR stochastic volatility model.

Implements the displaced SABR model for swap rates:

    dF = alpha_t (F + d)^beta dW
    dalpha = nu alpha_t dZ,   dW dZ = rho dt

and its normal (Bachelier) implied volatility from the Hagan et al.
expansion. The normal volatility is what the lattice and the replication
pricer consume.

References:
- Hagan, P.S. et al. (2002). "Managing Smile Risk." Wilmott Magazine.
- Hagan, P.S. et al. (2014). "Arbitrage-Free SABR." Wilmott Magazine.
"""

from dataclasses import dataclass
from typing import Dict, Union

import numpy as np

ArrayLike = Union[float, np.ndarray]

# |F - K| below which the ATM limit of the formula is used
ATM_TOLERANCE = 1e-10


@dataclass(frozen=True)
class SabrParams:
    """
    SABR model parameters.

    Attributes:
        alpha: Initial volatility (base volatility)
        beta: CEV exponent (0 = normal, 1 = lognormal, typically fixed)
        rho: Correlation between forward and vol (-1 < rho < 1)
        nu: Volatility of volatility (vol-of-vol)
        displacement: Shift applied to forward and strike
    """
    alpha: float
    beta: float
    rho: float
    nu: float
    displacement: float = 0.0

    def __post_init__(self):
        """Validate parameters."""
        if not -1 < self.rho < 1:
            raise ValueError(f"rho must be in (-1, 1), got {self.rho}")
        if self.nu < 0:
            raise ValueError(f"nu must be non-negative, got {self.nu}")
        if not 0 <= self.beta <= 1:
            raise ValueError(f"beta must be in [0, 1], got {self.beta}")
        if self.alpha <= 0:
            raise ValueError(f"alpha must be positive, got {self.alpha}")

    def to_dict(self) -> Dict[str, float]:
        return {
            "alpha": self.alpha,
            "beta": self.beta,
            "rho": self.rho,
            "nu": self.nu,
            "displacement": self.displacement,
        }

    def normal_vol(self, F: float, K: ArrayLike, T: float) -> ArrayLike:
        return hagan_normal_vol(F, K, T, self.alpha, self.beta, self.rho, self.nu, self.displacement)


def hagan_normal_vol(
    F: float,
    K: ArrayLike,
    T: float,
    alpha: float,
    beta: float,
    rho: float,
    nu: float,
    displacement: float = 0.0
) -> ArrayLike:
    """
    SABR normal (Bachelier) implied volatility, Hagan expansion.

    sigma_N(K) = alpha (F - K) / int_K^F (x + d)^-beta dx * zeta / x(zeta)
                 * [1 + (-beta (2 - beta) alpha^2 / (24 f^(2 - 2 beta))
                         + rho alpha nu beta / (4 f^(1 - beta))
                         + (2 - 3 rho^2) nu^2 / 24) T]

    with f = sqrt((F + d)(K + d)) and zeta = nu / alpha (F - K) / f^beta.

    Args:
        F: Forward rate
        K: Strike(s)
        T: Time to expiry
        alpha, beta, rho, nu: SABR parameters
        displacement: Shift for negative rates

    Returns:
        Normal implied volatility (same shape as K)
    """
    K = np.asarray(K, dtype=float)
    F_s = F + displacement
    K_s = K + displacement
    if F_s <= 0 or np.any(K_s <= 0):
        raise ValueError(f"Shifted forward ({F_s}) and strikes must be positive")

    f_mid = np.sqrt(F_s * K_s)
    diff = F - K
    atm = np.abs(diff) < ATM_TOLERANCE
    safe_diff = np.where(atm, 1.0, diff)

    # (F - K) / int_K^F (x + d)^-beta dx, -> f_mid^beta at the money
    if abs(1.0 - beta) < 1e-12:
        integral = np.log(F_s / np.where(atm, F_s * 0.5, K_s))
    else:
        integral = (F_s ** (1 - beta) - np.where(atm, 0.0, K_s ** (1 - beta))) / (1 - beta)
    safe_integral = np.where(atm, 1.0, integral)
    cev = np.where(atm, f_mid ** beta, safe_diff / safe_integral)

    zeta = nu / alpha * diff / f_mid ** beta
    small = np.abs(zeta) < 1e-8
    safe_zeta = np.where(small, 1.0, zeta)
    x_zeta = np.log((np.sqrt(1 - 2 * rho * safe_zeta + safe_zeta ** 2) + safe_zeta - rho) / (1 - rho))
    # zeta / x(zeta) -> 1 - rho zeta / 2 near zero
    ratio = np.where(small, 1.0 - 0.5 * rho * zeta, safe_zeta / x_zeta)

    correction = 1.0 + (
        -beta * (2 - beta) * alpha ** 2 / (24 * f_mid ** (2 - 2 * beta))
        + rho * alpha * nu * beta / (4 * f_mid ** (1 - beta))
        + (2 - 3 * rho ** 2) * nu ** 2 / 24
    ) * T

    sigma_n = alpha * cev * ratio * correction
    return float(sigma_n) if np.ndim(sigma_n) == 0 else sigma_n


def alpha_from_atm_normal_vol(sigma_atm: float, F: float, beta: float, displacement: float = 0.0) -> float:
    """Leading order alpha reproducing an ATM normal vol: sigma_N / (F + d)^beta."""
    F_s = F + displacement
    if F_s <= 0:
        raise ValueError(f"Shifted forward ({F_s}) must be positive")
    return sigma_atm / F_s ** beta


__all__ = [
    "SabrParams",
    "hagan_normal_vol",
    "alpha_from_atm_normal_vol",
]
