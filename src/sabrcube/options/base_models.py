"""
Base option pricing models.

Implements:
- Bachelier (normal) model, the quoting model for swaption volatilities
- Shifted Black'76 for displaced lognormal quotes
- Implied volatility inversion for both

Prices are per unit annuity unless an annuity (`df`) is passed. The
Bachelier formulas accept numpy arrays for strike and volatility, which the
replication pricer relies on.
"""

from typing import Union
import numpy as np
from scipy.optimize import brentq
from scipy.stats import norm

from ..exceptions import ImpliedVolatilityInversionError

ArrayLike = Union[float, np.ndarray]

# Standard normal CDF and PDF
N = norm.cdf
n = norm.pdf

# Upper end of the volatility bracket for the root searches
MAX_NORMAL_VOL = 1.0
MAX_BLACK_VOL = 20.0


def _as_result(x: np.ndarray) -> ArrayLike:
    return float(x) if np.ndim(x) == 0 else x


def bachelier_call(
    F: float,
    K: ArrayLike,
    T: float,
    sigma_n: ArrayLike,
    df: float = 1.0
) -> ArrayLike:
    """
    Bachelier (normal) model call option price.

    Assumes forward follows arithmetic Brownian motion:
    dF = sigma_n * dW

    Args:
        F: Forward rate
        K: Strike(s)
        T: Time to expiry (years)
        sigma_n: Normal volatility (scalar or per strike)
        df: Discount factor or annuity

    Returns:
        Call option price(s)
    """
    K = np.asarray(K, dtype=float)
    sigma_n = np.asarray(sigma_n, dtype=float)
    intrinsic = np.maximum(F - K, 0.0)
    if T <= 0:
        return _as_result(df * intrinsic)

    std = sigma_n * np.sqrt(T)
    safe_std = np.where(std > 0, std, 1.0)
    d = (F - K) / safe_std
    price = np.where(std > 0, (F - K) * N(d) + safe_std * n(d), intrinsic)
    return _as_result(df * price)


def bachelier_put(
    F: float,
    K: ArrayLike,
    T: float,
    sigma_n: ArrayLike,
    df: float = 1.0
) -> ArrayLike:
    """
    Bachelier (normal) model put option price.

    Args:
        F: Forward rate
        K: Strike(s)
        T: Time to expiry
        sigma_n: Normal volatility
        df: Discount factor or annuity

    Returns:
        Put option price(s)
    """
    K = np.asarray(K, dtype=float)
    sigma_n = np.asarray(sigma_n, dtype=float)
    intrinsic = np.maximum(K - F, 0.0)
    if T <= 0:
        return _as_result(df * intrinsic)

    std = sigma_n * np.sqrt(T)
    safe_std = np.where(std > 0, std, 1.0)
    d = (F - K) / safe_std
    price = np.where(std > 0, (K - F) * N(-d) + safe_std * n(d), intrinsic)
    return _as_result(df * price)


def black76_call(F: float, K: float, T: float, sigma_b: float, df: float = 1.0) -> float:
    """
    Black'76 model call option price.

    Args:
        F: Forward rate (positive)
        K: Strike (positive)
        T: Time to expiry
        sigma_b: Black (lognormal) volatility
        df: Discount factor or annuity

    Returns:
        Call option price
    """
    if T <= 0 or sigma_b <= 0:
        return max(F - K, 0.0) * df
    if F <= 0 or K <= 0:
        raise ValueError("Forward and strike must be positive for Black model")

    sqrt_t = np.sqrt(T)
    d1 = (np.log(F / K) + 0.5 * sigma_b**2 * T) / (sigma_b * sqrt_t)
    d2 = d1 - sigma_b * sqrt_t
    return float(df * (F * N(d1) - K * N(d2)))


def black76_put(F: float, K: float, T: float, sigma_b: float, df: float = 1.0) -> float:
    """Black'76 put via parity: P = C - df * (F - K)."""
    return black76_call(F, K, T, sigma_b, df) - df * (F - K)


def shifted_black_call(F: float, K: float, T: float, sigma_b: float, shift: float, df: float = 1.0) -> float:
    """
    Shifted Black'76 call: d(F + shift) = sigma_b * (F + shift) * dW.

    Raises:
        ValueError: If shifted forward or strike is not positive
    """
    F_shifted = F + shift
    K_shifted = K + shift
    if F_shifted <= 0 or K_shifted <= 0:
        raise ValueError(f"Shifted forward ({F_shifted}) and strike ({K_shifted}) must be positive")
    return black76_call(F_shifted, K_shifted, T, sigma_b, df)


def shifted_black_put(F: float, K: float, T: float, sigma_b: float, shift: float, df: float = 1.0) -> float:
    """Shifted Black'76 put."""
    F_shifted = F + shift
    K_shifted = K + shift
    if F_shifted <= 0 or K_shifted <= 0:
        raise ValueError(f"Shifted forward ({F_shifted}) and strike ({K_shifted}) must be positive")
    return black76_put(F_shifted, K_shifted, T, sigma_b, df)


def _check_inversion_inputs(price: float, T: float, df: float) -> None:
    if not np.isfinite(price):
        raise ImpliedVolatilityInversionError(price, "price is not finite")
    if T <= 0:
        raise ImpliedVolatilityInversionError(price, f"option is expired (T={T})")
    if df <= 0:
        raise ImpliedVolatilityInversionError(price, f"annuity must be positive, got {df}")


def implied_vol_bachelier(
    price: float,
    F: float,
    K: float,
    T: float,
    df: float = 1.0,
    is_call: bool = True,
    tol: float = 1e-12
) -> float:
    """
    Compute implied normal volatility from option price.

    The Bachelier price is strictly increasing in volatility, so a bracketed
    root search on [0, MAX_NORMAL_VOL] is well posed whenever the price lies
    between intrinsic value and the price at the upper bracket.

    Args:
        price: Option price
        F: Forward rate
        K: Strike
        T: Time to expiry
        df: Discount factor or annuity
        is_call: True for call (payer), False for put (receiver)
        tol: Absolute price tolerance for accepting the intrinsic value

    Returns:
        Implied normal volatility

    Raises:
        ImpliedVolatilityInversionError: If no volatility reproduces the price
    """
    _check_inversion_inputs(price, T, df)
    pricer = bachelier_call if is_call else bachelier_put

    intrinsic = df * (max(F - K, 0.0) if is_call else max(K - F, 0.0))
    if price < intrinsic - tol:
        raise ImpliedVolatilityInversionError(price, f"below intrinsic value {intrinsic!r}")
    if price <= intrinsic + tol:
        return 0.0

    upper = pricer(F, K, T, MAX_NORMAL_VOL, df)
    if price > upper:
        raise ImpliedVolatilityInversionError(price, f"above the price {upper!r} at volatility {MAX_NORMAL_VOL}")

    return float(brentq(lambda s: pricer(F, K, T, s, df) - price, 0.0, MAX_NORMAL_VOL, xtol=1e-14, rtol=1e-12))


def implied_vol_shifted_black(
    price: float,
    F: float,
    K: float,
    T: float,
    shift: float = 0.0,
    df: float = 1.0,
    is_call: bool = True,
    tol: float = 1e-12
) -> float:
    """
    Compute implied (shifted) Black volatility from option price.

    Raises:
        ImpliedVolatilityInversionError: If no volatility reproduces the price
    """
    _check_inversion_inputs(price, T, df)
    if F + shift <= 0 or K + shift <= 0:
        raise ImpliedVolatilityInversionError(price, "shifted forward and strike must be positive")
    pricer = shifted_black_call if is_call else shifted_black_put

    intrinsic = df * (max(F - K, 0.0) if is_call else max(K - F, 0.0))
    if price < intrinsic - tol:
        raise ImpliedVolatilityInversionError(price, f"below intrinsic value {intrinsic!r}")
    if price <= intrinsic + tol:
        return 0.0

    upper = pricer(F, K, T, MAX_BLACK_VOL, shift, df)
    if price > upper:
        raise ImpliedVolatilityInversionError(price, f"above the price {upper!r} at volatility {MAX_BLACK_VOL}")

    return float(brentq(lambda s: pricer(F, K, T, s, shift, df) - price, 1e-12, MAX_BLACK_VOL, xtol=1e-14, rtol=1e-12))


__all__ = [
    "bachelier_call",
    "bachelier_put",
    "black76_call",
    "black76_put",
    "shifted_black_call",
    "shifted_black_put",
    "implied_vol_bachelier",
    "implied_vol_shifted_black",
]
