"""
Interpolation methods for curves.

Provides:
- LinearInterpolator: Linear interpolation with flat extrapolation
- LogLinearInterpolator: Linear in log discount factors (piecewise flat forwards)

Both are vectorised: `interpolate` accepts scalars or numpy arrays.
"""

from abc import ABC, abstractmethod
from typing import Optional, Union
import numpy as np

ArrayLike = Union[float, np.ndarray]


class Interpolator(ABC):
    """Abstract base class for curve interpolation."""

    def __init__(self):
        self.times: Optional[np.ndarray] = None
        self.values: Optional[np.ndarray] = None

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        """
        Fit the interpolator to data points.

        Args:
            times: Array of year fractions
            values: Array of values at those times
        """
        times = np.asarray(times, dtype=float)
        values = np.asarray(values, dtype=float)
        if times.shape != values.shape:
            raise ValueError("Times and values must have same length")
        if len(times) < 2:
            raise ValueError("Need at least 2 points for interpolation")

        idx = np.argsort(times)
        self.times = times[idx]
        self.values = values[idx]

    def _check_fitted(self) -> None:
        if self.times is None:
            raise RuntimeError("Interpolator not fitted")

    @abstractmethod
    def interpolate(self, t: ArrayLike) -> ArrayLike:
        """Interpolate at t (scalar or array)."""

    def __call__(self, t: ArrayLike) -> ArrayLike:
        return self.interpolate(t)


class LinearInterpolator(Interpolator):
    """Linear interpolation between knots, flat beyond the boundaries."""

    def interpolate(self, t: ArrayLike) -> ArrayLike:
        self._check_fitted()
        result = np.interp(t, self.times, self.values)
        return float(result) if np.ndim(result) == 0 else result


class LogLinearInterpolator(Interpolator):
    """
    Linear interpolation on log values.

    Fitted on discount factors this gives piecewise flat instantaneous
    forwards. Beyond the last knot the last log-slope is continued.
    """

    def fit(self, times: np.ndarray, values: np.ndarray) -> None:
        if np.any(np.asarray(values) <= 0):
            raise ValueError("Log-linear interpolation needs positive values")
        super().fit(times, values)
        self._log_values = np.log(self.values)

    def interpolate(self, t: ArrayLike) -> ArrayLike:
        self._check_fitted()
        t_arr = np.asarray(t, dtype=float)
        log_v = np.interp(t_arr, self.times, self._log_values)
        slope = (self._log_values[-1] - self._log_values[-2]) / (self.times[-1] - self.times[-2])
        beyond = t_arr > self.times[-1]
        log_v = np.where(beyond, self._log_values[-1] + slope * (t_arr - self.times[-1]), log_v)
        result = np.exp(log_v)
        return float(result) if np.ndim(result) == 0 else result


def create_interpolator(method: str) -> Interpolator:
    """
    Factory function to create an interpolator by name.

    Args:
        method: One of "linear", "log_linear"

    Returns:
        Interpolator instance
    """
    method = method.lower().replace("-", "_").replace(" ", "_")

    if method in ("linear", "lin"):
        return LinearInterpolator()
    elif method in ("log_linear", "loglinear"):
        return LogLinearInterpolator()
    raise ValueError(f"Unknown interpolation method: {method}")


__all__ = [
    "Interpolator",
    "LinearInterpolator",
    "LogLinearInterpolator",
    "create_interpolator",
]
