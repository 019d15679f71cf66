"""
Volatility package - SABR model, volatility cube and cube calibration.

Provides:
- hagan_normal_vol: Displaced SABR normal volatility
- VolatilityCube: Per-tenor SABR parameters
- SabrCubeCalibrator: Fits a cube to cash and physical swaption prices
"""

from .sabr import SabrParams, alpha_from_atm_normal_vol, hagan_normal_vol
from .cube import SabrTenorParameters, VolatilityCube
from .calibration import CalibrationState, SabrCubeCalibrator, TenorCalibrationResult

__all__ = [
    "SabrParams",
    "hagan_normal_vol",
    "alpha_from_atm_normal_vol",
    "SabrTenorParameters",
    "VolatilityCube",
    "CalibrationState",
    "SabrCubeCalibrator",
    "TenorCalibrationResult",
]
