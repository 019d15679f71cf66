"""
Exceptions raised by the SABR cube library.

Every failure surfaced by the public API derives from SabrCubeError and,
where it makes sense, from the matching builtin (ValueError, LookupError,
RuntimeError) so callers can catch either.
"""

from typing import Optional, Tuple


class SabrCubeError(Exception):
    """Base exception for the library."""


class InvalidConventionError(SabrCubeError, ValueError):
    """Data arrived in a quoting or table convention the operation does not support."""

    def __init__(self, convention, message: str):
        self.convention = convention
        super().__init__(f"[{getattr(convention, 'name', convention)}] {message}")


class MissingCoverageError(SabrCubeError, LookupError):
    """A lookup hit a cell with no backing data (distinct from a stored zero)."""

    def __init__(self, key: Tuple, source: Optional[str] = None):
        self.key = key
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(f"No data for {key}{where}")

    def __str__(self) -> str:
        # LookupError would otherwise repr() the message
        return self.args[0]


class MissingCubeTenorError(MissingCoverageError):
    """The volatility cube carries no parameters for the requested tenor."""

    def __init__(self, tenor: int, cube_name: Optional[str] = None):
        self.tenor = tenor
        super().__init__((tenor,), f"volatility cube '{cube_name}'" if cube_name else "volatility cube")


class MissingCurveError(SabrCubeError, KeyError):
    """A curve or cube name could not be resolved through the market model."""

    def __init__(self, name: str, kind: str = "curve"):
        self.name = name
        self.kind = kind
        super().__init__(f"Market model has no {kind} named '{name}'")

    def __str__(self) -> str:
        return self.args[0]


class LatticeCollisionError(SabrCubeError, ValueError):
    """Two lattice entries were written for the same (maturity, tenor, moneyness)."""

    def __init__(self, key: Tuple[int, int, int]):
        self.key = key
        maturity, tenor, moneyness = key
        super().__init__(
            f"Duplicate lattice entry for maturity={maturity}, tenor={tenor}, moneyness={moneyness}"
        )


class ImpliedVolatilityInversionError(SabrCubeError, ValueError):
    """No volatility reproduces the observed price."""

    def __init__(self, price: float, message: str):
        self.price = price
        super().__init__(f"Cannot imply volatility from price {price!r}: {message}")


class SolverFailureError(SabrCubeError, RuntimeError):
    """The least-squares solve for a tenor did not reach an acceptable fit."""

    def __init__(self, tenor: int, message: str):
        self.tenor = tenor
        super().__init__(f"[tenor {tenor}M] {message}")


__all__ = [
    "SabrCubeError",
    "InvalidConventionError",
    "MissingCoverageError",
    "MissingCubeTenorError",
    "MissingCurveError",
    "LatticeCollisionError",
    "ImpliedVolatilityInversionError",
    "SolverFailureError",
]
