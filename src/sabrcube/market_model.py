"""
Market model: the single lookup point for curves and volatility cubes.

Lattices, products and the calibrator reference curves and cubes by name
only; every name is resolved here at pricing time.

Design principles:
- Immutable after construction (safe to share between calibration threads)
- Adding a curve or cube returns a new model
- Unknown names fail loudly with MissingCurveError
"""

from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, TYPE_CHECKING, Union

from .curves.curve import DiscountCurve, ForwardCurve
from .exceptions import MissingCurveError

if TYPE_CHECKING:
    from .vol.cube import VolatilityCube

Curve = Union[DiscountCurve, ForwardCurve]


class MarketModel:
    """
    Named curves and volatility cubes.

    Attributes:
        curves: Read-only mapping of curve name -> curve
        volatility_cubes: Read-only mapping of cube name -> cube
    """

    def __init__(
        self,
        curves: Optional[Iterable[Curve]] = None,
        volatility_cubes: Optional[Iterable["VolatilityCube"]] = None
    ):
        self._curves: Dict[str, Curve] = {c.name: c for c in (curves or [])}
        self._cubes: Dict[str, "VolatilityCube"] = {c.name: c for c in (volatility_cubes or [])}

    @property
    def curves(self) -> Mapping[str, Curve]:
        return MappingProxyType(self._curves)

    @property
    def volatility_cubes(self) -> Mapping[str, "VolatilityCube"]:
        return MappingProxyType(self._cubes)

    def add_curve(self, curve: Curve) -> "MarketModel":
        """Return a new model that also carries `curve` (replacing a same-named one)."""
        return MarketModel(list({**self._curves, curve.name: curve}.values()), self._cubes.values())

    def with_volatility_cube(self, cube: "VolatilityCube") -> "MarketModel":
        """Return a new model that also carries `cube` (replacing a same-named one)."""
        return MarketModel(self._curves.values(), list({**self._cubes, cube.name: cube}.values()))

    def get_discount_curve(self, name: str) -> DiscountCurve:
        curve = self._curves.get(name)
        if not isinstance(curve, DiscountCurve):
            raise MissingCurveError(name, "discount curve")
        return curve

    def get_forward_curve(self, name: str) -> ForwardCurve:
        curve = self._curves.get(name)
        if not isinstance(curve, ForwardCurve):
            raise MissingCurveError(name, "forward curve")
        return curve

    def get_volatility_cube(self, name: str) -> "VolatilityCube":
        cube = self._cubes.get(name)
        if cube is None:
            raise MissingCurveError(name, "volatility cube")
        return cube

    def __repr__(self) -> str:
        return f"MarketModel(curves={sorted(self._curves)}, volatility_cubes={sorted(self._cubes)})"


__all__ = ["MarketModel"]
