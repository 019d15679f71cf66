"""
Swaption lattice: quotes keyed by (maturity, tenor, moneyness).

Maturity and tenor are integer months, moneyness integer basis points
relative to the forward swap rate (0 = ATM, positive = payer strike above
the forward / receiver strike below it).

A lattice is immutable. Entries are stored as sorted columnar numpy arrays;
transforms (convert, append) return new lattices. The metadata (reference
date, curve names, schedule prototypes) is what the converters and pricers
need to turn a key into an actual swaption.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, TYPE_CHECKING

import numpy as np
import pandas as pd

from ..exceptions import LatticeCollisionError, MissingCoverageError
from ..schedule import SchedulePrototype
from .quote_table import QuoteTable, TableConvention

if TYPE_CHECKING:
    from ..market_model import MarketModel

LatticeKey = Tuple[int, int, int]


class QuotingConvention(Enum):
    """How the values of a lattice are quoted."""
    PAYER_PRICE = "PAYER_PRICE"
    RECEIVER_PRICE = "RECEIVER_PRICE"
    PAYER_VOL_NORMAL = "PAYER_VOL_NORMAL"
    RECEIVER_VOL_NORMAL = "RECEIVER_VOL_NORMAL"
    PAYER_VOL_LOGNORMAL = "PAYER_VOL_LOGNORMAL"

    @property
    def is_price(self) -> bool:
        return self in (QuotingConvention.PAYER_PRICE, QuotingConvention.RECEIVER_PRICE)

    @property
    def is_payer(self) -> bool:
        return self in (
            QuotingConvention.PAYER_PRICE,
            QuotingConvention.PAYER_VOL_NORMAL,
            QuotingConvention.PAYER_VOL_LOGNORMAL,
        )

    @property
    def is_lognormal(self) -> bool:
        return self == QuotingConvention.PAYER_VOL_LOGNORMAL


@dataclass(frozen=True)
class LatticeMetadata:
    """Everything except the values that identifies what a lattice quotes."""
    reference_date: date
    discount_curve_name: str
    forward_curve_name: str
    fix_schedule: SchedulePrototype
    float_schedule: SchedulePrototype
    displacement: float = 0.0


class SwaptionLattice:
    """
    Immutable lattice of swaption quotes.

    Attributes:
        quoting_convention: Convention of the stored values
        metadata: Reference date, curve names and schedule prototypes
    """

    def __init__(
        self,
        quoting_convention: QuotingConvention,
        metadata: LatticeMetadata,
        maturities: np.ndarray,
        tenors: np.ndarray,
        moneyness: np.ndarray,
        values: np.ndarray
    ):
        maturities = np.asarray(maturities, dtype=int)
        tenors = np.asarray(tenors, dtype=int)
        moneyness = np.asarray(moneyness, dtype=int)
        values = np.asarray(values, dtype=float)
        if not (maturities.shape == tenors.shape == moneyness.shape == values.shape):
            raise ValueError("maturities, tenors, moneyness and values must have equal length")

        order = np.lexsort((moneyness, tenors, maturities))
        self.quoting_convention = quoting_convention
        self.metadata = metadata
        self._maturities = maturities[order]
        self._tenors = tenors[order]
        self._moneyness = moneyness[order]
        self._values = values[order]
        for arr in (self._maturities, self._tenors, self._moneyness, self._values):
            arr.setflags(write=False)

        self._index: Dict[LatticeKey, int] = {}
        for i, key in enumerate(zip(self._maturities.tolist(), self._tenors.tolist(), self._moneyness.tolist())):
            if key in self._index:
                raise LatticeCollisionError(key)
            self._index[key] = i

    @classmethod
    def from_arrays(
        cls,
        quoting_convention: QuotingConvention,
        reference_date: date,
        discount_curve_name: str,
        forward_curve_name: str,
        fix_schedule: SchedulePrototype,
        float_schedule: SchedulePrototype,
        maturities: Sequence[int],
        tenors: Sequence[int],
        moneyness: Sequence[int],
        values: Sequence[float],
        displacement: float = 0.0
    ) -> "SwaptionLattice":
        metadata = LatticeMetadata(
            reference_date=reference_date,
            discount_curve_name=discount_curve_name,
            forward_curve_name=forward_curve_name,
            fix_schedule=fix_schedule,
            float_schedule=float_schedule,
            displacement=displacement,
        )
        return cls(quoting_convention, metadata, maturities, tenors, moneyness, values)

    # Metadata shortcuts
    @property
    def reference_date(self) -> date:
        return self.metadata.reference_date

    @property
    def discount_curve_name(self) -> str:
        return self.metadata.discount_curve_name

    @property
    def forward_curve_name(self) -> str:
        return self.metadata.forward_curve_name

    @property
    def fix_schedule(self) -> SchedulePrototype:
        return self.metadata.fix_schedule

    @property
    def float_schedule(self) -> SchedulePrototype:
        return self.metadata.float_schedule

    @property
    def displacement(self) -> float:
        return self.metadata.displacement

    # Queries
    def moneyness(self) -> List[int]:
        return sorted(set(self._moneyness.tolist()))

    def maturities(self, moneyness: Optional[int] = None) -> List[int]:
        mask = np.ones(len(self), dtype=bool) if moneyness is None else self._moneyness == moneyness
        return sorted(set(self._maturities[mask].tolist()))

    def tenors(self, moneyness: Optional[int] = None, maturity: Optional[int] = None) -> List[int]:
        mask = np.ones(len(self), dtype=bool)
        if moneyness is not None:
            mask &= self._moneyness == moneyness
        if maturity is not None:
            mask &= self._maturities == maturity
        return sorted(set(self._tenors[mask].tolist()))

    def contains(self, maturity: int, tenor: int, moneyness: int) -> bool:
        return (maturity, tenor, moneyness) in self._index

    def value(self, maturity: int, tenor: int, moneyness: int) -> float:
        """
        Value at (maturity, tenor, moneyness).

        Raises:
            MissingCoverageError: If the lattice has no entry for the key
        """
        idx = self._index.get((maturity, tenor, moneyness))
        if idx is None:
            raise MissingCoverageError((maturity, tenor, moneyness), f"{self.quoting_convention.name} lattice")
        return float(self._values[idx])

    def get(self, maturity: int, tenor: int, moneyness: int, default: Optional[float] = None) -> Optional[float]:
        idx = self._index.get((maturity, tenor, moneyness))
        return default if idx is None else float(self._values[idx])

    def entries(self) -> Iterator[Tuple[LatticeKey, float]]:
        """Iterate ((maturity, tenor, moneyness), value) in sorted key order."""
        for key, idx in self._index.items():
            yield key, float(self._values[idx])

    def arrays(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Read-only sorted columns (maturities, tenors, moneyness, values)."""
        return self._maturities, self._tenors, self._moneyness, self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[Tuple[LatticeKey, float]]:
        return self.entries()

    def to_frame(self) -> pd.DataFrame:
        """Long format view with columns maturity, tenor, moneyness, value."""
        return pd.DataFrame({
            "maturity": self._maturities,
            "tenor": self._tenors,
            "moneyness": self._moneyness,
            "value": self._values,
        })

    def to_tables(self) -> Dict[int, QuoteTable]:
        """One MONTHS quote table per moneyness level."""
        tables = {}
        for m in self.moneyness():
            mask = self._moneyness == m
            tables[m] = QuoteTable(
                f"{self.quoting_convention.name} {m:+d}bp",
                TableConvention.MONTHS,
                self._maturities[mask].tolist(),
                self._tenors[mask].tolist(),
                self._values[mask].tolist(),
            )
        return tables

    # Transforms
    def with_values(
        self,
        quoting_convention: QuotingConvention,
        maturities: Sequence[int],
        tenors: Sequence[int],
        moneyness: Sequence[int],
        values: Sequence[float]
    ) -> "SwaptionLattice":
        """New lattice with the same metadata and the given entries."""
        return SwaptionLattice(quoting_convention, self.metadata, maturities, tenors, moneyness, values)

    def convert(self, convention: QuotingConvention, model: Optional["MarketModel"] = None) -> "SwaptionLattice":
        """
        Re-express the lattice in another quoting convention, treating the
        swaptions as physically settled.

        Args:
            convention: Target convention
            model: Market model resolving the lattice's curve names; only
                needed when a conversion actually happens

        Returns:
            Converted lattice (self when already in `convention`)
        """
        if convention == self.quoting_convention:
            return self
        from ..conversion import convert_lattice
        return convert_lattice(self, convention, model)

    def append(self, other: "SwaptionLattice", model: Optional["MarketModel"] = None) -> "SwaptionLattice":
        """
        Merge `other` into a copy of this lattice.

        `other` is first converted to this lattice's convention. Metadata of
        both lattices must agree.

        Raises:
            ValueError: On metadata mismatch
            LatticeCollisionError: If both lattices quote the same key
        """
        if other.metadata != self.metadata:
            raise ValueError(f"Cannot append lattices with different metadata: {self.metadata} vs {other.metadata}")
        other = other.convert(self.quoting_convention, model)

        for key, _ in other.entries():
            if key in self._index:
                raise LatticeCollisionError(key)

        o_mat, o_ten, o_mon, o_val = other.arrays()
        return self.with_values(
            self.quoting_convention,
            np.concatenate([self._maturities, o_mat]),
            np.concatenate([self._tenors, o_ten]),
            np.concatenate([self._moneyness, o_mon]),
            np.concatenate([self._values, o_val]),
        )

    def __repr__(self) -> str:
        return (f"SwaptionLattice(convention={self.quoting_convention.name}, "
                f"reference_date={self.reference_date}, entries={len(self)})")


class LatticeBuilder:
    """
    Mutable accumulator for lattice entries.

    Example:
        builder = LatticeBuilder(QuotingConvention.PAYER_VOL_NORMAL, metadata)
        builder.add(12, 60, 0, 0.0065)
        lattice = builder.build()
    """

    def __init__(self, quoting_convention: QuotingConvention, metadata: LatticeMetadata):
        self.quoting_convention = quoting_convention
        self.metadata = metadata
        self._entries: Dict[LatticeKey, float] = {}

    def add(self, maturity: int, tenor: int, moneyness: int, value: float) -> "LatticeBuilder":
        key = (int(maturity), int(tenor), int(moneyness))
        if key in self._entries:
            raise LatticeCollisionError(key)
        self._entries[key] = float(value)
        return self

    def __len__(self) -> int:
        return len(self._entries)

    def build(self) -> SwaptionLattice:
        keys = list(self._entries)
        return SwaptionLattice(
            self.quoting_convention,
            self.metadata,
            [k[0] for k in keys],
            [k[1] for k in keys],
            [k[2] for k in keys],
            list(self._entries.values()),
        )


__all__ = [
    "QuotingConvention",
    "LatticeMetadata",
    "SwaptionLattice",
    "LatticeBuilder",
]
