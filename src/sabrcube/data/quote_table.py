"""
Two dimensional quote tables.

A QuoteTable holds one value per (maturity, tenor) cell, for instance the
ATM normal volatilities of a swaption grid or the cash payer prices at a
single moneyness. Cells without data are absent, never zero.

Tables are immutable; conversions return new tables.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..exceptions import MissingCoverageError

Number = Union[int, float]
Key = Tuple[Number, Number]


class TableConvention(Enum):
    """Unit of the maturity and tenor axes of a table."""
    MONTHS = "MONTHS"
    YEARS = "YEARS"


def _convert_axis(value: Number, source: TableConvention, target: TableConvention) -> Number:
    if source == target:
        return value
    if target == TableConvention.YEARS:
        return value / 12.0
    return int(round(value * 12))


@dataclass(frozen=True, eq=False)
class QuoteTable:
    """
    Immutable (maturity, tenor) -> value table.

    Attributes:
        name: Label of the table (e.g. "payer cash +50bp")
        convention: Unit of the maturity and tenor axes
        entries: Read-only mapping (maturity, tenor) -> value
    """
    name: str
    convention: TableConvention
    _entries: Dict[Key, float] = field(repr=False)

    def __init__(
        self,
        name: str,
        convention: TableConvention,
        maturities: Sequence[Number],
        tenors: Sequence[Number],
        values: Sequence[float]
    ):
        if not (len(maturities) == len(tenors) == len(values)):
            raise ValueError("maturities, tenors and values must have equal length")

        entries: Dict[Key, float] = {}
        for maturity, tenor, value in zip(maturities, tenors, values):
            key = (maturity, tenor)
            if key in entries:
                raise ValueError(f"Duplicate entry for maturity={maturity}, tenor={tenor} in table '{name}'")
            entries[key] = float(value)

        object.__setattr__(self, "name", name)
        object.__setattr__(self, "convention", convention)
        object.__setattr__(self, "_entries", dict(sorted(entries.items())))

    @property
    def entries(self) -> Mapping[Key, float]:
        return MappingProxyType(self._entries)

    def value(self, maturity: Number, tenor: Number) -> float:
        """
        Value at (maturity, tenor).

        Raises:
            MissingCoverageError: If the cell is not populated
        """
        try:
            return self._entries[(maturity, tenor)]
        except KeyError:
            raise MissingCoverageError((maturity, tenor), f"table '{self.name}'") from None

    def get(self, maturity: Number, tenor: Number, default: Optional[float] = None) -> Optional[float]:
        return self._entries.get((maturity, tenor), default)

    def contains(self, maturity: Number, tenor: Number) -> bool:
        return (maturity, tenor) in self._entries

    def maturities(self) -> List[Number]:
        return sorted({m for m, _ in self._entries})

    def tenors(self) -> List[Number]:
        return sorted({t for _, t in self._entries})

    def tenors_for_maturity(self, maturity: Number) -> List[Number]:
        return sorted(t for m, t in self._entries if m == maturity)

    def maturities_for_tenor(self, tenor: Number) -> List[Number]:
        return sorted(m for m, t in self._entries if t == tenor)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Tuple[Key, float]]:
        return iter(self._entries.items())

    def to_convention(self, convention: TableConvention) -> "QuoteTable":
        """
        Re-express the axes in another convention.

        MONTHS -> YEARS divides by 12; YEARS -> MONTHS rounds to whole months.
        """
        keys = [
            (_convert_axis(m, self.convention, convention), _convert_axis(t, self.convention, convention))
            for m, t in self._entries
        ]
        return QuoteTable(
            self.name,
            convention,
            [k[0] for k in keys],
            [k[1] for k in keys],
            list(self._entries.values()),
        )

    def to_frame(self) -> pd.DataFrame:
        """Pivot view: rows are maturities, columns tenors, NaN for empty cells."""
        frame = pd.DataFrame(
            np.nan, index=pd.Index(self.maturities(), name="maturity"),
            columns=pd.Index(self.tenors(), name="tenor"),
        )
        for (maturity, tenor), value in self._entries.items():
            frame.loc[maturity, tenor] = value
        return frame

    @classmethod
    def from_frame(
        cls,
        name: str,
        frame: pd.DataFrame,
        convention: TableConvention = TableConvention.MONTHS
    ) -> "QuoteTable":
        """Build from a pivot frame (rows = maturity, columns = tenor). NaN cells are skipped."""
        stacked = frame.stack().dropna()
        maturities, tenors = [], []
        for maturity, tenor in stacked.index:
            maturities.append(_axis_label(maturity, convention))
            tenors.append(_axis_label(tenor, convention))
        return cls(name, convention, maturities, tenors, stacked.to_numpy(dtype=float))

    def to_csv(self, path: Union[str, Path]) -> None:
        """Write the table in long format: maturity, tenor, value, convention."""
        frame = pd.DataFrame(
            [(m, t, v) for (m, t), v in self._entries.items()],
            columns=["maturity", "tenor", "value"],
        )
        frame["convention"] = self.convention.value
        frame.to_csv(path, index=False)

    @classmethod
    def read_csv(cls, path: Union[str, Path], name: Optional[str] = None) -> "QuoteTable":
        """Read a table written by `to_csv`."""
        df = pd.read_csv(path)
        df.columns = [c.strip().lower() for c in df.columns]

        convention = TableConvention.MONTHS
        if "convention" in df.columns and len(df):
            convention = TableConvention(str(df["convention"].iloc[0]).strip().upper())

        maturities = [_axis_label(m, convention) for m in df["maturity"]]
        tenors = [_axis_label(t, convention) for t in df["tenor"]]
        return cls(name or Path(path).stem, convention, maturities, tenors, df["value"].to_numpy(dtype=float))

    def __repr__(self) -> str:
        return f"QuoteTable(name={self.name!r}, convention={self.convention.name}, entries={len(self)})"


def _axis_label(value, convention: TableConvention) -> Number:
    # month axes are integral; year axes may be fractional (e.g. 0.5Y)
    if convention == TableConvention.MONTHS:
        return int(round(float(value)))
    return float(value)


__all__ = ["QuoteTable", "TableConvention"]
