"""
Market data containers: quote tables and swaption lattices.
"""

from .quote_table import QuoteTable, TableConvention
from .lattice import LatticeBuilder, LatticeMetadata, QuotingConvention, SwaptionLattice

__all__ = [
    "QuoteTable",
    "TableConvention",
    "QuotingConvention",
    "LatticeMetadata",
    "SwaptionLattice",
    "LatticeBuilder",
]
