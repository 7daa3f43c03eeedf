"""
Market quote container.

A MarketQuoteSet is an immutable snapshot of quotes keyed by identifier.
Curve nodes look up their quote by identifier; the snapshot date anchors
spot dates of deposit and swap nodes.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Mapping

import pandas as pd

from .exceptions import CurveConfigurationError, MissingQuoteError


@dataclass(frozen=True)
class MarketQuoteSet:
    """
    Immutable set of market quotes.

    Attributes:
        snapshot_date: Date the quotes were observed
        quotes: Quote values keyed by identifier (rates and spreads as decimals)
    """
    snapshot_date: date
    quotes: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "quotes", {str(k): float(v) for k, v in dict(self.quotes).items()})

    def __len__(self) -> int:
        return len(self.quotes)

    def __contains__(self, quote_id: str) -> bool:
        return quote_id in self.quotes

    def value(self, quote_id: str) -> float:
        """
        Get a quote value.

        Raises:
            MissingQuoteError: If the identifier is not in the set
        """
        try:
            return self.quotes[quote_id]
        except KeyError:
            raise MissingQuoteError(quote_id) from None

    def values(self, quote_ids: Iterable[str]) -> List[float]:
        """Get quote values in the given order."""
        return [self.value(q) for q in quote_ids]

    def with_value(self, quote_id: str, value: float) -> "MarketQuoteSet":
        """Return a copy with one quote added or replaced."""
        quotes = dict(self.quotes)
        quotes[quote_id] = value
        return MarketQuoteSet(self.snapshot_date, quotes)

    def bumped(self, quote_id: str, shift: float) -> "MarketQuoteSet":
        """Return a copy with one existing quote shifted additively."""
        return self.with_value(quote_id, self.value(quote_id) + shift)

    def to_frame(self) -> pd.DataFrame:
        """Export quotes as a DataFrame with quote_id and value columns."""
        return pd.DataFrame(
            {"quote_id": list(self.quotes.keys()), "value": list(self.quotes.values())}
        )

    @classmethod
    def from_frame(
        cls,
        snapshot_date: date,
        df: pd.DataFrame,
        id_column: str = "quote_id",
        value_column: str = "value"
    ) -> "MarketQuoteSet":
        """
        Build a quote set from a DataFrame.

        Args:
            snapshot_date: Observation date
            df: Frame with one row per quote
            id_column: Column holding identifiers
            value_column: Column holding values

        Returns:
            MarketQuoteSet
        """
        missing = [c for c in (id_column, value_column) if c not in df.columns]
        if missing:
            raise CurveConfigurationError(f"Quote frame missing columns: {missing}")
        ids = df[id_column].astype(str)
        if ids.duplicated().any():
            dupes = sorted(set(ids[ids.duplicated()]))
            raise CurveConfigurationError(f"Duplicate quote identifiers: {dupes}")
        return cls(snapshot_date, dict(zip(ids, df[value_column].astype(float))))


__all__ = ["MarketQuoteSet"]
