"""
Discount curve nodes.

Defines the instruments used to build ISDA discount curves:
- TermDepositNode: money-market deposit quoted as a simple rate
- FixedSwapNode: fixed/float swap quoted as a par fixed rate

Each node knows how to:
1. Resolve its dates from the snapshot date of the quote set
2. Report its pillar date (the last cash flow date)
3. Look up its quote
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List

from ..conventions import FixedSwapConvention, TermDepositConvention, year_fraction
from ..dates import DateUtils, generate_fixed_leg_schedule
from ..market_data import MarketQuoteSet


class NodeKind(Enum):
    """Tag of a discount curve node."""
    TERM_DEPOSIT = "TermDeposit"
    FIXED_SWAP = "FixedSwap"


@dataclass(frozen=True)
class ResolvedDeposit:
    """
    A term deposit with dates fixed.

    Attributes:
        quote_id: Identifier of the quoted rate
        start_date: Spot date
        end_date: Adjusted maturity
        year_fraction: Accrual fraction under the deposit day count
    """
    quote_id: str
    start_date: date
    end_date: date
    year_fraction: float
    kind: NodeKind = NodeKind.TERM_DEPOSIT

    @property
    def pillar_date(self) -> date:
        return self.end_date


@dataclass(frozen=True)
class ResolvedSwap:
    """
    The fixed leg of a swap with dates fixed.

    Attributes:
        quote_id: Identifier of the quoted par rate
        start_date: Spot date
        payment_dates: Adjusted fixed leg payment dates
        year_fractions: Fixed leg accrual fractions
    """
    quote_id: str
    start_date: date
    payment_dates: List[date]
    year_fractions: List[float]
    kind: NodeKind = NodeKind.FIXED_SWAP

    @property
    def pillar_date(self) -> date:
        return self.payment_dates[-1]


@dataclass(frozen=True)
class DiscountCurveNode(ABC):
    """
    Abstract base for discount curve nodes.

    Attributes:
        tenor: Instrument tenor from spot (e.g., "3M", "2Y")
        quote_id: Identifier of the market quote
    """
    tenor: str
    quote_id: str

    @property
    @abstractmethod
    def kind(self) -> NodeKind:
        pass

    @abstractmethod
    def resolve(self, snapshot_date: date):
        """Resolve the node's dates from the snapshot date."""
        pass

    def quote(self, quotes: MarketQuoteSet) -> float:
        """Look up the node's quote."""
        return quotes.value(self.quote_id)


@dataclass(frozen=True)
class TermDepositNode(DiscountCurveNode):
    """
    Money market deposit.

    Simple interest instrument: 1 invested at spot returns (1 + R * yf) at maturity.
    """
    convention: TermDepositConvention = field(default_factory=TermDepositConvention)

    @property
    def kind(self) -> NodeKind:
        return NodeKind.TERM_DEPOSIT

    def resolve(self, snapshot_date: date) -> ResolvedDeposit:
        """
        Resolve dates: spot = snapshot + spot lag; end = adjusted (spot + tenor).
        """
        spot = self.convention.spot_offset.adjust(snapshot_date)
        end = self.convention.business_day_adjustment.adjust(DateUtils.add_tenor(spot, self.tenor))
        yf = year_fraction(spot, end, self.convention.day_count)
        return ResolvedDeposit(self.quote_id, spot, end, yf)


@dataclass(frozen=True)
class FixedSwapNode(DiscountCurveNode):
    """
    Fixed/float swap.

    Only the fixed leg is resolved; the floating leg is worth par at spot,
    so the par condition is R * sum(yf_i * P(t_i)) = 1 - P(t_n).
    """
    convention: FixedSwapConvention = field(default_factory=FixedSwapConvention)

    @property
    def kind(self) -> NodeKind:
        return NodeKind.FIXED_SWAP

    def resolve(self, snapshot_date: date) -> ResolvedSwap:
        """
        Resolve the fixed leg schedule from spot to spot + tenor.
        """
        spot = self.convention.spot_offset.adjust(snapshot_date)
        maturity = DateUtils.add_tenor(spot, self.tenor)
        schedule = generate_fixed_leg_schedule(
            spot,
            maturity,
            self.convention.payment_months,
            self.convention.day_count,
            self.convention.business_day_adjustment
        )
        return ResolvedSwap(self.quote_id, spot, schedule.payment_dates, schedule.year_fractions)


__all__ = [
    "NodeKind",
    "ResolvedDeposit",
    "ResolvedSwap",
    "DiscountCurveNode",
    "TermDepositNode",
    "FixedSwapNode",
]
