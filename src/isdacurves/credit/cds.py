"""
Single-name CDS nodes and their resolution into premium periods.

A CDS is resolved with the ISDA Standard Model date rules:
- The accrual start date is adjusted with the start date adjustment
  (none by default), intermediate dates with the business day adjustment,
  and the maturity is left unadjusted
- With protection from the start of day, the last accrual period runs to
  maturity + 1 day and effective (protection) dates are one day earlier
  than accrual dates
- The final premium is paid on the adjusted maturity
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import List, Optional, Tuple

from ..conventions import CdsConvention, DayCount, DaysAdjustment, year_fraction
from ..dates import DateUtils
from ..exceptions import CurveConfigurationError
from ..market_data import MarketQuoteSet

ONE_DAY = timedelta(days=1)


class CdsQuoteType(Enum):
    """How a CDS node is quoted."""
    PAR_SPREAD = "ParSpread"
    POINTS_UPFRONT = "PointsUpfront"


@dataclass(frozen=True)
class CdsCouponPeriod:
    """
    One premium period of a resolved CDS.

    Attributes:
        start_date: Accrual start
        end_date: Accrual end (exclusive)
        effective_start_date: Start of protection for this period
        effective_end_date: End of protection for this period
        payment_date: Premium payment date
        year_fraction: Accrual fraction under the CDS day count
    """
    start_date: date
    end_date: date
    effective_start_date: date
    effective_end_date: date
    payment_date: date
    year_fraction: float

    def contains(self, d: date) -> bool:
        """True if d falls in [start_date, end_date)."""
        return self.start_date <= d < self.end_date


@dataclass(frozen=True)
class ResolvedCds:
    """
    A CDS with its premium schedule fixed.

    Attributes:
        periods: Premium periods in date order
        protection_end_date: Last day of protection (unadjusted maturity)
        day_count: Premium accrual day count
        step_in_offset: Lag from trade date to step-in date
        settlement_offset: Lag from trade date to cash settlement
        protection_from_start_of_day: Protection starts at the beginning of the day
        pay_accrued_on_default: Accrued premium is paid on default
    """
    periods: Tuple[CdsCouponPeriod, ...]
    protection_end_date: date
    day_count: DayCount
    step_in_offset: DaysAdjustment
    settlement_offset: DaysAdjustment
    protection_from_start_of_day: bool = True
    pay_accrued_on_default: bool = True

    @property
    def accrual_start_date(self) -> date:
        return self.periods[0].start_date

    @property
    def accrual_end_date(self) -> date:
        return self.periods[-1].end_date

    def step_in_date(self, trade_date: date) -> date:
        """Date protection starts for a trade done on trade_date."""
        return self.step_in_offset.adjust(trade_date)

    def settlement_date(self, trade_date: date) -> date:
        """Cash settlement date of the upfront for a trade done on trade_date."""
        return self.settlement_offset.adjust(trade_date)

    def effective_start_date(self, step_in_date: date) -> date:
        """First day of protection as seen from the step-in date."""
        d = max(step_in_date, self.accrual_start_date)
        return d - ONE_DAY if self.protection_from_start_of_day else d

    def accrued_year_fraction(self, step_in_date: date) -> float:
        """Premium accrued from the current period start to the step-in date."""
        if step_in_date <= self.accrual_start_date:
            return 0.0
        for period in self.periods:
            if period.contains(step_in_date):
                return year_fraction(period.start_date, step_in_date, self.day_count)
        return 0.0

    def is_expired(self, valuation_date: date) -> bool:
        return self.protection_end_date <= valuation_date


def resolve_cds(start_date: date, end_date: date, convention: CdsConvention) -> ResolvedCds:
    """
    Resolve a CDS between two dates into premium periods.

    Args:
        start_date: Unadjusted accrual start date
        end_date: Unadjusted maturity (protection end)
        convention: CDS conventions

    Returns:
        ResolvedCds
    """
    unadjusted = DateUtils.generate_schedule(
        start_date, end_date, convention.payment_months, convention.stub_convention
    )
    bda = convention.business_day_adjustment
    adjusted = (
        [convention.start_date_adjustment.adjust(unadjusted[0])]
        + [bda.adjust(d) for d in unadjusted[1:-1]]
        + [unadjusted[-1]]
    )
    shift = ONE_DAY if convention.protection_from_start_of_day else timedelta(0)

    periods: List[CdsCouponPeriod] = []
    n = len(adjusted) - 1
    for k in range(n):
        start = adjusted[k]
        if k < n - 1:
            end = adjusted[k + 1]
            periods.append(CdsCouponPeriod(
                start_date=start,
                end_date=end,
                effective_start_date=start - shift,
                effective_end_date=end - shift,
                payment_date=end,
                year_fraction=year_fraction(start, end, convention.day_count),
            ))
        else:
            end = end_date + shift
            periods.append(CdsCouponPeriod(
                start_date=start,
                end_date=end,
                effective_start_date=start - shift,
                effective_end_date=end_date,
                payment_date=bda.adjust(end_date),
                year_fraction=year_fraction(start, end, convention.day_count),
            ))

    return ResolvedCds(
        periods=tuple(periods),
        protection_end_date=end_date,
        day_count=convention.day_count,
        step_in_offset=convention.step_in_offset,
        settlement_offset=convention.settlement_offset,
        protection_from_start_of_day=convention.protection_from_start_of_day,
        pay_accrued_on_default=convention.pay_accrued_on_default,
    )


@dataclass(frozen=True)
class CdsNode:
    """
    A CDS credit curve node.

    Attributes:
        start_date: Unadjusted accrual start date
        end_date: Unadjusted maturity
        quote_id: Identifier of the market quote
        legal_entity: Reference entity
        convention: CDS conventions
        quote_type: Par spread or points upfront
        fixed_rate: Running coupon for points upfront quotes
    """
    start_date: date
    end_date: date
    quote_id: str
    legal_entity: str
    convention: CdsConvention = field(default_factory=CdsConvention)
    quote_type: CdsQuoteType = CdsQuoteType.PAR_SPREAD
    fixed_rate: Optional[float] = None

    def __post_init__(self):
        if self.end_date <= self.start_date:
            raise CurveConfigurationError(
                f"CDS node '{self.quote_id}' ends on {self.end_date}, before its start {self.start_date}"
            )
        if self.quote_type == CdsQuoteType.POINTS_UPFRONT and self.fixed_rate is None:
            raise CurveConfigurationError(f"Points upfront node '{self.quote_id}' requires a fixed rate")

    @classmethod
    def of_tenor(cls, start_date: date, maturity_start: date, tenor: str, quote_id: str, legal_entity: str,
                 convention: Optional[CdsConvention] = None, **kwargs) -> "CdsNode":
        """Node maturing a tenor after maturity_start, e.g. the first IMM date after trade."""
        return cls(start_date, DateUtils.add_tenor(maturity_start, tenor), quote_id, legal_entity,
                   convention or CdsConvention(), **kwargs)

    def resolve(self) -> ResolvedCds:
        return resolve_cds(self.start_date, self.end_date, self.convention)

    def coupon_and_upfront(self, quotes: MarketQuoteSet) -> Tuple[float, float]:
        """
        Running coupon and upfront price the node must reprice to.

        Par spread nodes price to zero with the quoted spread as coupon;
        points upfront nodes price to the quote with the fixed coupon.
        """
        quote = quotes.value(self.quote_id)
        if self.quote_type == CdsQuoteType.PAR_SPREAD:
            return quote, 0.0
        return self.fixed_rate, quote


__all__ = [
    "CdsQuoteType",
    "CdsCouponPeriod",
    "ResolvedCds",
    "resolve_cds",
    "CdsNode",
]
