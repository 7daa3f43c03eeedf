"""
Day count conventions, business day adjustments and instrument conventions.

Supported Day Counts:
- ACT/360: Actual days / 360 (money markets, CDS premium legs)
- ACT/365F: Actual days / 365 (curve time axis)
- ACT/ACT ISDA: Actual days split by calendar year / days in that year
- 30/360: 30 days per month / 360, bond basis (fixed swap legs)
- 30E/360: Eurobond basis, both day-of-month values capped at 30

Business Day Conventions:
- Following: Move to next business day
- Modified Following: Move to next business day, unless it falls in next month (then previous)
- Preceding: Move to previous business day
- Modified Preceding: Move to previous business day, unless it falls in previous month (then next)
- None: No adjustment

The weekend calendar is Saturday/Sunday; additional holidays are passed as a set of dates.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import FrozenSet, Iterable, Optional
import calendar

from .exceptions import CurveConfigurationError


class DayCount(Enum):
    """Day count convention enumeration."""
    ACT_360 = "ACT/360"
    ACT_365F = "ACT/365F"
    ACT_ACT_ISDA = "ACT/ACT ISDA"
    THIRTY_360 = "30/360"
    THIRTY_E_360 = "30E/360"

    @classmethod
    def from_string(cls, s: str) -> "DayCount":
        """Parse day count from string representation."""
        mapping = {
            "ACT/360": cls.ACT_360,
            "ACT360": cls.ACT_360,
            "ACT/365": cls.ACT_365F,
            "ACT/365F": cls.ACT_365F,
            "ACT365F": cls.ACT_365F,
            "ACT/ACT": cls.ACT_ACT_ISDA,
            "ACT/ACTISDA": cls.ACT_ACT_ISDA,
            "ACTACT": cls.ACT_ACT_ISDA,
            "30/360": cls.THIRTY_360,
            "30U/360": cls.THIRTY_360,
            "30360": cls.THIRTY_360,
            "30E/360": cls.THIRTY_E_360,
        }
        key = s.upper().replace(" ", "")
        if key in mapping:
            return mapping[key]
        raise CurveConfigurationError(f"Unknown day count convention: {s}")


class BusinessDayConvention(Enum):
    """Business day adjustment convention."""
    FOLLOWING = "Following"
    MODIFIED_FOLLOWING = "ModifiedFollowing"
    PRECEDING = "Preceding"
    MODIFIED_PRECEDING = "ModifiedPreceding"
    UNADJUSTED = "None"

    @classmethod
    def from_string(cls, s: str) -> "BusinessDayConvention":
        """Parse business day convention from string representation."""
        key = s.upper().replace(" ", "").replace("_", "")
        mapping = {
            "FOLLOWING": cls.FOLLOWING,
            "F": cls.FOLLOWING,
            "MODIFIEDFOLLOWING": cls.MODIFIED_FOLLOWING,
            "MODFOLLOWING": cls.MODIFIED_FOLLOWING,
            "MF": cls.MODIFIED_FOLLOWING,
            "PRECEDING": cls.PRECEDING,
            "P": cls.PRECEDING,
            "MODIFIEDPRECEDING": cls.MODIFIED_PRECEDING,
            "MP": cls.MODIFIED_PRECEDING,
            "NONE": cls.UNADJUSTED,
            "UNADJUSTED": cls.UNADJUSTED,
        }
        if key in mapping:
            return mapping[key]
        raise CurveConfigurationError(f"Unknown business day convention: {s}")


class StubConvention(Enum):
    """Placement of the irregular period of a backward-generated schedule."""
    SHORT_INITIAL = "ShortInitial"
    LONG_INITIAL = "LongInitial"
    SMART_INITIAL = "SmartInitial"


def year_fraction(start: date, end: date, day_count: DayCount) -> float:
    """
    Calculate year fraction between two dates using specified day count convention.

    The result is signed: when end is before start the negated fraction
    of (end, start) is returned.

    Args:
        start: Start date
        end: End date
        day_count: Day count convention

    Returns:
        Year fraction as float

    Conventions:
        ACT/360: (end - start).days / 360
        ACT/365F: (end - start).days / 365
        ACT/ACT ISDA: days falling in each calendar year / days in that year
        30/360: d1 = min(d1, 30); d2 = 30 if d2 == 31 and d1 == 30
        30E/360: d1 = min(d1, 30); d2 = min(d2, 30)
    """
    if start == end:
        return 0.0
    if end < start:
        return -year_fraction(end, start, day_count)

    actual_days = (end - start).days

    if day_count == DayCount.ACT_360:
        return actual_days / 360.0

    elif day_count == DayCount.ACT_365F:
        return actual_days / 365.0

    elif day_count == DayCount.ACT_ACT_ISDA:
        if start.year == end.year:
            return actual_days / _days_in_year(start.year)
        total = (date(start.year + 1, 1, 1) - start).days / _days_in_year(start.year)
        total += end.year - start.year - 1
        total += (end - date(end.year, 1, 1)).days / _days_in_year(end.year)
        return total

    elif day_count == DayCount.THIRTY_360:
        d1 = min(start.day, 30)
        d2 = end.day
        if d2 == 31 and d1 == 30:
            d2 = 30
        return _thirty_360(start, end, d1, d2)

    elif day_count == DayCount.THIRTY_E_360:
        return _thirty_360(start, end, min(start.day, 30), min(end.day, 30))

    else:
        raise CurveConfigurationError(f"Unknown day count: {day_count}")


def _thirty_360(start: date, end: date, d1: int, d2: int) -> float:
    return (360 * (end.year - start.year) + 30 * (end.month - start.month) + (d2 - d1)) / 360.0


def _days_in_year(year: int) -> int:
    return 366 if calendar.isleap(year) else 365


def is_business_day(d: date, holidays: Optional[Iterable[date]] = None) -> bool:
    """
    Check if a date is a business day.

    Uses weekend-only calendar by default (Saturday/Sunday are non-business days).

    Args:
        d: Date to check
        holidays: Optional set of holiday dates

    Returns:
        True if business day, False otherwise
    """
    # Weekend check (0 = Monday, 5 = Saturday, 6 = Sunday)
    if d.weekday() >= 5:
        return False

    if holidays and d in holidays:
        return False

    return True


def _roll(d: date, step: int, holidays: Optional[Iterable[date]]) -> date:
    adjusted = d
    while not is_business_day(adjusted, holidays):
        adjusted += timedelta(days=step)
    return adjusted


def adjust_business_day(
    d: date,
    convention: BusinessDayConvention,
    holidays: Optional[Iterable[date]] = None
) -> date:
    """
    Adjust a date according to business day convention.

    Args:
        d: Date to adjust
        convention: Business day adjustment rule
        holidays: Optional set of holiday dates

    Returns:
        Adjusted date
    """
    if convention == BusinessDayConvention.UNADJUSTED:
        return d

    if is_business_day(d, holidays):
        return d

    if convention == BusinessDayConvention.FOLLOWING:
        return _roll(d, 1, holidays)

    elif convention == BusinessDayConvention.PRECEDING:
        return _roll(d, -1, holidays)

    elif convention == BusinessDayConvention.MODIFIED_FOLLOWING:
        adjusted = _roll(d, 1, holidays)
        # If we crossed into next month, go preceding instead
        if adjusted.month != d.month:
            adjusted = _roll(d, -1, holidays)
        return adjusted

    elif convention == BusinessDayConvention.MODIFIED_PRECEDING:
        adjusted = _roll(d, -1, holidays)
        if adjusted.month != d.month:
            adjusted = _roll(d, 1, holidays)
        return adjusted

    raise CurveConfigurationError(f"Unknown business day convention: {convention}")


def add_business_days(d: date, days: int, holidays: Optional[Iterable[date]] = None) -> date:
    """
    Shift a date by a number of business days.

    A shift of zero rolls a non-business day forward to the next business day.
    Negative shifts move backwards.

    Args:
        d: Starting date
        days: Number of business days
        holidays: Optional set of holiday dates

    Returns:
        Shifted date
    """
    if days == 0:
        return _roll(d, 1, holidays)
    step = 1 if days > 0 else -1
    result = d
    remaining = abs(days)
    while remaining > 0:
        result += timedelta(days=step)
        if is_business_day(result, holidays):
            remaining -= 1
    return result


@dataclass(frozen=True)
class BusinessDayAdjustment:
    """
    A business day convention bound to a holiday set.

    Attributes:
        convention: Business day adjustment rule
        holidays: Holiday dates on top of the Saturday/Sunday weekend
    """
    convention: BusinessDayConvention = BusinessDayConvention.FOLLOWING
    holidays: FrozenSet[date] = field(default_factory=frozenset)

    def __post_init__(self):
        object.__setattr__(self, "holidays", frozenset(self.holidays))

    @classmethod
    def none(cls) -> "BusinessDayAdjustment":
        """Adjustment that leaves every date unchanged."""
        return cls(BusinessDayConvention.UNADJUSTED)

    @classmethod
    def of(cls, convention: BusinessDayConvention, holidays: Iterable[date] = ()) -> "BusinessDayAdjustment":
        """Create an adjustment from a convention and optional holidays."""
        return cls(convention, frozenset(holidays))

    def adjust(self, d: date) -> date:
        """Adjust a date to a business day."""
        return adjust_business_day(d, self.convention, self.holidays)


@dataclass(frozen=True)
class DaysAdjustment:
    """
    A shift of a date by a number of business or calendar days.

    Used for spot lags of deposits and swaps, the CDS step-in date
    (one calendar day) and the CDS cash settlement date (three business days).

    Attributes:
        days: Number of days to shift
        business_days: True to count business days, False for calendar days
        holidays: Holiday dates on top of the Saturday/Sunday weekend
    """
    days: int = 0
    business_days: bool = True
    holidays: FrozenSet[date] = field(default_factory=frozenset)

    def __post_init__(self):
        object.__setattr__(self, "holidays", frozenset(self.holidays))

    @classmethod
    def of_business_days(cls, days: int, holidays: Iterable[date] = ()) -> "DaysAdjustment":
        """Shift by business days."""
        return cls(days, True, frozenset(holidays))

    @classmethod
    def of_calendar_days(cls, days: int) -> "DaysAdjustment":
        """Shift by calendar days."""
        return cls(days, False)

    def adjust(self, d: date) -> date:
        """Apply the shift to a date."""
        if self.business_days:
            return add_business_days(d, self.days, self.holidays)
        return d + timedelta(days=self.days)


@dataclass(frozen=True)
class TermDepositConvention:
    """
    Conventions of a money-market term deposit.

    Attributes:
        currency: Currency code
        day_count: Accrual day count of the simple rate
        business_day_adjustment: Adjustment applied to the end date
        spot_offset: Lag from the snapshot date to the start (spot) date
    """
    currency: str = "USD"
    day_count: DayCount = DayCount.ACT_360
    business_day_adjustment: BusinessDayAdjustment = field(
        default_factory=lambda: BusinessDayAdjustment(BusinessDayConvention.MODIFIED_FOLLOWING))
    spot_offset: DaysAdjustment = field(default_factory=lambda: DaysAdjustment.of_business_days(2))

    @classmethod
    def usd(cls, spot_days: int = 2) -> "TermDepositConvention":
        """Standard USD deposit conventions."""
        return cls(
            currency="USD",
            day_count=DayCount.ACT_360,
            business_day_adjustment=BusinessDayAdjustment(BusinessDayConvention.MODIFIED_FOLLOWING),
            spot_offset=DaysAdjustment.of_business_days(spot_days),
        )

    @classmethod
    def eur(cls, spot_days: int = 2) -> "TermDepositConvention":
        """Standard EUR deposit conventions."""
        return cls(
            currency="EUR",
            day_count=DayCount.ACT_360,
            business_day_adjustment=BusinessDayAdjustment(BusinessDayConvention.MODIFIED_FOLLOWING),
            spot_offset=DaysAdjustment.of_business_days(spot_days),
        )


@dataclass(frozen=True)
class FixedSwapConvention:
    """
    Conventions of the fixed leg of a fixed/float swap.

    Only the fixed leg enters the ISDA discount curve build; the floating
    leg is valued at par.

    Attributes:
        currency: Currency code
        day_count: Fixed leg accrual day count
        payment_months: Months between fixed payments (6 = semi-annual)
        business_day_adjustment: Adjustment applied to every schedule date
        spot_offset: Lag from the snapshot date to the start (spot) date
    """
    currency: str = "USD"
    day_count: DayCount = DayCount.THIRTY_360
    payment_months: int = 6
    business_day_adjustment: BusinessDayAdjustment = field(
        default_factory=lambda: BusinessDayAdjustment(BusinessDayConvention.MODIFIED_FOLLOWING))
    spot_offset: DaysAdjustment = field(default_factory=lambda: DaysAdjustment.of_business_days(2))

    def __post_init__(self):
        if self.payment_months <= 0 or 12 % self.payment_months != 0:
            raise CurveConfigurationError(f"Unsupported payment frequency: {self.payment_months} months")

    @classmethod
    def usd(cls, spot_days: int = 2) -> "FixedSwapConvention":
        """Standard USD fixed leg conventions (30/360 semi-annual)."""
        return cls(
            currency="USD",
            day_count=DayCount.THIRTY_360,
            payment_months=6,
            business_day_adjustment=BusinessDayAdjustment(BusinessDayConvention.MODIFIED_FOLLOWING),
            spot_offset=DaysAdjustment.of_business_days(spot_days),
        )

    @classmethod
    def eur(cls, spot_days: int = 2) -> "FixedSwapConvention":
        """Standard EUR fixed leg conventions (30/360 annual)."""
        return cls(
            currency="EUR",
            day_count=DayCount.THIRTY_360,
            payment_months=12,
            business_day_adjustment=BusinessDayAdjustment(BusinessDayConvention.MODIFIED_FOLLOWING),
            spot_offset=DaysAdjustment.of_business_days(spot_days),
        )


@dataclass(frozen=True)
class CdsConvention:
    """
    Conventions of a single-name CDS.

    Attributes:
        currency: Currency code
        day_count: Premium accrual day count
        payment_months: Months between premium payments
        business_day_adjustment: Adjustment of intermediate schedule and payment dates
        start_date_adjustment: Adjustment of the accrual start date
        stub_convention: Placement of the irregular initial period
        step_in_offset: Lag from trade date to step-in (protection) date
        settlement_offset: Lag from trade date to cash settlement
        protection_from_start_of_day: Protection starts at the beginning of the step-in day
        pay_accrued_on_default: Accrued premium is paid on default
    """
    currency: str = "USD"
    day_count: DayCount = DayCount.ACT_360
    payment_months: int = 3
    business_day_adjustment: BusinessDayAdjustment = field(
        default_factory=lambda: BusinessDayAdjustment(BusinessDayConvention.FOLLOWING))
    start_date_adjustment: BusinessDayAdjustment = field(default_factory=BusinessDayAdjustment.none)
    stub_convention: StubConvention = StubConvention.SMART_INITIAL
    step_in_offset: DaysAdjustment = field(default_factory=lambda: DaysAdjustment.of_calendar_days(1))
    settlement_offset: DaysAdjustment = field(default_factory=lambda: DaysAdjustment.of_business_days(3))
    protection_from_start_of_day: bool = True
    pay_accrued_on_default: bool = True

    def __post_init__(self):
        if self.payment_months <= 0:
            raise CurveConfigurationError(f"Unsupported payment frequency: {self.payment_months} months")

    @classmethod
    def standard(cls, currency: str = "USD", holidays: Iterable[date] = ()) -> "CdsConvention":
        """Standard quarterly ACT/360 CDS conventions."""
        holidays = frozenset(holidays)
        return cls(
            currency=currency,
            day_count=DayCount.ACT_360,
            payment_months=3,
            business_day_adjustment=BusinessDayAdjustment(BusinessDayConvention.FOLLOWING, holidays),
            settlement_offset=DaysAdjustment.of_business_days(3, holidays),
        )


__all__ = [
    "DayCount",
    "BusinessDayConvention",
    "StubConvention",
    "year_fraction",
    "is_business_day",
    "adjust_business_day",
    "add_business_days",
    "BusinessDayAdjustment",
    "DaysAdjustment",
    "TermDepositConvention",
    "FixedSwapConvention",
    "CdsConvention",
]
