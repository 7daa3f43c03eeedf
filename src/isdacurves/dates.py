"""
Date utilities for curve instruments.

Provides:
- Tenor parsing and date arithmetic
- Backward schedule generation with initial stub handling
- Fixed leg accrual schedules for swap curve nodes
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Tuple
import calendar
import re

from .conventions import (
    BusinessDayAdjustment,
    DayCount,
    StubConvention,
    year_fraction,
)
from .exceptions import CurveConfigurationError

# Initial stubs shorter than this are merged into the next period by SMART_INITIAL
SMART_STUB_DAYS = 7


class DateUtils:
    """Utility class for date manipulation in curve contexts."""

    # Tenor regex pattern: number + unit (D/W/M/Y)
    TENOR_PATTERN = re.compile(r'^(\d+)([DWMY])$', re.IGNORECASE)

    @staticmethod
    def parse_tenor(tenor: str) -> Tuple[int, str]:
        """
        Parse a tenor string into (amount, unit).

        Args:
            tenor: Tenor string like "1D", "3M", "2Y"

        Returns:
            Tuple of (amount, unit) where unit is D/W/M/Y

        Raises:
            CurveConfigurationError: If tenor format is invalid
        """
        match = DateUtils.TENOR_PATTERN.match(tenor.upper().strip())
        if not match:
            raise CurveConfigurationError(f"Invalid tenor format: {tenor}. Expected format like '3M', '2Y'")

        return int(match.group(1)), match.group(2).upper()

    @staticmethod
    def add_months(start: date, months: int) -> date:
        """
        Add a (possibly negative) number of months, clamping to month end.

        Args:
            start: Starting date
            months: Months to add

        Returns:
            Shifted date
        """
        total = start.year * 12 + start.month - 1 + months
        year, month = divmod(total, 12)
        month += 1
        day = min(start.day, calendar.monthrange(year, month)[1])
        return date(year, month, day)

    @staticmethod
    def add_tenor(start: date, tenor: str) -> date:
        """
        Add a tenor to a date without business day adjustment.

        Days and weeks are calendar periods; months and years preserve
        the day of month where possible and clamp to month end otherwise.

        Args:
            start: Starting date
            tenor: Tenor string (e.g., "1D", "3M", "2Y")

        Returns:
            End date
        """
        amount, unit = DateUtils.parse_tenor(tenor)

        if unit == 'D':
            return start + timedelta(days=amount)
        elif unit == 'W':
            return start + timedelta(weeks=amount)
        elif unit == 'M':
            return DateUtils.add_months(start, amount)
        elif unit == 'Y':
            return DateUtils.add_months(start, 12 * amount)

        raise CurveConfigurationError(f"Unknown tenor unit: {unit}")

    @staticmethod
    def tenor_to_years(tenor: str) -> float:
        """
        Convert tenor to approximate year fraction.

        Args:
            tenor: Tenor string

        Returns:
            Approximate years as float
        """
        amount, unit = DateUtils.parse_tenor(tenor)

        if unit == 'D':
            return amount / 365.0
        elif unit == 'W':
            return amount * 7 / 365.0
        elif unit == 'M':
            return amount / 12.0
        elif unit == 'Y':
            return float(amount)

        raise CurveConfigurationError(f"Unknown tenor unit: {unit}")

    @staticmethod
    def generate_schedule(
        start: date,
        end: date,
        months: int,
        stub: StubConvention = StubConvention.SHORT_INITIAL
    ) -> List[date]:
        """
        Generate unadjusted schedule dates backward from the end date.

        Each date is end minus a whole number of periods, so the day of month
        follows the end date. An irregular first period is kept short, merged
        into the following period (LONG_INITIAL), or merged only when it is
        shorter than a week (SMART_INITIAL).

        Args:
            start: Schedule start (accrual start)
            end: Schedule end (maturity)
            months: Months per period
            stub: Initial stub convention

        Returns:
            Unadjusted dates, starting with start and ending with end
        """
        if months <= 0:
            raise CurveConfigurationError("Period length must be positive")
        if end <= start:
            raise CurveConfigurationError(f"Schedule end {end} must be after start {start}")

        backward = [end]
        k = 1
        while True:
            prev_date = DateUtils.add_months(end, -k * months)
            if prev_date <= start:
                break
            backward.append(prev_date)
            k += 1
        dates = backward[::-1]

        on_cycle = DateUtils.add_months(end, -k * months) == start
        if not on_cycle and len(dates) > 1:
            if stub == StubConvention.LONG_INITIAL:
                dates = dates[1:]
            elif stub == StubConvention.SMART_INITIAL and (dates[0] - start).days < SMART_STUB_DAYS:
                dates = dates[1:]

        return [start] + dates


@dataclass
class ScheduleInfo:
    """Container for schedule with accrual information."""
    payment_dates: List[date]
    accrual_starts: List[date]
    accrual_ends: List[date]
    year_fractions: List[float]
    day_count: DayCount


def generate_fixed_leg_schedule(
    spot: date,
    maturity: date,
    payment_months: int,
    day_count: DayCount,
    adjustment: BusinessDayAdjustment
) -> ScheduleInfo:
    """
    Generate the fixed leg schedule of a swap starting at spot.

    Payment dates are the business-day adjusted schedule dates; accrual
    periods run between consecutive adjusted dates.

    Args:
        spot: Swap start date (already a business day)
        maturity: Unadjusted maturity date
        payment_months: Months between fixed payments
        day_count: Fixed leg day count
        adjustment: Business day adjustment of schedule dates

    Returns:
        ScheduleInfo with payment dates and accrual fractions
    """
    unadjusted = DateUtils.generate_schedule(spot, maturity, payment_months, StubConvention.SHORT_INITIAL)
    payment_dates = [adjustment.adjust(d) for d in unadjusted[1:]]

    accrual_starts = []
    accrual_ends = []
    yfs = []

    prev = spot
    for pmt_date in payment_dates:
        accrual_starts.append(prev)
        accrual_ends.append(pmt_date)
        yfs.append(year_fraction(prev, pmt_date, day_count))
        prev = pmt_date

    return ScheduleInfo(
        payment_dates=payment_dates,
        accrual_starts=accrual_starts,
        accrual_ends=accrual_ends,
        year_fractions=yfs,
        day_count=day_count
    )


__all__ = [
    "DateUtils",
    "ScheduleInfo",
    "generate_fixed_leg_schedule",
    "SMART_STUB_DAYS",
]
