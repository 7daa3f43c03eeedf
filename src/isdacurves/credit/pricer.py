"""
ISDA Standard Model CDS pricing.

Provides the protection leg, the risky annuity (premium leg per unit of
spread, including accrual on default) and the price of a CDS, valued with
an ISDA compliant discount curve and survival curve. Both curves have
piecewise constant forward (hazard) rates, so the default-time integrals
are computed exactly segment by segment between the union of the curve
knots.

Accrual on default formulas:
- ORIGINAL_ISDA: ISDA C code, with a half-day shift of the accrual time
- MARKIT_FIX: Markit's correction, ignoring accrual before the segment start
- CORRECT: the exact integral (ISDA formula without the half-day shift)

The price sensitivities to the survival curve nodes are computed
analytically from the same segment formulas.
"""

from datetime import date
from enum import Enum
from typing import Optional, Tuple
import math

import numpy as np

from ..conventions import year_fraction
from ..curves.curve import DiscountCurve, SurvivalCurve
from ..exceptions import CurveConfigurationError
from .cds import ResolvedCds

# Knots closer than half a day are treated as the same time
KNOT_TOLERANCE = 1.0 / 730
HALF_DAY = 1.0 / 730
_SERIES_THRESHOLD = 0.5
_SERIES_TERMS = 30


class AccrualOnDefaultFormula(Enum):
    """Accrual on default integration formula."""
    ORIGINAL_ISDA = "OriginalISDA"
    MARKIT_FIX = "MarkitFix"
    CORRECT = "Correct"

    @property
    def omega(self) -> float:
        return HALF_DAY if self == AccrualOnDefaultFormula.ORIGINAL_ISDA else 0.0


def epsilon(x: float) -> float:
    """(exp(x) - 1) / x, equal to 1 at x = 0."""
    if abs(x) < _SERIES_THRESHOLD:
        total, term = 0.0, 1.0
        for k in range(_SERIES_TERMS):
            term_k = term / (k + 1)
            total += term_k
            term *= x / (k + 1)
        return total
    return math.expm1(x) / x


def epsilon_p(x: float) -> float:
    """First derivative of epsilon."""
    if abs(x) < _SERIES_THRESHOLD:
        total, term = 0.0, 1.0
        for k in range(_SERIES_TERMS):
            total += term / (k + 2)
            term *= x / (k + 1)
        return total
    return ((x - 1.0) * math.expm1(x) + x) / (x * x)


def epsilon_pp(x: float) -> float:
    """Second derivative of epsilon."""
    if abs(x) < _SERIES_THRESHOLD:
        total, term = 0.0, 1.0
        for k in range(_SERIES_TERMS):
            total += term / (k + 3)
            term *= x / (k + 1)
        return total
    return (math.exp(x) * (x * x - 2.0 * x + 2.0) - 2.0) / (x * x * x)


def integration_points(start: float, end: float, *knot_sets: np.ndarray) -> np.ndarray:
    """
    Integration grid: start, curve knots strictly inside (start, end), end.

    Knots within half a day of their predecessor or of end are merged.
    """
    knots = np.sort(np.concatenate([np.asarray(k, dtype=np.float64) for k in knot_sets]))
    knots = knots[(knots > start) & (knots < end)]
    points = [start]
    for k in knots:
        if abs(k - points[-1]) > KNOT_TOLERANCE:
            points.append(float(k))
    if abs(points[-1] - end) > KNOT_TOLERANCE or len(points) == 1:
        points.append(end)
    else:
        points[-1] = end
    return np.array(points)


def truncate_points(start: float, end: float, points: np.ndarray) -> np.ndarray:
    """Restrict a grid to [start, end], keeping both bounds."""
    inner = points[(points > start) & (points < end)]
    return np.concatenate([[start], inner, [end]])


class IsdaCdsPricer:
    """
    ISDA Standard Model CDS pricer.

    Attributes:
        formula: Accrual on default formula
    """

    def __init__(self, formula: AccrualOnDefaultFormula = AccrualOnDefaultFormula.ORIGINAL_ISDA):
        self.formula = formula

    # ------------------------------------------------------------------
    # Protection leg
    # ------------------------------------------------------------------

    def _protection_integral(
        self,
        cds: ResolvedCds,
        discount: DiscountCurve,
        survival: SurvivalCurve,
        effective_start_date: date,
        with_gradient: bool = False
    ) -> Tuple[float, Optional[np.ndarray]]:
        grid = integration_points(
            discount.relative_time(effective_start_date),
            discount.relative_time(cds.protection_end_date),
            discount.times,
            survival.times,
        )
        grad = np.zeros(survival.parameter_count) if with_gradient else None
        pv = 0.0
        ht0 = survival.rt(grid[0])
        rt0 = discount.rt(grid[0])
        b0 = math.exp(-rt0 - ht0)
        w0 = survival.rt_sensitivity(grid[0]) if with_gradient else None
        for t in grid[1:]:
            ht1 = survival.rt(t)
            rt1 = discount.rt(t)
            b1 = math.exp(-rt1 - ht1)
            dht = ht1 - ht0
            y = -(dht + rt1 - rt0)
            g = epsilon(y)
            pv += dht * b0 * g
            if with_gradient:
                w1 = survival.rt_sensitivity(t)
                gp = epsilon_p(y)
                grad += (-b0 * g * (1.0 + dht) + dht * b0 * gp) * w0
                grad += (b0 * g - dht * b0 * gp) * w1
                w0 = w1
            ht0, rt0, b0 = ht1, rt1, b1
        return pv, grad

    def protection_leg(
        self,
        cds: ResolvedCds,
        discount: DiscountCurve,
        survival: SurvivalCurve,
        recovery_rate: float,
        reference_date: Optional[date] = None
    ) -> float:
        """
        Value of the protection leg per unit notional.

        Args:
            cds: Resolved CDS
            discount: Discount curve
            survival: Survival curve of the reference entity
            recovery_rate: Recovery rate
            reference_date: Date values are rolled to (default: settlement date)

        Returns:
            Protection leg value at the reference date
        """
        valuation_date = discount.valuation_date
        if cds.is_expired(valuation_date):
            return 0.0
        reference_date = reference_date or cds.settlement_date(valuation_date)
        effective_start = cds.effective_start_date(cds.step_in_date(valuation_date))
        pv, _ = self._protection_integral(cds, discount, survival, effective_start)
        return (1.0 - recovery_rate) * pv / discount.discount_factor(reference_date)

    # ------------------------------------------------------------------
    # Premium leg
    # ------------------------------------------------------------------

    def _accrual_on_default(
        self,
        period,
        effective_start_date: date,
        grid: np.ndarray,
        discount: DiscountCurve,
        survival: SurvivalCurve,
        grad: Optional[np.ndarray]
    ) -> float:
        start_date = max(period.effective_start_date, effective_start_date)
        if start_date >= period.effective_end_date:
            return 0.0

        knots = truncate_points(
            discount.relative_time(start_date),
            discount.relative_time(period.effective_end_date),
            grid,
        )
        markit = self.formula == AccrualOnDefaultFormula.MARKIT_FIX
        omega = self.formula.omega
        eff_start = discount.relative_time(period.effective_start_date)
        scale = period.year_fraction / year_fraction(period.start_date, period.end_date, discount.day_count)

        ht0 = survival.rt(knots[0])
        rt0 = discount.rt(knots[0])
        b0 = math.exp(-rt0 - ht0)
        w0 = survival.rt_sensitivity(knots[0]) if grad is not None else None
        t0 = knots[0] - eff_start + omega
        pv = 0.0
        for j in range(1, len(knots)):
            t = knots[j]
            dt = knots[j] - knots[j - 1]
            ht1 = survival.rt(t)
            rt1 = discount.rt(t)
            b1 = math.exp(-rt1 - ht1)
            dht = ht1 - ht0
            y = -(dht + rt1 - rt0)
            if markit:
                g = dt * epsilon_p(y)
                gp = dt * epsilon_pp(y) if grad is not None else 0.0
            else:
                g = t0 * epsilon(y) + dt * epsilon_p(y)
                gp = t0 * epsilon_p(y) + dt * epsilon_pp(y) if grad is not None else 0.0
                t0 = t - eff_start + omega
            pv += dht * b0 * g
            if grad is not None:
                w1 = survival.rt_sensitivity(t)
                grad += scale * (-b0 * g * (1.0 + dht) + dht * b0 * gp) * w0
                grad += scale * (b0 * g - dht * b0 * gp) * w1
                w0 = w1
            ht0, rt0, b0 = ht1, rt1, b1
        return scale * pv

    def _risky_annuity_dirty(
        self,
        cds: ResolvedCds,
        discount: DiscountCurve,
        survival: SurvivalCurve,
        step_in_date: date,
        effective_start_date: date,
        with_gradient: bool = False
    ) -> Tuple[float, Optional[np.ndarray]]:
        grad = np.zeros(survival.parameter_count) if with_gradient else None
        pv = 0.0
        for period in cds.periods:
            if step_in_date < period.end_date:
                p = discount.discount_factor(period.payment_date)
                q = survival.survival_probability(period.effective_end_date)
                pv += period.year_fraction * p * q
                if with_gradient:
                    grad -= period.year_fraction * p * q * survival.rt_sensitivity(period.effective_end_date)

        if cds.pay_accrued_on_default:
            start = effective_start_date if len(cds.periods) == 1 else cds.accrual_start_date
            grid = integration_points(
                discount.relative_time(start),
                discount.relative_time(cds.protection_end_date),
                discount.times,
                survival.times,
            )
            for period in cds.periods:
                pv += self._accrual_on_default(period, effective_start_date, grid, discount, survival, grad)
        return pv, grad

    def risky_annuity(
        self,
        cds: ResolvedCds,
        discount: DiscountCurve,
        survival: SurvivalCurve,
        reference_date: Optional[date] = None,
        clean: bool = True
    ) -> float:
        """
        Premium leg value per unit of spread (RPV01).

        Args:
            cds: Resolved CDS
            discount: Discount curve
            survival: Survival curve of the reference entity
            reference_date: Date values are rolled to (default: settlement date)
            clean: Subtract the premium accrued up to step-in

        Returns:
            Risky annuity at the reference date
        """
        valuation_date = discount.valuation_date
        if cds.is_expired(valuation_date):
            return 0.0
        reference_date = reference_date or cds.settlement_date(valuation_date)
        step_in = cds.step_in_date(valuation_date)
        pv, _ = self._risky_annuity_dirty(cds, discount, survival, step_in, cds.effective_start_date(step_in))
        pv /= discount.discount_factor(reference_date)
        if clean:
            pv -= cds.accrued_year_fraction(step_in)
        return pv

    # ------------------------------------------------------------------
    # Price
    # ------------------------------------------------------------------

    def price(
        self,
        cds: ResolvedCds,
        discount: DiscountCurve,
        survival: SurvivalCurve,
        recovery_rate: float,
        fractional_spread: float,
        reference_date: Optional[date] = None,
        clean: bool = True
    ) -> float:
        """
        Price per unit notional of bought protection.

        price = protection leg - risky annuity * spread

        Args:
            cds: Resolved CDS
            discount: Discount curve
            survival: Survival curve of the reference entity
            recovery_rate: Recovery rate
            fractional_spread: Running coupon as a decimal
            reference_date: Date values are rolled to (default: settlement date)
            clean: Clean (accrued excluded) or dirty price

        Returns:
            Price, zero for an expired CDS
        """
        value, _ = self.price_and_sensitivity(
            cds, discount, survival, recovery_rate, fractional_spread, reference_date, clean, with_gradient=False
        )
        return value

    def price_sensitivity(
        self,
        cds: ResolvedCds,
        discount: DiscountCurve,
        survival: SurvivalCurve,
        recovery_rate: float,
        fractional_spread: float,
        reference_date: Optional[date] = None
    ) -> np.ndarray:
        """
        Derivative of the price with respect to each survival curve node hazard rate.

        Accrued premium does not depend on the survival curve, so clean and
        dirty prices share the sensitivity.
        """
        _, grad = self.price_and_sensitivity(
            cds, discount, survival, recovery_rate, fractional_spread, reference_date, True, with_gradient=True
        )
        return grad

    def price_and_sensitivity(
        self,
        cds: ResolvedCds,
        discount: DiscountCurve,
        survival: SurvivalCurve,
        recovery_rate: float,
        fractional_spread: float,
        reference_date: Optional[date] = None,
        clean: bool = True,
        with_gradient: bool = True
    ) -> Tuple[float, Optional[np.ndarray]]:
        """Price and, optionally, its gradient to the survival curve nodes."""
        if not 0.0 <= recovery_rate <= 1.0:
            raise CurveConfigurationError(f"Recovery rate must be in [0, 1], got {recovery_rate}")
        valuation_date = discount.valuation_date
        if survival.valuation_date != valuation_date:
            raise CurveConfigurationError(
                f"Survival curve valuation date {survival.valuation_date} differs from "
                f"discount curve valuation date {valuation_date}"
            )
        if cds.is_expired(valuation_date):
            return 0.0, (np.zeros(survival.parameter_count) if with_gradient else None)

        reference_date = reference_date or cds.settlement_date(valuation_date)
        step_in = cds.step_in_date(valuation_date)
        effective_start = cds.effective_start_date(step_in)
        df_ref = discount.discount_factor(reference_date)
        lgd = 1.0 - recovery_rate

        protection, protection_grad = self._protection_integral(
            cds, discount, survival, effective_start, with_gradient
        )
        annuity, annuity_grad = self._risky_annuity_dirty(
            cds, discount, survival, step_in, effective_start, with_gradient
        )
        rpv01 = annuity / df_ref
        if clean:
            rpv01 -= cds.accrued_year_fraction(step_in)
        value = lgd * protection / df_ref - rpv01 * fractional_spread

        grad = None
        if with_gradient:
            grad = (lgd * protection_grad - fractional_spread * annuity_grad) / df_ref
        return value, grad

    def par_spread(
        self,
        cds: ResolvedCds,
        discount: DiscountCurve,
        survival: SurvivalCurve,
        recovery_rate: float,
        reference_date: Optional[date] = None
    ) -> float:
        """Running spread at which the clean price is zero."""
        valuation_date = discount.valuation_date
        if cds.is_expired(valuation_date):
            raise CurveConfigurationError(f"CDS protection ended on {cds.protection_end_date}")
        protection = self.protection_leg(cds, discount, survival, recovery_rate, reference_date)
        return protection / self.risky_annuity(cds, discount, survival, reference_date, clean=True)


__all__ = [
    "AccrualOnDefaultFormula",
    "IsdaCdsPricer",
    "epsilon",
    "epsilon_p",
    "epsilon_pp",
    "integration_points",
    "truncate_points",
]
