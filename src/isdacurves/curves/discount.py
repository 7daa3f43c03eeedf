"""
ISDA discount curve bootstrapping.

Builds a zero rate curve from term deposit and swap quotes:
1. Resolve every node from the snapshot date and validate the node set
2. Solve node zero rates in pillar order, times measured from the spot date
3. Compute the analytic Jacobian of node zero rates to quotes
4. Shift the curve from the spot date to the valuation date

Deposits have a closed form. Swaps are solved one-dimensionally on the
par condition R * sum(yf_j * P(t_j)) = 1 - P(t_n), where only the last
node is unknown: a multiplicative bracket plus Brent for ordinary rates,
Newton on the analytic derivative for rates close to zero.
"""

from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple
import logging

import numpy as np

from ..config import CalibrationSettings
from ..conventions import DayCount, year_fraction
from ..exceptions import CalibrationError, CurveConfigurationError, RootFindingError
from ..market_data import MarketQuoteSet
from .curve import DiscountCurve
from .instruments import DiscountCurveNode, NodeKind, ResolvedDeposit, ResolvedSwap
from .interpolation import ProductLinearInterpolator
from .jacobian import bootstrap_jacobian, reorder_columns
from .solvers import bracket_root, brent_root, newton_root
from .validation import CurveNodeValidator

logger = logging.getLogger(__name__)


@dataclass
class _SwapLeg:
    """Fixed leg of a swap node on the curve time axis."""
    year_fractions: np.ndarray
    weights: np.ndarray  # d(rt(t_j))/d(r_k), one row per payment


class IsdaDiscountCurveCalibrator:
    """
    Bootstrap an ISDA compliant discount curve from deposit and swap quotes.

    Attributes:
        settings: Root finder and Jacobian settings
        validator: Node validator; pillar times are measured with the day count of each calibration
    """

    def __init__(
        self,
        settings: Optional[CalibrationSettings] = None,
        validator: Optional[CurveNodeValidator] = None
    ):
        self.settings = settings or CalibrationSettings.default()
        self.validator = validator

    def calibrate(
        self,
        nodes: Sequence[DiscountCurveNode],
        valuation_date: date,
        quotes: MarketQuoteSet,
        day_count: DayCount = DayCount.ACT_365F,
        name: str = "",
        currency: Optional[str] = None
    ) -> DiscountCurve:
        """
        Calibrate the discount curve.

        Args:
            nodes: Deposit and swap nodes, in any order
            valuation_date: Date of time 0 of the resulting curve
            quotes: Market quotes; its snapshot date fixes the spot dates
            day_count: Curve day count
            name: Curve name
            currency: Currency code (default: currency of the first node)

        Returns:
            DiscountCurve with the Jacobian attached (rows = remaining curve
            nodes, columns = quotes in the order of nodes)

        Raises:
            CurveConfigurationError: If the node set is invalid or a quote is missing
            CalibrationError: If a node cannot be solved
        """
        nodes = list(nodes)
        if not nodes:
            raise CurveConfigurationError("At least one curve node is required")
        if currency is None:
            currency = nodes[0].convention.currency
        name = name or f"{currency}-ISDA"

        resolved = [node.resolve(quotes.snapshot_date) for node in nodes]
        validator = self.validator or CurveNodeValidator(day_count)
        order = validator.order_discount_nodes(resolved, day_count)
        ordered = [resolved[i] for i in order]
        rates = np.array([quotes.value(node.quote_id) for node in ordered])
        quote_ids = [node.quote_id for node in ordered]

        spot = ordered[0].start_date
        times = np.array([year_fraction(spot, node.pillar_date, day_count) for node in ordered])
        interpolator = ProductLinearInterpolator()
        interpolator.fit(times, np.zeros(len(times)))

        zero_rates = np.zeros(len(ordered))
        node_derivatives = np.zeros((len(ordered), len(ordered)))
        quote_derivatives = np.zeros(len(ordered))

        for i, node in enumerate(ordered):
            if node.kind == NodeKind.TERM_DEPOSIT:
                zero_rates[i] = self._solve_deposit(node, rates[i], times[i], i)
                node_derivatives[i, i] = times[i]
                quote_derivatives[i] = -node.year_fraction / (1.0 + node.year_fraction * rates[i])
            else:
                leg = self._swap_leg(node, spot, day_count, interpolator)
                zero_rates[i] = self._solve_swap(leg, rates[i], zero_rates, i, node.quote_id)
                pv_derivs, annuity = self._swap_derivatives(leg, rates[i], zero_rates)
                node_derivatives[i, :] = pv_derivs
                quote_derivatives[i] = annuity
            logger.debug("Solved node %s (%s): zero rate %.15g at t=%.10f", i, node.quote_id, zero_rates[i], times[i])

        offset = year_fraction(spot, valuation_date, day_count)
        new_times, new_rates, transform, kept = self._shift_to_valuation(
            times, zero_rates, offset, interpolator
        )
        node_ids = [quote_ids[k] for k in kept]

        jacobian = None
        column_ids = None
        if self.settings.compute_jacobian:
            jac_spot = bootstrap_jacobian(node_derivatives, quote_derivatives)
            jacobian = reorder_columns(transform @ jac_spot, order)
            column_ids = [node.quote_id for node in resolved]

        logger.info(
            "Calibrated discount curve %s: %s nodes, %s parameters, valuation %s, spot %s",
            name, len(ordered), len(new_times), valuation_date, spot
        )
        return DiscountCurve(
            valuation_date,
            new_times,
            new_rates,
            day_count,
            name=name,
            jacobian=jacobian,
            node_ids=node_ids,
            quote_ids=column_ids,
            currency=currency,
        )

    def _solve_deposit(self, node: ResolvedDeposit, rate: float, t: float, index: int) -> float:
        growth = 1.0 + node.year_fraction * rate
        if growth <= 0:
            raise CalibrationError(
                f"Deposit '{node.quote_id}' rate {rate} implies a non-positive growth factor",
                node_index=index, quote_id=node.quote_id
            )
        return float(np.log(growth) / t)

    @staticmethod
    def _swap_leg(node: ResolvedSwap, spot: date, day_count: DayCount,
                  interpolator: ProductLinearInterpolator) -> _SwapLeg:
        pay_times = [year_fraction(spot, d, day_count) for d in node.payment_dates]
        weights = np.array([interpolator.weights(t) for t in pay_times])
        return _SwapLeg(np.array(node.year_fractions), weights)

    @staticmethod
    def _swap_pv(leg: _SwapLeg, rate: float, zero_rates: np.ndarray) -> float:
        dfs = np.exp(-leg.weights @ zero_rates)
        return float(rate * np.dot(leg.year_fractions, dfs) - 1.0 + dfs[-1])

    @staticmethod
    def _swap_derivatives(leg: _SwapLeg, rate: float, zero_rates: np.ndarray) -> Tuple[np.ndarray, float]:
        """d(PV)/d(zero rates) and d(PV)/d(rate)."""
        dfs = np.exp(-leg.weights @ zero_rates)
        coupon = rate * leg.year_fractions * dfs
        derivs = -(coupon @ leg.weights) - dfs[-1] * leg.weights[-1]
        return derivs, float(np.dot(leg.year_fractions, dfs))

    def _solve_swap(self, leg: _SwapLeg, rate: float, zero_rates: np.ndarray, index: int, quote_id: str) -> float:
        trial = zero_rates.copy()

        def pv(x: float) -> float:
            trial[index] = x
            return self._swap_pv(leg, rate, trial)

        def pv_and_derivative(x: float) -> Tuple[float, float]:
            trial[index] = x
            derivs, _ = self._swap_derivatives(leg, rate, trial)
            return self._swap_pv(leg, rate, trial), float(derivs[index])

        guess = zero_rates[index - 1] if index > 0 else rate
        settings = self.settings
        try:
            if abs(guess) < settings.low_value_threshold:
                result = newton_root(
                    pv_and_derivative, guess,
                    xtol=settings.root_tolerance, rtol=settings.relative_tolerance,
                    max_iter=settings.max_iterations
                )
            else:
                lower, upper = bracket_root(
                    pv, 0.8 * guess, 1.25 * guess,
                    ratio=settings.bracket_ratio, max_steps=settings.max_bracket_steps
                )
                result = brent_root(
                    pv, lower, upper,
                    xtol=settings.root_tolerance, rtol=settings.relative_tolerance,
                    max_iter=settings.max_iterations
                )
        except RootFindingError as exc:
            raise CalibrationError(
                f"Failed to calibrate swap node {index} ('{quote_id}'): {exc}",
                node_index=index, quote_id=quote_id
            ) from exc
        logger.debug("Swap node %s solved by %s in %s iterations", index, result.method, result.iterations)
        return result.root

    @staticmethod
    def _shift_to_valuation(
        times: np.ndarray,
        zero_rates: np.ndarray,
        offset: float,
        interpolator: ProductLinearInterpolator
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray, List[int]]:
        """
        Re-express a curve built from spot as a curve from the valuation date.

        Discount factors are rebased, P'(t) = P(t + offset) / P(offset), and
        nodes at or before the valuation date are dropped. If no node remains,
        a single node carries the forward rate of the last segment.

        Returns:
            (times, zero rates, d(new rates)/d(old rates), indices of kept nodes)
        """
        n = len(times)
        if offset == 0.0:
            return times, zero_rates, np.eye(n), list(range(n))

        if offset >= times[-1]:
            transform = np.zeros((1, n))
            if n == 1:
                transform[0, 0] = 1.0
                rate = zero_rates[0]
            else:
                dt = times[-1] - times[-2]
                rate = (times[-1] * zero_rates[-1] - times[-2] * zero_rates[-2]) / dt
                transform[0, -2] = -times[-2] / dt
                transform[0, -1] = times[-1] / dt
            return np.array([times[-1] - offset]), np.array([rate]), transform, [n - 1]

        weights = interpolator.weights(offset)
        eta = float(weights @ zero_rates)
        kept = [i for i in range(n) if times[i] > offset]
        new_times = np.array([times[i] - offset for i in kept])
        new_rates = np.array([(times[i] * zero_rates[i] - eta) / (times[i] - offset) for i in kept])
        transform = np.zeros((len(kept), n))
        for row, i in enumerate(kept):
            transform[row, :] = -weights
            transform[row, i] += times[i]
            transform[row, :] /= times[i] - offset
        return new_times, new_rates, transform, kept

    def implied_quotes(
        self,
        curve: DiscountCurve,
        nodes: Sequence[DiscountCurveNode],
        snapshot_date: date
    ) -> Dict[str, float]:
        """
        Reprice nodes against a calibrated curve.

        Discount factors are taken relative to each node's spot date.

        Returns:
            Implied par rate of each node keyed by quote id
        """
        implied = {}
        for node in nodes:
            resolved = node.resolve(snapshot_date)
            df_spot = curve.discount_factor(resolved.start_date)
            if resolved.kind == NodeKind.TERM_DEPOSIT:
                df_end = curve.discount_factor(resolved.end_date) / df_spot
                implied[node.quote_id] = (1.0 / df_end - 1.0) / resolved.year_fraction
            else:
                dfs = np.array([curve.discount_factor(d) for d in resolved.payment_dates]) / df_spot
                annuity = float(np.dot(resolved.year_fractions, dfs))
                implied[node.quote_id] = (1.0 - dfs[-1]) / annuity
        return implied

    def present_values(
        self,
        curve: DiscountCurve,
        nodes: Sequence[DiscountCurveNode],
        quotes: MarketQuoteSet
    ) -> Dict[str, float]:
        """
        Present value at spot of each node traded at its quoted rate.

        Deposits and swaps have unit notional; a calibrated curve gives zero
        for every node.

        Returns:
            Present value of each node keyed by quote id
        """
        pvs = {}
        for node in nodes:
            resolved = node.resolve(quotes.snapshot_date)
            rate = quotes.value(node.quote_id)
            df_spot = curve.discount_factor(resolved.start_date)
            if resolved.kind == NodeKind.TERM_DEPOSIT:
                df_end = curve.discount_factor(resolved.end_date) / df_spot
                pvs[node.quote_id] = (1.0 + resolved.year_fraction * rate) * df_end - 1.0
            else:
                dfs = np.array([curve.discount_factor(d) for d in resolved.payment_dates]) / df_spot
                pvs[node.quote_id] = rate * float(np.dot(resolved.year_fractions, dfs)) - 1.0 + dfs[-1]
        return pvs

    def repricing_errors(
        self,
        curve: DiscountCurve,
        nodes: Sequence[DiscountCurveNode],
        quotes: MarketQuoteSet
    ) -> Dict[str, float]:
        """
        Verify that nodes reprice to their quotes.

        Returns dict of {quote_id: error} where error = implied - quoted.
        """
        implied = self.implied_quotes(curve, nodes, quotes.snapshot_date)
        return {quote_id: value - quotes.value(quote_id) for quote_id, value in implied.items()}


__all__ = ["IsdaDiscountCurveCalibrator"]
