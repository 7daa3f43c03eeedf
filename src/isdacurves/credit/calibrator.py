"""
ISDA credit curve bootstrapping.

Builds a survival curve for one legal entity from CDS quotes, given a
discount curve and a constant recovery rate:
1. Resolve and order the CDS nodes by protection end date
2. Start from a flat guess per node, (coupon + upfront / t) / (1 - R)
3. Solve each node hazard rate so the CDS clean price matches its quote
4. Compute the analytic Jacobian of node hazard rates to quotes

Par spread quotes price to zero with the spread as running coupon; points
upfront quotes price to the quote with the node's fixed coupon.
"""

from typing import List, Optional, Sequence, Tuple
import logging
import math

import numpy as np

from ..config import CalibrationSettings
from ..exceptions import CalibrationError, CurveConfigurationError, RootFindingError
from ..curves.curve import DiscountCurve, SurvivalCurve
from ..curves.jacobian import bootstrap_jacobian, reorder_columns
from ..curves.solvers import bracket_root, brent_root, newton_root
from ..curves.validation import CurveNodeValidator
from ..market_data import MarketQuoteSet
from .cds import CdsNode, CdsQuoteType, ResolvedCds
from .pricer import AccrualOnDefaultFormula, IsdaCdsPricer
from .provider import CreditRatesProvider

logger = logging.getLogger(__name__)


class IsdaCreditCurveCalibrator:
    """
    Bootstrap an ISDA compliant credit curve from CDS quotes.

    Attributes:
        formula: Accrual on default formula used in pricing
        settings: Root finder and Jacobian settings
        validator: Node validator
    """

    def __init__(
        self,
        formula: AccrualOnDefaultFormula = AccrualOnDefaultFormula.ORIGINAL_ISDA,
        settings: Optional[CalibrationSettings] = None,
        validator: Optional[CurveNodeValidator] = None
    ):
        self.formula = formula
        self.pricer = IsdaCdsPricer(formula)
        self.settings = settings or CalibrationSettings.default()
        self.validator = validator or CurveNodeValidator()

    def calibrate(
        self,
        nodes: Sequence[CdsNode],
        quotes: MarketQuoteSet,
        provider: CreditRatesProvider,
        currency: Optional[str] = None,
        name: str = ""
    ) -> SurvivalCurve:
        """
        Calibrate the credit curve of the nodes' legal entity.

        The discount curve and recovery rates are taken from the provider.

        Args:
            nodes: CDS nodes of a single legal entity, in any order
            quotes: Market quotes
            provider: Rates provider holding discount curve and recovery rates
            currency: Currency (default: currency of the first node)
            name: Curve name

        Returns:
            SurvivalCurve with the Jacobian attached
        """
        legal_entity = self._legal_entity(nodes)
        currency = currency or nodes[0].convention.currency
        discount = provider.discount_curve(currency)
        recovery = provider.recovery_rates(legal_entity).recovery_rate
        return self.calibrate_curve(nodes, quotes, discount, recovery, currency, name)

    def calibrate_provider(
        self,
        nodes: Sequence[CdsNode],
        quotes: MarketQuoteSet,
        provider: CreditRatesProvider,
        currency: Optional[str] = None,
        name: str = ""
    ) -> CreditRatesProvider:
        """Calibrate and return a provider with the credit curve attached."""
        curve = self.calibrate(nodes, quotes, provider, currency, name)
        return provider.with_credit_curve(curve.legal_entity, curve.currency, curve)

    @staticmethod
    def _legal_entity(nodes: Sequence[CdsNode]) -> str:
        if len(nodes) == 0:
            raise CurveConfigurationError("At least one CDS node is required")
        entities = {node.legal_entity for node in nodes}
        if len(entities) != 1:
            raise CurveConfigurationError(f"CDS nodes refer to several legal entities: {sorted(entities)}")
        return entities.pop()

    def calibrate_curve(
        self,
        nodes: Sequence[CdsNode],
        quotes: MarketQuoteSet,
        discount: DiscountCurve,
        recovery_rate: float,
        currency: Optional[str] = None,
        name: str = ""
    ) -> SurvivalCurve:
        """
        Calibrate the credit curve against an explicit discount curve.

        Args:
            nodes: CDS nodes of a single legal entity, in any order
            quotes: Market quotes
            discount: Discount curve; its valuation date is the curve's
            recovery_rate: Constant recovery rate
            currency: Currency (default: currency of the first node)
            name: Curve name

        Returns:
            SurvivalCurve with the Jacobian attached (rows = nodes by
            maturity, columns = quotes in the order of nodes)

        Raises:
            CurveConfigurationError: If the node set is invalid or a quote is missing
            CalibrationError: If a node cannot be solved
        """
        legal_entity = self._legal_entity(nodes)
        nodes = list(nodes)
        currency = currency or nodes[0].convention.currency
        name = name or f"{legal_entity}-{currency}"
        if not 0.0 <= recovery_rate < 1.0:
            raise CurveConfigurationError(f"Recovery rate must be in [0, 1), got {recovery_rate}")

        valuation_date = discount.valuation_date
        resolved = [node.resolve() for node in nodes]
        order = self.validator.order_credit_nodes(resolved, valuation_date)
        ordered_nodes = [nodes[i] for i in order]
        ordered_cds = [resolved[i] for i in order]
        coupons_upfronts = [node.coupon_and_upfront(quotes) for node in ordered_nodes]

        lgd = 1.0 - recovery_rate
        times = np.array([discount.relative_time(cds.protection_end_date) for cds in ordered_cds])
        guesses = np.array([(c + u / t) / lgd for (c, u), t in zip(coupons_upfronts, times)])
        curve = SurvivalCurve(
            valuation_date, times, guesses, discount.day_count, name=name,
            legal_entity=legal_entity, currency=currency,
            node_ids=[node.quote_id for node in ordered_nodes],
        )

        for i, (cds, node) in enumerate(zip(ordered_cds, ordered_nodes)):
            coupon, upfront = coupons_upfronts[i]
            value = self._solve_node(i, node.quote_id, cds, curve, discount, recovery_rate,
                                     coupon, upfront, guesses[i])
            curve = curve.with_parameter(i, value)
            logger.debug("Solved CDS node %s (%s): hazard rate %.15g at t=%.10f", i, node.quote_id, value, times[i])

        if self.settings.compute_jacobian:
            jacobian = self._jacobian(ordered_nodes, ordered_cds, coupons_upfronts, curve, discount, recovery_rate)
            curve = curve.with_jacobian(reorder_columns(jacobian, order), [node.quote_id for node in nodes])

        logger.info(
            "Calibrated credit curve %s for %s: %s nodes, valuation %s, formula %s",
            name, legal_entity, len(nodes), valuation_date, self.formula.value
        )
        return curve

    def _solve_node(
        self,
        index: int,
        quote_id: str,
        cds: ResolvedCds,
        curve: SurvivalCurve,
        discount: DiscountCurve,
        recovery_rate: float,
        coupon: float,
        upfront: float,
        guess: float
    ) -> float:
        pricer = self.pricer

        def price_error(x: float) -> float:
            trial = curve.with_parameter(index, x)
            return pricer.price(cds, discount, trial, recovery_rate, coupon, clean=True) - upfront

        def price_error_and_derivative(x: float) -> Tuple[float, float]:
            trial = curve.with_parameter(index, x)
            value, grad = pricer.price_and_sensitivity(cds, discount, trial, recovery_rate, coupon, clean=True)
            return value - upfront, float(grad[index])

        settings = self.settings
        try:
            if abs(guess) < settings.low_value_threshold:
                result = newton_root(
                    price_error_and_derivative, guess,
                    xtol=settings.root_tolerance, rtol=settings.relative_tolerance,
                    max_iter=settings.max_iterations
                )
            else:
                lower, upper = bracket_root(
                    price_error, 0.8 * guess, 1.25 * guess, 0.0, math.inf,
                    ratio=settings.bracket_ratio, max_steps=settings.max_bracket_steps
                )
                result = brent_root(
                    price_error, lower, upper,
                    xtol=settings.root_tolerance, rtol=settings.relative_tolerance,
                    max_iter=settings.max_iterations
                )
            if result.root < 0:
                raise RootFindingError(f"{result.method} search converged to a negative hazard rate {result.root}")
        except RootFindingError as exc:
            raise CalibrationError(
                f"Failed to calibrate CDS node {index} ('{quote_id}'): {exc}",
                node_index=index, quote_id=quote_id
            ) from exc
        logger.debug("CDS node %s solved by %s in %s iterations", index, result.method, result.iterations)
        return result.root

    def _jacobian(
        self,
        nodes: List[CdsNode],
        resolved: List[ResolvedCds],
        coupons_upfronts: List[Tuple[float, float]],
        curve: SurvivalCurve,
        discount: DiscountCurve,
        recovery_rate: float
    ) -> np.ndarray:
        n = len(nodes)
        node_derivatives = np.zeros((n, n))
        quote_derivatives = np.zeros(n)
        for i, (node, cds) in enumerate(zip(nodes, resolved)):
            coupon, _ = coupons_upfronts[i]
            node_derivatives[i, :] = self.pricer.price_sensitivity(cds, discount, curve, recovery_rate, coupon)
            if node.quote_type == CdsQuoteType.PAR_SPREAD:
                quote_derivatives[i] = -self.pricer.risky_annuity(cds, discount, curve, clean=True)
            else:
                quote_derivatives[i] = -1.0
        return bootstrap_jacobian(node_derivatives, quote_derivatives)


__all__ = ["IsdaCreditCurveCalibrator"]
