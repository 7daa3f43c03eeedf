"""
ISDA compliant curve representation.

The IsdaCompliantCurve class provides:
- Zero rate r(t) and the product r(t) * t
- Discount factor P(t) = exp(-r(t) * t)
- Forward rates between two times and instantaneous forward rates
- Sensitivity of r(t) * t to each node zero rate
- Copies with modified node values or an attached quote Jacobian

Internal representation is a strictly increasing array of node times
(year fractions from the valuation date under the curve day count) and
the continuously compounded zero rates at those times, interpolated
product-linearly. The same shape serves discount curves (zero rates) and
survival curves (hazard rates, survival probability = exp(-h(t) * t)).

Curves are immutable: every modification returns a new curve.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Union
import numpy as np
import pandas as pd

from ..conventions import DayCount, year_fraction
from ..exceptions import CurveConfigurationError
from .interpolation import ProductLinearInterpolator


@dataclass(frozen=True)
class CurvePoint:
    """A single node of the curve."""
    time: float  # Year fraction from valuation date
    zero_rate: float  # Continuously compounded
    discount_factor: float


class IsdaCompliantCurve:
    """
    Zero rate curve with product-linear interpolation.

    Attributes:
        valuation_date: Date of time 0
        day_count: Day count used to convert dates into times
        name: Curve name
        jacobian: Optional matrix d(node zero rate)/d(input quote),
            rows = curve nodes, columns = input quotes in input order
        node_ids: Optional labels of the curve nodes (jacobian rows)
        quote_ids: Optional labels of the input quotes (jacobian columns)

    Conventions:
        - Zero rates are continuously compounded
        - Times are year fractions from the valuation date
        - Discount factor at t=0 is 1.0
    """

    def __init__(
        self,
        valuation_date: date,
        times: Sequence[float],
        zero_rates: Sequence[float],
        day_count: DayCount = DayCount.ACT_365F,
        name: str = "",
        jacobian: Optional[np.ndarray] = None,
        node_ids: Optional[Sequence[str]] = None,
        quote_ids: Optional[Sequence[str]] = None
    ):
        times = np.array(times, dtype=np.float64)
        zero_rates = np.array(zero_rates, dtype=np.float64)
        if times.ndim != 1 or times.shape != zero_rates.shape:
            raise CurveConfigurationError(
                f"Times and zero rates must have the same length, got {times.size} and {zero_rates.size}"
            )

        self.valuation_date = valuation_date
        self.day_count = day_count
        self.name = name

        self._interpolator = ProductLinearInterpolator()
        self._interpolator.fit(times, zero_rates)
        times.setflags(write=False)
        zero_rates.setflags(write=False)
        self._times = times
        self._zero_rates = zero_rates

        self.node_ids = list(node_ids) if node_ids is not None else None
        if self.node_ids is not None and len(self.node_ids) != len(times):
            raise CurveConfigurationError("node_ids must have one entry per curve node")
        self.quote_ids = list(quote_ids) if quote_ids is not None else None

        self.jacobian: Optional[np.ndarray] = None
        if jacobian is not None:
            jac = np.array(jacobian, dtype=np.float64)
            if jac.ndim != 2 or jac.shape[0] != len(times):
                raise CurveConfigurationError(
                    f"Jacobian must have one row per curve node, got shape {jac.shape}"
                )
            if self.quote_ids is not None and jac.shape[1] != len(self.quote_ids):
                raise CurveConfigurationError("Jacobian must have one column per quote id")
            jac.setflags(write=False)
            self.jacobian = jac

    @property
    def times(self) -> np.ndarray:
        """Node times (read-only)."""
        return self._times

    @property
    def zero_rates(self) -> np.ndarray:
        """Node zero rates (read-only)."""
        return self._zero_rates

    @property
    def parameter_count(self) -> int:
        """Number of curve nodes."""
        return len(self._times)

    def relative_time(self, d: date) -> float:
        """Year fraction from the valuation date to d (negative before it)."""
        return year_fraction(self.valuation_date, d, self.day_count)

    def _to_time(self, t: Union[float, date]) -> float:
        if isinstance(t, date):
            return self.relative_time(t)
        return float(t)

    def rt(self, t: Union[float, date]) -> float:
        """Product of zero rate and time, equal to -log P(t)."""
        return self._interpolator.rt(self._to_time(t))

    def zero_rate(self, t: Union[float, date]) -> float:
        """
        Get zero rate r(t).

        Args:
            t: Year fraction or date

        Returns:
            Continuously compounded zero rate
        """
        return self._interpolator.interpolate(self._to_time(t))

    def discount_factor(self, t: Union[float, date]) -> float:
        """
        Get discount factor P(t).

        Args:
            t: Year fraction or date

        Returns:
            Discount factor
        """
        return float(np.exp(-self.rt(t)))

    def forward_rate(self, t1: Union[float, date], t2: Union[float, date]) -> float:
        """
        Continuously compounded forward rate between t1 and t2.

        Args:
            t1: Start time (year fraction or date)
            t2: End time (year fraction or date)

        Returns:
            Forward rate
        """
        t1 = self._to_time(t1)
        t2 = self._to_time(t2)
        if t2 <= t1:
            raise ValueError("t2 must be greater than t1")
        return (self.rt(t2) - self.rt(t1)) / (t2 - t1)

    def instantaneous_forward(self, t: Union[float, date]) -> float:
        """
        Get instantaneous forward rate f(t) = d(r(t) * t)/dt.

        Piecewise constant between nodes.
        """
        return self._interpolator.forward(self._to_time(t))

    def rt_sensitivity(self, t: Union[float, date]) -> np.ndarray:
        """Sensitivity of r(t) * t to each node zero rate."""
        return self._interpolator.weights(self._to_time(t))

    def get_nodes(self) -> List[CurvePoint]:
        """
        Get all curve nodes.

        Returns:
            List of CurvePoint
        """
        return [
            CurvePoint(time=float(t), zero_rate=float(r), discount_factor=float(np.exp(-r * t)))
            for t, r in zip(self._times, self._zero_rates)
        ]

    def _constructor_args(self) -> Dict[str, Any]:
        return {
            "valuation_date": self.valuation_date,
            "times": self._times,
            "zero_rates": self._zero_rates,
            "day_count": self.day_count,
            "name": self.name,
            "jacobian": self.jacobian,
            "node_ids": self.node_ids,
            "quote_ids": self.quote_ids,
        }

    def _copy(self, **changes) -> "IsdaCompliantCurve":
        args = self._constructor_args()
        args.update(changes)
        return type(self)(**args)

    def with_zero_rates(self, zero_rates: Sequence[float]) -> "IsdaCompliantCurve":
        """
        Create a new curve with all node values replaced.

        The Jacobian is dropped since it no longer describes the curve.
        """
        if len(zero_rates) != self.parameter_count:
            raise CurveConfigurationError(
                f"Expected {self.parameter_count} zero rates, got {len(zero_rates)}"
            )
        return self._copy(zero_rates=zero_rates, jacobian=None)

    def with_parameter(self, index: int, value: float) -> "IsdaCompliantCurve":
        """Create a new curve with the node at index set to value."""
        if index < 0 or index >= self.parameter_count:
            raise IndexError(f"Invalid node index: {index}")
        rates = self._zero_rates.copy()
        rates[index] = value
        return self._copy(zero_rates=rates, jacobian=None)

    def with_jacobian(self, jacobian: np.ndarray, quote_ids: Optional[Sequence[str]] = None) -> "IsdaCompliantCurve":
        """Create a new curve with a Jacobian attached."""
        if quote_ids is None:
            quote_ids = self.quote_ids
        return self._copy(jacobian=jacobian, quote_ids=quote_ids)

    def to_frame(self) -> pd.DataFrame:
        """Export nodes as a DataFrame."""
        df = pd.DataFrame({
            "time": self._times,
            "zero_rate": self._zero_rates,
            "discount_factor": np.exp(-self._zero_rates * self._times),
        })
        if self.node_ids is not None:
            df.index = pd.Index(self.node_ids, name="node")
        return df

    def jacobian_frame(self) -> pd.DataFrame:
        """
        Export the Jacobian as a DataFrame.

        Rows are curve nodes, columns input quotes.

        Raises:
            CurveConfigurationError: If no Jacobian is attached
        """
        if self.jacobian is None:
            raise CurveConfigurationError(f"Curve '{self.name}' has no Jacobian")
        return pd.DataFrame(self.jacobian, index=self.node_ids, columns=self.quote_ids)

    def __eq__(self, other) -> bool:
        if type(self) is not type(other):
            return NotImplemented
        mine = self._constructor_args()
        theirs = other._constructor_args()
        for key, value in mine.items():
            if isinstance(value, np.ndarray) or isinstance(theirs[key], np.ndarray):
                if value is None or theirs[key] is None:
                    if value is not theirs[key]:
                        return False
                elif not np.array_equal(value, theirs[key]):
                    return False
            elif value != theirs[key]:
                return False
        return True

    __hash__ = None

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(name={self.name!r}, valuation={self.valuation_date}, "
                f"nodes={self.parameter_count}, jacobian={self.jacobian is not None})")


class DiscountCurve(IsdaCompliantCurve):
    """ISDA compliant discount curve for one currency."""

    def __init__(self, valuation_date: date, times: Sequence[float], zero_rates: Sequence[float],
                 day_count: DayCount = DayCount.ACT_365F, name: str = "", jacobian: Optional[np.ndarray] = None,
                 node_ids: Optional[Sequence[str]] = None, quote_ids: Optional[Sequence[str]] = None,
                 currency: str = "USD"):
        super().__init__(valuation_date, times, zero_rates, day_count, name, jacobian, node_ids, quote_ids)
        self.currency = currency

    def _constructor_args(self) -> Dict[str, Any]:
        args = super()._constructor_args()
        args["currency"] = self.currency
        return args


class SurvivalCurve(IsdaCompliantCurve):
    """
    ISDA compliant credit curve for one legal entity and currency.

    Node values are hazard rates; the survival probability is
    Q(t) = exp(-h(t) * t).
    """

    def __init__(self, valuation_date: date, times: Sequence[float], zero_rates: Sequence[float],
                 day_count: DayCount = DayCount.ACT_365F, name: str = "", jacobian: Optional[np.ndarray] = None,
                 node_ids: Optional[Sequence[str]] = None, quote_ids: Optional[Sequence[str]] = None,
                 legal_entity: str = "", currency: str = "USD"):
        super().__init__(valuation_date, times, zero_rates, day_count, name, jacobian, node_ids, quote_ids)
        self.legal_entity = legal_entity
        self.currency = currency

    def survival_probability(self, t: Union[float, date]) -> float:
        """Probability of no default up to t."""
        return self.discount_factor(t)

    def hazard_rate(self, t: Union[float, date]) -> float:
        """Average hazard rate from 0 to t."""
        return self.zero_rate(t)

    def _constructor_args(self) -> Dict[str, Any]:
        args = super()._constructor_args()
        args["legal_entity"] = self.legal_entity
        args["currency"] = self.currency
        return args


def create_flat_curve(
    valuation_date: date,
    rate: float,
    currency: str = "USD",
    day_count: DayCount = DayCount.ACT_365F
) -> DiscountCurve:
    """
    Create a flat discount curve with a single node.

    Args:
        valuation_date: Valuation date
        rate: Flat continuously compounded rate
        currency: Currency code
        day_count: Curve day count

    Returns:
        Flat curve
    """
    return DiscountCurve(valuation_date, [1.0], [rate], day_count, name=f"{currency}-FLAT", currency=currency)


__all__ = [
    "CurvePoint",
    "IsdaCompliantCurve",
    "DiscountCurve",
    "SurvivalCurve",
    "create_flat_curve",
]
