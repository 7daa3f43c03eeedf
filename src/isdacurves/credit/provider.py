"""
Credit rates provider.

Bundles the market state a CDS pricer needs:
- Discount curves, one per currency
- Recovery rates, one per legal entity
- Survival curves, one per (legal entity, currency)

All curves share the provider's valuation date. The provider is
immutable; the with_* methods return modified copies.
"""

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Dict, Mapping, Tuple

from ..curves.curve import DiscountCurve, SurvivalCurve
from ..exceptions import CurveConfigurationError


@dataclass(frozen=True)
class ConstantRecoveryRates:
    """
    Recovery rate that does not depend on the default time.

    Attributes:
        legal_entity: Reference entity
        valuation_date: Valuation date
        recovery_rate: Recovery rate in [0, 1]
    """
    legal_entity: str
    valuation_date: date
    recovery_rate: float

    def __post_init__(self):
        if not 0.0 <= self.recovery_rate <= 1.0:
            raise CurveConfigurationError(f"Recovery rate must be in [0, 1], got {self.recovery_rate}")

    def recovery_rate_at(self, d: date) -> float:
        """Recovery rate for a default on date d."""
        return self.recovery_rate


@dataclass(frozen=True)
class CreditRatesProvider:
    """
    Immutable collection of discount, recovery and credit curves.

    Attributes:
        valuation_date: Market valuation date
        discount_curves: Discount curve by currency
        recovery_rate_curves: Recovery rates by legal entity
        credit_curves: Survival curve by (legal entity, currency)
    """
    valuation_date: date
    discount_curves: Mapping[str, DiscountCurve] = field(default_factory=dict)
    recovery_rate_curves: Mapping[str, ConstantRecoveryRates] = field(default_factory=dict)
    credit_curves: Mapping[Tuple[str, str], SurvivalCurve] = field(default_factory=dict)

    def __post_init__(self):
        for currency, curve in self.discount_curves.items():
            self._check_date(f"discount curve {currency}", curve.valuation_date)
        for entity, rates in self.recovery_rate_curves.items():
            self._check_date(f"recovery rates {entity}", rates.valuation_date)
        for key, curve in self.credit_curves.items():
            self._check_date(f"credit curve {key}", curve.valuation_date)
        object.__setattr__(self, "discount_curves", dict(self.discount_curves))
        object.__setattr__(self, "recovery_rate_curves", dict(self.recovery_rate_curves))
        object.__setattr__(self, "credit_curves", dict(self.credit_curves))

    def _check_date(self, label: str, d: date):
        if d != self.valuation_date:
            raise CurveConfigurationError(
                f"Valuation date of {label} is {d}, expected {self.valuation_date}"
            )

    def discount_curve(self, currency: str) -> DiscountCurve:
        """Get the discount curve of a currency."""
        try:
            return self.discount_curves[currency]
        except KeyError:
            raise CurveConfigurationError(f"No discount curve for currency {currency}") from None

    def recovery_rates(self, legal_entity: str) -> ConstantRecoveryRates:
        """Get the recovery rates of a legal entity."""
        try:
            return self.recovery_rate_curves[legal_entity]
        except KeyError:
            raise CurveConfigurationError(f"No recovery rates for legal entity {legal_entity}") from None

    def survival_curve(self, legal_entity: str, currency: str) -> SurvivalCurve:
        """Get the survival curve of a legal entity in a currency."""
        try:
            return self.credit_curves[(legal_entity, currency)]
        except KeyError:
            raise CurveConfigurationError(
                f"No credit curve for legal entity {legal_entity} in {currency}"
            ) from None

    def with_discount_curve(self, currency: str, curve: DiscountCurve) -> "CreditRatesProvider":
        """Return a copy with a discount curve added or replaced."""
        curves = dict(self.discount_curves)
        curves[currency] = curve
        return replace(self, discount_curves=curves)

    def with_recovery_rates(self, rates: ConstantRecoveryRates) -> "CreditRatesProvider":
        """Return a copy with recovery rates added or replaced."""
        curves = dict(self.recovery_rate_curves)
        curves[rates.legal_entity] = rates
        return replace(self, recovery_rate_curves=curves)

    def with_credit_curve(self, legal_entity: str, currency: str, curve: SurvivalCurve) -> "CreditRatesProvider":
        """Return a copy with a credit curve added or replaced."""
        curves = dict(self.credit_curves)
        curves[(legal_entity, currency)] = curve
        return replace(self, credit_curves=curves)

    def to_dict(self) -> Dict:
        """Serialize a summary to dictionary."""
        return {
            'valuation_date': self.valuation_date.isoformat(),
            'discount_curves': {
                ccy: {'name': c.name, 'nodes': c.parameter_count}
                for ccy, c in self.discount_curves.items()
            },
            'recovery_rates': {
                entity: r.recovery_rate for entity, r in self.recovery_rate_curves.items()
            },
            'credit_curves': {
                f"{entity}/{ccy}": {'name': c.name, 'nodes': c.parameter_count}
                for (entity, ccy), c in self.credit_curves.items()
            },
        }


__all__ = [
    "ConstantRecoveryRates",
    "CreditRatesProvider",
]
