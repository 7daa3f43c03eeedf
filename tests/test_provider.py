"""
Unit tests for the credit rates provider.
"""

from datetime import date
import pytest

from isdacurves.credit import ConstantRecoveryRates, CreditRatesProvider
from isdacurves.curves import SurvivalCurve, create_flat_curve
from isdacurves.exceptions import CurveConfigurationError


VALUATION = date(2014, 1, 14)


@pytest.fixture
def provider():
    """Provider with one discount curve and one recovery rate."""
    return CreditRatesProvider(
        valuation_date=VALUATION,
        discount_curves={"EUR": create_flat_curve(VALUATION, 0.02, currency="EUR")},
        recovery_rate_curves={"ABC": ConstantRecoveryRates("ABC", VALUATION, 0.4)},
    )


class TestConstantRecoveryRates:
    """Tests for constant recovery rates."""

    def test_rate_is_constant(self):
        rates = ConstantRecoveryRates("ABC", VALUATION, 0.25)
        assert rates.recovery_rate_at(date(2020, 1, 1)) == 0.25
        assert rates.recovery_rate_at(VALUATION) == 0.25

    def test_out_of_range(self):
        with pytest.raises(CurveConfigurationError):
            ConstantRecoveryRates("ABC", VALUATION, -0.1)
        with pytest.raises(CurveConfigurationError):
            ConstantRecoveryRates("ABC", VALUATION, 1.5)


class TestCreditRatesProvider:
    """Tests for curve lookup and modification."""

    def test_lookup(self, provider):
        assert provider.discount_curve("EUR").currency == "EUR"
        assert provider.recovery_rates("ABC").recovery_rate == 0.4

    def test_missing_entries(self, provider):
        with pytest.raises(CurveConfigurationError):
            provider.discount_curve("USD")
        with pytest.raises(CurveConfigurationError):
            provider.recovery_rates("XYZ")
        with pytest.raises(CurveConfigurationError):
            provider.survival_curve("ABC", "EUR")

    def test_with_credit_curve(self, provider):
        """Adding a curve returns a new provider."""
        curve = SurvivalCurve(VALUATION, [1.0, 5.0], [0.01, 0.02], legal_entity="ABC", currency="EUR")
        updated = provider.with_credit_curve("ABC", "EUR", curve)
        assert updated.survival_curve("ABC", "EUR") is curve
        assert ("ABC", "EUR") not in provider.credit_curves

    def test_with_discount_curve_and_recovery(self, provider):
        updated = provider.with_discount_curve("USD", create_flat_curve(VALUATION, 0.03))
        updated = updated.with_recovery_rates(ConstantRecoveryRates("XYZ", VALUATION, 0.25))
        assert set(updated.discount_curves) == {"EUR", "USD"}
        assert updated.recovery_rates("XYZ").recovery_rate == 0.25
        assert set(provider.discount_curves) == {"EUR"}

    def test_valuation_dates_must_match(self, provider):
        """Every curve shares the provider's valuation date."""
        with pytest.raises(CurveConfigurationError):
            provider.with_discount_curve("USD", create_flat_curve(date(2014, 1, 15), 0.03))
        with pytest.raises(CurveConfigurationError):
            provider.with_recovery_rates(ConstantRecoveryRates("XYZ", date(2014, 1, 13), 0.25))
        with pytest.raises(CurveConfigurationError):
            CreditRatesProvider(
                valuation_date=VALUATION,
                credit_curves={("ABC", "EUR"): SurvivalCurve(date(2014, 1, 15), [1.0], [0.01])},
            )

    def test_to_dict(self, provider):
        summary = provider.to_dict()
        assert summary["valuation_date"] == "2014-01-14"
        assert summary["discount_curves"]["EUR"]["nodes"] == 1
        assert summary["recovery_rates"] == {"ABC": 0.4}
        assert summary["credit_curves"] == {}
