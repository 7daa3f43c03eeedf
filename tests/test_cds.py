"""
Unit tests for CDS resolution and the ISDA CDS pricer.
"""

from datetime import date
import math
import numpy as np
import pytest

from isdacurves.conventions import (
    CdsConvention,
    DayCount,
    StubConvention,
)
from isdacurves.credit import (
    AccrualOnDefaultFormula,
    CdsNode,
    CdsQuoteType,
    IsdaCdsPricer,
    resolve_cds,
)
from isdacurves.credit.pricer import epsilon, epsilon_p, epsilon_pp, integration_points, truncate_points
from isdacurves.curves import DiscountCurve, SurvivalCurve, create_flat_curve
from isdacurves.exceptions import CurveConfigurationError
from isdacurves.market_data import MarketQuoteSet


class TestCdsResolution:
    """Tests for premium schedule resolution."""

    @pytest.fixture
    def cds(self):
        """One year CDS with a short front stub."""
        return resolve_cds(date(2011, 3, 21), date(2012, 6, 20), CdsConvention.standard("EUR"))

    def test_periods(self, cds):
        """Quarterly periods, backward from maturity."""
        starts = [p.start_date for p in cds.periods]
        assert starts == [
            date(2011, 3, 21), date(2011, 6, 20), date(2011, 9, 20), date(2011, 12, 20), date(2012, 3, 20),
        ]
        assert cds.accrual_start_date == date(2011, 3, 21)
        assert cds.protection_end_date == date(2012, 6, 20)

    def test_last_period_includes_maturity(self, cds):
        """With protection from the start of day the final period runs one day past maturity."""
        last = cds.periods[-1]
        assert last.end_date == date(2012, 6, 21)
        assert last.effective_end_date == date(2012, 6, 20)
        assert last.payment_date == date(2012, 6, 20)
        assert abs(last.year_fraction - 93 / 360) < 1e-15
        assert cds.accrual_end_date == date(2012, 6, 21)

    def test_effective_dates_shifted(self, cds):
        """Protection dates are one day ahead of accrual dates."""
        first = cds.periods[0]
        assert first.effective_start_date == date(2011, 3, 20)
        assert first.effective_end_date == date(2011, 6, 19)

    def test_intermediate_dates_adjusted(self):
        """Intermediate dates roll forward, the start date does not."""
        cds = resolve_cds(date(2011, 3, 20), date(2011, 12, 20), CdsConvention.standard())
        assert cds.periods[0].start_date == date(2011, 3, 20)  # Sunday
        cds = resolve_cds(date(2013, 12, 20), date(2014, 9, 20), CdsConvention.standard())
        assert cds.periods[1].start_date == date(2014, 3, 20)
        assert cds.periods[2].start_date == date(2014, 6, 20)
        assert cds.protection_end_date == date(2014, 9, 20)  # Saturday
        assert cds.periods[-1].payment_date == date(2014, 9, 22)

    def test_step_in_and_settlement(self, cds):
        """Step-in is T+1 calendar, settlement T+3 business days."""
        trade = date(2011, 6, 19)
        assert cds.step_in_date(trade) == date(2011, 6, 20)
        assert cds.settlement_date(trade) == date(2011, 6, 22)
        assert cds.effective_start_date(date(2011, 6, 20)) == date(2011, 6, 19)
        # forward starting protection
        assert cds.effective_start_date(date(2011, 1, 5)) == date(2011, 3, 20)

    def test_accrued(self, cds):
        """Accrued premium runs from the current period start."""
        assert abs(cds.accrued_year_fraction(date(2011, 5, 1)) - 41 / 360) < 1e-15
        assert cds.accrued_year_fraction(date(2011, 6, 20)) == 0.0
        assert cds.accrued_year_fraction(date(2011, 1, 1)) == 0.0

    def test_expiry(self, cds):
        """Expired once protection has ended."""
        assert not cds.is_expired(date(2012, 6, 19))
        assert cds.is_expired(date(2012, 6, 20))

    def test_long_initial_stub(self):
        """Long initial stub with semi-annual ACT/365F premiums."""
        conv = CdsConvention(
            currency="EUR",
            day_count=DayCount.ACT_365F,
            payment_months=6,
            stub_convention=StubConvention.LONG_INITIAL,
        )
        cds = resolve_cds(date(2011, 7, 31), date(2014, 5, 30), conv)
        assert cds.periods[0].start_date == date(2011, 7, 31)
        assert cds.periods[1].start_date == date(2012, 5, 30)
        assert len(cds.periods) == 5


class TestCdsNode:
    """Tests for CDS curve nodes."""

    def test_of_tenor(self):
        """Maturity is a tenor after the roll date."""
        node = CdsNode.of_tenor(date(2011, 3, 21), date(2011, 6, 20), "5Y", "5Y", "ABC")
        assert node.end_date == date(2016, 6, 20)
        assert node.quote_type == CdsQuoteType.PAR_SPREAD

    def test_coupon_and_upfront(self):
        """Par spread nodes price to zero, upfront nodes to their quote."""
        quotes = MarketQuoteSet(date(2011, 6, 19), {"par": 0.015, "puf": 0.02})
        par = CdsNode(date(2011, 3, 21), date(2016, 6, 20), "par", "ABC")
        puf = CdsNode(date(2011, 3, 21), date(2016, 6, 20), "puf", "ABC",
                      quote_type=CdsQuoteType.POINTS_UPFRONT, fixed_rate=0.01)
        assert par.coupon_and_upfront(quotes) == (0.015, 0.0)
        assert puf.coupon_and_upfront(quotes) == (0.01, 0.02)

    def test_invalid_nodes(self):
        """Inverted dates and upfront nodes without coupon are rejected."""
        with pytest.raises(CurveConfigurationError):
            CdsNode(date(2016, 6, 20), date(2011, 3, 21), "q", "ABC")
        with pytest.raises(CurveConfigurationError):
            CdsNode(date(2011, 3, 21), date(2016, 6, 20), "q", "ABC", quote_type=CdsQuoteType.POINTS_UPFRONT)


class TestEpsilonFunctions:
    """Tests for the (exp(x) - 1) / x family."""

    def test_values_at_zero(self):
        assert epsilon(0.0) == 1.0
        assert abs(epsilon_p(0.0) - 0.5) < 1e-16
        assert abs(epsilon_pp(0.0) - 1.0 / 3.0) < 1e-16

    @pytest.mark.parametrize("x", [-2.0, -0.3, 1e-4, 0.2, 0.7, 3.0])
    def test_against_closed_form(self, x):
        """Series and closed form agree."""
        assert abs(epsilon(x) - math.expm1(x) / x) < 1e-13

    def test_continuity_at_series_threshold(self):
        """No jump where the series hands over to the closed form."""
        for f in (epsilon, epsilon_p, epsilon_pp):
            assert abs(f(0.5 - 1e-12) - f(0.5 + 1e-12)) < 1e-10
            assert abs(f(-0.5 + 1e-12) - f(-0.5 - 1e-12)) < 1e-10

    @pytest.mark.parametrize("x", [-1.5, -0.1, 0.3, 1.2])
    def test_derivatives(self, x):
        """Derivatives match central differences."""
        h = 1e-6
        assert abs((epsilon(x + h) - epsilon(x - h)) / (2 * h) - epsilon_p(x)) < 1e-8
        assert abs((epsilon_p(x + h) - epsilon_p(x - h)) / (2 * h) - epsilon_pp(x)) < 1e-8


class TestIntegrationGrid:
    """Tests for the default-time integration grid."""

    def test_union_of_knots(self):
        grid = integration_points(0.0, 5.0, np.array([1.0, 3.0]), np.array([2.0, 3.0, 7.0]))
        np.testing.assert_array_equal(grid, [0.0, 1.0, 2.0, 3.0, 5.0])

    def test_close_knots_merged(self):
        """Knots within half a day are merged."""
        grid = integration_points(0.0, 2.0, np.array([1.0, 1.0 + 1e-4, 2.0 - 1e-4]))
        np.testing.assert_array_equal(grid, [0.0, 1.0, 2.0])

    def test_truncate(self):
        grid = truncate_points(0.5, 2.5, np.array([0.0, 1.0, 2.0, 3.0]))
        np.testing.assert_array_equal(grid, [0.5, 1.0, 2.0, 2.5])


class TestIsdaCdsPricer:
    """Tests for CDS pricing."""

    VALUATION = date(2011, 6, 20)

    @pytest.fixture
    def cds(self):
        return resolve_cds(date(2011, 3, 20), date(2016, 6, 20), CdsConvention.standard("EUR"))

    @pytest.fixture
    def discount(self):
        return DiscountCurve(self.VALUATION, [0.5, 1.0, 3.0, 7.0], [0.010, 0.015, 0.022, 0.030], currency="EUR")

    @pytest.fixture
    def survival(self):
        return SurvivalCurve(self.VALUATION, [0.5, 1.0, 3.0, 5.0], [0.010, 0.012, 0.020, 0.025], legal_entity="ABC")

    def test_protection_leg_flat_curves(self, cds):
        """Flat curves have a closed form protection leg."""
        r, h, recovery = 0.03, 0.02, 0.4
        discount = create_flat_curve(self.VALUATION, r)
        survival = SurvivalCurve(self.VALUATION, [1.0], [h])
        pricer = IsdaCdsPricer(AccrualOnDefaultFormula.CORRECT)
        value = pricer.protection_leg(cds, discount, survival, recovery, reference_date=self.VALUATION)

        # protection starts at the beginning of the step-in day, the valuation date
        t_end = discount.relative_time(date(2016, 6, 20))
        expected = (1 - recovery) * h / (h + r) * (1.0 - math.exp(-(h + r) * t_end))
        assert abs(value - expected) < 1e-14

    def test_zero_hazard(self, cds, discount):
        """Without default risk the protection leg is worthless."""
        survival = SurvivalCurve(self.VALUATION, [1.0], [0.0])
        pricer = IsdaCdsPricer()
        assert pricer.protection_leg(cds, discount, survival, 0.4) == 0.0
        annuity = pricer.risky_annuity(cds, discount, survival, clean=False)
        expected = sum(
            p.year_fraction * discount.discount_factor(p.payment_date)
            for p in cds.periods if p.end_date > date(2011, 6, 21)
        ) / discount.discount_factor(cds.settlement_date(self.VALUATION))
        assert abs(annuity - expected) < 1e-14

    def test_clean_and_dirty(self, cds, discount, survival):
        """Clean and dirty annuities differ by the accrued."""
        pricer = IsdaCdsPricer()
        dirty = pricer.risky_annuity(cds, discount, survival, clean=False)
        clean = pricer.risky_annuity(cds, discount, survival, clean=True)
        accrued = cds.accrued_year_fraction(date(2011, 6, 21))
        assert accrued > 0
        assert abs(dirty - clean - accrued) < 1e-15

    def test_par_spread_prices_to_zero(self, cds, discount, survival):
        """The clean price at the par spread is zero."""
        pricer = IsdaCdsPricer()
        spread = pricer.par_spread(cds, discount, survival, 0.4)
        assert 0.0 < spread < 0.05
        assert abs(pricer.price(cds, discount, survival, 0.4, spread)) < 1e-15

    def test_formulas_are_close(self, cds, discount, survival):
        """The accrual on default formulas differ only slightly."""
        values = [
            IsdaCdsPricer(formula).risky_annuity(cds, discount, survival)
            for formula in AccrualOnDefaultFormula
        ]
        assert max(values) - min(values) < 1e-3
        assert len(set(values)) == 3

    @pytest.mark.parametrize("formula", list(AccrualOnDefaultFormula))
    def test_sensitivity_matches_bumps(self, cds, discount, survival, formula):
        """Analytic node sensitivities against central differences."""
        pricer = IsdaCdsPricer(formula)
        grad = pricer.price_sensitivity(cds, discount, survival, 0.4, 0.01)
        h = 1e-6
        for k, rate in enumerate(survival.zero_rates):
            up = pricer.price(cds, discount, survival.with_parameter(k, rate + h), 0.4, 0.01)
            down = pricer.price(cds, discount, survival.with_parameter(k, rate - h), 0.4, 0.01)
            assert abs(grad[k] - (up - down) / (2 * h)) < 1e-8

    def test_expired(self, discount, survival):
        """Expired protection has no value."""
        cds = resolve_cds(date(2010, 3, 20), date(2011, 6, 20), CdsConvention.standard("EUR"))
        pricer = IsdaCdsPricer()
        assert pricer.price(cds, discount, survival, 0.4, 0.01) == 0.0
        np.testing.assert_array_equal(pricer.price_sensitivity(cds, discount, survival, 0.4, 0.01), np.zeros(4))
        with pytest.raises(CurveConfigurationError):
            pricer.par_spread(cds, discount, survival, 0.4)

    def test_invalid_inputs(self, cds, discount, survival):
        """Out of range recovery and mismatched curves are rejected."""
        pricer = IsdaCdsPricer()
        with pytest.raises(CurveConfigurationError):
            pricer.price(cds, discount, survival, 1.2, 0.01)
        other = SurvivalCurve(date(2011, 6, 21), [1.0], [0.01])
        with pytest.raises(CurveConfigurationError):
            pricer.price(cds, discount, other, 0.4, 0.01)

    def test_no_accrual_on_default(self, discount, survival):
        """Without accrual on default the annuity is the coupon sum."""
        conv = CdsConvention(currency="EUR", pay_accrued_on_default=False)
        cds = resolve_cds(date(2011, 3, 20), date(2016, 6, 20), conv)
        with_aod = resolve_cds(date(2011, 3, 20), date(2016, 6, 20), CdsConvention(currency="EUR"))
        pricer = IsdaCdsPricer()
        assert pricer.risky_annuity(cds, discount, survival) < pricer.risky_annuity(with_aod, discount, survival)

    def test_reference_date(self, cds, discount, survival):
        """Values are rolled to the reference date."""
        pricer = IsdaCdsPricer()
        at_valuation = pricer.protection_leg(cds, discount, survival, 0.4, reference_date=self.VALUATION)
        at_settle = pricer.protection_leg(cds, discount, survival, 0.4)
        settle_df = discount.discount_factor(cds.settlement_date(self.VALUATION))
        assert abs(at_settle * settle_df - at_valuation) < 1e-15
