"""
Unit tests for curves module.
"""

from datetime import date
import numpy as np
import pandas as pd
import pytest

from isdacurves.conventions import DayCount
from isdacurves.curves import (
    CurvePoint,
    DiscountCurve,
    IsdaCompliantCurve,
    ProductLinearInterpolator,
    SurvivalCurve,
    create_flat_curve,
)
from isdacurves.exceptions import CurveConfigurationError


class TestProductLinearInterpolator:
    """Tests for product-linear interpolation."""

    @pytest.fixture
    def sample_data(self):
        """Sample node data."""
        t = np.array([0.5, 1.0, 2.0, 5.0])
        r = np.array([0.010, 0.015, 0.020, 0.030])
        return t, r

    def test_exact_at_nodes(self, sample_data):
        """Interpolation reproduces node values."""
        t, r = sample_data
        interp = ProductLinearInterpolator()
        interp.fit(t, r)
        for ti, ri in zip(t, r):
            assert abs(interp(ti) - ri) < 1e-14

    def test_rt_linear_between_nodes(self, sample_data):
        """r(t) * t is linear between nodes."""
        t, r = sample_data
        interp = ProductLinearInterpolator()
        interp.fit(t, r)
        expected = 0.5 * (1.0 * 0.015 + 2.0 * 0.020)
        assert abs(interp.rt(1.5) - expected) < 1e-14

    def test_flat_left_extrapolation(self, sample_data):
        """The zero rate is flat before the first node."""
        t, r = sample_data
        interp = ProductLinearInterpolator()
        interp.fit(t, r)
        assert abs(interp(0.1) - 0.010) < 1e-14
        assert abs(interp(0.0) - 0.010) < 1e-14
        assert abs(interp.forward(0.2) - 0.010) < 1e-14

    def test_linear_right_extrapolation(self, sample_data):
        """Beyond the last node the forward of the last segment continues."""
        t, r = sample_data
        interp = ProductLinearInterpolator()
        interp.fit(t, r)
        fwd = (5.0 * 0.030 - 2.0 * 0.020) / 3.0
        assert abs(interp.forward(7.0) - fwd) < 1e-14
        assert abs(interp.rt(7.0) - (5.0 * 0.030 + 2.0 * fwd)) < 1e-14

    def test_single_node_flat(self):
        """One node gives a flat curve."""
        interp = ProductLinearInterpolator()
        interp.fit(np.array([2.0]), np.array([0.04]))
        for t in [0.01, 1.0, 2.0, 10.0]:
            assert abs(interp(t) - 0.04) < 1e-15
            assert abs(interp.forward(t) - 0.04) < 1e-15

    def test_weights_reproduce_rt(self, sample_data):
        """rt(t) equals weights(t) . node rates, on all branches."""
        t, r = sample_data
        interp = ProductLinearInterpolator()
        interp.fit(t, r)
        for s in [0.2, 0.5, 0.75, 1.0, 3.3, 5.0, 8.0]:
            assert abs(interp.weights(s) @ r - interp.rt(s)) < 1e-15

    def test_weights_local(self, sample_data):
        """Only the bracketing nodes carry weight."""
        t, r = sample_data
        interp = ProductLinearInterpolator()
        interp.fit(t, r)
        w = interp.weights(1.5)
        assert w[0] == 0.0 and w[3] == 0.0
        assert w[1] > 0.0 and w[2] > 0.0

    def test_derivative_matches_finite_difference(self, sample_data):
        """Zero rate derivative against a central difference."""
        t, r = sample_data
        interp = ProductLinearInterpolator()
        interp.fit(t, r)
        h = 1e-6
        fd = (interp(1.5 + h) - interp(1.5 - h)) / (2 * h)
        assert abs(interp.derivative(1.5) - fd) < 1e-8

    def test_non_increasing_times_rejected(self):
        """Times must be strictly increasing."""
        interp = ProductLinearInterpolator()
        with pytest.raises(CurveConfigurationError):
            interp.fit(np.array([1.0, 1.0]), np.array([0.01, 0.02]))

    def test_not_fitted(self):
        """Using an unfitted interpolator fails."""
        with pytest.raises(RuntimeError):
            ProductLinearInterpolator().interpolate(1.0)


class TestIsdaCompliantCurve:
    """Tests for the curve value object."""

    @pytest.fixture
    def curve(self):
        """Simple four node discount curve."""
        return DiscountCurve(
            valuation_date=date(2024, 1, 15),
            times=[0.5, 1.0, 2.0, 5.0],
            zero_rates=[0.010, 0.015, 0.020, 0.030],
            name="USD-TEST",
            node_ids=["a", "b", "c", "d"],
            currency="USD",
        )

    def test_discount_factor_at_zero(self, curve):
        """Discount factor at time 0 is 1."""
        assert curve.discount_factor(0.0) == 1.0
        assert curve.discount_factor(date(2024, 1, 15)) == 1.0

    def test_discount_factor_at_node(self, curve):
        """Discount factor is exp(-r t) at nodes."""
        assert abs(curve.discount_factor(2.0) - np.exp(-0.04)) < 1e-15

    def test_date_queries_use_day_count(self, curve):
        """Dates convert to ACT/365F times."""
        d = date(2025, 1, 14)  # 365 days
        assert abs(curve.relative_time(d) - 1.0) < 1e-15
        assert abs(curve.zero_rate(d) - 0.015) < 1e-14

    def test_forward_rate(self, curve):
        """Forward rate is the slope of rt."""
        fwd = curve.forward_rate(1.0, 2.0)
        assert abs(fwd - (0.04 - 0.015)) < 1e-14
        with pytest.raises(ValueError):
            curve.forward_rate(2.0, 1.0)

    def test_instantaneous_forward_piecewise_constant(self, curve):
        """Instantaneous forward is constant within a segment."""
        assert abs(curve.instantaneous_forward(1.2) - curve.instantaneous_forward(1.8)) < 1e-15

    def test_immutable_arrays(self, curve):
        """Node arrays cannot be modified in place."""
        with pytest.raises(ValueError):
            curve.zero_rates[0] = 0.5

    def test_with_parameter(self, curve):
        """with_parameter returns a new curve."""
        bumped = curve.with_parameter(1, 0.02)
        assert bumped.zero_rates[1] == 0.02
        assert curve.zero_rates[1] == 0.015
        assert isinstance(bumped, DiscountCurve)
        assert bumped.currency == "USD"
        with pytest.raises(IndexError):
            curve.with_parameter(4, 0.0)

    def test_with_zero_rates_length_check(self, curve):
        """Replacing node values requires one per node."""
        with pytest.raises(CurveConfigurationError):
            curve.with_zero_rates([0.01, 0.02])

    def test_jacobian_attachment(self, curve):
        """Jacobian must have one row per node."""
        jac = np.eye(4)
        with_jac = curve.with_jacobian(jac, ["qa", "qb", "qc", "qd"])
        frame = with_jac.jacobian_frame()
        assert isinstance(frame, pd.DataFrame)
        assert list(frame.index) == ["a", "b", "c", "d"]
        assert list(frame.columns) == ["qa", "qb", "qc", "qd"]
        with pytest.raises(CurveConfigurationError):
            curve.with_jacobian(np.eye(3))
        with pytest.raises(CurveConfigurationError):
            curve.jacobian_frame()

    def test_modification_drops_jacobian(self, curve):
        """A modified curve no longer carries the old Jacobian."""
        with_jac = curve.with_jacobian(np.eye(4))
        assert with_jac.with_parameter(0, 0.011).jacobian is None

    def test_structural_equality(self, curve):
        """Curves with the same content are equal."""
        same = DiscountCurve(
            date(2024, 1, 15), [0.5, 1.0, 2.0, 5.0], [0.010, 0.015, 0.020, 0.030],
            name="USD-TEST", node_ids=["a", "b", "c", "d"], currency="USD",
        )
        assert curve == same
        assert curve != curve.with_parameter(0, 0.011)

    def test_get_nodes(self, curve):
        """Nodes expose time, rate and discount factor."""
        nodes = curve.get_nodes()
        assert len(nodes) == 4
        assert isinstance(nodes[0], CurvePoint)
        assert abs(nodes[3].discount_factor - np.exp(-0.15)) < 1e-15

    def test_to_frame(self, curve):
        """Export to DataFrame."""
        df = curve.to_frame()
        assert list(df.columns) == ["time", "zero_rate", "discount_factor"]
        assert list(df.index) == ["a", "b", "c", "d"]

    def test_mismatched_lengths(self):
        """Times and rates must match."""
        with pytest.raises(CurveConfigurationError):
            IsdaCompliantCurve(date(2024, 1, 15), [1.0, 2.0], [0.01])

    def test_flat_curve(self):
        """Flat curve has one node and a constant rate."""
        curve = create_flat_curve(date(2024, 1, 15), 0.05)
        assert curve.parameter_count == 1
        for t in [0.1, 1.0, 30.0]:
            assert abs(curve.zero_rate(t) - 0.05) < 1e-15

    def test_single_node_time_may_be_negative(self):
        """A one-node curve accepts any node time."""
        curve = IsdaCompliantCurve(date(2042, 6, 12), [-0.5], [0.09])
        assert abs(curve.zero_rate(3.0) - 0.09) < 1e-15


class TestSurvivalCurve:
    """Tests for the survival curve flavour."""

    def test_survival_probability(self):
        """Survival probability is exp(-h t)."""
        curve = SurvivalCurve(
            date(2024, 1, 15), [1.0, 5.0], [0.01, 0.02], legal_entity="ACME", currency="EUR"
        )
        assert abs(curve.survival_probability(5.0) - np.exp(-0.1)) < 1e-15
        assert abs(curve.hazard_rate(1.0) - 0.01) < 1e-15
        assert curve.legal_entity == "ACME"
        copy = curve.with_parameter(0, 0.015)
        assert copy.legal_entity == "ACME" and copy.currency == "EUR"
        assert curve.day_count == DayCount.ACT_365F
