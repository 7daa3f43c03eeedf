"""
Unit tests for market data and calibration settings.
"""

from datetime import date
import pandas as pd
import pytest

from isdacurves.config import CalibrationSettings
from isdacurves.exceptions import CurveConfigurationError, CurveError, MissingQuoteError
from isdacurves.market_data import MarketQuoteSet


class TestMarketQuoteSet:
    """Tests for MarketQuoteSet."""

    @pytest.fixture
    def quotes(self):
        """Small quote set."""
        return MarketQuoteSet(date(2013, 5, 31), {"mm1M": 0.0034, "swap2Y": 0.0205})

    def test_value(self, quotes):
        """Quotes are looked up by identifier."""
        assert quotes.value("mm1M") == 0.0034
        assert quotes.values(["swap2Y", "mm1M"]) == [0.0205, 0.0034]
        assert len(quotes) == 2
        assert "swap2Y" in quotes

    def test_missing_quote(self, quotes):
        """Missing identifiers raise a configuration error."""
        with pytest.raises(MissingQuoteError) as info:
            quotes.value("swap30Y")
        assert info.value.quote_id == "swap30Y"
        assert isinstance(info.value, CurveConfigurationError)
        assert isinstance(info.value, CurveError)

    def test_with_value_is_copy(self, quotes):
        """with_value leaves the original untouched."""
        updated = quotes.with_value("mm1M", 0.005)
        assert updated.value("mm1M") == 0.005
        assert quotes.value("mm1M") == 0.0034
        assert updated.snapshot_date == quotes.snapshot_date

    def test_bumped(self, quotes):
        """bumped shifts an existing quote."""
        bumped = quotes.bumped("swap2Y", 1e-4)
        assert abs(bumped.value("swap2Y") - 0.0206) < 1e-15
        with pytest.raises(MissingQuoteError):
            quotes.bumped("swap5Y", 1e-4)

    def test_structural_equality(self, quotes):
        """Equal content means equal quote sets."""
        assert quotes == MarketQuoteSet(date(2013, 5, 31), {"swap2Y": 0.0205, "mm1M": 0.0034})
        assert quotes != MarketQuoteSet(date(2013, 6, 3), {"swap2Y": 0.0205, "mm1M": 0.0034})

    def test_frame_round_trip(self, quotes):
        """Quote sets convert to and from DataFrames."""
        df = quotes.to_frame()
        assert list(df.columns) == ["quote_id", "value"]
        rebuilt = MarketQuoteSet.from_frame(quotes.snapshot_date, df)
        assert rebuilt == quotes

    def test_from_frame_duplicates(self):
        """Duplicate identifiers are rejected."""
        df = pd.DataFrame({"quote_id": ["a", "a"], "value": [0.01, 0.02]})
        with pytest.raises(CurveConfigurationError):
            MarketQuoteSet.from_frame(date(2013, 5, 31), df)

    def test_from_frame_missing_column(self):
        """Frames need both columns."""
        df = pd.DataFrame({"id": ["a"], "value": [0.01]})
        with pytest.raises(CurveConfigurationError):
            MarketQuoteSet.from_frame(date(2013, 5, 31), df)


class TestCalibrationSettings:
    """Tests for CalibrationSettings."""

    def test_defaults(self):
        """Default tolerances."""
        settings = CalibrationSettings.default()
        assert settings.root_tolerance == 1e-15
        assert settings.max_iterations == 100
        assert settings.low_value_threshold == 1e-3
        assert settings.compute_jacobian

    def test_from_dict(self):
        """Settings load from a mapping."""
        settings = CalibrationSettings.from_dict({"max_iterations": 50, "compute_jacobian": False})
        assert settings.max_iterations == 50
        assert not settings.compute_jacobian
        assert settings.to_dict()["max_iterations"] == 50

    def test_from_dict_unknown_key(self):
        """Unknown keys are rejected."""
        with pytest.raises(CurveConfigurationError):
            CalibrationSettings.from_dict({"tolerance": 1e-12})

    def test_invalid_values(self):
        """Non-positive tolerances are rejected."""
        with pytest.raises(CurveConfigurationError):
            CalibrationSettings(root_tolerance=0.0)
        with pytest.raises(CurveConfigurationError):
            CalibrationSettings(relative_tolerance=1e-17)
