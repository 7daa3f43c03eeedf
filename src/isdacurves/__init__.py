"""
IsdaCurves: ISDA CDS Standard Model Curve Calibration Library

A modular library for:
- Bootstrapping discount curves from term deposit and swap quotes
- Bootstrapping credit (survival) curves from CDS par spread or upfront quotes
- Analytic Jacobians of calibrated curve nodes to input quotes
- Bundling curves into a credit rates provider for CDS pricing

Scope: one currency and one legal entity per calibration call.
"""

__version__ = "0.1.0"

# Core modules
from .conventions import (
    DayCount,
    BusinessDayConvention,
    StubConvention,
    BusinessDayAdjustment,
    DaysAdjustment,
    TermDepositConvention,
    FixedSwapConvention,
    CdsConvention,
    year_fraction,
)
from .dates import DateUtils, ScheduleInfo
from .config import CalibrationSettings
from .exceptions import (
    CurveError,
    CurveConfigurationError,
    MissingQuoteError,
    RootFindingError,
    CalibrationError,
)
from .market_data import MarketQuoteSet

# Curves
from .curves import (
    IsdaCompliantCurve,
    DiscountCurve,
    SurvivalCurve,
    TermDepositNode,
    FixedSwapNode,
    CurveNodeValidator,
    IsdaDiscountCurveCalibrator,
)

# Credit
from .credit import (
    CdsNode,
    CdsQuoteType,
    AccrualOnDefaultFormula,
    IsdaCdsPricer,
    IsdaCreditCurveCalibrator,
    ConstantRecoveryRates,
    CreditRatesProvider,
)

__all__ = [
    "__version__",
    # Conventions
    "DayCount",
    "BusinessDayConvention",
    "StubConvention",
    "BusinessDayAdjustment",
    "DaysAdjustment",
    "TermDepositConvention",
    "FixedSwapConvention",
    "CdsConvention",
    "year_fraction",
    "DateUtils",
    "ScheduleInfo",
    "CalibrationSettings",
    # Errors
    "CurveError",
    "CurveConfigurationError",
    "MissingQuoteError",
    "RootFindingError",
    "CalibrationError",
    # Market data
    "MarketQuoteSet",
    # Curves
    "IsdaCompliantCurve",
    "DiscountCurve",
    "SurvivalCurve",
    "TermDepositNode",
    "FixedSwapNode",
    "CurveNodeValidator",
    "IsdaDiscountCurveCalibrator",
    # Credit
    "CdsNode",
    "CdsQuoteType",
    "AccrualOnDefaultFormula",
    "IsdaCdsPricer",
    "IsdaCreditCurveCalibrator",
    "ConstantRecoveryRates",
    "CreditRatesProvider",
]
