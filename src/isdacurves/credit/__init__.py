"""
Credit package - CDS resolution, pricing and credit curve calibration.

Provides:
- CdsNode / ResolvedCds: CDS nodes and their premium schedules
- IsdaCdsPricer: ISDA Standard Model pricing with selectable accrual on default formula
- IsdaCreditCurveCalibrator: bootstrap survival curves from CDS quotes
- CreditRatesProvider: discount, recovery and credit curves by key
"""

from .cds import CdsQuoteType, CdsCouponPeriod, ResolvedCds, resolve_cds, CdsNode
from .pricer import AccrualOnDefaultFormula, IsdaCdsPricer
from .provider import ConstantRecoveryRates, CreditRatesProvider
from .calibrator import IsdaCreditCurveCalibrator

__all__ = [
    "CdsQuoteType",
    "CdsCouponPeriod",
    "ResolvedCds",
    "resolve_cds",
    "CdsNode",
    "AccrualOnDefaultFormula",
    "IsdaCdsPricer",
    "ConstantRecoveryRates",
    "CreditRatesProvider",
    "IsdaCreditCurveCalibrator",
]
