"""
Curves package - ISDA compliant curve construction.

Provides:
- IsdaCompliantCurve / DiscountCurve / SurvivalCurve: product-linear zero rate curves
- TermDepositNode / FixedSwapNode: discount curve nodes
- CurveNodeValidator: node ordering and validation
- IsdaDiscountCurveCalibrator: bootstrap discount curves from quotes
"""

from .curve import CurvePoint, IsdaCompliantCurve, DiscountCurve, SurvivalCurve, create_flat_curve
from .interpolation import Interpolator, ProductLinearInterpolator
from .instruments import (
    NodeKind,
    DiscountCurveNode,
    TermDepositNode,
    FixedSwapNode,
    ResolvedDeposit,
    ResolvedSwap,
)
from .validation import CurveNodeValidator
from .solvers import RootResult, bracket_root, brent_root, newton_root
from .jacobian import bootstrap_jacobian, reorder_columns
from .discount import IsdaDiscountCurveCalibrator

__all__ = [
    "CurvePoint",
    "IsdaCompliantCurve",
    "DiscountCurve",
    "SurvivalCurve",
    "create_flat_curve",
    "Interpolator",
    "ProductLinearInterpolator",
    "NodeKind",
    "DiscountCurveNode",
    "TermDepositNode",
    "FixedSwapNode",
    "ResolvedDeposit",
    "ResolvedSwap",
    "CurveNodeValidator",
    "RootResult",
    "bracket_root",
    "brent_root",
    "newton_root",
    "bootstrap_jacobian",
    "reorder_columns",
    "IsdaDiscountCurveCalibrator",
]
