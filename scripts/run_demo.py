#!/usr/bin/env python
"""
ISDA Curve Calibration Demo Script

This script walks through the calibration workflow:
1. Bootstrap a EUR discount curve from deposit and swap quotes
2. Bootstrap a survival curve from CDS par spreads
3. Reprice the calibration instruments
4. Export curves and Jacobians

Usage:
    python run_demo.py [--output-dir OUTPUT_DIR] [--formula {ORIGINAL_ISDA,MARKIT_FIX,CORRECT}]
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

import pandas as pd

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from isdacurves.conventions import (
    BusinessDayAdjustment,
    BusinessDayConvention,
    CdsConvention,
    DayCount,
    DaysAdjustment,
    FixedSwapConvention,
    TermDepositConvention,
)
from isdacurves.credit import (
    AccrualOnDefaultFormula,
    CdsNode,
    ConstantRecoveryRates,
    CreditRatesProvider,
    IsdaCdsPricer,
    IsdaCreditCurveCalibrator,
)
from isdacurves.curves import DiscountCurve, FixedSwapNode, IsdaDiscountCurveCalibrator, TermDepositNode
from isdacurves.market_data import MarketQuoteSet


TRADE_DATE = date(2011, 6, 19)
ENTITY = "ABC"
RECOVERY = 0.4

FOLLOWING = BusinessDayAdjustment(BusinessDayConvention.FOLLOWING)
SPOT = DaysAdjustment.of_business_days(3)

DEPOSIT_QUOTES = {"1M": 0.00445, "2M": 0.009488, "3M": 0.012337, "6M": 0.017762, "9M": 0.01935, "12M": 0.020838}
SWAP_QUOTES = {
    "2Y": 0.01652, "3Y": 0.02018, "4Y": 0.023033, "5Y": 0.02525, "6Y": 0.02696, "7Y": 0.02825, "8Y": 0.02931,
    "9Y": 0.03017, "10Y": 0.03092, "11Y": 0.0316, "12Y": 0.03231, "15Y": 0.03367, "20Y": 0.03419,
    "25Y": 0.03411, "30Y": 0.03412,
}
CDS_SPREADS = {"6M": 0.0088632, "1Y": 0.0088632, "3Y": 0.0133045, "5Y": 0.017149, "7Y": 0.0183904, "10Y": 0.0194722}


def build_discount_curve(valuation_date: date) -> DiscountCurve:
    """Build EUR discount curve from deposit and swap quotes."""
    print("\n" + "="*60)
    print("Building EUR Discount Curve")
    print("="*60)

    deposit_conv = TermDepositConvention("EUR", DayCount.ACT_360, FOLLOWING, SPOT)
    swap_conv = FixedSwapConvention("EUR", DayCount.THIRTY_360, 12, FOLLOWING, SPOT)

    nodes = [TermDepositNode(t, f"EUR-DEP-{t}", convention=deposit_conv) for t in DEPOSIT_QUOTES]
    nodes += [FixedSwapNode(t, f"EUR-IRS-{t}", convention=swap_conv) for t in SWAP_QUOTES]
    values = {f"EUR-DEP-{t}": r for t, r in DEPOSIT_QUOTES.items()}
    values.update({f"EUR-IRS-{t}": r for t, r in SWAP_QUOTES.items()})
    quotes = MarketQuoteSet(valuation_date, values)

    for quote_id, rate in values.items():
        print(f"  Added: {quote_id:>12s} @ {rate*100:.4f}%")

    calibrator = IsdaDiscountCurveCalibrator()
    curve = calibrator.calibrate(nodes, valuation_date, quotes, name="EUR-DSC", currency="EUR")
    errors = calibrator.repricing_errors(curve, nodes, quotes)
    print(f"\nBootstrap complete: {curve.parameter_count} nodes, max repricing error {max(abs(e) for e in errors.values()):.2e}")
    return curve


def build_credit_curve(provider: CreditRatesProvider, formula: AccrualOnDefaultFormula):
    """Build survival curve from CDS par spreads."""
    print("\n" + "="*60)
    print(f"Building Credit Curve for {ENTITY} ({formula.name})")
    print("="*60)

    convention = CdsConvention.standard("EUR")
    nodes = [
        CdsNode.of_tenor(date(2011, 3, 21), date(2011, 6, 20), t, f"{ENTITY}-CDS-{t}", ENTITY, convention)
        for t in CDS_SPREADS
    ]
    quotes = MarketQuoteSet(provider.valuation_date, {n.quote_id: CDS_SPREADS[t] for n, t in zip(nodes, CDS_SPREADS)})

    for node in nodes:
        print(f"  Added: {node.quote_id:>12s} @ {quotes.value(node.quote_id)*1e4:.2f}bp, maturity {node.end_date}")

    calibrator = IsdaCreditCurveCalibrator(formula)
    provider = calibrator.calibrate_provider(nodes, quotes, provider, name=f"{ENTITY}-EUR")
    curve = provider.survival_curve(ENTITY, "EUR")

    pricer = IsdaCdsPricer(formula)
    discount = provider.discount_curve("EUR")
    rows = []
    for node in nodes:
        cds = node.resolve()
        spread = pricer.par_spread(cds, discount, curve, RECOVERY)
        rows.append({
            "node": node.quote_id,
            "maturity": node.end_date,
            "quote": quotes.value(node.quote_id),
            "par_spread": spread,
            "survival_probability": curve.survival_probability(node.end_date),
        })
    report = pd.DataFrame(rows).set_index("node")
    print("\nRepricing:")
    print(report.to_string())
    return provider, curve


def main():
    parser = argparse.ArgumentParser(description="ISDA curve calibration demo")
    parser.add_argument("--output-dir", type=Path, default=None, help="Directory for CSV output")
    parser.add_argument(
        "--formula",
        choices=[f.name for f in AccrualOnDefaultFormula],
        default=AccrualOnDefaultFormula.ORIGINAL_ISDA.name,
        help="Accrual on default formula",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    discount = build_discount_curve(TRADE_DATE)
    provider = CreditRatesProvider(
        valuation_date=TRADE_DATE,
        discount_curves={"EUR": discount},
        recovery_rate_curves={ENTITY: ConstantRecoveryRates(ENTITY, TRADE_DATE, RECOVERY)},
    )
    provider, credit = build_credit_curve(provider, AccrualOnDefaultFormula[args.formula])

    print("\n" + "="*60)
    print("Hazard Rate Jacobian (dh/dspread)")
    print("="*60)
    print(credit.jacobian_frame().round(4).to_string())

    if args.output_dir is not None:
        args.output_dir.mkdir(parents=True, exist_ok=True)
        discount.to_frame().to_csv(args.output_dir / "discount_curve.csv")
        discount.jacobian_frame().to_csv(args.output_dir / "discount_jacobian.csv")
        credit.to_frame().to_csv(args.output_dir / "credit_curve.csv")
        credit.jacobian_frame().to_csv(args.output_dir / "credit_jacobian.csv")
        print(f"\nResults written to {args.output_dir}")

    print("\nProvider summary:", provider.to_dict())


if __name__ == "__main__":
    main()
