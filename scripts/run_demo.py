#!/usr/bin/env python
"""
Credit Index Option Demo Script

This script demonstrates the full workflow of the credit index option library:
1. Build a discount curve and calibrate the index to its quote
2. Compute forwards for the option expiry
3. Value payer/receiver options under every model type
4. Run volatility round trips
5. Export the tables

Usage:
    python run_demo.py [--output-dir OUTPUT_DIR] [--nodes N]
"""

import argparse
import logging
import sys
from pathlib import Path

import pandas as pd

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cdxlib import (
    CdsPricer,
    DiscountCurve,
    ForwardCalculator,
    ModelType,
    OptionSpec,
    PricerContext,
    QuadratureNodeSet,
    build_model,
)
from cdxlib.reporting import model_comparison, summarize_round_trip, volatility_round_trip


VOLATILITIES = [0.2, 0.4, 0.6, 0.8]


def build_index(rate: float, maturity: float, premium: float) -> CdsPricer:
    """Index CDS on a flat discount curve, accruing since the last roll."""
    print("\n" + "="*60)
    print("Building Index Pricer")
    print("="*60)

    curve = DiscountCurve.flat(rate)
    pricer = CdsPricer(curve, maturity=maturity, premium=premium, effective=-0.1)
    print(f"  Discount rate: {rate*100:.2f}%")
    print(f"  Maturity:      {maturity:.2f}Y")
    print(f"  Coupon:        {premium*10000:.0f}bp")
    return pricer


def compute_forwards(pricer: CdsPricer, quote: float, expiry: float, strike: float):
    """Calibrate to the index quote and compute forwards at expiry."""
    print("\n" + "="*60)
    print("Computing Forwards")
    print("="*60)

    calculator = ForwardCalculator(pricer, quote=quote)
    forwards = calculator.forwards(expiry, strike)
    print(f"  Hazard rate:          {calculator.hazard_rate*100:.4f}%")
    print(f"  Forward PV01:         {forwards.pv01:.4f}")
    print(f"  Forward upfront:      {forwards.upfront*100:.4f}%")
    print(f"  Front-end protection: {forwards.front_end_protection*100:.4f}%")
    print(f"  Strike upfront:       {forwards.strike_value*100:.4f}%")
    return forwards


def value_options(forwards, context: PricerContext, strike: float, premium: float) -> pd.DataFrame:
    """Fair values per model type for a payer and a receiver."""
    print("\n" + "="*60)
    print("Valuing Options")
    print("="*60)

    tables = []
    for is_payer in (True, False):
        option = OptionSpec(is_payer=is_payer, strike=strike, index_premium=premium)
        table = model_comparison(option, forwards, context, list(ModelType), VOLATILITIES)
        table.insert(0, "option", "PAYER" if is_payer else "RECEIVER")
        tables.append(table)

    result = pd.concat(tables, ignore_index=True)
    for _, row in result.iterrows():
        print(f"  {row['option']:>8s} | {row['model_type']:>18s} | vol {row['volatility']:.0%} "
              f"| FV: {row['fair_value']*10000:>8.2f}bp | P(ex): {row['exercise_probability']:.3f}")
    return result


def run_round_trips(forwards, context: PricerContext, strike: float, premium: float) -> pd.DataFrame:
    """Volatility round trips for each model type on a payer."""
    print("\n" + "="*60)
    print("Volatility Round Trips")
    print("="*60)

    option = OptionSpec(is_payer=True, strike=strike, index_premium=premium)
    tables = []
    for model_type in ModelType:
        model = build_model(option, forwards, model_type, context)
        table = volatility_round_trip(model, VOLATILITIES)
        table.insert(0, "model_type", model_type.value)
        summary = summarize_round_trip(table)
        print(f"  {model_type.value:>18s}: max error {summary['max_abs_error']:.2e}, "
              f"failures {summary['n_failures']}")
        tables.append(table)
    return pd.concat(tables, ignore_index=True)


def main():
    parser = argparse.ArgumentParser(description="Credit index option demo")
    parser.add_argument("--output-dir", type=str, default=None,
                        help="Directory for CSV output")
    parser.add_argument("--nodes", type=int, default=0,
                        help="Gauss-Hermite nodes for Modified Black (0 = adaptive)")
    parser.add_argument("--verbose", action="store_true", help="Log calibration traces")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    print("="*60)
    print("CREDIT INDEX OPTION DEMO")
    print("="*60)

    premium, quote, expiry, strike = 0.01, 0.012, 0.3, 0.0125
    pricer = build_index(rate=0.03, maturity=5.0, premium=premium)
    forwards = compute_forwards(pricer, quote, expiry, strike)

    nodes = QuadratureNodeSet.gauss_hermite(args.nodes) if args.nodes > 0 else QuadratureNodeSet.empty()
    context = PricerContext(pricer=pricer, expiry=expiry, nodes=nodes)

    values = value_options(forwards, context, strike, premium)
    round_trips = run_round_trips(forwards, context, strike, premium)

    if args.output_dir:
        output_dir = Path(args.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        values.to_csv(output_dir / "option_values.csv", index=False)
        round_trips.to_csv(output_dir / "round_trips.csv", index=False)
        print(f"\nTables written to {output_dir}")

    print("\n" + "="*60)
    print("DEMO COMPLETE")
    print("="*60)


if __name__ == "__main__":
    main()
