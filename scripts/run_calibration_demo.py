#!/usr/bin/env python
"""
SABR Cube Calibration Demo Script

Demonstrates the cash settled swaption workflow:
1. Build OIS discounting and 6M projection curves
2. Generate cash settled payer/receiver prices and physical ATM vols
   from a reference SABR cube, and store them as CSV quote tables
3. Reload the tables into swaption lattices
4. Transport the cash smile onto the physical ATM level
5. Calibrate a SABR cube and compare it with the reference

Usage:
    python run_calibration_demo.py [--output-dir OUTPUT_DIR] [--threads N] [--verbose]
"""

import argparse
import logging
import sys
from datetime import date
from pathlib import Path

import numpy as np

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sabrcube import (
    AnnuityMappingType,
    CashSettledSwaption,
    DayCount,
    MarketModel,
    QuoteTable,
    QuotingConvention,
    SabrCubeCalibrator,
    SabrTenorParameters,
    SchedulePrototype,
    TableConvention,
    VolatilityCube,
    convert_cash_lattice_to_normal_volatility,
    convert_table_to_lattice,
    convert_tables_to_lattice,
    create_flat_curve,
    create_forward_curve,
    shift_cash_to_physical_smile,
)
from sabrcube.options.swaption import build_underlying

REFERENCE_DATE = date(2017, 8, 30)
DISCOUNT_CURVE = "EUR-OIS"
FORWARD_CURVE = "EUR-6M"

MATURITIES = [12, 24, 60]
TENORS = [24, 60, 120]
PAYER_MONEYNESS = [0, 50, 100, 200]
RECEIVER_MONEYNESS = [0, 50, 100]

DISPLACEMENT = 0.25
BETA = 0.5
CORRELATION_DECAY = 0.045
IBOR_OIS_DECORRELATION = 1.2


def print_section(title: str):
    """Print section header."""
    print(f"\n{'='*60}")
    print(f" {title}")
    print('='*60)


def build_market() -> MarketModel:
    """Flat curves: OIS at 0.5%, 6M index at 1.2%."""
    print_section("1. Market Curves")
    model = MarketModel([
        create_flat_curve(DISCOUNT_CURVE, REFERENCE_DATE, 0.005),
        create_forward_curve(FORWARD_CURVE, REFERENCE_DATE, 0.012),
    ])
    print(f"  {model}")
    return model


def reference_cube() -> VolatilityCube:
    """The cube the synthetic quotes are generated from."""
    parameters = {}
    for i, tenor in enumerate(TENORS):
        parameters[tenor] = SabrTenorParameters.from_nodes(
            maturities=MATURITIES,
            base_volatilities=[0.0125 - 0.0005 * i, 0.0118 - 0.0005 * i, 0.0110 - 0.0005 * i],
            volvols=[0.40, 0.33, 0.25],
            rhos=[-0.20, -0.25, -0.30],
            displacement=DISPLACEMENT,
            beta=BETA,
            correlation_decay=CORRELATION_DECAY,
            ibor_ois_decorrelation=IBOR_OIS_DECORRELATION,
        )
    return VolatilityCube("EUR-SABR-REF", REFERENCE_DATE, parameters)


def generate_quotes(model: MarketModel, fix: SchedulePrototype, flt: SchedulePrototype, output_dir: Path):
    """Write one CSV table per moneyness for payers and receivers, plus ATM vols."""
    print_section("2. Synthetic Market Quotes")
    cube = reference_cube()
    priced = model.with_volatility_cube(cube)

    payers = {m: ([], [], []) for m in PAYER_MONEYNESS}
    receivers = {m: ([], [], []) for m in RECEIVER_MONEYNESS}
    atm = ([], [], [])

    for maturity in MATURITIES:
        for tenor in TENORS:
            u = build_underlying(model, REFERENCE_DATE, maturity, tenor, fix, flt, DISCOUNT_CURVE, FORWARD_CURVE)

            def cash_price(strike, is_payer):
                return CashSettledSwaption(
                    maturity, tenor, u.fix_schedule, u.float_schedule, strike,
                    DISCOUNT_CURVE, FORWARD_CURVE, cube.name,
                    AnnuityMappingType.MULTI_PITERBARG, is_payer,
                ).value(priced)

            for m, (mats, tens, vals) in payers.items():
                mats.append(maturity)
                tens.append(tenor)
                vals.append(cash_price(u.forward + m * 1e-4, True))
            for m, (mats, tens, vals) in receivers.items():
                mats.append(maturity)
                tens.append(tenor)
                vals.append(cash_price(u.forward - m * 1e-4, False))

            atm[0].append(maturity)
            atm[1].append(tenor)
            atm[2].append(cube.normal_volatility(maturity, tenor, u.forward, u.forward, u.expiry))

    output_dir.mkdir(parents=True, exist_ok=True)
    for label, tables in (("payer", payers), ("receiver", receivers)):
        for m, (mats, tens, vals) in tables.items():
            QuoteTable(f"{label}_{m}", TableConvention.MONTHS, mats, tens, vals).to_csv(
                output_dir / f"{label}_{m}.csv"
            )
    QuoteTable("physical_atm", TableConvention.MONTHS, *atm).to_csv(output_dir / "physical_atm.csv")

    print(f"  Wrote {len(payers) + len(receivers) + 1} quote tables to {output_dir}")
    return cube


def load_lattices(fix: SchedulePrototype, flt: SchedulePrototype, output_dir: Path):
    """Reload the CSV tables as lattices."""
    print_section("3. Swaption Lattices")
    common = (REFERENCE_DATE, DISCOUNT_CURVE, FORWARD_CURVE, fix, flt, DISPLACEMENT)

    payer_tables = {m: QuoteTable.read_csv(output_dir / f"payer_{m}.csv") for m in PAYER_MONEYNESS}
    receiver_tables = {m: QuoteTable.read_csv(output_dir / f"receiver_{m}.csv") for m in RECEIVER_MONEYNESS}
    atm_table = QuoteTable.read_csv(output_dir / "physical_atm.csv")

    payer_lattice = convert_tables_to_lattice(payer_tables, QuotingConvention.PAYER_PRICE, *common)
    receiver_lattice = convert_tables_to_lattice(receiver_tables, QuotingConvention.RECEIVER_PRICE, *common)
    physical_lattice = convert_table_to_lattice(atm_table, QuotingConvention.PAYER_VOL_NORMAL, *common)

    for name, lattice in (("Payer", payer_lattice), ("Receiver", receiver_lattice), ("Physical", physical_lattice)):
        print(f"  {name:<9} {lattice}")
    return payer_lattice, receiver_lattice, physical_lattice


def demo_smile_shift(model: MarketModel, payer_lattice, receiver_lattice, physical_lattice):
    print_section("4. Cash to Physical Smile Shift")
    cash_vols = convert_cash_lattice_to_normal_volatility(payer_lattice, model)
    smile = shift_cash_to_physical_smile(model, physical_lattice, payer_lattice, receiver_lattice)

    maturity, tenor = 12, 60
    print(f"  {maturity}M x {tenor}M normal vols (bp):")
    print(f"  {'Moneyness':>10} {'Cash':>10} {'Physical':>10}")
    for m in smile.moneyness():
        cash = cash_vols.get(maturity, tenor, m)
        cash_str = f"{cash * 1e4:10.2f}" if cash is not None else f"{'-':>10}"
        print(f"  {m:>10} {cash_str} {smile.value(maturity, tenor, m) * 1e4:10.2f}")


def demo_calibration(model: MarketModel, payer_lattice, receiver_lattice, physical_lattice,
                     reference: VolatilityCube, threads: int) -> VolatilityCube:
    print_section("5. SABR Cube Calibration")
    calibrator = SabrCubeCalibrator(
        REFERENCE_DATE, payer_lattice, receiver_lattice, physical_lattice, model,
        AnnuityMappingType.MULTI_PITERBARG,
        displacement=DISPLACEMENT,
        beta=BETA,
        correlation_decay=CORRELATION_DECAY,
        ibor_ois_decorrelation=IBOR_OIS_DECORRELATION,
    )
    calibrator.set_calibration_parameters(max_iterations=300, number_of_threads=threads)
    cube = calibrator.calibrate("EUR-SABR", TENORS)

    print("\n  Diagnostics:")
    print(calibrator.diagnostics[["tenor", "observations", "rms_error", "evaluations", "status"]].to_string(index=False))

    fitted = cube.parameters_frame().set_index(["tenor", "maturity"])
    truth = reference.parameters_frame().set_index(["tenor", "maturity"])
    comparison = fitted[["base_volatility", "volvol", "rho"]].join(
        truth[["base_volatility", "volvol", "rho"]], rsuffix="_ref"
    )
    print("\n  Calibrated vs reference parameters:")
    print(comparison.round(5).to_string())

    max_error = np.max(np.abs(fitted["base_volatility"].values - truth["base_volatility"].values))
    print(f"\n  Max base volatility error: {max_error:.2e}")
    return cube


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="SABR Cube Calibration Demo")
    parser.add_argument(
        "--output-dir",
        type=str,
        default="./output/quotes",
        help="Directory for the generated quote tables"
    )
    parser.add_argument(
        "--threads",
        type=int,
        default=None,
        help="Worker threads for the calibration (default: one per tenor)",
    )
    parser.add_argument("--verbose", action="store_true", help="Log calibration progress")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    print("\n" + "="*60)
    print(" SABR Cube Calibration Demo")
    print(f" Reference Date: {REFERENCE_DATE}")
    print("="*60)

    fix = SchedulePrototype(frequency_months=12, day_count=DayCount.THIRTY_360)
    flt = SchedulePrototype(frequency_months=6, day_count=DayCount.ACT_360)
    output_dir = Path(args.output_dir)

    model = build_market()
    reference = generate_quotes(model, fix, flt, output_dir)
    payer_lattice, receiver_lattice, physical_lattice = load_lattices(fix, flt, output_dir)
    demo_smile_shift(model, payer_lattice, receiver_lattice, physical_lattice)
    demo_calibration(model, payer_lattice, receiver_lattice, physical_lattice, reference,
                     args.threads or len(TENORS))

    print("\n" + "="*60)
    print(" Demo Complete!")
    print("="*60 + "\n")


if __name__ == "__main__":
    main()
