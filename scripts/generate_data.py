"""
Market Data Exporter
====================
Generates the synthetic U.S. Water Repair Products fact table offline and
writes it to CSV, together with the dimension reference tables. Uses the
same generator, seed and dimension tables as the dashboard, so the exported
file is exactly what the pages aggregate.

Produces in the output directory:
  fact_table.csv        one row per (year, state, product type, material,
                        price range, application) combination (~985K rows)
  regions.csv           region → state map
  product_types.csv     category → subcategory map
  channels.csv          channel group → distribution channel map

Usage: python scripts/generate_data.py [--output DIR] [--years N] [--seed S]
"""

import argparse
import os

import pandas as pd

from market.config import MarketSettings, load_settings
from market.dimensions import DimensionTables
from market.generator import (
    FACT_COLUMNS, count_leaf_combinations, generate_fact_table,
    iter_fact_records, records_to_frame, round2,
)
from market.prng import SeededRandom

DEFAULT_OUTPUT_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "data")

DETERMINISM_SAMPLE = 1000


# ═══════════════════════════════════════════════════════════════════════════════
# 1. REFERENCE TABLES
# ═══════════════════════════════════════════════════════════════════════════════

def reference_tables(dims: DimensionTables) -> dict[str, list[dict]]:
    """Dimension hierarchies as flat rows, keyed by output filename."""
    return {
        "regions.csv": [
            {"region": region, "state": state}
            for region, state in dims.country_pairs()
        ],
        "product_types.csv": [
            {"product_category": cat, "sub_product_category": sub, "product_type": f"{cat} - {sub}"}
            for cat, sub in dims.product_pairs()
        ],
        "channels.csv": [
            {"channel_group": group, "distribution_channel": channel}
            for group, channels in dims.channel_groups.items()
            for channel in channels
        ],
    }


# ═══════════════════════════════════════════════════════════════════════════════
# 2. VALIDATION
# ═══════════════════════════════════════════════════════════════════════════════

def validate_data(df: pd.DataFrame, dims: DimensionTables, seed: int) -> bool:
    """Print a validation report; returns True when every check passes."""
    print("\n" + "=" * 70)
    print("VALIDATION REPORT")
    print("=" * 70)

    checks = []

    # ── Shape ──
    print("\n-- Shape --")
    expected = count_leaf_combinations(dims)
    checks.append(("row count matches leaf combinations", len(df) == expected))
    print(f"  Rows:     {len(df):,} (expected {expected:,})")
    print(f"  Columns:  {len(df.columns)}")

    # ── Record invariants ──
    print("\n-- Record Invariants --")
    ids = df["record_id"]
    checks.append(("record ids strictly increase by 1", bool((ids.diff().dropna() == 1).all())))
    checks.append(("product_type = category - subcategory", bool(
        (df["product_type"] == df["product_category"] + " - " + df["sub_product_category"]).all()
    )))
    checks.append(("value equals market_value_usd", bool((df["value"] == df["market_value_usd"]).all())))
    checks.append(("qty never exceeds 1.2 x volume", bool((df["qty"] <= df["volume_units"] * 1.2).all())))

    # ── Determinism ──
    first_id = int(ids.iloc[0]) if len(df) else 0
    sample_a = _head(dims, seed, first_id)
    sample_b = _head(dims, seed, first_id)
    checks.append(("same seed reproduces the same records", sample_a == sample_b))
    checks.append(("export matches regenerated sample", bool(
        records_to_frame(sample_a).equals(df.head(len(sample_a)).reset_index(drop=True))
    )))

    for name, passed in checks:
        print(f"  {'PASS' if passed else 'FAIL'}: {name}")

    # ── Measures ──
    print("\n-- Measure Summary --")
    print(f"  Price range:          ${df['price'].min():,.2f} – ${df['price'].max():,.2f}")
    print(f"  Volume range:         {df['volume_units'].min():,} – {df['volume_units'].max():,} units")
    print(f"  Total market value:   ${round2(df['market_value_usd'].sum() / 1e6):,.2f}M")
    print(f"  Mean market share:    {df['market_share_pct'].mean():.2f}%")
    print(f"  Mean CAGR:            {df['cagr'].mean():.2f}%")

    print("\n-- Market Value by Year (US$ Million) --")
    by_year = df.groupby("year")["market_value_usd"].sum() / 1e6
    for year, value in by_year.items():
        print(f"  {year}: {value:>12,.2f}")

    print("\n" + "=" * 70)
    return all(passed for _, passed in checks)


def _head(dims: DimensionTables, seed: int, first_record_id: int) -> list:
    records = []
    for record in iter_fact_records(dims, SeededRandom(seed), first_record_id):
        records.append(record)
        if len(records) == DETERMINISM_SAMPLE:
            break
    return records


# ═══════════════════════════════════════════════════════════════════════════════
# 3. CSV OUTPUT
# ═══════════════════════════════════════════════════════════════════════════════

def write_csv(data, path, columns=None):
    """Write a DataFrame or list of dicts to CSV."""
    df = data if isinstance(data, pd.DataFrame) else pd.DataFrame(data)
    if columns:
        df = df[columns]
    df.to_csv(path, index=False)
    print(f"  {os.path.basename(path):<45s} {len(df):>8,} rows")
    return df


# ═══════════════════════════════════════════════════════════════════════════════
# MAIN
# ═══════════════════════════════════════════════════════════════════════════════

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Export the synthetic market fact table to CSV.")
    parser.add_argument("--output", default=DEFAULT_OUTPUT_DIR, help="Output directory")
    parser.add_argument("--years", type=int, default=None, help="Number of years to generate")
    parser.add_argument("--seed", type=int, default=None, help="PRNG seed")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    overrides = {}
    if args.years is not None:
        overrides["num_years"] = args.years
    if args.seed is not None:
        overrides["seed"] = args.seed
    settings = MarketSettings(**{**load_settings().model_dump(), **overrides})
    dims = settings.dimensions()

    os.makedirs(args.output, exist_ok=True)

    print("Market Data Exporter")
    print("=" * 70)
    print(f"Output directory: {args.output}")
    print(f"Random seed:      {settings.seed}")
    print(f"Years:            {settings.start_year}–{settings.end_year}")

    print("\nGenerating data...")
    records = generate_fact_table(dims, SeededRandom(settings.seed), settings.first_record_id)
    df = records_to_frame(records)

    print("\nWriting CSV files...")
    for filename, rows in reference_tables(dims).items():
        write_csv(rows, os.path.join(args.output, filename))
    write_csv(df, os.path.join(args.output, "fact_table.csv"), FACT_COLUMNS)

    ok = validate_data(df, dims, settings.seed)

    print("\nDone!" if ok else "\nDone with validation failures.")
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
