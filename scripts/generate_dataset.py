"""
Sample Export Generator

Writes synthetic sales exports (generic, Salla-like, Shopify-like) and a
daily inventory history to data/generated/ for manual testing.
"""

import argparse
from pathlib import Path

from profit_insights.data import DataGenerator

OUTPUT_DIR = Path(__file__).parent.parent / "data" / "generated"


def main():
    parser = argparse.ArgumentParser(description="Generate sample store exports")
    parser.add_argument("--orders", type=int, default=5000, help="Order rows per sales export")
    parser.add_argument("--days", type=int, default=56, help="Days of inventory history")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--output", type=Path, default=OUTPUT_DIR, help="Output directory")
    args = parser.parse_args()

    print("=" * 60)
    print("Sample Export Generator")
    print("=" * 60 + "\n")

    outputs = DataGenerator(str(args.output), seed=args.seed).generate_all(args.orders, args.days)

    for name, path in outputs.items():
        size = path.stat().st_size / 1024
        with open(path, "r", encoding="utf-8") as file:
            rows = sum(1 for _ in file) - 1
        print(f"   {name}: {rows:,} rows ({size:.1f} KB) -> {path}")


if __name__ == "__main__":
    main()
