"""
ShopX Demo Dataset Generator
Writes customer.csv, orders.csv and order_detail.csv for local runs of the
RFM pipeline.

Usage:
    python scripts/generate_dataset.py --customers 10000 --output-dir data/generated
"""

import argparse
from datetime import date, timedelta
from pathlib import Path

from rfm_segmentation.config.logging import configure_logging
from rfm_segmentation.data.generators import DataGenerator

DEFAULT_OUTPUT_DIR = Path(__file__).parent.parent / "data" / "generated"


def main():
    parser = argparse.ArgumentParser(description="Generate ShopX source data")
    parser.add_argument("--customers", type=int, default=10000, help="Number of customers")
    parser.add_argument("--products", type=int, default=500, help="Number of products")
    parser.add_argument("--days", type=int, default=730, help="Length of the order window in days")
    parser.add_argument("--end-date", type=date.fromisoformat, default=date.today(), help="Last order date")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--clean", action="store_true", help="Skip duplicate and null-key rows")
    parser.add_argument("--output-dir", default=str(DEFAULT_OUTPUT_DIR), help="Target directory")
    args = parser.parse_args()

    configure_logging()

    generator = DataGenerator(output_dir=args.output_dir, seed=args.seed)
    sources = generator.generate_all(
        n_customers=args.customers,
        n_products=args.products,
        start_date=args.end_date - timedelta(days=args.days),
        end_date=args.end_date,
        with_defects=not args.clean,
    )

    total = len(sources.customers) + len(sources.orders) + len(sources.order_details)
    print(f"Wrote {total:,} rows to {generator.output_dir}")


if __name__ == "__main__":
    main()
