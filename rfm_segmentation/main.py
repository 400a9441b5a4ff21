"""
Command-line Entry Point

Usage:
    Score from the database:  rfm-segmentation score --analysis-date 2023-01-01
    Score from files:         rfm-segmentation score --analysis-date 2023-01-01 --source-dir data/raw
    Stage files into tables:  rfm-segmentation seed --source-dir data/raw
    Generate demo data:       rfm-segmentation generate --output-dir data/raw
"""

import argparse
import asyncio
import sys
from datetime import date
from typing import List, Optional

import structlog

from rfm_segmentation.config import get_settings
from rfm_segmentation.config.logging import configure_logging
from rfm_segmentation.database.connection import close_database, init_database
from rfm_segmentation.ingestion.batch_loader import BatchLoader, FileFormat
from rfm_segmentation.transformation.exceptions import RFMError
from rfm_segmentation.transformation.pipeline import RFMPipeline, RFMResult

logger = structlog.get_logger(__name__)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Not a YYYY-MM-DD date: {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rfm-segmentation",
        description="RFM customer segmentation pipeline",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ERROR)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    score = subparsers.add_parser("score", help="Recompute the RFM table")
    score.add_argument(
        "--analysis-date",
        type=_parse_date,
        required=True,
        help="Reference date for recency (YYYY-MM-DD)",
    )
    score.add_argument(
        "--source-dir",
        default=None,
        help="Read source files from this directory instead of the database",
    )
    score.add_argument(
        "--output-dir",
        default=None,
        help="Directory for rfm.parquet when scoring from files",
    )
    score.add_argument(
        "--format",
        dest="file_format",
        choices=[f.value for f in FileFormat],
        default=None,
        help="Source file format (default: DATA_DEFAULT_FORMAT)",
    )

    seed = subparsers.add_parser("seed", help="Stage source files into the source tables")
    seed.add_argument("--source-dir", required=True, help="Directory with the source files")
    seed.add_argument(
        "--format",
        dest="file_format",
        choices=[f.value for f in FileFormat],
        default=FileFormat.CSV.value,
        help="Source file format (default: csv)",
    )
    seed.add_argument(
        "--append",
        action="store_true",
        help="Append to the tables instead of replacing their contents",
    )

    generate = subparsers.add_parser("generate", help="Write synthetic ShopX source files")
    generate.add_argument("--output-dir", default=None, help="Target directory (default: DATA_RAW_PATH)")
    generate.add_argument("--customers", type=int, default=1000, help="Number of customers")
    generate.add_argument("--seed", type=int, default=42, help="Random seed")

    return parser


def _report(result: RFMResult) -> None:
    logger.info(
        "RFM run finished",
        analysis_date=result.analysis_date.isoformat(),
        customers=len(result.records),
        rows_written=result.rows_written,
        orders_repaired=result.orders_repaired,
        validation=result.validation.status.value,
        output=result.output_path or "rfm",
        duration_seconds=round(result.duration_seconds, 3),
    )


async def _score_database(analysis_date: date) -> RFMResult:
    await init_database(create_tables=True)
    try:
        return await RFMPipeline().run(analysis_date)
    finally:
        await close_database()


async def _seed(source_dir: str, file_format: FileFormat, replace: bool) -> None:
    await init_database(create_tables=True)
    try:
        await BatchLoader().stage_directory(source_dir, file_format, replace=replace)
    finally:
        await close_database()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        if args.command == "score":
            file_format = FileFormat(args.file_format) if args.file_format else None
            if args.source_dir:
                result = RFMPipeline().run_from_files(
                    args.analysis_date,
                    source_dir=args.source_dir,
                    output_dir=args.output_dir,
                    file_format=file_format,
                )
            else:
                result = asyncio.run(_score_database(args.analysis_date))
            _report(result)

        elif args.command == "seed":
            asyncio.run(_seed(args.source_dir, FileFormat(args.file_format), not args.append))

        elif args.command == "generate":
            # Imported here so Faker is only loaded when generating
            from rfm_segmentation.data.generators import DataGenerator

            output_dir = args.output_dir or get_settings().data_lake.raw_path
            DataGenerator(output_dir=output_dir, seed=args.seed).generate_all(
                n_customers=args.customers
            )

    except RFMError as e:
        logger.error("RFM run failed", error=str(e), error_type=type(e).__name__)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
