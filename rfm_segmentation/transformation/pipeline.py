"""
RFM Pipeline

Orchestrates the five scoring stages:

1. Clean customers, orders and order lines
2. Reconcile missing order totals from order lines
3. Calculate Recency, Frequency, Monetary per customer
4. Rank each metric and assign labels
5. Compose the segment code and join customer attributes

``RFMPipeline.score`` is a pure in-memory transformation. ``RFMPipeline.run``
reads the source tables, writes repaired order totals back and replaces the
RFM table, all inside one database transaction.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Dict, Optional, Union

import polars as pl
import structlog

from rfm_segmentation.config import RFMSettings, get_settings
from rfm_segmentation.database.connection import close_database, get_db, init_database
from rfm_segmentation.database.repository import RFMRepository
from rfm_segmentation.ingestion.batch_loader import BatchLoader, FileFormat
from rfm_segmentation.quality.validators import (
    ValidationResult,
    ValidationStatus,
    create_rfm_validator,
)

from .cleaners import CleaningStats, DataCleaner
from .composer import SegmentComposer
from .exceptions import RFMValidationError
from .metrics import MetricCalculator
from .ranking import PercentileRanker
from .reconciler import AmountReconciler, ReconciliationResult

logger = structlog.get_logger(__name__)

OUTPUT_FILE_NAME = "rfm.parquet"


@dataclass
class RFMResult:
    """Outcome of one pipeline invocation"""
    analysis_date: date
    records: pl.DataFrame
    reconciliation: ReconciliationResult
    cleaning_stats: Dict[str, CleaningStats]
    validation: ValidationResult
    started_at: datetime
    completed_at: datetime
    rows_written: int = 0
    orders_repaired: int = 0
    output_path: Optional[str] = None
    segment_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def duration_seconds(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()


class RFMPipeline:
    """
    Full-recompute RFM scoring pipeline.

    Example:
        pipeline = RFMPipeline()
        result = pipeline.score(customers, orders, order_details, date(2023, 1, 1))

        await init_database()
        await pipeline.run(date(2023, 1, 1))
    """

    def __init__(self, rfm_settings: Optional[RFMSettings] = None):
        self.settings = rfm_settings or get_settings().rfm
        self.cleaner = DataCleaner()
        self.reconciler = AmountReconciler()
        self.calculator = MetricCalculator(monetary_precision=self.settings.monetary_precision)
        self.ranker = PercentileRanker(
            lower_threshold=self.settings.lower_threshold,
            upper_threshold=self.settings.upper_threshold,
            rank_precision=self.settings.rank_precision,
        )
        self.composer = SegmentComposer(
            recency_sentinel_days=self.settings.recency_sentinel_days,
            recency_sentinel_label=self.settings.recency_sentinel_label,
        )

    def score(
        self,
        customers: pl.DataFrame,
        orders: pl.DataFrame,
        order_details: pl.DataFrame,
        analysis_date: date,
    ) -> RFMResult:
        """
        Score every customer as of ``analysis_date``.

        Args:
            customers: Raw customer records
            orders: Raw order records
            order_details: Raw order line records
            analysis_date: Reference date for recency

        Returns:
            RFMResult holding the composed RFM records

        Raises:
            SegmentCompositionError: If a customer would be dropped from output
            RFMValidationError: If strict validation is on and the output
                violates an invariant
        """
        started_at = datetime.utcnow()
        if isinstance(analysis_date, datetime):
            analysis_date = analysis_date.date()

        logger.info("Starting RFM scoring", analysis_date=analysis_date.isoformat())

        cleaned, cleaning_stats = self.cleaner.clean(customers, orders, order_details)
        reconciliation = self.reconciler.reconcile(cleaned.orders, cleaned.order_details)
        metrics = self.calculator.calculate(
            cleaned.customers,
            reconciliation.orders,
            cleaned.order_details,
            analysis_date,
        )
        labels = self.ranker.rank(metrics)
        records = self.composer.compose(labels, cleaned.customers)

        validation = create_rfm_validator(cleaned.customers, self.settings).validate(records)
        if validation.status == ValidationStatus.FAILED:
            if self.settings.strict_validation:
                raise RFMValidationError(validation)
            logger.warning("Continuing with RFM output that failed validation")

        segment_counts = dict(
            records.group_by("total_RFM_score").len().sort("total_RFM_score").iter_rows()
        )

        completed_at = datetime.utcnow()
        logger.info(
            "RFM scoring complete",
            customers=len(records),
            segments=len(segment_counts),
            duration_seconds=(completed_at - started_at).total_seconds(),
        )

        return RFMResult(
            analysis_date=analysis_date,
            records=records,
            reconciliation=reconciliation,
            cleaning_stats=cleaning_stats,
            validation=validation,
            started_at=started_at,
            completed_at=completed_at,
            segment_counts=segment_counts,
        )

    async def run(self, analysis_date: date) -> RFMResult:
        """
        Recompute the RFM table from the source tables.

        Reads, order-total repair and table replacement share one transaction;
        on any failure the transaction rolls back and the previous RFM table
        is left untouched. The database must already be initialized.
        """
        async with get_db() as db:
            repo = RFMRepository(db)
            customers = await repo.load_customers()
            orders = await repo.load_orders()
            order_details = await repo.load_order_details()

            result = self.score(customers, orders, order_details, analysis_date)

            result.orders_repaired = await repo.fill_missing_order_totals(
                result.reconciliation.filled
            )
            result.rows_written = await repo.replace_rfm_scores(result.records)

        logger.info(
            "RFM table replaced",
            analysis_date=result.analysis_date.isoformat(),
            rows=result.rows_written,
            orders_repaired=result.orders_repaired,
        )
        return result

    def run_from_files(
        self,
        analysis_date: date,
        source_dir: Optional[Union[str, Path]] = None,
        output_dir: Optional[Union[str, Path]] = None,
        file_format: Optional[FileFormat] = None,
    ) -> RFMResult:
        """
        Score source files and replace the RFM Parquet file in ``output_dir``.

        Source files are read only; repaired totals are not written back.
        The output is written to a temporary file and moved over the previous
        result, so readers never see a partial file.
        """
        sources = BatchLoader().read_sources(source_dir, file_format)
        result = self.score(sources.customers, sources.orders, sources.order_details, analysis_date)

        output_dir = Path(output_dir or get_settings().data_lake.curated_path)
        output_dir.mkdir(parents=True, exist_ok=True)
        output_file = output_dir / OUTPUT_FILE_NAME
        staging_file = output_dir / f".{OUTPUT_FILE_NAME}.tmp"

        result.records.write_parquet(staging_file)
        staging_file.replace(output_file)

        result.rows_written = len(result.records)
        result.output_path = str(output_file)
        logger.info(f"Written {result.rows_written} rows to {output_file}")
        return result


async def run(analysis_date: date) -> None:
    """
    Recompute the RFM table for ``analysis_date`` against the configured database.
    """
    await init_database()
    try:
        await RFMPipeline().run(analysis_date)
    finally:
        await close_database()
