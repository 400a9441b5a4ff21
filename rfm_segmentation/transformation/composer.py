"""
Segment Composition

Combines the three labels into the composite ``total_RFM_score`` and joins
customer attributes back onto the scores to produce the output table.
"""

from typing import Set

import polars as pl
import structlog

from rfm_segmentation.schemas import RFM_COLUMNS, RFM_SCHEMA

from .exceptions import SegmentCompositionError

logger = structlog.get_logger(__name__)

CUSTOMER_ATTRIBUTES = ["customer_id", "name", "gender", "age", "region", "signup_date"]


class SegmentComposer:
    """
    Builds the final RFM records.

    Customers that have no qualifying order for recency receive the recency
    sentinels (``recency_sentinel_days`` and ``recency_sentinel_label``).
    Composition refuses to silently drop a customer: if the label set and
    the customer attributes do not cover the same customers a
    SegmentCompositionError is raised.
    """

    def __init__(self, recency_sentinel_days: int = 9999, recency_sentinel_label: int = 4):
        self.recency_sentinel_days = recency_sentinel_days
        self.recency_sentinel_label = recency_sentinel_label

    def _attributes(self, customers: pl.DataFrame) -> pl.DataFrame:
        """One attribute row per customer_id"""
        attributes = customers.select(CUSTOMER_ATTRIBUTES)
        unique = attributes.unique(subset=["customer_id"], keep="first", maintain_order=True)
        if len(unique) < len(attributes):
            logger.warning(
                "Conflicting customer rows share a customer_id; keeping the first",
                conflicting_rows=len(attributes) - len(unique),
            )
        return unique

    def _check_coverage(self, labels: pl.DataFrame, attributes: pl.DataFrame) -> None:
        labelled: Set[int] = set(labels["customer_id"].to_list())
        described: Set[int] = set(attributes["customer_id"].to_list())

        missing_attributes = sorted(labelled - described)
        missing_labels = sorted(described - labelled)
        if missing_attributes or missing_labels:
            logger.error(
                "Label set and customer attributes disagree",
                missing_attributes=missing_attributes[:10],
                missing_labels=missing_labels[:10],
            )
            raise SegmentCompositionError(missing_attributes, missing_labels)

    def compose(self, labels: pl.DataFrame, customers: pl.DataFrame) -> pl.DataFrame:
        """
        Compose the output RFM records.

        Args:
            labels: Ranked metrics with recency/frequency/monetary labels
            customers: Cleaned customers

        Returns:
            DataFrame with the RFM output columns, sorted by customer_id
        """
        attributes = self._attributes(customers)
        self._check_coverage(labels, attributes)

        scored = labels.with_columns([
            pl.col("recency")
            .fill_null(self.recency_sentinel_days)
            .cast(pl.Int64),
            pl.col("recency_label")
            .fill_null(self.recency_sentinel_label)
            .cast(pl.Int64),
        ]).with_columns(
            pl.concat_str([
                pl.col("recency_label").cast(pl.Utf8),
                pl.col("frequency_label").cast(pl.Utf8),
                pl.col("monetary_label").cast(pl.Utf8),
            ]).alias("total_RFM_score")
        )

        records = (
            scored.join(attributes, on="customer_id", how="left")
            .select(RFM_COLUMNS)
            .cast(RFM_SCHEMA)
            .sort("customer_id")
        )

        logger.info(
            "Composed RFM segments",
            customers=len(records),
            segments=records["total_RFM_score"].n_unique() if len(records) else 0,
        )

        return records
