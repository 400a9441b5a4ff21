"""
Data Cleaning Module

Cleaning transformations applied to the raw ShopX record sets before scoring.
Handles:
- Schema conformance
- Whole-row deduplication
- Null-key filtering

Cleaning is applied to each record type independently; no rows are removed
because of what another table does or does not contain.
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

import polars as pl
import structlog

from rfm_segmentation.schemas import CUSTOMER_SCHEMA, ORDER_DETAIL_SCHEMA, ORDER_SCHEMA, RecordSets, conform

logger = structlog.get_logger(__name__)


@dataclass
class CleaningStats:
    """Statistics from cleaning one record set"""
    record_type: str
    total_rows: int
    rows_after_cleaning: int
    duplicates_removed: int
    null_keys_removed: int


class DataCleaner:
    """
    Deduplicates and null-filters customer, order and order line records.

    Example:
        cleaner = DataCleaner()
        cleaned, stats = cleaner.clean(customers_df, orders_df, details_df)
    """

    # Columns that must be present for a row to survive cleaning
    REQUIRED_KEYS: Dict[str, List[str]] = {
        "customers": ["customer_id", "signup_date"],
        "orders": ["order_id"],
        "order_details": ["order_detail_id"],
    }

    def __init__(self):
        self._stats: Dict[str, CleaningStats] = {}

    @property
    def stats(self) -> Dict[str, CleaningStats]:
        """Stats from the most recent clean of each record type"""
        return dict(self._stats)

    def _remove_duplicates(self, df: pl.DataFrame) -> pl.DataFrame:
        """Remove rows equal on every column, keeping the first occurrence"""
        return df.unique(keep="first", maintain_order=True)

    def _drop_null_keys(self, df: pl.DataFrame, columns: List[str]) -> pl.DataFrame:
        """Drop rows where any of the given columns is null"""
        present = [c for c in columns if c in df.columns]
        if not present:
            return df
        return df.drop_nulls(subset=present)

    def _clean(
        self,
        df: pl.DataFrame,
        record_type: str,
        schema: Dict[str, pl.DataType],
    ) -> pl.DataFrame:
        total_rows = len(df)
        df = conform(df, schema)

        deduplicated = self._remove_duplicates(df)
        duplicates_removed = total_rows - len(deduplicated)

        cleaned = self._drop_null_keys(deduplicated, self.REQUIRED_KEYS[record_type])
        null_keys_removed = len(deduplicated) - len(cleaned)

        self._stats[record_type] = CleaningStats(
            record_type=record_type,
            total_rows=total_rows,
            rows_after_cleaning=len(cleaned),
            duplicates_removed=duplicates_removed,
            null_keys_removed=null_keys_removed,
        )

        logger.info(
            f"Cleaned {record_type}",
            total_rows=total_rows,
            rows_after_cleaning=len(cleaned),
            duplicates_removed=duplicates_removed,
            null_keys_removed=null_keys_removed,
        )

        return cleaned

    def clean_customers(self, df: pl.DataFrame) -> pl.DataFrame:
        """Deduplicate customers; drop rows without customer_id or signup_date"""
        return self._clean(df, "customers", CUSTOMER_SCHEMA)

    def clean_orders(self, df: pl.DataFrame) -> pl.DataFrame:
        """Deduplicate orders; drop rows without order_id"""
        return self._clean(df, "orders", ORDER_SCHEMA)

    def clean_order_details(self, df: pl.DataFrame) -> pl.DataFrame:
        """Deduplicate order lines; drop rows without order_detail_id"""
        return self._clean(df, "order_details", ORDER_DETAIL_SCHEMA)

    def clean(
        self,
        customers: pl.DataFrame,
        orders: pl.DataFrame,
        order_details: pl.DataFrame,
    ) -> Tuple[RecordSets, Dict[str, CleaningStats]]:
        """
        Clean all three record sets.

        Args:
            customers: Raw customer records
            orders: Raw order records
            order_details: Raw order line records

        Returns:
            Cleaned record sets and per-type cleaning statistics
        """
        cleaned = RecordSets(
            customers=self.clean_customers(customers),
            orders=self.clean_orders(orders),
            order_details=self.clean_order_details(order_details),
        )
        return cleaned, self.stats


def clean_dataframe(df: pl.DataFrame, data_type: str) -> pl.DataFrame:
    """
    Convenience function to clean a single record set.

    Args:
        df: Input DataFrame
        data_type: "customers", "orders" or "order_details"

    Returns:
        Cleaned DataFrame
    """
    cleaner = DataCleaner()

    if data_type == "customers":
        return cleaner.clean_customers(df)
    elif data_type == "orders":
        return cleaner.clean_orders(df)
    elif data_type == "order_details":
        return cleaner.clean_order_details(df)
    raise ValueError(f"Unknown data type: {data_type}")
