"""
Unit Tests - Data Cleaning
"""
from datetime import datetime

import polars as pl
import pytest

from rfm_segmentation.transformation.cleaners import DataCleaner, clean_dataframe


class TestDataCleaner:
    """Tests for DataCleaner"""

    def test_remove_duplicates_keeps_first(self):
        """Only rows equal on every column are duplicates"""
        cleaner = DataCleaner()
        df = pl.DataFrame({
            "id": [1, 2, 1, 1],
            "value": ["a", "b", "a", "c"],
        })

        result = cleaner._remove_duplicates(df)

        assert result.rows() == [(1, "a"), (2, "b"), (1, "c")]

    def test_clean_customers(self, customers_df):
        """Duplicates and rows missing customer_id or signup_date are removed"""
        cleaner = DataCleaner()
        result = cleaner.clean_customers(customers_df)

        assert result["customer_id"].to_list() == [1, 2, 3, 4, 5]
        assert result["signup_date"].null_count() == 0

        stats = cleaner.stats["customers"]
        assert stats.total_rows == 8
        assert stats.duplicates_removed == 1
        assert stats.null_keys_removed == 2
        assert stats.rows_after_cleaning == 5

    def test_clean_orders_keeps_null_totals(self, orders_df):
        """A missing total is not a missing key"""
        result = DataCleaner().clean_orders(orders_df)

        assert result["order_id"].to_list() == [101, 102, 103, 104, 105, 106]
        assert result.filter(pl.col("order_id") == 102)["total_amount"].to_list() == [None]

    def test_clean_order_details(self, order_details_df):
        result = DataCleaner().clean_order_details(order_details_df)

        assert result["order_detail_id"].to_list() == [1, 2, 3, 4, 5, 6, 7, 8]

    def test_cleaning_is_per_table(self, customers_df, orders_df, order_details_df):
        """Orders of unknown customers and lines of unknown orders survive cleaning"""
        orphan_order = pl.DataFrame({
            "order_id": [999],
            "customer_id": [12345],
            "order_date": [datetime(2023, 1, 2).date()],
            "total_amount": [1.0],
        })
        cleaned, stats = DataCleaner().clean(
            customers_df,
            pl.concat([orders_df, orphan_order]),
            order_details_df,
        )

        assert 999 in cleaned.orders["order_id"].to_list()
        assert set(stats) == {"customers", "orders", "order_details"}

    def test_conforms_to_schema(self):
        """Extra columns are dropped, missing ones added, datetimes truncated"""
        df = pl.DataFrame({
            "order_id": [1],
            "customer_id": [7],
            "order_date": [datetime(2023, 3, 4, 15, 30)],
            "status": ["shipped"],
        })

        result = DataCleaner().clean_orders(df)

        assert result.columns == ["order_id", "customer_id", "order_date", "total_amount"]
        assert result.schema["order_date"] == pl.Date
        assert result["order_date"].to_list() == [datetime(2023, 3, 4).date()]
        assert result["total_amount"].to_list() == [None]

    def test_clean_dataframe_unknown_type(self):
        with pytest.raises(ValueError, match="Unknown data type"):
            clean_dataframe(pl.DataFrame({"x": [1]}), "products")

    def test_clean_dataframe(self, order_details_df):
        result = clean_dataframe(order_details_df, "order_details")
        assert len(result) == 8
