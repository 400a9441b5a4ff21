"""
Unit Tests - Synthetic Data Generation
"""
from datetime import date

import polars as pl
from polars.testing import assert_frame_equal

from rfm_segmentation.data.generators import DataGenerator
from rfm_segmentation.transformation.pipeline import RFMPipeline


class TestDataGenerator:
    """Tests for DataGenerator"""

    def test_generate_all_shapes(self, tmp_path):
        sources = DataGenerator(output_dir=str(tmp_path), seed=7).generate_all(
            n_customers=50,
            start_date=date(2022, 1, 1),
            end_date=date(2023, 6, 30),
            with_defects=False,
            save=False,
        )

        assert len(sources.customers) == 50
        assert sources.customers["customer_id"].n_unique() == 50
        assert sources.orders["order_date"].min() >= date(2022, 1, 1)
        assert sources.orders["order_date"].max() <= date(2023, 6, 30)
        assert set(sources.order_details["order_id"]) <= set(sources.orders["order_id"])

    def test_same_seed_same_data(self, tmp_path):
        kwargs = dict(n_customers=30, start_date=date(2022, 1, 1), end_date=date(2022, 12, 31), save=False)

        first = DataGenerator(output_dir=str(tmp_path), seed=3).generate_all(**kwargs)
        second = DataGenerator(output_dir=str(tmp_path), seed=3).generate_all(**kwargs)

        assert_frame_equal(first.orders, second.orders)
        assert_frame_equal(first.customers, second.customers)

    def test_defects_are_cleaned_by_pipeline(self, tmp_path, rfm_settings):
        sources = DataGenerator(output_dir=str(tmp_path), seed=11).generate_all(
            n_customers=200,
            start_date=date(2022, 1, 1),
            end_date=date(2023, 6, 30),
            save=False,
        )
        valid_customers = sources.customers.drop_nulls("customer_id")["customer_id"].n_unique()

        result = RFMPipeline(rfm_settings).score(
            sources.customers, sources.orders, sources.order_details, date(2023, 1, 1)
        )

        assert result.cleaning_stats["customers"].null_keys_removed > 0
        assert len(result.records) == valid_customers
        assert result.records["total_RFM_score"].str.contains(r"^[1234][123][123]$").all()

    def test_save_writes_csv_files(self, tmp_path):
        DataGenerator(output_dir=str(tmp_path), seed=1).generate_all(
            n_customers=10,
            start_date=date(2022, 1, 1),
            end_date=date(2022, 3, 31),
        )

        assert sorted(p.name for p in tmp_path.iterdir()) == ["customer.csv", "order_detail.csv", "orders.csv"]
        assert len(pl.read_csv(tmp_path / "customer.csv")) >= 10
