"""
Integration Tests - Storage and Database Runs
"""
from datetime import date

import polars as pl
import pytest
from polars.testing import assert_frame_equal
from sqlalchemy import select

from rfm_segmentation.database.connection import get_db
from rfm_segmentation.database.models import Customer, Order, OrderDetail
from rfm_segmentation.database.repository import RFMRepository
from rfm_segmentation.transformation.pipeline import RFMPipeline


async def _stage(customers_df, orders_df, order_details_df):
    async with get_db() as db:
        repo = RFMRepository(db)
        await repo.stage_records(Customer, customers_df)
        await repo.stage_records(Order, orders_df)
        await repo.stage_records(OrderDetail, order_details_df)


async def _rfm_table() -> pl.DataFrame:
    async with get_db() as db:
        return await RFMRepository(db).load_rfm_scores()


class TestRFMRepository:
    """Tests for RFMRepository"""

    @pytest.mark.asyncio
    async def test_stage_and_load_round_trip(self, database, orders_df):
        async with get_db() as db:
            rows = await RFMRepository(db).stage_records(Order, orders_df)
        async with get_db() as db:
            loaded = await RFMRepository(db).load_orders()

        assert rows == len(orders_df)
        assert_frame_equal(loaded, orders_df, check_row_order=False)

    @pytest.mark.asyncio
    async def test_empty_tables_load_as_empty_frames(self, database):
        async with get_db() as db:
            customers = await RFMRepository(db).load_customers()

        assert customers.is_empty()
        assert customers.columns == ["customer_id", "name", "gender", "age", "region", "signup_date"]

    @pytest.mark.asyncio
    async def test_fill_missing_order_totals_only_touches_null_totals(self, database, orders_df):
        """Order 101 already has a total, so only order 102 counts as updated"""
        await _stage(orders_df.head(0), orders_df, orders_df.head(0))
        filled = pl.DataFrame({"order_id": [101, 102], "total_amount": [1.0, 25.0]})

        async with get_db() as db:
            updated = await RFMRepository(db).fill_missing_order_totals(filled)
        async with get_db() as db:
            updated_again = await RFMRepository(db).fill_missing_order_totals(filled)
        async with get_db() as db:
            orders = await RFMRepository(db).load_orders()

        totals = dict(zip(orders["order_id"], orders["total_amount"]))
        assert updated == 1
        assert updated_again == 0
        assert totals[101] == 40.0
        assert totals[102] == 25.0

    @pytest.mark.asyncio
    async def test_replace_rfm_scores(self, database, rfm_settings, customers_df, orders_df, order_details_df, analysis_date):
        records = RFMPipeline(rfm_settings).score(customers_df, orders_df, order_details_df, analysis_date).records

        async with get_db() as db:
            await RFMRepository(db).replace_rfm_scores(records)
        async with get_db() as db:
            written = await RFMRepository(db).replace_rfm_scores(records.head(2))

        table = await _rfm_table()
        assert written == 2
        assert_frame_equal(table, records.head(2))


class TestPipelineRun:
    """RFMPipeline.run against a database"""

    @pytest.mark.asyncio
    async def test_run_writes_rfm_table(self, database, rfm_settings, customers_df, orders_df, order_details_df, analysis_date, expected_scores):
        await _stage(customers_df, orders_df, order_details_df)

        result = await RFMPipeline(rfm_settings).run(analysis_date)
        table = await _rfm_table()

        assert result.rows_written == 5
        assert dict(zip(table["customer_id"], table["total_RFM_score"])) == expected_scores
        assert_frame_equal(table, result.records)

    @pytest.mark.asyncio
    async def test_run_writes_repaired_totals_back(self, database, rfm_settings, customers_df, orders_df, order_details_df, analysis_date):
        await _stage(customers_df, orders_df, order_details_df)

        result = await RFMPipeline(rfm_settings).run(analysis_date)

        async with get_db() as db:
            totals = (await db.execute(
                select(Order.total_amount).where(Order.order_id == 102)
            )).scalars().all()

        assert result.orders_repaired == 1
        assert [float(t) for t in totals] == [25.0]

    @pytest.mark.asyncio
    async def test_rerun_replaces_previous_output(self, database, rfm_settings, customers_df, orders_df, order_details_df, analysis_date):
        await _stage(customers_df, orders_df, order_details_df)
        pipeline = RFMPipeline(rfm_settings)

        first = await pipeline.run(analysis_date)
        again = await pipeline.run(analysis_date)
        assert_frame_equal(again.records, first.records)

        await pipeline.run(date(2024, 1, 1))
        table = await _rfm_table()

        assert len(table) == 5
        assert table["recency_label"].to_list() == [4] * 5

    @pytest.mark.asyncio
    async def test_failed_run_keeps_previous_output(self, database, monkeypatch, rfm_settings, customers_df, orders_df, order_details_df, analysis_date):
        await _stage(customers_df, orders_df, order_details_df)
        pipeline = RFMPipeline(rfm_settings)
        await pipeline.run(analysis_date)
        before = await _rfm_table()

        replace = RFMRepository.replace_rfm_scores

        async def replace_then_fail(self, records):
            await replace(self, records)
            raise RuntimeError("connection lost")

        monkeypatch.setattr(RFMRepository, "replace_rfm_scores", replace_then_fail)

        with pytest.raises(RuntimeError, match="connection lost"):
            await pipeline.run(date(2024, 1, 1))

        assert_frame_equal(await _rfm_table(), before)
