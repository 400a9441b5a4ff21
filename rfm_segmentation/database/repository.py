"""
RFM Repository

Reads the source record sets and writes the pipeline's results:
- Source tables are read in full into polars DataFrames
- Repaired order totals are written back where the stored total is null
- The RFM table is created if missing, emptied and repopulated

All methods operate on the caller's session; the caller owns the
transaction, so a run's writes become visible together or not at all.
"""

from decimal import Decimal
from typing import Any, Dict, List, Type

import polars as pl
import structlog
from sqlalchemy import Numeric, delete, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from rfm_segmentation.schemas import (
    CUSTOMER_SCHEMA,
    ORDER_DETAIL_SCHEMA,
    ORDER_SCHEMA,
    RFM_SCHEMA,
    empty_frame,
)

from .models import Base, Customer, Order, OrderDetail, RFMScore

logger = structlog.get_logger(__name__)

INSERT_CHUNK_SIZE = 1000


def _to_float(value: Any) -> Any:
    return float(value) if isinstance(value, Decimal) else value


def _to_decimal(value: Any) -> Any:
    if value is None:
        return None
    return Decimal(str(value))


class RFMRepository:
    """
    Storage collaborator for the RFM pipeline.

    Example:
        async with get_db() as db:
            repo = RFMRepository(db)
            customers = await repo.load_customers()
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _load(
        self,
        model: Type[Base],
        schema: Dict[str, pl.DataType],
        order_by: Any = None,
    ) -> pl.DataFrame:
        statement = select(*[getattr(model, name) for name in schema])
        if order_by is not None:
            statement = statement.order_by(order_by)
        result = await self.session.execute(statement)
        rows = [
            {name: _to_float(value) for name, value in row._mapping.items()}
            for row in result
        ]
        if not rows:
            return empty_frame(schema)

        df = pl.DataFrame(rows, schema=schema, strict=False)
        logger.debug(f"Loaded {len(df)} rows from {model.__tablename__}")
        return df

    async def load_customers(self) -> pl.DataFrame:
        """Full customer table"""
        return await self._load(Customer, CUSTOMER_SCHEMA)

    async def load_orders(self) -> pl.DataFrame:
        """Full orders table"""
        return await self._load(Order, ORDER_SCHEMA)

    async def load_order_details(self) -> pl.DataFrame:
        """Full order_detail table"""
        return await self._load(OrderDetail, ORDER_DETAIL_SCHEMA)

    async def fill_missing_order_totals(self, filled: pl.DataFrame) -> int:
        """
        Write repaired totals back to the orders table.

        Only rows whose stored total is still null are touched.

        Args:
            filled: DataFrame of order_id, total_amount

        Returns:
            Number of order rows updated
        """
        if filled.is_empty():
            return 0

        updated = 0
        for row in filled.iter_rows(named=True):
            result = await self.session.execute(
                update(Order)
                .where(Order.order_id == row["order_id"])
                .where(Order.total_amount.is_(None))
                .values(total_amount=_to_decimal(row["total_amount"]))
                .execution_options(synchronize_session=False)
            )
            updated += result.rowcount

        logger.info("Filled missing order totals", orders=len(filled), rows_updated=updated)
        return updated

    async def replace_rfm_scores(self, records: pl.DataFrame) -> int:
        """
        Replace the contents of the RFM table.

        Creates the table when it does not exist, deletes every existing row
        and bulk-inserts ``records`` inside the current transaction.

        Returns:
            Number of rows written
        """
        await self.session.run_sync(
            lambda sync_session: RFMScore.__table__.create(
                sync_session.connection(), checkfirst=True
            )
        )

        await self.session.execute(delete(RFMScore))

        payload: List[Dict[str, Any]] = [
            {**row, "monetary": _to_decimal(row["monetary"])}
            for row in records.iter_rows(named=True)
        ]
        for start in range(0, len(payload), INSERT_CHUNK_SIZE):
            await self.session.execute(insert(RFMScore), payload[start:start + INSERT_CHUNK_SIZE])

        logger.info("Replaced RFM table", rows=len(payload), table=RFMScore.__tablename__)
        return len(payload)

    async def load_rfm_scores(self) -> pl.DataFrame:
        """Current contents of the RFM table, ordered by customer_id"""
        return await self._load(RFMScore, RFM_SCHEMA, order_by=RFMScore.customer_id)

    async def stage_records(self, model: Type[Base], df: pl.DataFrame, replace: bool = False) -> int:
        """
        Insert a source record set into its table.

        Args:
            model: Customer, Order or OrderDetail
            df: Records with the model's columns
            replace: Empty the table first

        Returns:
            Number of rows inserted
        """
        if replace:
            await self.session.execute(delete(model))

        decimal_columns = {
            column.name for column in model.__table__.columns
            if isinstance(column.type, Numeric)
        }
        records = [
            {k: (_to_decimal(v) if k in decimal_columns else v) for k, v in row.items()}
            for row in df.iter_rows(named=True)
        ]
        for start in range(0, len(records), INSERT_CHUNK_SIZE):
            await self.session.execute(insert(model), records[start:start + INSERT_CHUNK_SIZE])

        logger.info(f"Inserted {len(records)} records into {model.__tablename__}")
        return len(records)
