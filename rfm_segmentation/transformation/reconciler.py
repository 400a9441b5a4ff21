"""
Order Amount Reconciliation

Fills missing order totals from the order's line items.
"""

from dataclasses import dataclass

import polars as pl
import structlog

logger = structlog.get_logger(__name__)


@dataclass
class ReconciliationResult:
    """Orders after reconciliation plus the totals that were filled"""
    orders: pl.DataFrame
    filled: pl.DataFrame  # order_id, total_amount for every order that was repaired
    unresolved: int  # orders still missing a total (no line items)


class AmountReconciler:
    """
    Repairs null ``total_amount`` values with ``sum(unit_price * quantity)``
    over the order's lines.

    Existing totals are never overwritten, so applying the reconciler to its
    own output is a no-op.
    """

    def line_totals(self, order_details: pl.DataFrame) -> pl.DataFrame:
        """Sum of unit_price * quantity per order_id (null when no line has both)"""
        amount = pl.col("unit_price") * pl.col("quantity")
        return order_details.group_by("order_id").agg(
            pl.when(amount.is_not_null().any())
            .then(amount.sum())
            .otherwise(None)
            .alias("computed_total")
        )

    def reconcile(
        self,
        orders: pl.DataFrame,
        order_details: pl.DataFrame,
    ) -> ReconciliationResult:
        """
        Fill null order totals from line items.

        Args:
            orders: Cleaned orders
            order_details: Cleaned order lines

        Returns:
            ReconciliationResult with the repaired orders
        """
        missing = orders.filter(pl.col("total_amount").is_null()).height
        if missing == 0:
            return ReconciliationResult(
                orders=orders,
                filled=orders.select(["order_id", "total_amount"]).clear(),
                unresolved=0,
            )

        totals = self.line_totals(order_details)
        joined = orders.join(totals, on="order_id", how="left")

        was_null = pl.col("total_amount").is_null()
        filled = (
            joined.filter(was_null & pl.col("computed_total").is_not_null())
            .select([
                pl.col("order_id"),
                pl.col("computed_total").alias("total_amount"),
            ])
            .unique(subset=["order_id"], keep="first", maintain_order=True)
        )

        reconciled = joined.with_columns(
            pl.coalesce([pl.col("total_amount"), pl.col("computed_total")])
            .alias("total_amount")
        ).select(orders.columns)

        unresolved = reconciled.filter(pl.col("total_amount").is_null()).height

        logger.info(
            "Reconciled order totals",
            missing=missing,
            filled=len(filled),
            unresolved=unresolved,
        )
        if unresolved:
            logger.warning(
                "Orders without line items keep a null total",
                unresolved=unresolved,
            )

        return ReconciliationResult(orders=reconciled, filled=filled, unresolved=unresolved)
