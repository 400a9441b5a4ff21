"""
RFM Metric Calculation

Derives per-customer Recency, Frequency and Monetary values relative to an
analysis date.

- Recency: days from the analysis date forward to the customer's latest order
  placed on or after that date. Null when there is no such order.
- Frequency: number of order lines across the customer's full history.
- Monetary: average order total across those order lines.

Every cleaned customer receives a row, including customers without orders.
"""

from datetime import date

import polars as pl
import structlog

logger = structlog.get_logger(__name__)


# Totals are averaged as integer micro-units, so decimal halves such as
# 1.005 round up as they would over a DECIMAL column.
MICRO = 10 ** 6


def rounded_mean(column: str, decimals: int) -> pl.Expr:
    """Mean of a float column rounded half away from zero in fixed point"""
    units = (pl.col(column) * MICRO).round(0).cast(pl.Int64)
    total = units.sum()
    count = units.count().cast(pl.Int64)
    denominator = pl.when(count > 0).then(count).otherwise(1) * MICRO
    numerator = total.abs() * 10 ** decimals
    magnitude = (numerator * 2 + denominator) // (denominator * 2)
    signed = pl.when(total < 0).then(-magnitude).otherwise(magnitude)
    return (
        pl.when(count > 0)
        .then(signed.cast(pl.Float64) / 10 ** decimals)
        .otherwise(None)
    )


class MetricCalculator:
    """
    Computes the raw RFM triple for every customer.

    Example:
        calculator = MetricCalculator()
        metrics = calculator.calculate(customers, orders, details, date(2023, 1, 1))
    """

    def __init__(self, monetary_precision: int = 2):
        self.monetary_precision = monetary_precision

    def order_lines(self, orders: pl.DataFrame, order_details: pl.DataFrame) -> pl.DataFrame:
        """One row per order line joined to its parent order"""
        return order_details.join(orders, on="order_id", how="inner").select([
            "customer_id",
            "order_id",
            "product_id",
            "quantity",
            "total_amount",
            "order_date",
        ])

    def recency(self, orders: pl.DataFrame, analysis_date: date) -> pl.DataFrame:
        """Forward distance in days to the latest order on/after the analysis date"""
        return (
            orders.filter(pl.col("order_date") >= analysis_date)
            .group_by("customer_id")
            .agg(pl.col("order_date").max().alias("last_order_after_analysis_date"))
            .with_columns(
                (pl.col("last_order_after_analysis_date") - pl.lit(analysis_date))
                .dt.total_days()
                .abs()
                .cast(pl.Int64)
                .alias("recency")
            )
        )

    def frequency_monetary(self, lines: pl.DataFrame) -> pl.DataFrame:
        """Line count and average order total per customer"""
        return lines.group_by("customer_id").agg([
            pl.col("order_id").count().cast(pl.Int64).alias("frequency"),
            rounded_mean("total_amount", self.monetary_precision)
            .alias("monetary"),
        ])

    def calculate(
        self,
        customers: pl.DataFrame,
        orders: pl.DataFrame,
        order_details: pl.DataFrame,
        analysis_date: date,
    ) -> pl.DataFrame:
        """
        Calculate Recency, Frequency and Monetary for every customer.

        Args:
            customers: Cleaned customers
            orders: Cleaned, reconciled orders
            order_details: Cleaned order lines
            analysis_date: Reference date for recency

        Returns:
            DataFrame with customer_id, recency, frequency, monetary
        """
        lines = self.order_lines(orders, order_details)
        recency = self.recency(orders, analysis_date)
        activity = self.frequency_monetary(lines)

        metrics = (
            customers.select("customer_id")
            .unique(maintain_order=True)
            .join(recency.select(["customer_id", "recency"]), on="customer_id", how="left")
            .join(activity, on="customer_id", how="left")
            .with_columns(pl.col("frequency").fill_null(0))
            .select(["customer_id", "recency", "frequency", "monetary"])
        )

        logger.info(
            "Calculated RFM metrics",
            analysis_date=analysis_date.isoformat(),
            customers=len(metrics),
            order_lines=len(lines),
            with_recent_orders=metrics.filter(pl.col("recency").is_not_null()).height,
        )

        return metrics
