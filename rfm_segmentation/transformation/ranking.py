"""
Percentile Ranking and Labelling

Ranks each RFM metric across the customer population and maps the rank to a
1-3 label.

Percentile rank of a value v in a population of n values:

    (number of values strictly lower than v) / (n - 1)

rounded to ``rank_precision`` decimals, half away from zero. A population of
one gives 0.0. Tied values share the same rank (the minimum rank of the tie
group). Null values sort before every non-null value, so a null has rank 0
and counts as "lower" for every non-null value.

Label boundaries are inclusive to the middle bucket:

    p <  lower_threshold                    -> 1
    lower_threshold <= p <= upper_threshold -> 2
    p >  upper_threshold                    -> 3

Recency is ranked only among customers that have a recency value. The others
keep a null rank and null label here; the output sentinel is applied by the
segment composer.
"""

import polars as pl
import structlog

logger = structlog.get_logger(__name__)

METRICS = ("recency", "frequency", "monetary")


def count_lower(column: str) -> pl.Expr:
    """Number of values in the column strictly lower than each row's value (nulls first)"""
    col = pl.col(column)
    return (
        pl.when(col.is_null())
        .then(pl.lit(0, dtype=pl.Int64))
        .otherwise(
            col.rank(method="min").cast(pl.Int64) - 1 + col.null_count().cast(pl.Int64)
        )
    )


def percent_rank(column: str, precision: int = 2) -> pl.Expr:
    """
    Percentile rank of each row's value within the column.

    Rounding is done in integer arithmetic, so boundary values such as
    0.25 and 0.75 are exact.
    """
    lower = count_lower(column)
    population = pl.len().cast(pl.Int64)
    denominator = pl.when(population > 1).then(population - 1).otherwise(1)
    scale = 10 ** precision
    # round(scale * lower / denominator) with halves rounded up
    scaled = (lower * (2 * scale) + denominator) // (2 * denominator)
    return (
        pl.when(population <= 1)
        .then(pl.lit(0.0))
        .otherwise(scaled.cast(pl.Float64) / scale)
    )


def label_for(column: str, lower_threshold: float = 0.25, upper_threshold: float = 0.75) -> pl.Expr:
    """Map a percentile rank column to labels 1, 2 or 3 (null stays null)"""
    p = pl.col(column)
    return (
        pl.when(p.is_null())
        .then(pl.lit(None, dtype=pl.Int64))
        .when(p < lower_threshold)
        .then(pl.lit(1, dtype=pl.Int64))
        .when(p > upper_threshold)
        .then(pl.lit(3, dtype=pl.Int64))
        .otherwise(pl.lit(2, dtype=pl.Int64))
    )


class PercentileRanker:
    """
    Assigns percentile ranks and labels for Recency, Frequency and Monetary.

    Example:
        ranker = PercentileRanker()
        labels = ranker.rank(metrics)
    """

    def __init__(
        self,
        lower_threshold: float = 0.25,
        upper_threshold: float = 0.75,
        rank_precision: int = 2,
    ):
        self.lower_threshold = lower_threshold
        self.upper_threshold = upper_threshold
        self.rank_precision = rank_precision

    def _label(self, column: str) -> pl.Expr:
        return label_for(column, self.lower_threshold, self.upper_threshold)

    def rank_recency(self, metrics: pl.DataFrame) -> pl.DataFrame:
        """Recency ranks among customers with a qualifying order"""
        return (
            metrics.filter(pl.col("recency").is_not_null())
            .select([
                pl.col("customer_id"),
                percent_rank("recency", self.rank_precision).alias("percent_rank_recency"),
            ])
        )

    def rank(self, metrics: pl.DataFrame) -> pl.DataFrame:
        """
        Rank and label every metric.

        Args:
            metrics: DataFrame with customer_id, recency, frequency, monetary

        Returns:
            The metrics plus percent_rank_* and *_label columns
        """
        ranked = metrics.with_columns([
            percent_rank("frequency", self.rank_precision).alias("percent_rank_frequency"),
            percent_rank("monetary", self.rank_precision).alias("percent_rank_monetary"),
        ])

        ranked = ranked.join(self.rank_recency(metrics), on="customer_id", how="left")

        ranked = ranked.with_columns([
            self._label(f"percent_rank_{metric}").alias(f"{metric}_label")
            for metric in METRICS
        ])

        logger.info(
            "Ranked RFM metrics",
            customers=len(ranked),
            recency_population=ranked.filter(pl.col("percent_rank_recency").is_not_null()).height,
        )

        return ranked
