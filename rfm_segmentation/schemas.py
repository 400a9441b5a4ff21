"""
Record Schemas

Column layouts shared by the loaders, the pipeline stages and the storage
layer. Source frames are cast to these schemas before cleaning so every stage
can rely on stable dtypes.
"""

from dataclasses import dataclass
from typing import Dict, List

import polars as pl
import structlog

logger = structlog.get_logger(__name__)

# ISO 8601 date, optionally followed by a time of day and UTC offset
ISO_DATE_PATTERN = (
    r"^(\d{4}-\d{2}-\d{2})"
    r"(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?)?$"
)

CUSTOMER_SCHEMA: Dict[str, pl.DataType] = {
    "customer_id": pl.Int64,
    "name": pl.Utf8,
    "gender": pl.Utf8,
    "age": pl.Int64,
    "region": pl.Utf8,
    "signup_date": pl.Date,
}

ORDER_SCHEMA: Dict[str, pl.DataType] = {
    "order_id": pl.Int64,
    "customer_id": pl.Int64,
    "order_date": pl.Date,
    "total_amount": pl.Float64,
}

ORDER_DETAIL_SCHEMA: Dict[str, pl.DataType] = {
    "order_detail_id": pl.Int64,
    "order_id": pl.Int64,
    "product_id": pl.Int64,
    "quantity": pl.Int64,
    "unit_price": pl.Float64,
}

RFM_SCHEMA: Dict[str, pl.DataType] = {
    "customer_id": pl.Int64,
    "total_RFM_score": pl.Utf8,
    "name": pl.Utf8,
    "gender": pl.Utf8,
    "age": pl.Int64,
    "region": pl.Utf8,
    "signup_date": pl.Date,
    "recency": pl.Int64,
    "frequency": pl.Int64,
    "monetary": pl.Float64,
    "recency_label": pl.Int64,
    "frequency_label": pl.Int64,
    "monetary_label": pl.Int64,
}

RFM_COLUMNS: List[str] = list(RFM_SCHEMA)


@dataclass
class RecordSets:
    """Customer, order and order line frames travelling together"""
    customers: pl.DataFrame
    orders: pl.DataFrame
    order_details: pl.DataFrame


def parse_date_text(name: str) -> pl.Expr:
    """Date part of ISO date or datetime strings; anything else becomes null"""
    return (
        pl.col(name)
        .str.strip_chars()
        .str.extract(ISO_DATE_PATTERN, 1)
        .str.to_date("%Y-%m-%d", strict=False)
        .alias(name)
    )


def conform(df: pl.DataFrame, schema: Dict[str, pl.DataType]) -> pl.DataFrame:
    """
    Select and cast a frame to the given schema.

    Missing columns are added as nulls; extra columns are dropped. Datetime
    values, and datetime strings, are truncated to dates where the schema asks
    for a Date.
    """
    columns = []
    text_dates = []
    for name, dtype in schema.items():
        if name not in df.columns:
            columns.append(pl.lit(None, dtype=dtype).alias(name))
        elif dtype == pl.Date and df.schema[name] == pl.Utf8:
            columns.append(parse_date_text(name))
            text_dates.append(name)
        elif dtype == pl.Date and isinstance(df.schema[name], pl.Datetime):
            columns.append(pl.col(name).dt.date().alias(name))
        else:
            columns.append(pl.col(name).cast(dtype, strict=False).alias(name))
    result = df.select(columns)

    for name in text_dates:
        given = df[name].str.strip_chars().str.len_chars().fill_null(0) > 0
        failed = int((given & result[name].is_null()).sum())
        if failed:
            logger.warning("Unparseable dates set to null", column=name, count=failed)

    return result


def empty_frame(schema: Dict[str, pl.DataType]) -> pl.DataFrame:
    """Empty DataFrame with the given schema"""
    return pl.DataFrame(schema=schema)
