"""
Database Models

Source tables (as maintained by the ShopX storefront):
- customer: Customer reference data
- orders: Order headers; total_amount may be missing
- order_detail: Order lines

Output table:
- rfm: One row per customer with RFM metrics, labels and segment code

Source tables are raw staging data: duplicates and null keys are expected
and handled by the pipeline, so each carries a surrogate ``row_id`` key
instead of enforcing uniqueness on the business key.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Date,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# =============================================================================
# SOURCE TABLES
# =============================================================================

class Customer(Base):
    """Customer reference data"""
    __tablename__ = "customer"

    row_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[Optional[int]] = mapped_column(Integer)
    name: Mapped[Optional[str]] = mapped_column(String(255))
    gender: Mapped[Optional[str]] = mapped_column(String(255))
    age: Mapped[Optional[int]] = mapped_column(Integer)
    region: Mapped[Optional[str]] = mapped_column(String(255))
    signup_date: Mapped[Optional[date]] = mapped_column(Date)

    __table_args__ = (
        Index("ix_customer_customer_id", "customer_id"),
    )


class Order(Base):
    """Order header"""
    __tablename__ = "orders"

    row_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[Optional[int]] = mapped_column(Integer)
    customer_id: Mapped[Optional[int]] = mapped_column(Integer)
    order_date: Mapped[Optional[date]] = mapped_column(Date)
    total_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))

    __table_args__ = (
        Index("ix_orders_order_id", "order_id"),
        Index("ix_orders_customer_date", "customer_id", "order_date"),
    )


class OrderDetail(Base):
    """Order line"""
    __tablename__ = "order_detail"

    row_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_detail_id: Mapped[Optional[int]] = mapped_column(Integer)
    order_id: Mapped[Optional[int]] = mapped_column(Integer)
    product_id: Mapped[Optional[int]] = mapped_column(Integer)
    quantity: Mapped[Optional[int]] = mapped_column(Integer)
    unit_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))

    __table_args__ = (
        Index("ix_order_detail_order_id", "order_id"),
    )


# =============================================================================
# OUTPUT TABLE
# =============================================================================

class RFMScore(Base):
    """
    RFM segmentation result

    Fully replaced by every pipeline run. ``total_RFM_score`` concatenates the
    recency, frequency and monetary labels, e.g. "132"; a leading 4 marks a
    customer without an order on or after the analysis date (recency 9999).
    """
    __tablename__ = "rfm"

    customer_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    total_RFM_score: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255))
    gender: Mapped[Optional[str]] = mapped_column(String(255))
    age: Mapped[Optional[int]] = mapped_column(Integer)
    region: Mapped[Optional[str]] = mapped_column(String(255))
    signup_date: Mapped[Optional[date]] = mapped_column(Date)
    recency: Mapped[int] = mapped_column(Integer, nullable=False)
    frequency: Mapped[int] = mapped_column(Integer, nullable=False)
    monetary: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    recency_label: Mapped[int] = mapped_column(Integer, nullable=False)
    frequency_label: Mapped[int] = mapped_column(Integer, nullable=False)
    monetary_label: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        Index("ix_rfm_total_score", "total_RFM_score"),
        Index("ix_rfm_region", "region"),
    )
