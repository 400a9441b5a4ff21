"""
Database Module
"""
from .connection import init_database, close_database, get_db
from .models import Base, Customer, Order, OrderDetail, RFMScore
from .repository import RFMRepository

__all__ = [
    "init_database",
    "close_database",
    "get_db",
    "Base",
    "Customer",
    "Order",
    "OrderDetail",
    "RFMScore",
    "RFMRepository",
]
