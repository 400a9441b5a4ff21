"""
Data Generation Module
"""
from .generators import CustomerGenerator, DataGenerator, OrderGenerator

__all__ = [
    "DataGenerator",
    "CustomerGenerator",
    "OrderGenerator",
]
