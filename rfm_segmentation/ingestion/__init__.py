"""
Data Ingestion Module
"""
from .batch_loader import BatchLoader, BatchFileConfig, FileFormat, LoadResult

__all__ = [
    "BatchLoader",
    "BatchFileConfig",
    "FileFormat",
    "LoadResult",
]
