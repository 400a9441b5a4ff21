"""
Data Transformation Module
"""
from .cleaners import CleaningStats, DataCleaner, clean_dataframe
from .composer import SegmentComposer
from .exceptions import RFMError, RFMValidationError, SegmentCompositionError
from .metrics import MetricCalculator
from .pipeline import RFMPipeline, RFMResult, run
from .ranking import PercentileRanker, percent_rank
from .reconciler import AmountReconciler, ReconciliationResult

__all__ = [
    "CleaningStats",
    "DataCleaner",
    "clean_dataframe",
    "AmountReconciler",
    "ReconciliationResult",
    "MetricCalculator",
    "PercentileRanker",
    "percent_rank",
    "SegmentComposer",
    "RFMPipeline",
    "RFMResult",
    "run",
    "RFMError",
    "RFMValidationError",
    "SegmentCompositionError",
]
