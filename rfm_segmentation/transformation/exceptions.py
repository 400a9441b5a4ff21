"""
Pipeline Exceptions
"""
from typing import List, Optional


class RFMError(Exception):
    """Base class for RFM pipeline errors"""


class SegmentCompositionError(RFMError):
    """Customers would be lost while joining labels to customer attributes"""

    def __init__(
        self,
        missing_attributes: Optional[List[int]] = None,
        missing_labels: Optional[List[int]] = None,
    ):
        self.missing_attributes = missing_attributes or []
        self.missing_labels = missing_labels or []
        super().__init__(
            f"Segment composition would drop customers: "
            f"{len(self.missing_attributes)} without attributes, "
            f"{len(self.missing_labels)} without labels"
        )


class RFMValidationError(RFMError):
    """Composed RFM output failed its quality checks"""

    def __init__(self, result):
        self.result = result
        failed = [c.name for c in result.checks if not c.passed]
        super().__init__(f"RFM output failed validation: {failed}")
