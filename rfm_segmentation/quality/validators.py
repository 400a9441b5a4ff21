"""
Data Validation Module

Rule-based quality checks for the composed RFM table.

Checks cover:
- Key completeness and uniqueness
- Label domains
- Composite score format
- Sentinel consistency
- Referential integrity back to the customer set
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import polars as pl
import structlog

from rfm_segmentation.config import RFMSettings

logger = structlog.get_logger(__name__)


class ValidationSeverity(str, Enum):
    """Severity levels for validation failures"""
    ERROR = "error"  # Blocks the write
    WARNING = "warning"  # Logged, write continues
    INFO = "info"


class ValidationStatus(str, Enum):
    """Overall validation status"""
    PASSED = "passed"
    FAILED = "failed"
    PARTIAL = "partial"


@dataclass
class ValidationCheck:
    """Single validation check result"""
    name: str
    passed: bool
    severity: ValidationSeverity
    message: str
    details: Optional[Dict[str, Any]] = None
    failed_rows: int = 0
    total_rows: int = 0


@dataclass
class ValidationResult:
    """Complete validation suite result"""
    status: ValidationStatus
    total_checks: int
    passed_checks: int
    failed_checks: int
    warning_count: int
    checks: List[ValidationCheck] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

    @property
    def success_rate(self) -> float:
        """Percentage of passed checks"""
        if self.total_checks == 0:
            return 100.0
        return (self.passed_checks / self.total_checks) * 100


def _missing_column(name: str, column: str, severity: ValidationSeverity) -> ValidationCheck:
    return ValidationCheck(
        name=name,
        passed=False,
        severity=severity,
        message=f"Column '{column}' not found",
    )


class DataValidator:
    """
    Chainable validator over a polars DataFrame.

    Example:
        validator = DataValidator()
        validator.add_not_null_check("customer_id").add_unique_check("customer_id")
        result = validator.validate(df)
    """

    def __init__(self, strict_mode: bool = False):
        self.strict_mode = strict_mode  # Treat warnings as failures
        self._checks: List[Callable[[pl.DataFrame], ValidationCheck]] = []

    def _count_check(
        self,
        name: str,
        column: str,
        violation: Callable[[pl.DataFrame], int],
        describe: Callable[[int], str],
        severity: ValidationSeverity,
        details: Optional[Dict[str, Any]] = None,
    ) -> "DataValidator":
        """Register a check that fails when ``violation`` counts any rows"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            if column not in df.columns:
                return _missing_column(name, column, severity)

            failed = violation(df)
            return ValidationCheck(
                name=name,
                passed=failed == 0,
                severity=severity,
                message=describe(failed),
                details={**(details or {}), "failed_count": failed},
                failed_rows=failed,
                total_rows=len(df),
            )

        self._checks.append(check)
        return self

    def add_not_null_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for null values in column"""
        return self._count_check(
            f"not_null_{column}",
            column,
            lambda df: df[column].null_count(),
            lambda n: f"Column '{column}' has {n} null values" if n else f"Column '{column}' has no null values",
            severity,
        )

    def add_unique_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for uniqueness of column values"""
        return self._count_check(
            f"unique_{column}",
            column,
            lambda df: len(df) - df[column].n_unique(),
            lambda n: f"Column '{column}' has {n} duplicate values" if n else f"Column '{column}' values are unique",
            severity,
        )

    def add_range_check(
        self,
        column: str,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for values within an inclusive range"""
        def out_of_range(df: pl.DataFrame) -> int:
            condition = pl.lit(False)
            if min_value is not None:
                condition = condition | (pl.col(column) < min_value)
            if max_value is not None:
                condition = condition | (pl.col(column) > max_value)
            return df.filter(condition).height

        return self._count_check(
            f"range_{column}",
            column,
            out_of_range,
            lambda n: f"Column '{column}' has {n} values outside [{min_value}, {max_value}]" if n else "All values in range",
            severity,
            details={"min": min_value, "max": max_value},
        )

    def add_pattern_check(
        self,
        column: str,
        pattern: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add regex pattern check on non-null values"""
        return self._count_check(
            f"pattern_{column}",
            column,
            lambda df: df.filter(
                pl.col(column).is_not_null() & ~pl.col(column).str.contains(pattern)
            ).height,
            lambda n: f"Column '{column}' has {n} values not matching pattern" if n else "All values match pattern",
            severity,
            details={"pattern": pattern},
        )

    def add_enum_check(
        self,
        column: str,
        allowed_values: List[Any],
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for values in allowed set (nulls are reported by not-null checks)"""
        return self._count_check(
            f"enum_{column}",
            column,
            lambda df: df.filter(
                pl.col(column).is_not_null() & ~pl.col(column).is_in(allowed_values)
            ).height,
            lambda n: f"Column '{column}' has {n} invalid values" if n else "All values are valid",
            severity,
            details={"allowed_values": allowed_values},
        )

    def add_custom_check(
        self,
        name: str,
        check_func: Callable[[pl.DataFrame], bool],
        message_on_fail: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add custom validation check"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            try:
                passed = bool(check_func(df))
            except Exception as e:
                return ValidationCheck(
                    name=name,
                    passed=False,
                    severity=severity,
                    message=f"Check failed with error: {str(e)}",
                )
            return ValidationCheck(
                name=name,
                passed=passed,
                severity=severity,
                message="Check passed" if passed else message_on_fail,
                total_rows=len(df),
            )

        self._checks.append(check)
        return self

    def add_referential_integrity_check(
        self,
        column: str,
        reference_df: pl.DataFrame,
        reference_column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check that every value exists in the reference frame"""
        reference = reference_df[reference_column].unique().to_list()
        return self._count_check(
            f"ref_integrity_{column}",
            column,
            lambda df: df.filter(
                pl.col(column).is_not_null() & ~pl.col(column).is_in(reference)
            ).height,
            lambda n: f"Column '{column}' has {n} orphan records" if n else "Referential integrity maintained",
            severity,
        )

    def validate(self, df: pl.DataFrame) -> ValidationResult:
        """
        Run all validation checks on DataFrame.

        Args:
            df: DataFrame to validate

        Returns:
            ValidationResult with all check results
        """
        started_at = datetime.utcnow()

        logger.info(f"Running {len(self._checks)} validation checks on {len(df)} rows")

        results = []
        for check_func in self._checks:
            result = check_func(df)
            results.append(result)

            if not result.passed:
                logger.warning(
                    f"Validation failed: {result.name}",
                    message=result.message,
                    severity=result.severity.value,
                )

        passed_checks = sum(1 for r in results if r.passed)
        failed_checks = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.ERROR)
        warning_count = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.WARNING)

        if failed_checks > 0:
            status = ValidationStatus.FAILED
        elif warning_count > 0 and self.strict_mode:
            status = ValidationStatus.FAILED
        elif warning_count > 0:
            status = ValidationStatus.PARTIAL
        else:
            status = ValidationStatus.PASSED

        logger.info(
            f"Validation complete: {status.value}",
            passed=passed_checks,
            failed=failed_checks,
            warnings=warning_count,
        )

        return ValidationResult(
            status=status,
            total_checks=len(results),
            passed_checks=passed_checks,
            failed_checks=failed_checks,
            warning_count=warning_count,
            checks=results,
            started_at=started_at,
            completed_at=datetime.utcnow(),
        )


def _sentinels_consistent(df: pl.DataFrame, sentinel_days: int, sentinel_label: int) -> bool:
    """Recency sentinel label appears exactly where the sentinel recency does"""
    is_sentinel_label = pl.col("recency_label") == sentinel_label
    is_sentinel_days = pl.col("recency") == sentinel_days
    return df.filter(is_sentinel_label != is_sentinel_days).height == 0


def create_rfm_validator(
    customers: Optional[pl.DataFrame] = None,
    rfm_settings: Optional[RFMSettings] = None,
) -> DataValidator:
    """
    Create pre-configured validator for the composed RFM table.

    Args:
        customers: Cleaned customers; when given, every output customer_id
            must exist among them
        rfm_settings: Sentinel values to check against
    """
    rfm_settings = rfm_settings or RFMSettings()
    sentinel_days = rfm_settings.recency_sentinel_days
    sentinel_label = rfm_settings.recency_sentinel_label

    validator = (
        DataValidator()
        .add_not_null_check("customer_id")
        .add_unique_check("customer_id")
        .add_not_null_check("recency")
        .add_not_null_check("frequency")
        .add_range_check("frequency", min_value=0)
        .add_not_null_check("recency_label")
        .add_not_null_check("frequency_label")
        .add_not_null_check("monetary_label")
        .add_enum_check("recency_label", [1, 2, 3, sentinel_label])
        .add_enum_check("frequency_label", [1, 2, 3])
        .add_enum_check("monetary_label", [1, 2, 3])
        .add_pattern_check("total_RFM_score", rf"^[123{sentinel_label}][123][123]$")
        .add_custom_check(
            "recency_sentinel_consistency",
            lambda df: _sentinels_consistent(df, sentinel_days, sentinel_label),
            f"Recency label {sentinel_label} must coincide with recency {sentinel_days}",
            severity=ValidationSeverity.WARNING,
        )
        .add_custom_check(
            "monetary_null_only_without_orders",
            lambda df: df.filter(
                pl.col("monetary").is_null() & (pl.col("frequency") > 0)
            ).height == 0,
            "Customers with order lines but no monetary value (orders missing totals)",
            severity=ValidationSeverity.WARNING,
        )
    )

    if customers is not None:
        validator.add_referential_integrity_check("customer_id", customers, "customer_id")

    return validator
