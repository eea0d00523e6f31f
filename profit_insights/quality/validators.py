"""
Data Validation Module

Rule-based quality checks over ingested rows and column mappings.

Features:
- Empty file / missing header checks
- Keyword column presence checks
- Row count limits
- Numeric content ratio checks
- Column mapping checks against the real header set
- Plain-language data quality report
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

import structlog

from profit_insights.config import Settings, get_settings
from profit_insights.models import DataQualityReport
from profit_insights.transformation.cleaners import parse_decimal

logger = structlog.get_logger(__name__)

Rows = Sequence[Mapping[str, Any]]
MappingTarget = Union[str, Sequence[str], None]


class ValidationSeverity(str, Enum):
    """Severity levels for validation failures"""
    ERROR = "error"  # Critical - file cannot be analyzed
    WARNING = "warning"  # Non-critical - attached to the result
    INFO = "info"  # Informational only


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
    def is_valid(self) -> bool:
        return self.status != ValidationStatus.FAILED

    @property
    def errors(self) -> List[str]:
        return [
            c.message for c in self.checks
            if not c.passed and c.severity == ValidationSeverity.ERROR
        ]

    @property
    def warnings(self) -> List[str]:
        return [
            c.message for c in self.checks
            if not c.passed and c.severity == ValidationSeverity.WARNING
        ]


def _has_numeric_value(row: Mapping[str, Any]) -> bool:
    for value in row.values():
        number = parse_decimal(value)
        if number is not None and number != 0:
            return True
    return False


class DataValidator:
    """
    Row-set validator with a chainable check suite.

    Example:
        validator = DataValidator()
        validator.add_not_empty_check().add_keyword_column_check("total")
        result = validator.validate(rows, headers)
    """

    def __init__(self, strict_mode: bool = False):
        self.strict_mode = strict_mode  # Fail on any warning
        self._checks: List[Callable[[Rows, Sequence[str]], ValidationCheck]] = []

    def add_not_empty_check(self, min_rows: int = 1) -> "DataValidator":
        """File must contain rows and headers"""
        def check(rows: Rows, headers: Sequence[str]) -> ValidationCheck:
            if not rows:
                message = "File is empty or contains no data"
            elif not headers:
                message = "No column names found"
            elif len(rows) < min_rows:
                message = f"File contains only {len(rows)} rows (minimum: {min_rows})"
            else:
                return ValidationCheck(
                    name="not_empty",
                    passed=True,
                    severity=ValidationSeverity.ERROR,
                    message=f"File has {len(rows)} rows",
                    total_rows=len(rows),
                )
            return ValidationCheck(
                name="not_empty",
                passed=False,
                severity=ValidationSeverity.ERROR,
                message=message,
                total_rows=len(rows),
            )

        self._checks.append(check)
        return self

    def add_keyword_column_check(
        self,
        keywords: Union[str, Sequence[str]],
        severity: ValidationSeverity = ValidationSeverity.WARNING,
    ) -> "DataValidator":
        """Some header should contain one of the keywords"""
        options = [keywords] if isinstance(keywords, str) else list(keywords)
        label = "/".join(options)

        def check(rows: Rows, headers: Sequence[str]) -> ValidationCheck:
            found = any(kw.lower() in h.lower() for kw in options for h in headers)
            return ValidationCheck(
                name=f"keyword_column_{label}",
                passed=found,
                severity=severity,
                message=(
                    f"Found a column containing \"{label}\"" if found
                    else f"No column containing \"{label}\" was found"
                ),
            )

        self._checks.append(check)
        return self

    def add_max_rows_check(
        self,
        max_rows: int,
        severity: ValidationSeverity = ValidationSeverity.WARNING,
    ) -> "DataValidator":
        """Large files are analyzed but flagged"""
        def check(rows: Rows, headers: Sequence[str]) -> ValidationCheck:
            passed = len(rows) <= max_rows
            return ValidationCheck(
                name="max_rows",
                passed=passed,
                severity=severity,
                message=(
                    "Row count within limit" if passed
                    else f"File is very large ({len(rows)} rows, recommended maximum {max_rows})"
                ),
                details={"max_rows": max_rows},
                total_rows=len(rows),
            )

        self._checks.append(check)
        return self

    def add_numeric_content_check(
        self,
        max_skip_ratio: float,
        severity: ValidationSeverity = ValidationSeverity.WARNING,
    ) -> "DataValidator":
        """Most rows should carry at least one non-zero number"""
        def check(rows: Rows, headers: Sequence[str]) -> ValidationCheck:
            total = len(rows)
            valid = sum(1 for row in rows if _has_numeric_value(row))
            empty = total - valid

            if total and valid == 0:
                return ValidationCheck(
                    name="numeric_content",
                    passed=False,
                    severity=ValidationSeverity.ERROR,
                    message="No rows containing numeric data were found",
                    failed_rows=empty,
                    total_rows=total,
                )

            passed = empty <= total * max_skip_ratio
            pct = round(empty / total * 100) if total else 0
            return ValidationCheck(
                name="numeric_content",
                passed=passed,
                severity=severity,
                message=(
                    "Rows contain numeric data" if passed
                    else f"{empty} rows ({pct}%) contain no valid data"
                ),
                details={"rows_without_numbers": empty, "percentage": pct},
                failed_rows=empty,
                total_rows=total,
            )

        self._checks.append(check)
        return self

    def validate(self, rows: Rows, headers: Sequence[str]) -> ValidationResult:
        """
        Run all validation checks.

        Args:
            rows: Ingested rows
            headers: Column names

        Returns:
            ValidationResult with all check results
        """
        started_at = datetime.utcnow()
        results = []

        for check_func in self._checks:
            result = check_func(rows, headers)
            results.append(result)

            if not result.passed:
                logger.warning(
                    "Validation failed",
                    check=result.name,
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

        logger.debug(
            "Validation complete",
            status=status.value,
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


def validate_rows(
    rows: Rows,
    headers: Sequence[str],
    required_keywords: Sequence[Union[str, Sequence[str]]] = (),
    min_rows: int = 1,
    max_rows: Optional[int] = None,
    max_skip_ratio: Optional[float] = None,
    settings: Optional[Settings] = None,
) -> ValidationResult:
    """Run the standard row checks used before mapping; limits default to the given settings"""
    ingestion = (settings or get_settings()).ingestion
    validator = DataValidator().add_not_empty_check(min_rows)
    for keyword in required_keywords:
        validator.add_keyword_column_check(keyword)
    validator.add_max_rows_check(max_rows if max_rows is not None else ingestion.max_rows)
    validator.add_numeric_content_check(
        max_skip_ratio if max_skip_ratio is not None else ingestion.skip_warning_ratio
    )
    return validator.validate(rows, headers)


def validate_column_mapping(
    fields: Mapping[str, MappingTarget],
    headers: Sequence[str],
) -> List[str]:
    """
    Check that every mapped column exists in the header set.

    Returns:
        Error messages; empty when every referenced column exists
    """
    header_set = set(headers)
    errors = []
    for name, target in fields.items():
        if target is None:
            continue
        columns = [target] if isinstance(target, str) else list(target)
        for column in columns:
            if column not in header_set:
                errors.append(f"Column \"{column}\" ({name}) does not exist in the file")
    return errors


def explain_quality(
    total_rows: int,
    skipped_rows: int,
    errors: Sequence[str] = (),
    warnings: Sequence[str] = (),
) -> str:
    """Deterministic plain-language summary of data problems"""
    parts = []
    if errors:
        parts.append(f"Found an issue: {errors[0]}")
    if skipped_rows > 0 and total_rows > 0:
        pct = round(skipped_rows / total_rows * 100)
        parts.append(f"Skipped {skipped_rows} rows ({pct}%) due to invalid data.")
    if warnings:
        parts.append(f"Tip: {warnings[0]}")
    if not parts:
        return f"All {total_rows} rows were processed successfully."
    return "\n\n".join(parts)


def build_quality_report(
    total_rows: int,
    valid_rows: int,
    warnings: Sequence[str] = (),
) -> DataQualityReport:
    """Assemble the DataQualityReport attached to results"""
    skipped = max(total_rows - valid_rows, 0)
    unique_warnings = list(dict.fromkeys(warnings))
    return DataQualityReport(
        total_rows=total_rows,
        valid_rows=valid_rows,
        skipped_rows=skipped,
        warnings=unique_warnings,
        explanation=explain_quality(total_rows, skipped, warnings=unique_warnings),
    )
