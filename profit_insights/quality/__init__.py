"""
Data Quality Module
"""
from .sampling import format_sample_for_prompt, select_diverse_sample
from .validators import (
    DataValidator,
    ValidationResult,
    build_quality_report,
    validate_column_mapping,
    validate_rows,
)

__all__ = [
    "DataValidator",
    "ValidationResult",
    "build_quality_report",
    "validate_column_mapping",
    "validate_rows",
    "format_sample_for_prompt",
    "select_diverse_sample",
]
