"""Pure ingestion DTOs and row normalization."""

from payroll_ingestion.domain.normalize import normalize_row, parse_count
from payroll_ingestion.domain.types import ImportConfig, ImportReport, RowError, ScheduleRow

__all__ = [
    "ImportConfig",
    "ImportReport",
    "RowError",
    "ScheduleRow",
    "normalize_row",
    "parse_count",
]
