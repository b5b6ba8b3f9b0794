"""
payroll_ingestion -- Weekly schedule import.

Reads CSV or XLSX schedule exports, normalizes each row, splits paired
("vs") instructor fields and creates the period's ClassRecords, replacing
whatever the imported weeks held before.

Architecture:
    payroll_ingestion/ is a top-level package.  Nothing in payroll_kernel,
    payroll_engines or payroll_batch imports from it.

Invariants:
    - Re-importing a week replaces it: classes are deleted per
      (period, week) before the rows are created.
    - Row isolation: a bad row is recorded as a RowError and never aborts
      the import.
    - A paired instructor field never becomes an instructor.
"""

from payroll_ingestion.domain.types import ImportConfig, ImportReport, RowError, ScheduleRow
from payroll_ingestion.services.import_service import ImportService

__all__ = [
    "ImportConfig",
    "ImportReport",
    "ImportService",
    "RowError",
    "ScheduleRow",
]
