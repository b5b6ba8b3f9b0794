"""Pure batch DTOs."""

from payroll_batch.domain.types import BatchReport, BatchStatus, resolve_status

__all__ = ["BatchReport", "BatchStatus", "resolve_status"]
