"""
payroll_batch.domain.types -- Pure frozen dataclasses for payroll runs.

ZERO I/O.  Frozen dataclasses with enum status fields and tuples for
immutable collections.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from payroll_kernel.domain.types import PaymentRecord, RecordError


class BatchStatus(str, Enum):
    """Run-level outcome."""

    COMPLETED = "completed"  # No errors recorded
    FAILED = "failed"  # Errors and nothing written
    PARTIALLY_COMPLETED = "partially_completed"  # Some records failed


@dataclass(frozen=True)
class BatchReport:
    """Summary of one payroll run.

    ``errors`` holds one entry per failed class, discipline, row or
    instructor.  ``skipped_count`` counts approved payments left untouched.
    """

    processed_count: int
    error_count: int
    errors: tuple[RecordError, ...] = ()
    skipped_count: int = 0
    status: BatchStatus = BatchStatus.COMPLETED
    period_id: int | None = None
    run_id: str | None = None
    payments: tuple[PaymentRecord, ...] = ()
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int = 0


def resolve_status(processed: int, skipped: int, errors: int) -> BatchStatus:
    if errors == 0:
        return BatchStatus.COMPLETED
    if processed == 0 and skipped == 0:
        return BatchStatus.FAILED
    return BatchStatus.PARTIALLY_COMPLETED
