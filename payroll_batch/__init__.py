"""
payroll_batch -- Period payroll runs.

Reads a period through the store protocols, fans instructors out to a
bounded worker pool for the pure payment assembly, and writes categories
and payments back with per-instructor isolation.

Architecture:
    payroll_batch/ is a top-level package.  Nothing in payroll_kernel or
    payroll_engines imports from payroll_batch.

Invariants:
    - Per-instructor isolation (one failure never aborts the run)
    - APPROVED payments are never recomputed
    - Clock injection (no datetime.now() calls)
    - The caller owns the transaction boundary
"""

from payroll_batch.domain.types import BatchReport, BatchStatus
from payroll_batch.services.runner import PayrollRunner

__all__ = ["BatchReport", "BatchStatus", "PayrollRunner"]
