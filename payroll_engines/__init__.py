"""
Module: payroll_engines
Responsibility:
    Package entrypoint re-exporting the pure payroll calculation engines.
    This is the import surface for payroll_batch and payroll_ingestion.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import payroll_kernel.domain, payroll_kernel.exceptions and
    payroll_kernel.logging_config (and sibling engine modules).
    MUST NOT import payroll_kernel.services, payroll_batch or
    payroll_ingestion.

Invariants enforced:
    - Purity: engines never read the clock; timestamps are parameters.
    - Decimal-only arithmetic for money and ratios.
    - Determinism: identical inputs produce identical outputs.

Audit relevance:
    Engine invocations are traced via ``@traced_engine`` (see
    ``payroll_engines.tracer``), emitting PAYROLL_ENGINE_TRACE records.
"""

from payroll_engines.assembler import (
    AssemblyOutcome,
    EffectiveClass,
    PaymentRequest,
    assemble_payment,
    effective_class,
)
from payroll_engines.classifier import determine_category, meets_requirement
from payroll_engines.evaluator import EvaluationResult, EvaluationStep, evaluate
from payroll_engines.metrics import compute_metrics, occupancy_percent
from payroll_engines.pairing import ClassShare, split_paired_class
from payroll_engines.penalty import PenaltyDetail, PenaltySummary, compute_penalty
from payroll_engines.policy import OffPeakWindow, PayrollPolicy

__all__ = [
    "AssemblyOutcome",
    "ClassShare",
    "EffectiveClass",
    "EvaluationResult",
    "EvaluationStep",
    "OffPeakWindow",
    "PayrollPolicy",
    "PaymentRequest",
    "PenaltyDetail",
    "PenaltySummary",
    "assemble_payment",
    "compute_metrics",
    "compute_penalty",
    "determine_category",
    "effective_class",
    "evaluate",
    "meets_requirement",
    "occupancy_percent",
    "split_paired_class",
]
