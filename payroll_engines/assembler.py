"""
Payment assembler.

Pure functions with deterministic behavior. No I/O beyond log records.

Assembles the payment of one instructor for one period:

    1. Effective class records: a full-house class (flagged, or targeted by
       an approved full-house cover) counts reservations = capacity; a
       paired class with n > 1 instructors is scaled back up by n.
    2. Metrics and tier per discipline (manual categories win), then each
       effective class is evaluated through its discipline's formula graph.
       A paired class's result is divided by n.  Per-class amounts are
       rounded to cents and summed into ``base_amount``.
    3. cover_pay  = approved bonus-eligible covers * cover_rate
    4. subtotal   = base + adjustment + bonus + cover_pay
    5. penalty    = subtotal * discount% / 100
    6. retention  = (subtotal - penalty) * retention_rate
       final_pay  = subtotal - penalty - retention
    7. An existing APPROVED record short-circuits everything: the outcome
       is a no-op carrying the approved record unchanged.

Continue-on-error:
    A missing formula or an evaluator failure (ComputationError) is recorded
    against the class, which then contributes 0.  An invalid graph is
    recorded once for its discipline and that discipline's classes are
    skipped.  Other disciplines of the same instructor are unaffected.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal

from payroll_kernel.domain.formula_graph import FormulaGraph
from payroll_kernel.domain.types import (
    Adjustment,
    CategoryAssignment,
    CategoryThresholds,
    ClassPayDetail,
    ClassRecord,
    DisciplineInfo,
    ExtraPayKind,
    InstructorInfo,
    PaymentRecord,
    PaymentStatus,
    RecordError,
    Tier,
    to_money,
)
from payroll_kernel.exceptions import (
    ComputationError,
    FormulaNotFoundError,
    FormulaValidationError,
)
from payroll_kernel.logging_config import get_logger
from payroll_engines.classifier import determine_category
from payroll_engines.evaluator import evaluate
from payroll_engines.metrics import compute_metrics
from payroll_engines.penalty import PenaltySummary, compute_penalty
from payroll_engines.policy import PayrollPolicy

logger = get_logger("engines.assembler")

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PaymentRequest:
    """Everything needed to pay one instructor for one period."""

    instructor: InstructorInfo
    period_id: int
    classes: tuple[ClassRecord, ...]
    formulas: Mapping[int, FormulaGraph]
    thresholds: Mapping[int, CategoryThresholds] = field(default_factory=dict)
    disciplines: Mapping[int, DisciplineInfo] = field(default_factory=dict)
    adjustment: Adjustment | None = None


@dataclass(frozen=True)
class EffectiveClass:
    record: ClassRecord
    reservations: int
    capacity: int
    paid_reservations: int
    full_house: bool

    @property
    def versus_count(self) -> int:
        return self.record.versus_count if self.record.is_versus else 1

    def to_inputs(self) -> dict[str, Decimal]:
        return {
            "reservations": Decimal(self.reservations),
            "capacity": Decimal(self.capacity),
            "paid_reservations": Decimal(self.paid_reservations),
            "waitlist": Decimal(self.record.waitlist),
            "courtesy_seats": Decimal(self.record.courtesy_seats),
            "versus_count": Decimal(self.versus_count),
            "full_house": Decimal(int(self.full_house)),
        }


@dataclass(frozen=True)
class AssemblyOutcome:
    record: PaymentRecord
    categories: tuple[CategoryAssignment, ...] = ()
    errors: tuple[RecordError, ...] = ()
    penalty: PenaltySummary | None = None
    skipped: bool = False


def effective_class(record: ClassRecord, full_house_class_ids: frozenset[str]) -> EffectiveClass:
    """Apply the full-house override and undo the paired-class split."""
    full_house = record.full_house or record.id in full_house_class_ids
    reservations = record.capacity if full_house else record.reservations
    capacity = record.capacity
    paid = record.paid_reservations
    n = record.versus_count if record.is_versus else 1
    if n > 1:
        reservations *= n
        capacity *= n
        paid *= n
    return EffectiveClass(record, reservations, capacity, paid, full_house)


def reference_discipline_id(
    disciplines: Mapping[int, DisciplineInfo], reference_name: str | None
) -> int | None:
    if not reference_name:
        return None
    wanted = reference_name.strip().lower()
    for discipline in disciplines.values():
        if discipline.name.strip().lower() == wanted:
            return discipline.id
    return None


def compute_bonus(
    instructor: InstructorInfo,
    period_id: int,
    classes: Sequence[ClassRecord],
    reference_id: int | None,
    policy: PayrollPolicy,
) -> Decimal:
    """Brandings, theme rides, workshops and the paired-class bonus."""
    bonus = ZERO
    for extra in instructor.extras:
        if extra.period_id != period_id:
            continue
        match extra.kind:
            case ExtraPayKind.BRANDING:
                bonus += policy.branding_rate * extra.units
            case ExtraPayKind.THEME_RIDE:
                bonus += policy.theme_ride_rate * extra.units
            case ExtraPayKind.WORKSHOP:
                bonus += extra.amount or ZERO
    versus = sum(
        1 for c in classes
        if c.is_versus and c.versus_count > 1 and c.discipline_id != reference_id
    )
    return bonus + policy.versus_bonus_rate * versus


def assemble_payment(
    request: PaymentRequest,
    *,
    policy: PayrollPolicy,
    existing: PaymentRecord | None = None,
    computed_at: datetime | None = None,
) -> AssemblyOutcome:
    """
    Compute the payment for ``request.instructor`` in ``request.period_id``.

    Args:
        existing: The stored payment, if any.  An approved one makes this a
            no-op; a pending one contributes its adjustment when the request
            carries none.
        computed_at: Timestamp recorded on the new record.

    Returns:
        AssemblyOutcome with the PENDING record, the computed (non-manual)
        category assignments and the per-class errors.
    """
    instructor = request.instructor
    period_id = request.period_id

    if existing is not None and existing.is_approved:
        logger.info(
            "payment_approved_noop",
            extra={"instructor_id": instructor.id, "period_id": period_id},
        )
        return AssemblyOutcome(record=existing, skipped=True)

    adjustment = request.adjustment or (existing.adjustment if existing else Adjustment())
    classes = tuple(c for c in request.classes if c.period_id == period_id)
    ref_id = reference_discipline_id(request.disciplines, policy.reference_discipline)

    overrides = {
        (c.instructor_id, c.discipline_id): c.tier
        for c in instructor.categories
        if c.manual and c.period_id == period_id
    }
    full_house_ids = frozenset(
        cover.class_id
        for cover in instructor.covers
        if cover.approved and cover.full_house_eligible and cover.class_id
        and cover.period_id == period_id
    )

    errors: list[RecordError] = []
    details: list[ClassPayDetail] = []
    categories: list[CategoryAssignment] = []

    for discipline_id in sorted({c.discipline_id for c in classes}):
        discipline_classes = [c for c in classes if c.discipline_id == discipline_id]
        metrics = compute_metrics(
            classes=classes,
            discipline_id=discipline_id,
            policy=policy,
            is_reference_discipline=discipline_id == ref_id,
            event_participation=instructor.event_participation,
            guideline_compliance=instructor.guideline_compliance,
        )
        tier = determine_category(
            instructor_id=instructor.id,
            discipline_id=discipline_id,
            period_id=period_id,
            thresholds=request.thresholds.get(discipline_id),
            metrics=metrics,
            overrides=overrides,
        )
        if (instructor.id, discipline_id) not in overrides:
            categories.append(
                CategoryAssignment(
                    instructor_id=instructor.id,
                    discipline_id=discipline_id,
                    period_id=period_id,
                    tier=tier,
                    metrics=metrics,
                    manual=False,
                )
            )

        graph = request.formulas.get(discipline_id)
        failure = _graph_failure(graph, discipline_id, period_id)
        if failure is not None:
            if isinstance(failure, FormulaValidationError):
                errors.append(
                    RecordError(f"discipline:{discipline_id}", str(failure), failure.code)
                )
            for c in discipline_classes:
                if isinstance(failure, FormulaNotFoundError):
                    errors.append(RecordError(c.id, str(failure), failure.code))
                details.append(_failed_detail(c, tier, str(failure)))
            continue

        shared_inputs = metrics.to_inputs()
        shared_inputs["tier_rank"] = Decimal(tier.rank)
        for c in discipline_classes:
            details.append(_pay_class(c, graph, tier, shared_inputs, full_house_ids, errors))

    base_amount = sum((d.amount for d in details), ZERO)
    bonus = to_money(compute_bonus(instructor, period_id, classes, ref_id, policy))
    cover_pay = to_money(
        policy.cover_rate
        * sum(
            1 for cover in instructor.covers
            if cover.approved and cover.bonus_eligible and cover.period_id == period_id
        )
    )
    adjustment_amount = to_money(adjustment.amount_for(base_amount))

    penalty = compute_penalty(
        total_classes=len(classes),
        penalties=tuple(p for p in instructor.penalties if p.period_id == period_id),
        max_allowed_ratio=policy.penalty_max_allowed_ratio,
        max_discount_percent=policy.max_penalty_discount_percent,
        discipline_names={d.id: d.name for d in request.disciplines.values()},
    )

    subtotal = base_amount + adjustment_amount + bonus + cover_pay
    penalty_amount = to_money(subtotal * penalty.discount_percent / HUNDRED)
    after_penalty = subtotal - penalty_amount
    retention = to_money(after_penalty * policy.retention_rate)
    final_pay = after_penalty - retention

    record = PaymentRecord(
        instructor_id=instructor.id,
        period_id=period_id,
        base_amount=base_amount,
        adjustment=adjustment,
        adjustment_amount=adjustment_amount,
        bonus=bonus,
        cover_pay=cover_pay,
        penalty_percent=penalty.discount_percent,
        penalty_amount=penalty_amount,
        retention=retention,
        final_pay=final_pay,
        per_class_detail=tuple(details),
        status=PaymentStatus.PENDING,
        computed_at=computed_at,
        id=existing.id if existing else None,
    )

    logger.info(
        "payment_assembled",
        extra={
            "instructor_id": instructor.id,
            "period_id": period_id,
            "classes": len(classes),
            "base_amount": str(base_amount),
            "final_pay": str(final_pay),
            "errors": len(errors),
        },
    )
    return AssemblyOutcome(
        record=record,
        categories=tuple(categories),
        errors=tuple(errors),
        penalty=penalty,
    )


def _graph_failure(
    graph: FormulaGraph | None, discipline_id: int, period_id: int
) -> FormulaNotFoundError | FormulaValidationError | None:
    if graph is None:
        return FormulaNotFoundError(discipline_id, period_id)
    issue = graph.validate()
    if issue is not None:
        logger.warning(
            "formula_invalid",
            extra={"discipline_id": discipline_id, "issue": issue.code, "node_id": issue.node_id},
        )
        return issue.to_exception(discipline_id)
    return None


def _failed_detail(record: ClassRecord, tier: Tier, message: str) -> ClassPayDetail:
    return ClassPayDetail(
        class_id=record.id,
        discipline_id=record.discipline_id,
        tier=tier,
        reservations=record.reservations,
        capacity=record.capacity,
        amount=ZERO,
        versus_count=record.versus_count,
        full_house=record.full_house,
        error=message,
    )


def _pay_class(
    record: ClassRecord,
    graph: FormulaGraph,
    tier: Tier,
    shared_inputs: Mapping[str, Decimal],
    full_house_ids: frozenset[str],
    errors: list[RecordError],
) -> ClassPayDetail:
    eff = effective_class(record, full_house_ids)
    inputs = {**shared_inputs, **eff.to_inputs()}
    try:
        value = evaluate(graph=graph, inputs=inputs).value
    except ComputationError as e:
        logger.warning(
            "class_evaluation_failed",
            extra={"class_id": record.id, "error_code": e.code, "error": str(e)},
        )
        errors.append(RecordError(record.id, str(e), e.code))
        return replace(_failed_detail(record, tier, str(e)), full_house=eff.full_house)

    if eff.versus_count > 1:
        value = value / Decimal(eff.versus_count)

    return ClassPayDetail(
        class_id=record.id,
        discipline_id=record.discipline_id,
        tier=tier,
        reservations=eff.reservations,
        capacity=eff.capacity,
        amount=to_money(value),
        versus_count=eff.versus_count,
        full_house=eff.full_house,
    )
