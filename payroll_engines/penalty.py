"""
Penalty aggregator.

Pure functions with deterministic behavior. No I/O.

Converts an instructor's period penalties into a discount percentage:

    max_allowed = floor(total_classes * max_allowed_ratio)
    points      = sum of active penalty points
    excess      = max(0, points - max_allowed)
    discount    = min(excess, max_discount_percent)

One excess point is one percentage point of discount on the payment
subtotal.  The cap keeps final pay from going negative.

Usage:
    summary = compute_penalty(
        total_classes=40,
        penalties=penalties,
        max_allowed_ratio=Decimal("0.10"),
        max_discount_percent=Decimal("100"),
    )
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_FLOOR, Decimal

from payroll_kernel.domain.types import Penalty, PenaltyKind
from payroll_kernel.logging_config import get_logger
from payroll_engines.tracer import traced_engine

logger = get_logger("engines.penalty")

GENERAL_DISCIPLINE = "General"


@dataclass(frozen=True)
class PenaltyDetail:
    kind: PenaltyKind
    points: int
    description: str
    discipline: str
    applied_at: datetime | None = None


@dataclass(frozen=True)
class PenaltySummary:
    points: int
    max_allowed: int
    excess: int
    discount_percent: Decimal
    detail: tuple[PenaltyDetail, ...] = ()


@traced_engine(
    "penalty",
    "1.0",
    fingerprint_fields=("total_classes", "penalties", "max_allowed_ratio", "max_discount_percent"),
)
def compute_penalty(
    total_classes: int,
    penalties: Sequence[Penalty],
    *,
    max_allowed_ratio: Decimal = Decimal("0.10"),
    max_discount_percent: Decimal = Decimal("100"),
    discipline_names: Mapping[int, str] | None = None,
) -> PenaltySummary:
    """
    Aggregate active penalties against the instructor's class count.

    Args:
        total_classes: Classes taught in the period, all disciplines.
        penalties: Period penalties; inactive ones are ignored.
        max_allowed_ratio: Share of classes tolerated as free points.
        max_discount_percent: Upper bound of the discount.
        discipline_names: Names for the audit detail; unknown or missing
            disciplines show as "General".
    """
    names = discipline_names or {}
    active = [p for p in penalties if p.active]

    max_allowed = int(
        (Decimal(total_classes) * max_allowed_ratio).to_integral_value(rounding=ROUND_FLOOR)
    )
    points = sum(p.points for p in active)
    excess = max(0, points - max_allowed)
    discount = min(Decimal(excess), max_discount_percent)

    detail = tuple(
        PenaltyDetail(
            kind=p.kind,
            points=p.points,
            description=p.description or "No description",
            discipline=names.get(p.discipline_id, GENERAL_DISCIPLINE)
            if p.discipline_id is not None
            else GENERAL_DISCIPLINE,
            applied_at=p.applied_at,
        )
        for p in active
    )

    if excess:
        logger.info(
            "penalty_discount_applied",
            extra={
                "points": points,
                "max_allowed": max_allowed,
                "excess": excess,
                "discount_percent": str(discount),
                "capped": Decimal(excess) > max_discount_percent,
            },
        )

    return PenaltySummary(
        points=points,
        max_allowed=max_allowed,
        excess=excess,
        discount_percent=discount,
        detail=detail,
    )
