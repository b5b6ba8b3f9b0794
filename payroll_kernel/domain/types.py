"""
payroll_kernel.domain.types -- Pure frozen dataclasses for the payroll core.

ZERO I/O.  Every collection field is a tuple so that instances stay hashable
and can be shared across worker threads without copying.

Invariants enforced:
    - Money and ratios are ``Decimal``; counts are ``int``.
    - ClassRecord counts are non-negative and ``versus_count >= 1``.
    - CategoryThresholds requirements are stored highest tier first,
      regardless of the order they were supplied in.
    - A PaymentRecord is frozen once ``status`` is APPROVED; callers build a
      new record for PENDING recomputation, never mutate an approved one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from payroll_kernel.exceptions import InvalidClassRecordError

MONEY_QUANTUM = Decimal("0.01")


def to_money(value: Decimal) -> Decimal:
    """Quantize a monetary amount to cents using ROUND_HALF_UP."""
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


# =============================================================================
# Enums
# =============================================================================


class Tier(str, Enum):
    """Performance category, highest first in declaration order."""

    SENIOR_AMBASSADOR = "senior_ambassador"
    AMBASSADOR = "ambassador"
    JUNIOR_AMBASSADOR = "junior_ambassador"
    INSTRUCTOR = "instructor"

    @property
    def rank(self) -> int:
        """Numeric rank, 0 for the default tier; higher is better."""
        return _TIER_RANKS[self]


_TIER_RANKS = {
    Tier.SENIOR_AMBASSADOR: 3,
    Tier.AMBASSADOR: 2,
    Tier.JUNIOR_AMBASSADOR: 1,
    Tier.INSTRUCTOR: 0,
}

DEFAULT_TIER = Tier.INSTRUCTOR


class PenaltyKind(str, Enum):
    FIXED_CANCELLATION = "fixed_cancellation"
    LATE_CANCELLATION = "late_cancellation"
    CANCELLED_UNDER_24H = "cancelled_under_24h"
    COVER_OF_COVER = "cover_of_cover"
    LEFT_LATE = "left_late"
    ARRIVED_LATE = "arrived_late"
    CUSTOM = "custom"


class AdjustmentKind(str, Enum):
    FIXED = "fixed"
    PERCENT = "percent"


class PaymentStatus(str, Enum):
    """Payment lifecycle. PENDING -> APPROVED is one-way."""

    PENDING = "pending"
    APPROVED = "approved"


class ExtraPayKind(str, Enum):
    BRANDING = "branding"
    THEME_RIDE = "theme_ride"
    WORKSHOP = "workshop"


# =============================================================================
# Reference data
# =============================================================================


@dataclass(frozen=True)
class DisciplineInfo:
    id: int
    name: str
    shows_category: bool = True
    active: bool = True


@dataclass(frozen=True)
class ClassRecord:
    """A single taught class as ingested from the schedule spreadsheet.

    ``versus_count`` is the number of instructors sharing a paired class;
    the stored counts are already the per-instructor share.
    """

    id: str
    instructor_id: int
    discipline_id: int
    period_id: int
    week: int
    starts_at: datetime
    venue: str
    city: str = ""
    country: str = ""
    room: str = ""
    reservations: int = 0
    waitlist: int = 0
    courtesy_seats: int = 0
    capacity: int = 0
    paid_reservations: int = 0
    is_versus: bool = False
    versus_count: int = 1
    full_house: bool = False
    special_text: str | None = None

    def __post_init__(self) -> None:
        for name in (
            "reservations",
            "waitlist",
            "courtesy_seats",
            "capacity",
            "paid_reservations",
        ):
            if getattr(self, name) < 0:
                raise InvalidClassRecordError(self.id, name, "must be non-negative")
        if self.versus_count < 1:
            raise InvalidClassRecordError(self.id, "versus_count", "must be at least 1")

    @property
    def time_of_day(self) -> str:
        """Start time as ``HH:MM``."""
        return self.starts_at.strftime("%H:%M")


# =============================================================================
# Categorization
# =============================================================================


@dataclass(frozen=True)
class TierRequirement:
    """Minimums an instructor must meet to qualify for ``tier``."""

    tier: Tier
    min_occupancy: Decimal = Decimal("0")
    min_classes_per_week: Decimal = Decimal("0")
    min_venues: int = 0
    min_back_to_back: Decimal = Decimal("0")
    min_off_peak: Decimal = Decimal("0")
    requires_event_participation: bool = False
    requires_guideline_compliance: bool = False


@dataclass(frozen=True)
class CategoryThresholds:
    """Per discipline and period, the ordered tier requirements."""

    discipline_id: int
    period_id: int
    requirements: tuple[TierRequirement, ...] = ()

    def __post_init__(self) -> None:
        ordered = tuple(
            sorted(self.requirements, key=lambda r: r.tier.rank, reverse=True)
        )
        object.__setattr__(self, "requirements", ordered)


@dataclass(frozen=True)
class InstructorMetrics:
    """Derived aggregates for one instructor, discipline and period."""

    total_classes: int = 0
    occupancy: Decimal = Decimal("0")
    classes_per_week: Decimal = Decimal("0")
    venue_count: int = 0
    back_to_back_count: Decimal = Decimal("0")
    off_peak_count: Decimal = Decimal("0")
    event_participation: bool = False
    guideline_compliance: bool = True

    def to_inputs(self) -> dict[str, Decimal]:
        """Metric fields as formula evaluation inputs."""
        return {
            "total_classes": Decimal(self.total_classes),
            "occupancy": self.occupancy,
            "classes_per_week": self.classes_per_week,
            "venue_count": Decimal(self.venue_count),
            "back_to_back_count": self.back_to_back_count,
            "off_peak_count": self.off_peak_count,
            "event_participation": Decimal(int(self.event_participation)),
            "guideline_compliance": Decimal(int(self.guideline_compliance)),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_classes": self.total_classes,
            "occupancy": str(self.occupancy),
            "classes_per_week": str(self.classes_per_week),
            "venue_count": self.venue_count,
            "back_to_back_count": str(self.back_to_back_count),
            "off_peak_count": str(self.off_peak_count),
            "event_participation": self.event_participation,
            "guideline_compliance": self.guideline_compliance,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InstructorMetrics:
        return cls(
            total_classes=int(data.get("total_classes", 0)),
            occupancy=Decimal(str(data.get("occupancy", "0"))),
            classes_per_week=Decimal(str(data.get("classes_per_week", "0"))),
            venue_count=int(data.get("venue_count", 0)),
            back_to_back_count=Decimal(str(data.get("back_to_back_count", "0"))),
            off_peak_count=Decimal(str(data.get("off_peak_count", "0"))),
            event_participation=bool(data.get("event_participation", False)),
            guideline_compliance=bool(data.get("guideline_compliance", True)),
        )


@dataclass(frozen=True)
class CategoryAssignment:
    """Tier for (instructor, discipline, period). Manual ones are sticky."""

    instructor_id: int
    discipline_id: int
    period_id: int
    tier: Tier
    metrics: InstructorMetrics | None = None
    manual: bool = False


# =============================================================================
# Pay inputs
# =============================================================================


@dataclass(frozen=True)
class Penalty:
    points: int
    kind: PenaltyKind
    period_id: int
    description: str | None = None
    discipline_id: int | None = None
    applied_at: datetime | None = None
    active: bool = True
    id: int | None = None


@dataclass(frozen=True)
class Cover:
    """A substitute-teaching event.

    ``bonus_eligible`` pays the fixed cover rate; ``full_house_eligible``
    marks the covered class as fully booked.  Only approved covers count.
    """

    class_id: str | None
    period_id: int
    bonus_eligible: bool = False
    full_house_eligible: bool = False
    approved: bool = True
    id: int | None = None


@dataclass(frozen=True)
class ExtraPay:
    """Brandings, theme rides and workshops paid on top of class pay."""

    kind: ExtraPayKind
    period_id: int
    units: int = 1
    amount: Decimal | None = None
    id: int | None = None


@dataclass(frozen=True)
class Adjustment:
    """Manual correction ("reajuste") applied to the computed base."""

    kind: AdjustmentKind = AdjustmentKind.FIXED
    value: Decimal = Decimal("0")

    def amount_for(self, base_amount: Decimal) -> Decimal:
        if self.kind == AdjustmentKind.PERCENT:
            return base_amount * self.value / Decimal("100")
        return self.value


@dataclass(frozen=True)
class InstructorInfo:
    """Instructor with the period-scoped data needed to assemble pay."""

    id: int
    name: str
    active: bool = True
    discipline_ids: tuple[int, ...] = ()
    categories: tuple[CategoryAssignment, ...] = ()
    penalties: tuple[Penalty, ...] = ()
    covers: tuple[Cover, ...] = ()
    extras: tuple[ExtraPay, ...] = ()
    event_participation: bool = False
    guideline_compliance: bool = True


# =============================================================================
# Payment output
# =============================================================================


@dataclass(frozen=True)
class RecordError:
    """One class, row or instructor that could not be processed."""

    record_id: str
    message: str
    code: str | None = None


@dataclass(frozen=True)
class ClassPayDetail:
    class_id: str
    discipline_id: int
    tier: Tier | None
    reservations: int
    capacity: int
    amount: Decimal
    versus_count: int = 1
    full_house: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "class_id": self.class_id,
            "discipline_id": self.discipline_id,
            "tier": self.tier.value if self.tier else None,
            "reservations": self.reservations,
            "capacity": self.capacity,
            "amount": str(self.amount),
            "versus_count": self.versus_count,
            "full_house": self.full_house,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClassPayDetail:
        return cls(
            class_id=str(data["class_id"]),
            discipline_id=int(data["discipline_id"]),
            tier=Tier(data["tier"]) if data.get("tier") else None,
            reservations=int(data.get("reservations", 0)),
            capacity=int(data.get("capacity", 0)),
            amount=Decimal(str(data.get("amount", "0"))),
            versus_count=int(data.get("versus_count", 1)),
            full_house=bool(data.get("full_house", False)),
            error=data.get("error"),
        )


@dataclass(frozen=True)
class PaymentRecord:
    """Computed pay for one instructor in one period."""

    instructor_id: int
    period_id: int
    base_amount: Decimal = Decimal("0")
    adjustment: Adjustment = field(default_factory=Adjustment)
    adjustment_amount: Decimal = Decimal("0")
    bonus: Decimal = Decimal("0")
    cover_pay: Decimal = Decimal("0")
    penalty_percent: Decimal = Decimal("0")
    penalty_amount: Decimal = Decimal("0")
    retention: Decimal = Decimal("0")
    final_pay: Decimal = Decimal("0")
    per_class_detail: tuple[ClassPayDetail, ...] = ()
    status: PaymentStatus = PaymentStatus.PENDING
    computed_at: datetime | None = None
    approved_at: datetime | None = None
    id: int | None = None

    @property
    def is_approved(self) -> bool:
        return self.status == PaymentStatus.APPROVED

    @property
    def subtotal(self) -> Decimal:
        return self.base_amount + self.adjustment_amount + self.bonus + self.cover_pay
