"""
ORM models for period-scoped instructor data: categories, penalties, covers
and extra pay items (brandings, theme rides, workshops).

Contract:
    Each model round-trips to its frozen DTO via ``to_dto()`` /
    ``from_dto()``.  Categories are unique per (instructor, discipline,
    period); a row with ``manual = True`` is never overwritten by an
    automatic run.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from payroll_kernel.db.base import TrackedBase
from payroll_kernel.db.types import UTCDateTime

if TYPE_CHECKING:
    from payroll_kernel.domain.types import CategoryAssignment, Cover, ExtraPay, Penalty


class CategoryModel(TrackedBase):
    __tablename__ = "instructor_categories"

    __table_args__ = (
        UniqueConstraint(
            "instructor_id", "discipline_id", "period_id",
            name="uq_category_instructor_discipline_period",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    instructor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("instructors.id", ondelete="CASCADE"), nullable=False,
    )
    discipline_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("disciplines.id"), nullable=False,
    )
    period_id: Mapped[int] = mapped_column(Integer, nullable=False)
    tier: Mapped[str] = mapped_column(String(50), nullable=False)
    metrics: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    manual: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def to_dto(self) -> CategoryAssignment:
        from payroll_kernel.domain.types import CategoryAssignment, InstructorMetrics, Tier

        return CategoryAssignment(
            instructor_id=self.instructor_id,
            discipline_id=self.discipline_id,
            period_id=self.period_id,
            tier=Tier(self.tier),
            metrics=InstructorMetrics.from_dict(self.metrics) if self.metrics else None,
            manual=self.manual,
        )

    @classmethod
    def from_dto(cls, dto: CategoryAssignment) -> CategoryModel:
        return cls(
            instructor_id=dto.instructor_id,
            discipline_id=dto.discipline_id,
            period_id=dto.period_id,
            tier=dto.tier.value,
            metrics=dto.metrics.to_dict() if dto.metrics else None,
            manual=dto.manual,
        )


class PenaltyModel(TrackedBase):
    __tablename__ = "penalties"

    __table_args__ = (
        Index("ix_penalties_instructor_period", "instructor_id", "period_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    instructor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("instructors.id", ondelete="CASCADE"), nullable=False,
    )
    period_id: Mapped[int] = mapped_column(Integer, nullable=False)
    discipline_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("disciplines.id"), nullable=True,
    )
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    applied_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def to_dto(self) -> Penalty:
        from payroll_kernel.domain.types import Penalty, PenaltyKind

        return Penalty(
            id=self.id,
            points=self.points,
            kind=PenaltyKind(self.kind),
            period_id=self.period_id,
            description=self.description,
            discipline_id=self.discipline_id,
            applied_at=self.applied_at,
            active=self.active,
        )

    @classmethod
    def from_dto(cls, dto: Penalty, instructor_id: int) -> PenaltyModel:
        return cls(
            instructor_id=instructor_id,
            period_id=dto.period_id,
            discipline_id=dto.discipline_id,
            kind=dto.kind.value,
            points=dto.points,
            description=dto.description,
            applied_at=dto.applied_at,
            active=dto.active,
        )


class CoverModel(TrackedBase):
    """A substitution; ``instructor_id`` is the instructor who covered."""

    __tablename__ = "covers"

    __table_args__ = (
        Index("ix_covers_instructor_period", "instructor_id", "period_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    instructor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("instructors.id", ondelete="CASCADE"), nullable=False,
    )
    period_id: Mapped[int] = mapped_column(Integer, nullable=False)
    class_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    bonus_eligible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    full_house_eligible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def to_dto(self) -> Cover:
        from payroll_kernel.domain.types import Cover

        return Cover(
            id=self.id,
            class_id=self.class_id,
            period_id=self.period_id,
            bonus_eligible=self.bonus_eligible,
            full_house_eligible=self.full_house_eligible,
            approved=self.approved,
        )

    @classmethod
    def from_dto(cls, dto: Cover, instructor_id: int) -> CoverModel:
        return cls(
            instructor_id=instructor_id,
            period_id=dto.period_id,
            class_id=dto.class_id,
            bonus_eligible=dto.bonus_eligible,
            full_house_eligible=dto.full_house_eligible,
            approved=dto.approved,
        )


class ExtraPayModel(TrackedBase):
    __tablename__ = "extra_pay"

    __table_args__ = (
        Index("ix_extra_pay_instructor_period", "instructor_id", "period_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    instructor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("instructors.id", ondelete="CASCADE"), nullable=False,
    )
    period_id: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    units: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    amount: Mapped[Decimal | None] = mapped_column(nullable=True)

    def to_dto(self) -> ExtraPay:
        from payroll_kernel.domain.types import ExtraPay, ExtraPayKind

        return ExtraPay(
            id=self.id,
            kind=ExtraPayKind(self.kind),
            period_id=self.period_id,
            units=self.units,
            amount=self.amount,
        )

    @classmethod
    def from_dto(cls, dto: ExtraPay, instructor_id: int) -> ExtraPayModel:
        return cls(
            instructor_id=instructor_id,
            period_id=dto.period_id,
            kind=dto.kind.value,
            units=dto.units,
            amount=dto.amount,
        )
