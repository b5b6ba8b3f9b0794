"""
ORM model for instructor payments.

Contract:
    One ``PaymentModel`` row per (instructor, period).  Amount columns are
    Numeric(38, 9); ``detail`` holds the per-class breakdown.

Invariants enforced:
    - UNIQUE (instructor_id, period_id).
    - Rows with ``status = 'approved'`` are never rewritten by a payroll
      run; PaymentService rejects updates to them with PaymentApprovedError.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import JSON, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from payroll_kernel.db.base import TrackedBase
from payroll_kernel.db.types import UTCDateTime

if TYPE_CHECKING:
    from payroll_kernel.domain.types import PaymentRecord


class PaymentModel(TrackedBase):
    __tablename__ = "payments"

    __table_args__ = (
        UniqueConstraint("instructor_id", "period_id", name="uq_payment_instructor_period"),
        Index("ix_payments_period_status", "period_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    instructor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("instructors.id"), nullable=False,
    )
    period_id: Mapped[int] = mapped_column(Integer, nullable=False)
    base_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    adjustment_kind: Mapped[str] = mapped_column(String(20), nullable=False, default="fixed")
    adjustment_value: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    adjustment_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    bonus: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    cover_pay: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    penalty_percent: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    penalty_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    retention: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    final_pay: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    detail: Mapped[list | None] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    computed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)

    def to_dto(self) -> PaymentRecord:
        from payroll_kernel.domain.types import (
            Adjustment,
            AdjustmentKind,
            ClassPayDetail,
            PaymentRecord,
            PaymentStatus,
        )

        return PaymentRecord(
            id=self.id,
            instructor_id=self.instructor_id,
            period_id=self.period_id,
            base_amount=self.base_amount,
            adjustment=Adjustment(AdjustmentKind(self.adjustment_kind), self.adjustment_value),
            adjustment_amount=self.adjustment_amount,
            bonus=self.bonus,
            cover_pay=self.cover_pay,
            penalty_percent=self.penalty_percent,
            penalty_amount=self.penalty_amount,
            retention=self.retention,
            final_pay=self.final_pay,
            per_class_detail=tuple(
                ClassPayDetail.from_dict(d) for d in (self.detail or ())
            ),
            status=PaymentStatus(self.status),
            computed_at=self.computed_at,
            approved_at=self.approved_at,
        )

    @classmethod
    def from_dto(cls, dto: PaymentRecord) -> PaymentModel:
        model = cls(instructor_id=dto.instructor_id, period_id=dto.period_id)
        model.apply(dto)
        return model

    def apply(self, dto: PaymentRecord) -> None:
        """Copy every computed field of ``dto`` onto this row."""
        self.base_amount = dto.base_amount
        self.adjustment_kind = dto.adjustment.kind.value
        self.adjustment_value = dto.adjustment.value
        self.adjustment_amount = dto.adjustment_amount
        self.bonus = dto.bonus
        self.cover_pay = dto.cover_pay
        self.penalty_percent = dto.penalty_percent
        self.penalty_amount = dto.penalty_amount
        self.retention = dto.retention
        self.final_pay = dto.final_pay
        self.detail = [d.to_dict() for d in dto.per_class_detail]
        self.status = dto.status.value
        self.computed_at = dto.computed_at
        self.approved_at = dto.approved_at
