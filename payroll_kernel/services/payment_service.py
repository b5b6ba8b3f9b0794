"""
PaymentService -- SQLAlchemy-backed PaymentStore.

Responsibility:
    Persist one payment per (instructor, period) and guard the
    PENDING -> APPROVED lifecycle.

Invariants enforced:
    - An APPROVED payment is never modified: ``update`` and ``upsert_computed``
      raise PaymentApprovedError, and ``delete_zero_pending`` only touches
      PENDING rows.
    - ``approve`` is one-way and idempotent.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Any

from sqlalchemy import select

from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.domain.types import (
    Adjustment,
    AdjustmentKind,
    PaymentRecord,
    PaymentStatus,
)
from payroll_kernel.exceptions import PaymentApprovedError, PaymentNotFoundError
from payroll_kernel.logging_config import get_logger
from payroll_kernel.models.payment import PaymentModel
from payroll_kernel.services.base import BaseService

logger = get_logger("services.payments")

_PATCHABLE_FIELDS = frozenset({"adjustment"})


class PaymentService(BaseService):

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def _get_model(self, payment_id: int) -> PaymentModel:
        model = self.session.get(PaymentModel, payment_id)
        if model is None:
            raise PaymentNotFoundError(payment_id)
        return model

    def _find(self, instructor_id: int, period_id: int) -> PaymentModel | None:
        stmt = select(PaymentModel).where(
            PaymentModel.instructor_id == instructor_id,
            PaymentModel.period_id == period_id,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def get(self, instructor_id: int, period_id: int) -> PaymentRecord | None:
        model = self._find(instructor_id, period_id)
        return model.to_dto() if model else None

    def get_by_id(self, payment_id: int) -> PaymentRecord:
        return self._get_model(payment_id).to_dto()

    def list(
        self, period_id: int, page: int = 1, page_size: int = 50
    ) -> list[PaymentRecord]:
        """One page of the period's payments ordered by instructor id."""
        page = max(page, 1)
        stmt = (
            select(PaymentModel)
            .where(PaymentModel.period_id == period_id)
            .order_by(PaymentModel.instructor_id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return [m.to_dto() for m in self.session.execute(stmt).scalars()]

    def create(self, record: PaymentRecord) -> PaymentRecord:
        model = PaymentModel.from_dto(record)
        self.session.add(model)
        self.session.flush()
        return model.to_dto()

    def upsert_computed(self, record: PaymentRecord) -> PaymentRecord:
        """Write a freshly computed PENDING record, creating or replacing.

        Raises:
            PaymentApprovedError: If the stored payment is already approved.
        """
        model = self._find(record.instructor_id, record.period_id)
        if model is None:
            return self.create(record)
        if model.status == PaymentStatus.APPROVED.value:
            raise PaymentApprovedError(record.instructor_id, record.period_id)
        model.apply(replace(record, status=PaymentStatus.PENDING))
        self.session.flush()
        return model.to_dto()

    def update(self, payment_id: int, patch: dict[str, Any]) -> PaymentRecord:
        """
        Patch the manual adjustment of a pending payment.

        Derived amounts are recomputed on the next payroll run, not here.

        Raises:
            PaymentNotFoundError: Unknown payment id.
            PaymentApprovedError: The payment is approved.
            ValueError: Unknown patch field.
        """
        unknown = set(patch) - _PATCHABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot patch payment fields: {sorted(unknown)}")
        model = self._get_model(payment_id)
        if model.status == PaymentStatus.APPROVED.value:
            raise PaymentApprovedError(model.instructor_id, model.period_id)
        if "adjustment" in patch:
            adjustment = patch["adjustment"]
            if not isinstance(adjustment, Adjustment):
                adjustment = Adjustment(
                    AdjustmentKind(adjustment["kind"]), Decimal(str(adjustment["value"]))
                )
            model.adjustment_kind = adjustment.kind.value
            model.adjustment_value = adjustment.value
        self.session.flush()
        return model.to_dto()

    def approve(self, payment_id: int) -> PaymentRecord:
        """Move a payment to APPROVED; approving twice is a no-op."""
        model = self._get_model(payment_id)
        if model.status != PaymentStatus.APPROVED.value:
            model.status = PaymentStatus.APPROVED.value
            model.approved_at = self._clock.now()
            self.session.flush()
            logger.info(
                "payment_approved",
                extra={
                    "payment_id": payment_id,
                    "instructor_id": model.instructor_id,
                    "period_id": model.period_id,
                },
            )
        return model.to_dto()

    def delete_zero_pending(self, period_id: int) -> int:
        """Delete PENDING payments of the period whose final pay is zero."""
        stmt = select(PaymentModel).where(
            PaymentModel.period_id == period_id,
            PaymentModel.status == PaymentStatus.PENDING.value,
            PaymentModel.final_pay == 0,
        )
        models = list(self.session.execute(stmt).scalars())
        for model in models:
            self.session.delete(model)
        self.session.flush()
        if models:
            logger.info(
                "zero_payments_deleted",
                extra={"period_id": period_id, "deleted": len(models)},
            )
        return len(models)
