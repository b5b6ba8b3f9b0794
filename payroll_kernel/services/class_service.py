"""
ClassService -- SQLAlchemy-backed ClassStore.

Class rows are created by ingestion and are otherwise read-only; re-import
of a week deletes that (period, week) first.
"""

from __future__ import annotations

from sqlalchemy import delete, select

from payroll_kernel.domain.types import ClassRecord
from payroll_kernel.logging_config import get_logger
from payroll_kernel.models.schedule import ClassModel
from payroll_kernel.services.base import BaseService

logger = get_logger("services.classes")


class ClassService(BaseService):

    def query(
        self,
        period_id: int,
        week: int | None = None,
        instructor_id: int | None = None,
    ) -> list[ClassRecord]:
        stmt = select(ClassModel).where(ClassModel.period_id == period_id)
        if week is not None:
            stmt = stmt.where(ClassModel.week == week)
        if instructor_id is not None:
            stmt = stmt.where(ClassModel.instructor_id == instructor_id)
        stmt = stmt.order_by(ClassModel.starts_at, ClassModel.id)
        return [m.to_dto() for m in self.session.execute(stmt).scalars()]

    def create(self, record: ClassRecord) -> ClassRecord:
        self.session.add(ClassModel.from_dto(record))
        self.session.flush()
        return record

    def delete(self, class_id: str) -> None:
        model = self.session.get(ClassModel, class_id)
        if model is not None:
            self.session.delete(model)
            self.session.flush()

    def delete_week(self, period_id: int, week: int) -> int:
        """Delete every class of a (period, week); returns rows removed."""
        result = self.session.execute(
            delete(ClassModel).where(
                ClassModel.period_id == period_id,
                ClassModel.week == week,
            )
        )
        self.session.flush()
        deleted = result.rowcount or 0
        logger.info(
            "classes_deleted_for_week",
            extra={"period_id": period_id, "week": week, "deleted": deleted},
        )
        return deleted
