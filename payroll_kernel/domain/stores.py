"""
Store protocols -- the boundary between the pure payroll core and storage.

The engines and the batch runner depend only on these protocols.  The
SQLAlchemy-backed services in ``payroll_kernel.services`` implement them;
tests may substitute any object with the same methods.

Calls are synchronous and raise typed ``PayrollError`` subclasses; there is
no built-in retry.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable

from payroll_kernel.domain.formula_graph import FormulaGraph
from payroll_kernel.domain.types import (
    CategoryAssignment,
    CategoryThresholds,
    ClassRecord,
    DisciplineInfo,
    InstructorInfo,
    PaymentRecord,
)


@runtime_checkable
class FormulaStore(Protocol):
    def get(self, discipline_id: int, period_id: int) -> FormulaGraph: ...

    def list(self, period_id: int) -> dict[int, FormulaGraph]: ...

    def create(
        self,
        discipline_id: int,
        period_id: int,
        graph: FormulaGraph,
        thresholds: CategoryThresholds | None = None,
    ) -> FormulaGraph: ...

    def duplicate(self, from_period_id: int, to_period_id: int) -> int: ...

    def thresholds(self, period_id: int) -> dict[int, CategoryThresholds]: ...


@runtime_checkable
class ClassStore(Protocol):
    def query(
        self,
        period_id: int,
        week: int | None = None,
        instructor_id: int | None = None,
    ) -> list[ClassRecord]: ...

    def create(self, record: ClassRecord) -> ClassRecord: ...

    def delete(self, class_id: str) -> None: ...

    def delete_week(self, period_id: int, week: int) -> int: ...


@runtime_checkable
class InstructorStore(Protocol):
    def get(self, instructor_id: int, period_id: int | None = None) -> InstructorInfo: ...

    def update(self, instructor_id: int, patch: dict[str, Any]) -> InstructorInfo: ...

    def create(self, name: str) -> InstructorInfo: ...

    def find_by_name(self, name: str) -> InstructorInfo | None: ...

    def list_with_classes(self, period_id: int) -> list[InstructorInfo]: ...

    def save_category(self, assignment: CategoryAssignment) -> CategoryAssignment: ...

    def disciplines(self) -> Sequence[DisciplineInfo]: ...


@runtime_checkable
class PaymentStore(Protocol):
    def get(self, instructor_id: int, period_id: int) -> PaymentRecord | None: ...

    def list(
        self, period_id: int, page: int = 1, page_size: int = 50
    ) -> list[PaymentRecord]: ...

    def create(self, record: PaymentRecord) -> PaymentRecord: ...

    def upsert_computed(self, record: PaymentRecord) -> PaymentRecord: ...

    def update(self, payment_id: int, patch: dict[str, Any]) -> PaymentRecord: ...

    def delete_zero_pending(self, period_id: int) -> int: ...
