"""
Service layer for instructors and disciplines.

InstructorService implements the InstructorStore protocol: it assembles the
period-scoped ``InstructorInfo`` DTO (categories, penalties, covers, extra
pay) the payment assembler consumes, and owns instructor creation, where the
pairing-token and uniqueness rules are enforced.

All public methods return frozen DTOs, not ORM entities.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy import func, select

from payroll_kernel.domain.names import (
    DEFAULT_PAIRING_TOKENS,
    normalize_name,
    validate_instructor_name,
)
from payroll_kernel.domain.types import (
    CategoryAssignment,
    Cover,
    DisciplineInfo,
    ExtraPay,
    InstructorInfo,
    Penalty,
)
from payroll_kernel.exceptions import (
    DisciplineNotFoundError,
    DuplicateInstructorError,
    InstructorNotFoundError,
)
from payroll_kernel.logging_config import get_logger
from payroll_kernel.models.catalog import DisciplineModel, InstructorModel
from payroll_kernel.models.instructor_data import (
    CategoryModel,
    CoverModel,
    ExtraPayModel,
    PenaltyModel,
)
from payroll_kernel.models.schedule import ClassModel
from payroll_kernel.services.base import BaseService

logger = get_logger("services.instructors")

_UPDATABLE_FIELDS = frozenset({
    "name",
    "active",
    "event_participation",
    "guideline_compliance",
    "discipline_ids",
})


class DisciplineService(BaseService):
    """Discipline lookup and creation by name."""

    def list(self) -> list[DisciplineInfo]:
        stmt = select(DisciplineModel).order_by(DisciplineModel.id)
        return [m.to_dto() for m in self.session.execute(stmt).scalars()]

    def get(self, discipline_id: int) -> DisciplineInfo:
        model = self.session.get(DisciplineModel, discipline_id)
        if model is None:
            raise DisciplineNotFoundError(discipline_id)
        return model.to_dto()

    def find_by_name(self, name: str) -> DisciplineInfo | None:
        stmt = select(DisciplineModel).where(
            func.lower(DisciplineModel.name) == normalize_name(name).lower()
        )
        model = self.session.execute(stmt).scalar_one_or_none()
        return model.to_dto() if model else None

    def get_or_create(self, name: str, shows_category: bool = True) -> DisciplineInfo:
        existing = self.find_by_name(name)
        if existing is not None:
            return existing
        model = DisciplineModel(name=normalize_name(name), shows_category=shows_category)
        self.session.add(model)
        self.session.flush()
        logger.info("discipline_created", extra={"discipline_id": model.id, "discipline_name": model.name})
        return model.to_dto()


class InstructorService(BaseService):
    """
    InstructorStore over SQLAlchemy.

    ``pairing_tokens`` are the reserved join tokens; a name containing one
    can never become an instructor.
    """

    def __init__(self, session, pairing_tokens: Iterable[str] = DEFAULT_PAIRING_TOKENS):
        super().__init__(session)
        self.pairing_tokens = tuple(pairing_tokens)

    # -- internal -------------------------------------------------------------

    def _get_model(self, instructor_id: int) -> InstructorModel:
        model = self.session.get(InstructorModel, instructor_id)
        if model is None:
            raise InstructorNotFoundError(instructor_id)
        return model

    def _scoped(self, model_cls: Any, instructor_id: int, period_id: int | None) -> list[Any]:
        stmt = select(model_cls).where(model_cls.instructor_id == instructor_id)
        if period_id is not None:
            stmt = stmt.where(model_cls.period_id == period_id)
        return list(self.session.execute(stmt.order_by(model_cls.id)).scalars())

    def _to_dto(self, model: InstructorModel, period_id: int | None) -> InstructorInfo:
        return InstructorInfo(
            id=model.id,
            name=model.name,
            active=model.active,
            discipline_ids=tuple(sorted(d.id for d in model.disciplines)),
            categories=tuple(
                c.to_dto() for c in self._scoped(CategoryModel, model.id, period_id)
            ),
            penalties=tuple(
                p.to_dto() for p in self._scoped(PenaltyModel, model.id, period_id)
            ),
            covers=tuple(
                c.to_dto() for c in self._scoped(CoverModel, model.id, period_id)
            ),
            extras=tuple(
                e.to_dto() for e in self._scoped(ExtraPayModel, model.id, period_id)
            ),
            event_participation=model.event_participation,
            guideline_compliance=model.guideline_compliance,
        )

    # -- InstructorStore ------------------------------------------------------

    def get(self, instructor_id: int, period_id: int | None = None) -> InstructorInfo:
        """
        Get an instructor with data scoped to ``period_id`` (all periods if None).

        Raises:
            InstructorNotFoundError: If the instructor doesn't exist.
        """
        return self._to_dto(self._get_model(instructor_id), period_id)

    def find_by_name(self, name: str) -> InstructorInfo | None:
        stmt = select(InstructorModel).where(
            func.lower(InstructorModel.name) == normalize_name(name).lower()
        )
        model = self.session.execute(stmt).scalar_one_or_none()
        return self._to_dto(model, None) if model else None

    def create(self, name: str) -> InstructorInfo:
        """
        Create an instructor from a raw name.

        The name is normalized (``"juan perez"`` -> ``"Juan Perez"``).

        Raises:
            InvalidInstructorNameError: If the name contains the pairing token.
            DuplicateInstructorError: If the normalized name already exists.
        """
        normalized = validate_instructor_name(name, self.pairing_tokens)
        if self.find_by_name(normalized) is not None:
            raise DuplicateInstructorError(normalized)
        model = InstructorModel(name=normalized)
        self.session.add(model)
        self.session.flush()
        logger.info("instructor_created", extra={"instructor_id": model.id, "instructor_name": normalized})
        return self._to_dto(model, None)

    def get_or_create(self, name: str) -> tuple[InstructorInfo, bool]:
        """Return ``(instructor, created)`` for a single-person name."""
        normalized = validate_instructor_name(name, self.pairing_tokens)
        existing = self.find_by_name(normalized)
        if existing is not None:
            return existing, False
        return self.create(normalized), True

    def update(self, instructor_id: int, patch: dict[str, Any]) -> InstructorInfo:
        """
        Apply a partial update.

        Raises:
            InstructorNotFoundError: Unknown instructor.
            ValueError: ``patch`` contains a field that cannot be updated.
            InvalidInstructorNameError / DuplicateInstructorError: on rename.
        """
        unknown = set(patch) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update instructor fields: {sorted(unknown)}")
        model = self._get_model(instructor_id)

        if "name" in patch:
            normalized = validate_instructor_name(patch["name"], self.pairing_tokens)
            clash = self.find_by_name(normalized)
            if clash is not None and clash.id != instructor_id:
                raise DuplicateInstructorError(normalized)
            model.name = normalized
        for field in ("active", "event_participation", "guideline_compliance"):
            if field in patch:
                setattr(model, field, bool(patch[field]))
        if "discipline_ids" in patch:
            model.disciplines = [
                self.session.get(DisciplineModel, d) or _raise_discipline(d)
                for d in patch["discipline_ids"]
            ]
        self.session.flush()
        return self._to_dto(model, None)

    def link_discipline(self, instructor_id: int, discipline_id: int) -> None:
        model = self._get_model(instructor_id)
        if any(d.id == discipline_id for d in model.disciplines):
            return
        discipline = self.session.get(DisciplineModel, discipline_id)
        if discipline is None:
            raise DisciplineNotFoundError(discipline_id)
        model.disciplines.append(discipline)
        self.session.flush()

    def list_with_classes(self, period_id: int) -> list[InstructorInfo]:
        """Instructors with at least one class in the period, by id."""
        ids = select(ClassModel.instructor_id).where(ClassModel.period_id == period_id)
        stmt = (
            select(InstructorModel)
            .where(InstructorModel.id.in_(ids))
            .order_by(InstructorModel.id)
        )
        return [self._to_dto(m, period_id) for m in self.session.execute(stmt).scalars()]

    def save_category(self, assignment: CategoryAssignment) -> CategoryAssignment:
        """Upsert a category; an existing manual category is never overwritten
        by an automatic one.  Returns the stored assignment."""
        stmt = select(CategoryModel).where(
            CategoryModel.instructor_id == assignment.instructor_id,
            CategoryModel.discipline_id == assignment.discipline_id,
            CategoryModel.period_id == assignment.period_id,
        )
        existing = self.session.execute(stmt).scalar_one_or_none()
        if existing is None:
            self.session.add(CategoryModel.from_dto(assignment))
            self.session.flush()
            return assignment
        if existing.manual and not assignment.manual:
            return existing.to_dto()
        existing.tier = assignment.tier.value
        existing.metrics = assignment.metrics.to_dict() if assignment.metrics else None
        existing.manual = assignment.manual
        self.session.flush()
        return existing.to_dto()

    def disciplines(self) -> list[DisciplineInfo]:
        return DisciplineService(self.session).list()

    # -- period data ----------------------------------------------------------

    def add_penalty(self, instructor_id: int, penalty: Penalty) -> Penalty:
        self._get_model(instructor_id)
        model = PenaltyModel.from_dto(penalty, instructor_id)
        self.session.add(model)
        self.session.flush()
        return model.to_dto()

    def add_cover(self, instructor_id: int, cover: Cover) -> Cover:
        self._get_model(instructor_id)
        model = CoverModel.from_dto(cover, instructor_id)
        self.session.add(model)
        self.session.flush()
        return model.to_dto()

    def add_extra_pay(self, instructor_id: int, extra: ExtraPay) -> ExtraPay:
        self._get_model(instructor_id)
        model = ExtraPayModel.from_dto(extra, instructor_id)
        self.session.add(model)
        self.session.flush()
        return model.to_dto()


def _raise_discipline(discipline_id: int) -> DisciplineModel:
    raise DisciplineNotFoundError(discipline_id)
