"""
ORM models for reference data: disciplines and instructors.

Contract:
    ``DisciplineModel`` and ``InstructorModel`` are the identity anchors every
    class, penalty, cover and payment row points at.  Names are unique; the
    instructor name is the identity used by spreadsheet ingestion.

Architecture: payroll_kernel/models.  Imports from payroll_kernel.db.base only.

Invariants enforced:
    - ``instructors.name`` and ``disciplines.name`` are UNIQUE.
    - Instructor names never contain the pairing token; this is checked by
      InstructorService before insert, not by the database.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Table
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_kernel.db.base import Base, TrackedBase

if TYPE_CHECKING:
    from payroll_kernel.domain.types import DisciplineInfo


instructor_disciplines = Table(
    "instructor_disciplines",
    Base.metadata,
    Column("instructor_id", ForeignKey("instructors.id", ondelete="CASCADE"), primary_key=True),
    Column("discipline_id", ForeignKey("disciplines.id", ondelete="CASCADE"), primary_key=True),
)


class DisciplineModel(TrackedBase):
    """A class format (e.g. cycling, barre) with its own pay formula."""

    __tablename__ = "disciplines"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    shows_category: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def to_dto(self) -> DisciplineInfo:
        from payroll_kernel.domain.types import DisciplineInfo

        return DisciplineInfo(
            id=self.id,
            name=self.name,
            shows_category=self.shows_category,
            active=self.active,
        )

    @classmethod
    def from_dto(cls, dto: DisciplineInfo) -> DisciplineModel:
        return cls(
            id=dto.id or None,
            name=dto.name,
            shows_category=dto.shows_category,
            active=dto.active,
        )


class InstructorModel(TrackedBase):
    """An instructor; one row per real person, never per pairing."""

    __tablename__ = "instructors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    event_participation: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False,
    )
    guideline_compliance: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False,
    )

    disciplines: Mapped[list[DisciplineModel]] = relationship(
        DisciplineModel,
        secondary=instructor_disciplines,
        lazy="selectin",
    )
