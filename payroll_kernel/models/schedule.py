"""
ORM model for ingested classes.

Contract:
    ``ClassModel`` persists one taught class per row.  Rows are created by
    spreadsheet ingestion and are otherwise read-only; a re-import deletes
    every row of the (period, week) first.

Invariants enforced:
    - Paired classes are stored per instructor with ``is_versus`` set and the
      per-instructor share of the counts; ``versus_count`` records how many
      instructors shared the class.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from payroll_kernel.db.base import TrackedBase
from payroll_kernel.db.types import UTCDateTime

if TYPE_CHECKING:
    from payroll_kernel.domain.types import ClassRecord


class ClassModel(TrackedBase):
    __tablename__ = "classes"

    __table_args__ = (
        Index("ix_classes_period_week", "period_id", "week"),
        Index("ix_classes_period_instructor", "period_id", "instructor_id"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    instructor_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("instructors.id"), nullable=False,
    )
    discipline_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("disciplines.id"), nullable=False,
    )
    period_id: Mapped[int] = mapped_column(Integer, nullable=False)
    week: Mapped[int] = mapped_column(Integer, nullable=False)
    starts_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    venue: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    city: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    country: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    room: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    reservations: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    waitlist: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    courtesy_seats: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    paid_reservations: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_versus: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    versus_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    full_house: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    special_text: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self) -> ClassRecord:
        from payroll_kernel.domain.types import ClassRecord

        return ClassRecord(
            id=self.id,
            instructor_id=self.instructor_id,
            discipline_id=self.discipline_id,
            period_id=self.period_id,
            week=self.week,
            starts_at=self.starts_at,
            venue=self.venue,
            city=self.city,
            country=self.country,
            room=self.room,
            reservations=self.reservations,
            waitlist=self.waitlist,
            courtesy_seats=self.courtesy_seats,
            capacity=self.capacity,
            paid_reservations=self.paid_reservations,
            is_versus=self.is_versus,
            versus_count=self.versus_count,
            full_house=self.full_house,
            special_text=self.special_text,
        )

    @classmethod
    def from_dto(cls, dto: ClassRecord) -> ClassModel:
        return cls(
            id=dto.id,
            instructor_id=dto.instructor_id,
            discipline_id=dto.discipline_id,
            period_id=dto.period_id,
            week=dto.week,
            starts_at=dto.starts_at,
            venue=dto.venue,
            city=dto.city,
            country=dto.country,
            room=dto.room,
            reservations=dto.reservations,
            waitlist=dto.waitlist,
            courtesy_seats=dto.courtesy_seats,
            capacity=dto.capacity,
            paid_reservations=dto.paid_reservations,
            is_versus=dto.is_versus,
            versus_count=dto.versus_count,
            full_house=dto.full_house,
            special_text=dto.special_text,
        )
