"""
payroll_ingestion.domain.types -- Pure frozen dataclasses for schedule import.

ZERO I/O.  Imports only from payroll_kernel.domain.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime


def _field_key(raw: str) -> str:
    return " ".join(raw.split()).lower()


@dataclass(frozen=True)
class ImportConfig:
    """How one spreadsheet is loaded into a period.

    ``week_mapping`` maps the sheet's week numbers to period weeks; rows of
    unmapped weeks are skipped.  An empty mapping imports every week as-is.
    ``keep_flags`` holds per-name flags for paired instructor fields, keyed
    by the raw field (case and spacing are ignored).
    """

    period_id: int
    week_mapping: Mapping[int, int] = field(default_factory=dict)
    discipline_mapping: Mapping[str, str] = field(default_factory=dict)
    keep_flags: Mapping[str, tuple[bool, ...]] = field(default_factory=dict)
    create_instructors: bool = True
    create_disciplines: bool = True

    def period_week(self, sheet_week: int) -> int | None:
        if not self.week_mapping:
            return sheet_week
        return self.week_mapping.get(sheet_week)

    def target_weeks(self, sheet_weeks: set[int]) -> tuple[int, ...]:
        if not self.week_mapping:
            return tuple(sorted(sheet_weeks))
        return tuple(sorted(set(self.week_mapping.values())))

    def keep_for(self, raw_instructor: str) -> tuple[bool, ...] | None:
        wanted = _field_key(raw_instructor)
        for key, flags in self.keep_flags.items():
            if _field_key(key) == wanted:
                return tuple(flags)
        return None

    def discipline_name(self, sheet_name: str) -> str:
        wanted = _field_key(sheet_name)
        for key, target in self.discipline_mapping.items():
            if _field_key(key) == wanted:
                return target
        return sheet_name


@dataclass(frozen=True)
class ScheduleRow:
    """One normalized spreadsheet row, before instructor/discipline resolution."""

    row: int
    instructor: str
    discipline: str
    starts_at: datetime
    week: int
    venue: str = ""
    room: str = ""
    city: str = ""
    country: str = ""
    reservations: int = 0
    waitlist: int = 0
    courtesy_seats: int = 0
    capacity: int = 0
    paid_reservations: int = 0
    class_id: str | None = None
    special_text: str | None = None


@dataclass(frozen=True)
class RowError:
    """A spreadsheet row that could not be imported (1-indexed data row)."""

    row: int
    message: str
    code: str | None = None


@dataclass(frozen=True)
class ImportReport:
    """Outcome of one import: counts plus the per-row errors."""

    processed_count: int
    error_count: int
    errors: tuple[RowError, ...] = ()
    total_rows: int = 0
    skipped_rows: int = 0
    classes_created: int = 0
    classes_deleted: int = 0
    instructors_created: int = 0
    disciplines_created: int = 0
