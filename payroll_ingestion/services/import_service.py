"""
Import service: read -> normalize -> replace weeks -> create classes.

Orchestrates source adapters, row normalization and the kernel services.
Uses structured logging (LogContext, get_logger("ingestion.*")).

Flow of ``import_rows``:
    1. Normalize every row; unreadable rows become ``RowError``s.
    2. Drop rows whose sheet week is not mapped to a period week.
    3. Delete the period's existing classes for every target week.
    4. Per row, in its own SAVEPOINT: resolve (or create) the discipline,
       split the instructor field into shares, resolve (or create) each
       instructor and create one ClassRecord per share.  A failing row is
       rolled back, recorded and skipped.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any
from uuid import uuid4

from sqlalchemy.orm import Session

from payroll_config.schema import PayrollSettings
from payroll_kernel.domain.names import DEFAULT_PAIRING_TOKENS
from payroll_kernel.domain.types import ClassRecord, DisciplineInfo, InstructorInfo
from payroll_kernel.exceptions import (
    DisciplineNotFoundError,
    InstructorNotFoundError,
    InvalidInstructorNameError,
    PayrollError,
)
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_kernel.services import ClassService, DisciplineService, InstructorService
from payroll_engines.pairing import split_paired_class

from payroll_ingestion.adapters.base import SourceAdapter
from payroll_ingestion.adapters.csv_adapter import CsvSourceAdapter
from payroll_ingestion.adapters.xlsx_adapter import XlsxSourceAdapter
from payroll_ingestion.domain.normalize import is_blank, normalize_row
from payroll_ingestion.domain.types import (
    ImportConfig,
    ImportReport,
    RowError,
    ScheduleRow,
)

logger = get_logger("ingestion.import_service")

# Disciplines whose tier is computed but not shown to instructors.
NO_CATEGORY_DISCIPLINES = frozenset({"barre", "yoga", "ejercito"})


def _default_adapters() -> dict[str, SourceAdapter]:
    return {
        "csv": CsvSourceAdapter(),
        "xlsx": XlsxSourceAdapter(),
    }


class _Counters:
    def __init__(self) -> None:
        self.classes = 0
        self.instructors = 0
        self.disciplines = 0
        self.rows = 0

    def add(self, other: _Counters) -> None:
        self.classes += other.classes
        self.instructors += other.instructors
        self.disciplines += other.disciplines
        self.rows += 1


class ImportService:
    """Loads schedule exports into ClassRecords for one period."""

    def __init__(
        self,
        session: Session,
        settings: PayrollSettings | None = None,
        adapters: dict[str, SourceAdapter] | None = None,
    ):
        self._session = session
        tokens = settings.pairing_tokens if settings else DEFAULT_PAIRING_TOKENS
        self._tokens = tuple(tokens)
        self._adapters = adapters if adapters is not None else _default_adapters()
        self._classes = ClassService(session)
        self._instructors = InstructorService(session, self._tokens)
        self._disciplines = DisciplineService(session)

    # -------------------------------------------------------------------------
    # Source files
    # -------------------------------------------------------------------------

    def read_rows(
        self,
        source_path: Path,
        source_format: str | None = None,
        options: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Read all raw rows; the format defaults to the file suffix."""
        fmt = (source_format or source_path.suffix.lstrip(".")).lower()
        adapter = self._adapters.get(fmt)
        if not adapter:
            raise ValueError(f"No adapter for source format {fmt!r}")
        return list(adapter.read(source_path, options or {}))

    def import_file(
        self,
        source_path: Path,
        config: ImportConfig,
        source_format: str | None = None,
        options: dict[str, Any] | None = None,
    ) -> ImportReport:
        rows = self.read_rows(source_path, source_format, options)
        logger.info(
            "schedule_file_read",
            extra={"source_filename": source_path.name, "rows": len(rows)},
        )
        return self.import_rows(rows, config)

    # -------------------------------------------------------------------------
    # Rows
    # -------------------------------------------------------------------------

    def import_rows(
        self, rows: Iterable[Mapping[str, Any]], config: ImportConfig
    ) -> ImportReport:
        """Import raw rows into ``config.period_id``.  Never commits."""
        with LogContext.bind(correlation_id=str(uuid4()), period_id=str(config.period_id)):
            errors: list[RowError] = []
            normalized: list[ScheduleRow] = []
            total = 0
            for index, raw in enumerate(rows, start=1):
                if is_blank(raw):
                    continue
                total += 1
                try:
                    normalized.append(normalize_row(raw, index))
                except PayrollError as exc:
                    errors.append(RowError(index, str(exc), exc.code))

            mapped = [r for r in normalized if config.period_week(r.week) is not None]
            skipped = len(normalized) - len(mapped)

            deleted = 0
            for week in config.target_weeks({r.week for r in normalized}):
                deleted += self._classes.delete_week(config.period_id, week)

            counters = _Counters()
            for row in mapped:
                savepoint = self._session.begin_nested()
                row_counts = _Counters()
                try:
                    self._import_row(row, config, row_counts)
                except Exception as exc:
                    savepoint.rollback()
                    logger.warning(
                        "schedule_row_failed",
                        extra={"row": row.row, "error": str(exc), "error_type": type(exc).__name__},
                    )
                    errors.append(RowError(row.row, str(exc), getattr(exc, "code", None)))
                    continue
                savepoint.commit()
                counters.add(row_counts)

            report = ImportReport(
                processed_count=counters.rows,
                error_count=len(errors),
                errors=tuple(errors),
                total_rows=total,
                skipped_rows=skipped,
                classes_created=counters.classes,
                classes_deleted=deleted,
                instructors_created=counters.instructors,
                disciplines_created=counters.disciplines,
            )
            logger.info(
                "schedule_import_completed",
                extra={
                    "total_rows": total,
                    "imported_rows": report.processed_count,
                    "errors": report.error_count,
                    "skipped_rows": skipped,
                    "classes_created": counters.classes,
                    "classes_deleted": deleted,
                    "instructors_created": counters.instructors,
                },
            )
            return report

    def _import_row(self, row: ScheduleRow, config: ImportConfig, counters: _Counters) -> None:
        week = config.period_week(row.week)
        discipline = self._resolve_discipline(config.discipline_name(row.discipline), config, counters)
        shares = split_paired_class(
            row.instructor,
            reservations=row.reservations,
            capacity=row.capacity,
            paid_reservations=row.paid_reservations,
            keep=config.keep_for(row.instructor),
            tokens=self._tokens,
        )
        if not shares:
            raise InvalidInstructorNameError(row.instructor, "keeps no instructor")

        base_id = row.class_id or f"p{config.period_id}-w{week}-r{row.row}"
        for share in shares:
            instructor = self._resolve_instructor(share.instructor_name, config, counters)
            self._instructors.link_discipline(instructor.id, discipline.id)
            self._classes.create(
                ClassRecord(
                    id=f"{base_id}{share.id_suffix}",
                    instructor_id=instructor.id,
                    discipline_id=discipline.id,
                    period_id=config.period_id,
                    week=week,
                    starts_at=row.starts_at,
                    venue=row.venue,
                    city=row.city,
                    country=row.country,
                    room=row.room,
                    reservations=share.reservations,
                    waitlist=row.waitlist,
                    courtesy_seats=row.courtesy_seats,
                    capacity=share.capacity,
                    paid_reservations=share.paid_reservations,
                    is_versus=share.is_versus,
                    versus_count=share.versus_count,
                    special_text=row.special_text,
                )
            )
            counters.classes += 1

    def _resolve_discipline(
        self, name: str, config: ImportConfig, counters: _Counters
    ) -> DisciplineInfo:
        existing = self._disciplines.find_by_name(name)
        if existing is not None:
            return existing
        if not config.create_disciplines:
            raise DisciplineNotFoundError(name)
        counters.disciplines += 1
        return self._disciplines.get_or_create(
            name, shows_category=name.lower() not in NO_CATEGORY_DISCIPLINES
        )

    def _resolve_instructor(
        self, name: str, config: ImportConfig, counters: _Counters
    ) -> InstructorInfo:
        existing = self._instructors.find_by_name(name)
        if existing is not None:
            return existing
        if not config.create_instructors:
            raise InstructorNotFoundError(name)
        counters.instructors += 1
        return self._instructors.create(name)
