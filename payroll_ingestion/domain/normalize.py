"""
Row normalization for schedule exports.

Pure functions, zero I/O.  Turns a raw adapter row (header -> cell) into a
``ScheduleRow``:

    - headers are matched case-insensitively against ``COLUMN_ALIASES``
      (the Spanish export headers and plain English names);
    - discipline names are capitalized per word and instructor fields
      have their whitespace collapsed;
    - counts are parsed by dropping every character except digits, ``.``
      and ``-`` (``"1,200 pax"`` -> 1200); a ``.`` followed by exactly three
      digits is a thousands separator (``"1.200"`` -> 1200); unparseable
      counts become 0;
    - the date and time cells are combined into one UTC ``starts_at``.  A
      missing or unreadable date or time rejects the row.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import UTC, date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any

from payroll_kernel.domain.names import normalize_name
from payroll_kernel.exceptions import InvalidClassRecordError
from payroll_ingestion.domain.types import ScheduleRow

COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "class_id": ("ID_clase", "ID clase", "class_id"),
    "country": ("País", "Pais", "country"),
    "city": ("Ciudad", "city"),
    "discipline": ("Disciplina", "discipline"),
    "venue": ("Estudio", "venue"),
    "instructor": ("Instructor", "instructor"),
    "room": ("Salon", "Salón", "room"),
    "date": ("Día", "Dia", "date"),
    "time": ("Hora", "time"),
    "week": ("Semana", "week"),
    "reservations": ("Reservas Totales", "reservations"),
    "waitlist": ("Listas de Espera", "waitlist"),
    "courtesy_seats": ("Cortesias", "Cortesías", "courtesy_seats"),
    "capacity": ("Lugares", "capacity"),
    "paid_reservations": ("Reservas Pagadas", "paid_reservations"),
    "special_text": ("Texto espcial", "Texto especial", "special_text"),
}

_COUNT_FIELDS = (
    "reservations",
    "waitlist",
    "courtesy_seats",
    "capacity",
    "paid_reservations",
)

_NON_NUMERIC = re.compile(r"[^\d.-]")
_THOUSANDS_DOT = re.compile(r"\.(?=\d{3}(?!\d))")


def canonical_row(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Re-key a raw row by canonical field name; unknown columns are dropped."""
    by_header = {str(k).strip().lower(): v for k, v in raw.items() if k is not None}
    row: dict[str, Any] = {}
    for name, aliases in COLUMN_ALIASES.items():
        for alias in aliases:
            if alias.lower() in by_header:
                row[name] = by_header[alias.lower()]
                break
    return row


def is_blank(raw: Mapping[str, Any]) -> bool:
    return all(v is None or str(v).strip() == "" for v in raw.values())


def parse_count(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    cleaned = _THOUSANDS_DOT.sub("", _NON_NUMERIC.sub("", str(value)))
    try:
        return int(Decimal(cleaned))
    except InvalidOperation:
        return 0


def parse_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    parts = text.split("/")
    if len(parts) == 3:
        try:
            day, month, year = (int(p) for p in parts)
            return date(year, month, day)
        except ValueError:
            return None
    return None


def parse_time(value: Any) -> time | None:
    """Start time to the minute, or None when the cell holds no readable time."""
    if isinstance(value, datetime):
        return value.time().replace(second=0, microsecond=0)
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    text = str(value or "").strip()
    if ":" in text:
        hours, _, rest = text.partition(":")
        try:
            return time(int(hours), int(rest[:2]))
        except ValueError:
            return None
    return None


def _text(row: Mapping[str, Any], name: str) -> str:
    value = row.get(name)
    return "" if value is None else str(value).strip()


def normalize_row(raw: Mapping[str, Any], row_number: int) -> ScheduleRow:
    """
    Normalize one raw row.

    Raises:
        InvalidClassRecordError: instructor, discipline, date or time
            missing or unreadable.
    """
    row = canonical_row(raw)
    ref = f"row:{row_number}"

    instructor = " ".join(_text(row, "instructor").split())
    if not instructor:
        raise InvalidClassRecordError(ref, "instructor", "is required")
    discipline = normalize_name(_text(row, "discipline"))
    if not discipline:
        raise InvalidClassRecordError(ref, "discipline", "is required")
    day = parse_date(row.get("date"))
    if day is None:
        raise InvalidClassRecordError(ref, "date", f"is not a date: {row.get('date')!r}")

    start = parse_time(row.get("time"))
    if start is None:
        raise InvalidClassRecordError(ref, "time", f"is not a time: {row.get('time')!r}")

    starts_at = datetime.combine(day, start, tzinfo=UTC)
    class_id = _text(row, "class_id")
    if class_id.endswith(".0") and class_id[:-2].isdigit():
        class_id = class_id[:-2]

    return ScheduleRow(
        row=row_number,
        instructor=instructor,
        discipline=discipline,
        starts_at=starts_at,
        week=parse_count(row.get("week")),
        venue=_text(row, "venue"),
        room=_text(row, "room"),
        city=_text(row, "city"),
        country=_text(row, "country"),
        class_id=class_id or None,
        special_text=_text(row, "special_text") or None,
        **{name: parse_count(row.get(name)) for name in _COUNT_FIELDS},
    )
