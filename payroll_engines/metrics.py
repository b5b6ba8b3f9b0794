"""
Class metrics calculator.

Pure functions with deterministic behavior. No I/O.

Derives the aggregates an instructor is categorized on from their classes
in one period, for one discipline:

    occupancy           100 * sum(reservations) / sum(capacity), 0 if no capacity
    classes_per_week    count / weeks_per_period
    venue_count         distinct venues in the capital city
    back_to_back_count  same-day classes starting exactly one hour apart,
                        reference discipline only, per week
    off_peak_count      classes at configured off-peak (venue, HH:MM) slots,
                        per week

Usage:
    from payroll_engines.metrics import compute_metrics

    metrics = compute_metrics(
        classes=instructor_classes,
        discipline_id=3,
        policy=policy,
        is_reference_discipline=True,
    )
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal

from payroll_kernel.domain.types import ClassRecord, InstructorMetrics
from payroll_kernel.logging_config import get_logger
from payroll_engines.policy import OffPeakWindow, PayrollPolicy
from payroll_engines.tracer import traced_engine

logger = get_logger("engines.metrics")

HUNDRED = Decimal("100")
_BACK_TO_BACK_GAP_MINUTES = 60


def occupancy_percent(classes: Iterable[ClassRecord]) -> Decimal:
    """100 * total reservations / total capacity; 0 when capacity is 0."""
    reservations = 0
    capacity = 0
    for c in classes:
        reservations += c.reservations
        capacity += c.capacity
    if capacity == 0:
        return Decimal("0")
    return HUNDRED * Decimal(reservations) / Decimal(capacity)


def count_back_to_back(classes: Iterable[ClassRecord]) -> int:
    """Adjacent same-day pairs whose start times are exactly one hour apart."""
    by_day: dict[date, list[int]] = defaultdict(list)
    for c in classes:
        by_day[c.starts_at.date()].append(c.starts_at.hour * 60 + c.starts_at.minute)

    total = 0
    for starts in by_day.values():
        starts.sort()
        total += sum(
            1
            for earlier, later in zip(starts, starts[1:])
            if later - earlier == _BACK_TO_BACK_GAP_MINUTES
        )
    return total


def is_off_peak(
    venue: str, time_of_day: str, schedule: Sequence[OffPeakWindow]
) -> bool:
    return any(window.matches(venue, time_of_day) for window in schedule)


def count_off_peak(
    classes: Iterable[ClassRecord], schedule: Sequence[OffPeakWindow]
) -> int:
    return sum(1 for c in classes if is_off_peak(c.venue or "", c.time_of_day, schedule))


def count_capital_venues(classes: Iterable[ClassRecord], capital_city: str) -> int:
    capital = capital_city.strip().lower()
    return len({
        c.venue.strip()
        for c in classes
        if c.venue and c.venue.strip() and c.city.strip().lower() == capital
    })


@traced_engine(
    "class_metrics",
    "1.0",
    fingerprint_fields=("discipline_id", "is_reference_discipline", "classes"),
)
def compute_metrics(
    classes: Sequence[ClassRecord],
    discipline_id: int,
    *,
    policy: PayrollPolicy,
    is_reference_discipline: bool = False,
    event_participation: bool = False,
    guideline_compliance: bool = True,
) -> InstructorMetrics:
    """
    Aggregate one instructor's classes of ``discipline_id`` in a period.

    ``classes`` may contain other disciplines; they are ignored.
    Back-to-back bookings only count when ``is_reference_discipline``.
    """
    own = [c for c in classes if c.discipline_id == discipline_id]
    weeks = Decimal(policy.weeks_per_period)

    back_to_back = count_back_to_back(own) if is_reference_discipline else 0
    off_peak = count_off_peak(own, policy.off_peak_schedule)

    metrics = InstructorMetrics(
        total_classes=len(own),
        occupancy=occupancy_percent(own),
        classes_per_week=Decimal(len(own)) / weeks,
        venue_count=count_capital_venues(own, policy.capital_city),
        back_to_back_count=Decimal(back_to_back) / weeks,
        off_peak_count=Decimal(off_peak) / weeks,
        event_participation=event_participation,
        guideline_compliance=guideline_compliance,
    )

    logger.debug(
        "metrics_computed",
        extra={
            "discipline_id": discipline_id,
            "total_classes": metrics.total_classes,
            "occupancy": str(metrics.occupancy),
            "venue_count": metrics.venue_count,
            "back_to_back": back_to_back,
            "off_peak": off_peak,
        },
    )
    return metrics
