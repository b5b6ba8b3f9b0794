"""
Tests for the class metrics calculator.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from hypothesis import given
from hypothesis import strategies as st

from payroll_kernel.domain.types import ClassRecord
from payroll_engines.metrics import (
    compute_metrics,
    count_back_to_back,
    count_capital_venues,
    count_off_peak,
    occupancy_percent,
)
from payroll_engines.policy import DEFAULT_OFF_PEAK_SCHEDULE, OffPeakWindow, PayrollPolicy

MONDAY = datetime(2024, 3, 4, tzinfo=timezone.utc)


def _class(
    class_id: str,
    hour: int = 9,
    minute: int = 0,
    day: int = 0,
    venue: str = "Reducto",
    city: str = "Lima",
    reservations: int = 10,
    capacity: int = 20,
    discipline_id: int = 1,
) -> ClassRecord:
    return ClassRecord(
        id=class_id,
        instructor_id=1,
        discipline_id=discipline_id,
        period_id=1,
        week=1,
        starts_at=MONDAY + timedelta(days=day, hours=hour, minutes=minute),
        venue=venue,
        city=city,
        reservations=reservations,
        capacity=capacity,
    )


class TestOccupancy:

    def test_weighted_by_capacity(self):
        classes = [_class("a", reservations=10, capacity=20), _class("b", reservations=30, capacity=30)]

        assert occupancy_percent(classes) == Decimal("80")

    def test_zero_capacity_is_zero(self):
        assert occupancy_percent([_class("a", reservations=5, capacity=0)]) == Decimal("0")

    def test_no_classes(self):
        assert occupancy_percent([]) == Decimal("0")

    @given(
        st.lists(
            st.tuples(st.integers(0, 60), st.integers(1, 60)).map(
                lambda t: (min(t[0], t[1]), t[1])
            ),
            min_size=1,
            max_size=20,
        )
    )
    def test_bounded_when_reservations_within_capacity(self, pairs):
        classes = [
            _class(f"c{i}", reservations=r, capacity=c) for i, (r, c) in enumerate(pairs)
        ]

        assert Decimal("0") <= occupancy_percent(classes) <= Decimal("100")


class TestBackToBack:

    def test_one_hour_apart_counts(self):
        classes = [_class("a", hour=8), _class("b", hour=9), _class("c", hour=10)]

        assert count_back_to_back(classes) == 2

    def test_other_gaps_do_not_count(self):
        classes = [_class("a", hour=8), _class("b", hour=9, minute=30), _class("c", hour=12)]

        assert count_back_to_back(classes) == 0

    def test_different_days_do_not_pair(self):
        classes = [_class("a", hour=8, day=0), _class("b", hour=9, day=1)]

        assert count_back_to_back(classes) == 0

    def test_order_independent(self):
        classes = [_class("b", hour=9), _class("a", hour=8)]

        assert count_back_to_back(classes) == 1


class TestOffPeakAndVenues:

    def test_off_peak_matches_venue_substring_and_time(self):
        classes = [
            _class("a", hour=8, venue="Siclo Reducto"),
            _class("b", hour=10, venue="Siclo Reducto"),
            _class("c", hour=9, minute=15, venue="Estancia"),
        ]

        assert count_off_peak(classes, DEFAULT_OFF_PEAK_SCHEDULE) == 2

    def test_custom_schedule(self):
        schedule = (OffPeakWindow("Miraflores", frozenset({"07:00"})),)

        assert count_off_peak([_class("a", hour=7, venue="Miraflores")], schedule) == 1

    def test_capital_venues_only(self):
        classes = [
            _class("a", venue="Reducto"),
            _class("b", venue="Reducto"),
            _class("c", venue="San Isidro"),
            _class("d", venue="Arequipa Centro", city="Arequipa"),
        ]

        assert count_capital_venues(classes, "lima") == 2


class TestComputeMetrics:

    def test_aggregates_per_week(self, policy):
        classes = [
            _class("a", hour=8, reservations=20, capacity=20),
            _class("b", hour=9, reservations=10, capacity=20),
            _class("c", hour=13, day=1, venue="San Isidro", reservations=0, capacity=20),
            _class("d", hour=18, day=2, reservations=10, capacity=20),
        ]

        metrics = compute_metrics(
            classes=classes, discipline_id=1, policy=policy, is_reference_discipline=True
        )

        assert metrics.total_classes == 4
        assert metrics.occupancy == Decimal("50")
        assert metrics.classes_per_week == Decimal("1")
        assert metrics.venue_count == 2
        assert metrics.back_to_back_count == Decimal("0.25")
        # 08:00, 09:00 and 18:00 Reducto plus 13:00 San Isidro
        assert metrics.off_peak_count == Decimal("1")

    def test_back_to_back_only_for_reference_discipline(self, policy):
        classes = [_class("a", hour=8), _class("b", hour=9)]

        metrics = compute_metrics(classes=classes, discipline_id=1, policy=policy)

        assert metrics.back_to_back_count == Decimal("0")

    def test_other_disciplines_ignored(self, policy):
        classes = [_class("a"), _class("b", discipline_id=2), _class("c", discipline_id=2)]

        metrics = compute_metrics(classes=classes, discipline_id=2, policy=policy)

        assert metrics.total_classes == 2

    def test_flags_carried_through(self, policy):
        metrics = compute_metrics(
            classes=[_class("a")],
            discipline_id=1,
            policy=policy,
            event_participation=True,
            guideline_compliance=False,
        )

        assert metrics.event_participation is True
        assert metrics.guideline_compliance is False

    def test_weeks_per_period_from_policy(self):
        policy = PayrollPolicy(weeks_per_period=2)

        metrics = compute_metrics(classes=[_class("a"), _class("b", day=1)], discipline_id=1, policy=policy)

        assert metrics.classes_per_week == Decimal("1")

    def test_engine_trace_emitted(self, policy, captured_logs):
        compute_metrics(classes=[_class("a")], discipline_id=1, policy=policy)

        traces = [r for r in captured_logs() if r["message"] == "PAYROLL_ENGINE_TRACE"]
        assert traces[0]["engine_name"] == "class_metrics"
        assert len(traces[0]["input_fingerprint"]) == 16
