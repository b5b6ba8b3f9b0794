"""
Tests for InstructorService and DisciplineService against SQLite.
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from payroll_kernel.domain.types import (
    CategoryAssignment,
    ClassRecord,
    Cover,
    ExtraPay,
    ExtraPayKind,
    InstructorMetrics,
    Penalty,
    PenaltyKind,
    Tier,
)
from payroll_kernel.exceptions import (
    DisciplineNotFoundError,
    DuplicateInstructorError,
    InstructorNotFoundError,
    InvalidInstructorNameError,
)
from payroll_kernel.logging_config import configure_logging, reset_logging
from payroll_kernel.services import ClassService, DisciplineService, InstructorService


@pytest.fixture
def instructors(db_session):
    return InstructorService(db_session)


@pytest.fixture
def disciplines(db_session):
    return DisciplineService(db_session)


class TestDisciplineService:

    def test_get_or_create_is_idempotent(self, disciplines):
        first = disciplines.get_or_create("siclo")
        second = disciplines.get_or_create("SICLO")

        assert first.id == second.id
        assert first.name == "Siclo"

    def test_shows_category_flag(self, disciplines):
        barre = disciplines.get_or_create("barre", shows_category=False)

        assert disciplines.get(barre.id).shows_category is False

    def test_find_by_name_missing(self, disciplines):
        assert disciplines.find_by_name("Yoga") is None

    def test_get_unknown(self, disciplines):
        with pytest.raises(DisciplineNotFoundError):
            disciplines.get(999)


class TestInstructorCreation:

    def test_create_normalizes_name(self, instructors):
        created = instructors.create("maria  GARCIA")

        assert created.name == "Maria Garcia"
        assert instructors.get(created.id).name == "Maria Garcia"

    def test_pairing_string_rejected(self, instructors):
        with pytest.raises(InvalidInstructorNameError):
            instructors.create("Ana vs Maria")

        assert instructors.find_by_name("Ana vs Maria") is None

    def test_duplicate_rejected(self, instructors):
        instructors.create("Ana")

        with pytest.raises(DuplicateInstructorError):
            instructors.create("ANA")

    def test_get_or_create(self, instructors):
        created, was_created = instructors.get_or_create("ana")
        found, again = instructors.get_or_create("Ana")

        assert was_created and not again
        assert found.id == created.id

    def test_get_unknown(self, instructors):
        with pytest.raises(InstructorNotFoundError):
            instructors.get(404)


@pytest.fixture
def info_logs():
    """Production-style logging at INFO into a buffer."""
    stream = StringIO()
    reset_logging()
    configure_logging(stream=stream, level=logging.INFO)
    yield lambda: [json.loads(line) for line in stream.getvalue().splitlines() if line]
    reset_logging()
    configure_logging(level=logging.DEBUG)


class TestCreationLogging:

    def test_new_instructor_and_discipline_logged_at_info(self, instructors, disciplines, info_logs):
        discipline = disciplines.get_or_create("siclo")
        instructor, _ = instructors.get_or_create("juan perez")

        by_message = {line["message"]: line for line in info_logs()}
        assert by_message["discipline_created"]["discipline_name"] == "Siclo"
        assert by_message["discipline_created"]["discipline_id"] == discipline.id
        assert by_message["instructor_created"]["instructor_name"] == "Juan Perez"
        assert by_message["instructor_created"]["instructor_id"] == instructor.id
        assert all(line["logger"].startswith("payroll_kernel.") for line in info_logs())


class TestInstructorUpdate:

    def test_rename_and_flags(self, instructors):
        ana = instructors.create("Ana")

        updated = instructors.update(
            ana.id, {"name": "ana lopez", "event_participation": True, "active": False}
        )

        assert updated.name == "Ana Lopez"
        assert updated.event_participation is True
        assert updated.active is False

    def test_rename_to_pairing_string_rejected(self, instructors):
        ana = instructors.create("Ana")

        with pytest.raises(InvalidInstructorNameError):
            instructors.update(ana.id, {"name": "Ana vs Maria"})

    def test_rename_clash_rejected(self, instructors):
        ana = instructors.create("Ana")
        instructors.create("Maria")

        with pytest.raises(DuplicateInstructorError):
            instructors.update(ana.id, {"name": "maria"})

    def test_unknown_field_rejected(self, instructors):
        ana = instructors.create("Ana")

        with pytest.raises(ValueError):
            instructors.update(ana.id, {"salary": 1})

    def test_discipline_links(self, instructors, disciplines):
        ana = instructors.create("Ana")
        siclo = disciplines.get_or_create("Siclo")
        barre = disciplines.get_or_create("Barre")

        instructors.link_discipline(ana.id, siclo.id)
        instructors.link_discipline(ana.id, siclo.id)
        assert instructors.get(ana.id).discipline_ids == (siclo.id,)

        updated = instructors.update(ana.id, {"discipline_ids": [barre.id]})
        assert updated.discipline_ids == (barre.id,)

    def test_link_unknown_discipline(self, instructors):
        ana = instructors.create("Ana")

        with pytest.raises(DisciplineNotFoundError):
            instructors.link_discipline(ana.id, 77)


class TestPeriodData:

    def test_period_scoped_collections(self, instructors):
        ana = instructors.create("Ana")
        instructors.add_penalty(ana.id, Penalty(2, PenaltyKind.LEFT_LATE, period_id=1))
        instructors.add_penalty(ana.id, Penalty(5, PenaltyKind.CUSTOM, period_id=2))
        instructors.add_cover(ana.id, Cover(class_id="c1", period_id=1, bonus_eligible=True))
        instructors.add_extra_pay(ana.id, ExtraPay(ExtraPayKind.BRANDING, period_id=1, units=3))

        info = instructors.get(ana.id, period_id=1)

        assert [p.points for p in info.penalties] == [2]
        assert info.covers[0].bonus_eligible is True
        assert info.extras[0].units == 3
        assert len(instructors.get(ana.id).penalties) == 2

    def test_list_with_classes(self, db_session, instructors, disciplines):
        ana = instructors.create("Ana")
        instructors.create("Idle")
        siclo = disciplines.get_or_create("Siclo")
        ClassService(db_session).create(
            ClassRecord(
                "c1", ana.id, siclo.id, 1, 1,
                datetime(2024, 3, 4, 9, tzinfo=timezone.utc), "Reducto",
            )
        )

        assert [i.name for i in instructors.list_with_classes(1)] == ["Ana"]
        assert instructors.list_with_classes(2) == []


class TestSaveCategory:

    def _assignment(self, instructor_id, discipline_id, tier, manual=False):
        return CategoryAssignment(
            instructor_id=instructor_id,
            discipline_id=discipline_id,
            period_id=1,
            tier=tier,
            metrics=InstructorMetrics(total_classes=8, occupancy=Decimal("75")),
            manual=manual,
        )

    def test_upsert(self, instructors, disciplines):
        ana = instructors.create("Ana")
        siclo = disciplines.get_or_create("Siclo")

        instructors.save_category(self._assignment(ana.id, siclo.id, Tier.JUNIOR_AMBASSADOR))
        stored = instructors.save_category(self._assignment(ana.id, siclo.id, Tier.AMBASSADOR))

        assert stored.tier == Tier.AMBASSADOR
        (category,) = instructors.get(ana.id, period_id=1).categories
        assert category.tier == Tier.AMBASSADOR
        assert category.metrics.total_classes == 8

    def test_manual_category_not_overwritten_by_computed(self, instructors, disciplines):
        ana = instructors.create("Ana")
        siclo = disciplines.get_or_create("Siclo")
        instructors.save_category(
            self._assignment(ana.id, siclo.id, Tier.SENIOR_AMBASSADOR, manual=True)
        )

        stored = instructors.save_category(self._assignment(ana.id, siclo.id, Tier.INSTRUCTOR))

        assert stored.tier == Tier.SENIOR_AMBASSADOR
        assert stored.manual
