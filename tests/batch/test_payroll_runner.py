"""
Tests for PayrollRunner against SQLite.

Seeded period 1:
    Ana    -- two Siclo classes, 10 and 15 reservations -> base 50.00
    Maria  -- one Barre class, 20 reservations          -> base 40.00
Formula: reservations * 2; 8% retention.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

import pytest

import payroll_batch.services.runner as runner_module
from payroll_batch import BatchStatus, PayrollRunner
from payroll_batch.domain.types import resolve_status
from payroll_config.schema import PayrollSettings
from payroll_kernel.db import create_tables, init_engine_from_url, reset_engine, session_scope
from payroll_kernel.domain.types import (
    Adjustment,
    AdjustmentKind,
    CategoryThresholds,
    ClassRecord,
    PaymentRecord,
    Tier,
    TierRequirement,
)
from payroll_kernel.services import (
    ClassService,
    DisciplineService,
    FormulaService,
    InstructorService,
    PaymentService,
)


@dataclass
class Seeded:
    ana: int
    maria: int
    siclo: int
    barre: int


@pytest.fixture
def settings():
    return PayrollSettings(max_workers=2)


def _seed_period(session, reservation_graph, barre_formula: bool = True) -> Seeded:
    instructors = InstructorService(session)
    disciplines = DisciplineService(session)
    siclo = disciplines.get_or_create("Siclo")
    barre = disciplines.get_or_create("Barre", shows_category=False)
    ana = instructors.create("Ana")
    maria = instructors.create("Maria")

    formulas = FormulaService(session)
    formulas.create(
        siclo.id,
        1,
        reservation_graph,
        CategoryThresholds(
            siclo.id, 1, (TierRequirement(Tier.AMBASSADOR, min_occupancy=Decimal("50")),)
        ),
    )
    if barre_formula:
        formulas.create(barre.id, 1, reservation_graph)

    classes = ClassService(session)
    for class_id, instructor_id, discipline_id, hour, reservations in (
        ("s1", ana.id, siclo.id, 7, 10),
        ("s2", ana.id, siclo.id, 9, 15),
        ("b1", maria.id, barre.id, 8, 20),
    ):
        classes.create(
            ClassRecord(
                id=class_id,
                instructor_id=instructor_id,
                discipline_id=discipline_id,
                period_id=1,
                week=1,
                starts_at=datetime(2024, 3, 4, hour, tzinfo=timezone.utc),
                venue="Reducto",
                city="Lima",
                reservations=reservations,
                capacity=20,
            )
        )
    return Seeded(ana.id, maria.id, siclo.id, barre.id)


@pytest.fixture
def seed(db_session, reservation_graph):
    def _seed(barre_formula: bool = True) -> Seeded:
        return _seed_period(db_session, reservation_graph, barre_formula)

    return _seed


@pytest.fixture
def runner(db_session, settings, deterministic_clock):
    return PayrollRunner.from_session(db_session, settings, deterministic_clock)


class TestRun:

    def test_pays_every_instructor(self, db_session, seed, runner):
        ids = seed()

        report = runner.run(1)

        assert report.status == BatchStatus.COMPLETED
        assert report.processed_count == 2
        assert report.error_count == 0
        payments = PaymentService(db_session)
        assert payments.get(ids.ana, 1).final_pay == Decimal("46.00")
        assert payments.get(ids.maria, 1).final_pay == Decimal("36.80")
        assert {p.instructor_id for p in report.payments} == {ids.ana, ids.maria}

    def test_categories_saved(self, db_session, seed, runner):
        ids = seed()

        runner.run(1)

        (category,) = InstructorService(db_session).get(ids.ana, period_id=1).categories
        assert category.discipline_id == ids.siclo
        assert category.tier == Tier.AMBASSADOR
        assert category.metrics.total_classes == 2

    def test_rerun_is_idempotent(self, db_session, seed, runner):
        ids = seed()

        runner.run(1)
        report = runner.run(1)

        assert report.processed_count == 2
        stored = PaymentService(db_session).list(1)
        assert [p.instructor_id for p in stored] == [ids.ana, ids.maria]
        assert stored[0].final_pay == Decimal("46.00")

    def test_timestamps_from_clock(self, seed, runner, deterministic_clock):
        seed()

        report = runner.run(1)

        assert report.started_at == deterministic_clock.now()
        assert report.period_id == 1
        assert report.run_id

    def test_adjustments_applied(self, db_session, seed, runner):
        ids = seed()

        runner.run(1, adjustments={ids.ana: Adjustment(AdjustmentKind.FIXED, Decimal("10"))})

        payment = PaymentService(db_session).get(ids.ana, 1)
        assert payment.adjustment_amount == Decimal("10")
        # (50 + 10) * 0.92
        assert payment.final_pay == Decimal("55.20")

    def test_empty_period(self, runner):
        report = runner.run(99)

        assert report.status == BatchStatus.COMPLETED
        assert report.processed_count == 0

    def test_zero_pending_payments_cleared(self, db_session, seed, runner):
        ids = seed()
        idle = InstructorService(db_session).create("Idle")
        PaymentService(db_session).create(PaymentRecord(instructor_id=idle.id, period_id=1))

        runner.run(1)

        assert PaymentService(db_session).get(idle.id, 1) is None
        assert PaymentService(db_session).get(ids.ana, 1) is not None


class TestApprovedPayments:

    def test_approved_payment_skipped(self, db_session, seed, runner):
        ids = seed()
        runner.run(1)
        payments = PaymentService(db_session)
        approved = payments.approve(payments.get(ids.ana, 1).id)
        ClassService(db_session).delete("s2")

        report = runner.run(1)

        assert report.skipped_count == 1
        assert report.processed_count == 1
        assert report.status == BatchStatus.COMPLETED
        assert payments.get(ids.ana, 1).final_pay == approved.final_pay


class TestIsolation:

    def test_missing_formula_is_partial(self, db_session, seed, runner):
        ids = seed(barre_formula=False)

        report = runner.run(1)

        assert report.status == BatchStatus.PARTIALLY_COMPLETED
        assert [(e.record_id, e.code) for e in report.errors] == [("b1", "FORMULA_NOT_FOUND")]
        assert PaymentService(db_session).get(ids.ana, 1).final_pay == Decimal("46.00")

    def test_compute_failure_recorded(self, db_session, seed, runner, monkeypatch):
        ids = seed()
        original = runner_module.assemble_payment

        def flaky(request, **kwargs):
            if request.instructor.id == ids.maria:
                raise RuntimeError("boom")
            return original(request, **kwargs)

        monkeypatch.setattr(runner_module, "assemble_payment", flaky)

        report = runner.run(1)

        assert report.status == BatchStatus.PARTIALLY_COMPLETED
        assert report.processed_count == 1
        (error,) = report.errors
        assert error.record_id == f"instructor:{ids.maria}"
        assert error.code == "UNHANDLED_EXCEPTION"
        assert PaymentService(db_session).get(ids.maria, 1) is None

    def test_write_failure_rolls_back_instructor(self, db_session, seed, runner, monkeypatch):
        ids = seed()
        original = PaymentService.upsert_computed

        def failing(self, record):
            if record.instructor_id == ids.ana:
                raise RuntimeError("disk full")
            return original(self, record)

        monkeypatch.setattr(PaymentService, "upsert_computed", failing)

        report = runner.run(1)

        assert report.processed_count == 1
        assert report.errors[0].record_id == f"instructor:{ids.ana}"
        instructors = InstructorService(db_session)
        assert instructors.get(ids.ana, period_id=1).categories == ()
        assert PaymentService(db_session).get(ids.maria, 1) is not None

    def test_everything_failing_is_failed(self, seed, runner, monkeypatch):
        seed()

        def broken(request, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(runner_module, "assemble_payment", broken)

        report = runner.run(1)

        assert report.status == BatchStatus.FAILED
        assert report.error_count == 2


class TestRunLogging:

    def test_run_logs_carry_run_context(self, seed, runner, captured_logs):
        seed()

        report = runner.run(1)

        completed = [r for r in captured_logs() if r["message"] == "payroll_run_completed"]
        assert completed[0]["run_id"] == report.run_id
        assert completed[0]["period_id"] == "1"
        assert completed[0]["processed"] == 2
        assembled = [r for r in captured_logs() if r["message"] == "payment_assembled"]
        assert len(assembled) == 2
        assert all(r["run_id"] == report.run_id for r in assembled)


class TestFromSettings:

    @pytest.fixture
    def seeded_file(self, tmp_path, reservation_graph):
        settings = PayrollSettings(max_workers=2, database_url=f"sqlite:///{tmp_path / 'payroll.db'}")
        init_engine_from_url(settings.database_url)
        create_tables()
        with session_scope() as session:
            ids = _seed_period(session, reservation_graph)
        yield settings, ids
        reset_engine()

    @staticmethod
    def _reopened_payments(settings, ids):
        reset_engine()
        init_engine_from_url(settings.database_url)
        with session_scope() as session:
            payments = PaymentService(session)
            return {i: payments.get(i, 1) for i in (ids.ana, ids.maria)}

    def test_run_committed_to_configured_database(self, seeded_file, deterministic_clock):
        settings, ids = seeded_file

        with PayrollRunner.from_settings(settings, deterministic_clock) as runner:
            report = runner.run(1)

        assert report.status == BatchStatus.COMPLETED
        stored = self._reopened_payments(settings, ids)
        assert stored[ids.ana].final_pay == Decimal("46.00")
        assert stored[ids.maria].final_pay == Decimal("36.80")
        assert stored[ids.ana].computed_at == deterministic_clock.now()

    def test_error_in_block_rolls_back(self, seeded_file, deterministic_clock):
        settings, ids = seeded_file

        with pytest.raises(RuntimeError):
            with PayrollRunner.from_settings(settings, deterministic_clock) as runner:
                runner.run(1)
                raise RuntimeError("operator abort")

        assert self._reopened_payments(settings, ids) == {ids.ana: None, ids.maria: None}


class TestResolveStatus:

    @pytest.mark.parametrize(
        "processed,skipped,errors,expected",
        [
            (3, 0, 0, BatchStatus.COMPLETED),
            (0, 0, 0, BatchStatus.COMPLETED),
            (0, 0, 2, BatchStatus.FAILED),
            (0, 1, 2, BatchStatus.PARTIALLY_COMPLETED),
            (2, 0, 1, BatchStatus.PARTIALLY_COMPLETED),
        ],
    )
    def test_resolve_status(self, processed, skipped, errors, expected):
        assert resolve_status(processed, skipped, errors) == expected
