"""
PayrollRunner -- three-phase payroll computation for one period.

Contract:
    ``run(period_id)`` reads every input through the stores, computes each
    instructor's payment in a bounded thread pool, then writes categories
    and payments back sequentially on the caller's session.

Architecture: payroll_batch/services.  Imports payroll_kernel (stores,
    services, DTOs), payroll_engines (assembler) and payroll_config.

Invariants enforced:
    - Per-instructor isolation: a failure while computing or writing one
      instructor is recorded in the report and never aborts the run.
    - Approved payments are never rewritten; they count as skipped.
    - The compute phase is pure: workers touch no store and no session.
    - All timestamps come from the injected Clock.

Non-goals:
    - Does NOT call ``session.commit()`` -- the caller owns the transaction
      (``from_settings`` hands it to ``session_scope``).
    - No retry, no cancellation, no cross-instructor transaction.
"""

from __future__ import annotations

import time
from collections import defaultdict
from collections.abc import Iterator, Mapping
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from uuid import uuid4

from sqlalchemy.orm import Session

from payroll_config.schema import PayrollSettings
from payroll_kernel.db import init_engine_from_url, session_scope
from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.domain.stores import (
    ClassStore,
    FormulaStore,
    InstructorStore,
    PaymentStore,
)
from payroll_kernel.domain.types import (
    Adjustment,
    ClassRecord,
    InstructorInfo,
    PaymentRecord,
    RecordError,
)
from payroll_kernel.exceptions import PaymentApprovedError
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_kernel.services import (
    ClassService,
    FormulaService,
    InstructorService,
    PaymentService,
)
from payroll_engines.assembler import AssemblyOutcome, PaymentRequest, assemble_payment
from payroll_engines.policy import PayrollPolicy

from payroll_batch.domain.types import BatchReport, resolve_status

logger = get_logger("batch.runner")


@dataclass(frozen=True)
class _Snapshot:
    """Everything read in phase 1."""

    instructors: tuple[InstructorInfo, ...]
    classes: Mapping[int, tuple[ClassRecord, ...]]
    requests: tuple[PaymentRequest, ...]
    existing: Mapping[int, PaymentRecord]


class PayrollRunner:
    """Runs payroll for a period over the four stores.

    ``session`` is optional; when given, each instructor's writes run in
    their own SAVEPOINT so a failed write leaves no partial rows behind.
    """

    def __init__(
        self,
        formulas: FormulaStore,
        classes: ClassStore,
        instructors: InstructorStore,
        payments: PaymentStore,
        settings: PayrollSettings,
        clock: Clock | None = None,
        session: Session | None = None,
    ):
        self._formulas = formulas
        self._classes = classes
        self._instructors = instructors
        self._payments = payments
        self._settings = settings
        self._policy: PayrollPolicy = settings.to_policy()
        self._clock = clock or SystemClock()
        self._session = session

    @classmethod
    def from_session(
        cls,
        session: Session,
        settings: PayrollSettings,
        clock: Clock | None = None,
    ) -> PayrollRunner:
        clock = clock or SystemClock()
        return cls(
            formulas=FormulaService(session),
            classes=ClassService(session),
            instructors=InstructorService(session, settings.pairing_tokens),
            payments=PaymentService(session, clock),
            settings=settings,
            clock=clock,
            session=session,
        )

    @classmethod
    @contextmanager
    def from_settings(
        cls,
        settings: PayrollSettings,
        clock: Clock | None = None,
    ) -> Iterator[PayrollRunner]:
        """Runner on a fresh session against ``settings.database_url``.

        Everything the runner writes is committed when the ``with`` block
        exits normally and rolled back when it raises.

        Usage::

            with PayrollRunner.from_settings(settings) as runner:
                report = runner.run(period_id)
        """
        init_engine_from_url(settings.database_url)
        with session_scope() as session:
            yield cls.from_session(session, settings, clock)

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run(
        self,
        period_id: int,
        adjustments: Mapping[int, Adjustment] | None = None,
    ) -> BatchReport:
        """Compute and store every payment of ``period_id``.

        Args:
            adjustments: Optional per-instructor adjustments; instructors not
                listed keep the adjustment of their stored pending payment.
        """
        run_id = str(uuid4())
        start = time.monotonic()
        started_at = self._clock.now()

        with LogContext.bind(run_id=run_id, period_id=str(period_id)):
            logger.info(
                "payroll_run_started",
                extra={"max_workers": self._settings.max_workers},
            )
            snapshot = self._read(period_id, adjustments or {})
            outcomes, errors = self._compute(snapshot, run_id)
            processed, skipped, payments = self._write(outcomes, errors)

            completed_at = self._clock.now()
            report = BatchReport(
                processed_count=processed,
                error_count=len(errors),
                errors=tuple(errors),
                skipped_count=skipped,
                status=resolve_status(processed, skipped, len(errors)),
                period_id=period_id,
                run_id=run_id,
                payments=tuple(payments),
                started_at=started_at,
                completed_at=completed_at,
                duration_ms=int((time.monotonic() - start) * 1000),
            )
            logger.info(
                "payroll_run_completed",
                extra={
                    "status": report.status.value,
                    "instructors": len(snapshot.instructors),
                    "processed": processed,
                    "skipped": skipped,
                    "errors": report.error_count,
                    "duration_ms": report.duration_ms,
                },
            )
        return report

    # -------------------------------------------------------------------------
    # Phase 1 -- read
    # -------------------------------------------------------------------------

    def _read(self, period_id: int, adjustments: Mapping[int, Adjustment]) -> _Snapshot:
        self._payments.delete_zero_pending(period_id)

        instructors = tuple(self._instructors.list_with_classes(period_id))
        by_instructor: dict[int, list[ClassRecord]] = defaultdict(list)
        for record in self._classes.query(period_id):
            by_instructor[record.instructor_id].append(record)
        classes = {k: tuple(v) for k, v in by_instructor.items()}

        formulas = self._formulas.list(period_id)
        thresholds = self._formulas.thresholds(period_id)
        disciplines = {d.id: d for d in self._instructors.disciplines()}

        existing: dict[int, PaymentRecord] = {}
        for instructor in instructors:
            payment = self._payments.get(instructor.id, period_id)
            if payment is not None:
                existing[instructor.id] = payment

        requests = tuple(
            PaymentRequest(
                instructor=instructor,
                period_id=period_id,
                classes=classes.get(instructor.id, ()),
                formulas=formulas,
                thresholds=thresholds,
                disciplines=disciplines,
                adjustment=adjustments.get(instructor.id),
            )
            for instructor in instructors
        )
        logger.debug(
            "payroll_inputs_loaded",
            extra={
                "instructors": len(instructors),
                "classes": sum(len(v) for v in classes.values()),
                "formulas": len(formulas),
                "existing_payments": len(existing),
            },
        )
        return _Snapshot(instructors, classes, requests, existing)

    # -------------------------------------------------------------------------
    # Phase 2 -- compute
    # -------------------------------------------------------------------------

    def _compute(
        self, snapshot: _Snapshot, run_id: str
    ) -> tuple[list[AssemblyOutcome], list[RecordError]]:
        computed_at = self._clock.now()
        outcomes: list[AssemblyOutcome] = []
        errors: list[RecordError] = []

        with ThreadPoolExecutor(max_workers=self._settings.max_workers) as pool:
            futures = [
                (
                    request.instructor.id,
                    pool.submit(
                        self._assemble_one,
                        request,
                        snapshot.existing.get(request.instructor.id),
                        computed_at,
                        run_id,
                    ),
                )
                for request in snapshot.requests
            ]
            for instructor_id, future in futures:
                try:
                    outcome = future.result()
                except Exception as exc:
                    logger.warning(
                        "instructor_computation_failed",
                        extra={
                            "instructor_id": instructor_id,
                            "error": str(exc),
                            "error_type": type(exc).__name__,
                        },
                    )
                    errors.append(
                        RecordError(
                            f"instructor:{instructor_id}",
                            str(exc),
                            getattr(exc, "code", "UNHANDLED_EXCEPTION"),
                        )
                    )
                    continue
                outcomes.append(outcome)
                errors.extend(outcome.errors)
        return outcomes, errors

    def _assemble_one(
        self,
        request: PaymentRequest,
        existing: PaymentRecord | None,
        computed_at: datetime,
        run_id: str,
    ) -> AssemblyOutcome:
        # Worker threads start with an empty context.
        with LogContext.bind(
            run_id=run_id,
            period_id=str(request.period_id),
            instructor_id=str(request.instructor.id),
        ):
            return assemble_payment(
                request,
                policy=self._policy,
                existing=existing,
                computed_at=computed_at,
            )

    # -------------------------------------------------------------------------
    # Phase 3 -- write
    # -------------------------------------------------------------------------

    def _write(
        self, outcomes: list[AssemblyOutcome], errors: list[RecordError]
    ) -> tuple[int, int, list[PaymentRecord]]:
        processed = 0
        skipped = 0
        payments: list[PaymentRecord] = []

        for outcome in outcomes:
            record = outcome.record
            if outcome.skipped:
                skipped += 1
                payments.append(record)
                continue

            savepoint = self._session.begin_nested() if self._session else None
            try:
                for assignment in outcome.categories:
                    self._instructors.save_category(assignment)
                stored = self._payments.upsert_computed(record)
            except PaymentApprovedError:
                # Approved between read and write.
                if savepoint is not None:
                    savepoint.rollback()
                skipped += 1
                continue
            except Exception as exc:
                if savepoint is not None:
                    savepoint.rollback()
                logger.warning(
                    "payment_write_failed",
                    extra={
                        "instructor_id": record.instructor_id,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
                errors.append(
                    RecordError(
                        f"instructor:{record.instructor_id}",
                        str(exc),
                        getattr(exc, "code", "UNHANDLED_EXCEPTION"),
                    )
                )
                continue
            if savepoint is not None:
                savepoint.commit()
            processed += 1
            payments.append(stored)

        return processed, skipped, payments
