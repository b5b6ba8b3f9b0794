"""Tests for payroll_kernel.logging_config."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from payroll_kernel.exceptions import PaymentApprovedError
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


@pytest.fixture
def json_lines():
    """Configure logging into a buffer; call the fixture to read parsed lines."""
    stream = StringIO()

    def _configure(level=logging.INFO):
        configure_logging(stream=stream, level=level)

    def _read() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line]

    _read.configure = _configure
    return _read


class TestStructuredFormatter:

    def test_payment_log_line(self, json_lines):
        json_lines.configure()
        get_logger("batch.runner").info(
            "payment_assembled", extra={"classes": 12, "tier": "ambassador"},
        )

        (line,) = json_lines()
        assert line["level"] == "INFO"
        assert line["logger"] == "payroll_kernel.batch.runner"
        assert line["message"] == "payment_assembled"
        assert line["classes"] == 12
        assert line["tier"] == "ambassador"
        assert line["ts"].endswith("+00:00")

    def test_runner_context_attached(self, json_lines):
        json_lines.configure()
        with LogContext.bind(run_id="run-1", period_id=7):
            with LogContext.bind(instructor_id=42):
                get_logger("batch.runner").info("payment_assembled")
            get_logger("batch.runner").info("payroll_run_completed")

        per_instructor, completed = json_lines()
        assert per_instructor["instructor_id"] == "42"
        assert per_instructor["period_id"] == "7"
        assert "instructor_id" not in completed
        assert completed["run_id"] == "run-1"

    def test_bound_period_wins_over_extra(self, json_lines):
        json_lines.configure()
        with LogContext.bind(period_id=7):
            get_logger("services.classes").info(
                "classes_deleted_for_week", extra={"period_id": 8, "week": 2},
            )

        (line,) = json_lines()
        assert line["period_id"] == "7"
        assert line["week"] == 2

    def test_payroll_error_fields(self, json_lines):
        json_lines.configure()
        try:
            raise PaymentApprovedError(3, 12)
        except PaymentApprovedError:
            get_logger("services.payments").error("payment_error", exc_info=True)

        (line,) = json_lines()
        assert line["exc_type"] == "PaymentApprovedError"
        assert line["exc_code"] == "PAYMENT_APPROVED"
        assert line["exc_instructor_id"] == 3
        assert line["exc_period_id"] == 12
        assert "PaymentApprovedError" in line["traceback"]

    def test_plain_exception(self, json_lines):
        json_lines.configure()
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("x").exception("failed")

        (line,) = json_lines()
        assert line["exc_message"] == "boom"
        assert "exc_code" not in line

    def test_decimal_and_uuid_values(self, json_lines):
        json_lines.configure()
        uid = uuid4()
        get_logger("x").info("with_values", extra={"payment_uid": uid, "final_pay": Decimal("46.00")})

        (line,) = json_lines()
        assert line["payment_uid"] == str(uid)
        assert line["final_pay"] == "46.00"

    def test_level_filters_debug(self, json_lines):
        json_lines.configure(level=logging.INFO)
        log = get_logger("x")
        log.debug("hidden")
        log.warning("shown")

        assert [line["message"] for line in json_lines()] == ["shown"]

    def test_formatter_usable_on_its_own(self):
        record = logging.LogRecord("payroll_kernel.x", logging.INFO, __file__, 1, "hi %s", ("there",), None)

        assert json.loads(StructuredFormatter().format(record))["message"] == "hi there"


class TestLogContext:

    def test_fields(self):
        assert LogContext.FIELDS == ("correlation_id", "run_id", "period_id", "instructor_id")

    def test_set_is_additive_and_stringifies(self):
        LogContext.set(correlation_id="c1")
        LogContext.set(period_id=5, run_id=None)

        assert LogContext.get_all() == {"correlation_id": "c1", "period_id": "5"}

    def test_clear(self):
        LogContext.set(run_id="r")
        LogContext.clear()

        assert LogContext.get_all() == {}

    def test_bind_restores_previous_values(self):
        LogContext.set(run_id="outer")
        with LogContext.bind(run_id="inner", instructor_id=9):
            assert LogContext.get_all() == {"run_id": "inner", "instructor_id": "9"}

        assert LogContext.get_all() == {"run_id": "outer"}

    def test_bind_restores_on_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(period_id=1):
                raise RuntimeError

        assert LogContext.get_all() == {}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError, match="actor_id"):
            LogContext.set(actor_id="a")
        with pytest.raises(TypeError):
            with LogContext.bind(user="u"):
                pass


class TestConfigureLogging:

    def test_second_call_is_noop(self):
        configure_logging(stream=StringIO())
        configure_logging(stream=StringIO())

        assert len(logging.getLogger("payroll_kernel").handlers) == 1

    def test_explicit_handler_gets_formatter(self):
        handler = logging.StreamHandler(StringIO())
        configure_logging(handler=handler)

        assert isinstance(handler.formatter, StructuredFormatter)

    def test_child_logger_name(self):
        assert get_logger("ingestion.import").name == "payroll_kernel.ingestion.import"
