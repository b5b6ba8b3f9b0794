"""
Pytest fixtures for the payroll test suite.

Database tests run against an in-memory SQLite database; every test gets a
fresh schema.  Services only flush, so nothing is ever committed.
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from payroll_kernel import models  # noqa: F401  registers tables
from payroll_kernel.db.base import Base
from payroll_kernel.domain.clock import DeterministicClock
from payroll_kernel.domain.formula_graph import (
    PORT_A,
    PORT_B,
    RESULT_PORT,
    FormulaGraph,
    NumberNode,
    Operation,
    OperationNode,
    ResultNode,
    VariableNode,
)
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from payroll_engines.policy import PayrollPolicy

# ---------------------------------------------------------------------------
# Logging fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture payroll_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            runner.run(period_id=1)
            logs = captured_logs()
            assert any(r["message"] == "payroll_run_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("payroll_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db_session():
    """In-memory SQLite session for fast unit tests."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
    session = SessionLocal()
    yield session
    session.rollback()
    session.close()
    engine.dispose()


# ---------------------------------------------------------------------------
# Clock and policy fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def deterministic_clock():
    return DeterministicClock(datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def policy():
    """Shipped policy values with a 100% penalty cap."""
    return PayrollPolicy()


# ---------------------------------------------------------------------------
# Formula fixtures
# ---------------------------------------------------------------------------


def _reservation_graph(rate: str = "2") -> FormulaGraph:
    """``reservations * rate`` -- the simplest useful pay formula."""
    return (
        FormulaGraph(name=f"reservations x {rate}")
        .add_node(VariableNode("res", "reservations"))
        .add_node(NumberNode("rate", Decimal(rate)))
        .add_node(OperationNode("mul", Operation.PRODUCT))
        .add_node(ResultNode("out"))
        .connect("res", "mul", PORT_A)
        .connect("rate", "mul", PORT_B)
        .connect("mul", "out", RESULT_PORT)
    )


@pytest.fixture
def reservation_graph():
    return _reservation_graph()


@pytest.fixture
def reservation_graph_factory():
    """Build ``reservations * rate`` graphs for a given rate."""
    return _reservation_graph
