"""
Tests for the engine tracer decorator.
"""

import logging

import pytest

import payroll_engines.tracer as tracer_module
from payroll_engines.tracer import compute_input_fingerprint, traced_engine


@traced_engine("double", "1.0", fingerprint_fields=("value",))
def _double(*, value):
    return value * 2


@pytest.fixture
def info_level():
    root = logging.getLogger("payroll_kernel")
    previous = root.level
    root.setLevel(logging.INFO)
    yield
    root.setLevel(previous)


class TestTracedEngine:

    def test_trace_emitted_at_debug(self, captured_logs):
        assert _double(value=4) == 8

        (trace,) = [r for r in captured_logs() if r["message"] == "PAYROLL_ENGINE_TRACE"]
        assert trace["engine_name"] == "double"
        assert trace["input_fingerprint"] == compute_input_fingerprint(("value",), {"value": 4})

    def test_no_fingerprint_when_debug_disabled(self, info_level, monkeypatch):
        def fail(*args, **kwargs):
            raise AssertionError("fingerprint computed with DEBUG off")

        monkeypatch.setattr(tracer_module, "compute_input_fingerprint", fail)

        assert _double(value=5) == 10

    def test_fingerprint_is_order_independent_for_mappings(self):
        first = compute_input_fingerprint(("m",), {"m": {"a": 1, "b": 2}})
        second = compute_input_fingerprint(("m",), {"m": {"b": 2, "a": 1}})

        assert first == second
        assert len(first) == 16
