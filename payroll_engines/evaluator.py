"""
Formula graph evaluator.

Pure functions with deterministic behavior. No I/O beyond log records.

Evaluation starts at the single Result node and resolves each input port by
recursively evaluating the node wired into it.  Node values are memoized by
node id for the duration of one call, so a value feeding several downstream
nodes is computed (and traced) once.  Every evaluated node appends one
``EvaluationStep`` to the trace, in evaluation order, which is what the
payment detail shows to explain an amount.

Semantics:
    Operation   SUM a+b, DIFFERENCE a-b, PRODUCT a*b, QUOTIENT a/b,
                PERCENTAGE a*b/100.  Division by zero yields 0 and logs
                ``division_by_zero``.
    Comparator  Yields exactly Decimal(1) or Decimal(0) so comparisons
                compose arithmetically.

Failure modes:
    - MissingInputError: a required port of a reachable node is unconnected.
    - UnknownVariableError: a Variable key is absent from ``inputs``.
    - FormulaValidationError: the graph has no single Result node, or a
      cycle is reachable from it.

Usage:
    from payroll_engines.evaluator import evaluate

    result = evaluate(graph=graph, inputs={"reservations": 18, "capacity": 20})
    result.value, result.trace
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from payroll_kernel.domain.formula_graph import (
    Comparison,
    ComparatorNode,
    FormulaGraph,
    Node,
    NumberNode,
    Operation,
    OperationNode,
    PORT_A,
    PORT_B,
    RESULT_PORT,
    ResultNode,
    VariableNode,
)
from payroll_kernel.exceptions import (
    FormulaValidationError,
    MissingInputError,
    UnknownVariableError,
)
from payroll_kernel.logging_config import get_logger
from payroll_engines.tracer import traced_engine

logger = get_logger("engines.evaluator")

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class EvaluationStep:
    node_id: str
    description: str
    value: Decimal


@dataclass(frozen=True)
class EvaluationResult:
    value: Decimal
    trace: tuple[EvaluationStep, ...]


def _as_decimal(value: Decimal | int | float | str | bool) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return ONE if value else ZERO
    return Decimal(str(value))


def apply_operation(operation: Operation, a: Decimal, b: Decimal) -> Decimal | None:
    """Arithmetic for an Operation node; None signals division by zero."""
    match operation:
        case Operation.SUM:
            return a + b
        case Operation.DIFFERENCE:
            return a - b
        case Operation.PRODUCT:
            return a * b
        case Operation.QUOTIENT:
            if b == ZERO:
                return None
            return a / b
        case Operation.PERCENTAGE:
            return a * b / HUNDRED
    raise ValueError(f"Unsupported operation: {operation!r}")


def apply_comparison(comparison: Comparison, a: Decimal, b: Decimal) -> Decimal:
    match comparison:
        case Comparison.GREATER_THAN:
            holds = a > b
        case Comparison.LESS_THAN:
            holds = a < b
        case Comparison.EQUAL:
            holds = a == b
        case Comparison.GREATER_OR_EQUAL:
            holds = a >= b
        case Comparison.LESS_OR_EQUAL:
            holds = a <= b
        case _:
            raise ValueError(f"Unsupported comparison: {comparison!r}")
    return ONE if holds else ZERO


class _Evaluation:
    """State of one ``evaluate`` call: memo, trace and the active path."""

    def __init__(self, graph: FormulaGraph, inputs: Mapping[str, Decimal]):
        self.nodes = graph.node_map()
        self.wiring: dict[str, dict[str, str]] = {}
        for edge in graph.edges:
            self.wiring.setdefault(edge.target_id, {})[edge.target_port] = edge.source_id
        self.inputs = inputs
        self.memo: dict[str, Decimal] = {}
        self.trace: list[EvaluationStep] = []
        self.active: set[str] = set()

    def _input(self, node: Node, port: str) -> Decimal:
        source_id = self.wiring.get(node.id, {}).get(port)
        if source_id is None or source_id not in self.nodes:
            raise MissingInputError(node.id, port)
        return self.value_of(source_id)

    def value_of(self, node_id: str) -> Decimal:
        if node_id in self.memo:
            return self.memo[node_id]
        if node_id in self.active:
            raise FormulaValidationError("CYCLE", "graph contains a cycle", node_id)
        self.active.add(node_id)
        value, description = self._compute(self.nodes[node_id])
        self.active.discard(node_id)
        self.memo[node_id] = value
        self.trace.append(EvaluationStep(node_id, description, value))
        return value

    def _compute(self, node: Node) -> tuple[Decimal, str]:
        match node:
            case VariableNode(key=key, label=label):
                if key not in self.inputs:
                    raise UnknownVariableError(node.id, key)
                value = self.inputs[key]
                return value, f"{label or key} = {value}"
            case NumberNode(value=value):
                return value, f"constant {value}"
            case OperationNode(operation=operation):
                a = self._input(node, PORT_A)
                b = self._input(node, PORT_B)
                result = apply_operation(operation, a, b)
                if result is None:
                    logger.warning(
                        "division_by_zero",
                        extra={"node_id": node.id, "dividend": str(a)},
                    )
                    return ZERO, f"{a} / {b} = 0 (division by zero)"
                if operation == Operation.PERCENTAGE:
                    return result, f"{b}% of {a} = {result}"
                return result, f"{a} {operation.symbol} {b} = {result}"
            case ComparatorNode(comparison=comparison):
                a = self._input(node, PORT_A)
                b = self._input(node, PORT_B)
                result = apply_comparison(comparison, a, b)
                return result, f"{a} {comparison.symbol} {b} -> {result}"
            case ResultNode(label=label):
                value = self._input(node, RESULT_PORT)
                return value, f"{label} = {value}"
        raise TypeError(f"Unsupported node type: {type(node).__name__}")


@traced_engine("formula_evaluator", "1.0", fingerprint_fields=("graph", "inputs"))
def evaluate(
    graph: FormulaGraph,
    inputs: Mapping[str, Decimal | int | float | str | bool],
) -> EvaluationResult:
    """
    Evaluate ``graph`` against named ``inputs``.

    Pure function - identical graph and inputs always produce an identical
    value and an identical trace.

    Raises:
        MissingInputError, UnknownVariableError, FormulaValidationError
    """
    results = graph.result_nodes
    if len(results) != 1:
        raise FormulaValidationError(
            "NO_RESULT" if not results else "MULTIPLE_RESULTS",
            f"graph has {len(results)} result nodes",
        )
    state = _Evaluation(graph, {k: _as_decimal(v) for k, v in inputs.items()})
    value = state.value_of(results[0].id)
    return EvaluationResult(value=value, trace=tuple(state.trace))
