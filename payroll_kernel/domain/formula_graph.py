"""
FormulaGraph -- Immutable computation graph authored per discipline and period.

Responsibility:
    Data model for the pay formula a discipline uses in a period: a closed
    set of node kinds wired together by directed edges.  Edits are
    command-style (``add_node``, ``connect``, ``disconnect``,
    ``remove_node``) and return a new graph; the receiver is never mutated.
    Persistence is a pure ``to_dict`` / ``from_dict`` round trip.

Architecture position:
    Kernel > Domain -- pure value object, zero I/O.  Evaluated by
    ``payroll_engines.evaluator``; persisted by
    ``payroll_kernel.services.formula_service``.

Invariants enforced by ``validate()``:
    - Exactly one Result node.
    - The dependency graph is acyclic.
    - Every Operation, Comparator and Result input port is connected exactly
      once, and only known ports are used.
    - Every edge references existing nodes.
    - Variable nodes reference a key in ``VARIABLE_KEYS``.

Failure modes:
    - ``validate()`` returns the first ``GraphValidationIssue`` found.
    - ``ensure_valid()`` raises ``FormulaValidationError``.
    - Commands raise ``FormulaValidationError`` for duplicate node ids,
      unknown nodes, or ports the target kind does not have.  They do NOT
      reject cycles; an edited graph may be temporarily cyclic and is
      rejected at validation.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Union

from payroll_kernel.exceptions import FormulaValidationError

OUTPUT_PORT = "output"
PORT_A = "a"
PORT_B = "b"
RESULT_PORT = "input"

CLASS_VARIABLE_KEYS = frozenset({
    "reservations",
    "waitlist",
    "courtesy_seats",
    "capacity",
    "paid_reservations",
    "versus_count",
    "full_house",
})

METRIC_VARIABLE_KEYS = frozenset({
    "total_classes",
    "occupancy",
    "classes_per_week",
    "venue_count",
    "back_to_back_count",
    "off_peak_count",
    "event_participation",
    "guideline_compliance",
    "tier_rank",
})

VARIABLE_KEYS = CLASS_VARIABLE_KEYS | METRIC_VARIABLE_KEYS


class Operation(str, Enum):
    SUM = "sum"
    DIFFERENCE = "difference"
    PRODUCT = "product"
    QUOTIENT = "quotient"
    PERCENTAGE = "percentage"

    @property
    def symbol(self) -> str:
        return _OPERATION_SYMBOLS[self]


_OPERATION_SYMBOLS = {
    Operation.SUM: "+",
    Operation.DIFFERENCE: "-",
    Operation.PRODUCT: "*",
    Operation.QUOTIENT: "/",
    Operation.PERCENTAGE: "% of",
}


class Comparison(str, Enum):
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    EQUAL = "equal"
    GREATER_OR_EQUAL = "greater_or_equal"
    LESS_OR_EQUAL = "less_or_equal"

    @property
    def symbol(self) -> str:
        return _COMPARISON_SYMBOLS[self]


_COMPARISON_SYMBOLS = {
    Comparison.GREATER_THAN: ">",
    Comparison.LESS_THAN: "<",
    Comparison.EQUAL: "==",
    Comparison.GREATER_OR_EQUAL: ">=",
    Comparison.LESS_OR_EQUAL: "<=",
}


# =============================================================================
# Node variants
# =============================================================================


@dataclass(frozen=True)
class VariableNode:
    id: str
    key: str
    label: str = ""


@dataclass(frozen=True)
class NumberNode:
    id: str
    value: Decimal

    def __post_init__(self) -> None:
        if not isinstance(self.value, Decimal):
            try:
                object.__setattr__(self, "value", Decimal(str(self.value)))
            except InvalidOperation as e:
                raise FormulaValidationError(
                    "INVALID_NUMBER", f"not a number: {self.value!r}", self.id
                ) from e


@dataclass(frozen=True)
class OperationNode:
    id: str
    operation: Operation


@dataclass(frozen=True)
class ComparatorNode:
    id: str
    comparison: Comparison


@dataclass(frozen=True)
class ResultNode:
    id: str
    label: str = "Result"


Node = Union[VariableNode, NumberNode, OperationNode, ComparatorNode, ResultNode]


def input_ports(node: Node) -> tuple[str, ...]:
    """Input ports a node kind requires, in evaluation order."""
    match node:
        case OperationNode() | ComparatorNode():
            return (PORT_A, PORT_B)
        case ResultNode():
            return (RESULT_PORT,)
        case _:
            return ()


@dataclass(frozen=True)
class Edge:
    """Directed connection from a node's output into another node's port."""

    source_id: str
    target_id: str
    target_port: str
    source_port: str = OUTPUT_PORT


@dataclass(frozen=True)
class GraphValidationIssue:
    """First structural problem found in a graph."""

    code: str
    message: str
    node_id: str | None = None

    def to_exception(self, discipline_id: int | None = None) -> FormulaValidationError:
        return FormulaValidationError(
            self.code, self.message, self.node_id, discipline_id
        )


# =============================================================================
# Graph
# =============================================================================


@dataclass(frozen=True)
class FormulaGraph:
    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()
    name: str = ""

    # -- queries --------------------------------------------------------------

    def node(self, node_id: str) -> Node | None:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def node_map(self) -> dict[str, Node]:
        return {n.id: n for n in self.nodes}

    def inputs_of(self, node_id: str) -> dict[str, str]:
        """Map of connected input port to source node id."""
        return {
            e.target_port: e.source_id for e in self.edges if e.target_id == node_id
        }

    @property
    def result_nodes(self) -> tuple[ResultNode, ...]:
        return tuple(n for n in self.nodes if isinstance(n, ResultNode))

    # -- commands -------------------------------------------------------------

    def add_node(self, node: Node) -> FormulaGraph:
        if self.node(node.id) is not None:
            raise FormulaValidationError(
                "DUPLICATE_NODE", "node id already in graph", node.id
            )
        return replace(self, nodes=self.nodes + (node,))

    def connect(
        self,
        source_id: str,
        target_id: str,
        target_port: str,
        source_port: str = OUTPUT_PORT,
    ) -> FormulaGraph:
        """Wire ``source_id`` into ``target_id``; an occupied port is rewired."""
        if self.node(source_id) is None:
            raise FormulaValidationError("UNKNOWN_NODE", "source not in graph", source_id)
        target = self.node(target_id)
        if target is None:
            raise FormulaValidationError("UNKNOWN_NODE", "target not in graph", target_id)
        if target_port not in input_ports(target):
            raise FormulaValidationError(
                "UNKNOWN_PORT", f"no input port '{target_port}'", target_id
            )
        if source_port != OUTPUT_PORT:
            raise FormulaValidationError(
                "UNKNOWN_PORT", f"no output port '{source_port}'", source_id
            )
        kept = tuple(
            e for e in self.edges
            if not (e.target_id == target_id and e.target_port == target_port)
        )
        edge = Edge(source_id, target_id, target_port, source_port)
        return replace(self, edges=kept + (edge,))

    def disconnect(self, target_id: str, target_port: str) -> FormulaGraph:
        kept = tuple(
            e for e in self.edges
            if not (e.target_id == target_id and e.target_port == target_port)
        )
        return replace(self, edges=kept)

    def remove_node(self, node_id: str) -> FormulaGraph:
        """Remove a node together with every edge touching it."""
        return replace(
            self,
            nodes=tuple(n for n in self.nodes if n.id != node_id),
            edges=tuple(
                e for e in self.edges
                if e.source_id != node_id and e.target_id != node_id
            ),
        )

    # -- validation -----------------------------------------------------------

    def validate(self) -> GraphValidationIssue | None:
        nodes = self.node_map()
        if len(nodes) != len(self.nodes):
            return GraphValidationIssue("DUPLICATE_NODE", "node ids must be unique")

        for e in self.edges:
            if e.source_id not in nodes:
                return GraphValidationIssue(
                    "UNKNOWN_NODE", f"edge from unknown node '{e.source_id}'", e.target_id
                )
            if e.target_id not in nodes:
                return GraphValidationIssue(
                    "UNKNOWN_NODE", f"edge into unknown node '{e.target_id}'", e.source_id
                )

        cycle_node = self._find_cycle(nodes)
        if cycle_node is not None:
            return GraphValidationIssue(
                "CYCLE", "graph contains a cycle", cycle_node
            )

        results = self.result_nodes
        if not results:
            return GraphValidationIssue("NO_RESULT", "graph has no result node")
        if len(results) > 1:
            return GraphValidationIssue(
                "MULTIPLE_RESULTS",
                f"graph has {len(results)} result nodes",
                results[1].id,
            )

        seen_ports: set[tuple[str, str]] = set()
        for e in self.edges:
            if e.source_port != OUTPUT_PORT:
                return GraphValidationIssue(
                    "UNKNOWN_PORT", f"no output port '{e.source_port}'", e.source_id
                )
            if e.target_port not in input_ports(nodes[e.target_id]):
                return GraphValidationIssue(
                    "UNKNOWN_PORT", f"no input port '{e.target_port}'", e.target_id
                )
            key = (e.target_id, e.target_port)
            if key in seen_ports:
                return GraphValidationIssue(
                    "DUPLICATE_INPUT",
                    f"port '{e.target_port}' connected more than once",
                    e.target_id,
                )
            seen_ports.add(key)

        for n in self.nodes:
            if isinstance(n, VariableNode) and n.key not in VARIABLE_KEYS:
                return GraphValidationIssue(
                    "UNKNOWN_VARIABLE_KEY", f"unknown variable '{n.key}'", n.id
                )
            for port in input_ports(n):
                if (n.id, port) not in seen_ports:
                    return GraphValidationIssue(
                        "MISSING_INPUT", f"port '{port}' is not connected", n.id
                    )

        return None

    def ensure_valid(self, discipline_id: int | None = None) -> None:
        issue = self.validate()
        if issue is not None:
            raise issue.to_exception(discipline_id)

    def _find_cycle(self, nodes: dict[str, Node]) -> str | None:
        """Return a node on a cycle, or None. Iterative three-colour DFS."""
        successors: dict[str, list[str]] = {node_id: [] for node_id in nodes}
        for e in self.edges:
            successors[e.source_id].append(e.target_id)

        white, grey, black = 0, 1, 2
        colour = dict.fromkeys(nodes, white)
        for start in nodes:
            if colour[start] != white:
                continue
            colour[start] = grey
            stack = [(start, iter(successors[start]))]
            while stack:
                current, children = stack[-1]
                advanced = False
                for child in children:
                    if colour[child] == grey:
                        return child
                    if colour[child] == white:
                        colour[child] = grey
                        stack.append((child, iter(successors[child])))
                        advanced = True
                        break
                if not advanced:
                    colour[current] = black
                    stack.pop()
        return None

    # -- persistence ----------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "nodes": [_node_to_dict(n) for n in self.nodes],
            "edges": [
                {
                    "source": e.source_id,
                    "source_port": e.source_port,
                    "target": e.target_id,
                    "target_port": e.target_port,
                }
                for e in self.edges
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FormulaGraph:
        nodes = tuple(_node_from_dict(raw) for raw in data.get("nodes", ()))
        edges = tuple(
            Edge(
                source_id=str(raw["source"]),
                target_id=str(raw["target"]),
                target_port=str(raw["target_port"]),
                source_port=str(raw.get("source_port", OUTPUT_PORT)),
            )
            for raw in data.get("edges", ())
        )
        return cls(nodes=nodes, edges=edges, name=data.get("name", ""))


def _node_to_dict(node: Node) -> dict[str, Any]:
    match node:
        case VariableNode(id=node_id, key=key, label=label):
            return {"id": node_id, "kind": "variable", "params": {"key": key, "label": label}}
        case NumberNode(id=node_id, value=value):
            return {"id": node_id, "kind": "number", "params": {"value": str(value)}}
        case OperationNode(id=node_id, operation=op):
            return {"id": node_id, "kind": "operation", "params": {"operation": op.value}}
        case ComparatorNode(id=node_id, comparison=cmp):
            return {"id": node_id, "kind": "comparator", "params": {"comparison": cmp.value}}
        case ResultNode(id=node_id, label=label):
            return {"id": node_id, "kind": "result", "params": {"label": label}}
    raise TypeError(f"Unsupported node type: {type(node).__name__}")


def _node_from_dict(raw: dict[str, Any]) -> Node:
    node_id = str(raw["id"])
    params = raw.get("params") or {}
    try:
        match raw.get("kind"):
            case "variable":
                return VariableNode(node_id, str(params["key"]), params.get("label", ""))
            case "number":
                return NumberNode(node_id, Decimal(str(params["value"])))
            case "operation":
                return OperationNode(node_id, Operation(params["operation"]))
            case "comparator":
                return ComparatorNode(node_id, Comparison(params["comparison"]))
            case "result":
                return ResultNode(node_id, params.get("label", "Result"))
    except (KeyError, ValueError, InvalidOperation) as e:
        raise FormulaValidationError(
            "INVALID_NODE", f"malformed params: {e}", node_id
        ) from e
    raise FormulaValidationError(
        "UNKNOWN_KIND", f"unknown node kind {raw.get('kind')!r}", node_id
    )
