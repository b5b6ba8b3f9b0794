"""
Typed Exception Hierarchy for the Payroll Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A payroll run touches hundreds of classes and instructors.  Callers must be
able to tell "this formula is malformed" apart from "this instructor does not
exist" without parsing message strings:

    try:
        graph.ensure_valid()
    except FormulaValidationError as e:
        report.add(e.discipline_id, e.code, e.issue.message)

Every exception carries:
  1. A TYPE (catch by class, not by message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes set in __init__

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PayrollError (base)
    |
    +-- PayrollValidationError
    |   +-- FormulaValidationError
    |   +-- InvalidInstructorNameError
    |   +-- InvalidClassRecordError
    |
    +-- PayrollLookupError
    |   +-- InstructorNotFoundError
    |   +-- DisciplineNotFoundError
    |   +-- PeriodNotFoundError
    |   +-- FormulaNotFoundError
    |   +-- PaymentNotFoundError
    |
    +-- ComputationError
    |   +-- MissingInputError
    |   +-- UnknownVariableError
    |
    +-- ConflictError
        +-- DuplicateInstructorError
        +-- PaymentApprovedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                      | When Raised
------------|---------------------------|------------------------------------------
Validation  | FORMULA_INVALID           | Cycle, missing/duplicate result, bad port
            | INVALID_INSTRUCTOR_NAME   | Identity contains the pairing token
            | INVALID_CLASS_RECORD      | Negative counts, zero versus multiplier
------------|---------------------------|------------------------------------------
Lookup      | INSTRUCTOR_NOT_FOUND      | Unknown instructor id or name
            | DISCIPLINE_NOT_FOUND      | Unknown discipline id or name
            | PERIOD_NOT_FOUND          | Unknown period id
            | FORMULA_NOT_FOUND         | No graph for (discipline, period)
            | PAYMENT_NOT_FOUND         | Unknown payment id
------------|---------------------------|------------------------------------------
Computation | MISSING_INPUT             | Required port has no connected edge
            | UNKNOWN_VARIABLE          | Variable key absent from inputs
------------|---------------------------|------------------------------------------
Conflict    | DUPLICATE_INSTRUCTOR      | Instructor name already exists
            | PAYMENT_APPROVED          | Mutating an approved payment

===============================================================================
PROPAGATION
===============================================================================

Lookup and computation errors raised while assembling a payment are caught at
the class or row boundary, recorded in the batch report, and the offending
contribution is treated as zero.  Validation and conflict errors propagate to
the caller.
"""

from __future__ import annotations

from typing import Any


class PayrollError(Exception):
    """
    Base exception for all payroll kernel errors.

    All subclasses define a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYROLL_ERROR"


# Validation


class PayrollValidationError(PayrollError):
    """Base exception for malformed input."""

    code: str = "VALIDATION_ERROR"


class FormulaValidationError(PayrollValidationError):
    """A formula graph failed structural validation."""

    code: str = "FORMULA_INVALID"

    def __init__(
        self,
        issue_code: str,
        message: str,
        node_id: str | None = None,
        discipline_id: int | None = None,
    ):
        self.issue_code = issue_code
        self.node_id = node_id
        self.discipline_id = discipline_id
        location = f" (node {node_id})" if node_id else ""
        super().__init__(f"Invalid formula graph [{issue_code}]{location}: {message}")


class InvalidInstructorNameError(PayrollValidationError):
    """An instructor identity contains the reserved pairing token."""

    code: str = "INVALID_INSTRUCTOR_NAME"

    def __init__(self, name: str, reason: str = "contains the pairing token"):
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid instructor name {name!r}: {reason}")


class InvalidClassRecordError(PayrollValidationError):
    """A class record violates a field constraint."""

    code: str = "INVALID_CLASS_RECORD"

    def __init__(self, class_id: str, field: str, message: str):
        self.class_id = class_id
        self.field = field
        super().__init__(f"Class {class_id}: {field} {message}")


# Lookup


class PayrollLookupError(PayrollError):
    """Base exception for references to unknown entities."""

    code: str = "LOOKUP_ERROR"


class InstructorNotFoundError(PayrollLookupError):
    """Instructor with the given id or name was not found."""

    code: str = "INSTRUCTOR_NOT_FOUND"

    def __init__(self, instructor_ref: int | str):
        self.instructor_ref = instructor_ref
        super().__init__(f"Instructor not found: {instructor_ref}")


class DisciplineNotFoundError(PayrollLookupError):
    """Discipline with the given id or name was not found."""

    code: str = "DISCIPLINE_NOT_FOUND"

    def __init__(self, discipline_ref: int | str):
        self.discipline_ref = discipline_ref
        super().__init__(f"Discipline not found: {discipline_ref}")


class PeriodNotFoundError(PayrollLookupError):
    """Period has no payroll data (no formulas authored for it)."""

    code: str = "PERIOD_NOT_FOUND"

    def __init__(self, period_id: int):
        self.period_id = period_id
        super().__init__(f"Period not found or has no formulas: {period_id}")


class FormulaNotFoundError(PayrollLookupError):
    """No formula graph exists for the discipline in the period."""

    code: str = "FORMULA_NOT_FOUND"

    def __init__(self, discipline_id: int, period_id: int):
        self.discipline_id = discipline_id
        self.period_id = period_id
        super().__init__(
            f"No formula for discipline {discipline_id} in period {period_id}"
        )


class PaymentNotFoundError(PayrollLookupError):
    """Payment record was not found."""

    code: str = "PAYMENT_NOT_FOUND"

    def __init__(self, payment_ref: Any):
        self.payment_ref = payment_ref
        super().__init__(f"Payment not found: {payment_ref}")


# Computation


class ComputationError(PayrollError):
    """Base exception for evaluator failures."""

    code: str = "COMPUTATION_ERROR"


class MissingInputError(ComputationError):
    """A required input port has no connected edge."""

    code: str = "MISSING_INPUT"

    def __init__(self, node_id: str, port: str):
        self.node_id = node_id
        self.port = port
        super().__init__(f"Node {node_id} has no input connected to port '{port}'")


class UnknownVariableError(ComputationError):
    """A variable node references a key absent from the evaluation inputs."""

    code: str = "UNKNOWN_VARIABLE"

    def __init__(self, node_id: str, key: str):
        self.node_id = node_id
        self.key = key
        super().__init__(f"Variable '{key}' (node {node_id}) is not among the inputs")


# Conflict


class ConflictError(PayrollError):
    """Base exception for uniqueness and state conflicts."""

    code: str = "CONFLICT"


class DuplicateInstructorError(ConflictError):
    """An instructor with the same name already exists."""

    code: str = "DUPLICATE_INSTRUCTOR"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Instructor already exists: {name}")


class PaymentApprovedError(ConflictError):
    """Attempt to modify a payment that has already been approved."""

    code: str = "PAYMENT_APPROVED"

    def __init__(self, instructor_id: int, period_id: int):
        self.instructor_id = instructor_id
        self.period_id = period_id
        super().__init__(
            f"Payment for instructor {instructor_id} in period {period_id} "
            "is approved and cannot be modified"
        )
