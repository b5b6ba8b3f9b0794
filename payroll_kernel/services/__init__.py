"""SQLAlchemy-backed implementations of the payroll store protocols."""

from payroll_kernel.services.class_service import ClassService
from payroll_kernel.services.formula_service import FormulaService
from payroll_kernel.services.instructor_service import DisciplineService, InstructorService
from payroll_kernel.services.payment_service import PaymentService

__all__ = [
    "ClassService",
    "DisciplineService",
    "FormulaService",
    "InstructorService",
    "PaymentService",
]
