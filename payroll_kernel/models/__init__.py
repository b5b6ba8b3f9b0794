"""ORM models for the payroll kernel."""

from payroll_kernel.models.catalog import (
    DisciplineModel,
    InstructorModel,
    instructor_disciplines,
)
from payroll_kernel.models.formula import FormulaModel
from payroll_kernel.models.instructor_data import (
    CategoryModel,
    CoverModel,
    ExtraPayModel,
    PenaltyModel,
)
from payroll_kernel.models.payment import PaymentModel
from payroll_kernel.models.schedule import ClassModel

__all__ = [
    "CategoryModel",
    "ClassModel",
    "CoverModel",
    "DisciplineModel",
    "ExtraPayModel",
    "FormulaModel",
    "InstructorModel",
    "PaymentModel",
    "PenaltyModel",
    "instructor_disciplines",
]
