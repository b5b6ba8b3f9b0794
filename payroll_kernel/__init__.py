"""
Payroll Kernel

Instructor payroll core:
- Immutable formula graphs authored per discipline and period
- Typed exceptions and structured JSON logging
- Frozen domain DTOs and store protocols
- SQLAlchemy models and flush-only services behind those protocols
"""

__version__ = "0.1.0"
