from payroll_batch.services.runner import PayrollRunner

__all__ = ["PayrollRunner"]
