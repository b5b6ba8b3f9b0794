from payroll_ingestion.services.import_service import ImportService

__all__ = ["ImportService"]
