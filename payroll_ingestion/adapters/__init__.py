"""Source adapters for schedule ingestion (file I/O only, no DB)."""

from payroll_ingestion.adapters.base import SourceAdapter
from payroll_ingestion.adapters.csv_adapter import CsvSourceAdapter
from payroll_ingestion.adapters.xlsx_adapter import XlsxSourceAdapter

__all__ = [
    "SourceAdapter",
    "CsvSourceAdapter",
    "XlsxSourceAdapter",
]
