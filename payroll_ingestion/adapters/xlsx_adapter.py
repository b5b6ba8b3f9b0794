"""
XLSX source adapter for the weekly schedule export.

The first non-empty row (after ``skip_rows``) is the header.  Cell values
are passed through as openpyxl returns them, so dates and times arrive as
``datetime`` / ``time`` objects and counts as numbers; blank cells become
empty strings and fully blank rows are dropped.

source_options:
  sheet: 0-based sheet index (int) or sheet name (str). Default: active sheet.
  skip_rows: rows to skip at the top of the sheet. Default: 0.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Iterator


def _header_cell(value: Any, index: int) -> str:
    if value is None:
        return f"Column_{index + 1}"
    s = re.sub(r"\s+", " ", str(value)).strip()
    return s or f"Column_{index + 1}"


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, float) and value == int(value):
        return int(value)
    return value


class XlsxSourceAdapter:
    """Read .xlsx schedule exports as one dict per row."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        try:
            import openpyxl
        except ImportError as e:
            raise ImportError("XLSX support requires openpyxl. Install with: pip install openpyxl") from e

        wb = openpyxl.load_workbook(source_path, read_only=True, data_only=True)
        try:
            sheet = self._get_sheet(wb, options)
            skip_rows = int(options.get("skip_rows", 0))

            headers: list[str] | None = None
            for values in sheet.iter_rows(min_row=1 + skip_rows, values_only=True):
                cells = [_cell(v) for v in values]
                if not any(c != "" for c in cells):
                    continue
                if headers is None:
                    headers = []
                    for i, v in enumerate(values):
                        key = base = _header_cell(v, i)
                        # Dedupe duplicate headers
                        cnt = 0
                        while key in headers:
                            cnt += 1
                            key = f"{base}_{cnt}"
                        headers.append(key)
                    continue
                yield dict(zip(headers, cells))
        finally:
            wb.close()

    def _get_sheet(self, wb: Any, options: dict[str, Any]) -> Any:
        sheet_ref = options.get("sheet")
        if sheet_ref is None:
            return wb.active
        if isinstance(sheet_ref, int):
            return wb.worksheets[sheet_ref]
        return wb[sheet_ref]
