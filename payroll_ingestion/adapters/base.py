"""
Source adapter protocol.

Contract:
    SourceAdapter.read() yields one dict per schedule row (streaming), keyed
    by the sheet's header cells.

Architecture: payroll_ingestion/adapters. File I/O only, no DB or kernel imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator, Protocol, runtime_checkable


@runtime_checkable
class SourceAdapter(Protocol):
    """Protocol for reading schedule exports into row dicts."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        """Yield one dict per source row. Streams; does not load entire file."""
        ...
