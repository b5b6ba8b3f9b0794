"""Database layer - engine, session scope and base classes."""

from payroll_kernel.db.base import Base, TrackedBase
from payroll_kernel.db.engine import (
    create_tables,
    get_engine,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from payroll_kernel.db.types import UTCDateTime

__all__ = [
    "Base",
    "TrackedBase",
    "UTCDateTime",
    "create_tables",
    "get_engine",
    "init_engine_from_url",
    "reset_engine",
    "session_scope",
]
