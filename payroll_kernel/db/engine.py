"""
Module: payroll_kernel.db.engine
Responsibility: The process-wide engine behind ``PayrollSettings.database_url``
    and the commit-or-rollback scope that payroll work runs in.
Architecture position: Kernel > DB.  ``create_tables`` imports
    payroll_kernel.models so every table is registered.

Engine lifecycle:
    - ``init_engine_from_url`` with the URL already in use returns the
      current engine; any other URL disposes it and opens a new one.
    - ``sqlite:///:memory:`` shares a single connection (StaticPool) so
      every session sees the same tables.  SQLite files and PostgreSQL
      (``postgres`` extra, psycopg2) get a regular pool.

Services only flush.  ``session_scope`` is the one place payroll data is
committed or rolled back.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from payroll_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_engine_url: str | None = None
_sessions: sessionmaker[Session] | None = None


def init_engine_from_url(database_url: str, echo: bool = False) -> Engine:
    """Open (or reuse) the engine for ``database_url``."""
    global _engine, _engine_url, _sessions

    if _engine is not None and _engine_url == database_url:
        return _engine
    reset_engine()

    url = make_url(database_url)
    dialect = url.get_backend_name()
    options: dict[str, Any] = {"echo": echo}
    if dialect == "sqlite":
        options["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
    else:
        options["pool_pre_ping"] = True
        options["isolation_level"] = "READ COMMITTED"

    _engine = create_engine(url, **options)
    _engine_url = database_url
    _sessions = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info("engine_initialized", extra={"dialect": dialect, "database": url.database})
    return _engine


def get_engine() -> Engine:
    """
    Raises:
        RuntimeError: ``init_engine_from_url`` has not been called.
    """
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    One transaction on the current engine.

    Commits when the block exits normally; on an exception rolls back and
    re-raises.  The session is always closed.

    Raises:
        RuntimeError: ``init_engine_from_url`` has not been called.
    """
    if _sessions is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    session = _sessions()
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create any missing payroll tables on the current engine."""
    from payroll_kernel import models  # noqa: F401  registers tables
    from payroll_kernel.db.base import Base

    Base.metadata.create_all(get_engine())


def reset_engine() -> None:
    """Dispose the current engine, if any."""
    global _engine, _engine_url, _sessions

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _engine_url = None
    _sessions = None
