"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor and session-handling contract for every
    SQLAlchemy-backed store.  Services receive a ``Session`` and use
    ``session.flush()`` -- never ``session.commit()``.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit or roll back.  The caller (``session_scope``, the
    payroll runner, the import service or a test) owns commit/rollback.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """Holds the caller's session; subclasses only flush."""

    def __init__(self, session: Session):
        self.session = session
