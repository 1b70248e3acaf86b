# backend/services/unit_of_work.py
"""Explicit read and write handles over a SQLAlchemy session.

Store reads accept any handle; store writes only accept a TransactionScope
obtained from ``transaction()``, so no write can silently run outside the
caller's transaction.
"""
from contextlib import contextmanager
from typing import Iterator, Union

from sqlalchemy.orm import Session


class ReadOnlyHandle:
    def __init__(self, session: Session):
        self.session = session


class TransactionScope(ReadOnlyHandle):
    def __init__(self, session: Session):
        super().__init__(session)
        self.active = True


Handle = Union[ReadOnlyHandle, TransactionScope]


def require_transaction(handle) -> Session:
    # Writes must carry an open TransactionScope
    if not isinstance(handle, TransactionScope):
        raise TypeError(f"write requires an open TransactionScope, got {type(handle).__name__}")
    if not handle.active:
        raise TypeError("write attempted on a closed TransactionScope")
    return handle.session


@contextmanager
def transaction(session: Session) -> Iterator[TransactionScope]:
    """Commit on normal exit, roll back on any exception and re-raise it."""
    scope = TransactionScope(session)
    try:
        yield scope
        session.commit()
    except BaseException:
        session.rollback()
        raise
    finally:
        scope.active = False
