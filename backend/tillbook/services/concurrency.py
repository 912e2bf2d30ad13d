# Overview: Unit-of-work and row-locking helpers shared by every mutating service.

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import PersistenceFailure, TillbookError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    On SQLite the write lock comes from BEGIN IMMEDIATE in run_atomic().
    """
    return query.with_for_update()


def _begin_write() -> None:
    if db.engine.dialect.name == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))


def run_atomic(func):
    """
    Execute func as a single all-or-nothing unit of work.

    - SQLite: BEGIN IMMEDIATE takes the database write lock up front, so
      concurrent writers serialize and check-then-act sequences cannot
      interleave.
    - Any TillbookError rolls back and propagates unchanged.
    - Storage errors (including optimistic lock conflicts) roll back and
      surface as PersistenceFailure. Nothing is retried here; retrying is
      the caller's decision.
    """
    try:
        _begin_write()
        result = func()
        db.session.commit()
        return result
    except TillbookError:
        db.session.rollback()
        raise
    except (SQLAlchemyError, StaleDataError) as exc:
        db.session.rollback()
        raise PersistenceFailure(
            "Storage error; no changes were saved",
            details={"reason": exc.__class__.__name__},
        ) from exc
    except Exception:
        db.session.rollback()
        raise
