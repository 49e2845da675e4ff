"""Helpers for talking to the SQL backend."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import exc as sa_exc
from sqlalchemy import text

from domainvault.core.errors import BackendUnavailable

logger = logging.getLogger(__name__)


def is_connectivity_error(exc: BaseException) -> bool:
    """True when the failure means the backend could not be reached in time."""
    if isinstance(exc, (sa_exc.OperationalError, sa_exc.TimeoutError, sa_exc.InterfaceError)):
        return True
    if isinstance(exc, sa_exc.DBAPIError) and exc.connection_invalidated:
        return True
    return False


@contextmanager
def backend_guard(session, operation: str) -> Iterator[None]:
    """Roll back and re-raise connectivity failures as BackendUnavailable."""
    try:
        yield
    except sa_exc.SQLAlchemyError as exc:
        session.rollback()
        if is_connectivity_error(exc):
            logger.error("Backend unavailable during %s: %s", operation, exc)
            raise BackendUnavailable(f"storage error: {exc.__class__.__name__}") from exc
        raise


def ping(session) -> None:
    """Run a trivial query so connection problems surface early."""
    with backend_guard(session, "ping"):
        session.execute(text("SELECT 1"))


def dialect_name(session) -> str:
    return session.get_bind().dialect.name


def insert_statement(session, table):
    """Dialect ``INSERT`` that supports conflict clauses, or None when unsupported."""
    name = dialect_name(session)
    if name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    elif name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif name in {"mysql", "mariadb"}:
        from sqlalchemy.dialects.mysql import insert
    else:
        return None
    return insert(table)


def insert_ignore(session, table, values: dict, index_elements: list[str]) -> None:
    """Insert a row unless its key already exists; never touches an existing row."""
    stmt = insert_statement(session, table)
    if stmt is None:
        try:
            with session.begin_nested():
                session.execute(table.insert().values(**values))
        except sa_exc.IntegrityError:
            pass
        return
    stmt = stmt.values(**values)
    if dialect_name(session) in {"mysql", "mariadb"}:
        # No-op update on the key column keeps the existing row untouched.
        key = index_elements[0]
        stmt = stmt.on_duplicate_key_update({key: stmt.inserted[key]})
    else:
        stmt = stmt.on_conflict_do_nothing(index_elements=index_elements)
    session.execute(stmt)
