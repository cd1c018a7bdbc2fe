"""SQLAlchemy engine/session helpers for the ledger database.

Usage
-----
from ledger_db.client import create_session_factory, session_scope

factory = create_session_factory(database_url="sqlite:///ledger.db")
with session_scope(factory) as s:
    s.execute(...)

There is no module-level engine: callers build one factory per process and
pass it to whatever needs database access.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .models.ledger import Base


def resolve_database_url(override: str | None = None) -> str:
    url = override or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set; cannot initialize database client")
    return url


def create_db_engine(*, database_url: str | None = None, echo: bool = False) -> Engine:
    """Create a SQLAlchemy engine for ``database_url`` (or ``DATABASE_URL``)."""

    url = resolve_database_url(database_url)
    engine = create_engine(url, pool_pre_ping=True, echo=echo)
    if engine.dialect.name == "sqlite":
        # SQLite serializes writers; wait on locks instead of failing fast so
        # concurrent imports queue up behind each other.
        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_conn, _):  # pragma: no cover - tiny bridge
            dbapi_conn.execute("PRAGMA busy_timeout = 5000")

    return engine


def create_session_factory(
    *, database_url: str | None = None, engine: Engine | None = None
) -> sessionmaker[Session]:
    """Return a session factory bound to ``engine`` (created when omitted)."""

    bound = engine if engine is not None else create_db_engine(database_url=database_url)
    return sessionmaker(bind=bound, expire_on_commit=False, class_=Session)


def create_schema(engine: Engine) -> None:
    """Create all ledger tables that do not exist yet (dev/test convenience)."""

    Base.metadata.create_all(bind=engine)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "resolve_database_url",
    "create_db_engine",
    "create_session_factory",
    "create_schema",
    "session_scope",
]
