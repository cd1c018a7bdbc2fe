"""Pytest configuration for test isolation.

Settings are read from the environment and the CLI loads ``.env`` from the
working directory, so a developer's local configuration could leak into
tests. An autouse fixture clears the relevant variables and runs each test
from its own temporary directory.

Database-backed tests get a fresh file-backed SQLite ledger per test.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from ledger_db.client import create_db_engine, create_session_factory
from sqlalchemy.orm import Session, sessionmaker
from statement_ingest.categorize import Categorizer

from tests.helpers.db import bootstrap_sqlite_db

_ENV_VARS = (
    "DATABASE_URL",
    "STATEMENT_INGEST_LOG_LEVEL",
    "STATEMENT_INGEST_OWNER_NAMES",
    "STATEMENT_INGEST_EMPLOYER_NAMES",
    "STATEMENT_INGEST_MAX_UPLOAD_BYTES",
)


@pytest.fixture(autouse=True)
def _isolate_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return bootstrap_sqlite_db(tmp_path / "db" / "ledger.sqlite3")


@pytest.fixture
def session_factory(database_url: str) -> Iterator[sessionmaker[Session]]:
    engine = create_db_engine(database_url=database_url)
    yield create_session_factory(engine=engine)
    engine.dispose()


@pytest.fixture
def categorizer(session_factory: sessionmaker[Session]) -> Categorizer:
    return Categorizer(session_factory)
