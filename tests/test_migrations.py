"""The Alembic migration and the ORM models must describe the same schema."""

from __future__ import annotations

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from ledger_db import metadata
from sqlalchemy import create_engine, inspect

ALEMBIC_INI = Path(__file__).resolve().parents[1] / "libs" / "ledger_db" / "alembic.ini"


def test_upgrade_head_matches_orm_metadata(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    url = f"sqlite+pysqlite:///{tmp_path / 'migrated.sqlite3'}"
    monkeypatch.setenv("DATABASE_URL", url)

    command.upgrade(Config(str(ALEMBIC_INI)), "head")

    engine = create_engine(url)
    try:
        insp = inspect(engine)
        for table in metadata.sorted_tables:
            got = {c["name"] for c in insp.get_columns(table.name)}
            assert got == {c.name for c in table.columns}, table.name
        dedup = {ix["name"] for ix in insp.get_indexes("transactions")}
        assert "ix_transactions_dedup" in dedup
    finally:
        engine.dispose()
