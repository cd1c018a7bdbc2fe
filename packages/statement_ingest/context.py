"""Process-wide handles for the pipeline.

Build one :class:`LedgerContext` at startup and pass it to whatever needs the
database. It replaces module-level singletons: the engine, the session
factory and the categorization cache all hang off this object.
"""

from __future__ import annotations

from dataclasses import dataclass

from ledger_db.client import create_db_engine, create_schema, create_session_factory
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .categorize import Categorizer
from .config import Settings, load_settings


@dataclass(slots=True)
class LedgerContext:
    engine: Engine
    session_factory: sessionmaker[Session]
    categorizer: Categorizer
    settings: Settings

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, *, database_url: str | None = None
    ) -> LedgerContext:
        """Create engine, session factory and categorizer.

        ``database_url`` overrides ``settings.database_url``; when both are
        unset, ``DATABASE_URL`` is consulted and a ``RuntimeError`` raised if
        it is missing too.
        """

        settings = settings or load_settings()
        engine = create_db_engine(database_url=database_url or settings.database_url)
        factory = create_session_factory(engine=engine)
        categorizer = Categorizer(
            factory,
            owner_names=settings.owner_names,
            employer_names=settings.employer_names,
        )
        return cls(engine=engine, session_factory=factory, categorizer=categorizer, settings=settings)

    def create_schema(self) -> None:
        create_schema(self.engine)

    def close(self) -> None:
        self.engine.dispose()


__all__ = ["LedgerContext"]
