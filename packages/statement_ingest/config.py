"""Runtime settings for the statement ingestion pipeline.

Values come from the process environment (optionally primed from a local
``.env`` by the CLI via ``python-dotenv``). Nothing here reads the environment
at import time; call :func:`load_settings` at startup and pass the result down.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

DEFAULT_OWNER_NAMES: tuple[str, ...] = ("mitesh chhatbar", "mitesh", "chhatbar")
DEFAULT_EMPLOYER_NAMES: tuple[str, ...] = ("public partnerships llc", "public partnership")
DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024


def _split_names(raw: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    if raw is None:
        return default
    names = tuple(p.strip().lower() for p in raw.split(",") if p.strip())
    return names or default


def _int_or_default(raw: str | None, default: int) -> int:
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"expected an integer byte count, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"byte limit must be positive, got {value}")
    return value


@dataclass(frozen=True, slots=True)
class Settings:
    """Resolved configuration.

    Attributes
    ----------
    database_url:
        SQLAlchemy URL for the ledger database, or ``None`` when unset.
    owner_names:
        Lower-cased names identifying the account owner in P2P descriptions.
    employer_names:
        Lower-cased employer strings that mark a deposit as salary.
    max_upload_bytes:
        Largest statement accepted by ``process_statement``.
    log_level:
        Raw log level string, resolved by ``logging_setup``.
    """

    database_url: str | None = None
    owner_names: tuple[str, ...] = field(default=DEFAULT_OWNER_NAMES)
    employer_names: tuple[str, ...] = field(default=DEFAULT_EMPLOYER_NAMES)
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    log_level: str | None = None


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build :class:`Settings` from ``environ`` (defaults to ``os.environ``)."""

    env = os.environ if environ is None else environ
    return Settings(
        database_url=env.get("DATABASE_URL") or None,
        owner_names=_split_names(env.get("STATEMENT_INGEST_OWNER_NAMES"), DEFAULT_OWNER_NAMES),
        employer_names=_split_names(
            env.get("STATEMENT_INGEST_EMPLOYER_NAMES"), DEFAULT_EMPLOYER_NAMES
        ),
        max_upload_bytes=_int_or_default(
            env.get("STATEMENT_INGEST_MAX_UPLOAD_BYTES"), DEFAULT_MAX_UPLOAD_BYTES
        ),
        log_level=env.get("STATEMENT_INGEST_LOG_LEVEL") or None,
    )


__all__ = [
    "Settings",
    "load_settings",
    "DEFAULT_OWNER_NAMES",
    "DEFAULT_EMPLOYER_NAMES",
    "DEFAULT_MAX_UPLOAD_BYTES",
]
