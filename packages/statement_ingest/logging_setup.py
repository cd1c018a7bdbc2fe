"""Logging configuration for the ``statement_ingest`` package.

Two public helpers:

- ``configure_logging(...)``: attach one ``StreamHandler`` to the package
  logger (``"statement_ingest"``). Entrypoints (the CLI, a host web app) call
  it once at startup; repeated calls only adjust the level.
- ``get_logger(name)``: return a logger, attaching a ``NullHandler`` to the
  package logger while nothing has been configured so library use stays quiet.

Pipeline modules never attach handlers themselves. Statement contents are not
logged; extraction logs carry counts, dialect names and file metadata only.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PKG_LOGGER_NAME = "statement_ingest"
LOG_LEVEL_ENV = "STATEMENT_INGEST_LOG_LEVEL"
DEFAULT_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_handler: logging.Handler | None = None


def parse_level(level: int | str | None) -> int:
    """Resolve ``level`` (int, name, or numeric string) to a logging level.

    ``None`` falls back to ``STATEMENT_INGEST_LOG_LEVEL`` and then ``INFO``.
    Unknown names resolve to ``INFO`` rather than raising.
    """

    if isinstance(level, int):
        return level
    if level is None:
        env_val = os.getenv(LOG_LEVEL_ENV)
        return parse_level(env_val) if env_val else logging.INFO
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> logging.Logger:
    """Configure the package logger and return it.

    The first call installs the handler; later calls only update the level so
    a host application can raise verbosity without duplicating output.
    """

    global _handler
    logger = logging.getLogger(PKG_LOGGER_NAME)
    resolved = parse_level(level)

    if _handler is None:
        for h in list(logger.handlers):
            if isinstance(h, logging.NullHandler):
                logger.removeHandler(h)
        _handler = logging.StreamHandler(stream)
        _handler.setFormatter(logging.Formatter(fmt or DEFAULT_FORMAT))
        logger.addHandler(_handler)
        # Avoid double emission via the root logger.
        logger.propagate = False

    _handler.setLevel(resolved)
    logger.setLevel(resolved)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)`` with library-safe defaults."""

    pkg_logger = logging.getLogger(PKG_LOGGER_NAME)
    if _handler is None and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "parse_level", "PKG_LOGGER_NAME"]
