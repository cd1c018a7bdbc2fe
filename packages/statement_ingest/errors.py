"""Exception types raised by the ingestion pipeline.

Normalizer failures (``InvalidDateError``/``InvalidAmountError``) are always
recovered locally by skipping the offending line or row. Statement-level
failures (``StatementError`` subclasses) are the terminal result of an
extraction call. ``AccountNotFoundError`` aborts an import batch before any
row is processed. Row-level import outcomes are not exceptions; see
:class:`statement_ingest.models.RowOutcome`.
"""

from __future__ import annotations

from typing import Any


class IngestError(Exception):
    """Base class for all pipeline errors."""


class InvalidDateError(IngestError, ValueError):
    def __init__(self, raw: object) -> None:
        self.raw = raw
        super().__init__(f"invalid date: {raw!r}")


class InvalidAmountError(IngestError, ValueError):
    def __init__(self, raw: object) -> None:
        self.raw = raw
        super().__init__(f"invalid amount: {raw!r}")


class StatementError(IngestError):
    """A statement could not be turned into transactions.

    Carries enough context (name, size, declared type) to diagnose format
    mismatches without echoing the file contents back to the caller.
    """

    def __init__(
        self,
        message: str,
        *,
        file_name: str | None = None,
        file_size: int | None = None,
        file_type: str | None = None,
        details: str | None = None,
    ) -> None:
        self.file_name = file_name
        self.file_size = file_size
        self.file_type = file_type
        self.details = details
        super().__init__(message)

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else ""

    @property
    def debug(self) -> dict[str, Any]:
        info: dict[str, Any] = {
            "fileName": self.file_name,
            "fileSize": self.file_size,
            "fileType": self.file_type,
        }
        if self.details:
            info["details"] = self.details
        return info


class UnsupportedFormatError(StatementError):
    pass


class NoTransactionsFoundError(StatementError):
    pass


class ParseFailureError(StatementError):
    pass


class AccountNotFoundError(IngestError, LookupError):
    def __init__(self, account_name: str) -> None:
        self.account_name = account_name
        super().__init__(
            f'Account "{account_name}" not found. Please create the account first '
            "or select a different account."
        )


class TransactionNotFoundError(IngestError, LookupError):
    def __init__(self, transaction_id: int) -> None:
        self.transaction_id = transaction_id
        super().__init__(f"Transaction not found: {transaction_id}")


__all__ = [
    "IngestError",
    "InvalidDateError",
    "InvalidAmountError",
    "StatementError",
    "UnsupportedFormatError",
    "NoTransactionsFoundError",
    "ParseFailureError",
    "AccountNotFoundError",
    "TransactionNotFoundError",
]
