"""Data models shared across the ingestion pipeline.

Three layers of records flow through the pipeline:

- :class:`RawTransaction`: strings exactly as an extractor cut them out of a
  statement line or CSV row, plus an optional DEBIT/CREDIT hint. Ephemeral.
- :class:`StatementTransaction`: a normalized row (ISO date, collapsed
  description, signed 2dp ``Decimal``) offered to the user for preview.
- :class:`ImportRow`: the caller-supplied shape accepted by ``import_batch``.
  Fields are optional on purpose; presence is checked per row by the importer
  so a missing field becomes a row outcome, not a batch failure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum, StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

UNKNOWN_CATEGORY = "Unknown"


class TransactionType(StrEnum):
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"

    @classmethod
    def from_token(cls, token: str | None) -> TransactionType | None:
        """Map a statement token (DEBIT/PAYMENT/CREDIT/DEPOSIT) to a hint."""

        if not token:
            return None
        t = token.strip().upper()
        if t in {"DEBIT", "PAYMENT", "WITHDRAWAL"}:
            return cls.DEBIT
        if t in {"CREDIT", "DEPOSIT"}:
            return cls.CREDIT
        return None


@dataclass(frozen=True, slots=True)
class RawTransaction:
    date_text: str
    description_text: str
    amount_text: str
    type_hint: TransactionType | None = None


@dataclass(frozen=True, slots=True)
class StatementTransaction:
    """A normalized transaction extracted from a statement.

    ``date`` is ``YYYY-MM-DD``; ``amount`` is negative for outflows. The
    category is ``"Unknown"`` until a categorizer fills it in.
    """

    date: str
    description: str
    amount: Decimal
    category: str = UNKNOWN_CATEGORY

    def with_category(self, category: str) -> StatementTransaction:
        return StatementTransaction(self.date, self.description, self.amount, category)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "description": self.description,
            "amount": float(self.amount),
            "category": self.category,
        }


@dataclass(frozen=True, slots=True)
class StatementPreview:
    """Result of ``process_statement``: the rows plus where they came from."""

    transactions: tuple[StatementTransaction, ...]
    file_name: str
    file_type: str
    dialect: str
    used_fallback: bool = False

    @property
    def total_count(self) -> int:
        return len(self.transactions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": f"Found {self.total_count} transactions",
            "transactions": [t.to_dict() for t in self.transactions],
            "totalCount": self.total_count,
            "fileName": self.file_name,
            "fileType": self.file_type,
            "dialect": self.dialect,
            "usedFallback": self.used_fallback,
        }


class RowOutcome(Enum):
    IMPORTED = "imported"
    SKIPPED_MISSING_FIELD = "skipped_missing_field"
    SKIPPED_DUPLICATE = "skipped_duplicate"
    SKIPPED_ERROR = "skipped_error"


MAX_IMPORT_ERRORS = 10
MAX_RECATEGORIZE_ERRORS = 5


@dataclass(frozen=True, slots=True)
class ImportResult:
    """Aggregate outcome of one ``import_batch`` call.

    ``errors`` holds at most ``MAX_IMPORT_ERRORS`` messages; ``outcomes`` has
    one entry per input row, in input order.
    """

    imported_count: int
    skipped_count: int
    errors: tuple[str, ...] = ()
    outcomes: tuple[RowOutcome, ...] = field(default=())

    @property
    def total_processed(self) -> int:
        return self.imported_count + self.skipped_count

    @property
    def success(self) -> bool:
        return self.imported_count > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": "Import completed",
            "importedCount": self.imported_count,
            "skippedCount": self.skipped_count,
            "totalProcessed": self.total_processed,
            "errors": list(self.errors),
            "success": self.success,
        }


@dataclass(frozen=True, slots=True)
class RecategorizeResult:
    updated_count: int
    total_count: int
    errors: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "updatedCount": self.updated_count,
            "totalCount": self.total_count,
            "errors": list(self.errors),
        }


class ImportRow(BaseModel):
    """One structured row submitted for import (typically an edited preview)."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    date: str | None = None
    description: str | None = None
    amount: Decimal | str | None = None
    category: str | None = None

    @field_validator("date", "description", "category", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> Any:
        # JSON callers occasionally send numbers or dates for text fields.
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @field_validator("amount", mode="before")
    @classmethod
    def _reject_bool_amount(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("amount must be a number or numeric string")
        if isinstance(v, float | int):
            return Decimal(str(v))
        return v


__all__ = [
    "UNKNOWN_CATEGORY",
    "TransactionType",
    "RawTransaction",
    "StatementTransaction",
    "StatementPreview",
    "RowOutcome",
    "ImportResult",
    "RecategorizeResult",
    "ImportRow",
    "MAX_IMPORT_ERRORS",
    "MAX_RECATEGORIZE_ERRORS",
]
