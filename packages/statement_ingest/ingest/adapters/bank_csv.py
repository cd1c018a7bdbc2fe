"""Column-mapped extractors for bank CSV exports.

Parsing follows RFC 4180 via the stdlib :mod:`csv` module (quoted fields with
embedded commas and newlines, doubled quotes). A UTF-8 byte-order mark is
stripped before anything else. The header row may be preceded by a summary
preamble (Bank of America) and is located by its column names.

Each dialect declares a :class:`CsvColumns` mapping. Columns are named by
lower-cased aliases, tried in order. A dialect has either one signed amount
column or a split debit/credit pair, in which case the amount is
``|credit| - |debit|``.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from decimal import Decimal

from ...errors import InvalidAmountError
from ...logging_setup import get_logger
from ...models import RawTransaction, TransactionType
from ...normalizers import normalize_amount
from .base import StatementExtractor

logger = get_logger("statement_ingest.ingest.adapters.bank_csv")

BOM = "\ufeff"
MIN_FIELDS = 3


def strip_bom(text: str) -> str:
    return text[1:] if text.startswith(BOM) else text


def read_rows(text: str) -> list[list[str]]:
    with io.StringIO(strip_bom(text)) as f:
        return [[cell.strip() for cell in row] for row in csv.reader(f)]


@dataclass(frozen=True, slots=True)
class CsvColumns:
    """Header aliases for each logical column (lower-case).

    With ``fuzzy`` set, an alias matches any header that contains it;
    otherwise the header must equal the alias.
    """

    date: tuple[str, ...]
    description: tuple[str, ...]
    amount: tuple[str, ...] = ("amount",)
    debit: tuple[str, ...] = ()
    credit: tuple[str, ...] = ()
    type: tuple[str, ...] = ()
    fuzzy: bool = False

    def _find(self, header: Sequence[str], aliases: tuple[str, ...]) -> int | None:
        for alias in aliases:
            for idx, name in enumerate(header):
                if name == alias or (self.fuzzy and alias in name):
                    return idx
        return None

    def resolve(self, header: Sequence[str]) -> ColumnIndex | None:
        names = [h.strip().lower() for h in header]
        date_idx = self._find(names, self.date)
        desc_idx = self._find(names, self.description)
        amount_idx = self._find(names, self.amount)
        debit_idx = self._find(names, self.debit) if self.debit else None
        credit_idx = self._find(names, self.credit) if self.credit else None
        if date_idx is None or desc_idx is None:
            return None
        if amount_idx is None and (debit_idx is None or credit_idx is None):
            return None
        return ColumnIndex(
            date=date_idx,
            description=desc_idx,
            amount=amount_idx,
            debit=debit_idx,
            credit=credit_idx,
            type=self._find(names, self.type) if self.type else None,
        )


@dataclass(frozen=True, slots=True)
class ColumnIndex:
    date: int
    description: int
    amount: int | None
    debit: int | None = None
    credit: int | None = None
    type: int | None = None

    @property
    def required_width(self) -> int:
        # Split debit/credit cells may be omitted at the end of a row.
        used = [self.date, self.description]
        if self.amount is not None:
            used.append(self.amount)
        return max(used) + 1


def _cell(row: Sequence[str], idx: int | None) -> str:
    if idx is None or idx >= len(row):
        return ""
    return row[idx]


def split_amount(debit_text: str, credit_text: str) -> Decimal:
    """``|credit| - |debit|``; blank cells count as zero."""

    debit = abs(normalize_amount(debit_text)) if debit_text.strip() else Decimal("0")
    credit = abs(normalize_amount(credit_text)) if credit_text.strip() else Decimal("0")
    return credit - debit


class CsvColumnExtractor(StatementExtractor):
    """Extract rows from a CSV export using a fixed :class:`CsvColumns` map."""

    def __init__(
        self,
        name: str,
        columns: CsvColumns,
        *,
        skip_descriptions: tuple[str, ...] = (),
    ) -> None:
        self.name = name
        self.columns = columns
        self.skip_descriptions = tuple(s.lower() for s in skip_descriptions)

    def locate_header(self, rows: list[list[str]]) -> tuple[int, ColumnIndex] | None:
        for i, row in enumerate(rows):
            if len(row) < MIN_FIELDS:
                continue
            index = self.columns.resolve(row)
            if index is not None:
                return i, index
        return None

    def iter_raw(self, text: str) -> Iterator[RawTransaction]:
        rows = read_rows(text)
        located = self.locate_header(rows)
        if located is None:
            logger.info("%s: header row not found", self.name)
            return
        header_idx, index = located
        yield from self._iter_rows(rows[header_idx + 1 :], index)

    def _iter_rows(self, rows: list[list[str]], index: ColumnIndex) -> Iterator[RawTransaction]:
        for row in rows:
            if len(row) < MIN_FIELDS or len(row) < index.required_width:
                continue
            description = _cell(row, index.description)
            lowered = description.lower()
            if any(s in lowered for s in self.skip_descriptions):
                logger.debug("%s: skipping summary row", self.name)
                continue
            amount_text = self._amount_text(row, index)
            if amount_text is None:
                continue
            yield RawTransaction(
                date_text=_cell(row, index.date),
                description_text=description,
                amount_text=amount_text,
                type_hint=TransactionType.from_token(_cell(row, index.type)),
            )

    def _amount_text(self, row: Sequence[str], index: ColumnIndex) -> str | None:
        if index.amount is not None:
            return _cell(row, index.amount)
        try:
            return str(split_amount(_cell(row, index.debit), _cell(row, index.credit)))
        except InvalidAmountError as exc:
            logger.debug("%s: skipping row: %s", self.name, exc)
            return None


class GenericCsvExtractor(CsvColumnExtractor):
    """Header-inferring extractor for unknown CSV layouts.

    Looks for a row naming a date, a description (or payee) and an amount (or
    a debit/credit pair). Without such a header, rows are read positionally:
    ``date, description, amount`` or ``date, description, debit, credit``.
    """

    def __init__(self) -> None:
        super().__init__(
            "generic_csv",
            CsvColumns(
                date=("date",),
                description=("description", "payee", "memo"),
                amount=("amount",),
                debit=("debit", "withdrawal"),
                credit=("credit", "deposit"),
                fuzzy=True,
            ),
        )

    def iter_raw(self, text: str) -> Iterator[RawTransaction]:
        rows = read_rows(text)
        located = self.locate_header(rows)
        if located is not None:
            header_idx, index = located
            yield from self._iter_rows(rows[header_idx + 1 :], index)
            return
        logger.info("%s: no header row; reading columns by position", self.name)
        for row in rows:
            if len(row) < MIN_FIELDS:
                continue
            if len(row) == MIN_FIELDS:
                index = ColumnIndex(date=0, description=1, amount=2)
            else:
                index = ColumnIndex(date=0, description=1, amount=None, debit=2, credit=3)
            yield from self._iter_rows([row], index)


CHASE_CHECKING_CSV = CsvColumnExtractor(
    "chase_checking_csv",
    CsvColumns(date=("posting date",), description=("description",), type=("details",)),
)

CHASE_CREDIT_CARD_CSV = CsvColumnExtractor(
    "chase_credit_card_csv",
    CsvColumns(date=("post date", "transaction date"), description=("description",)),
)

BOFA_CREDIT_CARD_CSV = CsvColumnExtractor(
    "bofa_credit_card_csv",
    CsvColumns(date=("posted date", "date"), description=("payee", "description")),
)

BOFA_CHECKING_CSV = CsvColumnExtractor(
    "bofa_checking_csv",
    CsvColumns(date=("date",), description=("description",)),
    skip_descriptions=("beginning balance", "ending balance"),
)


__all__ = [
    "CsvColumns",
    "ColumnIndex",
    "CsvColumnExtractor",
    "GenericCsvExtractor",
    "CHASE_CHECKING_CSV",
    "CHASE_CREDIT_CARD_CSV",
    "BOFA_CREDIT_CARD_CSV",
    "BOFA_CHECKING_CSV",
    "read_rows",
    "strip_bom",
    "split_amount",
]
