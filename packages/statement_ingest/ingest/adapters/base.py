"""Shared extractor contract.

An extractor turns statement text into :class:`RawTransaction` tuples
(``iter_raw``) and then into normalized :class:`StatementTransaction` rows
(``extract``). Normalization failures drop the row; they never abort the
statement. Rows whose amount is within a cent of zero are treated as noise
(balance lines, zero-dollar holds) and dropped as well.
"""

from __future__ import annotations

from collections.abc import Iterator
from decimal import Decimal

from ...errors import InvalidAmountError, InvalidDateError
from ...logging_setup import get_logger
from ...models import RawTransaction, StatementTransaction
from ...normalizers import clean_description, normalize_amount, normalize_date

logger = get_logger("statement_ingest.ingest.adapters")

NOISE_THRESHOLD = Decimal("0.01")


class StatementExtractor:
    """Base class for one dialect's extraction rules.

    Subclasses implement :meth:`iter_raw` and may override
    :meth:`statement_year` (for month/day-only dates) and
    :meth:`adjust_amount` (to settle the sign convention of the dialect).
    """

    name: str = "base"

    def iter_raw(self, text: str) -> Iterator[RawTransaction]:
        raise NotImplementedError

    def statement_year(self, text: str, fallback_year: int | None) -> int | None:
        return fallback_year

    def adjust_amount(self, raw: RawTransaction, description: str, amount: Decimal) -> Decimal:
        return amount

    def normalize(self, raw: RawTransaction, year: int | None) -> StatementTransaction | None:
        try:
            iso_date = normalize_date(raw.date_text, year)
            amount = normalize_amount(raw.amount_text, raw.type_hint)
        except (InvalidDateError, InvalidAmountError) as exc:
            logger.debug("%s: skipping row: %s", self.name, exc)
            return None
        description = clean_description(raw.description_text)
        if not description:
            return None
        amount = self.adjust_amount(raw, description, amount)
        return StatementTransaction(date=iso_date, description=description, amount=amount)

    def extract(self, text: str, *, fallback_year: int | None = None) -> list[StatementTransaction]:
        year = self.statement_year(text, fallback_year)
        out: list[StatementTransaction] = []
        for raw in self.iter_raw(text):
            tx = self.normalize(raw, year)
            if tx is None:
                continue
            if abs(tx.amount) <= NOISE_THRESHOLD:
                logger.debug("%s: dropping near-zero amount row", self.name)
                continue
            out.append(tx)
        logger.info("%s: extracted %d transactions", self.name, len(out))
        return out


__all__ = ["StatementExtractor", "NOISE_THRESHOLD"]
