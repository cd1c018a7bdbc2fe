"""Bank dialect sniffing.

Statements are not self-describing, so the dialect is picked by phrase
co-occurrence in the lower-cased text. Rules are evaluated top to bottom and
the first match wins; there is no scoring. More specific rules must therefore
sit above the broader ones they overlap with (``chase`` + ``checking summary``
before plain ``chase``).

Adding a bank means adding one :class:`DialectRule` here and registering an
extractor for the new :class:`Dialect` in ``statement_ingest.statement``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum


class Dialect(StrEnum):
    APPLE_CARD = "apple_card"
    BOFA = "bofa"
    CHASE_CHECKING = "chase_checking"
    CHASE_CREDIT_CARD = "chase_credit_card"
    GENERIC_PDF = "generic_pdf"
    CHASE_CHECKING_CSV = "chase_checking_csv"
    CHASE_CREDIT_CARD_CSV = "chase_credit_card_csv"
    BOFA_CREDIT_CARD_CSV = "bofa_credit_card_csv"
    BOFA_CHECKING_CSV = "bofa_checking_csv"
    GENERIC_CSV = "generic_csv"


@dataclass(frozen=True, slots=True)
class DialectRule:
    """Select ``dialect`` when every phrase in ``all_of`` occurs in the text."""

    dialect: Dialect
    all_of: tuple[str, ...]

    def matches(self, lowered: str) -> bool:
        return all(phrase in lowered for phrase in self.all_of)


PDF_DIALECT_RULES: tuple[DialectRule, ...] = (
    DialectRule(Dialect.APPLE_CARD, ("apple card", "goldman sachs")),
    DialectRule(Dialect.BOFA, ("bank of america",)),
    DialectRule(Dialect.CHASE_CHECKING, ("chase", "checking summary")),
    DialectRule(Dialect.CHASE_CREDIT_CARD, ("chase",)),
)

CSV_DIALECT_RULES: tuple[DialectRule, ...] = (
    DialectRule(Dialect.CHASE_CHECKING_CSV, ("posting date", "type", "check or slip #")),
    DialectRule(Dialect.CHASE_CREDIT_CARD_CSV, ("transaction date", "category", "post date")),
    DialectRule(Dialect.BOFA_CREDIT_CARD_CSV, ("posted date", "reference number", "payee")),
    DialectRule(Dialect.BOFA_CHECKING_CSV, ("running bal.", "date,description,amount")),
    # Older Chase checking exports lack the "Type" column.
    DialectRule(Dialect.CHASE_CHECKING_CSV, ("posting date", "check or slip")),
)


def detect(text: str, rules: Sequence[DialectRule], default: Dialect) -> Dialect:
    lowered = text.lower()
    for rule in rules:
        if rule.matches(lowered):
            return rule.dialect
    return default


def detect_pdf_dialect(text: str) -> Dialect:
    return detect(text, PDF_DIALECT_RULES, Dialect.GENERIC_PDF)


def detect_csv_dialect(text: str) -> Dialect:
    return detect(text, CSV_DIALECT_RULES, Dialect.GENERIC_CSV)


__all__ = [
    "Dialect",
    "DialectRule",
    "PDF_DIALECT_RULES",
    "CSV_DIALECT_RULES",
    "detect",
    "detect_pdf_dialect",
    "detect_csv_dialect",
]
