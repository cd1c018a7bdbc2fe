"""Line-pattern extractors for PDF statements.

Each dialect is an ordered tuple of :class:`LinePattern` objects. Every line of
the extracted text is tried against the patterns in order; the first pattern
that matches decides the line and no further patterns are tried. Patterns use
named groups:

- ``date``: the transaction date as printed
- ``description``: free text between the date and the amount
- ``amount``: the money column
- ``type`` (optional): a DEBIT/CREDIT/PAYMENT/DEPOSIT token

Lines shorter than ten characters are ignored, as are matches whose collapsed
description is under three characters or starts with a column-header word.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, replace
from decimal import Decimal

from ...logging_setup import get_logger
from ...models import RawTransaction, TransactionType
from ...normalizers import clean_description, infer_statement_year
from .base import StatementExtractor

logger = get_logger("statement_ingest.ingest.adapters.pdf_lines")

MIN_LINE_LENGTH = 10
MIN_DESCRIPTION_LENGTH = 3
HEADER_WORD_RE = re.compile(r"^(date|description|amount|transaction|balance|total)", re.IGNORECASE)

_MONTHS = (
    "January|February|March|April|May|June|July|August|September|October|November|December"
)


@dataclass(frozen=True, slots=True)
class LinePattern:
    name: str
    regex: re.Pattern[str]

    def match(self, line: str) -> re.Match[str] | None:
        return self.regex.match(line)


def _pattern(name: str, source: str, flags: int = 0) -> LinePattern:
    return LinePattern(name, re.compile(source, flags))


class LinePatternExtractor(StatementExtractor):
    """Scan statement lines with an ordered list of patterns.

    ``section_start``/``section_end`` optionally bound the scan to the
    transaction table; when a start marker is configured but absent the
    extractor yields nothing, which lets the caller fall back to the generic
    extractor.
    """

    patterns: tuple[LinePattern, ...] = ()
    section_start: re.Pattern[str] | None = None
    section_end: re.Pattern[str] | None = None
    skip_prefixes: tuple[str, ...] = ()
    year_patterns: tuple[re.Pattern[str], ...] = ()

    def statement_year(self, text: str, fallback_year: int | None) -> int | None:
        return infer_statement_year(text, fallback_year, patterns=self.year_patterns)

    def section_lines(self, text: str) -> list[str]:
        lines = text.splitlines()
        if self.section_start is None:
            return lines
        start = next((i for i, ln in enumerate(lines) if self.section_start.search(ln)), None)
        if start is None:
            logger.info("%s: transaction section header not found", self.name)
            return []
        body = lines[start + 1 :]
        if self.section_end is not None:
            for i, ln in enumerate(body):
                if self.section_end.search(ln):
                    return body[:i]
        return body

    def tidy_description(self, description: str, date_text: str) -> str:
        return description

    def match_line(self, line: str) -> RawTransaction | None:
        for pattern in self.patterns:
            m = pattern.match(line)
            if m is None:
                continue
            groups = m.groupdict()
            date_text = groups["date"]
            description = self.tidy_description(clean_description(groups["description"]), date_text)
            if len(description) < MIN_DESCRIPTION_LENGTH or HEADER_WORD_RE.match(description):
                logger.debug("%s: discarding header-like line (pattern=%s)", self.name, pattern.name)
                return None
            return RawTransaction(
                date_text=date_text,
                description_text=description,
                amount_text=groups["amount"],
                type_hint=TransactionType.from_token(groups.get("type")),
            )
        return None

    def iter_raw(self, text: str) -> Iterator[RawTransaction]:
        for line in self.section_lines(text):
            stripped = line.strip()
            if len(stripped) < MIN_LINE_LENGTH:
                continue
            if self.skip_prefixes and stripped.startswith(self.skip_prefixes):
                continue
            raw = self.match_line(line)
            if raw is not None:
                yield raw


# ---------------------------------------------------------------------------
# Bank-specific dialects
# ---------------------------------------------------------------------------


class AppleCardExtractor(LinePatternExtractor):
    """Apple Card (Goldman Sachs) monthly statements.

    Purchases are listed under "Transactions" with a Daily Cash column and
    printed as positive amounts; they are outflows. Payments are listed under
    "Payments" with a leading ``-$`` and may wrap across lines; they are
    inflows to the card account.
    """

    name = "apple_card"
    patterns = (
        _pattern(
            "purchase",
            r"^\s*(?P<date>\d{2}/\d{2}/\d{4})\s*(?P<description>.+?)\s*\d+%\s*\$[\d,.]+\s*"
            r"\$(?P<amount>[\d,]+\.\d{2})\s*$",
        ),
    )
    section_start = re.compile(r"Date\s*Description\s*Daily\s*Cash\s*Amount", re.IGNORECASE)
    section_end = re.compile(r"Interest\s+Charged", re.IGNORECASE)

    _payments_header = re.compile(r"Payments\s*\n\s*Date\s*Description\s*Amount", re.IGNORECASE)
    _payment = re.compile(
        r"(?P<date>\d{2}/\d{2}/\d{4})(?P<description>[\s\S]+?)(?P<amount>-\$[\d,]+\.\d{2})"
    )

    def iter_raw(self, text: str) -> Iterator[RawTransaction]:
        for raw in super().iter_raw(text):
            yield replace(raw, type_hint=TransactionType.DEBIT)
        yield from self._iter_payments(text)

    def _iter_payments(self, text: str) -> Iterator[RawTransaction]:
        header = self._payments_header.search(text)
        if header is None:
            return
        block = text[header.end() :]
        purchases = self.section_start.search(block) if self.section_start else None
        if purchases is not None:
            block = block[: purchases.start()]
        for m in self._payment.finditer(block):
            description = clean_description(m.group("description"))
            if len(description) < MIN_DESCRIPTION_LENGTH:
                continue
            yield RawTransaction(
                date_text=m.group("date"),
                description_text=description,
                amount_text=m.group("amount"),
                type_hint=TransactionType.CREDIT,
            )

    def adjust_amount(self, raw: RawTransaction, description: str, amount: Decimal) -> Decimal:
        if raw.type_hint is TransactionType.CREDIT:
            return abs(amount)
        return -abs(amount)


class BofAExtractor(LinePatternExtractor):
    """Bank of America deposit account statements.

    Rows start with an ``MM/DD/YY`` date. The description may wrap onto
    following lines, with the signed amount alone on the last line of the
    row; single-line rows are matched directly.
    """

    name = "bofa"
    patterns = (
        _pattern(
            "single_line",
            r"^\s*(?P<date>\d{2}/\d{2}/\d{2})\s+(?P<description>.+?)\s+"
            r"(?P<amount>-?\$?[\d,]+\.\d{2})\s*$",
        ),
    )
    year_patterns = (re.compile(r"for\s+[A-Z][a-z]+\s+\d{1,2},\s*(\d{4})\s+to"),)

    _sections = re.compile(
        r"^\s*(Deposits and other additions|Withdrawals and other subtractions)", re.MULTILINE
    )
    _date_start = re.compile(r"^(?P<date>\d{2}/\d{2}/\d{2})(?:\s+(?P<rest>.*))?$")
    _amount_only = re.compile(r"^-?\$?[\d,]+\.\d{2}$")
    max_continuation_lines = 4

    def iter_raw(self, text: str) -> Iterator[RawTransaction]:
        if not self._sections.search(text):
            logger.info("%s: no deposits/withdrawals section found", self.name)
            return
        lines = [ln.strip() for ln in text.splitlines()]
        i = 0
        while i < len(lines):
            line = lines[i]
            if len(line) >= MIN_LINE_LENGTH:
                raw = self.match_line(line)
                if raw is not None:
                    yield raw
                    i += 1
                    continue
            start = self._date_start.match(line)
            if start is None:
                i += 1
                continue
            raw, consumed = self._wrapped_row(start, lines, i + 1)
            if raw is not None:
                yield raw
            i += consumed + 1

    def _wrapped_row(
        self, start: re.Match[str], lines: list[str], first: int
    ) -> tuple[RawTransaction | None, int]:
        parts = [start.group("rest") or ""]
        end = min(len(lines), first + self.max_continuation_lines)
        for j in range(first, end):
            nxt = lines[j]
            if self._amount_only.match(nxt):
                description = clean_description(" ".join(parts))
                if len(description) < MIN_DESCRIPTION_LENGTH or HEADER_WORD_RE.match(description):
                    return None, j - first + 1
                raw = RawTransaction(start.group("date"), description, nxt)
                return raw, j - first + 1
            if self._date_start.match(nxt):
                break
            parts.append(nxt)
        return None, 0


class ChaseCheckingExtractor(LinePatternExtractor):
    """Chase checking statements (``DATE DESCRIPTION AMOUNT BALANCE`` table).

    Amounts are already signed; the running balance column is ignored.
    """

    name = "chase_checking"
    patterns = (
        _pattern(
            "with_balance",
            r"^\s*(?P<date>\d{2}/\d{2})\s*(?P<description>.+?)\s+(?P<amount>-?\$?[\d,]*\d\.\d{2})"
            r"\s+-?\$?[\d,]*\d\.\d{2}\s*$",
        ),
        _pattern(
            "amount_only",
            r"^\s*(?P<date>\d{2}/\d{2})\s*(?P<description>.+?)\s+(?P<amount>-?\$?[\d,]*\d\.\d{2})\s*$",
        ),
    )
    section_start = re.compile(r"DATE\s*DESCRIPTION\s*AMOUNT\s*BALANCE", re.IGNORECASE)
    skip_prefixes = ("Ending Balance", "Beginning Balance")
    year_patterns = (re.compile(rf"(?:{_MONTHS})\s+\d{{1,2}},\s*(\d{{4}})"),)

    def tidy_description(self, description: str, date_text: str) -> str:
        # Some layouts repeat the posting date at the start of the description.
        if description.startswith(date_text):
            return description[len(date_text) :].strip()
        return description


class ChaseCreditCardExtractor(LinePatternExtractor):
    """Chase credit card statements (ACCOUNT ACTIVITY table).

    Purchases print positive and credits negative; both are flipped so that
    purchases become outflows. "Payment Thank You" rows are always inflows.
    """

    name = "chase_credit_card"
    patterns = (
        _pattern(
            "activity",
            r"^\s*(?P<date>\d{2}/\d{2})\s+(?P<description>.+?)\s*(?P<amount>-?[\d,]+\.\d{2})\s*$",
        ),
    )
    section_start = re.compile(r"Merchant\s+Name\s+or\s+Transaction\s+Description", re.IGNORECASE)
    skip_prefixes = ("TOTAL",)
    year_patterns = (re.compile(r"Opening/Closing\s+Date\s*\d{2}/\d{2}/(\d{2})"),)

    def adjust_amount(self, raw: RawTransaction, description: str, amount: Decimal) -> Decimal:
        if "payment thank you" in description.lower():
            return abs(amount)
        return -amount


# ---------------------------------------------------------------------------
# Generic fallback
# ---------------------------------------------------------------------------

_AMOUNT = r"[-+]?\$?[-+]?[\d,]+\.\d{2}"
_DATE_ANY = r"\d{1,2}[/-]\d{1,2}(?:[/-]\d{2,4})?"


class GenericPdfExtractor(LinePatternExtractor):
    """Bank-agnostic patterns used when no dialect matched or a dialect's
    strict patterns found nothing."""

    name = "generic_pdf"
    patterns = (
        _pattern(
            "iso_date",
            rf"^\s*(?P<date>\d{{4}}-\d{{2}}-\d{{2}})\s+(?P<description>.+?)\s+(?P<amount>{_AMOUNT})\s*$",
        ),
        _pattern(
            "typed",
            rf"^\s*(?P<date>{_DATE_ANY})\s+(?P<description>.+?)\s+"
            rf"(?P<type>DEBIT|CREDIT|PAYMENT|DEPOSIT)\s+(?P<amount>{_AMOUNT})\s*$",
            re.IGNORECASE,
        ),
        _pattern(
            "tab_separated",
            rf"^\s*(?P<date>{_DATE_ANY})\t+(?P<description>[^\t]+?)\t+(?P<amount>{_AMOUNT})\s*$",
        ),
        _pattern(
            "full_date",
            rf"^\s*(?P<date>\d{{1,2}}[/-]\d{{1,2}}[/-]\d{{2,4}})\s+(?P<description>.+?)\s+"
            rf"(?P<amount>{_AMOUNT})\s*$",
        ),
        _pattern(
            "month_day",
            rf"^\s*(?P<date>\d{{1,2}}/\d{{1,2}})\s+(?P<description>.+?)\s+(?P<amount>{_AMOUNT})\s*$",
        ),
    )


__all__ = [
    "LinePattern",
    "LinePatternExtractor",
    "AppleCardExtractor",
    "BofAExtractor",
    "ChaseCheckingExtractor",
    "ChaseCreditCardExtractor",
    "GenericPdfExtractor",
    "HEADER_WORD_RE",
    "MIN_LINE_LENGTH",
]
