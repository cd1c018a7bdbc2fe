"""Field normalizers: dates, amounts and descriptions.

Bank exports disagree on nearly every formatting detail, so each normalizer
accepts a small, fixed family of spellings and raises a ``ValueError``
subclass for anything else. Callers (extractors, the importer) treat those
errors as "skip this line/row", never as a reason to abort.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .errors import InvalidAmountError, InvalidDateError
from .models import TransactionType

MAX_DESCRIPTION_LENGTH = 500
CENTS = Decimal("0.01")

# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

# Ordered; the first pattern that matches *and* yields a real calendar date
# wins. Layout tells which group holds the year.
_DATE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^(\d{4})-(\d{2})-(\d{2})$"), "ymd"),
    (re.compile(r"^(\d{2})/(\d{2})/(\d{4})$"), "mdy"),
    (re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2,4})$"), "mdy"),
    (re.compile(r"^(\d{2})-(\d{2})-(\d{4})$"), "mdy"),
    (re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$"), "mdy"),
    (re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{2})$"), "mdy"),
    (re.compile(r"^(\d{1,2})[/-](\d{1,2})$"), "md"),
)


def expand_two_digit_year(yy: int) -> int:
    """``> 50`` maps to the 1900s, everything else to the 2000s."""

    return 1900 + yy if yy > 50 else 2000 + yy


def _year_from_text(text: str) -> int | None:
    if len(text) == 4:
        return int(text)
    if len(text) == 2:
        return expand_two_digit_year(int(text))
    return None


def normalize_date(raw: str | None, fallback_year: int | None = None) -> str:
    """Parse ``raw`` into ``YYYY-MM-DD``.

    Month/day-only inputs take ``fallback_year`` (default: the current year).
    Impossible dates such as ``02/30/2024`` are rejected rather than rolled
    over into the next month.

    Raises
    ------
    InvalidDateError
        When no pattern yields a valid calendar date.
    """

    if raw is None:
        raise InvalidDateError(raw)
    s = raw.replace('"', "").strip()
    if not s:
        raise InvalidDateError(raw)

    for pattern, layout in _DATE_PATTERNS:
        m = pattern.match(s)
        if m is None:
            continue
        if layout == "ymd":
            year: int | None = int(m.group(1))
            month, day = int(m.group(2)), int(m.group(3))
        elif layout == "mdy":
            month, day = int(m.group(1)), int(m.group(2))
            year = _year_from_text(m.group(3))
        else:
            month, day = int(m.group(1)), int(m.group(2))
            year = fallback_year if fallback_year is not None else date.today().year
        if year is None:
            continue
        try:
            return date(year, month, day).isoformat()
        except ValueError:
            continue

    raise InvalidDateError(raw)


_YEAR_RE = re.compile(r"\b(20\d{2})\b")


def infer_statement_year(
    text: str,
    default: int | None = None,
    *,
    patterns: Iterable[re.Pattern[str]] = (),
) -> int:
    """Best-effort statement year for month/day-only transaction dates.

    ``patterns`` are tried first (group 1 holds a 2- or 4-digit year); then
    the first ``20xx`` token anywhere in ``text``; then ``default`` or the
    current year.
    """

    for pattern in patterns:
        m = pattern.search(text)
        if m:
            year = _year_from_text(m.group(1))
            if year is not None:
                return year
    m = _YEAR_RE.search(text)
    if m:
        return int(m.group(1))
    return default if default is not None else date.today().year


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------


def _to_decimal(raw: str) -> Decimal:
    s = raw.strip()
    if not s:
        raise InvalidAmountError(raw)
    negative = False

    # Strip sign, currency symbol and surrounding parentheses in any order so
    # "-($1,234.56)" and "$(1,234.56)" both parse.
    while True:
        changed = False
        if s.startswith("+"):
            s = s[1:].lstrip()
            changed = True
        elif s.startswith("-"):
            negative = True
            s = s[1:].lstrip()
            changed = True
        if s.startswith("$"):
            s = s[1:].lstrip()
            changed = True
        if s.startswith("(") and s.endswith(")") and len(s) >= 2:
            negative = True
            s = s[1:-1].strip()
            changed = True
        if not changed:
            break

    s = s.replace(",", "").replace("$", "").strip()
    try:
        d = Decimal(s)
    except InvalidOperation as exc:
        raise InvalidAmountError(raw) from exc
    if not d.is_finite():
        raise InvalidAmountError(raw)
    return -abs(d) if negative else d


def normalize_amount(
    raw: str | Decimal | int | float | None,
    type_hint: TransactionType | None = None,
) -> Decimal:
    """Parse a currency string into a signed ``Decimal`` rounded to cents.

    A ``DEBIT`` hint forces the result negative (``-abs``), so an amount that
    is already printed negative is not flipped back.

    Raises
    ------
    InvalidAmountError
        For empty, non-numeric, NaN or infinite input.
    """

    if raw is None or isinstance(raw, bool):
        raise InvalidAmountError(raw)
    if isinstance(raw, Decimal):
        if not raw.is_finite():
            raise InvalidAmountError(raw)
        d = raw
    elif isinstance(raw, int | float):
        d = _to_decimal(str(raw))
    else:
        d = _to_decimal(raw.replace('"', ""))

    if type_hint is TransactionType.DEBIT:
        d = -abs(d)
    return d.quantize(CENTS, rounding=ROUND_HALF_UP)


# ---------------------------------------------------------------------------
# Descriptions
# ---------------------------------------------------------------------------


def clean_description(text: str | None, *, max_length: int = MAX_DESCRIPTION_LENGTH) -> str:
    """Collapse whitespace, drop stray quotes, trim, and cap the length."""

    if not text:
        return ""
    s = " ".join(text.replace('"', "").split())
    return s[:max_length].rstrip()


__all__ = [
    "normalize_date",
    "normalize_amount",
    "clean_description",
    "infer_statement_year",
    "expand_two_digit_year",
    "MAX_DESCRIPTION_LENGTH",
]
