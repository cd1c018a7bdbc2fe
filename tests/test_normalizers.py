from __future__ import annotations

from decimal import Decimal

import pytest
from statement_ingest.errors import InvalidAmountError, InvalidDateError
from statement_ingest.models import TransactionType
from statement_ingest.normalizers import (
    clean_description,
    expand_two_digit_year,
    infer_statement_year,
    normalize_amount,
    normalize_date,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("2024-03-05", "2024-03-05"),
        ("03/05/2024", "2024-03-05"),
        ("3/5/2024", "2024-03-05"),
        ("03-05-2024", "2024-03-05"),
        ("3-5-2024", "2024-03-05"),
        ("03/05/24", "2024-03-05"),
        ("3-5-99", "1999-03-05"),
        ('"12/31/2023"', "2023-12-31"),
        ("  02/29/2024 ", "2024-02-29"),
    ],
)
def test_normalize_date_supported_formats(raw: str, expected: str) -> None:
    assert normalize_date(raw) == expected


def test_normalize_date_month_day_uses_fallback_year() -> None:
    assert normalize_date("11/02", fallback_year=2023) == "2023-11-02"


@pytest.mark.parametrize("raw", ["02/30/2024", "13/01/2024", "2023-02-29", "1/2/123", "", "Jan 5", None])
def test_normalize_date_rejects_impossible_or_unknown(raw: str | None) -> None:
    with pytest.raises(InvalidDateError):
        normalize_date(raw)


def test_invalid_date_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        normalize_date("not a date")


def test_two_digit_year_window() -> None:
    assert expand_two_digit_year(50) == 2050
    assert expand_two_digit_year(51) == 1951
    assert expand_two_digit_year(0) == 2000


def test_infer_statement_year_prefers_patterns_then_first_20xx() -> None:
    import re

    text = "Printed 2021\nStatement period for January 1, 2024 to January 31, 2024"
    period = re.compile(r"for\s+[A-Z][a-z]+\s+\d{1,2},\s*(\d{4})\s+to")
    assert infer_statement_year(text, patterns=(period,)) == 2024
    assert infer_statement_year(text) == 2021
    assert infer_statement_year("no year here", default=2019) == 2019


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("45.00", Decimal("45.00")),
        ("-45.00", Decimal("-45.00")),
        ("$1,234.56", Decimal("1234.56")),
        ("-$1,234.56", Decimal("-1234.56")),
        ("($12.30)", Decimal("-12.30")),
        ("+7.5", Decimal("7.50")),
        ("2.005", Decimal("2.01")),
        (12, Decimal("12.00")),
        (19.99, Decimal("19.99")),
        (Decimal("3.14159"), Decimal("3.14")),
    ],
)
def test_normalize_amount(raw, expected: Decimal) -> None:
    assert normalize_amount(raw) == expected


def test_debit_hint_forces_negative_without_double_negation() -> None:
    assert normalize_amount("45.00", TransactionType.DEBIT) == Decimal("-45.00")
    assert normalize_amount("-45.00", TransactionType.DEBIT) == Decimal("-45.00")
    assert normalize_amount("45.00", TransactionType.CREDIT) == Decimal("45.00")


@pytest.mark.parametrize("raw", ["", "abc", "NaN", "inf", "$", None, True])
def test_normalize_amount_rejects_garbage(raw) -> None:
    with pytest.raises(InvalidAmountError):
        normalize_amount(raw)


def test_clean_description_collapses_and_caps() -> None:
    assert clean_description('  "STARBUCKS   #123"\n  SEATTLE ') == "STARBUCKS #123 SEATTLE"
    assert clean_description(None) == ""
    assert len(clean_description("x" * 800)) == 500


def test_transaction_type_tokens() -> None:
    assert TransactionType.from_token("payment") is TransactionType.DEBIT
    assert TransactionType.from_token("Deposit") is TransactionType.CREDIT
    assert TransactionType.from_token("ACH_DEBIT") is None
    assert TransactionType.from_token("") is None
