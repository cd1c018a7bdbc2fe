# ruff: noqa: E501
from __future__ import annotations

import textwrap
from decimal import Decimal

import pytest
from statement_ingest.ingest.adapters.pdf_lines import (
    AppleCardExtractor,
    BofAExtractor,
    ChaseCheckingExtractor,
    ChaseCreditCardExtractor,
    GenericPdfExtractor,
)
from statement_ingest.ingest.dialects import Dialect, detect_csv_dialect, detect_pdf_dialect
from statement_ingest.statement import extract_pdf_transactions


def _dedent(s: str) -> str:
    # Keep internal newlines, but normalize indentation for readability.
    return textwrap.dedent(s).lstrip("\n").rstrip()


APPLE_CARD_TEXT = _dedent(
    """
    Apple Card Customer
    Goldman Sachs Bank USA, Salt Lake City Branch
    Payments
    Date Description Amount
    10/05/2024 ACH Deposit Internet transfer from account ending in 1234 -$500.00
    Total payments for this period -$500.00
    Transactions
    Date Description Daily Cash Amount
    10/03/2024 STARBUCKS STORE 123 SEATTLE WA 2% $0.11 $5.45
    10/04/2024 UBER *TRIP HELP.UBER.COM CA 1% $0.25 $24.80
    Total Daily Cash this month $0.36
    Interest Charged
    10/31/2024 SHOULD NOT APPEAR 2% $0.01 $1.00
    """
)

BOFA_TEXT = _dedent(
    """
    Bank of America, N.A.
    Your Adv Plus Banking
    for October 1, 2024 to October 31, 2024
    Deposits and other additions
    Date Description Amount
    10/02/24 PAYROLL ACME INC DES:PAYROLL 2,500.00
    Total deposits and other additions $2,500.00
    Withdrawals and other subtractions
    Date Description Amount
    10/05/24 CHECKCARD 1004 SAFEWAY #1234
    SAN JOSE CA
    -82.17
    10/07/24 ZELLE PAYMENT TO JOHN DOE -40.00
    """
)

CHASE_CHECKING_TEXT = _dedent(
    """
    JPMorgan Chase Bank, N.A.
    CHECKING SUMMARY Chase Total Checking
    October 1, 2024 through October 31, 2024
    TRANSACTION DETAIL
    DATE DESCRIPTION AMOUNT BALANCE
    Beginning Balance $1,000.00
    10/03 Card Purchase 10/02 Whole Foods Market -54.21 945.79
    10/15 Payroll Direct Deposit ACME 2,000.00 2,945.79
    10/20 Zelle Payment To Jane -25.00 2,920.79
    Ending Balance $2,920.79
    """
)

CHASE_CARD_TEXT = _dedent(
    """
    Chase Freedom
    Opening/Closing Date 09/14/24 - 10/13/24
    ACCOUNT ACTIVITY
    Date of
    Transaction Merchant Name or Transaction Description $ Amount
    PAYMENTS AND OTHER CREDITS
    09/20 Payment Thank You-Mobile -450.00
    PURCHASE
    09/16 NETFLIX.COM 15.49
    09/18 SHELL OIL 57444 SAN JOSE CA 41.20
    TOTAL PURCHASES $56.69
    """
)


def _summary(rows):
    return [(r.date, r.description, r.amount) for r in rows]


def test_apple_card_purchases_are_outflows_and_payments_inflows() -> None:
    rows = AppleCardExtractor().extract(APPLE_CARD_TEXT)
    assert _summary(rows) == [
        ("2024-10-03", "STARBUCKS STORE 123 SEATTLE WA", Decimal("-5.45")),
        ("2024-10-04", "UBER *TRIP HELP.UBER.COM CA", Decimal("-24.80")),
        (
            "2024-10-05",
            "ACH Deposit Internet transfer from account ending in 1234",
            Decimal("500.00"),
        ),
    ]


def test_bofa_single_line_and_wrapped_rows() -> None:
    rows = BofAExtractor().extract(BOFA_TEXT)
    assert _summary(rows) == [
        ("2024-10-02", "PAYROLL ACME INC DES:PAYROLL", Decimal("2500.00")),
        ("2024-10-05", "CHECKCARD 1004 SAFEWAY #1234 SAN JOSE CA", Decimal("-82.17")),
        ("2024-10-07", "ZELLE PAYMENT TO JOHN DOE", Decimal("-40.00")),
    ]


def test_bofa_without_transaction_sections_yields_nothing() -> None:
    text = "Bank of America\n10/02/24 PAYROLL ACME INC 2,500.00"
    assert BofAExtractor().extract(text) == []


def test_chase_checking_uses_statement_year_and_ignores_balance() -> None:
    rows = ChaseCheckingExtractor().extract(CHASE_CHECKING_TEXT, fallback_year=1999)
    assert _summary(rows) == [
        ("2024-10-03", "Card Purchase 10/02 Whole Foods Market", Decimal("-54.21")),
        ("2024-10-15", "Payroll Direct Deposit ACME", Decimal("2000.00")),
        ("2024-10-20", "Zelle Payment To Jane", Decimal("-25.00")),
    ]


def test_chase_credit_card_flips_purchases_and_keeps_payments_positive() -> None:
    rows = ChaseCreditCardExtractor().extract(CHASE_CARD_TEXT)
    assert _summary(rows) == [
        ("2024-09-20", "Payment Thank You-Mobile", Decimal("450.00")),
        ("2024-09-16", "NETFLIX.COM", Decimal("-15.49")),
        ("2024-09-18", "SHELL OIL 57444 SAN JOSE CA", Decimal("-41.20")),
    ]


def test_generic_pdf_patterns_and_filters() -> None:
    text = _dedent(
        """
        Statement 2024
        Date Description Amount
        01/15/2024 GROCERY OUTLET DEBIT 45.00
        01/16/2024 STORE CREDIT CREDIT 12.00
        01/18/2024\tPARKING GARAGE\t-12.00
        01/19/2024 HOLD RELEASE 0.01
        01/20 LOCAL DINER 23.10
        01/31/2024 Total fees 3.00
        2024-02-01 COFFEE ROASTERS -4.50
        short
        """
    )
    rows = GenericPdfExtractor().extract(text)
    assert _summary(rows) == [
        ("2024-01-15", "GROCERY OUTLET", Decimal("-45.00")),
        ("2024-01-16", "STORE CREDIT", Decimal("12.00")),
        ("2024-01-18", "PARKING GARAGE", Decimal("-12.00")),
        ("2024-01-20", "LOCAL DINER", Decimal("23.10")),
        ("2024-02-01", "COFFEE ROASTERS", Decimal("-4.50")),
    ]


def test_impossible_dates_are_skipped_not_fatal() -> None:
    text = "02/30/2024 GHOST MERCHANT 10.00\n03/01/2024 REAL MERCHANT 11.00"
    rows = GenericPdfExtractor().extract(text)
    assert _summary(rows) == [("2024-03-01", "REAL MERCHANT", Decimal("11.00"))]


# ---- dialect detection ----------------------------------------------------------


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        (APPLE_CARD_TEXT, Dialect.APPLE_CARD),
        (BOFA_TEXT, Dialect.BOFA),
        (CHASE_CHECKING_TEXT, Dialect.CHASE_CHECKING),
        (CHASE_CARD_TEXT, Dialect.CHASE_CREDIT_CARD),
        ("Some Credit Union statement", Dialect.GENERIC_PDF),
    ],
)
def test_detect_pdf_dialect(text: str, expected: Dialect) -> None:
    assert detect_pdf_dialect(text) == expected


def test_chase_checking_wins_over_single_keyword_chase_rule() -> None:
    assert detect_pdf_dialect("chase ... checking summary") == Dialect.CHASE_CHECKING
    assert detect_pdf_dialect("chase sapphire") == Dialect.CHASE_CREDIT_CARD


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("Details,Posting Date,Description,Amount,Type,Balance,Check or Slip #", Dialect.CHASE_CHECKING_CSV),
        ("Details,Posting Date,Description,Amount,Balance,Check or Slip", Dialect.CHASE_CHECKING_CSV),
        ("Transaction Date,Post Date,Description,Category,Type,Amount,Memo", Dialect.CHASE_CREDIT_CARD_CSV),
        ("Posted Date,Reference Number,Payee,Address,Amount", Dialect.BOFA_CREDIT_CARD_CSV),
        ("Date,Description,Amount,Running Bal.", Dialect.BOFA_CHECKING_CSV),
        ("When,What,How Much", Dialect.GENERIC_CSV),
    ],
)
def test_detect_csv_dialect(header: str, expected: Dialect) -> None:
    assert detect_csv_dialect(header + "\n") == expected


# ---- fallback chain -------------------------------------------------------------


def test_bank_sniff_without_matching_layout_falls_back_to_generic() -> None:
    text = _dedent(
        """
        Chase Sapphire Reserve
        Activity export
        2024-01-15 Coffee shop downtown -4.50
        2024-01-16 Bookstore purchase -18.00
        """
    )
    assert ChaseCreditCardExtractor().extract(text) == []

    result = extract_pdf_transactions(text)
    assert result.dialect == Dialect.CHASE_CREDIT_CARD
    assert result.used_fallback is True
    assert len(result.transactions) == 2


def test_generic_dialect_does_not_report_fallback() -> None:
    result = extract_pdf_transactions("2024-01-15 Coffee shop downtown -4.50")
    assert result.dialect == Dialect.GENERIC_PDF
    assert result.used_fallback is False
