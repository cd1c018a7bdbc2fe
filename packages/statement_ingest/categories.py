"""Category vocabulary and helpers.

Categories are plain strings: any label a user types can be attached to a
transaction. The rule cascade, however, only ever emits members of
:class:`BaseCategory`, and reporting partitions those labels into income and
income-excluded sets below. Keep the three in sync when adding a rule.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from ledger_db.models.ledger import Account, LedgerTransaction
from sqlalchemy import or_, select
from sqlalchemy.orm import Session


class BaseCategory(StrEnum):
    FOOD_AND_DINING = "Food & Dining"
    TRANSPORTATION = "Transportation"
    SHOPPING = "Shopping"
    BILLS_AND_UTILITIES = "Bills & Utilities"
    ENTERTAINMENT = "Entertainment"
    HEALTHCARE = "Healthcare"
    EDUCATION = "Education"
    TRAVEL = "Travel"
    INCOME = "Income"
    SALARY_INCOME = "Salary Income"
    SPLITWISE_SETTLEMENT = "Splitwise Settlement"
    TRANSFER = "Transfer"
    SELF_TRANSFER = "Self Transfer"
    CREDIT_CARD_PAYMENT = "Credit Card Payment"
    INVESTMENT = "Investment"
    INVESTMENT_WITHDRAWAL = "Investment Withdrawal"
    REFUND = "Refund"
    UNCATEGORIZED_INCOME = "Uncategorized Income"


INCOME_CATEGORIES: frozenset[str] = frozenset(
    {BaseCategory.INCOME, BaseCategory.SALARY_INCOME, BaseCategory.SPLITWISE_SETTLEMENT}
)

INCOME_EXCLUDED_CATEGORIES: frozenset[str] = frozenset(
    {
        BaseCategory.TRANSFER,
        BaseCategory.SELF_TRANSFER,
        BaseCategory.CREDIT_CARD_PAYMENT,
        BaseCategory.INVESTMENT,
        BaseCategory.INVESTMENT_WITHDRAWAL,
        BaseCategory.REFUND,
        BaseCategory.UNCATEGORIZED_INCOME,
    }
)

DEFAULT_CATEGORIES: tuple[str, ...] = (
    BaseCategory.FOOD_AND_DINING,
    BaseCategory.TRANSPORTATION,
    BaseCategory.ENTERTAINMENT,
    BaseCategory.BILLS_AND_UTILITIES,
    BaseCategory.SHOPPING,
    BaseCategory.HEALTHCARE,
    BaseCategory.EDUCATION,
    BaseCategory.TRAVEL,
    BaseCategory.INCOME,
    BaseCategory.TRANSFER,
    BaseCategory.SALARY_INCOME,
    BaseCategory.SELF_TRANSFER,
    BaseCategory.SPLITWISE_SETTLEMENT,
    BaseCategory.INVESTMENT,
    BaseCategory.INVESTMENT_WITHDRAWAL,
)


# ---------------------------
# Name normalization/validation
# ---------------------------

_ALLOWED_RE = re.compile(r"^[A-Za-z0-9 &\-/'.,()]+$")
MAX_CATEGORY_LENGTH = 100


def normalize_name(name: str) -> str:
    """Trim and collapse internal whitespace; case is left alone."""

    return " ".join(name.strip().split())


@dataclass(frozen=True, slots=True)
class NameValidation:
    ok: bool
    reason: str | None = None


def validate_name(name: str, *, max_len: int = MAX_CATEGORY_LENGTH) -> NameValidation:
    """Validate a user-entered category label.

    Rules
    -----
    - Non-empty after trimming; at most ``max_len`` characters.
    - Letters, digits, spaces and ``& - / ' . , ( )`` only.
    """

    n = normalize_name(name)
    if not n:
        return NameValidation(False, "Name cannot be empty")
    if len(n) > max_len:
        return NameValidation(False, f"Name must be at most {max_len} characters")
    if not _ALLOWED_RE.match(n):
        return NameValidation(False, "Only letters, numbers, spaces, and & - / ' . , ( ) are allowed")
    return NameValidation(True, None)


def is_income(category: str) -> bool:
    return category in INCOME_CATEGORIES


def list_categories(session: Session, user_id: int | None) -> list[str]:
    """Default categories plus every category in use on the user's accounts.

    Transactions on unowned accounts (``user_id IS NULL``) count as the
    user's, as do transactions whose account row no longer exists.
    """

    stmt = (
        select(LedgerTransaction.category)
        .distinct()
        .select_from(LedgerTransaction)
        .outerjoin(Account, Account.id == LedgerTransaction.account_id)
        .where(or_(Account.user_id == user_id, Account.user_id.is_(None)))
    )
    used = {row for row in session.scalars(stmt) if row}
    return sorted({str(c) for c in DEFAULT_CATEGORIES} | used)


__all__ = [
    "BaseCategory",
    "INCOME_CATEGORIES",
    "INCOME_EXCLUDED_CATEGORIES",
    "DEFAULT_CATEGORIES",
    "NameValidation",
    "normalize_name",
    "validate_name",
    "is_income",
    "list_categories",
]
