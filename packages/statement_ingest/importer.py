"""Import coordinator: persist reviewed rows into the ledger.

``import_batch`` is the second pipeline call. Each row ends in exactly one
:class:`RowOutcome`; row failures are reported, never raised. Every row runs
in its own database transaction, so a failing row never rolls back rows
committed before it, and later rows see earlier rows when checking for
duplicates (identical rows within one batch import once).

Derived state is maintained incrementally with SQL-side arithmetic
(``balance = balance + :amount``) so concurrent imports touching the same
account or budget do not lose updates.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal
from typing import Any

from ledger_db.client import session_scope
from ledger_db.models.ledger import Account, Budget, LedgerTransaction
from pydantic import ValidationError
from sqlalchemy import or_, select, update
from sqlalchemy.orm import Session, sessionmaker

from .categorize import Categorizer
from .errors import AccountNotFoundError, TransactionNotFoundError
from .logging_setup import get_logger
from .models import MAX_IMPORT_ERRORS, UNKNOWN_CATEGORY, ImportResult, ImportRow, RowOutcome
from .normalizers import clean_description, normalize_amount, normalize_date

logger = get_logger("statement_ingest.importer")

MAX_ABS_AMOUNT = Decimal("999999.99")
MISSING_FIELDS_MESSAGE = "Missing required fields (date, description, amount, or category)"


def _visible_to(user_id: int | None):
    return or_(Account.user_id == user_id, Account.user_id.is_(None))


def find_account(session: Session, account_name: str, user_id: int | None) -> Account | None:
    """Return the named account owned by ``user_id``, else the shared one."""

    stmt = (
        select(Account)
        .where(Account.name == account_name, _visible_to(user_id))
        .order_by(Account.user_id.is_(None))
        .limit(1)
    )
    return session.scalars(stmt).first()


def _budget_id(session: Session, category: str, user_id: int | None) -> int | None:
    if user_id is not None:
        own = session.scalars(
            select(Budget.id).where(Budget.category == category, Budget.user_id == user_id)
        ).first()
        if own is not None:
            return own
    return session.scalars(
        select(Budget.id).where(Budget.category == category, Budget.user_id.is_(None))
    ).first()


def adjust_budget_spent(
    session: Session, category: str, user_id: int | None, delta: Decimal
) -> bool:
    """Add ``delta`` to the category budget's ``spent`` and refresh ``remaining``.

    Uses the user's budget row when present, else the shared row. Returns
    ``False`` when the category has no budget.
    """

    budget_id = _budget_id(session, category, user_id)
    if budget_id is None:
        return False
    session.execute(
        update(Budget)
        .where(Budget.id == budget_id)
        .values(spent=Budget.spent + delta, remaining=Budget.budgeted - (Budget.spent + delta))
    )
    return True


def _adjust_balance(session: Session, account_id: int, delta: Decimal) -> None:
    session.execute(
        update(Account).where(Account.id == account_id).values(balance=Account.balance + delta)
    )


def _has_required_fields(row: ImportRow) -> bool:
    if not row.date or not row.description or not row.category:
        return False
    if row.amount is None:
        return False
    return not (isinstance(row.amount, str) and not row.amount.strip())


def _import_row(
    session_factory: sessionmaker[Session],
    categorizer: Categorizer,
    account: Account,
    user_id: int | None,
    row: ImportRow,
) -> RowOutcome:
    tx_date = date.fromisoformat(normalize_date(row.date))
    description = clean_description(row.description)
    if not description:
        raise ValueError("description is empty after cleanup")
    amount = normalize_amount(row.amount)
    if abs(amount) > MAX_ABS_AMOUNT:
        raise ValueError(f"amount {amount} is outside the allowed range of +/-{MAX_ABS_AMOUNT}")

    with session_scope(session_factory) as session:
        duplicate = session.scalars(
            select(LedgerTransaction.id)
            .where(
                LedgerTransaction.date == tx_date,
                LedgerTransaction.description == description,
                LedgerTransaction.amount == amount,
                LedgerTransaction.account_id == account.id,
            )
            .limit(1)
        ).first()
        if duplicate is not None:
            logger.debug("skipping duplicate transaction on %s", tx_date)
            return RowOutcome.SKIPPED_DUPLICATE

        category = row.category or UNKNOWN_CATEGORY
        if category == UNKNOWN_CATEGORY:
            category = categorizer.categorize(description, amount)

        session.add(
            LedgerTransaction(
                date=tx_date,
                description=description,
                amount=amount,
                category=category,
                account_id=account.id,
                account_name=account.name,
            )
        )
        session.flush()
        _adjust_balance(session, account.id, amount)
        if amount < 0:
            adjust_budget_spent(session, category, user_id, abs(amount))
    return RowOutcome.IMPORTED


def import_batch(
    session_factory: sessionmaker[Session],
    categorizer: Categorizer,
    account_name: str,
    user_id: int | None,
    rows: Iterable[ImportRow | Mapping[str, Any]],
) -> ImportResult:
    """Import ``rows`` into ``account_name`` for ``user_id``.

    Raises
    ------
    AccountNotFoundError
        Before any row is processed, when the account is neither owned by the
        user nor shared.
    """

    name = (account_name or "").strip()
    with session_scope(session_factory) as session:
        account = find_account(session, name, user_id) if name else None
    if account is None:
        raise AccountNotFoundError(account_name)

    imported = 0
    skipped = 0
    errors: list[str] = []
    outcomes: list[RowOutcome] = []

    for index, item in enumerate(rows, start=1):
        try:
            row = item if isinstance(item, ImportRow) else ImportRow.model_validate(item)
        except ValidationError as exc:
            errors.append(f"Transaction {index}: {exc.errors()[0]['msg']}")
            outcomes.append(RowOutcome.SKIPPED_ERROR)
            skipped += 1
            continue

        if not _has_required_fields(row):
            errors.append(f"Transaction {index}: {MISSING_FIELDS_MESSAGE}")
            outcomes.append(RowOutcome.SKIPPED_MISSING_FIELD)
            skipped += 1
            continue

        try:
            outcome = _import_row(session_factory, categorizer, account, user_id, row)
        except Exception as exc:  # noqa: BLE001 - row failures are reported, not raised
            logger.warning("error processing transaction %d: %s", index, exc)
            errors.append(f"Transaction {index}: {exc}")
            outcome = RowOutcome.SKIPPED_ERROR

        outcomes.append(outcome)
        if outcome is RowOutcome.IMPORTED:
            imported += 1
        else:
            skipped += 1

    logger.info(
        "import complete: account=%s imported=%d skipped=%d", account.name, imported, skipped
    )
    return ImportResult(
        imported_count=imported,
        skipped_count=skipped,
        errors=tuple(errors[:MAX_IMPORT_ERRORS]),
        outcomes=tuple(outcomes),
    )


def delete_transaction(
    session_factory: sessionmaker[Session], transaction_id: int, user_id: int | None
) -> None:
    """Delete a transaction and reverse its effect on balance and budget.

    Only transactions on accounts owned by ``user_id`` or shared are visible.
    The budget reversal targets the transaction's current category.
    """

    with session_scope(session_factory) as session:
        tx = session.scalars(
            select(LedgerTransaction)
            .outerjoin(Account, Account.id == LedgerTransaction.account_id)
            .where(LedgerTransaction.id == transaction_id, _visible_to(user_id))
            .limit(1)
        ).first()
        if tx is None:
            raise TransactionNotFoundError(transaction_id)

        amount = Decimal(tx.amount)
        account_id = tx.account_id
        session.delete(tx)
        session.flush()
        if account_id is not None:
            _adjust_balance(session, account_id, -amount)
        if amount < 0:
            adjust_budget_spent(session, tx.category, user_id, -abs(amount))
    logger.info("deleted transaction %s", transaction_id)


__all__ = ["import_batch", "delete_transaction", "find_account", "adjust_budget_spent"]
