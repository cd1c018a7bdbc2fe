from __future__ import annotations

from decimal import Decimal

import pytest
from statement_ingest.errors import AccountNotFoundError, TransactionNotFoundError
from statement_ingest.importer import delete_transaction, import_batch
from statement_ingest.models import ImportRow, RowOutcome

from tests.helpers.db import (
    account_balance,
    budget_figures,
    count_transactions,
    seed_account,
    seed_budget,
    transaction_rows,
)


def _row(date: str, description: str, amount, category: str = "Unknown") -> dict:
    return {"date": date, "description": description, "amount": amount, "category": category}


def test_missing_account_aborts_before_any_row(session_factory, categorizer) -> None:
    seed_account(session_factory, "Checking", user_id=2)

    with pytest.raises(AccountNotFoundError, match='Account "Checking" not found'):
        import_batch(session_factory, categorizer, "Checking", 1, [_row("2024-01-05", "X", "-1")])
    assert count_transactions(session_factory) == 0


def test_shared_account_is_visible_to_every_user(session_factory, categorizer) -> None:
    seed_account(session_factory, "Household")
    result = import_batch(
        session_factory, categorizer, "Household", 7, [_row("2024-01-05", "RENT JAN", "-1200")]
    )
    assert result.imported_count == 1


def test_rows_are_imported_and_categorized(session_factory, categorizer) -> None:
    seed_account(session_factory, "Checking", user_id=1)
    rows = [
        _row("01/05/2024", "  STARBUCKS   STORE 42 ", "-4.50"),
        _row("2024-01-06", "PAYCHECK", 1500, "Income"),
        ImportRow(date="2024-01-07", description="UBER TRIP", amount=Decimal("-12.30"), category=""),
    ]

    result = import_batch(session_factory, categorizer, "Checking", 1, rows)

    assert result.outcomes == (
        RowOutcome.IMPORTED,
        RowOutcome.IMPORTED,
        RowOutcome.SKIPPED_MISSING_FIELD,
    )
    assert (result.imported_count, result.skipped_count, result.total_processed) == (2, 1, 3)
    assert result.success is True
    stored = [(str(t.date), t.description, t.category) for t in transaction_rows(session_factory)]
    assert stored == [
        ("2024-01-05", "STARBUCKS STORE 42", "Food & Dining"),
        ("2024-01-06", "PAYCHECK", "Income"),
    ]
    assert result.errors == (
        "Transaction 3: Missing required fields (date, description, amount, or category)",
    )


def test_duplicates_are_skipped_across_batches(session_factory, categorizer) -> None:
    seed_account(session_factory, "Checking", user_id=1)
    rows = [_row("2024-01-05", "COFFEE", "-4.50", "Food & Dining")]

    first = import_batch(session_factory, categorizer, "Checking", 1, rows)
    second = import_batch(session_factory, categorizer, "Checking", 1, rows)

    assert first.imported_count + second.imported_count == 1
    assert second.skipped_count == 1
    assert second.outcomes == (RowOutcome.SKIPPED_DUPLICATE,)
    assert second.errors == ()


def test_duplicates_within_one_batch_import_once(session_factory, categorizer) -> None:
    seed_account(session_factory, "Checking", user_id=1)
    row = _row("2024-01-05", "COFFEE", "-4.50", "Food & Dining")

    result = import_batch(session_factory, categorizer, "Checking", 1, [row, dict(row)])

    assert result.outcomes == (RowOutcome.IMPORTED, RowOutcome.SKIPPED_DUPLICATE)
    assert count_transactions(session_factory) == 1


def test_same_row_on_different_accounts_is_not_a_duplicate(session_factory, categorizer) -> None:
    seed_account(session_factory, "Checking", user_id=1)
    seed_account(session_factory, "Savings", user_id=1)
    row = _row("2024-01-05", "COFFEE", "-4.50", "Food & Dining")

    import_batch(session_factory, categorizer, "Checking", 1, [row])
    result = import_batch(session_factory, categorizer, "Savings", 1, [row])

    assert result.imported_count == 1


def test_same_named_accounts_of_different_users_are_separate(session_factory, categorizer) -> None:
    mine = seed_account(session_factory, "Checking", user_id=1, balance="100.00")
    theirs = seed_account(session_factory, "Checking", user_id=2, balance="100.00")
    row = _row("2024-01-05", "COFFEE", "-50.00", "Food & Dining")

    first = import_batch(session_factory, categorizer, "Checking", 1, [row])
    second = import_batch(session_factory, categorizer, "Checking", 2, [row])

    assert first.outcomes == (RowOutcome.IMPORTED,)
    assert second.outcomes == (RowOutcome.IMPORTED,)
    assert account_balance(session_factory, mine) == Decimal("50.00")
    assert account_balance(session_factory, theirs) == Decimal("50.00")


def test_delete_cannot_reach_another_users_same_named_account(session_factory, categorizer) -> None:
    mine = seed_account(session_factory, "Checking", user_id=1, balance="100.00")
    theirs = seed_account(session_factory, "Checking", user_id=2, balance="100.00")
    import_batch(
        session_factory, categorizer, "Checking", 1, [_row("2024-01-05", "COFFEE", "-50.00", "Shopping")]
    )
    tx = transaction_rows(session_factory)[0]

    with pytest.raises(TransactionNotFoundError):
        delete_transaction(session_factory, tx.id, 2)

    assert count_transactions(session_factory) == 1
    assert account_balance(session_factory, mine) == Decimal("50.00")
    assert account_balance(session_factory, theirs) == Decimal("100.00")

    delete_transaction(session_factory, tx.id, 1)
    assert account_balance(session_factory, mine) == Decimal("100.00")


def test_balance_invariant_including_delete(session_factory, categorizer) -> None:
    account_id = seed_account(session_factory, "Checking", user_id=1, balance="1000.00")
    amounts = ["-45.10", "250.00", "-12.35", "-0.55"]
    rows = [_row(f"2024-02-0{i + 1}", f"ITEM {i}", a, "Shopping") for i, a in enumerate(amounts)]

    result = import_batch(session_factory, categorizer, "Checking", 1, rows)

    assert result.imported_count == 4
    assert account_balance(session_factory, account_id) == Decimal("1192.00")

    deleted = transaction_rows(session_factory)[1]
    delete_transaction(session_factory, deleted.id, 1)

    assert account_balance(session_factory, account_id) == Decimal("942.00")
    assert count_transactions(session_factory) == 3


def test_budget_spent_tracks_expenses_only(session_factory, categorizer) -> None:
    seed_account(session_factory, "Checking", user_id=1)
    budget_id = seed_budget(session_factory, "Food & Dining", "200.00")

    import_batch(
        session_factory,
        categorizer,
        "Checking",
        1,
        [
            _row("2024-03-01", "DINNER", "-42.50", "Food & Dining"),
            _row("2024-03-02", "SPLIT REIMBURSEMENT", "20.00", "Food & Dining"),
        ],
    )

    assert budget_figures(session_factory, budget_id) == (
        Decimal("200.00"),
        Decimal("42.50"),
        Decimal("157.50"),
    )


def test_user_budget_row_preferred_over_shared(session_factory, categorizer) -> None:
    seed_account(session_factory, "Checking", user_id=1)
    shared = seed_budget(session_factory, "Shopping", "100.00")
    own = seed_budget(session_factory, "Shopping", "300.00", user_id=1)

    import_batch(
        session_factory, categorizer, "Checking", 1, [_row("2024-03-01", "SHOES", "-60", "Shopping")]
    )

    assert budget_figures(session_factory, own) == (Decimal("300.00"), Decimal("60.00"), Decimal("240.00"))
    assert budget_figures(session_factory, shared) == (Decimal("100.00"), Decimal("0.00"), Decimal("100.00"))


def test_delete_reverses_budget_spent(session_factory, categorizer) -> None:
    seed_account(session_factory, "Checking", user_id=1)
    budget_id = seed_budget(session_factory, "Food & Dining", "200.00")
    import_batch(
        session_factory, categorizer, "Checking", 1, [_row("2024-03-01", "DINNER", "-42.50", "Food & Dining")]
    )

    tx = transaction_rows(session_factory)[0]
    delete_transaction(session_factory, tx.id, 1)

    assert budget_figures(session_factory, budget_id) == (
        Decimal("200.00"),
        Decimal("0.00"),
        Decimal("200.00"),
    )


def test_delete_is_scoped_to_visible_accounts(session_factory, categorizer) -> None:
    seed_account(session_factory, "Checking", user_id=1)
    import_batch(
        session_factory, categorizer, "Checking", 1, [_row("2024-03-01", "DINNER", "-42.50", "Food & Dining")]
    )
    tx = transaction_rows(session_factory)[0]

    with pytest.raises(TransactionNotFoundError):
        delete_transaction(session_factory, tx.id, 2)
    with pytest.raises(TransactionNotFoundError):
        delete_transaction(session_factory, 9999, 1)
    assert count_transactions(session_factory) == 1


def test_error_list_is_capped(session_factory, categorizer) -> None:
    seed_account(session_factory, "Checking", user_id=1)
    rows = [_row(f"not-a-date-{i}", "BAD ROW", "-1.00", "Shopping") for i in range(15)]

    result = import_batch(session_factory, categorizer, "Checking", 1, rows)

    assert result.imported_count == 0
    assert result.skipped_count == 15
    assert len(result.errors) == 10
    assert result.errors[0].startswith("Transaction 1: invalid date")
    assert result.success is False
    assert set(result.outcomes) == {RowOutcome.SKIPPED_ERROR}


@pytest.mark.parametrize(
    "row",
    [
        _row("2024-01-05", "HUGE", "1000000.00", "Shopping"),
        _row("2024-01-05", "NOT MONEY", "abc", "Shopping"),
        _row("2024-02-30", "BAD DATE", "-1.00", "Shopping"),
        _row("2024-01-05", "FLAG", True, "Shopping"),
    ],
)
def test_invalid_rows_are_reported_not_raised(session_factory, categorizer, row) -> None:
    seed_account(session_factory, "Checking", user_id=1)

    result = import_batch(session_factory, categorizer, "Checking", 1, [row])

    assert result.outcomes == (RowOutcome.SKIPPED_ERROR,)
    assert result.errors[0].startswith("Transaction 1: ")
    assert count_transactions(session_factory) == 0


def test_import_result_payload(session_factory, categorizer) -> None:
    seed_account(session_factory, "Checking", user_id=1)
    result = import_batch(
        session_factory, categorizer, "Checking", 1, [_row("2024-01-05", "COFFEE", "-4.50")]
    )
    assert result.to_dict() == {
        "message": "Import completed",
        "importedCount": 1,
        "skippedCount": 0,
        "totalProcessed": 1,
        "errors": [],
        "success": True,
    }
