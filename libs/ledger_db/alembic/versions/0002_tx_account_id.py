# ruff: noqa: I001
"""Link transactions to accounts by id and key the dedup index on it.

Account names are only unique per owner, so the name alone cannot tell two
users' "Checking" accounts apart.

Revision ID: 0002_tx_account_id
Revises: 0001_ledger_core
Create Date: 2025-10-18
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0002_tx_account_id"
down_revision: str | None = "0001_ledger_core"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.drop_index("ix_transactions_dedup", table_name="transactions")

    with op.batch_alter_table("transactions") as batch_op:
        batch_op.add_column(sa.Column("account_id", sa.Integer(), nullable=True))
        batch_op.create_foreign_key(
            "fk_transactions_account_id",
            "accounts",
            ["account_id"],
            ["id"],
            ondelete="SET NULL",
        )

    # Backfill only where the name identifies exactly one account; ambiguous
    # rows stay NULL.
    op.execute(
        """
        UPDATE transactions
        SET account_id = (
            SELECT a.id FROM accounts a WHERE a.name = transactions.account_name
        )
        WHERE (
            SELECT COUNT(*) FROM accounts a WHERE a.name = transactions.account_name
        ) = 1
        """
    )

    op.create_index(
        "ix_transactions_dedup",
        "transactions",
        ["account_id", "date", "amount", "description"],
    )


def downgrade() -> None:
    op.drop_index("ix_transactions_dedup", table_name="transactions")
    with op.batch_alter_table("transactions") as batch_op:
        batch_op.drop_constraint("fk_transactions_account_id", type_="foreignkey")
        batch_op.drop_column("account_id")
    op.create_index(
        "ix_transactions_dedup",
        "transactions",
        ["account_name", "date", "amount", "description"],
    )
