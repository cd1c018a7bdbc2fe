from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Reference: accounts
# ---------------------------


class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Names are unique per owner only, so transactions link by ``account_id``.
    # ``user_id IS NULL`` marks a shared account visible to every user.
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False, server_default="checking")
    institution: Mapped[str | None] = mapped_column(String(100), nullable=True)
    # Running balance maintained incrementally: every insert/delete of a
    # transaction is paired with exactly one adjustment of this column.
    balance: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, server_default="0")
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (UniqueConstraint("name", "user_id", name="uq_accounts_name_user"),)


# ---------------------------
# Core: transactions
# ---------------------------


class LedgerTransaction(Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    # Trimmed, whitespace-collapsed, at most 500 characters.
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    # Negative = outflow, positive = inflow.
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    account_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )
    # Account name as of import, kept for display.
    account_name: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    # Lookup index for the dedup key (date, description, amount, account).
    __table_args__ = (
        Index("ix_transactions_dedup", "account_id", "date", "amount", "description"),
    )


# ---------------------------
# Budgets (per category)
# ---------------------------


class Budget(Base):
    __tablename__ = "budgets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    budgeted: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, server_default="0")
    # ``spent`` only accumulates expenses (negative amounts, stored positive).
    spent: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, server_default="0")
    remaining: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, server_default="0")
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)

    __table_args__ = (UniqueConstraint("category", "user_id", name="uq_budgets_category_user"),)


# ---------------------------
# Learned description -> category overrides
# ---------------------------


class MerchantCategoryMapping(Base):
    __tablename__ = "merchant_category_map"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    description_substring: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


__all__ = [
    "Base",
    "Account",
    "Budget",
    "LedgerTransaction",
    "MerchantCategoryMapping",
]
