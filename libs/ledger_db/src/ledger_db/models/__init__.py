"""Shared SQLAlchemy models registry for the ledger database.

Currently includes the ledger models used by ``statement_ingest``.
"""

from .ledger import Account, Base, Budget, LedgerTransaction, MerchantCategoryMapping

__all__ = [
    "Base",
    "Account",
    "Budget",
    "LedgerTransaction",
    "MerchantCategoryMapping",
]
