"""Public interface for the ``statement_ingest`` package.

Symbol re-exports only. The pipeline is two calls: :func:`process_statement`
turns an uploaded PDF/CSV into a preview, and :func:`import_batch` persists
the reviewed rows. Both take their database handles from a
:class:`LedgerContext`.
"""

from .categorize import Categorizer, apply_categorization_rules
from .config import Settings, load_settings
from .context import LedgerContext
from .errors import (
    AccountNotFoundError,
    IngestError,
    InvalidAmountError,
    InvalidDateError,
    NoTransactionsFoundError,
    ParseFailureError,
    StatementError,
    TransactionNotFoundError,
    UnsupportedFormatError,
)
from .importer import delete_transaction, import_batch
from .models import (
    ImportResult,
    ImportRow,
    RecategorizeResult,
    RowOutcome,
    StatementPreview,
    StatementTransaction,
    TransactionType,
)
from .normalizers import clean_description, normalize_amount, normalize_date
from .statement import describe_pdf_text, process_statement

__all__ = [
    # Pipeline
    "process_statement",
    "import_batch",
    "delete_transaction",
    "describe_pdf_text",
    "Categorizer",
    "apply_categorization_rules",
    "LedgerContext",
    "Settings",
    "load_settings",
    # Normalization
    "normalize_date",
    "normalize_amount",
    "clean_description",
    # Models
    "TransactionType",
    "StatementTransaction",
    "StatementPreview",
    "ImportRow",
    "ImportResult",
    "RecategorizeResult",
    "RowOutcome",
    # Errors
    "IngestError",
    "InvalidDateError",
    "InvalidAmountError",
    "StatementError",
    "UnsupportedFormatError",
    "NoTransactionsFoundError",
    "ParseFailureError",
    "AccountNotFoundError",
    "TransactionNotFoundError",
]
