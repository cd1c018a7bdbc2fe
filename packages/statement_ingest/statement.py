"""Statement processing: bytes in, previewable transactions out.

``process_statement`` is the first of the two pipeline calls. It decides
whether the upload is a PDF or a CSV, sniffs the bank dialect, runs that
dialect's extractor and, if the extractor finds nothing, the generic extractor
for the same file kind. Nothing is persisted here; the caller reviews the
preview and hands the rows to ``importer.import_batch`` separately.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, TypedDict

from .errors import NoTransactionsFoundError, ParseFailureError, StatementError, UnsupportedFormatError
from .ingest.adapters.bank_csv import (
    BOFA_CHECKING_CSV,
    BOFA_CREDIT_CARD_CSV,
    CHASE_CHECKING_CSV,
    CHASE_CREDIT_CARD_CSV,
    GenericCsvExtractor,
    strip_bom,
)
from .ingest.adapters.base import StatementExtractor
from .ingest.adapters.pdf_lines import (
    AppleCardExtractor,
    BofAExtractor,
    ChaseCheckingExtractor,
    ChaseCreditCardExtractor,
    GenericPdfExtractor,
)
from .ingest.dialects import Dialect, detect_csv_dialect, detect_pdf_dialect
from .ingest.pdf_text import extract_pdf_text
from .logging_setup import get_logger
from .models import StatementPreview, StatementTransaction

if TYPE_CHECKING:
    from .categorize import Categorizer

logger = get_logger("statement_ingest.statement")

PDF_MIME_TYPE = "application/pdf"
CSV_MIME_TYPE = "text/csv"

type FileKind = Literal["pdf", "csv"]

GENERIC_PDF = GenericPdfExtractor()
GENERIC_CSV = GenericCsvExtractor()

PDF_EXTRACTORS: Mapping[Dialect, StatementExtractor] = {
    Dialect.APPLE_CARD: AppleCardExtractor(),
    Dialect.BOFA: BofAExtractor(),
    Dialect.CHASE_CHECKING: ChaseCheckingExtractor(),
    Dialect.CHASE_CREDIT_CARD: ChaseCreditCardExtractor(),
    Dialect.GENERIC_PDF: GENERIC_PDF,
}

CSV_EXTRACTORS: Mapping[Dialect, StatementExtractor] = {
    Dialect.CHASE_CHECKING_CSV: CHASE_CHECKING_CSV,
    Dialect.CHASE_CREDIT_CARD_CSV: CHASE_CREDIT_CARD_CSV,
    Dialect.BOFA_CREDIT_CARD_CSV: BOFA_CREDIT_CARD_CSV,
    Dialect.BOFA_CHECKING_CSV: BOFA_CHECKING_CSV,
    Dialect.GENERIC_CSV: GENERIC_CSV,
}

_PDF_PARSE_MESSAGE = (
    "Failed to parse PDF file. Please ensure it's a text-based PDF (not scanned image)."
)
_CSV_PARSE_MESSAGE = "Failed to parse CSV file. Please check the file format."
_NO_TRANSACTIONS_MESSAGE = (
    "No transactions found in the file. "
    "Please check if this is a bank statement with transaction data."
)


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    transactions: list[StatementTransaction]
    dialect: Dialect
    used_fallback: bool = False


def detect_file_kind(file_name: str, mime_type: str | None) -> FileKind | None:
    """Classify an upload by declared MIME type or, failing that, extension."""

    name = (file_name or "").lower()
    mime = (mime_type or "").lower()
    if mime == PDF_MIME_TYPE or name.endswith(".pdf"):
        return "pdf"
    if mime == CSV_MIME_TYPE or name.endswith(".csv"):
        return "csv"
    return None


def _extract_with_fallback(
    text: str,
    dialect: Dialect,
    extractors: Mapping[Dialect, StatementExtractor],
    generic: StatementExtractor,
    fallback_year: int | None,
) -> ExtractionResult:
    extractor = extractors[dialect]
    logger.info("detected dialect=%s", dialect)
    rows = extractor.extract(text, fallback_year=fallback_year)
    if rows or extractor is generic:
        return ExtractionResult(rows, dialect)
    logger.info("dialect=%s found no transactions; trying %s", dialect, generic.name)
    return ExtractionResult(generic.extract(text, fallback_year=fallback_year), dialect, True)


def extract_pdf_transactions(text: str, *, fallback_year: int | None = None) -> ExtractionResult:
    return _extract_with_fallback(
        text, detect_pdf_dialect(text), PDF_EXTRACTORS, GENERIC_PDF, fallback_year
    )


def extract_csv_transactions(text: str, *, fallback_year: int | None = None) -> ExtractionResult:
    text = strip_bom(text)
    return _extract_with_fallback(
        text, detect_csv_dialect(text), CSV_EXTRACTORS, GENERIC_CSV, fallback_year
    )


def decode_csv(buffer: bytes) -> str:
    return strip_bom(buffer.decode("utf-8", errors="replace"))


def process_statement(
    buffer: bytes,
    file_name: str,
    mime_type: str | None,
    *,
    categorizer: Categorizer | None = None,
    fallback_year: int | None = None,
    max_bytes: int | None = None,
) -> StatementPreview:
    """Extract transactions from an uploaded statement for preview.

    Parameters
    ----------
    buffer:
        Raw file contents.
    file_name, mime_type:
        As declared by the uploader; either one identifying PDF or CSV is
        enough.
    categorizer:
        When given, each row carries a suggested category; otherwise rows
        carry ``"Unknown"`` and are categorized at import time.
    fallback_year:
        Year for month/day-only dates when the statement does not reveal one.
    max_bytes:
        Reject larger uploads with ``UnsupportedFormatError``.

    Raises
    ------
    UnsupportedFormatError
        Neither MIME type nor extension indicates PDF/CSV, or the file is too
        large.
    ParseFailureError
        The file could not be read (corrupt PDF, undecodable text).
    NoTransactionsFoundError
        Every applicable extractor, including the generic fallback, found
        nothing.
    """

    size = len(buffer)
    context = {"file_name": file_name, "file_size": size, "file_type": mime_type}
    logger.info("processing statement name=%s size=%d type=%s", file_name, size, mime_type)

    kind = detect_file_kind(file_name, mime_type)
    if kind is None:
        raise UnsupportedFormatError(
            "Unsupported file format. Please upload PDF or CSV files only.", **context
        )
    if max_bytes is not None and size > max_bytes:
        raise UnsupportedFormatError(
            f"File is too large ({size} bytes); the limit is {max_bytes} bytes.", **context
        )

    try:
        if kind == "pdf":
            result = extract_pdf_transactions(extract_pdf_text(buffer), fallback_year=fallback_year)
        else:
            result = extract_csv_transactions(decode_csv(buffer), fallback_year=fallback_year)
    except StatementError:
        raise
    except Exception as exc:
        message = _PDF_PARSE_MESSAGE if kind == "pdf" else _CSV_PARSE_MESSAGE
        logger.warning("statement parse failure name=%s: %s", file_name, exc)
        raise ParseFailureError(message, details=str(exc), **context) from exc

    if not result.transactions:
        raise NoTransactionsFoundError(_NO_TRANSACTIONS_MESSAGE, **context)

    rows = result.transactions
    if categorizer is not None:
        rows = [t.with_category(categorizer.categorize(t.description, t.amount)) for t in rows]

    return StatementPreview(
        transactions=tuple(rows),
        file_name=file_name,
        file_type=mime_type or "",
        dialect=str(result.dialect),
        used_fallback=result.used_fallback,
    )


class PdfTextSummary(TypedDict):
    fileName: str
    textLength: int
    totalLines: int
    nonEmptyLines: int
    firstLinesPreview: list[str]


PREVIEW_LINES = 20


def describe_pdf_text(buffer: bytes, file_name: str = "") -> PdfTextSummary:
    """Summarize what text extraction sees in a PDF, for format debugging.

    Returns counts and the non-empty lines among the first twenty, never the
    full text.
    """

    try:
        text = extract_pdf_text(buffer)
    except Exception as exc:
        raise ParseFailureError(
            "Failed to parse PDF",
            file_name=file_name,
            file_size=len(buffer),
            file_type=PDF_MIME_TYPE,
            details=str(exc),
        ) from exc
    lines = text.split("\n")
    return {
        "fileName": file_name,
        "textLength": len(text),
        "totalLines": len(lines),
        "nonEmptyLines": sum(1 for ln in lines if ln.strip()),
        "firstLinesPreview": [ln.strip() for ln in lines[:PREVIEW_LINES] if ln.strip()],
    }


__all__ = [
    "ExtractionResult",
    "PdfTextSummary",
    "PDF_EXTRACTORS",
    "CSV_EXTRACTORS",
    "detect_file_kind",
    "extract_pdf_transactions",
    "extract_csv_transactions",
    "decode_csv",
    "process_statement",
    "describe_pdf_text",
]
