"""Plain-text extraction from PDF statements via ``pdfplumber``.

Scanned (image-only) PDFs yield empty text rather than an error; the caller
turns "no text" into "no transactions found".
"""

from __future__ import annotations

import io

import pdfplumber

from ..logging_setup import get_logger

logger = get_logger("statement_ingest.ingest.pdf_text")


def extract_pdf_text(buffer: bytes) -> str:
    """Return the text of every page of the PDF in ``buffer``, newline-joined."""

    chunks: list[str] = []
    with pdfplumber.open(io.BytesIO(buffer)) as pdf:
        for page in pdf.pages:
            chunks.append(page.extract_text() or "")
    text = "\n".join(chunks)
    logger.debug("pdf text extracted: pages=%d chars=%d", len(chunks), len(text))
    return text


__all__ = ["extract_pdf_text"]
