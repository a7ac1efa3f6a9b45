"""Default PDF → text extractor (pdfplumber).

Extraction is best-effort: column boundaries and whitespace are lost, and
some layouts interleave lines. The parser is written for that.
"""

from __future__ import annotations

import io
from collections.abc import Callable
from typing import TypeAlias

import pdfplumber

from .errors import ExtractionError
from .logging_setup import get_logger

logger = get_logger(__name__)

TextExtractor: TypeAlias = Callable[[bytes], str]
"""Turns an uploaded PDF's bytes into plain text, raising on failure."""


def extract_pdf_text(data: bytes) -> str:
    """Return the text of every page of ``data`` joined by newlines."""

    if not data:
        raise ExtractionError("PDF content is empty")
    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
    except Exception as exc:
        # pdfplumber/pdfminer raise a wide range of types for malformed input.
        raise ExtractionError(f"Failed to extract text from PDF: {exc}") from exc
    logger.debug("extracted %d pages of text", len(pages))
    return "\n".join(pages)


__all__ = ["TextExtractor", "extract_pdf_text"]
