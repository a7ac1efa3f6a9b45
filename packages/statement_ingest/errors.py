"""Exception types raised at the seams of the ingestion pipeline.

Parsing itself never raises for ambiguous input; these cover the conditions
the public API turns into error results (bad uploads, extractor failures and
store failures).
"""

from __future__ import annotations

from typing import Any


class StatementIngestError(Exception):
    """Base class for errors raised by ``statement_ingest``."""


class UploadValidationError(StatementIngestError, ValueError):
    """The upload request is missing a file or an account name."""


class ExtractionError(StatementIngestError):
    """The text extractor could not turn the uploaded bytes into text."""


class StoreError(StatementIngestError):
    """A persistence call failed.

    ``details`` carries a short, caller-safe summary of the store's error
    (never a traceback).
    """

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.details = details


__all__ = [
    "ExtractionError",
    "StatementIngestError",
    "StoreError",
    "UploadValidationError",
]
