"""Public interface for the ``statement_ingest`` package.

Bank statement text goes in, reconciled ``transactions`` rows come out. This
module only re-exports the stable import surface; the CLI lives in
``statement_ingest.cli`` and is not imported here.
"""

from .api import ingest_statement, ingest_statement_text, validate_upload
from .assembler import ParseResult, assemble, parse_statement
from .classify import classify, split_lines
from .config import FALLBACK, STRICT, ParserConfig
from .errors import (
    ExtractionError,
    StatementIngestError,
    StoreError,
    UploadValidationError,
)
from .models import (
    AmountRoles,
    CandidateTransaction,
    IngestOutcome,
    IngestResult,
    Intent,
    LabeledLine,
    LineKind,
    RawLine,
    ReconcileReport,
    StatementUpload,
    StoredTransaction,
)
from .persistence import SqlAlchemyStore, StatementStore
from .reconcile import compute_unique_key, reconcile
from .roles import resolve_roles

__all__ = [
    # API
    "ingest_statement",
    "ingest_statement_text",
    "validate_upload",
    "parse_statement",
    "assemble",
    "classify",
    "split_lines",
    "resolve_roles",
    "reconcile",
    "compute_unique_key",
    # Config
    "ParserConfig",
    "STRICT",
    "FALLBACK",
    # Storage
    "StatementStore",
    "SqlAlchemyStore",
    # Models / types
    "AmountRoles",
    "CandidateTransaction",
    "IngestOutcome",
    "IngestResult",
    "Intent",
    "LabeledLine",
    "LineKind",
    "ParseResult",
    "RawLine",
    "ReconcileReport",
    "StatementUpload",
    "StoredTransaction",
    # Errors
    "StatementIngestError",
    "UploadValidationError",
    "ExtractionError",
    "StoreError",
]
