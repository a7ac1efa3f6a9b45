"""Public ingestion entry points.

:func:`ingest_statement` handles one upload end to end:

1. Validate the request (file present, account name non-empty). Rejections
   have no side effects.
2. Extract text from the PDF bytes with the injected extractor.
3. Insert the statement header. This happens only after extraction succeeded,
   so failed extractions never leave orphan headers.
4. Parse the text (strict pass, fallback pass when needed).
5. Reconcile candidates against the store.

The store and the extractor are explicit parameters so callers (and tests)
decide which backends are used. Every outcome is returned as an
:class:`~statement_ingest.models.IngestResult`; nothing here raises for
rejected, failed or partially persisted uploads.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from pydantic import ValidationError

from .assembler import parse_statement
from .config import batch_size_from_env
from .errors import ExtractionError, StoreError, UploadValidationError
from .logging_setup import get_logger
from .models import IngestOutcome, IngestResult, StatementUpload
from .pdf_text import TextExtractor, extract_pdf_text
from .persistence import StatementStore
from .reconcile import reconcile

logger = get_logger(__name__)

_NO_FILE = "No file uploaded"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _validation_message(exc: ValidationError) -> str:
    for err in exc.errors():
        cause = (err.get("ctx") or {}).get("error")
        if isinstance(cause, ValueError):
            return str(cause)
        return f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
    return "invalid upload"


def validate_upload(
    *,
    account_name: str | None,
    pdf_bytes: bytes | None,
    file_name: str | None = None,
) -> StatementUpload:
    """Return the validated header or raise :class:`UploadValidationError`."""

    if not pdf_bytes:
        raise UploadValidationError(_NO_FILE)
    try:
        return StatementUpload(account_name=account_name, file_name=file_name)
    except ValidationError as exc:
        raise UploadValidationError(_validation_message(exc)) from exc


def ingest_statement_text(
    upload: StatementUpload,
    text: str,
    *,
    store: StatementStore,
    now: Callable[[], datetime] = _utcnow,
    batch_size: int | None = None,
) -> IngestResult:
    """Create the statement header, parse ``text`` and reconcile the result."""

    try:
        statement_id = store.insert_statement(upload, created_at=now())
    except StoreError as exc:
        logger.warning("statement insert failed for %r: %s", upload.file_name, exc)
        return IngestResult(
            outcome=IngestOutcome.FAILED,
            error="Failed to create statement",
            details=exc.details,
        )

    parsed = parse_statement(text, statement_id=statement_id)
    report = reconcile(
        parsed.candidates,
        store,
        batch_size=batch_size if batch_size is not None else batch_size_from_env(),
    )

    result = IngestResult(
        outcome=IngestOutcome.OK if report.ok else IngestOutcome.PARTIAL,
        statement_id=statement_id,
        parsed_rows=report.parsed,
        inserted_rows=report.inserted,
        updated_rows=report.updated,
        skipped_rows=report.skipped,
        used_fallback=parsed.used_fallback,
        error=None if report.ok else "Insert error",
        details=None if report.ok else report.details,
    )
    logger.info(
        "statement %s (%s): parsed=%d inserted=%d updated=%d skipped=%d outcome=%s",
        statement_id,
        upload.file_name,
        result.parsed_rows,
        result.inserted_rows,
        result.updated_rows,
        result.skipped_rows,
        result.outcome,
    )
    return result


def ingest_statement(
    *,
    account_name: str | None,
    pdf_bytes: bytes | None,
    store: StatementStore,
    file_name: str | None = None,
    extract_text: TextExtractor = extract_pdf_text,
    now: Callable[[], datetime] = _utcnow,
    batch_size: int | None = None,
) -> IngestResult:
    """Ingest one uploaded statement PDF; see the module docstring for the steps."""

    if not pdf_bytes:
        return IngestResult(outcome=IngestOutcome.REJECTED, error=_NO_FILE)
    try:
        upload = validate_upload(
            account_name=account_name, pdf_bytes=pdf_bytes, file_name=file_name
        )
    except UploadValidationError as exc:
        return IngestResult(outcome=IngestOutcome.REJECTED, error=str(exc))

    try:
        text = extract_text(pdf_bytes)
    except ExtractionError as exc:
        logger.warning("text extraction failed for %r: %s", upload.file_name, exc)
        return IngestResult(outcome=IngestOutcome.FAILED, error=str(exc))
    except Exception as exc:
        # Injected extractors may raise anything; report it without a traceback.
        logger.exception("text extraction failed for %r", upload.file_name)
        return IngestResult(
            outcome=IngestOutcome.FAILED,
            error=f"Failed to extract text from PDF: {exc}",
        )

    return ingest_statement_text(
        upload, text, store=store, now=now, batch_size=batch_size
    )


__all__ = [
    "ingest_statement",
    "ingest_statement_text",
    "validate_upload",
]
