"""Reconcile parsed candidates against stored transactions.

Idempotency rules
-----------------
- Candidates with a bank reference (``transaction_no``) are matched by
  reference: not found → insert; found with a different statement id, date,
  credit, debit or description → update that row in place (balance travels
  with the update); found and identical → skip.
- Candidates without a reference are inserted with ignore-on-conflict on the
  content-derived ``unique_key``, so re-uploading a statement adds nothing.
- A key already seen earlier in the same run is skipped before reaching the
  store.

Work is done in fixed-size batches: updates one by one as they are decided,
then one bulk insert per batch. A store failure stops the run and the report
carries the error alongside what was committed so far; nothing is rolled back
or retried because uploads are safe to repeat.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterator, Sequence
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from .config import DEFAULT_BATCH_SIZE
from .errors import StoreError
from .logging_setup import get_logger
from .models import ZERO, CandidateTransaction, ReconcileReport, StoredTransaction
from .persistence import StatementStore

logger = get_logger(__name__)

_CENT = Decimal("0.01")


def _fmt(amount: Decimal | None) -> str | None:
    if amount is None:
        return None
    return f"{Decimal(amount).quantize(_CENT, rounding=ROUND_HALF_UP):.2f}"


def _norm_description(description: str | None) -> str | None:
    if description is None:
        return None
    s = " ".join(description.split()).casefold()
    return s or None


def compute_unique_key(candidate: CandidateTransaction) -> str:
    """Return a stable SHA-256 key over the statement-independent identity.

    With a reference number the key depends on the reference alone. Otherwise
    it covers date, debit, credit, balance (2dp strings) and the
    whitespace-collapsed, case-folded description. The statement id is never
    part of the key so the same rows uploaded under a new statement collide.
    """

    ref = (candidate.transaction_no or "").strip()
    payload: dict[str, Any]
    if ref:
        payload = {"ref": ref}
    else:
        payload = {
            "date": candidate.date,
            "debit": _fmt(candidate.debit),
            "credit": _fmt(candidate.credit),
            "balance": _fmt(candidate.balance),
            "description": _norm_description(candidate.description),
        }
    data = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def to_row(candidate: CandidateTransaction, unique_key: str) -> dict[str, Any]:
    """Map a candidate to ``transactions`` column values."""

    return {
        "statement_id": candidate.statement_id,
        "trx_date": date.fromisoformat(candidate.date),
        "description": candidate.description,
        "credit": candidate.credit,
        "debit": candidate.debit,
        "balance": candidate.balance,
        "transaction_no": candidate.transaction_no,
        "unique_key": unique_key,
    }


def _changed_fields(existing: StoredTransaction, candidate: CandidateTransaction) -> dict[str, Any]:
    """Return the update for ``existing`` or ``{}`` when nothing owned by ingestion differs."""

    new_date = date.fromisoformat(candidate.date)
    differs = (
        existing.statement_id != candidate.statement_id
        or existing.date != new_date
        or _fmt(existing.credit or ZERO) != _fmt(candidate.credit)
        or _fmt(existing.debit or ZERO) != _fmt(candidate.debit)
        or (existing.description or None) != (candidate.description or None)
    )
    if not differs:
        return {}
    return {
        "statement_id": candidate.statement_id,
        "trx_date": new_date,
        "credit": candidate.credit,
        "debit": candidate.debit,
        "description": candidate.description,
        "balance": candidate.balance,
    }


def _batches(items: Sequence[CandidateTransaction], size: int) -> Iterator[Sequence[CandidateTransaction]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


def reconcile(
    candidates: Sequence[CandidateTransaction],
    store: StatementStore,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> ReconcileReport:
    """Insert, update or skip each candidate; see the module docstring."""

    if batch_size <= 0:
        raise ValueError("batch_size must be a positive integer")

    report = ReconcileReport(parsed=len(candidates))
    seen: set[str] = set()

    for batch_no, batch in enumerate(_batches(candidates, batch_size)):
        to_insert: list[dict[str, Any]] = []
        try:
            for candidate in batch:
                key = compute_unique_key(candidate)
                if key in seen:
                    report.skipped += 1
                    continue
                seen.add(key)

                if not candidate.transaction_no:
                    to_insert.append(to_row(candidate, key))
                    continue

                existing = store.find_transaction_by_reference(candidate.transaction_no)
                if existing is None:
                    to_insert.append(to_row(candidate, key))
                    continue
                changes = _changed_fields(existing, candidate)
                if changes:
                    store.update_transaction(existing.id, changes)
                    report.updated += 1
                else:
                    report.skipped += 1

            if to_insert:
                inserted = store.bulk_upsert_transactions(
                    to_insert, conflict_key="unique_key", ignore_duplicates=True
                )
                report.inserted += inserted
                report.skipped += len(to_insert) - inserted
        except StoreError as exc:
            logger.warning(
                "reconcile stopped at batch %d after %d inserted rows: %s",
                batch_no,
                report.inserted,
                exc,
            )
            report.error = str(exc)
            report.details = exc.details
            return report

    logger.info(
        "reconciled %d candidates: %d inserted, %d updated, %d skipped",
        report.parsed,
        report.inserted,
        report.updated,
        report.skipped,
    )
    return report


__all__ = ["compute_unique_key", "reconcile", "to_row"]
