from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

import pytest

from statement_ingest.assembler import parse_statement
from statement_ingest.models import ZERO, CandidateTransaction
from statement_ingest.reconcile import compute_unique_key, reconcile, to_row
from tests.helpers.store import InMemoryStore

D = Decimal

SAMPLE = "\n".join(
    [
        "05/01/2024 Grocery Store 12,000 488,000",
        "06/01/2024 Paycheck FT1002233 200,000 688,000",
        "07/01/2024 ATM withdrawal 100,000 588,000",
    ]
)


def _candidates(statement_id: int) -> list[CandidateTransaction]:
    return parse_statement(SAMPLE, statement_id=statement_id).candidates


def _candidate(**overrides) -> CandidateTransaction:
    base = CandidateTransaction(
        statement_id=1,
        date="2024-01-05",
        description="Grocery Store",
        debit=D("12000.00"),
        balance=D("488000.00"),
    )
    return replace(base, **overrides)


# ---- Unique key ----------------------------------------------------------------


def test_unique_key_ignores_statement_and_layout_noise() -> None:
    a = _candidate()
    b = _candidate(statement_id=99, description="  grocery   STORE ", source_line=40)
    assert compute_unique_key(a) == compute_unique_key(b)
    assert len(compute_unique_key(a)) == 64


def test_unique_key_distinguishes_content() -> None:
    base = compute_unique_key(_candidate())
    assert compute_unique_key(_candidate(debit=D("12000.01"))) != base
    assert compute_unique_key(_candidate(date="2024-01-06")) != base
    assert compute_unique_key(_candidate(balance=None)) != base


def test_unique_key_uses_reference_alone_when_present() -> None:
    a = _candidate(transaction_no="FT1")
    b = _candidate(transaction_no="FT1", debit=D("1.00"), description="other")
    assert compute_unique_key(a) == compute_unique_key(b)


def test_to_row_maps_columns() -> None:
    row = to_row(_candidate(transaction_no="FT9"), "k" * 64)
    assert row["trx_date"].isoformat() == "2024-01-05"
    assert row["credit"] == ZERO
    assert row["unique_key"] == "k" * 64
    assert "category_id" not in row and "hidden" not in row


# ---- Reconciliation --------------------------------------------------------------


def test_first_run_inserts_everything() -> None:
    store = InMemoryStore()
    report = reconcile(_candidates(1), store)
    assert report.ok
    assert (report.parsed, report.inserted, report.updated, report.skipped) == (3, 3, 0, 0)
    assert len(store.rows) == 3


def test_rerun_same_statement_is_idempotent() -> None:
    store = InMemoryStore()
    reconcile(_candidates(1), store)
    report = reconcile(_candidates(1), store)
    assert (report.inserted, report.updated, report.skipped) == (0, 0, 3)
    assert len(store.rows) == 3


def test_reupload_under_new_statement_moves_reference_rows_only() -> None:
    store = InMemoryStore()
    reconcile(_candidates(1), store)
    report = reconcile(_candidates(2), store)
    assert (report.inserted, report.updated, report.skipped) == (0, 1, 2)
    assert len(store.rows) == 3
    assert store.by_reference("FT1002233")["statement_id"] == 2


def test_reference_update_preserves_categorization() -> None:
    store = InMemoryStore()
    reconcile(_candidates(1), store)
    row = store.by_reference("FT1002233")
    row["category_id"] = 42
    row["hidden"] = True

    corrected = [
        replace(c, description="Paycheck January") if c.transaction_no else c
        for c in _candidates(1)
    ]
    report = reconcile(corrected, store)
    assert report.updated == 1
    row = store.by_reference("FT1002233")
    assert row["description"] == "Paycheck January"
    assert row["category_id"] == 42
    assert row["hidden"] is True
    (_, fields), = store.updates
    assert "category_id" not in fields and "hidden" not in fields


def test_duplicates_within_one_run_are_skipped() -> None:
    store = InMemoryStore()
    c = _candidate()
    report = reconcile([c, replace(c, source_line=5)], store)
    assert (report.inserted, report.skipped) == (1, 1)


def test_batches_are_bounded() -> None:
    store = InMemoryStore()
    candidates = [_candidate(debit=D(f"{i}.00")) for i in range(1, 8)]
    report = reconcile(candidates, store, batch_size=3)
    assert store.bulk_calls == [3, 3, 1]
    assert report.inserted == 7


def test_store_failure_reports_partial_progress() -> None:
    store = InMemoryStore(fail_bulk_call=2)
    candidates = [_candidate(debit=D(f"{i}.00")) for i in range(1, 6)]
    report = reconcile(candidates, store, batch_size=2)
    assert not report.ok
    assert report.inserted == 2
    assert report.error == "transaction bulk insert failed"
    assert report.details == {"message": "duplicate key value violates unique constraint"}
    assert len(store.rows) == 2


def test_lookup_failure_stops_the_run() -> None:
    store = InMemoryStore(fail_lookup=True)
    report = reconcile([_candidate(transaction_no="FT1")], store)
    assert report.error == "transaction lookup failed"
    assert report.inserted == 0


def test_empty_candidates_touch_nothing() -> None:
    store = InMemoryStore()
    report = reconcile([], store)
    assert report.ok and report.parsed == 0
    assert store.bulk_calls == []


def test_batch_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        reconcile([], InMemoryStore(), batch_size=0)
