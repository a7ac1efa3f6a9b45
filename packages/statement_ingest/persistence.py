# ruff: noqa: I001
"""Persistence integration for statement ingestion.

The reconciler talks to storage only through :class:`StatementStore`, so it
can run against the SQLAlchemy implementation below or an in-memory fake in
tests. ``SqlAlchemyStore`` writes to the ``statements`` and ``transactions``
tables owned by ``libs/db``.

Scope:
- Insert statement headers.
- Look up a persisted transaction by bank reference number.
- Bulk insert transactions with ``ON CONFLICT`` on the uniqueness key
  (``DO NOTHING`` when ignoring duplicates, ``DO UPDATE`` otherwise).
- Update a single transaction by id.

Categorization fields (``category_id``, ``hidden``) are never written here.
Every call commits its own unit of work; a failed call is rolled back and
surfaces as :class:`~statement_ingest.errors.StoreError`.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any, Protocol

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models.ledger import Statement, Transaction
from .errors import StoreError
from .logging_setup import get_logger
from .models import StatementUpload, StoredTransaction

logger = get_logger(__name__)

# Columns the ingestion pipeline owns on ``transactions``.
WRITABLE_COLUMNS: frozenset[str] = frozenset(
    {
        "statement_id",
        "trx_date",
        "description",
        "credit",
        "debit",
        "balance",
        "transaction_no",
        "unique_key",
    }
)


class StatementStore(Protocol):
    """Storage collaborator used by ingestion and reconciliation."""

    def insert_statement(
        self, header: StatementUpload, *, created_at: datetime | None = None
    ) -> int: ...

    def find_transaction_by_reference(self, transaction_no: str) -> StoredTransaction | None: ...

    def bulk_upsert_transactions(
        self,
        rows: Sequence[Mapping[str, Any]],
        *,
        conflict_key: str,
        ignore_duplicates: bool,
    ) -> int: ...

    def update_transaction(self, transaction_id: int, fields: Mapping[str, Any]) -> None: ...


def _error_summary(exc: SQLAlchemyError) -> dict[str, Any]:
    # Keep it short and caller-safe: driver message, no SQL or parameters.
    orig = getattr(exc, "orig", None)
    message = str(orig) if orig is not None else exc.__class__.__name__
    return {"message": message.splitlines()[0] if message else exc.__class__.__name__}


def _as_date(raw: Any) -> date:
    if isinstance(raw, date):
        return raw
    return date.fromisoformat(str(raw))


def _to_stored(row: Transaction) -> StoredTransaction:
    return StoredTransaction(
        id=row.id,
        statement_id=row.statement_id,
        date=row.trx_date,
        description=row.description,
        credit=row.credit,
        debit=row.debit,
        balance=row.balance,
        transaction_no=row.transaction_no,
        unique_key=row.unique_key,
    )


class SqlAlchemyStore:
    """:class:`StatementStore` over a SQLAlchemy session (PostgreSQL or SQLite)."""

    def __init__(self, session: Session) -> None:
        self.session = session

    # ---- helpers --------------------------------------------------------

    def _insert(self):
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert(Transaction)
        if dialect == "sqlite":
            return sqlite_insert(Transaction)
        raise StoreError(
            "Unsupported database dialect", details={"message": f"dialect {dialect!r}"}
        )

    def _fail(self, what: str, exc: SQLAlchemyError) -> StoreError:
        self.session.rollback()
        details = _error_summary(exc)
        logger.warning("%s failed: %s", what, details["message"])
        return StoreError(f"{what} failed", details=details)

    # ---- StatementStore -------------------------------------------------

    def insert_statement(
        self, header: StatementUpload, *, created_at: datetime | None = None
    ) -> int:
        stmt = Statement(account_name=header.account_name, file_name=header.file_name)
        if created_at is not None:
            stmt.created_at = created_at
        try:
            self.session.add(stmt)
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail("statement insert", exc) from exc
        return stmt.id

    def find_transaction_by_reference(self, transaction_no: str) -> StoredTransaction | None:
        try:
            row = self.session.execute(
                select(Transaction)
                .where(Transaction.transaction_no == transaction_no)
                .order_by(Transaction.id)
                .limit(1)
            ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise self._fail("transaction lookup", exc) from exc
        return _to_stored(row) if row is not None else None

    def bulk_upsert_transactions(
        self,
        rows: Sequence[Mapping[str, Any]],
        *,
        conflict_key: str = "unique_key",
        ignore_duplicates: bool = True,
    ) -> int:
        """Insert ``rows`` in one statement and return how many rows were written.

        Rows conflicting on ``conflict_key`` are skipped when
        ``ignore_duplicates`` is true (so the count is the number of new rows);
        otherwise their ingestion-owned columns are overwritten and counted.
        """

        if not rows:
            return 0

        now = func.now()
        payloads: list[dict[str, Any]] = []
        for row in rows:
            unknown = set(row) - WRITABLE_COLUMNS
            if unknown:
                raise ValueError(f"unexpected transaction columns: {sorted(unknown)}")
            values = dict(row)
            values["trx_date"] = _as_date(values["trx_date"])
            payloads.append(values)

        stmt = self._insert().values(payloads)
        if ignore_duplicates:
            stmt = stmt.on_conflict_do_nothing(index_elements=[conflict_key])
        else:
            set_ = {
                col: getattr(stmt.excluded, col)
                for col in sorted(WRITABLE_COLUMNS - {conflict_key})
            }
            set_["updated_at"] = now
            stmt = stmt.on_conflict_do_update(index_elements=[conflict_key], set_=set_)
        # RETURNING yields one row per row actually written.
        stmt = stmt.returning(Transaction.id)

        try:
            written = self.session.execute(stmt).all()
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail("transaction bulk insert", exc) from exc
        return len(written)

    def update_transaction(self, transaction_id: int, fields: Mapping[str, Any]) -> None:
        values = {k: v for k, v in fields.items() if k in WRITABLE_COLUMNS}
        if not values:
            return
        if "trx_date" in values:
            values["trx_date"] = _as_date(values["trx_date"])
        values["updated_at"] = func.now()
        try:
            self.session.execute(
                update(Transaction).where(Transaction.id == transaction_id).values(**values)
            )
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail("transaction update", exc) from exc


__all__ = [
    "SqlAlchemyStore",
    "StatementStore",
    "WRITABLE_COLUMNS",
]
