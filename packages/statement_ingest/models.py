"""Data models for ``statement_ingest``.

Two families live here:

- Parse-time value objects (``RawLine``, ``LabeledLine``, ``AmountRoles``,
  ``CandidateTransaction``) that are born and die within one parse run.
- Boundary DTOs validated with pydantic (``StatementUpload`` for the caller's
  request, ``IngestResult`` for the JSON-shaped response).

Amounts are ``Decimal`` quantized to two places throughout; dates on
candidates are ISO ``YYYY-MM-DD`` strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date as date_type
from decimal import Decimal
from enum import Enum, StrEnum
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, field_validator

ZERO = Decimal("0.00")
DEFAULT_FILE_NAME = "statement.pdf"

# ---------------------------------------------------------------------------
# Lines
# ---------------------------------------------------------------------------


class RawLine(NamedTuple):
    """A trimmed, non-empty line of extracted text and its original index."""

    index: int
    text: str


class LineKind(Enum):
    NOISE = "noise"
    START = "start"
    DETAIL = "detail"


class LabeledLine(NamedTuple):
    """A line with its classification.

    ``anchor`` is the ``RawLine.index`` of the transaction-start line a DETAIL
    line belongs to. It is ``None`` for START and NOISE lines and for detail
    lines that fall outside any start line's lookahead window.
    """

    line: RawLine
    kind: LineKind
    anchor: int | None = None


# ---------------------------------------------------------------------------
# Amount roles
# ---------------------------------------------------------------------------


class Intent(StrEnum):
    INFLOW = "inflow"
    OUTFLOW = "outflow"


@dataclass(frozen=True, slots=True)
class AmountRoles:
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    balance: Decimal | None = None

    @property
    def has_amount(self) -> bool:
        return self.debit > 0 or self.credit > 0 or bool(self.balance)


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CandidateTransaction:
    """A parsed, not-yet-persisted transaction.

    At most one of ``credit``/``debit`` is non-zero unless the source line
    carried a full debit/credit/balance triple. ``source_line`` is the index
    of the transaction-start line the record was assembled from and is kept
    for diagnostics only; it never takes part in identity.
    """

    statement_id: int | None
    date: str
    description: str | None
    credit: Decimal = ZERO
    debit: Decimal = ZERO
    balance: Decimal | None = None
    transaction_no: str | None = None
    source_line: int = -1


@dataclass(frozen=True, slots=True)
class StoredTransaction:
    """The persisted view of a transaction as returned by a store lookup."""

    id: int
    statement_id: int
    date: date_type
    description: str | None
    credit: Decimal
    debit: Decimal
    balance: Decimal | None
    transaction_no: str | None
    unique_key: str


@dataclass(slots=True)
class ReconcileReport:
    """Counters for one reconciliation run.

    ``error``/``details`` are set when a store call failed; counts then reflect
    the work committed before the failure.
    """

    parsed: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    error: str | None = None
    details: Any = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ---------------------------------------------------------------------------
# Boundary DTOs
# ---------------------------------------------------------------------------


class StatementUpload(BaseModel):
    """Validated statement-header request (account name and source file name)."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, frozen=True)

    account_name: str
    file_name: str = DEFAULT_FILE_NAME

    @field_validator("account_name", mode="before")
    @classmethod
    def _account_name_required(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            raise ValueError("accountName is required")
        return v

    @field_validator("file_name", mode="before")
    @classmethod
    def _default_file_name(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_FILE_NAME
        return v


class IngestOutcome(StrEnum):
    OK = "ok"
    PARTIAL = "partial"
    REJECTED = "rejected"
    FAILED = "failed"


_STATUS_CODES: dict[IngestOutcome, int] = {
    IngestOutcome.OK: 200,
    IngestOutcome.PARTIAL: 207,
    IngestOutcome.REJECTED: 400,
    IngestOutcome.FAILED: 500,
}


class IngestResult(BaseModel):
    """Outcome of one upload, always renderable as a JSON payload."""

    model_config = ConfigDict(extra="forbid")

    outcome: IngestOutcome
    statement_id: int | None = None
    parsed_rows: int = 0
    inserted_rows: int = 0
    updated_rows: int = 0
    skipped_rows: int = 0
    used_fallback: bool = False
    error: str | None = None
    details: Any = None

    @property
    def ok(self) -> bool:
        return self.outcome is IngestOutcome.OK

    @property
    def partial(self) -> bool:
        return self.outcome is IngestOutcome.PARTIAL

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self.outcome]

    def to_payload(self) -> dict[str, Any]:
        """Render the caller-facing JSON shape.

        Success: ``{statement_id, parsed_rows, inserted_rows, ok: true}``.
        Partial: ``{statement_id, parsed_rows, inserted_rows, error, details}``.
        Otherwise ``{error}`` plus ``details``/``statement_id`` when known.
        """

        if self.outcome is IngestOutcome.OK:
            return {
                "statement_id": self.statement_id,
                "parsed_rows": self.parsed_rows,
                "inserted_rows": self.inserted_rows,
                "ok": True,
            }
        if self.outcome is IngestOutcome.PARTIAL:
            return {
                "statement_id": self.statement_id,
                "parsed_rows": self.parsed_rows,
                "inserted_rows": self.inserted_rows,
                "error": self.error,
                "details": self.details,
            }
        payload: dict[str, Any] = {"error": self.error}
        if self.statement_id is not None:
            payload["statement_id"] = self.statement_id
        if self.details is not None:
            payload["details"] = self.details
        return payload


__all__ = [
    "DEFAULT_FILE_NAME",
    "ZERO",
    "AmountRoles",
    "CandidateTransaction",
    "IngestOutcome",
    "IngestResult",
    "Intent",
    "LabeledLine",
    "LineKind",
    "RawLine",
    "ReconcileReport",
    "StatementUpload",
    "StoredTransaction",
]
