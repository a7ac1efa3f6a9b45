"""Assemble candidate transactions from labeled lines.

One pass over the labeled stream with two states:

- SEEKING: no open record; detail and noise lines are ignored.
- ACCUMULATING: a START line opened a record; its attached DETAIL lines feed
  it until the next START line (which flushes and reopens) or the first line
  outside the lookahead window (which flushes and returns to SEEKING).

Flushing emits a :class:`~statement_ingest.models.CandidateTransaction` when
the record satisfies the config's emission rule and silently drops it
otherwise; statements carry plenty of date-bearing lines that are not
transactions (period headers, print dates).

:func:`parse_statement` runs the strict pass and, only when it yields nothing
for the whole document, the permissive fallback pass.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from .classify import classify, split_lines
from .config import FALLBACK, STRICT, ParserConfig
from .extractors import clean_description, extract_date, read_line
from .logging_setup import get_logger
from .models import CandidateTransaction, Intent, LabeledLine, LineKind, RawLine
from .roles import detect_intent, resolve_roles

logger = get_logger(__name__)


@dataclass(slots=True)
class _OpenRecord:
    start: RawLine
    date: str
    config: ParserConfig
    texts: list[str] = field(default_factory=list)
    descriptions: list[str] = field(default_factory=list)
    amounts: tuple[Decimal, ...] = ()
    sign_hint: Intent | None = None
    transaction_no: str | None = None

    def absorb(self, text: str) -> None:
        fields = read_line(text, self.config)
        self.texts.append(text)
        if self.transaction_no is None:
            self.transaction_no = fields.transaction_no
        # Detail text only extends the description while the record is still
        # incomplete; once amounts and a description are known, trailing lines
        # are layout residue.
        if fields.description and (not self.amounts or not self.descriptions):
            self.descriptions.append(fields.description)
        if not self.amounts and fields.amounts:
            self.amounts = fields.amounts
            self.sign_hint = fields.sign_hint

    def finish(self, statement_id: int | None) -> CandidateTransaction | None:
        config = self.config
        text = " ".join(self.texts)
        description = clean_description(" ".join(self.descriptions), config)
        roles = resolve_roles(
            self.amounts, text, sign_hint=self.sign_hint, keywords=config.keywords
        )

        if not roles.has_amount:
            logger.debug("line %d: dropped, no usable amount", self.start.index)
            return None
        if config.require_description and (
            description is None or len(description) < config.min_description_length
        ):
            logger.debug("line %d: dropped, no usable description", self.start.index)
            return None
        if (
            config.require_direction_signal
            and len(self.amounts) == 1
            and self.sign_hint is None
            and detect_intent(text, config.keywords) is None
        ):
            logger.debug("line %d: dropped, lone amount without direction", self.start.index)
            return None

        return CandidateTransaction(
            statement_id=statement_id,
            date=self.date,
            description=description,
            credit=roles.credit,
            debit=roles.debit,
            balance=roles.balance,
            transaction_no=self.transaction_no,
            source_line=self.start.index,
        )


def _open(line: RawLine, config: ParserConfig) -> _OpenRecord | None:
    found = extract_date(line.text)
    if found is None:
        return None
    record = _OpenRecord(start=line, date=found.iso, config=config)
    record.absorb(line.text)
    return record


def assemble(
    labeled: Iterable[LabeledLine],
    *,
    config: ParserConfig = STRICT,
    statement_id: int | None = None,
) -> list[CandidateTransaction]:
    candidates: list[CandidateTransaction] = []
    record: _OpenRecord | None = None

    def flush() -> None:
        nonlocal record
        if record is not None:
            candidate = record.finish(statement_id)
            if candidate is not None:
                candidates.append(candidate)
        record = None

    for item in labeled:
        if item.kind is LineKind.START:
            flush()
            record = _open(item.line, config)
        elif item.kind is LineKind.DETAIL and record is not None:
            if item.anchor == record.start.index:
                record.absorb(item.line.text)
            else:
                # Lookahead window exhausted.
                flush()

    flush()
    return candidates


@dataclass(frozen=True, slots=True)
class ParseResult:
    candidates: list[CandidateTransaction]
    used_fallback: bool
    line_count: int


def parse_statement(
    text: str,
    *,
    statement_id: int | None = None,
    config: ParserConfig = STRICT,
    fallback: ParserConfig | None = FALLBACK,
) -> ParseResult:
    """Parse raw statement text into candidate transactions.

    The fallback pass runs only when the strict pass finds no candidate in the
    whole document; pass ``fallback=None`` to disable it.
    """

    lines = split_lines(text)
    candidates = assemble(classify(lines, config), config=config, statement_id=statement_id)
    used_fallback = False

    if not candidates and fallback is not None and lines:
        logger.info(
            "%s pass found no transactions in %d lines; retrying with %s pass",
            config.name,
            len(lines),
            fallback.name,
        )
        candidates = assemble(
            classify(lines, fallback), config=fallback, statement_id=statement_id
        )
        used_fallback = True

    logger.info(
        "parsed %d candidate transactions from %d lines (%s pass)",
        len(candidates),
        len(lines),
        fallback.name if used_fallback and fallback is not None else config.name,
    )
    return ParseResult(candidates=candidates, used_fallback=used_fallback, line_count=len(lines))


__all__ = ["ParseResult", "assemble", "parse_statement"]
