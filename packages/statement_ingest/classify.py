"""Split extracted text into lines and label each one.

Labels
------
- ``NOISE``: letterhead, balance summaries and legend text (substring match
  against the config's phrase tables on folded text), dateless rows made up of
  column-header vocabulary, or lines shorter than ``config.min_line_length``.
- ``START``: a non-noise line that opens with a date token.
- ``DETAIL``: any other line. It is attached to the most recent START line
  until the next START or until ``config.lookahead`` detail lines have been
  attached; later detail lines are orphans (``anchor is None``).
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Iterable

from .config import (
    HEADER_MIN_COVERAGE,
    HEADER_MIN_TERMS,
    STRICT,
    ParserConfig,
    fold_text,
    word_sequence,
)
from .extractors import extract_date
from .models import LabeledLine, LineKind, RawLine

_LINE_SPLIT_RE = re.compile(r"\r?\n|\r")


def split_lines(text: str) -> list[RawLine]:
    """Return trimmed, non-empty lines of ``text`` with their original indexes.

    Text is NFC-normalized first so Vietnamese phrases compare equal whether
    the extractor emitted composed or decomposed characters.
    """

    normalized = unicodedata.normalize("NFC", text or "")
    lines: list[RawLine] = []
    for idx, raw in enumerate(_LINE_SPLIT_RE.split(normalized)):
        stripped = raw.strip()
        if stripped:
            lines.append(RawLine(idx, stripped))
    return lines


def _is_header_row(text: str, terms: tuple[str, ...]) -> bool:
    haystack = word_sequence(text)
    words = haystack.split()
    if not words:
        return False
    matched = covered = 0
    for term in terms:
        needle = word_sequence(term)
        hits = haystack.count(needle)
        if hits:
            matched += 1
            covered += hits * len(needle.split())
    return matched >= HEADER_MIN_TERMS and covered >= HEADER_MIN_COVERAGE * len(words)


def is_noise(text: str, config: ParserConfig = STRICT, *, starts_with_date: bool = False) -> bool:
    if len(text) < config.min_line_length:
        return True
    folded = fold_text(text)
    if any(fold_text(phrase) in folded for phrase in config.noise_phrases):
        return True
    if not starts_with_date and _is_header_row(text, config.header_terms):
        return True
    return False


def classify(lines: Iterable[RawLine], config: ParserConfig = STRICT) -> list[LabeledLine]:
    labeled: list[LabeledLine] = []
    anchor: int | None = None
    attached = 0

    for line in lines:
        starts_with_date = extract_date(line.text) is not None
        if is_noise(line.text, config, starts_with_date=starts_with_date):
            labeled.append(LabeledLine(line, LineKind.NOISE))
            continue
        if starts_with_date:
            anchor = line.index
            attached = 0
            labeled.append(LabeledLine(line, LineKind.START))
            continue
        if anchor is not None and attached < config.lookahead:
            attached += 1
            labeled.append(LabeledLine(line, LineKind.DETAIL, anchor))
        else:
            labeled.append(LabeledLine(line, LineKind.DETAIL))

    return labeled


__all__ = ["classify", "is_noise", "split_lines"]
