"""Immutable parser configuration and phrase tables.

The parser runs as one pipeline at two operating points:

- ``STRICT``: full bilingual noise filtering, a description is required and
  single-amount rows need a direction signal (keyword or explicit sign).
- ``FALLBACK``: used only when the strict pass finds nothing in a whole
  document. Column-header filtering is dropped, the lookahead window is wider
  and rows are accepted on an amount alone.

Phrase matching rules
---------------------
- All phrase tables are compared on text folded to lower case with Vietnamese
  tone marks removed, so ``"SO DU CUOI KY"`` and ``"Số dư cuối kỳ"`` agree.
- Noise phrases match as substrings of the folded line.
- Header terms match whole words. A line without a date is a column-header row
  only when it holds at least two header terms and they make up two thirds of
  its words; "Interest credit from Ngân hàng ACB" is a description, not a header.
- Direction keywords match whole words.
"""

from __future__ import annotations

import os
import re
import unicodedata
from dataclasses import dataclass, field, replace

from .models import Intent

DEFAULT_BATCH_SIZE = 500
_BATCH_SIZE_ENV = "STATEMENT_INGEST_BATCH_SIZE"

# ---------------------------------------------------------------------------
# Direction keywords
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class KeywordRule:
    intent: Intent
    terms: tuple[str, ...]


# Canonical bilingual table. Outflow is consulted before inflow.
DIRECTION_KEYWORDS: tuple[KeywordRule, ...] = (
    KeywordRule(
        Intent.OUTFLOW,
        (
            "debit",
            "withdraw",
            "withdrawal",
            "payment",
            "transfer-out",
            "transfer out",
            "purchase",
            "fee",
            "charge",
            # Vietnamese
            "rút tiền",
            "thanh toán",
            "chuyển đi",
            "chuyển tiền đi",
            "trả tiền",
            "phí",
            "ghi nợ",
        ),
    ),
    KeywordRule(
        Intent.INFLOW,
        (
            "credit",
            "deposit",
            "receive",
            "received",
            "refund",
            "interest",
            "salary",
            "payroll",
            "paycheck",
            # Vietnamese
            "nhận tiền",
            "nhận",
            "nộp tiền",
            "hoàn tiền",
            "tiền lãi",
            "trả lãi",
            "lương",
            "ghi có",
        ),
    ),
)

# ---------------------------------------------------------------------------
# Noise tables
# ---------------------------------------------------------------------------

LETTERHEAD_PHRASES: tuple[str, ...] = (
    "bank statement",
    "sổ phụ",
    "sao kê tài khoản",
    "customer name",
    "tên khách hàng",
    "account no",
    "số tài khoản",
)

SUMMARY_PHRASES: tuple[str, ...] = (
    "opening balance",
    "ending balance",
    "closing balance",
    "số dư đầu kỳ",
    "số dư cuối kỳ",
    "total debit",
    "total credit",
    "tổng phát sinh",
    "techcombank tra lai",
)

COLUMN_HEADER_PHRASES: tuple[str, ...] = (
    "transaction date",
    "transaction no",
    "số bút toán",
    "diễn giải",
    "nợ tktt",
    "có tktt",
)

# Footnotes that explain what each column means.
LEGEND_PHRASES: tuple[str, ...] = (
    "ngày giao dịch: là ngày",
    "số dư: là số dư",
    "transaction date: is the next",
    "balance: is total power",
)

# Column-header vocabulary, only consulted on lines that do not start with a date.
HEADER_TERMS: tuple[str, ...] = (
    "transaction",
    "date",
    "details",
    "description",
    "debit",
    "credit",
    "balance",
    "amount",
    "no",
    "ref",
    "ngày",
    "giao dịch",
    "ngân hàng",
    "số dư",
    "diễn giải",
)

HEADER_MIN_TERMS = 2
# Share of a line's words that must be header vocabulary.
HEADER_MIN_COVERAGE = 2 / 3

ADMIN_PREFIXES: tuple[str, ...] = (
    "nội dung:",
    "noi dung:",
    "nd:",
    "diễn giải:",
    "dien giai:",
    "mô tả:",
    "ghi chú:",
    "description:",
    "details:",
    "content:",
    "remarks:",
    "remark:",
    "ref:",
)


@dataclass(frozen=True, slots=True)
class ParserConfig:
    name: str = "strict"
    noise_phrases: tuple[str, ...] = (
        LETTERHEAD_PHRASES + SUMMARY_PHRASES + COLUMN_HEADER_PHRASES + LEGEND_PHRASES
    )
    header_terms: tuple[str, ...] = HEADER_TERMS
    admin_prefixes: tuple[str, ...] = ADMIN_PREFIXES
    keywords: tuple[KeywordRule, ...] = field(default=DIRECTION_KEYWORDS)
    # Max detail lines attached to one transaction-start line.
    lookahead: int = 5
    min_line_length: int = 3
    min_description_length: int = 2
    require_description: bool = True
    require_direction_signal: bool = True

    def __post_init__(self) -> None:
        if self.lookahead < 0:
            raise ValueError("ParserConfig.lookahead must be >= 0")
        if self.min_line_length < 0 or self.min_description_length < 0:
            raise ValueError("ParserConfig length thresholds must be >= 0")


STRICT = ParserConfig()

FALLBACK = replace(
    STRICT,
    name="fallback",
    noise_phrases=LETTERHEAD_PHRASES + SUMMARY_PHRASES + LEGEND_PHRASES,
    header_terms=(),
    lookahead=8,
    min_line_length=1,
    min_description_length=0,
    require_description=False,
    require_direction_signal=False,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_WORD_RE = re.compile(r"\w+(?:-\w+)*")


def fold_text(text: str) -> str:
    """Lower-case ``text`` and strip diacritics (``đ`` becomes ``d``)."""

    decomposed = unicodedata.normalize("NFKD", text.casefold())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.replace("đ", "d")


def word_sequence(text: str) -> str:
    """Return folded words of ``text`` joined by single spaces and space-padded.

    Padding lets callers test whole-word containment with a plain substring
    check: ``f" {term} " in word_sequence(line)``.
    """

    return " " + " ".join(_WORD_RE.findall(fold_text(text))) + " "


def batch_size_from_env(default: int = DEFAULT_BATCH_SIZE) -> int:
    """Resolve the reconciliation batch size from ``STATEMENT_INGEST_BATCH_SIZE``."""

    raw = os.getenv(_BATCH_SIZE_ENV)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


__all__ = [
    "ADMIN_PREFIXES",
    "DEFAULT_BATCH_SIZE",
    "DIRECTION_KEYWORDS",
    "FALLBACK",
    "HEADER_TERMS",
    "KeywordRule",
    "ParserConfig",
    "STRICT",
    "batch_size_from_env",
    "fold_text",
    "word_sequence",
]
