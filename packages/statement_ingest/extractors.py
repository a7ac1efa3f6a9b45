"""Pure field extractors over one line (or a joined window of lines).

Accepted date tokens
--------------------
``YYYY-MM-DD`` (preferred when several forms could match), ``DD/MM/YYYY`` and
``DD-MM-YYYY``. Day/month are 1–2 digits; output is zero-padded ISO. Tokens
that are not real calendar dates (``31/02/2024``) do not match.

Amount tokens
-------------
Primary form: comma-grouped digits (``1,234``, ``12,000.50``) or a plain
number with a decimal suffix (``12.34``). Plain digit runs (``12000``) are
only accepted when a line has no primary token at all. Amounts are returned as
positive magnitudes; a ``+``/``-`` glued to the front of a token is reported
separately by :func:`extract_sign_hint`.

Transaction numbers
-------------------
Bank reference prefixes ``FT``/``IBFT``/``BFT`` followed by digits, else a
standalone run of eight or more digits that is either labelled (``Ref``,
``Số GD``, ``Mã GD``, ``Trace``) or sits beside a formatted amount. An
unlabelled digit run on a line without formatted amounts is read as an
unseparated amount (``Salary 20000000 25000000``).
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .config import STRICT, ParserConfig
from .models import Intent

# ---------------------------------------------------------------------------
# Patterns (immutable module constants)
# ---------------------------------------------------------------------------

_ISO_DATE = r"(?P<y>\d{4})-(?P<m>\d{1,2})-(?P<d>\d{1,2})"
_DMY_DATE = r"(?P<d>\d{1,2})(?P<sep>[/-])(?P<m>\d{1,2})(?P=sep)(?P<y>\d{4})"

# Four-digit-year-first is tried before day-first.
_DATE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"(?<![\d/-]){_ISO_DATE}(?![\d/-]|\.\d)"),
    re.compile(rf"(?<![\d/-]){_DMY_DATE}(?![\d/-]|\.\d)"),
)

_TIME_RE = re.compile(r"(?<![\d:])\d{1,2}:\d{2}(?::\d{2})?(?![\d:])")

_AMOUNT_PRIMARY_RE = re.compile(
    r"(?<![\w.,+-])(?P<sign>[-+])?"
    r"(?P<num>\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+\.\d{1,2})"
    r"(?!\w|[.,]\d)"
)
_AMOUNT_LOOSE_RE = re.compile(
    r"(?<![\w.,+-])(?P<sign>[-+])?(?P<num>\d+(?:\.\d{1,2})?)(?!\w|[.,]\d)"
)

_REF_PREFIX_RE = re.compile(r"(?<![A-Za-z0-9])(?:IBFT|BFT|FT)\d+[A-Z0-9]*(?![A-Za-z0-9])")
_REF_DIGITS_RE = re.compile(r"(?<![\w.,])\d{8,}(?!\w|[.,]\d)")
_REF_LABEL_RE = re.compile(
    r"(?:\bref(?:erence)?(?:\s*no)?|\bs[ốo]\s*gd|\bm[ãa]\s*gd|\btrace)\W*$", re.IGNORECASE
)

_WS_RE = re.compile(r"\s+")
# Separators left dangling once dates/amounts are cut out of a line.
_EDGE_JUNK = " \t-–|:;,/*#"

_CENT = Decimal("0.01")

# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DateMatch:
    iso: str
    start: int
    end: int


def _to_iso(y: str, m: str, d: str) -> str | None:
    try:
        return date(int(y), int(m), int(d)).isoformat()
    except ValueError:
        return None


def extract_date(text: str, *, anchored: bool = True) -> DateMatch | None:
    """Find a date token in ``text``.

    With ``anchored=True`` (transaction-start detection) the token must open
    the line; otherwise the first valid token anywhere is returned, preferring
    the ``YYYY-MM-DD`` form.
    """

    for pattern in _DATE_PATTERNS:
        if anchored:
            m = pattern.match(text)
            candidates = [m] if m else []
        else:
            candidates = list(pattern.finditer(text))
        for m in candidates:
            iso = _to_iso(m.group("y"), m.group("m"), m.group("d"))
            if iso is not None:
                return DateMatch(iso=iso, start=m.start(), end=m.end())
    return None


def normalize_date(text: str) -> str | None:
    """Return the ISO form of a date token at the start of ``text`` (or ``None``)."""

    found = extract_date(text.strip())
    return found.iso if found else None


def _date_spans(text: str) -> list[tuple[int, int]]:
    spans: list[tuple[int, int]] = []
    for pattern in _DATE_PATTERNS:
        for m in pattern.finditer(text):
            if _to_iso(m.group("y"), m.group("m"), m.group("d")) is not None:
                spans.append(m.span())
    return spans


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------


def parse_amount(token: str) -> Decimal | None:
    """Convert one amount token (``"1,234.56"``) to a positive ``Decimal``.

    Returns ``None`` for tokens without digits, zero, or non-finite values.
    A leading sign is ignored; direction is decided elsewhere.
    """

    s = token.strip().lstrip("+-").replace(",", "")
    if not any(ch.isdigit() for ch in s):
        return None
    try:
        value = Decimal(s)
    except InvalidOperation:
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def _strip_non_amount_tokens(text: str) -> str:
    """Blank out dates and clock times so their digits are not read as amounts."""

    chars = list(text)
    spans = _date_spans(text) + [m.span() for m in _TIME_RE.finditer(text)]
    for start, end in spans:
        for i in range(start, end):
            chars[i] = " "
    return "".join(chars)


def _amount_matches(text: str) -> list[re.Match[str]]:
    # Zero-valued tokens ("0.00" in an empty column) are returned too so callers
    # can cut them out of the description; they never count as amounts.
    cleaned = _strip_non_amount_tokens(text)
    primary = list(_AMOUNT_PRIMARY_RE.finditer(cleaned))
    if any(parse_amount(m.group("num")) for m in primary):
        return primary
    return list(_AMOUNT_LOOSE_RE.finditer(cleaned))


def extract_amounts(text: str) -> list[Decimal]:
    """Return the positive amounts in ``text`` in left-to-right order."""

    amounts: list[Decimal] = []
    for m in _amount_matches(text):
        value = parse_amount(m.group("num"))
        if value is not None:
            amounts.append(value)
    return amounts


def extract_sign_hint(text: str) -> Intent | None:
    """Direction implied by the first explicitly signed amount token, if any."""

    for m in _amount_matches(text):
        if parse_amount(m.group("num")) is None:
            continue
        sign = m.group("sign")
        if sign == "-":
            return Intent.OUTFLOW
        if sign == "+":
            return Intent.INFLOW
    return None


# ---------------------------------------------------------------------------
# Transaction numbers
# ---------------------------------------------------------------------------


def _transaction_no_match(text: str) -> re.Match[str] | None:
    m = _REF_PREFIX_RE.search(text)
    if m:
        return m
    cleaned = _strip_non_amount_tokens(text)
    for m in _REF_DIGITS_RE.finditer(cleaned):
        if _REF_LABEL_RE.search(cleaned[: m.start()]):
            return m
        rest = _blank(cleaned, [m.span()])
        if any(parse_amount(a.group("num")) for a in _AMOUNT_PRIMARY_RE.finditer(rest)):
            return m
    return None


def extract_transaction_no(text: str) -> str | None:
    """Return the first bank reference in ``text`` (prefixed form preferred)."""

    m = _transaction_no_match(text)
    return m.group(0) if m else None


# ---------------------------------------------------------------------------
# Descriptions
# ---------------------------------------------------------------------------


def _blank(text: str, spans: Iterable[tuple[int, int]]) -> str:
    chars = list(text)
    for start, end in spans:
        for i in range(start, end):
            chars[i] = " "
    return "".join(chars)


def _strip_admin_prefixes(text: str, prefixes: tuple[str, ...]) -> str:
    changed = True
    while changed and text:
        changed = False
        for prefix in prefixes:
            if text[: len(prefix)].casefold() == prefix:
                text = text[len(prefix) :].lstrip(_EDGE_JUNK)
                changed = True
                break
    return text


def clean_description(text: str, config: ParserConfig = STRICT) -> str | None:
    """Collapse whitespace, strip admin prefixes and edge separators; empty → ``None``."""

    s = _WS_RE.sub(" ", text).strip(_EDGE_JUNK)
    s = _strip_admin_prefixes(s, config.admin_prefixes)
    s = s.strip(_EDGE_JUNK)
    return s or None


@dataclass(frozen=True, slots=True)
class LineFields:
    """Everything the assembler reads from one line."""

    transaction_no: str | None
    amounts: tuple[Decimal, ...]
    sign_hint: Intent | None
    description: str | None


def read_line(text: str, config: ParserConfig = STRICT) -> LineFields:
    """Read reference, amounts, sign hint and description from one line.

    Tokens are consumed in a fixed order so no digit is counted twice: dates
    and clock times first, then the reference number, then amounts from what
    is left. The description is the remainder.
    """

    residual = _strip_non_amount_tokens(text)
    ref = _transaction_no_match(residual)
    if ref is not None:
        residual = _blank(residual, [ref.span()])
    matches = _amount_matches(residual)

    amounts: list[Decimal] = []
    sign_hint: Intent | None = None
    for m in matches:
        value = parse_amount(m.group("num"))
        if value is None:
            continue
        amounts.append(value)
        if sign_hint is None and m.group("sign"):
            sign_hint = Intent.OUTFLOW if m.group("sign") == "-" else Intent.INFLOW

    residual = _blank(residual, [m.span() for m in matches])
    return LineFields(
        transaction_no=ref.group(0) if ref is not None else None,
        amounts=tuple(amounts),
        sign_hint=sign_hint,
        description=clean_description(residual, config),
    )


def extract_description(text: str, config: ParserConfig = STRICT) -> str | None:
    """Residual text of a line once dates, times, reference and amounts are removed."""

    return read_line(text, config).description


__all__ = [
    "DateMatch",
    "LineFields",
    "clean_description",
    "extract_amounts",
    "extract_date",
    "extract_description",
    "extract_sign_hint",
    "extract_transaction_no",
    "normalize_date",
    "parse_amount",
    "read_line",
]
