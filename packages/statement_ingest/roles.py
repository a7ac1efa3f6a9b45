"""Decide which parsed amounts are debit, credit and running balance.

Plain-text extraction loses column boundaries, so the number of amounts on a
line and a small bilingual keyword table are the only signals available:

==========  ==============================================================
amounts     rule
==========  ==============================================================
>= 3        debit, credit, balance (standard three-column layout)
2           outflow → (debit, balance); inflow → (credit, balance);
            no signal → (debit, balance)
1           outflow/inflow decides debit or credit; default debit
0           all zero
==========  ==============================================================

An explicit ``+``/``-`` on an amount token (``sign_hint``) outranks keywords.
This is a heuristic and will misclassify some rows; it never raises.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from .config import DIRECTION_KEYWORDS, KeywordRule, word_sequence
from .models import ZERO, AmountRoles, Intent


def detect_intent(
    text: str, keywords: Sequence[KeywordRule] = DIRECTION_KEYWORDS
) -> Intent | None:
    """Return the intent of the first rule with a whole-word term in ``text``.

    Rules are consulted in order (outflow first in the default table).
    Matching ignores case and Vietnamese diacritics.
    """

    haystack = word_sequence(text)
    for rule in keywords:
        for term in rule.terms:
            needle = word_sequence(term)
            if needle.strip() and needle in haystack:
                return rule.intent
    return None


def resolve_roles(
    amounts: Sequence[Decimal],
    line_text: str,
    *,
    sign_hint: Intent | None = None,
    keywords: Sequence[KeywordRule] = DIRECTION_KEYWORDS,
) -> AmountRoles:
    values = list(amounts)
    if len(values) >= 3:
        return AmountRoles(debit=values[0], credit=values[1], balance=values[2])
    if not values:
        return AmountRoles()

    intent = sign_hint or detect_intent(line_text, keywords)
    first = values[0]
    balance = values[1] if len(values) == 2 else None
    if intent is Intent.INFLOW:
        return AmountRoles(debit=ZERO, credit=first, balance=balance)
    return AmountRoles(debit=first, credit=ZERO, balance=balance)


__all__ = ["detect_intent", "resolve_roles"]
