# ruff: noqa: E501
"""Parser end-to-end: raw statement text in, candidate transactions out."""

from __future__ import annotations

import textwrap
from decimal import Decimal

from statement_ingest.assembler import assemble, parse_statement
from statement_ingest.classify import classify, split_lines
from statement_ingest.config import FALLBACK, STRICT
from statement_ingest.models import ZERO, CandidateTransaction

D = Decimal


def _dedent(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n").rstrip()


def _one(text: str, **kwargs) -> CandidateTransaction:
    result = parse_statement(text, **kwargs)
    assert len(result.candidates) == 1, result.candidates
    return result.candidates[0]


# ---- Reference scenarios -------------------------------------------------------


def test_two_amount_line_without_keyword_is_debit_and_balance() -> None:
    c = _one("05/01/2024 Grocery Store 12,000 488,000")
    assert c.date == "2024-01-05"
    assert c.description == "Grocery Store"
    assert c.debit == D("12000.00")
    assert c.credit == ZERO
    assert c.balance == D("488000.00")
    assert c.transaction_no is None


def test_pay_related_terms_are_inflow() -> None:
    c = _one("06/01/2024 Paycheck FT1002233 200,000 688,000", statement_id=7)
    assert c.statement_id == 7
    assert c.transaction_no == "FT1002233"
    assert c.description == "Paycheck"
    assert c.credit == D("200000.00")
    assert c.debit == ZERO
    assert c.balance == D("688000.00")


def test_dated_line_without_amounts_or_description_is_discarded() -> None:
    result = parse_statement("07/01/2024 X")
    assert result.candidates == []


def test_fallback_runs_only_when_strict_pass_finds_nothing() -> None:
    # A lone amount with no direction signal is rejected by the strict pass.
    result = parse_statement("05/01/2024 ATM HANOI 500,000")
    assert result.used_fallback is True
    assert len(result.candidates) == 1
    assert result.candidates[0].debit == D("500000.00")

    mixed = parse_statement(
        "05/01/2024 ATM HANOI 500,000\n06/01/2024 Grocery Store 12,000 488,000"
    )
    assert mixed.used_fallback is False
    assert [c.description for c in mixed.candidates] == ["Grocery Store"]


def test_fallback_can_be_disabled() -> None:
    result = parse_statement("05/01/2024 ATM HANOI 500,000", fallback=None)
    assert result.used_fallback is False
    assert result.candidates == []


def test_signed_sample_statement() -> None:
    text = _dedent(
        """
        2024-01-05 Grocery Store -12.34
        2024-01-06 Paycheck +200.00
        01/08/2025 CHUYỂN KHOẢN NHẬN TIỀN +500,000.00
        02/08/2025 RÚT TIỀN ATM -200,000.00
        Random line
        """
    )
    result = parse_statement(text)
    assert result.used_fallback is False
    got = [(c.date, c.description, c.debit, c.credit) for c in result.candidates]
    assert got == [
        ("2024-01-05", "Grocery Store", D("12.34"), ZERO),
        ("2024-01-06", "Paycheck", ZERO, D("200.00")),
        ("2025-08-01", "CHUYỂN KHOẢN NHẬN TIỀN", ZERO, D("500000.00")),
        ("2025-08-02", "RÚT TIỀN ATM", D("200000.00"), ZERO),
    ]


def test_vietnamese_keywords_with_and_without_diacritics() -> None:
    with_marks = _one("02/08/2025 RÚT TIỀN ATM 200,000.00")
    without = _one("02/08/2025 RUT TIEN ATM 200,000.00")
    assert with_marks.debit == without.debit == D("200000.00")

    inflow = _one("03/08/2025 Chuyen khoan nhan tien tu NGUYEN VAN A 1,500,000.00")
    assert inflow.credit == D("1500000.00")
    assert inflow.debit == ZERO


# ---- Layout handling -----------------------------------------------------------


def test_multi_line_record_with_noise_around_it() -> None:
    text = _dedent(
        """
        TECHCOMBANK
        BANK STATEMENT / SAO KÊ TÀI KHOẢN
        Account No: 19033344455566
        Opening balance 1,000,000
        Transaction Date | Transaction No | Details | Debit | Credit | Balance
        05/08/2025 FT25217123456
        Nội dung: Thanh toan hoa don dien
        350,000 0.00 650,000
        06/08/2025 10:15:22 Salary August 20,000,000.00 20,650,000.00
        Closing balance 20,650,000
        """
    )
    result = parse_statement(text, statement_id=3)
    assert result.used_fallback is False
    first, second = result.candidates
    assert first.transaction_no == "FT25217123456"
    assert first.description == "Thanh toan hoa don dien"
    assert (first.debit, first.credit, first.balance) == (D("350000.00"), ZERO, D("650000.00"))
    assert second.date == "2025-08-06"
    assert second.description == "Salary August"
    assert second.credit == D("20000000.00")
    assert second.balance == D("20650000.00")


def test_detail_lines_beyond_the_window_are_not_absorbed() -> None:
    text = "05/01/2024 Coffee\n" + "\n".join(f"note {ch}" for ch in "abcde") + "\nFee 1,000.00"
    # Strict window (5 lines) ends before the amount line; fallback window (8) reaches it.
    strict = assemble(classify(split_lines(text), STRICT), config=STRICT)
    assert strict == []
    relaxed = assemble(classify(split_lines(text), FALLBACK), config=FALLBACK)
    assert len(relaxed) == 1
    assert relaxed[0].debit == D("1000.00")


def test_source_line_points_at_start_line() -> None:
    result = parse_statement("header text\n\n05/01/2024 Grocery Store 12,000 488,000")
    assert result.line_count == 2
    assert result.candidates[0].source_line == 2


def test_parse_is_deterministic() -> None:
    text = "05/01/2024 Grocery Store 12,000 488,000\n06/01/2024 Paycheck FT1002233 200,000 688,000"
    assert parse_statement(text) == parse_statement(text)


def test_empty_text_yields_nothing() -> None:
    result = parse_statement("")
    assert result.candidates == []
    assert result.line_count == 0
    assert result.used_fallback is False


def test_detail_line_with_column_words_keeps_its_description() -> None:
    text = _dedent(
        """
        04/08/2025 Grocery Store 12,000 488,000
        05/08/2025 FT25217123456
        Interest credit from Ngân hàng ACB
        50,000 538,000
        """
    )
    result = parse_statement(text)
    assert result.used_fallback is False
    grocery, interest = result.candidates
    assert grocery.description == "Grocery Store"
    assert interest.transaction_no == "FT25217123456"
    assert interest.description == "Interest credit from Ngân hàng ACB"
    assert (interest.debit, interest.credit, interest.balance) == (
        ZERO,
        D("50000.00"),
        D("538000.00"),
    )


def test_unseparated_large_amounts_are_not_taken_as_reference() -> None:
    c = _one("05/01/2024 Salary 20000000 25000000")
    assert c.transaction_no is None
    assert c.credit == D("20000000.00")
    assert c.balance == D("25000000.00")
