from __future__ import annotations

from decimal import Decimal

import pytest

from statement_ingest.config import FALLBACK, STRICT
from statement_ingest.extractors import (
    clean_description,
    extract_amounts,
    extract_date,
    extract_description,
    extract_sign_hint,
    extract_transaction_no,
    normalize_date,
    parse_amount,
    read_line,
)
from statement_ingest.models import Intent


# ---- Dates -------------------------------------------------------------------


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("2024-01-05 Grocery", "2024-01-05"),
        ("05/01/2024 Grocery", "2024-01-05"),
        ("5/1/2024 Grocery", "2024-01-05"),
        ("05-01-2024 Grocery", "2024-01-05"),
        ("31/12/2023", "2023-12-31"),
    ],
)
def test_extract_date_accepts_supported_forms(text: str, expected: str) -> None:
    found = extract_date(text)
    assert found is not None
    assert found.iso == expected
    assert found.start == 0


@pytest.mark.parametrize(
    "text",
    [
        "31/02/2024 impossible day",
        "05/01/24 two-digit year",
        "05/01-2024 mixed separators",
        "Grocery 05/01/2024",  # not at line start
        "",
    ],
)
def test_extract_date_rejects_invalid_or_unanchored(text: str) -> None:
    assert extract_date(text) is None


def test_extract_date_unanchored_prefers_iso_form() -> None:
    found = extract_date("printed 01/02/2024 for period 2024-03-04", anchored=False)
    assert found is not None
    assert found.iso == "2024-03-04"


def test_normalize_date_trims_and_returns_none_for_garbage() -> None:
    assert normalize_date("  07/08/2025  ") == "2025-08-07"
    assert normalize_date("tomorrow") is None


# ---- Amounts -----------------------------------------------------------------


@pytest.mark.parametrize(
    ("token", "expected"),
    [
        ("12,000", Decimal("12000.00")),
        ("1,234", Decimal("1234.00")),
        ("1,234.5", Decimal("1234.50")),
        ("-200,000.00", Decimal("200000.00")),
        ("+12.345", Decimal("12.35")),
        ("0", None),
        ("abc", None),
        ("", None),
    ],
)
def test_parse_amount(token: str, expected: Decimal | None) -> None:
    assert parse_amount(token) == expected


def test_extract_amounts_in_order_and_ignores_dates_and_times() -> None:
    text = "05/01/2024 10:32 Grocery Store 12,000 488,000"
    assert extract_amounts(text) == [Decimal("12000.00"), Decimal("488000.00")]


def test_plain_integers_only_used_when_no_formatted_amount_present() -> None:
    # A formatted amount exists, so the bare "24" is not read as money.
    assert extract_amounts("Store 24 purchase 1,500") == [Decimal("1500.00")]
    # No formatted amount at all: loose integers are accepted.
    assert extract_amounts("ATM 500000") == [Decimal("500000.00")]


def test_extract_sign_hint() -> None:
    assert extract_sign_hint("2024-01-05 Grocery Store -12.34") is Intent.OUTFLOW
    assert extract_sign_hint("2024-01-06 Paycheck +200.00") is Intent.INFLOW
    assert extract_sign_hint("Transfer-out 200.00") is None


# ---- Transaction numbers ---------------------------------------------------


def test_extract_transaction_no_prefers_bank_prefix() -> None:
    assert extract_transaction_no("06/01/2024 Paycheck FT1002233 200,000") == "FT1002233"
    assert extract_transaction_no("IBFT25213ABC transfer") == "IBFT25213ABC"


def test_extract_transaction_no_digit_run_fallback() -> None:
    assert extract_transaction_no("Ref 123456789 transfer 1,000") == "123456789"
    # Dates and short numbers never count as references.
    assert extract_transaction_no("05/01/2024 Shop 1234567 1,000") is None


# ---- Descriptions ------------------------------------------------------------


def test_clean_description_strips_admin_prefixes_and_separators() -> None:
    assert clean_description("  Nội dung:  Chuyển tiền   học phí -- ") == "Chuyển tiền học phí"
    assert clean_description("ND: Remark: Coffee") == "Coffee"
    assert clean_description(" | - ") is None


def test_read_line_does_not_double_count_tokens() -> None:
    fields = read_line("06/01/2024 Paycheck FT1002233 200,000 688,000", STRICT)
    assert fields.transaction_no == "FT1002233"
    assert fields.amounts == (Decimal("200000.00"), Decimal("688000.00"))
    assert fields.sign_hint is None
    assert fields.description == "Paycheck"


def test_extract_description_is_residual_text() -> None:
    assert extract_description("05/01/2024 Grocery Store 12,000 488,000") == "Grocery Store"
    assert extract_description("05/01/2024 12,000", FALLBACK) is None


@pytest.mark.parametrize("fmt", ["{d:02d}/{m:02d}/{y}", "{d}-{m}-{y}", "{y}-{m:02d}-{d:02d}"])
@pytest.mark.parametrize(("y", "m", "d"), [(2024, 2, 29), (2025, 12, 1), (1999, 1, 31)])
def test_date_normalization_recovers_calendar_date(fmt: str, y: int, m: int, d: int) -> None:
    iso = normalize_date(fmt.format(y=y, m=m, d=d))
    assert iso is not None
    assert iso == f"{y:04d}-{m:02d}-{d:02d}"


def test_unlabelled_digit_runs_are_amounts_when_no_formatted_amount() -> None:
    fields = read_line("05/01/2024 Salary 20000000 25000000", STRICT)
    assert fields.transaction_no is None
    assert fields.amounts == (Decimal("20000000.00"), Decimal("25000000.00"))
    assert fields.description == "Salary"


def test_digit_run_reference_needs_label_or_formatted_amount() -> None:
    assert extract_transaction_no("Số GD: 123456789 chuyen khoan") == "123456789"
    assert extract_transaction_no("Transfer 123456789 1,000.00") == "123456789"
    assert extract_transaction_no("Transfer 123456789 1000") is None
