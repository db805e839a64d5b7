import re
from decimal import Decimal

import pytest

from app.receipt.base import ParsedReceipt
from app.receipt.normalizer import normalize_amount, normalize_date, normalize_merchant, normalize_receipt

AMOUNT_SHAPE = re.compile(r"^\d+,\d{2}$")


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("123,45", "123,45"),
        ("R$ 45,90", "45,90"),
        ("1.234,56", "1234,56"),
        ("12.50", "12,50"),
        ("10,00 e 20,00", "20,00"),
        ("45.9", None),
        ("45", None),
        ("0,00", None),
        ("", None),
        (None, None),
    ],
)
def test_normalize_amount(raw, expected):
    assert normalize_amount(raw) == expected


@pytest.mark.parametrize("raw", ["123,45", "R$ 1.000,00", "0,01", "TOTAL 99.99", "7.777.777,77"])
def test_normalized_amount_shape(raw):
    amount = normalize_amount(raw)
    assert AMOUNT_SHAPE.match(amount)
    assert Decimal(amount.replace(",", ".")) > 0


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("2024-03-01", "2024-03-01"),
        (" 2024-03-01 ", "2024-03-01"),
        ("01/03/2024", "2024-03-01"),
        ("01-03-2024", "2024-03-01"),
        ("2024-13-01", None),
        ("2024-01-32", None),
        ("13/13/2024", None),
        ("01.03.2024", None),
        ("2024/03/01", None),
        ("Data: 01/03/2024", None),
        ("1/3/2024", None),
        (None, None),
    ],
)
def test_normalize_date(raw, expected):
    assert normalize_date(raw) == expected


def test_long_merchant_is_truncated_to_80():
    assert normalize_merchant("A" * 120) == "A" * 80


def test_merchant_whitespace_is_collapsed():
    assert normalize_merchant("  Loja \n\t do   Zé ") == "Loja do Zé"


def test_blank_merchant_is_null():
    assert normalize_merchant("   \n ") is None


def test_merchant_cut_on_space_has_no_trailing_blank():
    merchant = normalize_merchant("A" * 79 + " " + "B" * 10)
    assert merchant == "A" * 79


@pytest.mark.parametrize(
    "candidate",
    [
        ParsedReceipt(merchant="  SUPERMERCADO   BOM ", amount="R$ 1.234,50", date_str="01/03/2024"),
        ParsedReceipt(merchant="X" * 79 + " " + "Y" * 30, amount="12.50", date_str="2024-02-29"),
        ParsedReceipt(merchant=None, amount="0,00", date_str="2024-99-01"),
        ParsedReceipt(merchant="Loja", amount=None, date_str=None, raw_text="Loja\n10,00"),
    ],
)
def test_normalize_is_idempotent(candidate):
    once = normalize_receipt(candidate)
    assert normalize_receipt(once) == once


def test_normalize_keeps_raw_text():
    parsed = normalize_receipt(ParsedReceipt(raw_text="abc"))
    assert parsed.raw_text == "abc"
    assert parsed.is_empty()
