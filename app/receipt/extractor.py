"""Heuristic field extraction from OCR text of Brazilian receipts."""

import re
from decimal import Decimal, InvalidOperation

from app.receipt.base import ParsedReceipt

# "1.234,56" (grouped, comma decimal) or "123,45" / "123.45" (simple). The
# lookarounds keep us from matching the middle of a longer number such as a CNPJ.
AMOUNT_RE = re.compile(r"(?<![\d.,])(\d{1,3}(?:\.\d{3})+,\d{2}|\d+[.,]\d{2})(?![\d])")

ISO_DATE_RE = re.compile(r"(?<!\d)(\d{4})-(\d{2})-(\d{2})(?!\d)")
BR_DATE_RE = re.compile(r"(?<!\d)(\d{2})([/-])(\d{2})\2(\d{4})(?!\d)")

# Long tokens also match inside OCR-merged words ("CNPJ12345", "SUBTOTAL")
MERCHANT_SKIP_RE = re.compile(r"CNPJ|CPF|TOTAL|VALOR|\b(?:DATA|HORA|RS)\b|R\$", re.IGNORECASE)
MERCHANT_SCAN_LINES = 8
MERCHANT_MIN_LENGTH = 3

AMOUNT_POLICIES = ("last", "largest")


def amount_value(text: str) -> Decimal | None:
    """Convert an amount-shaped string to a positive Decimal.

    With a comma present, dots are thousands separators and the comma is the
    decimal point ("1.234,56"). Without one, the dot is the decimal point ("12.50").
    """
    if "," in text:
        text = text.replace(".", "").replace(",", ".")
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value


def format_amount(value: Decimal) -> str:
    return f"{value.quantize(Decimal('0.01')):f}".replace(".", ",")


def find_amounts(text: str) -> list[str]:
    return AMOUNT_RE.findall(text)


def extract_amount(text: str, policy: str = "last") -> str | None:
    """Pick the receipt total.

    `last`: totals are usually printed at the bottom of the receipt.
    `largest`: totals are usually the biggest number on it.
    """
    if policy not in AMOUNT_POLICIES:
        raise ValueError(f"Unknown amount policy: {policy}")

    candidates = find_amounts(text)
    if not candidates:
        return None

    if policy == "last":
        value = amount_value(candidates[-1])
    else:
        values = [v for v in (amount_value(c) for c in candidates) if v is not None]
        value = max(values) if values else None

    return format_amount(value) if value is not None else None


def iso_date(year: str, month: str, day: str) -> str | None:
    if not 1 <= int(month) <= 12 or not 1 <= int(day) <= 31:
        return None
    return f"{year}-{month}-{day}"


def extract_date(text: str) -> str | None:
    """ISO dates win; otherwise the first DD/MM/YYYY or DD-MM-YYYY."""
    match = ISO_DATE_RE.search(text)
    if match:
        return iso_date(*match.groups())

    match = BR_DATE_RE.search(text)
    if match:
        day, _sep, month, year = match.groups()
        return iso_date(year, month, day)

    return None


def collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def extract_merchant(text: str) -> str | None:
    lines = [line.strip() for line in text.splitlines()]
    lines = [line for line in lines if len(line) >= MERCHANT_MIN_LENGTH]
    if not lines:
        return None

    for line in lines[:MERCHANT_SCAN_LINES]:
        if not MERCHANT_SKIP_RE.search(line):
            return collapse_whitespace(line)

    return collapse_whitespace(lines[0])


def extract_fields(text: str, amount_policy: str = "last") -> ParsedReceipt:
    return ParsedReceipt(
        merchant=extract_merchant(text),
        amount=extract_amount(text, amount_policy),
        date_str=extract_date(text),
    )
