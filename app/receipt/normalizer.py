from app.receipt.base import ParsedReceipt
from app.receipt.extractor import (
    BR_DATE_RE,
    ISO_DATE_RE,
    amount_value,
    collapse_whitespace,
    find_amounts,
    format_amount,
    iso_date,
)

MERCHANT_MAX_LENGTH = 80


def normalize_amount(value: str | None) -> str | None:
    if not value:
        return None
    candidates = find_amounts(value)
    if not candidates:
        return None
    amount = amount_value(candidates[-1])
    return format_amount(amount) if amount is not None else None


def normalize_date(value: str | None) -> str | None:
    if not value:
        return None
    value = value.strip()

    match = ISO_DATE_RE.fullmatch(value)
    if match:
        return iso_date(*match.groups())

    match = BR_DATE_RE.fullmatch(value)
    if match:
        day, _sep, month, year = match.groups()
        return iso_date(year, month, day)

    return None


def normalize_merchant(value: str | None) -> str | None:
    if not value:
        return None
    # rstrip so a cut landing on a space does not leave a trailing blank
    merchant = collapse_whitespace(value)[:MERCHANT_MAX_LENGTH].rstrip()
    return merchant or None


def normalize_receipt(candidate: ParsedReceipt) -> ParsedReceipt:
    """Bring candidate fields, from OCR or from a model, into canonical form.

    Off-format values become None rather than being guessed. Idempotent.
    """
    return ParsedReceipt(
        merchant=normalize_merchant(candidate.merchant),
        amount=normalize_amount(candidate.amount),
        date_str=normalize_date(candidate.date_str),
        raw_text=candidate.raw_text,
    )
