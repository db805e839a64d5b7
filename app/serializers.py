from app.models import Transaction
from app.receipt.base import ParsedReceipt


def serialize_parsed_receipt(parsed: ParsedReceipt) -> dict:
    data = {
        "merchant": parsed.merchant,
        "amount": parsed.amount,
        "dateStr": parsed.date_str,
    }
    if parsed.raw_text is not None:
        data["rawText"] = parsed.raw_text
    return data


def serialize_transaction_receipt(tx: Transaction, cached: bool = False) -> dict:
    return {
        "transactionId": str(tx.id),
        "receiptPath": tx.receipt_path,
        "parsed": tx.receipt_parsed,
        "parsedAt": tx.receipt_parsed_at.isoformat() if tx.receipt_parsed_at else None,
        "cached": cached,
    }
