import logging

import httpx
from sqlalchemy.orm import Session

from app.config import Settings
from app.receipt.acquisition import acquire_from_path, acquire_from_url
from app.receipt.base import Deadline, ParsedReceipt, ReceiptImage, ReceiptTextSource
from app.receipt.extractor import extract_fields
from app.receipt.normalizer import normalize_receipt
from app.supabase import SupabaseClient

logger = logging.getLogger("dimdim")


async def read_receipt(
    image: ReceiptImage,
    reader: ReceiptTextSource,
    *,
    deadline: Deadline,
    amount_policy: str = "last",
) -> ParsedReceipt:
    """Image bytes -> normalized ParsedReceipt. Missing fields stay None."""
    result = await reader.read(image, deadline)

    if result.fields is not None:
        candidate = result.fields.model_copy(update={"raw_text": result.raw_text})
    else:
        candidate = extract_fields(result.raw_text or "", amount_policy)
        candidate.raw_text = result.raw_text

    parsed = normalize_receipt(candidate)
    logger.info(
        "Receipt read",
        extra={"extra_data": {
            "source": type(reader).__name__,
            "has_merchant": parsed.merchant is not None,
            "has_amount": parsed.amount is not None,
            "has_date": parsed.date_str is not None,
        }},
    )
    return parsed


def acquisition_deadline(settings: Settings) -> Deadline:
    return Deadline(settings.fetch_timeout, "Timed out fetching the receipt image")


def reading_deadline(settings: Settings) -> Deadline:
    return Deadline(settings.model_timeout, "Timed out reading the receipt")


async def parse_receipt_path(
    path: str,
    *,
    user_id: str,
    db: Session,
    storage: SupabaseClient,
    http: httpx.AsyncClient,
    reader: ReceiptTextSource,
    settings: Settings,
) -> ParsedReceipt:
    image = await acquire_from_path(
        path,
        user_id=user_id,
        db=db,
        storage=storage,
        http=http,
        settings=settings,
        deadline=acquisition_deadline(settings),
    )
    return await read_receipt(
        image, reader, deadline=reading_deadline(settings), amount_policy=settings.amount_policy
    )


async def parse_receipt_url(
    image_url: str,
    *,
    http: httpx.AsyncClient,
    reader: ReceiptTextSource,
    settings: Settings,
) -> ParsedReceipt:
    image = await acquire_from_url(
        image_url, http=http, settings=settings, deadline=acquisition_deadline(settings)
    )
    return await read_receipt(
        image, reader, deadline=reading_deadline(settings), amount_policy=settings.amount_policy
    )
