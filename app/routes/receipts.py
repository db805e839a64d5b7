import logging

import httpx
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.database import get_db
from app.deps import get_current_user_id, get_http_client, get_reader, get_supabase, require_receipt_config
from app.errors import Forbidden, InvalidInput
from app.ratelimit import PARSE_RATE_LIMIT, limiter
from app.receipt.access import can_access_receipt, validate_storage_path
from app.receipt.base import ReceiptTextSource
from app.receipt.pipeline import parse_receipt_path, parse_receipt_url
from app.schemas import ParseReceiptIn, SignedUrlIn
from app.serializers import serialize_parsed_receipt
from app.supabase import SupabaseClient

logger = logging.getLogger("dimdim")
router = APIRouter()


@router.post("/receipt/parse", dependencies=[Depends(require_receipt_config)])
@limiter.limit(PARSE_RATE_LIMIT)
async def parse_receipt(
    request: Request,
    data: ParseReceiptIn,
    reader: ReceiptTextSource = Depends(get_reader),
    user_id: str = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
    http: httpx.AsyncClient = Depends(get_http_client),
    supabase: SupabaseClient = Depends(get_supabase),
    db: Session = Depends(get_db),
):
    if data.path and data.image_url:
        raise InvalidInput("Send either path or imageUrl, not both")

    if data.path:
        parsed = await parse_receipt_path(
            data.path,
            user_id=user_id,
            db=db,
            storage=supabase,
            http=http,
            reader=reader,
            settings=settings,
        )
    elif data.image_url:
        parsed = await parse_receipt_url(data.image_url, http=http, reader=reader, settings=settings)
    else:
        raise InvalidInput("path or imageUrl is required")

    logger.info("Receipt parsed", extra={"extra_data": {"user_id": user_id, "empty": parsed.is_empty()}})
    return serialize_parsed_receipt(parsed)


@router.post("/receipt/signed-url", dependencies=[Depends(require_receipt_config)])
async def receipt_signed_url(
    data: SignedUrlIn,
    user_id: str = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
    supabase: SupabaseClient = Depends(get_supabase),
    db: Session = Depends(get_db),
):
    path = validate_storage_path(data.path)
    if not can_access_receipt(db, path, user_id):
        logger.warning("Receipt access denied", extra={"extra_data": {"user_id": user_id, "path": path}})
        raise Forbidden("You do not have access to this receipt")

    signed_url = await supabase.create_signed_url(settings.receipt_bucket, path, settings.signed_url_ttl)
    return {"signedUrl": signed_url}
