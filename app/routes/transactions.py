import logging
from datetime import datetime

import httpx
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.database import get_db
from app.deps import (
    get_current_user_id,
    get_http_client,
    get_reader,
    get_supabase,
    get_user_transaction,
    require_receipt_config,
)
from app.errors import Forbidden, InvalidInput
from app.ratelimit import PARSE_RATE_LIMIT, limiter
from app.receipt.access import (
    is_permanent_path_for,
    is_tmp_path_for_user,
    permanent_receipt_path,
    validate_storage_path,
)
from app.receipt.base import ParsedReceipt, ReceiptTextSource
from app.receipt.pipeline import parse_receipt_path
from app.schemas import AttachReceiptIn
from app.serializers import serialize_parsed_receipt, serialize_transaction_receipt
from app.supabase import SupabaseClient

logger = logging.getLogger("dimdim")
router = APIRouter()


@router.put("/transactions/{tx_id}/receipt", dependencies=[Depends(require_receipt_config)])
async def attach_receipt(
    tx_id: str,
    data: AttachReceiptIn,
    user_id: str = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
    supabase: SupabaseClient = Depends(get_supabase),
    db: Session = Depends(get_db),
):
    """Bind an uploaded image to a transaction and drop any cached parse."""
    tx = get_user_transaction(db, tx_id, user_id)
    path = validate_storage_path(data.path)

    if is_tmp_path_for_user(path, user_id):
        final_path = permanent_receipt_path(tx.id, path)
        await supabase.move_object(settings.receipt_bucket, path, final_path)
    elif is_permanent_path_for(tx.id, path):
        # Uploaded straight to the transaction's own object name
        final_path = path
    else:
        raise Forbidden("You do not have access to this receipt")

    tx.receipt_path = final_path
    tx.receipt_parsed = None
    tx.receipt_parsed_at = None
    db.commit()
    db.refresh(tx)

    logger.info(
        "Receipt attached",
        extra={"extra_data": {"transaction_id": tx.id, "receipt_path": final_path}},
    )
    return serialize_transaction_receipt(tx)


@router.post("/transactions/{tx_id}/receipt/parse", dependencies=[Depends(require_receipt_config)])
@limiter.limit(PARSE_RATE_LIMIT)
async def parse_transaction_receipt(
    request: Request,
    tx_id: str,
    force: bool = Query(False),
    reader: ReceiptTextSource = Depends(get_reader),
    user_id: str = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
    http: httpx.AsyncClient = Depends(get_http_client),
    supabase: SupabaseClient = Depends(get_supabase),
    db: Session = Depends(get_db),
):
    """Serve the cached parse when it has anything in it, else (or when forced) re-read."""
    tx = get_user_transaction(db, tx_id, user_id)
    if not tx.receipt_path:
        raise InvalidInput("Transaction has no receipt attached")

    if not force and tx.receipt_parsed:
        cached = ParsedReceipt.model_validate(tx.receipt_parsed)
        if not cached.is_empty():
            return serialize_transaction_receipt(tx, cached=True)

    parsed = await parse_receipt_path(
        tx.receipt_path,
        user_id=user_id,
        db=db,
        storage=supabase,
        http=http,
        reader=reader,
        settings=settings,
    )

    # Full overwrite, last writer wins
    tx.receipt_parsed = serialize_parsed_receipt(parsed)
    tx.receipt_parsed_at = datetime.utcnow()
    db.commit()
    db.refresh(tx)

    logger.info(
        "Receipt parse cached",
        extra={"extra_data": {"transaction_id": tx.id, "forced": force, "empty": parsed.is_empty()}},
    )
    return serialize_transaction_receipt(tx)
