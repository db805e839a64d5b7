from typing import AsyncIterator

import httpx
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.errors import ConfigurationError, Unauthorized
from app.models import Transaction
from app.receipt.base import ReceiptTextSource
from app.receipt.extractor import AMOUNT_POLICIES
from app.receipt.factory import get_receipt_reader
from app.supabase import SupabaseClient

ACCESS_TOKEN_COOKIE = "sb-access-token"


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(timeout=15) as client:
        yield client


def require_receipt_config(settings: Settings = Depends(get_settings)) -> None:
    """Fail before any network call when deployment secrets are missing."""
    settings.require("supabase_url", "supabase_anon_key", "supabase_service_role_key")


def get_reader(settings: Settings = Depends(get_settings)) -> ReceiptTextSource:
    if settings.amount_policy not in AMOUNT_POLICIES:
        raise ConfigurationError(f"RECEIPT_AMOUNT_POLICY must be one of: {', '.join(AMOUNT_POLICIES)}")
    return get_receipt_reader(settings)


def get_supabase(
    settings: Settings = Depends(get_settings),
    http: httpx.AsyncClient = Depends(get_http_client),
) -> SupabaseClient:
    settings.require("supabase_url", "supabase_anon_key")
    return SupabaseClient(
        settings.supabase_url,
        settings.supabase_anon_key,
        settings.supabase_service_role_key,
        http,
    )


def get_access_token(request: Request) -> str | None:
    """Bearer token from the Authorization header, else the Supabase session cookie."""
    auth = request.headers.get("authorization", "")
    scheme, _, token = auth.partition(" ")
    if scheme.lower() == "bearer" and token.strip():
        return token.strip()
    return request.cookies.get(ACCESS_TOKEN_COOKIE)


async def get_current_user_id(
    request: Request,
    supabase: SupabaseClient = Depends(get_supabase),
) -> str:
    token = get_access_token(request)
    if not token:
        raise Unauthorized("Not authenticated")
    user_id = await supabase.get_user_id(token)
    request.state.user_id = user_id
    return user_id


def get_user_transaction(db: Session, tx_id: str, user_id: str) -> Transaction:
    tx = db.query(Transaction).filter(Transaction.id == tx_id, Transaction.user_id == user_id).first()
    if not tx:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return tx
