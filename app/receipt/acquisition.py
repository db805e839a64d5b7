import logging

import httpx
from sqlalchemy.orm import Session

from app.config import Settings
from app.errors import Forbidden, InvalidInput, PayloadTooLarge, UpstreamError
from app.receipt.access import can_access_receipt, validate_storage_path
from app.receipt.base import Deadline, ReceiptImage
from app.supabase import SupabaseClient

logger = logging.getLogger("dimdim")


def ensure_allowed_url(image_url: str, allowed_prefix: str) -> str:
    """Reject URLs outside our own storage so the endpoint is not an open proxy."""
    image_url = image_url.strip()
    # No dot segments, raw or percent-encoded: they could climb out of the prefix
    if not image_url.startswith(allowed_prefix) or ".." in image_url or "%2e" in image_url.lower():
        raise InvalidInput("imageUrl is not an allowed receipt location")
    return image_url


def _declared_length(resp: httpx.Response) -> int | None:
    value = resp.headers.get("content-length")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


async def _download(http: httpx.AsyncClient, url: str, max_bytes: int) -> ReceiptImage:
    try:
        return await _read_image(http, url, max_bytes)
    except httpx.TimeoutException:
        raise
    except httpx.HTTPError as e:
        logger.error(f"Image download failed: {e!r}")
        raise UpstreamError(str(e) or f"Failed to download image ({type(e).__name__})")


async def _read_image(http: httpx.AsyncClient, url: str, max_bytes: int) -> ReceiptImage:
    async with http.stream("GET", url) as resp:
        if resp.status_code != 200:
            raise InvalidInput(f"Failed to download image (HTTP {resp.status_code})")

        content_type = resp.headers.get("content-type", "").split(";")[0].strip().lower()
        if not content_type.startswith("image/"):
            raise InvalidInput("File is not an image")

        declared = _declared_length(resp)
        if declared is not None and declared > max_bytes:
            raise PayloadTooLarge("Image too large")

        chunks = []
        received = 0
        async for chunk in resp.aiter_bytes():
            received += len(chunk)
            if received > max_bytes:
                raise PayloadTooLarge("Image too large")
            chunks.append(chunk)

    if received == 0:
        raise InvalidInput("Empty image")
    return ReceiptImage(content=b"".join(chunks), content_type=content_type)


async def fetch_image(
    http: httpx.AsyncClient,
    url: str,
    *,
    deadline: Deadline,
    max_bytes: int,
) -> ReceiptImage:
    return await deadline.run(_download(http, url, max_bytes))


async def acquire_from_path(
    path: str,
    *,
    user_id: str,
    db: Session,
    storage: SupabaseClient,
    http: httpx.AsyncClient,
    settings: Settings,
    deadline: Deadline,
) -> ReceiptImage:
    path = validate_storage_path(path)
    if not can_access_receipt(db, path, user_id):
        logger.warning("Receipt access denied", extra={"extra_data": {"user_id": user_id, "path": path}})
        raise Forbidden("You do not have access to this receipt")

    # Signed URL stays local to this call
    signed_url = await deadline.run(
        storage.create_signed_url(settings.receipt_bucket, path, settings.signed_url_ttl)
    )
    return await fetch_image(http, signed_url, deadline=deadline, max_bytes=settings.max_image_bytes)


async def acquire_from_url(
    image_url: str,
    *,
    http: httpx.AsyncClient,
    settings: Settings,
    deadline: Deadline,
) -> ReceiptImage:
    url = ensure_allowed_url(image_url, settings.receipt_url_prefix())
    return await fetch_image(http, url, deadline=deadline, max_bytes=settings.max_image_bytes)
