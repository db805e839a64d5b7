"""Thin async client for the Supabase auth and storage REST APIs."""

import logging
from urllib.parse import quote

import httpx

from app.errors import InvalidInput, ReceiptTimeout, Unauthorized, UpstreamError

logger = logging.getLogger("dimdim")


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    if isinstance(data, dict):
        for key in ("message", "msg", "error_description", "error"):
            if data.get(key):
                return str(data[key])
    return f"HTTP {resp.status_code}"


class SupabaseClient:
    def __init__(self, url: str, anon_key: str, service_role_key: str | None, http: httpx.AsyncClient):
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.service_role_key = service_role_key
        self.http = http

    def _service_headers(self) -> dict[str, str]:
        return {
            "apikey": self.service_role_key or "",
            "Authorization": f"Bearer {self.service_role_key}",
        }

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self.http.request(method, url, **kwargs)
        except httpx.TimeoutException:
            raise ReceiptTimeout("Timed out calling Supabase")
        except httpx.HTTPError as e:
            logger.error(f"Supabase request failed: {e!r}", extra={"extra_data": {"url": url.split("?")[0]}})
            raise UpstreamError(str(e) or f"Could not reach Supabase ({type(e).__name__})")

    async def get_user_id(self, access_token: str) -> str:
        """Verify an access token and return the user's id."""
        resp = await self._request(
            "GET",
            f"{self.url}/auth/v1/user",
            headers={"apikey": self.anon_key, "Authorization": f"Bearer {access_token}"},
        )
        if resp.status_code in (401, 403):
            raise Unauthorized(_error_message(resp))
        if resp.status_code != 200:
            raise UpstreamError(_error_message(resp))
        user_id = resp.json().get("id")
        if not user_id:
            raise Unauthorized("Not authenticated")
        return user_id

    async def create_signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        resp = await self._request(
            "POST",
            f"{self.url}/storage/v1/object/sign/{bucket}/{quote(path)}",
            json={"expiresIn": expires_in},
            headers=self._service_headers(),
        )
        if resp.status_code != 200:
            raise UpstreamError(_error_message(resp))
        signed = resp.json().get("signedURL") or resp.json().get("signedUrl")
        if not signed:
            raise UpstreamError("Storage did not return a signed URL")
        return f"{self.url}/storage/v1{signed}"

    async def move_object(self, bucket: str, source: str, destination: str) -> None:
        resp = await self._request(
            "POST",
            f"{self.url}/storage/v1/object/move",
            json={"bucketId": bucket, "sourceKey": source, "destinationKey": destination},
            headers=self._service_headers(),
        )
        if resp.status_code == 404:
            raise InvalidInput(_error_message(resp))
        if resp.status_code != 200:
            raise UpstreamError(_error_message(resp))
        logger.info(
            "Receipt moved",
            extra={"extra_data": {"bucket": bucket, "source": source, "destination": destination}},
        )
