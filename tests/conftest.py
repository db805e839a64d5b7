"""Shared fixtures: in-memory database, fake Supabase and a scripted receipt reader.

No real network or model calls are made: every outbound request goes through
an `httpx.MockTransport` backed by `FakeSupabase`.
"""

import asyncio
import json
import os

os.environ["DATABASE_URL"] = "sqlite://"

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import Settings
from app.database import Base, get_db
from app.deps import get_http_client, get_reader
from app.main import app
from app.models import Transaction
from app.ratelimit import limiter
from app.receipt.base import TextSourceResult

SUPABASE_URL = "https://proj.supabase.co"
USER_ID = "user-1"
OTHER_USER_ID = "user-2"
TOKENS = {"token-1": USER_ID, "token-2": OTHER_USER_ID}
AUTH = {"Authorization": "Bearer token-1"}
OTHER_AUTH = {"Authorization": "Bearer token-2"}

IMAGE_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 256
RECEIPT_TEXT = "SUPERMERCADO BOM\nCNPJ 12.345\n01/03/2024\nTOTAL R$ 123,45"

SIGN_PREFIX = "/storage/v1/object/sign/receipts/"
PUBLIC_PREFIX = "/storage/v1/object/public/receipts/"


class FakeSupabase:
    """Answers auth, storage signing/move and object downloads like Supabase does."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.objects: dict[str, tuple[bytes, str]] = {
            f"tmp/{USER_ID}/a.jpg": (IMAGE_BYTES, "image/jpeg"),
            f"tmp/{OTHER_USER_ID}/b.jpg": (IMAGE_BYTES, "image/jpeg"),
        }
        self.download_delay = 0.0

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/auth/v1/user":
            token = request.headers.get("authorization", "").removeprefix("Bearer ")
            if token in TOKENS:
                return httpx.Response(200, json={"id": TOKENS[token], "aud": "authenticated"})
            return httpx.Response(401, json={"msg": "invalid JWT"})

        if path == "/storage/v1/object/move":
            body = json.loads(request.content)
            source, destination = body["sourceKey"], body["destinationKey"]
            if source not in self.objects:
                return httpx.Response(404, json={"message": "Object not found"})
            self.objects[destination] = self.objects.pop(source)
            return httpx.Response(200, json={"message": "Successfully moved"})

        if path.startswith(SIGN_PREFIX) and request.method == "POST":
            key = path[len(SIGN_PREFIX):]
            return httpx.Response(200, json={"signedURL": f"/object/sign/receipts/{key}?token=signed-abc"})

        if request.method == "GET" and (path.startswith(SIGN_PREFIX) or path.startswith(PUBLIC_PREFIX)):
            if self.download_delay:
                await asyncio.sleep(self.download_delay)
            key = path[len(SIGN_PREFIX):] if path.startswith(SIGN_PREFIX) else path[len(PUBLIC_PREFIX):]
            if key not in self.objects:
                return httpx.Response(404, json={"message": "Object not found"})
            content, content_type = self.objects[key]
            return httpx.Response(200, content=content, headers={"content-type": content_type})

        return httpx.Response(404)

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


class FakeReader:
    """Stands in for the OCR / vision text source."""

    def __init__(self, result: TextSourceResult | None = None):
        self.result = result or TextSourceResult(raw_text=RECEIPT_TEXT)
        self.images = []

    @property
    def calls(self) -> int:
        return len(self.images)

    async def read(self, image, deadline):
        self.images.append(image)
        return self.result


def failing_http(fake, path_prefix):
    """HTTP client override whose transport cannot connect for one path prefix."""

    async def handler(request):
        if request.url.path.startswith(path_prefix):
            raise httpx.ConnectError("Connection refused", request=request)
        return await fake(request)

    async def override_http():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            yield http

    return override_http


def make_settings(**overrides) -> Settings:
    values = {
        "supabase_url": SUPABASE_URL,
        "supabase_anon_key": "anon-key",
        "supabase_service_role_key": "service-key",
        "openai_api_key": "sk-test",
    }
    values.update(overrides)
    return Settings(**values)


def make_transaction(db, **kwargs) -> Transaction:
    values = {"user_id": USER_ID, "description": "Mercado", "amount_cents": 12345}
    values.update(kwargs)
    tx = Transaction(**values)
    db.add(tx)
    db.commit()
    db.refresh(tx)
    return tx


@pytest.fixture(autouse=True)
def env(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", SUPABASE_URL)
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-key")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-key")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("RECEIPT_PROVIDER", "openai")
    for name in (
        "RECEIPT_AMOUNT_POLICY",
        "RECEIPT_ALLOWED_URL_PREFIX",
        "RECEIPT_MAX_IMAGE_BYTES",
        "RECEIPT_FETCH_TIMEOUT",
        "RECEIPT_MODEL_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def reader():
    return FakeReader()


@pytest.fixture
def client(db_session, fake_supabase, reader):
    def override_db():
        yield db_session

    async def override_http():
        async with httpx.AsyncClient(transport=httpx.MockTransport(fake_supabase)) as http:
            yield http

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_http_client] = override_http
    app.dependency_overrides[get_reader] = lambda: reader
    limiter.enabled = False
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
        limiter.enabled = True
