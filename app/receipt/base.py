import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Protocol, TypeVar

import httpx
from pydantic import BaseModel, Field

from app.errors import ReceiptTimeout

T = TypeVar("T")


class ParsedReceipt(BaseModel):
    merchant: str | None = None  # trimmed, whitespace-collapsed, <= 80 chars
    amount: str | None = None  # "123,45"
    date_str: str | None = Field(default=None, alias="dateStr")  # "YYYY-MM-DD"
    raw_text: str | None = Field(default=None, alias="rawText")  # OCR output, when available

    model_config = {"populate_by_name": True}

    def is_empty(self) -> bool:
        return not (self.merchant or self.amount or self.date_str)


@dataclass
class ReceiptImage:
    content: bytes
    content_type: str


@dataclass
class TextSourceResult:
    """Either structured fields (vision model) or raw text (OCR) for the extractor."""

    fields: ParsedReceipt | None = None
    raw_text: str | None = None


class Deadline:
    """A time budget owned by the caller and handed to one I/O step.

    Everything awaited through `run` shares the same budget, so a step made of
    several calls (sign, then download) cannot exceed it in total.
    """

    def __init__(self, seconds: float, message: str = "Operation timed out"):
        self.seconds = seconds
        self.message = message
        self._expires_at = time.monotonic() + seconds

    def remaining(self) -> float:
        return max(0.0, self._expires_at - time.monotonic())

    def expired(self) -> bool:
        return self.remaining() <= 0

    async def run(self, aw: Awaitable[T]) -> T:
        if self.expired():
            # Close the coroutine so it does not warn about never being awaited
            if asyncio.iscoroutine(aw):
                aw.close()
            raise ReceiptTimeout(self.message)
        try:
            return await asyncio.wait_for(aw, timeout=self.remaining())
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise ReceiptTimeout(self.message)


class ReceiptTextSource(Protocol):
    async def read(self, image: ReceiptImage, deadline: Deadline) -> TextSourceResult: ...
