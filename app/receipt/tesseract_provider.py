import asyncio
import io
import logging

import pytesseract
from PIL import Image, UnidentifiedImageError

from app.errors import InvalidInput, PayloadTooLarge, UpstreamError
from app.receipt.base import Deadline, ReceiptImage, TextSourceResult

logger = logging.getLogger("dimdim")

OCR_LANGUAGE = "por"
MAX_TEXT_LENGTH = 5000


def ocr_image_bytes(content: bytes, lang: str = OCR_LANGUAGE) -> str:
    """Run Tesseract over an in-memory image. Blocking."""
    try:
        img = Image.open(io.BytesIO(content))
        img.load()
    except Image.DecompressionBombError:
        raise PayloadTooLarge("Image has too many pixels")
    except (UnidentifiedImageError, OSError):
        raise InvalidInput("File is not a readable image")

    # Grayscale reads better than colour photos of thermal paper
    if img.mode != "L":
        img = img.convert("L")

    try:
        return pytesseract.image_to_string(img, lang=lang)
    except pytesseract.TesseractError as e:
        logger.error(f"Tesseract failed: {e}")
        raise UpstreamError(f"OCR failed: {e.message}")
    except pytesseract.TesseractNotFoundError as e:
        logger.error(f"Tesseract is not available: {e}")
        raise UpstreamError("OCR engine is not installed")


class TesseractReceiptReader:
    """Local OCR; the raw text goes through the field extractor afterwards."""

    def __init__(self, lang: str = OCR_LANGUAGE, max_length: int = MAX_TEXT_LENGTH):
        self.lang = lang
        self.max_length = max_length

    async def read(self, image: ReceiptImage, deadline: Deadline) -> TextSourceResult:
        text = await deadline.run(asyncio.to_thread(ocr_image_bytes, image.content, self.lang))
        return TextSourceResult(raw_text=text.strip()[: self.max_length])
