from app.config import Settings
from app.errors import ConfigurationError
from app.receipt.base import ReceiptTextSource
from app.receipt.openai_provider import OpenAIReceiptReader
from app.receipt.tesseract_provider import TesseractReceiptReader


def get_receipt_reader(settings: Settings) -> ReceiptTextSource:
    """Return the configured receipt text source."""
    provider = settings.receipt_provider
    if provider == "openai":
        settings.require("openai_api_key")
        return OpenAIReceiptReader(model=settings.receipt_model)
    if provider == "tesseract":
        return TesseractReceiptReader()
    raise ConfigurationError(f"Unknown receipt provider: {provider}")
