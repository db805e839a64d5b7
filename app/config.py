import os
from dataclasses import dataclass

from dotenv import load_dotenv

from app.errors import ConfigurationError

load_dotenv()

DEFAULT_MAX_IMAGE_BYTES = 4 * 1024 * 1024  # 4 MiB
DEFAULT_FETCH_TIMEOUT = 10.0
DEFAULT_MODEL_TIMEOUT = 25.0
DEFAULT_SIGNED_URL_TTL = 60 * 5

# attribute -> environment variable, used for error messages
ENV_NAMES = {
    "supabase_url": "SUPABASE_URL",
    "supabase_anon_key": "SUPABASE_ANON_KEY",
    "supabase_service_role_key": "SUPABASE_SERVICE_ROLE_KEY",
    "openai_api_key": "OPENAI_API_KEY",
}


@dataclass(frozen=True)
class Settings:
    supabase_url: str | None = None
    supabase_anon_key: str | None = None
    supabase_service_role_key: str | None = None
    openai_api_key: str | None = None

    receipt_provider: str = "openai"
    receipt_model: str = "gpt-4o-mini"
    receipt_bucket: str = "receipts"
    amount_policy: str = "last"
    allowed_url_prefix: str | None = None
    max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    model_timeout: float = DEFAULT_MODEL_TIMEOUT
    signed_url_ttl: int = DEFAULT_SIGNED_URL_TTL

    def require(self, *names: str) -> None:
        """Raise ConfigurationError for the first unset setting in `names`."""
        for name in names:
            if not getattr(self, name):
                raise ConfigurationError(f"{ENV_NAMES.get(name, name.upper())} is not configured")

    def receipt_url_prefix(self) -> str:
        """Only image URLs under this prefix may be fetched by the parse endpoint."""
        if self.allowed_url_prefix:
            return self.allowed_url_prefix
        self.require("supabase_url")
        return f"{self.supabase_url.rstrip('/')}/storage/v1/object/public/{self.receipt_bucket}/"


def get_settings() -> Settings:
    """Read settings from the environment (and `.env`, loaded at import)."""
    return Settings(
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_anon_key=os.getenv("SUPABASE_ANON_KEY"),
        supabase_service_role_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        receipt_provider=os.getenv("RECEIPT_PROVIDER", "openai"),
        receipt_model=os.getenv("RECEIPT_MODEL", "gpt-4o-mini"),
        receipt_bucket=os.getenv("RECEIPT_BUCKET", "receipts"),
        amount_policy=os.getenv("RECEIPT_AMOUNT_POLICY", "last"),
        allowed_url_prefix=os.getenv("RECEIPT_ALLOWED_URL_PREFIX"),
        max_image_bytes=int(os.getenv("RECEIPT_MAX_IMAGE_BYTES", DEFAULT_MAX_IMAGE_BYTES)),
        fetch_timeout=float(os.getenv("RECEIPT_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT)),
        model_timeout=float(os.getenv("RECEIPT_MODEL_TIMEOUT", DEFAULT_MODEL_TIMEOUT)),
        signed_url_ttl=int(os.getenv("RECEIPT_SIGNED_URL_TTL", DEFAULT_SIGNED_URL_TTL)),
    )
