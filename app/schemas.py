from pydantic import BaseModel, Field


# --- Receipts ---

class ParseReceiptIn(BaseModel):
    path: str | None = None  # private storage path
    image_url: str | None = Field(default=None, alias="imageUrl")  # public storage URL

    model_config = {"populate_by_name": True}


class SignedUrlIn(BaseModel):
    path: str | None = None


# --- Transactions ---

class AttachReceiptIn(BaseModel):
    path: str
