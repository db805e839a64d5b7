"""Who may read which receipt object in storage."""

from sqlalchemy.orm import Session

from app.errors import InvalidInput
from app.models import Transaction

TMP_PREFIX = "tmp/"


def tmp_prefix_for_user(user_id: str) -> str:
    return f"{TMP_PREFIX}{user_id}/"


def validate_storage_path(path: str | None) -> str:
    if not path or not path.strip():
        raise InvalidInput("path is required")
    path = path.strip()
    if path.startswith("/") or "\\" in path or ".." in path.split("/"):
        raise InvalidInput("Invalid receipt path")
    return path


def is_tmp_path_for_user(path: str, user_id: str) -> bool:
    """Uploads made before the transaction exists live under tmp/<user_id>/."""
    prefix = tmp_prefix_for_user(user_id)
    return path.startswith(prefix) and len(path) > len(prefix)


def is_transaction_receipt_of_user(db: Session, path: str, user_id: str) -> bool:
    tx = (
        db.query(Transaction.id)
        .filter(Transaction.user_id == user_id, Transaction.receipt_path == path)
        .first()
    )
    return tx is not None


def can_access_receipt(db: Session, path: str, user_id: str) -> bool:
    if is_tmp_path_for_user(path, user_id):
        return True
    return is_transaction_receipt_of_user(db, path, user_id)


def permanent_receipt_path(tx_id: str, source_path: str) -> str:
    """Transaction-scoped object name, keeping the uploaded file's extension."""
    filename = source_path.rsplit("/", 1)[-1]
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if not ext.isalnum() or len(ext) > 5:
        ext = "jpg"
    return f"{tx_id}.{ext}"


def is_permanent_path_for(tx_id: str, path: str) -> bool:
    return "/" not in path and path.startswith(f"{tx_id}.")
