import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, String, Integer, DateTime

from app.database import Base


def new_uuid():
    return str(uuid.uuid4())


class Transaction(Base):
    """Columns of the finance app's `transactions` table that the receipt service touches."""

    __tablename__ = "transactions"

    id = Column(String, primary_key=True, default=new_uuid)
    user_id = Column(String, nullable=False, index=True)
    occurred_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    description = Column(String(500), nullable=False, default="")
    amount_cents = Column(Integer, nullable=False, default=0)
    kind = Column(String(10), nullable=False, default="expense")  # income | expense
    account_id = Column(String, nullable=True)
    category_id = Column(String, nullable=True)

    receipt_path = Column(String, nullable=True, index=True)
    receipt_parsed = Column(JSON, nullable=True)  # ParsedReceipt as served by the API
    receipt_parsed_at = Column(DateTime, nullable=True)
