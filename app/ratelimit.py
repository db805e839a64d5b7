import os

from slowapi import Limiter
from slowapi.util import get_remote_address

PARSE_RATE_LIMIT = os.getenv("RECEIPT_PARSE_RATE_LIMIT", "20/minute")

limiter = Limiter(key_func=get_remote_address)
