class ReceiptError(Exception):
    """Base for failures that map to an `{"error": ...}` response."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(ReceiptError):
    status_code = 400


class Unauthorized(ReceiptError):
    status_code = 401


class Forbidden(ReceiptError):
    status_code = 403


class PayloadTooLarge(ReceiptError):
    status_code = 413


class UpstreamError(ReceiptError):
    status_code = 500


class ConfigurationError(ReceiptError):
    status_code = 500


class ReceiptTimeout(ReceiptError):
    status_code = 504
