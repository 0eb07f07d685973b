from typing import Any, Optional


class StorefrontError(Exception):
    status_code = 500
    message = "Server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)


class InvalidPayload(StorefrontError):
    status_code = 400
    message = "Invalid order payload"


class ProductNotFound(StorefrontError):
    status_code = 400

    def __init__(self, product_id: Any):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")


class NotFound(StorefrontError):
    status_code = 404
    message = "Not found"


class StorageError(StorefrontError):
    status_code = 500
    message = "Server error"


class NotificationError(StorefrontError):
    """Email delivery failed: retries exhausted or the provider rejected the mail."""
    message = "Failed to send email"
