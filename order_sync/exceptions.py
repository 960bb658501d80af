"""
Exceptions raised by the order sync
"""
from typing import Optional


class OrderSyncError(Exception):
    """Base class for order sync errors"""


class ShopifyAPIError(OrderSyncError):
    """Shopify answered with a non-success status"""

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None, body: str = ""):
        self.status_code = status_code
        self.url = url
        self.body = body[:500]
        detail = f"{message}: {status_code}" if status_code is not None else message
        if self.body:
            detail = f"{detail} - {self.body}"
        super().__init__(detail)


class PayloadValidationError(OrderSyncError, ValueError):
    """A mapped payload is missing a required field"""
