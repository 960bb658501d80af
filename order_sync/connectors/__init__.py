"""
Remote API connectors
"""
from order_sync.connectors.shopify import ShopifyConnector

__all__ = ["ShopifyConnector"]
