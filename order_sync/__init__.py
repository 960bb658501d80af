"""
Order Sync

Imports tagged Shopify orders into the relational order backend.
"""

__version__ = "0.1.0"
