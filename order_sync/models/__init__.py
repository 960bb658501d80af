"""
Record store models
"""
from order_sync.models.base import Base, create_session_factory, init_db
from order_sync.models.customer import Customer
from order_sync.models.order import (
    Order,
    OrderItem,
    OrderBillingAddress,
    OrderShippingAddress,
    OrderCustomerNote,
)

__all__ = [
    "Base",
    "create_session_factory",
    "init_db",
    "Customer",
    "Order",
    "OrderItem",
    "OrderBillingAddress",
    "OrderShippingAddress",
    "OrderCustomerNote",
]
