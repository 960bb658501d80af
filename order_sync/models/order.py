"""
Order data models

Orders, line items, per-side addresses and the customer notes used as a
free-text audit trail ("Shopify Order: <id>" import markers).
"""
from sqlalchemy import Column, Integer, String, Date, DateTime, Text, ForeignKey, Numeric
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from order_sync.models.base import Base


class Order(Base):
    """
    Local order, one row per imported Shopify order
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), index=True, nullable=True)

    # Source reference; unique so a second import of the same order fails
    shopify_order_id = Column(String, unique=True, index=True, nullable=True)
    shopify_order_number = Column(String, nullable=True)  # e.g. "#1001"

    purchase_from = Column(String, nullable=True)
    order_date = Column(Date, index=True, nullable=True)  # Calendar date only
    total_amount = Column(Numeric(12, 2), nullable=False, default=0)

    bill_to_name = Column(String, nullable=True)
    ship_to_name = Column(String, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("Customer", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")
    billing_address = relationship("OrderBillingAddress", uselist=False, cascade="all, delete-orphan")
    shipping_address = relationship("OrderShippingAddress", uselist=False, cascade="all, delete-orphan")
    notes = relationship("OrderCustomerNote", cascade="all, delete-orphan")


class OrderItem(Base):
    """Order line item"""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), index=True, nullable=False)

    sku = Column(String, index=True, nullable=False)
    details = Column(Text, nullable=True)  # Line item title
    price = Column(Numeric(12, 2), nullable=False, default=0)
    qty = Column(Integer, nullable=False, default=1)

    order = relationship("Order", back_populates="items")


class _AddressColumns:
    """Columns shared by the billing and shipping address tables"""

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String, nullable=False, default="")
    last_name = Column(String, nullable=False, default="")
    company = Column(String, nullable=True)
    street1 = Column(String, nullable=False, default="")
    street2 = Column(String, nullable=True)
    city = Column(String, nullable=False, default="")
    region = Column(String, nullable=False, default="")
    postcode = Column(String, nullable=False, default="")
    country = Column(String, nullable=False, default="")
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class OrderBillingAddress(_AddressColumns, Base):
    """Billing address, one per order"""
    __tablename__ = "order_billing_address"

    order_id = Column(Integer, ForeignKey("orders.id"), unique=True, index=True, nullable=False)


class OrderShippingAddress(_AddressColumns, Base):
    """Shipping address, one per order"""
    __tablename__ = "order_shipping_address"

    order_id = Column(Integer, ForeignKey("orders.id"), unique=True, index=True, nullable=False)


class OrderCustomerNote(Base):
    """Free-text note / status transition attached to an order"""
    __tablename__ = "order_customer_notes"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), index=True, nullable=False)
    status = Column(String, index=True, nullable=True)  # e.g. imported
    content = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
