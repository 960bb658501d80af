"""
Customer data model

One row per email address; address and phone snapshots are overwritten
by every imported order (last write wins).
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from order_sync.models.base import Base


class Customer(Base):
    """Customer keyed by email"""
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)

    # Address snapshots from the latest order
    billing_addr = Column(JSON, nullable=True)  # {first_name, last_name, address1, city, province, zip, ...}
    shipping_addr = Column(JSON, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    orders = relationship("Order", back_populates="customer")
