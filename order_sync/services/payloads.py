"""
Typed payloads passed from the order mapper to the order store.

Each record validates its required fields when constructed, so a bad
mapping fails before anything is written.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from order_sync.exceptions import PayloadValidationError


@dataclass(frozen=True)
class CustomerUpsert:
    """Customer row keyed by email"""

    email: str
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    billing_addr: Optional[Dict[str, Any]] = None
    shipping_addr: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if not self.email or not self.email.strip():
            raise PayloadValidationError("CustomerUpsert requires an email")

    def update_fields(self) -> Dict[str, Any]:
        """Fields overwritten on an existing customer (everything except the key)"""
        return {
            "name": self.name,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
            "billing_addr": self.billing_addr,
            "shipping_addr": self.shipping_addr,
        }


@dataclass(frozen=True)
class OrderInsert:
    """Order row; customer linkage is resolved by the store"""

    purchase_from: str
    order_date: Optional[str]  # YYYY-MM-DD
    total_amount: Decimal
    bill_to_name: Optional[str] = None
    ship_to_name: Optional[str] = None
    shopify_order_id: Optional[str] = None
    shopify_order_number: Optional[str] = None

    def __post_init__(self):
        if not self.purchase_from:
            raise PayloadValidationError("OrderInsert requires purchase_from")
        if self.order_date is not None and len(self.order_date) != 10:
            raise PayloadValidationError(f"OrderInsert order_date must be YYYY-MM-DD, got {self.order_date!r}")
        if not isinstance(self.total_amount, Decimal):
            raise PayloadValidationError("OrderInsert total_amount must be a Decimal")


@dataclass(frozen=True)
class OrderItemInsert:
    """Order line item row"""

    sku: str
    price: Decimal
    qty: int
    details: Optional[str] = None

    def __post_init__(self):
        if not self.sku:
            raise PayloadValidationError("OrderItemInsert requires a sku")
        if not isinstance(self.price, Decimal):
            raise PayloadValidationError("OrderItemInsert price must be a Decimal")
        if self.qty < 0:
            raise PayloadValidationError(f"OrderItemInsert qty must not be negative, got {self.qty}")


@dataclass(frozen=True)
class AddressUpsert:
    """Billing or shipping address row, one per order per side"""

    side: str  # billing | shipping
    first_name: str = ""
    last_name: str = ""
    company: Optional[str] = None
    street1: str = ""
    street2: Optional[str] = None
    city: str = ""
    region: str = ""
    postcode: str = ""
    country: str = ""
    phone: Optional[str] = None
    email: Optional[str] = None

    def __post_init__(self):
        if self.side not in ("billing", "shipping"):
            raise PayloadValidationError(f"AddressUpsert side must be billing or shipping, got {self.side!r}")

    def columns(self) -> Dict[str, Any]:
        """Column values for the address table"""
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "company": self.company,
            "street1": self.street1,
            "street2": self.street2,
            "city": self.city,
            "region": self.region,
            "postcode": self.postcode,
            "country": self.country,
            "phone": self.phone,
            "email": self.email,
        }


@dataclass(frozen=True)
class MappedOrder:
    """Everything the store needs to persist one source order"""

    shopify_order_id: str
    shopify_order_name: Optional[str]
    customer: Optional[CustomerUpsert]
    order: OrderInsert
    items: List[OrderItemInsert] = field(default_factory=list)
    billing_address: Optional[AddressUpsert] = None
    shipping_address: Optional[AddressUpsert] = None
