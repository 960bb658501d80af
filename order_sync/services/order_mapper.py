"""
Map Shopify order payloads onto the local order schema.

Pure functions: no I/O, same input -> same output.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional

from order_sync.services.payloads import (
    AddressUpsert,
    CustomerUpsert,
    MappedOrder,
    OrderInsert,
    OrderItemInsert,
)

ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Coerce an amount to Decimal; missing or unparsable -> 0"""
    if value is None or value == "":
        return ZERO
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ZERO
    if not amount.is_finite():
        return ZERO
    return amount


def to_quantity(value: Any) -> int:
    """Line item quantity; missing -> 1, unparsable -> 0"""
    if value is None:
        return 1
    try:
        return int(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError, OverflowError):
        return 0


def order_date(created_at: Any) -> Optional[str]:
    """First 10 characters of the source timestamp, no timezone conversion"""
    if not created_at:
        return None
    return str(created_at)[:10]


def _full_name(record: Optional[Mapping[str, Any]]) -> str:
    if not record:
        return ""
    first = record.get("first_name") or ""
    last = record.get("last_name") or ""
    return f"{first} {last}".strip()


def display_name(
    address: Optional[Mapping[str, Any]],
    customer: Optional[Mapping[str, Any]],
    email: Optional[str]
) -> Optional[str]:
    """
    Bill-to / ship-to name.

    The address's own name, else the order customer's name, else the
    order email, else None.
    """
    name = _full_name(address)
    if name:
        return name

    name = _full_name(customer)
    if name:
        return name

    return email or None


def line_item_sku(item: Mapping[str, Any]) -> str:
    """Explicit SKU, else variant id, else line item id"""
    sku = item.get("sku")
    if sku is not None and str(sku).strip():
        return str(sku)
    if item.get("variant_id") is not None:
        return str(item["variant_id"])
    if item.get("id") is not None:
        return str(item["id"])
    return ""


def _address_snapshot(address: Mapping[str, Any]) -> Dict[str, Any]:
    """Address as stored on the customer row (Shopify field names)"""
    return {
        "first_name": address.get("first_name"),
        "last_name": address.get("last_name"),
        "company": address.get("company"),
        "address1": address.get("address1"),
        "address2": address.get("address2"),
        "city": address.get("city"),
        "province": address.get("province"),
        "zip": address.get("zip"),
        "country": address.get("country"),
        "phone": address.get("phone"),
    }


def map_customer(order: Mapping[str, Any]) -> Optional[CustomerUpsert]:
    """Customer payload, or None when the order has no resolvable email"""
    customer = order.get("customer") or {}
    email = order.get("email") or customer.get("email")
    if not email:
        return None

    billing = order.get("billing_address")
    shipping = order.get("shipping_address")

    return CustomerUpsert(
        email=email,
        name=_full_name(customer) or None,
        first_name=customer.get("first_name"),
        last_name=customer.get("last_name"),
        phone=customer.get("phone") or order.get("phone"),
        billing_addr=_address_snapshot(billing) if billing else None,
        shipping_addr=_address_snapshot(shipping) if shipping else None,
    )


def map_order(order: Mapping[str, Any], purchase_from: str) -> OrderInsert:
    customer = order.get("customer")
    email = order.get("email")
    total = order.get("current_total_price")
    if total is None:
        total = order.get("total_price")

    return OrderInsert(
        purchase_from=purchase_from,
        order_date=order_date(order.get("created_at")),
        total_amount=to_decimal(total),
        bill_to_name=display_name(order.get("billing_address"), customer, email),
        ship_to_name=display_name(order.get("shipping_address"), customer, email),
        shopify_order_id=str(order["id"]) if order.get("id") is not None else None,
        shopify_order_number=order.get("name"),
    )


def map_items(order: Mapping[str, Any]) -> List[OrderItemInsert]:
    return [
        OrderItemInsert(
            sku=line_item_sku(item),
            details=item.get("title"),
            price=to_decimal(item.get("price")),
            qty=to_quantity(item.get("quantity")),
        )
        for item in order.get("line_items") or []
    ]


def map_address(order: Mapping[str, Any], side: str) -> Optional[AddressUpsert]:
    """Billing or shipping address payload, None if the order has none"""
    address = order.get(f"{side}_address")
    if not address:
        return None

    return AddressUpsert(
        side=side,
        first_name=address.get("first_name") or "",
        last_name=address.get("last_name") or "",
        company=address.get("company") or None,
        street1=address.get("address1") or "",
        street2=address.get("address2") or None,
        city=address.get("city") or "",
        region=address.get("province") or "",
        postcode=address.get("zip") or "",
        country=address.get("country") or "",
        phone=address.get("phone") or None,
        email=order.get("email") or None,
    )


def map_shopify_order(order: Mapping[str, Any], purchase_from: str = "primestyle") -> MappedOrder:
    """
    Transform one Shopify order into insertable payloads.

    Raises:
        PayloadValidationError if a required field cannot be derived
    """
    return MappedOrder(
        shopify_order_id=str(order.get("id")),
        shopify_order_name=order.get("name"),
        customer=map_customer(order),
        order=map_order(order, purchase_from),
        items=map_items(order),
        billing_address=map_address(order, "billing"),
        shipping_address=map_address(order, "shipping"),
    )
