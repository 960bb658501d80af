"""
Order Store

Writes mapped orders to the record store. Customer, order, items,
addresses and the import marker note for one order are written in a
single transaction: either all of them land or none do.
"""
from datetime import date
from typing import List, Optional, Type, Union

from sqlalchemy import or_
from sqlalchemy.orm import Session, sessionmaker

from order_sync.models.customer import Customer
from order_sync.models.order import (
    Order,
    OrderBillingAddress,
    OrderCustomerNote,
    OrderItem,
    OrderShippingAddress,
)
from order_sync.services.payloads import (
    AddressUpsert,
    CustomerUpsert,
    MappedOrder,
    OrderItemInsert,
)
from order_sync.utils.logger import log

IMPORT_MARKER_PREFIX = "Shopify Order: "
IMPORTED_STATUS = "imported"


def import_marker(shopify_order_id: str, shopify_order_name: Optional[str] = None) -> str:
    """Note content recording that an order came from Shopify"""
    marker = f"{IMPORT_MARKER_PREFIX}{shopify_order_id}"
    if shopify_order_name:
        marker = f"{marker} ({shopify_order_name})"
    return marker


class OrderStore:
    """
    Persist mapped orders

    Customer lookup by email is read-then-write and not protected against
    concurrent runs on the same email.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def find_imported_order(self, shopify_order_id: str) -> Optional[int]:
        """
        Local order id of an already imported Shopify order, or None.

        Matches the orders.shopify_order_id column first, then the
        "Shopify Order: <id>" marker notes written by earlier imports.
        """
        with self.session_factory() as db:
            order_id = db.query(Order.id).filter(
                Order.shopify_order_id == str(shopify_order_id)
            ).scalar()
            if order_id is not None:
                return order_id

            marker = import_marker(shopify_order_id)
            note = db.query(OrderCustomerNote.order_id).filter(
                or_(
                    OrderCustomerNote.content == marker,
                    OrderCustomerNote.content.like(f"{marker} (%"),
                )
            ).first()
            return note[0] if note else None

    def persist(self, mapped: MappedOrder) -> int:
        """
        Write one mapped order.

        Returns:
            The new local order id

        Raises:
            SQLAlchemyError (after rollback) if any write fails
        """
        with self.session_factory() as db:
            with db.begin():
                customer_id = self._upsert_customer(db, mapped.customer)

                order = Order(
                    customer_id=customer_id,
                    shopify_order_id=mapped.order.shopify_order_id,
                    shopify_order_number=mapped.order.shopify_order_number,
                    purchase_from=mapped.order.purchase_from,
                    order_date=date.fromisoformat(mapped.order.order_date) if mapped.order.order_date else None,
                    total_amount=mapped.order.total_amount,
                    bill_to_name=mapped.order.bill_to_name,
                    ship_to_name=mapped.order.ship_to_name,
                )
                db.add(order)
                db.flush()  # Assigns order.id

                self._insert_items(db, order.id, mapped.items)

                if mapped.billing_address:
                    self._upsert_address(db, order.id, mapped.billing_address)
                if mapped.shipping_address:
                    self._upsert_address(db, order.id, mapped.shipping_address)

                db.add(OrderCustomerNote(
                    order_id=order.id,
                    content=import_marker(mapped.shopify_order_id, mapped.shopify_order_name),
                    status=IMPORTED_STATUS,
                ))

                order_id = order.id

        log.bind(shopify_id=mapped.shopify_order_id, order_id=order_id, customer_id=customer_id).debug(
            f"Persisted order {mapped.shopify_order_id} as {order_id} with {len(mapped.items)} items"
        )
        return order_id

    def _upsert_customer(self, db: Session, payload: Optional[CustomerUpsert]) -> Optional[int]:
        """Update the customer with this email in place, or insert one"""
        if payload is None:
            return None

        customer = db.query(Customer).filter(Customer.email == payload.email).first()

        if customer:
            for column, value in payload.update_fields().items():
                setattr(customer, column, value)
        else:
            customer = Customer(email=payload.email, **payload.update_fields())
            db.add(customer)

        db.flush()
        return customer.id

    def _insert_items(self, db: Session, order_id: int, items: List[OrderItemInsert]):
        """Insert all line items in one batch"""
        if not items:
            return

        db.add_all([
            OrderItem(
                order_id=order_id,
                sku=item.sku,
                details=item.details,
                price=item.price,
                qty=item.qty,
            )
            for item in items
        ])
        db.flush()

    def _upsert_address(self, db: Session, order_id: int, payload: AddressUpsert):
        """Replace the order's address for this side"""
        model: Type[Union[OrderBillingAddress, OrderShippingAddress]] = (
            OrderBillingAddress if payload.side == "billing" else OrderShippingAddress
        )

        address = db.query(model).filter(model.order_id == order_id).first()
        if address is None:
            address = model(order_id=order_id)
            db.add(address)

        for column, value in payload.columns().items():
            setattr(address, column, value)

        db.flush()
