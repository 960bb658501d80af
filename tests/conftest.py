"""
Shared fixtures: settings, a temporary SQLite record store and a fake
Shopify connector.
"""
import asyncio
from typing import Any, Dict, List, Optional

import pytest

from order_sync.config import Settings
from order_sync.context import SyncContext
from order_sync.models.base import create_session_factory, init_db
from order_sync.services.order_store import OrderStore
from order_sync.utils.retry import RetryPolicy


def make_order(order_id: Any = 900123, **overrides) -> Dict[str, Any]:
    """Shopify order payload with sensible defaults"""
    order = {
        "id": order_id,
        "name": f"#{order_id}",
        "created_at": "2024-01-10T09:00:00Z",
        "current_total_price": "199.00",
        "email": f"customer{order_id}@example.com",
        "customer": {"first_name": "Ada", "last_name": "Lovelace", "phone": "+15550100"},
        "billing_address": {
            "first_name": "Ada", "last_name": "Lovelace", "address1": "1 Main St",
            "city": "New York", "province": "NY", "zip": "10001", "country": "United States",
        },
        "shipping_address": {
            "first_name": "Ada", "last_name": "Lovelace", "address1": "1 Main St",
            "city": "New York", "province": "NY", "zip": "10001", "country": "United States",
        },
        "line_items": [
            {"id": 1, "sku": "RING-1", "variant_id": 55, "title": "Ring", "price": "199.00", "quantity": 1},
        ],
        "tags": "import",
    }
    order.update(overrides)
    return order


class FakeShopify:
    """Stands in for ShopifyConnector in sync service tests"""

    def __init__(self, orders: Optional[List[Dict[str, Any]]] = None, fetch_error: Optional[Exception] = None,
                 retag_error: Optional[Exception] = None, retag_delay: float = 0.0):
        self.orders = orders or []
        self.fetch_error = fetch_error
        self.retag_error = retag_error
        self.retag_delay = retag_delay
        self.fetch_calls = []
        self.retagged: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_tagged_orders(self, tag: str, since: Optional[str] = None):
        self.fetch_calls.append((tag, since))
        if self.fetch_error:
            raise self.fetch_error
        return list(self.orders)

    async def retag_order(self, order_id: str, import_tag: str, processed_tag: str):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.retag_delay:
                await asyncio.sleep(self.retag_delay)
            if self.retag_error:
                raise self.retag_error
            self.retagged.append(order_id)
            return [processed_tag]
        finally:
            self.in_flight -= 1

    async def aclose(self):
        pass


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'orders.db'}",
        shopify_store_domain="test-store.myshopify.com",
        shopify_admin_access_token="shpat_test",
        shopify_requests_per_second=0,
        log_dir=str(tmp_path / "logs"),
        log_json=False,
        sync_retry_base_delay=0,
    )


@pytest.fixture
def session_factory(settings):
    factory = create_session_factory(settings.database_url)
    init_db(factory.kw["bind"])
    yield factory
    factory.kw["bind"].dispose()


@pytest.fixture
def store(session_factory) -> OrderStore:
    return OrderStore(session_factory)


@pytest.fixture
def make_context(settings, session_factory, store):
    """Build a SyncContext around a FakeShopify; settings can be overridden"""

    def _make(shopify: FakeShopify, store_override=None, **setting_overrides) -> SyncContext:
        ctx_settings = settings.model_copy(update=setting_overrides) if setting_overrides else settings
        return SyncContext(
            settings=ctx_settings,
            session_factory=session_factory,
            shopify=shopify,
            store=store_override or store,
            retry_policy=RetryPolicy.from_retries(ctx_settings.sync_retries, base_delay=0, jitter=False),
        )

    return _make
