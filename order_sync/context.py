"""
Process-wide collaborators, built once at start-up and passed explicitly.
"""
from dataclasses import dataclass

from sqlalchemy.orm import sessionmaker

from order_sync.config import Settings
from order_sync.connectors.shopify import ShopifyConnector
from order_sync.models.base import create_session_factory
from order_sync.services.order_store import OrderStore
from order_sync.utils.retry import RetryPolicy


@dataclass
class SyncContext:
    """Settings plus the shared API client, record store and retry policy"""
    settings: Settings
    session_factory: sessionmaker
    shopify: ShopifyConnector
    store: OrderStore
    retry_policy: RetryPolicy

    @classmethod
    def from_settings(cls, settings: Settings) -> "SyncContext":
        session_factory = create_session_factory(settings.database_url)
        return cls(
            settings=settings,
            session_factory=session_factory,
            shopify=ShopifyConnector.from_settings(settings),
            store=OrderStore(session_factory),
            retry_policy=RetryPolicy.from_retries(
                settings.sync_retries,
                base_delay=settings.sync_retry_base_delay,
            ),
        )

    async def aclose(self):
        await self.shopify.aclose()
        self.session_factory.kw["bind"].dispose()
