"""
Shopify Connector

Talks to the Shopify Admin REST API: lists orders by tag, reads a single
order and rewrites order tags.
"""
import asyncio
import re
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from order_sync.exceptions import ShopifyAPIError
from order_sync.utils.logger import log

# Fields requested when listing orders for import
ORDER_FIELDS = (
    "id,name,created_at,customer,current_total_price,total_price,financial_status,"
    "fulfillment_status,shipping_address,billing_address,line_items,tags,email,phone"
)

PAGE_LIMIT = 250  # Max per page

NEXT_LINK_PATTERN = re.compile(r'<([^>]+)>;\s*rel="next"')


def split_tags(tags: Optional[str]) -> List[str]:
    """Split Shopify's comma-joined tag string, dropping blanks"""
    if not tags:
        return []
    return [t.strip() for t in tags.split(",") if t.strip()]


def merge_tags(current: List[str], add: List[str] = (), remove: List[str] = ()) -> List[str]:
    """
    Apply tag additions/removals case-insensitively.

    Existing order is preserved; added tags go to the end; duplicates
    (ignoring case) are dropped.
    """
    removed = {t.lower() for t in remove}
    result: List[str] = []
    seen = set()
    for tag in list(current) + list(add):
        key = tag.lower()
        if key in removed and tag not in add:
            continue
        if key in seen:
            continue
        seen.add(key)
        result.append(tag)
    return result


class ShopifyConnector:
    """
    Connector for Shopify Admin API

    One instance (and one HTTP client) is shared by all sync workers.
    """

    def __init__(
        self,
        store_domain: str,
        access_token: str,
        api_version: str = "2024-01",
        timeout: float = 60.0,
        requests_per_second: float = 2.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize Shopify connector

        Args:
            store_domain: Shopify store domain (e.g., "your-store.myshopify.com")
            access_token: Shopify Admin API access token
            api_version: API version to use
            timeout: Per-request timeout in seconds
            requests_per_second: Client-side rate limit (0 disables)
            client: Optional pre-built HTTP client (tests inject a mock transport)
        """
        self.store_domain = store_domain.replace('https://', '').replace('http://', '').rstrip('/')
        self.access_token = access_token
        self.api_version = api_version
        self.base_url = f"https://{self.store_domain}/admin/api/{api_version}"
        self.timeout = timeout

        # Rate limiting
        self.requests_per_second = requests_per_second
        self.last_request_time = 0.0
        self._rate_lock = asyncio.Lock()

        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_settings(cls, settings) -> "ShopifyConnector":
        return cls(
            store_domain=settings.shopify_store_domain,
            access_token=settings.shopify_admin_access_token,
            api_version=settings.shopify_api_version,
            timeout=settings.shopify_timeout_seconds,
            requests_per_second=settings.shopify_requests_per_second,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self):
        """Close the HTTP client if this connector created it"""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch_tagged_orders(self, tag: str, since: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Fetch every order carrying a tag, following Link-header pagination.

        Args:
            tag: Tag to filter by
            since: Optional created_at_min (ISO-8601)

        Returns:
            All matching orders, in API order

        Raises:
            ShopifyAPIError on any non-200 page; no partial result is returned
        """
        url = (
            f"{self.base_url}/orders.json?status=any&limit={PAGE_LIMIT}"
            f"&fields={ORDER_FIELDS}&tag={quote(tag, safe='')}"
        )
        if since:
            url += f"&created_at_min={quote(since, safe='')}"

        orders: List[Dict[str, Any]] = []
        page = 1

        while url:
            response = await self._request("GET", url)

            if response.status_code != 200:
                raise ShopifyAPIError(
                    "Shopify fetch failed",
                    status_code=response.status_code,
                    url=url,
                    body=response.text
                )

            page_orders = response.json().get("orders") or []
            orders.extend(page_orders)
            log.bind(page=page, page_count=len(page_orders)).debug(
                f"Fetched orders page {page}: got {len(page_orders)} orders"
            )

            # Get next page from Link header
            url = self._get_next_page_url(response.headers.get("link"))
            page += 1

        log.bind(tag=tag, since=since, count=len(orders)).info(
            f"Fetched {len(orders)} orders tagged '{tag}'"
        )
        return orders

    async def fetch_order(self, order_id: str) -> Dict[str, Any]:
        """Fetch a single order by id"""
        url = f"{self.base_url}/orders/{order_id}.json"
        response = await self._request("GET", url)

        if response.status_code != 200:
            raise ShopifyAPIError(
                f"Fetch order {order_id} failed",
                status_code=response.status_code,
                url=url,
                body=response.text
            )

        return response.json().get("order") or {}

    async def update_order_tags(self, order_id: str, tags: List[str]) -> None:
        """Replace an order's tag set"""
        url = f"{self.base_url}/orders/{order_id}.json"
        body = {"order": {"id": order_id, "tags": ", ".join(tags)}}
        response = await self._request("PUT", url, json=body)

        if response.status_code != 200:
            raise ShopifyAPIError(
                f"Update tags for order {order_id} failed",
                status_code=response.status_code,
                url=url,
                body=response.text
            )

    async def change_tags(
        self,
        order_id: str,
        add: List[str] = (),
        remove: List[str] = ()
    ) -> List[str]:
        """
        Re-read the order's current tags and apply add/remove on top of them,
        so tags set by others since the list fetch are kept.

        Returns:
            The tag list written back
        """
        order = await self.fetch_order(order_id)
        current = split_tags(order.get("tags"))
        new_tags = merge_tags(current, add=list(add), remove=list(remove))

        log.bind(shopify_id=order_id, original_tags=current, new_tags=new_tags).debug(
            f"Updating tags for order {order_id}"
        )

        await self.update_order_tags(order_id, new_tags)
        return new_tags

    async def retag_order(self, order_id: str, import_tag: str, processed_tag: str) -> List[str]:
        """Swap the import tag for the processed tag"""
        return await self.change_tags(order_id, add=[processed_tag], remove=[import_tag])

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        await self._rate_limit()
        return await self.client.request(method, url, headers=self._get_headers(), **kwargs)

    def _get_headers(self) -> Dict[str, str]:
        """Get HTTP headers for Shopify API requests"""
        return {
            "X-Shopify-Access-Token": self.access_token,
            "Content-Type": "application/json"
        }

    def _get_next_page_url(self, link_header: Optional[str]) -> Optional[str]:
        """
        Parse next page URL from Link header

        Shopify uses cursor-based pagination with Link headers:
        <url>; rel="previous", <url>; rel="next"
        """
        if not link_header:
            return None

        # URLs may contain unencoded commas (fields=id,name)
        match = NEXT_LINK_PATTERN.search(link_header)
        return match.group(1) if match else None

    async def _rate_limit(self):
        """
        Enforce client-side rate limiting (requests_per_second)
        """
        if not self.requests_per_second:
            return

        async with self._rate_lock:
            interval = 1.0 / self.requests_per_second
            elapsed = time.monotonic() - self.last_request_time

            if elapsed < interval:
                await asyncio.sleep(interval - elapsed)

            self.last_request_time = time.monotonic()
