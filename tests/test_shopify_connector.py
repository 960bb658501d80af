"""
Tests for the Shopify connector against a mocked HTTP transport.

Covers:
  - Link-header pagination (one request per page, no extra calls)
  - Non-200 responses raise ShopifyAPIError
  - Tag merge rules and the re-read-then-write retag flow
"""
import asyncio
import json

import httpx
import pytest

from order_sync.connectors.shopify import ShopifyConnector, merge_tags, split_tags
from order_sync.exceptions import ShopifyAPIError

STORE = "test-store.myshopify.com"
PAGE_2 = f"https://{STORE}/admin/api/2024-01/orders.json?limit=250&page_info=abc123"


def _connector(handler) -> ShopifyConnector:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ShopifyConnector(STORE, "shpat_test", requests_per_second=0, client=client)


def _run(connector: ShopifyConnector, coro_fn):
    async def go():
        try:
            return await coro_fn(connector)
        finally:
            await connector.client.aclose()
    return asyncio.run(go())


# ────────────────────────────────────────────
# TAG HELPERS
# ────────────────────────────────────────────


class TestTags:
    """Tag string parsing and merging."""

    def test_split_tags(self):
        assert split_tags("vip,  import , ,gift") == ["vip", "import", "gift"]
        assert split_tags(None) == []

    def test_merge_swaps_tag(self):
        assert merge_tags(["vip", "Import", "gift"], add=["imported"], remove=["import"]) == [
            "vip", "gift", "imported"
        ]

    def test_merge_dedupes_case_insensitively(self):
        assert merge_tags(["Imported"], add=["imported"]) == ["Imported"]

    def test_merge_no_change(self):
        assert merge_tags(["a", "b"]) == ["a", "b"]


# ────────────────────────────────────────────
# FETCH
# ────────────────────────────────────────────


class TestFetchTaggedOrders:
    """Paginated order listing."""

    def test_follows_next_link_until_exhausted(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if "page_info" not in str(request.url):
                return httpx.Response(
                    200,
                    json={"orders": [{"id": 1}, {"id": 2}]},
                    headers={"link": f'<{PAGE_2}>; rel="next"'},
                )
            return httpx.Response(200, json={"orders": [{"id": 3}]})

        orders = _run(_connector(handler), lambda c: c.fetch_tagged_orders("import"))

        assert [o["id"] for o in orders] == [1, 2, 3]
        assert len(requests) == 2
        first = requests[0]
        assert first.headers["X-Shopify-Access-Token"] == "shpat_test"
        assert first.url.params["tag"] == "import"
        assert first.url.params["status"] == "any"
        assert first.url.params["limit"] == "250"
        assert "created_at_min" not in first.url.params

    def test_since_becomes_created_at_min(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"orders": []})

        orders = _run(_connector(handler), lambda c: c.fetch_tagged_orders("import", "2024-01-01T00:00:00Z"))

        assert orders == []
        assert requests[0].url.params["created_at_min"] == "2024-01-01T00:00:00Z"

    def test_non_200_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, text="Invalid API key or access token")

        with pytest.raises(ShopifyAPIError) as exc:
            _run(_connector(handler), lambda c: c.fetch_tagged_orders("import"))

        assert exc.value.status_code == 401
        assert "Invalid API key" in exc.value.body

    def test_failure_on_later_page_returns_nothing(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if "page_info" not in str(request.url):
                return httpx.Response(200, json={"orders": [{"id": 1}]}, headers={"link": f'<{PAGE_2}>; rel="next"'})
            return httpx.Response(502, text="Bad gateway")

        with pytest.raises(ShopifyAPIError):
            _run(_connector(handler), lambda c: c.fetch_tagged_orders("import"))

    def test_next_link_parsing(self):
        connector = ShopifyConnector(STORE, "t")
        header = f'<https://{STORE}/prev>; rel="previous", <{PAGE_2}>; rel="next"'
        assert connector._get_next_page_url(header) == PAGE_2
        assert connector._get_next_page_url(f'<https://{STORE}/prev>; rel="previous"') is None
        assert connector._get_next_page_url(None) is None

    def test_next_link_with_commas_in_url(self):
        connector = ShopifyConnector(STORE, "t")
        next_url = f"https://{STORE}/admin/api/2024-01/orders.json?limit=250&fields=id,name,tags&page_info=abc"
        prev_url = f"https://{STORE}/admin/api/2024-01/orders.json?limit=250&fields=id,name&page_info=zzz"
        assert connector._get_next_page_url(f'<{next_url}>; rel="next"') == next_url
        assert connector._get_next_page_url(f'<{prev_url}>; rel="previous", <{next_url}>; rel="next"') == next_url

    def test_paginates_when_next_url_has_fields_list(self):
        requests = []
        next_url = f"https://{STORE}/admin/api/2024-01/orders.json?limit=250&fields=id,name&page_info=abc"

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if "page_info" not in str(request.url):
                return httpx.Response(200, json={"orders": [{"id": 1}]}, headers={"link": f'<{next_url}>; rel="next"'})
            return httpx.Response(200, json={"orders": [{"id": 2}]})

        orders = _run(_connector(handler), lambda c: c.fetch_tagged_orders("import"))

        assert [o["id"] for o in orders] == [1, 2]
        assert len(requests) == 2
        assert requests[1].url.params["page_info"] == "abc"


# ────────────────────────────────────────────
# RETAG
# ────────────────────────────────────────────


class TestRetag:
    """Tag updates re-read current tags before writing."""

    def test_retag_swaps_import_for_processed(self):
        writes = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                assert request.url.path.endswith("/orders/5.json")
                return httpx.Response(200, json={"order": {"id": 5, "tags": "vip, Import, gift"}})
            writes.append(json.loads(request.content))
            return httpx.Response(200, json={"order": {"id": 5}})

        tags = _run(_connector(handler), lambda c: c.retag_order("5", "import", "imported"))

        assert tags == ["vip", "gift", "imported"]
        assert writes == [{"order": {"id": "5", "tags": "vip, gift, imported"}}]

    def test_update_failure_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(200, json={"order": {"id": 5, "tags": "import"}})
            return httpx.Response(422, json={"errors": {"tags": ["invalid"]}})

        with pytest.raises(ShopifyAPIError) as exc:
            _run(_connector(handler), lambda c: c.change_tags("5", add=["x"]))

        assert exc.value.status_code == 422
