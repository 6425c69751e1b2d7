"""
Unit tests for catalog async wrapper methods.
Tests caching, product lookup, search and error reporting.
"""

from unittest.mock import MagicMock

import pytest

from api.catalog.models import MetafieldRecord, ProductRecord, ProductsResponse, VariantRecord
from api.catalog.pagination import SchedulingPolicy
from api.catalog.tests.conftest import ScriptedExecutor, connection, graphql_error, metafield, product
from api.catalog.wrappers import (
    PRODUCTS_CACHE_KEY,
    PRODUCTS_TTL,
    CatalogWrapper,
    find_product,
    search_products,
)
from utils.redis_cache import CacheUnavailable

pytestmark = pytest.mark.unit


def scripted_service(responses, **kwargs):
    executor = ScriptedExecutor(responses, **kwargs)
    executor.shop_url = "acme.myshopify.com"
    return executor


def mock_cache(stored=None):
    cache = MagicMock()
    cache.enabled = True
    cache.get.return_value = stored
    return cache


def wrapper_with(responses, cache=None):
    service = scripted_service(responses)
    wrapper = CatalogWrapper(
        cache=cache or mock_cache(),
        service_factory=lambda: service,
        policy=SchedulingPolicy.immediate(),
    )
    return wrapper, service


PRODUCT_PAGES = [
    connection("files", []),
    connection(
        "products",
        [
            product(1, "blue-widget", metafields=[metafield("material", "cotton", "single_line_text_field")]),
            product(2, "red-gadget", metafields=[]),
        ],
    ),
]


class TestGetProducts:
    """Test get_products wrapper method."""

    @pytest.mark.asyncio
    async def test_fetch_and_cache(self):
        cache = mock_cache()
        wrapper, _ = wrapper_with(PRODUCT_PAGES, cache)

        response = await wrapper.get_products()

        assert response.success is True
        assert response.status_code == 200
        assert response.total_products == 2
        assert response.from_cache is False
        assert response.estimated_tokens > 0
        assert response.report["strategy"] == "single-pass"
        key, payload, ttl = cache.set.call_args.args
        assert key == PRODUCTS_CACHE_KEY
        assert ttl == PRODUCTS_TTL
        assert payload["totalProducts"] == 2
        assert payload["products"][0]["handle"] == "blue-widget"

    @pytest.mark.asyncio
    async def test_cache_hit(self):
        stored = ProductsResponse(
            products=[ProductRecord(id="gid://shopify/Product/1", handle="cached")], total_products=1
        ).to_dict(mode="json")
        wrapper, service = wrapper_with([], mock_cache(stored))

        response = await wrapper.get_products()

        assert response.from_cache is True
        assert response.products[0].handle == "cached"
        assert service.calls == []

    @pytest.mark.asyncio
    async def test_force_refresh_skips_cache(self):
        stored = ProductsResponse(total_products=0).to_dict(mode="json")
        cache = mock_cache(stored)
        wrapper, service = wrapper_with(PRODUCT_PAGES, cache)

        response = await wrapper.get_products(force_refresh=True)

        assert response.from_cache is False
        assert response.total_products == 2
        cache.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_cache_unavailable_falls_through(self):
        cache = mock_cache()
        cache.get.side_effect = CacheUnavailable("get products: connection refused")
        cache.set.side_effect = CacheUnavailable("set products: connection refused")
        wrapper, _ = wrapper_with(PRODUCT_PAGES, cache)

        response = await wrapper.get_products()

        assert response.success is True
        assert response.total_products == 2

    @pytest.mark.asyncio
    async def test_fatal_error_returns_500(self):
        wrapper, _ = wrapper_with([connection("files", []), graphql_error("Access denied")])

        response = await wrapper.get_products()

        assert response.success is False
        assert response.status_code == 500
        assert "Access denied" in response.error

    @pytest.mark.asyncio
    async def test_media_index_is_reused_between_runs(self):
        wrapper, service = wrapper_with(PRODUCT_PAGES + PRODUCT_PAGES[1:])

        await wrapper.get_products(force_refresh=True)
        await wrapper.get_products(force_refresh=True)

        assert len(service.calls) == 3


class TestGetProduct:
    """Test product lookup by id, gid or handle."""

    @pytest.mark.asyncio
    async def test_lookup_forms(self):
        wrapper, _ = wrapper_with(PRODUCT_PAGES)
        await wrapper.get_products()

        for identifier in ("gid://shopify/Product/1", "1", "blue-widget"):
            response = await wrapper.get_product(identifier)
            assert response.success is True
            assert response.product.handle == "blue-widget"

    @pytest.mark.asyncio
    async def test_not_found(self):
        wrapper, _ = wrapper_with(PRODUCT_PAGES)
        await wrapper.get_products()

        response = await wrapper.get_product("missing")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_not_fetched_yet(self):
        wrapper, _ = wrapper_with([])

        response = await wrapper.get_product("1")

        assert response.status_code == 404
        assert "fetch products first" in response.error

    @pytest.mark.asyncio
    async def test_empty_identifier(self):
        wrapper, _ = wrapper_with([])
        response = await wrapper.get_product("")
        assert response.status_code == 400


class TestSearch:
    """Test product search."""

    def products(self):
        return [
            ProductRecord(
                id="1",
                title="Blue Widget",
                vendor="Acme",
                tags=["summer"],
                variants=[VariantRecord(id="v1", title="Large")],
                metafields=[MetafieldRecord(namespace="custom", key="material", value="Organic Cotton")],
            ),
            ProductRecord(id="2", title="Red Gadget", vendor="Globex"),
        ]

    def test_all_terms_must_match(self):
        assert [p.id for p in search_products(self.products(), "blue cotton")] == ["1"]
        assert search_products(self.products(), "blue globex") == []

    def test_matches_variant_titles_and_tags(self):
        assert [p.id for p in search_products(self.products(), "LARGE summer")] == ["1"]

    def test_empty_query_returns_all(self):
        assert len(search_products(self.products(), "   ")) == 2

    def test_find_product(self):
        assert find_product(self.products(), "2").title == "Red Gadget"
        assert find_product(self.products(), "3") is None

    @pytest.mark.asyncio
    async def test_search_wrapper(self):
        wrapper, _ = wrapper_with(PRODUCT_PAGES)
        await wrapper.get_products()

        response = await wrapper.search_products("cotton")

        assert response.query == "cotton"
        assert response.total_results == 1
        assert response.products[0].handle == "blue-widget"


class TestContentWrappers:
    """Test files, pages, collections and metaobjects wrappers."""

    @pytest.mark.asyncio
    async def test_get_files(self):
        cache = mock_cache()
        wrapper, _ = wrapper_with(
            [connection("files", [{"id": "f1", "url": "https://cdn/manual.pdf"}])], cache
        )

        response = await wrapper.get_files()

        assert response.total_files == 1
        assert response.files[0].media_type == "DOCUMENT"
        assert cache.set.call_args.args[2] == 30 * 24 * 60 * 60

    @pytest.mark.asyncio
    async def test_get_pages_error(self):
        wrapper, _ = wrapper_with([graphql_error("Access denied for pages field.")])

        response = await wrapper.get_pages()

        assert response.success is False
        assert response.status_code == 500

    @pytest.mark.asyncio
    async def test_get_collections(self):
        wrapper, _ = wrapper_with(
            [
                connection("collections", [{"id": "gid://shopify/Collection/1", "handle": "all"}]),
                {"data": {"collection": None}},
            ]
        )

        response = await wrapper.get_collections()

        assert response.total_collections == 1
        assert response.collections[0].products == []

    @pytest.mark.asyncio
    async def test_get_metaobjects_requires_type(self):
        wrapper, service = wrapper_with([])

        response = await wrapper.get_metaobjects(None)

        assert response.status_code == 400
        assert service.calls == []

    @pytest.mark.asyncio
    async def test_get_metaobjects(self):
        wrapper, _ = wrapper_with(
            [connection("metaobjects", [{"id": "m1", "handle": "jane", "type": "author", "fields": []}])]
        )

        response = await wrapper.get_metaobjects("author")

        assert response.type == "author"
        assert response.total_metaobjects == 1
        assert response.metaobjects[0].display_name == "jane"
