"""
Catalog Async Wrappers - Read-through cached entry points for the feed routes.
Every method returns a FeedResponse derivative; failures are reported through
``error`` and ``status_code`` instead of being raised.
"""

from collections.abc import Callable
from typing import Any

from api.catalog import content
from api.catalog.core import CatalogService
from api.catalog.fetch_strategy import CatalogFetchStrategySelector
from api.catalog.media_index import MediaCatalogBuilder
from api.catalog.models import (
    CollectionsResponse,
    FeedResponse,
    FilesResponse,
    MetaobjectsResponse,
    PagesResponse,
    ProductRecord,
    ProductResponse,
    ProductsResponse,
    SearchResponse,
)
from api.catalog.pagination import Paginator, SchedulingPolicy
from api.catalog.pipeline import TransformPipeline
from api.catalog.resolver import ReferenceResolver
from utils.get_logger import get_logger
from utils.redis_cache import CacheUnavailable, RedisCache
from utils.token_estimator import estimate_tokens

logger = get_logger(__name__)

PRODUCTS_CACHE_KEY = "products"
FILES_CACHE_KEY = "files"
PAGES_CACHE_KEY = "pages"
COLLECTIONS_CACHE_KEY = "collections"

PRODUCTS_TTL = 60 * 60  # 1 hour
FILES_TTL = 30 * 24 * 60 * 60  # 30 days
PAGES_TTL = 30 * 60  # 30 minutes
COLLECTIONS_TTL = 60 * 60  # 1 hour

# Cache for wrapper responses
CatalogWrapperCache = RedisCache(defaultTTL=PRODUCTS_TTL, prefix="catalog_wrapper")


def product_search_text(product: ProductRecord) -> str:
    parts = [
        product.title,
        product.description,
        product.product_type,
        product.vendor,
        *product.tags,
        *(variant.title for variant in product.variants),
        *(metafield.value for metafield in product.metafields),
    ]
    return " ".join(p for p in parts if p).lower()


def search_products(products: list[ProductRecord], query: str) -> list[ProductRecord]:
    """Products whose searchable text contains every whitespace-separated term."""
    terms = query.lower().split()
    if not terms:
        return list(products)
    return [p for p in products if all(term in product_search_text(p) for term in terms)]


def find_product(products: list[ProductRecord], identifier: str) -> ProductRecord | None:
    gid = f"gid://shopify/Product/{identifier}"
    for product in products:
        if product.id in (identifier, gid) or product.handle == identifier:
            return product
    return None


class CatalogWrapper:
    def __init__(
        self,
        cache: RedisCache | None = None,
        service_factory: Callable[[], CatalogService] | None = None,
        policy: SchedulingPolicy | None = None,
    ):
        """Services are created per request; the media builder lives with the wrapper."""
        self.cache = cache if cache is not None else CatalogWrapperCache
        self.service_factory = service_factory or CatalogService.from_auth
        self.policy = policy
        self.media_builder: MediaCatalogBuilder | None = None
        # last fresh products response, used when the durable cache is off or down
        self._last_products: ProductsResponse | None = None

    # --- cache helpers ---

    def _cache_get(self, key: str) -> Any | None:
        if not self.cache.enabled:
            return None
        try:
            return self.cache.get(key)
        except CacheUnavailable as e:
            logger.warning(f"Cache unavailable reading {key}, fetching from source: {e}")
            return None

    def _cache_set(self, key: str, response: FeedResponse, ttl: int) -> None:
        if not self.cache.enabled:
            return
        try:
            self.cache.set(key, response.to_dict(mode="json"), ttl)
        except CacheUnavailable as e:
            logger.warning(f"Cache unavailable writing {key}: {e}")

    def _paginator(self, service: CatalogService) -> Paginator:
        return Paginator(service, self.policy or SchedulingPolicy.from_env())

    def build_pipeline(self) -> TransformPipeline:
        service = self.service_factory()
        paginator = self._paginator(service)
        if self.media_builder is None:
            self.media_builder = MediaCatalogBuilder(paginator)
        return TransformPipeline(
            media_builder=self.media_builder,
            selector=CatalogFetchStrategySelector(service, paginator),
            resolver=ReferenceResolver(service),
            shop_url=service.shop_url,
        )

    # --- products ---

    async def get_products(self, force_refresh: bool = False) -> ProductsResponse:
        """
        Fetch, transform and cache the full product catalog.

        Returns:
            ProductsResponse with products and the run report, or error information
        """
        if not force_refresh:
            cached = self._cache_get(PRODUCTS_CACHE_KEY)
            if cached:
                response = ProductsResponse.model_validate(cached)
                response.from_cache = True
                return response

        try:
            result = await self.build_pipeline().run()
            products = result.products
            response = ProductsResponse(
                products=products,
                total_products=len(products),
                report=result.report.summary(),
                estimated_tokens=estimate_tokens([p.to_dict(mode="json") for p in products]),
            )
            self._last_products = response
            self._cache_set(PRODUCTS_CACHE_KEY, response, PRODUCTS_TTL)
            logger.info(
                f"Successfully processed {len(products)} products "
                f"(estimated tokens: {response.estimated_tokens})"
            )
            return response
        except Exception as e:
            logger.error(f"Error fetching products: {e}")
            return ProductsResponse(success=False, error=str(e), status_code=500)

    def _cached_products(self) -> list[ProductRecord] | None:
        cached = self._cache_get(PRODUCTS_CACHE_KEY)
        if cached:
            return ProductsResponse.model_validate(cached).products
        if self._last_products is not None:
            return self._last_products.products
        return None

    async def get_product(self, identifier: str) -> ProductResponse:
        if not identifier:
            return ProductResponse(success=False, error="Product identifier is required", status_code=400)
        try:
            products = self._cached_products()
            if products is None:
                return ProductResponse(
                    success=False,
                    error="Products data not available in cache. Please fetch products first.",
                    status_code=404,
                )
            product = find_product(products, identifier)
            if product is None:
                return ProductResponse(
                    success=False, error=f"Product not found: {identifier}", status_code=404
                )
            return ProductResponse(product=product, from_cache=True)
        except Exception as e:
            logger.error(f"Error fetching product {identifier}: {e}")
            return ProductResponse(success=False, error=str(e), status_code=500)

    async def search_products(self, query: str = "") -> SearchResponse:
        try:
            products = self._cached_products()
            if products is None:
                return SearchResponse(
                    query=query,
                    success=False,
                    error="Products data not available in cache. Please fetch products first.",
                    status_code=404,
                )
            results = search_products(products, query)
            return SearchResponse(query=query, products=results, total_results=len(results))
        except Exception as e:
            logger.error(f"Error searching products: {e}")
            return SearchResponse(query=query, success=False, error=str(e), status_code=500)

    # --- content ---

    async def get_files(self, force_refresh: bool = False) -> FilesResponse:
        if not force_refresh:
            cached = self._cache_get(FILES_CACHE_KEY)
            if cached:
                response = FilesResponse.model_validate(cached)
                response.from_cache = True
                return response
        try:
            paginator = self._paginator(self.service_factory())
            files = content.transform_files(await content.fetch_all_files(paginator))
            response = FilesResponse(
                files=files,
                total_files=len(files),
                estimated_tokens=estimate_tokens([f.to_dict() for f in files]),
            )
            self._cache_set(FILES_CACHE_KEY, response, FILES_TTL)
            return response
        except Exception as e:
            logger.error(f"Error fetching files: {e}")
            return FilesResponse(success=False, error=str(e), status_code=500)

    async def get_pages(self, force_refresh: bool = False) -> PagesResponse:
        if not force_refresh:
            cached = self._cache_get(PAGES_CACHE_KEY)
            if cached:
                response = PagesResponse.model_validate(cached)
                response.from_cache = True
                return response
        try:
            paginator = self._paginator(self.service_factory())
            pages = content.transform_pages(await content.fetch_all_pages(paginator))
            response = PagesResponse(
                pages=pages,
                total_pages=len(pages),
                estimated_tokens=estimate_tokens([p.to_dict() for p in pages]),
            )
            self._cache_set(PAGES_CACHE_KEY, response, PAGES_TTL)
            return response
        except Exception as e:
            logger.error(f"Error fetching pages: {e}")
            return PagesResponse(success=False, error=str(e), status_code=500)

    async def get_collections(self, force_refresh: bool = False) -> CollectionsResponse:
        if not force_refresh:
            cached = self._cache_get(COLLECTIONS_CACHE_KEY)
            if cached:
                response = CollectionsResponse.model_validate(cached)
                response.from_cache = True
                return response
        try:
            paginator = self._paginator(self.service_factory())
            raw = await content.fetch_all_collections(paginator)
            collections = await content.transform_collections(paginator, raw)
            response = CollectionsResponse(
                collections=collections,
                total_collections=len(collections),
                estimated_tokens=estimate_tokens([c.to_dict() for c in collections]),
            )
            self._cache_set(COLLECTIONS_CACHE_KEY, response, COLLECTIONS_TTL)
            return response
        except Exception as e:
            logger.error(f"Error fetching collections: {e}")
            return CollectionsResponse(success=False, error=str(e), status_code=500)

    async def get_metaobjects(self, metaobject_type: str | None) -> MetaobjectsResponse:
        if not metaobject_type:
            return MetaobjectsResponse(
                success=False, error="Metaobject type is required", status_code=400
            )
        try:
            paginator = self._paginator(self.service_factory())
            metaobjects = content.transform_metaobjects(
                await content.fetch_metaobjects(paginator, metaobject_type)
            )
            return MetaobjectsResponse(
                type=metaobject_type,
                metaobjects=metaobjects,
                total_metaobjects=len(metaobjects),
                estimated_tokens=estimate_tokens([m.to_dict() for m in metaobjects]),
            )
        except Exception as e:
            logger.error(f"Error fetching metaobjects of type {metaobject_type}: {e}")
            return MetaobjectsResponse(
                type=metaobject_type, success=False, error=str(e), status_code=500
            )


catalog_wrapper = CatalogWrapper()
