"""
Catalog fetch strategy selection.

The rich query fetches products with metafields, variants, images and media
embedded. When the upstream rejects it for exceeding the per-query cost limit,
the selector switches to two-phase fetching: a cheap listing followed by one
detail query per product.
"""

import asyncio
from typing import Any

from api.catalog.errors import CatalogError, UpstreamCostExceeded
from api.catalog.models import RunReport
from api.catalog.pagination import Paginator, PageStream, SchedulingPolicy, connection_extractor
from api.catalog.queries import PRODUCT_DETAILS_QUERY, PRODUCTS_BASIC_QUERY, PRODUCTS_RICH_QUERY
from utils.get_logger import get_logger

logger = get_logger(__name__)

SINGLE_PASS = "single-pass"
TWO_PHASE = "two-phase"

RICH_PAGE_SIZE = 25
BASIC_PAGE_SIZE = 50
DETAIL_STAGE = "fetch-details"


class DetailFetchFailed(CatalogError):
    """A product's detail query answered with errors or no product."""


class CatalogFetchStrategySelector:
    """Fetches the product catalog with the cheapest strategy that works."""

    def __init__(self, service, paginator: Paginator, policy: SchedulingPolicy | None = None):
        self.service = service
        self.paginator = paginator
        self.policy = policy or paginator.policy

    async def fetch_catalog(self, report: RunReport | None = None) -> list[dict[str, Any]]:
        """Return raw product dicts with metafields and media attached.

        Raises:
            CatalogError: Any failure other than the cost limit on the rich query
        """
        report = report if report is not None else RunReport()
        try:
            products = await self._fetch_single_pass(report)
            report.strategy = SINGLE_PASS
            return products
        except UpstreamCostExceeded as e:
            logger.warning(f"Rich product query exceeded the cost limit, switching to two-phase fetch: {e}")

        products = await self._fetch_two_phase(report)
        report.strategy = TWO_PHASE
        return products

    async def _drain(self, stream: PageStream, report: RunReport) -> list[dict[str, Any]]:
        items = await self.paginator.collect(stream)
        if stream.truncated:
            report.truncated_streams.append(stream.label)
        return items

    async def _fetch_single_pass(self, report: RunReport) -> list[dict[str, Any]]:
        logger.info("Fetching products with the rich query")
        stream = self.paginator.paginate(
            PRODUCTS_RICH_QUERY,
            RICH_PAGE_SIZE,
            connection_extractor("products"),
            label="products",
        )
        products = await self._drain(stream, report)
        logger.info(f"Fetched {len(products)} products in a single pass")
        return products

    async def _fetch_two_phase(self, report: RunReport) -> list[dict[str, Any]]:
        logger.info("Using simplified fetching approach to stay within GraphQL cost limits")
        stream = self.paginator.paginate(
            PRODUCTS_BASIC_QUERY,
            BASIC_PAGE_SIZE,
            connection_extractor("products"),
            label="products-basic",
        )
        products = await self._drain(stream, report)
        logger.info(f"Fetched {len(products)} basic products, fetching details for each")

        enriched = []
        for position, product in enumerate(products):
            if position:
                await asyncio.sleep(self.policy.item_delay)
            product_id = product.get("id", "")
            try:
                details = await self._fetch_details(product_id)
            except CatalogError as e:
                logger.warning(f"Error enriching product {product_id}: {e}")
                report.degraded(product_id, DETAIL_STAGE, str(e))
                enriched.append(product)
                continue
            enriched.append(self._merge_details(product, details))

        logger.info(f"Completed fetching all {len(enriched)} products with details")
        return enriched

    async def _fetch_details(self, product_id: str) -> dict[str, Any]:
        envelope = await self.service.execute(PRODUCT_DETAILS_QUERY, {"id": product_id})
        if envelope.has_errors:
            raise DetailFetchFailed(f"detail query returned errors: {envelope.errors}")
        details = (envelope.data or {}).get("product")
        if not details:
            raise DetailFetchFailed("detail query returned no product")
        return details

    @staticmethod
    def _merge_details(product: dict[str, Any], details: dict[str, Any]) -> dict[str, Any]:
        """Overlay detail metafields and media on a shallow product.

        Variant metafields are matched by variant id; variants with no
        detailed counterpart are left as they are.
        """
        merged = {**product, "metafields": details.get("metafields"), "media": details.get("media")}

        detailed_variants = {
            v.get("id"): v
            for v in (details.get("variants") or {}).get("nodes") or []
            if isinstance(v, dict)
        }
        variants = (product.get("variants") or {}).get("nodes")
        if variants is not None:
            merged_variants = []
            for variant in variants:
                detailed = detailed_variants.get(variant.get("id"))
                if detailed and detailed.get("metafields") is not None:
                    variant = {**variant, "metafields": detailed["metafields"]}
                merged_variants.append(variant)
            merged["variants"] = {**product["variants"], "nodes": merged_variants}
        return merged
