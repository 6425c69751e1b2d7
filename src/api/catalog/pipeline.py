"""
Transform pipeline - raw catalog entities to ProductRecords.

Builds the global media index, fetches the catalog, resolves every product
and variant reference field and assembles the output records. Retry and
resolution rules live in the collaborators, not here.
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from api.catalog.fetch_strategy import CatalogFetchStrategySelector
from api.catalog.media_index import MediaCatalogBuilder, MediaIndex
from api.catalog.models import (
    ImageRecord,
    ItemOutcome,
    MetafieldRecord,
    OptionRecord,
    ProductRecord,
    ReferenceField,
    RunReport,
    SeoRecord,
    VariantRecord,
)
from api.catalog.resolver import ReferenceResolver
from utils.get_logger import get_logger

logger = get_logger(__name__)

TRANSFORM_STAGE = "transform"


def _nodes(connection: Any) -> list[dict[str, Any]]:
    """Items of a ``{nodes: [...]}`` connection, or the list itself."""
    if isinstance(connection, list):
        return connection
    if isinstance(connection, dict):
        return [n for n in connection.get("nodes") or [] if isinstance(n, dict)]
    return []


@dataclass
class TransformResult:
    products: list[ProductRecord] = field(default_factory=list)
    report: RunReport = field(default_factory=RunReport)


class TransformPipeline:
    def __init__(
        self,
        media_builder: MediaCatalogBuilder,
        selector: CatalogFetchStrategySelector,
        resolver: ReferenceResolver,
        shop_url: str,
    ):
        self.media_builder = media_builder
        self.selector = selector
        self.resolver = resolver
        self.shop_url = shop_url

    async def run(self) -> TransformResult:
        """Produce one ProductRecord per fetched entity, in upstream order.

        A product whose upstream shape cannot be validated is left out and
        recorded as failed. Products already degraded by an earlier stage get
        no success entry.

        Raises:
            CatalogError: When the catalog itself cannot be fetched
        """
        report = RunReport()
        global_index = await self.media_builder.get_or_build_index(report)
        report.media_index_size = len(global_index)

        raw_products = await self.selector.fetch_catalog(report)
        self.resolver.new_batch(report)

        products = []
        for raw in raw_products:
            product_id = raw.get("id", "")
            try:
                products.append(await self.transform_product(raw, global_index))
            except ValidationError as e:
                logger.error(f"Skipping product {product_id}: invalid upstream shape: {e}")
                report.failed(product_id, TRANSFORM_STAGE, str(e))
                continue
            if not report.has_issues(product_id):
                report.success(product_id, TRANSFORM_STAGE)

        logger.info(
            f"Transformed {len(products)} products using {report.strategy} fetch "
            f"({report.count(ItemOutcome.DEGRADED)} degraded, "
            f"{report.count(ItemOutcome.FAILED)} failed items)"
        )
        return TransformResult(products=products, report=report)

    async def _resolve_metafields(
        self, raw_metafields: Any, local_index: MediaIndex, global_index: MediaIndex
    ) -> list[MetafieldRecord]:
        fields = [ReferenceField.from_metafield(m) for m in _nodes(raw_metafields)]
        resolved = await self.resolver.resolve_all(fields, local_index, global_index)
        return [MetafieldRecord.from_resolved(f) for f in resolved]

    async def transform_product(self, raw: dict[str, Any], global_index: MediaIndex) -> ProductRecord:
        handle = raw.get("handle")
        images = _nodes(raw.get("images"))
        local_index = MediaIndex.from_entity(images, _nodes(raw.get("media")))

        metafields = await self._resolve_metafields(raw.get("metafields"), local_index, global_index)

        variants = []
        for variant in _nodes(raw.get("variants")):
            variant_metafields = await self._resolve_metafields(
                variant.get("metafields"), local_index, global_index
            )
            variants.append(
                VariantRecord.model_validate(
                    {**variant, "metafields": variant_metafields, "inventory": []}
                )
            )

        return ProductRecord(
            id=raw.get("id", ""),
            handle=handle,
            title=raw.get("title"),
            description=raw.get("description"),
            description_html=raw.get("descriptionHtml"),
            product_type=raw.get("productType"),
            tags=raw.get("tags") or [],
            vendor=raw.get("vendor"),
            options=[OptionRecord.model_validate(o) for o in raw.get("options") or []],
            seo=SeoRecord.model_validate(raw["seo"]) if raw.get("seo") else None,
            status=raw.get("status"),
            template_suffix=raw.get("templateSuffix"),
            metafields=metafields,
            variants=variants,
            images=[ImageRecord.model_validate(i) for i in images],
            translations=[],
            url=f"https://{self.shop_url}/products/{handle}" if handle else None,
        )
