"""
Catalog Models - Pydantic models for upstream payloads and produced records.

Upstream media nodes are tagged variants keyed on ``__typename``; every other
upstream entity is kept as a plain dict until the pipeline assembles the
output records defined here.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from utils.get_logger import get_logger
from utils.pydantic_tools import BaseModelWithMethods

logger = get_logger(__name__)


# --- Transport ---------------------------------------------------------------


class Envelope(BaseModel):
    """Parsed GraphQL response. ``errors`` may accompany partial ``data``."""

    data: dict[str, Any] | None = None
    errors: list[dict[str, Any]] | None = None
    extensions: dict[str, Any] | None = None

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


@dataclass(frozen=True)
class PageCursor:
    after: str | None
    has_next_page: bool


@dataclass
class Page:
    items: list[Any] = field(default_factory=list)
    cursor: PageCursor = field(default_factory=lambda: PageCursor(after=None, has_next_page=False))


# --- Media variants ----------------------------------------------------------


class MediaSource(BaseModelWithMethods):
    url: str | None = None


class ImagePayload(BaseModelWithMethods):
    url: str | None = None
    alt_text: str | None = None


class MediaImageNode(BaseModelWithMethods):
    id: str
    image: ImagePayload | None = None

    def resolve_url(self) -> str | None:
        return self.image.url if self.image and self.image.url else None


class VideoNode(BaseModelWithMethods):
    id: str
    sources: list[MediaSource] = Field(default_factory=list)

    def resolve_url(self) -> str | None:
        return self.sources[0].url if self.sources and self.sources[0].url else None


class ExternalVideoNode(BaseModelWithMethods):
    id: str
    embedded_url: str | None = None

    def resolve_url(self) -> str | None:
        return self.embedded_url or None


class Model3dNode(BaseModelWithMethods):
    id: str
    sources: list[MediaSource] = Field(default_factory=list)

    def resolve_url(self) -> str | None:
        return self.sources[0].url if self.sources and self.sources[0].url else None


MediaNode = MediaImageNode | VideoNode | ExternalVideoNode | Model3dNode

MEDIA_VARIANTS: dict[str, type[MediaNode]] = {
    "MediaImage": MediaImageNode,
    "Video": VideoNode,
    "ExternalVideo": ExternalVideoNode,
    "Model3d": Model3dNode,
}


def parse_media_node(raw: Any) -> MediaNode | None:
    """Parse one upstream media node into its variant, or None if it is not media."""
    if not isinstance(raw, dict) or not raw.get("id"):
        return None
    variant = MEDIA_VARIANTS.get(raw.get("__typename", ""))
    if variant is None:
        return None
    try:
        return variant.model_validate(raw)
    except ValidationError as e:
        logger.debug(f"Skipping malformed {raw.get('__typename')} node {raw.get('id')}: {e}")
        return None


class MediaAsset(BaseModelWithMethods):
    canonical_id: str
    url: str

    @classmethod
    def from_node(cls, node: MediaNode) -> MediaAsset | None:
        url = node.resolve_url()
        if not url:
            return None
        return cls(canonical_id=node.id, url=url)


# --- Reference fields --------------------------------------------------------


class FieldKind(str, Enum):
    SCALAR_REF = "scalar-ref"
    LIST_REF = "list-ref"
    PLAIN = "plain"

    @classmethod
    def from_metafield_type(cls, metafield_type: str | None) -> FieldKind:
        if metafield_type == "file_reference":
            return cls.SCALAR_REF
        if metafield_type == "list.file_reference":
            return cls.LIST_REF
        return cls.PLAIN


class ReferenceField(BaseModelWithMethods):
    namespace: str = ""
    key: str = ""
    type: FieldKind = FieldKind.PLAIN
    raw_value: str | None = None
    # upstream metafield type, e.g. "list.file_reference"
    source_type: str = ""

    @classmethod
    def from_metafield(cls, raw: dict[str, Any]) -> ReferenceField:
        value = raw.get("value")
        if value is not None and not isinstance(value, str):
            value = json.dumps(value)
        return cls(
            namespace=raw.get("namespace") or "",
            key=raw.get("key") or "",
            type=FieldKind.from_metafield_type(raw.get("type")),
            raw_value=value,
            source_type=raw.get("type") or "",
        )

    @property
    def is_reference(self) -> bool:
        return self.type is not FieldKind.PLAIN


class ResolvedField(ReferenceField):
    resolved_value: str | None = None
    original_value: str | None = None
    resolved: bool = False


# --- Run report --------------------------------------------------------------


class ItemOutcome(str, Enum):
    SUCCESS = "success"
    DEGRADED = "degraded"
    FAILED = "failed"


class ItemResult(BaseModelWithMethods):
    item_id: str
    stage: str
    outcome: ItemOutcome
    detail: str | None = None


class RunReport(BaseModelWithMethods):
    """Per-item outcomes of one transform run."""

    strategy: str | None = None
    media_index_size: int = 0
    truncated_streams: list[str] = Field(default_factory=list)
    results: list[ItemResult] = Field(default_factory=list)

    def record(
        self, item_id: str, stage: str, outcome: ItemOutcome, detail: str | None = None
    ) -> None:
        self.results.append(ItemResult(item_id=item_id, stage=stage, outcome=outcome, detail=detail))

    def success(self, item_id: str, stage: str) -> None:
        self.record(item_id, stage, ItemOutcome.SUCCESS)

    def degraded(self, item_id: str, stage: str, detail: str | None = None) -> None:
        self.record(item_id, stage, ItemOutcome.DEGRADED, detail)

    def failed(self, item_id: str, stage: str, detail: str | None = None) -> None:
        self.record(item_id, stage, ItemOutcome.FAILED, detail)

    def count(self, outcome: ItemOutcome) -> int:
        return sum(1 for r in self.results if r.outcome is outcome)

    def has_issues(self, item_id: str) -> bool:
        """True when ``item_id`` already has a degraded or failed entry."""
        return any(r.item_id == item_id and r.outcome is not ItemOutcome.SUCCESS for r in self.results)

    @property
    def is_degraded(self) -> bool:
        return bool(self.truncated_streams) or any(
            r.outcome is not ItemOutcome.SUCCESS for r in self.results
        )

    def summary(self) -> dict[str, Any]:
        return {
            "strategy": self.strategy,
            "mediaIndexSize": self.media_index_size,
            "truncatedStreams": list(self.truncated_streams),
            "degraded": self.count(ItemOutcome.DEGRADED),
            "failed": self.count(ItemOutcome.FAILED),
            "isDegraded": self.is_degraded,
        }


# --- Produced records --------------------------------------------------------


class MetafieldRecord(BaseModelWithMethods):
    namespace: str = ""
    key: str = ""
    value: str | None = None
    type: str = ""
    original_value: str | None = None
    processed: bool = False

    @classmethod
    def from_resolved(cls, field_: ResolvedField) -> MetafieldRecord:
        if not field_.is_reference:
            return cls(
                namespace=field_.namespace,
                key=field_.key,
                value=field_.raw_value,
                type=field_.source_type,
            )
        return cls(
            namespace=field_.namespace,
            key=field_.key,
            value=field_.resolved_value,
            type=field_.source_type,
            original_value=field_.original_value,
            processed=field_.resolved,
        )


class SeoRecord(BaseModelWithMethods):
    title: str | None = None
    description: str | None = None


class OptionRecord(BaseModelWithMethods):
    id: str | None = None
    name: str = ""
    values: list[str] = Field(default_factory=list)


class SelectedOption(BaseModelWithMethods):
    name: str = ""
    value: str = ""


class ImageRecord(BaseModelWithMethods):
    id: str | None = None
    url: str | None = None
    alt_text: str | None = None


class InventoryRecord(BaseModelWithMethods):
    location_id: str | None = None
    location_name: str | None = None
    available: int = 0


class VariantRecord(BaseModelWithMethods):
    id: str
    title: str | None = None
    sku: str | None = None
    price: str | None = None
    compare_at_price: str | None = None
    inventory_quantity: int | None = None
    available_for_sale: bool | None = None
    selected_options: list[SelectedOption] = Field(default_factory=list)
    image: ImageRecord | None = None
    metafields: list[MetafieldRecord] = Field(default_factory=list)
    inventory: list[InventoryRecord] = Field(default_factory=list)


class ProductRecord(BaseModelWithMethods):
    id: str
    handle: str | None = None
    title: str | None = None
    description: str | None = None
    description_html: str | None = None
    product_type: str | None = None
    tags: list[str] = Field(default_factory=list)
    vendor: str | None = None
    options: list[OptionRecord] = Field(default_factory=list)
    seo: SeoRecord | None = None
    status: str | None = None
    template_suffix: str | None = None
    metafields: list[MetafieldRecord] = Field(default_factory=list)
    variants: list[VariantRecord] = Field(default_factory=list)
    images: list[ImageRecord] = Field(default_factory=list)
    translations: list[dict[str, Any]] = Field(default_factory=list)
    url: str | None = None


class FileRecord(BaseModelWithMethods):
    id: str
    filename: str
    url: str
    media_type: str
    original_upload_size: int = 0
    created_at: str | None = None
    updated_at: str | None = None
    alt: str | None = None
    status: str | None = None
    mime_type: str


class PageRecord(BaseModelWithMethods):
    id: str
    title: str | None = None
    handle: str | None = None
    body: str | None = None
    body_summary: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    online_store_url: str | None = None
    seo: SeoRecord | None = None
    template_suffix: str | None = None


class CollectionProductRef(BaseModelWithMethods):
    id: str
    title: str | None = None
    handle: str | None = None


class CollectionRecord(BaseModelWithMethods):
    id: str
    handle: str | None = None
    title: str | None = None
    updated_at: str | None = None
    description_html: str | None = None
    sort_order: str | None = None
    template_suffix: str | None = None
    rule_set: dict[str, Any] | None = None
    image: ImageRecord | None = None
    products: list[CollectionProductRef] = Field(default_factory=list)


class MetaobjectRecord(BaseModelWithMethods):
    id: str
    handle: str | None = None
    type: str | None = None
    display_name: str | None = None
    fields: list[MetafieldRecord] = Field(default_factory=list)
    updated_at: str | None = None


# --- Responses ---------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class FeedResponse(BaseModelWithMethods):
    """Common envelope of every feed response; ``status_code`` is not serialised."""

    success: bool = True
    timestamp: str = Field(default_factory=_now_iso)
    error: str | None = None
    status_code: int = Field(default=200, exclude=True)
    from_cache: bool = False
    estimated_tokens: int | None = None


class ProductsResponse(FeedResponse):
    products: list[ProductRecord] = Field(default_factory=list)
    total_products: int = 0
    report: dict[str, Any] | None = None


class ProductResponse(FeedResponse):
    product: ProductRecord | None = None


class SearchResponse(FeedResponse):
    query: str = ""
    products: list[ProductRecord] = Field(default_factory=list)
    total_results: int = 0


class FilesResponse(FeedResponse):
    files: list[FileRecord] = Field(default_factory=list)
    total_files: int = 0


class PagesResponse(FeedResponse):
    pages: list[PageRecord] = Field(default_factory=list)
    total_pages: int = 0


class CollectionsResponse(FeedResponse):
    collections: list[CollectionRecord] = Field(default_factory=list)
    total_collections: int = 0


class MetaobjectsResponse(FeedResponse):
    type: str = ""
    metaobjects: list[MetaobjectRecord] = Field(default_factory=list)
    total_metaobjects: int = 0
