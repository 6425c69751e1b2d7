"""
Media index and the process-wide media catalog builder.

A ``MediaIndex`` maps lookup keys to urls. Every asset is stored under three
keys: its canonical id, the id without the scheme prefix, and the trailing
numeric segment. Numeric keys are shared across asset types, so two assets
with the same trailing number collide; the last one added wins.
"""

from collections.abc import Iterable
from typing import Any

from api.catalog.errors import CatalogError
from api.catalog.models import MediaAsset, RunReport, parse_media_node
from api.catalog.pagination import Paginator, connection_extractor
from api.catalog.queries import MEDIA_LISTING_QUERY
from utils.get_logger import get_logger

logger = get_logger(__name__)

MEDIA_PAGE_SIZE = 100
MEDIA_INDEX_ITEM = "media-index"
MEDIA_STAGE = "media"


def strip_prefix(media_id: str) -> str:
    """``gid://shopify/MediaImage/42`` -> ``shopify/MediaImage/42``."""
    _, sep, rest = media_id.partition("://")
    return rest if sep else media_id


def numeric_suffix(media_id: str) -> str:
    """``gid://shopify/MediaImage/42`` -> ``42``."""
    return media_id.rstrip("/").rsplit("/", 1)[-1]


def lookup_keys(media_id: str) -> list[str]:
    """Lookup keys in resolution order, without duplicates."""
    keys: list[str] = []
    for key in (media_id, strip_prefix(media_id), numeric_suffix(media_id)):
        if key and key not in keys:
            keys.append(key)
    return keys


class MediaIndex:
    """Lookup key -> url."""

    def __init__(self):
        self._urls: dict[str, str] = {}

    def add(self, media_id: str, url: str) -> None:
        for key in lookup_keys(media_id):
            self._urls[key] = url

    def add_asset(self, asset: MediaAsset) -> None:
        self.add(asset.canonical_id, asset.url)

    def get(self, key: str) -> str | None:
        return self._urls.get(key)

    def lookup(self, raw_id: str) -> str | None:
        """Try the id as-is, then prefix-stripped, then its numeric suffix."""
        for key in lookup_keys(raw_id):
            url = self._urls.get(key)
            if url:
                return url
        return None

    def merged_with(self, other: "MediaIndex") -> "MediaIndex":
        """New index with ``other``'s entries layered over this one's."""
        merged = MediaIndex()
        merged._urls = {**self._urls, **other._urls}
        return merged

    def __len__(self) -> int:
        return len(self._urls)

    def __contains__(self, key: object) -> bool:
        return key in self._urls

    def __repr__(self) -> str:
        return f"MediaIndex(keys={len(self._urls)})"

    @classmethod
    def from_assets(cls, assets: Iterable[MediaAsset]) -> "MediaIndex":
        index = cls()
        for asset in assets:
            index.add_asset(asset)
        return index

    @classmethod
    def from_entity(
        cls, images: Iterable[dict[str, Any]] | None, media: Iterable[dict[str, Any]] | None
    ) -> "MediaIndex":
        """Entity-local index from a product's ``images`` and ``media`` nodes.

        Images carry a plain ``url``; media nodes are parsed as variants.
        """
        index = cls()
        for image in images or []:
            if isinstance(image, dict) and image.get("id") and image.get("url"):
                index.add(image["id"], image["url"])
        for raw in media or []:
            node = parse_media_node(raw)
            asset = MediaAsset.from_node(node) if node else None
            if asset:
                index.add_asset(asset)
        return index


class MediaCatalogBuilder:
    """
    Builds the global media index once and hands it out afterwards.

    Concurrent first calls may both build; the results are equivalent and the
    last one is kept.
    """

    def __init__(self, paginator: Paginator, page_size: int = MEDIA_PAGE_SIZE):
        self.paginator = paginator
        self.page_size = page_size
        self._index: MediaIndex | None = None
        self._truncated = False

    @property
    def is_built(self) -> bool:
        return self._index is not None

    def _report_truncation(self, label: str, report: RunReport | None) -> None:
        if report is not None and label not in report.truncated_streams:
            report.truncated_streams.append(label)

    async def build(self, report: RunReport | None = None) -> MediaIndex:
        """Fetch every media asset and memoise the resulting index.

        On any CatalogError the failure is logged, recorded as degraded in
        ``report`` and an empty index is returned without being memoised.
        A listing cut short by the page ceiling is recorded as truncated.
        """
        index = MediaIndex()
        assets = 0
        stream = self.paginator.paginate(
            MEDIA_LISTING_QUERY,
            self.page_size,
            connection_extractor("files"),
            label=MEDIA_STAGE,
        )
        try:
            async for raw in stream:
                node = parse_media_node(raw)
                asset = MediaAsset.from_node(node) if node else None
                if asset is None:
                    continue
                index.add_asset(asset)
                assets += 1
        except CatalogError as e:
            logger.error(f"Error fetching all media: {e}")
            if report is not None:
                report.degraded(MEDIA_INDEX_ITEM, MEDIA_STAGE, str(e))
            return MediaIndex()

        logger.info(f"Completed fetching and caching {assets} media items ({len(index)} keys)")
        self._truncated = stream.truncated
        if stream.truncated:
            self._report_truncation(stream.label, report)
        self._index = index
        return index

    async def get_or_build_index(self, report: RunReport | None = None) -> MediaIndex:
        if self._index is not None:
            # a reused partial index is still partial
            if self._truncated:
                self._report_truncation(MEDIA_STAGE, report)
            return self._index
        return await self.build(report)

    def reset(self) -> None:
        self._index = None
        self._truncated = False
