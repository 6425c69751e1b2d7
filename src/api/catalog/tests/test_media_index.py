"""
Unit tests for MediaIndex and MediaCatalogBuilder.
"""

import pytest

from api.catalog.errors import TransportError
from api.catalog.media_index import (
    MEDIA_INDEX_ITEM,
    MEDIA_STAGE,
    MediaCatalogBuilder,
    MediaIndex,
    lookup_keys,
    numeric_suffix,
    strip_prefix,
)
from api.catalog.models import ItemOutcome, MediaAsset, RunReport
from api.catalog.pagination import Paginator, SchedulingPolicy
from api.catalog.tests.conftest import (
    THROTTLED,
    ScriptedExecutor,
    connection,
    graphql_error,
    media_image,
)

pytestmark = pytest.mark.unit


class TestLookupKeys:
    """Test derivation of the three lookup keys."""

    def test_keys_for_canonical_id(self):
        assert lookup_keys("gid://shopify/MediaImage/42") == [
            "gid://shopify/MediaImage/42",
            "shopify/MediaImage/42",
            "42",
        ]

    def test_strip_prefix_without_scheme(self):
        assert strip_prefix("shopify/MediaImage/42") == "shopify/MediaImage/42"

    def test_numeric_suffix_of_bare_number(self):
        assert numeric_suffix("42") == "42"
        assert lookup_keys("42") == ["42"]


class TestMediaIndex:
    """Test MediaIndex storage and lookup."""

    def test_asset_is_reachable_by_all_keys(self):
        index = MediaIndex.from_assets(
            [MediaAsset(canonical_id="gid://shopify/MediaImage/42", url="https://x/42.png")]
        )
        assert len(index) == 3
        for key in ("gid://shopify/MediaImage/42", "shopify/MediaImage/42", "42"):
            assert key in index
            assert index.get(key) == "https://x/42.png"

    def test_lookup_order(self):
        index = MediaIndex()
        index.add("gid://shopify/MediaImage/42", "https://x/42.png")
        assert index.lookup("gid://shopify/MediaImage/42") == "https://x/42.png"
        assert index.lookup("shopify/MediaImage/42") == "https://x/42.png"
        assert index.lookup("42") == "https://x/42.png"
        assert index.lookup("gid://shopify/Video/42") == "https://x/42.png"
        assert index.lookup("gid://shopify/MediaImage/43") is None

    def test_exact_key_wins_over_numeric(self):
        index = MediaIndex()
        index.add("gid://shopify/MediaImage/42", "https://x/image.png")
        index.add("gid://shopify/Video/42", "https://x/video.mp4")
        # the numeric key collides: last write wins
        assert index.get("42") == "https://x/video.mp4"
        assert index.lookup("gid://shopify/MediaImage/42") == "https://x/image.png"

    def test_merged_with(self):
        first = MediaIndex()
        first.add("gid://shopify/MediaImage/1", "https://x/1.png")
        second = MediaIndex()
        second.add("gid://shopify/MediaImage/2", "https://x/2.png")

        merged = first.merged_with(second)

        assert merged.lookup("1") == "https://x/1.png"
        assert merged.lookup("2") == "https://x/2.png"
        assert "2" not in first

    def test_from_entity(self):
        images = [{"id": "gid://shopify/ProductImage/7", "url": "https://x/7.jpg"}]
        media = [
            media_image(8, "https://x/8.jpg"),
            {"__typename": "Video", "id": "gid://shopify/Video/9", "sources": [{"url": "https://x/9.mp4"}]},
            {"__typename": "ExternalVideo", "id": "gid://shopify/ExternalVideo/10", "embeddedUrl": "https://yt/10"},
            {"__typename": "Model3d", "id": "gid://shopify/Model3d/11", "sources": []},
        ]

        index = MediaIndex.from_entity(images, media)

        assert index.lookup("7") == "https://x/7.jpg"
        assert index.lookup("8") == "https://x/8.jpg"
        assert index.lookup("gid://shopify/Video/9") == "https://x/9.mp4"
        assert index.lookup("shopify/ExternalVideo/10") == "https://yt/10"
        assert index.lookup("11") is None

    def test_from_entity_empty(self):
        assert len(MediaIndex.from_entity(None, None)) == 0


class TestMediaCatalogBuilder:
    """Test global index construction."""

    @pytest.mark.asyncio
    async def test_builds_across_pages_and_skips_urlless(self, immediate_policy):
        executor = ScriptedExecutor(
            [
                connection(
                    "files",
                    [media_image(1, "https://x/1.png"), {"__typename": "GenericFile", "id": "gid://shopify/GenericFile/5"}],
                    True,
                    "c1",
                ),
                connection(
                    "files",
                    [
                        {"__typename": "Video", "id": "gid://shopify/Video/2", "sources": [{"url": "https://x/2.mp4"}]},
                        {"__typename": "MediaImage", "id": "gid://shopify/MediaImage/3", "image": None},
                    ],
                ),
            ]
        )
        builder = MediaCatalogBuilder(Paginator(executor, immediate_policy))

        index = await builder.get_or_build_index()

        assert index.lookup("1") == "https://x/1.png"
        assert index.lookup("gid://shopify/Video/2") == "https://x/2.mp4"
        assert index.lookup("3") is None
        assert index.lookup("5") is None
        assert executor.calls[0][1]["first"] == 100
        assert builder.is_built

    @pytest.mark.asyncio
    async def test_second_call_does_not_fetch(self, immediate_policy):
        executor = ScriptedExecutor([connection("files", [media_image(1, "https://x/1.png")])])
        builder = MediaCatalogBuilder(Paginator(executor, immediate_policy))

        first = await builder.get_or_build_index()
        second = await builder.get_or_build_index()

        assert first is second
        assert len(executor.calls) == 1

    @pytest.mark.asyncio
    async def test_failure_returns_empty_and_is_not_memoised(self, immediate_policy):
        executor = ScriptedExecutor(
            [
                graphql_error("Internal error"),
                connection("files", [media_image(1, "https://x/1.png")]),
            ]
        )
        builder = MediaCatalogBuilder(Paginator(executor, immediate_policy))

        failed = await builder.get_or_build_index()
        assert len(failed) == 0
        assert not builder.is_built

        retried = await builder.get_or_build_index()
        assert retried.lookup("1") == "https://x/1.png"

    @pytest.mark.asyncio
    async def test_transport_failure_is_fail_open(self, immediate_policy):
        executor = ScriptedExecutor([TransportError("connection reset")])
        builder = MediaCatalogBuilder(Paginator(executor, immediate_policy))

        index = await builder.get_or_build_index()

        assert len(index) == 0

    @pytest.mark.asyncio
    async def test_throttled_page_is_retried(self, immediate_policy):
        executor = ScriptedExecutor([THROTTLED, connection("files", [media_image(1, "https://x/1.png")])])
        builder = MediaCatalogBuilder(Paginator(executor, immediate_policy))

        index = await builder.build()

        assert index.lookup("1") == "https://x/1.png"

    @pytest.mark.asyncio
    async def test_reset_forces_rebuild(self, immediate_policy):
        executor = ScriptedExecutor(
            [
                connection("files", [media_image(1, "https://x/1.png")]),
                connection("files", [media_image(1, "https://x/1-new.png")]),
            ]
        )
        builder = MediaCatalogBuilder(Paginator(executor, immediate_policy))
        await builder.get_or_build_index()

        builder.reset()
        index = await builder.get_or_build_index()

        assert index.lookup("1") == "https://x/1-new.png"
        assert len(executor.calls) == 2


class TestMediaCatalogBuilderReport:
    """Test the builder records its fallbacks in the run report."""

    @pytest.mark.asyncio
    async def test_failure_is_recorded_as_degraded(self, immediate_policy):
        executor = ScriptedExecutor([TransportError("connection reset")])
        builder = MediaCatalogBuilder(Paginator(executor, immediate_policy))
        report = RunReport()

        await builder.get_or_build_index(report)

        [entry] = report.results
        assert entry.item_id == MEDIA_INDEX_ITEM
        assert entry.stage == MEDIA_STAGE
        assert entry.outcome is ItemOutcome.DEGRADED
        assert "connection reset" in entry.detail
        assert report.is_degraded

    @pytest.mark.asyncio
    async def test_successful_build_leaves_report_clean(self, immediate_policy):
        executor = ScriptedExecutor([connection("files", [media_image(1, "https://x/1.png")])])
        builder = MediaCatalogBuilder(Paginator(executor, immediate_policy))
        report = RunReport()

        await builder.get_or_build_index(report)

        assert not report.is_degraded

    @pytest.mark.asyncio
    async def test_truncated_listing_is_reported_on_every_use(self):
        executor = ScriptedExecutor([connection("files", [media_image(1, "https://x/1.png")], True, "c1")])
        builder = MediaCatalogBuilder(Paginator(executor, SchedulingPolicy.immediate(max_pages=1)))

        first_report, second_report = RunReport(), RunReport()
        index = await builder.get_or_build_index(first_report)
        await builder.get_or_build_index(second_report)

        assert index.lookup("1") == "https://x/1.png"
        assert first_report.truncated_streams == [MEDIA_STAGE]
        assert second_report.truncated_streams == [MEDIA_STAGE]
        assert len(executor.calls) == 1
