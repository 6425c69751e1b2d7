"""
Shared fixtures and utilities for catalog service tests.

Upstream responses are scripted: a ``ScriptedExecutor`` hands out one
envelope per ``execute`` call and records the variables it was called with.
"""

# Set environment to test mode FIRST, before any imports
import os

os.environ["ENVIRONMENT"] = "test"
# Also disable cache for tests to prevent cache pollution between tests
os.environ["ENABLE_CACHE_FOR_TESTS"] = "0"

from typing import Any

import pytest

from api.catalog.models import Envelope
from api.catalog.pagination import SchedulingPolicy


def pytest_configure(config):
    """Pytest hook to configure test environment before any tests run."""
    os.environ["ENVIRONMENT"] = "test"


class ScriptedExecutor:
    """Query executor double returning pre-built responses in order.

    Each scripted response is either an envelope dict or an exception to raise.
    """

    def __init__(self, responses: list[Any] | None = None, media_urls: dict[str, str] | None = None):
        self.responses = list(responses or [])
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.media_urls = dict(media_urls or {})
        self.media_calls: list[str] = []

    async def execute(self, query: str, variables: dict[str, Any] | None = None) -> Envelope:
        self.calls.append((query, dict(variables or {})))
        if not self.responses:
            raise AssertionError(f"Unexpected execute call with {variables}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return Envelope.model_validate(response)

    async def fetch_media_url(self, media_id: str) -> str | None:
        self.media_calls.append(media_id)
        url = self.media_urls.get(media_id)
        if isinstance(url, Exception):
            raise url
        return url


def connection(root: str, nodes: list[Any], has_next: bool = False, cursor: str | None = None) -> dict:
    """Envelope dict with ``data.<root>`` as a nodes-shaped connection."""
    return {
        "data": {
            root: {
                "pageInfo": {"hasNextPage": has_next, "endCursor": cursor},
                "nodes": nodes,
            }
        }
    }


def graphql_error(message: str, code: str | None = None) -> dict:
    error: dict[str, Any] = {"message": message}
    if code:
        error["extensions"] = {"code": code}
    return {"errors": [error]}


THROTTLED = graphql_error("Throttled", code="THROTTLED")
COST_EXCEEDED = graphql_error(
    "Query cost is 1500, which exceeds the single query max cost limit (1000).",
    code="MAX_COST_EXCEEDED",
)


def media_image(numeric_id: int | str, url: str) -> dict:
    return {
        "__typename": "MediaImage",
        "id": f"gid://shopify/MediaImage/{numeric_id}",
        "image": {"url": url, "altText": None},
    }


def metafield(key: str, value: str, type_: str, namespace: str = "custom") -> dict:
    return {"namespace": namespace, "key": key, "value": value, "type": type_}


def product(
    numeric_id: int,
    handle: str,
    metafields: list[dict] | None = None,
    variants: list[dict] | None = None,
    images: list[dict] | None = None,
    media: list[dict] | None = None,
    **extra: Any,
) -> dict:
    raw: dict[str, Any] = {
        "id": f"gid://shopify/Product/{numeric_id}",
        "handle": handle,
        "title": handle.replace("-", " ").title(),
        "description": f"About {handle}",
        "descriptionHtml": f"<p>About {handle}</p>",
        "productType": "Widget",
        "tags": ["sale"],
        "vendor": "Acme",
        "status": "ACTIVE",
        "templateSuffix": None,
        "seo": {"title": None, "description": None},
        "options": [{"id": "gid://shopify/ProductOption/1", "name": "Title", "values": ["Default"]}],
        "variants": {"nodes": variants or []},
        "images": {"nodes": images or []},
    }
    if metafields is not None:
        raw["metafields"] = {"nodes": metafields}
    if media is not None:
        raw["media"] = {"nodes": media}
    raw.update(extra)
    return raw


def variant(numeric_id: int, title: str = "Default", metafields: list[dict] | None = None) -> dict:
    raw: dict[str, Any] = {
        "id": f"gid://shopify/ProductVariant/{numeric_id}",
        "title": title,
        "sku": f"SKU-{numeric_id}",
        "price": "10.00",
        "compareAtPrice": None,
        "inventoryQuantity": 3,
        "availableForSale": True,
        "selectedOptions": [{"name": "Title", "value": title}],
        "image": None,
    }
    if metafields is not None:
        raw["metafields"] = {"nodes": metafields}
    return raw


@pytest.fixture
def immediate_policy():
    """Zero-delay scheduling policy."""
    return SchedulingPolicy.immediate()


@pytest.fixture
def executor():
    return ScriptedExecutor()
