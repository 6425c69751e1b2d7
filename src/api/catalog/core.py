"""
Catalog Core Service - Query executor for the upstream GraphQL Admin API.

``execute`` sends one request and returns the parsed envelope. It never
retries and never inspects ``errors``; pagination and strategy code decide
what an application-level error means.
"""

from typing import Any

import aiohttp
from pydantic import ValidationError

from adapters.config import env_float, env_int
from api.catalog.auth import DEFAULT_API_VERSION, CatalogAuth, catalog_auth
from api.catalog.errors import TransportError
from api.catalog.models import Envelope, parse_media_node
from api.catalog.queries import MEDIA_BY_ID_QUERY
from utils.base_api_client import BaseAPIClient, UpstreamHTTPError
from utils.get_logger import get_logger

logger = get_logger(__name__)

DEFAULT_RATE_LIMIT = 4


class CatalogService(BaseAPIClient):
    """
    Query executor bound to one shop.
    """

    _rate_limit_period = 1.0

    def __init__(
        self,
        shop_url: str,
        access_token: str,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float | None = None,
        rate_limit_max: int | None = None,
    ):
        """Initialize the service.

        Args:
            shop_url: Shop domain, e.g. ``my-store.myshopify.com`` (required)
            access_token: Admin API access token (required)
            api_version: Versioned path segment (default: 2025-01)
            timeout: Transport timeout in seconds (default: CATALOG_HTTP_TIMEOUT or 60)
            rate_limit_max: Requests per second (default: CATALOG_RATE_LIMIT or 4)

        Raises:
            ValueError: If shop URL or token is missing
        """
        if not shop_url:
            raise ValueError("Catalog shop URL is required")
        if not access_token:
            raise ValueError("Catalog access token is required")

        self.shop_url = shop_url
        self.access_token = access_token
        self.api_version = api_version
        self.timeout = timeout if timeout is not None else env_float("CATALOG_HTTP_TIMEOUT", 60.0)
        self.rate_limit_max = (
            rate_limit_max if rate_limit_max is not None else env_int("CATALOG_RATE_LIMIT", DEFAULT_RATE_LIMIT)
        )
        self.endpoint = f"https://{shop_url}/admin/api/{api_version}/graphql.json"

    @classmethod
    def from_auth(cls, auth: CatalogAuth = catalog_auth) -> "CatalogService":
        return cls(
            shop_url=auth.shop_url or "",
            access_token=auth.access_token or "",
            api_version=auth.api_version,
        )

    async def execute(self, query: str, variables: dict[str, Any] | None = None) -> Envelope:
        """Execute one GraphQL request.

        Returns:
            Envelope with ``data`` and/or ``errors``

        Raises:
            TransportError: Network failure, timeout, non-2xx status or an
                unparseable body
        """
        payload = {"query": query, "variables": variables or {}}
        try:
            result = await self._core_async_post(
                url=self.endpoint,
                json_body=payload,
                headers={"X-Shopify-Access-Token": self.access_token},
                timeout=self.timeout,
                rate_limit_max=self.rate_limit_max,
                rate_limit_period=self._rate_limit_period,
            )
        except UpstreamHTTPError as e:
            raise TransportError(
                f"Catalog GraphQL query failed with status {e.status}: {e.body}",
                status=e.status,
                body=e.body,
            ) from e
        except (aiohttp.ClientError, TimeoutError) as e:
            raise TransportError(f"Catalog GraphQL transport error: {type(e).__name__}: {e}") from e
        except ValueError as e:
            raise TransportError(f"Catalog GraphQL response is not JSON: {e}") from e

        if not isinstance(result, dict):
            raise TransportError(f"Catalog GraphQL response is not an object: {type(result).__name__}")
        try:
            return Envelope.model_validate(result)
        except ValidationError as e:
            raise TransportError(f"Catalog GraphQL response has an unexpected shape: {e}") from e

    async def fetch_media_url(self, media_id: str) -> str | None:
        """Fetch one media node by id and return its url.

        Returns None when the upstream reports errors, has no such node, or the
        node carries no url. TransportError propagates.
        """
        envelope = await self.execute(MEDIA_BY_ID_QUERY, {"id": media_id})
        if envelope.has_errors or not envelope.data:
            logger.debug(f"Direct media fetch for {media_id} returned errors: {envelope.errors}")
            return None
        node = parse_media_node(envelope.data.get("node"))
        return node.resolve_url() if node else None
