"""
Catalog Auth Service - Centralized upstream credentials.
Provides shop domain, access token and API version to core, wrappers and scripts.
"""

import os

from utils.get_logger import get_logger

logger = get_logger(__name__)

DEFAULT_API_VERSION = "2025-01"


class CatalogAuth:
    """
    Lazily loads upstream credentials from the environment.
    Values can be overridden in tests by assigning the private attributes.
    """

    def __init__(self):
        self._shop_url: str | None = None
        self._access_token: str | None = None
        self._api_version: str | None = None

    @property
    def shop_url(self) -> str | None:
        """Shop domain without scheme, e.g. ``my-store.myshopify.com``."""
        if self._shop_url is None:
            raw = os.getenv("SHOPIFY_SHOP_URL")
            if raw:
                self._shop_url = raw.removeprefix("https://").removeprefix("http://").rstrip("/")
            else:
                logger.error("SHOPIFY_SHOP_URL not available in environment")
        return self._shop_url

    @property
    def access_token(self) -> str | None:
        if self._access_token is None:
            self._access_token = os.getenv("SHOPIFY_ACCESS_TOKEN")
            if not self._access_token:
                logger.error("SHOPIFY_ACCESS_TOKEN not available in environment")
        return self._access_token

    @property
    def api_version(self) -> str:
        if self._api_version is None:
            self._api_version = os.getenv("SHOPIFY_API_VERSION") or DEFAULT_API_VERSION
        return self._api_version

    def reset(self) -> None:
        """Forget cached values so the next access re-reads the environment."""
        self._shop_url = None
        self._access_token = None
        self._api_version = None


# Singleton instance for use across the application
catalog_auth = CatalogAuth()
