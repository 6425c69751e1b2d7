"""
Base API Client - Shared POST handling with upstream rate limiting.

Services inherit from this and call ``_core_async_post``. The base does not
retry: retry policy belongs to the caller, which knows whether a failure is
transient for its protocol.
"""

import os
import sys
from typing import Any

import aiohttp

from utils.get_logger import get_logger
from utils.rate_limiter import get_rate_limiter

logger = get_logger(__name__)

# Rate limiting is DISABLED for unit tests (mocked API calls) and kept for
# integration tests, which make real API calls.
_IS_TEST_ENV = os.getenv("ENVIRONMENT", "").lower() == "test"
_IS_INTEGRATION_TEST = any(
    "integration" in arg.lower() for arg in sys.argv if "test" in arg.lower()
)
_SKIP_RATE_LIMITING = _IS_TEST_ENV and not _IS_INTEGRATION_TEST


class NoOpRateLimiter:
    async def __aenter__(self) -> Any:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        return None


class UpstreamHTTPError(Exception):
    """Non-2xx response from an upstream API."""

    def __init__(self, url: str, status: int, body: str):
        super().__init__(f"{url} returned status {status}")
        self.url = url
        self.status = status
        self.body = body


class BaseAPIClient:
    """
    Base class for API clients with shared request handling.
    Provides rate limiting and uniform HTTP error reporting.
    """

    async def _core_async_post(
        self,
        url: str,
        json_body: dict[str, Any],
        headers: dict[str, Any] | None = None,
        timeout: float = 60,
        rate_limit_max: int = 10,
        rate_limit_period: float = 1.0,
    ) -> Any:
        """
        Core async HTTP POST returning the decoded JSON body.

        Args:
            url: Full URL to request
            json_body: JSON body to send
            headers: Optional HTTP headers (Content-Type is added automatically)
            timeout: Request timeout in seconds (default: 60)
            rate_limit_max: Maximum requests per period (default: 10)
            rate_limit_period: Time period in seconds (default: 1.0)

        Returns:
            Decoded JSON (dict, list, or scalar)

        Raises:
            UpstreamHTTPError: For any non-2xx status
            aiohttp.ClientError / TimeoutError: For network failures
            ValueError: If the body is not valid JSON
        """
        request_headers = {"Content-Type": "application/json", **(headers or {})}
        request_timeout = aiohttp.ClientTimeout(total=timeout)

        rate_limiter: Any
        if _SKIP_RATE_LIMITING:
            rate_limiter = NoOpRateLimiter()
        else:
            rate_limiter = get_rate_limiter(rate_limit_max, rate_limit_period)

        async with (  # noqa: SIM117
            rate_limiter,
            aiohttp.ClientSession() as session,
            session.post(
                url,
                json=json_body,
                headers=request_headers,
                timeout=request_timeout,
            ) as response,
        ):
            status = response.status
            if status < 200 or status >= 300:
                body = await response.text()
                if status == 429:
                    logger.warning(f"Rate limit hit for {url}")
                else:
                    logger.warning(f"API returned status {status} for {url}")
                raise UpstreamHTTPError(url, status, body[:500])

            return await response.json(content_type=None)
