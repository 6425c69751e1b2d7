"""
Cursor pagination over the catalog GraphQL API.

``Paginator.paginate`` returns a ``PageStream``: a lazy, finite async iterable
that fetches each page only when the consumer reaches it. Throttled pages are
retried in place after a backoff; cost-limit and other GraphQL errors are
raised to the consumer; a page ceiling ends runaway streams early.
"""

import asyncio
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Any

from adapters.config import env_float, env_int
from api.catalog.errors import UpstreamCostExceeded, UpstreamQueryError, UpstreamThrottled
from api.catalog.models import Envelope, Page, PageCursor
from utils.get_logger import get_logger

logger = get_logger(__name__)

THROTTLED_CODE = "THROTTLED"
COST_EXCEEDED_CODE = "MAX_COST_EXCEEDED"
COST_LIMIT_MESSAGE = "cost limit"

PageExtractor = Callable[[Envelope], Page]


@dataclass(frozen=True)
class SchedulingPolicy:
    """Delays and retry bounds for upstream pacing, in seconds."""

    page_delay: float = 0.3
    item_delay: float = 0.3
    throttle_backoff: float = 5.0
    max_pages: int = 500
    max_throttle_retries: int = 5

    @classmethod
    def from_env(cls) -> "SchedulingPolicy":
        return cls(
            page_delay=env_float("CATALOG_PAGE_DELAY", cls.page_delay),
            item_delay=env_float("CATALOG_ITEM_DELAY", cls.item_delay),
            throttle_backoff=env_float("CATALOG_THROTTLE_BACKOFF", cls.throttle_backoff),
            max_pages=env_int("CATALOG_MAX_PAGES", cls.max_pages),
            max_throttle_retries=env_int("CATALOG_MAX_THROTTLE_RETRIES", cls.max_throttle_retries),
        )

    @classmethod
    def immediate(cls, max_pages: int = 500, max_throttle_retries: int = 5) -> "SchedulingPolicy":
        """Zero-delay policy for tests and offline tooling."""
        return cls(
            page_delay=0,
            item_delay=0,
            throttle_backoff=0,
            max_pages=max_pages,
            max_throttle_retries=max_throttle_retries,
        )


def _error_code(error: dict[str, Any]) -> str | None:
    extensions = error.get("extensions") or {}
    return extensions.get("code") if isinstance(extensions, dict) else None


def is_throttled(errors: list[dict[str, Any]] | None) -> bool:
    return any(_error_code(e) == THROTTLED_CODE for e in errors or [] if isinstance(e, dict))


def is_cost_exceeded(errors: list[dict[str, Any]] | None) -> bool:
    for error in errors or []:
        if not isinstance(error, dict):
            continue
        message = str(error.get("message", ""))
        if (
            _error_code(error) == COST_EXCEEDED_CODE
            or COST_EXCEEDED_CODE in message
            or COST_LIMIT_MESSAGE in message
        ):
            return True
    return False


def raise_for_errors(errors: list[dict[str, Any]]) -> None:
    """Raise the taxonomy error matching a non-throttling error payload."""
    if is_cost_exceeded(errors):
        raise UpstreamCostExceeded(errors)
    raise UpstreamQueryError(errors)


def connection_extractor(*path: str) -> PageExtractor:
    """Build an extractor for the connection at ``data.<path>``.

    Handles both ``nodes`` and ``edges { node }`` shaped connections. A null
    anywhere along the path yields an empty, final page.
    """

    def extract(envelope: Envelope) -> Page:
        connection: Any = envelope.data or {}
        for part in path:
            connection = connection.get(part) if isinstance(connection, dict) else None
            if connection is None:
                logger.warning(f"No connection at data.{'.'.join(path)}; treating as empty")
                return Page()

        if "nodes" in connection:
            items = list(connection.get("nodes") or [])
        else:
            items = [edge.get("node") for edge in connection.get("edges") or [] if edge]

        page_info = connection.get("pageInfo") or {}
        return Page(
            items=items,
            cursor=PageCursor(
                after=page_info.get("endCursor"),
                has_next_page=bool(page_info.get("hasNextPage", False)),
            ),
        )

    return extract


class PageStream:
    """Single-use async iterator over the items of a paginated query."""

    def __init__(
        self,
        executor: Any,
        query: str,
        page_size: int,
        extract_page: PageExtractor,
        variables: dict[str, Any] | None,
        policy: SchedulingPolicy,
        label: str,
    ):
        self._executor = executor
        self._query = query
        self._page_size = page_size
        self._extract_page = extract_page
        self._variables = dict(variables or {})
        self._policy = policy
        self._started = False
        self.label = label
        self.pages_fetched = 0
        self.items_yielded = 0
        self.truncated = False

    def __aiter__(self) -> AsyncIterator[Any]:
        if self._started:
            raise RuntimeError(f"PageStream '{self.label}' has already been consumed")
        self._started = True
        return self._iterate()

    async def _fetch_page(self, after: str | None) -> Page:
        variables = {**self._variables, "first": self._page_size, "after": after}
        throttles = 0
        while True:
            envelope = await self._executor.execute(self._query, variables)
            if not envelope.has_errors:
                return self._extract_page(envelope)

            errors = envelope.errors or []
            if is_throttled(errors):
                throttles += 1
                if throttles > self._policy.max_throttle_retries:
                    raise UpstreamThrottled(errors, throttles)
                logger.warning(
                    f"{self.label}: request throttled on page {self.pages_fetched + 1} "
                    f"(attempt {throttles}/{self._policy.max_throttle_retries}). "
                    f"Retrying in {self._policy.throttle_backoff}s..."
                )
                await asyncio.sleep(self._policy.throttle_backoff)
                continue

            raise_for_errors(errors)

    async def _iterate(self) -> AsyncIterator[Any]:
        after: str | None = None
        while True:
            if self.pages_fetched >= self._policy.max_pages:
                self.truncated = True
                logger.warning(
                    f"{self.label}: reached maximum page limit ({self._policy.max_pages}). "
                    f"Data might be incomplete."
                )
                return

            logger.debug(f"{self.label}: fetching page {self.pages_fetched + 1}, cursor: {after or 'Start'}")
            page = await self._fetch_page(after)
            self.pages_fetched += 1

            for item in page.items:
                self.items_yielded += 1
                yield item

            if not page.cursor.has_next_page:
                logger.info(
                    f"{self.label}: fetched {self.pages_fetched} pages, {self.items_yielded} items"
                )
                return

            await asyncio.sleep(self._policy.page_delay)
            after = page.cursor.after


class Paginator:
    """Drives a query executor across a cursor sequence."""

    def __init__(self, executor: Any, policy: SchedulingPolicy | None = None):
        self.executor = executor
        self.policy = policy or SchedulingPolicy.from_env()

    def paginate(
        self,
        query: str,
        page_size: int,
        extract_page: PageExtractor,
        variables: dict[str, Any] | None = None,
        label: str = "pagination",
    ) -> PageStream:
        return PageStream(
            executor=self.executor,
            query=query,
            page_size=page_size,
            extract_page=extract_page,
            variables=variables,
            policy=self.policy,
            label=label,
        )

    async def collect(self, stream: PageStream) -> list[Any]:
        """Drain a stream into a list."""
        return [item async for item in stream]
