"""
Catalog error taxonomy.

TransportError and UpstreamQueryError abort the operation that raised them.
UpstreamCostExceeded is caught by the fetch strategy selector and triggers
the two-phase fallback. UpstreamThrottled only escapes the paginator once
throttle retries are exhausted. ResolutionMiss never leaves the resolver.
"""

from typing import Any


class CatalogError(Exception):
    """Base class for upstream catalog failures."""


class TransportError(CatalogError):
    """The HTTP call itself failed (network error, timeout, non-2xx status)."""

    def __init__(self, message: str, status: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status = status
        self.body = body


class UpstreamQueryError(CatalogError):
    """The upstream answered with application-level GraphQL errors."""

    def __init__(self, errors: list[dict[str, Any]], message: str | None = None):
        self.errors = errors
        if message is None:
            messages = [str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors]
            message = f"GraphQL errors: {'; '.join(messages)}"
        super().__init__(message)


class UpstreamCostExceeded(UpstreamQueryError):
    """The query's computed cost is above the upstream's per-query ceiling."""


class UpstreamThrottled(CatalogError):
    """The upstream kept throttling the same page past the retry bound."""

    def __init__(self, errors: list[dict[str, Any]], attempts: int):
        super().__init__(f"Upstream still throttled after {attempts} attempts")
        self.errors = errors
        self.attempts = attempts


class ResolutionMiss(CatalogError):
    """No index or direct fetch could produce a url for a media id."""

    def __init__(self, media_id: str):
        super().__init__(f"Could not resolve media URL for ID: {media_id}")
        self.media_id = media_id
