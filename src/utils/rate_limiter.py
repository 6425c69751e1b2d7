"""
Rate Limiter Utility - Per-event-loop rate limiting for upstream calls.

Each upstream configuration (max requests per period) gets one limiter per
event loop. Limiters are scoped to loops so a limiter created under one
``asyncio.run`` is never awaited from another.

Usage:
    from utils.rate_limiter import get_rate_limiter

    limiter = get_rate_limiter(max_rate=2, time_period=1)
    async with limiter:
        ...
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any

from aiolimiter import AsyncLimiter

from utils.get_logger import get_logger

logger = get_logger(__name__)

_lock = threading.Lock()

# Key: (max_rate, time_period, loop_id)
_limiters: dict[tuple[int, float, int], ResilientRateLimiter] = {}


class ResilientRateLimiter:
    """
    Wrapper around AsyncLimiter that recreates the underlying limiter when it
    is used from a different event loop than the one it was created on.
    """

    def __init__(self, max_rate: int, time_period: float):
        self.max_rate = max_rate
        self.time_period = time_period
        self._limiter: AsyncLimiter | None = None
        self._loop_id: int | None = None
        # limiters entered and not yet exited, most recent last
        self._entered: list[AsyncLimiter] = []

    def _ensure_limiter(self) -> AsyncLimiter:
        loop_id = id(asyncio.get_running_loop())
        if self._limiter is None or self._loop_id != loop_id:
            self._limiter = AsyncLimiter(self.max_rate, self.time_period)
            self._loop_id = loop_id
            logger.debug(
                f"Created rate limiter for loop {loop_id}: "
                f"{self.max_rate} requests per {self.time_period}s"
            )
        return self._limiter

    async def __aenter__(self) -> ResilientRateLimiter:
        limiter = self._ensure_limiter()
        try:
            await limiter.__aenter__()
        except RuntimeError as e:
            if "loop" not in str(e).lower():
                raise
            logger.warning(f"Rate limiter loop mismatch, recreating limiter: {e}")
            self._limiter = None
            limiter = self._ensure_limiter()
            await limiter.__aenter__()
        self._entered.append(limiter)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        # release the limiter that was acquired, even if it has since been replaced
        if self._entered:
            await self._entered.pop().__aexit__(exc_type, exc_val, exc_tb)


def get_rate_limiter(max_rate: int, time_period: float = 1.0) -> ResilientRateLimiter:
    """
    Get or create the limiter for ``max_rate`` requests per ``time_period``
    seconds on the running event loop.
    """
    cache_key = (max_rate, time_period, id(asyncio.get_running_loop()))

    if cache_key not in _limiters:
        with _lock:
            if cache_key not in _limiters:
                _limiters[cache_key] = ResilientRateLimiter(max_rate, time_period)
                logger.info(f"Created upstream rate limiter: {max_rate} requests per {time_period}s")

    return _limiters[cache_key]
