"""Shared request-budget state for GitHub API calls.

One RateLimitState is owned by a client and shared by every worker of a
sync, so concurrent fetches see a single budget.
"""

import asyncio
import time
from collections.abc import Callable

import httpx

from app.services.github.helpers import RateLimitInfo
from app.services.github.types import RateLimitSnapshot


class RateLimitState:
    """Remaining/limit/reset as last reported by GitHub.

    The clock is injectable so tests can control `seconds_until_reset`.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = asyncio.Lock()
        self.remaining: int | None = None
        self.limit: int | None = None
        self.reset: int | None = None
        self.used: int | None = None
        self.updates = 0

    async def record(
        self,
        remaining: int | None,
        limit: int | None = None,
        reset: int | None = None,
        used: int | None = None,
    ) -> None:
        async with self._lock:
            if remaining is not None:
                self.remaining = remaining
            if limit is not None:
                self.limit = limit
            if reset is not None:
                self.reset = reset
            if used is not None:
                self.used = used
            self.updates += 1

    async def update_from_response(self, response: httpx.Response) -> None:
        """Refresh from X-RateLimit-* headers; responses without them are ignored."""
        info = RateLimitInfo(response)
        if info.remaining_count is None and info.reset_timestamp is None:
            return
        await self.record(
            remaining=info.remaining_count,
            limit=info.limit_count,
            reset=info.reset_timestamp,
            used=info.used_count,
        )

    def snapshot(self) -> RateLimitSnapshot:
        return RateLimitSnapshot(
            remaining=self.remaining,
            limit=self.limit,
            reset=self.reset,
            used=self.used,
        )

    def seconds_until_reset(self) -> float:
        if self.reset is None:
            return 0.0
        return max(0.0, self.reset - self._clock())

    def has_budget(self, minimum: int) -> bool:
        """False only when the known remaining budget is below `minimum`."""
        if self.remaining is None:
            return True
        return self.remaining >= minimum
