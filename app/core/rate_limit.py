"""In-process throttling for expensive per-user endpoints.

A manual sync can burn hundreds of GitHub requests, and an analytics
refresh re-reads every stored commit, so both are limited per user with
a sliding window.
"""

import time
import uuid as uuid_pkg
from collections import defaultdict
from dataclasses import dataclass
from typing import TypeAlias

from app.core.exceptions import TooManyRequestsError


@dataclass
class RateLimitConfig:
    """Configuration for rate limiting."""

    requests: int  # Maximum requests allowed
    window_seconds: int  # Time window in seconds


SYNC_TRIGGER_LIMIT = RateLimitConfig(requests=5, window_seconds=600)
ANALYTICS_REFRESH_LIMIT = RateLimitConfig(requests=20, window_seconds=60)


UserId: TypeAlias = uuid_pkg.UUID
Timestamp: TypeAlias = float


class RateLimiter:
    """Sliding-window limiter keyed by (user, endpoint).

    Single-process only: each API instance keeps its own windows.
    """

    def __init__(self, cleanup_interval: float = 300.0) -> None:
        self._requests: dict[UserId, dict[str, list[Timestamp]]] = defaultdict(
            lambda: defaultdict(list)
        )
        self._last_cleanup = time.time()
        self._cleanup_interval = cleanup_interval

    def _cleanup_expired(self, now: float, window_seconds: int) -> None:
        if now - self._last_cleanup < self._cleanup_interval:
            return

        cutoff = now - window_seconds
        for user_id in list(self._requests):
            endpoints = self._requests[user_id]
            for endpoint in list(endpoints):
                endpoints[endpoint] = [ts for ts in endpoints[endpoint] if ts > cutoff]
                if not endpoints[endpoint]:
                    del endpoints[endpoint]
            if not endpoints:
                del self._requests[user_id]

        self._last_cleanup = now

    def check_rate_limit(
        self,
        user_id: UserId,
        endpoint_key: str,
        config: RateLimitConfig,
    ) -> None:
        """Record a request, raising 429 if the window is already full."""
        now = time.time()
        cutoff = now - config.window_seconds

        self._cleanup_expired(now, config.window_seconds)

        recent = [ts for ts in self._requests[user_id][endpoint_key] if ts > cutoff]

        if len(recent) >= config.requests:
            retry_after = int(min(recent) + config.window_seconds - now) + 1
            raise TooManyRequestsError(
                f"Rate limit exceeded. Try again in {retry_after} seconds.",
                retry_after=retry_after,
            )

        recent.append(now)
        self._requests[user_id][endpoint_key] = recent

    def get_remaining(
        self,
        user_id: UserId,
        endpoint_key: str,
        config: RateLimitConfig,
    ) -> int:
        """Get remaining requests in current window."""
        cutoff = time.time() - config.window_seconds
        timestamps = self._requests.get(user_id, {}).get(endpoint_key, [])
        return max(0, config.requests - sum(1 for ts in timestamps if ts > cutoff))

    def reset(self) -> None:
        self._requests.clear()


rate_limiter = RateLimiter()
