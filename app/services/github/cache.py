"""
TTL caching for GitHub API responses.

Language breakdowns and contributor lists change rarely and are read by
repository detail pages, so both are cached in memory for an hour.
Commit listings are never cached: sync correctness depends on them.
"""

import hashlib
import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from cachetools import TTLCache  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

languages_cache: TTLCache[str, Any] = TTLCache(maxsize=500, ttl=3600)
contributors_cache: TTLCache[str, Any] = TTLCache(maxsize=200, ttl=3600)


def _make_cache_key(func_name: str, args: tuple[Any, ...], kwargs: dict[str, Any]) -> str:
    """Key on function name plus arguments, skipping the bound instance."""
    cache_args = args[1:] if args else ()
    key_data = f"{func_name}:{cache_args}:{sorted(kwargs.items())}"
    return hashlib.md5(key_data.encode()).hexdigest()


def cached_github_call(
    cache: TTLCache[str, Any],
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """
    Decorator for caching async GitHub reads.

    Usage:
        @cached_github_call(languages_cache)
        async def get_repo_languages(self, owner: str, repo: str) -> list[LanguageStat]:
            ...

    Exceptions are not cached.
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            key = _make_cache_key(func.__name__, args, kwargs)

            if key in cache:
                logger.debug(f"Cache HIT: {func.__name__}")
                cached_result: T = cache[key]
                return cached_result

            logger.debug(f"Cache MISS: {func.__name__}")
            result = await func(*args, **kwargs)
            cache[key] = result
            return result

        return wrapper

    return decorator


def clear_all_caches() -> None:
    languages_cache.clear()
    contributors_cache.clear()
    logger.debug("Cleared all GitHub caches")


def get_cache_stats() -> dict[str, dict[str, int]]:
    return {
        "languages": {"size": len(languages_cache), "maxsize": languages_cache.maxsize},
        "contributors": {
            "size": len(contributors_cache),
            "maxsize": contributors_cache.maxsize,
        },
    }
