"""
GitHub client package.

Module structure:
- read_operations.py: paginated, rate-limit aware read operations
- rate_limit.py: shared request-budget state
- helpers.py: header parsing and error mapping
- http_client.py: pooled AsyncClient lifecycle
- cache.py: TTL caches for slow-changing reads
- types.py: data types
- exceptions.py: client exceptions
- constants.py: API constants and language colors
"""

from app.services.github.cache import clear_all_caches as clear_github_caches
from app.services.github.cache import get_cache_stats as get_github_cache_stats
from app.services.github.constants import GITHUB_LANGUAGE_COLORS, get_language_color
from app.services.github.exceptions import (
    CredentialError,
    GitHubAPIError,
    RateLimitError,
    TransientFetchError,
)
from app.services.github.http_client import close_github_client
from app.services.github.rate_limit import RateLimitState
from app.services.github.read_operations import GitHubReadOperations
from app.services.github.types import (
    CommitStatistics,
    ContributorInfo,
    FetchedCommit,
    GitHubRepo,
    LanguageStat,
    RateLimitSnapshot,
    RepositoryFilters,
    SyncMetrics,
)

__all__ = [
    "GitHubReadOperations",
    "RateLimitState",
    "close_github_client",
    "clear_github_caches",
    "get_github_cache_stats",
    "CredentialError",
    "GitHubAPIError",
    "RateLimitError",
    "TransientFetchError",
    "CommitStatistics",
    "ContributorInfo",
    "FetchedCommit",
    "GitHubRepo",
    "LanguageStat",
    "RateLimitSnapshot",
    "RepositoryFilters",
    "SyncMetrics",
    "GITHUB_LANGUAGE_COLORS",
    "get_language_color",
]
