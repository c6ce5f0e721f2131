"""
Shared HTTP client for GitHub API operations.

One pooled AsyncClient serves every GitHubReadOperations instance; auth
headers are passed per request so tokens never live on the client.
"""

import logging

import httpx

from app.config import settings

logger = logging.getLogger(__name__)

_client: httpx.AsyncClient | None = None


def get_github_client() -> httpx.AsyncClient:
    """Get or create the shared HTTP client for GitHub API calls."""
    global _client
    if _client is None or _client.is_closed:
        _client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.github_request_timeout_seconds, connect=5.0),
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
            http2=True,
        )
        logger.debug("Created new GitHub HTTP client with connection pooling")
    return _client


async def close_github_client() -> None:
    """Close the shared client. Called from the app lifespan on shutdown."""
    global _client
    if _client is not None and not _client.is_closed:
        await _client.aclose()
        _client = None
        logger.debug("Closed GitHub HTTP client")
