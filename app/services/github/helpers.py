"""
GitHub API helper utilities.

Rate limit header parsing, throttle classification and status-code to
exception mapping shared by every read operation.
"""

import logging
from enum import Enum

import httpx

from app.services.github.exceptions import (
    CredentialError,
    GitHubAPIError,
    RateLimitError,
    TransientFetchError,
)

logger = logging.getLogger(__name__)

SECONDARY_LIMIT_MARKERS = ("secondary rate limit", "abuse detection")


def _int_header(response: httpx.Response, name: str) -> int | None:
    value = response.headers.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


class RateLimitInfo:
    """Rate limit information from GitHub API response headers."""

    def __init__(self, response: httpx.Response) -> None:
        self.remaining_count = _int_header(response, "X-RateLimit-Remaining")
        self.limit_count = _int_header(response, "X-RateLimit-Limit")
        self.reset_timestamp = _int_header(response, "X-RateLimit-Reset")
        self.used_count = _int_header(response, "X-RateLimit-Used")
        self.retry_after = _int_header(response, "Retry-After")

    @property
    def is_exhausted(self) -> bool:
        return self.remaining_count == 0


class ThrottleKind(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    NONE = "none"


def classify_throttle(response: httpx.Response) -> ThrottleKind:
    """
    Decide whether a 403/429 is a rate limit, and which kind.

    Primary: the hourly budget is spent (remaining == 0).
    Secondary: abuse detection, signalled by Retry-After or the error body.
    """
    if response.status_code not in (403, 429):
        return ThrottleKind.NONE

    info = RateLimitInfo(response)
    if info.is_exhausted:
        return ThrottleKind.PRIMARY

    if info.retry_after is not None:
        return ThrottleKind.SECONDARY
    body = response.text.lower()
    if any(marker in body for marker in SECONDARY_LIMIT_MARKERS):
        return ThrottleKind.SECONDARY
    if response.status_code == 429:
        return ThrottleKind.SECONDARY
    return ThrottleKind.NONE


def handle_error_response(response: httpx.Response, context: str) -> None:
    """
    Raise the matching exception for a non-success response.

    Args:
        response: The HTTP response from GitHub API
        context: Resource description for error messages ("owner/repo")

    Raises:
        CredentialError: 401
        RateLimitError: 403/429 with an exhausted or throttled budget
        TransientFetchError: 5xx
        GitHubAPIError: any other non-2xx
    """
    status = response.status_code
    if 200 <= status < 300:
        return

    rate_info = RateLimitInfo(response)

    if status == 401:
        raise CredentialError()
    if status in (403, 429) and classify_throttle(response) is not ThrottleKind.NONE:
        raise RateLimitError(
            status_code=status,
            rate_limit_reset=rate_info.reset_timestamp,
            retry_after=rate_info.retry_after,
        )
    if status == 403:
        raise GitHubAPIError(f"GitHub API forbidden: {context}", 403)
    if status == 404:
        raise GitHubAPIError(f"Repository or resource not found: {context}", 404)
    if status == 409:
        # Empty repositories answer 409 on /commits
        raise GitHubAPIError(f"Repository is empty: {context}", 409)
    if status >= 500:
        raise TransientFetchError(f"GitHub server error {status}: {context}", status)
    raise GitHubAPIError(f"GitHub API error: {status}", status)
