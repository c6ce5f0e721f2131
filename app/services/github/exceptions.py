"""Exceptions for the GitHub client."""


class GitHubAPIError(Exception):
    """Error from GitHub API."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        rate_limit_reset: int | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.rate_limit_reset = rate_limit_reset  # Unix timestamp when rate limit resets
        super().__init__(message)


class CredentialError(GitHubAPIError):
    """Token missing, invalid, or revoked (HTTP 401)."""

    def __init__(self, message: str = "Invalid or expired GitHub token"):
        super().__init__(message, status_code=401)


class RateLimitError(GitHubAPIError):
    """Request budget exhausted, or throttled past the retry ceiling.

    `retry_after` is the number of seconds the caller should wait before
    trying again, when GitHub told us.
    """

    def __init__(
        self,
        message: str = "GitHub API rate limit exceeded",
        status_code: int | None = 403,
        rate_limit_reset: int | None = None,
        retry_after: int | None = None,
    ):
        self.retry_after = retry_after
        super().__init__(message, status_code=status_code, rate_limit_reset=rate_limit_reset)


class TransientFetchError(GitHubAPIError):
    """Network failure, timeout, or 5xx. Safe to retry on a later sync."""
