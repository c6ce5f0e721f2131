"""Unit tests for GitHub HTTP client and helpers.

Tests the shared HTTP client singleton, rate limit header parsing,
throttle classification, error response mapping and the shared
request-budget state.
"""

from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest

from app.services.github.cache import (
    clear_all_caches,
    get_cache_stats,
    languages_cache,
)
from app.services.github.exceptions import (
    CredentialError,
    GitHubAPIError,
    RateLimitError,
    TransientFetchError,
)
from app.services.github.helpers import (
    RateLimitInfo,
    ThrottleKind,
    classify_throttle,
    handle_error_response,
)
from app.services.github.http_client import close_github_client, get_github_client
from app.services.github.rate_limit import RateLimitState


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_response(
    status_code: int = 200,
    json_data: object = None,
    headers: dict[str, str] | None = None,
) -> httpx.Response:
    """Build a fake httpx.Response."""
    return httpx.Response(
        status_code=status_code,
        json=json_data,
        headers=headers or {},
    )


# ═══════════════════════════════════════════════════════════════════════════
# RateLimitInfo
# ═══════════════════════════════════════════════════════════════════════════


class TestRateLimitInfo:
    """Tests for rate limit header parsing."""

    def test_extracts_all_headers(self):
        resp = _make_response(
            headers={
                "X-RateLimit-Remaining": "42",
                "X-RateLimit-Limit": "5000",
                "X-RateLimit-Reset": "1700000000",
                "X-RateLimit-Used": "4958",
            }
        )
        info = RateLimitInfo(resp)

        assert info.remaining_count == 42
        assert info.limit_count == 5000
        assert info.reset_timestamp == 1700000000
        assert info.used_count == 4958
        assert info.is_exhausted is False

    def test_detects_exhausted(self):
        resp = _make_response(headers={"X-RateLimit-Remaining": "0"})
        assert RateLimitInfo(resp).is_exhausted is True

    def test_missing_headers(self):
        info = RateLimitInfo(_make_response(headers={}))

        assert info.remaining_count is None
        assert info.reset_timestamp is None
        assert info.retry_after is None
        assert info.is_exhausted is False

    def test_malformed_header_is_ignored(self):
        info = RateLimitInfo(_make_response(headers={"X-RateLimit-Remaining": "lots"}))
        assert info.remaining_count is None


# ═══════════════════════════════════════════════════════════════════════════
# classify_throttle
# ═══════════════════════════════════════════════════════════════════════════


class TestClassifyThrottle:
    """Tests for telling primary and secondary limits apart."""

    def test_success_is_not_throttled(self):
        assert classify_throttle(_make_response(200, [])) is ThrottleKind.NONE

    def test_exhausted_budget_is_primary(self):
        resp = _make_response(
            403, {"message": "API rate limit exceeded"}, {"X-RateLimit-Remaining": "0"}
        )
        assert classify_throttle(resp) is ThrottleKind.PRIMARY

    def test_retry_after_is_secondary(self):
        resp = _make_response(403, {"message": "slow down"}, {"Retry-After": "30"})
        assert classify_throttle(resp) is ThrottleKind.SECONDARY

    def test_secondary_message_in_body(self):
        resp = _make_response(
            403,
            {"message": "You have exceeded a secondary rate limit."},
            {"X-RateLimit-Remaining": "4000"},
        )
        assert classify_throttle(resp) is ThrottleKind.SECONDARY

    def test_plain_403_is_not_throttled(self):
        resp = _make_response(
            403, {"message": "Resource not accessible"}, {"X-RateLimit-Remaining": "4000"}
        )
        assert classify_throttle(resp) is ThrottleKind.NONE

    def test_bare_429_is_secondary(self):
        assert classify_throttle(_make_response(429, {})) is ThrottleKind.SECONDARY


# ═══════════════════════════════════════════════════════════════════════════
# handle_error_response
# ═══════════════════════════════════════════════════════════════════════════


class TestHandleErrorResponse:
    """Tests for status code to exception mapping."""

    def test_success_does_not_raise(self):
        handle_error_response(_make_response(200, {}), "owner/repo")

    def test_401_raises_credential_error(self):
        with pytest.raises(CredentialError) as exc_info:
            handle_error_response(_make_response(401, {}), "owner/repo")
        assert exc_info.value.status_code == 401

    def test_exhausted_403_raises_rate_limit_error(self):
        resp = _make_response(
            403,
            {},
            {"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "1700000000"},
        )
        with pytest.raises(RateLimitError) as exc_info:
            handle_error_response(resp, "owner/repo")
        assert exc_info.value.rate_limit_reset == 1700000000

    def test_plain_403_raises_forbidden(self):
        with pytest.raises(GitHubAPIError) as exc_info:
            handle_error_response(_make_response(403, {"message": "nope"}), "owner/repo")
        assert exc_info.value.status_code == 403
        assert not isinstance(exc_info.value, RateLimitError)

    def test_404_raises_not_found(self):
        with pytest.raises(GitHubAPIError) as exc_info:
            handle_error_response(_make_response(404, {}), "owner/repo")
        assert exc_info.value.status_code == 404
        assert "owner/repo" in exc_info.value.message

    def test_409_marks_empty_repository(self):
        with pytest.raises(GitHubAPIError) as exc_info:
            handle_error_response(_make_response(409, {}), "owner/repo")
        assert exc_info.value.status_code == 409

    def test_5xx_is_transient(self):
        with pytest.raises(TransientFetchError) as exc_info:
            handle_error_response(_make_response(502, {}), "owner/repo")
        assert exc_info.value.status_code == 502

    def test_other_status_raises_generic(self):
        with pytest.raises(GitHubAPIError) as exc_info:
            handle_error_response(_make_response(422, {}), "owner/repo")
        assert exc_info.value.status_code == 422


# ═══════════════════════════════════════════════════════════════════════════
# RateLimitState
# ═══════════════════════════════════════════════════════════════════════════


class TestRateLimitState:
    """Tests for the shared request budget."""

    @pytest.mark.asyncio
    async def test_update_from_response_records_headers(self):
        state = RateLimitState()
        resp = _make_response(
            headers={
                "X-RateLimit-Remaining": "4999",
                "X-RateLimit-Limit": "5000",
                "X-RateLimit-Reset": "1700000000",
            }
        )

        await state.update_from_response(resp)

        snapshot = state.snapshot()
        assert snapshot.remaining == 4999
        assert snapshot.limit == 5000
        assert snapshot.reset == 1700000000
        assert state.updates == 1

    @pytest.mark.asyncio
    async def test_response_without_headers_is_ignored(self):
        state = RateLimitState()
        await state.record(remaining=10)

        await state.update_from_response(_make_response(headers={}))

        assert state.remaining == 10
        assert state.updates == 1

    def test_unknown_budget_counts_as_available(self):
        assert RateLimitState().has_budget(50) is True

    @pytest.mark.asyncio
    async def test_has_budget_compares_remaining(self):
        state = RateLimitState()
        await state.record(remaining=49)
        assert state.has_budget(50) is False
        await state.record(remaining=50)
        assert state.has_budget(50) is True

    @pytest.mark.asyncio
    async def test_seconds_until_reset_uses_clock(self):
        state = RateLimitState(clock=lambda: 1000.0)
        await state.record(remaining=0, reset=1030)

        assert state.seconds_until_reset() == 30.0

    @pytest.mark.asyncio
    async def test_seconds_until_reset_never_negative(self):
        state = RateLimitState(clock=lambda: 2000.0)
        await state.record(remaining=0, reset=1030)

        assert state.seconds_until_reset() == 0.0


# ═══════════════════════════════════════════════════════════════════════════
# Cache
# ═══════════════════════════════════════════════════════════════════════════


class TestCache:
    """Tests for TTL cache bookkeeping."""

    def test_clear_all_caches_empties_everything(self):
        languages_cache["some-key"] = ["value"]
        assert get_cache_stats()["languages"]["size"] == 1

        clear_all_caches()

        stats = get_cache_stats()
        assert stats["languages"]["size"] == 0
        assert stats["contributors"]["size"] == 0


# ═══════════════════════════════════════════════════════════════════════════
# Shared HTTP client
# ═══════════════════════════════════════════════════════════════════════════


class TestSharedClient:
    """Tests for the pooled AsyncClient lifecycle."""

    @pytest.mark.asyncio
    async def test_returns_same_instance_until_closed(self):
        with patch("app.services.github.http_client._client", None):
            first = get_github_client()
            second = get_github_client()
            assert first is second

            await close_github_client()
            assert first.is_closed

            third = get_github_client()
            assert third is not first
            await close_github_client()

    @pytest.mark.asyncio
    async def test_close_without_client_is_noop(self):
        with patch("app.services.github.http_client._client", None):
            await close_github_client()
