"""Authorization boundary tests: every user-scoped endpoint requires a JWT."""

from __future__ import annotations

import uuid

import pytest
from httpx import AsyncClient

from tests.helpers.auth_assertions import assert_public, assert_requires_auth

REPO_ID = uuid.uuid4()


class TestEndpointsRequireAuth:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method,url,body",
        [
            ("post", "/api/v1/sync", {"full_sync": False}),
            ("delete", "/api/v1/sync", None),
            ("get", "/api/v1/sync/status", None),
            ("get", "/api/v1/sync/jobs", None),
            ("get", "/api/v1/analytics", None),
            ("head", "/api/v1/analytics", None),
            ("post", "/api/v1/analytics/refresh", None),
            ("get", "/api/v1/analytics/quick-stats", None),
            ("get", "/api/v1/analytics/comparison", None),
            ("get", "/api/v1/analytics/weekly-summary", None),
            ("get", "/api/v1/analytics/insights-summary", None),
            ("get", "/api/v1/repositories", None),
            ("get", f"/api/v1/repositories/{REPO_ID}", None),
            ("get", "/api/v1/github/rate-limit", None),
            ("get", "/api/v1/users/me/preferences", None),
            ("patch", "/api/v1/users/me/preferences", {"include_forks": True}),
        ],
    )
    async def test_unauth_returns_401(
        self, unauth_client: AsyncClient, method: str, url: str, body
    ):
        kwargs = {"json": body} if body else {}
        await assert_requires_auth(unauth_client, method, url, **kwargs)

    @pytest.mark.asyncio
    async def test_health_is_public(self, unauth_client: AsyncClient):
        await assert_public(unauth_client, "get", "/health")
