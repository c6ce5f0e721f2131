"""Root conftest: test infrastructure for all backend tests.

Provides:
- Autouse reset of process-local state (GitHub caches, rate limiter, JWKS)
- A mocked AsyncSession for unit tests
- API client with dependency overrides (no database, no JWT)
- Autouse guard that keeps real GitHub traffic out of unit tests
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from tests.helpers.mock_factories import make_mock_user

# ─────────────────────────────────────────────────────────────────────────────
# Process-local State
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def reset_in_memory_state():
    """Clear caches and throttling windows shared across tests."""
    from app.api.deps import auth
    from app.core.rate_limit import rate_limiter
    from app.services.github.cache import clear_all_caches

    clear_all_caches()
    rate_limiter.reset()
    auth._jwks_cache.clear()
    yield
    clear_all_caches()
    rate_limiter.reset()


@pytest.fixture(autouse=True)
def block_github_network():
    """SAFETY: unit and API tests never reach api.github.com.

    Tests that exercise the HTTP client patch `get_github_client` themselves;
    anything else that slips through gets a client that raises.
    """

    def _refuse(*_args, **_kwargs):
        raise AssertionError("Unexpected GitHub API call in tests")

    guard = MagicMock()
    guard.get = AsyncMock(side_effect=_refuse)
    guard.is_closed = False
    with patch("app.services.github.http_client._client", guard):
        yield guard


# ─────────────────────────────────────────────────────────────────────────────
# Database
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def mock_db():
    """AsyncSession stand-in; configure `execute` per test."""
    db = MagicMock()
    db.execute = AsyncMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.close = AsyncMock()
    db.add = MagicMock()
    return db


# ─────────────────────────────────────────────────────────────────────────────
# API Client
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def test_user():
    return make_mock_user(
        id=uuid.uuid4(),
        email=f"__test_{uuid.uuid4().hex[:8]}@example.com",
        created_at=datetime.now(UTC),
    )


@pytest.fixture
async def api_client(mock_db, test_user):
    """HTTP client that bypasses JWT auth and uses the mocked session.

    Overrides: get_current_user, get_db
    """
    from app.api.deps.auth import get_current_user
    from app.core.database import get_db
    from app.main import app

    app.dependency_overrides[get_current_user] = lambda: test_user

    async def override_db():
        yield mock_db

    app.dependency_overrides[get_db] = override_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
