"""API test fixtures — auth variant clients.

Builds on root conftest fixtures (mock_db, test_user, api_client).
"""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient


@pytest.fixture
async def unauth_client(mock_db):
    """HTTP client with no Authorization header and the mocked session."""
    from app.core.database import get_db
    from app.main import app

    async def override_db():
        yield mock_db

    app.dependency_overrides[get_db] = override_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
