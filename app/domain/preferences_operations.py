import logging
import uuid as uuid_pkg
from typing import Any

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.encryption import token_encryption
from app.models.user_preferences import UserPreferences

logger = logging.getLogger(__name__)


class PreferencesOperations:
    """Operations for UserPreferences: linked token and sync defaults."""

    async def get_by_user_id(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
    ) -> UserPreferences | None:
        statement = select(UserPreferences).where(UserPreferences.user_id == user_id)
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    async def get_or_create(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
    ) -> UserPreferences:
        """Get existing preferences or create defaults."""
        prefs = await self.get_by_user_id(db, user_id)
        if prefs:
            return prefs

        prefs = UserPreferences(user_id=user_id)
        db.add(prefs)
        await db.flush()
        await db.refresh(prefs)
        return prefs

    async def update(
        self,
        db: AsyncSession,
        prefs: UserPreferences,
        obj_in: dict[str, Any],
    ) -> UserPreferences:
        """Apply a partial update.

        github_token is encrypted before storage; an explicit None or empty
        string unlinks it. Other None values are ignored.
        """
        for field, value in obj_in.items():
            if not hasattr(prefs, field):
                continue
            if field == "github_token":
                prefs.github_token = token_encryption.encrypt(value) if value else None
            elif value is not None:
                setattr(prefs, field, value)
        db.add(prefs)
        await db.flush()
        await db.refresh(prefs)
        return prefs

    def get_decrypted_token(self, prefs: UserPreferences | None) -> str | None:
        if prefs is None or not prefs.github_token:
            return None
        return token_encryption.decrypt(prefs.github_token)

    async def list_user_ids_with_token(self, db: AsyncSession) -> list[uuid_pkg.UUID]:
        """Users with a linked GitHub token, for scheduled syncs."""
        statement = select(UserPreferences.user_id).where(
            UserPreferences.github_token.is_not(None)  # type: ignore[union-attr]
        )
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def validate_github_token(self, token: str) -> dict[str, Any]:
        """
        Check a GitHub token against GET /user.

        Returns dict with:
        - 'valid': bool
        - 'username' / 'name': GitHub identity if valid
        - 'scopes': granted OAuth scopes (empty for fine-grained tokens)
        - 'has_repo_scope': True if private repositories are readable
        - 'scope_warning': present when scopes look insufficient
        - 'error': present when invalid
        """
        try:
            async with httpx.AsyncClient(base_url=settings.github_api_url) as client:
                response = await client.get(
                    "/user",
                    headers={
                        "Authorization": f"Bearer {token}",
                        "Accept": "application/vnd.github+json",
                    },
                    timeout=10.0,
                )
        except httpx.TimeoutException:
            return {"valid": False, "error": "GitHub API timeout"}
        except httpx.HTTPError as e:
            logger.warning(f"GitHub token validation request failed: {e}")
            return {"valid": False, "error": f"GitHub API unreachable: {e}"}

        if response.status_code == 401:
            return {"valid": False, "error": "Invalid or expired token"}
        if response.status_code != 200:
            return {"valid": False, "error": f"GitHub API error: {response.status_code}"}

        data = response.json()
        scopes_header = response.headers.get("X-OAuth-Scopes", "")
        scopes = [s.strip() for s in scopes_header.split(",") if s.strip()]
        has_repo_scope = "repo" in scopes

        result: dict[str, Any] = {
            "valid": True,
            "username": data.get("login"),
            "name": data.get("name"),
            "scopes": scopes,
            "has_repo_scope": has_repo_scope,
        }
        if not has_repo_scope:
            if "public_repo" in scopes:
                result["scope_warning"] = (
                    "Token only has 'public_repo' scope. "
                    "Private repository history will not be synced."
                )
            elif not scopes:
                result["scope_warning"] = (
                    "Token scopes could not be determined. "
                    "Fine-grained tokens need read access to contents and metadata."
                )
        return result


preferences_ops = PreferencesOperations()
