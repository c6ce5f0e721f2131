import uuid as uuid_pkg
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User


class UserOperations:
    """Operations for User rows mirrored from the auth provider."""

    async def get(self, db: AsyncSession, user_id: uuid_pkg.UUID) -> User | None:
        statement = select(User).where(User.id == user_id)
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    async def get_or_create_from_claims(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
        claims: dict[str, Any],
    ) -> User:
        """Return the user, creating it from verified JWT claims on first sight."""
        user = await self.get(db, user_id)
        if user:
            return user

        app_metadata = claims.get("app_metadata", {})
        user_metadata = claims.get("user_metadata", {})
        user = User(
            id=user_id,
            email=claims.get("email"),
            display_name=user_metadata.get("full_name"),
            github_username=user_metadata.get("user_name"),
            avatar_url=user_metadata.get("avatar_url"),
            auth_provider=app_metadata.get("provider", "email"),
        )
        db.add(user)
        await db.flush()
        await db.refresh(user)
        return user


user_ops = UserOperations()
