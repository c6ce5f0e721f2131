"""Repository operations for synced GitHub repositories.

Rows are keyed by the numeric GitHub id and upserted on every sync;
nothing here deletes a repository.
"""

import uuid as uuid_pkg
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.base_operations import BaseOperations
from app.models.commit import Commit
from app.models.repository import Repository

UPSERT_COLUMNS = (
    "owner",
    "name",
    "full_name",
    "description",
    "url",
    "default_branch",
    "language",
    "is_private",
    "is_fork",
    "is_archived",
    "stars_count",
    "forks_count",
)


class RepositoryOperations(BaseOperations[Repository]):
    """Queries and upserts for Repository rows."""

    def __init__(self) -> None:
        super().__init__(Repository)

    async def upsert_many(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
        repos: list[dict[str, Any]],
    ) -> dict[int, uuid_pkg.UUID]:
        """
        Insert or refresh repository metadata.

        Args:
            db: Database session
            user_id: Owner of the rows
            repos: Dicts with `github_id` plus the metadata columns

        Returns:
            Mapping of github_id -> repository row id.
        """
        if not repos:
            return {}

        now = datetime.now(UTC)
        values = [
            {
                "user_id": user_id,
                "github_id": repo["github_id"],
                "last_synced_at": now,
                **{col: repo.get(col) for col in UPSERT_COLUMNS if col in repo},
            }
            for repo in repos
        ]

        stmt = insert(Repository).values(values)
        update_cols = {col: stmt.excluded[col] for col in UPSERT_COLUMNS}
        stmt = stmt.on_conflict_do_update(
            index_elements=["github_id"],
            set_={**update_cols, "last_synced_at": now, "updated_at": now},
        ).returning(Repository.github_id, Repository.id)

        result = await db.execute(stmt)
        await db.flush()
        return {github_id: repo_id for github_id, repo_id in result.all()}

    async def list_by_user(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
    ) -> list[Repository]:
        """All repositories for a user, most recently synced first."""
        statement = (
            select(Repository)
            .where(Repository.user_id == user_id)
            .order_by(Repository.last_synced_at.desc().nulls_last(), Repository.name)  # type: ignore[union-attr]
        )
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def get_for_user(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
        repository_id: uuid_pkg.UUID,
    ) -> Repository | None:
        return await self.get_by_user(db, user_id=user_id, id=repository_id)

    async def get_last_commit_date(
        self,
        db: AsyncSession,
        repository_id: uuid_pkg.UUID,
    ) -> datetime | None:
        """Latest authored_at stored for a repository (the incremental boundary)."""
        statement = select(func.max(Commit.authored_at)).where(
            Commit.repository_id == repository_id
        )
        result = await db.execute(statement)
        return result.scalar()

    async def get_commit_count(
        self,
        db: AsyncSession,
        repository_id: uuid_pkg.UUID,
    ) -> int:
        statement = select(func.count(Commit.id)).where(Commit.repository_id == repository_id)
        result = await db.execute(statement)
        return result.scalar() or 0

    async def count_by_user(self, db: AsyncSession, user_id: uuid_pkg.UUID) -> int:
        statement = select(func.count(Repository.id)).where(Repository.user_id == user_id)
        result = await db.execute(statement)
        return result.scalar() or 0

    async def list_with_commit_counts(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
    ) -> list[dict[str, Any]]:
        """Repositories with their stored commit counts, busiest first."""
        commit_count = func.count(Commit.id).label("commit_count")
        statement = (
            select(Repository.id, Repository.full_name, Repository.last_synced_at, commit_count)
            .outerjoin(Commit, Commit.repository_id == Repository.id)
            .where(Repository.user_id == user_id)
            .group_by(Repository.id)
            .order_by(commit_count.desc())
        )
        result = await db.execute(statement)
        return [
            {
                "id": row.id,
                "full_name": row.full_name,
                "last_synced_at": row.last_synced_at,
                "commit_count": row.commit_count,
            }
            for row in result.all()
        ]


repository_ops = RepositoryOperations()
