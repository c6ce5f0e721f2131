"""Domain operations for synced commits.

Commits are append-only: inserts ignore duplicates on (repository_id, sha),
and the only update is a statistics backfill.
"""

import uuid as uuid_pkg
from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.commit import Commit
from app.models.repository import Repository


class CommitOperations:
    """
    Operations for Commit rows.

    Not a BaseOperations subclass: commits are scoped through their
    repository rather than carrying a user_id.
    """

    def __init__(self) -> None:
        self.model = Commit

    async def insert_ignoring_duplicates(
        self,
        db: AsyncSession,
        repository_id: uuid_pkg.UUID,
        rows: list[dict[str, Any]],
    ) -> set[str]:
        """
        Insert commits for one repository, skipping existing SHAs.

        Returns:
            SHAs of the newly inserted rows. Rows that hit the unique
            constraint are left out.
        """
        if not rows:
            return set()

        stmt = (
            insert(self.model)
            .values([{**row, "repository_id": repository_id} for row in rows])
            .on_conflict_do_nothing(index_elements=["repository_id", "sha"])
            .returning(Commit.sha)
        )
        result = await db.execute(stmt)
        inserted = {row[0] for row in result.all()}
        await db.flush()
        return inserted

    async def update_stats(
        self,
        db: AsyncSession,
        repository_id: uuid_pkg.UUID,
        sha: str,
        stats: dict[str, int],
    ) -> bool:
        """Backfill line statistics for an already stored commit."""
        stmt = (
            update(Commit)
            .where(Commit.repository_id == repository_id, Commit.sha == sha)  # type: ignore[arg-type]
            .values(
                additions=stats.get("additions", 0),
                deletions=stats.get("deletions", 0),
                files_changed=stats.get("files_changed", 0),
                stats_enriched=True,
            )
        )
        result = await db.execute(stmt)
        return (result.rowcount or 0) > 0  # type: ignore[attr-defined]

    async def list_for_user_analysis(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
    ) -> list[Commit]:
        """All commits across the user's repositories, oldest first."""
        statement = (
            select(Commit)
            .join(Repository, Commit.repository_id == Repository.id)
            .where(Repository.user_id == user_id)
            .order_by(Commit.authored_at.asc())  # type: ignore[attr-defined]
        )
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def count_by_user(self, db: AsyncSession, user_id: uuid_pkg.UUID) -> int:
        statement = (
            select(func.count(Commit.id))
            .join(Repository, Commit.repository_id == Repository.id)
            .where(Repository.user_id == user_id)
        )
        result = await db.execute(statement)
        return result.scalar() or 0

    async def get_date_range(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
    ) -> tuple[datetime | None, datetime | None]:
        """(oldest, newest) authored_at across the user's commits."""
        statement = (
            select(func.min(Commit.authored_at), func.max(Commit.authored_at))
            .join(Repository, Commit.repository_id == Repository.id)
            .where(Repository.user_id == user_id)
        )
        result = await db.execute(statement)
        oldest, newest = result.one()
        return oldest, newest

    async def list_recent_for_repository(
        self,
        db: AsyncSession,
        repository_id: uuid_pkg.UUID,
        limit: int = 100,
    ) -> list[Commit]:
        statement = (
            select(Commit)
            .where(Commit.repository_id == repository_id)
            .order_by(Commit.authored_at.desc())  # type: ignore[attr-defined]
            .limit(limit)
        )
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def list_dates_since(
        self,
        db: AsyncSession,
        repository_id: uuid_pkg.UUID,
        since: datetime,
    ) -> list[datetime]:
        statement = (
            select(Commit.authored_at)
            .where(Commit.repository_id == repository_id, Commit.authored_at >= since)  # type: ignore[arg-type]
            .order_by(Commit.authored_at.asc())  # type: ignore[attr-defined]
        )
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def list_user_dates_since(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
        since: datetime,
    ) -> list[datetime]:
        """authored_at of every commit since `since` across the user's repositories."""
        statement = (
            select(Commit.authored_at)
            .join(Repository, Commit.repository_id == Repository.id)
            .where(Repository.user_id == user_id, Commit.authored_at >= since)  # type: ignore[arg-type]
        )
        result = await db.execute(statement)
        return list(result.scalars().all())

    async def list_recent_messages(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
        limit: int = 10,
    ) -> list[str]:
        """Subject lines of the newest non-merge commits, truncated to 100 chars."""
        statement = (
            select(Commit.message)
            .join(Repository, Commit.repository_id == Repository.id)
            .where(
                Repository.user_id == user_id,
                Commit.message.not_like("Merge pull request%"),  # type: ignore[attr-defined]
                Commit.message.not_like("Merge branch%"),  # type: ignore[attr-defined]
                Commit.message.not_like("Merge remote-tracking%"),  # type: ignore[attr-defined]
            )
            .order_by(Commit.authored_at.desc())  # type: ignore[attr-defined]
            .limit(limit)
        )
        result = await db.execute(statement)

        messages = []
        for message in result.scalars().all():
            subject = message.split("\n", 1)[0]
            messages.append(subject[:100] + "..." if len(subject) > 100 else subject)
        return messages


commit_ops = CommitOperations()
