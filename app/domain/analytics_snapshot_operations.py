"""Domain operations for the per-user analytics cache."""

import uuid as uuid_pkg
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.analytics_snapshot import AnalyticsSnapshot


class AnalyticsSnapshotOperations:
    """Read and overwrite the single snapshot row each user has."""

    def __init__(self) -> None:
        self.model = AnalyticsSnapshot

    async def get_by_user(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
    ) -> AnalyticsSnapshot | None:
        statement = select(AnalyticsSnapshot).where(AnalyticsSnapshot.user_id == user_id)
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    async def upsert(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
        values: dict[str, Any],
    ) -> AnalyticsSnapshot:
        """Overwrite the user's snapshot with freshly computed values.

        Args:
            db: Database session
            user_id: Snapshot owner
            values: Column values; keys must be AnalyticsSnapshot fields

        Returns:
            The stored snapshot row.
        """
        now = datetime.now(UTC)
        row = {**values, "user_id": user_id, "calculated_at": values.get("calculated_at", now)}

        stmt = insert(AnalyticsSnapshot).values(row)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id"],
            set_={**{key: stmt.excluded[key] for key in row if key != "user_id"}, "updated_at": now},
        ).returning(AnalyticsSnapshot)

        result = await db.execute(stmt.execution_options(populate_existing=True))
        snapshot = result.scalar_one()
        await db.flush()
        return snapshot

    async def has_data(self, db: AsyncSession, user_id: uuid_pkg.UUID) -> bool:
        """True when a snapshot exists and counted at least one commit."""
        statement = select(AnalyticsSnapshot.total_commits).where(
            AnalyticsSnapshot.user_id == user_id
        )
        result = await db.execute(statement)
        total = result.scalar_one_or_none()
        return bool(total and total > 0)

    async def get_quick_stats(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
    ) -> dict[str, Any] | None:
        """Headline numbers for dashboard cards, without the JSON columns."""
        statement = select(
            AnalyticsSnapshot.total_commits,
            AnalyticsSnapshot.total_repos,
            AnalyticsSnapshot.current_streak,
            AnalyticsSnapshot.longest_streak,
            AnalyticsSnapshot.total_stars,
            AnalyticsSnapshot.is_active_today,
            AnalyticsSnapshot.last_commit_date,
            AnalyticsSnapshot.calculated_at,
        ).where(AnalyticsSnapshot.user_id == user_id)
        result = await db.execute(statement)
        row = result.one_or_none()
        if row is None:
            return None
        return {
            "total_commits": row.total_commits,
            "total_repos": row.total_repos,
            "current_streak": row.current_streak,
            "longest_streak": row.longest_streak,
            "total_stars": row.total_stars,
            "is_active_today": row.is_active_today,
            "last_commit_date": row.last_commit_date,
            "calculated_at": row.calculated_at,
        }


analytics_snapshot_ops = AnalyticsSnapshotOperations()
