"""Domain operations for the sync job ledger."""

import uuid as uuid_pkg
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.sync_job import SyncJob, SyncStatus


class SyncJobOperations:
    """
    Create and advance SyncJob rows.

    Updates are issued as UPDATE statements keyed by id so the orchestrator
    never depends on an ORM instance surviving a rollback.
    """

    def __init__(self) -> None:
        self.model = SyncJob

    async def create_in_progress(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
        full_sync: bool = False,
    ) -> SyncJob:
        """Create a job already in IN_PROGRESS; the PENDING state is never persisted."""
        job = SyncJob(
            user_id=user_id,
            status=SyncStatus.IN_PROGRESS.value,
            full_sync=full_sync,
            started_at=datetime.now(UTC),
        )
        db.add(job)
        await db.flush()
        await db.refresh(job)
        return job

    async def update_fields(
        self,
        db: AsyncSession,
        job_id: uuid_pkg.UUID,
        **values: Any,
    ) -> None:
        if not values:
            return
        if isinstance(values.get("status"), SyncStatus):
            values["status"] = values["status"].value
        stmt = update(SyncJob).where(SyncJob.id == job_id).values(**values)  # type: ignore[arg-type]
        await db.execute(stmt)

    async def get(self, db: AsyncSession, job_id: uuid_pkg.UUID) -> SyncJob | None:
        statement = select(SyncJob).where(SyncJob.id == job_id)
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    async def get_latest(self, db: AsyncSession, user_id: uuid_pkg.UUID) -> SyncJob | None:
        """Most recently started job for a user."""
        statement = (
            select(SyncJob)
            .where(SyncJob.user_id == user_id)
            .order_by(SyncJob.started_at.desc())  # type: ignore[attr-defined]
            .limit(1)
        )
        result = await db.execute(statement)
        return result.scalar_one_or_none()

    async def list_recent(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
        limit: int = 5,
    ) -> list[SyncJob]:
        statement = (
            select(SyncJob)
            .where(SyncJob.user_id == user_id)
            .order_by(SyncJob.started_at.desc())  # type: ignore[attr-defined]
            .limit(limit)
        )
        result = await db.execute(statement)
        return list(result.scalars().all())


sync_job_ops = SyncJobOperations()
