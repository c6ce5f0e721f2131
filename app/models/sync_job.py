"""SyncJob model: the append-only ledger of synchronization runs."""

import uuid as uuid_pkg
from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import DateTime, Index
from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, UUIDMixin


class SyncStatus(str, Enum):
    """Lifecycle of a sync run: PENDING -> IN_PROGRESS -> COMPLETED | FAILED."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class SyncJob(UUIDMixin, TimestampMixin, SQLModel, table=True):
    """One synchronization run for one user.

    Mutated only by the orchestrator and never deleted. Holds counts, not
    references to the commits it produced.
    """

    __tablename__ = "sync_jobs"
    __table_args__ = (Index("ix_sync_jobs_user_started", "user_id", "started_at"),)

    user_id: uuid_pkg.UUID = Field(
        foreign_key="users.id",
        ondelete="CASCADE",
        nullable=False,
        index=True,
    )

    status: str = Field(
        default=SyncStatus.PENDING.value,
        max_length=20,
        index=True,
    )
    full_sync: bool = Field(default=False)

    total_repos: int = Field(default=0)
    processed_repos: int = Field(default=0)
    commits_inserted: int = Field(default=0)
    commits_skipped: int = Field(default=0)
    error_count: int = Field(default=0)
    error_message: str | None = Field(default=None, max_length=2000)

    started_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=lambda: datetime.now(UTC),
        nullable=False,
        sa_type=DateTime(timezone=True),
    )
    completed_at: datetime | None = Field(  # type: ignore[call-overload]
        default=None,
        sa_type=DateTime(timezone=True),
    )
