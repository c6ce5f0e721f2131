"""Commit model for synced GitHub history."""

import uuid as uuid_pkg
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Column, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlmodel import Field, Relationship, SQLModel

from app.models.base import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.repository import Repository


class Commit(UUIDMixin, TimestampMixin, SQLModel, table=True):
    """
    One commit in a synced repository.

    Commits are append-only. (repository_id, sha) is the identity and the
    conflict target for idempotent inserts; the only later mutation is a
    statistics backfill.
    """

    __tablename__ = "commits"
    __table_args__ = (
        UniqueConstraint("repository_id", "sha", name="uq_commits_repository_sha"),
        Index("ix_commits_repository_authored_at", "repository_id", "authored_at"),
    )

    repository_id: uuid_pkg.UUID = Field(
        sa_column=Column(
            PG_UUID(as_uuid=True),
            ForeignKey("repositories.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )

    sha: str = Field(max_length=40, nullable=False, description="Full 40-character git SHA")
    message: str = Field(nullable=False)
    url: str | None = Field(default=None, max_length=500)

    author_name: str = Field(default="Unknown", max_length=255)
    author_email: str = Field(default="unknown@example.com", max_length=255)
    authored_at: datetime = Field(  # type: ignore[call-overload]
        sa_type=DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    committer_name: str | None = Field(default=None, max_length=255)
    committer_email: str | None = Field(default=None, max_length=255)
    committed_at: datetime | None = Field(  # type: ignore[call-overload]
        default=None,
        sa_type=DateTime(timezone=True),
    )

    # Line statistics; zero with stats_enriched=False when not sampled
    additions: int = Field(default=0, nullable=False)
    deletions: int = Field(default=0, nullable=False)
    files_changed: int = Field(default=0, nullable=False)
    stats_enriched: bool = Field(default=False, nullable=False)

    # Relationships
    repository: Optional["Repository"] = Relationship(back_populates="commits")
