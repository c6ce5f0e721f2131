"""Cached analytics snapshot, one row per user."""

import uuid as uuid_pkg
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Column, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, UUIDMixin


class AnalyticsSnapshot(UUIDMixin, TimestampMixin, SQLModel, table=True):
    """
    Derived metrics for a user, overwritten on every recomputation.

    This is a cache: everything here can be rebuilt from the user's stored
    repositories and commits.
    """

    __tablename__ = "analytics_snapshots"

    user_id: uuid_pkg.UUID = Field(
        sa_column=Column(
            PG_UUID(as_uuid=True),
            ForeignKey("users.id", ondelete="CASCADE"),
            unique=True,
            nullable=False,
            index=True,
        ),
    )

    # Totals
    total_repos: int = Field(default=0)
    total_commits: int = Field(default=0)
    total_additions: int = Field(default=0)
    total_deletions: int = Field(default=0)
    total_stars: int = Field(default=0)
    total_forks: int = Field(default=0)

    # Streaks
    current_streak: int = Field(default=0)
    longest_streak: int = Field(default=0)
    last_commit_date: datetime | None = Field(  # type: ignore[call-overload]
        default=None,
        sa_type=DateTime(timezone=True),
    )
    is_active_today: bool = Field(default=False)

    # Histograms and breakdowns
    language_stats: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSONB))
    top_languages: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSONB))
    daily_commits: dict[str, int] = Field(default_factory=dict, sa_column=Column(JSONB))
    day_of_week_stats: dict[str, int] = Field(default_factory=dict, sa_column=Column(JSONB))
    hourly_stats: dict[str, int] = Field(default_factory=dict, sa_column=Column(JSONB))
    repo_stats: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSONB))

    # Derived metrics
    code_impact: dict[str, Any] | None = Field(default=None, sa_column=Column(JSONB, nullable=True))
    commit_quality: dict[str, Any] | None = Field(
        default=None, sa_column=Column(JSONB, nullable=True)
    )
    persona: dict[str, Any] | None = Field(default=None, sa_column=Column(JSONB, nullable=True))

    average_commits_per_day: float = Field(default=0.0)
    most_productive_day: str | None = Field(default=None, max_length=20)
    most_productive_hour: int | None = Field(default=None)

    calculated_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=lambda: datetime.now(UTC),
        nullable=False,
        sa_type=DateTime(timezone=True),
    )
    data_range_start: datetime | None = Field(  # type: ignore[call-overload]
        default=None,
        sa_type=DateTime(timezone=True),
    )
    data_range_end: datetime | None = Field(  # type: ignore[call-overload]
        default=None,
        sa_type=DateTime(timezone=True),
    )
