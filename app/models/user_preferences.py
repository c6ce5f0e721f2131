import uuid as uuid_pkg
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Column, DateTime, ForeignKey, text
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.user import User


class UserPreferences(SQLModel, table=True):
    """
    Linked GitHub credential and default sync filters.

    One-to-one with User. Created on first access if missing.
    """

    __tablename__ = "user_preferences"

    user_id: uuid_pkg.UUID = Field(
        sa_column=Column(
            PG_UUID(as_uuid=True),
            ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
            nullable=False,
        ),
    )

    # Integrations (Fernet-encrypted when a key is configured)
    github_token: str | None = Field(default=None, max_length=500)

    # Sync defaults
    include_forks: bool = Field(default=False)
    include_archived: bool = Field(default=False)
    include_org_repos: bool = Field(default=True)

    # Timestamps
    created_at: datetime = Field(  # type: ignore[call-overload]
        default_factory=lambda: datetime.now(UTC),
        nullable=False,
        sa_type=DateTime(timezone=True),
        sa_column_kwargs={"server_default": text("now()")},
    )
    updated_at: datetime | None = Field(  # type: ignore[call-overload]
        default=None,
        sa_type=DateTime(timezone=True),
        sa_column_kwargs={"onupdate": text("now()")},
    )

    # Relationships
    user: Optional["User"] = Relationship(back_populates="preferences")


class UserPreferencesUpdate(SQLModel):
    """Schema for PATCH /users/me/preferences."""

    github_token: str | None = None
    include_forks: bool | None = None
    include_archived: bool | None = None
    include_org_repos: bool | None = None
