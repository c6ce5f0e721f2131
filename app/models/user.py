import uuid as uuid_pkg
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, text
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.user_preferences import UserPreferences


class User(SQLModel, table=True):
    """
    User model - mirrors the auth provider's user table.

    The id comes from the verified JWT subject. Rows are created on the
    first authenticated API call.
    """

    __tablename__ = "users"

    id: uuid_pkg.UUID = Field(
        primary_key=True,
        index=True,
        nullable=False,
        description="UUID from the auth provider",
    )
    email: str | None = Field(default=None, max_length=255)
    display_name: str | None = Field(default=None, max_length=100)
    github_username: str | None = Field(default=None, max_length=255, index=True)
    avatar_url: str | None = Field(default=None, max_length=500)
    auth_provider: str | None = Field(default=None, max_length=50)

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
    preferences: Optional["UserPreferences"] = Relationship(
        back_populates="user",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
