from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, DateTime
from sqlmodel import Field, Relationship, SQLModel

from app.models.base import TimestampMixin, UserOwnedMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.commit import Commit


class RepositoryBase(SQLModel):
    """Repository metadata as reported by GitHub."""

    owner: str = Field(max_length=255)
    name: str = Field(max_length=255, index=True)
    full_name: str = Field(max_length=500)
    description: str | None = Field(default=None, max_length=2000)
    url: str | None = Field(default=None, max_length=500)
    default_branch: str | None = Field(default=None, max_length=100)
    language: str | None = Field(default=None, max_length=50)
    is_private: bool = Field(default=False)
    is_fork: bool = Field(default=False)
    is_archived: bool = Field(default=False)
    stars_count: int = Field(default=0)
    forks_count: int = Field(default=0)


class Repository(RepositoryBase, UUIDMixin, TimestampMixin, UserOwnedMixin, table=True):
    """A synced GitHub repository.

    Identity is the numeric GitHub id, which survives renames. Rows are
    upserted on every sync and never deleted by it.
    """

    __tablename__ = "repositories"

    github_id: int = Field(  # type: ignore[call-overload]
        sa_type=BigInteger,
        unique=True,
        index=True,
        nullable=False,
    )
    last_synced_at: datetime | None = Field(  # type: ignore[call-overload]
        default=None,
        sa_type=DateTime(timezone=True),
    )

    # Relationships
    commits: list["Commit"] = Relationship(
        back_populates="repository",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "passive_deletes": True},
    )
