"""Data types for GitHub API responses."""

import time
from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class GitHubRepo:
    """Normalized GitHub repository data."""

    github_id: int
    owner: str
    name: str
    full_name: str
    description: str | None
    url: str
    default_branch: str
    is_private: bool
    is_fork: bool
    is_archived: bool
    language: str | None
    stars_count: int
    forks_count: int
    updated_at: str | None = None

    def to_row(self) -> dict:
        """Column values for repository_ops.upsert_many."""
        return {
            "github_id": self.github_id,
            "owner": self.owner,
            "name": self.name,
            "full_name": self.full_name,
            "description": self.description,
            "url": self.url,
            "default_branch": self.default_branch,
            "language": self.language,
            "is_private": self.is_private,
            "is_fork": self.is_fork,
            "is_archived": self.is_archived,
            "stars_count": self.stars_count,
            "forks_count": self.forks_count,
        }


@dataclass
class RepositoryFilters:
    """Client-side inclusion filters for repository discovery."""

    include_forks: bool = False
    include_archived: bool = False
    include_org_repos: bool = True

    @property
    def affiliation(self) -> str:
        if self.include_org_repos:
            return "owner,collaborator,organization_member"
        return "owner"


@dataclass
class FetchedCommit:
    """A commit as listed by GitHub. Statistics start at zero."""

    sha: str
    message: str
    author_name: str
    author_email: str
    authored_at: datetime | None
    committer_name: str | None = None
    committer_email: str | None = None
    committed_at: datetime | None = None
    url: str | None = None
    additions: int = 0
    deletions: int = 0
    files_changed: int = 0
    stats_enriched: bool = False


@dataclass
class CommitStatistics:
    """Line-level statistics for a single commit."""

    sha: str
    additions: int
    deletions: int
    files_changed: int


@dataclass
class LanguageStat:
    """Language statistics for a repository."""

    name: str
    bytes: int
    percentage: float
    color: str  # Hex color for display


@dataclass
class ContributorInfo:
    """Contributor information."""

    login: str
    avatar_url: str | None
    contributions: int  # Number of commits


@dataclass
class RateLimitSnapshot:
    """Point-in-time copy of the request budget."""

    remaining: int | None
    limit: int | None
    reset: int | None  # Unix timestamp
    used: int | None = None


@dataclass
class SyncMetrics:
    """Request counters for one client instance."""

    total_requests: int = 0
    rate_limit_resets: int = 0
    errors_encountered: int = 0
    repos_processed: int = 0
    commits_processed: int = 0
    started_at: float = field(default_factory=time.time)

    def as_dict(self) -> dict:
        return {
            "total_requests": self.total_requests,
            "rate_limit_resets": self.rate_limit_resets,
            "errors_encountered": self.errors_encountered,
            "repos_processed": self.repos_processed,
            "commits_processed": self.commits_processed,
            "started_at": self.started_at,
        }
