"""Repository endpoints: the synced repositories of the current user."""

import logging
import uuid as uuid_pkg
from dataclasses import asdict
from datetime import UTC, datetime, timedelta
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.api.v1.github import get_github_token, github_error_to_http
from app.core.database import get_db
from app.core.exceptions import NotFoundError
from app.domain import commit_ops, repository_ops
from app.models.repository import Repository
from app.models.user import User
from app.services.analytics.utils import round_half_up, to_utc
from app.services.github import GitHubAPIError, GitHubReadOperations

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/repositories", tags=["repositories"])

FREQUENCY_WEEKS = 12
RECENT_COMMIT_LIMIT = 100


def _serialize_repository(r: Repository, commit_count: int | None = None) -> dict[str, Any]:
    data = {
        "id": str(r.id),
        "github_id": r.github_id,
        "owner": r.owner,
        "name": r.name,
        "full_name": r.full_name,
        "description": r.description,
        "url": r.url,
        "default_branch": r.default_branch,
        "language": r.language,
        "is_private": r.is_private,
        "is_fork": r.is_fork,
        "is_archived": r.is_archived,
        "stars_count": r.stars_count,
        "forks_count": r.forks_count,
        "last_synced_at": r.last_synced_at.isoformat() if r.last_synced_at else None,
    }
    if commit_count is not None:
        data["commit_count"] = commit_count
    return data


def weekly_commit_buckets(
    dates: list[datetime], now: datetime, weeks: int = FREQUENCY_WEEKS
) -> list[dict[str, Any]]:
    """Counts per 7-day bucket, oldest first, starting `weeks` weeks before now."""
    start = now - timedelta(days=weeks * 7)
    buckets = [0] * weeks
    for authored_at in dates:
        index = (to_utc(authored_at) - start).days // 7
        if 0 <= index < weeks:
            buckets[index] += 1
    return [{"week": f"Week {i + 1}", "commits": count} for i, count in enumerate(buckets)]


async def _get_owned_repository(
    db: AsyncSession, user: User, repository_id: uuid_pkg.UUID
) -> Repository:
    repo = await repository_ops.get_for_user(db, user.id, repository_id)
    if not repo:
        raise NotFoundError("Repository")
    return repo


@router.get("")
async def list_repositories(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """All synced repositories with their stored commit counts."""
    repos = await repository_ops.list_by_user(db, current_user.id)
    counts = {
        row["id"]: row["commit_count"]
        for row in await repository_ops.list_with_commit_counts(db, current_user.id)
    }
    return [_serialize_repository(r, counts.get(r.id, 0)) for r in repos]


@router.get("/{repository_id}")
async def get_repository(
    repository_id: uuid_pkg.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Repository detail with its latest commits and 12-week commit frequency."""
    repo = await _get_owned_repository(db, current_user, repository_id)
    commits = await commit_ops.list_recent_for_repository(db, repo.id, limit=RECENT_COMMIT_LIMIT)

    total_additions = sum(c.additions for c in commits)
    total_deletions = sum(c.deletions for c in commits)
    average_size = (
        round_half_up((total_additions + total_deletions) / len(commits)) if commits else 0
    )

    now = datetime.now(UTC)
    dates = await commit_ops.list_dates_since(
        db, repo.id, now - timedelta(days=FREQUENCY_WEEKS * 7)
    )

    return {
        **_serialize_repository(repo, await repository_ops.get_commit_count(db, repo.id)),
        "commits": [
            {
                "id": str(c.id),
                "sha": c.sha,
                "message": c.message,
                "author_name": c.author_name,
                "authored_at": c.authored_at.isoformat(),
                "additions": c.additions,
                "deletions": c.deletions,
                "files_changed": c.files_changed,
            }
            for c in commits
        ],
        "metrics": {
            "total_additions": total_additions,
            "total_deletions": total_deletions,
            "average_commit_size": average_size,
            "weekly_commits": weekly_commit_buckets(dates, now),
        },
    }


@router.get("/{repository_id}/languages")
async def get_repository_languages(
    repository_id: uuid_pkg.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Byte-level language breakdown, fetched live from GitHub (cached 1 h)."""
    repo = await _get_owned_repository(db, current_user, repository_id)
    token = await get_github_token(db, current_user.id)

    try:
        languages = await GitHubReadOperations(token).get_repo_languages(repo.owner, repo.name)
    except GitHubAPIError as e:
        raise github_error_to_http(e) from None
    return {"languages": [asdict(lang) for lang in languages]}


@router.get("/{repository_id}/contributors")
async def get_repository_contributors(
    repository_id: uuid_pkg.UUID,
    limit: int = Query(30, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    repo = await _get_owned_repository(db, current_user, repository_id)
    token = await get_github_token(db, current_user.id)

    try:
        contributors = await GitHubReadOperations(token).get_repo_contributors(
            repo.owner, repo.name, limit=limit
        )
    except GitHubAPIError as e:
        raise github_error_to_http(e) from None
    return {"contributors": [asdict(c) for c in contributors]}
