"""
Sync endpoints: trigger, cancel and inspect GitHub synchronization runs.

A triggered sync runs as a task owned by the sync registry on its own
database session. The request awaits it through a shield, so a client
disconnect does not abort a half-finished run.
"""

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.api.v1.github import github_error_to_http
from app.core.database import get_db
from app.core.exceptions import ConflictError, NotFoundError
from app.core.rate_limit import SYNC_TRIGGER_LIMIT, rate_limiter
from app.domain import commit_ops, repository_ops, sync_job_ops
from app.models.sync_job import SyncJob
from app.models.user import User
from app.services.github.exceptions import GitHubAPIError
from app.services.sync import (
    CredentialMissingError,
    SyncAlreadyRunningError,
    SyncOptions,
    run_sync_in_new_session,
    sync_registry,
)

router = APIRouter(prefix="/sync", tags=["sync"])
logger = logging.getLogger(__name__)


class SyncRequest(BaseModel):
    """Options for a manual sync. Unset repository filters use saved preferences."""

    full_sync: bool = False
    include_forks: bool | None = None
    include_archived: bool | None = None
    include_org_repos: bool | None = None
    max_commits_per_repo: int | None = Field(default=None, ge=1)
    fetch_commit_stats: bool = True


def format_duration(ms: int) -> str:
    if ms < 1000:
        return f"{ms}ms"
    if ms < 60000:
        return f"{ms / 1000:.1f}s"
    return f"{ms // 60000}m {(ms % 60000) // 1000}s"


def _serialize_job(job: SyncJob) -> dict[str, Any]:
    return {
        "id": str(job.id),
        "status": job.status,
        "full_sync": job.full_sync,
        "total_repos": job.total_repos,
        "processed_repos": job.processed_repos,
        "commits_inserted": job.commits_inserted,
        "commits_skipped": job.commits_skipped,
        "error_count": job.error_count,
        "error_message": job.error_message,
        "started_at": job.started_at.isoformat(),
        "completed_at": job.completed_at.isoformat() if job.completed_at else None,
    }


@router.post("")
async def trigger_sync(
    data: SyncRequest | None = None,
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    """
    Run one synchronization for the current user and return its summary.

    - 409 if a sync is already running (or this one was cancelled)
    - 429 when the trigger limit or the GitHub budget is exhausted
    """
    rate_limiter.check_rate_limit(current_user.id, "sync_trigger", SYNC_TRIGGER_LIMIT)

    options = SyncOptions(**(data or SyncRequest()).model_dump())
    try:
        task = sync_registry.start(
            current_user.id,
            run_sync_in_new_session(
                current_user.id,
                options,
                on_progress=sync_registry.progress_callback(current_user.id),
            ),
        )
    except SyncAlreadyRunningError as e:
        raise ConflictError(e.message) from None

    try:
        result = await asyncio.shield(task)
    except asyncio.CancelledError:
        if task.cancelled():
            raise ConflictError("Sync was cancelled") from None
        raise
    except CredentialMissingError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from None
    except GitHubAPIError as e:
        raise github_error_to_http(e) from None

    logger.info(
        f"Sync for user {current_user.id} finished: "
        f"{result.commits_inserted} inserted, {result.errors} repository errors"
    )
    return {
        **result.to_dict(),
        "duration_formatted": format_duration(result.duration_ms),
    }


@router.delete("", status_code=status.HTTP_202_ACCEPTED)
async def cancel_sync(current_user: User = Depends(get_current_user)) -> dict[str, str]:
    """Cancel the current user's running sync. Data stored so far is kept."""
    if not sync_registry.cancel(current_user.id):
        raise NotFoundError("Running sync")
    return {"status": "cancelling"}


@router.get("/status")
async def get_sync_status(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Latest job, live progress of the current run, and what is stored for the user."""
    latest = await sync_job_ops.get_latest(db, current_user.id)
    oldest, newest = await commit_ops.get_date_range(db, current_user.id)
    progress = sync_registry.get_progress(current_user.id)

    return {
        "job": _serialize_job(latest) if latest else None,
        "is_running": sync_registry.is_running(current_user.id),
        "progress": progress.as_dict() if progress else None,
        "stats": {
            "repositories": await repository_ops.count_by_user(db, current_user.id),
            "commits": await commit_ops.count_by_user(db, current_user.id),
            "date_range": {
                "oldest": oldest.isoformat() if oldest else None,
                "newest": newest.isoformat() if newest else None,
            },
        },
    }


@router.get("/jobs")
async def list_sync_jobs(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Recent jobs and per-repository commit counts, for debugging a sync."""
    jobs = await sync_job_ops.list_recent(db, current_user.id, limit=5)
    repos = await repository_ops.list_with_commit_counts(db, current_user.id)

    return {
        "jobs": [_serialize_job(job) for job in jobs],
        "repositories": [
            {
                "id": str(repo["id"]),
                "full_name": repo["full_name"],
                "last_synced_at": (
                    repo["last_synced_at"].isoformat() if repo["last_synced_at"] else None
                ),
                "commit_count": repo["commit_count"],
            }
            for repo in repos
        ],
    }
