"""Internal task scheduler using APScheduler.

Runs the nightly incremental sync for every user with a linked GitHub
token. A PostgreSQL advisory lock keeps the job to one instance when
several API processes are running.
"""

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass, field
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy import text

from app.config import settings
from app.core.database import async_session_maker
from app.domain.preferences_operations import preferences_ops
from app.services.github.exceptions import GitHubAPIError
from app.services.sync.exceptions import SyncAlreadyRunningError, SyncError
from app.services.sync.orchestrator import run_sync_in_new_session
from app.services.sync.registry import sync_registry
from app.services.sync.types import SyncOptions

logger = logging.getLogger(__name__)

# Advisory lock ID (arbitrary unique integer)
SCHEDULED_SYNC_LOCK_ID = 734201


@dataclass
class ScheduledSyncReport:
    users_synced: int = 0
    users_skipped: int = 0
    users_failed: int = 0
    commits_inserted: int = 0
    duration_seconds: float = 0.0
    failures: list[str] = field(default_factory=list)


@asynccontextmanager
async def advisory_lock(lock_id: int) -> AsyncIterator[bool]:
    """
    Hold a PostgreSQL advisory lock for the duration of the context.

    pg_try_advisory_lock() does not block: if another process holds the
    lock the context yields False and the caller skips its work.
    """
    async with async_session_maker() as session:
        result = await session.execute(
            text("SELECT pg_try_advisory_lock(:lock_id)"),
            {"lock_id": lock_id},
        )
        acquired = result.scalar()

        if not acquired:
            yield False
            return

        try:
            yield True
        finally:
            await session.execute(
                text("SELECT pg_advisory_unlock(:lock_id)"),
                {"lock_id": lock_id},
            )
            await session.commit()


async def sync_all_users() -> ScheduledSyncReport:
    """Sequentially sync every linked user, isolating per-user failures."""
    report = ScheduledSyncReport()
    started = time.monotonic()

    async with async_session_maker() as db:
        user_ids = await preferences_ops.list_user_ids_with_token(db)

    for user_id in user_ids:
        try:
            task = sync_registry.start(
                user_id,
                run_sync_in_new_session(
                    user_id,
                    SyncOptions(full_sync=False),
                    on_progress=sync_registry.progress_callback(user_id),
                ),
            )
        except SyncAlreadyRunningError:
            report.users_skipped += 1
            continue

        try:
            result = await task
            report.commits_inserted += result.commits_inserted
            report.users_synced += 1
        except (SyncError, GitHubAPIError) as e:
            report.users_failed += 1
            report.failures.append(f"{user_id}: {e.message}")
            logger.warning(f"[scheduler] Sync for user {user_id} failed: {e.message}")
        except Exception as e:
            report.users_failed += 1
            report.failures.append(f"{user_id}: {e}")
            logger.exception(f"[scheduler] Sync for user {user_id} failed unexpectedly")

    report.duration_seconds = round(time.monotonic() - started, 1)
    return report


async def run_scheduled_sync() -> dict[str, Any] | None:
    """
    Execute the nightly sync with advisory lock protection.

    Returns the report dict if executed, None if skipped (lock held by another instance).
    """
    async with advisory_lock(SCHEDULED_SYNC_LOCK_ID) as acquired:
        if not acquired:
            logger.info("[scheduler] Scheduled-sync: skipped (another instance is running)")
            return None

        logger.info("[scheduler] Scheduled-sync: starting")

        try:
            report = await sync_all_users()
        except Exception as e:
            logger.exception(f"[scheduler] Scheduled-sync: failed with error: {e}")
            return None

        logger.info(
            f"[scheduler] Scheduled-sync: completed "
            f"({report.users_synced} synced, "
            f"{report.users_skipped} skipped, "
            f"{report.users_failed} failed, "
            f"{report.commits_inserted} commits, "
            f"{report.duration_seconds}s)"
        )
        return asdict(report)


class Scheduler:
    """Manages the APScheduler instance and job registration."""

    def __init__(self) -> None:
        self._scheduler: AsyncIOScheduler | None = None

    def start(self) -> None:
        if not settings.scheduler_enabled:
            logger.info("[scheduler] Disabled via SCHEDULER_ENABLED=false")
            return

        self._scheduler = AsyncIOScheduler()
        self._scheduler.add_job(
            run_scheduled_sync,
            trigger=CronTrigger(hour=settings.scheduled_sync_hour, minute=0, timezone="UTC"),
            id="scheduled_sync",
            name="Nightly Incremental Sync",
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(
            f"[scheduler] Started with scheduled-sync at "
            f"{settings.scheduled_sync_hour:02d}:00 UTC"
        )

    def stop(self) -> None:
        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            logger.info("[scheduler] Stopped")

    async def trigger_now(self, job_id: str) -> dict[str, Any] | None:
        """Run a job immediately. Returns None for an unknown job id."""
        if job_id == "scheduled_sync":
            return await run_scheduled_sync()
        return None


scheduler = Scheduler()
