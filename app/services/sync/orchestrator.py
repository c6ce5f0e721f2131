"""
Sync orchestrator.

Runs one complete synchronization for one user:
rate limit precheck -> repository discovery and upsert -> per-repository
commit fetch, enrichment and storage -> best-effort analytics refresh.

Each repository's work is committed on its own, so anything stored before
a failure or cancellation stays stored and the next incremental sync
resumes from it.
"""

import asyncio
import logging
import time
import uuid as uuid_pkg
from collections.abc import Callable
from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.database import async_session_maker
from app.domain.preferences_operations import preferences_ops
from app.domain.repository_operations import repository_ops
from app.domain.sync_job_operations import sync_job_ops
from app.models.sync_job import SyncStatus
from app.services.analytics.aggregator import AnalyticsAggregator, analytics_aggregator
from app.services.github.exceptions import CredentialError, GitHubAPIError, RateLimitError
from app.services.github.read_operations import GitHubReadOperations
from app.services.github.types import GitHubRepo, RepositoryFilters
from app.services.sync.exceptions import CredentialMissingError, StorageError
from app.services.sync.pipeline import CommitDataPipeline
from app.services.sync.types import (
    RepositoryOutcome,
    SyncOptions,
    SyncPhase,
    SyncProgress,
    SyncResult,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[SyncProgress], None]

CANCELLED_MESSAGE = "Sync cancelled"


class SyncOrchestrator:
    """
    Drives one sync and owns its SyncJob.

    The job row is only touched through UPDATE-by-id statements, so a
    per-repository rollback never invalidates what the orchestrator holds.

    With `max_concurrent_repos` > 1 repositories are fetched in parallel:
    network calls run under a semaphore, while every database step is
    serialised on one lock because all workers share a single session.
    """

    def __init__(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
        client: GitHubReadOperations,
        *,
        pipeline: CommitDataPipeline | None = None,
        aggregator: AnalyticsAggregator | None = None,
        on_progress: ProgressCallback | None = None,
        max_concurrent_repos: int | None = None,
    ) -> None:
        self.db = db
        self.user_id = user_id
        self.client = client
        self.pipeline = pipeline or CommitDataPipeline()
        self.aggregator = aggregator or analytics_aggregator
        self.on_progress = on_progress
        concurrency = max_concurrent_repos or settings.sync_max_concurrent_repos
        self.max_concurrent_repos = max(1, min(concurrency, 5))

        self._db_lock = asyncio.Lock()
        self._fetch_slots = asyncio.Semaphore(self.max_concurrent_repos)
        self._processed = 0
        self._commits_inserted = 0
        self._commits_seen = 0

    # ─────────────────────────────────────────────────────────────────────
    # Progress
    # ─────────────────────────────────────────────────────────────────────

    def _emit(self, phase: SyncPhase, percentage: float, message: str, **extra) -> None:
        if self.on_progress is None:
            return
        self.on_progress(
            SyncProgress(
                phase=phase,
                percentage=round(percentage, 1),
                message=message,
                commits_processed=self._commits_inserted,
                total_commits=self._commits_seen,
                **extra,
            )
        )

    # ─────────────────────────────────────────────────────────────────────
    # Entry point
    # ─────────────────────────────────────────────────────────────────────

    async def resolve_filters(self, options: SyncOptions) -> RepositoryFilters:
        """Explicit options win; otherwise use the user's stored defaults."""
        prefs = await preferences_ops.get_by_user_id(self.db, self.user_id)
        defaults = RepositoryFilters()
        if prefs is not None:
            defaults = RepositoryFilters(
                include_forks=prefs.include_forks,
                include_archived=prefs.include_archived,
                include_org_repos=prefs.include_org_repos,
            )
        return RepositoryFilters(
            include_forks=(
                defaults.include_forks if options.include_forks is None else options.include_forks
            ),
            include_archived=(
                defaults.include_archived
                if options.include_archived is None
                else options.include_archived
            ),
            include_org_repos=(
                defaults.include_org_repos
                if options.include_org_repos is None
                else options.include_org_repos
            ),
        )

    async def check_rate_limit(self) -> None:
        """Refuse to start when the budget is below the configured minimum."""
        snapshot = await self.client.get_rate_limit_state()
        minimum = settings.sync_min_rate_limit_remaining
        if snapshot.remaining is not None and snapshot.remaining < minimum:
            retry_after = int(self.client.rate_limit.seconds_until_reset())
            raise RateLimitError(
                f"GitHub rate limit too low to start sync "
                f"({snapshot.remaining} remaining, {minimum} required)",
                status_code=429,
                rate_limit_reset=snapshot.reset,
                retry_after=retry_after,
            )

    async def sync(self, options: SyncOptions | None = None) -> SyncResult:
        """
        Run the sync.

        Raises:
            RateLimitError: budget too low to start; no job is created
            CredentialError: token rejected; job marked FAILED if one exists
            asyncio.CancelledError: job marked FAILED, stored data kept
        """
        options = options or SyncOptions()
        started = time.monotonic()
        self.pipeline.reset_metrics()

        self._emit(SyncPhase.INIT, 0, "Checking GitHub rate limit...")
        await self.check_rate_limit()
        filters = await self.resolve_filters(options)

        job = await sync_job_ops.create_in_progress(self.db, self.user_id, options.full_sync)
        job_id = job.id
        await self.db.commit()
        logger.info(
            f"Sync {job_id} started for user {self.user_id} "
            f"({'full' if options.full_sync else 'incremental'})"
        )

        try:
            result = await self._run(job_id, options, filters, started)
        except asyncio.CancelledError:
            logger.warning(f"Sync {job_id} cancelled after {self._processed} repositories")
            await self._fail_job(job_id, CANCELLED_MESSAGE)
            self._emit(SyncPhase.ERROR, 0, CANCELLED_MESSAGE, error=CANCELLED_MESSAGE)
            raise
        except Exception as e:
            logger.exception(f"Sync {job_id} failed")
            await self._fail_job(job_id, str(e))
            self._emit(SyncPhase.ERROR, 0, f"Sync failed: {e}", error=str(e))
            raise

        return result

    async def _run(
        self,
        job_id: uuid_pkg.UUID,
        options: SyncOptions,
        filters: RepositoryFilters,
        started: float,
    ) -> SyncResult:
        self._emit(SyncPhase.REPOSITORIES, 5, "Fetching repositories...")
        repos = await self.client.list_repositories(filters)
        total = len(repos)

        repo_ids = await repository_ops.upsert_many(
            self.db, self.user_id, [repo.to_row() for repo in repos]
        )
        await sync_job_ops.update_fields(self.db, job_id, total_repos=total)
        await self.db.commit()
        logger.info(f"Sync {job_id}: {total} repositories to process")
        self._emit(
            SyncPhase.REPOSITORIES, 10, f"Found {total} repositories", total_repos=total
        )

        outcomes = await self._sync_all(job_id, repos, repo_ids, options)

        warnings: list[str] = []
        if settings.sync_run_analytics_refresh:
            self._emit(
                SyncPhase.ANALYTICS,
                85,
                "Calculating analytics...",
                repos_processed=total,
                total_repos=total,
            )
            warning = await self._refresh_analytics()
            if warning:
                warnings.append(warning)

        duration_ms = int((time.monotonic() - started) * 1000)
        self.client.metrics.repos_processed = len(outcomes)
        result = SyncResult.from_outcomes(
            job_id,
            list(outcomes),
            duration_ms,
            metrics={**self.client.metrics.as_dict(), "pipeline": vars(self.pipeline.metrics)},
        )
        result.warnings.extend(warnings)

        await sync_job_ops.update_fields(
            self.db,
            job_id,
            status=SyncStatus.COMPLETED,
            processed_repos=result.repositories_processed,
            commits_inserted=result.commits_inserted,
            commits_skipped=result.commits_skipped,
            error_count=result.errors,
            error_message="; ".join(result.warnings)[:2000] or None,
            completed_at=datetime.now(UTC),
        )
        await self.db.commit()

        self._emit(
            SyncPhase.COMPLETE,
            100,
            f"Sync complete! {result.commits_inserted} commits synced",
            repos_processed=total,
            total_repos=total,
        )
        logger.info(
            f"Sync {job_id} completed in {duration_ms / 1000:.1f}s: "
            f"{total} repositories, {result.commits_inserted} inserted, "
            f"{result.commits_skipped} skipped, {result.errors} errors"
        )
        return result

    # ─────────────────────────────────────────────────────────────────────
    # Per repository
    # ─────────────────────────────────────────────────────────────────────

    async def _sync_all(
        self,
        job_id: uuid_pkg.UUID,
        repos: list[GitHubRepo],
        repo_ids: dict[int, uuid_pkg.UUID],
        options: SyncOptions,
    ) -> list[RepositoryOutcome]:
        total = len(repos)
        if self.max_concurrent_repos == 1:
            return [
                await self._sync_repository(
                    job_id, repo, repo_ids.get(repo.github_id), total, options
                )
                for repo in repos
            ]

        tasks = [
            asyncio.create_task(
                self._sync_repository(job_id, repo, repo_ids.get(repo.github_id), total, options)
            )
            for repo in repos
        ]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

    async def _sync_repository(
        self,
        job_id: uuid_pkg.UUID,
        repo: GitHubRepo,
        repository_id: uuid_pkg.UUID | None,
        total: int,
        options: SyncOptions,
    ) -> RepositoryOutcome:
        """Sync one repository. Failures are recorded on the outcome, not raised."""
        outcome = RepositoryOutcome(full_name=repo.full_name)
        if repository_id is None:
            outcome.error = "Repository was not stored"
            logger.warning(f"No stored row for {repo.full_name}, skipping")
            await self._mark_processed(job_id)
            return outcome

        try:
            await self._process_repository(repo, repository_id, total, options, outcome)
        except CredentialError:
            raise
        except StorageError as e:
            outcome.error = e.message
            logger.warning(f"Storage failed for {repo.full_name}, rolled back: {e.message}")
        except RateLimitError as e:
            outcome.error = e.message
            logger.warning(f"Rate limited while syncing {repo.full_name}: {e.message}")
        except GitHubAPIError as e:
            outcome.error = e.message
            logger.warning(f"Failed to sync {repo.full_name}: {e.message}")
        except Exception as e:
            outcome.error = str(e) or type(e).__name__
            logger.exception(f"Unexpected error syncing {repo.full_name}")

        await self._mark_processed(job_id)
        return outcome

    async def _process_repository(
        self,
        repo: GitHubRepo,
        repository_id: uuid_pkg.UUID,
        total: int,
        options: SyncOptions,
        outcome: RepositoryOutcome,
    ) -> None:
        since = None
        if not options.full_sync:
            async with self._db_lock:
                since = await repository_ops.get_last_commit_date(self.db, repository_id)

        async with self._fetch_slots:
            self._emit(
                SyncPhase.COMMITS,
                10 + self._processed / max(total, 1) * 70,
                f"Syncing {repo.name}...",
                current_repo=repo.name,
                repos_processed=self._processed,
                total_repos=total,
            )
            commits = await self.client.list_commits(
                repo.owner, repo.name, since=since, max_commits=options.max_commits_per_repo
            )
            self._commits_seen += len(commits)

            valid = self.pipeline.validate_batch(commits)
            outcome.dropped_invalid = len(commits) - len(valid)

            if valid and options.fetch_commit_stats:
                self._emit(
                    SyncPhase.STATS,
                    10 + self._processed / max(total, 1) * 70,
                    f"Fetching stats for {repo.name}...",
                    current_repo=repo.name,
                    repos_processed=self._processed,
                    total_repos=total,
                )
                # `since` is inclusive upstream, so the boundary commit is already stored
                unstored = [c for c in valid if since is None or c.authored_at > since]
                sample = self.pipeline.select_commits_for_stats(unstored)
                stats = await self.client.fetch_commit_statistics(
                    repo.owner, repo.name, [c.sha for c in sample]
                )
                outcome.stats_fetched = len(stats)
                valid = self.pipeline.enrich_batch(valid, stats)

        if not valid:
            logger.info(f"No new commits in {repo.full_name}")
            return

        async with self._db_lock:
            try:
                result = await self.pipeline.batch_insert_commits(self.db, repository_id, valid)
                await self.db.commit()
            except (StorageError, SQLAlchemyError) as e:
                await self.db.rollback()
                if isinstance(e, StorageError):
                    raise
                raise StorageError(f"Failed to store commits: {e}") from e

        outcome.inserted = result.inserted
        outcome.skipped = result.skipped
        outcome.stats_backfilled = result.backfilled
        self._commits_inserted += result.inserted
        logger.info(
            f"{repo.full_name}: inserted {result.inserted}, skipped {result.skipped}"
            + (f", backfilled stats for {result.backfilled}" if result.backfilled else "")
            + (f" since {since.isoformat()}" if since else "")
        )

    async def _mark_processed(self, job_id: uuid_pkg.UUID) -> None:
        async with self._db_lock:
            self._processed += 1
            await sync_job_ops.update_fields(self.db, job_id, processed_repos=self._processed)
            await self.db.commit()

    # ─────────────────────────────────────────────────────────────────────
    # Wrap-up
    # ─────────────────────────────────────────────────────────────────────

    async def _refresh_analytics(self) -> str | None:
        """Recompute the snapshot. Failure is logged and reported, never fatal."""
        try:
            await self.aggregator.refresh_analytics(self.db, self.user_id)
            await self.db.commit()
        except Exception:
            logger.exception(f"Analytics refresh failed for user {self.user_id}")
            await self.db.rollback()
            return "Analytics refresh failed"
        return None

    async def _fail_job(self, job_id: uuid_pkg.UUID, message: str) -> None:
        await self.db.rollback()
        await sync_job_ops.update_fields(
            self.db,
            job_id,
            status=SyncStatus.FAILED,
            processed_repos=self._processed,
            error_message=message[:2000],
            completed_at=datetime.now(UTC),
        )
        await self.db.commit()


async def run_sync_for_user(
    db: AsyncSession,
    user_id: uuid_pkg.UUID,
    options: SyncOptions | None = None,
    on_progress: ProgressCallback | None = None,
) -> SyncResult:
    """Load the user's token and run one sync with a fresh client.

    Raises:
        CredentialMissingError: no linked token; nothing is written
    """
    prefs = await preferences_ops.get_by_user_id(db, user_id)
    token = preferences_ops.get_decrypted_token(prefs)
    if not token:
        raise CredentialMissingError()

    orchestrator = SyncOrchestrator(
        db,
        user_id,
        GitHubReadOperations(token),
        on_progress=on_progress,
    )
    return await orchestrator.sync(options)


async def run_sync_in_new_session(
    user_id: uuid_pkg.UUID,
    options: SyncOptions | None = None,
    on_progress: ProgressCallback | None = None,
) -> SyncResult:
    """Run a sync on a session of its own, so it outlives the caller's."""
    async with async_session_maker() as db:
        result = await run_sync_for_user(db, user_id, options, on_progress)
        await db.commit()
        return result
