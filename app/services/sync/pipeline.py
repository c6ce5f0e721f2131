"""
Commit enrichment pipeline.

Turns fetched commits into storage-ready rows: validation, statistics
sampling, enrichment, and idempotent batch insertion.
"""

import logging
import math
import re
import uuid as uuid_pkg
from dataclasses import replace
from datetime import UTC, datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.domain.commit_operations import commit_ops
from app.services.github.types import CommitStatistics, FetchedCommit
from app.services.sync.exceptions import CommitValidationError, StorageError
from app.services.sync.types import BatchInsertResult, PipelineMetrics

logger = logging.getLogger(__name__)

SHA_PATTERN = re.compile(r"^[0-9a-f]{40}$", re.IGNORECASE)


def _first_present(*values: int | None) -> int:
    for value in values:
        if value is not None:
            return value
    return 0


class CommitDataPipeline:
    """Validation, sampling, enrichment and storage for one sync run."""

    def __init__(self, batch_size: int | None = None) -> None:
        self.batch_size = batch_size or settings.commit_insert_batch_size
        self.metrics = PipelineMetrics()

    def reset_metrics(self) -> None:
        self.metrics = PipelineMetrics()

    # ─────────────────────────────────────────────────────────────────────
    # Validation
    # ─────────────────────────────────────────────────────────────────────

    def validate_commit(self, commit: FetchedCommit) -> None:
        """Raise CommitValidationError listing every problem with the record."""
        errors: list[str] = []

        if not commit.sha:
            errors.append("Missing SHA")
        elif not SHA_PATTERN.match(commit.sha):
            errors.append(f"Invalid SHA format: {commit.sha[:10]}...")

        if not commit.message or not commit.message.strip():
            errors.append("Missing or empty commit message")

        if commit.authored_at is None:
            errors.append("Invalid author date")

        if errors:
            self.metrics.failed += 1
            raise CommitValidationError(commit.sha, errors)
        self.metrics.validated += 1

    def validate_batch(self, commits: list[FetchedCommit]) -> list[FetchedCommit]:
        """Return the valid subset, logging each dropped record."""
        valid: list[FetchedCommit] = []
        for commit in commits:
            try:
                self.validate_commit(commit)
            except CommitValidationError as e:
                logger.warning(e.message)
                continue
            valid.append(commit)

        if len(valid) != len(commits):
            logger.info(f"Validated {len(valid)}/{len(commits)} commits")
        return valid

    # ─────────────────────────────────────────────────────────────────────
    # Statistics sampling
    # ─────────────────────────────────────────────────────────────────────

    def select_commits_for_stats(
        self,
        commits: list[FetchedCommit],
        budget: int | None = None,
        recent_days: int | None = None,
        now: datetime | None = None,
        recent_ratio: float | None = None,
    ) -> list[FetchedCommit]:
        """
        Choose which commits get a statistics request.

        Recent commits (inside the window) take up to `recent_ratio` of the
        budget, in listing order. The remainder samples older commits every
        Nth one, N = ceil(older / older_budget), so cost stays bounded no
        matter how long the history is.
        """
        budget = settings.sync_stats_budget_per_repo if budget is None else budget
        recent_days = settings.sync_stats_recent_window_days if recent_days is None else recent_days
        ratio = settings.sync_stats_recent_ratio if recent_ratio is None else recent_ratio
        now = now or datetime.now(UTC)

        if budget <= 0 or not commits:
            return []

        cutoff = now - timedelta(days=recent_days)
        recent = [c for c in commits if c.authored_at is not None and c.authored_at >= cutoff]
        older = [c for c in commits if c.authored_at is None or c.authored_at < cutoff]

        recent_budget = min(len(recent), math.floor(budget * ratio))
        older_budget = budget - recent_budget

        selected = recent[:recent_budget]
        if older and older_budget > 0:
            stride = max(1, math.ceil(len(older) / older_budget))
            selected.extend(older[::stride][:older_budget])

        logger.debug(
            f"Selected {len(selected)} commits for stats "
            f"({recent_budget} recent, {len(selected) - recent_budget} sampled older)"
        )
        return selected

    # ─────────────────────────────────────────────────────────────────────
    # Enrichment
    # ─────────────────────────────────────────────────────────────────────

    def enrich_batch(
        self,
        commits: list[FetchedCommit],
        stats_by_sha: dict[str, CommitStatistics],
    ) -> list[FetchedCommit]:
        """Merge sampled statistics. Unsampled commits keep zeros and stay unenriched."""
        enriched: list[FetchedCommit] = []
        for commit in commits:
            stats = stats_by_sha.get(commit.sha)
            if stats is None:
                enriched.append(commit)
                continue
            self.metrics.enriched += 1
            enriched.append(
                replace(
                    commit,
                    additions=_first_present(stats.additions, commit.additions),
                    deletions=_first_present(stats.deletions, commit.deletions),
                    files_changed=_first_present(stats.files_changed, commit.files_changed),
                    stats_enriched=True,
                )
            )
        return enriched

    # ─────────────────────────────────────────────────────────────────────
    # Storage
    # ─────────────────────────────────────────────────────────────────────

    @staticmethod
    def _to_row(commit: FetchedCommit) -> dict:
        return {
            "sha": commit.sha,
            "message": commit.message,
            "url": commit.url,
            "author_name": commit.author_name,
            "author_email": commit.author_email,
            "authored_at": commit.authored_at,
            "committer_name": commit.committer_name,
            "committer_email": commit.committer_email,
            "committed_at": commit.committed_at,
            "additions": commit.additions,
            "deletions": commit.deletions,
            "files_changed": commit.files_changed,
            "stats_enriched": commit.stats_enriched,
        }

    async def batch_insert_commits(
        self,
        db: AsyncSession,
        repository_id: uuid_pkg.UUID,
        commits: list[FetchedCommit],
    ) -> BatchInsertResult:
        """
        Insert commits in chunks, skipping ones already stored.

        Duplicates are never an error. A skipped commit that carries freshly
        fetched statistics has them written onto the stored row instead.
        Any database failure becomes a StorageError; the caller decides how
        much to roll back.
        """
        result = BatchInsertResult()
        if not commits:
            return result

        for start in range(0, len(commits), self.batch_size):
            batch = commits[start : start + self.batch_size]
            try:
                inserted_shas = await commit_ops.insert_ignoring_duplicates(
                    db, repository_id, [self._to_row(c) for c in batch]
                )
                backfilled = await self._backfill_stats(db, repository_id, batch, inserted_shas)
            except SQLAlchemyError as e:
                raise StorageError(f"Failed to store commits: {e}") from e

            inserted = len(inserted_shas)
            result.inserted += inserted
            result.skipped += len(batch) - inserted
            result.backfilled += backfilled
            logger.debug(
                f"Batch {start // self.batch_size + 1}: "
                f"inserted {inserted}, skipped {len(batch) - inserted}, backfilled {backfilled}"
            )

        self.metrics.inserted += result.inserted
        self.metrics.skipped += result.skipped
        self.metrics.backfilled += result.backfilled
        return result

    async def _backfill_stats(
        self,
        db: AsyncSession,
        repository_id: uuid_pkg.UUID,
        batch: list[FetchedCommit],
        inserted_shas: set[str],
    ) -> int:
        backfilled = 0
        for commit in batch:
            if not commit.stats_enriched or commit.sha in inserted_shas:
                continue
            updated = await commit_ops.update_stats(
                db,
                repository_id,
                commit.sha,
                {
                    "additions": commit.additions,
                    "deletions": commit.deletions,
                    "files_changed": commit.files_changed,
                },
            )
            if updated:
                backfilled += 1
        return backfilled
