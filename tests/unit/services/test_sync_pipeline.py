"""Unit tests for CommitDataPipeline: validation, sampling, enrichment, storage."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from app.services.github.types import CommitStatistics, FetchedCommit
from app.services.sync.exceptions import CommitValidationError, StorageError
from app.services.sync.pipeline import CommitDataPipeline

NOW = datetime(2026, 6, 15, 12, 0, tzinfo=UTC)


def _sha(n: int) -> str:
    return f"{n:040x}"


def _commit(n: int, days_ago: float = 1, **overrides: object) -> FetchedCommit:
    fields: dict = {
        "sha": _sha(n),
        "message": f"commit {n}",
        "author_name": "Octo",
        "author_email": "octo@example.com",
        "authored_at": NOW - timedelta(days=days_ago),
    }
    fields.update(overrides)
    return FetchedCommit(**fields)


# ═══════════════════════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════════════════════


class TestValidation:
    """Tests for dropping malformed commits."""

    def setup_method(self):
        self.pipeline = CommitDataPipeline()

    def test_valid_commit_passes(self):
        self.pipeline.validate_commit(_commit(1))
        assert self.pipeline.metrics.validated == 1

    def test_uppercase_sha_is_accepted(self):
        self.pipeline.validate_commit(_commit(1, sha="ABCDEF" + "0" * 34))

    def test_collects_every_problem(self):
        bad = _commit(1, sha="xyz", message="   ", authored_at=None)

        with pytest.raises(CommitValidationError) as exc_info:
            self.pipeline.validate_commit(bad)

        assert len(exc_info.value.errors) == 3
        assert self.pipeline.metrics.failed == 1

    def test_missing_sha(self):
        with pytest.raises(CommitValidationError) as exc_info:
            self.pipeline.validate_commit(_commit(1, sha=""))
        assert exc_info.value.errors == ["Missing SHA"]

    def test_validate_batch_keeps_valid_subset_in_order(self):
        commits = [_commit(1), _commit(2, message=""), _commit(3), _commit(4, authored_at=None)]

        valid = self.pipeline.validate_batch(commits)

        assert [c.sha for c in valid] == [_sha(1), _sha(3)]
        assert self.pipeline.metrics.validated == 2
        assert self.pipeline.metrics.failed == 2


# ═══════════════════════════════════════════════════════════════════════════
# Statistics sampling
# ═══════════════════════════════════════════════════════════════════════════


class TestSelectCommitsForStats:
    """Tests for the bounded statistics budget."""

    def setup_method(self):
        self.pipeline = CommitDataPipeline()

    def _select(self, commits, budget=50):
        return self.pipeline.select_commits_for_stats(
            commits, budget=budget, recent_days=30, now=NOW, recent_ratio=0.7
        )

    def test_zero_budget_selects_nothing(self):
        assert self._select([_commit(1)], budget=0) == []

    def test_empty_input(self):
        assert self._select([]) == []

    def test_small_history_is_fully_selected(self):
        commits = [_commit(i, days_ago=i) for i in range(1, 11)]
        assert len(self._select(commits)) == 10

    def test_recent_commits_take_their_share(self):
        commits = [_commit(i, days_ago=1) for i in range(60)]

        selected = self._select(commits)

        assert len(selected) == 35
        assert selected == commits[:35]

    def test_older_commits_sampled_with_ceil_stride(self):
        recent = [_commit(i, days_ago=1) for i in range(10)]
        older = [_commit(100 + i, days_ago=60 + i) for i in range(100)]

        selected = self._select(recent + older)

        # 10 recent, then every 3rd older commit (ceil(100 / 40) == 3)
        assert selected[:10] == recent
        assert selected[10:] == older[::3]
        assert len(selected) == 44

    def test_never_exceeds_budget(self):
        older = [_commit(i, days_ago=400 + i) for i in range(1000)]

        selected = self._select(older)

        assert len(selected) == 50
        assert selected[0] is older[0]

    def test_boundary_commit_counts_as_recent(self):
        boundary = _commit(1, days_ago=30)
        selected = self.pipeline.select_commits_for_stats(
            [boundary], budget=2, recent_days=30, now=NOW, recent_ratio=0.5
        )
        assert selected == [boundary]


# ═══════════════════════════════════════════════════════════════════════════
# Enrichment
# ═══════════════════════════════════════════════════════════════════════════


class TestEnrichBatch:
    """Tests for merging sampled statistics."""

    def setup_method(self):
        self.pipeline = CommitDataPipeline()

    def test_sampled_commits_get_stats(self):
        commits = [_commit(1), _commit(2)]
        stats = {_sha(1): CommitStatistics(sha=_sha(1), additions=10, deletions=4, files_changed=2)}

        enriched = self.pipeline.enrich_batch(commits, stats)

        assert enriched[0].additions == 10
        assert enriched[0].deletions == 4
        assert enriched[0].files_changed == 2
        assert enriched[0].stats_enriched is True
        assert self.pipeline.metrics.enriched == 1

    def test_unsampled_commits_stay_zero(self):
        commits = [_commit(1)]

        enriched = self.pipeline.enrich_batch(commits, {})

        assert enriched[0] is commits[0]
        assert enriched[0].additions == 0
        assert enriched[0].stats_enriched is False

    def test_input_is_not_mutated(self):
        original = _commit(1)
        stats = {_sha(1): CommitStatistics(sha=_sha(1), additions=1, deletions=0, files_changed=1)}

        self.pipeline.enrich_batch([original], stats)

        assert original.additions == 0


# ═══════════════════════════════════════════════════════════════════════════
# Storage
# ═══════════════════════════════════════════════════════════════════════════


class TestBatchInsert:
    """Tests for chunked, duplicate-tolerant insertion."""

    def setup_method(self):
        self.pipeline = CommitDataPipeline(batch_size=2)
        self.db = MagicMock()
        self.repository_id = MagicMock()

    @pytest.mark.asyncio
    @patch("app.services.sync.pipeline.commit_ops")
    async def test_inserts_in_chunks(self, mock_ops):
        mock_ops.insert_ignoring_duplicates = AsyncMock(
            side_effect=[{_sha(1), _sha(2)}, {_sha(3)}]
        )

        result = await self.pipeline.batch_insert_commits(
            self.db, self.repository_id, [_commit(1), _commit(2), _commit(3)]
        )

        assert (result.inserted, result.skipped) == (3, 0)
        assert mock_ops.insert_ignoring_duplicates.await_count == 2
        rows = mock_ops.insert_ignoring_duplicates.await_args_list[1].args[2]
        assert rows[0]["sha"] == _sha(3)

    @pytest.mark.asyncio
    @patch("app.services.sync.pipeline.commit_ops")
    async def test_duplicates_are_counted_as_skipped(self, mock_ops):
        mock_ops.insert_ignoring_duplicates = AsyncMock(side_effect=[set(), {_sha(3)}])
        mock_ops.update_stats = AsyncMock()

        result = await self.pipeline.batch_insert_commits(
            self.db, self.repository_id, [_commit(1), _commit(2), _commit(3)]
        )

        assert (result.inserted, result.skipped) == (1, 2)
        assert self.pipeline.metrics.skipped == 2

    @pytest.mark.asyncio
    @patch("app.services.sync.pipeline.commit_ops")
    async def test_empty_input_skips_database(self, mock_ops):
        mock_ops.insert_ignoring_duplicates = AsyncMock()

        result = await self.pipeline.batch_insert_commits(self.db, self.repository_id, [])

        assert result.inserted == 0
        mock_ops.insert_ignoring_duplicates.assert_not_awaited()

    @pytest.mark.asyncio
    @patch("app.services.sync.pipeline.commit_ops")
    async def test_database_error_becomes_storage_error(self, mock_ops):
        mock_ops.insert_ignoring_duplicates = AsyncMock(
            side_effect=OperationalError("INSERT", {}, Exception("connection lost"))
        )

        with pytest.raises(StorageError):
            await self.pipeline.batch_insert_commits(self.db, self.repository_id, [_commit(1)])

    @pytest.mark.asyncio
    @patch("app.services.sync.pipeline.commit_ops")
    async def test_skipped_commits_with_fresh_stats_are_backfilled(self, mock_ops):
        mock_ops.insert_ignoring_duplicates = AsyncMock(side_effect=[{_sha(2)}, set()])
        mock_ops.update_stats = AsyncMock(return_value=True)
        commits = [
            _commit(1, additions=7, deletions=2, files_changed=3, stats_enriched=True),
            _commit(2, additions=5, stats_enriched=True),
            _commit(3),
        ]

        result = await self.pipeline.batch_insert_commits(self.db, self.repository_id, commits)

        assert (result.inserted, result.skipped, result.backfilled) == (1, 2, 1)
        mock_ops.update_stats.assert_awaited_once_with(
            self.db,
            self.repository_id,
            _sha(1),
            {"additions": 7, "deletions": 2, "files_changed": 3},
        )
        assert self.pipeline.metrics.backfilled == 1

    @pytest.mark.asyncio
    @patch("app.services.sync.pipeline.commit_ops")
    async def test_backfill_failure_becomes_storage_error(self, mock_ops):
        mock_ops.insert_ignoring_duplicates = AsyncMock(return_value=set())
        mock_ops.update_stats = AsyncMock(
            side_effect=OperationalError("UPDATE", {}, Exception("connection lost"))
        )

        with pytest.raises(StorageError):
            await self.pipeline.batch_insert_commits(
                self.db, self.repository_id, [_commit(1, stats_enriched=True)]
            )
