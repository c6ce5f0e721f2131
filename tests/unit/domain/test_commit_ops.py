"""Unit tests for CommitOperations — all DB calls mocked."""

import uuid
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from app.domain.commit_operations import CommitOperations

from tests.helpers.mock_factories import mock_scalar_result, mock_scalars_result


class TestInsertIgnoringDuplicates:
    def setup_method(self):
        self.ops = CommitOperations()
        self.db = AsyncMock()

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        assert await self.ops.insert_ignoring_duplicates(self.db, uuid.uuid4(), []) == set()
        self.db.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_returns_only_inserted_shas(self):
        result_proxy = MagicMock()
        result_proxy.all.return_value = [("abc1234",)]
        self.db.execute = AsyncMock(return_value=result_proxy)
        rows = [
            {"sha": "abc1234", "message": "feat: a", "author_name": "a", "author_email": "a@x"},
            {"sha": "def5678", "message": "fix: b", "author_name": "b", "author_email": "b@x"},
        ]

        inserted = await self.ops.insert_ignoring_duplicates(self.db, uuid.uuid4(), rows)

        assert inserted == {"abc1234"}
        sql = str(self.db.execute.await_args.args[0].compile(dialect=postgresql.dialect()))
        assert "ON CONFLICT (repository_id, sha) DO NOTHING" in sql


class TestUpdateStats:
    def setup_method(self):
        self.ops = CommitOperations()
        self.db = AsyncMock()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("rowcount", "expected"), [(1, True), (0, False)])
    async def test_reports_whether_a_row_matched(self, rowcount, expected):
        self.db.execute = AsyncMock(return_value=MagicMock(rowcount=rowcount))

        result = await self.ops.update_stats(
            self.db, uuid.uuid4(), "abc1234", {"additions": 3, "deletions": 1}
        )
        assert result is expected


class TestCommitReads:
    def setup_method(self):
        self.ops = CommitOperations()
        self.db = AsyncMock()

    @pytest.mark.asyncio
    async def test_date_range(self):
        oldest = datetime(2025, 1, 1, tzinfo=UTC)
        newest = datetime(2026, 6, 1, tzinfo=UTC)
        result_proxy = MagicMock()
        result_proxy.one.return_value = (oldest, newest)
        self.db.execute = AsyncMock(return_value=result_proxy)

        assert await self.ops.get_date_range(self.db, uuid.uuid4()) == (oldest, newest)

    @pytest.mark.asyncio
    async def test_count_by_user(self):
        self.db.execute = AsyncMock(return_value=mock_scalar_result(17))

        assert await self.ops.count_by_user(self.db, uuid.uuid4()) == 17

    @pytest.mark.asyncio
    async def test_recent_messages_keep_subject_only(self):
        long_subject = "a" * 150
        self.db.execute = AsyncMock(
            return_value=mock_scalars_result(["fix: handle 404\n\nLonger body", long_subject])
        )

        messages = await self.ops.list_recent_messages(self.db, uuid.uuid4())

        assert messages == ["fix: handle 404", "a" * 100 + "..."]

    @pytest.mark.asyncio
    async def test_recent_messages_exclude_merges(self):
        self.db.execute = AsyncMock(return_value=mock_scalars_result([]))

        await self.ops.list_recent_messages(self.db, uuid.uuid4(), limit=3)

        sql = str(self.db.execute.await_args.args[0])
        assert "NOT LIKE" in sql
