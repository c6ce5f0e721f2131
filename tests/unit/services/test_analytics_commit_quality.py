"""Unit tests for commit message quality scoring."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from app.services.analytics.commit_quality import (
    analyze_commit_quality,
    analyze_recent_commit_quality,
    calculate_grade,
    compare_quality_periods,
    get_conventional_prefix,
    get_grade_description,
    has_message_body,
    has_ticket_reference,
    is_conventional_commit,
    is_merge_commit,
)
from app.services.analytics.types import CommitQualityMetrics, CommitRecord

NOW = datetime(2026, 6, 15, 12, 0, tzinfo=UTC)


def _records(*messages: str, authored_at: datetime | None = NOW) -> list[CommitRecord]:
    return [
        CommitRecord(sha=f"{i:040x}", authored_at=authored_at, message=m)
        for i, m in enumerate(messages)
    ]


# ═══════════════════════════════════════════════════════════════════════════
# Message classifiers
# ═══════════════════════════════════════════════════════════════════════════


class TestClassifiers:
    @pytest.mark.parametrize(
        "message",
        ["feat: add sync", "fix(api): handle 409", "refactor!: drop v1", "DOCS: readme tweaks"],
    )
    def test_conventional(self, message):
        assert is_conventional_commit(message)

    @pytest.mark.parametrize("message", ["feat:missing space", "feature: nope", "Update README"])
    def test_not_conventional(self, message):
        assert not is_conventional_commit(message)

    def test_only_subject_line_is_checked(self):
        assert not is_conventional_commit("Update stuff\n\nfeat: in the body")

    def test_prefix_with_and_without_scope(self):
        assert get_conventional_prefix("Feat(ui): button") == "feat(ui)"
        assert get_conventional_prefix("fix: typo") == "fix"
        assert get_conventional_prefix("Update README") is None

    @pytest.mark.parametrize(
        "message",
        ["PROJ-123 add login", "fixes #42", "Closes #7", "see GH-19", "refs issues/88"],
    )
    def test_ticket_references(self, message):
        assert has_ticket_reference(message)

    def test_no_ticket_reference(self):
        assert not has_ticket_reference("add login form")

    def test_body_needs_a_second_non_blank_line(self):
        assert has_message_body("subject\n\nbody text")
        assert not has_message_body("subject\n\n   \n")

    @pytest.mark.parametrize(
        "message",
        [
            "Merge pull request #5 from octo/feature",
            "Merge branch 'main' into dev",
            "Merge remote-tracking branch 'origin/main'",
            "Merged in feature/x (pull request #3)",
            "Automatic merge from CI",
        ],
    )
    def test_merge_commits(self, message):
        assert is_merge_commit(message)

    def test_regular_commit_is_not_merge(self):
        assert not is_merge_commit("fix: merge sort off-by-one")


# ═══════════════════════════════════════════════════════════════════════════
# Grading
# ═══════════════════════════════════════════════════════════════════════════


class TestCalculateGrade:
    def test_perfect_scores(self):
        assert calculate_grade(100, 100, 100, 100) == "A"

    def test_zero_scores(self):
        assert calculate_grade(0, 0, 0, 0) == "F"

    def test_weights(self):
        # 100 * 0.4 + 100 * 0.3 = 70
        assert calculate_grade(100, 100, 0, 0) == "B"
        # 100 * 0.2 + 100 * 0.1 + 50 * 0.4 = 50
        assert calculate_grade(50, 0, 100, 100) == "D"

    def test_descriptions(self):
        assert get_grade_description("A") == "Excellent"
        assert get_grade_description("D") == "Needs Work"
        assert get_grade_description("Z") == "Poor"


# ═══════════════════════════════════════════════════════════════════════════
# analyze_commit_quality
# ═══════════════════════════════════════════════════════════════════════════


class TestAnalyzeCommitQuality:
    def test_scores_regular_commits_only(self):
        metrics = analyze_commit_quality(
            _records(
                "feat(api): add sync endpoint\n\nLonger body text",
                "fix: handle empty repos PROJ-12",
                "wip",
                "Merge pull request #5 from octo/feature",
            )
        )

        assert metrics.total_analyzed == 3
        assert metrics.conventional_commit_score == 67
        assert metrics.ticket_reference_score == 33
        assert metrics.body_text_score == 33
        assert metrics.subject_line_score == 67
        assert metrics.average_message_length == 21
        # 67*.4 + 33*.3 + 67*.2 + 33*.1 = 53.4
        assert metrics.quality_grade == "D"
        assert [p.prefix for p in metrics.common_prefixes] == ["feat(api)", "fix"]
        assert metrics.common_prefixes[0].percentage == 33

    def test_only_merge_commits(self):
        metrics = analyze_commit_quality(_records("Merge branch 'main' into dev"))

        assert metrics.total_analyzed == 0
        assert metrics.quality_grade == "F"
        assert metrics.insights == [
            "No regular commits found to analyze (merge commits are excluded)."
        ]

    def test_at_most_five_prefixes(self):
        types = ["feat", "fix", "docs", "style", "refactor", "test", "chore"]
        messages = [f"{t}: change number {i}" for i, t in enumerate(types)]

        metrics = analyze_commit_quality(_records(*messages))

        assert len(metrics.common_prefixes) == 5

    def test_at_most_five_insights(self):
        metrics = analyze_commit_quality(_records("wip", "x", "tmp"))

        assert metrics.quality_grade == "F"
        assert 0 < len(metrics.insights) <= 5

    def test_disciplined_history_gets_an_a(self):
        metrics = analyze_commit_quality(
            _records(
                "feat(sync): add incremental mode PROJ-1\n\nUses the last stored commit.",
                "fix(api): return 409 when busy PROJ-2\n\nMatches the registry.",
            )
        )

        assert metrics.quality_grade == "A"
        assert metrics.insights[0].startswith("Excellent commit discipline!")


class TestRecentAndTrend:
    def test_recent_window_drops_old_commits_and_keeps_undated(self):
        old = _records("feat: ancient history here", authored_at=NOW - timedelta(days=60))
        undated = _records("fix: no date on this one", authored_at=None)
        recent = _records("docs: fresh documentation", authored_at=NOW - timedelta(days=2))

        metrics = analyze_recent_commit_quality(old + undated + recent, days=30, now=NOW)

        assert metrics.total_analyzed == 2

    def test_compare_periods(self):
        trend = compare_quality_periods(
            CommitQualityMetrics(quality_grade="B"), CommitQualityMetrics(quality_grade="D")
        )

        assert trend.direction == "improving"
        assert trend.previous_grade == "D"
        assert trend.change_percent == 100

    def test_compare_equal_grades(self):
        trend = compare_quality_periods(
            CommitQualityMetrics(quality_grade="C"), CommitQualityMetrics(quality_grade="C")
        )

        assert trend.direction == "stable"
        assert trend.change_percent == 0
