"""Unit tests for commit categorisation, churn estimation and impact scoring."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import pytest

from app.services.analytics.code_impact import (
    analyze_code_impact,
    calculate_churn_gauge,
    calculate_churn_rate,
    categorize_commit,
    categorize_commits,
    get_churn_severity,
    get_impact_rating,
)
from app.services.analytics.types import CommitCategories, CommitRecord

START = datetime(2026, 6, 1, 9, 0, tzinfo=UTC)
REPO = uuid.uuid4()


def _record(n: int, additions: int, deletions: int, files: int = 5, at: datetime | None = None):
    return CommitRecord(
        sha=f"{n:040x}",
        authored_at=at or START + timedelta(days=n),
        additions=additions,
        deletions=deletions,
        files_changed=files,
        repository_id=REPO,
    )


# ═══════════════════════════════════════════════════════════════════════════
# Categorisation
# ═══════════════════════════════════════════════════════════════════════════


class TestCategorizeCommit:
    @pytest.mark.parametrize(
        ("additions", "deletions", "files", "expected"),
        [
            (5, 3, 1, "maintenance"),
            (0, 0, 0, "maintenance"),
            (30, 10, 2, "fix"),
            (30, 10, 5, "refactor"),
            (90, 5, 10, "feature"),
            (10, 90, 10, "cleanup"),
        ],
    )
    def test_categories(self, additions, deletions, files, expected):
        assert categorize_commit(additions, deletions, files) == expected

    def test_size_rules_win_over_ratio(self):
        # All additions, but small enough to be a fix
        assert categorize_commit(40, 0, 1) == "fix"

    def test_counts_per_category(self):
        categories = categorize_commits(
            [_record(1, 90, 5), _record(2, 90, 5), _record(3, 2, 2), _record(4, 10, 90)]
        )

        assert categories.feature == 2
        assert categories.maintenance == 1
        assert categories.cleanup == 1
        assert categories.total == 4


# ═══════════════════════════════════════════════════════════════════════════
# Churn
# ═══════════════════════════════════════════════════════════════════════════


class TestChurnRate:
    def test_single_commit_has_no_churn(self):
        assert calculate_churn_rate([_record(1, 10, 50)]) == 0.0

    def test_same_day_deletion_heavy_follow_up_is_churn(self):
        morning = _record(1, 100, 0, at=START)
        afternoon = _record(2, 5, 20, at=START + timedelta(hours=3))

        # 1 churn commit of 2 analysed, doubled and capped
        assert calculate_churn_rate([afternoon, morning]) == 50.0

    def test_different_days_are_not_compared(self):
        commits = [_record(1, 100, 0), _record(2, 5, 20)]
        assert calculate_churn_rate(commits) == 0.0

    def test_different_repositories_are_not_compared(self):
        first = _record(1, 100, 0, at=START)
        second = _record(2, 5, 20, at=START + timedelta(hours=1))
        second.repository_id = uuid.uuid4()

        assert calculate_churn_rate([first, second]) == 0.0

    def test_small_deletions_are_ignored(self):
        morning = _record(1, 100, 0, at=START)
        afternoon = _record(2, 2, 8, at=START + timedelta(hours=1))

        assert calculate_churn_rate([morning, afternoon]) == 0.0

    def test_gauge_from_categories(self):
        gauge = calculate_churn_gauge(
            CommitCategories(feature=2, fix=1, refactor=1, cleanup=0, maintenance=0), 12.4
        )

        assert gauge.productive == 75
        assert gauge.refactoring == 25
        assert gauge.churn == 12


# ═══════════════════════════════════════════════════════════════════════════
# analyze_code_impact
# ═══════════════════════════════════════════════════════════════════════════


class TestAnalyzeCodeImpact:
    def test_empty_input(self):
        metrics = analyze_code_impact([])

        assert metrics.impact_score == 0
        assert metrics.add_delete_ratio == 0.5
        assert metrics.insights == ["No commits to analyze"]

    def test_uniform_feature_work(self):
        commits = [_record(i, 90, 10, files=10) for i in range(4)]

        metrics = analyze_code_impact(commits)

        assert metrics.commit_categories.feature == 4
        assert metrics.add_delete_ratio == 0.9
        assert metrics.commit_size_consistency == 100
        assert metrics.churn_rate == 0
        assert metrics.productive_rate == 100
        assert metrics.avg_net_change == 80
        # features 40 + ratio 10 + consistency 20 + no churn 20
        assert metrics.impact_score == 90
        assert metrics.churn_gauge.productive == 100
        assert metrics.insights[0].startswith("Excellent impact!")
        assert len(metrics.insights) == 4

    def test_as_dict_is_json_ready(self):
        data = analyze_code_impact([_record(1, 10, 10)]).as_dict()

        assert set(data["commit_categories"]) == {
            "feature",
            "refactor",
            "fix",
            "cleanup",
            "maintenance",
        }
        assert set(data["churn_gauge"]) == {"productive", "refactoring", "churn"}


class TestLabels:
    @pytest.mark.parametrize(
        ("score", "label"),
        [(85, "Excellent"), (60, "Good"), (45, "Fair"), (20, "Needs Work"), (5, "Low Impact")],
    )
    def test_impact_rating(self, score, label):
        assert get_impact_rating(score) == label

    def test_churn_severity(self):
        assert get_churn_severity(5)["label"] == "Minimal"
        assert get_churn_severity(15)["label"] == "Low"
        assert get_churn_severity(30)["label"] == "Moderate"
        assert get_churn_severity(40)["label"] == "High"
