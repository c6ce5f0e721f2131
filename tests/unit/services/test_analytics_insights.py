"""Unit tests for the AI-facing analytics summary."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

import pytest

from app.models.analytics_snapshot import AnalyticsSnapshot
from app.services.analytics.insights import (
    build_analytics_summary,
    calculate_commit_size_distribution,
    calculate_consistency_score,
    calculate_weekday_weekend_ratio,
    determine_hourly_pattern,
    parse_commit_quality,
)

NOW = datetime(2026, 6, 15, 12, 0, tzinfo=UTC)


class TestDerivedMetrics:
    def test_consistency_for_even_activity(self):
        assert calculate_consistency_score({"2026-06-14": 2, "2026-06-15": 2}) == 100

    def test_consistency_without_activity(self):
        assert calculate_consistency_score({}) == 0
        assert calculate_consistency_score({"2026-06-15": 0}) == 0

    def test_weekday_weekend_ratio(self):
        assert calculate_weekday_weekend_ratio({"Monday": 10, "Saturday": 2}) == 2.0

    def test_weekday_weekend_ratio_edges(self):
        assert calculate_weekday_weekend_ratio(None) == 1
        assert calculate_weekday_weekend_ratio({"Monday": 3}) == 10
        assert calculate_weekday_weekend_ratio({"Monday": 0}) == 1

    def test_hourly_pattern(self):
        assert determine_hourly_pattern({"9": 5, "14": 1}) == "morning"
        assert determine_hourly_pattern({"3": 1, "9": 1, "14": 1, "20": 1}) == "mixed"
        assert determine_hourly_pattern({}) == "mixed"

    @pytest.mark.parametrize(
        ("additions", "deletions", "expected"),
        [
            (1500, 500, {"small": 70, "medium": 25, "large": 5}),
            (7000, 3000, {"small": 30, "medium": 50, "large": 20}),
            (15000, 5000, {"small": 20, "medium": 30, "large": 50}),
        ],
    )
    def test_commit_size_distribution(self, additions, deletions, expected):
        assert calculate_commit_size_distribution(additions, deletions, 100) == expected

    def test_commit_size_distribution_without_commits(self):
        assert calculate_commit_size_distribution(0, 0, 0) == {
            "small": 0,
            "medium": 0,
            "large": 0,
        }


class TestParseCommitQuality:
    def test_rejects_malformed_values(self):
        assert parse_commit_quality(None) is None
        assert parse_commit_quality({"quality_grade": "Z", "conventional_commit_score": 1}) is None
        assert parse_commit_quality({"quality_grade": "A"}) is None

    def test_fills_defaults(self):
        parsed = parse_commit_quality({"quality_grade": "B", "conventional_commit_score": 60})

        assert parsed == {
            "quality_grade": "B",
            "conventional_commit_score": 60,
            "ticket_reference_score": 0,
            "body_text_score": 0,
            "insights": [],
        }


class TestBuildAnalyticsSummary:
    def setup_method(self):
        self.snapshot = AnalyticsSnapshot(
            user_id=uuid.uuid4(),
            total_repos=4,
            total_commits=100,
            total_additions=1500,
            total_deletions=500,
            current_streak=10,
            longest_streak=21,
            last_commit_date=NOW,
            is_active_today=True,
            language_stats={"Python": 50, "Go": 50},
            top_languages=[
                {"language": "Python", "count": 50, "percentage": 50},
                {"language": "Go", "count": 50, "percentage": 50},
            ],
            daily_commits={"2026-06-14": 2, "2026-06-15": 2},
            day_of_week_stats={"Monday": 10, "Saturday": 2},
            hourly_stats={"9": 5, "14": 1},
            commit_quality={"quality_grade": "B", "conventional_commit_score": 60},
            most_productive_day="Monday",
        )

    def test_summary_contract(self):
        summary = build_analytics_summary(self.snapshot, 80, ["feat: x"], now=NOW)

        assert set(summary) == {
            "total_commits",
            "current_streak",
            "longest_streak",
            "top_languages",
            "avg_commit_size",
            "most_active_day",
            "period",
            "previous_period_commits",
            "commit_size_distribution",
            "consistency_score",
            "language_diversity",
            "weekday_vs_weekend_ratio",
            "hourly_pattern",
            "is_active_today",
            "streak_health",
            "days_to_milestone",
            "total_repos",
            "recent_messages",
            "commit_quality_metrics",
        }

    def test_summary_values(self):
        summary = build_analytics_summary(self.snapshot, 80, ["feat: x"], now=NOW)

        assert summary["top_languages"] == {"Python": 50, "Go": 50}
        assert summary["avg_commit_size"] == 20
        assert summary["most_active_day"] == "Monday"
        assert summary["period"] == "last_30_days"
        assert summary["previous_period_commits"] == 80
        assert summary["consistency_score"] == 100
        assert summary["language_diversity"] == 100
        assert summary["weekday_vs_weekend_ratio"] == 2.0
        assert summary["hourly_pattern"] == "morning"
        assert summary["streak_health"] == "excellent"
        assert summary["days_to_milestone"] == {"milestone": 14, "days_remaining": 4}
        assert summary["recent_messages"] == ["feat: x"]
        assert summary["commit_quality_metrics"]["quality_grade"] == "B"

    def test_empty_snapshot(self):
        empty = AnalyticsSnapshot(user_id=uuid.uuid4())

        summary = build_analytics_summary(empty, now=NOW)

        assert summary["avg_commit_size"] == 0
        assert summary["most_active_day"] == "N/A"
        assert summary["streak_health"] == "inactive"
        assert summary["recent_messages"] == []
        assert summary["commit_quality_metrics"] is None
