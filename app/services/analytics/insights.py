"""
Builds the analytics summary handed to the AI insight generator.

The output keys are a stable contract with that generator. Add keys
freely; never rename or drop one.
"""

from datetime import datetime
from typing import Any

from app.models.analytics_snapshot import AnalyticsSnapshot
from app.services.analytics.languages import calculate_language_diversity
from app.services.analytics.streaks import StreakData, get_days_to_milestone, get_streak_health
from app.services.analytics.utils import clamp, coefficient_of_variation, round_half_up

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
WEEKEND = ["Saturday", "Sunday"]

HOURLY_PERIODS: dict[str, range] = {
    "morning": range(6, 12),
    "afternoon": range(12, 18),
    "evening": range(18, 24),
    "night": range(0, 6),
}

QUALITY_GRADES = {"A", "B", "C", "D", "F"}


def calculate_consistency_score(daily_commits: dict[str, int] | None) -> int:
    """0-100; 100 when every tracked day has the same count."""
    if not daily_commits:
        return 0
    values = [float(v) for v in daily_commits.values()]
    if sum(values) == 0:
        return 0
    return round_half_up(clamp(100 - coefficient_of_variation(values) * 50))


def calculate_weekday_weekend_ratio(day_of_week_stats: dict[str, int] | None) -> float:
    """Average weekday commits over average weekend commits, one decimal."""
    if not day_of_week_stats:
        return 1

    weekday_avg = sum(day_of_week_stats.get(d, 0) for d in WEEKDAYS) / 5
    weekend_avg = sum(day_of_week_stats.get(d, 0) for d in WEEKEND) / 2

    if weekend_avg == 0:
        return 10 if weekday_avg > 0 else 1
    return round_half_up(weekday_avg / weekend_avg, 1)


def determine_hourly_pattern(hourly_stats: dict[str, int] | None) -> str:
    """Dominant period when it holds at least 40% of commits, else "mixed"."""
    if not hourly_stats:
        return "mixed"

    sums = {
        period: sum(hourly_stats.get(str(h), 0) for h in hours)
        for period, hours in HOURLY_PERIODS.items()
    }
    total = sum(sums.values())
    if total == 0:
        return "mixed"

    period, count = max(sums.items(), key=lambda item: item[1])
    return period if count / total >= 0.4 else "mixed"


def calculate_commit_size_distribution(
    total_additions: int, total_deletions: int, total_commits: int
) -> dict[str, int]:
    """Estimated small/medium/large split from the average commit size."""
    if total_commits == 0:
        return {"small": 0, "medium": 0, "large": 0}

    avg_size = (total_additions + total_deletions) / total_commits
    if avg_size < 50:
        shares = (0.7, 0.25, 0.05)
    elif avg_size < 150:
        shares = (0.3, 0.5, 0.2)
    else:
        shares = (0.2, 0.3, 0.5)

    return {
        name: round_half_up(total_commits * share)
        for name, share in zip(("small", "medium", "large"), shares)
    }


def parse_commit_quality(raw: Any) -> dict[str, Any] | None:
    if not isinstance(raw, dict):
        return None
    grade = raw.get("quality_grade")
    score = raw.get("conventional_commit_score")
    if grade not in QUALITY_GRADES or not isinstance(score, int | float):
        return None
    insights = raw.get("insights")
    return {
        "quality_grade": grade,
        "conventional_commit_score": score,
        "ticket_reference_score": raw.get("ticket_reference_score") or 0,
        "body_text_score": raw.get("body_text_score") or 0,
        "insights": insights if isinstance(insights, list) else [],
    }


def build_analytics_summary(
    snapshot: AnalyticsSnapshot,
    previous_period_commits: int | None = None,
    recent_messages: list[str] | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    top_languages = {item["language"]: item["count"] for item in snapshot.top_languages or []}

    total_changes = snapshot.total_additions + snapshot.total_deletions
    avg_commit_size = (
        round_half_up(total_changes / snapshot.total_commits) if snapshot.total_commits > 0 else 0
    )

    streak = StreakData(
        current_streak=snapshot.current_streak,
        longest_streak=snapshot.longest_streak,
        last_commit_date=snapshot.last_commit_date,
        is_active_today=snapshot.is_active_today,
    )

    return {
        "total_commits": snapshot.total_commits,
        "current_streak": snapshot.current_streak,
        "longest_streak": snapshot.longest_streak,
        "top_languages": top_languages,
        "avg_commit_size": avg_commit_size,
        "most_active_day": snapshot.most_productive_day or "N/A",
        "period": "last_30_days",
        "previous_period_commits": previous_period_commits,
        "commit_size_distribution": calculate_commit_size_distribution(
            snapshot.total_additions, snapshot.total_deletions, snapshot.total_commits
        ),
        "consistency_score": calculate_consistency_score(snapshot.daily_commits),
        "language_diversity": calculate_language_diversity(snapshot.language_stats or {}),
        "weekday_vs_weekend_ratio": calculate_weekday_weekend_ratio(snapshot.day_of_week_stats),
        "hourly_pattern": determine_hourly_pattern(snapshot.hourly_stats),
        "is_active_today": snapshot.is_active_today,
        "streak_health": get_streak_health(streak, now),
        "days_to_milestone": get_days_to_milestone(snapshot.current_streak),
        "total_repos": snapshot.total_repos,
        "recent_messages": recent_messages or [],
        "commit_quality_metrics": parse_commit_quality(snapshot.commit_quality),
    }
