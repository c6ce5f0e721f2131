"""
Analytics aggregator.

`compute_analytics` is a pure fold over a user's repositories and commits.
`AnalyticsAggregator` loads those rows, runs the fold and keeps the single
per-user snapshot up to date.
"""

import logging
import uuid as uuid_pkg
from collections import Counter
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.analytics_snapshot_operations import analytics_snapshot_ops
from app.domain.commit_operations import commit_ops
from app.domain.repository_operations import repository_ops
from app.models.analytics_snapshot import AnalyticsSnapshot
from app.services.analytics.code_impact import analyze_code_impact
from app.services.analytics.commit_quality import (
    analyze_commit_quality,
    analyze_recent_commit_quality,
    compare_quality_periods,
)
from app.services.analytics.languages import aggregate_language_stats, get_top_languages
from app.services.analytics.persona import PersonaContext, detect_persona, get_earned_personas
from app.services.analytics.streaks import calculate_streaks
from app.services.analytics.types import CommitRecord, RepositoryRecord
from app.services.analytics.utils import DAY_NAMES, round_half_up, to_utc

logger = logging.getLogger(__name__)

DAILY_WINDOW_DAYS = 90
TOP_LANGUAGE_LIMIT = 6
QUALITY_TREND_DAYS = 30


@dataclass
class AnalyticsResult:
    total_repos: int = 0
    total_commits: int = 0
    total_additions: int = 0
    total_deletions: int = 0
    total_stars: int = 0
    total_forks: int = 0

    current_streak: int = 0
    longest_streak: int = 0
    last_commit_date: datetime | None = None
    is_active_today: bool = False

    language_stats: dict[str, int] = field(default_factory=dict)
    top_languages: list[dict[str, Any]] = field(default_factory=list)
    daily_commits: dict[str, int] = field(default_factory=dict)
    day_of_week_stats: dict[str, int] = field(default_factory=dict)
    hourly_stats: dict[str, int] = field(default_factory=dict)
    repo_stats: list[dict[str, Any]] = field(default_factory=list)

    code_impact: dict[str, Any] | None = None
    commit_quality: dict[str, Any] | None = None
    persona: dict[str, Any] | None = None

    average_commits_per_day: float = 0.0
    most_productive_day: str = "Monday"
    most_productive_hour: int = 0

    calculated_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    data_range_start: datetime | None = None
    data_range_end: datetime | None = None

    def to_snapshot_values(self) -> dict[str, Any]:
        return dict(vars(self))


# ─────────────────────────────────────────────────────────────────────────────
# Histograms
# ─────────────────────────────────────────────────────────────────────────────


def calculate_daily_commits(dates: Sequence[datetime], now: datetime) -> dict[str, int]:
    """Zero-filled per-day counts for the last 90 days, keyed YYYY-MM-DD (UTC)."""
    window_start = now - timedelta(days=DAILY_WINDOW_DAYS)
    stats: dict[str, int] = {}
    day = window_start.date()
    while day <= now.date():
        stats[day.isoformat()] = 0
        day += timedelta(days=1)

    for authored_at in dates:
        authored_at = to_utc(authored_at)
        key = authored_at.date().isoformat()
        if authored_at >= window_start and key in stats:
            stats[key] += 1
    return stats


def calculate_day_of_week_stats(dates: Sequence[datetime]) -> dict[str, int]:
    stats = {name: 0 for name in DAY_NAMES}
    for authored_at in dates:
        stats[DAY_NAMES[to_utc(authored_at).weekday()]] += 1
    return stats


def calculate_hourly_stats(dates: Sequence[datetime]) -> dict[str, int]:
    stats = {str(hour): 0 for hour in range(24)}
    for authored_at in dates:
        stats[str(to_utc(authored_at).hour)] += 1
    return stats


def calculate_average_commits_per_day(daily_commits: dict[str, int]) -> float:
    """Average over active days only, one decimal."""
    active = [count for count in daily_commits.values() if count > 0]
    if not active:
        return 0.0
    return round_half_up(sum(active) / len(active), 1)


def _busiest(stats: dict[str, int], default: str) -> str:
    # Strict comparison: ties keep the earlier key
    best, best_count = default, 0
    for key, count in stats.items():
        if count > best_count:
            best, best_count = key, count
    return best


def build_repo_stats(
    repositories: Sequence[RepositoryRecord], commits: Sequence[CommitRecord]
) -> list[dict[str, Any]]:
    by_repo: dict[str, list[CommitRecord]] = {}
    for commit in commits:
        by_repo.setdefault(str(commit.repository_id), []).append(commit)

    stats = []
    for repo in repositories:
        repo_commits = by_repo.get(str(repo.id), [])
        dated = [c.authored_at for c in repo_commits if c.authored_at is not None]
        last_commit = max(dated) if dated else None
        stats.append(
            {
                "id": str(repo.id),
                "name": repo.name,
                "full_name": repo.full_name,
                "commits": len(repo_commits),
                "stars": repo.stars_count,
                "forks": repo.forks_count,
                "language": repo.language,
                "last_commit_date": to_utc(last_commit).isoformat() if last_commit else None,
                "additions": sum(c.additions for c in repo_commits),
                "deletions": sum(c.deletions for c in repo_commits),
            }
        )
    stats.sort(key=lambda r: r["commits"], reverse=True)
    return stats


# ─────────────────────────────────────────────────────────────────────────────
# Fold
# ─────────────────────────────────────────────────────────────────────────────


def build_commit_quality(commits: Sequence[CommitRecord], now: datetime) -> dict[str, Any]:
    """All-time quality, plus the last 30 days graded against the 30 before them.

    `trend` is None until both windows hold scorable commits.
    """
    metrics = analyze_commit_quality(commits).as_dict()
    recent = analyze_recent_commit_quality(commits, QUALITY_TREND_DAYS, now)

    window_end = now - timedelta(days=QUALITY_TREND_DAYS)
    window_start = window_end - timedelta(days=QUALITY_TREND_DAYS)
    previous = analyze_commit_quality(
        [
            c
            for c in commits
            if c.authored_at is not None and window_start <= to_utc(c.authored_at) < window_end
        ]
    )

    metrics["recent_grade"] = recent.quality_grade if recent.total_analyzed else None
    metrics["trend"] = (
        asdict(compare_quality_periods(recent, previous))
        if recent.total_analyzed and previous.total_analyzed
        else None
    )
    return metrics


def compute_analytics(
    repositories: Sequence[RepositoryRecord],
    commits: Sequence[CommitRecord],
    now: datetime | None = None,
) -> AnalyticsResult:
    """Derive every snapshot field from the user's stored data.

    Commits without an authored_at count toward totals but are left out of
    every date-based histogram.
    """
    now = to_utc(now or datetime.now(UTC))
    dates = sorted(to_utc(c.authored_at) for c in commits if c.authored_at is not None)

    commits_per_repo = Counter(str(c.repository_id) for c in commits)
    language_stats = aggregate_language_stats(
        (repo.language, commits_per_repo.get(str(repo.id), 0)) for repo in repositories
    )
    top_languages = get_top_languages(language_stats, TOP_LANGUAGE_LIMIT)

    streak = calculate_streaks(dates, now)
    daily_commits = calculate_daily_commits(dates, now)
    day_of_week_stats = calculate_day_of_week_stats(dates)
    hourly_stats = calculate_hourly_stats(dates)
    average_per_day = calculate_average_commits_per_day(daily_commits)

    persona_context = PersonaContext(
        hourly_stats=hourly_stats,
        day_of_week_stats=day_of_week_stats,
        top_languages=top_languages,
        current_streak=streak.current_streak,
        total_commits=len(commits),
        total_repos=len(repositories),
        commits_per_active_day=average_per_day,
    )
    persona = detect_persona(persona_context)

    return AnalyticsResult(
        total_repos=len(repositories),
        total_commits=len(commits),
        total_additions=sum(c.additions for c in commits),
        total_deletions=sum(c.deletions for c in commits),
        total_stars=sum(r.stars_count for r in repositories),
        total_forks=sum(r.forks_count for r in repositories),
        current_streak=streak.current_streak,
        longest_streak=streak.longest_streak,
        last_commit_date=streak.last_commit_date,
        is_active_today=streak.is_active_today,
        language_stats=language_stats,
        top_languages=top_languages,
        daily_commits=daily_commits,
        day_of_week_stats=day_of_week_stats,
        hourly_stats=hourly_stats,
        repo_stats=build_repo_stats(repositories, commits),
        code_impact=analyze_code_impact(commits).as_dict(),
        commit_quality=build_commit_quality(commits, now),
        persona={
            **persona.as_dict(),
            "earned": [p.as_dict() for p in get_earned_personas(persona_context)],
        },
        average_commits_per_day=average_per_day,
        most_productive_day=_busiest(day_of_week_stats, "Monday"),
        most_productive_hour=int(_busiest(hourly_stats, "0")),
        calculated_at=now,
        data_range_start=dates[0] if dates else None,
        data_range_end=dates[-1] if dates else None,
    )


class AnalyticsAggregator:
    """Reads and maintains the cached analytics snapshot for a user."""

    async def compute(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
        now: datetime | None = None,
    ) -> AnalyticsResult:
        repositories = await repository_ops.list_by_user(db, user_id)
        commits = await commit_ops.list_for_user_analysis(db, user_id)
        return compute_analytics(
            [RepositoryRecord.from_model(r) for r in repositories],
            [CommitRecord.from_model(c) for c in commits],
            now,
        )

    async def refresh_analytics(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
    ) -> AnalyticsSnapshot:
        """Recompute and overwrite the snapshot. The caller commits."""
        result = await self.compute(db, user_id)
        snapshot = await analytics_snapshot_ops.upsert(db, user_id, result.to_snapshot_values())
        logger.info(
            f"Analytics refreshed for user {user_id}: "
            f"{result.total_commits} commits across {result.total_repos} repositories"
        )
        return snapshot

    async def get_analytics(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
    ) -> AnalyticsSnapshot:
        """Cached snapshot regardless of age; computed only when none exists."""
        snapshot = await analytics_snapshot_ops.get_by_user(db, user_id)
        if snapshot is not None:
            return snapshot
        return await self.refresh_analytics(db, user_id)

    async def has_analytics_data(self, db: AsyncSession, user_id: uuid_pkg.UUID) -> bool:
        return await analytics_snapshot_ops.has_data(db, user_id)

    async def get_quick_stats(
        self,
        db: AsyncSession,
        user_id: uuid_pkg.UUID,
    ) -> dict[str, Any] | None:
        return await analytics_snapshot_ops.get_quick_stats(db, user_id)


analytics_aggregator = AnalyticsAggregator()
