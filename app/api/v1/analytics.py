"""
Analytics endpoints.

Reads go through the cached per-user snapshot; only an explicit refresh
(or a missing snapshot) re-reads every stored commit.
"""

import logging
from collections import Counter
from datetime import UTC, datetime, timedelta
from typing import Any

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.core.database import get_db
from app.core.exceptions import ValidationError
from app.core.rate_limit import ANALYTICS_REFRESH_LIMIT, rate_limiter
from app.domain import commit_ops
from app.models.analytics_snapshot import AnalyticsSnapshot
from app.models.user import User
from app.services.analytics import (
    analytics_aggregator,
    build_analytics_summary,
    build_weekly_summary,
    calculate_comparative_period,
)
from app.services.analytics.code_impact import get_churn_severity, get_impact_rating
from app.services.analytics.comparison import (
    calculate_quarter_over_quarter,
    calculate_week_over_week,
    format_change_percent,
    get_period_label,
)
from app.services.analytics.streaks import StreakData, get_streak_status_message
from app.services.analytics.utils import utc_day

router = APIRouter(prefix="/analytics", tags=["analytics"])
logger = logging.getLogger(__name__)

COMPARISON_PERIODS = (7, 30, 90)


def _serialize_snapshot(snapshot: AnalyticsSnapshot) -> dict[str, Any]:
    data = snapshot.model_dump(mode="json", exclude={"id", "user_id"})
    impact = snapshot.code_impact or {}
    if impact:
        data["code_impact"] = {
            **impact,
            "impact_rating": get_impact_rating(impact.get("impact_score", 0)),
            "churn_severity": get_churn_severity(impact.get("churn_rate", 0)),
        }
    data["streak_status"] = get_streak_status_message(
        StreakData(
            current_streak=snapshot.current_streak,
            longest_streak=snapshot.longest_streak,
            last_commit_date=snapshot.last_commit_date,
            is_active_today=snapshot.is_active_today,
        )
    )
    return data


async def _refresh(db: AsyncSession, user: User) -> AnalyticsSnapshot:
    rate_limiter.check_rate_limit(user.id, "analytics_refresh", ANALYTICS_REFRESH_LIMIT)
    return await analytics_aggregator.refresh_analytics(db, user.id)


async def _daily_counts_since(db: AsyncSession, user: User, since: datetime) -> dict[str, int]:
    dates = await commit_ops.list_user_dates_since(db, user.id, since)
    return dict(Counter(utc_day(d).isoformat() for d in dates))


@router.get("")
async def get_analytics(
    refresh: bool = Query(False, description="Recompute instead of using the cached snapshot"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    if refresh:
        snapshot = await _refresh(db, current_user)
    else:
        snapshot = await analytics_aggregator.get_analytics(db, current_user.id)
    return _serialize_snapshot(snapshot)


@router.head("")
async def has_analytics(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """200 with X-Has-Data: true when a snapshot with commits exists, else 204."""
    has_data = await analytics_aggregator.has_analytics_data(db, current_user.id)
    return Response(
        status_code=status.HTTP_200_OK if has_data else status.HTTP_204_NO_CONTENT,
        headers={"X-Has-Data": "true" if has_data else "false"},
    )


@router.post("/refresh")
async def refresh_analytics(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    snapshot = await _refresh(db, current_user)
    return {
        "data": _serialize_snapshot(snapshot),
        "message": "Analytics recalculated successfully",
    }


@router.get("/quick-stats")
async def get_quick_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    stats = await analytics_aggregator.get_quick_stats(db, current_user.id)
    if stats is None:
        return {
            "has_data": False,
            "total_commits": 0,
            "total_repos": 0,
            "current_streak": 0,
            "longest_streak": 0,
            "total_stars": 0,
            "is_active_today": False,
            "last_commit_date": None,
            "calculated_at": None,
        }

    return {
        "has_data": stats["total_commits"] > 0,
        **stats,
        "last_commit_date": (
            stats["last_commit_date"].isoformat() if stats["last_commit_date"] else None
        ),
        "calculated_at": stats["calculated_at"].isoformat(),
    }


@router.get("/comparison")
async def get_comparison(
    period_days: int = Query(30, description="One of 7, 30 or 90"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Current vs previous window of `period_days` days."""
    if period_days not in COMPARISON_PERIODS:
        raise ValidationError("period_days must be 7, 30 or 90")

    now = datetime.now(UTC)
    since = datetime.combine(
        now.date() - timedelta(days=period_days * 2 - 1), datetime.min.time(), tzinfo=UTC
    )
    daily = await _daily_counts_since(db, current_user, since)
    snapshot = await analytics_aggregator.get_analytics(db, current_user.id)

    if period_days == 7:
        comparison = calculate_week_over_week(
            daily, current_streak=snapshot.current_streak, now=now
        )
    elif period_days == 90:
        comparison = calculate_quarter_over_quarter(
            daily, current_streak=snapshot.current_streak, now=now
        )
    else:
        comparison = calculate_comparative_period(
            daily, period_days, current_streak=snapshot.current_streak, now=now
        )

    return {
        **comparison.as_dict(),
        "period_label": get_period_label(period_days),
        "total_commits_change": format_change_percent(comparison.total_commits.change_percent),
    }


@router.get("/weekly-summary")
async def get_weekly_summary(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    snapshot = await analytics_aggregator.get_analytics(db, current_user.id)
    summary = build_weekly_summary(
        snapshot.daily_commits,
        snapshot.hourly_stats,
        current_streak=snapshot.current_streak,
        is_active_today=snapshot.is_active_today,
        repo_stats=[
            {"name": r["name"], "commits": r["commits"]} for r in snapshot.repo_stats or []
        ],
    )
    return summary.as_dict()


@router.get("/insights-summary")
async def get_insights_summary(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Structured input for the AI insight generator."""
    snapshot = await analytics_aggregator.get_analytics(db, current_user.id)

    now = datetime.now(UTC)
    since = datetime.combine(now.date() - timedelta(days=59), datetime.min.time(), tzinfo=UTC)
    daily = await _daily_counts_since(db, current_user, since)
    comparison = calculate_comparative_period(daily, 30, now=now)

    messages = await commit_ops.list_recent_messages(db, current_user.id, limit=10)
    return build_analytics_summary(
        snapshot,
        previous_period_commits=int(comparison.total_commits.previous),
        recent_messages=messages,
        now=now,
    )
