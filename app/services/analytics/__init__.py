"""Derived analytics: pure calculators plus the snapshot aggregator."""

from app.services.analytics.aggregator import (
    AnalyticsAggregator,
    AnalyticsResult,
    analytics_aggregator,
    compute_analytics,
)
from app.services.analytics.code_impact import analyze_code_impact
from app.services.analytics.commit_quality import analyze_commit_quality
from app.services.analytics.comparison import calculate_comparative_period
from app.services.analytics.insights import build_analytics_summary
from app.services.analytics.persona import detect_persona
from app.services.analytics.streaks import calculate_streaks
from app.services.analytics.types import CommitRecord, RepositoryRecord
from app.services.analytics.weekly_summary import build_weekly_summary

__all__ = [
    "AnalyticsAggregator",
    "AnalyticsResult",
    "CommitRecord",
    "RepositoryRecord",
    "analytics_aggregator",
    "analyze_code_impact",
    "analyze_commit_quality",
    "build_analytics_summary",
    "build_weekly_summary",
    "calculate_comparative_period",
    "calculate_streaks",
    "compute_analytics",
    "detect_persona",
]
