"""
Period-over-period comparison.

The current window is the last `period_days` UTC days ending today
(inclusive); the previous window is the `period_days` days before it.
"""

from dataclasses import asdict, dataclass
from datetime import UTC, date, datetime, timedelta
from typing import Any

from app.services.analytics.utils import round_half_up, to_utc


@dataclass
class PeriodMetrics:
    current: float
    previous: float
    change: float
    change_percent: float
    trend: str
    is_improvement: bool


@dataclass
class ComparativePeriodData:
    period_days: int
    total_commits: PeriodMetrics
    average_per_day: PeriodMetrics
    active_days: PeriodMetrics
    max_day_commits: PeriodMetrics
    streak: PeriodMetrics

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class _WindowTotals:
    commits: int = 0
    days: int = 0
    active_days: int = 0
    max_day: int = 0


def _window(daily_commits: dict[str, int], start: date, days: int) -> _WindowTotals:
    totals = _WindowTotals(days=days)
    for offset in range(days):
        count = daily_commits.get((start + timedelta(days=offset)).isoformat(), 0)
        totals.commits += count
        totals.max_day = max(totals.max_day, count)
        if count > 0:
            totals.active_days += 1
    return totals


def calculate_trend(change_percent: float) -> str:
    if abs(change_percent) < 0.5:
        return "stable"
    return "up" if change_percent > 0 else "down"


def create_period_metrics(current: float, previous: float) -> PeriodMetrics:
    change = current - previous
    if previous > 0:
        change_percent = change / previous * 100
    else:
        change_percent = 100.0 if current > 0 else 0.0

    trend = calculate_trend(change_percent)
    return PeriodMetrics(
        current=current,
        previous=previous,
        change=change,
        change_percent=change_percent,
        trend=trend,
        is_improvement=trend == "up" or (trend == "stable" and current > 0),
    )


def calculate_comparative_period(
    daily_commits: dict[str, int] | None,
    period_days: int = 30,
    current_streak: int = 0,
    previous_streak: int = 0,
    now: datetime | None = None,
) -> ComparativePeriodData:
    """Compare two adjacent windows of `period_days` days.

    `daily_commits` maps ISO dates (YYYY-MM-DD, UTC) to commit counts.
    """
    daily_commits = daily_commits or {}
    today = to_utc(now or datetime.now(UTC)).date()
    current_start = today - timedelta(days=period_days - 1)
    previous_start = current_start - timedelta(days=period_days)

    current = _window(daily_commits, current_start, period_days)
    previous = _window(daily_commits, previous_start, period_days)

    return ComparativePeriodData(
        period_days=period_days,
        total_commits=create_period_metrics(current.commits, previous.commits),
        average_per_day=create_period_metrics(
            current.commits / period_days if period_days else 0,
            previous.commits / period_days if period_days else 0,
        ),
        active_days=create_period_metrics(current.active_days, previous.active_days),
        max_day_commits=create_period_metrics(current.max_day, previous.max_day),
        streak=create_period_metrics(current_streak, previous_streak),
    )


def calculate_week_over_week(
    daily_commits: dict[str, int] | None,
    current_streak: int = 0,
    previous_streak: int = 0,
    now: datetime | None = None,
) -> ComparativePeriodData:
    return calculate_comparative_period(daily_commits, 7, current_streak, previous_streak, now)


def calculate_quarter_over_quarter(
    daily_commits: dict[str, int] | None,
    current_streak: int = 0,
    previous_streak: int = 0,
    now: datetime | None = None,
) -> ComparativePeriodData:
    return calculate_comparative_period(daily_commits, 90, current_streak, previous_streak, now)


def format_change_percent(percent: float) -> str:
    sign = "+" if percent > 0 else ""
    return f"{sign}{round_half_up(percent)}%"


def get_period_label(period_days: int) -> str:
    return f"{period_days}d"
