"""Monday-to-Sunday weekly summary for the dashboard widget."""

from dataclasses import asdict, dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import Any

from app.services.analytics.utils import DAY_NAMES, SHORT_DAY_NAMES, round_half_up, to_utc

WEEKLY_MILESTONES: list[tuple[int, str]] = [
    (7, "1-week"),
    (14, "2-week"),
    (21, "3-week"),
    (30, "1-month"),
    (50, "50-day"),
    (75, "75-day"),
    (100, "100-day"),
    (150, "150-day"),
    (200, "200-day"),
    (365, "1-year"),
]


@dataclass
class DayCount:
    date: str
    commits: int
    day_name: str


@dataclass
class WeekData:
    week_number: int
    year: int
    start_date: date
    end_date: date
    total_commits: int = 0
    daily_breakdown: list[DayCount] = field(default_factory=list)
    active_days: int = 0
    best_day: DayCount | None = None
    weekend_commits: int = 0
    weekday_commits: int = 0


@dataclass
class WeekComparison:
    commits_diff: int
    commits_percent_change: int
    active_days_diff: int
    weekend_change: int
    trend: str


@dataclass
class StreakInfo:
    current: int
    is_active: bool
    days_to_milestone: int | None
    next_milestone: int | None
    milestone_label: str | None


@dataclass
class WeeklySummary:
    current_week: WeekData
    previous_week: WeekData
    comparison: WeekComparison
    highlights: dict[str, Any]
    streak_info: StreakInfo

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for key in ("current_week", "previous_week"):
            data[key]["start_date"] = data[key]["start_date"].isoformat()
            data[key]["end_date"] = data[key]["end_date"].isoformat()
        return data


def get_week_bounds(weeks_ago: int = 0, now: datetime | None = None) -> tuple[date, date]:
    today = to_utc(now or datetime.now(UTC)).date()
    monday = today - timedelta(days=today.weekday() + weeks_ago * 7)
    return monday, monday + timedelta(days=6)


def get_week_data(
    daily_commits: dict[str, int] | None, weeks_ago: int = 0, now: datetime | None = None
) -> WeekData:
    daily_commits = daily_commits or {}
    start, end = get_week_bounds(weeks_ago, now)
    iso_year, iso_week, _ = start.isocalendar()
    week = WeekData(week_number=iso_week, year=iso_year, start_date=start, end_date=end)

    for offset in range(7):
        day = start + timedelta(days=offset)
        key = day.isoformat()
        commits = daily_commits.get(key, 0)
        week.total_commits += commits
        week.daily_breakdown.append(
            DayCount(date=key, commits=commits, day_name=SHORT_DAY_NAMES[day.weekday()])
        )

        if commits > 0:
            week.active_days += 1
            if day.weekday() >= 5:
                week.weekend_commits += commits
            else:
                week.weekday_commits += commits
            if week.best_day is None or commits > week.best_day.commits:
                week.best_day = DayCount(
                    date=key, commits=commits, day_name=DAY_NAMES[day.weekday()]
                )

    return week


def _percent_change(current: int, previous: int) -> int:
    if previous > 0:
        return round_half_up((current - previous) / previous * 100)
    return 100 if current > 0 else 0


def compare_weeks(current: WeekData, previous: WeekData) -> WeekComparison:
    percent = _percent_change(current.total_commits, previous.total_commits)
    if abs(percent) < 5:
        trend = "stable"
    else:
        trend = "up" if percent > 0 else "down"

    return WeekComparison(
        commits_diff=current.total_commits - previous.total_commits,
        commits_percent_change=percent,
        active_days_diff=current.active_days - previous.active_days,
        weekend_change=_percent_change(current.weekend_commits, previous.weekend_commits),
        trend=trend,
    )


def _format_hour(hour: int) -> str:
    if hour == 0:
        return "12 AM"
    if hour == 12:
        return "12 PM"
    return f"{hour - 12} PM" if hour > 12 else f"{hour} AM"


def get_most_active_hour(hourly_stats: dict[str, int] | None) -> dict[str, Any] | None:
    """Busiest hour with a two-hour window label, e.g. "2 PM-4 PM"."""
    if not hourly_stats:
        return None

    max_hour = 0
    max_count = 0
    for hour, count in hourly_stats.items():
        if count > max_count:
            max_count = count
            max_hour = int(hour)

    if max_count == 0:
        return None

    return {
        "hour": max_hour,
        "label": f"{_format_hour(max_hour)}-{_format_hour((max_hour + 2) % 24)}",
    }


def get_streak_milestone_info(current_streak: int) -> StreakInfo:
    for milestone, label in WEEKLY_MILESTONES:
        if current_streak < milestone:
            return StreakInfo(
                current=current_streak,
                is_active=current_streak > 0,
                days_to_milestone=milestone - current_streak,
                next_milestone=milestone,
                milestone_label=label,
            )
    return StreakInfo(
        current=current_streak,
        is_active=current_streak > 0,
        days_to_milestone=None,
        next_milestone=None,
        milestone_label=None,
    )


def build_weekly_summary(
    daily_commits: dict[str, int] | None,
    hourly_stats: dict[str, int] | None,
    current_streak: int = 0,
    is_active_today: bool = False,
    repo_stats: list[dict[str, Any]] | None = None,
    now: datetime | None = None,
) -> WeeklySummary:
    current_week = get_week_data(daily_commits, 0, now)
    previous_week = get_week_data(daily_commits, 1, now)

    repo_stats = repo_stats or []
    top_repos = [
        r["name"] for r in sorted(repo_stats, key=lambda r: r["commits"], reverse=True)[:3]
    ]

    best = current_week.best_day
    highlights = {
        "best_day": {"day_name": best.day_name, "commits": best.commits} if best else None,
        "most_active_hour": get_most_active_hour(hourly_stats),
        "top_repos": top_repos,
        "total_repos_touched": len([r for r in repo_stats if r["commits"] > 0]),
    }

    streak_info = get_streak_milestone_info(current_streak)
    streak_info.is_active = is_active_today

    return WeeklySummary(
        current_week=current_week,
        previous_week=previous_week,
        comparison=compare_weeks(current_week, previous_week),
        highlights=highlights,
        streak_info=streak_info,
    )
