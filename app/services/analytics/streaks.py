"""
Streak calculations.

A streak is a run of consecutive UTC calendar days with at least one
commit. The current streak survives a one-day gap: if the last active day
is yesterday the streak still counts, so a user has until the end of
today to extend it.
"""

from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from typing import Any

from app.services.analytics.utils import to_utc, unique_days

STREAK_MILESTONES = [7, 14, 30, 50, 100, 150, 200, 365]


@dataclass
class StreakData:
    current_streak: int = 0
    longest_streak: int = 0
    last_commit_date: datetime | None = None
    streak_start_date: date | None = None
    is_active_today: bool = False

    def as_dict(self) -> dict[str, Any]:
        return {
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "last_commit_date": (
                self.last_commit_date.isoformat() if self.last_commit_date else None
            ),
            "streak_start_date": (
                self.streak_start_date.isoformat() if self.streak_start_date else None
            ),
            "is_active_today": self.is_active_today,
        }


def calculate_streaks(commit_dates: list[datetime], now: datetime | None = None) -> StreakData:
    """Current and longest streak from commit timestamps."""
    if not commit_dates:
        return StreakData()

    now = to_utc(now or datetime.now(UTC))
    days = unique_days(commit_dates)

    longest = 1
    run = 1
    for prev, curr in zip(days, days[1:]):
        if (curr - prev).days == 1:
            run += 1
            longest = max(longest, run)
        else:
            run = 1

    today = now.date()
    last_day = days[-1]
    is_active_today = last_day == today

    current = 0
    streak_start: date | None = None
    if last_day in (today, today - timedelta(days=1)):
        current = 1
        streak_start = last_day
        for index in range(len(days) - 2, -1, -1):
            if (days[index + 1] - days[index]).days != 1:
                break
            current += 1
            streak_start = days[index]

    return StreakData(
        current_streak=current,
        longest_streak=longest,
        last_commit_date=max(to_utc(d) for d in commit_dates),
        streak_start_date=streak_start,
        is_active_today=is_active_today,
    )


def get_streak_status_message(streak: StreakData, now: datetime | None = None) -> str:
    now = to_utc(now or datetime.now(UTC))
    current = streak.current_streak

    if current == 0:
        if streak.last_commit_date:
            days_since = (now - to_utc(streak.last_commit_date)).days
            if days_since == 0:
                return "Start your streak today!"
            plural = "" if days_since == 1 else "s"
            return f"No active streak. Last commit {days_since} day{plural} ago."
        return "No commits yet. Start your streak today!"

    if current == 1:
        if streak.is_active_today:
            return "Great start! Keep it going tomorrow."
        return "Commit today to continue your streak!"
    if current < 7:
        return f"{current} day streak! Building momentum."
    if current < 30:
        return f"{current} day streak! You're on fire!"
    if current < 100:
        return f"{current} day streak! Incredible dedication!"
    return f"{current} day streak! Legendary commitment!"


def get_streak_health(streak: StreakData, now: datetime | None = None) -> str:
    """One of excellent, good, warning, danger, inactive."""
    if streak.current_streak == 0:
        return "inactive"

    if streak.is_active_today:
        return "excellent" if streak.current_streak >= 7 else "good"

    if streak.last_commit_date:
        now = to_utc(now or datetime.now(UTC))
        hours_since = (now - to_utc(streak.last_commit_date)).total_seconds() / 3600
        return "warning" if hours_since < 36 else "danger"

    return "inactive"


def get_days_to_milestone(current_streak: int) -> dict[str, int] | None:
    """Next milestone and days remaining, or None once 365 is reached."""
    for milestone in STREAK_MILESTONES:
        if current_streak < milestone:
            return {"milestone": milestone, "days_remaining": milestone - current_streak}
    return None
