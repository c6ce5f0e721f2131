"""Unit tests for streak calculation and the rounding helpers it relies on."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, timezone

from app.services.analytics.streaks import (
    StreakData,
    calculate_streaks,
    get_days_to_milestone,
    get_streak_health,
    get_streak_status_message,
)
from app.services.analytics.utils import (
    coefficient_of_variation,
    mean,
    population_std,
    round_half_up,
    utc_day,
)

NOW = datetime(2026, 6, 15, 12, 0, tzinfo=UTC)


def _days_ago(*offsets: int) -> list[datetime]:
    return [NOW - timedelta(days=offset) for offset in offsets]


# ═══════════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════════


class TestRoundHalfUp:
    def test_halves_round_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4

    def test_negative_halves_round_toward_positive(self):
        assert round_half_up(-2.5) == -2

    def test_returns_int_without_digits(self):
        assert isinstance(round_half_up(1.2), int)

    def test_decimal_places(self):
        assert round_half_up(0.125, 2) == 0.13
        assert round_half_up(4.44, 1) == 4.4


class TestSpread:
    def test_empty_input_is_zero(self):
        assert mean([]) == 0.0
        assert population_std([]) == 0.0
        assert coefficient_of_variation([]) == 0.0

    def test_population_deviation(self):
        values = [2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]
        assert mean(values) == 5.0
        assert population_std(values) == 2.0
        assert coefficient_of_variation(values) == 0.4

    def test_single_value_has_no_spread(self):
        assert population_std([3.0]) == 0.0


class TestUtcDay:
    def test_aware_datetime_is_converted(self):
        late_evening = datetime(2026, 6, 14, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        assert utc_day(late_evening) == date(2026, 6, 15)

    def test_naive_datetime_is_treated_as_utc(self):
        assert utc_day(datetime(2026, 6, 14, 23, 30)) == date(2026, 6, 14)


# ═══════════════════════════════════════════════════════════════════════════
# calculate_streaks
# ═══════════════════════════════════════════════════════════════════════════


class TestCalculateStreaks:
    def test_no_commits(self):
        streak = calculate_streaks([], NOW)

        assert streak.current_streak == 0
        assert streak.longest_streak == 0
        assert streak.last_commit_date is None

    def test_run_ending_today(self):
        streak = calculate_streaks(_days_ago(0, 1, 2), NOW)

        assert streak.current_streak == 3
        assert streak.longest_streak == 3
        assert streak.is_active_today is True
        assert streak.streak_start_date == date(2026, 6, 13)

    def test_run_ending_yesterday_still_counts(self):
        streak = calculate_streaks(_days_ago(1, 2), NOW)

        assert streak.current_streak == 2
        assert streak.is_active_today is False

    def test_gap_of_two_days_breaks_current_streak(self):
        streak = calculate_streaks(_days_ago(2, 3, 4), NOW)

        assert streak.current_streak == 0
        assert streak.longest_streak == 3
        assert streak.streak_start_date is None

    def test_longest_run_can_be_in_the_past(self):
        streak = calculate_streaks(_days_ago(0, 20, 21, 22, 23), NOW)

        assert streak.current_streak == 1
        assert streak.longest_streak == 4

    def test_several_commits_on_one_day_count_once(self):
        same_day = [NOW - timedelta(hours=h) for h in (1, 2, 3)]
        streak = calculate_streaks(same_day, NOW)

        assert streak.current_streak == 1
        assert streak.longest_streak == 1

    def test_last_commit_date_is_latest_timestamp(self):
        dates = _days_ago(3, 0, 5)
        assert calculate_streaks(dates, NOW).last_commit_date == NOW

    def test_days_are_utc_calendar_days(self):
        # 23:30 at UTC-5 on the 14th is already the 15th in UTC
        local = datetime(2026, 6, 14, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
        streak = calculate_streaks([local], NOW)

        assert streak.is_active_today is True

    def test_as_dict_serializes_dates(self):
        data = calculate_streaks(_days_ago(0), NOW).as_dict()

        assert data["last_commit_date"] == NOW.isoformat()
        assert data["streak_start_date"] == "2026-06-15"


# ═══════════════════════════════════════════════════════════════════════════
# Health, milestones and messages
# ═══════════════════════════════════════════════════════════════════════════


class TestStreakHealth:
    def test_no_streak_is_inactive(self):
        assert get_streak_health(StreakData(), NOW) == "inactive"

    def test_long_streak_active_today_is_excellent(self):
        streak = StreakData(current_streak=7, is_active_today=True, last_commit_date=NOW)
        assert get_streak_health(streak, NOW) == "excellent"

    def test_short_streak_active_today_is_good(self):
        streak = StreakData(current_streak=2, is_active_today=True, last_commit_date=NOW)
        assert get_streak_health(streak, NOW) == "good"

    def test_committed_recently_but_not_today_is_warning(self):
        streak = StreakData(current_streak=3, last_commit_date=NOW - timedelta(hours=20))
        assert get_streak_health(streak, NOW) == "warning"

    def test_streak_about_to_lapse_is_danger(self):
        streak = StreakData(current_streak=3, last_commit_date=NOW - timedelta(hours=40))
        assert get_streak_health(streak, NOW) == "danger"


class TestDaysToMilestone:
    def test_first_milestone(self):
        assert get_days_to_milestone(0) == {"milestone": 7, "days_remaining": 7}

    def test_reaching_a_milestone_targets_the_next(self):
        assert get_days_to_milestone(7) == {"milestone": 14, "days_remaining": 7}

    def test_after_a_year_there_is_none(self):
        assert get_days_to_milestone(365) is None


class TestStatusMessage:
    def test_no_commits(self):
        assert get_streak_status_message(StreakData(), NOW) == (
            "No commits yet. Start your streak today!"
        )

    def test_lapsed_streak_mentions_days(self):
        streak = StreakData(last_commit_date=NOW - timedelta(days=3))
        assert get_streak_status_message(streak, NOW) == "No active streak. Last commit 3 days ago."

    def test_week_long_streak(self):
        streak = StreakData(current_streak=10, is_active_today=True, last_commit_date=NOW)
        assert get_streak_status_message(streak, NOW) == "10 day streak! You're on fire!"
