"""
Points and Streak Tests
=======================
"""

from datetime import date, timedelta

from gather.utils.points import (
    calculate_level,
    calculate_momentum_bonus,
    format_points,
    get_garden_stage,
    get_level_progress,
    get_level_up_message,
    is_first_activity_today,
    update_momentum_days,
    would_level_up,
)
from gather.utils.streaks import (
    best_streak,
    calculate_new_streak,
    current_streak,
    is_habit_due_today,
)

# A Sunday
TODAY = date(2026, 10, 18)
YESTERDAY = TODAY - timedelta(days=1)


class TestLevels:

    def test_calculate_level(self):
        assert calculate_level(0) == 1
        assert calculate_level(99) == 1
        assert calculate_level(100) == 2
        assert calculate_level(4500) == 10
        assert calculate_level(100000) == 10

    def test_garden_stage(self):
        assert get_garden_stage(1) == "seed"
        assert get_garden_stage(5) == "growing"
        assert get_garden_stage(10) == "full-garden"
        assert get_garden_stage(0) == "seed"

    def test_level_progress(self):
        progress = get_level_progress(150)

        assert progress == {
            "currentLevel": 2,
            "nextLevel": 3,
            "currentThreshold": 100,
            "nextThreshold": 300,
            "progress": 25,
            "pointsToNext": 150,
        }

    def test_level_progress_at_max(self):
        progress = get_level_progress(5000)

        assert progress["currentLevel"] == 10
        assert progress["nextLevel"] is None
        assert progress["pointsToNext"] is None
        assert progress["progress"] == 100

    def test_would_level_up(self):
        assert would_level_up(90, 10)
        assert not would_level_up(90, 5)

    def test_level_up_message(self):
        assert get_level_up_message(2) == "Your garden sprouted!"
        assert get_level_up_message(11) == "Level 11!"


class TestMomentum:

    def test_bonus_thresholds(self):
        assert calculate_momentum_bonus(2) == 0
        assert calculate_momentum_bonus(3) == 15
        assert calculate_momentum_bonus(6) == 15
        assert calculate_momentum_bonus(7) == 50

    def test_first_activity(self):
        assert is_first_activity_today(None, TODAY)
        assert is_first_activity_today(YESTERDAY, TODAY)
        assert not is_first_activity_today(TODAY, TODAY)

    def test_update_days(self):
        assert update_momentum_days(None, 0, None, TODAY) == 1
        assert update_momentum_days(TODAY, 4, None, TODAY) == 4
        assert update_momentum_days(YESTERDAY, 4, None, TODAY) == 5

    def test_gap_restarts_at_one(self):
        assert update_momentum_days(TODAY - timedelta(days=3), 6, None, TODAY) == 1

    def test_pause_holds_count(self):
        assert update_momentum_days(TODAY - timedelta(days=5), 6, TODAY, TODAY) == 6
        assert update_momentum_days(TODAY - timedelta(days=5), 6, YESTERDAY, TODAY) == 1


def test_format_points():
    assert format_points(999) == "999"
    assert format_points(1500) == "1.5k"


class TestTaskStreak:

    def test_first_completion(self):
        assert calculate_new_streak(0, None, TODAY) == (1, True)

    def test_same_day(self):
        assert calculate_new_streak(3, TODAY, TODAY) == (3, False)

    def test_consecutive_day(self):
        assert calculate_new_streak(3, YESTERDAY, TODAY) == (4, True)

    def test_gap_restarts(self):
        assert calculate_new_streak(3, TODAY - timedelta(days=2), TODAY) == (1, True)


class TestHabitDue:

    def test_no_recurrence(self):
        assert not is_habit_due_today(None, TODAY)

    def test_daily(self):
        assert is_habit_due_today({"frequency": "daily"}, TODAY)

    def test_weekly_uses_sunday_zero(self):
        assert is_habit_due_today({"frequency": "weekly", "days": [0]}, TODAY)
        assert not is_habit_due_today({"frequency": "weekly", "days": [1]}, TODAY)
        assert is_habit_due_today({"frequency": "weekly", "days": []}, TODAY)

    def test_monthly(self):
        assert is_habit_due_today({"frequency": "monthly", "days": [18]}, TODAY)
        assert not is_habit_due_today({"frequency": "monthly", "days": [1]}, TODAY)


class TestLogStreaks:

    def test_current_streak_including_today(self):
        logs = [TODAY, YESTERDAY, TODAY - timedelta(days=2)]
        assert current_streak(logs, TODAY) == 3

    def test_current_streak_ending_yesterday(self):
        logs = [YESTERDAY, TODAY - timedelta(days=2)]
        assert current_streak(logs, TODAY) == 2

    def test_broken_streak(self):
        assert current_streak([TODAY - timedelta(days=2)], TODAY) == 0

    def test_best_streak(self):
        start = date(2026, 10, 1)
        logs = [start, start + timedelta(days=1), start + timedelta(days=2), start + timedelta(days=4), start + timedelta(days=5)]
        assert best_streak(logs) == 3
        assert best_streak([]) == 0
