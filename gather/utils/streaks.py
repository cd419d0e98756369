"""
Streaks
=======

Streak helpers for daily habits (from habit logs) and for recurring
habit-type tasks (from the task's own streak record).
"""

from datetime import date, timedelta
from typing import Iterable, Optional

from gather.utils.helpers import js_weekday


def calculate_new_streak(
    current: int,
    last_completed: Optional[date],
    today: date,
) -> tuple[int, bool]:
    """
    Streak after completing a recurring habit-type task today.

    Returns:
        ``(new_streak, incremented)``. Same-day completions leave it
        unchanged; yesterday extends it; anything older restarts at 1.
    """
    if last_completed is None:
        return 1, True
    if last_completed == today:
        return current, False
    if last_completed == today - timedelta(days=1):
        return current + 1, True
    return 1, True


def is_habit_due_today(recurrence: Optional[dict], today: date) -> bool:
    """
    Whether a recurring item should show today.

    ``weekly`` days are 0-6 with 0 = Sunday; ``monthly`` days are 1-31.
    An empty day list means every period.
    """
    if not recurrence:
        return False

    frequency = recurrence.get("frequency")
    days = recurrence.get("days") or []

    if frequency == "weekly":
        return not days or js_weekday(today) in days
    if frequency == "monthly":
        return not days or today.day in days
    return True


def current_streak(log_dates: Iterable[date], today: date) -> int:
    """
    Consecutive logged days ending today.

    If today isn't logged yet the run may end yesterday, so an unchecked
    habit doesn't look broken first thing in the morning.
    """
    logged = set(log_dates)
    cursor = today if today in logged else today - timedelta(days=1)

    streak = 0
    while cursor in logged:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def best_streak(log_dates: Iterable[date]) -> int:
    """Longest run of consecutive logged days."""
    ordered = sorted(set(log_dates))
    best = 0
    run = 0
    previous: Optional[date] = None
    for day in ordered:
        if previous is not None and day - previous == timedelta(days=1):
            run += 1
        else:
            run = 1
        best = max(best, run)
        previous = day
    return best
