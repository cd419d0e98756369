"""
Points Calculator
=================

Gentle gamification: frequent small wins and no punishment. Missed days
pause momentum instead of taking points away.
"""

from datetime import date
from typing import Any, Optional

POINT_VALUES = {
    "step": 5,
    "task": 25,
    "habit": 10,
    "first_task_today": 10,
    "momentum_3": 15,
    "momentum_7": 50,
    "weekly_reflection": 20,
    "level_up": 50,
}

# Lifetime points needed for levels 1..10
LEVEL_THRESHOLDS = [0, 100, 300, 600, 1000, 1500, 2100, 2800, 3600, 4500]

GARDEN_STAGES = [
    "seed",
    "sprout",
    "seedling",
    "small-plant",
    "growing",
    "budding",
    "blooming",
    "flowering",
    "flourishing",
    "full-garden",
]

LEVEL_UP_MESSAGES = {
    2: "Your garden sprouted!",
    3: "Growing nicely!",
    4: "Look at you go!",
    5: "Halfway to full bloom!",
    6: "Buds are forming!",
    7: "Beautiful blooms!",
    8: "Flourishing garden!",
    9: "Almost there!",
    10: "Full garden achieved!",
}


def calculate_level(lifetime_points: int) -> int:
    """Level (1-10) for a lifetime point total."""
    for index in range(len(LEVEL_THRESHOLDS) - 1, -1, -1):
        if lifetime_points >= LEVEL_THRESHOLDS[index]:
            return index + 1
    return 1


def get_garden_stage(level: int) -> str:
    index = min(level - 1, len(GARDEN_STAGES) - 1)
    return GARDEN_STAGES[max(0, index)]


def get_level_progress(lifetime_points: int) -> dict:
    """
    Progress towards the next level.

    Returns:
        Dict with currentLevel, nextLevel, currentThreshold, nextThreshold,
        progress (0-100) and pointsToNext. The ``next*`` fields are None at
        max level.
    """
    current_level = calculate_level(lifetime_points)
    current_threshold = LEVEL_THRESHOLDS[current_level - 1]

    if current_level >= len(LEVEL_THRESHOLDS):
        return {
            "currentLevel": current_level,
            "nextLevel": None,
            "currentThreshold": current_threshold,
            "nextThreshold": None,
            "progress": 100,
            "pointsToNext": None,
        }

    next_threshold = LEVEL_THRESHOLDS[current_level]
    level_range = next_threshold - current_threshold
    into_level = lifetime_points - current_threshold
    progress = min(100, round(into_level / level_range * 100))

    return {
        "currentLevel": current_level,
        "nextLevel": current_level + 1,
        "currentThreshold": current_threshold,
        "nextThreshold": next_threshold,
        "progress": progress,
        "pointsToNext": next_threshold - lifetime_points,
    }


def would_level_up(current_lifetime: int, points_to_add: int) -> bool:
    return calculate_level(current_lifetime + points_to_add) > calculate_level(current_lifetime)


def calculate_momentum_bonus(consecutive_days: int) -> int:
    if consecutive_days >= 7:
        return POINT_VALUES["momentum_7"]
    if consecutive_days >= 3:
        return POINT_VALUES["momentum_3"]
    return 0


def is_first_activity_today(last_activity: Optional[date], today: date) -> bool:
    return last_activity is None or last_activity != today


def update_momentum_days(
    last_activity: Optional[date],
    current_days: int,
    pause_until: Optional[date],
    today: date,
) -> int:
    """
    Next momentum day count.

    While paused the count is held. A gap restarts at 1; momentum is never
    taken below that.
    """
    if pause_until is not None and today <= pause_until:
        return current_days

    if last_activity is None:
        return 1

    diff = (today - last_activity).days
    if diff == 0:
        return current_days
    if diff == 1:
        return current_days + 1
    return 1


def format_points(points: int) -> str:
    if points >= 1000:
        return f"{points / 1000:.1f}k"
    return str(points)


def get_level_up_message(level: int) -> str:
    return LEVEL_UP_MESSAGES.get(level, f"Level {level}!")


# Award keys name one rewardable thing; RewardsService pays each key once.

def habit_award_key(habit_id: Any, day: date) -> str:
    return f"habit:{habit_id}:{day.isoformat()}"


def step_award_key(task_id: Any, step_id: str) -> str:
    return f"step:{task_id}:{step_id}"


def task_award_key(task_id: Any, day: Optional[date] = None) -> str:
    """One award per task, or per task per day for recurring habit tasks."""
    if day is None:
        return f"task:{task_id}"
    return f"task:{task_id}:{day.isoformat()}"


def reflection_award_key(week_start: date) -> str:
    return f"reflection:{week_start.isoformat()}"
