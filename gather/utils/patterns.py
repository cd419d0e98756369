"""
Completion Patterns
===================

Learns when a user tends to get things done (weekday and hour buckets)
and how they respond to past insights. Feeds the task intelligence prompt.
"""

from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional, Sequence

DAY_LABELS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

# Minimum hours between insights per frequency preference
INSIGHT_FREQUENCY_HOURS = {
    "minimal": 168,
    "normal": 72,
    "frequent": 24,
}

DEFAULT_AVG_COMPLETION_DAYS = 7


def _get(row: Any, key: str) -> Any:
    if isinstance(row, dict):
        return row.get(key)
    return getattr(row, key, None)


def calculate_avg_completion_days(completed_tasks: Iterable[Any]) -> float:
    """
    Mean days from creation to completion.

    Only spans between 0 and 365 days count. Returns 7 when nothing usable.
    """
    total = 0.0
    count = 0
    for task in completed_tasks:
        created = _get(task, "created_at")
        completed = _get(task, "completed_at")
        if not created or not completed:
            continue
        days = (completed - created).total_seconds() / 86400
        if 0 <= days <= 365:
            total += days
            count += 1

    if count == 0:
        return DEFAULT_AVG_COMPLETION_DAYS
    return round(total / count, 1)


def format_hour(hour: int) -> str:
    if hour == 12:
        return "12pm"
    if hour > 12:
        return f"{hour - 12}pm"
    return f"{hour}am"


def analyze_user_patterns(
    completions: Sequence[Any],
    avg_completion_days: float = DEFAULT_AVG_COMPLETION_DAYS,
) -> dict:
    """
    Summarise completion rows into preferred weekdays and productive hours.

    Args:
        completions: Rows with ``completion_day_of_week`` (0 = Sunday) and
            ``completion_hour``
        avg_completion_days: Passed through to the result

    Returns:
        ``{avgCompletionDays, preferredDays, productiveHours, recentCompletions}``
    """
    if not completions:
        return {
            "avgCompletionDays": avg_completion_days,
            "preferredDays": [],
            "productiveHours": "unknown",
            "recentCompletions": 0,
        }

    day_count = Counter(_get(c, "completion_day_of_week") for c in completions)
    hour_count = Counter(_get(c, "completion_hour") for c in completions)

    # Ties resolve to the earlier weekday
    ranked_days = sorted(day_count.items(), key=lambda kv: (-kv[1], kv[0]))
    preferred = [DAY_LABELS[day] for day, _ in ranked_days[:2]]

    peak_hour = 10
    best = 0
    for hour in range(6, 21):
        cluster = hour_count.get(hour, 0) + hour_count.get(hour + 1, 0)
        if cluster > best:
            best = cluster
            peak_hour = hour

    return {
        "avgCompletionDays": avg_completion_days,
        "preferredDays": preferred,
        "productiveHours": f"{format_hour(peak_hour)}-{format_hour(peak_hour + 2)}",
        "recentCompletions": len(completions),
    }


def analyze_insight_history(insights: Sequence[Any], now: datetime) -> dict:
    """How the user has responded to past insights."""
    week_ago = now - timedelta(days=7)

    recent_task_ids = [
        str(_get(i, "task_id"))
        for i in insights
        if _get(i, "shown_at") and _get(i, "shown_at") > week_ago
    ]

    outcomes = [_outcome_value(_get(i, "outcome")) for i in insights]
    acted = sum(1 for o in outcomes if o in ("acted", "task_completed"))
    dismissed = sum(1 for o in outcomes if o == "dismissed")

    delays = [
        _get(i, "action_delay_hours")
        for i in insights
        if _get(i, "outcome") and _get(i, "action_delay_hours") is not None
    ]
    avg_delay = sum(delays) / len(delays) if delays else 0

    return {
        "totalShown": len(insights),
        "actedOn": acted,
        "dismissed": dismissed,
        "avgActionDelayHours": avg_delay,
        "recentTaskIds": recent_task_ids,
    }


def _outcome_value(outcome: Any) -> Optional[str]:
    if outcome is None:
        return None
    return getattr(outcome, "value", outcome)


def transform_task(task: Any) -> dict:
    """Reduce a task row to what the intelligence prompt needs."""
    steps = _get(task, "steps") or []
    category = _get(task, "category")
    due = _get(task, "due_date")
    return {
        "id": str(_get(task, "id")),
        "title": _get(task, "title"),
        "createdAt": _get(task, "created_at"),
        "category": getattr(category, "value", category),
        "dueDate": due.isoformat() if due else None,
        "stepsTotal": len(steps),
        "stepsDone": sum(1 for s in steps if s.get("done")),
        "lastInteraction": _get(task, "updated_at"),
        "notes": _get(task, "notes"),
    }


def task_summary_line(task: dict, now: datetime) -> str:
    """One prompt row: id, title, age, progress, deadline and last touch."""
    age_days = int((now - task["createdAt"]).total_seconds() // 86400)
    if task["stepsTotal"] > 0:
        progress = f"{task['stepsDone']}/{task['stepsTotal']} steps"
    else:
        progress = "no steps"
    deadline = f"due {task['dueDate']}" if task.get("dueDate") else "no deadline"
    if task.get("lastInteraction"):
        touched = int((now - task["lastInteraction"]).total_seconds() // 86400)
        last_touch = f"last touched {touched} days ago"
    else:
        last_touch = "never touched"

    return f'- [{task["id"]}] "{task["title"]}" | {age_days} days old | {progress} | {deadline} | {last_touch}'


# =============================================================================
# Weekly reflection
# =============================================================================

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def week_stats(completions: Sequence[Any], momentum_days: int = 0) -> dict:
    """
    Numbers for one week of task completions.

    Args:
        completions: Rows with ``completion_day_of_week``, ``completion_hour``,
            ``completed_on`` (local date) and ``due_date``
        momentum_days: Current momentum streak

    Returns:
        ``{tasksCompleted, onTimeCompletions, busiestDay, productiveHours,
        momentumDays}``; busiestDay is None for an empty week
    """
    patterns = analyze_user_patterns(completions)

    on_time = 0
    for row in completions:
        due = _get(row, "due_date")
        if due is None or _get(row, "completed_on") <= due:
            on_time += 1

    busiest = None
    if patterns["preferredDays"]:
        busiest = DAY_NAMES[DAY_LABELS.index(patterns["preferredDays"][0])]

    return {
        "tasksCompleted": len(completions),
        "onTimeCompletions": on_time,
        "busiestDay": busiest,
        "productiveHours": patterns["productiveHours"],
        "momentumDays": momentum_days,
    }


def fallback_reflection(stats: dict) -> dict:
    """Reflection content used when the model is unavailable."""
    completed = stats["tasksCompleted"]
    if completed > 0:
        wins = [f"You completed {completed} task{'s' if completed > 1 else ''} this week"]
    else:
        wins = ["You made it through another week"]

    return {
        "wins": wins,
        "patterns": [f"{stats['busiestDay']} seems to be your productive day"] if stats.get("busiestDay") else [],
        "suggestions": ["Try tackling one small task early in the day"],
        "encouragement": "Progress isn't always visible, but you're moving forward.",
    }
