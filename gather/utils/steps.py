"""
Step Builders
=============

Canned steps used whenever AI step generation is unavailable, plus the
conversion of raw AI output into stored step dicts.
"""

from typing import Any, Iterable, Optional

from gather.utils.helpers import generate_step_id

_RICH_FIELDS = (
    "summary",
    "detail",
    "alternatives",
    "examples",
    "checklist",
    "time",
    "source",
    "action",
)


def get_default_steps(title: str) -> list[dict]:
    """
    Three generic-but-actionable steps picked by keyword.

    Used as the fallback for AI step generation.
    """
    lower = title.lower()

    if "cancel" in lower:
        return [
            {"text": "Find contact info for cancellation", "summary": "Locate cancellation method", "time": "5 min"},
            {"text": 'Call or use online chat - say "I want to cancel my account"', "summary": "Direct request works best", "time": "10 min"},
            {"text": "Get confirmation number or email and save it", "summary": "Proof of cancellation", "time": "2 min"},
        ]

    if "learn" in lower or "practice" in lower or "study" in lower:
        return [
            {"text": "Decide on one specific skill to focus on this week", "summary": "Narrow focus = faster progress", "time": "5 min"},
            {"text": "Do 20 minutes of deliberate practice", "summary": "Quality over quantity", "time": "20 min"},
            {"text": "Note what felt hard and what clicked", "summary": "Builds self-awareness", "time": "5 min"},
        ]

    if "write" in lower or "draft" in lower or "create" in lower:
        return [
            {"text": "Write down 5 bullet points of what you want to say", "summary": "Raw material first", "time": "10 min"},
            {"text": "Turn 2-3 bullets into full sentences", "summary": "Just get words down", "time": "15 min"},
            {"text": "Read it out loud and fix anything that sounds weird", "summary": "Your ear catches what eyes miss", "time": "10 min"},
        ]

    if "appointment" in lower or "schedule" in lower or "book" in lower:
        return [
            {"text": "Search for online booking or phone number", "summary": "Find booking method", "time": "5 min"},
            {"text": "Check your calendar for 2-3 possible times", "summary": "Be ready with options", "time": "3 min"},
            {"text": "Book and add to your calendar immediately", "summary": "Lock it in", "time": "5 min"},
        ]

    if "email" in lower or "message" in lower or "contact" in lower:
        return [
            {"text": "Write the main point in one sentence", "summary": "Clarity first", "time": "3 min"},
            {"text": "Add any necessary context (keep it short)", "summary": "Respect their time", "time": "5 min"},
            {"text": "Read once, fix obvious issues, then send", "summary": "Done beats perfect", "time": "3 min"},
        ]

    return [
        {"text": f'Search for how to do "{title}"', "summary": "Find the actual process", "time": "5 min"},
        {"text": "Write down the 3 main things you need to do", "summary": "Capture the key steps", "time": "5 min"},
        {"text": "Do the first thing on your list right now", "summary": "Momentum matters most", "time": "15 min"},
    ]


def create_fallback_steps(task_name: str, context: Optional[str] = None) -> list[dict]:
    """Four research-first steps used when the capture flow's AI call fails."""
    name = task_name.lower()
    return [
        {
            "id": generate_step_id(),
            "text": f"Research how to {name}",
            "done": False,
            "summary": "Find official process for your specific situation",
        },
        {
            "id": generate_step_id(),
            "text": "Gather required information (documents, account numbers, etc.)",
            "done": False,
            "summary": f"Based on: {context}" if context else "Collect everything needed",
        },
        {
            "id": generate_step_id(),
            "text": f"Complete the {name} process",
            "done": False,
            "summary": "Follow the official steps",
        },
        {
            "id": generate_step_id(),
            "text": "Keep documentation and confirm completion",
            "done": False,
            "summary": "Verify it worked",
        },
    ]


def steps_from_ai(items: Iterable[Any]) -> list[dict]:
    """
    Convert AI step items (plain strings or rich dicts) into stored steps.

    Every step gets a fresh id and ``done=False``; items without text are
    dropped.
    """
    steps = []
    for item in items or []:
        if isinstance(item, str):
            text = item.strip()
            if text:
                steps.append({"id": generate_step_id(), "text": text, "done": False})
            continue

        if not isinstance(item, dict):
            continue

        text = str(item.get("text") or "").strip()
        if not text:
            continue

        step = {"id": generate_step_id(), "text": text, "done": False}
        for field in _RICH_FIELDS:
            value = item.get(field)
            if value:
                step[field] = value
        steps.append(step)

    return steps
