"""
Coaching Context
================

Turns stored conversation summaries into a short note the intent prompt
can use: what we know about the user, strategies that worked, and how they
were feeling last time.
"""

from typing import Sequence

MAX_INSIGHTS = 3
MAX_STRATEGIES = 2

STATE_MESSAGES = {
    "overwhelmed": "User recently seemed overwhelmed. Keep suggestions small and manageable.",
    "stuck": "User has been feeling stuck. Focus on momentum-building steps.",
    "motivated": "User is feeling motivated. This is a good time for bigger tasks.",
    "energized": "User is energized. Help them channel this productively.",
}


def _unique_strings(values: Sequence, limit: int) -> list[str]:
    seen: list[str] = []
    for value in values:
        if isinstance(value, str) and value.strip() and value not in seen:
            seen.append(value)
        if len(seen) >= limit:
            break
    return seen


def build_coaching_context(summaries: Sequence[dict]) -> str:
    """
    Coaching note from conversation summaries, newest first.

    Returns an empty string when there is nothing worth saying.
    """
    if not summaries:
        return ""

    parts: list[str] = []

    observations = []
    for summary in summaries:
        observations.extend(summary.get("keyInsights") or [])
        observations.extend(summary.get("patternsObserved") or [])
    known = _unique_strings(observations, MAX_INSIGHTS)
    if known:
        parts.append("What we know about this user:")
        parts.extend(f"- {item}" for item in known)

    strategies = [
        s
        for summary in summaries
        for s in summary.get("strategiesUsed") or []
        if isinstance(s, dict) and s.get("wasEffective") is True and s.get("strategy")
    ][:MAX_STRATEGIES]
    if strategies:
        parts.append("Strategies that have worked before:")
        parts.extend(f"- When {s.get('trigger') or 'stuck'}: {s['strategy']}" for s in strategies)

    latest = summaries[0]
    state_message = STATE_MESSAGES.get(latest.get("emotionalState"))
    if state_message:
        parts.append(f"Note: {state_message}")

    if latest.get("followUpNeeded"):
        parts.append(f"Follow up on: {latest['followUpNeeded']}")

    return "\n".join(parts)
