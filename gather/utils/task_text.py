"""
Task Text Heuristics
====================

Keyword and regex heuristics run on task titles and chat messages:

- Quick urgency/badge analysis for new tasks
- Energy-level suggestion
- Question / step-request detection for chat input
- Duplicate task detection
- "I already did it" completion detection and step matching
- Chat action filtering and clarifying-question cleanup
- Type prefixes (``/r``, ``/h``, ``/e``)
"""

import re
from typing import Any, Iterable, Optional, Sequence

from gather.utils.helpers import utc_now

OTHER_SPECIFY_OPTION = "Other (I will specify)"


# =============================================================================
# Quick analysis
# =============================================================================

URGENT_KEYWORDS = ["asap", "urgent", "today", "now", "immediately", "emergency", "!"]
WAITING_KEYWORDS = ["waiting", "wait for", "pending", "blocked", "need response"]

_BADGE_DAY_RE = re.compile(
    r"\b(monday|tuesday|wednesday|thursday|friday|saturday|sunday|tomorrow|tonight)\b",
    re.IGNORECASE,
)
_BADGE_DUE_RE = re.compile(r"due\s+(.*?)(?:\s|$)", re.IGNORECASE)


def quick_analyze(title: str) -> dict:
    """
    Instant, offline classification of a new task title.

    Returns:
        ``{"suggestedCategory": urgent|soon|waiting, "suggestedBadge": str|None}``
    """
    lower = title.lower()

    is_urgent = any(k in lower for k in URGENT_KEYWORDS)
    is_waiting = any(k in lower for k in WAITING_KEYWORDS)

    badge = None
    day_match = _BADGE_DAY_RE.search(title)
    if day_match:
        word = day_match.group(1)
        badge = word[0].upper() + word[1:]

    due_match = _BADGE_DUE_RE.search(title)
    if due_match:
        badge = f"Due {due_match.group(1)}"

    if is_urgent:
        category = "urgent"
    elif is_waiting:
        category = "waiting"
    else:
        category = "soon"

    return {"suggestedCategory": category, "suggestedBadge": badge}


# =============================================================================
# Energy suggestion
# =============================================================================

HIGH_ENERGY_KEYWORDS = [
    # Cognitive
    "focus", "concentrate", "analyze", "research", "study", "learn",
    "write", "draft", "create", "design", "develop", "build", "code",
    "think", "plan", "strategy", "decision", "complex", "difficult",
    # Work
    "presentation", "report", "proposal", "meeting", "interview",
    "negotiate", "pitch", "deadline", "important", "critical", "urgent",
    # Financial
    "taxes", "budget", "financial", "investment", "contract",
]

MEDIUM_ENERGY_KEYWORDS = [
    "organize", "sort", "file", "arrange", "schedule", "plan",
    "review", "check", "update", "edit", "revise",
    "email", "message", "reply", "respond", "contact", "call",
    "appointment", "doctor", "dentist", "grocery", "shopping",
    "exercise", "workout", "gym", "run", "walk", "healthy",
]

LOW_ENERGY_KEYWORDS = [
    "simple", "easy", "quick", "routine", "basic", "straightforward",
    "watch", "read", "listen", "rest", "relax", "meditate",
    "clean", "tidy", "laundry", "dishes", "trash", "water plants",
    "renew", "submit", "form", "paperwork", "download",
    "self-care", "stretch", "breathe", "journal",
]


def suggest_energy_level(title: str) -> Optional[str]:
    """
    Suggest high / medium / low energy from keyword hits.

    Returns None when nothing matches or the top score is tied.
    """
    lower = title.lower()
    scores = {
        "high": sum(1 for k in HIGH_ENERGY_KEYWORDS if k in lower),
        "medium": sum(1 for k in MEDIUM_ENERGY_KEYWORDS if k in lower),
        "low": sum(1 for k in LOW_ENERGY_KEYWORDS if k in lower),
    }
    best = max(scores.values())
    if best == 0:
        return None

    winners = [level for level, score in scores.items() if score == best]
    if len(winners) > 1:
        return None
    return winners[0]


# =============================================================================
# Chat input classification
# =============================================================================

_QUESTION_OPENERS = (
    "can ", "how ", "what ", "when ", "where ", "why ", "is ", "are ",
    "do ", "does ", "will ", "should ", "could ", "would ", "need ",
    "did ", "am i ",
)

_STEP_REQUEST_PHRASES = (
    "add step", "add steps", "more steps", "break down", "subtask",
    "checklist", "outline", "step-by-step", "step by step", "steps",
    "plan for", "plan this",
)


def is_question(text: str) -> bool:
    """True if the input reads as a question rather than a task."""
    lower = text.lower().strip()
    return lower.endswith("?") or lower.startswith(_QUESTION_OPENERS)


def is_step_request(text: str) -> bool:
    """True if the input asks for steps or a breakdown."""
    lower = text.lower().strip()
    return any(phrase in lower for phrase in _STEP_REQUEST_PHRASES)


# =============================================================================
# Duplicate detection
# =============================================================================

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def normalize_for_match(text: str) -> str:
    """Lowercase, collapse non-alphanumerics to single spaces, trim."""
    return _NON_ALNUM_RE.sub(" ", (text or "").lower()).strip()


def _title_of(task: Any) -> str:
    if isinstance(task, dict):
        return task.get("title") or ""
    return getattr(task, "title", "") or ""


def find_duplicate_task(text: str, tasks: Iterable[Any]) -> Optional[Any]:
    """
    Return the first task whose title looks like ``text``.

    A task matches on exact normalized equality, on containment when both
    sides are at least 6 characters, or when they share at least two tokens
    and at least half of the shorter token set.
    """
    input_norm = normalize_for_match(text)
    if not input_norm:
        return None
    input_tokens = set(input_norm.split(" "))

    for task in tasks:
        title_norm = normalize_for_match(_title_of(task))
        if not title_norm:
            continue

        if input_norm == title_norm:
            return task

        if len(input_norm) >= 6 and len(title_norm) >= 6:
            if input_norm in title_norm or title_norm in input_norm:
                return task

        title_tokens = set(title_norm.split(" "))
        shared = input_tokens & title_tokens
        required = max(1, min(len(input_tokens), len(title_tokens)) // 2)
        if len(shared) >= required and len(shared) >= 2:
            return task

    return None


# =============================================================================
# Completion detection
# =============================================================================

COMPLETION_KEYWORD_MAP: list[tuple[str, list[str]]] = [
    # Documents
    ("passport", ["passport", "identity document", "birth certificate", "proof of identity", "id document"]),
    ("birth certificate", ["birth certificate", "identity document", "proof of identity"]),
    ("social security", ["social security", "ssn", "social security card", "ss card"]),
    ("license", ["license", "driver", "dl", "id card"]),
    ("w-2", ["w-2", "w2", "tax form", "income"]),
    # Actions
    ("appointment", ["appointment", "schedule", "book", "reserved", "slot"]),
    ("called", ["call", "phone", "spoke", "talked"]),
    ("emailed", ["email", "sent", "message", "contacted"]),
    ("paid", ["fee", "payment", "pay", "cost", "charge", "paid"]),
    ("signed", ["sign", "signature", "signed up", "registered"]),
    ("filled", ["fill", "form", "application", "submit"]),
    ("downloaded", ["download", "form", "pdf", "document"]),
    ("booked", ["book", "reservation", "schedule", "appointment"]),
]

COMPLETION_SIGNALS = [
    "i have", "i got", "i found", "i already", "i completed", "i finished",
    "i submitted", "i sent", "i did", "i made", "done with", "just did",
    "i called", "i emailed", "i booked", "i scheduled", "i paid", "i signed up",
    "i filled out", "i registered", "i downloaded", "i printed",
]

NEGATION_PATTERNS = [
    "i have not", "i haven't", "i did not", "i didn't", "not yet", "haven't yet",
]


def detect_completion_intent(message: str) -> bool:
    """True if the message says something was done, with no negation."""
    normalized = message.lower()
    if any(p in normalized for p in NEGATION_PATTERNS):
        return False
    return any(phrase in normalized for phrase in COMPLETION_SIGNALS)


def find_matching_step(message: str, steps: Sequence[dict]) -> Optional[dict]:
    """
    Find the first open step the user's message refers to.

    A keyword trigger (e.g. "passport", "called") restricts matching to that
    trigger's hints; otherwise any word longer than 3 characters counts.
    """
    normalized = message.lower()
    triggered = next(
        (hints for trigger, hints in COMPLETION_KEYWORD_MAP if trigger in normalized),
        None,
    )
    words = [w for w in normalized.split() if len(w) > 3]

    for step in steps:
        if step.get("done"):
            continue
        haystack = " ".join(
            [step.get("text") or "", step.get("summary") or "", step.get("detail") or ""]
        ).lower()

        if triggered is not None:
            if any(hint in haystack for hint in triggered):
                return step
            continue

        if any(word in haystack for word in words):
            return step

    return None


# =============================================================================
# Chat helpers
# =============================================================================

def build_task_context(task: dict, focused_step: Optional[dict] = None) -> str:
    """Render a task (and optionally one focused step) as prompt context."""
    parts: list[str] = []
    steps = task.get("steps") or []
    existing = "\n".join(
        f"{i + 1}. {s.get('text', '')}{' (done)' if s.get('done') else ''}"
        for i, s in enumerate(steps)
    )

    parts.append(f"Task: {task.get('title', '')}")
    if task.get("description"):
        parts.append(f"Description: {task['description']}")
    context_text = task.get("contextText") or task.get("context_text")
    if context_text:
        parts.append(f"Context: {context_text}")
    if existing:
        parts.append(f"Steps:\n{existing}")

    if focused_step:
        parts.append(f'\nFocused step: "{focused_step.get("text", "")}"')
        if focused_step.get("detail"):
            parts.append(f"Detail: {focused_step['detail']}")
        if focused_step.get("summary"):
            parts.append(f"Summary: {focused_step['summary']}")

    return "\n".join(parts) or "No context provided."


ALLOWED_ACTIONS = {"mark_step_done", "focus_step", "create_task", "show_sources"}


def filter_actions(actions: Sequence[Any], task: Optional[dict] = None) -> list[dict]:
    """
    Keep only supported chat actions that reference real things.

    Step actions must name an existing step of ``task``; ``create_task``
    needs a non-blank title.
    """
    step_ids = {s.get("id") for s in (task or {}).get("steps") or []}
    kept = []
    for action in actions or []:
        if not isinstance(action, dict) or action.get("type") not in ALLOWED_ACTIONS:
            continue
        action_type = action["type"]
        if action_type in ("mark_step_done", "focus_step") and task is not None:
            if action.get("stepId") not in step_ids:
                continue
        if action_type == "create_task":
            title = action.get("title")
            if not isinstance(title, str) or not title.strip():
                continue
        kept.append(action)
    return kept


def sanitize_questions(task_name: str, questions: Sequence[dict]) -> list[dict]:
    """Tidy up AI clarifying questions before they reach the user."""
    this_year = utc_now().year
    cleaned = []
    for q in questions:
        text = (q.get("question") or q.get("text") or "").lower()

        if q.get("key") == "tax_year":
            q = {**q, "options": [str(this_year), str(this_year - 1), OTHER_SPECIFY_OPTION]}
        elif "real id" in task_name.lower() and "real id" in text and "current" in text:
            q = {
                **q,
                "question": "Do you already have a star on your driver's license?",
                "options": ["Yes, I see a star", "No or I'm not sure"],
            }
            q.pop("text", None)

        cleaned.append(q)
    return cleaned


# =============================================================================
# Type prefixes
# =============================================================================

TYPE_PREFIXES = [
    ("/r ", "reminder"),
    ("! ", "reminder"),
    ("/h ", "habit"),
    ("/e ", "event"),
]


def parse_type_prefix(text: str) -> tuple[str, str]:
    """
    Split a quick-add prefix off the input.

    Returns:
        ``(task_type, clean_text)``; ``task_type`` is "task" with no prefix.
    """
    lower = text.lower()
    for prefix, task_type in TYPE_PREFIXES:
        if lower.startswith(prefix):
            return task_type, text[len(prefix):].strip()
    return "task", text
