"""
Capture Flow
============

State machine for capturing a task with clarifying questions.

    idle --submit--> awaiting_ai_response
    awaiting_ai_response --receive_intent--> awaiting_clarifying_answer | done
    awaiting_ai_response --fail--> done (fallback steps)
    awaiting_clarifying_answer --answer--> awaiting_clarifying_answer
                                         | awaiting_free_text ("Other")
                                         | awaiting_ai_response (last answer)
    awaiting_free_text --answer--> as a normal answer
    awaiting_ai_response --receive_steps--> done
    any --reset--> idle

The flow holds no I/O; ``CaptureService`` drives it and stores it in Redis.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from gather.utils.helpers import utc_now
from gather.utils.steps import create_fallback_steps, get_default_steps, steps_from_ai
from gather.utils.task_text import OTHER_SPECIFY_OPTION


class CaptureState(str, Enum):
    IDLE = "idle"
    AWAITING_AI_RESPONSE = "awaiting_ai_response"
    AWAITING_CLARIFYING_ANSWER = "awaiting_clarifying_answer"
    AWAITING_FREE_TEXT = "awaiting_free_text"
    DONE = "done"


class InvalidTransitionError(Exception):
    """Raised when an event is not allowed in the current state."""

    def __init__(self, state: CaptureState, event: str, detail: Optional[str] = None):
        self.state = state
        self.event = event
        message = f"Cannot {event} while {state.value}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


def _question_key(question: dict, index: int) -> str:
    return question.get("key") or question.get("id") or f"q{index + 1}"


@dataclass
class CaptureFlow:
    """One in-progress capture."""

    state: CaptureState = CaptureState.IDLE
    message: str = ""
    task_name: str = ""
    questions: list[dict] = field(default_factory=list)
    current_index: int = 0
    answers: dict[str, str] = field(default_factory=dict)
    intent: Optional[dict] = None
    steps: list[dict] = field(default_factory=list)
    task_id: Optional[str] = None
    updated_at: datetime = field(default_factory=utc_now)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def current_question(self) -> Optional[dict]:
        if self.state not in (CaptureState.AWAITING_CLARIFYING_ANSWER, CaptureState.AWAITING_FREE_TEXT):
            return None
        return self.questions[self.current_index]

    @property
    def is_last_question(self) -> bool:
        return self.current_index >= len(self.questions) - 1

    def clarifying_answers(self) -> list[dict]:
        """``[{question, answer}]`` in question order, skipping unanswered ones."""
        result = []
        for i, q in enumerate(self.questions):
            key = _question_key(q, i)
            if key in self.answers:
                result.append({"question": q.get("question", ""), "answer": self.answers[key]})
        return result

    def _require(self, event: str, *states: CaptureState) -> None:
        if self.state not in states:
            raise InvalidTransitionError(self.state, event)

    def _touch(self, now: Optional[datetime]) -> None:
        self.updated_at = now or utc_now()

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def submit(self, message: str, now: Optional[datetime] = None) -> None:
        self._require("submit", CaptureState.IDLE)
        message = message.strip()
        if not message:
            raise InvalidTransitionError(self.state, "submit", "message is empty")
        self.message = message
        self.task_name = message
        self.state = CaptureState.AWAITING_AI_RESPONSE
        self._touch(now)

    def receive_intent(self, intent: dict, now: Optional[datetime] = None) -> None:
        """
        Apply the model's intent analysis.

        Questions move the flow to the first question; otherwise it finishes
        with the suggested steps, or default steps if there were none.
        """
        self._require("receive_intent", CaptureState.AWAITING_AI_RESPONSE)
        self.intent = intent
        self.task_name = intent.get("taskName") or self.message

        questions = [q for q in intent.get("questions") or [] if q.get("question")]
        self.questions = []
        self.current_index = 0
        self.answers = {}
        if intent.get("needsMoreInfo") and questions:
            self.questions = questions
            self.state = CaptureState.AWAITING_CLARIFYING_ANSWER
        else:
            suggested = (intent.get("ifComplete") or {}).get("steps") or []
            self.steps = steps_from_ai(suggested) or steps_from_ai(get_default_steps(self.task_name))
            self.state = CaptureState.DONE
        self._touch(now)

    def fail(self, reason: str = "", now: Optional[datetime] = None) -> None:
        """The model call failed; finish with research-first fallback steps."""
        self._require("fail", CaptureState.AWAITING_AI_RESPONSE)
        context = "; ".join(a["answer"] for a in self.clarifying_answers()) or None
        self.steps = create_fallback_steps(self.task_name, context)
        self.state = CaptureState.DONE
        self._touch(now)

    def answer(self, text: str, now: Optional[datetime] = None) -> None:
        self._require("answer", CaptureState.AWAITING_CLARIFYING_ANSWER, CaptureState.AWAITING_FREE_TEXT)
        text = text.strip()

        if self.state == CaptureState.AWAITING_CLARIFYING_ANSWER and text == OTHER_SPECIFY_OPTION:
            self.state = CaptureState.AWAITING_FREE_TEXT
            self._touch(now)
            return

        if not text:
            raise InvalidTransitionError(self.state, "answer", "answer is empty")

        question = self.questions[self.current_index]
        self.answers[_question_key(question, self.current_index)] = text

        if self.is_last_question:
            self.state = CaptureState.AWAITING_AI_RESPONSE
        else:
            self.current_index += 1
            self.state = CaptureState.AWAITING_CLARIFYING_ANSWER
        self._touch(now)

    def back(self, now: Optional[datetime] = None) -> None:
        """Return to the previous question; free-text mode is cleared."""
        self._require("back", CaptureState.AWAITING_CLARIFYING_ANSWER, CaptureState.AWAITING_FREE_TEXT)
        if self.current_index == 0:
            raise InvalidTransitionError(self.state, "back", "already at the first question")
        self.current_index -= 1
        self.state = CaptureState.AWAITING_CLARIFYING_ANSWER
        self._touch(now)

    def receive_steps(
        self,
        steps: list[Any],
        allow_empty: bool = False,
        now: Optional[datetime] = None,
    ) -> None:
        """Finish with generated steps. Empty input gets default steps unless allowed."""
        self._require("receive_steps", CaptureState.AWAITING_AI_RESPONSE)
        if not self.questions:
            raise InvalidTransitionError(self.state, "receive_steps", "no answers collected yet")
        self.steps = steps_from_ai(steps)
        if not self.steps and not allow_empty:
            self.steps = steps_from_ai(get_default_steps(self.task_name))
        self.state = CaptureState.DONE
        self._touch(now)

    def reset(self, now: Optional[datetime] = None) -> None:
        self.state = CaptureState.IDLE
        self.message = ""
        self.task_name = ""
        self.questions = []
        self.current_index = 0
        self.answers = {}
        self.intent = None
        self.steps = []
        self.task_id = None
        self._touch(now)

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict:
        data = asdict(self)
        data["state"] = self.state.value
        data["updated_at"] = self.updated_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "CaptureFlow":
        data = dict(data)
        data["state"] = CaptureState(data["state"])
        data["updated_at"] = datetime.fromisoformat(data["updated_at"])
        return cls(**data)

    def to_api_dict(self) -> dict:
        """What the client needs to render the current step of the flow."""
        return {
            "state": self.state.value,
            "taskName": self.task_name,
            "understanding": (self.intent or {}).get("understanding"),
            "question": self.current_question,
            "questionIndex": self.current_index,
            "questionCount": len(self.questions),
            "freeText": self.state == CaptureState.AWAITING_FREE_TEXT,
            "canGoBack": self.current_question is not None and self.current_index > 0,
            "answers": self.clarifying_answers(),
            "steps": self.steps,
            "taskId": self.task_id,
        }
