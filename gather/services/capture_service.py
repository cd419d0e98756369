"""
Capture Service
===============

Drives the capture flow: duplicate check, intent analysis, clarifying
questions, step generation and task creation.

Sessions live in Redis and expire after a few minutes of inactivity; every
read or write slides the expiry forward.
"""

import json
import logging
import uuid
from datetime import date
from typing import Any, Optional, Sequence

from gather.config import settings
from gather.services.anthropic_llm import (
    OVERLOADED_ACTION_KEY,
    OVERLOADED_RETRY_OPTION,
    AnthropicLLMService,
    LLMNotConfiguredError,
)
from gather.services.cache import CacheInvalidator, CacheKeys, get_redis
from gather.services.capture_flow import CaptureFlow, CaptureState
from gather.services.task_service import TaskService
from gather.utils.helpers import utc_now
from gather.utils.task_text import find_duplicate_task

logger = logging.getLogger(__name__)


# =============================================================================
# Session store
# =============================================================================

class CaptureSessionStore:
    """Redis-backed storage for capture flows, scoped to an owner."""

    def __init__(self, ttl_seconds: Optional[int] = None):
        self.ttl = ttl_seconds or settings.CAPTURE_SESSION_TTL_SECONDS

    async def save(self, session_id: str, owner: str, flow: CaptureFlow) -> None:
        client = await get_redis()
        payload = json.dumps({"owner": owner, "flow": flow.to_dict()}, default=str)
        await client.setex(CacheKeys.capture_session(session_id), self.ttl, payload)

    async def load(self, session_id: str, owner: str) -> Optional[CaptureFlow]:
        """Return the flow if it exists and belongs to ``owner``."""
        client = await get_redis()
        key = CacheKeys.capture_session(session_id)
        raw = await client.get(key)
        if raw is None:
            return None

        data = json.loads(raw)
        if data.get("owner") != owner:
            return None

        await client.expire(key, self.ttl)
        return CaptureFlow.from_dict(data["flow"])

    async def delete(self, session_id: str) -> None:
        client = await get_redis()
        await client.delete(CacheKeys.capture_session(session_id))


# =============================================================================
# Service
# =============================================================================

class CaptureService:
    """
    Orchestrates one user's captures.

    ``task_service`` is None for demo visitors; their finished tasks are
    returned without being saved.
    """

    def __init__(
        self,
        llm: AnthropicLLMService,
        task_service: Optional[TaskService] = None,
        store: Optional[CaptureSessionStore] = None,
    ):
        self.llm = llm
        self.tasks = task_service
        self.store = store or CaptureSessionStore()

    async def start(
        self,
        owner: str,
        message: str,
        open_tasks: Sequence[Any] = (),
        user_id: Optional[uuid.UUID] = None,
        allow_duplicate: bool = False,
    ) -> dict:
        """
        Start a capture.

        Returns:
            Session response; when the message matches an open task and
            duplicates aren't allowed, ``{"duplicate": task}`` without
            starting a session
        """
        if not allow_duplicate:
            duplicate = find_duplicate_task(message, open_tasks)
            if duplicate is not None:
                found = duplicate.to_api_dict() if hasattr(duplicate, "to_api_dict") else duplicate
                return {"sessionId": None, "duplicate": found}

        flow = CaptureFlow()
        flow.submit(message)
        await self._analyze(flow)

        session_id = uuid.uuid4().hex
        task = await self._finish_if_done(flow, user_id)
        await self.store.save(session_id, owner, flow)
        return self._response(session_id, flow, task)

    async def get(self, owner: str, session_id: str) -> dict:
        flow = await self._load(owner, session_id)
        return self._response(session_id, flow)

    async def answer(
        self,
        owner: str,
        session_id: str,
        text: str,
        user_id: Optional[uuid.UUID] = None,
    ) -> dict:
        """Record an answer; after the last one, generate steps and finish."""
        flow = await self._load(owner, session_id)
        flow.answer(text)

        if flow.state == CaptureState.AWAITING_AI_RESPONSE:
            overload_choice = flow.answers.get(OVERLOADED_ACTION_KEY)
            if overload_choice == OVERLOADED_RETRY_OPTION:
                await self._analyze(flow)
            elif overload_choice is not None:
                flow.receive_steps([], allow_empty=True)
            else:
                await self._generate_steps(flow)

        task = await self._finish_if_done(flow, user_id)
        await self.store.save(session_id, owner, flow)
        return self._response(session_id, flow, task)

    async def back(self, owner: str, session_id: str) -> dict:
        flow = await self._load(owner, session_id)
        flow.back()
        await self.store.save(session_id, owner, flow)
        return self._response(session_id, flow)

    async def cancel(self, owner: str, session_id: str) -> None:
        await self._load(owner, session_id)
        await self.store.delete(session_id)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _load(self, owner: str, session_id: str) -> CaptureFlow:
        flow = await self.store.load(session_id, owner)
        if flow is None:
            raise CaptureSessionNotFoundError(session_id)
        return flow

    async def _analyze(self, flow: CaptureFlow) -> None:
        try:
            intent = await self.llm.analyze_intent(flow.message)
        except LLMNotConfiguredError:
            raise
        except Exception as e:
            logger.error("Capture intent analysis failed: %s", e)
            flow.fail(str(e))
            return
        flow.receive_intent(intent)

    async def _generate_steps(self, flow: CaptureFlow) -> None:
        context = (flow.intent or {}).get("understanding")
        try:
            steps = await self.llm.generate_steps(
                flow.task_name,
                description=context,
                clarifying_answers=flow.clarifying_answers(),
            )
        except LLMNotConfiguredError:
            raise
        except Exception as e:
            logger.error("Capture step generation failed: %s", e)
            flow.fail(str(e))
            return
        flow.receive_steps(steps)

    async def _finish_if_done(self, flow: CaptureFlow, user_id: Optional[uuid.UUID]) -> Optional[dict]:
        """Create the task once the flow is done (unsaved for demo visitors)."""
        if flow.state != CaptureState.DONE or flow.task_id is not None:
            return None

        intent = flow.intent or {}
        context_text = (intent.get("ifComplete") or {}).get("contextSummary") or None
        due_date = _deadline_date(intent)

        if self.tasks is None or user_id is None:
            task = _demo_task(flow, context_text, due_date)
            flow.task_id = task["id"]
            return task

        created = await self.tasks.create_from_capture(
            user_id,
            flow.task_name,
            flow.steps,
            clarifying_answers=flow.clarifying_answers(),
            context_text=context_text,
            due_date=due_date,
            task_category=intent.get("taskType"),
        )
        flow.task_id = str(created.id)
        await CacheInvalidator.on_task_change(str(user_id))
        logger.info("Capture created task %s for user %s", created.id, user_id)
        return created.to_api_dict()

    @staticmethod
    def _response(session_id: str, flow: CaptureFlow, task: Optional[dict] = None) -> dict:
        return {"sessionId": session_id, **flow.to_api_dict(), "task": task}


def _deadline_date(intent: dict) -> Optional[date]:
    raw = (intent.get("deadline") or {}).get("date")
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except (TypeError, ValueError):
        return None


def _demo_task(flow: CaptureFlow, context_text: Optional[str], due_date: Optional[date]) -> dict:
    now = utc_now().isoformat()
    return {
        "id": f"demo-task-{uuid.uuid4().hex[:12]}",
        "title": flow.task_name,
        "description": None,
        "category": "soon",
        "badge": None,
        "dueDate": due_date.isoformat() if due_date else None,
        "contextText": context_text,
        "steps": flow.steps,
        "clarifyingAnswers": flow.clarifying_answers(),
        "source": "manual",
        "type": "task",
        "createdAt": now,
        "updatedAt": now,
    }


class CaptureSessionNotFoundError(Exception):
    """Raised when a capture session is missing, expired or not the caller's."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Capture session {session_id} not found or expired")
