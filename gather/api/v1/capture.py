"""
Capture API Endpoints
=====================

Step-by-step task capture: the user types a task, answers any clarifying
questions one at a time, and gets a task with generated steps.

Sessions expire after five minutes without activity.
"""

import logging

from fastapi import APIRouter, status
from sqlalchemy.ext.asyncio import AsyncSession

from gather.api.v1.ai import ai_not_configured
from gather.core.errors import ConflictError, ErrorCodes, NotFoundError
from gather.core.rate_limit import enforce_tier_limit
from gather.dependencies import CurrentPrincipal, DBSession, Principal
from gather.schemas.ai import CaptureAnswerRequest, CaptureStartRequest
from gather.services.anthropic_llm import LLMNotConfiguredError, get_llm_service
from gather.services.capture_flow import InvalidTransitionError
from gather.services.capture_service import CaptureService, CaptureSessionNotFoundError
from gather.services.task_service import TaskService

logger = logging.getLogger(__name__)

router = APIRouter()


def _service(principal: Principal, db: AsyncSession) -> CaptureService:
    """Demo visitors get a service that never writes tasks."""
    tasks = None if principal.is_demo else TaskService(db)
    return CaptureService(get_llm_service(), task_service=tasks)


def _session_not_found(session_id: str) -> NotFoundError:
    return NotFoundError(
        code=ErrorCodes.CAPTURE_SESSION_NOT_FOUND,
        message="Capture session not found or expired",
        sessionId=session_id,
    )


def _invalid_transition(e: InvalidTransitionError) -> ConflictError:
    return ConflictError(
        code=ErrorCodes.CAPTURE_INVALID_TRANSITION,
        message=str(e),
        state=e.state.value,
    )


@router.post("/sessions", status_code=status.HTTP_201_CREATED)
async def start_capture(
    request: CaptureStartRequest,
    principal: CurrentPrincipal,
    db: DBSession,
):
    """
    Start capturing a task.

    If the text matches an open task, ``duplicate`` is returned and no
    session starts; resend with ``allowDuplicate`` to add it anyway.
    """
    if not get_llm_service().is_configured:
        raise ai_not_configured()
    await enforce_tier_limit(principal.tier, "ai_breakdown", principal.identifier)

    open_tasks = []
    if not principal.is_demo:
        open_tasks = await TaskService(db).list_open_tasks(principal.profile.id)

    try:
        data = await _service(principal, db).start(
            principal.identifier,
            request.message,
            open_tasks=open_tasks,
            user_id=principal.profile.id if principal.profile else None,
            allow_duplicate=request.allow_duplicate,
        )
    except LLMNotConfiguredError:
        raise ai_not_configured()
    except InvalidTransitionError as e:
        raise _invalid_transition(e)

    return {"success": True, "data": data}


@router.get("/sessions/{session_id}")
async def get_capture(session_id: str, principal: CurrentPrincipal, db: DBSession):
    try:
        data = await _service(principal, db).get(principal.identifier, session_id)
    except CaptureSessionNotFoundError:
        raise _session_not_found(session_id)

    return {"success": True, "data": data}


@router.post("/sessions/{session_id}/answer")
async def answer_capture(
    session_id: str,
    request: CaptureAnswerRequest,
    principal: CurrentPrincipal,
    db: DBSession,
):
    """
    Answer the current question.

    Choosing "Other (I will specify)" switches to free text. The last
    answer generates steps and creates the task.
    """
    try:
        data = await _service(principal, db).answer(
            principal.identifier,
            session_id,
            request.answer,
            user_id=principal.profile.id if principal.profile else None,
        )
    except CaptureSessionNotFoundError:
        raise _session_not_found(session_id)
    except InvalidTransitionError as e:
        raise _invalid_transition(e)
    except LLMNotConfiguredError:
        raise ai_not_configured()

    return {"success": True, "data": data}


@router.post("/sessions/{session_id}/back")
async def back_capture(session_id: str, principal: CurrentPrincipal, db: DBSession):
    """Go back to the previous question."""
    try:
        data = await _service(principal, db).back(principal.identifier, session_id)
    except CaptureSessionNotFoundError:
        raise _session_not_found(session_id)
    except InvalidTransitionError as e:
        raise _invalid_transition(e)

    return {"success": True, "data": data}


@router.delete("/sessions/{session_id}")
async def cancel_capture(session_id: str, principal: CurrentPrincipal, db: DBSession):
    try:
        await _service(principal, db).cancel(principal.identifier, session_id)
    except CaptureSessionNotFoundError:
        raise _session_not_found(session_id)

    return {"success": True, "message": "Capture cancelled"}
