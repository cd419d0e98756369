"""
AI, Capture and Demo API Tests
==============================

The LLM service is swapped for a mock per test. Demo requests go through
the real demo-header handling; signed-in requests use the free tier.
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from gather.config import settings
from gather.main import app
from gather.models.reflection import CoachingMemoryEntry, MemoryEntryType
from gather.models.task import Task, TaskCategory, TaskSource, TaskType
from gather.services.anthropic_llm import LLMOverloadedError, LLMRequestFailedError
from gather.services.demo_data import DEMO_USER_ID

USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
TASK_ID = uuid.UUID("00000000-0000-0000-0000-0000000000aa")

INTENT = {
    "taskName": "Renew driver's license",
    "understanding": "License renewal",
    "needsMoreInfo": True,
    "questions": [
        {"question": "Which state?", "key": "state", "options": ["CA", "NY"]},
    ],
}

CHAT_REPLY = {"message": "Bring your old license.", "actions": [], "sources": []}


def _llm(configured: bool = True) -> MagicMock:
    llm = MagicMock()
    llm.is_configured = configured
    llm.analyze_intent = AsyncMock(return_value=INTENT)
    llm.generate_steps = AsyncMock(return_value=[{"text": "Book DMV visit"}, {"text": "Bring old license"}])
    llm.chat = AsyncMock(return_value=CHAT_REPLY)
    return llm


def _task() -> Task:
    return Task(
        id=TASK_ID,
        user_id=USER_ID,
        title="Renew driver's license",
        category=TaskCategory.SOON,
        source=TaskSource.MANUAL,
        type=TaskType.TASK,
        steps=[],
        clarifying_answers=[],
        created_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
        updated_at=datetime(2026, 10, 1, tzinfo=timezone.utc),
    )


class TestDemoAccess:

    @pytest.mark.asyncio
    async def test_snapshot(self, demo_client):
        response = await demo_client.get("/api/v1/demo/snapshot")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["userId"] == DEMO_USER_ID
        assert len(data["tasks"]) == 3

    @pytest.mark.asyncio
    async def test_demo_disabled(self, demo_client, monkeypatch):
        monkeypatch.setattr(settings, "DEMO_MODE_ENABLED", False)

        response = await demo_client.get("/api/v1/demo/snapshot")

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "AUTH_003"

    @pytest.mark.asyncio
    async def test_no_token_and_no_demo_header(self, demo_client):
        response = await demo_client.get("/api/v1/demo/snapshot", headers={"X-Demo-Mode": "false"})

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_002"


class TestAiEndpoints:

    @pytest.mark.asyncio
    async def test_not_configured(self, client):
        with patch("gather.api.v1.ai.get_llm_service", return_value=_llm(configured=False)):
            response = await client.post("/api/v1/ai/analyze-intent", json={"message": "Renew license"})

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "AI_001"

    @pytest.mark.asyncio
    async def test_analyze_intent(self, client):
        llm = _llm()

        with patch("gather.api.v1.ai.get_llm_service", return_value=llm), \
                patch("gather.api.v1.ai.CoachingMemoryService") as memory_cls:
            memory_cls.return_value.context_for = AsyncMock(return_value="Note: keep it small")
            response = await client.post(
                "/api/v1/ai/analyze-intent",
                json={"message": "Renew license", "memory": [{"role": "user", "content": "I live in CA"}]},
            )

        assert response.json()["data"] == INTENT
        assert llm.analyze_intent.call_args.kwargs["memory"] == [{"role": "user", "content": "I live in CA"}]
        assert llm.analyze_intent.call_args.kwargs["coaching_context"] == "Note: keep it small"

    @pytest.mark.asyncio
    async def test_demo_intent_has_no_coaching_context(self, demo_client):
        llm = _llm()

        with patch("gather.api.v1.ai.get_llm_service", return_value=llm), \
                patch("gather.api.v1.ai.CoachingMemoryService") as memory_cls:
            await demo_client.post("/api/v1/ai/analyze-intent", json={"message": "Renew license"})

        assert llm.analyze_intent.call_args.kwargs["coaching_context"] is None
        memory_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_suggest_subtasks_returns_storable_steps(self, client):
        with patch("gather.api.v1.ai.get_llm_service", return_value=_llm()):
            response = await client.post("/api/v1/ai/suggest-subtasks", json={"title": "Renew license"})

        steps = response.json()["data"]["steps"]
        assert [s["text"] for s in steps] == ["Book DMV visit", "Bring old license"]
        assert all(s["done"] is False and s["id"] for s in steps)

    @pytest.mark.asyncio
    async def test_free_tier_breakdown_budget(self, client):
        with patch("gather.api.v1.ai.get_llm_service", return_value=_llm()):
            statuses = [
                (await client.post("/api/v1/ai/suggest-subtasks", json={"title": "Renew license"})).status_code
                for _ in range(4)
            ]
            blocked = await client.post("/api/v1/ai/suggest-subtasks", json={"title": "Renew license"})

        assert statuses == [200, 200, 200, 429]
        assert blocked.json()["error"]["upgradeRequired"] is True
        assert blocked.headers["X-RateLimit-Limit"] == "3"

    @pytest.mark.asyncio
    async def test_brain_dump_too_long(self, client):
        llm = _llm()

        with patch("gather.api.v1.ai.get_llm_service", return_value=llm):
            response = await client.post("/api/v1/ai/brain-dump", json={"text": "x" * 10_001})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        llm.extract_brain_dump.assert_not_called()

    @pytest.mark.asyncio
    async def test_rich_text(self, client):
        response = await client.post("/api/v1/ai/rich-text", json={"text": "Forms (https://www.irs.gov/forms) are online"})

        parts = response.json()["data"]["parts"]
        assert {"type": "url", "content": "https://www.irs.gov/forms", "label": "View on IRS.gov"} in parts


class TestChat:

    @pytest.mark.asyncio
    async def test_blank_message(self, client):
        with patch("gather.api.v1.ai.get_llm_service", return_value=_llm()):
            response = await client.post("/api/v1/ai/chat", json={"message": "   "})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_non_string_message(self, client):
        with patch("gather.api.v1.ai.get_llm_service", return_value=_llm()):
            response = await client.post("/api/v1/ai/chat", json={"message": 42})

        assert response.status_code == 422
        assert response.json()["error"]["field"] == "body.message"

    def test_payload_is_documented(self):
        schemas = app.openapi()["components"]["schemas"]

        chat = schemas["ChatRequest"]["properties"]
        assert {"type": "string"} in chat["message"]["anyOf"]
        assert any(s.get("type") == "array" for s in chat["history"]["anyOf"])
        assert {"type": "string"} in schemas["BrainDumpRequest"]["properties"]["text"]["anyOf"]

    @pytest.mark.asyncio
    async def test_signed_in_chat_is_saved_under_the_task(self, client):
        with patch("gather.api.v1.ai.get_llm_service", return_value=_llm()), \
                patch("gather.api.v1.ai.TaskService") as tasks_cls, \
                patch("gather.api.v1.ai.ChatService") as chat_cls:
            tasks_cls.return_value.get_task_by_id = AsyncMock(return_value=_task())
            chat_cls.return_value.save_exchange = AsyncMock()
            response = await client.post(
                "/api/v1/ai/chat",
                json={"message": "What do I bring?", "taskId": str(TASK_ID)},
            )

        assert response.json()["data"] == CHAT_REPLY
        chat_cls.return_value.save_exchange.assert_awaited_once_with(
            USER_ID,
            "What do I bring?",
            "Bring your old license.",
            task_id=TASK_ID,
        )

    @pytest.mark.asyncio
    async def test_someone_elses_task_is_not_linked(self, client):
        with patch("gather.api.v1.ai.get_llm_service", return_value=_llm()), \
                patch("gather.api.v1.ai.TaskService") as tasks_cls, \
                patch("gather.api.v1.ai.ChatService") as chat_cls:
            tasks_cls.return_value.get_task_by_id = AsyncMock(return_value=None)
            chat_cls.return_value.save_exchange = AsyncMock()
            await client.post("/api/v1/ai/chat", json={"message": "What do I bring?", "taskId": str(uuid.uuid4())})

        assert chat_cls.return_value.save_exchange.call_args.kwargs["task_id"] is None

    @pytest.mark.asyncio
    async def test_demo_chat_is_not_saved(self, demo_client):
        with patch("gather.api.v1.ai.get_llm_service", return_value=_llm()), \
                patch("gather.api.v1.ai.ChatService") as chat_cls:
            response = await demo_client.post("/api/v1/ai/chat", json={"message": "What do I bring?"})

        assert response.status_code == 200
        chat_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_demo_chat_budget(self, demo_client):
        with patch("gather.api.v1.ai.get_llm_service", return_value=_llm()):
            for _ in range(10):
                await demo_client.post("/api/v1/ai/chat", json={"message": "What do I bring?"})
            response = await demo_client.post("/api/v1/ai/chat", json={"message": "What do I bring?"})

        assert response.status_code == 429
        assert "upgradeRequired" not in response.json()["error"]

    @pytest.mark.asyncio
    async def test_stream(self, demo_client):
        async def stream_chat(message, context=None, history=None):
            yield {"event": "token", "data": {"text": "Hel"}}
            yield {"event": "token", "data": {"text": "lo"}}
            yield {"event": "done", "data": {"response": "Hello", "sources": [], "actions": []}}

        llm = _llm()
        llm.stream_chat = stream_chat

        with patch("gather.api.v1.ai.get_llm_service", return_value=llm):
            response = await demo_client.post("/api/v1/ai/chat/stream", json={"message": "Hi"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert "event: token" in response.text
        assert '"text": "Hel"' in response.text
        assert "event: done" in response.text

    @pytest.mark.asyncio
    async def test_history(self, client):
        with patch("gather.api.v1.ai.ChatService") as chat_cls:
            chat_cls.return_value.history = AsyncMock(return_value=[])
            response = await client.get(f"/api/v1/ai/chat/history?taskId={TASK_ID}")

        assert response.json()["data"] == []
        assert chat_cls.return_value.history.call_args.kwargs["task_id"] == TASK_ID


SUMMARY = {
    "topics": ["license renewal"],
    "keyInsights": ["Puts off phone calls"],
    "strategiesUsed": [],
    "emotionalState": "stuck",
    "patternsObserved": [],
    "followUpNeeded": None,
}

CONVERSATION = [
    {"role": "user", "content": "I keep putting off the DMV call"},
    {"role": "assistant", "content": "Could you book online instead?"},
]


class TestCoachingMemory:

    @pytest.mark.asyncio
    async def test_signed_in_summary_is_stored(self, client, db_session):
        llm = _llm()
        llm.summarize_conversation = AsyncMock(return_value=SUMMARY)

        with patch("gather.api.v1.ai.get_llm_service", return_value=llm):
            response = await client.post(
                "/api/v1/ai/coaching-memory/summarize",
                json={"messages": CONVERSATION, "taskContext": {"title": "Renew license"}},
            )

        assert response.status_code == 200
        assert response.json()["data"] == {"summary": SUMMARY, "stored": True}
        assert llm.summarize_conversation.call_args.args[1] == {"title": "Renew license"}
        entry = db_session.add.call_args.args[0]
        assert isinstance(entry, CoachingMemoryEntry)
        assert entry.user_id == USER_ID
        assert entry.entry_type == MemoryEntryType.CONVERSATION_SUMMARY
        assert entry.content == SUMMARY

    @pytest.mark.asyncio
    async def test_demo_summary_is_not_stored(self, demo_client, db_session):
        llm = _llm()
        llm.summarize_conversation = AsyncMock(return_value=SUMMARY)

        with patch("gather.api.v1.ai.get_llm_service", return_value=llm):
            response = await demo_client.post("/api/v1/ai/coaching-memory/summarize", json={"messages": CONVERSATION})

        assert response.json()["data"]["stored"] is False
        db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_needs_two_messages(self, client):
        llm = _llm()
        llm.summarize_conversation = AsyncMock(return_value=SUMMARY)

        with patch("gather.api.v1.ai.get_llm_service", return_value=llm):
            response = await client.post(
                "/api/v1/ai/coaching-memory/summarize",
                json={"messages": CONVERSATION[:1]},
            )

        assert response.status_code == 422
        assert response.json()["error"]["field"] == "body.messages"
        llm.summarize_conversation.assert_not_called()

    @pytest.mark.asyncio
    async def test_overloaded(self, client):
        llm = _llm()
        llm.summarize_conversation = AsyncMock(side_effect=LLMOverloadedError("overloaded_error"))

        with patch("gather.api.v1.ai.get_llm_service", return_value=llm):
            response = await client.post("/api/v1/ai/coaching-memory/summarize", json={"messages": CONVERSATION})

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "AI_002"

    @pytest.mark.asyncio
    async def test_request_failed(self, client, db_session):
        llm = _llm()
        llm.summarize_conversation = AsyncMock(side_effect=LLMRequestFailedError("connection reset"))

        with patch("gather.api.v1.ai.get_llm_service", return_value=llm):
            response = await client.post("/api/v1/ai/coaching-memory/summarize", json={"messages": CONVERSATION})

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "AI_003"
        db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_list(self, client):
        entry = CoachingMemoryEntry(
            id=uuid.uuid4(),
            user_id=USER_ID,
            entry_type=MemoryEntryType.CONVERSATION_SUMMARY,
            content=SUMMARY,
        )

        with patch("gather.api.v1.ai.CoachingMemoryService") as memory_cls:
            memory_cls.return_value.recent = AsyncMock(return_value=[entry])
            response = await client.get("/api/v1/ai/coaching-memory?limit=5")

        assert response.json()["data"][0]["content"] == SUMMARY
        assert memory_cls.return_value.recent.call_args.kwargs["limit"] == 5

    @pytest.mark.asyncio
    async def test_forget(self, client):
        with patch("gather.api.v1.ai.CoachingMemoryService") as memory_cls:
            memory_cls.return_value.forget = AsyncMock(return_value=None)
            response = await client.delete("/api/v1/ai/coaching-memory")

        assert response.status_code == 200
        memory_cls.return_value.forget.assert_awaited_once_with(USER_ID)

    @pytest.mark.asyncio
    async def test_demo_cannot_read_memory(self, demo_client):
        response = await demo_client.get("/api/v1/ai/coaching-memory")

        assert response.status_code == 401


class TestCapture:

    @pytest.mark.asyncio
    async def test_demo_capture_flow(self, demo_client):
        with patch("gather.api.v1.capture.get_llm_service", return_value=_llm()):
            started = await demo_client.post("/api/v1/capture/sessions", json={"message": "renew license"})
            session_id = started.json()["data"]["sessionId"]
            finished = await demo_client.post(
                f"/api/v1/capture/sessions/{session_id}/answer",
                json={"answer": "CA"},
            )

        assert started.status_code == 201
        assert started.json()["data"]["state"] == "awaiting_clarifying_answer"
        assert started.json()["data"]["question"]["question"] == "Which state?"

        data = finished.json()["data"]
        assert data["state"] == "done"
        assert data["answers"] == [{"question": "Which state?", "answer": "CA"}]
        assert data["task"]["id"].startswith("demo-task-")
        assert [s["text"] for s in data["task"]["steps"]] == ["Book DMV visit", "Bring old license"]

    @pytest.mark.asyncio
    async def test_back_at_first_question(self, demo_client):
        with patch("gather.api.v1.capture.get_llm_service", return_value=_llm()):
            started = await demo_client.post("/api/v1/capture/sessions", json={"message": "renew license"})
            session_id = started.json()["data"]["sessionId"]
            response = await demo_client.post(f"/api/v1/capture/sessions/{session_id}/back")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CAPTURE_002"
        assert response.json()["error"]["state"] == "awaiting_clarifying_answer"

    @pytest.mark.asyncio
    async def test_unknown_session(self, demo_client):
        response = await demo_client.get("/api/v1/capture/sessions/missing")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "CAPTURE_001"
        assert response.json()["error"]["sessionId"] == "missing"

    @pytest.mark.asyncio
    async def test_not_configured(self, demo_client):
        with patch("gather.api.v1.capture.get_llm_service", return_value=_llm(configured=False)):
            response = await demo_client.post("/api/v1/capture/sessions", json={"message": "renew license"})

        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_duplicate_of_open_task(self, client):
        llm = _llm()

        with patch("gather.api.v1.capture.get_llm_service", return_value=llm), \
                patch("gather.api.v1.capture.TaskService") as tasks_cls:
            tasks_cls.return_value.list_open_tasks = AsyncMock(return_value=[_task()])
            response = await client.post("/api/v1/capture/sessions", json={"message": "renew driver's license"})

        data = response.json()["data"]
        assert data["sessionId"] is None
        assert data["duplicate"]["id"] == str(TASK_ID)
        llm.analyze_intent.assert_not_called()

