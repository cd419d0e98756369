"""
Anthropic LLM Service Tests
===========================

The chat model is replaced with a mock so no network calls are made.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from langchain_core.messages import AIMessage, AIMessageChunk

from gather.services.anthropic_llm import (
    DEFAULT_ENCOURAGEMENT,
    DEFAULT_MEMORY_SUMMARY,
    OVERLOADED_ACTION_KEY,
    AnthropicLLMService,
    LLMNotConfiguredError,
    LLMOverloadedError,
    LLMRequestFailedError,
)


NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

TASK_ROW = {
    "id": "t1",
    "title": "Renew passport",
    "createdAt": NOW - timedelta(days=21),
    "category": "soon",
    "dueDate": None,
    "stepsTotal": 3,
    "stepsDone": 0,
    "lastInteraction": None,
    "notes": None,
}


def _search(configured: bool = False) -> MagicMock:
    search = MagicMock()
    search.is_configured = configured
    search.search = AsyncMock(return_value=None)
    return search


def _service(search=None) -> AnthropicLLMService:
    service = AnthropicLLMService(search_service=search or _search())
    service.api_key = "test-key"
    return service


def _model(*replies) -> MagicMock:
    model = MagicMock()
    model.ainvoke = AsyncMock(side_effect=list(replies))
    model.bind_tools.return_value = model
    return model


class TestConfiguration:

    def test_not_configured(self):
        service = AnthropicLLMService(search_service=_search())
        service.api_key = ""

        assert not service.is_configured
        with pytest.raises(LLMNotConfiguredError):
            service.llm_for("chat")

    @pytest.mark.asyncio
    async def test_not_configured_propagates(self):
        service = AnthropicLLMService(search_service=_search())
        service.api_key = ""

        with pytest.raises(LLMNotConfiguredError):
            await service.analyze_intent("Renew passport")

    def test_models_are_cached_per_preset(self):
        service = _service()

        with patch("langchain_anthropic.ChatAnthropic") as chat_cls:
            first = service.llm_for("intent")
            again = service.llm_for("intent")
            service.llm_for("chat")

        assert first is again
        assert chat_cls.call_count == 2
        assert chat_cls.call_args_list[0].kwargs["model"] == service.fast_model


class TestAnalyzeIntent:

    @pytest.mark.asyncio
    async def test_parses_reply(self):
        service = _service()
        reply = AIMessage(content='```json\n{"taskName": "Renew passport", "needsMoreInfo": true, '
                                  '"questions": [{"question": "Which year?", "key": "tax_year", "options": []}]}\n```')

        with patch.object(service, "llm_for", return_value=_model(reply)):
            result = await service.analyze_intent("renew passport")

        assert result["taskName"] == "Renew passport"
        assert result["needsMoreInfo"] is True
        # tax_year questions always get the current and previous year
        assert len(result["questions"][0]["options"]) == 3

    @pytest.mark.asyncio
    async def test_unparseable_reply_defaults(self):
        service = _service()

        with patch.object(service, "llm_for", return_value=_model(AIMessage(content="no idea"))):
            result = await service.analyze_intent("Buy milk")

        assert result["taskName"] == "Buy milk"
        assert result["needsMoreInfo"] is False

    @pytest.mark.asyncio
    async def test_overloaded_offers_retry(self):
        service = _service()
        model = _model()
        model.ainvoke.side_effect = Exception("Error code: 529 - overloaded_error")

        with patch.object(service, "llm_for", return_value=model):
            result = await service.analyze_intent("Renew passport")

        assert result["needsMoreInfo"] is True
        assert result["questions"][0]["key"] == OVERLOADED_ACTION_KEY

    @pytest.mark.asyncio
    async def test_coaching_context_reaches_system_prompt(self):
        service = _service()
        model = _model(AIMessage(content='{"taskName": "Call dentist", "needsMoreInfo": false}'))

        with patch.object(service, "llm_for", return_value=model):
            await service.analyze_intent("call dentist", coaching_context="Note: keep it small")

        system = model.ainvoke.call_args.args[0][0].content
        assert system.endswith("## WHAT WE KNOW ABOUT THIS USER\nNote: keep it small")


class TestGenerateSteps:

    @pytest.mark.asyncio
    async def test_returns_rich_steps(self):
        service = _service()
        reply = AIMessage(content='[{"text": "Fill out DS-82", "time": "10 min"}, {"summary": "no text"}, "Mail it"]')

        with patch.object(service, "llm_for", return_value=_model(reply)):
            steps = await service.generate_steps("Renew passport")

        assert steps == [{"text": "Fill out DS-82", "time": "10 min"}, "Mail it"]

    @pytest.mark.asyncio
    async def test_failure_falls_back_to_defaults(self):
        service = _service()
        model = _model()
        model.ainvoke.side_effect = RuntimeError("timeout")

        with patch.object(service, "llm_for", return_value=model):
            steps = await service.generate_steps("Cancel gym membership")

        assert steps[0]["text"] == "Find contact info for cancellation"


class TestChat:

    @pytest.mark.asyncio
    async def test_filters_unknown_step_actions(self):
        service = _service()
        reply = AIMessage(content='{"message": "Bring your old passport.", '
                                  '"actions": [{"type": "mark_step_done", "stepId": "s9"}, {"type": "focus_step", "stepId": "s1"}]}')
        context = {"title": "Renew passport", "steps": [{"id": "s1", "text": "Find form"}]}

        with patch.object(service, "llm_for", return_value=_model(reply)):
            result = await service.chat("What do I bring?", context=context)

        assert result["message"] == "Bring your old passport."
        assert result["actions"] == [{"type": "focus_step", "stepId": "s1"}]
        assert result["sources"] == []

    @pytest.mark.asyncio
    async def test_runs_web_search_tool(self):
        search = _search(configured=True)
        search.search.return_value = {
            "answer": "The fee is $130.",
            "results": [
                {"title": "Passport fees", "url": "https://travel.state.gov/fees", "content": "Fees..."},
                {"title": "Forum", "url": "https://www.reddit.com/r/passport", "content": "..."},
            ],
        }
        service = _service(search)
        tool_call = AIMessage(
            content="",
            tool_calls=[{"name": "web_search", "args": {"query": "passport renewal fee"}, "id": "call_1"}],
        )
        final = AIMessage(content='{"message": "It costs $130.", "actions": []}')
        model = _model(tool_call, final)

        with patch.object(service, "llm_for", return_value=model):
            result = await service.chat("How much is it?")

        search.search.assert_awaited_once_with("passport renewal fee")
        model.bind_tools.assert_called_once()
        assert model.ainvoke.await_count == 2
        assert result["message"] == "It costs $130."
        assert result["sources"] == [{"title": "Passport fees", "url": "https://travel.state.gov/fees"}]

    @pytest.mark.asyncio
    async def test_error_returns_apology(self):
        service = _service()
        model = _model()
        model.ainvoke.side_effect = RuntimeError("boom")

        with patch.object(service, "llm_for", return_value=model):
            result = await service.chat("Hi")

        assert result["message"] == "Sorry, I couldn't generate a response."


class TestStreamChat:

    @pytest.mark.asyncio
    async def test_streams_message_tokens(self):
        service = _service()
        pieces = ['{"message": "Hel', 'lo"', ', "actions": []}']

        async def astream(messages):
            for piece in pieces:
                yield AIMessageChunk(content=piece)

        model = MagicMock()
        model.astream = astream

        with patch.object(service, "llm_for", return_value=model):
            events = [e async for e in service.stream_chat("Hi")]

        assert events[0] == {"event": "token", "data": {"text": "Hel"}}
        assert events[1] == {"event": "token", "data": {"text": "lo"}}
        assert events[-1] == {"event": "done", "data": {"response": "Hello", "sources": [], "actions": []}}

    @pytest.mark.asyncio
    async def test_plain_text_sent_once(self):
        service = _service()

        async def astream(messages):
            yield AIMessageChunk(content="Plain ")
            yield AIMessageChunk(content="answer")

        model = MagicMock()
        model.astream = astream

        with patch.object(service, "llm_for", return_value=model):
            events = [e async for e in service.stream_chat("Hi")]

        assert events[0] == {"event": "token", "data": {"text": "Plain answer"}}
        assert events[-1]["data"]["response"] == "Plain answer"

    @pytest.mark.asyncio
    async def test_error_event(self):
        service = _service()

        async def astream(messages):
            raise RuntimeError("connection reset")
            yield  # pragma: no cover

        model = MagicMock()
        model.astream = astream

        with patch.object(service, "llm_for", return_value=model):
            events = [e async for e in service.stream_chat("Hi")]

        assert events == [{"event": "error", "data": {"message": "Failed to generate a response."}}]


class TestBrainDumpAndInsights:

    @pytest.mark.asyncio
    async def test_brain_dump_drops_untitled(self):
        service = _service()
        reply = AIMessage(content='{"tasks": [{"title": "Call mom", "group": "Family"}, {"title": "  "}], '
                                  '"groups": ["Family", 3]}')

        with patch.object(service, "llm_for", return_value=_model(reply)):
            result = await service.extract_brain_dump("call mom and stuff")

        assert [t["title"] for t in result["tasks"]] == ["Call mom"]
        assert result["groups"] == ["Family"]

    @pytest.mark.asyncio
    async def test_brain_dump_parse_failure(self):
        service = _service()

        with patch.object(service, "llm_for", return_value=_model(AIMessage(content="nope"))):
            result = await service.extract_brain_dump("call mom")

        assert result == {"tasks": [], "groups": [], "error": "Failed to parse response"}

    @pytest.mark.asyncio
    async def test_insights_keep_known_tasks_only(self):
        service = _service()
        reply = AIMessage(content='[{"taskId": "t1", "type": "stuck", "observation": "Open for 3 weeks", '
                                  '"suggestion": "Do step 1", "priority": "2"}, '
                                  '{"taskId": "ghost", "observation": "x"}, {"taskId": "t1"}]')

        with patch.object(service, "llm_for", return_value=_model(reply)):
            insights = await service.generate_task_insights([TASK_ROW], {"preferredDays": []}, now=NOW)

        assert insights == [{
            "taskId": "t1",
            "type": "stuck",
            "observation": "Open for 3 weeks",
            "suggestion": "Do step 1",
            "priority": 2,
        }]


STATS = {
    "tasksCompleted": 3,
    "onTimeCompletions": 2,
    "busiestDay": "Tuesday",
    "productiveHours": "9am-11am",
    "momentumDays": 4,
}


class TestReflectionAndMemory:

    @pytest.mark.asyncio
    async def test_weekly_reflection(self):
        service = _service()
        reply = AIMessage(content='{"wins": ["Renewed passport", 7], "patterns": ["Mornings work"], '
                                  '"suggestions": ["Keep Tuesdays light"]}')

        with patch.object(service, "llm_for", return_value=_model(reply)):
            result = await service.generate_weekly_reflection(["Renew passport"], STATS)

        assert result == {
            "wins": ["Renewed passport"],
            "patterns": ["Mornings work"],
            "suggestions": ["Keep Tuesdays light"],
            "encouragement": DEFAULT_ENCOURAGEMENT,
        }

    @pytest.mark.asyncio
    async def test_weekly_reflection_failure(self):
        service = _service()
        model = _model()
        model.ainvoke.side_effect = Exception("connection reset")

        with patch.object(service, "llm_for", return_value=model):
            assert await service.generate_weekly_reflection([], STATS) is None

    @pytest.mark.asyncio
    async def test_summary_keeps_known_fields(self):
        service = _service()
        reply = AIMessage(content='{"topics": ["taxes"], "keyInsights": ["Avoids phone calls"], '
                                  '"emotionalState": "grumpy", "mood": "ignored"}')

        with patch.object(service, "llm_for", return_value=_model(reply)):
            summary = await service.summarize_conversation(
                [{"role": "user", "content": "I hate calling"}, {"role": "assistant", "content": "Try email"}],
            )

        assert summary["topics"] == ["taxes"]
        assert summary["keyInsights"] == ["Avoids phone calls"]
        assert summary["emotionalState"] == "neutral"
        assert "mood" not in summary
        assert set(summary) == set(DEFAULT_MEMORY_SUMMARY)

    @pytest.mark.asyncio
    async def test_summary_parse_failure(self):
        service = _service()

        with patch.object(service, "llm_for", return_value=_model(AIMessage(content="sorry"))):
            summary = await service.summarize_conversation([{"role": "user", "content": "hi"}])

        assert summary == DEFAULT_MEMORY_SUMMARY

    @pytest.mark.asyncio
    async def test_summary_overloaded(self):
        service = _service()
        model = _model()
        model.ainvoke.side_effect = Exception("Error code: 529 - overloaded_error")

        with patch.object(service, "llm_for", return_value=model):
            with pytest.raises(LLMOverloadedError):
                await service.summarize_conversation([{"role": "user", "content": "hi"}])

    @pytest.mark.asyncio
    async def test_summary_request_failed(self):
        service = _service()
        model = _model()
        model.ainvoke.side_effect = Exception("connection reset")

        with patch.object(service, "llm_for", return_value=model):
            with pytest.raises(LLMRequestFailedError):
                await service.summarize_conversation([{"role": "user", "content": "hi"}])
