"""
Anthropic LLM Service
=====================

Integration with Anthropic Claude via LangChain for:
- Intent analysis and clarifying questions during capture
- Quick task classification
- Step generation grounded with web search
- Brain dump extraction
- Task chat (plain and streaming)
- Proactive task intelligence
- Weekly reflections and coaching memory summaries
"""

import logging
from datetime import datetime
from typing import Any, AsyncIterator, Optional, Sequence

import anthropic
from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

from gather.config import settings
from gather.services import prompts
from gather.services.tavily_search import (
    TavilySearchService,
    format_search_results,
    get_search_service,
)
from gather.utils.ai_parsing import (
    clean_ai_message,
    extract_json,
    parse_ai_response_full,
    parse_streaming_message,
)
from gather.utils.helpers import utc_now
from gather.utils.sources import prioritize_sources
from gather.utils.steps import get_default_steps
from gather.utils.task_text import filter_actions, sanitize_questions

logger = logging.getLogger(__name__)


# =============================================================================
# Errors and fallbacks
# =============================================================================

class LLMNotConfiguredError(Exception):
    """Raised when no Anthropic API key is configured."""


class LLMOverloadedError(Exception):
    """Raised when Anthropic reports it is overloaded (HTTP 529)."""


class LLMRequestFailedError(Exception):
    """Raised when a model call fails and there is no useful fallback."""


DEFAULT_INTENT_RESPONSE = {
    "taskName": "Task",
    "taskType": "quick",
    "understanding": "Processing your request",
    "extractedContext": {},
    "needsMoreInfo": False,
    "reasoning": "Unable to analyze - proceeding with basic task",
    "questions": [],
}

DEFAULT_TASK_ANALYSIS = {
    "needsClarification": False,
    "taskType": "other",
    "taskCategory": "personal",
    "questions": [],
    "immediateInsight": None,
}

DEFAULT_CHAT_RESPONSE = {
    "message": "Sorry, I couldn't generate a response.",
    "actions": [],
    "sources": [],
}

DEFAULT_MEMORY_SUMMARY = {
    "topics": [],
    "keyInsights": [],
    "strategiesUsed": [],
    "emotionalState": "neutral",
    "patternsObserved": [],
    "followUpNeeded": None,
}

EMOTIONAL_STATES = ("overwhelmed", "stuck", "motivated", "energized", "neutral")

DEFAULT_ENCOURAGEMENT = "You showed up this week. That matters."

OVERLOADED_ACTION_KEY = "ai_overloaded_action"
OVERLOADED_RETRY_OPTION = "Try again"
OVERLOADED_SKIP_OPTION = "Add task without steps"


def overloaded_intent_response(message: str) -> dict:
    """Canned intent reply offered while Anthropic is overloaded."""
    return {
        "taskName": message,
        "understanding": "Sorry, I'm a bit overloaded right now.",
        "needsMoreInfo": True,
        "reasoning": "The AI service is temporarily busy, so I can't generate steps yet.",
        "questions": [
            {
                "question": "Want me to add this as a simple task for now, or try again?",
                "key": OVERLOADED_ACTION_KEY,
                "options": [OVERLOADED_RETRY_OPTION, OVERLOADED_SKIP_OPTION],
            }
        ],
        "ifComplete": {"steps": [], "contextSummary": ""},
    }


# Model presets: (tier, max_tokens, temperature)
MODEL_PRESETS = {
    "intent": ("fast", 2048, 0.3),
    "analysis": ("fast", 1024, 0.3),
    "breakdown": ("standard", 4096, 0.5),
    "brain_dump": ("standard", 2000, 0.3),
    "chat": ("standard", 2048, 0.7),
    "intelligence": ("fast", 1024, 0.4),
    "memory": ("fast", 1024, 0.3),
    "reflection": ("standard", 1024, 0.6),
}

MAX_TOOL_ROUNDS = 3
MAX_CHAT_SOURCES = 3


def _is_overloaded(error: Exception) -> bool:
    if isinstance(error, anthropic.APIStatusError) and error.status_code == 529:
        return True
    return "overloaded_error" in str(error)


def _content_text(content: Any) -> str:
    """Text of a message's content, which may be a string or content blocks."""
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def _history_messages(history: Optional[Sequence[dict]]) -> list[BaseMessage]:
    messages: list[BaseMessage] = []
    for turn in history or []:
        if turn.get("role") == "user":
            messages.append(HumanMessage(content=turn.get("content", "")))
        elif turn.get("role") == "assistant":
            messages.append(AIMessage(content=turn.get("content", "")))
    return messages


# =============================================================================
# Service
# =============================================================================

class AnthropicLLMService:
    """
    Service for LLM operations using Anthropic Claude via LangChain.

    Chat models are created lazily, one per (model, max_tokens,
    temperature) combination.
    """

    def __init__(self, search_service: Optional[TavilySearchService] = None):
        self.api_key = settings.ANTHROPIC_API_KEY
        self.fast_model = settings.ANTHROPIC_FAST_MODEL
        self.standard_model = settings.ANTHROPIC_MODEL
        self.search = search_service or get_search_service()
        self._llms: dict[tuple, Any] = {}

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def llm_for(self, use: str):
        """Get or create the chat model for a preset."""
        if not self.is_configured:
            raise LLMNotConfiguredError(
                "Anthropic API not configured. Set ANTHROPIC_API_KEY environment variable."
            )

        tier, max_tokens, temperature = MODEL_PRESETS[use]
        model = self.fast_model if tier == "fast" else self.standard_model
        key = (model, max_tokens, temperature)

        if key not in self._llms:
            from langchain_anthropic import ChatAnthropic

            self._llms[key] = ChatAnthropic(
                model=model,
                api_key=self.api_key,
                max_tokens=max_tokens,
                temperature=temperature,
                timeout=settings.ANTHROPIC_TIMEOUT_SECONDS,
                max_retries=2,
            )

        return self._llms[key]

    async def _complete(self, use: str, messages: list[BaseMessage]) -> str:
        """Single non-tool completion. Overloads surface as LLMOverloadedError."""
        try:
            response = await self.llm_for(use).ainvoke(messages)
        except LLMNotConfiguredError:
            raise
        except Exception as e:
            if _is_overloaded(e):
                raise LLMOverloadedError(str(e)) from e
            raise
        return _content_text(response.content)

    # -------------------------------------------------------------------------
    # Web search tool
    # -------------------------------------------------------------------------

    async def _run_web_search(self, query: str, sources: list[dict]) -> str:
        """Execute the web_search tool and collect its sources."""
        if not self.search.is_configured:
            return "Web search not available"

        results = await self.search.search(query)
        if results is None:
            return "Search failed"

        for item in results.get("results") or []:
            if item.get("url"):
                sources.append({"title": item.get("title") or item["url"], "url": item["url"]})

        return format_search_results(results)

    async def _tool_messages(self, response: AIMessage, sources: list[dict]) -> list[ToolMessage]:
        results = []
        for call in response.tool_calls:
            if call["name"] == "web_search":
                output = await self._run_web_search(call["args"].get("query", ""), sources)
            else:
                output = f"Unknown tool: {call['name']}"
            results.append(ToolMessage(content=output, tool_call_id=call["id"]))
        return results

    async def _run_with_tools(
        self,
        use: str,
        messages: list[BaseMessage],
        sources: list[dict],
    ) -> str:
        """
        Run a completion that may call web_search, for up to MAX_TOOL_ROUNDS.

        Returns:
            The text of the final (non-tool) reply
        """
        llm = self.llm_for(use)
        if self.search.is_configured:
            llm = llm.bind_tools([prompts.WEB_SEARCH_TOOL])

        try:
            response = await llm.ainvoke(messages)
            rounds = 0
            while response.tool_calls and rounds < MAX_TOOL_ROUNDS:
                rounds += 1
                messages.append(response)
                messages.extend(await self._tool_messages(response, sources))
                response = await llm.ainvoke(messages)
        except Exception as e:
            if _is_overloaded(e):
                raise LLMOverloadedError(str(e)) from e
            raise

        return _content_text(response.content)

    # -------------------------------------------------------------------------
    # Capture
    # -------------------------------------------------------------------------

    async def analyze_intent(
        self,
        message: str,
        memory: Optional[Sequence[dict]] = None,
        coaching_context: Optional[str] = None,
    ) -> dict:
        """
        Decide between clarifying questions and steps for a new task.

        Args:
            message: What the user typed
            memory: Earlier ``{role, content}`` turns of this capture
            coaching_context: What is remembered about the user from
                earlier conversations

        Returns:
            Intent dict (taskName, needsMoreInfo, questions, ifComplete, ...).
            While Anthropic is overloaded, a canned reply offering to retry
            or to add the task without steps.

        Raises:
            LLMNotConfiguredError: If no API key is set
        """
        system = prompts.build_intent_analysis_prompt(utc_now())
        if coaching_context:
            system = f"{system}\n\n## WHAT WE KNOW ABOUT THIS USER\n{coaching_context}"
        messages: list[BaseMessage] = [SystemMessage(content=system)]
        messages.extend(_history_messages([m for m in memory or [] if m.get("role") != "system"]))
        messages.append(HumanMessage(content=prompts.build_intent_user_prompt(message)))

        try:
            content = await self._complete("intent", messages)
        except LLMNotConfiguredError:
            raise
        except LLMOverloadedError:
            logger.warning("Anthropic overloaded during intent analysis")
            return overloaded_intent_response(message)
        except Exception as e:
            logger.error("Intent analysis error: %s", e)
            return {**DEFAULT_INTENT_RESPONSE, "taskName": message}

        parsed = extract_json(content, expect="object")
        if not isinstance(parsed, dict):
            logger.error("Invalid intent analysis response: %s", content[:200])
            return {**DEFAULT_INTENT_RESPONSE, "taskName": message}

        parsed.setdefault("taskName", message)
        parsed.setdefault("needsMoreInfo", False)
        parsed["questions"] = sanitize_questions(parsed["taskName"], parsed.get("questions") or [])
        return parsed

    async def analyze_task(self, title: str) -> dict:
        """Quick classification of a task title. Falls back to DEFAULT_TASK_ANALYSIS."""
        messages = [HumanMessage(content=prompts.build_task_analysis_prompt(title, utc_now()))]

        try:
            content = await self._complete("analysis", messages)
        except LLMNotConfiguredError:
            raise
        except Exception as e:
            logger.error("Task analysis error: %s", e)
            return dict(DEFAULT_TASK_ANALYSIS)

        parsed = extract_json(content, expect="object")
        if not isinstance(parsed, dict):
            return dict(DEFAULT_TASK_ANALYSIS)

        parsed.setdefault("questions", [])
        parsed.setdefault("immediateInsight", None)
        return parsed

    async def generate_steps(
        self,
        title: str,
        description: Optional[str] = None,
        notes: Optional[str] = None,
        existing_steps: Optional[Sequence[str]] = None,
        clarifying_answers: Optional[Sequence[dict]] = None,
    ) -> list[dict]:
        """
        Generate researched, actionable steps for a task.

        Args:
            title: Task title
            description: Optional task description
            notes: Optional user notes
            existing_steps: Step texts already on the task
            clarifying_answers: ``[{question, answer}]`` from the capture flow

        Returns:
            List of rich step dicts (text, summary, detail, time, source,
            action). Default steps when generation fails.
        """
        messages: list[BaseMessage] = [
            SystemMessage(content=prompts.TASK_BREAKDOWN_SYSTEM_PROMPT),
            HumanMessage(
                content=prompts.build_breakdown_user_prompt(
                    title,
                    description=description,
                    notes=notes,
                    existing_steps=existing_steps,
                    clarifying_answers=clarifying_answers,
                )
            ),
        ]

        try:
            content = await self._run_with_tools("breakdown", messages, sources=[])
        except LLMNotConfiguredError:
            raise
        except Exception as e:
            logger.error("Step generation error for %r: %s", title, e)
            return get_default_steps(title)

        parsed = extract_json(content, expect="array")
        if not isinstance(parsed, list):
            logger.warning("No step array in model output for %r", title)
            return get_default_steps(title)

        steps = [s for s in parsed if isinstance(s, str) or (isinstance(s, dict) and s.get("text"))]
        return steps or get_default_steps(title)

    # -------------------------------------------------------------------------
    # Brain dump
    # -------------------------------------------------------------------------

    async def extract_brain_dump(self, text: str) -> dict:
        """
        Pull discrete tasks out of freeform text.

        Returns:
            ``{"tasks": [...], "groups": [...]}``, plus ``error`` when the
            model output could not be used
        """
        messages = [
            SystemMessage(content=prompts.BRAIN_DUMP_SYSTEM_PROMPT),
            HumanMessage(content=prompts.build_brain_dump_user_prompt(text)),
        ]

        try:
            content = await self._complete("brain_dump", messages)
        except LLMNotConfiguredError:
            raise
        except Exception as e:
            logger.error("Brain dump extraction error: %s", e)
            return {"tasks": [], "groups": [], "error": "Failed to process brain dump"}

        parsed = extract_json(content, expect="object")
        if not isinstance(parsed, dict):
            return {"tasks": [], "groups": [], "error": "Failed to parse response"}

        tasks = [
            {
                "title": str(t.get("title", "")).strip(),
                "firstStep": t.get("firstStep"),
                "originalText": t.get("originalText"),
                "group": t.get("group"),
            }
            for t in parsed.get("tasks") or []
            if isinstance(t, dict) and str(t.get("title", "")).strip()
        ]
        groups = [g for g in parsed.get("groups") or [] if isinstance(g, str)]
        return {"tasks": tasks, "groups": groups}

    # -------------------------------------------------------------------------
    # Chat
    # -------------------------------------------------------------------------

    def _chat_messages(
        self,
        message: str,
        context: Any,
        history: Optional[Sequence[dict]],
    ) -> list[BaseMessage]:
        messages: list[BaseMessage] = [SystemMessage(content=prompts.CHAT_SYSTEM_PROMPT)]
        messages.extend(_history_messages(history))
        messages.append(HumanMessage(content=prompts.build_chat_user_prompt(message, context)))
        return messages

    @staticmethod
    def _finish_chat(text: str, context: Any, sources: list[dict]) -> dict:
        parsed = parse_ai_response_full(text)
        task = context if isinstance(context, dict) else None
        return {
            "message": clean_ai_message(parsed["message"]) or DEFAULT_CHAT_RESPONSE["message"],
            "actions": filter_actions(parsed["actions"], task),
            "sources": prioritize_sources(sources)[:MAX_CHAT_SOURCES],
        }

    async def chat(
        self,
        message: str,
        context: Any = None,
        history: Optional[Sequence[dict]] = None,
    ) -> dict:
        """
        Answer a question about a task.

        Returns:
            ``{"message", "actions", "sources"}``
        """
        sources: list[dict] = []
        try:
            content = await self._run_with_tools("chat", self._chat_messages(message, context, history), sources)
        except LLMNotConfiguredError:
            raise
        except Exception as e:
            logger.error("Chat error: %s", e)
            return {**DEFAULT_CHAT_RESPONSE, "actions": [], "sources": []}

        return self._finish_chat(content, context, sources)

    async def stream_chat(
        self,
        message: str,
        context: Any = None,
        history: Optional[Sequence[dict]] = None,
    ) -> AsyncIterator[dict]:
        """
        Stream a chat answer as server-sent events.

        Yields ``{"event", "data"}`` dicts: ``token`` with the newly parsed
        part of the message, ``sources`` once search results are known,
        then ``done`` with the full response. Failures yield ``error``.
        """
        llm = self.llm_for("chat")
        if self.search.is_configured:
            llm = llm.bind_tools([prompts.WEB_SEARCH_TOOL])

        messages = self._chat_messages(message, context, history)
        sources: list[dict] = []
        final_text = ""

        try:
            for round_number in range(MAX_TOOL_ROUNDS + 1):
                gathered = None
                round_text = ""
                emitted = ""

                async for chunk in llm.astream(messages):
                    gathered = chunk if gathered is None else gathered + chunk
                    piece = _content_text(chunk.content)
                    if not piece:
                        continue
                    round_text += piece

                    # Only JSON replies are streamed; tool preambles are not
                    if not round_text.lstrip().startswith("{"):
                        continue
                    current = parse_streaming_message(round_text)
                    if len(current) > len(emitted) and current.startswith(emitted):
                        yield {"event": "token", "data": {"text": current[len(emitted):]}}
                        emitted = current

                if gathered is not None and gathered.tool_calls and round_number < MAX_TOOL_ROUNDS:
                    messages.append(gathered)
                    messages.extend(await self._tool_messages(gathered, sources))
                    continue

                final_text = round_text
                if not emitted and round_text.strip():
                    yield {"event": "token", "data": {"text": clean_ai_message(round_text)}}
                break

        except Exception as e:
            if _is_overloaded(e):
                logger.warning("Anthropic overloaded during chat stream")
                yield {"event": "error", "data": {"message": "The AI is overloaded right now. Please try again."}}
            else:
                logger.error("Chat stream error: %s", e)
                yield {"event": "error", "data": {"message": "Failed to generate a response."}}
            return

        result = self._finish_chat(final_text, context, sources)
        if result["sources"]:
            yield {"event": "sources", "data": {"sources": result["sources"]}}
        yield {
            "event": "done",
            "data": {
                "response": result["message"],
                "sources": result["sources"],
                "actions": result["actions"],
            },
        }

    # -------------------------------------------------------------------------
    # Task intelligence
    # -------------------------------------------------------------------------

    async def generate_task_insights(
        self,
        tasks: Sequence[dict],
        patterns: dict,
        history: Optional[dict] = None,
        now: Optional[datetime] = None,
    ) -> list[dict]:
        """
        Ask for observations about stuck, vague or floating tasks.

        Returns:
            List of ``{taskId, type, observation, suggestion, priority}``;
            empty on any failure
        """
        prompt = prompts.build_task_intelligence_prompt(tasks, patterns, now or utc_now(), history)

        try:
            content = await self._complete("intelligence", [HumanMessage(content=prompt)])
        except LLMNotConfiguredError:
            raise
        except Exception as e:
            logger.error("Task intelligence error: %s", e)
            return []

        parsed = extract_json(content, expect="array")
        if not isinstance(parsed, list):
            return []

        valid_ids = {t["id"] for t in tasks}
        observations = []
        for item in parsed:
            if not isinstance(item, dict) or item.get("taskId") not in valid_ids:
                continue
            if not item.get("observation"):
                continue
            try:
                priority = int(item.get("priority", 3))
            except (TypeError, ValueError):
                priority = 3
            observations.append(
                {
                    "taskId": item["taskId"],
                    "type": item.get("type", "stuck"),
                    "observation": item["observation"],
                    "suggestion": item.get("suggestion", ""),
                    "priority": priority,
                }
            )
        return observations

    # -------------------------------------------------------------------------
    # Weekly reflection and coaching memory
    # -------------------------------------------------------------------------

    async def generate_weekly_reflection(
        self,
        titles: Sequence[str],
        stats: dict,
        previous_patterns: Optional[Sequence[str]] = None,
    ) -> Optional[dict]:
        """
        Wins, patterns, suggestions and encouragement for one week.

        Returns:
            ``{wins, patterns, suggestions, encouragement}`` or None when the
            model call or its output failed
        """
        prompt = prompts.build_weekly_reflection_prompt(titles, stats, previous_patterns)

        try:
            content = await self._complete("reflection", [HumanMessage(content=prompt)])
        except LLMNotConfiguredError:
            raise
        except Exception as e:
            logger.error("Weekly reflection error: %s", e)
            return None

        parsed = extract_json(content, expect="object")
        if not isinstance(parsed, dict):
            return None

        return {
            "wins": [w for w in parsed.get("wins") or [] if isinstance(w, str)],
            "patterns": [p for p in parsed.get("patterns") or [] if isinstance(p, str)],
            "suggestions": [s for s in parsed.get("suggestions") or [] if isinstance(s, str)],
            "encouragement": parsed.get("encouragement") or DEFAULT_ENCOURAGEMENT,
        }

    async def summarize_conversation(
        self,
        messages: Sequence[dict],
        task_context: Optional[dict] = None,
    ) -> dict:
        """
        Distil a chat into coaching memory.

        Returns:
            ``{topics, keyInsights, strategiesUsed, emotionalState,
            patternsObserved, followUpNeeded}``; DEFAULT_MEMORY_SUMMARY when
            the output can't be parsed

        Raises:
            LLMNotConfiguredError: If no API key is set
            LLMOverloadedError: While Anthropic is overloaded
            LLMRequestFailedError: On any other model error
        """
        llm_messages = [
            SystemMessage(content=prompts.MEMORY_SUMMARY_SYSTEM_PROMPT),
            HumanMessage(content=prompts.build_memory_summary_user_prompt(messages, task_context)),
        ]

        try:
            content = await self._complete("memory", llm_messages)
        except (LLMNotConfiguredError, LLMOverloadedError):
            raise
        except Exception as e:
            logger.error("Memory summary error: %s", e)
            raise LLMRequestFailedError(str(e)) from e

        parsed = extract_json(content, expect="object")
        if not isinstance(parsed, dict):
            logger.error("Failed to parse memory summary: %s", content[:200])
            return dict(DEFAULT_MEMORY_SUMMARY)

        summary = {**DEFAULT_MEMORY_SUMMARY, **{k: v for k, v in parsed.items() if k in DEFAULT_MEMORY_SUMMARY}}
        if summary["emotionalState"] not in EMOTIONAL_STATES:
            summary["emotionalState"] = "neutral"
        return summary


# Singleton instance
_llm_service: Optional[AnthropicLLMService] = None


def get_llm_service() -> AnthropicLLMService:
    """Get or create LLM service instance."""
    global _llm_service

    if _llm_service is None:
        _llm_service = AnthropicLLMService()

    return _llm_service
