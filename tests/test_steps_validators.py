"""
Step Builder and Input Validator Tests
======================================
"""

import pytest

from gather.core.errors import AppException
from gather.utils.steps import create_fallback_steps, get_default_steps, steps_from_ai
from gather.utils.validators import (
    MAX_BRAIN_DUMP_LENGTH,
    MAX_MESSAGE_LENGTH,
    validate_brain_dump,
    validate_chat_input,
)


class TestDefaultSteps:

    def test_keyword_template(self):
        steps = get_default_steps("Cancel gym membership")
        assert steps[0]["text"] == "Find contact info for cancellation"
        assert len(steps) == 3

    def test_generic_template_mentions_title(self):
        steps = get_default_steps("Fix bike")
        assert steps[0]["text"] == 'Search for how to do "Fix bike"'

    def test_fallback_steps(self):
        steps = create_fallback_steps("Renew Passport", "US citizen")

        assert len(steps) == 4
        assert steps[0]["text"] == "Research how to renew passport"
        assert steps[1]["summary"] == "Based on: US citizen"
        assert all(s["id"].startswith("step-") and s["done"] is False for s in steps)
        assert len({s["id"] for s in steps}) == 4


def test_steps_from_ai():
    items = [
        "  Call the DMV ",
        "",
        {"text": "Fill out form", "summary": "Takes 5 min", "time": "5 min", "unknown": 1},
        {"summary": "No text"},
        42,
    ]

    steps = steps_from_ai(items)

    assert [s["text"] for s in steps] == ["Call the DMV", "Fill out form"]
    assert steps[1]["summary"] == "Takes 5 min"
    assert steps[1]["time"] == "5 min"
    assert "unknown" not in steps[1]
    assert all(s["done"] is False for s in steps)


class TestValidateChatInput:

    def test_returns_trimmed_message(self):
        assert validate_chat_input("  what now? ", {"title": "x"}, [{"role": "user", "content": "hi"}]) == "what now?"

    @pytest.mark.parametrize(
        "message, context, history",
        [
            ("   ", None, None),
            (None, None, None),
            ("x" * (MAX_MESSAGE_LENGTH + 1), None, None),
            ("hi", "c" * 10001, None),
            ("hi", None, "not a list"),
            ("hi", None, [{"role": "system", "content": "x"}]),
            ("hi", None, [{"role": "user", "content": 5}]),
            ("hi", None, [{"role": "user", "content": "x"}] * 51),
        ],
    )
    def test_rejects_bad_input(self, message, context, history):
        with pytest.raises(AppException) as exc_info:
            validate_chat_input(message, context, history)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail["code"] == "VALIDATION_ERROR"


class TestValidateBrainDump:

    def test_ok(self):
        assert validate_brain_dump(" call mom, pay rent ") == "call mom, pay rent"

    def test_empty(self):
        with pytest.raises(AppException):
            validate_brain_dump("")

    def test_too_long(self):
        with pytest.raises(AppException) as exc_info:
            validate_brain_dump("x" * (MAX_BRAIN_DUMP_LENGTH + 1))

        assert exc_info.value.detail["field"] == "text"
