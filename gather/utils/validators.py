"""
Validators
==========

Input validation for AI endpoints.
"""

import json
from typing import Any, Optional

from gather.core.errors import ValidationError

MAX_MESSAGE_LENGTH = 2000
MAX_CONTEXT_LENGTH = 10000
MAX_HISTORY_ENTRIES = 50
MAX_BRAIN_DUMP_LENGTH = 10000


def validate_chat_input(
    message: Any,
    context: Optional[Any] = None,
    history: Optional[Any] = None,
) -> str:
    """
    Validate chat input.

    Args:
        message: User message
        context: Optional task context (string or JSON-able object)
        history: Optional list of ``{role, content}`` turns

    Returns:
        The trimmed message

    Raises:
        ValidationError: If any part is missing, too long or malformed
    """
    if not isinstance(message, str) or not message.strip():
        raise ValidationError(message="Message is required", field="message")

    if len(message) > MAX_MESSAGE_LENGTH:
        raise ValidationError(
            message=f"Message too long (max {MAX_MESSAGE_LENGTH} characters)",
            field="message",
        )

    if context is not None:
        context_str = context if isinstance(context, str) else json.dumps(context, default=str)
        if len(context_str) > MAX_CONTEXT_LENGTH:
            raise ValidationError(message="Context too large", field="context")

    if history is not None:
        if not isinstance(history, list):
            raise ValidationError(message="History must be an array", field="history")
        if len(history) > MAX_HISTORY_ENTRIES:
            raise ValidationError(
                message=f"History too long (max {MAX_HISTORY_ENTRIES} messages)",
                field="history",
            )
        for entry in history:
            if not isinstance(entry, dict):
                raise ValidationError(message="Invalid history entry", field="history")
            if entry.get("role") not in ("user", "assistant"):
                raise ValidationError(message="Invalid history role", field="history")
            content = entry.get("content")
            if not isinstance(content, str) or len(content) > MAX_MESSAGE_LENGTH:
                raise ValidationError(message="Invalid history content", field="history")

    return message.strip()


def validate_brain_dump(text: Any) -> str:
    """Validate brain dump text."""
    if not isinstance(text, str) or not text.strip():
        raise ValidationError(message="Text is required", field="text")
    if len(text) > MAX_BRAIN_DUMP_LENGTH:
        raise ValidationError(
            message=f"Text too long (max {MAX_BRAIN_DUMP_LENGTH} characters)",
            field="text",
        )
    return text.strip()
