"""
AI Response Parsing
===================

Helpers for pulling JSON and chat messages out of model output, including
partial output while a response is still streaming.
"""

import json
import re
from typing import Any, Optional

_MESSAGE_FIELD_RE = re.compile(r'"message"\s*:\s*"((?:[^"\\]|\\[\s\S])*)"')
_CODE_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_CITE_RE = re.compile(r"<cite[^>]*>.*?</cite>")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")
_ANY_JSON_RE = re.compile(r"(\{[\s\S]*\}|\[[\s\S]*\])")

# "a": "b"\n "c":  ->  "a": "b",\n "c":
_MISSING_COMMA_PROP_RE = re.compile(r'"([^"]+)"\s*:\s*"([^"]*)"\s*\n\s*"([^"]+)"\s*:')
# }\n{  ->  },\n{
_MISSING_COMMA_OBJ_RE = re.compile(r"\}\s*\n\s*\{")

_ESCAPES = {'"': '"', "n": "\n", "t": "\t", "r": "\r", "\\": "\\"}


def unescape_json_string(value: str) -> str:
    """Unescape a JSON string body. ``\\\\`` is handled before the others."""
    if not value:
        return ""
    return (
        value.replace("\\\\", "\u0000")
        .replace('\\"', '"')
        .replace("\\n", "\n")
        .replace("\\t", "\t")
        .replace("\\r", "\r")
        .replace("\u0000", "\\")
    )


def parse_ai_message(text: Optional[str]) -> str:
    """Return the ``message`` field of a JSON reply, or the trimmed text."""
    if not text:
        return ""
    trimmed = text.strip()

    if trimmed.startswith("{") and '"message"' in trimmed:
        try:
            parsed = json.loads(trimmed)
            if isinstance(parsed, dict) and isinstance(parsed.get("message"), str):
                return parsed["message"]
        except json.JSONDecodeError:
            pass

        match = _MESSAGE_FIELD_RE.search(trimmed)
        if match:
            return unescape_json_string(match.group(1))

    return trimmed


def parse_ai_response_full(text: Optional[str]) -> dict:
    """
    Parse a complete reply into ``{"message", "actions", "raw"}``.

    Falls back to the raw text as the message when no JSON is present.
    """
    if not text:
        return {"message": "", "actions": [], "raw": ""}

    trimmed = text.strip()
    result = {"message": trimmed, "actions": [], "raw": trimmed}

    match = _OBJECT_RE.search(trimmed)
    if match:
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError:
            message_match = _MESSAGE_FIELD_RE.search(trimmed)
            if message_match:
                result["message"] = unescape_json_string(message_match.group(1))
        else:
            if isinstance(parsed, dict):
                if isinstance(parsed.get("message"), str):
                    result["message"] = parsed["message"]
                if isinstance(parsed.get("actions"), list):
                    result["actions"] = parsed["actions"]

    return result


def parse_streaming_message(text: Optional[str]) -> str:
    """
    Extract as much of the ``message`` value as has streamed so far.

    Handles escape sequences and stops at the closing quote, which may not
    have arrived yet.
    """
    if not text:
        return ""
    trimmed = text.strip()

    if not (trimmed.startswith("{") and '"message"' in trimmed):
        return trimmed

    start = trimmed.find('"message"')
    colon = trimmed.find(":", start)
    if colon == -1:
        return ""
    quote = trimmed.find('"', colon + 1)
    if quote == -1:
        return ""

    out: list[str] = []
    i = quote + 1
    while i < len(trimmed):
        char = trimmed[i]
        if char == "\\" and i + 1 < len(trimmed):
            nxt = trimmed[i + 1]
            out.append(_ESCAPES.get(nxt, nxt))
            i += 2
        elif char == '"':
            break
        else:
            out.append(char)
            i += 1

    return "".join(out)


def strip_cite_tags(text: Optional[str]) -> str:
    if not text:
        return ""
    return _CITE_RE.sub("", text).strip()


def clean_ai_message(text: Optional[str]) -> str:
    """Parse, unescape and strip cite tags in one go."""
    return strip_cite_tags(parse_ai_message(text))


def extract_json(text: Optional[str], expect: Optional[str] = None) -> Optional[Any]:
    """
    Extract a JSON value from model output.

    Tries a fenced ```json block first, then the outermost object/array,
    then a repair pass for missing commas.

    Args:
        text: Raw model output
        expect: "object" or "array" to restrict what is searched for

    Returns:
        Parsed JSON, or None when nothing usable is found
    """
    if not text:
        return None

    body = text
    fence = _CODE_FENCE_RE.search(text)
    if fence:
        body = fence.group(1)

    if expect == "object":
        pattern = _OBJECT_RE
    elif expect == "array":
        pattern = _ARRAY_RE
    else:
        pattern = _ANY_JSON_RE

    match = pattern.search(body)
    if not match:
        return None
    candidate = match.group(0)

    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        pass

    repaired = _MISSING_COMMA_PROP_RE.sub(r'"\1": "\2",\n  "\3":', candidate)
    repaired = _MISSING_COMMA_OBJ_RE.sub("},\n{", repaired)
    try:
        return json.loads(repaired)
    except json.JSONDecodeError:
        return None
