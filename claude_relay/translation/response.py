"""
CLI text output -> OpenAI message content and/or tool calls.
"""

from __future__ import annotations

import json
import uuid
from typing import Any

from claude_relay.logging_config import logger
from claude_relay.schemas.chat import FunctionCall, ToolCall


def _convert_tool_call(entry: Any) -> ToolCall | None:
    if not isinstance(entry, dict):
        return None
    function = entry.get("function")
    if not isinstance(function, dict) or "name" not in function:
        return None
    name = function["name"]
    arguments = function.get("arguments")
    if arguments is None:
        serialized = ""
    elif isinstance(arguments, str):
        # Already a JSON string in OpenAI style; keep it as-is.
        serialized = arguments
    else:
        serialized = json.dumps(arguments, ensure_ascii=False, separators=(",", ":"))
    return ToolCall(
        id=f"call_{uuid.uuid4()}",
        type="function",
        function=FunctionCall(name=name if isinstance(name, str) else "", arguments=serialized),
    )


def parse_response(raw_text: str, tools_requested: bool) -> tuple[str, list[ToolCall] | None]:
    """
    Return ``(content, tool_calls)``.

    Tool calls are only extracted when the request carried tools and the
    whole reply is a JSON object with a ``tool_calls`` array. Otherwise,
    or when no entry converts, the raw text is returned verbatim.

    Object or array ``arguments`` are re-serialized as compact JSON. String
    ``arguments`` are taken to be JSON already (OpenAI style) and pass
    through unchanged rather than being quoted a second time.
    """
    if not tools_requested:
        return raw_text, None

    try:
        parsed = json.loads(raw_text)
    except ValueError:
        return raw_text, None
    if not isinstance(parsed, dict):
        return raw_text, None

    entries = parsed.get("tool_calls")
    if not isinstance(entries, list):
        return raw_text, None

    calls = [call for call in (_convert_tool_call(e) for e in entries) if call is not None]
    if not calls:
        return raw_text, None

    logger.info(
        "translation: extracted tool_calls=%d names=%s",
        len(calls),
        [call.function.name for call in calls],
    )
    return "", calls


def estimate_tokens(text: str) -> int:
    # Rough estimation: ~4 bytes per token.
    return max(1, len(text.encode("utf-8")) // 4)


__all__ = ["estimate_tokens", "parse_response"]
