"""
OpenAI chat request -> single text prompt for the CLI.

Pure and deterministic: the same messages and tools always render the
same text.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from claude_relay.schemas.chat import ChatMessage, Tool

TOOL_CATALOGUE_HEADER = "You have access to the following tools:\n\n"

TOOL_CALL_INSTRUCTIONS = (
    "When you need to use a tool, respond with a JSON object in this format:\n"
    "```json\n"
    '{"tool_calls": [{"function": {"name": "function_name", "arguments": {"param": "value"}}}]}\n'
    "```\n\n"
)

ROLE_LABELS = {
    "system": "System",
    "user": "User",
    "assistant": "Assistant",
    "tool": "Tool Result",
}


def content_text(content: str | list[dict[str, Any]] | None) -> str | None:
    """Flatten OpenAI content (string or list of parts) into plain text."""
    if content is None or isinstance(content, str):
        return content
    parts = [
        str(part.get("text", ""))
        for part in content
        if isinstance(part, dict) and part.get("type") in ("text", "input_text")
    ]
    return "\n".join(parts)


def render_tool_catalogue(tools: Sequence[Tool]) -> str:
    out: list[str] = [TOOL_CATALOGUE_HEADER]
    for tool in tools:
        fn = tool.function
        out.append(f"## {fn.name}\n")
        if fn.description is not None:
            out.append(f"Description: {fn.description}\n")
        if fn.parameters is not None:
            out.append(f"Parameters: {json.dumps(fn.parameters, indent=2, ensure_ascii=False)}\n")
        out.append("\n")
    out.append(TOOL_CALL_INSTRUCTIONS)
    return "".join(out)


def render_message(message: ChatMessage) -> str:
    label = ROLE_LABELS.get(message.role or "")
    if label is None:
        return ""

    out: list[str] = []
    text = content_text(message.content)
    if text is not None:
        out.append(f"{label}: {text}\n\n")
    if message.role == "assistant" and message.tool_calls:
        for call in message.tool_calls:
            out.append(
                f"Tool Call: {call.function.name} with arguments: {call.function.arguments}\n\n"
            )
    return "".join(out)


def build_prompt(messages: Sequence[ChatMessage], tools: Sequence[Tool] | None = None) -> str:
    prompt: list[str] = []
    if tools:
        prompt.append(render_tool_catalogue(tools))
    for message in messages:
        prompt.append(render_message(message))
    return "".join(prompt)


__all__ = [
    "ROLE_LABELS",
    "TOOL_CALL_INSTRUCTIONS",
    "build_prompt",
    "content_text",
    "render_message",
    "render_tool_catalogue",
]
