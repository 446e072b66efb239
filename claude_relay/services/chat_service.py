"""
End-to-end chat completion: request -> prompt -> CLI round trip -> OpenAI response.
"""

from __future__ import annotations

import time
import uuid

from claude_relay.logging_config import logger
from claude_relay.schemas.chat import (
    AssistantMessage,
    ChatCompletionRequest,
    ChatCompletionResponse,
    Choice,
    ModelInfo,
    ModelsResponse,
    Usage,
)
from claude_relay.session import SessionRegistry
from claude_relay.translation import build_prompt, estimate_tokens, parse_response

MODEL_CATALOGUE_CREATED = 1640995200

SUPPORTED_MODELS = (
    "claude-3-5-sonnet-20241022",
    "claude-3-5-haiku-20241022",
    "claude-3-opus-20240229",
)


def list_models() -> ModelsResponse:
    return ModelsResponse(
        data=[
            ModelInfo(
                id=model_id,
                object="model",
                created=MODEL_CATALOGUE_CREATED,
                owned_by="anthropic",
            )
            for model_id in SUPPORTED_MODELS
        ]
    )


async def create_chat_completion(
    registry: SessionRegistry,
    request: ChatCompletionRequest,
    *,
    session_key: str,
) -> ChatCompletionResponse:
    """
    Run one exchange for ``session_key``.

    Raises the session engine's ``RelayError`` subclasses unchanged; the
    route layer decides how they surface to HTTP callers.
    """
    session = await registry.get_or_create(session_key)

    tools_requested = request.tools is not None
    prompt = build_prompt(request.messages, request.tools)
    logger.info(
        "chat: session=%s model=%s messages=%d tools=%d stream=%s prompt_chars=%d",
        session_key,
        request.model,
        len(request.messages),
        len(request.tools or []),
        request.stream,
        len(prompt),
    )

    reply = await session.send_message(prompt)
    content, tool_calls = parse_response(reply, tools_requested)

    prompt_tokens = estimate_tokens(prompt)
    completion_tokens = estimate_tokens(reply)
    return ChatCompletionResponse(
        id=f"chatcmpl-{uuid.uuid4()}",
        created=int(time.time()),
        model=request.model,
        choices=[
            Choice(
                index=0,
                message=AssistantMessage(
                    content=content or None,
                    tool_calls=tool_calls,
                ),
                finish_reason="stop",
            )
        ],
        usage=Usage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        ),
    )


__all__ = ["SUPPORTED_MODELS", "create_chat_completion", "list_models"]
