"""
OpenAI-compatible chat endpoint backed by the CLI session engine.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from claude_relay.deps import get_registry, get_session_key
from claude_relay.logging_config import logger
from claude_relay.schemas.chat import ChatCompletionRequest, ChatCompletionResponse
from claude_relay.services.chat_service import create_chat_completion
from claude_relay.session import AuthenticationRequired, RelayError, SessionRegistry

router = APIRouter(tags=["chat"])


@router.post("/v1/chat/completions", response_model=ChatCompletionResponse)
async def chat_completions(
    payload: ChatCompletionRequest,
    registry: SessionRegistry = Depends(get_registry),
    session_key: str = Depends(get_session_key),
) -> ChatCompletionResponse:
    logger.info(
        "chat: incoming model=%r stream=%r session=%s",
        payload.model,
        payload.stream,
        session_key,
    )
    try:
        return await create_chat_completion(registry, payload, session_key=session_key)
    except AuthenticationRequired as exc:
        logger.warning("chat: session=%s needs authentication: %s", session_key, exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR) from exc
    except RelayError as exc:
        logger.warning("chat: failed to send message to Claude session=%s: %s", session_key, exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR) from exc


__all__ = ["router"]
