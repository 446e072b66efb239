"""
Session history management: inspect, undo, undo-to-index, restore, evict.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from claude_relay.deps import get_registry
from claude_relay.errors import conflict, not_found
from claude_relay.logging_config import logger
from claude_relay.schemas.session import RestoredExchange, RestoreResponse, SessionStateResponse
from claude_relay.session import CheckpointError, InvalidIndex, Session, SessionRegistry

router = APIRouter(prefix="/v1/sessions", tags=["sessions"])


def _require_session(registry: SessionRegistry, session_key: str) -> Session:
    session = registry.get(session_key)
    if session is None:
        raise not_found(f"Session {session_key!r} not found")
    return session


def _checkpoint_conflict(session_key: str, exc: CheckpointError):
    details: dict = {"session_key": session_key}
    if isinstance(exc, InvalidIndex):
        details["index"] = exc.index
    logger.info("session: rejected %s for session=%s: %s", exc.error_code, session_key, exc)
    return conflict(str(exc), error=exc.error_code, details=details)


@router.get("/{session_key}", response_model=SessionStateResponse)
async def get_session_state(
    session_key: str,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionStateResponse:
    session = _require_session(registry, session_key)
    return SessionStateResponse.from_session(session)


@router.post("/{session_key}/undo", response_model=SessionStateResponse)
async def undo_last_exchange(
    session_key: str,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionStateResponse:
    session = _require_session(registry, session_key)
    try:
        await session.undo()
    except CheckpointError as exc:
        raise _checkpoint_conflict(session_key, exc) from exc
    return SessionStateResponse.from_session(session)


@router.post("/{session_key}/undo/{exchange_count}", response_model=SessionStateResponse)
async def undo_to_index(
    session_key: str,
    exchange_count: int,
    registry: SessionRegistry = Depends(get_registry),
) -> SessionStateResponse:
    session = _require_session(registry, session_key)
    try:
        await session.undo_to_index(exchange_count)
    except CheckpointError as exc:
        raise _checkpoint_conflict(session_key, exc) from exc
    return SessionStateResponse.from_session(session)


@router.post("/{session_key}/restore", response_model=RestoreResponse)
async def restore_last_undo(
    session_key: str,
    registry: SessionRegistry = Depends(get_registry),
) -> RestoreResponse:
    session = _require_session(registry, session_key)
    try:
        restored = await session.restore()
    except CheckpointError as exc:
        raise _checkpoint_conflict(session_key, exc) from exc
    return RestoreResponse(
        session_key=session_key,
        restored=[RestoredExchange(user=user, assistant=assistant) for user, assistant in restored],
        state=SessionStateResponse.from_session(session),
    )


@router.delete("/{session_key}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(
    session_key: str,
    registry: SessionRegistry = Depends(get_registry),
) -> None:
    removed = await registry.remove(session_key)
    if not removed:
        raise not_found(f"Session {session_key!r} not found")


__all__ = ["router"]
