"""
Authentication helpers for operators: status and login URL capture.
"""

from __future__ import annotations

import anyio
from fastapi import APIRouter, Depends

from claude_relay.auth.flow import get_auth_url
from claude_relay.deps import get_environment
from claude_relay.environment import ClaudeEnvironment
from claude_relay.errors import service_unavailable
from claude_relay.logging_config import logger
from claude_relay.schemas.auth import AuthStatusResponse, LoginUrlResponse
from claude_relay.settings import settings

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/status", response_model=AuthStatusResponse)
async def auth_status(
    environment: ClaudeEnvironment = Depends(get_environment),
) -> AuthStatusResponse:
    authenticated, detail = environment.auth_status()
    return AuthStatusResponse(
        installed=environment.is_installed(),
        authenticated=authenticated,
        detail=detail,
    )


@router.post("/login-url", response_model=LoginUrlResponse)
async def login_url(
    environment: ClaudeEnvironment = Depends(get_environment),
) -> LoginUrlResponse:
    if not environment.is_installed():
        raise service_unavailable(
            "Claude CLI is not installed",
            details={"claude_path": str(environment.claude_path)},
        )
    # The capture blocks for up to its timeout; keep it off the event loop.
    result = await anyio.to_thread.run_sync(
        lambda: get_auth_url(environment, timeout=settings.auth_capture_timeout_seconds)
    )
    logger.info("auth: login url requested, captured=%s", result.startswith("http"))
    if result.startswith("http"):
        return LoginUrlResponse(url=result, instructions=f"Authentication URL: {result}")
    return LoginUrlResponse(
        url=None,
        instructions=f"For authentication URL and instructions, run: {environment.claude_path} setup-token",
    )


__all__ = ["router"]
