"""
Public gateway routes:
- /health
- /v1/models
"""

from fastapi import APIRouter

from claude_relay.schemas.chat import HealthResponse, ModelsResponse
from claude_relay.services.chat_service import list_models

router = APIRouter(tags=["gateway"])


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness probe with a constant payload."""

    return HealthResponse()


@router.get("/v1/models", response_model=ModelsResponse)
async def list_models_v1() -> ModelsResponse:
    return list_models()


__all__ = ["router"]
