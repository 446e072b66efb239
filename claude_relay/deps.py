from fastapi import Header, Request

from .environment import ClaudeEnvironment
from .session import SessionRegistry
from .settings import settings


def get_registry(request: Request) -> SessionRegistry:
    """
    FastAPI dependency returning the process-wide session registry.

    The registry is created by create_app() and torn down in its lifespan;
    tests override this dependency or construct the app with their own.
    """
    return request.app.state.registry


def get_environment(request: Request) -> ClaudeEnvironment:
    return request.app.state.environment


def get_session_key(
    x_session_id: str | None = Header(default=None, alias="X-Session-Id"),
) -> str:
    key = (x_session_id or "").strip()
    return key or settings.default_session_key
