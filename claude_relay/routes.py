import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.v1.auth_routes import router as auth_router
from .api.v1.chat_routes import router as chat_router
from .api.v1.gateway_routes import router as gateway_router
from .api.v1.session_routes import router as session_router
from .environment import ClaudeEnvironment
from .logging_config import logger
from .session import SessionRegistry
from .settings import settings


async def handle_unexpected_error(request: Request, exc: Exception):
    """
    Global exception handler: structured 500 body plus a logged error id.
    """

    error_id = uuid.uuid4().hex
    logger.exception(
        "Unhandled error %s %s (error_id=%s)",
        request.method,
        request.url.path,
        error_id,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error_code": "internal_error",
            "message": "Internal server error, please try again later",
            "error_id": error_id,
        },
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifecycle:
    - startup: make sure the CLI config exists and report readiness
    - shutdown: close every session and remove its scratch directory
    """
    environment: ClaudeEnvironment = app.state.environment
    registry: SessionRegistry = app.state.registry

    environment.ensure_cli_config()
    if not environment.is_installed():
        logger.warning(
            "Claude CLI not found at %s; chat requests will fail until it is installed",
            environment.claude_path,
        )
    elif not environment.check_authentication():
        logger.warning("Claude CLI is not authenticated; POST /auth/login-url to start login")

    logger.info("API endpoints: POST /v1/chat/completions, GET /v1/models, GET /health")

    yield

    registry.close_all()


def create_app(
    environment: ClaudeEnvironment | None = None,
    registry: SessionRegistry | None = None,
) -> FastAPI:
    if environment is None:
        environment = ClaudeEnvironment.from_settings(settings)
    if registry is None:
        registry = SessionRegistry(environment)

    app = FastAPI(
        title="Claude Relay",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.environment = environment
    app.state.registry = registry
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(chat_router)
    app.include_router(session_router)
    app.include_router(auth_router)
    # Basic gateway routes (health/models)
    app.include_router(gateway_router)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Basic request log middleware: method, path, client and final status.
        """

        client_host = request.client.host if request.client else "-"
        logger.info(
            "HTTP %s %s from %s",
            request.method,
            request.url.path,
            client_host,
        )
        try:
            response = await call_next(request)
        except Exception as exc:
            response = await handle_unexpected_error(request, exc)
        logger.info(
            "HTTP %s %s -> %s",
            request.method,
            request.url.path,
            response.status_code,
        )
        return response

    return app
