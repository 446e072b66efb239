from claude_relay.logging_config import setup_logging
from claude_relay.routes import create_app


# Configure logging once for the whole process.
setup_logging()

# FastAPI application instance for uvicorn.
app = create_app()


def run() -> None:
    import uvicorn

    from claude_relay.settings import settings

    # Use our own logging configuration configured in claude_relay.logging_config.
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=app.state.environment.port,
        log_config=None,
    )


if __name__ == "__main__":
    run()
