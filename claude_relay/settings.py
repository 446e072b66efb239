from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Read from OS env and optional .env file in project root.
    _project_root = Path(__file__).parent.parent

    model_config = SettingsConfigDict(
        env_file=str(_project_root / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Base directory holding clay.yaml, the portable bun install and the isolated CLI home.
    base_dir: str = Field(
        ".",
        alias="CLAY_DIR",
        description="Base directory for clay.yaml, .bun/ and .claude-home/",
    )
    claude_path: str | None = Field(
        default=None,
        alias="CLAUDE_PATH",
        description="Explicit path to the assistant binary; defaults to <base>/.bun/bin/claude",
    )

    # HTTP server
    host: str = Field("0.0.0.0", alias="HOST", description="Bind address for uvicorn")
    port: int | None = Field(
        default=None,
        alias="PORT",
        description="Server port; falls back to clay.yaml server.port, then 3000",
    )
    cors_allow_origins: str = Field(
        "*",
        alias="CORS_ALLOW_ORIGINS",
        description="Comma separated list of allowed CORS origins, * for any",
    )

    # Sessions
    default_session_key: str = Field(
        "default",
        alias="DEFAULT_SESSION_KEY",
        description="Session key used when a request carries no X-Session-Id header",
    )

    # Authentication capture
    auth_capture_timeout_seconds: float = Field(
        10.0,
        alias="AUTH_CAPTURE_TIMEOUT_SECONDS",
        description="Hard ceiling for scraping the login URL from the CLI",
        gt=0,
        le=60,
    )

    # Logging
    log_level: str = Field("INFO", alias="LOG_LEVEL", description="Root log level")
    log_timezone: str | None = Field(
        default=None,
        alias="LOG_TIMEZONE",
        description="IANA timezone for log timestamps; system local time when unset",
    )
    log_dir: str = Field("logs", alias="LOG_DIR", description="Directory for daily log folders")
    log_backup_days: int = Field(
        7, alias="LOG_BACKUP_DAYS", description="Number of daily log folders to keep", ge=0
    )
    log_split_by_business: bool = Field(
        True,
        alias="LOG_SPLIT_BY_BUSINESS",
        description="Write chat/session/auth logs into separate files",
    )

    @property
    def cors_origins(self) -> list[str]:
        if not self.cors_allow_origins or self.cors_allow_origins.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]


settings = Settings()  # Reads from environment if available
