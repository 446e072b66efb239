"""
Persisted authentication token, written in one explicit versioned format.

The record lives next to the CLI's own config under the isolated home.
Whether the CLI itself reads this file is not established; the CLI's
login state is still detected through ``ClaudeEnvironment.auth_status``.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, ValidationError

from claude_relay.environment import ClaudeEnvironment
from claude_relay.logging_config import logger

AUTH_RECORD_VERSION = 1
AUTH_FILENAME = "auth.json"


class AuthRecord(BaseModel):
    version: Literal[1] = AUTH_RECORD_VERSION
    session_key: str = Field(..., min_length=1)
    saved_at: float = Field(default_factory=time.time)


def auth_record_path(environment: ClaudeEnvironment) -> Path:
    return environment.cli_config_dir / AUTH_FILENAME


def clean_token(raw: str) -> str:
    """Drop anything after ``#`` (the CLI appends state to pasted codes) and trim."""
    return raw.split("#", 1)[0].strip()


def save_auth_record(environment: ClaudeEnvironment, token: str) -> AuthRecord:
    if not token:
        raise ValueError("Session token cannot be empty")
    cleaned = clean_token(token)
    if not cleaned:
        raise ValueError("Token is empty after cleaning")

    record = AuthRecord(session_key=cleaned)
    path = auth_record_path(environment)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(record.model_dump_json(), encoding="utf-8")
    logger.info("auth: saved auth record version=%d path=%s", record.version, path)
    return record


def load_auth_record(environment: ClaudeEnvironment) -> AuthRecord | None:
    path = auth_record_path(environment)
    if not path.exists():
        return None
    try:
        return AuthRecord.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValidationError) as exc:
        logger.warning("auth: ignoring unreadable auth record %s: %s", path, exc)
        return None


__all__ = [
    "AUTH_RECORD_VERSION",
    "AuthRecord",
    "auth_record_path",
    "clean_token",
    "load_auth_record",
    "save_auth_record",
]
