"""
Loading of the relay's own ``clay.yaml`` file.

Note that ``config.json`` under the isolated CLI home belongs to the CLI
itself; this module only ever reads and writes ``clay.yaml``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from claude_relay.logging_config import logger

CONFIG_FILENAME = "clay.yaml"


class ServerFileConfig(BaseModel):
    port: int = Field(3000, ge=1, le=65535)
    max_processes: int = Field(100, ge=1)


class RelayFileConfig(BaseModel):
    context: str | None = Field(
        default=None, description="Initial context injected into every conversation"
    )
    server: ServerFileConfig | None = None
    # MCP server definitions are carried along untouched.
    mcp: dict[str, Any] | None = None


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning an empty dict if missing or invalid."""
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except yaml.YAMLError as exc:
        logger.warning("config: invalid YAML in %s: %s", path, exc)
        return {}
    except OSError as exc:
        logger.warning("config: error reading %s: %s", path, exc)
        return {}


def load_relay_config(base_dir: Path) -> RelayFileConfig:
    raw = load_yaml_file(base_dir / CONFIG_FILENAME)
    try:
        return RelayFileConfig.model_validate(raw)
    except ValidationError as exc:
        logger.warning("config: ignoring invalid %s: %s", CONFIG_FILENAME, exc)
        return RelayFileConfig()


def write_sample_config(base_dir: Path, *, overwrite: bool = False) -> Path:
    path = base_dir / CONFIG_FILENAME
    if path.exists() and not overwrite:
        return path
    path.write_text(generate_sample_yaml(), encoding="utf-8")
    logger.info("config: generated %s at %s", CONFIG_FILENAME, path)
    return path


def generate_sample_yaml() -> str:
    return """# Clay Configuration File

# Initial context that will be injected into every Claude conversation
context: |
  You are an expert developer answering through an OpenAI-compatible relay.
  Keep answers concise and include code when it helps.

# MCP Server Configuration (passed through to the CLI untouched)
mcp:
  servers:
    filesystem:
      command: "npx"
      args: ["-y", "@modelcontextprotocol/server-filesystem", "."]
      env:
        NODE_ENV: "production"

# Relay Server Configuration
server:
  port: 3000
  max_processes: 100
"""


__all__ = [
    "CONFIG_FILENAME",
    "RelayFileConfig",
    "ServerFileConfig",
    "generate_sample_yaml",
    "load_relay_config",
    "load_yaml_file",
    "write_sample_config",
]
