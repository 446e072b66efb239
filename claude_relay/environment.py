"""
Process-wide context for talking to the assistant CLI.

A ``ClaudeEnvironment`` is built once (``from_settings``) and passed
explicitly to everything that spawns the binary: the session registry,
the subprocess bridge and the authentication capture. It owns no
processes itself; it only knows paths, the sanitized environment and how
to recognise an unauthenticated CLI.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

from claude_relay.config_file import RelayFileConfig, load_relay_config, write_sample_config
from claude_relay.logging_config import logger
from claude_relay.settings import Settings

DEFAULT_PORT = 3000

# Substrings the CLI prints when it is not logged in.
AUTH_REQUIRED_MARKERS = (
    "Invalid API key",
    "not authenticated",
    "Please log in",
    "claude login",
)

DEFAULT_CLI_CONFIG = {"theme": "dark", "outputStyle": "default"}


@dataclass
class ClaudeEnvironment:
    base_dir: Path
    claude_path: Path
    file_config: RelayFileConfig = field(default_factory=RelayFileConfig)
    port_override: int | None = None

    @classmethod
    def from_settings(
        cls, settings: Settings, *, generate_config: bool = True
    ) -> "ClaudeEnvironment":
        base_dir = Path(settings.base_dir).expanduser().resolve()
        base_dir.mkdir(parents=True, exist_ok=True)
        if generate_config:
            write_sample_config(base_dir)
        claude_path = (
            Path(settings.claude_path).expanduser()
            if settings.claude_path
            else base_dir / ".bun" / "bin" / "claude"
        )
        return cls(
            base_dir=base_dir,
            claude_path=claude_path,
            file_config=load_relay_config(base_dir),
            port_override=settings.port,
        )

    @property
    def bun_path(self) -> Path:
        return self.base_dir / ".bun"

    @property
    def claude_home(self) -> Path:
        return self.base_dir / ".claude-home"

    @property
    def cli_config_dir(self) -> Path:
        return self.claude_home / ".config" / "claude"

    @property
    def initial_context(self) -> str | None:
        return self.file_config.context

    @property
    def port(self) -> int:
        if self.port_override:
            return self.port_override
        if self.file_config.server is not None:
            return self.file_config.server.port
        return DEFAULT_PORT

    def is_installed(self) -> bool:
        return self.claude_path.exists()

    def build_env(self) -> dict[str, str]:
        """Current environment with HOME/BUN_INSTALL pointed at the isolated install."""
        env = {
            key: value
            for key, value in os.environ.items()
            if not key.startswith("HOME") and not key.startswith("BUN_INSTALL")
        }
        env["HOME"] = str(self.claude_home)
        env["BUN_INSTALL"] = str(self.bun_path)
        env["PATH"] = f"{self.bun_path / 'bin'}{os.pathsep}{os.environ.get('PATH', '')}"
        return env

    def ensure_cli_config(self) -> Path:
        """Write the CLI's config.json (skips its first-run welcome) if missing."""
        self.cli_config_dir.mkdir(parents=True, exist_ok=True)
        config_file = self.cli_config_dir / "config.json"
        if not config_file.exists():
            config_file.write_text(json.dumps(DEFAULT_CLI_CONFIG), encoding="utf-8")
            logger.info("environment: wrote default CLI config to %s", config_file)
        return config_file

    def auth_status(self) -> tuple[bool, str]:
        auth_file = self.claude_home / ".claude.json"
        if not auth_file.exists():
            return False, "No authentication file found"
        data = auth_file.read_text(encoding="utf-8", errors="replace")
        if not data:
            return False, "Authentication file is empty"
        if len(data) < 10 or "oauthAccount" not in data:
            return False, "Authentication file appears invalid"
        return True, "Authenticated"

    def check_authentication(self) -> bool:
        authenticated, _ = self.auth_status()
        return authenticated

    @staticmethod
    def is_authentication_needed(output: str) -> bool:
        return any(marker in output for marker in AUTH_REQUIRED_MARKERS)

    def setup_token_instructions(self) -> str:
        return f"Run this command to authenticate:\n{self.claude_path} setup-token"


__all__ = ["AUTH_REQUIRED_MARKERS", "ClaudeEnvironment", "DEFAULT_PORT"]
