"""
One round trip through the assistant CLI in ``--print`` mode.

Each call spawns a fresh process, writes the prompt to stdin, waits for
exit and maps failures to domain errors. Nothing is retried here.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path

from claude_relay.environment import ClaudeEnvironment
from claude_relay.logging_config import logger

from .exceptions import AuthenticationRequired, ProcessFailure

PRINT_MODE_ARGS = ("--print", "--dangerously-skip-permissions")

RELAY_ENV_OVERRIDES = {
    "CLAUDE_RELAY": "true",
    "TERM": "dumb",
    "NO_COLOR": "1",
}


class SubprocessBridge:
    def __init__(self, environment: ClaudeEnvironment) -> None:
        self.environment = environment

    def build_command(self) -> list[str]:
        return [str(self.environment.claude_path), *PRINT_MODE_ARGS]

    def build_env(self) -> dict[str, str]:
        env = self.environment.build_env()
        env.update(RELAY_ENV_OVERRIDES)
        return env

    async def run_exchange(self, prompt: str, working_dir: Path) -> str:
        cmd = self.build_command()
        started = time.monotonic()
        logger.info(
            "bridge: spawning cli cwd=%s prompt_chars=%d",
            working_dir,
            len(prompt),
        )
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(working_dir),
                env=self.build_env(),
            )
        except OSError as exc:
            logger.warning("bridge: failed to spawn %s: %s", cmd[0], exc)
            raise ProcessFailure(f"Failed to spawn Claude: {exc}") from exc

        try:
            stdout, stderr = await proc.communicate(input=prompt.encode("utf-8"))
        except (BrokenPipeError, ConnectionResetError) as exc:
            # The CLI exited before reading its input.
            await proc.wait()
            raise ProcessFailure(f"Failed to write to stdin: {exc}") from exc

        out = stdout.decode("utf-8", errors="replace")
        err = stderr.decode("utf-8", errors="replace")
        elapsed_ms = (time.monotonic() - started) * 1000

        if proc.returncode != 0:
            if self.environment.is_authentication_needed(f"{err}\n{out}"):
                logger.warning(
                    "bridge: cli reported missing authentication exit=%s elapsed_ms=%.0f",
                    proc.returncode,
                    elapsed_ms,
                )
                raise AuthenticationRequired()
            logger.warning(
                "bridge: cli failed exit=%s elapsed_ms=%.0f stderr=%r",
                proc.returncode,
                elapsed_ms,
                err[:500],
            )
            raise ProcessFailure(f"Claude command failed: {err}")

        logger.info(
            "bridge: cli finished elapsed_ms=%.0f reply_chars=%d",
            elapsed_ms,
            len(out),
        )
        return out


__all__ = ["PRINT_MODE_ARGS", "RELAY_ENV_OVERRIDES", "SubprocessBridge"]
