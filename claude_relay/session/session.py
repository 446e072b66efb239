"""
The per-conversation aggregate: history, checkpoints and a scratch directory.

All mutating operations run inside the session's own ``asyncio.Lock`` so
that two requests for the same session are applied one after the other.
The log is only committed after the CLI produced a full reply; a failed
or cancelled round trip leaves history and checkpoints untouched.
"""

from __future__ import annotations

import asyncio
import re
import shutil
import tempfile
import time
from pathlib import Path

from claude_relay.logging_config import logger

from .bridge import SubprocessBridge
from .checkpoints import MAX_CHECKPOINTS, CheckpointStack
from .exceptions import InvalidState
from .exchange_log import MAX_EXCHANGES, Exchange, ExchangeLog

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


class Session:
    def __init__(
        self,
        key: str,
        bridge: SubprocessBridge,
        *,
        initial_context: str | None = None,
        max_exchanges: int = MAX_EXCHANGES,
        max_checkpoints: int = MAX_CHECKPOINTS,
        scratch_root: Path | None = None,
    ) -> None:
        self.key = key
        self.bridge = bridge
        self.initial_context = initial_context
        self.log = ExchangeLog(max_exchanges=max_exchanges)
        self.checkpoints = CheckpointStack(max_checkpoints=max_checkpoints)
        self.lock = asyncio.Lock()
        safe_key = _UNSAFE_KEY_CHARS.sub("_", key)[:32] or "session"
        self.working_dir = Path(
            tempfile.mkdtemp(
                prefix=f"claude-relay-{safe_key}-",
                dir=str(scratch_root) if scratch_root else None,
            )
        )
        self.created_at = time.time()
        self.last_used_at = self.created_at
        self._closed = False
        logger.info("session: created key=%s working_dir=%s", key, self.working_dir)

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise InvalidState(f"Session {self.key!r} has been closed")

    def compose_prompt(self, message: str) -> str:
        """Text actually written to the CLI for ``message``."""
        history = self.log.as_text()
        if history:
            prompt = f"Previous conversation:\n{history}\n\nLatest message: {message}"
        else:
            prompt = message
        if self.initial_context:
            prompt = f"System: {self.initial_context}\n\n{prompt}"
        return prompt

    async def send_message(self, message: str) -> str:
        async with self.lock:
            self._ensure_open()
            self.log.append(message)
            prompt = self.compose_prompt(message)
            try:
                reply = await self.bridge.run_exchange(prompt, self.working_dir)
            except BaseException:
                self.log.discard_pending()
                raise
            # Checkpoint the pre-exchange state, then commit.
            self.checkpoints.snapshot(self.log)
            self.log.complete_last(reply)
            self.last_used_at = time.time()
            logger.info(
                "session: exchange committed key=%s exchanges=%d checkpoints=%d",
                self.key,
                len(self.log),
                len(self.checkpoints),
            )
            return reply

    async def undo(self) -> list[Exchange]:
        async with self.lock:
            self._ensure_open()
            self.checkpoints.undo(self.log)
            return list(self.log.exchanges)

    async def undo_to_index(self, exchange_count: int) -> list[Exchange]:
        async with self.lock:
            self._ensure_open()
            self.checkpoints.undo_to_index(self.log, exchange_count)
            return list(self.log.exchanges)

    async def restore(self) -> list[tuple[str, str]]:
        async with self.lock:
            self._ensure_open()
            return self.checkpoints.restore(self.log)

    def can_undo(self) -> bool:
        return self.checkpoints.can_undo()

    def can_restore(self) -> bool:
        return self.checkpoints.can_restore(self.log)

    def pending_restore(self) -> list[tuple[str, str]]:
        return self.checkpoints.pending_restore(self.log)

    def last_exchange(self) -> tuple[str, str]:
        return self.log.last_exchange().as_pair()

    def _scratch_path(self, filename: str) -> Path:
        path = (self.working_dir / filename).resolve()
        if not path.is_relative_to(self.working_dir.resolve()):
            raise InvalidState(f"Path escapes the session directory: {filename!r}")
        return path

    def save_file(self, filename: str, content: bytes) -> Path:
        self._ensure_open()
        path = self._scratch_path(filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    def read_file(self, filename: str) -> bytes:
        self._ensure_open()
        return self._scratch_path(filename).read_bytes()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        shutil.rmtree(self.working_dir, ignore_errors=True)
        logger.info("session: closed key=%s", self.key)


__all__ = ["Session"]
