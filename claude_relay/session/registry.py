"""
Shared map from session key to Session.

Lookups and inserts go through a registry-wide lock that is only held
for the dictionary operation itself; the expensive part of a request
(the CLI round trip) runs under the per-session lock, so different keys
never wait on each other.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

from claude_relay.environment import ClaudeEnvironment
from claude_relay.logging_config import logger

from .bridge import SubprocessBridge
from .session import Session

DEFAULT_SESSION_KEY = "default"


class SessionRegistry:
    def __init__(
        self,
        environment: ClaudeEnvironment,
        *,
        bridge_factory: Callable[[ClaudeEnvironment], SubprocessBridge] = SubprocessBridge,
        scratch_root: Path | None = None,
    ) -> None:
        self.environment = environment
        self._bridge_factory = bridge_factory
        self._scratch_root = scratch_root
        self._sessions: dict[str, Session] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, key: object) -> bool:
        return key in self._sessions

    def keys(self) -> list[str]:
        return list(self._sessions)

    def get(self, key: str) -> Session | None:
        return self._sessions.get(key)

    async def get_or_create(self, key: str = DEFAULT_SESSION_KEY) -> Session:
        session = self._sessions.get(key)
        if session is not None:
            return session
        async with self._lock:
            session = self._sessions.get(key)
            if session is None:
                self.environment.ensure_cli_config()
                session = Session(
                    key,
                    self._bridge_factory(self.environment),
                    initial_context=self.environment.initial_context,
                    scratch_root=self._scratch_root,
                )
                self._sessions[key] = session
                logger.info("registry: session created key=%s total=%d", key, len(self._sessions))
            return session

    async def remove(self, key: str) -> bool:
        async with self._lock:
            session = self._sessions.pop(key, None)
        if session is None:
            return False
        # Let an in-flight exchange finish before the directory goes away.
        async with session.lock:
            session.close()
        logger.info("registry: session removed key=%s total=%d", key, len(self._sessions))
        return True

    def close_all(self) -> None:
        """Tear down every session; used at process shutdown."""
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            session.close()
        if sessions:
            logger.info("registry: closed %d session(s) on shutdown", len(sessions))


__all__ = ["DEFAULT_SESSION_KEY", "SessionRegistry"]
