"""
Shared pytest configuration.

This file ensures the project root is on sys.path so that
`import claude_relay` works consistently in all tests, and provides an
isolated environment plus a fake CLI bridge for the session engine.
"""

import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient


# Ensure project root is importable for test modules.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from claude_relay.environment import ClaudeEnvironment  # noqa: E402
from claude_relay.routes import create_app  # noqa: E402
from claude_relay.session import SessionRegistry  # noqa: E402


class FakeBridge:
    """
    Stand-in for SubprocessBridge: records prompts and returns canned replies
    without spawning anything.
    """

    def __init__(self, replies: Optional[List[str]] = None) -> None:
        self.replies: List[str] = list(replies or [])
        self.prompts: List[str] = []
        self.working_dirs: List[Path] = []
        self.error: Optional[BaseException] = None
        self.delay: float = 0.0
        self.in_flight = 0
        self.max_in_flight = 0

    async def run_exchange(self, prompt: str, working_dir: Path) -> str:
        self.prompts.append(prompt)
        self.working_dirs.append(working_dir)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            if self.replies:
                return self.replies.pop(0)
            return f"reply {len(self.prompts)}"
        finally:
            self.in_flight -= 1


@pytest.fixture
def environment(tmp_path: Path) -> ClaudeEnvironment:
    base_dir = tmp_path / "clay"
    base_dir.mkdir()
    return ClaudeEnvironment(
        base_dir=base_dir,
        claude_path=base_dir / ".bun" / "bin" / "claude",
    )


@pytest.fixture
def fake_bridge() -> FakeBridge:
    return FakeBridge()


@pytest.fixture
def registry(environment: ClaudeEnvironment, fake_bridge: FakeBridge, tmp_path: Path) -> SessionRegistry:
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    return SessionRegistry(
        environment,
        bridge_factory=lambda env: fake_bridge,
        scratch_root=scratch,
    )


@pytest.fixture
def client(environment: ClaudeEnvironment, registry: SessionRegistry):
    app = create_app(environment, registry)
    with TestClient(app) as test_client:
        yield test_client
