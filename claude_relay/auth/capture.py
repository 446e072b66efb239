"""
Scrape the login URL that ``claude setup-token`` prints to its terminal.

The CLI only prints the URL when attached to a TTY, so it runs under a
pseudo-terminal. ``LoginUrlCapture`` is a small timed state machine:

    IDLE -> SPAWNED -> POLLING -> FOUND | TIMED_OUT | EOF

Polling happens at a fixed interval for a bounded number of iterations,
so the total wait is ``poll_interval * max_polls`` no matter what the
child does. The child is killed on every exit path.
"""

from __future__ import annotations

import codecs
import enum
import errno
import fcntl
import os
import select
import struct
import subprocess
import termios
import time
from collections.abc import Callable, Iterable
from typing import Protocol

from claude_relay.environment import ClaudeEnvironment
from claude_relay.logging_config import logger
from claude_relay.session.exceptions import CaptureTimeout, ProcessFailure

POLL_INTERVAL_SECONDS = 0.1
MAX_POLLS = 100  # 10 s ceiling at the default interval
READ_CHUNK_BYTES = 1024

PTY_ROWS = 24
PTY_COLS = 80

URL_HOST_FRAGMENTS = ("claude", "anthropic")

NO_BROWSER_ENV = {
    "NO_BROWSER": "1",
    "CLAUDE_NO_BROWSER": "1",
}


class CaptureState(str, enum.Enum):
    IDLE = "idle"
    SPAWNED = "spawned"
    POLLING = "polling"
    FOUND = "found"
    TIMED_OUT = "timed_out"
    EOF = "eof"


class CaptureStream(Protocol):
    def read(self) -> bytes | None:
        """Non-blocking read: ``None`` when nothing is available, ``b""`` at end of stream."""

    def kill(self) -> None: ...


def strip_ansi_codes(text: str) -> str:
    """Drop ESC sequences; for ``ESC [`` consume through the next ASCII letter."""
    out: list[str] = []
    chars = iter(text)
    for ch in chars:
        if ch != "\x1b":
            out.append(ch)
            continue
        if next(chars, None) == "[":
            for esc_ch in chars:
                if esc_ch.isascii() and esc_ch.isalpha():
                    break
    return "".join(out)


def extract_url_from_line(line: str, host_fragments: Iterable[str] = URL_HOST_FRAGMENTS) -> str | None:
    fragments = tuple(host_fragments)
    clean = strip_ansi_codes(line).strip()
    if clean.startswith("http") and any(f in clean for f in fragments):
        return clean
    for word in clean.split():
        if word.startswith("http") and any(f in word for f in fragments):
            return word
    return None


def extract_url_from_text(text: str, host_fragments: Iterable[str] = URL_HOST_FRAGMENTS) -> str | None:
    fragments = tuple(host_fragments)
    for line in text.splitlines():
        url = extract_url_from_line(line, fragments)
        if url:
            return url
    return None


class PtyProcess:
    """A child process attached to a fresh pseudo-terminal."""

    def __init__(self, argv: list[str], env: dict[str, str], cwd: str | None = None) -> None:
        master_fd, slave_fd = os.openpty()
        try:
            fcntl.ioctl(
                slave_fd, termios.TIOCSWINSZ, struct.pack("HHHH", PTY_ROWS, PTY_COLS, 0, 0)
            )
            self.process = subprocess.Popen(
                argv,
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                env=env,
                cwd=cwd,
                close_fds=True,
                start_new_session=True,
            )
        except BaseException:
            os.close(master_fd)
            os.close(slave_fd)
            raise
        os.close(slave_fd)
        self.master_fd = master_fd

    def read(self) -> bytes | None:
        if self.master_fd < 0:
            return b""
        ready, _, _ = select.select([self.master_fd], [], [], 0)
        if not ready:
            return None
        try:
            return os.read(self.master_fd, READ_CHUNK_BYTES)
        except OSError as exc:
            # Linux reports EIO on the master once the child side is gone.
            if exc.errno == errno.EIO:
                return b""
            raise

    def kill(self) -> None:
        if self.process.poll() is None:
            self.process.kill()
        try:
            self.process.wait(timeout=1)
        except subprocess.TimeoutExpired:
            logger.warning("auth: login helper pid=%s did not exit after kill", self.process.pid)
        if self.master_fd >= 0:
            os.close(self.master_fd)
            self.master_fd = -1


class LoginUrlCapture:
    def __init__(
        self,
        spawn: Callable[[], CaptureStream],
        *,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        max_polls: int = MAX_POLLS,
        host_fragments: Iterable[str] = URL_HOST_FRAGMENTS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._spawn = spawn
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self.host_fragments = tuple(host_fragments)
        self._sleep = sleep
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self.state = CaptureState.IDLE
        self.output = ""
        self.url: str | None = None
        self.polls = 0

    def run(self) -> str:
        """Return the captured URL or raise ``CaptureTimeout``."""
        if self.state is not CaptureState.IDLE:
            raise RuntimeError("LoginUrlCapture instances are single-use")

        stream = self._spawn()
        self.state = CaptureState.SPAWNED
        try:
            self._poll(stream)
        finally:
            stream.kill()

        if self.url is None:
            # Final pass over everything accumulated.
            self.output += self._decoder.decode(b"", final=True)
            self.url = extract_url_from_text(self.output, self.host_fragments)
            if self.url is not None:
                self.state = CaptureState.FOUND

        logger.info(
            "auth: login url capture finished state=%s polls=%d output_chars=%d",
            self.state.value,
            self.polls,
            len(self.output),
        )
        if self.url is None:
            raise CaptureTimeout(self.output)
        return self.url

    def _poll(self, stream: CaptureStream) -> None:
        self.state = CaptureState.POLLING
        for _ in range(self.max_polls):
            self._sleep(self.poll_interval)
            self.polls += 1
            chunk = stream.read()
            if chunk is None:
                continue
            if chunk == b"":
                self.state = CaptureState.EOF
                return
            self.output += self._decoder.decode(chunk)
            url = extract_url_from_text(self.output, self.host_fragments)
            if url:
                self.url = url
                self.state = CaptureState.FOUND
                return
        self.state = CaptureState.TIMED_OUT


def spawn_setup_token(environment: ClaudeEnvironment) -> PtyProcess:
    env = environment.build_env()
    env.update(NO_BROWSER_ENV)
    try:
        return PtyProcess(
            [str(environment.claude_path), "setup-token"],
            env=env,
            cwd=str(environment.base_dir),
        )
    except OSError as exc:
        raise ProcessFailure(f"Failed to start login helper: {exc}") from exc


def capture_login_url(environment: ClaudeEnvironment, timeout: float = 10.0) -> str | None:
    """Best-effort: the login URL, or ``None`` so the caller can fall back to text."""
    capture = LoginUrlCapture(
        lambda: spawn_setup_token(environment),
        max_polls=max(1, int(round(timeout / POLL_INTERVAL_SECONDS))),
    )
    try:
        return capture.run()
    except CaptureTimeout:
        logger.warning("auth: no login url within %.1fs (state=%s)", timeout, capture.state.value)
        return None
    except ProcessFailure as exc:
        logger.warning("auth: %s", exc)
        return None


__all__ = [
    "CaptureState",
    "CaptureStream",
    "LoginUrlCapture",
    "MAX_POLLS",
    "POLL_INTERVAL_SECONDS",
    "PtyProcess",
    "capture_login_url",
    "extract_url_from_line",
    "extract_url_from_text",
    "spawn_setup_token",
    "strip_ansi_codes",
]
