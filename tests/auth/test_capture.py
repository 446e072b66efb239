from typing import List, Optional

import pytest

from claude_relay.auth import CaptureState, LoginUrlCapture, extract_url_from_text, strip_ansi_codes
from claude_relay.auth.capture import MAX_POLLS, capture_login_url
from claude_relay.environment import ClaudeEnvironment
from claude_relay.session import CaptureTimeout


class ScriptedStream:
    """
    Fake PTY: returns one scripted chunk per read, then None forever
    (or b"" when ``eof_at_end`` is set).
    """

    def __init__(self, chunks: List[Optional[bytes]], *, eof_at_end: bool = False) -> None:
        self._chunks = list(chunks)
        self._eof_at_end = eof_at_end
        self.reads = 0
        self.killed = False

    def read(self) -> Optional[bytes]:
        self.reads += 1
        if self._chunks:
            return self._chunks.pop(0)
        return b"" if self._eof_at_end else None

    def kill(self) -> None:
        self.killed = True


class FakeClock:
    def __init__(self) -> None:
        self.slept = 0.0
        self.calls = 0

    def sleep(self, seconds: float) -> None:
        self.calls += 1
        self.slept += seconds


def _capture(stream: ScriptedStream, clock: FakeClock, **kwargs) -> LoginUrlCapture:
    return LoginUrlCapture(lambda: stream, sleep=clock.sleep, **kwargs)


def test_url_found_within_a_few_polls():
    stream = ScriptedStream([None, b"Opening browser...\r\n", b"visit https://example.com/claude/login\r\n"])
    clock = FakeClock()
    capture = _capture(stream, clock)

    url = capture.run()

    assert url == "https://example.com/claude/login"
    assert capture.state is CaptureState.FOUND
    assert capture.polls == 3
    assert stream.killed


def test_unterminated_url_is_found_on_the_read_that_delivered_it():
    stream = ScriptedStream([None, b"visit https://example.com/claude/login"])
    capture = _capture(stream, FakeClock())

    assert capture.run() == "https://example.com/claude/login"
    assert capture.state is CaptureState.FOUND
    assert capture.polls == 2
    assert stream.killed


def test_url_completed_by_a_later_read_is_found():
    # The first chunk carries no host fragment yet, so nothing matches early.
    stream = ScriptedStream([b"Browse to https://cl", b"aude.ai/oauth/authorize?code=true\n"])
    capture = _capture(stream, FakeClock())

    assert capture.run() == "https://claude.ai/oauth/authorize?code=true"
    assert capture.polls == 2


def test_times_out_after_max_polls():
    stream = ScriptedStream([b"Waiting for something else\n"])
    clock = FakeClock()
    capture = _capture(stream, clock)

    with pytest.raises(CaptureTimeout) as exc_info:
        capture.run()

    assert capture.state is CaptureState.TIMED_OUT
    assert capture.polls == MAX_POLLS
    assert clock.calls == MAX_POLLS
    assert clock.slept == pytest.approx(MAX_POLLS * 0.1)
    assert "Waiting for something else" in exc_info.value.output
    assert stream.killed


def test_eof_without_url():
    stream = ScriptedStream([b"error: unknown command\n"], eof_at_end=True)
    capture = _capture(stream, FakeClock())

    with pytest.raises(CaptureTimeout):
        capture.run()

    assert capture.state is CaptureState.EOF
    assert capture.polls == 2
    assert stream.killed


def test_urls_for_other_hosts_are_ignored():
    stream = ScriptedStream([b"docs at https://example.org/help\n"], eof_at_end=True)
    with pytest.raises(CaptureTimeout):
        _capture(stream, FakeClock()).run()


def test_ansi_colored_url_is_cleaned():
    stream = ScriptedStream([b"\x1b[1m\x1b[36mhttps://console.anthropic.com/oauth?x=1\x1b[0m\n"])
    capture = _capture(stream, FakeClock())

    assert capture.run() == "https://console.anthropic.com/oauth?x=1"


def test_capture_is_single_use():
    stream = ScriptedStream([b"https://claude.ai/login\n"])
    capture = _capture(stream, FakeClock())
    capture.run()
    with pytest.raises(RuntimeError):
        capture.run()


def test_stream_is_killed_when_read_raises():
    class BrokenStream(ScriptedStream):
        def read(self):
            raise OSError("boom")

    stream = BrokenStream([])
    with pytest.raises(OSError):
        _capture(stream, FakeClock()).run()
    assert stream.killed


def test_strip_ansi_codes():
    assert strip_ansi_codes("\x1b[31mred\x1b[0m plain") == "red plain"
    assert strip_ansi_codes("a\x1b[2;5Hb") == "ab"
    # A lone ESC drops itself and the next character.
    assert strip_ansi_codes("x\x1b(y") == "xy"
    assert strip_ansi_codes("no escapes") == "no escapes"


def test_extract_url_from_text():
    text = "Welcome\n  Please open: https://claude.ai/oauth/authorize?state=abc  \nthen paste"
    assert extract_url_from_text(text) == "https://claude.ai/oauth/authorize?state=abc"
    assert extract_url_from_text("https://claude.ai/a\n") == "https://claude.ai/a"
    assert extract_url_from_text("nothing here") is None


def test_capture_login_url_returns_none_when_binary_missing(environment: ClaudeEnvironment):
    assert capture_login_url(environment, timeout=0.1) is None
