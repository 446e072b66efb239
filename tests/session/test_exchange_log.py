import pytest

from claude_relay.session import ExchangeLog, InvalidState, MAX_EXCHANGES


def _fill(log: ExchangeLog, count: int, start: int = 0) -> None:
    for i in range(start, start + count):
        log.append(f"q{i}")
        log.complete_last(f"a{i}")


def test_empty_log_renders_nothing():
    log = ExchangeLog()
    assert len(log) == 0
    assert log.as_text() == ""
    assert log.line_count == 0


def test_pending_exchange_is_excluded_from_rendering():
    log = ExchangeLog()
    _fill(log, 2)
    log.append("pending question")

    text = log.as_text()
    assert text == "User: q0\nClaude: a0\nUser: q1\nClaude: a1"
    assert "pending question" not in text
    assert len(log) == 2
    assert log.pending is not None
    assert log.snapshot() == log.exchanges


def test_second_append_while_pending_is_rejected():
    log = ExchangeLog()
    log.append("first")
    with pytest.raises(InvalidState):
        log.append("second")


def test_complete_without_pending_is_rejected():
    log = ExchangeLog()
    with pytest.raises(InvalidState):
        log.complete_last("orphan reply")


def test_sliding_window_drops_oldest_exchange():
    log = ExchangeLog()
    _fill(log, MAX_EXCHANGES)
    assert len(log) == MAX_EXCHANGES

    _fill(log, 1, start=MAX_EXCHANGES)

    assert len(log) == MAX_EXCHANGES
    assert log.line_count == MAX_EXCHANGES * 2
    assert log.exchanges[0].user_text == "q1"
    assert log.exchanges[-1].user_text == f"q{MAX_EXCHANGES}"
    assert log.as_text().startswith("User: q1\nClaude: a1")


def test_discard_pending_leaves_history_untouched():
    log = ExchangeLog()
    _fill(log, 1)
    before = log.snapshot()
    log.append("will fail")

    assert log.discard_pending() is True
    assert log.discard_pending() is False
    assert log.snapshot() == before
    # A new exchange can be started afterwards.
    log.append("retry")
    log.complete_last("ok")
    assert [e.user_text for e in log.exchanges] == ["q0", "retry"]


def test_indices_keep_increasing_across_truncation():
    log = ExchangeLog()
    _fill(log, 3)
    log.truncate_to(1)
    log.append("next")
    completed = log.complete_last("done")

    assert completed.index == 3
    assert [e.index for e in log.exchanges] == [0, 3]


def test_last_exchange():
    log = ExchangeLog()
    with pytest.raises(InvalidState):
        log.last_exchange()

    _fill(log, 2)
    assert log.last_exchange().as_pair() == ("q1", "a1")


def test_invalid_max_exchanges():
    with pytest.raises(ValueError):
        ExchangeLog(max_exchanges=0)
