"""
Snapshot / undo / restore on top of an ExchangeLog.

Two undo paths exist and they are deliberately not symmetric:

- ``undo`` pops the newest checkpoint and does *not* feed the redo buffer;
- ``undo_to_index`` truncates the log and keeps the pre-truncation state in
  the redo buffer so that ``restore`` can bring it back exactly once.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field

from claude_relay.logging_config import logger

from .exceptions import InvalidIndex, NothingToRestore, NothingToUndo
from .exchange_log import Exchange, ExchangeLog

MAX_CHECKPOINTS = 10


@dataclass(frozen=True)
class Checkpoint:
    exchanges: tuple[Exchange, ...]
    timestamp: float = field(default_factory=time.time)

    def __len__(self) -> int:
        return len(self.exchanges)


class CheckpointStack:
    def __init__(self, max_checkpoints: int = MAX_CHECKPOINTS) -> None:
        self.max_checkpoints = max_checkpoints
        # FIFO bound: the oldest checkpoint falls off first.
        self._checkpoints: deque[Checkpoint] = deque(maxlen=max_checkpoints)
        self._redo_buffer: tuple[Exchange, ...] | None = None

    def __len__(self) -> int:
        return len(self._checkpoints)

    @property
    def checkpoints(self) -> tuple[Checkpoint, ...]:
        return tuple(self._checkpoints)

    @property
    def redo_buffer(self) -> tuple[Exchange, ...] | None:
        return self._redo_buffer

    def snapshot(self, log: ExchangeLog) -> Checkpoint:
        checkpoint = Checkpoint(exchanges=log.snapshot())
        self._checkpoints.append(checkpoint)
        self._redo_buffer = None
        logger.debug(
            "checkpoint: saved exchanges=%d retained=%d",
            len(checkpoint),
            len(self._checkpoints),
        )
        return checkpoint

    def can_undo(self) -> bool:
        return bool(self._checkpoints)

    def undo(self, log: ExchangeLog) -> Checkpoint:
        if not self._checkpoints:
            raise NothingToUndo()
        checkpoint = self._checkpoints.pop()
        log.replace(checkpoint.exchanges)
        logger.info(
            "checkpoint: undo restored exchanges=%d remaining_checkpoints=%d",
            len(checkpoint),
            len(self._checkpoints),
        )
        return checkpoint

    def undo_to_index(self, log: ExchangeLog, exchange_count: int) -> None:
        if exchange_count < 0 or exchange_count * 2 > log.line_count:
            raise InvalidIndex(exchange_count)

        if exchange_count < len(log):
            self._redo_buffer = log.snapshot()

        log.truncate_to(exchange_count)
        # No checkpoint may describe a longer history than the live log.
        kept = [cp for cp in self._checkpoints if len(cp) <= exchange_count]
        pruned = len(self._checkpoints) - len(kept)
        self._checkpoints = deque(kept, maxlen=self.max_checkpoints)
        logger.info(
            "checkpoint: undo_to_index count=%d pruned_checkpoints=%d redo_available=%s",
            exchange_count,
            pruned,
            self._redo_buffer is not None,
        )

    def can_restore(self, log: ExchangeLog) -> bool:
        return self._redo_buffer is not None and len(self._redo_buffer) > len(log)

    def pending_restore(self, log: ExchangeLog) -> list[tuple[str, str]]:
        """Pairs that ``restore`` would bring back, without consuming the buffer."""
        if not self.can_restore(log):
            return []
        assert self._redo_buffer is not None
        return [exchange.as_pair() for exchange in self._redo_buffer[len(log):]]

    def restore(self, log: ExchangeLog) -> list[tuple[str, str]]:
        if not self.can_restore(log):
            raise NothingToRestore()
        assert self._redo_buffer is not None
        buffer = self._redo_buffer
        restored = [exchange.as_pair() for exchange in buffer[len(log):]]
        log.replace(buffer)
        self._redo_buffer = None
        self.snapshot(log)
        logger.info("checkpoint: restored exchanges=%d", len(restored))
        return restored


__all__ = ["Checkpoint", "CheckpointStack", "MAX_CHECKPOINTS"]
