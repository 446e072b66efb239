"""
Ordered record of one session's user/assistant turns.

The log keeps at most ``max_exchanges`` completed exchanges as a sliding
window: completing an exchange beyond the limit drops the oldest one from
the front, so prompts stay bounded while conversations can go on forever.
At most one exchange is pending (user text set, reply not yet produced)
and it never shows up in ``as_text()`` or in snapshots.
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from dataclasses import dataclass, field, replace

from .exceptions import InvalidState

MAX_EXCHANGES = 10

USER_PREFIX = "User: "
ASSISTANT_PREFIX = "Claude: "


@dataclass(frozen=True)
class Exchange:
    index: int
    user_text: str
    assistant_text: str | None = None
    created_at: float = field(default_factory=time.time)

    @property
    def is_complete(self) -> bool:
        return self.assistant_text is not None

    def lines(self) -> list[str]:
        return [
            f"{USER_PREFIX}{self.user_text}",
            f"{ASSISTANT_PREFIX}{self.assistant_text or ''}",
        ]

    def as_pair(self) -> tuple[str, str]:
        return self.user_text, self.assistant_text or ""


class ExchangeLog:
    def __init__(self, max_exchanges: int = MAX_EXCHANGES) -> None:
        if max_exchanges < 1:
            raise ValueError("max_exchanges must be >= 1")
        self.max_exchanges = max_exchanges
        self._exchanges: list[Exchange] = []
        self._pending: Exchange | None = None
        self._next_index = 0

    def __len__(self) -> int:
        return len(self._exchanges)

    @property
    def exchanges(self) -> tuple[Exchange, ...]:
        return tuple(self._exchanges)

    @property
    def pending(self) -> Exchange | None:
        return self._pending

    @property
    def line_count(self) -> int:
        """Length in rendered lines (two per completed exchange)."""
        return len(self._exchanges) * 2

    def append(self, user_text: str) -> int:
        if self._pending is not None:
            raise InvalidState("An exchange is already in flight")
        self._pending = Exchange(index=self._next_index, user_text=user_text)
        self._next_index += 1
        return self._pending.index

    def complete_last(self, assistant_text: str) -> Exchange:
        if self._pending is None:
            raise InvalidState("No pending exchange to complete")
        completed = replace(self._pending, assistant_text=assistant_text)
        self._pending = None
        self._exchanges.append(completed)
        # Sliding window: drop one exchange (two lines) from the front.
        while len(self._exchanges) > self.max_exchanges:
            self._exchanges.pop(0)
        return completed

    def discard_pending(self) -> bool:
        """Drop the in-flight exchange after a failed round trip."""
        dropped = self._pending is not None
        self._pending = None
        return dropped

    def truncate_to(self, exchange_count: int) -> None:
        if exchange_count < 0:
            raise InvalidState("Exchange count cannot be negative")
        del self._exchanges[exchange_count:]

    def replace(self, exchanges: Iterable[Exchange]) -> None:
        self._exchanges = list(exchanges)
        if self._exchanges:
            self._next_index = max(self._next_index, self._exchanges[-1].index + 1)

    def snapshot(self) -> tuple[Exchange, ...]:
        # Exchanges are frozen, so a tuple copy is a deep copy.
        return tuple(self._exchanges)

    def last_exchange(self) -> Exchange:
        if not self._exchanges:
            raise InvalidState("No complete exchange to return")
        return self._exchanges[-1]

    def as_text(self) -> str:
        lines: list[str] = []
        for exchange in self._exchanges:
            lines.extend(exchange.lines())
        return "\n".join(lines)


__all__ = ["Exchange", "ExchangeLog", "MAX_EXCHANGES"]
