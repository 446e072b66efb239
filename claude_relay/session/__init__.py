"""
Session process-lifecycle engine: history, checkpoints and CLI round trips.
"""

from .bridge import SubprocessBridge
from .checkpoints import MAX_CHECKPOINTS, Checkpoint, CheckpointStack
from .exceptions import (
    AuthenticationRequired,
    CaptureTimeout,
    CheckpointError,
    InvalidIndex,
    InvalidState,
    NothingToRestore,
    NothingToUndo,
    ProcessFailure,
    RelayError,
)
from .exchange_log import MAX_EXCHANGES, Exchange, ExchangeLog
from .registry import DEFAULT_SESSION_KEY, SessionRegistry
from .session import Session

__all__ = [
    "AuthenticationRequired",
    "CaptureTimeout",
    "Checkpoint",
    "CheckpointError",
    "CheckpointStack",
    "DEFAULT_SESSION_KEY",
    "Exchange",
    "ExchangeLog",
    "InvalidIndex",
    "InvalidState",
    "MAX_CHECKPOINTS",
    "MAX_EXCHANGES",
    "NothingToRestore",
    "NothingToUndo",
    "ProcessFailure",
    "RelayError",
    "Session",
    "SessionRegistry",
    "SubprocessBridge",
]
