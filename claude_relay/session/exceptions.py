from __future__ import annotations


class RelayError(RuntimeError):
    """Base class for failures raised by the session engine."""

    error_code = "relay_error"


class AuthenticationRequired(RelayError):
    """The CLI reported that it is not logged in; retry after re-authenticating."""

    error_code = "authentication_required"

    def __init__(self, message: str = "Authentication required: please restart the server to login"):
        super().__init__(message)


class ProcessFailure(RelayError):
    """Spawning the CLI failed or it exited non-zero for a non-auth reason."""

    error_code = "process_failure"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class CheckpointError(RelayError):
    """Caller misuse of the exchange log / checkpoint API. Never fatal to a session."""


class InvalidState(CheckpointError):
    error_code = "invalid_state"


class NothingToUndo(CheckpointError):
    error_code = "nothing_to_undo"

    def __init__(self, message: str = "No conversation states to undo"):
        super().__init__(message)


class NothingToRestore(CheckpointError):
    error_code = "nothing_to_restore"

    def __init__(self, message: str = "Nothing to restore"):
        super().__init__(message)


class InvalidIndex(CheckpointError):
    error_code = "invalid_index"

    def __init__(self, index: int):
        self.index = index
        super().__init__(f"Invalid undo index: {index}")


class CaptureTimeout(RelayError):
    """No login URL showed up in the CLI output within the capture budget."""

    error_code = "capture_timeout"

    def __init__(self, output: str = "", message: str = "No authentication URL captured"):
        self.output = output
        super().__init__(message)


__all__ = [
    "AuthenticationRequired",
    "CaptureTimeout",
    "CheckpointError",
    "InvalidIndex",
    "InvalidState",
    "NothingToRestore",
    "NothingToUndo",
    "ProcessFailure",
    "RelayError",
]
