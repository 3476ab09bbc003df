"""Error taxonomy for submissions, engine runs and the session store."""

from enum import StrEnum


class SubmissionError(ValueError):
    """Raised synchronously when submission inputs are unusable."""


class EngineErrorKind(StrEnum):
    """Classification of a failed engine run."""

    SPAWN_FAILED = "spawn_failed"
    ENGINE_FAILED = "engine_failed"
    MALFORMED_OUTPUT = "malformed_output"
    TIMEOUT = "timeout"


class EngineError(Exception):
    """Raised by the job runner when an engine run does not yield a result."""

    def __init__(self, kind: EngineErrorKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(self.reason)

    @property
    def reason(self) -> str:
        """Human readable failure reason shown to pollers."""
        if self.kind is EngineErrorKind.SPAWN_FAILED:
            return f"Failed to run scheduler: {self.detail}"
        if self.kind is EngineErrorKind.ENGINE_FAILED:
            return f"Scheduler failed: {self.detail or 'unknown error'}"
        if self.kind is EngineErrorKind.MALFORMED_OUTPUT:
            return f"Scheduler produced malformed output: {self.detail}"
        return f"Scheduler execution timed out after {self.detail} seconds"


class StoreError(Exception):
    """Base class for session store invariant violations."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"{self.__class__.__name__}: {session_id}")


class DuplicateSessionError(StoreError):
    """Session id already exists."""


class UnknownSessionError(StoreError):
    """Session id does not exist."""


class AlreadyTerminalError(StoreError):
    """Session already reached a terminal state."""
