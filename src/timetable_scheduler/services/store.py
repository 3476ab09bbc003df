"""Session store interface and the in-process implementation."""

import threading
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Protocol

from timetable_scheduler.domain.errors import (
    AlreadyTerminalError,
    DuplicateSessionError,
    UnknownSessionError,
)
from timetable_scheduler.domain.sessions import (
    Conflict,
    ScheduleStats,
    SessionRecord,
    SessionStatus,
    TimetableSlot,
)


class SessionStore(Protocol):
    """Persistence interface for scheduling sessions and their slots."""

    def create_session(
        self,
        session_id: str,
        dataset_filename: str,
        config_filename: str,
        morning_weight: float,
    ) -> SessionRecord:
        """Create a processing session and return it."""

    def get_session(self, session_id: str) -> SessionRecord | None:
        """Return a session by id, if present."""

    def list_slots(self, session_id: str) -> list[TimetableSlot]:
        """Return the slots of a completed session."""

    def complete_session(
        self,
        session_id: str,
        slots: list[TimetableSlot],
        stats: ScheduleStats,
        conflicts: list[Conflict],
    ) -> SessionRecord:
        """Attach results and mark the session completed."""

    def fail_session(self, session_id: str, reason: str) -> SessionRecord:
        """Mark the session failed with a reason."""


@dataclass
class InMemorySessionStore(SessionStore):
    """Lock-guarded in-memory store with process lifetime."""

    _sessions: dict[str, SessionRecord]
    _slots: dict[str, tuple[TimetableSlot, ...]]
    _lock: threading.Lock

    def __init__(self) -> None:
        self._sessions = {}
        self._slots = {}
        self._lock = threading.Lock()

    def create_session(
        self,
        session_id: str,
        dataset_filename: str,
        config_filename: str,
        morning_weight: float,
    ) -> SessionRecord:
        """Create a processing session, rejecting duplicate ids."""
        with self._lock:
            if session_id in self._sessions:
                raise DuplicateSessionError(session_id)
            session = SessionRecord(
                session_id=session_id,
                status=SessionStatus.PROCESSING,
                dataset_filename=dataset_filename,
                config_filename=config_filename,
                morning_weight=morning_weight,
                created_at=datetime.now(tz=UTC),
            )
            self._sessions[session_id] = session
            return session

    def get_session(self, session_id: str) -> SessionRecord | None:
        """Return a session by id, if present."""
        with self._lock:
            return self._sessions.get(session_id)

    def list_slots(self, session_id: str) -> list[TimetableSlot]:
        """Return the slot batch of a session; empty unless completed."""
        with self._lock:
            return list(self._slots.get(session_id, ()))

    def complete_session(
        self,
        session_id: str,
        slots: list[TimetableSlot],
        stats: ScheduleStats,
        conflicts: list[Conflict],
    ) -> SessionRecord:
        """Publish slots, stats and conflicts in one critical section."""
        with self._lock:
            current = self._require_processing(session_id)
            updated = replace(
                current,
                status=SessionStatus.COMPLETED,
                stats=stats,
                conflicts=tuple(conflicts),
                completed_at=datetime.now(tz=UTC),
            )
            self._slots[session_id] = tuple(slots)
            self._sessions[session_id] = updated
            return updated

    def fail_session(self, session_id: str, reason: str) -> SessionRecord:
        """Mark a processing session failed."""
        with self._lock:
            current = self._require_processing(session_id)
            updated = replace(
                current,
                status=SessionStatus.FAILED,
                error_message=reason,
                completed_at=datetime.now(tz=UTC),
            )
            self._sessions[session_id] = updated
            return updated

    def _require_processing(self, session_id: str) -> SessionRecord:
        current = self._sessions.get(session_id)
        if current is None:
            raise UnknownSessionError(session_id)
        if current.status.is_terminal:
            raise AlreadyTerminalError(session_id)
        return current
