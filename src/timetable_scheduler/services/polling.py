"""Read-side contract for clients awaiting a schedule."""

from dataclasses import dataclass

from timetable_scheduler.domain.sessions import (
    Conflict,
    ScheduleStats,
    SessionStatus,
    TimetableSlot,
)
from timetable_scheduler.services.store import SessionStore


@dataclass(frozen=True)
class StatusSnapshot:
    """What a poller sees for one session at one point in time."""

    session_id: str
    status: SessionStatus
    error_message: str | None
    conflicts: list[Conflict]
    stats: ScheduleStats | None = None
    slots: list[TimetableSlot] | None = None


@dataclass
class PollingService:
    """Side-effect-free status lookups."""

    store: SessionStore

    def get_status(self, session_id: str) -> StatusSnapshot | None:
        """Return the session's current state, or None when unknown."""
        session = self.store.get_session(session_id)
        if session is None:
            return None
        if session.status is SessionStatus.COMPLETED:
            return StatusSnapshot(
                session_id=session_id,
                status=session.status,
                error_message=None,
                conflicts=list(session.conflicts),
                stats=session.stats,
                slots=self.store.list_slots(session_id),
            )
        # conflicts are only known once the engine returns
        return StatusSnapshot(
            session_id=session_id,
            status=session.status,
            error_message=session.error_message,
            conflicts=[],
        )
