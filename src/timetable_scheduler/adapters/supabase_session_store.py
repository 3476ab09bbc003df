"""Supabase-backed session store."""

from dataclasses import dataclass
from datetime import UTC, datetime

from postgrest.exceptions import APIError
from supabase import Client

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
from timetable_scheduler.services.store import SessionStore

_UNIQUE_VIOLATION = "23505"
_SESSION_COLUMNS = (
    "session_id, status, dataset_filename, config_filename, morning_weight, "
    "error_message, stats, conflicts, created_at, completed_at"
)


@dataclass
class SupabaseSessionStore(SessionStore):
    """Supabase implementation over timetable_sessions and timetable_slots."""

    client: Client
    # must not exceed the PostgREST max-rows setting
    page_size: int = 1000

    def create_session(
        self,
        session_id: str,
        dataset_filename: str,
        config_filename: str,
        morning_weight: float,
    ) -> SessionRecord:
        """Insert a processing session row and return it."""
        if self._fetch_row(session_id) is not None:
            raise DuplicateSessionError(session_id)
        try:
            response = (
                self.client.table("timetable_sessions")
                .insert(
                    {
                        "session_id": session_id,
                        "status": SessionStatus.PROCESSING.value,
                        "dataset_filename": dataset_filename,
                        "config_filename": config_filename,
                        "morning_weight": morning_weight,
                        "conflicts": [],
                    }
                )
                .execute()
            )
        except APIError as exc:
            if exc.code == _UNIQUE_VIOLATION:
                raise DuplicateSessionError(session_id) from exc
            raise
        if not response.data:
            raise RuntimeError("Failed to create session")
        return _to_record(response.data[0])

    def get_session(self, session_id: str) -> SessionRecord | None:
        """Return a session by id, if present."""
        row = self._fetch_row(session_id)
        return _to_record(row) if row else None

    def list_slots(self, session_id: str) -> list[TimetableSlot]:
        """Return slots only for sessions already marked completed."""
        row = self._fetch_row(session_id)
        if row is None or row["status"] != SessionStatus.COMPLETED.value:
            return []
        rows: list[dict] = []
        start = 0
        while True:
            response = (
                self.client.table("timetable_slots")
                .select("day, time, room, subject, teacher, semester, session_id")
                .eq("session_id", session_id)
                .order("id")
                .range(start, start + self.page_size - 1)
                .execute()
            )
            page = response.data or []
            rows.extend(page)
            if len(page) < self.page_size:
                break
            start += self.page_size
        return [
            TimetableSlot(
                day=slot["day"],
                time=slot["time"],
                room=slot["room"],
                subject=slot["subject"],
                teacher=slot["teacher"],
                semester=slot["semester"],
                session_id=slot["session_id"],
            )
            for slot in rows
        ]

    def complete_session(
        self,
        session_id: str,
        slots: list[TimetableSlot],
        stats: ScheduleStats,
        conflicts: list[Conflict],
    ) -> SessionRecord:
        """Insert the slot batch, then flip the status guarded on processing."""
        self._require_processing(session_id)
        if slots:
            self.client.table("timetable_slots").insert(
                [
                    {
                        "day": slot.day,
                        "time": slot.time,
                        "room": slot.room,
                        "subject": slot.subject,
                        "teacher": slot.teacher,
                        "semester": slot.semester,
                        "session_id": slot.session_id,
                    }
                    for slot in slots
                ]
            ).execute()
        return self._transition(
            session_id,
            {
                "status": SessionStatus.COMPLETED.value,
                "stats": {
                    "totalSubjects": stats.total_subjects,
                    "totalTeachers": stats.total_teachers,
                    "roomsUtilized": stats.rooms_utilized,
                    "totalSlots": stats.total_slots,
                },
                "conflicts": [
                    {
                        "subject": conflict.subject,
                        "unscheduledHours": conflict.unscheduled_hours,
                    }
                    for conflict in conflicts
                ],
            },
        )

    def fail_session(self, session_id: str, reason: str) -> SessionRecord:
        """Mark a processing session failed."""
        self._require_processing(session_id)
        return self._transition(
            session_id,
            {"status": SessionStatus.FAILED.value, "error_message": reason},
        )

    def _transition(self, session_id: str, payload: dict[str, object]) -> SessionRecord:
        payload["completed_at"] = datetime.now(tz=UTC).isoformat()
        response = (
            self.client.table("timetable_sessions")
            .update(payload)
            .eq("session_id", session_id)
            .eq("status", SessionStatus.PROCESSING.value)
            .execute()
        )
        if not response.data:
            raise AlreadyTerminalError(session_id)
        return _to_record(response.data[0])

    def _require_processing(self, session_id: str) -> None:
        row = self._fetch_row(session_id)
        if row is None:
            raise UnknownSessionError(session_id)
        if row["status"] != SessionStatus.PROCESSING.value:
            raise AlreadyTerminalError(session_id)

    def _fetch_row(self, session_id: str) -> dict[str, object] | None:
        response = (
            self.client.table("timetable_sessions")
            .select(_SESSION_COLUMNS)
            .eq("session_id", session_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0]


def _to_record(row: dict) -> SessionRecord:
    stats = row.get("stats")
    return SessionRecord(
        session_id=row["session_id"],
        status=SessionStatus(row["status"]),
        dataset_filename=row["dataset_filename"],
        config_filename=row["config_filename"],
        morning_weight=float(row["morning_weight"]),
        created_at=_parse_timestamp(row.get("created_at")) or datetime.now(tz=UTC),
        error_message=row.get("error_message"),
        stats=(
            ScheduleStats(
                total_subjects=int(stats["totalSubjects"]),
                total_teachers=int(stats["totalTeachers"]),
                rooms_utilized=int(stats["roomsUtilized"]),
                total_slots=int(stats["totalSlots"]),
            )
            if stats
            else None
        ),
        conflicts=tuple(
            Conflict(
                subject=item["subject"],
                unscheduled_hours=int(item["unscheduledHours"]),
            )
            for item in row.get("conflicts") or []
        ),
        completed_at=_parse_timestamp(row.get("completed_at")),
    )


def _parse_timestamp(value: object) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return None
