"""Domain models for scheduling sessions."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class SessionStatus(StrEnum):
    """Lifecycle states of a scheduling session."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not SessionStatus.PROCESSING


@dataclass(frozen=True)
class Conflict:
    """Demand the engine could not place."""

    subject: str
    unscheduled_hours: int


@dataclass(frozen=True)
class ScheduleStats:
    """Aggregate counters derived from a completed timetable."""

    total_subjects: int
    total_teachers: int
    rooms_utilized: int
    total_slots: int


@dataclass(frozen=True)
class TimetableSlot:
    """One scheduled placement belonging to a session."""

    day: str
    time: str
    room: str
    subject: str
    teacher: str
    semester: str
    session_id: str


@dataclass(frozen=True)
class SessionRecord:
    """Represents a tracked scheduling session."""

    session_id: str
    status: SessionStatus
    dataset_filename: str
    config_filename: str
    morning_weight: float
    created_at: datetime
    error_message: str | None = None
    stats: ScheduleStats | None = None
    conflicts: tuple[Conflict, ...] = ()
    completed_at: datetime | None = None
