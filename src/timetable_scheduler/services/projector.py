"""Projection of engine output into store-ready shapes."""

from dataclasses import dataclass

from timetable_scheduler.domain.engine import EngineResult
from timetable_scheduler.domain.sessions import Conflict, ScheduleStats, TimetableSlot


@dataclass(frozen=True)
class Projection:
    """Slots, stats and conflicts for one completed session."""

    slots: list[TimetableSlot]
    stats: ScheduleStats
    conflicts: list[Conflict]


def project_result(result: EngineResult, session_id: str) -> Projection:
    """Map engine placements to slots and derive aggregate stats."""
    slots = [
        TimetableSlot(
            day=placement.day,
            time=placement.time,
            room=placement.room,
            subject=placement.subject,
            teacher=placement.teacher,
            semester=placement.semester,
            session_id=session_id,
        )
        for placement in result.timetable
    ]
    conflicts = [
        Conflict(subject=item.subject, unscheduled_hours=item.unscheduled_hours)
        for item in result.conflicts
    ]
    return Projection(slots=slots, stats=compute_stats(slots), conflicts=conflicts)


def compute_stats(slots: list[TimetableSlot]) -> ScheduleStats:
    """Count distinct subjects, teachers and rooms plus total slots."""
    return ScheduleStats(
        total_subjects=len({slot.subject for slot in slots}),
        total_teachers=len({slot.teacher for slot in slots}),
        rooms_utilized=len({slot.room for slot in slots}),
        total_slots=len(slots),
    )
