"""Slot filtering and CSV export for completed timetables."""

import csv
import io
from dataclasses import dataclass

from timetable_scheduler.domain.sessions import TimetableSlot

CSV_HEADER = ("Day", "Time", "Subject", "Teacher", "Room", "Semester")


@dataclass(frozen=True)
class SlotFilter:
    """Exact-match filter; empty fields match everything."""

    semester: str | None = None
    teacher: str | None = None
    room: str | None = None

    def matches(self, slot: TimetableSlot) -> bool:
        return (
            (not self.semester or slot.semester == self.semester)
            and (not self.teacher or slot.teacher == self.teacher)
            and (not self.room or slot.room == self.room)
        )


def filter_slots(slots: list[TimetableSlot], slot_filter: SlotFilter) -> list[TimetableSlot]:
    """Return slots that satisfy the filter, preserving order."""
    return [slot for slot in slots if slot_filter.matches(slot)]


def filter_options(slots: list[TimetableSlot]) -> dict[str, list[str]]:
    """Distinct semesters, teachers and rooms in first-seen order."""
    return {
        "semesters": _distinct(slot.semester for slot in slots),
        "teachers": _distinct(slot.teacher for slot in slots),
        "rooms": _distinct(slot.room for slot in slots),
    }


def slots_to_csv(slots: list[TimetableSlot]) -> str:
    """Render slots as CSV with a header row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for slot in slots:
        writer.writerow(
            [slot.day, slot.time, slot.subject, slot.teacher, slot.room, slot.semester]
        )
    return buffer.getvalue()


def _distinct(values) -> list[str]:  # type: ignore[no-untyped-def]
    seen: dict[str, None] = {}
    for value in values:
        if value:
            seen.setdefault(value, None)
    return list(seen)
