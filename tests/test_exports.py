"""Tests for slot filtering and CSV export."""

from timetable_scheduler.domain.sessions import TimetableSlot
from timetable_scheduler.services.exports import (
    SlotFilter,
    filter_options,
    filter_slots,
    slots_to_csv,
)

SLOTS = [
    TimetableSlot("Monday", "9AM", "Lab1", "Physics Lab", "T2", "Sem1", "s"),
    TimetableSlot("Monday", "10AM", "Classroom1", "Math", "T1", "Sem1", "s"),
    TimetableSlot("Tuesday", "9AM", "Classroom1", "Networks", "T1", "Sem5", "s"),
]


def test_empty_filter_matches_everything() -> None:
    assert filter_slots(SLOTS, SlotFilter()) == SLOTS


def test_filters_combine_with_exact_match() -> None:
    selected = filter_slots(SLOTS, SlotFilter(teacher="T1", room="Classroom1"))
    assert [slot.subject for slot in selected] == ["Math", "Networks"]

    selected = filter_slots(SLOTS, SlotFilter(semester="Sem5", teacher="T1"))
    assert [slot.subject for slot in selected] == ["Networks"]

    assert filter_slots(SLOTS, SlotFilter(semester="sem1")) == []


def test_filter_options_are_distinct_in_first_seen_order() -> None:
    assert filter_options(SLOTS) == {
        "semesters": ["Sem1", "Sem5"],
        "teachers": ["T2", "T1"],
        "rooms": ["Lab1", "Classroom1"],
    }


def test_slots_to_csv_quotes_fields_with_commas() -> None:
    slots = [TimetableSlot("Friday", "2PM", "R1", "Art, History", "T9", "Sem2", "s")]

    content = slots_to_csv(slots)

    assert content.splitlines() == [
        "Day,Time,Subject,Teacher,Room,Semester",
        'Friday,2PM,"Art, History",T9,R1,Sem2',
    ]
