"""Greedy timetable engine.

Run as ``python -m timetable_scheduler.engine <dataset.csv> <config.csv> [weight]``.
The timetable and the list of unplaced hours are written to stdout as one JSON
document; diagnostics go to stderr.

Dataset columns: ``name,semester,credits,type,teacher,hours_needed``.
Config columns: ``resource_type,value``; rows of type ``room`` define the rooms.
"""

import csv
import json
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")
TIMES = ("9AM", "10AM", "11AM", "12PM", "1PM", "2PM")
DEFAULT_ROOMS = ("Classroom1", "Classroom2", "Classroom3", "Lab1", "Lab2")
MORNING_SLOTS = 3
DISTRIBUTION_PENALTY = 2.0
LAB_BLOCK_BONUS = 3.0
DEFAULT_MORNING_WEIGHT = 5.0
_DATASET_COLUMNS = 6


@dataclass(frozen=True)
class Subject:
    """A subject and the weekly hours it needs."""

    name: str
    semester: str
    credits: int
    kind: str
    teacher: str
    hours_needed: int

    @property
    def is_lab(self) -> bool:
        return self.kind == "Lab"


@dataclass(frozen=True)
class Placement:
    """One hour of a subject in a room."""

    day: int
    time: int
    room: str
    subject: str
    teacher: str
    semester: str

    def to_json(self) -> dict[str, str]:
        return {
            "day": DAYS[self.day],
            "time": TIMES[self.time],
            "room": self.room,
            "subject": self.subject,
            "teacher": self.teacher,
            "semester": self.semester,
        }


def read_rooms(path: Path) -> list[str]:
    """Read room names from the config CSV, falling back to defaults."""
    try:
        with path.open(newline="", encoding="utf-8") as handle:
            reader = csv.reader(handle)
            next(reader, None)
            rooms = [
                row[1].strip()
                for row in reader
                if len(row) >= 2 and row[0].strip() == "room" and row[1].strip()
            ]
    except OSError:
        _warn(f"Error: Could not open config file '{path}'. Using default rooms.")
        return list(DEFAULT_ROOMS)
    if not rooms:
        _warn(f"Warning: No rooms found in '{path}'. Using default rooms.")
        return list(DEFAULT_ROOMS)
    return rooms


def read_subjects(path: Path) -> list[Subject]:
    """Read subjects from the dataset CSV; malformed rows are skipped."""
    subjects: list[Subject] = []
    try:
        with path.open(newline="", encoding="utf-8") as handle:
            reader = csv.reader(handle)
            next(reader, None)
            for row in reader:
                if not any(cell.strip() for cell in row):
                    continue
                subject = _parse_subject(row)
                if subject is None:
                    _warn(f"Error parsing line: {','.join(row)}")
                    continue
                subjects.append(subject)
    except OSError:
        _warn(f"Error: Could not open dataset file '{path}'. Check path.")
        return []
    if not subjects:
        _warn(f"Warning: No subjects loaded from '{path}'.")
    return subjects


def _parse_subject(row: list[str]) -> Subject | None:
    if len(row) < _DATASET_COLUMNS:
        return None
    name, semester, credits, kind, teacher, hours = (cell.strip() for cell in row[:6])
    try:
        return Subject(
            name=name,
            semester=semester,
            credits=int(credits),
            kind=kind,
            teacher=teacher,
            hours_needed=int(hours),
        )
    except ValueError:
        return None


def is_valid_slot(
    subject: Subject, day: int, time: int, room: str, placed: list[Placement]
) -> bool:
    """No teacher, semester or room clash; labs only in lab rooms."""
    for other in placed:
        if other.day != day or other.time != time:
            continue
        if other.teacher == subject.teacher:
            return False
        if other.semester == subject.semester:
            return False
        if other.room == room:
            return False
    return not (subject.is_lab and "Lab" not in room)


def schedule(
    subjects: Sequence[Subject], rooms: Sequence[str], morning_weight: float
) -> tuple[list[Placement], list[dict[str, object]]]:
    """Place every subject hour greedily, returning placements and conflicts."""
    placed: list[Placement] = []
    conflicts: list[dict[str, object]] = []
    morning_used = [0] * len(DAYS)
    ordered = sorted(subjects, key=lambda sub: (not sub.is_lab, -sub.credits))

    for subject in ordered:
        assigned = 0
        while assigned < subject.hours_needed:
            best = _best_slot(subject, rooms, placed, morning_used, morning_weight)
            if best is None:
                _warn(f"Warning: No valid slots found for {subject.name}")
                break
            _place(best, placed, morning_used)
            assigned += 1

            if (
                subject.is_lab
                and assigned < subject.hours_needed
                and best.time < len(TIMES) - 1
                and is_valid_slot(subject, best.day, best.time + 1, best.room, placed)
            ):
                _place(
                    _placement(subject, best.day, best.time + 1, best.room),
                    placed,
                    morning_used,
                )
                assigned += 1

        if assigned < subject.hours_needed:
            _warn(
                f"Warning: Could not assign all hours for {subject.name} "
                f"(assigned {assigned}/{subject.hours_needed})"
            )
            conflicts.append(
                {
                    "subject": subject.name,
                    "unscheduledHours": subject.hours_needed - assigned,
                }
            )

    distribution = " ".join(
        f"{day}:{count}" for day, count in zip(DAYS, morning_used, strict=True)
    )
    _warn(f"Morning slot distribution: {distribution}")
    return placed, conflicts


def _best_slot(
    subject: Subject,
    rooms: Sequence[str],
    placed: list[Placement],
    morning_used: list[int],
    morning_weight: float,
) -> Placement | None:
    best: Placement | None = None
    best_score = float("-inf")
    for day in range(len(DAYS)):
        for time in range(len(TIMES)):
            for room in rooms:
                if not is_valid_slot(subject, day, time, room, placed):
                    continue
                score = 0.0
                if time < MORNING_SLOTS:
                    score += morning_weight
                    score -= DISTRIBUTION_PENALTY * morning_used[day]
                if (
                    subject.is_lab
                    and time < len(TIMES) - 1
                    and is_valid_slot(subject, day, time + 1, room, placed)
                ):
                    score += LAB_BLOCK_BONUS
                if score > best_score:
                    best = _placement(subject, day, time, room)
                    best_score = score
    return best


def _placement(subject: Subject, day: int, time: int, room: str) -> Placement:
    return Placement(
        day=day,
        time=time,
        room=room,
        subject=subject.name,
        teacher=subject.teacher,
        semester=subject.semester,
    )


def _place(placement: Placement, placed: list[Placement], morning_used: list[int]) -> None:
    placed.append(placement)
    if placement.time < MORNING_SLOTS:
        morning_used[placement.day] += 1


def _warn(message: str) -> None:
    print(message, file=sys.stderr)


def _parse_weight(raw: str) -> float:
    try:
        weight = float(raw)
    except ValueError:
        _warn(
            f"Warning: Invalid morning weight '{raw}'. "
            f"Using default: {DEFAULT_MORNING_WEIGHT}"
        )
        return DEFAULT_MORNING_WEIGHT
    if not 0 <= weight <= 20:  # noqa: PLR2004
        _warn(f"Warning: Morning weight should be between 0-20. Using: {weight}")
    return weight


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point; returns the process exit code."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) not in {2, 3}:
        _warn("Usage: timetable_scheduler.engine <dataset.csv> <config.csv> [morningWeight]")
        _warn("Morning weight controls preference for morning slots (0-20, default: 5.0)")
        return 1

    weight = _parse_weight(args[2]) if len(args) == 3 else DEFAULT_MORNING_WEIGHT  # noqa: PLR2004
    _warn(f"Using morning preference weight: {weight}")

    subjects = read_subjects(Path(args[0]))
    if not subjects:
        _warn(f"No subjects loaded from '{args[0]}'. Exiting.")
        return 1

    placements, conflicts = schedule(subjects, read_rooms(Path(args[1])), weight)
    json.dump(
        {
            "timetable": [placement.to_json() for placement in placements],
            "conflicts": conflicts,
        },
        sys.stdout,
    )
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
