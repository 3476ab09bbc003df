"""Schedule submission, polling and export endpoints."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from fastapi import APIRouter, File, Form, Request, UploadFile, status
from fastapi.responses import FileResponse, JSONResponse, Response

from timetable_scheduler.domain.errors import SubmissionError
from timetable_scheduler.domain.sessions import (
    Conflict,
    ScheduleStats,
    SessionStatus,
    TimetableSlot,
)
from timetable_scheduler.services.exports import (
    SlotFilter,
    filter_options,
    filter_slots,
    slots_to_csv,
)

if TYPE_CHECKING:
    from timetable_scheduler.containers import AppContainer
    from timetable_scheduler.services.polling import StatusSnapshot

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["schedule"])

_EXAMPLE_FILES = {
    "dataset": "example_dataset.csv",
    "config": "example_config.csv",
}


class _UploadRejected(Exception):
    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@router.post("/schedule")
async def submit_schedule(
    request: Request,
    dataset: UploadFile | None = File(default=None),
    config: UploadFile | None = File(default=None),
    morning_weight: str | None = Form(default=None, alias="morningWeight"),
) -> JSONResponse:
    """Accept dataset and config uploads and start a scheduling job."""
    container: AppContainer = request.app.state.container
    if dataset is None or config is None:
        return _message(
            status.HTTP_400_BAD_REQUEST, "Both dataset and config files are required"
        )
    max_bytes = container.settings.max_upload_bytes
    try:
        dataset_bytes = await _read_csv_upload(dataset, max_bytes)
        config_bytes = await _read_csv_upload(config, max_bytes)
    except _UploadRejected as exc:
        return _message(exc.status_code, exc.message)

    try:
        session = container.pipeline.submit(
            dataset_bytes,
            config_bytes,
            morning_weight=morning_weight,
            dataset_filename=dataset.filename or "dataset.csv",
            config_filename=config.filename or "config.csv",
        )
    except SubmissionError as exc:
        return _message(status.HTTP_400_BAD_REQUEST, str(exc))
    except Exception as exc:
        logger.exception("Failed to submit schedule")
        return _message(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    return JSONResponse(
        {
            "sessionId": session.session_id,
            "status": session.status.value,
            "morningWeight": session.morning_weight,
        }
    )


@router.get("/schedule/{session_id}")
async def get_schedule(session_id: str, request: Request) -> JSONResponse:
    """Return the session status and, once completed, its timetable."""
    container: AppContainer = request.app.state.container
    snapshot = container.polling_service.get_status(session_id)
    if snapshot is None:
        return _message(status.HTTP_404_NOT_FOUND, "Session not found")
    return JSONResponse(_status_payload(snapshot))


@router.get("/schedule/{session_id}/slots")
async def get_slots(
    session_id: str,
    request: Request,
    semester: str | None = None,
    teacher: str | None = None,
    room: str | None = None,
) -> JSONResponse:
    """Return filtered slots of a completed session with filter options."""
    snapshot = _completed_snapshot(request, session_id)
    if isinstance(snapshot, JSONResponse):
        return snapshot
    slots = snapshot.slots or []
    selected = filter_slots(slots, SlotFilter(semester, teacher, room))
    return JSONResponse(
        {
            "timetable": [_slot_payload(slot) for slot in selected],
            "filters": filter_options(slots),
        }
    )


@router.get("/schedule/{session_id}/export", response_model=None)
async def export_schedule(
    session_id: str,
    request: Request,
    semester: str | None = None,
    teacher: str | None = None,
    room: str | None = None,
) -> Response:
    """Download the (optionally filtered) timetable as CSV."""
    snapshot = _completed_snapshot(request, session_id)
    if isinstance(snapshot, JSONResponse):
        return snapshot
    selected = filter_slots(snapshot.slots or [], SlotFilter(semester, teacher, room))
    return Response(
        content=slots_to_csv(selected),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="timetable.csv"'},
    )


@router.get("/examples/{kind}", response_model=None)
async def download_example(kind: str, request: Request) -> Response:
    """Download a bundled example dataset or config file."""
    container: AppContainer = request.app.state.container
    filename = _EXAMPLE_FILES.get(kind)
    if filename is None:
        return _message(status.HTTP_400_BAD_REQUEST, "Invalid example type")
    path = Path(container.settings.examples_dir) / filename
    if not path.is_file():
        return _message(status.HTTP_404_NOT_FOUND, "Example file not found")
    return FileResponse(path, media_type="text/csv", filename=filename)


async def _read_csv_upload(upload: UploadFile, max_bytes: int) -> bytes:
    """Read an upload, enforcing the CSV-only and size rules."""
    name = upload.filename or ""
    if upload.content_type != "text/csv" and not name.lower().endswith(".csv"):
        raise _UploadRejected(
            status.HTTP_400_BAD_REQUEST, "Only CSV files are allowed"
        )
    content = await upload.read(max_bytes + 1)
    if len(content) > max_bytes:
        raise _UploadRejected(
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, f"{name or 'File'} is too large"
        )
    return content


def _completed_snapshot(
    request: Request, session_id: str
) -> StatusSnapshot | JSONResponse:
    container: AppContainer = request.app.state.container
    snapshot = container.polling_service.get_status(session_id)
    if snapshot is None:
        return _message(status.HTTP_404_NOT_FOUND, "Session not found")
    if snapshot.status is not SessionStatus.COMPLETED:
        return _message(status.HTTP_409_CONFLICT, "Timetable is not ready")
    return snapshot


def _status_payload(snapshot: StatusSnapshot) -> dict[str, object]:
    """Shape a snapshot into the result boundary payload."""
    conflicts = [_conflict_payload(conflict) for conflict in snapshot.conflicts]
    if snapshot.status is SessionStatus.COMPLETED:
        return {
            "status": snapshot.status.value,
            "timetable": [_slot_payload(slot) for slot in snapshot.slots or []],
            "stats": _stats_payload(snapshot.stats) if snapshot.stats else None,
            "conflicts": conflicts,
        }
    return {
        "status": snapshot.status.value,
        "errorMessage": snapshot.error_message,
        "conflicts": conflicts,
    }


def _slot_payload(slot: TimetableSlot) -> dict[str, str]:
    return {
        "day": slot.day,
        "time": slot.time,
        "room": slot.room,
        "subject": slot.subject,
        "teacher": slot.teacher,
        "semester": slot.semester,
        "sessionId": slot.session_id,
    }


def _stats_payload(stats: ScheduleStats) -> dict[str, int]:
    return {
        "totalSubjects": stats.total_subjects,
        "totalTeachers": stats.total_teachers,
        "roomsUtilized": stats.rooms_utilized,
        "totalSlots": stats.total_slots,
    }


def _conflict_payload(conflict: Conflict) -> dict[str, object]:
    return {
        "subject": conflict.subject,
        "unscheduledHours": conflict.unscheduled_hours,
    }


def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"message": message}, status_code=status_code)
