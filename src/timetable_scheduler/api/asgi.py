"""ASGI entrypoint for the timetable scheduler API."""

from timetable_scheduler.api.app import create_app
from timetable_scheduler.containers import build_container

app = create_app(build_container())
