"""Shared test fixtures."""

import asyncio
import itertools
import sys
import textwrap
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

import pytest
from postgrest.exceptions import APIError

from timetable_scheduler.config import Settings
from timetable_scheduler.containers import AppContainer
from timetable_scheduler.domain.engine import EngineResult
from timetable_scheduler.services.pipeline import JobRunner, SchedulingPipeline
from timetable_scheduler.services.polling import PollingService
from timetable_scheduler.services.store import InMemorySessionStore

SINGLE_SLOT_OUTPUT = {
    "timetable": [
        {
            "day": "Mon",
            "time": "9AM",
            "room": "R1",
            "subject": "Math",
            "teacher": "T1",
            "semester": "S1",
        }
    ],
    "conflicts": [],
}


def write_engine(directory: Path, body: str, name: str = "engine.py") -> list[str]:
    """Write a fake engine script and return the command that runs it."""
    script = directory / name
    script.write_text(textwrap.dedent(body), encoding="utf-8")
    return [sys.executable, str(script)]


@dataclass
class FakeStaged:
    """Staged inputs that only count cleanups."""

    dataset: bytes
    config: bytes
    fail_cleanup: bool = False
    cleanups: int = 0

    def cleanup(self) -> None:
        self.cleanups += 1
        if self.fail_cleanup:
            raise OSError("directory busy")


@dataclass
class FakeJobRunner(JobRunner[FakeStaged]):
    """Job runner returning scripted outcomes without spawning anything."""

    outcome: EngineResult | Exception = field(
        default_factory=lambda: EngineResult.model_validate(SINGLE_SLOT_OUTPUT)
    )
    by_dataset: dict[bytes, EngineResult | Exception] = field(default_factory=dict)
    delays: dict[bytes, float] = field(default_factory=dict)
    fail_cleanup: bool = False
    fail_stage: bool = False
    staged: list[FakeStaged] = field(default_factory=list)
    stage_threads: list[int] = field(default_factory=list)
    calls: list[tuple[float, float]] = field(default_factory=list)

    def stage(self, dataset: bytes, config: bytes) -> FakeStaged:
        self.stage_threads.append(threading.get_ident())
        if self.fail_stage:
            raise OSError("disk full")
        staged = FakeStaged(dataset, config, fail_cleanup=self.fail_cleanup)
        self.staged.append(staged)
        return staged

    async def run(
        self, staged: FakeStaged, morning_weight: float, timeout: float
    ) -> EngineResult:
        self.calls.append((morning_weight, timeout))
        delay = self.delays.get(staged.dataset, 0.0)
        if delay:
            await asyncio.sleep(delay)
        outcome = self.by_dataset.get(staged.dataset, self.outcome)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@dataclass
class FakeResponse:
    data: list[dict[str, object]]


@dataclass
class FakeQuery:
    """Minimal query builder over in-memory rows."""

    rows: list[dict[str, object]]
    ids: itertools.count
    max_rows: int | None = None
    unique: str | None = None
    action: str = "select"
    payload: object = None
    filters: list[tuple[str, object]] = field(default_factory=list)
    limit_count: int | None = None
    order_by: str | None = None
    window: tuple[int, int] | None = None

    def select(self, *_args) -> "FakeQuery":
        self.action = "select"
        return self

    def insert(self, payload) -> "FakeQuery":  # type: ignore[no-untyped-def]
        self.action = "insert"
        self.payload = payload
        return self

    def update(self, payload) -> "FakeQuery":  # type: ignore[no-untyped-def]
        self.action = "update"
        self.payload = payload
        return self

    def eq(self, column: str, value) -> "FakeQuery":  # type: ignore[no-untyped-def]
        self.filters.append((column, value))
        return self

    def limit(self, count: int) -> "FakeQuery":
        self.limit_count = count
        return self

    def order(self, column: str, desc: bool = False) -> "FakeQuery":
        self.order_by = column
        return self

    def range(self, start: int, end: int) -> "FakeQuery":
        self.window = (start, end)
        return self

    def execute(self) -> FakeResponse:
        if self.action == "insert":
            payloads = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for payload in payloads:
                if self.unique and any(
                    row.get(self.unique) == payload.get(self.unique) for row in self.rows
                ):
                    raise APIError(
                        {
                            "code": "23505",
                            "message": "duplicate key value violates unique constraint",
                        }
                    )
                row = {
                    "id": next(self.ids),
                    "created_at": datetime.now(tz=UTC).isoformat(),
                    **payload,
                }
                self.rows.append(row)
                inserted.append(dict(row))
            return FakeResponse(inserted)
        matched = [row for row in self.rows if self._matches(row)]
        if self.action == "update":
            for row in matched:
                row.update(self.payload)
            return FakeResponse([dict(row) for row in matched])
        if self.order_by:
            matched.sort(key=lambda row: row[self.order_by])
        if self.window is not None:
            start, end = self.window
            matched = matched[start : end + 1]
        if self.limit_count is not None:
            matched = matched[: self.limit_count]
        if self.max_rows is not None:
            matched = matched[: self.max_rows]
        return FakeResponse([dict(row) for row in matched])

    def _matches(self, row: dict[str, object]) -> bool:
        return all(row.get(column) == value for column, value in self.filters)


@dataclass
class FakeSupabaseClient:
    """Stand-in for supabase.Client backed by dict rows."""

    tables: dict[str, list[dict[str, object]]] = field(default_factory=dict)
    ids: itertools.count = field(default_factory=lambda: itertools.count(1))
    max_rows: int | None = None
    unique_columns: dict[str, str] = field(default_factory=dict)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(
            rows=self.tables.setdefault(name, []),
            ids=self.ids,
            max_rows=self.max_rows,
            unique=self.unique_columns.get(name),
        )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        staging_dir=str(tmp_path / "staging"),
        job_timeout_seconds=5.0,
    )


@pytest.fixture
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def job_runner() -> FakeJobRunner:
    return FakeJobRunner()


@pytest.fixture
def pipeline(
    session_store: InMemorySessionStore, job_runner: FakeJobRunner
) -> SchedulingPipeline:
    return SchedulingPipeline(store=session_store, runner=job_runner)


@pytest.fixture
def container(
    settings: Settings,
    session_store: InMemorySessionStore,
    pipeline: SchedulingPipeline,
) -> AppContainer:
    async def close_resources() -> None:
        await pipeline.shutdown()

    return AppContainer(
        settings=settings,
        session_store=session_store,
        pipeline=pipeline,
        polling_service=PollingService(session_store),
        close_resources=close_resources,
    )
