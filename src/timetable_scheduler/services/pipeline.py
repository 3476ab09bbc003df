"""Orchestration of scheduling jobs from submission to terminal state."""

import asyncio
import logging
import math
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeVar

from timetable_scheduler.domain.engine import EngineResult
from timetable_scheduler.domain.errors import EngineError, StoreError, SubmissionError
from timetable_scheduler.domain.sessions import SessionRecord
from timetable_scheduler.services.projector import project_result
from timetable_scheduler.services.store import SessionStore

logger = logging.getLogger(__name__)

DEFAULT_MORNING_WEIGHT = 5.0
MIN_MORNING_WEIGHT = 0.0
MAX_MORNING_WEIGHT = 20.0


class StagedArtifacts(Protocol):
    """Inputs written for a single engine run."""

    def cleanup(self) -> None:
        """Delete the staged inputs."""


StagedT = TypeVar("StagedT", bound=StagedArtifacts)


class JobRunner(Protocol[StagedT]):
    """Interface for executing the scheduling engine."""

    def stage(self, dataset: bytes, config: bytes) -> StagedT:
        """Write the inputs somewhere only this run can see."""

    async def run(
        self, staged: StagedT, morning_weight: float, timeout: float
    ) -> EngineResult:
        """Run the engine once, raising EngineError on any failure."""


def new_session_id() -> str:
    """Return an opaque, URL-safe session identifier."""
    return secrets.token_urlsafe(16)


def clamp_morning_weight(
    raw: object,
    default: float = DEFAULT_MORNING_WEIGHT,
    lower: float = MIN_MORNING_WEIGHT,
    upper: float = MAX_MORNING_WEIGHT,
) -> float:
    """Parse the tuning parameter, falling back to the default when unusable."""
    if raw is None:
        return default
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return default
    try:
        value = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    if math.isnan(value):
        return default
    return min(max(value, lower), upper)


@dataclass
class SchedulingPipeline:
    """Turns uploads into tracked background jobs; sole writer of terminal state."""

    store: SessionStore
    runner: JobRunner[Any]
    timeout_seconds: float = 30.0
    weight_default: float = DEFAULT_MORNING_WEIGHT
    weight_min: float = MIN_MORNING_WEIGHT
    weight_max: float = MAX_MORNING_WEIGHT
    session_id_factory: Callable[[], str] = new_session_id
    _tasks: set[asyncio.Task[None]] = field(default_factory=set, init=False, repr=False)

    @property
    def pending(self) -> int:
        """Number of jobs still running."""
        return len(self._tasks)

    def effective_weight(self, raw: object) -> float:
        """Clamp a raw tuning parameter into the configured range."""
        return clamp_morning_weight(
            raw,
            default=self.weight_default,
            lower=self.weight_min,
            upper=self.weight_max,
        )

    def submit(  # noqa: PLR0913
        self,
        dataset: bytes,
        config: bytes,
        morning_weight: object = None,
        dataset_filename: str = "dataset.csv",
        config_filename: str = "config.csv",
    ) -> SessionRecord:
        """Create a session and start its run in the background.

        Must be called from a running event loop. Never waits on the engine.
        """
        if not dataset:
            raise SubmissionError("Dataset file is empty")
        if not config:
            raise SubmissionError("Config file is empty")
        weight = self.effective_weight(morning_weight)
        loop = asyncio.get_running_loop()

        session = self.store.create_session(
            session_id=self.session_id_factory(),
            dataset_filename=dataset_filename,
            config_filename=config_filename,
            morning_weight=weight,
        )
        task = loop.create_task(
            self._process(session.session_id, dataset, config, weight),
            name=f"schedule-{session.session_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(
            "Schedule submitted",
            extra={"session_id": session.session_id, "morning_weight": weight},
        )
        return session

    async def shutdown(self) -> None:
        """Wait for every in-flight job to reach its terminal state."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _process(
        self, session_id: str, dataset: bytes, config: bytes, weight: float
    ) -> None:
        staged: StagedArtifacts | None = None
        try:
            # file I/O stays off the loop that serves polling
            staged = await asyncio.to_thread(self.runner.stage, dataset, config)
            result = await self.runner.run(staged, weight, self.timeout_seconds)
            projection = project_result(result, session_id)
            self.store.complete_session(
                session_id,
                slots=projection.slots,
                stats=projection.stats,
                conflicts=projection.conflicts,
            )
            logger.info(
                "Schedule completed",
                extra={
                    "session_id": session_id,
                    "total_slots": projection.stats.total_slots,
                    "conflicts": len(projection.conflicts),
                },
            )
        except EngineError as exc:
            logger.warning(
                "Schedule failed: %s",
                exc.reason,
                extra={"session_id": session_id, "kind": exc.kind.value},
            )
            self._fail(session_id, exc.reason)
        except asyncio.CancelledError:
            logger.warning("Schedule cancelled", extra={"session_id": session_id})
            self._fail(session_id, "Scheduling was cancelled")
            raise
        except Exception as exc:
            logger.exception(
                "Unexpected error while scheduling", extra={"session_id": session_id}
            )
            self._fail(session_id, f"Internal error: {exc}")
        finally:
            if staged is not None:
                await _discard(staged, session_id)

    def _fail(self, session_id: str, reason: str) -> None:
        try:
            self.store.fail_session(session_id, reason)
        except StoreError:
            logger.exception(
                "Session left its processing state early",
                extra={"session_id": session_id},
            )
        except Exception:
            logger.exception(
                "Could not record failure", extra={"session_id": session_id}
            )


async def _discard(staged: StagedArtifacts, session_id: str) -> None:
    try:
        await asyncio.to_thread(staged.cleanup)
    except OSError:
        logger.warning(
            "Failed to clean up staged inputs",
            exc_info=True,
            extra={"session_id": session_id},
        )
