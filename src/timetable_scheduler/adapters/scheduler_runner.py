"""Subprocess adapter for the external scheduling engine."""

import asyncio
import contextlib
import logging
import os
import shutil
import signal
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from timetable_scheduler.domain.engine import EngineResult
from timetable_scheduler.domain.errors import EngineError, EngineErrorKind
from timetable_scheduler.services.pipeline import JobRunner

logger = logging.getLogger(__name__)

_MAX_DETAIL_CHARS = 2000


@dataclass(frozen=True)
class StagedInputs:
    """Input files owned by exactly one engine run."""

    directory: Path
    dataset_path: Path
    config_path: Path

    def cleanup(self) -> None:
        """Remove the private staging directory."""
        shutil.rmtree(self.directory)


@dataclass
class SchedulerRunner(JobRunner[StagedInputs]):
    """Runs one engine invocation with a bounded lifetime."""

    command: list[str]
    staging_root: str | None = None

    def stage(self, dataset: bytes, config: bytes) -> StagedInputs:
        """Write both blobs into a fresh directory private to one run."""
        if self.staging_root:
            Path(self.staging_root).mkdir(parents=True, exist_ok=True)
        directory = Path(tempfile.mkdtemp(prefix="timetable-", dir=self.staging_root))
        dataset_path = directory / "dataset.csv"
        config_path = directory / "config.csv"
        dataset_path.write_bytes(dataset)
        config_path.write_bytes(config)
        return StagedInputs(
            directory=directory, dataset_path=dataset_path, config_path=config_path
        )

    async def run(
        self, staged: StagedInputs, morning_weight: float, timeout: float
    ) -> EngineResult:
        """Invoke the engine and classify its outcome."""
        argv = [
            *self.command,
            str(staged.dataset_path),
            str(staged.config_path),
            _format_weight(morning_weight),
        ]
        started = time.monotonic()
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=staged.directory,
                start_new_session=os.name == "posix",
            )
        except OSError as exc:
            raise EngineError(EngineErrorKind.SPAWN_FAILED, str(exc)) from exc

        try:
            stdout_b, stderr_b = await asyncio.wait_for(
                process.communicate(), timeout=timeout
            )
        except TimeoutError:
            await _terminate(process)
            raise EngineError(EngineErrorKind.TIMEOUT, f"{timeout:g}") from None
        except asyncio.CancelledError:
            await _terminate(process)
            raise

        stdout = stdout_b.decode("utf-8", errors="replace")
        stderr = stderr_b.decode("utf-8", errors="replace").strip()
        logger.info(
            "Scheduler exited",
            extra={
                "returncode": process.returncode,
                "elapsed_s": round(time.monotonic() - started, 3),
            },
        )
        if process.returncode != 0:
            raise EngineError(
                EngineErrorKind.ENGINE_FAILED, stderr[-_MAX_DETAIL_CHARS:]
            )
        if stderr:
            logger.debug("Scheduler diagnostics: %s", stderr[-_MAX_DETAIL_CHARS:])

        try:
            return EngineResult.model_validate_json(stdout)
        except ValidationError as exc:
            raise EngineError(
                EngineErrorKind.MALFORMED_OUTPUT, _first_error(exc)
            ) from exc


async def _terminate(process: asyncio.subprocess.Process) -> None:
    """Kill the engine (and its process group) and reap it."""
    if process.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            if os.name == "posix":
                os.killpg(process.pid, signal.SIGKILL)
            else:
                process.kill()
    await process.wait()


def _format_weight(value: float) -> str:
    return f"{value:g}"


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "invalid output")
    return f"{location}: {message}" if location else message
