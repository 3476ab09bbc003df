"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from timetable_scheduler.adapters.scheduler_runner import SchedulerRunner
from timetable_scheduler.adapters.supabase_session_store import SupabaseSessionStore
from timetable_scheduler.config import Settings, parse_scheduler_command
from timetable_scheduler.services.pipeline import SchedulingPipeline
from timetable_scheduler.services.polling import PollingService
from timetable_scheduler.services.store import InMemorySessionStore, SessionStore


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    session_store: SessionStore
    pipeline: SchedulingPipeline
    polling_service: PollingService
    close_resources: Callable[[], Awaitable[None]]


def build_session_store(settings: Settings) -> SessionStore:
    """Create the configured session store backend."""
    if settings.store_backend == "memory":
        return InMemorySessionStore()
    if settings.store_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError(
                "supabase store requires supabase_url and supabase_service_key"
            )
        return SupabaseSessionStore(
            create_client(settings.supabase_url, settings.supabase_service_key)
        )
    raise ValueError(f"Unknown store backend: {settings.store_backend}")


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    session_store = build_session_store(resolved_settings)
    runner = SchedulerRunner(
        command=parse_scheduler_command(resolved_settings.scheduler_command),
        staging_root=resolved_settings.staging_dir,
    )
    pipeline = SchedulingPipeline(
        store=session_store,
        runner=runner,
        timeout_seconds=resolved_settings.job_timeout_seconds,
        weight_default=resolved_settings.morning_weight_default,
        weight_min=resolved_settings.morning_weight_min,
        weight_max=resolved_settings.morning_weight_max,
    )
    polling_service = PollingService(session_store)

    async def close_resources() -> None:
        await pipeline.shutdown()

    return AppContainer(
        settings=resolved_settings,
        session_store=session_store,
        pipeline=pipeline,
        polling_service=polling_service,
        close_resources=close_resources,
    )
