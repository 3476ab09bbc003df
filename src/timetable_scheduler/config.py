"""Application configuration."""

import os
import shlex
import sys
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")
_DEFAULT_SCHEDULER_COMMAND = f"{shlex.quote(sys.executable)} -m timetable_scheduler.engine"
_DEFAULT_EXAMPLES_DIR = Path(__file__).resolve().parent / "datasets"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    environment: str = _ENVIRONMENT
    store_backend: str = "memory"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    scheduler_command: str = _DEFAULT_SCHEDULER_COMMAND
    job_timeout_seconds: float = 30.0
    morning_weight_default: float = 5.0
    morning_weight_min: float = 0.0
    morning_weight_max: float = 20.0
    max_upload_bytes: int = 5 * 1024 * 1024
    staging_dir: str | None = None
    examples_dir: str = str(_DEFAULT_EXAMPLES_DIR)

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_scheduler_command(raw: str) -> list[str]:
    """Split the configured engine command into argv parts."""
    parts = shlex.split(raw.strip())
    if not parts:
        raise ValueError("scheduler_command must not be empty")
    return parts
