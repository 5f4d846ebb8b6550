"""Runtime settings resolved from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    log_level: str
    database_path: Path
    booking_store_backend: str
    remote_store_base_url: str
    remote_store_timeout_seconds: float
    recurrence_default_repeat_count: int
    recurrence_default_month_limit: int
    recurrence_max_month_limit: int
    recurrence_max_interval_weeks: int
    recurrence_max_repeat_count: int


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process; tests derive variants with replace()."""
    backend = os.getenv("ROOM_AGENDA_STORE_BACKEND", "sqlite").strip().lower()
    if backend not in {"sqlite", "remote"}:
        raise ValueError("ROOM_AGENDA_STORE_BACKEND must be 'sqlite' or 'remote'")

    return Settings(
        app_name=os.getenv("ROOM_AGENDA_APP_NAME", "Room Agenda"),
        app_version=os.getenv("ROOM_AGENDA_APP_VERSION", "1.0.0"),
        log_level=os.getenv("ROOM_AGENDA_LOG_LEVEL", "INFO"),
        database_path=Path(
            os.getenv(
                "ROOM_AGENDA_DATABASE_PATH",
                str(PROJECT_ROOT / "data" / "room_agenda.db"),
            )
        ),
        booking_store_backend=backend,
        remote_store_base_url=os.getenv(
            "ROOM_AGENDA_REMOTE_STORE_URL",
            "http://127.0.0.1:3000/api",
        ).rstrip("/"),
        remote_store_timeout_seconds=_env_float("ROOM_AGENDA_REMOTE_STORE_TIMEOUT", 10.0),
        recurrence_default_repeat_count=_env_int("ROOM_AGENDA_DEFAULT_REPEAT_COUNT", 4),
        recurrence_default_month_limit=_env_int("ROOM_AGENDA_DEFAULT_MONTH_LIMIT", 24),
        recurrence_max_month_limit=_env_int("ROOM_AGENDA_MAX_MONTH_LIMIT", 120),
        recurrence_max_interval_weeks=_env_int("ROOM_AGENDA_MAX_INTERVAL_WEEKS", 52),
        recurrence_max_repeat_count=_env_int("ROOM_AGENDA_MAX_REPEAT_COUNT", 120),
    )
