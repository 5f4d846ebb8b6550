"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the booking store and services, registers routers, and prepares
the embedded database on startup.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from room_agenda.controllers.agenda_controller import router as agenda_router
from room_agenda.controllers.booking_controller import router as booking_router
from room_agenda.repository.base import BookingStore
from room_agenda.repository.remote_store import RemoteBookingStore
from room_agenda.repository.sqlite_store import SqliteBookingStore
from room_agenda.services.availability_service import AvailabilityService
from room_agenda.services.booking_service import BookingService
from room_agenda.utils.config import Settings, get_settings
from room_agenda.utils.logger import configure_logging, get_logger


logger = get_logger(__name__)


def build_store(settings: Settings) -> BookingStore:
    if settings.booking_store_backend == "remote":
        return RemoteBookingStore(settings=settings)
    return SqliteBookingStore(settings=settings)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Services are injected through app.state so every dependency is traceable
    from this function.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    # --- Store (embedded SQLite or remote agenda API) ---
    store = build_store(settings)

    # --- Services (business logic, no direct storage access) ---
    availability_service = AvailabilityService(store)
    booking_service = BookingService(
        store=store,
        availability_service=availability_service,
        settings=settings,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.include_router(agenda_router)
    app.include_router(booking_router)

    app.state.settings = settings
    app.state.booking_store = store
    app.state.availability_service = availability_service
    app.state.booking_service = booking_service

    return app


def _startup(app: FastAPI) -> None:
    """Idempotent startup sequence. Safe to re-run on server restarts."""
    store: BookingStore = app.state.booking_store
    if isinstance(store, SqliteBookingStore):
        logger.info("Startup: initializing database schema")
        store.initialize_database()
    else:
        logger.info("Startup: using remote booking store at %s", app.state.settings.remote_store_base_url)
    logger.info("Startup complete | backend=%s", app.state.settings.booking_store_backend)


# Module-level app object for uvicorn
app = create_app()
