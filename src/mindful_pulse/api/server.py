"""FastAPI application — collection lifecycle and settings endpoints.

This module wires together all infrastructure:
- SQLite key-value storage for the persisted settings record
- Settings store (loaded once at startup)
- Collection service over the configured backend
- Lifecycle controller, attached to the settings store
- Periodic collection scheduler
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from mindful_pulse import __version__
from mindful_pulse.api.routes.collection import router as collection_router
from mindful_pulse.api.routes.settings import router as settings_router
from mindful_pulse.collection.controller import CollectionController
from mindful_pulse.collection.service import CollectionService
from mindful_pulse.config import get_settings
from mindful_pulse.scheduler.service import CollectionScheduler
from mindful_pulse.state.settings_store import SettingsStore
from mindful_pulse.storage.database import close_db, init_db
from mindful_pulse.storage.repository import KeyValueRepository

logger = structlog.get_logger(__name__)

# ── Shared state (initialised in lifespan) ────────────────────

_settings_store: SettingsStore | None = None
_service: CollectionService | None = None
_controller: CollectionController | None = None
_scheduler: CollectionScheduler | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hooks."""
    global _settings_store, _service, _controller, _scheduler

    settings = get_settings()

    # 1. Database
    await init_db()
    logger.info("server.db_ready")

    # 2. Settings (defaults if nothing persisted yet)
    _settings_store = SettingsStore(KeyValueRepository(), key=settings.settings_storage_key)
    await _settings_store.load()

    # 3. Service + controller; attach() reconciles the loaded intent
    _service = CollectionService(_settings_store)
    _controller = CollectionController(_settings_store, _service)
    _controller.attach()

    # 4. Scheduled collection
    if settings.scheduler_enabled:
        _scheduler = CollectionScheduler(_controller, _settings_store)
        await _scheduler.start()
        logger.info("server.scheduler_started")

    logger.info("server.started", port=settings.api_port)

    yield  # ← application runs

    # Shutdown
    if _scheduler:
        await _scheduler.stop()
    await _controller.close()
    await _service.close()
    await _settings_store.flush()
    await close_db()
    _settings_store = _service = _controller = _scheduler = None
    logger.info("server.stopped")


app = FastAPI(
    title="MindfulPulse API",
    description="Data-collection lifecycle and settings for the MindfulPulse wellness journal.",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(collection_router)
app.include_router(settings_router)


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "version": __version__,
        "scheduler_running": bool(_scheduler and _scheduler.is_running),
    }
