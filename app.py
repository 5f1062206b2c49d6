"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the repository, lock registry, hook dispatcher and services,
registers routers and error handlers, and runs startup initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from lodging.controllers.assignment_controller import router as assignment_router
from lodging.controllers.errors import register_error_handlers
from lodging.controllers.inventory_controller import router as inventory_router
from lodging.repository.data_repository import DataRepository
from lodging.services.assignment_service import AssignmentEngine
from lodging.services.auth_service import AuthService
from lodging.services.capacity_ledger import CapacityLedger
from lodging.services.client_registry import ClientRegistry
from lodging.services.hooks import build_default_dispatcher
from lodging.services.inventory_service import InventoryService
from lodging.services.locking import LockRegistry
from lodging.services.stats_service import StatsService
from lodging.utils.config import Settings, get_settings
from lodging.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Every service shares one repository, one lock registry and one hook
    dispatcher; all of them are reachable through app.state.
    """
    settings = settings or get_settings()

    # --- Persistence and coordination ---
    repository = DataRepository(settings)
    locks = LockRegistry(settings)
    hooks = build_default_dispatcher(repository)

    # --- Services (business logic, no direct SQL) ---
    ledger = CapacityLedger(repository)
    inventory_service = InventoryService(repository, locks, hooks, settings)
    client_registry = ClientRegistry(repository, ledger, locks, hooks, settings)
    assignment_engine = AssignmentEngine(
        repository=repository,
        inventory=inventory_service,
        registry=client_registry,
        ledger=ledger,
        locks=locks,
        hooks=hooks,
        settings=settings,
    )
    stats_service = StatsService(repository, settings)
    auth_service = AuthService(settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app, settings)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers and error mapping ---
    app.include_router(inventory_router)
    app.include_router(assignment_router)
    register_error_handlers(app)

    # --- Inject services into app.state for dependency resolution ---
    app.state.repository = repository
    app.state.locks = locks
    app.state.hooks = hooks
    app.state.inventory_service = inventory_service
    app.state.client_registry = client_registry
    app.state.assignment_engine = assignment_engine
    app.state.stats_service = stats_service
    app.state.auth_service = auth_service

    return app


def _startup(app: FastAPI, settings: Settings) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    The schema must exist before demo data is seeded.
    """
    repository: DataRepository = app.state.repository

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if settings.seed_demo_data:
        logger.info("Startup: seeding demo event (skipped if Events table not empty)")
        repository.seed_demo_data_if_empty()

    logger.info("Startup complete | database=%s", repository.database_path)


# Module-level app object for uvicorn
app = create_app()
