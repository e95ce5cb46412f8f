"""
FastAPI application entry point for the planner backend.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from calplanner.config import Settings, database_target, get_settings, resolve_db_config
from calplanner.db import PlanStore
from calplanner.errors import (
    CorruptPlan,
    PlanNotFound,
    PlanValidationError,
    RestoreFailed,
    StoreOffline,
)
from calplanner.routes import router

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> PlanStore:
    resolved = resolve_db_config(settings)
    if settings.database_url:
        logger.info("Using DATABASE_URL for the plan store")
    elif resolved is not None:
        logger.info("Using %s MySQL connection variables", resolved.source)
    return PlanStore(database_target(settings), session_time_zone=settings.db_timezone)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StoreOffline)
    async def store_offline(request: Request, exc: StoreOffline):
        return JSONResponse(status_code=503, content={"error": "Database offline"})

    @app.exception_handler(PlanNotFound)
    async def plan_not_found(request: Request, exc: PlanNotFound):
        return JSONResponse(status_code=404, content={"message": "No data"})

    @app.exception_handler(CorruptPlan)
    async def corrupt_plan(request: Request, exc: CorruptPlan):
        # Same status as a missing plan: the frontend falls back to defaults.
        return JSONResponse(status_code=404, content={"message": "Data corrupted"})

    @app.exception_handler(PlanValidationError)
    async def plan_invalid(request: Request, exc: PlanValidationError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_invalid(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "Malformed request", "details": jsonable_errors(exc)},
        )

    @app.exception_handler(RestoreFailed)
    async def restore_failed(request: Request, exc: RestoreFailed):
        return JSONResponse(
            status_code=500, content={"error": "Restore failed", "details": str(exc)}
        )

    @app.exception_handler(Exception)
    async def unhandled(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Server error"})


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
        for error in exc.errors()
    ]


def create_app(
    settings: Optional[Settings] = None, store: Optional[PlanStore] = None
) -> FastAPI:
    settings = settings or get_settings()
    store = store or build_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        store.connect()
        try:
            yield
        finally:
            store.dispose()

    app = FastAPI(title="Cal Planner Backend", version="0.1.0", lifespan=lifespan)
    app.state.store = store
    register_error_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)

    static_dir = Path(settings.static_dir)
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
    else:
        logger.info("Static directory %s not found; frontend not served", static_dir)
    return app


app = create_app()
