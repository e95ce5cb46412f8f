"""
HTTP routes for the planner API.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Body, Depends, Path
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from calplanner.db import PlanStore
from calplanner.dependencies import get_repository, get_store
from calplanner.repository import PlanRepository
from calplanner.schemas import (
    PlanPayload,
    PlanResponse,
    RestoreResponse,
    StatusResponse,
    SuccessResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Calendar years; larger values would overflow the INT column.
MIN_YEAR = 1
MAX_YEAR = 9999


@router.get("/status", response_model=StatusResponse)
def status(store: PlanStore = Depends(get_store)):
    return StatusResponse(
        message="Cal Planner Backend is running.",
        dbConnected=store.is_online,
    )


@router.get("/plan/{year}", response_model=PlanResponse)
def get_plan(
    year: int = Path(..., ge=MIN_YEAR, le=MAX_YEAR),
    repo: PlanRepository = Depends(get_repository),
):
    record = repo.get_by_year(year)
    return PlanResponse(**record.as_dict())


@router.post(
    "/plan/{year}", response_model=SuccessResponse, response_model_exclude_none=True
)
def save_plan(
    payload: PlanPayload,
    year: int = Path(..., ge=MIN_YEAR, le=MAX_YEAR),
    repo: PlanRepository = Depends(get_repository),
):
    repo.upsert(
        year,
        payload.yearData,
        payload.monthData,
        theme=payload.theme,
        background_images=payload.backgroundImages,
    )
    return SuccessResponse()


@router.get("/db/backup")
def backup(repo: PlanRepository = Depends(get_repository)):
    """
    Dump every stored row exactly as persisted, as a downloadable file.
    """
    rows = repo.export_all()
    filename = f"annual_plans_backup_{datetime.now():%Y%m%d}.json"
    return JSONResponse(
        content=jsonable_encoder(rows),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/db/restore", response_model=RestoreResponse)
def restore(
    rows: Any = Body(default=None),
    repo: PlanRepository = Depends(get_repository),
):
    restored = repo.restore_all(rows)
    return RestoreResponse(restored=restored)


@router.delete(
    "/test/clear-data", response_model=SuccessResponse, response_model_exclude_none=True
)
def clear_data(repo: PlanRepository = Depends(get_repository)):
    repo.reset_all()
    return SuccessResponse(message="Database reset; table recreated with utf8mb4.")
