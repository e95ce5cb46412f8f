"""
Pydantic schemas for the planner API.

Field names follow the camelCase keys the frontend already sends.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from calplanner.db import THEME_MAX_LENGTH


class StatusResponse(BaseModel):
    status: Literal["ok"] = "ok"
    message: str
    dbConnected: bool


class PlanPayload(BaseModel):
    # Presence is checked by the repository so a missing field is a 400.
    yearData: Any = None
    monthData: Any = None
    # Mirrors the VARCHAR column; longer labels would fail at the database.
    theme: Optional[str] = Field(default=None, max_length=THEME_MAX_LENGTH)
    backgroundImages: Any = None


class PlanResponse(BaseModel):
    year: int
    theme: Optional[str] = None
    yearData: Any
    monthData: Any
    backgroundImages: Any = None


class SuccessResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None


class RestoreResponse(BaseModel):
    success: bool = True
    restored: int
