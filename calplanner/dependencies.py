"""
Dependency wiring for the FastAPI app.

The store lives on ``app.state`` so each app instance (and each test)
owns its own pool.
"""

from __future__ import annotations

from fastapi import Depends, Request

from calplanner.db import PlanStore
from calplanner.errors import StoreOffline
from calplanner.repository import PlanRepository


def get_store(request: Request) -> PlanStore:
    return request.app.state.store


def get_repository(store: PlanStore = Depends(get_store)) -> PlanRepository:
    """Return a repository bound to the app's store, refusing when offline."""
    if not store.is_online:
        raise StoreOffline("Database offline")
    return PlanRepository(store)
