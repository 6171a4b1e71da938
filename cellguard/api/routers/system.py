"""
CellGuard System Router
========================

Endpoints:
    GET /api/health - Health check with component status
"""

import logging
from typing import Dict

from fastapi import APIRouter
from pydantic import BaseModel, Field

from ... import __version__
from ...persistence.store import JsonFileStore
from .base import current_engine, get_timestamp

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall status: healthy or unhealthy")
    version: str = Field(..., description="API version")
    components: Dict[str, bool] = Field(..., description="Component health status")
    storage: str = Field(..., description="Storage backend: memory or file")
    timestamp: str = Field(..., description="ISO timestamp of the check")


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Reports whether the engine is initialized and which storage backend
    it persists to.
    """
    engine = current_engine()
    components = {
        "api": True,
        "engine": engine is not None,
    }

    storage = "memory"
    if engine is not None and isinstance(engine.store, JsonFileStore):
        storage = "file"

    return HealthResponse(
        status="healthy" if all(components.values()) else "unhealthy",
        version=__version__,
        components=components,
        storage=storage,
        timestamp=get_timestamp(),
    )
