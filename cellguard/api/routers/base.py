"""
CellGuard API Router Base Utilities

Shared response model, helpers and the engine dependency used by all
routers.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import numpy as np
import pandas as pd
from fastapi import HTTPException
from pydantic import BaseModel, Field

from ...anomaly.engine import AnomalyEngine

logger = logging.getLogger(__name__)


# =============================================================================
# Response Models
# =============================================================================


class ApiResponse(BaseModel):
    """
    Standard API response wrapper.

    All API endpoints return responses wrapped in this model
    for consistent client-side handling.
    """
    success: bool = Field(..., description="Whether the request succeeded")
    data: Optional[Any] = Field(default=None, description="Response payload")
    error: Optional[str] = Field(default=None, description="Error message if failed")
    timestamp: str = Field(..., description="ISO timestamp of response")


# =============================================================================
# Helper Functions
# =============================================================================


def get_timestamp() -> str:
    """Get current ISO timestamp with Z suffix."""
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z"


def convert_numpy_types(obj: Any) -> Any:
    """
    Convert numpy types to native Python types for JSON serialization.

    Handles:
    - numpy.bool_ -> bool
    - numpy.integer -> int
    - numpy.floating -> float (or None if NaN)
    - numpy.ndarray -> list
    - dict/list -> recursively converted
    - pandas.Timestamp -> ISO string
    """
    if isinstance(obj, dict):
        return {k: convert_numpy_types(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_numpy_types(v) for v in obj]
    elif isinstance(obj, np.bool_):
        return bool(obj)
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj) if np.isfinite(obj) else None
    elif isinstance(obj, float):
        return obj if np.isfinite(obj) else None
    elif isinstance(obj, np.ndarray):
        return convert_numpy_types(obj.tolist())
    elif isinstance(obj, pd.Timestamp):
        return obj.isoformat()
    return obj


def create_response(
    data: Any = None,
    error: Optional[str] = None,
    success: bool = True
) -> ApiResponse:
    """
    Create a standardized API response.

    Automatically converts numpy types and handles error state.

    Example:
        >>> create_response(data={"totalFound": 2})
        ApiResponse(success=True, data={"totalFound": 2}, error=None, timestamp="...")
    """
    converted_data = convert_numpy_types(data) if data is not None else None

    return ApiResponse(
        success=success and error is None,
        data=converted_data,
        error=error,
        timestamp=get_timestamp(),
    )


# =============================================================================
# Engine Access
# =============================================================================

# Engine reference - set by create_app
_engine: Optional[AnomalyEngine] = None


def set_engine(engine: Optional[AnomalyEngine]) -> None:
    """Set the engine served by the API."""
    global _engine
    _engine = engine


def current_engine() -> Optional[AnomalyEngine]:
    """The served engine, or None before startup."""
    return _engine


def get_engine() -> AnomalyEngine:
    """Dependency to get the engine, raising 503 if not initialized."""
    if _engine is None:
        raise HTTPException(status_code=503, detail="Anomaly engine not initialized")
    return _engine
