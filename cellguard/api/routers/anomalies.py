"""
CellGuard Anomalies Router
===========================

Endpoints for running detection on a range, feeding back accuracy and
managing the engine's learned state.

Endpoints:
    POST   /api/anomalies/detect                       - Detect anomalies in a range
    POST   /api/anomalies/feedback                     - Submit feedback on a detection
    GET    /api/anomalies/results/{range_id}           - Latest result for a range
    GET    /api/anomalies/results/{range_id}/actionable - Anomalies above thresholds
    GET    /api/anomalies/history/stats                - Detection history statistics
    GET    /api/anomalies/thresholds                   - Current confidence thresholds
    GET    /api/anomalies/status                       - Engine status
    POST   /api/anomalies/enable                       - Enable anomaly detection
    POST   /api/anomalies/disable                      - Disable anomaly detection
    DELETE /api/anomalies/data                         - Clear learned state
    GET    /api/anomalies/profile                      - Export learned state
    POST   /api/anomalies/profile                      - Import learned state

Handlers are plain functions: detection is CPU-bound and runs in the
server's threadpool.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ...anomaly.aggregation import confidence_tier, summarize_tiers
from ...anomaly.engine import AnomalyEngine
from .base import ApiResponse, create_response, get_engine

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Request Models
# =============================================================================


class DetectRequest(BaseModel):
    """Range values to scan."""

    rangeId: str = Field(
        ...,
        min_length=1,
        description="Range identifier, e.g. Sheet1!A1:D20",
    )
    values: List[List[Any]] = Field(
        ...,
        description="Row-major cell values; blanks as null or empty string",
    )


class FeedbackRequest(BaseModel):
    """User verdict on a detection run."""

    rangeId: str = Field(..., min_length=1, description="Range the detection ran on")
    wasAccurate: bool = Field(..., description="Whether the flagged anomalies were correct")
    falsePositives: int = Field(default=0, ge=0, description="Flags the user rejected")
    missedAnomalies: int = Field(default=0, ge=0, description="Anomalies that were not flagged")


class ProfileImportRequest(BaseModel):
    """Learned state previously produced by the profile export."""

    thresholds: Optional[Dict[str, float]] = None
    history: Optional[List[Dict[str, Any]]] = None
    enabled: Optional[bool] = None
    exportDate: Optional[str] = None
    version: Optional[str] = None


# =============================================================================
# Detection
# =============================================================================


@router.post("/detect", response_model=ApiResponse)
def detect_anomalies(
    request: DetectRequest,
    engine: AnomalyEngine = Depends(get_engine),
) -> ApiResponse:
    """
    Detect anomalies in a range.

    A range that cannot be analyzed is not an HTTP error: the response
    carries ``success: false`` with the error kind, and no state changes.
    """
    outcome = engine.detect(request.values, request.rangeId)
    data = outcome.to_dict()
    if outcome.success:
        data["rangeId"] = request.rangeId
        data["tiers"] = summarize_tiers(outcome.anomalies)
    return create_response(data=data, error=outcome.error)


@router.post("/feedback", response_model=ApiResponse)
def submit_feedback(
    request: FeedbackRequest,
    engine: AnomalyEngine = Depends(get_engine),
) -> ApiResponse:
    """Record feedback; ``applied`` is false when the range has no result."""
    applied = engine.apply_feedback(
        request.rangeId,
        request.wasAccurate,
        request.falsePositives,
        request.missedAnomalies,
    )
    return create_response(
        data={"applied": applied, "thresholds": engine.thresholds.to_dict()}
    )


# =============================================================================
# Results
# =============================================================================


@router.get("/results/{range_id}", response_model=ApiResponse)
def get_result(
    range_id: str,
    engine: AnomalyEngine = Depends(get_engine),
) -> ApiResponse:
    """Latest detection result stored for a range."""
    result = engine.get_result(range_id)
    if result is None:
        raise HTTPException(status_code=404, detail=f"No detection result for {range_id}")

    data = result.to_dict()
    data["rangeId"] = range_id
    return create_response(data=data)


@router.get("/results/{range_id}/actionable", response_model=ApiResponse)
def get_actionable_anomalies(
    range_id: str,
    engine: AnomalyEngine = Depends(get_engine),
) -> ApiResponse:
    """Anomalies of a range whose confidence clears the current thresholds."""
    anomalies = engine.actionable_anomalies(range_id)
    return create_response(
        data={
            "rangeId": range_id,
            "anomalies": [
                {**a.to_dict(), "tier": confidence_tier(a.confidence).value}
                for a in anomalies
            ],
            "thresholds": engine.thresholds.to_dict(),
        }
    )


# =============================================================================
# Engine State
# =============================================================================


@router.get("/history/stats", response_model=ApiResponse)
def get_history_stats(engine: AnomalyEngine = Depends(get_engine)) -> ApiResponse:
    return create_response(data=engine.history_stats())


@router.get("/thresholds", response_model=ApiResponse)
def get_thresholds(engine: AnomalyEngine = Depends(get_engine)) -> ApiResponse:
    return create_response(data=engine.thresholds.to_dict())


@router.get("/status", response_model=ApiResponse)
def get_status(engine: AnomalyEngine = Depends(get_engine)) -> ApiResponse:
    return create_response(data=engine.status())


@router.post("/enable", response_model=ApiResponse)
def enable_detection(engine: AnomalyEngine = Depends(get_engine)) -> ApiResponse:
    engine.enable()
    return create_response(data=engine.status())


@router.post("/disable", response_model=ApiResponse)
def disable_detection(engine: AnomalyEngine = Depends(get_engine)) -> ApiResponse:
    engine.disable()
    return create_response(data=engine.status())


@router.delete("/data", response_model=ApiResponse)
def clear_data(engine: AnomalyEngine = Depends(get_engine)) -> ApiResponse:
    """Clear history, live results and learned thresholds."""
    engine.clear_data()
    return create_response(data=engine.status())


@router.get("/profile", response_model=ApiResponse)
def export_profile(engine: AnomalyEngine = Depends(get_engine)) -> ApiResponse:
    return create_response(data=engine.export_profile())


@router.post("/profile", response_model=ApiResponse)
def import_profile(
    request: ProfileImportRequest,
    engine: AnomalyEngine = Depends(get_engine),
) -> ApiResponse:
    """Restore learned state; sections left out of the body are unchanged."""
    engine.import_profile(request.model_dump(exclude_none=True))
    return create_response(data=engine.status())
