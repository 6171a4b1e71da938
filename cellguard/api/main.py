"""
CellGuard REST API
===================

FastAPI service wrapping a single ``AnomalyEngine``.

Usage:
    # Development
    uvicorn cellguard.api.main:app --reload --port 8000

Environment Variables:
    CELLGUARD_STORAGE_PATH: JSON file for persisted state (in-memory if unset)
    CELLGUARD_HISTORY_LIMIT: Detection runs kept in history (default: 100)
    CELLGUARD_LOG_LEVEL: Root log level (default: INFO)
    CELLGUARD_LOG_JSON: Emit JSON structured logs (default: false)
    CELLGUARD_CONFIG_FILE: Optional YAML file overriding the above
"""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from .. import __version__
from ..anomaly.engine import AnomalyEngine
from ..config.logging import configure_logging
from ..config.settings import EngineSettings, get_settings
from ..core.errors import CellGuardError, create_error_response
from .routers import register_routers
from .routers.base import get_timestamp, set_engine

logger = logging.getLogger(__name__)


# =============================================================================
# Application Factory
# =============================================================================


def create_app(
    engine: Optional[AnomalyEngine] = None,
    settings: Optional[EngineSettings] = None,
) -> FastAPI:
    """
    Application factory for creating the FastAPI instance.

    Args:
        engine: Engine to serve; built from ``settings`` when omitted
        settings: Engine settings; read from the environment when omitted

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()
    configure_logging(
        level=settings.LOG_LEVEL,
        json_format=settings.LOG_JSON,
        service_name=settings.SERVICE_NAME,
        environment=settings.ENVIRONMENT,
    )

    if engine is None:
        engine = AnomalyEngine.from_settings(settings)
    set_engine(engine)

    app = FastAPI(
        title="CellGuard API",
        description="Statistical anomaly detection for spreadsheet ranges",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        openapi_tags=[
            {"name": "System", "description": "Health checks"},
            {"name": "Anomalies", "description": "Detection, feedback and learned state"},
        ],
    )
    app.state.engine = engine

    register_routers(app)

    @app.exception_handler(CellGuardError)
    async def cellguard_exception_handler(request: Request, exc: CellGuardError):
        """Map engine errors to their HTTP status with a structured body."""
        exc.log()
        return JSONResponse(
            status_code=exc.http_status,
            content=create_error_response(exc),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions with structured response."""
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "data": None,
                "error": exc.detail,
                "timestamp": get_timestamp(),
            },
            headers=exc.headers,
        )

    logger.info(f"CellGuard API ready ({settings.ENVIRONMENT})")
    return app


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()


__all__ = [
    "app",
    "create_app",
]
