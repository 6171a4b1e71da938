"""
CellGuard API Routers Package

Router Structure:
-----------------
- system.py    : /api/health - Health check
- anomalies.py : /api/anomalies/* - Detection, feedback and learned state

Usage:
------
    from fastapi import FastAPI
    from cellguard.api.routers import register_routers

    app = FastAPI()
    registered = register_routers(app)
"""

import importlib
import logging
from typing import List, Tuple

from fastapi import FastAPI

logger = logging.getLogger(__name__)

# Router configuration: (module_name, prefix, tags)
ROUTER_CONFIG: List[Tuple[str, str, List[str]]] = [
    # System endpoints (health check at /api/health)
    ("system", "/api", ["System"]),

    # Anomaly detection, feedback and learned state
    ("anomalies", "/api/anomalies", ["Anomalies"]),
]


def register_routers(app: FastAPI) -> List[str]:
    """
    Register all API routers with the FastAPI application.

    Args:
        app: The FastAPI application instance

    Returns:
        List of registered router names
    """
    registered = []

    for module_name, prefix, tags in ROUTER_CONFIG:
        module = importlib.import_module(f".{module_name}", package=__name__)
        app.include_router(module.router, prefix=prefix, tags=tags)
        registered.append(module_name)
        logger.debug(f"Registered router: {module_name} at {prefix}")

    return registered


def get_router_info() -> List[dict]:
    """Configured routers as dicts of module, prefix and tags."""
    return [
        {
            "module": module_name,
            "prefix": prefix,
            "tags": tags,
        }
        for module_name, prefix, tags in ROUTER_CONFIG
    ]


__all__ = [
    "ROUTER_CONFIG",
    "get_router_info",
    "register_routers",
]
