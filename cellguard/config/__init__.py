"""
CellGuard Configuration

Logging setup and engine settings.
"""

from .logging import configure_logging, log_performance, log_with_context
from .settings import EngineSettings, build_settings, get_settings, load_config_file

__all__ = [
    "configure_logging",
    "log_performance",
    "log_with_context",
    "EngineSettings",
    "build_settings",
    "get_settings",
    "load_config_file",
]
