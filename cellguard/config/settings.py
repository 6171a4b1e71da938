"""
CellGuard Engine Configuration

Runtime settings for the anomaly engine using pydantic-settings for
environment variable management, with an optional YAML override file.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class EngineSettings(BaseSettings):
    """
    Anomaly engine configuration.

    Values come from ``CELLGUARD_*`` environment variables or a ``.env``
    file. Detection constants (z-score limit, IQR multiplier, trend
    tolerance) are fixed and deliberately absent here.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CELLGUARD_",
        case_sensitive=False,
        extra="ignore",
    )

    # Persistence
    STORAGE_PATH: Optional[Path] = Field(
        default=None,
        description="JSON file backing the key-value store. In-memory when unset.",
    )
    HISTORY_LIMIT: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Number of detection runs kept in the history log.",
    )

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Root log level.",
    )
    LOG_JSON: bool = Field(
        default=False,
        description="Emit JSON structured logs instead of console format.",
    )
    SERVICE_NAME: str = Field(default="cellguard", description="Service name in logs.")
    ENVIRONMENT: str = Field(default="development", description="Deployment environment.")

    CONFIG_FILE: Optional[Path] = Field(
        default=None,
        description="Optional YAML file whose keys override the defaults above.",
    )

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept lowercase level names."""
        if isinstance(v, str):
            return v.upper()
        return v


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    Read a YAML config file into a dict of upper-cased setting names.

    Missing or unreadable files yield an empty dict.
    """
    if not path.exists():
        logger.warning("Config file %s does not exist", path)
        return {}

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to load config file %s: %s", path, e)
        return {}

    if not isinstance(data, dict):
        logger.warning("Config file %s is not a mapping, ignoring", path)
        return {}

    return {str(k).upper(): v for k, v in data.items()}


def build_settings(**overrides: Any) -> EngineSettings:
    """
    Build settings from the environment, then apply the YAML file and
    explicit keyword overrides in that order.
    """
    settings = EngineSettings(**overrides)
    if settings.CONFIG_FILE is None:
        return settings

    file_values = load_config_file(settings.CONFIG_FILE)
    file_values.update({k.upper(): v for k, v in overrides.items()})
    file_values["CONFIG_FILE"] = settings.CONFIG_FILE
    return EngineSettings(**file_values)


@lru_cache()
def get_settings() -> EngineSettings:
    """Cached settings instance for the running process."""
    return build_settings()
