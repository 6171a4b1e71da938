"""
CellGuard Persistence Module

Key-value storage for the engine's enabled flag, detection history
and adaptive confidence thresholds.
"""

from .store import (
    HISTORY_KEY,
    ML_ENABLED_KEY,
    THRESHOLDS_KEY,
    InMemoryStore,
    JsonFileStore,
    KeyValueStore,
    create_store,
)

__all__ = [
    "HISTORY_KEY",
    "ML_ENABLED_KEY",
    "THRESHOLDS_KEY",
    "InMemoryStore",
    "JsonFileStore",
    "KeyValueStore",
    "create_store",
]
