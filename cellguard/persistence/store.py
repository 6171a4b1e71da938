"""
Key-Value Store

Process-wide key-value persistence for engine state (enabled flag,
detection history, adaptive thresholds). Values must be JSON-compatible.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from copy import deepcopy
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional, Union

from ..core.errors import ErrorCodes, PersistenceError

logger = logging.getLogger(__name__)

# Keys used by the anomaly engine
ML_ENABLED_KEY = "ml_enabled"
HISTORY_KEY = "anomaly_patterns"
THRESHOLDS_KEY = "anomaly_thresholds"


class KeyValueStore(ABC):
    """Abstract persistence provider."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value for ``key`` or ``default``."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""


class InMemoryStore(KeyValueStore):
    """Dict-backed store. Values are deep-copied in and out."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = deepcopy(initial) if initial else {}
        self._lock = Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._data:
                return default
            return deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = deepcopy(value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self):
        with self._lock:
            return list(self._data.keys())


class JsonFileStore(KeyValueStore):
    """
    Store backed by a single JSON document on disk.

    The file is read once on construction and rewritten on every change
    through a temporary file and ``os.replace`` so a crash never leaves a
    half-written document behind.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = Lock()
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(
                ErrorCodes.STORAGE_READ_FAILED,
                detail=f"{self.path}: {e}",
                original_error=e,
            )

        if not isinstance(data, dict):
            raise PersistenceError(
                ErrorCodes.STORAGE_READ_FAILED,
                detail=f"{self.path} does not contain a JSON object",
            )

        logger.debug("Loaded %d keys from %s", len(data), self.path)
        return data

    def _flush(self, data: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to write %s: %s", self.path, e)
            raise PersistenceError(
                ErrorCodes.STORAGE_WRITE_FAILED,
                detail=f"{self.path}: {e}",
                original_error=e,
            )

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._data:
                return default
            return deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            updated = dict(self._data)
            updated[key] = deepcopy(value)
            self._flush(updated)
            self._data = updated

    def delete(self, key: str) -> None:
        with self._lock:
            if key not in self._data:
                return
            updated = dict(self._data)
            del updated[key]
            self._flush(updated)
            self._data = updated


def create_store(path: Optional[Union[str, Path]] = None) -> KeyValueStore:
    """Return a file-backed store for ``path`` or an in-memory one."""
    if path is None:
        return InMemoryStore()
    return JsonFileStore(path)
