"""
Anomaly Engine

Orchestrates detection over a selected range, keeps the latest result per
range, records history and turns user feedback into threshold changes.

The engine is an explicit object; all of its mutable state (live results,
thresholds, history, enabled flag) is guarded by one re-entrant lock so a
single instance can serve a threaded HTTP server.
"""

import logging
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd

from ..config.logging import clear_range_context, log_performance, set_range_context
from ..core.errors import (
    CellGuardError,
    DegenerateInputError,
    ErrorCodes,
    UnknownRangeError,
    wrap_exception,
)
from ..persistence.store import ML_ENABLED_KEY, InMemoryStore, KeyValueStore, create_store
from .aggregation import filter_by_thresholds, overall_confidence, summarize_tiers
from .cells import NumericGrid
from .detectors import ColumnAnomalyDetector, RowPatternDetector
from .history import AnomalyHistoryEntry, AnomalyHistoryStore
from .models import (
    Anomaly,
    ConfidenceThresholds,
    DetectionOutcome,
    DetectionResult,
    Feedback,
)
from .thresholds import ThresholdAdapter

logger = logging.getLogger(__name__)

GridInput = Union[NumericGrid, pd.DataFrame, Sequence[Sequence[Any]]]


class AnomalyEngine:
    """
    Statistical anomaly detection for spreadsheet ranges.

    Runs z-score, IQR and trend-break detection per column plus row-sum
    pattern detection over the whole range, then scores and stores the
    findings keyed by range id.
    """

    MODEL_VERSION = "1.0.0"
    PROFILE_VERSION = "1.0.0"

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        history_limit: int = AnomalyHistoryStore.DEFAULT_LIMIT,
    ):
        """
        Initialize the engine from persisted state.

        Args:
            store: Key-value store for thresholds, history and the enabled
                flag. Defaults to a fresh in-memory store.
            history_limit: Number of detection runs kept in history
        """
        self.store = store if store is not None else InMemoryStore()
        self._lock = RLock()
        self._results: Dict[str, DetectionResult] = {}

        self.column_detector = ColumnAnomalyDetector()
        self.row_detector = RowPatternDetector()
        self.threshold_adapter = ThresholdAdapter(self.store)
        self.history = AnomalyHistoryStore(self.store, limit=history_limit)
        self._enabled = bool(self.store.get(ML_ENABLED_KEY, False))

        logger.info(
            f"AnomalyEngine initialized ({len(self.history)} history entries, "
            f"enabled={self._enabled})"
        )

    @classmethod
    def from_settings(cls, settings) -> "AnomalyEngine":
        """Build an engine from ``EngineSettings``."""
        return cls(
            store=create_store(settings.STORAGE_PATH),
            history_limit=settings.HISTORY_LIMIT,
        )

    # =========================================================================
    # Detection
    # =========================================================================

    @staticmethod
    def _to_grid(grid: GridInput) -> NumericGrid:
        if isinstance(grid, NumericGrid):
            return grid
        if isinstance(grid, pd.DataFrame):
            return NumericGrid.from_dataframe(grid)
        return NumericGrid.from_values(grid)

    def find_anomalies(self, grid: NumericGrid) -> List[Anomaly]:
        """Run every detector over ``grid`` without touching engine state."""
        anomalies: List[Anomaly] = []
        for col in range(grid.n_cols):
            anomalies.extend(self.column_detector.detect(grid.column(col), col))

        if grid.n_cols > 1:
            anomalies.extend(self.row_detector.detect(grid))

        return anomalies

    @log_performance(threshold_ms=500.0)
    def detect(self, grid: GridInput, range_id: str) -> DetectionOutcome:
        """
        Detect anomalies in a range and store the result.

        Args:
            grid: Raw nested values, a DataFrame or a ``NumericGrid``
            range_id: Identifier of the range (e.g. "Sheet1!A1:D20")

        Returns:
            DetectionOutcome; never raises for bad input or storage failures
        """
        set_range_context(range_id)
        try:
            numeric_grid = self._to_grid(grid)
            anomalies = self.find_anomalies(numeric_grid)
            result = DetectionResult(
                anomalies=anomalies,
                confidence=overall_confidence(anomalies),
            )

            with self._lock:
                # History first: a failed write must leave no stored result
                self.history.record(range_id, anomalies)
                self._results[range_id] = result

            logger.info(
                f"Detection completed for {range_id}: {len(anomalies)} anomalies "
                f"in {numeric_grid.n_rows}x{numeric_grid.n_cols} cells",
                extra={"ctx_tiers": summarize_tiers(anomalies)},
            )
            return DetectionOutcome.ok(anomalies)

        except CellGuardError as e:
            logger.warning(f"Detection failed for {range_id}: {e}")
            return DetectionOutcome.failed(e.user_message, e.kind)
        except (ValueError, TypeError, IndexError) as e:
            error = wrap_exception(e)
            logger.warning(f"Detection failed for {range_id}: {error}")
            return DetectionOutcome.failed(error.user_message, error.kind)
        finally:
            clear_range_context()

    # =========================================================================
    # Results and Feedback
    # =========================================================================

    def get_result(self, range_id: str) -> Optional[DetectionResult]:
        with self._lock:
            return self._results.get(range_id)

    def actionable_anomalies(self, range_id: str) -> List[Anomaly]:
        """
        Stored anomalies for a range that clear the current thresholds.

        Raises:
            UnknownRangeError: If no result is stored for ``range_id``
        """
        with self._lock:
            result = self._results.get(range_id)
            if result is None:
                raise UnknownRangeError(range_id)
            return filter_by_thresholds(result.anomalies, self.threshold_adapter.thresholds)

    def apply_feedback(
        self,
        range_id: str,
        was_accurate: bool,
        false_positives: int = 0,
        missed_anomalies: int = 0,
    ) -> bool:
        """
        Record user feedback on a range and adapt the thresholds.

        Returns:
            False if no result is stored for ``range_id``, True otherwise

        Raises:
            PersistenceError: If the feedback could not be written; the
                result, history and thresholds are left as they were
        """
        with self._lock:
            result = self._results.get(range_id)
            if result is None:
                logger.debug(f"Feedback for unknown range {range_id} ignored")
                return False

            feedback = Feedback(
                was_accurate=was_accurate,
                false_positives=false_positives,
                missed_anomalies=missed_anomalies,
            )
            previous = self.threshold_adapter.thresholds
            self.threshold_adapter.apply_feedback(
                was_accurate, false_positives, missed_anomalies
            )
            try:
                self.history.attach_feedback(range_id, feedback)
            except CellGuardError:
                self.threshold_adapter.replace(previous)
                raise

            # Live result last: a failed write leaves it without feedback
            result.feedback = feedback
            return True

    @property
    def thresholds(self) -> ConfidenceThresholds:
        return self.threshold_adapter.thresholds

    def history_stats(self) -> Dict[str, Any]:
        with self._lock:
            return self.history.stats()

    # =========================================================================
    # Enable / Disable and Status
    # =========================================================================

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _set_enabled(self, enabled: bool) -> None:
        with self._lock:
            self.store.set(ML_ENABLED_KEY, enabled)
            self._enabled = enabled
        logger.info(f"Anomaly detection {'enabled' if enabled else 'disabled'}")

    def enable(self) -> None:
        self._set_enabled(True)

    def disable(self) -> None:
        self._set_enabled(False)

    def status(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "enabled": self._enabled,
                "modelVersion": self.MODEL_VERSION,
                "thresholds": self.threshold_adapter.thresholds.to_dict(),
                "historySize": len(self.history),
                "liveResults": len(self._results),
            }

    # =========================================================================
    # Data Management
    # =========================================================================

    def clear_data(self) -> None:
        """Drop history, live results and learned thresholds. Keeps the enabled flag."""
        with self._lock:
            self.history.clear()
            self.threshold_adapter.reset()
            self._results.clear()
        logger.info("Anomaly data cleared")

    def export_profile(self) -> Dict[str, Any]:
        """Snapshot of the learned state for backup."""
        with self._lock:
            return {
                "thresholds": self.threshold_adapter.thresholds.to_dict(),
                "history": [entry.to_dict() for entry in self.history.entries],
                "enabled": self._enabled,
                "exportDate": datetime.now(timezone.utc).isoformat(),
                "version": self.PROFILE_VERSION,
            }

    def import_profile(self, data: Dict[str, Any]) -> None:
        """
        Restore state produced by ``export_profile``.

        Sections missing from ``data`` are left unchanged.

        Raises:
            DegenerateInputError: If the profile is malformed
            PersistenceError: If the restored state could not be written
        """
        if not isinstance(data, dict):
            raise DegenerateInputError(
                ErrorCodes.VALIDATION_INVALID_VALUE, detail="Profile must be an object"
            )

        try:
            thresholds = (
                ConfidenceThresholds.from_dict(data["thresholds"])
                if data.get("thresholds") is not None
                else None
            )
            entries = (
                [AnomalyHistoryEntry.from_dict(item) for item in data["history"]]
                if data.get("history") is not None
                else None
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise DegenerateInputError(
                ErrorCodes.VALIDATION_INVALID_VALUE,
                detail=f"Malformed profile: {e}",
                original_error=e,
            )

        with self._lock:
            if thresholds is not None:
                self.threshold_adapter.replace(thresholds)
            if entries is not None:
                self.history.replace(entries)
            if "enabled" in data:
                self._set_enabled(bool(data["enabled"]))

        logger.info(
            f"Profile imported (version {data.get('version', 'unknown')}, "
            f"{len(entries) if entries is not None else 0} history entries)"
        )
