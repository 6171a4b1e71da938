"""
Adaptive Confidence Thresholds

Feedback-driven controller that nudges the per-category thresholds one
fixed step up (after false positives) or down (after missed anomalies).
"""

import logging

from ..config.logging import log_with_context
from ..persistence.store import THRESHOLDS_KEY, KeyValueStore
from .models import ConfidenceThresholds

logger = logging.getLogger(__name__)


class ThresholdAdapter:
    """
    Holds the current ``ConfidenceThresholds`` and adjusts them from
    accuracy feedback. Every change is written back to the store.
    """

    STEP = 0.02
    PRECISION = 4

    def __init__(self, store: KeyValueStore):
        self.store = store
        self._thresholds = self._load()

    def _load(self) -> ConfidenceThresholds:
        data = self.store.get(THRESHOLDS_KEY)
        if not isinstance(data, dict):
            return ConfidenceThresholds()

        try:
            thresholds = ConfidenceThresholds.from_dict(data)
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable persisted thresholds: {e}")
            return ConfidenceThresholds()

        if not thresholds.is_within_bounds():
            logger.warning(f"Persisted thresholds out of bounds, clamping: {data}")
            thresholds = thresholds.clamped()
        return thresholds

    @property
    def thresholds(self) -> ConfidenceThresholds:
        """Snapshot of the current thresholds."""
        return ConfidenceThresholds(**self._thresholds.to_dict())

    def _step(self, direction: int) -> ConfidenceThresholds:
        values = {}
        for name, bounds in ConfidenceThresholds.BOUNDS.items():
            moved = round(getattr(self._thresholds, name) + direction * self.STEP, self.PRECISION)
            values[name] = bounds.clamp(moved)
        return ConfidenceThresholds(**values)

    def apply_feedback(
        self, was_accurate: bool, false_positives: int = 0, missed_anomalies: int = 0
    ) -> bool:
        """
        Adjust thresholds from one piece of feedback.

        Args:
            was_accurate: The user judged the detection correct
            false_positives: Flags the user rejected
            missed_anomalies: Anomalies the user found that were not flagged

        Returns:
            True if the thresholds changed
        """
        if was_accurate:
            return False

        direction = 1 if false_positives > missed_anomalies else -1
        updated = self._step(direction)

        if updated == self._thresholds:
            logger.debug("Thresholds already at their bound, nothing to adjust")
            return False

        self._persist(updated)
        log_with_context(
            logger,
            logging.INFO,
            f"Thresholds {'tightened' if direction > 0 else 'loosened'}",
            outlier=updated.outlier,
            trend=updated.trend,
            pattern=updated.pattern,
            false_positives=false_positives,
            missed_anomalies=missed_anomalies,
        )
        return True

    def replace(self, thresholds: ConfidenceThresholds) -> None:
        """Install ``thresholds`` (clamped into bounds) and persist them."""
        self._persist(thresholds.clamped())

    def reset(self) -> None:
        """Restore the default thresholds."""
        self.replace(ConfidenceThresholds())

    def _persist(self, thresholds: ConfidenceThresholds) -> None:
        # Store first so a failed write leaves the in-memory state untouched
        self.store.set(THRESHOLDS_KEY, thresholds.to_dict())
        self._thresholds = thresholds
