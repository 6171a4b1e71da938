"""
Anomaly History

Capped log of past detection runs, mirrored to the key-value store on
every write so it survives across sessions.
"""

import logging
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional, Sequence

import pandas as pd

from ..persistence.store import HISTORY_KEY, KeyValueStore
from .aggregation import overall_confidence
from .models import Anomaly, AnomalyKind, Feedback, _parse_timestamp, utc_now

logger = logging.getLogger(__name__)


@dataclass
class AnomalyHistoryEntry:
    """Summary of one detection run."""

    range_id: str
    anomalies_found: int
    types: List[AnomalyKind]
    avg_confidence: float
    timestamp: datetime = field(default_factory=utc_now)
    feedback: Optional[Feedback] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "range": self.range_id,
            "anomaliesFound": self.anomalies_found,
            "types": [kind.value for kind in self.types],
            "avgConfidence": self.avg_confidence,
            "feedback": self.feedback.to_dict() if self.feedback else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnomalyHistoryEntry":
        return cls(
            range_id=str(data["range"]),
            anomalies_found=int(data.get("anomaliesFound", 0)),
            types=[AnomalyKind(t) for t in data.get("types", [])],
            avg_confidence=float(data.get("avgConfidence", 0.0)),
            timestamp=_parse_timestamp(data.get("timestamp")),
            feedback=Feedback.from_dict(data["feedback"]) if data.get("feedback") else None,
        )


class AnomalyHistoryStore:
    """
    Ring buffer of the most recent detection runs (oldest evicted first).

    Every mutation builds the new buffer, persists it, and only then
    replaces the in-memory copy, so a failed write changes nothing.
    """

    DEFAULT_LIMIT = 100

    def __init__(self, store: KeyValueStore, limit: int = DEFAULT_LIMIT):
        self.store = store
        self.limit = limit
        self._entries: Deque[AnomalyHistoryEntry] = deque(self._load(), maxlen=limit)

    def _load(self) -> List[AnomalyHistoryEntry]:
        raw = self.store.get(HISTORY_KEY, [])
        if not isinstance(raw, list):
            logger.warning("Persisted anomaly history is not a list, starting empty")
            return []

        entries = []
        for item in raw:
            try:
                entries.append(AnomalyHistoryEntry.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable history entry: {e}")
        return entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> List[AnomalyHistoryEntry]:
        """Entries oldest first."""
        return list(self._entries)

    def _commit(self, entries: Deque[AnomalyHistoryEntry]) -> None:
        self.store.set(HISTORY_KEY, [entry.to_dict() for entry in entries])
        self._entries = entries

    def record(self, range_id: str, anomalies: Sequence[Anomaly]) -> AnomalyHistoryEntry:
        """
        Append a summary of a detection run and persist the history.

        Raises:
            PersistenceError: If the history could not be written
        """
        types: List[AnomalyKind] = []
        for anomaly in anomalies:
            if anomaly.kind not in types:
                types.append(anomaly.kind)

        entry = AnomalyHistoryEntry(
            range_id=range_id,
            anomalies_found=len(anomalies),
            types=types,
            avg_confidence=overall_confidence(anomalies),
        )

        updated = deque(self._entries, maxlen=self.limit)
        updated.append(entry)
        self._commit(updated)
        return entry

    def attach_feedback(self, range_id: str, feedback: Feedback) -> bool:
        """Attach feedback to the most recent entry for ``range_id``."""
        for index in range(len(self._entries) - 1, -1, -1):
            if self._entries[index].range_id == range_id:
                updated = deque(self._entries, maxlen=self.limit)
                entry = self._entries[index]
                updated[index] = AnomalyHistoryEntry(
                    range_id=entry.range_id,
                    anomalies_found=entry.anomalies_found,
                    types=list(entry.types),
                    avg_confidence=entry.avg_confidence,
                    timestamp=entry.timestamp,
                    feedback=feedback,
                )
                self._commit(updated)
                return True
        return False

    def replace(self, entries: Sequence[AnomalyHistoryEntry]) -> None:
        """Swap in ``entries`` (keeping the newest ``limit``) and persist."""
        self._commit(deque(entries, maxlen=self.limit))

    def clear(self) -> None:
        self._commit(deque(maxlen=self.limit))

    def stats(self) -> Dict[str, Any]:
        """
        Aggregate statistics over the recorded runs.

        ``topAnomalyTypes`` lists the three kinds present in the most runs,
        most frequent first; ties keep the order kinds were first seen.
        """
        total_detections = len(self._entries)
        total_anomalies = sum(entry.anomalies_found for entry in self._entries)

        type_counts: Counter = Counter()
        for entry in self._entries:
            type_counts.update(entry.types)

        # sorted() is stable, so equal counts keep first-seen order
        top_types = sorted(type_counts.items(), key=lambda item: item[1], reverse=True)[:3]

        return {
            "totalDetections": total_detections,
            "totalAnomalies": total_anomalies,
            "avgAnomaliesPerDetection": (
                total_anomalies / total_detections if total_detections else 0.0
            ),
            "avgConfidence": (
                sum(entry.avg_confidence for entry in self._entries) / total_detections
                if total_detections
                else 0.0
            ),
            "topAnomalyTypes": [
                {"type": kind.value, "count": count} for kind, count in top_types
            ],
        }

    def to_dataframe(self) -> pd.DataFrame:
        """History as a DataFrame, one row per detection run."""
        columns = ["timestamp", "range", "anomaliesFound", "types", "avgConfidence", "wasAccurate"]
        if not self._entries:
            return pd.DataFrame(columns=columns)

        records = []
        for entry in self._entries:
            records.append(
                {
                    "timestamp": entry.timestamp,
                    "range": entry.range_id,
                    "anomaliesFound": entry.anomalies_found,
                    "types": ",".join(kind.value for kind in entry.types),
                    "avgConfidence": entry.avg_confidence,
                    "wasAccurate": entry.feedback.was_accurate if entry.feedback else None,
                }
            )
        return pd.DataFrame(records, columns=columns)
