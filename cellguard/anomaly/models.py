"""
Anomaly Data Models

Detection results, feedback, confidence thresholds and the outcome
returned to callers of the engine.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from ..core.errors import AnomalyErrorKind


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        # fromisoformat rejects a trailing "Z" before Python 3.11
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return utc_now()


class AnomalyKind(Enum):
    """Types of detected anomalies."""

    OUTLIER = "outlier"
    IQR_OUTLIER = "iqr_outlier"
    TREND_BREAK = "trend_break"
    ROW_PATTERN = "row_pattern"


class ConfidenceTier(Enum):
    """Visual emphasis bucket for a flagged anomaly."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class Anomaly:
    """Individual anomaly detection result."""

    kind: AnomalyKind
    row: int
    col: int  # -1 for whole-row anomalies
    value: float
    confidence: float  # 0-1
    reason: str
    expected_value: Optional[float] = None
    z_score: Optional[float] = None

    @property
    def is_row_anomaly(self) -> bool:
        return self.col == -1

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": self.kind.value,
            "row": self.row,
            "col": self.col,
            "value": self.value,
            "expectedValue": self.expected_value,
            "zScore": self.z_score,
            "confidence": self.confidence,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Anomaly":
        """Create from dictionary."""
        return cls(
            kind=AnomalyKind(data["type"]),
            row=int(data["row"]),
            col=int(data["col"]),
            value=float(data["value"]),
            confidence=float(data["confidence"]),
            reason=data.get("reason", ""),
            expected_value=data.get("expectedValue"),
            z_score=data.get("zScore"),
        )


@dataclass
class Feedback:
    """User feedback on a detection run."""

    was_accurate: bool
    false_positives: int = 0
    missed_anomalies: int = 0
    feedback_time: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "wasAccurate": self.was_accurate,
            "falsePositives": self.false_positives,
            "missedAnomalies": self.missed_anomalies,
            "feedbackTime": self.feedback_time.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Feedback":
        return cls(
            was_accurate=bool(data.get("wasAccurate", False)),
            false_positives=int(data.get("falsePositives", 0)),
            missed_anomalies=int(data.get("missedAnomalies", 0)),
            feedback_time=_parse_timestamp(data.get("feedbackTime")),
        )


@dataclass
class DetectionResult:
    """Anomalies found in one range by one detection run."""

    anomalies: List[Anomaly]
    confidence: float
    timestamp: datetime = field(default_factory=utc_now)
    feedback: Optional[Feedback] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "anomalies": [a.to_dict() for a in self.anomalies],
            "confidence": self.confidence,
            "feedback": self.feedback.to_dict() if self.feedback else None,
        }


@dataclass(frozen=True)
class ThresholdBounds:
    """Inclusive range a single threshold may take."""

    lower: float
    upper: float

    def clamp(self, value: float) -> float:
        return max(self.lower, min(self.upper, value))


@dataclass
class ConfidenceThresholds:
    """Per-category minimum confidence for an anomaly to be acted on."""

    outlier: float = 0.85
    trend: float = 0.75
    pattern: float = 0.80

    BOUNDS = {
        "outlier": ThresholdBounds(0.70, 0.95),
        "trend": ThresholdBounds(0.60, 0.90),
        "pattern": ThresholdBounds(0.65, 0.90),
    }

    def is_within_bounds(self) -> bool:
        return all(
            bounds.lower <= getattr(self, name) <= bounds.upper
            for name, bounds in self.BOUNDS.items()
        )

    def clamped(self) -> "ConfidenceThresholds":
        """Return a copy with every value forced into its bounds."""
        return ConfidenceThresholds(
            **{
                name: bounds.clamp(getattr(self, name))
                for name, bounds in self.BOUNDS.items()
            }
        )

    def to_dict(self) -> Dict[str, float]:
        return {"outlier": self.outlier, "trend": self.trend, "pattern": self.pattern}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfidenceThresholds":
        defaults = cls()
        return cls(
            outlier=float(data.get("outlier", defaults.outlier)),
            trend=float(data.get("trend", defaults.trend)),
            pattern=float(data.get("pattern", defaults.pattern)),
        )


@dataclass
class DetectionOutcome:
    """
    Value returned by ``AnomalyEngine.detect``.

    Either ``success`` with the anomalies found, or a failure carrying an
    error message and one of the closed ``AnomalyErrorKind`` values.
    """

    success: bool
    anomalies: List[Anomaly] = field(default_factory=list)
    error: Optional[str] = None
    error_kind: Optional[AnomalyErrorKind] = None

    @property
    def total_found(self) -> int:
        return len(self.anomalies)

    @classmethod
    def ok(cls, anomalies: List[Anomaly]) -> "DetectionOutcome":
        return cls(success=True, anomalies=anomalies)

    @classmethod
    def failed(cls, error: str, kind: AnomalyErrorKind) -> "DetectionOutcome":
        return cls(success=False, error=error, error_kind=kind)

    def to_dict(self) -> Dict[str, Any]:
        if not self.success:
            return {
                "success": False,
                "error": self.error,
                "errorKind": self.error_kind.value if self.error_kind else None,
            }
        return {
            "success": True,
            "anomalies": [a.to_dict() for a in self.anomalies],
            "totalFound": self.total_found,
        }
