# CellGuard Anomaly Detection Module

from .aggregation import (
    confidence_tier,
    filter_by_thresholds,
    overall_confidence,
    summarize_tiers,
)
from .cells import BLANK, BlankCell, NumericCell, NumericGrid, TextCell, parse_cell
from .detectors import (
    ColumnAnomalyDetector,
    IQRDetector,
    RowPatternDetector,
    TrendBreakDetector,
    ZScoreDetector,
)
from .engine import AnomalyEngine
from .history import AnomalyHistoryEntry, AnomalyHistoryStore
from .models import (
    Anomaly,
    AnomalyKind,
    ConfidenceThresholds,
    ConfidenceTier,
    DetectionOutcome,
    DetectionResult,
    Feedback,
)
from .statistics import SummaryStatistics, compute_statistics
from .thresholds import ThresholdAdapter

__all__ = [
    # Engine
    "AnomalyEngine",
    # Grid
    "BLANK",
    "BlankCell",
    "NumericCell",
    "NumericGrid",
    "TextCell",
    "parse_cell",
    # Detectors
    "ColumnAnomalyDetector",
    "IQRDetector",
    "RowPatternDetector",
    "TrendBreakDetector",
    "ZScoreDetector",
    # Statistics and scoring
    "SummaryStatistics",
    "compute_statistics",
    "confidence_tier",
    "filter_by_thresholds",
    "overall_confidence",
    "summarize_tiers",
    # Models
    "Anomaly",
    "AnomalyKind",
    "ConfidenceThresholds",
    "ConfidenceTier",
    "DetectionOutcome",
    "DetectionResult",
    "Feedback",
    # Learning state
    "AnomalyHistoryEntry",
    "AnomalyHistoryStore",
    "ThresholdAdapter",
]
