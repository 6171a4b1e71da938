"""
Confidence Aggregation

Combine per-anomaly confidences, bucket them into display tiers and
filter anomalies against the adaptive thresholds.
"""

from collections import Counter
from typing import Dict, Iterable, List, Sequence

import numpy as np

from .models import Anomaly, AnomalyKind, ConfidenceThresholds, ConfidenceTier

HIGH_TIER_MIN = 0.85
MEDIUM_TIER_MIN = 0.70

# Which threshold governs each anomaly kind
THRESHOLD_FIELD = {
    AnomalyKind.OUTLIER: "outlier",
    AnomalyKind.IQR_OUTLIER: "outlier",
    AnomalyKind.TREND_BREAK: "trend",
    AnomalyKind.ROW_PATTERN: "pattern",
}


def overall_confidence(anomalies: Sequence[Anomaly]) -> float:
    """Mean confidence of the anomalies, 0.0 when there are none."""
    if not anomalies:
        return 0.0
    return float(np.mean([a.confidence for a in anomalies]))


def confidence_tier(confidence: float) -> ConfidenceTier:
    """Bucket a confidence: high >= 0.85, medium >= 0.70, low otherwise."""
    if confidence >= HIGH_TIER_MIN:
        return ConfidenceTier.HIGH
    if confidence >= MEDIUM_TIER_MIN:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW


def threshold_for(kind: AnomalyKind, thresholds: ConfidenceThresholds) -> float:
    return getattr(thresholds, THRESHOLD_FIELD[kind])


def filter_by_thresholds(
    anomalies: Iterable[Anomaly], thresholds: ConfidenceThresholds
) -> List[Anomaly]:
    """Keep anomalies whose confidence reaches their category threshold."""
    return [a for a in anomalies if a.confidence >= threshold_for(a.kind, thresholds)]


def summarize_tiers(anomalies: Iterable[Anomaly]) -> Dict[str, int]:
    """Count anomalies per confidence tier."""
    counts = Counter(confidence_tier(a.confidence) for a in anomalies)
    return {tier.value: counts.get(tier, 0) for tier in ConfidenceTier}
