"""
CellGuard

Statistical anomaly detection for spreadsheet ranges: z-score, IQR and
trend-break outliers per column, row-sum patterns across a range, and
confidence thresholds that adapt to user feedback.
"""

__version__ = "0.1.0"

from .anomaly import AnomalyEngine, DetectionOutcome, NumericGrid
from .core.errors import AnomalyErrorKind, CellGuardError

__all__ = [
    "AnomalyEngine",
    "AnomalyErrorKind",
    "CellGuardError",
    "DetectionOutcome",
    "NumericGrid",
    "__version__",
]
