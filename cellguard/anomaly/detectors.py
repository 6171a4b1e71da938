"""
Anomaly Detectors

Statistical detectors run over a selected range:
- Z-score outliers per column
- IQR outliers per column
- Trend breaks against a trailing moving average per column
- Row patterns: rows whose sum is an outlier among all row sums

Degenerate inputs (zero spread, zero IQR, zero moving average, short
columns) are skipped rather than reported.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .cells import NumericGrid
from .models import Anomaly, AnomalyKind
from .statistics import SummaryStatistics, compute_statistics

logger = logging.getLogger(__name__)

# (row, value) pairs for the numeric cells of one column
ColumnPoints = Sequence[Tuple[int, float]]


class ZScoreDetector:
    """Flag values more than 3 standard deviations from the column mean."""

    Z_THRESHOLD = 3.0
    BASE_CONFIDENCE = 0.7
    MAX_CONFIDENCE = 0.99

    def detect(
        self, points: ColumnPoints, col: int, stats: Optional[SummaryStatistics] = None
    ) -> List[Anomaly]:
        if not points:
            return []
        rows, values = zip(*points)
        stats = stats or compute_statistics(values)

        if stats.std_dev == 0:
            return []

        z_scores = np.abs((np.asarray(values) - stats.mean) / stats.std_dev)

        anomalies = []
        for row, value, z in zip(rows, values, z_scores):
            if z > self.Z_THRESHOLD:
                z = float(z)
                anomalies.append(
                    Anomaly(
                        kind=AnomalyKind.OUTLIER,
                        row=row,
                        col=col,
                        value=value,
                        z_score=z,
                        confidence=min(
                            self.MAX_CONFIDENCE,
                            self.BASE_CONFIDENCE + (z - self.Z_THRESHOLD) * 0.1,
                        ),
                        reason=f"Value is {z:.1f} standard deviations from mean",
                    )
                )

        return anomalies


class IQRDetector:
    """Flag values outside [Q1 - 1.5*IQR, Q3 + 1.5*IQR]."""

    IQR_MULTIPLIER = 1.5
    BASE_CONFIDENCE = 0.75
    MAX_CONFIDENCE = 0.95

    def detect(
        self, points: ColumnPoints, col: int, stats: Optional[SummaryStatistics] = None
    ) -> List[Anomaly]:
        if not points:
            return []
        stats = stats or compute_statistics([value for _, value in points])
        iqr = stats.iqr

        if iqr == 0:
            return []

        lower_bound = stats.q1 - self.IQR_MULTIPLIER * iqr
        upper_bound = stats.q3 + self.IQR_MULTIPLIER * iqr

        anomalies = []
        for row, value in points:
            if lower_bound <= value <= upper_bound:
                continue

            deviation = lower_bound - value if value < lower_bound else value - upper_bound
            anomalies.append(
                Anomaly(
                    kind=AnomalyKind.IQR_OUTLIER,
                    row=row,
                    col=col,
                    value=value,
                    confidence=min(
                        self.MAX_CONFIDENCE,
                        self.BASE_CONFIDENCE + deviation / iqr * 0.1,
                    ),
                    reason=f"Value outside IQR bounds [{lower_bound:.2f}, {upper_bound:.2f}]",
                )
            )

        return anomalies


class TrendBreakDetector:
    """Flag values deviating more than 50% from their trailing moving average."""

    MIN_POINTS = 5
    MAX_WINDOW = 5
    DEVIATION_THRESHOLD = 0.5
    BASE_CONFIDENCE = 0.6
    MAX_CONFIDENCE = 0.9

    @classmethod
    def window_size(cls, n: int) -> int:
        return max(1, min(cls.MAX_WINDOW, n // 3))

    def detect(self, points: ColumnPoints, col: int) -> List[Anomaly]:
        if len(points) < self.MIN_POINTS:
            return []

        rows, values = zip(*points)
        data = np.asarray(values, dtype=float)
        window = self.window_size(len(data))

        # moving_averages[i] is the mean of data[i : i + window], which is
        # the trailing window ending at position i + window - 1
        moving_averages = np.lib.stride_tricks.sliding_window_view(data, window).mean(axis=1)

        anomalies = []
        for offset, expected in enumerate(moving_averages):
            if expected == 0:
                continue

            position = offset + window - 1
            actual = values[position]
            relative_deviation = abs(actual - expected) / abs(expected)

            if relative_deviation > self.DEVIATION_THRESHOLD:
                expected = float(expected)
                relative_deviation = float(relative_deviation)
                anomalies.append(
                    Anomaly(
                        kind=AnomalyKind.TREND_BREAK,
                        row=rows[position],
                        col=col,
                        value=actual,
                        expected_value=expected,
                        confidence=min(
                            self.MAX_CONFIDENCE,
                            self.BASE_CONFIDENCE + relative_deviation * 0.2,
                        ),
                        reason=f"Value deviates {relative_deviation * 100:.0f}% from trend",
                    )
                )

        return anomalies


class ColumnAnomalyDetector:
    """Run the per-column detectors over one column and union their findings."""

    MIN_VALUES = 4

    def __init__(self):
        self.zscore = ZScoreDetector()
        self.iqr = IQRDetector()
        self.trend = TrendBreakDetector()

    def detect(self, points: ColumnPoints, col: int) -> List[Anomaly]:
        """
        Detect anomalies in a single column.

        Args:
            points: (row, value) pairs of the column's numeric cells
            col: Column index within the range

        Returns:
            Union of z-score, IQR and trend-break anomalies, unmerged
        """
        if len(points) < self.MIN_VALUES:
            return []

        stats = compute_statistics([value for _, value in points])

        anomalies = []
        anomalies.extend(self.zscore.detect(points, col, stats))
        anomalies.extend(self.iqr.detect(points, col, stats))
        anomalies.extend(self.trend.detect(points, col))

        logger.debug(
            f"Column {col}: {len(points)} values, {len(anomalies)} anomalies"
        )
        return anomalies


class RowPatternDetector:
    """Flag rows whose sum is an outlier relative to the other rows' sums."""

    MIN_COLUMNS = 2
    MIN_CELLS_PER_ROW = 3
    MIN_ROWS = 4
    Z_THRESHOLD = 2.5
    BASE_CONFIDENCE = 0.65
    MAX_CONFIDENCE = 0.85

    def detect(self, grid: NumericGrid) -> List[Anomaly]:
        if grid.n_cols < self.MIN_COLUMNS:
            return []

        row_sums = []
        for row in range(grid.n_rows):
            values = grid.row_values(row)
            if len(values) >= self.MIN_CELLS_PER_ROW:
                row_sums.append((row, float(np.sum(values))))

        if len(row_sums) < self.MIN_ROWS:
            return []

        stats = compute_statistics([total for _, total in row_sums])
        if stats.std_dev == 0:
            return []

        anomalies = []
        for row, total in row_sums:
            z = abs(total - stats.mean) / stats.std_dev
            if z > self.Z_THRESHOLD:
                anomalies.append(
                    Anomaly(
                        kind=AnomalyKind.ROW_PATTERN,
                        row=row,
                        col=-1,
                        value=total,
                        expected_value=stats.mean,
                        z_score=z,
                        confidence=min(
                            self.MAX_CONFIDENCE, self.BASE_CONFIDENCE + z * 0.05
                        ),
                        reason=f"Row sum is anomalous (z-score: {z:.2f})",
                    )
                )

        logger.debug(f"Row pattern: {len(row_sums)} rows, {len(anomalies)} anomalies")
        return anomalies
