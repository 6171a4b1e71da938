"""Tests for the statistical detectors."""

import pytest

from cellguard.anomaly.cells import NumericGrid
from cellguard.anomaly.detectors import (
    ColumnAnomalyDetector,
    IQRDetector,
    RowPatternDetector,
    TrendBreakDetector,
    ZScoreDetector,
)
from cellguard.anomaly.models import AnomalyKind


def points(values):
    return list(enumerate(float(v) for v in values))


class TestZScoreDetector:
    """Test z-score outlier detection."""

    def test_flags_clear_outlier(self, outlier_column):
        anomalies = ZScoreDetector().detect(points(outlier_column), col=2)

        assert len(anomalies) == 1
        anomaly = anomalies[0]
        assert anomaly.kind == AnomalyKind.OUTLIER
        assert anomaly.row == 15
        assert anomaly.col == 2
        assert anomaly.value == 100.0
        assert anomaly.z_score == pytest.approx(15 ** 0.5)
        assert anomaly.confidence == pytest.approx(0.7 + (15 ** 0.5 - 3) * 0.1)
        assert anomaly.reason == "Value is 3.9 standard deviations from mean"

    def test_single_outlier_among_ten_values(self):
        anomalies = ZScoreDetector().detect(points([1] * 9 + [100]), col=0)

        assert len(anomalies) == 1
        assert anomalies[0].kind == AnomalyKind.OUTLIER
        assert anomalies[0].row == 9
        assert anomalies[0].z_score == pytest.approx(3.0)

    def test_z_of_two_is_not_flagged(self):
        assert ZScoreDetector().detect(points([10, 10, 10, 10, 100]), col=0) == []

    def test_confidence_is_capped(self):
        anomalies = ZScoreDetector().detect(points([1.0] * 399 + [1000.0]), col=0)

        assert len(anomalies) == 1
        assert anomalies[0].confidence == 0.99

    def test_constant_column_is_skipped(self):
        assert ZScoreDetector().detect(points([5] * 20), col=0) == []

    def test_normal_data_has_no_outliers(self):
        assert ZScoreDetector().detect(points([100, 102, 98, 101, 99, 103, 97]), col=0) == []

    def test_empty(self):
        assert ZScoreDetector().detect([], col=0) == []


class TestIQRDetector:
    """Test interquartile range outlier detection."""

    def test_flags_value_above_upper_bound(self):
        anomalies = IQRDetector().detect(points([1, 2, 3, 4, 5, 6, 7, 8, 9, 100]), col=0)

        assert len(anomalies) == 1
        anomaly = anomalies[0]
        assert anomaly.kind == AnomalyKind.IQR_OUTLIER
        assert anomaly.row == 9
        assert anomaly.value == 100
        assert anomaly.confidence == 0.95
        assert anomaly.reason == "Value outside IQR bounds [-4.50, 15.50]"
        assert anomaly.z_score is None

    def test_confidence_scales_with_distance(self):
        # q1=98, q3=101, iqr=3, lower bound 93.5; deviation 2.5
        anomalies = IQRDetector().detect(points([91, 100, 102, 98, 101, 99, 103, 97, 100, 101]), col=0)

        assert len(anomalies) == 1
        assert anomalies[0].confidence == pytest.approx(0.75 + 2.5 / 3 * 0.1)

    def test_zero_iqr_is_skipped(self):
        assert IQRDetector().detect(points([5, 5, 5, 5, 5, 5, 5, 5, 100]), col=0) == []


class TestTrendBreakDetector:
    """Test trailing moving-average trend breaks."""

    @pytest.mark.parametrize(
        "n,expected",
        [(5, 1), (6, 2), (9, 3), (15, 5), (30, 5)],
    )
    def test_window_size(self, n, expected):
        assert TrendBreakDetector.window_size(n) == expected

    def test_flags_jump(self):
        anomalies = TrendBreakDetector().detect(points([10, 10, 10, 10, 10, 50]), col=1)

        assert len(anomalies) == 1
        anomaly = anomalies[0]
        assert anomaly.kind == AnomalyKind.TREND_BREAK
        assert anomaly.row == 5
        assert anomaly.col == 1
        assert anomaly.value == 50
        # window of 2 ending at the jump: (10 + 50) / 2
        assert anomaly.expected_value == pytest.approx(30.0)
        assert anomaly.confidence == pytest.approx(0.6 + (2 / 3) * 0.2)
        assert anomaly.reason == "Value deviates 67% from trend"

    def test_requires_five_values(self):
        assert TrendBreakDetector().detect(points([10, 10, 10, 50]), col=0) == []

    def test_zero_expected_is_skipped(self):
        assert TrendBreakDetector().detect(points([-1, 1, -1, 1, -1, 1]), col=0) == []

    def test_reports_grid_rows(self):
        column = [(0, 10.0), (2, 10.0), (3, 10.0), (5, 10.0), (7, 10.0), (9, 50.0)]
        anomalies = TrendBreakDetector().detect(column, col=0)

        assert [a.row for a in anomalies] == [9]


class TestColumnAnomalyDetector:
    def test_short_column_is_skipped(self):
        assert ColumnAnomalyDetector().detect(points([1, 1, 1000]), col=0) == []

    def test_unions_detector_findings(self, outlier_column):
        anomalies = ColumnAnomalyDetector().detect(points(outlier_column), col=0)
        kinds = {a.kind for a in anomalies}

        # IQR is zero for this column, so only z-score and trend fire
        assert kinds == {AnomalyKind.OUTLIER, AnomalyKind.TREND_BREAK}
        assert all(a.row == 15 for a in anomalies)


class TestRowPatternDetector:
    """Test row-sum pattern detection."""

    def test_flags_anomalous_row(self, row_pattern_grid):
        anomalies = RowPatternDetector().detect(NumericGrid.from_values(row_pattern_grid))

        assert len(anomalies) == 1
        anomaly = anomalies[0]
        z = 11 ** 0.5
        assert anomaly.kind == AnomalyKind.ROW_PATTERN
        assert anomaly.row == 11
        assert anomaly.col == -1
        assert anomaly.is_row_anomaly
        assert anomaly.value == 300
        assert anomaly.expected_value == pytest.approx(30.5)
        assert anomaly.z_score == pytest.approx(z)
        assert anomaly.confidence == pytest.approx(0.65 + z * 0.05)
        assert anomaly.reason == f"Row sum is anomalous (z-score: {z:.2f})"

    def test_confidence_is_capped(self):
        grid = NumericGrid.from_values([[1, 1, 1]] * 99 + [[1000, 1000, 1000]])
        anomalies = RowPatternDetector().detect(grid)

        assert len(anomalies) == 1
        assert anomalies[0].confidence == 0.85

    def test_single_column_is_skipped(self):
        grid = NumericGrid.from_values([[1]] * 11 + [[100]])
        assert RowPatternDetector().detect(grid) == []

    def test_two_column_rows_never_qualify(self):
        grid = NumericGrid.from_values([[1, 2]] * 11 + [[100, 100]])
        assert RowPatternDetector().detect(grid) == []

    def test_sparse_rows_are_excluded(self, row_pattern_grid):
        grid = NumericGrid.from_values(row_pattern_grid + [[None, "n/a", 5000]])
        anomalies = RowPatternDetector().detect(grid)

        assert [a.row for a in anomalies] == [11]

    def test_needs_four_rows(self):
        grid = NumericGrid.from_values([[1, 2, 3], [1, 2, 3], [100, 100, 100]])
        assert RowPatternDetector().detect(grid) == []

    def test_identical_rows_are_skipped(self):
        grid = NumericGrid.from_values([[1, 2, 3]] * 10)
        assert RowPatternDetector().detect(grid) == []
