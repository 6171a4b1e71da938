"""
Shared test fixtures for CellGuard test suite.
"""

import pytest

from cellguard.anomaly.engine import AnomalyEngine
from cellguard.anomaly.models import Anomaly, AnomalyKind
from cellguard.persistence.store import InMemoryStore


@pytest.fixture
def store():
    """Fresh in-memory key-value store."""
    return InMemoryStore()


@pytest.fixture
def engine(store):
    """Engine backed by the in-memory store."""
    return AnomalyEngine(store=store)


@pytest.fixture
def make_anomaly():
    """Factory for anomalies with sensible defaults."""

    def _make(kind=AnomalyKind.OUTLIER, row=0, col=0, value=100.0, confidence=0.9, **kwargs):
        return Anomaly(
            kind=kind,
            row=row,
            col=col,
            value=value,
            confidence=confidence,
            reason=kwargs.pop("reason", "test anomaly"),
            **kwargs,
        )

    return _make


@pytest.fixture
def outlier_column():
    """Fifteen ones and a 100: the 100 sits sqrt(15) standard deviations out."""
    return [1.0] * 15 + [100.0]


@pytest.fixture
def single_iqr_column():
    """
    Column whose only anomaly is an IQR outlier at row 0.

    q1=98, q3=101 give bounds [93.5, 105.5]; the 10 has z just under 3 and
    no trailing-average window deviates by more than 50%.
    """
    return [10, 100, 102, 98, 101, 99, 103, 97, 100, 101]


@pytest.fixture
def single_iqr_grid(single_iqr_column):
    """The single-IQR column as a one-column grid."""
    return [[value] for value in single_iqr_column]


@pytest.fixture
def row_pattern_grid():
    """Eleven rows summing to 6 and one row summing to 300."""
    return [[1, 2, 3]] * 11 + [[100, 100, 100]]
