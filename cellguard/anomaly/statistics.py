"""
Sample Statistics

Summary statistics shared by every detector. Quartiles use the
nearest-rank method (index ``floor(n * p)`` into the sorted sample), not
interpolation, so results match the spreadsheet-side implementation.
"""

from dataclasses import dataclass
from typing import Dict, Sequence

import numpy as np

from ..core.errors import DegenerateInputError, ErrorCodes


@dataclass(frozen=True)
class SummaryStatistics:
    """Descriptive statistics of a numeric sample."""

    count: int
    mean: float
    median: float
    std_dev: float  # population (divides by n)
    min: float
    max: float
    q1: float
    q3: float

    @property
    def iqr(self) -> float:
        return self.q3 - self.q1

    def to_dict(self) -> Dict[str, float]:
        return {
            "count": self.count,
            "mean": self.mean,
            "median": self.median,
            "stdDev": self.std_dev,
            "min": self.min,
            "max": self.max,
            "q1": self.q1,
            "q3": self.q3,
            "iqr": self.iqr,
        }


def nearest_rank(sorted_values: np.ndarray, p: float) -> float:
    """Value at index ``floor(n * p)`` of an ascending sample."""
    index = int(np.floor(len(sorted_values) * p))
    return float(sorted_values[min(index, len(sorted_values) - 1)])


def compute_statistics(values: Sequence[float]) -> SummaryStatistics:
    """
    Compute summary statistics for a numeric sample.

    All-identical samples are valid and yield ``std_dev == 0``; callers
    must guard divisions.

    Raises:
        DegenerateInputError: If the sample is empty
    """
    data = np.asarray(values, dtype=float)
    if data.size == 0:
        raise DegenerateInputError(ErrorCodes.DATA_EMPTY_SAMPLE)

    ordered = np.sort(data)

    return SummaryStatistics(
        count=int(data.size),
        mean=float(np.mean(data)),
        median=float(np.median(ordered)),
        std_dev=float(np.std(data)),
        min=float(ordered[0]),
        max=float(ordered[-1]),
        q1=nearest_rank(ordered, 0.25),
        q3=nearest_rank(ordered, 0.75),
    )
