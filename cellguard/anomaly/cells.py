"""
Cell Values and Grids

Raw spreadsheet values are classified into a small tagged union before
any statistics run, so the "skip non-numeric" rule is explicit.
"""

import math
from dataclasses import dataclass
from decimal import Decimal
from numbers import Real
from typing import Any, Iterable, List, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..core.errors import DegenerateInputError


@dataclass(frozen=True)
class NumericCell:
    value: float


@dataclass(frozen=True)
class BlankCell:
    pass


@dataclass(frozen=True)
class TextCell:
    text: str


Cell = Union[NumericCell, BlankCell, TextCell]

BLANK = BlankCell()


def parse_cell(raw: Any) -> Cell:
    """
    Classify a raw host value.

    Finite real numbers (numpy scalars and Decimal included, bools
    excluded) are numeric. None, NaN, NaT and whitespace-only strings are
    blank. Everything else, infinities included, is text.
    """
    if isinstance(raw, (NumericCell, BlankCell, TextCell)):
        return raw
    if raw is None:
        return BLANK
    if isinstance(raw, str):
        return BLANK if not raw.strip() else TextCell(raw)
    if isinstance(raw, (bool, np.bool_)):
        return TextCell(str(raw))
    if isinstance(raw, (Real, Decimal, np.number)):
        try:
            value = float(raw)
        except OverflowError:
            return TextCell(str(raw))
        if math.isfinite(value):
            return NumericCell(value)
        if math.isnan(value) and isinstance(raw, (float, np.floating)):
            # pandas uses NaN for empty cells
            return BLANK
        return TextCell(str(raw))
    if raw is pd.NaT or raw is pd.NA:
        return BLANK
    return TextCell(str(raw))


class NumericGrid:
    """
    Rectangular block of cells addressed by 0-based (row, col) relative
    to the selected range.
    """

    def __init__(self, rows: List[List[Cell]]):
        self._rows = rows
        self.n_rows = len(rows)
        self.n_cols = len(rows[0]) if rows else 0

    @classmethod
    def from_values(cls, values: Iterable[Sequence[Any]]) -> "NumericGrid":
        """
        Build a grid from nested sequences of raw values.

        Raises:
            DegenerateInputError: If the input is not a rectangular grid
        """
        if isinstance(values, (str, bytes)):
            raise DegenerateInputError(detail="Grid must be a sequence of rows")

        raw_rows = []
        try:
            for row in values:
                if isinstance(row, (str, bytes)):
                    raise DegenerateInputError(detail="Grid rows must be sequences, not strings")
                raw_rows.append(list(row))
        except TypeError as e:
            raise DegenerateInputError(
                detail=f"Grid rows must be sequences: {e}", original_error=e
            )

        if raw_rows:
            width = len(raw_rows[0])
            for index, row in enumerate(raw_rows):
                if len(row) != width:
                    raise DegenerateInputError(
                        detail=f"Row {index} has {len(row)} cells, expected {width}",
                        context={"row": index, "width": len(row), "expected": width},
                    )

        return cls([[parse_cell(value) for value in row] for row in raw_rows])

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> "NumericGrid":
        """Build a grid from a DataFrame, ignoring its index and headers."""
        return cls.from_values(df.astype(object).values.tolist())

    @property
    def shape(self) -> Tuple[int, int]:
        return self.n_rows, self.n_cols

    def cell(self, row: int, col: int) -> Cell:
        return self._rows[row][col]

    def column(self, col: int) -> List[Tuple[int, float]]:
        """Numeric values of a column as (row, value) pairs, in row order."""
        return [
            (r, row[col].value)
            for r, row in enumerate(self._rows)
            if isinstance(row[col], NumericCell)
        ]

    def row_values(self, row: int) -> List[float]:
        """Numeric values of a row, in column order."""
        return [cell.value for cell in self._rows[row] if isinstance(cell, NumericCell)]

    def __repr__(self) -> str:
        return f"NumericGrid(rows={self.n_rows}, cols={self.n_cols})"
