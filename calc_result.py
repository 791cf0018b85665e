"""
CalcPad result types.

A line evaluates to a Number (decimal value with an optional unit), a Matrix
of Numbers, or None when it has no value.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple

from unit_registry import UnitDescriptor


@dataclass(frozen=True)
class Number:
    value: Decimal
    unit: Optional[UnitDescriptor] = None

    @staticmethod
    def zero():
        return Number(Decimal(0))

    def __str__(self):
        if self.unit is None:
            return str(self.value)
        return f"{self.value} {self.unit}"


@dataclass(frozen=True)
class Matrix:
    """Row-major matrix; cells is one flat tuple of row_count * col_count Numbers"""
    row_count: int
    col_count: int
    cells: Tuple[Number, ...]

    def __post_init__(self):
        if len(self.cells) != self.row_count * self.col_count:
            raise ValueError(
                f"Matrix {self.row_count}x{self.col_count} needs "
                f"{self.row_count * self.col_count} cells, got {len(self.cells)}")
        for cell in self.cells:
            if not isinstance(cell, Number):
                raise ValueError("Matrix cells must be scalar numbers")

    def cell(self, row, col):
        return self.cells[row * self.col_count + col]

    def rows(self):
        return [self.cells[r * self.col_count:(r + 1) * self.col_count] for r in range(self.row_count)]

    def __str__(self):
        return '[' + '; '.join(', '.join(str(c) for c in row) for row in self.rows()) + ']'


@dataclass(frozen=True)
class EvaluationOutcome:
    result: object  # Number or Matrix
    is_assignment: bool = False
    unit_conversion_occurred: bool = False
    had_operation: bool = False
