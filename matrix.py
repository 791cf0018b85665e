"""
Matrix operations for the CalcPad evaluator.

Matrices are flat row-major tuples of scalar Numbers. The scalar arithmetic
(units included) is supplied by the caller, so everything here is about
shapes only.
"""

from calc_result import Number, Matrix
from calc_errors import ShapeMismatch


def build(row_count, col_count, values):
    """
    Build a matrix literal from the values popped off the evaluation stack.

    Args:
        row_count (int): Number of rows
        col_count (int): Number of columns
        values (list): row_count * col_count results in row-major order

    Raises:
        ShapeMismatch: a cell is not a scalar (matrices never nest)
    """
    if len(values) != row_count * col_count:
        raise ShapeMismatch(f"Expected {row_count * col_count} cells, got {len(values)}")
    for value in values:
        if not isinstance(value, Number):
            raise ShapeMismatch("Matrix cells must be scalar numbers")
    return Matrix(row_count, col_count, tuple(values))


def same_shape(a, b):
    return a.row_count == b.row_count and a.col_count == b.col_count


def elementwise(a, b, scalar_op):
    """Combine two equally shaped matrices cell by cell"""
    if not same_shape(a, b):
        raise ShapeMismatch(
            f"Cannot combine {a.row_count}x{a.col_count} with {b.row_count}x{b.col_count}")
    return Matrix(a.row_count, a.col_count,
                  tuple(scalar_op(x, y) for x, y in zip(a.cells, b.cells)))


def map_cells(m, fn):
    return Matrix(m.row_count, m.col_count, tuple(fn(cell) for cell in m.cells))


def broadcast_left(scalar, m, scalar_op):
    """scalar op cell, for every cell"""
    return map_cells(m, lambda cell: scalar_op(scalar, cell))


def broadcast_right(m, scalar, scalar_op):
    """cell op scalar, for every cell"""
    return map_cells(m, lambda cell: scalar_op(cell, scalar))


def multiply(a, b, scalar_mul, scalar_add):
    """
    Standard matrix product.

    Raises:
        ShapeMismatch: cols(a) != rows(b)
    """
    if a.col_count != b.row_count:
        raise ShapeMismatch(
            f"Cannot multiply {a.row_count}x{a.col_count} by {b.row_count}x{b.col_count}")

    cells = []
    for r in range(a.row_count):
        for c in range(b.col_count):
            total = None
            for k in range(a.col_count):
                product = scalar_mul(a.cell(r, k), b.cell(k, c))
                total = product if total is None else scalar_add(total, product)
            cells.append(total)
    return Matrix(a.row_count, b.col_count, tuple(cells))


def power(m, exponent, scalar_mul, scalar_add):
    """Raise a square matrix to a positive integer power"""
    if m.row_count != m.col_count:
        raise ShapeMismatch(f"Only square matrices have powers, got {m.row_count}x{m.col_count}")
    if exponent != exponent.to_integral_value() or exponent < 1:
        raise ShapeMismatch(f"Matrix exponent must be a positive integer, got {exponent}")

    # square and multiply
    n = int(exponent)
    result = None
    base = m
    while n:
        if n & 1:
            result = base if result is None else multiply(result, base, scalar_mul, scalar_add)
        n >>= 1
        if n:
            base = multiply(base, base, scalar_mul, scalar_add)
    return result
