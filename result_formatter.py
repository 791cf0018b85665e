"""
CalcPad Result Formatter
Renders line results as text at a numeral base and decimal precision, and
measures the integer/fraction/unit parts of rendered text so the renderer
can line columns up. Everything here is a pure function of its arguments.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import List, Optional

from constants import (
    DECIMAL_PRECISION, DEFAULT_DECIMAL_PLACES,
    RESULT_FORMAT_DEC, RESULT_FORMAT_BIN, RESULT_FORMAT_HEX
)
from calc_result import Matrix
from unit_registry import get_default_registry


@dataclass
class ResultLengths:
    int_len: int = 0
    frac_len: int = 0
    unit_len: int = 0

    def set_max(self, other):
        self.int_len = max(self.int_len, other.int_len)
        self.frac_len = max(self.frac_len, other.frac_len)
        self.unit_len = max(self.unit_len, other.unit_len)


@dataclass
class FormattedResult:
    """
    text: result-channel text ("" for matrices)
    lengths: segment lengths of text, or column maxima over a matrix's cells
    cells: row-major grid of cell strings for matrices, otherwise None
    """
    text: str
    lengths: ResultLengths
    cells: Optional[List[List[str]]] = None


def format_result(result, base=RESULT_FORMAT_DEC, unit_conversion_occurred=False,
                  decimal_places=DEFAULT_DECIMAL_PLACES, registry=None):
    """
    Format a line result.

    Args:
        result: Number or Matrix
        base (str): 'dec', 'bin' or 'hex'
        unit_conversion_occurred (bool): the line converted explicitly with 'to',
            so its unit is shown exactly as requested
        decimal_places (int): Fraction digits kept in decimal output

    Returns:
        FormattedResult
    """
    if isinstance(result, Matrix):
        cells = format_matrix_cells(result, base, decimal_places, registry)
        lengths = ResultLengths()
        for row in cells:
            for cell in row:
                lengths.set_max(get_int_frac_part_len(cell))
        return FormattedResult("", lengths, cells)

    text = format_number(result, base, unit_conversion_occurred, decimal_places, registry)
    return FormattedResult(text, get_int_frac_part_len(text))


def format_number(number, base=RESULT_FORMAT_DEC, unit_conversion_occurred=False,
                  decimal_places=DEFAULT_DECIMAL_PLACES, registry=None):
    value, unit = number.value, number.unit

    if unit is not None and not unit_conversion_occurred and len(unit.symbols) > 1:
        # "kg*m/s^2" reads better as "N"
        registry = registry or get_default_registry()
        derived = registry.derived_unit_for(unit)
        if derived is not None:
            with localcontext() as ctx:
                ctx.prec = DECIMAL_PRECISION
                value = value * registry.conversion_factor(unit, derived)
            unit = derived

    if base == RESULT_FORMAT_BIN:
        text = _format_integer(value, 'b')
    elif base == RESULT_FORMAT_HEX:
        text = _format_integer(value, 'X')
    else:
        text = format_decimal(value, decimal_places)

    if unit is not None and unit.symbol:
        text += ' ' + unit.symbol
    return text


def format_decimal(value, decimal_places=DEFAULT_DECIMAL_PLACES):
    """Round half away from zero, drop trailing zeros, never use exponent notation"""
    with localcontext() as ctx:
        ctx.prec = max(DECIMAL_PRECISION, value.adjusted() + decimal_places + 2)
        rounded = value.quantize(Decimal(1).scaleb(-decimal_places), rounding=ROUND_HALF_UP)
        if rounded.is_zero():
            return '0'
        text = format(rounded, 'f')
    if '.' in text:
        text = text.rstrip('0').rstrip('.')
    return text


def _format_integer(value, spec):
    with localcontext() as ctx:
        ctx.prec = max(DECIMAL_PRECISION, value.adjusted() + 2)
        integer = int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    sign = '-' if integer < 0 else ''
    return sign + format(abs(integer), spec)


def format_matrix_cells(matrix, base=RESULT_FORMAT_DEC, decimal_places=DEFAULT_DECIMAL_PLACES,
                        registry=None):
    """Row-major grid of cell strings, each cell in the line's base"""
    return [
        [format_number(cell, base, False, decimal_places, registry) for cell in row]
        for row in matrix.rows()
    ]


# =============================================================================
# ALIGNMENT HELPERS
# =============================================================================

def get_int_frac_part_len(text):
    """
    Measure a rendered result: integer digits up to the decimal point,
    the point and fraction up to the first space, the space and unit after it.
    """
    lengths = ResultLengths()
    was_point = False
    was_space = False
    for ch in text:
        if ch == '.':
            was_point = True
        elif ch == ' ':
            was_space = True
        if was_space:
            lengths.unit_len += 1
        elif was_point:
            lengths.frac_len += 1
        else:
            lengths.int_len += 1
    return lengths


def calc_matrix_max_lengths(matrix, decimal_places=DEFAULT_DECIMAL_PLACES):
    max_lengths = ResultLengths()
    for row in format_matrix_cells(matrix, decimal_places=decimal_places):
        for cell in row:
            max_lengths.set_max(get_int_frac_part_len(cell))
    return max_lengths


def calc_consecutive_matrices_max_lengths(results, decimal_places=DEFAULT_DECIMAL_PLACES):
    """Common maxima over the run of matrix results at the start of results"""
    max_lengths = None
    for result in results:
        if not isinstance(result, Matrix):
            break
        lengths = calc_matrix_max_lengths(result, decimal_places)
        if max_lengths is None:
            max_lengths = lengths
        else:
            max_lengths.set_max(lengths)
    return max_lengths


def align_results(texts):
    """
    Pad rendered results so that decimal points and units line up.
    Empty entries stay empty.
    """
    max_lengths = ResultLengths()
    for text in texts:
        if text:
            max_lengths.set_max(get_int_frac_part_len(text))

    aligned = []
    for text in texts:
        if not text:
            aligned.append('')
            continue
        lengths = get_int_frac_part_len(text)
        int_part = text[:lengths.int_len]
        frac_part = text[lengths.int_len:lengths.int_len + lengths.frac_len]
        unit_part = text[lengths.int_len + lengths.frac_len:]
        aligned.append(
            int_part.rjust(max_lengths.int_len)
            + frac_part.ljust(max_lengths.frac_len)
            + unit_part.ljust(max_lengths.unit_len)
        )
    return aligned
