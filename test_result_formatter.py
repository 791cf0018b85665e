"""
Tests for result formatting and the column alignment helpers.
"""

import sys
import os
from decimal import Decimal

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from calc_result import Number, Matrix
from result_formatter import (
    ResultLengths, format_result, format_number, format_decimal,
    get_int_frac_part_len, calc_matrix_max_lengths,
    calc_consecutive_matrices_max_lengths, align_results
)
from unit_registry import get_default_registry


def matrix_of(rows):
    cells = tuple(Number(Decimal(v)) for row in rows for v in row)
    return Matrix(len(rows), len(rows[0]), cells)


def test_decimal_rounding():
    print("Testing decimal rounding...")

    test_cases = [
        ("1.23456", 4, "1.2346"),
        ("1.00005", 4, "1.0001"),
        ("-1.00005", 4, "-1.0001"),
        ("2.50000", 4, "2.5"),
        ("100", 4, "100"),
        ("1E+3", 4, "1000"),
        ("-0.00001", 4, "0"),
        ("0", 4, "0"),
        ("0.125", 2, "0.13"),
        ("-0.125", 2, "-0.13"),
        ("2.5", 0, "3"),
        ("123456789012345678901234567890", 4, "123456789012345678901234567890"),
        ("0.000001", 10, "0.000001"),
    ]

    for value, places, expected in test_cases:
        result = format_decimal(Decimal(value), places)
        print(f"  {value} @ {places} -> {result} (expected: {expected})")
        assert result == expected, f"Failed: {value}"

    print("✓ Decimal rounding passed")


def test_binary_and_hex():
    print("\nTesting binary and hex output...")
    m = get_default_registry().parse("m")

    test_cases = [
        (Number(Decimal(2)), "bin", "10"),
        (Number(Decimal(5)), "bin", "101"),
        (Number(Decimal(255)), "hex", "FF"),
        (Number(Decimal(-10)), "hex", "-A"),
        (Number(Decimal("2.5")), "bin", "11"),
        (Number(Decimal("-2.5")), "bin", "-11"),
        (Number(Decimal("0.4")), "hex", "0"),
        (Number(Decimal(5), m), "bin", "101 m"),
    ]

    for number, base, expected in test_cases:
        result = format_number(number, base)
        print(f"  {number} as {base} -> {result}")
        assert result == expected, f"Failed: {number} {base}"

    print("✓ Binary and hex passed")


def test_units_in_output():
    print("\nTesting unit suffixes...")
    registry = get_default_registry()

    assert format_number(Number(Decimal("1.5"), registry.parse("km"))) == "1.5 km"
    assert format_number(Number(Decimal(6), registry.parse("m^2"))) == "6 m^2"

    # compound units collapse to a named derived unit unless converted explicitly
    force = Number(Decimal(6), registry.parse("kg*m/s^2"))
    assert format_number(force) == "6 N"
    assert format_number(force, unit_conversion_occurred=True) == "6 kg*m/s^2"

    # the derived unit's own scale is used
    energy = Number(Decimal(3), registry.parse("km*N"))
    assert format_number(energy) == "3000 J"

    print("✓ Unit suffixes passed")


def test_format_result():
    print("\nTesting format_result...")

    formatted = format_result(Number(Decimal("12.345")))
    assert formatted.text == "12.345"
    assert formatted.lengths == ResultLengths(2, 4, 0)
    assert formatted.cells is None

    formatted = format_result(matrix_of([["1.5", "10"], ["-2", "0.125"]]), decimal_places=2)
    assert formatted.text == ""
    assert formatted.cells == [["1.5", "10"], ["-2", "0.13"]]
    assert formatted.lengths == ResultLengths(2, 3, 0)

    # cells follow the line's base
    formatted = format_result(matrix_of([["255", "16"], ["-10", "2.5"]]), "hex")
    assert formatted.cells == [["FF", "10"], ["-A", "3"]]

    # pure: same input, same output
    assert format_result(Number(Decimal(1) / 3)) == format_result(Number(Decimal(1) / 3))

    print("✓ format_result passed")


def test_int_frac_part_len():
    print("\nTesting length breakdown...")

    test_cases = [
        ("12.345 km", (2, 4, 3)),
        ("100", (3, 0, 0)),
        ("-1.5", (2, 2, 0)),
        ("6 m^2", (1, 0, 4)),
        ("", (0, 0, 0)),
    ]

    for text, (int_len, frac_len, unit_len) in test_cases:
        lengths = get_int_frac_part_len(text)
        print(f"  {text!r} -> {lengths}")
        assert lengths == ResultLengths(int_len, frac_len, unit_len), f"Failed: {text}"

    lengths = ResultLengths(1, 5, 0)
    lengths.set_max(ResultLengths(3, 2, 4))
    assert lengths == ResultLengths(3, 5, 4)

    print("✓ Length breakdown passed")


def test_matrix_lengths():
    print("\nTesting matrix length helpers...")

    first = matrix_of([["1.5", "10"]])
    second = matrix_of([["100.25"]])
    third = matrix_of([["123456.789"]])

    assert calc_matrix_max_lengths(first) == ResultLengths(2, 2, 0)

    # only the leading run of matrices counts
    lengths = calc_consecutive_matrices_max_lengths([first, second, Number(Decimal(1)), third])
    assert lengths == ResultLengths(3, 3, 0)
    assert calc_consecutive_matrices_max_lengths([Number(Decimal(1)), first]) is None
    assert calc_consecutive_matrices_max_lengths([]) is None

    print("✓ Matrix length helpers passed")


def test_align_results():
    print("\nTesting result alignment...")

    aligned = align_results(["1.5", "100", "", "2.25 m"])
    for line in aligned:
        print(f"  |{line}|")

    assert aligned[2] == ""
    assert len({len(line) for line in aligned if line}) == 1
    assert aligned[0].index('.') == aligned[3].index('.')
    assert aligned[1].startswith("100")
    assert aligned[3].endswith(" m")

    print("✓ Result alignment passed")
