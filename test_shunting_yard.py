"""
Tests for infix -> RPN reordering.
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from token_parser import TokenType, OperatorType, tokenize
from shunting_yard import reduce


def label(token):
    """Compact text form of an RPN token"""
    if token.type == TokenType.NUMBER_LITERAL:
        return str(token.value)
    if token.type == TokenType.VARIABLE:
        return token.value
    if token.type == TokenType.LINE_REFERENCE:
        return f"&[{token.value}]"
    if token.op == OperatorType.UNIT:
        return f"unit:{token.value.symbol}"
    if token.op == OperatorType.MATRIX:
        rows, cols = token.value
        return f"matrix{rows}x{cols}"
    return token.op.value


def rpn_of(line, known=()):
    return [label(t) for t in reduce(tokenize(line, known))]


def test_precedence():
    print("Testing operator precedence...")

    test_cases = [
        ("1 + 2 * 3", ['1', '2', '3', '*', '+']),
        ("(1 + 2) * 3", ['1', '2', '+', '3', '*']),
        ("10 - 2 - 3", ['10', '2', '-', '3', '-']),
        ("8 / 4 / 2", ['8', '4', '/', '2', '/']),
        ("2^3^2", ['2', '3', '2', '^', '^']),
        ("-2^2", ['2', 'neg', '2', '^']),
        ("2 * -3", ['2', '3', 'neg', '*']),
        ("2^-1", ['2', '1', 'neg', '^']),
        ("+5", ['5']),
    ]

    for line, expected in test_cases:
        rpn = rpn_of(line)
        print(f"  {line} -> {' '.join(rpn)}")
        assert rpn == expected, f"Failed: {line}"

    print("✓ Operator precedence passed")


def test_implicit_multiplication():
    print("\nTesting implicit multiplication...")
    known = [("x", False), ("&[2]", True)]

    test_cases = [
        ("3(4+5)", ['3', '4', '5', '+', '*']),
        ("(1+2)(3+4)", ['1', '2', '+', '3', '4', '+', '*']),
        ("2 x", ['2', 'x', '*']),
        ("2x + 1", ['2', 'x', '*', '1', '+']),
        ("3 &[2]", ['3', '&[2]', '*']),
        # unrecognised text in between blocks it
        ("2 foo 3", ['2', '3']),
    ]

    for line, expected in test_cases:
        rpn = rpn_of(line, known)
        print(f"  {line} -> {' '.join(rpn)}")
        assert rpn == expected, f"Failed: {line}"

    print("✓ Implicit multiplication passed")


def test_units_and_conversion():
    print("\nTesting unit attachment and conversion...")

    test_cases = [
        ("2 m * 3", ['2', 'unit:m', '3', '*']),
        ("3m * 2m", ['3', 'unit:m', '2', 'unit:m', '*']),
        ("-5 km", ['5', 'unit:km', 'neg']),
        ("1 km to m", ['1', 'unit:km', 'to']),
        ("1 km + 2 km to m", ['1', 'unit:km', '2', 'unit:km', '+', 'to']),
        # text between a value and a unit keeps them apart
        ("10 boxes m", ['10']),
        ("10 boxes m * 2", ['10', '2', '*']),
    ]

    for line, expected in test_cases:
        rpn = rpn_of(line)
        print(f"  {line} -> {' '.join(rpn)}")
        assert rpn == expected, f"Failed: {line}"

    assert rpn_of("x apples m", [("x", False)]) == ['x']

    print("✓ Units and conversion passed")


def test_matrices():
    print("\nTesting matrix literals...")

    test_cases = [
        ("[1,2;3,4]", ['1', '2', '3', '4', 'matrix2x2']),
        ("[1+1, 2]", ['1', '1', '+', '2', 'matrix1x2']),
        ("[1; 2; 3]", ['1', '2', '3', 'matrix3x1']),
        ("[1,2] * 3", ['1', '2', 'matrix1x2', '3', '*']),
        # brackets without separators only group
        ("[1 + 2] * 3", ['1', '2', '+', '3', '*']),
        ("[1]", ['1']),
    ]

    for line, expected in test_cases:
        rpn = rpn_of(line)
        print(f"  {line} -> {' '.join(rpn)}")
        assert rpn == expected, f"Failed: {line}"

    print("✓ Matrix literals passed")


def test_malformed_input_truncates():
    print("\nTesting malformed brackets...")

    test_cases = [
        ("1 + 2)", ['1', '2', '+']),
        ("1 + 2) * 3", ['1', '2', '+']),
        ("1 + (2", ['1', '+']),
        ("[1,2;3]", []),
        ("2 * [1,,2]", ['2', '*']),
        ("[1, 2)", []),
        ("()", []),
    ]

    for line, expected in test_cases:
        rpn = rpn_of(line)
        print(f"  {line} -> {' '.join(rpn)}")
        assert rpn == expected, f"Failed: {line}"

    print("✓ Malformed brackets passed")


def test_assignment_marker():
    print("\nTesting assignment...")

    assert rpn_of("x = 1 + 2") == ['1', '2', '+', '=']
    assert rpn_of("my var = 3 m") == ['3', 'unit:m', '=']
    # the target is dropped even when it is already a known name
    assert rpn_of("x = x * 2", [("x", False)]) == ['x', '2', '*', '=']

    rpn = reduce(tokenize("x = 5"))
    assert rpn[-1].is_op(OperatorType.ASSIGN)

    print("✓ Assignment passed")
