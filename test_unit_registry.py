"""
Tests for the unit registry: compound unit parsing, conversion factors and
descriptor algebra.
"""

import sys
import os
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from calc_errors import UnknownUnit, UnsupportedUnit, MalformedUnitExpression, IncompatibleUnits
from constants import UNIT_CACHE_LIMIT
from unit_registry import UnitRegistry, get_default_registry, DIMENSIONLESS


def letters_only(i):
    """Distinct made-up unit name per integer; digits would end a unit name"""
    return "zq" + "".join("abcdefghij"[int(d)] for d in str(i))


def test_parse_simple_units():
    """Single names resolve through the catalogue, prefixes included"""
    print("Testing simple units...")
    registry = get_default_registry()

    test_cases = [
        ("m", Decimal(1), (1, 0, 0, 0, 0, 0, 0, 0)),
        ("km", Decimal(1000), (1, 0, 0, 0, 0, 0, 0, 0)),
        ("kg", Decimal(1), (0, 1, 0, 0, 0, 0, 0, 0)),
        ("g", Decimal("0.001"), (0, 1, 0, 0, 0, 0, 0, 0)),
        ("h", Decimal(3600), (0, 0, 1, 0, 0, 0, 0, 0)),
        ("meters", Decimal(1), (1, 0, 0, 0, 0, 0, 0, 0)),
    ]

    for text, factor, dimensions in test_cases:
        unit = registry.parse(text)
        print(f"  {text} -> factor {unit.factor}, dims {unit.dimensions}")
        assert unit.factor == factor, f"Failed: {text}"
        assert unit.dimensions == dimensions, f"Failed: {text}"

    print("✓ Simple units passed")


def test_parse_compound_units():
    print("\nTesting compound units...")
    registry = get_default_registry()

    test_cases = [
        ("m/s^2", (1, 0, -2, 0, 0, 0, 0, 0), "m/s^2"),
        ("kg*m^2", (2, 1, 0, 0, 0, 0, 0, 0), "kg*m^2"),
        ("km/h", (1, 0, -1, 0, 0, 0, 0, 0), "km/h"),
        ("kg*m/s^2", (1, 1, -2, 0, 0, 0, 0, 0), "kg*m/s^2"),
        ("m^2", (2, 0, 0, 0, 0, 0, 0, 0), "m^2"),
        ("s^-1", (0, 0, -1, 0, 0, 0, 0, 0), "s^-1"),
    ]

    for text, dimensions, symbol in test_cases:
        unit = registry.parse(text)
        print(f"  {text} -> {unit.symbol}")
        assert unit.dimensions == dimensions, f"Failed: {text}"
        assert unit.symbol == symbol, f"Failed: {text}"

    assert registry.parse("km/h").factor * 3600 == 1000

    print("✓ Compound units passed")


def test_parse_failures():
    print("\nTesting unit parse failures...")
    registry = UnitRegistry()

    for text in ["xyzzy", "degC", "km/xyzzy"]:
        with pytest.raises(UnknownUnit):
            registry.parse(text)
        assert not registry.is_unit(text)

    for text in ["", "m//s", "m^0", "m*", "/s"]:
        with pytest.raises(MalformedUnitExpression):
            registry.parse(text)

    # failures are cached and raised again
    with pytest.raises(UnknownUnit):
        registry.parse("xyzzy")

    print("✓ Unit parse failures passed")


def test_offset_units_rejected():
    print("\nTesting offset units...")
    registry = UnitRegistry()

    for text in ["degC", "degF", "degC/s", "m*degF"]:
        with pytest.raises(UnsupportedUnit):
            registry.parse(text)

    # temperature differences and absolute scales still work
    assert registry.parse("K").dimensions == registry.parse("delta_degC").dimensions
    assert registry.conversion_factor(registry.parse("delta_degC"), registry.parse("K")) == 1

    print("✓ Offset units passed")


def test_everyday_words_are_not_units():
    registry = UnitRegistry()
    for text in ["a", "are", "as", "at"]:
        with pytest.raises(UnknownUnit):
            registry.parse(text)
    assert registry.is_unit("A")
    assert registry.is_unit("ha")


def test_cache_stays_bounded():
    print("\nTesting unit cache limit...")
    registry = UnitRegistry()

    for i in range(UNIT_CACHE_LIMIT * 2):
        assert not registry.is_unit(letters_only(i))
        assert len(registry._cache) <= UNIT_CACHE_LIMIT

    # recent entries survive a trim, and lookups still work afterwards
    assert letters_only(UNIT_CACHE_LIMIT * 2 - 1) in registry._cache
    assert registry.parse("km").factor == 1000

    print("✓ Unit cache limit passed")


def test_conversion_factor():
    print("\nTesting conversion factors...")
    registry = get_default_registry()

    assert registry.conversion_factor(registry.parse("km"), registry.parse("m")) == 1000
    assert registry.conversion_factor(registry.parse("m"), registry.parse("km")) == Decimal("0.001")
    assert registry.conversion_factor(registry.parse("h"), registry.parse("s")) == 3600
    assert registry.conversion_factor(registry.parse("m/s"), registry.parse("m/s")) == 1
    assert registry.conversion_factor(None, None) == 1

    with pytest.raises(IncompatibleUnits):
        registry.conversion_factor(registry.parse("m"), registry.parse("s"))
    with pytest.raises(IncompatibleUnits):
        registry.conversion_factor(registry.parse("m"), None)

    print("✓ Conversion factors passed")


def test_descriptor_algebra():
    print("\nTesting descriptor algebra...")
    registry = get_default_registry()
    m = registry.parse("m")
    s = registry.parse("s")

    area = m.multiply(m)
    assert area.symbol == "m^2"
    assert area.dimensions == registry.parse("m^2").dimensions

    speed = m.divide(s)
    assert speed.symbol == "m/s"
    assert speed.is_compatible(registry.parse("km/h"))
    assert not speed.is_compatible(m)

    ratio = m.divide(m)
    assert ratio.is_dimensionless
    assert ratio.dimensions == DIMENSIONLESS

    assert m.power(3).symbol == "m^3"
    assert registry.parse("km").power(2).factor == 1000000

    print("✓ Descriptor algebra passed")


def test_derived_units():
    print("\nTesting derived unit lookup...")
    registry = get_default_registry()

    test_cases = [
        ("kg*m/s^2", "N"),
        ("kg*m^2/s^2", "J"),
        ("kg*m^2/s^3", "W"),
    ]

    for text, expected in test_cases:
        derived = registry.derived_unit_for(registry.parse(text))
        print(f"  {text} -> {derived.symbol}")
        assert derived.symbol == expected, f"Failed: {text}"

    assert registry.derived_unit_for(registry.parse("m/s")) is None
    assert registry.derived_unit_for(None) is None

    print("✓ Derived units passed")
