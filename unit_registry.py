"""
CalcPad Unit Registry - Dimensional unit descriptors backed by pint
Parses compound unit expressions ("m/s^2", "kg*m^2") into descriptors made of
an exponent vector over the base dimensions and a scale factor to base units.
"""

import re
from dataclasses import dataclass
from decimal import Decimal, localcontext

# Third-party imports
import pint
from pint import UndefinedUnitError, OffsetUnitCalculusError
ureg = pint.UnitRegistry(non_int_type=Decimal)

from constants import (
    BASE_DIMENSIONS, UNIT_ALIASES, UNIT_STOP_WORDS, DERIVED_UNIT_SYMBOLS, DECIMAL_PRECISION,
    UNIT_CACHE_LIMIT
)
from calc_errors import UnknownUnit, UnsupportedUnit, MalformedUnitExpression, IncompatibleUnits


DIMENSIONLESS = (0,) * len(BASE_DIMENSIONS)

# One factor of a compound unit: a name with an optional integer exponent
UNIT_TERM_RE = re.compile(r"([^\W\d]+)(?:\^(-?\d+))?")


@dataclass(frozen=True)
class UnitDescriptor:
    """
    A physical unit relative to canonical base units.

    dimensions: exponent per entry of BASE_DIMENSIONS
    factor: multiply a value in this unit by it to get base units
    symbols: ordered (symbol, exponent) pairs used for display
    """
    dimensions: tuple
    factor: Decimal
    symbols: tuple = ()

    @property
    def is_dimensionless(self):
        return self.dimensions == DIMENSIONLESS

    def is_compatible(self, other):
        return self.dimensions == dimensions_of(other)

    def multiply(self, other):
        return UnitDescriptor(
            tuple(a + b for a, b in zip(self.dimensions, other.dimensions)),
            self.factor * other.factor,
            _merge_symbols(self.symbols, other.symbols, 1),
        )

    def divide(self, other):
        return UnitDescriptor(
            tuple(a - b for a, b in zip(self.dimensions, other.dimensions)),
            self.factor / other.factor,
            _merge_symbols(self.symbols, other.symbols, -1),
        )

    def power(self, exponent):
        """Raise to an integer power"""
        return UnitDescriptor(
            tuple(d * exponent for d in self.dimensions),
            self.factor ** exponent,
            tuple((s, e * exponent) for s, e in self.symbols if e * exponent != 0),
        )

    @property
    def symbol(self):
        return render_symbols(self.symbols)

    def __str__(self):
        return self.symbol


def dimensions_of(unit):
    """Exponent vector of a descriptor; a missing unit is dimensionless"""
    if unit is None:
        return DIMENSIONLESS
    return unit.dimensions


def _merge_symbols(left, right, sign):
    merged = dict(left)
    for symbol, exp in right:
        merged[symbol] = merged.get(symbol, 0) + sign * exp
    return tuple((s, e) for s, e in merged.items() if e != 0)


def render_symbols(symbols):
    """Render (symbol, exponent) pairs as e.g. 'm^2', 'km/h' or 'kg*m/s^2'"""
    numerator = [s if e == 1 else f"{s}^{e}" for s, e in symbols if e > 0]
    denominator = [s if e == -1 else f"{s}^{-e}" for s, e in symbols if e < 0]
    if not numerator:
        return '*'.join(f"{s}^{e}" for s, e in symbols)
    text = '*'.join(numerator)
    if denominator:
        text += '/' + '/'.join(denominator)
    return text


def _as_int_exponent(exp, text):
    if exp != int(exp):
        raise MalformedUnitExpression(f"Fractional exponent in unit: {text}")
    return int(exp)


class UnitRegistry:
    """
    Catalogue of units, SI prefixes and base dimensions.
    Single names are resolved through pint, which handles prefix composition
    ("km" = kilo + meter) and plurals; the compound grammar is ours.
    """

    def __init__(self, pint_registry=None):
        self.ureg = pint_registry if pint_registry is not None else ureg
        self._cache = {}  # text -> UnitDescriptor or the CalcError it raised
        self._derived = None

    def parse(self, text):
        """
        Parse a compound unit expression.

        Args:
            text (str): e.g. "km", "m/s^2", "kg*m^2"

        Returns:
            UnitDescriptor

        Raises:
            UnknownUnit: a name is not in the catalogue
            UnsupportedUnit: a name is an offset unit (degC, degF)
            MalformedUnitExpression: the text does not follow the grammar
        """
        cached = self._cache.get(text)
        if cached is None:
            try:
                cached = self._parse_compound(text)
            except (UnknownUnit, MalformedUnitExpression) as e:
                cached = e
            self._cache[text] = cached
            if len(self._cache) > UNIT_CACHE_LIMIT:
                items = list(self._cache.items())
                self._cache = dict(items[-(UNIT_CACHE_LIMIT // 2):])

        if isinstance(cached, Exception):
            raise cached
        return cached

    def is_unit(self, text):
        try:
            self.parse(text)
            return True
        except (UnknownUnit, MalformedUnitExpression):
            return False

    def _parse_compound(self, text):
        if not text:
            raise MalformedUnitExpression("Empty unit expression")

        with localcontext() as ctx:
            ctx.prec = DECIMAL_PRECISION
            result = None
            pos = 0
            sign = 1
            while True:
                match = UNIT_TERM_RE.match(text, pos)
                if not match:
                    raise MalformedUnitExpression(f"Expected a unit name at {pos} in: {text}")
                exponent = int(match.group(2)) if match.group(2) else 1
                if exponent == 0:
                    raise MalformedUnitExpression(f"Zero exponent in unit: {text}")

                term = self._lookup(match.group(1)).power(sign * exponent)
                result = term if result is None else result.multiply(term)

                pos = match.end()
                if pos == len(text):
                    return result
                if text[pos] == '*':
                    sign = 1
                elif text[pos] == '/':
                    sign = -1
                else:
                    raise MalformedUnitExpression(f"Unexpected '{text[pos]}' in unit: {text}")
                pos += 1

    def _lookup(self, name):
        """Resolve a single unit name (with optional prefix) through pint"""
        if name in UNIT_STOP_WORDS:
            raise UnknownUnit(f"Not read as a unit: {name}")
        pint_name = UNIT_ALIASES.get(name, name)
        try:
            factor, _ = self.ureg.get_base_units(pint_name)
            dimensionality = self.ureg.get_dimensionality(pint_name)
            symbol = self.ureg.get_symbol(pint_name)
        except UndefinedUnitError:
            raise UnknownUnit(f"Unknown unit: {name}")
        except Exception as e:
            # pint's own parser rejected the name
            raise MalformedUnitExpression(f"Invalid unit '{name}': {str(e)}")

        if factor is None or not self._is_multiplicative(pint_name):
            raise UnsupportedUnit(f"Non-multiplicative unit: {name}")

        dimensions = [0] * len(BASE_DIMENSIONS)
        for dim, exp in dict(dimensionality).items():
            if dim not in BASE_DIMENSIONS:
                raise UnknownUnit(f"Unsupported dimension {dim} in unit: {name}")
            dimensions[BASE_DIMENSIONS.index(dim)] = _as_int_exponent(exp, name)

        if not isinstance(factor, Decimal):
            factor = Decimal(str(factor))

        return UnitDescriptor(tuple(dimensions), factor, ((symbol, 1),))

    def _is_multiplicative(self, pint_name):
        """Offset units (degC, degF) refuse to be multiplied"""
        quantity = self.ureg.Quantity(Decimal(1), pint_name)
        try:
            quantity * quantity
        except OffsetUnitCalculusError:
            return False
        return True

    def conversion_factor(self, src, dst):
        """
        Factor converting a value expressed in src into dst.

        Raises:
            IncompatibleUnits: the exponent vectors differ
        """
        if dimensions_of(src) != dimensions_of(dst):
            raise IncompatibleUnits(f"Cannot convert {src} to {dst}")
        src_factor = src.factor if src is not None else Decimal(1)
        dst_factor = dst.factor if dst is not None else Decimal(1)
        if src_factor == dst_factor:
            return Decimal(1)
        with localcontext() as ctx:
            ctx.prec = DECIMAL_PRECISION
            return src_factor / dst_factor

    def derived_unit_for(self, unit):
        """The named SI derived unit (N, J, W, ...) with the same dimensions, if any"""
        if self._derived is None:
            self._derived = {}
            for symbol in DERIVED_UNIT_SYMBOLS:
                try:
                    descriptor = self.parse(symbol)
                except (UnknownUnit, MalformedUnitExpression):
                    continue
                self._derived.setdefault(descriptor.dimensions, descriptor)
        if unit is None:
            return None
        return self._derived.get(unit.dimensions)


_default_registry = None


def get_default_registry():
    """Shared registry instance; pint's catalogue is loaded only once"""
    global _default_registry
    if _default_registry is None:
        _default_registry = UnitRegistry()
    return _default_registry
