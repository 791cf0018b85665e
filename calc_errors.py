"""
CalcPad error types.

Raised while a single line is processed and caught at that line's boundary;
the caller of a document pass only ever sees "result" or "no result".
"""


class CalcError(Exception):
    """Base class for every failure local to one line"""
    pass


class UnknownUnit(CalcError):
    """The registry has no unit with this name"""
    pass


class UnsupportedUnit(UnknownUnit):
    """A known unit that cannot take part in arithmetic (degC, degF)"""
    pass


class MalformedUnitExpression(CalcError):
    """A compound unit string does not follow the unit grammar"""
    pass


class IncompatibleUnits(CalcError):
    """Exponent vectors differ where equal ones are required"""
    pass


class ShapeMismatch(CalcError):
    """Matrix operands have incompatible dimensions"""
    pass


class DivisionByZero(CalcError):
    pass


class UnbalancedBrackets(CalcError):
    """A closing bracket without an opening one, or the other way around"""
    pass


class UnknownIdentifier(CalcError):
    """A name that is neither a variable, a line reference nor a unit"""
    pass
