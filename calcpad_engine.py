"""
CalcPad Core Engine - Stack evaluator for reduced (RPN) lines
Executes the postfix token stream of one line over Decimal scalars with
units and over matrices of scalars.
"""

from decimal import Decimal, DecimalException, localcontext

from constants import DECIMAL_PRECISION
from calc_errors import (
    CalcError, IncompatibleUnits, ShapeMismatch, DivisionByZero, UnknownIdentifier, UnsupportedUnit
)
from calc_result import Number, Matrix, EvaluationOutcome
from token_parser import TokenType, OperatorType, tokenize, line_ref_name
from shunting_yard import reduce
from unit_registry import get_default_registry, dimensions_of
import matrix


class StackUnderflow(CalcError):
    """An operator found fewer operands than it needs"""
    pass


BINARY_OPERATORS = {
    OperatorType.ADD, OperatorType.SUB, OperatorType.MUL, OperatorType.DIV, OperatorType.POW
}


class CalcPadEngine:
    """
    Core calculation engine for CalcPad.
    Evaluates one line's RPN tokens against the variable table and the
    line-id -> result map of the current pass.
    """

    def __init__(self, registry=None):
        self.registry = registry if registry is not None else get_default_registry()

    def evaluate(self, rpn, variables, line_results=None):
        """
        Core evaluation method.

        Args:
            rpn (list): Tokens in postfix order, as returned by reduce()
            variables (list): (name, result) pairs visible to the line
            line_results (dict): stable line id -> result of earlier lines

        Returns:
            EvaluationOutcome, or None when the line has no result
        """
        line_results = line_results or {}
        is_assignment = bool(rpn) and rpn[-1].is_op(OperatorType.ASSIGN)
        if is_assignment:
            rpn = rpn[:-1]

        flags = {'conversion': False, 'operation': False}
        try:
            with localcontext() as ctx:
                ctx.prec = DECIMAL_PRECISION
                stack = []
                for token in rpn:
                    self._execute(token, stack, variables, line_results, flags)
        except (CalcError, DecimalException):
            return None

        if len(stack) != 1:
            return None
        return EvaluationOutcome(
            result=stack[0],
            is_assignment=is_assignment,
            unit_conversion_occurred=flags['conversion'],
            had_operation=flags['operation'],
        )

    def evaluate_line(self, line, variables, line_results=None, known_names=None):
        """
        Tokenize, reduce and evaluate one line of text.

        Returns:
            tuple: (tokens, EvaluationOutcome or None)
        """
        if known_names is None:
            known_names = [(name, False) for name, value in variables if value is not None]
            known_names += [(line_ref_name(line_id), True) for line_id in (line_results or {})]
        tokens = tokenize(line, known_names, self.registry)
        return tokens, self.evaluate(reduce(tokens), variables, line_results)

    def _execute(self, token, stack, variables, line_results, flags):
        if token.type == TokenType.NUMBER_LITERAL:
            stack.append(Number(token.value))
        elif token.type == TokenType.VARIABLE:
            stack.append(self._lookup_variable(token.value, variables))
        elif token.type == TokenType.LINE_REFERENCE:
            result = line_results.get(token.value)
            if result is None:
                raise UnknownIdentifier(f"No result for line &[{token.value}]")
            stack.append(result)
        elif token.type == TokenType.OPERATOR:
            op = token.op
            if op in BINARY_OPERATORS:
                rhs = _pop(stack)
                lhs = _pop(stack)
                stack.append(self.binary_op(op, lhs, rhs))
                flags['operation'] = True
            elif op == OperatorType.UNARY_MINUS:
                stack.append(self.negate(_pop(stack)))
                flags['operation'] = True
            elif op == OperatorType.UNIT:
                stack.append(self._apply(_pop(stack), lambda n: self.attach_unit(n, token.value)))
            elif op == OperatorType.UNIT_CONVERSION:
                stack.append(self._apply(_pop(stack), lambda n: self.convert(n, token.value)))
                flags['conversion'] = True
                flags['operation'] = True
            elif op == OperatorType.MATRIX:
                rows, cols = token.value
                count = rows * cols
                if len(stack) < count:
                    raise StackUnderflow(f"Matrix needs {count} cells")
                cells = stack[len(stack) - count:]
                del stack[len(stack) - count:]
                stack.append(matrix.build(rows, cols, cells))
            else:
                raise CalcError(f"Unexpected operator in RPN: {op}")

    def _lookup_variable(self, name, variables):
        for var_name, value in variables:
            if var_name == name:
                if value is None:
                    break
                return value
        raise UnknownIdentifier(f"Unknown variable: {name}")

    def _apply(self, value, fn):
        """Apply a scalar function to a Number or to every cell of a Matrix"""
        if isinstance(value, Matrix):
            return matrix.map_cells(value, fn)
        return fn(value)

    # =========================================================================
    # RESULT OPERATIONS
    # =========================================================================

    def binary_op(self, op, lhs, rhs):
        """Dispatch on operand kinds; unsupported combinations are ShapeMismatch"""
        if isinstance(lhs, Number) and isinstance(rhs, Number):
            if op == OperatorType.ADD:
                return self.add_numbers(lhs, rhs)
            if op == OperatorType.SUB:
                return self.add_numbers(lhs, self.negate(rhs))
            if op == OperatorType.MUL:
                return self.mul_numbers(lhs, rhs)
            if op == OperatorType.DIV:
                return self.div_numbers(lhs, rhs)
            return self.pow_numbers(lhs, rhs)

        if isinstance(lhs, Matrix) and isinstance(rhs, Matrix):
            if op == OperatorType.ADD:
                return matrix.elementwise(lhs, rhs, self.add_numbers)
            if op == OperatorType.SUB:
                return matrix.elementwise(lhs, rhs, lambda a, b: self.add_numbers(a, self.negate(b)))
            if op == OperatorType.MUL:
                return matrix.multiply(lhs, rhs, self.mul_numbers, self.add_numbers)

        elif isinstance(lhs, Matrix) and isinstance(rhs, Number):
            if op == OperatorType.MUL:
                return matrix.broadcast_right(lhs, rhs, self.mul_numbers)
            if op == OperatorType.DIV:
                return matrix.broadcast_right(lhs, rhs, self.div_numbers)
            if op == OperatorType.POW and rhs.unit is None:
                return matrix.power(lhs, rhs.value, self.mul_numbers, self.add_numbers)

        elif isinstance(lhs, Number) and isinstance(rhs, Matrix):
            if op == OperatorType.MUL:
                return matrix.broadcast_left(lhs, rhs, self.mul_numbers)

        raise ShapeMismatch(f"Unsupported operands for {op.value}: {_kind(lhs)} and {_kind(rhs)}")

    def add(self, lhs, rhs):
        """Sum of two results; raises CalcError when they cannot be added"""
        with localcontext() as ctx:
            ctx.prec = DECIMAL_PRECISION
            return self.binary_op(OperatorType.ADD, lhs, rhs)

    def add_numbers(self, lhs, rhs):
        # The left operand's unit wins; the right one is rescaled into it
        if dimensions_of(lhs.unit) != dimensions_of(rhs.unit):
            raise IncompatibleUnits(f"Cannot add {rhs} to {lhs}")
        if lhs.unit is None and rhs.unit is None:
            return Number(lhs.value + rhs.value)
        factor = self.registry.conversion_factor(rhs.unit, lhs.unit)
        return Number(lhs.value + rhs.value * factor, lhs.unit)

    def mul_numbers(self, lhs, rhs):
        if lhs.unit is None or rhs.unit is None:
            return Number(lhs.value * rhs.value, lhs.unit or rhs.unit)
        return _collapse(lhs.value * rhs.value, lhs.unit.multiply(rhs.unit))

    def div_numbers(self, lhs, rhs):
        if rhs.value == 0:
            raise DivisionByZero(f"Division by zero: {lhs} / {rhs}")
        value = lhs.value / rhs.value
        if rhs.unit is None:
            return Number(value, lhs.unit)
        if lhs.unit is None:
            return _collapse(value, rhs.unit.power(-1))
        return _collapse(value, lhs.unit.divide(rhs.unit))

    def pow_numbers(self, base, exponent):
        if exponent.unit is not None:
            raise IncompatibleUnits(f"Exponent must be unitless: {exponent}")
        if base.value == 0 and exponent.value < 0:
            raise DivisionByZero("Zero raised to a negative power")
        if base.unit is None:
            return Number(base.value ** exponent.value)
        if exponent.value != exponent.value.to_integral_value():
            raise IncompatibleUnits(f"Fractional power of a unit: {base}^{exponent}")
        n = int(exponent.value)
        if n == 0:
            return Number(Decimal(1))
        return Number(base.value ** n, base.unit.power(n))

    def negate(self, value):
        if isinstance(value, Matrix):
            return matrix.map_cells(value, self.negate)
        return Number(-value.value, value.unit)

    def attach_unit(self, number, unit):
        """'5 km': a unitless number gains the unit; '50 percent' scales instead"""
        if unit is None:
            raise UnsupportedUnit("Offset units cannot be attached")
        if number.unit is not None:
            raise IncompatibleUnits(f"{number} already has a unit")
        if unit.is_dimensionless:
            return Number(number.value * unit.factor)
        return Number(number.value, unit)

    def convert(self, number, unit):
        """'12 km to m': rescale into the target unit"""
        if unit is None:
            raise UnsupportedUnit("Offset units cannot be converted to")
        factor = self.registry.conversion_factor(number.unit, unit)
        return Number(number.value * factor, unit)


def _pop(stack):
    if not stack:
        raise StackUnderflow("Operand stack is empty")
    return stack.pop()


def _kind(value):
    if isinstance(value, Matrix):
        return f"{value.row_count}x{value.col_count} matrix"
    return "number"


def _collapse(value, unit):
    """Cancelled dimensions leave a plain number in canonical scale"""
    if unit.is_dimensionless:
        return Number(value * unit.factor)
    return Number(value, unit)


_default_engine = None


def get_default_engine():
    global _default_engine
    if _default_engine is None:
        _default_engine = CalcPadEngine()
    return _default_engine


def evaluate(rpn, variables, line_results=None):
    """Evaluate RPN tokens with the shared engine"""
    return get_default_engine().evaluate(rpn, variables, line_results)


def add_op(lhs, rhs):
    """
    Add two line results, as the running sum does.

    Returns:
        The sum, or None when the operands cannot be added
    """
    try:
        return get_default_engine().add(lhs, rhs)
    except (CalcError, DecimalException):
        return None
