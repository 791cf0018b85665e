"""
CalcPad Shunting-Yard Converter
Reorders a line's infix tokens into postfix (RPN) order.
Bracket problems never raise to the caller: the output is cut back to the
last well-formed point and whatever is left is handed to the evaluator.
"""

from dataclasses import dataclass, field

from token_parser import Token, TokenType, OperatorType
from calc_errors import UnbalancedBrackets


# Binary and prefix operators; unit attachment is folded straight into the
# output and unit conversion pops everything, so neither needs a rank here
PRECEDENCE = {
    OperatorType.ADD: 1,
    OperatorType.SUB: 1,
    OperatorType.MUL: 2,
    OperatorType.DIV: 2,
    OperatorType.POW: 3,
    OperatorType.UNARY_MINUS: 4,
}

RIGHT_ASSOCIATIVE = {OperatorType.POW}

OPENERS = {OperatorType.PAREN_OPEN, OperatorType.BRACKET_OPEN}

OPERAND_TYPES = {TokenType.NUMBER_LITERAL, TokenType.VARIABLE, TokenType.LINE_REFERENCE}


@dataclass
class _Frame:
    """An open '(' or '[' and the matrix layout collected inside it"""
    opener: Token
    output_start: int
    operator_start: int
    rows: int = 0
    col_count: int = -1
    current_cols: int = 0
    has_separator: bool = False

    @property
    def is_bracket(self):
        return self.opener.op == OperatorType.BRACKET_OPEN


@dataclass
class _State:
    output: list = field(default_factory=list)
    operators: list = field(default_factory=list)
    frames: list = field(default_factory=list)
    prev_is_operand: bool = False
    text_gap: bool = False
    assignment: Token = None


def reduce(tokens):
    """
    Convert infix tokens to RPN.

    Args:
        tokens (list): Tokens of one line, as produced by tokenize()

    Returns:
        list: Tokens in evaluation order. String literals are dropped; an
              Assign token, when present, is always last.
    """
    state = _State()
    try:
        for token in tokens:
            _handle(state, token)
        if state.frames:
            raise UnbalancedBrackets(f"Unclosed '{state.frames[-1].opener.value}'")
    except UnbalancedBrackets:
        _truncate(state)

    while state.operators:
        _emit(state, state.operators.pop())

    if state.assignment is not None:
        state.output.append(state.assignment)
    return state.output


def _handle(state, token):
    if token.type == TokenType.STRING_LITERAL:
        if not token.is_whitespace:
            state.text_gap = True
        return

    if token.type in OPERAND_TYPES:
        _before_operand(state)
        state.output.append(token)
        _after_operand(state)
        return

    op = token.op
    if op == OperatorType.UNIT:
        if state.prev_is_operand and not state.text_gap:
            # postfix, binds to the operand just emitted
            state.output.append(token)
        else:
            state.text_gap = True
    elif op == OperatorType.UNIT_CONVERSION:
        _pop_until_opener(state)
        state.output.append(token)
        _after_operand(state)
    elif op in OPENERS:
        _before_operand(state)
        state.frames.append(_Frame(token, len(state.output), len(state.operators)))
        state.operators.append(token)
        state.prev_is_operand = False
        state.text_gap = False
    elif op == OperatorType.PAREN_CLOSE:
        _close_paren(state)
    elif op == OperatorType.BRACKET_CLOSE:
        _close_bracket(state)
    elif op in (OperatorType.COMMA, OperatorType.SEMICOLON):
        if state.frames and state.frames[-1].is_bracket:
            _end_cell(state, op == OperatorType.SEMICOLON)
        else:
            state.text_gap = True
    elif op == OperatorType.ASSIGN:
        state.output.clear()
        state.operators.clear()
        state.frames.clear()
        state.prev_is_operand = False
        state.text_gap = False
        state.assignment = token
    elif op == OperatorType.SUB and not state.prev_is_operand:
        state.operators.append(Token(
            TokenType.OPERATOR, token.start, token.end, '-', OperatorType.UNARY_MINUS))
    elif op == OperatorType.ADD and not state.prev_is_operand:
        pass  # unary plus
    else:
        _push_binary(state, token)


def _before_operand(state):
    # "3(4+5)", "2 x", "(1+2)(3+4)"; text in between prevents it
    if state.prev_is_operand and not state.text_gap:
        _push_binary(state, Token(TokenType.OPERATOR, -1, -1, '*', OperatorType.MUL))


def _after_operand(state):
    state.prev_is_operand = True
    state.text_gap = False


def _push_binary(state, token):
    prec = PRECEDENCE[token.op]
    while state.operators:
        top = state.operators[-1]
        if top.op in OPENERS:
            break
        top_prec = PRECEDENCE[top.op]
        if top_prec < prec or (top_prec == prec and token.op in RIGHT_ASSOCIATIVE):
            break
        _emit(state, state.operators.pop())
    state.operators.append(token)
    state.prev_is_operand = False
    state.text_gap = False


def _emit(state, token):
    if token.op not in OPENERS:
        state.output.append(token)


def _pop_until_opener(state):
    while state.operators and state.operators[-1].op not in OPENERS:
        state.output.append(state.operators.pop())


def _close_paren(state):
    if not state.frames or state.frames[-1].is_bracket:
        raise UnbalancedBrackets("Unexpected ')'")
    frame = state.frames.pop()
    _pop_until_opener(state)
    state.operators.pop()
    _close_group(state, frame)


def _close_bracket(state):
    if not state.frames or not state.frames[-1].is_bracket:
        raise UnbalancedBrackets("Unexpected ']'")
    frame = state.frames[-1]
    if not frame.has_separator:
        state.frames.pop()
        _pop_until_opener(state)
        state.operators.pop()
        _close_group(state, frame)
        return

    _end_cell(state, True)
    state.frames.pop()
    state.operators.pop()
    state.output.append(Token(
        TokenType.OPERATOR, frame.opener.start, -1, (frame.rows, frame.col_count), OperatorType.MATRIX))
    _after_operand(state)


def _close_group(state, frame):
    # "()" and "[]" hold no value
    if len(state.output) == frame.output_start:
        state.prev_is_operand = False
        state.text_gap = True
    else:
        _after_operand(state)


def _end_cell(state, ends_row):
    frame = state.frames[-1]
    _pop_until_opener(state)
    if not state.prev_is_operand:
        raise UnbalancedBrackets("Empty matrix cell")
    frame.has_separator = True
    frame.current_cols += 1
    if ends_row:
        if frame.col_count == -1:
            frame.col_count = frame.current_cols
        elif frame.current_cols != frame.col_count:
            raise UnbalancedBrackets("Ragged matrix rows")
        frame.rows += 1
        frame.current_cols = 0
    state.prev_is_operand = False
    state.text_gap = False


def _truncate(state):
    """Cut output and operators back to the outermost open bracket"""
    if state.frames:
        outermost = state.frames[0]
        del state.output[outermost.output_start:]
        del state.operators[outermost.operator_start:]
        state.frames.clear()
