"""
CalcPad Tokenizer - Unit-aware lexer for a single line
Turns the characters of one line into typed tokens. Nothing here raises:
anything that cannot be understood is kept as plain text.
"""

import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from constants import (
    COMMENT_PREFIXES, SUM_RESET_MARKER, UNIT_CONVERSION_KEYWORD, OPERATOR_ALIASES
)
from calc_errors import UnknownUnit, UnsupportedUnit, MalformedUnitExpression
from unit_registry import get_default_registry


class TokenType(Enum):
    STRING_LITERAL = 'string'
    NUMBER_LITERAL = 'number'
    VARIABLE = 'variable'
    LINE_REFERENCE = 'line_reference'
    OPERATOR = 'operator'


class OperatorType(Enum):
    ADD = '+'
    SUB = '-'
    MUL = '*'
    DIV = '/'
    POW = '^'
    UNARY_MINUS = 'neg'
    UNIT = 'unit'
    UNIT_CONVERSION = 'to'
    MATRIX = 'matrix'
    BRACKET_OPEN = '['
    BRACKET_CLOSE = ']'
    PAREN_OPEN = '('
    PAREN_CLOSE = ')'
    COMMA = ','
    SEMICOLON = ';'
    ASSIGN = '='


@dataclass
class Token:
    """
    One lexical unit of a line.

    start/end: character span in the source line
    value: Decimal for numbers, the name for variables, the line id for line
           references, the text for string literals, a UnitDescriptor for
           UNIT / UNIT_CONVERSION operators and (rows, cols) for MATRIX
    """
    type: TokenType
    start: int
    end: int
    value: Any = None
    op: Optional[OperatorType] = None

    def is_op(self, *ops):
        return self.type == TokenType.OPERATOR and self.op in ops

    @property
    def is_whitespace(self):
        return self.type == TokenType.STRING_LITERAL and not str(self.value).strip()


SINGLE_CHAR_OPERATORS = {
    '+': OperatorType.ADD,
    '-': OperatorType.SUB,
    '*': OperatorType.MUL,
    '/': OperatorType.DIV,
    '^': OperatorType.POW,
    '(': OperatorType.PAREN_OPEN,
    ')': OperatorType.PAREN_CLOSE,
    '[': OperatorType.BRACKET_OPEN,
    ']': OperatorType.BRACKET_CLOSE,
    ',': OperatorType.COMMA,
    ';': OperatorType.SEMICOLON,
}

NUMBER_RE = re.compile(r"0x[0-9a-fA-F]+|0b[01]+|\d+(?:\.\d*)?|\.\d+")
WORD_RE = re.compile(r"[^\W\d]\w*")
WHITESPACE_RE = re.compile(r"\s+")
LINE_REF_RE = re.compile(r"&\[(\d+)\]")
UNIT_TERM_RE = re.compile(r"[^\W\d]+(?:\^-?\d+)?")

# "<name> = <expr>"; names may contain inner spaces ("my var = 12")
ASSIGNMENT_RE = re.compile(r"^(\s*)([^\W\d][\w ]*?)(\s*)=(?!=)")


def is_text_line(line):
    """Comment and sum reset lines bypass tokenization"""
    return line.startswith(SUM_RESET_MARKER) or line.startswith(COMMENT_PREFIXES)


def line_ref_name(line_id):
    """Raw text of a reference to the line with this stable id"""
    return f"&[{line_id}]"


def assignment_target(line):
    """Variable name of an assignment line, or None"""
    match = ASSIGNMENT_RE.match(line)
    if match:
        return match.group(2)
    return None


def _is_word_char(ch):
    return ch.isalnum() or ch == '_'


def _parse_number(text):
    if text.startswith('0x'):
        return Decimal(int(text[2:], 16))
    if text.startswith('0b'):
        return Decimal(int(text[2:], 2))
    return Decimal(text)


def tokenize(line, known_names=(), registry=None):
    """
    Tokenize one line.

    Args:
        line (str): The line's characters
        known_names: ordered (name, is_line_ref) pairs visible to this line
        registry: UnitRegistry used to recognise units

    Returns:
        list: Token objects covering the whole line, in source order
    """
    if registry is None:
        registry = get_default_registry()

    if is_text_line(line):
        return [Token(TokenType.STRING_LITERAL, 0, len(line), line)]

    tokens = []
    pos = 0

    match = ASSIGNMENT_RE.match(line)
    if match:
        lead, name, gap = match.group(1), match.group(2), match.group(3)
        if lead:
            tokens.append(Token(TokenType.STRING_LITERAL, 0, len(lead), lead))
        name_end = len(lead) + len(name)
        tokens.append(Token(TokenType.VARIABLE, len(lead), name_end, name))
        if gap:
            tokens.append(Token(TokenType.STRING_LITERAL, name_end, name_end + len(gap), gap))
        tokens.append(Token(TokenType.OPERATOR, match.end() - 1, match.end(), '=', OperatorType.ASSIGN))
        pos = match.end()

    # Longest names first so "my var" wins over "my"
    names = sorted(known_names, key=lambda item: len(item[0]), reverse=True)
    name_set = {name for name, _ in names}

    while pos < len(line):
        token = (
            _match_whitespace(line, pos)
            or _match_known_name(line, pos, names)
            or _match_line_ref_text(line, pos)
            or _match_number(line, pos)
            or _match_unit_conversion(line, pos, tokens, registry)
            or _match_unit(line, pos, registry, name_set)
            or _match_word(line, pos)
            or _match_operator(line, pos)
        )
        if token is None:
            token = Token(TokenType.STRING_LITERAL, pos, pos + 1, line[pos])
        tokens.append(token)
        pos = token.end

    return tokens


def _match_whitespace(line, pos):
    match = WHITESPACE_RE.match(line, pos)
    if match:
        return Token(TokenType.STRING_LITERAL, pos, match.end(), match.group())
    return None


def _match_known_name(line, pos, names):
    prev = line[pos - 1] if pos > 0 else ' '
    if _is_word_char(prev) and not prev.isdigit() and _is_word_char(line[pos]):
        return None
    for name, is_line_ref in names:
        if not line.startswith(name, pos):
            continue
        end = pos + len(name)
        if _is_word_char(name[-1]) and end < len(line) and _is_word_char(line[end]):
            continue
        if is_line_ref:
            line_id = int(LINE_REF_RE.fullmatch(name).group(1))
            return Token(TokenType.LINE_REFERENCE, pos, end, line_id)
        return Token(TokenType.VARIABLE, pos, end, name)
    return None


def _match_line_ref_text(line, pos):
    # A reference to a line that has no result is inert text, never a bracket
    match = LINE_REF_RE.match(line, pos)
    if match:
        return Token(TokenType.STRING_LITERAL, pos, match.end(), match.group())
    return None


def _match_number(line, pos):
    if pos > 0 and _is_word_char(line[pos - 1]) and not line[pos - 1].isdigit():
        # digits glued to a word ("x2") belong to the word
        return None
    match = NUMBER_RE.match(line, pos)
    if match:
        return Token(TokenType.NUMBER_LITERAL, pos, match.end(), _parse_number(match.group()))
    return None


def _unit_candidate_ends(line, pos, name_set):
    """End positions of successively longer compound unit candidates"""
    ends = []
    match = UNIT_TERM_RE.match(line, pos)
    while match:
        ends.append(match.end())
        end = match.end()
        if end < len(line) and line[end] in '*/':
            match = UNIT_TERM_RE.match(line, end + 1)
            if match and match.group() in name_set:
                break
        else:
            break
    return ends


def _parse_unit_at(line, pos, registry, name_set=frozenset()):
    """(end, descriptor) of the longest unit at pos; the descriptor is None for an offset unit"""
    for end in reversed(_unit_candidate_ends(line, pos, name_set)):
        if end < len(line) and _is_word_char(line[end]):
            continue
        try:
            return end, registry.parse(line[pos:end])
        except UnsupportedUnit:
            return end, None
        except (UnknownUnit, MalformedUnitExpression):
            continue
    return None


def _match_unit(line, pos, registry, name_set):
    if pos > 0 and _is_word_char(line[pos - 1]) and not line[pos - 1].isdigit():
        return None
    found = _parse_unit_at(line, pos, registry, name_set)
    if found:
        end, unit = found
        return Token(TokenType.OPERATOR, pos, end, unit, OperatorType.UNIT)
    return None


def _match_unit_conversion(line, pos, tokens, registry):
    keyword = UNIT_CONVERSION_KEYWORD
    if not line.startswith(keyword, pos):
        return None
    if not any(not t.is_whitespace for t in tokens):
        return None
    if pos > 0 and _is_word_char(line[pos - 1]):
        return None
    gap = WHITESPACE_RE.match(line, pos + len(keyword))
    if not gap:
        return None
    found = _parse_unit_at(line, gap.end(), registry)
    if found is None:
        return None
    end, unit = found
    return Token(TokenType.OPERATOR, pos, end, unit, OperatorType.UNIT_CONVERSION)


def _match_word(line, pos):
    match = WORD_RE.match(line, pos)
    if match:
        return Token(TokenType.STRING_LITERAL, pos, match.end(), match.group())
    return None


def _match_operator(line, pos):
    ch = OPERATOR_ALIASES.get(line[pos], line[pos])
    op = SINGLE_CHAR_OPERATORS.get(ch)
    if op is None:
        return None
    return Token(TokenType.OPERATOR, pos, pos + 1, ch, op)
