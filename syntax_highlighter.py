"""
CalcPad Syntax Highlighter
Turns the tokens of an evaluation pass into highlight ranges (CSS class
and color) for the rendering layer.
"""

from typing import List, Dict, Any

from constants import LN_COLORS, COLORS
from token_parser import TokenType, OperatorType, is_text_line
from worksheet import Worksheet


BRACKET_PAIRS = {
    OperatorType.PAREN_CLOSE: OperatorType.PAREN_OPEN,
    OperatorType.BRACKET_CLOSE: OperatorType.BRACKET_OPEN,
}


class SyntaxHighlighter:
    """
    Syntax highlighter that generates CSS class information for a frontend.
    Line references keep their color for as long as the highlighter lives.
    """

    def __init__(self):
        self.ln_colors = LN_COLORS

        # line id -> color
        self.persistent_ln_colors = {}

        self.css_classes = {
            'number': 'syntax-number',
            'unit': 'syntax-unit',
            'operator': 'syntax-operator',
            'variable': 'syntax-variable',
            'paren': 'syntax-paren',
            'matrix': 'syntax-matrix',
            'unmatched': 'syntax-unmatched',
            'comment': 'syntax-comment',
            'text': 'syntax-text',
            'ln_reference': 'syntax-ln-ref',
        }

    def get_ln_color(self, line_id: int) -> str:
        """Get or assign a color for a referenced line"""
        if line_id not in self.persistent_ln_colors:
            color_idx = len(self.persistent_ln_colors) % len(self.ln_colors)
            self.persistent_ln_colors[line_id] = self.ln_colors[color_idx]
        return self.persistent_ln_colors[line_id]

    def highlight_text(self, text: str, worksheet: Worksheet = None) -> List[Dict[str, Any]]:
        """
        Generate syntax highlighting data for a whole document.

        Args:
            text (str): Document text
            worksheet (Worksheet): Supplies line ids; a fresh one is used if omitted

        Returns:
            list: Highlight ranges with CSS classes and colors
        """
        if worksheet is None:
            worksheet = Worksheet(text)
        else:
            worksheet.set_content(text)
        pass_result = worksheet.evaluate()

        highlights = []
        current_pos = 0
        for line, line_result in zip(worksheet.lines, pass_result.lines):
            if is_text_line(line):
                if line:
                    highlights.append(self._range(current_pos, len(line), 'comment'))
            else:
                highlights.extend(self.highlight_tokens(line_result.tokens, current_pos))
            current_pos += len(line) + 1
        return highlights

    def highlight_tokens(self, tokens, line_start: int = 0) -> List[Dict[str, Any]]:
        """Highlight ranges for the tokens of one line"""
        highlights = []
        for token in tokens:
            length = token.end - token.start
            start = line_start + token.start
            if token.type == TokenType.NUMBER_LITERAL:
                highlights.append(self._range(start, length, 'number'))
            elif token.type == TokenType.VARIABLE:
                highlights.append(self._range(start, length, 'variable'))
            elif token.type == TokenType.LINE_REFERENCE:
                highlights.append({
                    "start": start,
                    "length": length,
                    "class": self.css_classes['ln_reference'],
                    "color": self.get_ln_color(token.value),
                })
            elif token.type == TokenType.STRING_LITERAL:
                if not token.is_whitespace:
                    highlights.append(self._range(start, length, 'text'))
            elif token.op in (OperatorType.UNIT, OperatorType.UNIT_CONVERSION):
                highlights.append(self._range(start, length, 'unit'))
            elif token.op in (OperatorType.COMMA, OperatorType.SEMICOLON):
                highlights.append(self._range(start, length, 'matrix'))
            elif token.op not in BRACKET_PAIRS and token.op not in BRACKET_PAIRS.values():
                highlights.append(self._range(start, length, 'operator'))

        highlights.extend(self._highlight_brackets(tokens, line_start))
        return highlights

    def _highlight_brackets(self, tokens, line_start: int) -> List[Dict[str, Any]]:
        """Matched brackets and parentheses, and the ones left unmatched"""
        highlights = []
        stack = []
        for token in tokens:
            if token.type != TokenType.OPERATOR:
                continue
            if token.op in (OperatorType.PAREN_OPEN, OperatorType.BRACKET_OPEN):
                stack.append(token)
            elif token.op in BRACKET_PAIRS:
                if stack and stack[-1].op == BRACKET_PAIRS[token.op]:
                    opener = stack.pop()
                    kind = 'paren' if token.op == OperatorType.PAREN_CLOSE else 'matrix'
                    highlights.append(self._range(line_start + opener.start, 1, kind))
                    highlights.append(self._range(line_start + token.start, 1, kind))
                else:
                    highlights.append(self._range(line_start + token.start, 1, 'unmatched'))

        for opener in stack:
            highlights.append(self._range(line_start + opener.start, 1, 'unmatched'))
        return highlights

    def _range(self, start, length, kind):
        return {
            "start": start,
            "length": length,
            "class": self.css_classes[kind],
            "color": COLORS[kind],
        }

    def get_css_styles(self) -> str:
        """
        Generate CSS styles for syntax highlighting.

        Returns:
            str: CSS stylesheet for syntax highlighting
        """
        rules = ["/* CalcPad Syntax Highlighting Styles */"]
        for kind, css_class in self.css_classes.items():
            if kind == 'ln_reference':
                rules.append(f".{css_class} {{\n    font-weight: bold;\n}}")
                continue
            extra = ""
            if kind == 'unmatched':
                extra = "\n    background-color: rgba(248, 81, 73, 0.2);"
            elif kind == 'comment':
                extra = "\n    font-style: italic;"
            rules.append(f".{css_class} {{\n    color: {COLORS[kind]};{extra}\n}}")
        return "\n\n".join(rules) + "\n"

    def reset_ln_colors(self):
        """Reset line reference color assignments"""
        self.persistent_ln_colors.clear()

    def get_ln_color_map(self) -> Dict[int, str]:
        """Get current line id to color mapping"""
        return self.persistent_ln_colors.copy()
