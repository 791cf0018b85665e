"""
CalcPad Worksheet - Document evaluation driver
Holds the lines of one document with their per-line metadata and runs the
top-to-bottom evaluation pass: variables, the implicit sum, line references
and formatted results.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any

from constants import (
    MAX_LINE_COUNT, MAX_LINE_WIDTH, DEFAULT_DECIMAL_PLACES,
    SUM_VARIABLE_NAME, SUM_VARIABLE_INDEX, SUM_RESET_MARKER,
    RESULT_FORMAT_DEC, RESULT_FORMATS
)
from calc_result import Number
from calcpad_engine import CalcPadEngine, add_op
from result_formatter import ResultLengths, format_result
from shunting_yard import reduce
from token_parser import tokenize, is_text_line, assignment_target, line_ref_name, LINE_REF_RE
from unit_registry import get_default_registry


@dataclass
class LineData:
    """Per-line metadata; id 0 means no stable id has been assigned yet"""
    id: int = 0
    result_format: str = RESULT_FORMAT_DEC


@dataclass
class LineResult:
    result: Any = None
    text: str = ""
    lengths: ResultLengths = field(default_factory=ResultLengths)
    cells: Optional[List[List[str]]] = None
    tokens: list = field(default_factory=list)
    is_assignment: bool = False


@dataclass
class PassResult:
    lines: List[LineResult]
    variables: list
    line_results: Dict[int, Any]
    has_result_bitset: int = 0

    @property
    def texts(self):
        return [line.text for line in self.lines]


class Worksheet:
    """
    One calculator document.
    Line ids survive edits of other lines; everything else is rebuilt by
    evaluate().
    """

    def __init__(self, content: str = "", decimal_places: int = DEFAULT_DECIMAL_PLACES,
                 registry=None, debug: bool = False):
        self.registry = registry if registry is not None else get_default_registry()
        self.engine = CalcPadEngine(self.registry)
        self.decimal_places = decimal_places
        self.lines: List[str] = []
        self.line_data: List[LineData] = []
        self.line_id_generator = 1
        self.last_pass: Optional[PassResult] = None

        self._debug_enabled = debug
        self._perf_log = []
        self._call_stack = []

        self.set_content(content)

    # =========================================================================
    # CONTENT
    # =========================================================================

    def set_content(self, content: str):
        """
        Replace the document text. Metadata stays attached to row indexes;
        use insert_line/remove_line when rows move.
        """
        self.lines = content.split('\n')
        if len(self.line_data) > len(self.lines):
            del self.line_data[len(self.lines):]
        while len(self.line_data) < len(self.lines):
            self.line_data.append(LineData())

    def get_content(self) -> str:
        return '\n'.join(self.lines)

    def set_line(self, row: int, text: str):
        self.lines[row] = text

    def insert_line(self, row: int, text: str = ""):
        """Insert a new line before row; existing lines keep their metadata"""
        self.lines.insert(row, text)
        self.line_data.insert(row, LineData())

    def remove_line(self, row: int):
        del self.lines[row]
        del self.line_data[row]
        if not self.lines:
            self.lines.append("")
            self.line_data.append(LineData())

    def set_line_format(self, row: int, result_format: str):
        """
        Set the display format of one line.

        Raises:
            ValueError: unknown format name
        """
        if result_format not in RESULT_FORMATS:
            raise ValueError(f"Unknown result format: {result_format}")
        self.line_data[row].result_format = result_format

    def has_result(self, row: int) -> bool:
        """Whether the line produced a value in the last pass"""
        if self.last_pass is None:
            return False
        return bool(self.last_pass.has_result_bitset & (1 << row))

    # =========================================================================
    # EVALUATION
    # =========================================================================

    def evaluate(self) -> PassResult:
        """
        Run one full pass over the document.

        Returns:
            PassResult: per-line results, the final variable table and the
                        stable id -> result map
        """
        start_time = self._log_perf("evaluate")

        variables = [(SUM_VARIABLE_NAME, Number.zero())]
        sum_is_null = True
        line_results = {}
        bitset = 0
        results = []

        for row, line in enumerate(self.lines[:MAX_LINE_COUNT]):
            line = line[:MAX_LINE_WIDTH]
            data = self.line_data[row]

            if is_text_line(line):
                if line.startswith(SUM_RESET_MARKER):
                    variables[SUM_VARIABLE_INDEX] = (SUM_VARIABLE_NAME, Number.zero())
                    sum_is_null = True
                results.append(LineResult(tokens=tokenize(line, (), self.registry)))
                continue

            known_names = [(name, False) for name, _ in variables]
            known_names += [(line_ref_name(line_id), True) for line_id in line_results]
            tokens = tokenize(line, known_names, self.registry)
            outcome = self.engine.evaluate(reduce(tokens), variables, line_results)

            if outcome is None:
                self._debug(f"line {row + 1}: no result for {line!r}")
                results.append(LineResult(tokens=tokens))
                continue

            result = outcome.result
            bitset |= 1 << row

            if outcome.is_assignment:
                _set_variable(variables, assignment_target(line), result)
            if data.id:
                line_results[data.id] = result

            if sum_is_null:
                variables[SUM_VARIABLE_INDEX] = (SUM_VARIABLE_NAME, result)
                sum_is_null = False
            else:
                # an incompatible line leaves a unitless zero behind
                new_sum = add_op(variables[SUM_VARIABLE_INDEX][1], result)
                variables[SUM_VARIABLE_INDEX] = (SUM_VARIABLE_NAME, new_sum or Number.zero())

            formatted = format_result(result, data.result_format, outcome.unit_conversion_occurred,
                                      self.decimal_places, self.registry)
            self._debug(f"line {row + 1}: {line!r} -> {formatted.text or result}")
            results.append(LineResult(result, formatted.text, formatted.lengths, formatted.cells,
                                      tokens, outcome.is_assignment))

        # rows past the evaluation limit are kept as plain lines
        for _ in self.lines[MAX_LINE_COUNT:]:
            results.append(LineResult())

        self.last_pass = PassResult(results, variables, line_results, bitset)
        self._log_perf("evaluate", start_time)
        return self.last_pass

    def evaluate_selection(self, text: str, row: int = 0) -> Optional[str]:
        """
        Evaluate a selected fragment of one line against the variables of the
        last pass. Returns the formatted value, or None unless the fragment
        contained an operation.
        """
        if self.last_pass is None:
            self.evaluate()
        _, outcome = self.engine.evaluate_line(
            text[:MAX_LINE_WIDTH], self.last_pass.variables, self.last_pass.line_results)
        if outcome is None or not outcome.had_operation:
            return None
        formatted = format_result(outcome.result, self.line_data[row].result_format,
                                  outcome.unit_conversion_occurred, self.decimal_places, self.registry)
        return formatted.text

    def sum_rows(self, first_row: int, last_row: int):
        """
        Add up the results of a range of rows (both ends included).

        Returns:
            The sum, or None when there is nothing to add or two results
            cannot be added
        """
        if self.last_pass is None:
            self.evaluate()
        total = None
        for line in self.last_pass.lines[first_row:last_row + 1]:
            if line.result is None:
                continue
            if total is None:
                total = line.result
                continue
            total = add_op(total, line.result)
            if total is None:
                return None
        return total

    def evaluate_selection_rows(self, first_row: int, last_row: int) -> Optional[str]:
        """Formatted sum of a multi-row selection"""
        total = self.sum_rows(first_row, last_row)
        if total is None:
            return None
        return format_result(total, self.line_data[first_row].result_format, False,
                             self.decimal_places, self.registry).text

    # =========================================================================
    # LINE REFERENCES
    # =========================================================================

    def ensure_line_id(self, row: int) -> int:
        data = self.line_data[row]
        if data.id == 0:
            data.id = self.line_id_generator
            self.line_id_generator += 1
        return data.id

    def reference_line(self, row: int) -> str:
        """Text to insert for a reference to the given row"""
        return line_ref_name(self.ensure_line_id(row))

    def row_of_id(self, line_id: int) -> Optional[int]:
        for row, data in enumerate(self.line_data):
            if data.id == line_id:
                return row
        return None

    def normalize_line_refs(self, text: str) -> str:
        """
        Rewrite 1-based row references ("&[3]") into stable id references,
        creating ids as needed. References past the last row are left alone.
        """
        def replace(match):
            row = int(match.group(1)) - 1
            if 0 <= row < len(self.lines):
                return line_ref_name(self.ensure_line_id(row))
            return match.group()
        return LINE_REF_RE.sub(replace, text)

    def denormalize_line_refs(self, text: str) -> str:
        """
        Rewrite stable id references into 1-based row references; ids that
        no line holds become row 1.
        """
        def replace(match):
            row = self.row_of_id(int(match.group(1)))
            return line_ref_name((row or 0) + 1)
        return LINE_REF_RE.sub(replace, text)

    def get_normalized_content(self) -> str:
        """Document text with references by row, ready to be saved"""
        return '\n'.join(self.denormalize_line_refs(line) for line in self.lines)

    def set_normalized_content(self, content: str):
        """Load saved text; row n gets id n so its references resolve as-is"""
        self.lines = content.split('\n')
        self.line_data = [LineData(id=i + 1) for i in range(len(self.lines))]
        self.line_id_generator = len(self.lines) + 1
        self.last_pass = None

    # =========================================================================
    # DIAGNOSTICS
    # =========================================================================

    @property
    def perf_log(self):
        return list(self._perf_log)

    def _debug(self, message):
        if self._debug_enabled:
            print(f"[Worksheet] {message}")

    def _log_perf(self, method_name, start_time=None):
        """Log performance measurements"""
        if not self._debug_enabled:
            return None

        current_time = time.time() * 1000
        if start_time is None:
            self._call_stack.append((method_name, current_time))
            return current_time

        duration = current_time - start_time
        log_entry = f"[{current_time:.0f}] {method_name}: {duration:.1f}ms ({len(self.lines)} lines)"
        self._perf_log.append(log_entry)
        print(log_entry)

        # Keep only last 50 entries
        if len(self._perf_log) > 50:
            self._perf_log = self._perf_log[-50:]

        if self._call_stack and self._call_stack[-1][0] == method_name:
            self._call_stack.pop()
        return None

    def print_perf_summary(self):
        """Print recent performance log to console"""
        if not self._debug_enabled:
            return

        print("\n=== PERFORMANCE LOG (Last 10 entries) ===")
        for entry in self._perf_log[-10:]:
            print(entry)
        print("==========================================\n")


def _set_variable(variables, name, value):
    """Redeclaring replaces in place, new names are appended"""
    for i, (var_name, _) in enumerate(variables):
        if var_name == name:
            variables[i] = (name, value)
            return
    variables.append((name, value))
