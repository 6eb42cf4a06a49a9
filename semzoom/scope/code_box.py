"""
Code-Box Builder

Turns one scope's trace slice into a box tree:

    +----+---------------------------+---------------------------+
    | 1  | def fib(n):               |   n = 4                   |
    | 2  |     if n < 2:             |                           |
    | 4  |     a = fib(n - 1)        |   fib(3) → 2   a = 2      |
    | 5  |     return a + fib(n - 2) |   fib(2) → 1   → 3        |
    +----+---------------------------+---------------------------+

Three vertical columns (line numbers, code, annotations) inside a
horizontal root. Every row of every column is exactly one text line tall,
so rows line up across columns. Calls to user-defined functions get their
own text box in the code column, recorded as CallBox so the navigator can
zoom into them.
"""

import ast
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..color_manager import get_color_manager
from ..layout.boxes import Box, BoxArena, ContainerBox, TextBox
from ..trace.grouper import GroupedTrace, NestedCall, group_entries
from ..trace.history import HistoryEntry, format_value
from ..trace.source import CallSite, SourceIndex

logger = logging.getLogger(__name__)

ANNOTATION_GAP = "   "
ASSIGNMENT_TYPES = (ast.Assign, ast.AnnAssign, ast.AugAssign)


@dataclass
class CallBox:
    """A call-expression text box that nested execution can be zoomed into."""
    site: CallSite
    box: TextBox
    row: int
    entries: List[HistoryEntry] = field(default_factory=list)


@dataclass
class CodeBox:
    """Box tree for one scope plus the call boxes inside it."""
    arena: BoxArena
    root: ContainerBox
    call_boxes: List[CallBox]
    grouped: GroupedTrace
    rows: int = 0


def scope_label(entries: List[HistoryEntry], max_value_length: int = 40) -> str:
    """Collapsed label for a scope: funName(arg, ...)."""
    first = entries[0]
    frame = first.frame
    args = ", ".join(
        format_value(value, first.heap, max_value_length)
        for value in frame.parameters.values()
    )
    return f"{frame.fun_name}({args})"


def _assigned_names(stmt: ast.stmt) -> List[str]:
    if isinstance(stmt, ast.Assign):
        targets = stmt.targets
    else:
        targets = [stmt.target]
    names = []
    for target in targets:
        if isinstance(target, ast.Name):
            names.append(target.id)
        elif isinstance(target, (ast.Tuple, ast.List)):
            names.extend(elt.id for elt in target.elts if isinstance(elt, ast.Name))
    return names


def _line_runs(current: List[HistoryEntry]) -> List[Tuple[int, int]]:
    """Index ranges (inclusive) of consecutive current entries on the same line."""
    runs = []
    start = 0
    for i in range(1, len(current) + 1):
        if i == len(current) or current[i].line != current[start].line:
            runs.append((start, i - 1))
            start = i
    return runs


class CodeBoxBuilder:
    """Builds code boxes for scopes of one source file."""

    def __init__(
        self,
        source: SourceIndex,
        colors: Optional[Dict[str, str]] = None,
        max_value_length: int = 40,
    ):
        """
        Args:
            source: Index of the traced source file
            colors: Element -> color ("line_number", "code", "call", "annotation");
                defaults to the configured code palette
            max_value_length: Truncation length for annotation values
        """
        self.source = source
        self.colors = colors or get_color_manager().get_code_palette()
        self.max_value_length = max_value_length
        self._user_functions = source.function_names()

    def build(self, entries: List[HistoryEntry],
              grouped: Optional[GroupedTrace] = None) -> CodeBox:
        """
        Build the box tree for a scope.

        Args:
            entries: The scope's trace slice
            grouped: Grouping of entries, computed here when not given

        Returns:
            CodeBox
        """
        frame = entries[0].frame
        fun_node = self.source.find_function(frame.fun_name, entries[0].line)
        if grouped is None:
            grouped = group_entries(fun_node, entries, self._user_functions, self.source)

        arena = BoxArena()
        numbers = arena.vertical()
        code = arena.vertical()
        notes = arena.vertical()
        root = arena.horizontal([numbers, code, notes])
        call_boxes: List[CallBox] = []
        rows = 0

        def_line = self.source.definition_line(fun_node)
        if def_line is not None:
            arena.append(numbers, self._line_number(arena, def_line))
            arena.append(code, arena.text(self.source.line_text(def_line), self.colors.get("code")))
            params = [
                f"{name} = {self._fmt(value, entries[0])}"
                for name, value in frame.parameters.items()
            ]
            arena.append(notes, self._annotation_row(arena, params))
            rows += 1

        current = grouped.current
        for start, end in _line_runs(current):
            line = current[start].line
            run_calls = [c for c in grouped.calls if start <= c.anchor_index <= end]

            arena.append(numbers, self._line_number(arena, line))
            row_box, row_calls = self._code_row(
                arena, line, grouped.sites_by_line.get(line, []), run_calls, rows
            )
            arena.append(code, row_box)
            call_boxes.extend(row_calls)
            arena.append(notes, self._annotation_row(
                arena, self._annotations(line, current, start, end, run_calls)
            ))
            rows += 1

        logger.debug(
            f"Built code box for {frame.fun_name}: {rows} rows, {len(call_boxes)} call boxes"
        )
        return CodeBox(arena=arena, root=root, call_boxes=call_boxes, grouped=grouped, rows=rows)

    def _line_number(self, arena: BoxArena, line: int) -> TextBox:
        return arena.text(f"{line} ", self.colors.get("line_number"))

    def _code_row(
        self,
        arena: BoxArena,
        line: int,
        sites: List[CallSite],
        run_calls: List[NestedCall],
        row: int,
    ) -> Tuple[Box, List[CallBox]]:
        """Split a source line into literal text and call-expression boxes."""
        text = self.source.line_text(line)
        code_color = self.colors.get("code")

        # Nested calls cannot be split out of their enclosing call's box;
        # their executions are shown under the outermost call instead.
        outermost: List[CallSite] = []
        owner: Dict[CallSite, CallSite] = {}
        for site in sites:
            enclosing = next(
                (o for o in outermost
                 if o.start.offset <= site.start.offset and
                 (not o.single_line or site.end.offset <= o.end.offset)),
                None,
            )
            if enclosing is None:
                outermost.append(site)
                owner[site] = site
            else:
                owner[site] = enclosing

        if not outermost:
            return arena.text(text, code_color), []

        row_box = arena.horizontal()
        call_boxes = []
        cursor = 0
        for site in outermost:
            end_col = site.end.column if site.single_line else len(text)
            if site.start.column > cursor:
                arena.append(row_box, arena.text(text[cursor:site.start.column], code_color))
            call_text = arena.text(text[site.start.column:end_col], self.colors.get("call"))
            arena.append(row_box, call_text)
            nested = [
                entry
                for call in run_calls
                if call.site is not None and owner.get(call.site) is site
                for entry in call.entries
            ]
            call_boxes.append(CallBox(site=site, box=call_text, row=row, entries=nested))
            cursor = end_col
        if cursor < len(text):
            arena.append(row_box, arena.text(text[cursor:], code_color))
        return row_box, call_boxes

    def _annotations(
        self,
        line: int,
        current: List[HistoryEntry],
        start: int,
        end: int,
        run_calls: List[NestedCall],
    ) -> List[str]:
        """Annotation texts for one row, in display order."""
        notes = []

        for call in run_calls:
            returned = call.return_entry
            if returned is None:
                continue
            label = scope_label(call.entries, self.max_value_length)
            notes.append(f"{label} → {self._fmt(returned.frame.return_value, returned)}")

        stmt = self.source.statement_at(line)
        next_entry = current[end + 1] if end + 1 < len(current) else None
        if next_entry is None:
            # a trailing assignment: the return entry holds the state after it
            next_entry = next((e for e in reversed(current[start:end + 1]) if e.is_return), None)
        if isinstance(stmt, ASSIGNMENT_TYPES) and next_entry is not None:
            next_frame = next_entry.frame
            for name in _assigned_names(stmt):
                if name in next_frame.variables:
                    value = next_frame.variables[name]
                elif name in next_frame.parameters:
                    value = next_frame.parameters[name]
                else:
                    continue
                notes.append(f"{name} = {self._fmt(value, next_entry)}")

        if isinstance(stmt, ast.Return):
            for entry in reversed(current[start:end + 1]):
                if entry.is_return:
                    notes.append(f"→ {self._fmt(entry.frame.return_value, entry)}")
                    break

        return notes

    def _annotation_row(self, arena: BoxArena, notes: List[str]) -> Box:
        color = self.colors.get("annotation")
        if not notes:
            # keeps the row one line tall so the columns stay aligned
            return arena.text("", color)
        return arena.horizontal([arena.text(ANNOTATION_GAP + note, color) for note in notes])

    def _fmt(self, value, entry: HistoryEntry) -> str:
        return format_value(value, entry.heap, self.max_value_length)
