"""Source index over a Python module's AST.

Answers the questions the scope renderer asks about the traced program:
where is function X defined, which calls to user-defined functions does
a node contain (and where exactly), and which statement starts on a line.
"""

import ast
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Union

from .history import MODULE_FUNCTION_NAME
from ..errors import SourceError

logger = logging.getLogger(__name__)

FunctionNode = Union[ast.FunctionDef, ast.AsyncFunctionDef, ast.Module]


@dataclass(frozen=True)
class SourcePosition:
    """A position in the source: 1-based line, 0-based character column."""
    line: int
    column: int
    offset: int  # character offset from the start of the source


@dataclass(frozen=True)
class CallSite:
    """A call expression to a user-defined function."""
    fun_name: str
    start: SourcePosition
    end: SourcePosition
    text: str

    @property
    def line(self) -> int:
        return self.start.line

    @property
    def single_line(self) -> bool:
        return self.start.line == self.end.line


class SourceIndex:
    """Index of one Python source file."""

    def __init__(self, source: str, filename: str = "<source>"):
        self.source = source.replace("\r\n", "\n")
        self.filename = filename
        try:
            self.tree = ast.parse(self.source, filename=filename)
        except SyntaxError as e:
            raise SourceError(f"Cannot parse {filename}: {e}") from e
        self.lines = self.source.split("\n")

        self._line_starts = [0]
        for text in self.lines:
            self._line_starts.append(self._line_starts[-1] + len(text) + 1)

        # methods of different classes often share a name, so keep every definition
        self._functions: Dict[str, List[ast.AST]] = {}
        for node in ast.walk(self.tree):
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                self._functions.setdefault(node.name, []).append(node)
        for nodes in self._functions.values():
            nodes.sort(key=lambda n: n.lineno)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "SourceIndex":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Source file not found: {path}")
        return cls(path.read_text(), filename=str(path))

    def line_text(self, line: int) -> str:
        """Get the text of a 1-based source line ('' past the end)."""
        if 1 <= line <= len(self.lines):
            return self.lines[line - 1]
        return ""

    def function_names(self) -> Set[str]:
        """Names of all user-defined functions."""
        return set(self._functions)

    def find_function(self, name: str, line: Optional[int] = None) -> FunctionNode:
        """Find the definition of a traced function.

        The module-level pseudo function maps to the module node. When several
        functions share the name, line (any line executed inside the call)
        selects the innermost definition spanning it; without a line the
        first definition in the file is returned.
        """
        if name == MODULE_FUNCTION_NAME:
            return self.tree
        nodes = self._functions.get(name)
        if not nodes:
            raise SourceError(f"No definition of function {name!r} in {self.filename}")
        if line is None or len(nodes) == 1:
            return nodes[0]
        spanning = [n for n in nodes if n.lineno <= line <= n.end_lineno]
        if not spanning:
            logger.debug(f"No definition of {name!r} spans line {line}, using the first")
            return nodes[0]
        return max(spanning, key=lambda n: n.lineno)

    def call_sites(self, node: ast.AST,
                   user_function_names: Optional[Iterable[str]] = None) -> List[CallSite]:
        """
        Enumerate call expressions within a node, in source order.

        Args:
            node: Node to search
            user_function_names: Only keep calls to these names; calls into
                builtins and libraries cannot be expanded

        Returns:
            Call sites sorted by start position
        """
        wanted = set(user_function_names) if user_function_names is not None else None
        sites = []
        for child in ast.walk(node):
            if not isinstance(child, ast.Call):
                continue
            name = _callee_name(child)
            if name is None or (wanted is not None and name not in wanted):
                continue
            start = self._position(child.lineno, child.col_offset)
            end = self._position(child.end_lineno, child.end_col_offset)
            sites.append(CallSite(
                fun_name=name,
                start=start,
                end=end,
                text=self.source[start.offset:end.offset],
            ))
        sites.sort(key=lambda s: (s.start.offset, -s.end.offset))
        return sites

    def statement_at(self, line: int) -> Optional[ast.stmt]:
        """Get the innermost statement starting on a line."""
        best = None
        for node in ast.walk(self.tree):
            if isinstance(node, ast.stmt) and node.lineno == line:
                if best is None or _span(node) < _span(best):
                    best = node
        return best

    def source_of(self, node: ast.AST) -> str:
        """Get the exact source text of a node."""
        return ast.get_source_segment(self.source, node) or ""

    def definition_line(self, node: FunctionNode) -> Optional[int]:
        """Line of the 'def' keyword, or None for the module."""
        if isinstance(node, ast.Module):
            return None
        return node.lineno

    def _position(self, line: int, byte_column: int) -> SourcePosition:
        # ast columns are UTF-8 byte offsets into the line
        text = self.line_text(line)
        column = len(text.encode("utf-8")[:byte_column].decode("utf-8", errors="ignore"))
        return SourcePosition(line, column, self._line_starts[line - 1] + column)


def _callee_name(call: ast.Call) -> Optional[str]:
    func = call.func
    if isinstance(func, ast.Name):
        return func.id
    if isinstance(func, ast.Attribute):
        return func.attr
    return None


def _span(node: ast.AST):
    return (node.end_lineno - node.lineno, node.end_col_offset - node.col_offset)
