"""
Shared test fixtures for SemZoom tests.

Provides a small recursive program, a hand-built trace of it, and a
deterministic text measurer.
"""

from typing import Any, Dict, List, Optional, Tuple

import pytest

from semzoom.layout.measure import FixedWidthMeasurer
from semzoom.trace.history import HistoryEntry, RETURN_VALUE_KEY, StackFrame
from semzoom.trace.source import SourceIndex


FIB_SOURCE = """\
def fib(n):
    if n < 2:
        return n
    a = fib(n - 1)
    return a + fib(n - 2)


result = fib(2)
print(result)
"""

MODULE = "<module>"

# (fun_name, parameters, variables)
FrameSpec = Tuple[str, Dict[str, Any], Dict[str, Any]]


def frame(fun_name: str, parameters: Optional[Dict[str, Any]] = None,
          variables: Optional[Dict[str, Any]] = None, ret: Any = None,
          returning: bool = False) -> StackFrame:
    """Build a stack frame; returning=True stores ret as the return value."""
    variables = dict(variables or {})
    if returning:
        variables[RETURN_VALUE_KEY] = ret
    return StackFrame(fun_name=fun_name, parameters=dict(parameters or {}), variables=variables)


def entry(line: int, *stack: StackFrame, heap: Optional[Dict[int, Any]] = None) -> HistoryEntry:
    return HistoryEntry(line=line, stack=list(stack), heap=dict(heap or {}))


def build_fib_history() -> List[HistoryEntry]:
    """Trace of FIB_SOURCE, as the recorder would produce it (print omitted)."""
    m = frame(MODULE)
    return [
        entry(1, m),                                                             # 0
        entry(8, m),                                                             # 1
        entry(2, m, frame("fib", {"n": 2})),                                     # 2
        entry(4, m, frame("fib", {"n": 2})),                                     # 3
        entry(2, m, frame("fib", {"n": 2}), frame("fib", {"n": 1})),             # 4
        entry(3, m, frame("fib", {"n": 2}), frame("fib", {"n": 1})),             # 5
        entry(3, m, frame("fib", {"n": 2}),
              frame("fib", {"n": 1}, ret=1, returning=True)),                    # 6
        entry(5, m, frame("fib", {"n": 2}, {"a": 1})),                           # 7
        entry(2, m, frame("fib", {"n": 2}, {"a": 1}), frame("fib", {"n": 0})),   # 8
        entry(3, m, frame("fib", {"n": 2}, {"a": 1}), frame("fib", {"n": 0})),   # 9
        entry(3, m, frame("fib", {"n": 2}, {"a": 1}),
              frame("fib", {"n": 0}, ret=0, returning=True)),                    # 10
        entry(5, m, frame("fib", {"n": 2}, {"a": 1}, ret=1, returning=True)),    # 11
        entry(9, frame(MODULE, variables={"result": 1})),                        # 12
    ]


@pytest.fixture
def fib_source() -> SourceIndex:
    """Source index of the recursive fib program."""
    return SourceIndex(FIB_SOURCE, filename="fib.py")


@pytest.fixture
def fib_history() -> List[HistoryEntry]:
    """Hand-built trace of the fib program computing fib(2)."""
    return build_fib_history()


@pytest.fixture
def measurer() -> FixedWidthMeasurer:
    """Deterministic measurer: every glyph is 0.6 * font size wide."""
    return FixedWidthMeasurer(0.6)


@pytest.fixture
def fib_script(tmp_path):
    """The fib program written to disk."""
    path = tmp_path / "fib.py"
    path.write_text(FIB_SOURCE)
    return path
