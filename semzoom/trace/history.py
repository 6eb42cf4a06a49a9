"""
Execution trace model.

A trace is an ordered list of HistoryEntry records, one per executed
statement, each holding the source line, a snapshot of the call stack
(innermost frame last) and the heap objects that stack values refer to.

Trace files are JSON arrays of entries:

    {"line": 3,
     "stack": [{"funName": "fib", "parameters": {"n": 5},
                "variables": {"xs": {"$ref": 7}}}],
     "heap": {"7": [1, 2, {"$ref": 8}], "8": {"x": 1}}}

A frame returning records one more entry whose innermost frame carries
the return value under the reserved variable name "<ret val>".
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

from ..errors import TraceFormatError

logger = logging.getLogger(__name__)

RETURN_VALUE_KEY = "<ret val>"
REF_KEY = "$ref"
MODULE_FUNCTION_NAME = "<module>"


@dataclass(frozen=True)
class HeapRef:
    """A stack value that points into the entry's heap."""
    heap_id: int


@dataclass
class StackFrame:
    """One call frame in a stack snapshot."""
    fun_name: str
    parameters: Dict[str, Any] = field(default_factory=dict)
    variables: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_return_value(self) -> bool:
        return RETURN_VALUE_KEY in self.variables

    @property
    def return_value(self) -> Any:
        return self.variables.get(RETURN_VALUE_KEY)


@dataclass
class HistoryEntry:
    """One executed statement."""
    line: int
    stack: List[StackFrame]
    heap: Dict[int, Any] = field(default_factory=dict)

    @property
    def depth(self) -> int:
        """Stack depth of this entry."""
        return len(self.stack)

    @property
    def frame(self) -> StackFrame:
        """Innermost stack frame."""
        return self.stack[-1]

    @property
    def fun_name(self) -> str:
        return self.frame.fun_name

    @property
    def is_return(self) -> bool:
        """True for the entry recorded when the innermost frame returned."""
        return self.frame.has_return_value


# =============================================================================
# JSON decoding / encoding
# =============================================================================

def _decode_value(value: Any) -> Any:
    if isinstance(value, dict):
        if len(value) == 1 and REF_KEY in value:
            return HeapRef(int(value[REF_KEY]))
        return {k: _decode_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decode_value(v) for v in value]
    return value


def _encode_value(value: Any) -> Any:
    if isinstance(value, HeapRef):
        return {REF_KEY: value.heap_id}
    if isinstance(value, dict):
        return {str(k): _encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode_value(v) for v in value]
    return value


def _parse_frame(raw: Any, index: int) -> StackFrame:
    if not isinstance(raw, dict):
        raise TraceFormatError(f"Entry {index}: stack frame must be an object")
    fun_name = raw.get("funName", raw.get("fun_name"))
    if not isinstance(fun_name, str):
        raise TraceFormatError(f"Entry {index}: stack frame has no funName")
    parameters = raw.get("parameters", {})
    variables = raw.get("variables", {})
    if not isinstance(parameters, dict) or not isinstance(variables, dict):
        raise TraceFormatError(
            f"Entry {index}: frame {fun_name!r} parameters/variables must be objects"
        )
    return StackFrame(
        fun_name=fun_name,
        parameters={k: _decode_value(v) for k, v in parameters.items()},
        variables={k: _decode_value(v) for k, v in variables.items()},
    )


def parse_history(data: Any) -> List[HistoryEntry]:
    """
    Build history entries from decoded JSON data.

    Raises:
        TraceFormatError: If the data does not follow the trace format
    """
    if not isinstance(data, list):
        raise TraceFormatError("Trace must be a JSON array of entries")

    entries = []
    for index, raw in enumerate(data):
        if not isinstance(raw, dict):
            raise TraceFormatError(f"Entry {index}: must be an object")
        line = raw.get("line")
        if not isinstance(line, int) or isinstance(line, bool) or line <= 0:
            raise TraceFormatError(f"Entry {index}: line must be a positive integer, got {line!r}")
        stack = raw.get("stack")
        if not isinstance(stack, list) or not stack:
            raise TraceFormatError(f"Entry {index}: stack must be a non-empty array")
        heap_raw = raw.get("heap", {})
        if not isinstance(heap_raw, dict):
            raise TraceFormatError(f"Entry {index}: heap must be an object")
        try:
            heap = {int(k): _decode_value(v) for k, v in heap_raw.items()}
        except ValueError as e:
            raise TraceFormatError(f"Entry {index}: heap ids must be integers ({e})") from e

        entries.append(HistoryEntry(
            line=line,
            stack=[_parse_frame(frame, index) for frame in stack],
            heap=heap,
        ))
    return entries


def history_to_json(entries: List[HistoryEntry]) -> List[Dict[str, Any]]:
    """Convert entries to JSON-serializable data (inverse of parse_history)."""
    return [
        {
            "line": entry.line,
            "stack": [
                {
                    "funName": frame.fun_name,
                    "parameters": _encode_value(frame.parameters),
                    "variables": _encode_value(frame.variables),
                }
                for frame in entry.stack
            ],
            "heap": _encode_value(entry.heap),
        }
        for entry in entries
    ]


def load_history(path: Union[str, Path]) -> List[HistoryEntry]:
    """Load a trace file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Trace file not found: {path}")
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise TraceFormatError(f"Trace file {path} is not valid JSON: {e}") from e
    entries = parse_history(data)
    logger.info(f"Loaded {len(entries)} trace entries from {path}")
    return entries


def dump_history(entries: List[HistoryEntry], path: Union[str, Path]) -> Path:
    """Write entries to a trace file."""
    path = Path(path)
    path.write_text(json.dumps(history_to_json(entries)))
    logger.info(f"Wrote {len(entries)} trace entries to {path}")
    return path


# =============================================================================
# Value rendering
# =============================================================================

def resolve_value(value: Any, heap: Dict[int, Any], _seen: Optional[Set[int]] = None) -> Any:
    """Replace heap references with the structures they point to.

    A reference back into a structure being resolved becomes Ellipsis.
    """
    seen = _seen or set()
    if isinstance(value, HeapRef):
        if value.heap_id in seen or value.heap_id not in heap:
            return ...
        return resolve_value(heap[value.heap_id], heap, seen | {value.heap_id})
    if isinstance(value, dict):
        return {k: resolve_value(v, heap, seen) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [resolve_value(v, heap, seen) for v in value]
    return value


def _render(value: Any, heap: Dict[int, Any], seen: Set[int]) -> str:
    if isinstance(value, HeapRef):
        if value.heap_id in seen:
            return "..."
        if value.heap_id not in heap:
            return f"<ref {value.heap_id}>"
        return _render(heap[value.heap_id], heap, seen | {value.heap_id})
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_render(v, heap, seen) for v in value) + "]"
    if isinstance(value, dict):
        return "{" + ", ".join(
            f"{k}: {_render(v, heap, seen)}" for k, v in value.items()
        ) + "}"
    return repr(value)


def format_value(value: Any, heap: Optional[Dict[int, Any]] = None,
                 max_length: int = 80) -> str:
    """
    Render a traced value for display.

    Heap references are shown as their full structural value, never as an
    address.

    Args:
        value: Value from a stack frame
        heap: Heap of the entry the value was read from
        max_length: Truncate longer renderings (0 = no limit)
    """
    text = _render(value, heap or {}, set())
    if max_length and len(text) > max_length:
        text = text[:max_length - 1] + "…"
    return text
