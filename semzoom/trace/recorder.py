"""Record an execution trace of a Python script with sys.settrace.

Every executed line of the target file becomes one HistoryEntry holding a
snapshot of the call stack (frames of the target file only) and of the
heap objects reachable from it. Returning frames add one more entry whose
innermost frame carries the return value under RETURN_VALUE_KEY.

Usage:
    recorder = TraceRecorder("fib.py")
    entries = recorder.run_file()
    dump_history(entries, "fib.trace.json")
"""

import logging
import sys
import types
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .history import (
    HeapRef,
    HistoryEntry,
    RETURN_VALUE_KEY,
    StackFrame,
)

logger = logging.getLogger(__name__)

_PRIMITIVES = (type(None), bool, int, float, str)
_HIDDEN_TYPES = (types.ModuleType, types.FunctionType, types.BuiltinFunctionType, type)


class TraceRecorder:
    """Records HistoryEntry records for one source file."""

    def __init__(self, path: Union[str, Path], max_entries: int = 100_000):
        """
        Args:
            path: Script to trace; only its frames are recorded
            max_entries: Stop recording (the program keeps running) after this many
        """
        self.path = Path(path)
        self.filename = str(self.path)
        self.max_entries = max_entries
        self.entries: List[HistoryEntry] = []
        self.truncated = False

        # heap ids are handed out sequentially; objects stay pinned so their
        # id() is never reused for a different object during the run
        self._heap_ids: Dict[int, int] = {}
        self._pinned: List[Any] = []

    def run_file(self, argv: Optional[List[str]] = None) -> List[HistoryEntry]:
        """Execute the script as __main__ and return its trace."""
        if not self.path.exists():
            raise FileNotFoundError(f"Script not found: {self.path}")
        code = compile(self.path.read_text(), self.filename, "exec")
        namespace = {"__name__": "__main__", "__file__": self.filename}

        saved_argv = sys.argv
        sys.argv = [self.filename] + list(argv or [])
        logger.info(f"Recording trace of {self.filename}")
        sys.settrace(self._trace)
        try:
            exec(code, namespace)
        except SystemExit as e:
            logger.info(f"Script exited with status {e.code}")
        finally:
            sys.settrace(None)
            sys.argv = saved_argv

        if self.truncated:
            logger.warning(f"Trace truncated at {self.max_entries} entries")
        logger.info(f"Recorded {len(self.entries)} entries")
        return self.entries

    def _trace(self, frame: types.FrameType, event: str, arg: Any):
        if frame.f_code.co_filename != self.filename:
            return None
        if event == "line":
            self._record(frame)
        elif event == "return" and not _is_synthetic(frame.f_code):
            self._record(frame, returning=True, return_value=arg)
        return self._trace

    def _record(self, frame: types.FrameType, returning: bool = False,
                return_value: Any = None):
        if len(self.entries) >= self.max_entries:
            self.truncated = True
            return

        chain = []
        current = frame
        while current is not None:
            # comprehension and lambda frames fold into their enclosing frame
            if current.f_code.co_filename == self.filename and not _is_synthetic(current.f_code):
                chain.append(current)
            current = current.f_back
        if not chain:
            return
        chain.reverse()

        heap: Dict[int, Any] = {}
        stack = [self._snapshot(f, heap) for f in chain]
        if returning:
            stack[-1].variables[RETURN_VALUE_KEY] = self._encode(return_value, heap)

        self.entries.append(HistoryEntry(line=frame.f_lineno, stack=stack, heap=heap))

    def _snapshot(self, frame: types.FrameType, heap: Dict[int, Any]) -> StackFrame:
        code = frame.f_code
        n_params = code.co_argcount + code.co_kwonlyargcount
        if code.co_flags & 0x04:  # CO_VARARGS
            n_params += 1
        if code.co_flags & 0x08:  # CO_VARKEYWORDS
            n_params += 1
        param_names = code.co_varnames[:n_params]

        f_locals = frame.f_locals
        parameters = {
            name: self._encode(f_locals[name], heap)
            for name in param_names if name in f_locals
        }
        variables = {}
        for name, value in f_locals.items():
            if name in parameters or name.startswith("__"):
                continue
            if isinstance(value, _HIDDEN_TYPES):
                continue
            variables[name] = self._encode(value, heap)
        return StackFrame(fun_name=code.co_name, parameters=parameters, variables=variables)

    def _encode(self, value: Any, heap: Dict[int, Any]) -> Any:
        if isinstance(value, _PRIMITIVES):
            return value
        if isinstance(value, (list, tuple, set, frozenset, dict)) or hasattr(value, "__dict__"):
            if isinstance(value, _HIDDEN_TYPES):
                return repr(value)
            heap_id = self._heap_id(value)
            if heap_id not in heap:
                heap[heap_id] = None  # reserve first so cycles terminate
                heap[heap_id] = self._encode_structure(value, heap)
            return HeapRef(heap_id)
        return repr(value)

    def _encode_structure(self, value: Any, heap: Dict[int, Any]) -> Any:
        if isinstance(value, dict):
            return {str(k): self._encode(v, heap) for k, v in value.items()}
        if isinstance(value, (set, frozenset)):
            return [self._encode(v, heap) for v in sorted(value, key=repr)]
        if isinstance(value, (list, tuple)):
            return [self._encode(v, heap) for v in value]
        return {
            k: self._encode(v, heap)
            for k, v in vars(value).items() if not k.startswith("_")
        }

    def _heap_id(self, value: Any) -> int:
        key = id(value)
        if key not in self._heap_ids:
            self._heap_ids[key] = len(self._heap_ids) + 1
            self._pinned.append(value)
        return self._heap_ids[key]


def _is_synthetic(code: types.CodeType) -> bool:
    return code.co_name.startswith("<") and code.co_name != "<module>"


def record_script(path: Union[str, Path], argv: Optional[List[str]] = None,
                  max_entries: int = 100_000) -> List[HistoryEntry]:
    """Convenience wrapper: trace a script and return its entries."""
    return TraceRecorder(path, max_entries=max_entries).run_file(argv)
