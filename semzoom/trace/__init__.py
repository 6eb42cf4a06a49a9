"""Execution traces: model, file format, recorder, source index and grouping."""

from .history import (
    HeapRef,
    HistoryEntry,
    StackFrame,
    RETURN_VALUE_KEY,
    MODULE_FUNCTION_NAME,
    format_value,
    resolve_value,
    parse_history,
    history_to_json,
    load_history,
    dump_history,
)
from .source import CallSite, SourceIndex, SourcePosition
from .grouper import GroupedTrace, NestedCall, group_entries
from .recorder import TraceRecorder, record_script

__all__ = [
    "HeapRef",
    "HistoryEntry",
    "StackFrame",
    "RETURN_VALUE_KEY",
    "MODULE_FUNCTION_NAME",
    "format_value",
    "resolve_value",
    "parse_history",
    "history_to_json",
    "load_history",
    "dump_history",
    "CallSite",
    "SourceIndex",
    "SourcePosition",
    "GroupedTrace",
    "NestedCall",
    "group_entries",
    "TraceRecorder",
    "record_script",
]
