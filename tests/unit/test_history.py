"""Tests for the trace model, trace files and value formatting."""

import json

import pytest

from semzoom.errors import TraceFormatError
from semzoom.trace.history import (
    HeapRef,
    RETURN_VALUE_KEY,
    dump_history,
    format_value,
    history_to_json,
    load_history,
    parse_history,
    resolve_value,
)


RAW_TRACE = [
    {"line": 1, "stack": [{"funName": "<module>", "parameters": {}, "variables": {}}]},
    {
        "line": 3,
        "stack": [
            {"funName": "<module>"},
            {"funName": "total", "parameters": {"xs": {"$ref": 1}}, "variables": {"acc": 0}},
        ],
        "heap": {"1": [1, 2, {"$ref": 2}], "2": {"k": "v"}},
    },
    {
        "line": 4,
        "stack": [
            {"funName": "<module>"},
            {"fun_name": "total", "parameters": {"xs": {"$ref": 1}},
             "variables": {"<ret val>": 3}},
        ],
        "heap": {"1": [1, 2, {"$ref": 2}], "2": {"k": "v"}},
    },
]


class TestParseHistory:
    """Tests for decoding trace JSON."""

    def test_entries(self):
        entries = parse_history(RAW_TRACE)

        assert [e.line for e in entries] == [1, 3, 4]
        assert [e.depth for e in entries] == [1, 2, 2]
        assert entries[1].fun_name == "total"
        assert entries[1].frame.parameters == {"xs": HeapRef(1)}
        assert entries[1].heap[1] == [1, 2, HeapRef(2)]

    def test_return_entry(self):
        """The reserved variable marks the entry recorded on return."""
        entries = parse_history(RAW_TRACE)

        assert not entries[1].is_return
        assert entries[2].is_return
        assert entries[2].frame.return_value == 3

    def test_snake_case_fun_name_accepted(self):
        entries = parse_history(RAW_TRACE)
        assert entries[2].frame.fun_name == "total"

    @pytest.mark.parametrize("data,index", [
        ({"line": 1}, None),
        ([{"line": 0, "stack": [{"funName": "f"}]}], 0),
        ([{"line": 1, "stack": []}], 0),
        ([RAW_TRACE[0], {"line": 2, "stack": [{"parameters": {}}]}], 1),
        ([{"line": 1, "stack": [{"funName": "f"}], "heap": {"x": 1}}], 0),
        ([{"line": True, "stack": [{"funName": "f"}]}], 0),
    ])
    def test_malformed(self, data, index):
        """Malformed traces are rejected, naming the bad entry."""
        with pytest.raises(TraceFormatError) as exc_info:
            parse_history(data)
        if index is not None:
            assert f"Entry {index}" in str(exc_info.value)

    def test_json_roundtrip(self):
        """history_to_json() produces data parse_history() reads back."""
        entries = parse_history(RAW_TRACE)
        again = parse_history(json.loads(json.dumps(history_to_json(entries))))

        assert again == entries
        assert again[2].frame.variables[RETURN_VALUE_KEY] == 3


class TestTraceFiles:
    """Tests for reading and writing trace files."""

    def test_dump_and_load(self, tmp_path, fib_history):
        path = dump_history(fib_history, tmp_path / "fib.json")
        assert load_history(path) == fib_history

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_history(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("[{")
        with pytest.raises(TraceFormatError):
            load_history(path)


class TestFormatValue:
    """Tests for rendering traced values."""

    HEAP = {1: [1, 2, HeapRef(2)], 2: {"k": "v"}, 3: [HeapRef(3)]}

    def test_primitives(self):
        assert format_value(5) == "5"
        assert format_value("hi") == "'hi'"
        assert format_value(None) == "None"

    def test_heap_structure_shown_in_full(self):
        """References are replaced by the structure they point to."""
        assert format_value(HeapRef(1), self.HEAP) == "[1, 2, {k: 'v'}]"

    def test_cycle(self):
        assert format_value(HeapRef(3), self.HEAP) == "[...]"

    def test_missing_reference(self):
        assert format_value(HeapRef(9), self.HEAP) == "<ref 9>"

    def test_truncation(self):
        text = format_value(list(range(100)), max_length=10)
        assert len(text) == 10
        assert text.endswith("…")

    def test_resolve_value(self):
        assert resolve_value(HeapRef(1), self.HEAP) == [1, 2, {"k": "v"}]
        assert resolve_value(HeapRef(3), self.HEAP) == [...]
