"""Tests for recording traces with sys.settrace."""

import pytest

from semzoom.trace.history import HeapRef, MODULE_FUNCTION_NAME
from semzoom.trace.recorder import TraceRecorder, record_script


class TestTraceRecorder:
    """Tests for recording the fib program."""

    def test_records_module_and_calls(self, fib_script):
        entries = record_script(fib_script)

        assert entries[0].fun_name == MODULE_FUNCTION_NAME
        assert entries[0].line == 1
        assert entries[0].depth == 1

        fib_entries = [e for e in entries if e.fun_name == "fib"]
        assert fib_entries
        assert all(e.depth >= 2 for e in fib_entries)
        assert max(e.depth for e in fib_entries) == 3
        assert {e.frame.parameters["n"] for e in fib_entries} == {0, 1, 2}

    def test_return_values(self, fib_script):
        entries = record_script(fib_script)

        returns = [(e.frame.parameters.get("n"), e.frame.return_value)
                   for e in entries if e.is_return and e.fun_name == "fib"]
        assert returns == [(1, 1), (0, 0), (2, 1)]

    def test_module_variables(self, fib_script):
        entries = record_script(fib_script)

        last = entries[-1]
        assert last.fun_name == MODULE_FUNCTION_NAME
        assert last.frame.variables["result"] == 1
        # functions are not recorded as variables
        assert "fib" not in last.frame.variables

    def test_stack_is_outermost_first(self, fib_script):
        entries = record_script(fib_script)

        deepest = max(entries, key=lambda e: e.depth)
        assert [f.fun_name for f in deepest.stack] == [MODULE_FUNCTION_NAME, "fib", "fib"]
        assert deepest.stack[1].parameters == {"n": 2}

    def test_heap_objects(self, tmp_path):
        script = tmp_path / "lists.py"
        script.write_text("xs = [1, 2]\nys = {'a': xs}\nzs = len(ys)\n")

        entries = record_script(script)

        last = entries[-1]
        ref = last.frame.variables["ys"]
        assert isinstance(ref, HeapRef)
        inner = last.heap[ref.heap_id]["a"]
        assert isinstance(inner, HeapRef)
        assert last.heap[inner.heap_id] == [1, 2]

    def test_max_entries(self, fib_script):
        recorder = TraceRecorder(fib_script, max_entries=5)
        entries = recorder.run_file()

        assert len(entries) == 5
        assert recorder.truncated

    def test_missing_script(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            record_script(tmp_path / "nope.py")

    def test_system_exit_is_recorded(self, tmp_path):
        script = tmp_path / "exits.py"
        script.write_text("import sys\nx = 1\nsys.exit(3)\n")

        entries = record_script(script)
        assert entries[-1].line == 3
