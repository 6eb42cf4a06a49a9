"""Tests for building code boxes from trace slices."""

import pytest

from semzoom.color_manager import get_color_manager
from semzoom.layout.boxes import Point
from semzoom.layout.layout import layout
from semzoom.layout.measure import FontSetting
from semzoom.scope.code_box import CodeBoxBuilder, scope_label
from semzoom.trace.recorder import record_script
from semzoom.trace.source import SourceIndex


def column_texts(code_box, column):
    return [box.text for box in code_box.arena.text_boxes(code_box.root.children[column])]


@pytest.fixture
def builder(fib_source):
    return CodeBoxBuilder(fib_source)


class TestScopeLabel:
    def test_label_shows_arguments(self, fib_history):
        assert scope_label(fib_history[4:7]) == "fib(1)"

    def test_module_label(self, fib_history):
        assert scope_label(fib_history) == "<module>()"


class TestCodeBoxBuilder:
    """Tests for CodeBoxBuilder.build()."""

    def test_function_rows(self, builder, fib_history):
        """Signature row, then one row per executed line run."""
        code_box = builder.build(fib_history[2:12])

        assert code_box.rows == 4
        assert column_texts(code_box, 0) == ["1 ", "2 ", "4 ", "5 "]
        assert column_texts(code_box, 1) == [
            "def fib(n):",
            "    if n < 2:",
            "    a = ", "fib(n - 1)",
            "    return a + ", "fib(n - 2)",
        ]

    def test_annotations(self, builder, fib_history):
        """Parameters, nested call results, assignments and return values."""
        code_box = builder.build(fib_history[2:12])

        assert column_texts(code_box, 2) == [
            "   n = 2",
            "",
            "   fib(1) → 1", "   a = 1",
            "   fib(0) → 0", "   → 1",
        ]

    def test_call_boxes(self, builder, fib_history):
        """Each user call expression gets a box holding its nested execution."""
        code_box = builder.build(fib_history[2:12])

        assert [cb.site.text for cb in code_box.call_boxes] == ["fib(n - 1)", "fib(n - 2)"]
        assert [cb.row for cb in code_box.call_boxes] == [2, 3]
        assert code_box.call_boxes[0].entries == fib_history[4:7]
        assert code_box.call_boxes[1].entries == fib_history[8:11]
        assert code_box.call_boxes[0].box.text == "fib(n - 1)"
        assert code_box.call_boxes[0].box.color == get_color_manager().get_code_color("call")

    def test_module_scope(self, builder, fib_history):
        """The module has no signature row; only executed lines are shown."""
        code_box = builder.build(fib_history)

        assert code_box.rows == 3
        assert column_texts(code_box, 0) == ["1 ", "8 ", "9 "]
        assert column_texts(code_box, 2) == ["", "   fib(2) → 1", "   result = 1", ""]
        (call_box,) = code_box.call_boxes
        assert call_box.site.text == "fib(2)"
        assert len(call_box.entries) == 10

    def test_leaf_call(self, builder, fib_history):
        """A base-case call has no call boxes and shows its return value."""
        code_box = builder.build(fib_history[4:7])

        assert code_box.call_boxes == []
        assert column_texts(code_box, 2) == ["   n = 1", "", "   → 1"]

    def test_rows_align_across_columns(self, builder, fib_history, measurer):
        """Row i starts at the same y in every column."""
        code_box = builder.build(fib_history[2:12])
        measurer.set_font(FontSetting(10))
        result = layout(code_box.root, Point(0, 0), 10, measurer, line_height=1.2)

        columns = code_box.root.children
        for row in range(code_box.rows):
            ys = {round(result[column.children[row].box_id].y, 6) for column in columns}
            assert len(ys) == 1
            heights = {round(result[column.children[row].box_id].height, 6) for column in columns}
            assert heights == {12.0}

    def test_custom_colors(self, fib_source, fib_history):
        colors = {"line_number": "#111", "code": "#222", "call": "#333", "annotation": "#444"}
        code_box = CodeBoxBuilder(fib_source, colors=colors).build(fib_history[2:12])

        assert code_box.call_boxes[0].box.color == "#333"
        first_number = next(code_box.arena.text_boxes(code_box.root.children[0]))
        assert first_number.color == "#111"


CLASSES_SOURCE = """\
def helper(x):
    return x + 1


class A:
    def __init__(self):
        self.a = 1


class B:
    def __init__(self):
        self.b = helper(2)


a = A()
b = B()
"""


def call_slice(entries, fun_name, line):
    """Entries of the first call of fun_name that starts on line."""
    start = next(i for i, e in enumerate(entries) if e.fun_name == fun_name and e.line == line)
    depth = entries[start].depth
    end = start
    while end < len(entries) and entries[end].depth >= depth:
        end += 1
    return entries[start:end]


class TestRecordedScopes:
    """Tests on code boxes built from recorded traces."""

    def test_methods_sharing_a_name(self, tmp_path):
        """Each __init__ scope uses its own class's definition."""
        script = tmp_path / "classes.py"
        script.write_text(CLASSES_SOURCE)
        entries = record_script(script)
        builder = CodeBoxBuilder(SourceIndex(CLASSES_SOURCE, filename=str(script)))

        code_box = builder.build(call_slice(entries, "__init__", 12))

        assert column_texts(code_box, 0) == ["11 ", "12 "]
        assert column_texts(code_box, 1)[0] == "    def __init__(self):"
        (call_box,) = code_box.call_boxes
        assert call_box.site.text == "helper(2)"
        assert call_box.entries
        assert all(e.fun_name == "helper" for e in call_box.entries)

        other = builder.build(call_slice(entries, "__init__", 7))
        assert column_texts(other, 0) == ["6 ", "7 "]

    def test_trailing_assignment(self, tmp_path):
        """The last statement of a function still shows its assigned value."""
        source = "def g(n):\n    y = n * 2\n    x = y + 1\n\n\ng(3)\n"
        script = tmp_path / "g.py"
        script.write_text(source)
        entries = record_script(script)
        builder = CodeBoxBuilder(SourceIndex(source, filename=str(script)))

        code_box = builder.build(call_slice(entries, "g", 2))

        assert column_texts(code_box, 2) == ["   n = 3", "   y = 6", "   x = 7"]

    def test_trailing_module_assignment(self, tmp_path):
        source = "a = 1\nb = a + 1\n"
        script = tmp_path / "assign.py"
        script.write_text(source)
        entries = record_script(script)

        code_box = CodeBoxBuilder(SourceIndex(source, filename=str(script))).build(entries)

        assert column_texts(code_box, 2) == ["   a = 1", "   b = 2"]
