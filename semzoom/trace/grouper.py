"""
Trace Grouper

Partitions the trace slice of one scope into the statements executed at the
scope's own level and the nested executions launched from them.

Nested executions are matched to call expressions by occurrence order: the
user-defined calls on a line are enumerated left to right, and each new
nested invocation started from that line takes the next one. Calls that
run in a different order than they are written (f(g(x)) evaluates g
first) are therefore attributed to the wrong call expression.
"""

import ast
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .history import HistoryEntry
from .source import CallSite, SourceIndex
from ..errors import TraceError

logger = logging.getLogger(__name__)


@dataclass
class NestedCall:
    """One nested invocation launched from a current-level statement."""
    site: Optional[CallSite]  # None if its line has no user-defined call
    anchor_index: int  # index into GroupedTrace.current of the launching entry
    entries: List[HistoryEntry] = field(default_factory=list)

    @property
    def depth(self) -> int:
        return self.entries[0].depth

    @property
    def return_entry(self) -> Optional[HistoryEntry]:
        """The entry recorded when the invoked frame returned, if it completed."""
        depth = self.depth
        for entry in reversed(self.entries):
            if entry.depth == depth and entry.is_return:
                return entry
        return None


@dataclass
class GroupedTrace:
    """Result of grouping one scope's trace slice."""
    base_depth: int
    current: List[HistoryEntry] = field(default_factory=list)
    children: Dict[CallSite, List[HistoryEntry]] = field(default_factory=dict)
    calls: List[NestedCall] = field(default_factory=list)
    unattributed: List[HistoryEntry] = field(default_factory=list)
    sites_by_line: Dict[int, List[CallSite]] = field(default_factory=dict)

    def all_entries(self) -> List[HistoryEntry]:
        """Every grouped entry (current, nested and unattributed)."""
        result = list(self.current)
        for entries in self.children.values():
            result.extend(entries)
        result.extend(self.unattributed)
        return result


def sites_by_line(sites: Iterable[CallSite]) -> Dict[int, List[CallSite]]:
    """Bucket call sites by start line, keeping source order."""
    result: Dict[int, List[CallSite]] = {}
    for site in sites:
        result.setdefault(site.line, []).append(site)
    return result


def group_entries(
    function_node: ast.AST,
    entries: List[HistoryEntry],
    user_function_names: Iterable[str],
    source: SourceIndex,
) -> GroupedTrace:
    """
    Split a scope's entries into current-level and nested entries.

    Args:
        function_node: AST node of the function the scope executes
        entries: Trace slice of the scope; entries[0] sets the base depth
        user_function_names: Calls to these names are expandable
        source: Source index used to enumerate call sites

    Returns:
        GroupedTrace partitioning entries

    Raises:
        TraceError: Empty slice, or an entry shallower than the base depth
    """
    if not entries:
        raise TraceError("Cannot group an empty trace slice")

    base = entries[0].depth
    by_line = sites_by_line(source.call_sites(function_node, user_function_names))
    grouped = GroupedTrace(base_depth=base, sites_by_line=by_line)

    line_sites: List[CallSite] = []
    call_index = -1
    prev_line: Optional[int] = None
    active: Optional[NestedCall] = None
    prev_entry: Optional[HistoryEntry] = None

    for position, entry in enumerate(entries):
        depth = entry.depth
        if depth < base:
            raise TraceError(
                f"Entry {position} (line {entry.line}) has depth {depth}, "
                f"shallower than scope depth {base}"
            )

        if depth == base:
            if entry.line != prev_line:
                line_sites = by_line.get(entry.line, [])
                call_index = -1
            prev_line = entry.line
            grouped.current.append(entry)
            active = None
        else:
            starts_call = active is None or (
                prev_entry.depth == base + 1 and prev_entry.is_return
            )
            if starts_call:
                site = None
                if line_sites:
                    call_index += 1
                    site = line_sites[call_index % len(line_sites)]
                active = NestedCall(site=site, anchor_index=len(grouped.current) - 1)
                grouped.calls.append(active)
            active.entries.append(entry)
            if active.site is not None:
                grouped.children.setdefault(active.site, []).append(entry)
            else:
                grouped.unattributed.append(entry)

        prev_entry = entry

    if grouped.unattributed:
        logger.debug(
            f"{len(grouped.unattributed)} nested entries have no call expression to attach to"
        )
    return grouped
