"""
SemZoom exception hierarchy.

Every error raised here is fatal for the frame being rendered: layout and
navigation work over already-validated trace data, so a failure means an
upstream invariant was broken and the render must stop rather than draw a
corrupted layout.
"""

from typing import Any, Dict


class SemZoomError(Exception):
    """Base class for all SemZoom errors."""


class LayoutError(SemZoomError):
    """A box tree could not be laid out."""


class UnsupportedBoxError(LayoutError):
    """An unknown box variant or container direction reached the layout."""


class LayoutOverflowError(LayoutError):
    """An accumulating layout offset wrapped or stopped being finite.

    Attributes:
        values: The offending offset/size values, for diagnosis
    """

    def __init__(self, message: str, **values: Any):
        self.values: Dict[str, Any] = values
        detail = ", ".join(f"{k}={v!r}" for k, v in values.items())
        super().__init__(f"{message} ({detail})" if detail else message)


class FitError(LayoutError):
    """Auto-fit search could not find a font size (content cannot fit)."""


class TraceError(SemZoomError):
    """A trace slice violates the depth/ordering invariants of a scope."""


class TraceFormatError(TraceError):
    """A trace file could not be parsed into history entries."""


class SourceError(SemZoomError):
    """The source index has no node for a traced function."""
