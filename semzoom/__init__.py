"""
SemZoom - Semantic zoom over Python execution traces

Lays out source code, runtime values and nested function calls as zoomable
box trees: zooming into a call expression reveals the execution of that
call, down to any depth of recursion.
"""

__version__ = "0.1.0"
__author__ = "SemZoom Team"

from .errors import SemZoomError
from .config import SemZoomConfig, load_config
from .layout import BoxArena, BoundingBox, fit_box
from .trace import HistoryEntry, SourceIndex, load_history, record_script
from .scope import ScopeNavigator, Viewport, ZoomSession, create_session

__all__ = [
    "SemZoomError",
    "SemZoomConfig",
    "load_config",
    "BoxArena",
    "BoundingBox",
    "fit_box",
    "HistoryEntry",
    "SourceIndex",
    "load_history",
    "record_script",
    "ScopeNavigator",
    "Viewport",
    "ZoomSession",
    "create_session",
]
