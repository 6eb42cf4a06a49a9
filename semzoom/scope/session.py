"""
Zoom session: one trace, one viewport, one scope chain.

Input handlers (drag, wheel) only move the viewport; the scope chain is
updated exclusively by render(), one frame at a time.
"""

import logging
from typing import List, Optional

from .navigator import FrameResult, ScopeChain, ScopeNavigator, root_scope
from .viewport import Viewport
from ..config import SemZoomConfig, ViewportConfig
from ..layout.measure import FixedWidthMeasurer
from ..trace.history import HistoryEntry
from ..trace.source import SourceIndex

logger = logging.getLogger(__name__)


class ZoomSession:
    """Interactive zoom state for a single traced program."""

    def __init__(
        self,
        history: List[HistoryEntry],
        navigator: ScopeNavigator,
        viewport: Optional[Viewport] = None,
        config: Optional[ViewportConfig] = None,
    ):
        if not history:
            raise ValueError("Cannot start a zoom session on an empty trace")
        self.navigator = navigator
        self.config = config or ViewportConfig()
        self.root = root_scope(history, navigator.canvas.width, navigator.canvas.height)
        self.chain: ScopeChain = (self.root,)
        self.viewport = viewport or self._initial_viewport()
        self.frame_count = 0
        self.last_frame: Optional[FrameResult] = None

    def _initial_viewport(self) -> Viewport:
        return Viewport.centered(
            self.navigator.canvas.width, self.navigator.canvas.height, self.config.initial_zoom
        )

    def drag(self, dx: float, dy: float):
        """Pan by a pointer movement of (dx, dy) screen px."""
        self.viewport.pan(dx / self.viewport.zoom, dy / self.viewport.zoom)

    def wheel(self, x: float, y: float, delta: float):
        """Zoom around the pointer at (x, y) screen px."""
        self.viewport.zoom_at(x, y, delta, self.config.min_zoom, self.config.wheel_factor)

    def set_viewport(self, top: float, left: float, zoom: float):
        self.viewport = Viewport(top=top, left=left, zoom=zoom)

    def reset(self):
        """Return to the initial viewport and the root scope."""
        self.viewport = self._initial_viewport()
        self.chain = (self.root,)
        logger.info("Zoom session reset")

    def render(self) -> FrameResult:
        """Render one frame and adopt the resulting scope chain."""
        frame = self.navigator.render_frame(self.chain, self.viewport)
        self.chain = frame.chain
        self.last_frame = frame
        self.frame_count += 1
        return frame

    def chain_names(self) -> List[str]:
        """Function names along the chain, root first."""
        return [scope.fun_name for scope in reversed(self.chain)]


def create_session(
    history: List[HistoryEntry],
    source: SourceIndex,
    config: Optional[SemZoomConfig] = None,
) -> ZoomSession:
    """
    Build a session with a fixed-width measurer and the configured canvas.

    Args:
        history: Loaded trace
        source: Index of the traced source file
        config: Settings (defaults when omitted)

    Returns:
        ZoomSession
    """
    config = config or SemZoomConfig()
    navigator = ScopeNavigator(
        source,
        FixedWidthMeasurer(config.text.char_width_ratio),
        config.canvas.width,
        config.canvas.height,
        config=config.navigator,
        text=config.text,
        fit=config.fit,
    )
    logger.debug(
        f"Created session for {source.filename}: {len(history)} entries, "
        f"canvas {config.canvas.width}x{config.canvas.height}"
    )
    return ZoomSession(history, navigator, config=config.viewport)
