"""
Scope Navigator

Renders one frame of the semantic zoom. Starting from the anchor scope (the
innermost scope known to cover the whole canvas), each scope is either:

- culled, when its screen rectangle misses the canvas,
- skipped, when its content cannot fit even at min_font_size,
- drawn as a collapsed label, when it covers less than expand_threshold of
  the canvas area, or
- expanded into its code box, recursing into every call box that has
  nested execution.

While recursing, the navigator looks for scopes whose screen rectangle
contains the entire canvas. The deepest such chain becomes the anchor chain
for the next frame; if the current anchor no longer covers the canvas the
chain steps up one level (or back to the root).

The scope chain is plain data passed into and returned from render_frame(),
so frame-to-frame transitions can be exercised without a drawing surface.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .code_box import CodeBoxBuilder, scope_label
from .viewport import Viewport, canvas_rect
from ..color_manager import get_color_manager
from ..config import FitConfig, NavigatorConfig, TextConfig
from ..layout.boxes import Box, BoundingBox, BoxArena, CoordinateSpace, LayoutMap
from ..layout.fit import fit_box, fits_at
from ..layout.measure import TextMeasurer
from ..trace.history import HistoryEntry
from ..trace.source import SourceIndex

logger = logging.getLogger(__name__)


class ScopeKind(Enum):
    """How a scope was drawn."""
    LABEL = "label"
    CODE = "code"


class Transition(Enum):
    """How the scope chain changed over one frame."""
    STAY = "stay"
    DESCEND = "descend"
    ASCEND = "ascend"
    RESET = "reset"


@dataclass(eq=False)
class Scope:
    """A trace slice and the world rectangle it is drawn in."""
    bbox: BoundingBox
    history_entries: List[HistoryEntry]
    call_expr_code: Optional[str] = None  # how this scope was invoked, for labels

    def __post_init__(self):
        if self.bbox.space is not CoordinateSpace.WORLD:
            raise ValueError("Scope bbox must be in world coordinates")
        if not self.history_entries:
            raise ValueError("Scope must have at least one history entry")

    @property
    def fun_name(self) -> str:
        return self.history_entries[0].fun_name

    @property
    def depth(self) -> int:
        return self.history_entries[0].depth


# innermost (current focus) first, root last
ScopeChain = Tuple[Scope, ...]


@dataclass
class RenderedScope:
    """One scope drawn during a frame."""
    scope: Scope
    screen_rect: BoundingBox
    kind: ScopeKind
    font_size: int
    arena: BoxArena
    root: Box
    layout: LayoutMap
    level: int  # nesting below the anchor scope (anchor = 0)
    anchors: bool  # screen rect contains the whole canvas


@dataclass
class FrameResult:
    """Outcome of one rendered frame."""
    chain: ScopeChain
    previous_chain: ScopeChain
    transition: Transition
    rendered: List[RenderedScope] = field(default_factory=list)
    culled: int = 0  # off canvas
    skipped: int = 0  # on canvas but too small to draw legibly

    @property
    def anchor(self) -> Scope:
        return self.chain[0]


def root_scope(history: List[HistoryEntry], width: float, height: float) -> Scope:
    """Scope covering the whole trace, occupying the canvas-sized world rectangle."""
    return Scope(
        bbox=BoundingBox(0, 0, width, height, CoordinateSpace.WORLD),
        history_entries=list(history),
    )


class ScopeNavigator:
    """Renders frames of nested scopes for one traced program."""

    def __init__(
        self,
        source: SourceIndex,
        measurer: TextMeasurer,
        canvas_width: float,
        canvas_height: float,
        config: Optional[NavigatorConfig] = None,
        text: Optional[TextConfig] = None,
        fit: Optional[FitConfig] = None,
        builder: Optional[CodeBoxBuilder] = None,
    ):
        """
        Args:
            source: Index of the traced source file
            measurer: Text measurer used by every fit
            canvas_width, canvas_height: Size of the drawing surface
            config: Navigation thresholds
            text: Font settings
            fit: Auto-fit search bounds
            builder: Code box builder (defaults to one over source)
        """
        self.source = source
        self.measurer = measurer
        self.canvas = canvas_rect(canvas_width, canvas_height)
        self.config = config or NavigatorConfig()
        self.text = text or TextConfig()
        self.fit_config = fit or FitConfig()
        self.builder = builder or CodeBoxBuilder(
            source, max_value_length=self.config.max_value_length
        )
        self._label_color = get_color_manager().get_code_color("label")

    def render_frame(self, chain: ScopeChain, viewport: Viewport) -> FrameResult:
        """
        Render one frame and compute the next scope chain.

        Args:
            chain: Current scope chain, innermost first, root last
            viewport: Current viewport

        Returns:
            FrameResult whose chain replaces the caller's chain
        """
        if not chain:
            raise ValueError("Scope chain must contain at least the root scope")

        anchor, ancestry = chain[0], list(chain[1:])
        frame = FrameResult(chain=chain, previous_chain=chain, transition=Transition.STAY)
        found = self._render_scope(
            anchor, viewport.world_to_screen(anchor.bbox), ancestry, viewport, frame, 0
        )

        if found is not None:
            # at most one level deeper per frame; deeper anchors follow next frame
            limit = len(chain) + 1
            if len(found) > limit:
                found = found[-limit:]
            frame.chain = tuple(found)
            frame.transition = Transition.DESCEND if len(found) > len(chain) else Transition.STAY
        elif len(chain) > 1:
            frame.chain = chain[1:]
            frame.transition = Transition.ASCEND
        else:
            frame.chain = (chain[-1],)
            frame.transition = Transition.RESET

        logger.debug(
            f"frame: {len(frame.rendered)} scopes drawn, {frame.culled} culled, "
            f"{frame.skipped} too small, {frame.transition.value} to depth {len(frame.chain)} ({frame.anchor.fun_name})"
        )
        return frame

    def _render_scope(
        self,
        scope: Scope,
        rect: BoundingBox,
        ancestry: List[Scope],
        viewport: Viewport,
        frame: FrameResult,
        level: int,
    ) -> Optional[List[Scope]]:
        """Draw a scope and its visible descendants; return the deepest anchoring chain."""
        if not rect.intersects(self.canvas):
            frame.culled += 1
            return None

        anchors = rect.contains(self.canvas)
        area_ratio = rect.area / self.canvas.area

        if area_ratio < self.config.expand_threshold:
            arena = BoxArena()
            text = scope.call_expr_code if self.config.label_source else None
            label = arena.text(
                text or scope_label(scope.history_entries, self.config.max_value_length),
                self._label_color,
            )
            if not self._legible(label, rect):
                frame.skipped += 1
                return [scope, *ancestry] if anchors else None
            result = self._fit(label, rect)
            frame.rendered.append(RenderedScope(
                scope, rect, ScopeKind.LABEL, result.font_size, arena, label,
                result.layout, level, anchors,
            ))
            return [scope, *ancestry] if anchors else None

        code_box = self.builder.build(scope.history_entries)
        if not self._legible(code_box.root, rect):
            frame.skipped += 1
            return [scope, *ancestry] if anchors else None
        result = self._fit(code_box.root, rect)
        frame.rendered.append(RenderedScope(
            scope, rect, ScopeKind.CODE, result.font_size, code_box.arena, code_box.root,
            result.layout, level, anchors,
        ))

        deepest: Optional[List[Scope]] = None
        child_ancestry = [scope, *ancestry]
        for call_box in code_box.call_boxes:
            if not call_box.entries:
                continue
            child_rect = result.layout[call_box.box.box_id]
            child = Scope(
                bbox=viewport.screen_to_world(child_rect),
                history_entries=call_box.entries,
                call_expr_code=call_box.site.text,
            )
            found = self._render_scope(child, child_rect, child_ancestry, viewport, frame, level + 1)
            if found is not None and (deepest is None or len(found) > len(deepest)):
                deepest = found

        if deepest is not None:
            return deepest
        return child_ancestry if anchors else None

    def _legible(self, box: Box, rect: BoundingBox) -> bool:
        return fits_at(
            box,
            rect,
            self.measurer,
            self.config.min_font_size,
            self.text.font_family,
            self.text.font_weight,
            self.text.line_height,
        )

    def _fit(self, box: Box, rect: BoundingBox):
        return fit_box(
            box,
            rect,
            self.measurer,
            self.text.font_family,
            self.text.font_weight,
            self.text.line_height,
            self.fit_config,
        )
