"""Viewport: the affine map between world and screen coordinates.

    screen = (world - (left, top)) * zoom

Input handlers mutate a viewport between frames (drag pans, wheel zooms
around the pointer); the navigator only reads it.
"""

from dataclasses import dataclass

from ..layout.boxes import BoundingBox, CoordinateSpace, Point


@dataclass
class Viewport:
    """Visible window onto the world plane."""
    top: float = 0.0
    left: float = 0.0
    zoom: float = 1.0

    def __post_init__(self):
        if self.zoom <= 0:
            raise ValueError(f"Viewport zoom must be positive, got {self.zoom}")

    @classmethod
    def centered(cls, canvas_width: float, canvas_height: float, zoom: float) -> "Viewport":
        """Viewport showing the canvas-sized world rectangle at (0, 0) centered at zoom."""
        return cls(
            top=-(canvas_height / zoom - canvas_height) / 2,
            left=-(canvas_width / zoom - canvas_width) / 2,
            zoom=zoom,
        )

    def world_to_screen(self, bbox: BoundingBox) -> BoundingBox:
        """Convert a world-space box to screen space."""
        if bbox.space is not CoordinateSpace.WORLD:
            raise ValueError("world_to_screen() expects a world-space box")
        return BoundingBox(
            x=(bbox.x - self.left) * self.zoom,
            y=(bbox.y - self.top) * self.zoom,
            width=bbox.width * self.zoom,
            height=bbox.height * self.zoom,
            space=CoordinateSpace.SCREEN,
        )

    def screen_to_world(self, bbox: BoundingBox) -> BoundingBox:
        """Convert a screen-space box to world space."""
        if bbox.space is not CoordinateSpace.SCREEN:
            raise ValueError("screen_to_world() expects a screen-space box")
        return BoundingBox(
            x=bbox.x / self.zoom + self.left,
            y=bbox.y / self.zoom + self.top,
            width=bbox.width / self.zoom,
            height=bbox.height / self.zoom,
            space=CoordinateSpace.WORLD,
        )

    def point_to_world(self, x: float, y: float) -> Point:
        """Convert a screen point to world coordinates."""
        return Point(x / self.zoom + self.left, y / self.zoom + self.top)

    def pan(self, dx: float, dy: float):
        """Drag the world by (dx, dy) world units (content follows the pointer)."""
        self.left -= dx
        self.top -= dy

    def zoom_at(self, x: float, y: float, delta: float,
                min_zoom: float = 0.5, wheel_factor: float = 0.01):
        """
        Zoom around a screen point, keeping the world point under it fixed.

        Args:
            x, y: Pointer position in screen coordinates
            delta: Wheel delta; positive zooms out, negative zooms in
            min_zoom: Lower bound on zoom
            wheel_factor: Relative zoom change per delta unit
        """
        world = self.point_to_world(x, y)
        new_zoom = max(min_zoom, self.zoom * (1 - delta * wheel_factor))
        if new_zoom <= 0:
            raise ValueError(f"Zoom step produced non-positive zoom {new_zoom}")
        self.left = world.x - x / new_zoom
        self.top = world.y - y / new_zoom
        self.zoom = new_zoom

    def copy(self) -> "Viewport":
        return Viewport(self.top, self.left, self.zoom)


def canvas_rect(width: float, height: float) -> BoundingBox:
    """Screen-space rectangle of the whole canvas."""
    return BoundingBox(0, 0, width, height, CoordinateSpace.SCREEN)
