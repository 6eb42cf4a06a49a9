"""Tests for the world/screen viewport."""

import pytest

from semzoom.layout.boxes import BoundingBox, CoordinateSpace
from semzoom.scope.viewport import Viewport, canvas_rect


class TestViewport:
    """Tests for coordinate conversion and input handling."""

    def test_centered(self):
        """At zoom 0.5 the canvas-sized world rectangle sits in the middle."""
        vp = Viewport.centered(1200, 1200, 0.5)
        assert (vp.top, vp.left) == (-600, -600)

        screen = vp.world_to_screen(BoundingBox(0, 0, 1200, 1200, CoordinateSpace.WORLD))
        assert (screen.x, screen.y, screen.width, screen.height) == (300, 300, 600, 600)

    def test_roundtrip(self):
        vp = Viewport(top=12.5, left=-40, zoom=3.2)
        world = BoundingBox(10, 20, 30, 40, CoordinateSpace.WORLD)

        back = vp.screen_to_world(vp.world_to_screen(world))
        assert back.space is CoordinateSpace.WORLD
        assert (back.x, back.y, back.width, back.height) == pytest.approx((10, 20, 30, 40))

    def test_wrong_space_rejected(self):
        vp = Viewport()
        with pytest.raises(ValueError):
            vp.world_to_screen(canvas_rect(10, 10))
        with pytest.raises(ValueError):
            vp.screen_to_world(BoundingBox(0, 0, 1, 1, CoordinateSpace.WORLD))

    def test_zoom_must_be_positive(self):
        with pytest.raises(ValueError):
            Viewport(zoom=0)

    def test_pan(self):
        """Dragging moves the content with the pointer."""
        vp = Viewport(top=0, left=0, zoom=2)
        vp.pan(10, -5)
        assert (vp.left, vp.top) == (-10, 5)

    @pytest.mark.parametrize("delta", [-50, -3, 7, 40])
    def test_zoom_keeps_pointer_fixed(self, delta):
        """The world point under the pointer does not move."""
        vp = Viewport(top=-100, left=30, zoom=2.0)
        before = vp.point_to_world(250, 410)
        vp.zoom_at(250, 410, delta)
        after = vp.point_to_world(250, 410)

        assert (after.x, after.y) == pytest.approx((before.x, before.y))

    def test_zoom_factor(self):
        vp = Viewport(zoom=2.0)
        vp.zoom_at(0, 0, -10)
        assert vp.zoom == pytest.approx(2.2)

    def test_min_zoom(self):
        """Zooming out stops at min_zoom."""
        vp = Viewport(zoom=1.0)
        vp.zoom_at(100, 100, 90, min_zoom=0.5)
        assert vp.zoom == 0.5
