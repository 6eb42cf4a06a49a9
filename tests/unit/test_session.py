"""Tests for ZoomSession input handling and frame bookkeeping."""

import pytest

from semzoom.config import SemZoomConfig, ViewportConfig
from semzoom.scope.navigator import ScopeNavigator, Transition
from semzoom.scope.session import ZoomSession, create_session
from semzoom.scope.viewport import Viewport


@pytest.fixture
def session(fib_history, fib_source, measurer):
    navigator = ScopeNavigator(fib_source, measurer, 200, 200)
    return ZoomSession(fib_history, navigator)


class TestZoomSession:
    """Tests for viewport input and chain updates."""

    def test_initial_state(self, session):
        assert session.chain == (session.root,)
        assert session.viewport.zoom == 0.5
        assert (session.viewport.left, session.viewport.top) == (-100, -100)
        assert session.frame_count == 0
        assert session.last_frame is None

    def test_empty_history_rejected(self, fib_source, measurer):
        navigator = ScopeNavigator(fib_source, measurer, 200, 200)
        with pytest.raises(ValueError):
            ZoomSession([], navigator)

    def test_drag_converts_screen_to_world(self, session):
        """A 10 px drag at zoom 0.5 moves 20 world units."""
        left, top = session.viewport.left, session.viewport.top
        session.drag(10, -4)

        assert session.viewport.left == pytest.approx(left - 20)
        assert session.viewport.top == pytest.approx(top + 8)

    def test_wheel_respects_min_zoom(self, session):
        session.wheel(100, 100, 500)
        assert session.viewport.zoom == 0.5

        session.wheel(100, 100, -50)
        assert session.viewport.zoom == pytest.approx(0.75)

    def test_input_does_not_touch_chain(self, session):
        """Only render() changes the scope chain."""
        chain = session.chain
        session.wheel(100, 100, -500)
        session.drag(3, 3)
        assert session.chain is chain

    def test_render_adopts_chain(self, session):
        session.set_viewport(top=0, left=0, zoom=1)
        frame = session.render()

        assert session.frame_count == 1
        assert session.last_frame is frame
        assert session.chain == frame.chain
        assert frame.transition is Transition.STAY

    def test_reset(self, session):
        session.set_viewport(top=0, left=10000, zoom=4)
        session.render()
        session.reset()

        assert session.chain == (session.root,)
        assert session.viewport.zoom == 0.5
        assert session.viewport.left == -100

    def test_chain_names_root_first(self, session):
        first = session.navigator.render_frame(session.chain, Viewport(0, 0, 1))
        child = [r for r in first.rendered if r.level == 1][0]
        session.chain = (child.scope, session.root)

        assert session.chain_names() == ["<module>", "fib"]

    def test_custom_viewport_config(self, fib_history, fib_source, measurer):
        navigator = ScopeNavigator(fib_source, measurer, 200, 200)
        session = ZoomSession(
            fib_history, navigator, config=ViewportConfig(initial_zoom=1.0, min_zoom=0.1)
        )
        assert (session.viewport.left, session.viewport.top, session.viewport.zoom) == (0, 0, 1.0)


class TestCreateSession:
    """Tests for the session factory."""

    def test_uses_configured_canvas(self, fib_history, fib_source):
        config = SemZoomConfig()
        config.canvas.width = 300
        config.canvas.height = 150

        session = create_session(fib_history, fib_source, config)

        assert session.navigator.canvas.width == 300
        assert session.navigator.canvas.height == 150
        assert session.root.bbox.width == 300
        assert session.navigator.measurer.char_width_ratio == config.text.char_width_ratio

    def test_renders_with_defaults(self, fib_history, fib_source):
        session = create_session(fib_history, fib_source)
        frame = session.render()

        assert frame.rendered
        assert frame.rendered[0].scope is session.root
