"""Integration tests for the zoom WebSocket server, using an in-memory client."""

import asyncio
import json

import pytest

from semzoom.errors import LayoutError
from semzoom.render.svg import SvgFrameRenderer
from semzoom.scope.navigator import ScopeNavigator
from semzoom.scope.session import ZoomSession
from semzoom.viewer.stream_server import ZoomStreamServer
from semzoom.viewer.stream_viewer import generate_viewer_html

pytestmark = pytest.mark.integration


class FakeWebSocket:
    """Records sent messages and replays scripted incoming ones."""

    remote_address = ("127.0.0.1", 50000)

    def __init__(self, incoming=()):
        self.incoming = list(incoming)
        self.sent = []
        self.closed = False

    async def send(self, message):
        self.sent.append(json.loads(message))

    async def close(self):
        self.closed = True

    def __aiter__(self):
        return self._messages()

    async def _messages(self):
        for message in self.incoming:
            await asyncio.sleep(0)
            yield message if isinstance(message, str) else json.dumps(message)
        # let the last scheduled frame go out before disconnecting
        await asyncio.sleep(0.05)

    def of_type(self, msg_type):
        return [m for m in self.sent if m["type"] == msg_type]


@pytest.fixture
def server(fib_history, fib_source, measurer):
    navigator = ScopeNavigator(fib_source, measurer, 200, 200)
    session = ZoomSession(fib_history, navigator)
    return ZoomStreamServer(session, SvgFrameRenderer(200, 200), max_fps=1000)


class TestZoomStreamServer:
    """Tests for message handling and frame broadcasting."""

    def test_welcome_and_first_frame(self, server):
        ws = FakeWebSocket()
        asyncio.run(server._handle_client(ws))

        assert ws.sent[0] == {"type": "welcome", "fps": 1000, "canvas": {"width": 200, "height": 200}}
        (frame,) = ws.of_type("frame")
        assert frame["chain"] == ["<module>"]
        # at the initial zoom the whole program does not cover the canvas
        assert frame["transition"] == "reset"
        assert frame["frame"] == 1
        assert frame["svg"].startswith("<svg")
        assert frame["viewport"]["zoom"] == 0.5
        assert server.clients == set()

    def test_input_updates_viewport(self, server):
        ws = FakeWebSocket([
            {"type": "wheel", "x": 100, "y": 100, "delta": -100},
            {"type": "drag", "dx": 10, "dy": 0},
        ])
        asyncio.run(server._handle_client(ws))

        last = ws.of_type("frame")[-1]
        assert last["viewport"]["zoom"] == pytest.approx(1.0)
        assert server.session.viewport.zoom == pytest.approx(1.0)

    def test_ping(self, server):
        ws = FakeWebSocket([{"type": "ping"}])
        asyncio.run(server._handle_client(ws))
        assert ws.of_type("pong") == [{"type": "pong"}]

    def test_malformed_messages_are_ignored(self, server):
        ws = FakeWebSocket([
            "not json",
            {"type": "drag"},
            {"type": "wheel", "x": "a", "y": 0, "delta": 1},
            [1, 2],
            {"type": "teleport"},
            {"type": "ping"},
        ])
        asyncio.run(server._handle_client(ws))

        assert ws.of_type("pong")
        assert server.session.viewport.zoom == 0.5

    def test_reset(self, server):
        server.session.set_viewport(top=0, left=10000, zoom=3)
        ws = FakeWebSocket([{"type": "reset"}])
        asyncio.run(server._handle_client(ws))

        assert server.session.viewport.zoom == 0.5
        assert ws.of_type("frame")[-1]["chain"] == ["<module>"]

    def test_inputs_coalesce_into_one_frame(self, server):
        """Inputs arriving before the pending frame fires share that frame."""
        ws = FakeWebSocket()

        async def run():
            server.clients.add(ws)
            await server._handle_client_message(ws, {"type": "wheel", "x": 0, "y": 0, "delta": -10})
            await server._handle_client_message(ws, {"type": "drag", "dx": 5, "dy": 5})
            await server._handle_client_message(ws, {"type": "frame"})
            await server.flush()

        asyncio.run(run())

        assert server.frames_sent == 1
        assert server.session.frame_count == 1
        assert len(ws.of_type("frame")) == 1

    def test_render_error_is_reported(self, server, monkeypatch):
        def broken():
            raise LayoutError("layout offset overflow")

        monkeypatch.setattr(server.session, "render", broken)
        ws = FakeWebSocket()

        async def run():
            server.clients.add(ws)
            server.schedule_frame()
            await server.flush()

        asyncio.run(run())

        assert ws.of_type("error") == [{"type": "error", "message": "layout offset overflow"}]
        assert ws.of_type("frame") == []
        assert server.render_errors == 1

    def test_unexpected_render_error_is_reported(self, server, monkeypatch):
        """A crash outside the SemZoom error hierarchy still reaches the clients."""
        def crashing():
            raise RuntimeError("glyph backend unavailable")

        monkeypatch.setattr(server.session, "render", crashing)
        ws = FakeWebSocket()

        async def run():
            server.clients.add(ws)
            server.schedule_frame()
            await server.flush()

        asyncio.run(run())

        assert ws.of_type("error") == [
            {"type": "error", "message": "RuntimeError: glyph backend unavailable"}
        ]
        assert server.render_errors == 1

    def test_stats(self, server):
        asyncio.run(server._handle_client(FakeWebSocket()))

        stats = server.get_stats()
        assert stats["frames_sent"] == 1
        assert stats["bytes_sent"] > 0
        assert stats["clients_connected"] == 0

    def test_invalid_fps(self, server):
        with pytest.raises(ValueError):
            ZoomStreamServer(server.session, server.renderer, max_fps=0)

    def test_url(self, server):
        assert server.url == "ws://localhost:8765"


class TestViewerHtml:
    """Tests for the browser viewer page."""

    def test_generate(self, tmp_path):
        path = tmp_path / "viewer.html"
        html = generate_viewer_html("ws://localhost:9000", 300, 200, output_path=path)

        assert path.read_text() == html
        assert "ws://localhost:9000" in html
        assert "<!DOCTYPE html>" in html
