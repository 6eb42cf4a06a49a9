"""WebSocket server for interactive semantic zoom.

Browser clients send pointer input; the server owns the ZoomSession, renders
frames and broadcasts them as SVG to every connected viewer.

Input handlers only mutate the session viewport and make sure one frame is
scheduled. Any number of inputs arriving before that frame fires are
coalesced into it (last write wins), and the frame rate is capped at
max_fps.

Client messages:
- {"type": "drag", "dx": float, "dy": float} - pan by a pointer movement (px)
- {"type": "wheel", "x": float, "y": float, "delta": float} - zoom at pointer
- {"type": "reset"} - back to the initial viewport and root scope
- {"type": "frame"} - request a redraw
- {"type": "ping"} - keep-alive

Usage:
    server = ZoomStreamServer(session, renderer, host='localhost', port=8765)
    await server.start()
"""

import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional, Set

import websockets

from ..errors import SemZoomError
from ..render.svg import SvgFrameRenderer
from ..scope.navigator import FrameResult
from ..scope.session import ZoomSession

logger = logging.getLogger(__name__)


class ZoomStreamServer:
    """Streams zoom frames to connected browsers and applies their input."""

    def __init__(
        self,
        session: ZoomSession,
        renderer: SvgFrameRenderer,
        host: str = "localhost",
        port: int = 8765,
        max_fps: float = 30.0,
    ):
        """
        Args:
            session: Zoom session driven by client input
            renderer: Renderer producing the SVG for each frame
            host: Server host address
            port: Server port
            max_fps: Maximum frame rate (frames per second)
        """
        if max_fps <= 0:
            raise ValueError(f"max_fps must be positive, got {max_fps}")
        self.session = session
        self.renderer = renderer
        self.host = host
        self.port = port
        self.max_fps = max_fps
        self.min_frame_interval = 1.0 / max_fps

        self.clients: Set[Any] = set()
        self.server = None
        self._pending: Optional[asyncio.Task] = None

        # Statistics
        self.frames_sent = 0
        self.bytes_sent = 0
        self.render_errors = 0
        self.last_frame_time = 0.0
        self.start_time = 0.0

    @property
    def url(self) -> str:
        return f"ws://{self.host}:{self.port}"

    async def start(self):
        """Start the WebSocket server."""
        self.start_time = time.time()
        self.server = await websockets.serve(
            self._handle_client,
            self.host,
            self.port,
            ping_interval=20,
            ping_timeout=10,
        )
        logger.info(f"Zoom server started on {self.url}")

    async def stop(self):
        """Stop the server, drop any pending frame and disconnect all clients."""
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        if self.server:
            self.server.close()
            await self.server.wait_closed()
            logger.info("Zoom server stopped")

        if self.clients:
            await asyncio.gather(
                *[client.close() for client in self.clients],
                return_exceptions=True
            )
            self.clients.clear()

    async def serve_forever(self):
        """Start and run until cancelled."""
        await self.start()
        try:
            await asyncio.Future()
        finally:
            await self.stop()

    async def _handle_client(self, websocket):
        """Handle a client connection.

        Args:
            websocket: Client WebSocket connection
        """
        self.clients.add(websocket)
        client_addr = getattr(websocket, "remote_address", None)
        logger.info(f"Client connected: {client_addr}")

        try:
            await websocket.send(json.dumps({
                "type": "welcome",
                "fps": self.max_fps,
                "canvas": {"width": self.renderer.width, "height": self.renderer.height},
            }))
            self.schedule_frame()

            async for message in websocket:
                try:
                    data = json.loads(message)
                    await self._handle_client_message(websocket, data)
                except json.JSONDecodeError:
                    logger.warning(f"Invalid JSON from {client_addr}: {message}")
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(f"Malformed message from {client_addr}: {e}")

        except websockets.exceptions.ConnectionClosed:
            logger.info(f"Client disconnected: {client_addr}")
        finally:
            self.clients.discard(websocket)

    async def _handle_client_message(self, websocket, data: Dict):
        """Apply one client message to the session."""
        if not isinstance(data, dict):
            raise TypeError("message must be a JSON object")
        msg_type = data.get("type")

        if msg_type == "drag":
            self.session.drag(float(data["dx"]), float(data["dy"]))
            self.schedule_frame()

        elif msg_type == "wheel":
            self.session.wheel(float(data["x"]), float(data["y"]), float(data["delta"]))
            self.schedule_frame()

        elif msg_type == "reset":
            self.session.reset()
            self.schedule_frame()

        elif msg_type == "frame":
            self.schedule_frame()

        elif msg_type == "ping":
            await websocket.send(json.dumps({"type": "pong"}))

        else:
            logger.warning(f"Unknown message type: {msg_type}")

    def schedule_frame(self):
        """Make sure exactly one frame is pending."""
        if self._pending is None or self._pending.done():
            self._pending = asyncio.get_running_loop().create_task(self._frame_task())

    async def flush(self):
        """Wait for the pending frame, if any, to be rendered and sent."""
        if self._pending is not None:
            await self._pending

    async def _frame_task(self):
        wait = self.last_frame_time + self.min_frame_interval - time.monotonic()
        if wait > 0:
            await asyncio.sleep(wait)
        # inputs arriving from here on schedule the next frame
        self._pending = None
        self.last_frame_time = time.monotonic()

        try:
            frame = self.session.render()
            svg = self.renderer.render_frame_svg(frame)
        except (SemZoomError, ValueError) as e:
            # nothing partial is published; the next input retries
            await self._report_render_error(f"Frame render failed: {e}", str(e))
            return
        except Exception as e:
            await self._report_render_error(f"Frame render crashed: {e}", f"{type(e).__name__}: {e}")
            return

        message = json.dumps(self.frame_message(frame, svg))
        await self._broadcast(message)
        self.frames_sent += 1
        self.bytes_sent += len(message)

    async def _report_render_error(self, log_message: str, client_message: str):
        self.render_errors += 1
        logger.error(log_message)
        await self._broadcast(json.dumps({"type": "error", "message": client_message}))

    def frame_message(self, frame: FrameResult, svg: str) -> Dict[str, Any]:
        """Build the JSON payload for a rendered frame."""
        viewport = self.session.viewport
        return {
            "type": "frame",
            "svg": svg,
            "chain": [scope.fun_name for scope in reversed(frame.chain)],
            "transition": frame.transition.value,
            "font_size": frame.rendered[0].font_size if frame.rendered else None,
            "frame": self.session.frame_count,
            "viewport": {"top": viewport.top, "left": viewport.left, "zoom": viewport.zoom},
        }

    async def _broadcast(self, message: str):
        """Send a message to all connected clients, dropping disconnected ones."""
        if not self.clients:
            return

        disconnected = set()
        for client in list(self.clients):
            try:
                await client.send(message)
            except websockets.exceptions.ConnectionClosed:
                disconnected.add(client)

        self.clients -= disconnected

    def get_stats(self) -> Dict[str, Any]:
        """Get server statistics."""
        uptime = time.time() - self.start_time if self.start_time else 0
        return {
            "clients_connected": len(self.clients),
            "frames_sent": self.frames_sent,
            "bytes_sent": self.bytes_sent,
            "render_errors": self.render_errors,
            "uptime_seconds": uptime,
            "avg_fps": self.frames_sent / uptime if uptime > 0 else 0,
        }
