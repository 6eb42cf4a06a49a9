"""Interactive browser viewer: WebSocket zoom server and its HTML page."""

from .stream_server import ZoomStreamServer
from .stream_viewer import generate_viewer_html

__all__ = ["ZoomStreamServer", "generate_viewer_html"]
