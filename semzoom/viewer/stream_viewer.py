"""Generate the HTML viewer for the interactive zoom server.

Creates a self-contained HTML file that connects to the zoom server,
forwards drag and wheel input, and shows each frame the server sends.
"""

import json
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def generate_viewer_html(
    websocket_url: str = "ws://localhost:8765",
    canvas_width: int = 1200,
    canvas_height: int = 1200,
    output_path: Optional[Path] = None,
) -> str:
    """Generate the browser viewer page.

    Controls:
    - Drag to pan
    - Mouse wheel to zoom around the pointer
    - R to reset to the whole program

    Args:
        websocket_url: Zoom server URL (e.g., ws://localhost:8765)
        canvas_width: Canvas width in px
        canvas_height: Canvas height in px
        output_path: Optional path to save HTML file

    Returns:
        HTML content string
    """
    html_content = f'''<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Semantic Zoom</title>
    <style>
        body {{ font-family: sans-serif; margin: 20px; background: #f4f4f4; }}
        .info {{ margin: 10px 0; font-family: monospace; }}
        .status-indicator {{ display: inline-block; width: 10px; height: 10px; border-radius: 50%; margin-right: 6px; }}
        .status-connecting {{ background: #f39c12; }}
        .status-connected {{ background: #27ae60; }}
        .status-disconnected {{ background: #c0392b; }}
        #canvas {{
            width: {canvas_width}px; height: {canvas_height}px;
            border: 1px solid #ccc; background: white; cursor: grab;
            overflow: hidden; user-select: none;
        }}
        #canvas.dragging {{ cursor: grabbing; }}
    </style>
</head>
<body>
    <div class="info">
        <span class="status-indicator status-connecting" id="status-indicator"></span>
        <span id="status-text">Connecting...</span>
        <span style="margin-left: 20px;">Scope: <span id="chain">-</span></span>
        <span style="margin-left: 20px;">Font: <span id="font-size">-</span></span>
        <span style="margin-left: 20px;">Zoom: <span id="zoom">-</span></span>
    </div>
    <div id="canvas"></div>

    <script>
        const WEBSOCKET_URL = {json.dumps(websocket_url)};
        const MAX_RECONNECT_ATTEMPTS = 5;
        const RECONNECT_DELAY = 2000;

        let ws = null;
        let reconnectAttempts = 0;
        let dragging = false;

        const canvas = document.getElementById('canvas');
        const statusIndicator = document.getElementById('status-indicator');
        const statusText = document.getElementById('status-text');

        function send(message) {{
            if (ws && ws.readyState === WebSocket.OPEN) {{
                ws.send(JSON.stringify(message));
            }}
        }}

        function connect() {{
            statusIndicator.className = 'status-indicator status-connecting';
            statusText.textContent = 'Connecting...';
            ws = new WebSocket(WEBSOCKET_URL);

            ws.onopen = () => {{
                statusIndicator.className = 'status-indicator status-connected';
                statusText.textContent = 'Connected';
                reconnectAttempts = 0;
            }};

            ws.onmessage = (event) => {{
                const message = JSON.parse(event.data);
                if (message.type === 'frame') {{
                    canvas.innerHTML = message.svg;
                    document.getElementById('chain').textContent = message.chain.join(' > ');
                    document.getElementById('font-size').textContent = message.font_size ?? '-';
                    document.getElementById('zoom').textContent = message.viewport.zoom.toFixed(2);
                }} else if (message.type === 'error') {{
                    statusText.textContent = 'Render error: ' + message.message;
                }}
            }};

            ws.onclose = () => {{
                statusIndicator.className = 'status-indicator status-disconnected';
                if (reconnectAttempts < MAX_RECONNECT_ATTEMPTS) {{
                    reconnectAttempts++;
                    statusText.textContent = `Reconnecting (attempt ${{reconnectAttempts}}/${{MAX_RECONNECT_ATTEMPTS}})...`;
                    setTimeout(connect, RECONNECT_DELAY);
                }} else {{
                    statusText.textContent = 'Connection failed';
                }}
            }};
        }}

        canvas.addEventListener('mousedown', () => {{
            dragging = true;
            canvas.classList.add('dragging');
        }});
        window.addEventListener('mouseup', () => {{
            dragging = false;
            canvas.classList.remove('dragging');
        }});
        window.addEventListener('mousemove', (e) => {{
            if (dragging) send({{type: 'drag', dx: e.movementX, dy: e.movementY}});
        }});
        canvas.addEventListener('wheel', (e) => {{
            e.preventDefault();
            const rect = canvas.getBoundingClientRect();
            send({{type: 'wheel', x: e.clientX - rect.left, y: e.clientY - rect.top, delta: e.deltaY}});
        }}, {{passive: false}});
        document.addEventListener('keydown', (e) => {{
            if (e.key === 'r' || e.key === 'R') send({{type: 'reset'}});
        }});
        setInterval(() => send({{type: 'ping'}}), 15000);

        connect();
    </script>
</body>
</html>'''

    if output_path:
        Path(output_path).write_text(html_content)
        logger.info(f"Generated zoom viewer HTML at {output_path}")

    return html_content
