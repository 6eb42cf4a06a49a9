"""SVG rendering of semantic zoom frames.

Every rendered scope is drawn in navigator order (outer scopes first), so a
nested scope clears the call-expression text it replaces before drawing its
own label or code box. Frames can be captured during a zoom run and exported
as individual SVG files or an HTML playback report.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union
from xml.sax.saxutils import escape, quoteattr

from ..color_manager import get_color_manager
from ..layout.boxes import BoundingBox, TextBox
from ..scope.navigator import FrameResult, RenderedScope, ScopeKind

logger = logging.getLogger(__name__)


@dataclass
class CapturedFrame:
    """A rendered frame kept for export."""
    frame: FrameResult
    index: int
    label: str = ""

    @property
    def chain_label(self) -> str:
        return " > ".join(scope.fun_name for scope in reversed(self.frame.chain))


class SvgFrameRenderer:
    """Renders navigator frames to SVG and HTML.

    Coordinates in a FrameResult are already screen px, so the SVG canvas
    maps 1:1 onto the navigator canvas.
    """

    def __init__(
        self,
        canvas_width: float,
        canvas_height: float,
        output_dir: Optional[Union[str, Path]] = None,
        font_family: str = "Monaco",
        font_weight: str = "normal",
    ):
        """
        Args:
            canvas_width, canvas_height: Canvas size in px
            output_dir: Directory for exported files
            font_family: CSS font family for all text
            font_weight: CSS font weight for all text
        """
        self.width = canvas_width
        self.height = canvas_height
        self.output_dir = Path(output_dir) if output_dir else Path("./semzoom_frames")
        self.font_family = font_family
        self.font_weight = font_weight
        self.frames: List[CapturedFrame] = []

    def capture(self, frame: FrameResult, label: str = "") -> CapturedFrame:
        """Keep a frame for later export."""
        captured = CapturedFrame(frame=frame, index=len(self.frames), label=label)
        self.frames.append(captured)
        return captured

    def render_frame_svg(self, frame: FrameResult, title: str = "") -> str:
        """Render a single frame as SVG string."""
        colors = get_color_manager()
        lines = [
            f'<svg xmlns="http://www.w3.org/2000/svg" '
            f'width="{self.width}" height="{self.height}" '
            f'viewBox="0 0 {self.width} {self.height}">'
        ]
        if title:
            lines.append(f"<title>{escape(title)}</title>")

        # Background
        lines.append(
            f'<rect width="100%" height="100%" fill="{colors.get_frame_color("background")}"/>'
        )

        for rendered in frame.rendered:
            lines.append(self._render_scope(rendered))

        # Canvas outline
        lines.append(
            f'<rect x="0" y="0" width="{self.width}" height="{self.height}" '
            f'fill="none" stroke="{colors.get_frame_color("canvas_outline")}" stroke-width="1"/>'
        )
        lines.append("</svg>")
        return "\n".join(lines)

    def _render_scope(self, rendered: RenderedScope) -> str:
        """Clear the scope's rectangle, outline it and draw its text boxes."""
        colors = get_color_manager()
        rect = rendered.screen_rect
        if rendered.anchors:
            outline = colors.get_frame_color("anchor_outline")
        elif rendered.kind is ScopeKind.LABEL:
            outline = colors.get_frame_color("scope_outline")
        else:
            outline = colors.get_function_color(rendered.scope.fun_name)

        parts = [
            f'<g class="scope {rendered.kind.value}" data-fun={quoteattr(rendered.scope.fun_name)} '
            f'data-level="{rendered.level}">',
            self._rect(rect, f'fill="{colors.get_frame_color("background")}" '
                             f'stroke="{outline}" stroke-width="1"'),
        ]
        for box in rendered.arena.text_boxes(rendered.root):
            if box.text:
                parts.append(self._render_text(box, rendered.layout[box.box_id], rendered.font_size))
        parts.append("</g>")
        return "\n".join(parts)

    def _render_text(self, box: TextBox, bbox: BoundingBox, font_size: int) -> str:
        color = box.color or get_color_manager().get_code_color("code")
        return (
            f'<text x="{bbox.x:.2f}" y="{bbox.y:.2f}" dominant-baseline="hanging" '
            f'xml:space="preserve" font-family={quoteattr(self.font_family)} '
            f'font-weight="{self.font_weight}" font-size="{font_size}" '
            f'fill="{color}">{escape(box.text)}</text>'
        )

    @staticmethod
    def _rect(rect: BoundingBox, style: str) -> str:
        return (
            f'<rect x="{rect.x:.2f}" y="{rect.y:.2f}" '
            f'width="{rect.width:.2f}" height="{rect.height:.2f}" {style}/>'
        )

    def export_frame(self, captured: CapturedFrame, filename: str = None) -> Path:
        """Export a single captured frame as SVG file."""
        if filename is None:
            filename = f"frame_{captured.index:04d}.svg"
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / filename
        path.write_text(self.render_frame_svg(captured.frame, captured.label))
        logger.debug(f"Exported frame to {path}")
        return path

    def export_all_frames(self) -> List[Path]:
        """Export all captured frames."""
        return [self.export_frame(captured) for captured in self.frames]

    def export_html_report(self, filename: str = "zoom_report.html") -> Optional[Path]:
        """Generate an HTML page listing captured frames by scope chain and transition."""
        if not self.frames:
            logger.warning("No frames to export")
            return None

        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / filename

        frame_svgs = []
        for captured in self.frames:
            frame_svgs.append({
                "index": captured.index,
                "label": captured.label or f"Frame {captured.index}",
                "chain": captured.chain_label,
                "transition": captured.frame.transition.value,
                "svg": self.render_frame_svg(captured.frame).replace("\n", ""),
            })
        # keeps "</script>" inside an SVG text from closing the script element
        frames_json = json.dumps(frame_svgs).replace("</", "<\\/")

        html = f'''<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Semantic Zoom Report</title>
    <style>
        body {{ font-family: sans-serif; margin: 0; display: flex; height: 100vh; }}
        #steps {{ width: 320px; overflow-y: auto; border-right: 1px solid #ccc; margin: 0; padding: 0; }}
        #steps li {{ list-style: none; padding: 6px 10px; cursor: pointer; font-size: 13px; }}
        #steps li.selected {{ background: #fde9d9; }}
        #steps .chain {{ font-family: monospace; color: #555; }}
        #steps .descend {{ color: #1f5fbf; }}
        #steps .ascend {{ color: #c0392b; }}
        #view {{ flex: 1; overflow: auto; padding: 10px; }}
    </style>
</head>
<body>
    <ol id="steps"></ol>
    <div id="view"></div>
    <script>
        const frames = {frames_json};
        const steps = document.getElementById('steps');
        let selected = 0;

        frames.forEach((frame, i) => {{
            const item = document.createElement('li');
            item.className = frame.transition;
            const title = document.createElement('div');
            title.textContent = frame.label + ' [' + frame.transition + ']';
            const chain = document.createElement('div');
            chain.className = 'chain';
            chain.textContent = frame.chain;
            item.append(title, chain);
            item.onclick = () => select(i);
            steps.appendChild(item);
        }});

        function select(i) {{
            selected = Math.max(0, Math.min(frames.length - 1, i));
            steps.querySelectorAll('li').forEach((item, j) => item.classList.toggle('selected', j === selected));
            steps.children[selected].scrollIntoView({{ block: 'nearest' }});
            document.getElementById('view').innerHTML = frames[selected].svg;
        }}

        document.addEventListener('keydown', (e) => {{
            if (e.key === 'ArrowUp') select(selected - 1);
            if (e.key === 'ArrowDown') select(selected + 1);
        }});
        select(0);
    </script>
</body>
</html>'''

        path.write_text(html)
        logger.info(f"Exported HTML report to {path}")
        return path

    def clear_frames(self):
        """Clear all captured frames."""
        self.frames = []
