"""Frame rendering to SVG and HTML."""

from .svg import CapturedFrame, SvgFrameRenderer

__all__ = ["CapturedFrame", "SvgFrameRenderer"]
