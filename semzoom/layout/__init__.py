"""Box tree layout and auto-fit search."""

from .boxes import (
    BoundingBox,
    Box,
    BoxArena,
    ContainerBox,
    CoordinateSpace,
    Direction,
    LayoutMap,
    Point,
    TextBox,
)
from .measure import FontSetting, TextMeasurer, FixedWidthMeasurer, GlyphCacheMeasurer
from .layout import layout, layout_size
from .fit import FitConfig, FitResult, fit_box, fit_text, fits_at, text_block

__all__ = [
    "BoundingBox",
    "Box",
    "BoxArena",
    "ContainerBox",
    "CoordinateSpace",
    "Direction",
    "LayoutMap",
    "Point",
    "TextBox",
    "FontSetting",
    "TextMeasurer",
    "FixedWidthMeasurer",
    "GlyphCacheMeasurer",
    "layout",
    "layout_size",
    "FitConfig",
    "FitResult",
    "fit_box",
    "fit_text",
    "fits_at",
    "text_block",
]
