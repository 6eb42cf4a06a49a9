"""Box tree layout at a fixed font size.

Given a box, an origin offset, a font size and a measurer whose font has
already been set, layout() computes a bounding box for the box and every
descendant, keyed by box id.
"""

import math
from typing import Tuple

from .boxes import (
    Box,
    BoundingBox,
    ContainerBox,
    CoordinateSpace,
    Direction,
    LayoutMap,
    Point,
    TextBox,
)
from .measure import TextMeasurer
from ..errors import LayoutOverflowError, UnsupportedBoxError


def layout(
    box: Box,
    offset: Point,
    font_size: float,
    measurer: TextMeasurer,
    line_height: float = 1.0,
    space: CoordinateSpace = CoordinateSpace.SCREEN,
) -> LayoutMap:
    """
    Lay out a box tree.

    Args:
        box: Root of the tree
        offset: Position of the root's top-left corner
        font_size: Font size in px; text boxes are font_size * line_height tall
        measurer: Text measurer, already set to the font being laid out
        line_height: Line height multiplier
        space: Coordinate space the resulting boxes are expressed in

    Returns:
        Mapping from box id to bounding box, covering box and all descendants

    Raises:
        UnsupportedBoxError: Unknown box variant or container direction
        LayoutOverflowError: An offset wrapped or became non-finite
    """
    result: LayoutMap = {}
    _layout_into(box, offset.x, offset.y, font_size, measurer, line_height, space, result)
    return result


def _layout_into(
    box: Box,
    x: float,
    y: float,
    font_size: float,
    measurer: TextMeasurer,
    line_height: float,
    space: CoordinateSpace,
    out: LayoutMap,
) -> Tuple[float, float]:
    """Lay out box at (x, y) into out; return its (width, height)."""
    if isinstance(box, TextBox):
        width = measurer.measure_text(box.text)
        height = font_size * line_height
        out[box.box_id] = BoundingBox(x, y, width, height, space)
        return width, height

    if not isinstance(box, ContainerBox):
        raise UnsupportedBoxError(f"Unknown box variant: {type(box).__name__}")

    if box.direction is Direction.VERTICAL:
        y_offset = y
        my_width = 0.0
        my_height = 0.0
        for child in box.children:
            child_width, child_height = _layout_into(
                child, x, y_offset, font_size, measurer, line_height, space, out
            )
            y_offset = _advance(y_offset, child_height, "y")
            my_height = _advance(my_height, child_height, "height")
            if child_width > my_width:
                my_width = child_width
    elif box.direction is Direction.HORIZONTAL:
        x_offset = x
        my_width = 0.0
        my_height = 0.0
        for child in box.children:
            child_width, child_height = _layout_into(
                child, x_offset, y, font_size, measurer, line_height, space, out
            )
            x_offset = _advance(x_offset, child_width, "x")
            my_width = _advance(my_width, child_width, "width")
            if child_height > my_height:
                my_height = child_height
    else:
        raise UnsupportedBoxError(f"Unknown container direction: {box.direction!r}")

    out[box.box_id] = BoundingBox(x, y, my_width, my_height, space)
    return my_width, my_height


def _advance(offset: float, increment: float, axis: str) -> float:
    """Add a non-negative increment to an accumulating offset.

    A result that moved backwards or is no longer finite means the layout
    is degenerate (effectively infinite).
    """
    new_offset = offset + increment
    if not math.isfinite(new_offset) or (increment >= 0 and new_offset < offset):
        raise LayoutOverflowError(
            f"Layout {axis} offset overflowed",
            offset=offset, increment=increment, result=new_offset,
        )
    return new_offset


def layout_size(box: Box, layout_map: LayoutMap) -> Tuple[float, float]:
    """Get (width, height) of box in a layout map."""
    bbox = layout_map[box.box_id]
    return bbox.width, bbox.height
