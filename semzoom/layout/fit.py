"""
Auto-Fit Search

Finds the largest integer font size at which a box tree fits inside a
target rectangle, by repeatedly laying the tree out:

1. Start at a small candidate size
2. Double while the tree fits and no failing size is known yet
3. Halve while it does not fit and no fitting size is known yet
4. Bisect between the largest fitting and smallest failing size
   until the midpoint stops moving

This relies on layout size being non-decreasing in font size, which holds
for the text/container model. The search is bounded both in iterations and
in font size so a non-monotonic measurer surfaces as a FitError instead of
spinning forever.

The final layout is centered in the target by shifting every entry, not by
laying out again.
"""

import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from .boxes import Box, BoundingBox, BoxArena, LayoutMap, Point
from .layout import layout
from .measure import FontSetting, TextMeasurer
from ..errors import FitError

logger = logging.getLogger(__name__)


@dataclass
class FitConfig:
    """Bounds and starting point of the font size search."""
    initial_font_size: int = 5
    max_iterations: int = 64  # layout passes before giving up
    max_font_size: int = 4096  # doubling stops here


@dataclass
class FitResult:
    """Result of an auto-fit search."""
    font_size: int
    layout: LayoutMap
    width: float = 0.0  # size of the laid out tree before centering
    height: float = 0.0
    iterations: int = 0
    capped: bool = False  # stopped at max_font_size rather than by bisection

    def __iter__(self) -> Iterator[Union[int, LayoutMap]]:
        """Allow `font_size, layout_map = fit_box(...)`."""
        yield self.font_size
        yield self.layout


def fit_box(
    box: Box,
    target: BoundingBox,
    measurer: TextMeasurer,
    font_family: str = "monospace",
    font_weight: str = "normal",
    line_height: float = 1.0,
    config: Optional[FitConfig] = None,
) -> FitResult:
    """
    Fit a box tree into a target rectangle.

    Args:
        box: Root of the box tree
        target: Rectangle to fit into; results share its coordinate space
        measurer: Text measurer (its font is changed during the search)
        font_family: Font family for every text box
        font_weight: Font weight for every text box
        line_height: Line height multiplier
        config: Search bounds

    Returns:
        FitResult with the chosen font size and the centered layout

    Raises:
        FitError: Nothing fits even at size 1, or the search did not converge
    """
    config = config or FitConfig()
    lower: Optional[int] = None  # largest size known to fit
    upper: Optional[int] = None  # smallest size known not to fit
    font_size = config.initial_font_size
    origin = Point(target.x, target.y)
    iterations = 0
    capped = False

    while True:
        if font_size <= 0:
            raise FitError(
                f"Content cannot fit in {target.width:g}x{target.height:g} at any font size"
            )
        if iterations >= config.max_iterations:
            raise FitError(
                f"Font size search did not converge after {iterations} iterations "
                f"(lower={lower}, upper={upper}); is text measurement monotonic?"
            )
        iterations += 1

        measurer.set_font(FontSetting(font_size, font_family, font_weight))
        layout_map = layout(box, origin, font_size, measurer, line_height, target.space)
        my_bbox = layout_map[box.box_id]
        fits = my_bbox.width <= target.width and my_bbox.height <= target.height

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"fit try size={font_size} -> {my_bbox.width:.1f}x{my_bbox.height:.1f} "
                f"{'fits' if fits else 'overflows'}"
            )

        if fits:
            lower = font_size
            if upper is not None:
                new_font_size = (upper + lower) // 2
            else:
                new_font_size = min(font_size * 2, config.max_font_size)
                if new_font_size == font_size:
                    capped = True
                    logger.warning(
                        f"Font size search reached max_font_size={config.max_font_size}"
                    )
        else:
            upper = font_size
            if lower is not None:
                new_font_size = (lower + upper) // 2
            else:
                new_font_size = font_size // 2

        if new_font_size == font_size:
            break
        font_size = new_font_size

    dx = (target.width - my_bbox.width) / 2
    dy = (target.height - my_bbox.height) / 2
    centered = {box_id: bbox.translated(dx, dy) for box_id, bbox in layout_map.items()}

    logger.debug(f"fit converged at size={font_size} after {iterations} iterations")
    return FitResult(
        font_size=font_size,
        layout=centered,
        width=my_bbox.width,
        height=my_bbox.height,
        iterations=iterations,
        capped=capped,
    )


def text_block(arena: BoxArena, text: str, color: Optional[str] = None) -> Box:
    """Build a vertical container with one text box per line of text."""
    lines = text.split("\n")
    if len(lines) == 1:
        return arena.text(lines[0], color)
    return arena.vertical([arena.text(line, color) for line in lines])


def fit_text(
    text: str,
    target: BoundingBox,
    measurer: TextMeasurer,
    font_family: str = "monospace",
    font_weight: str = "normal",
    line_height: float = 1.2,
    color: Optional[str] = None,
    config: Optional[FitConfig] = None,
):
    """
    Fit a (possibly multi-line) string into a rectangle.

    Returns:
        Tuple of (arena, root box, FitResult)
    """
    arena = BoxArena()
    root = text_block(arena, text, color)
    result = fit_box(root, target, measurer, font_family, font_weight, line_height, config)
    return arena, root, result


def fits_at(
    box: Box,
    target: BoundingBox,
    measurer: TextMeasurer,
    font_size: int,
    font_family: str = "monospace",
    font_weight: str = "normal",
    line_height: float = 1.0,
) -> bool:
    """Check whether a box tree fits in target at one font size."""
    measurer.set_font(FontSetting(font_size, font_family, font_weight))
    layout_map = layout(box, Point(target.x, target.y), font_size, measurer, line_height, target.space)
    bbox = layout_map[box.box_id]
    return bbox.width <= target.width and bbox.height <= target.height
