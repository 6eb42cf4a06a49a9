"""Text width measurement.

Layout only ever asks a measurer two things: switch to a font, then
measure a string in it. Two implementations are provided:

- FixedWidthMeasurer: approximate, every glyph is char_width_ratio * size
  wide. Deterministic, which makes it the measurer of choice for tests and
  for monospace code fonts.
- GlyphCacheMeasurer: exact per-glyph widths from a backend callable
  (e.g. a font rasterizer), memoized per (glyph, font).
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FontSetting:
    """A concrete font: pixel size, family and weight."""
    size: int
    family: str = "monospace"
    weight: str = "normal"

    def __post_init__(self):
        if self.size <= 0:
            raise ValueError(f"Font size must be positive, got {self.size}")

    @property
    def css(self) -> str:
        """CSS font shorthand, e.g. 'normal 12px Monaco'."""
        return f"{self.weight} {self.size}px {self.family}"


class TextMeasurer:
    """Interface consumed by layout: set a font, then measure text in it."""

    def __init__(self):
        self.font: Optional[FontSetting] = None

    def set_font(self, font: FontSetting):
        self.font = font

    def measure_text(self, text: str) -> float:
        raise NotImplementedError

    def _current_font(self) -> FontSetting:
        if self.font is None:
            raise RuntimeError("set_font() must be called before measure_text()")
        return self.font


class FixedWidthMeasurer(TextMeasurer):
    """Approximate measurer: width = char_width_ratio * len(text) * size."""

    def __init__(self, char_width_ratio: float = 0.6):
        super().__init__()
        if char_width_ratio <= 0:
            raise ValueError(f"char_width_ratio must be positive, got {char_width_ratio}")
        self.char_width_ratio = char_width_ratio

    def measure_text(self, text: str) -> float:
        return self.char_width_ratio * len(text) * self._current_font().size


# Backend signature: (glyph, font) -> width in px
GlyphWidthFn = Callable[[str, FontSetting], float]


class GlyphCacheMeasurer(TextMeasurer):
    """Exact measurer summing memoized per-glyph widths.

    The width table is only touched from the render thread, so it needs no
    locking.
    """

    def __init__(self, glyph_width: GlyphWidthFn):
        super().__init__()
        self._glyph_width = glyph_width
        self._width_table: Dict[Tuple[str, str], float] = {}
        self.hits = 0
        self.misses = 0

    def measure_text(self, text: str) -> float:
        font = self._current_font()
        font_key = font.css
        total = 0.0
        for glyph in text:
            key = (glyph, font_key)
            width = self._width_table.get(key)
            if width is None:
                width = self._glyph_width(glyph, font)
                self._width_table[key] = width
                self.misses += 1
            else:
                self.hits += 1
            total += width
        return total

    @property
    def cache_size(self) -> int:
        return len(self._width_table)

    def clear(self):
        """Drop all memoized widths."""
        logger.debug(f"Clearing glyph width cache ({len(self._width_table)} entries)")
        self._width_table.clear()
        self.hits = 0
        self.misses = 0
