"""Running geometry of the paragraph being assembled."""

from __future__ import annotations

from dataclasses import dataclass

from .primitives import FontResource, Glyph

__all__ = ["TextMetrics", "font_ascent", "font_descent"]


def font_ascent(font: FontResource | None, size: float) -> float:
    if font is None:
        return 0.0
    return font.ascent / 1000 * size


def font_descent(font: FontResource | None, size: float) -> float:
    if font is None:
        return 0.0
    descent = font.descent / 1000 * size
    # positive descent is not allowed
    return -descent if descent > 0 else descent


def _bbox_ascent(font: FontResource | None, size: float) -> float:
    if font is None or font.bbox is None:
        return 0.0
    return font.bbox[3] / 1000 * size


def _bbox_descent(font: FontResource | None, size: float) -> float:
    if font is None or font.bbox is None:
        return 0.0
    return font.bbox[1] / 1000 * size


@dataclass(slots=True)
class TextMetrics:
    """Bounding geometry of one paragraph in page space.

    ``x`` is the paragraph anchor, ``baseline`` the first line's baseline and
    ``width`` the extent of the widest visual line measured from ``x``.
    Once ``new_line`` is set the paragraph spans several visual lines and
    ``height`` holds the line spacing instead of the glyph height.
    """

    x: float
    baseline: float
    width: float
    height: float
    ascent: float
    descent: float
    glyph_height: float
    previous: Glyph
    new_line: bool = False

    @classmethod
    def start(cls, glyph: Glyph) -> "TextMetrics":
        return cls(
            x=glyph.x,
            baseline=glyph.y,
            width=glyph.width,
            height=glyph.height,
            ascent=font_ascent(glyph.font, glyph.y_scale),
            descent=font_descent(glyph.font, glyph.y_scale),
            glyph_height=glyph.height,
            previous=glyph,
        )

    def append(self, glyph: Glyph) -> None:
        previous = self.previous
        if self.new_line:
            self.width = max(self.width, glyph.x + glyph.width - self.x)
        else:
            self.width += glyph.width + (glyph.x - previous.x - previous.width)
            self.height = max(self.height, glyph.height)
        self.glyph_height = max(self.glyph_height, glyph.height)
        self.ascent = max(self.ascent, font_ascent(glyph.font, glyph.y_scale))
        self.descent = min(self.descent, font_descent(glyph.font, glyph.y_scale))
        self.previous = glyph

    def begin_visual_line(self, glyph: Glyph, previous: Glyph, line_spacing: float) -> float:
        """Continue the paragraph on a new visual line starting at *glyph*.

        Returns the indent of the paragraph's first line relative to the new
        anchor (zero when the first line is not indented).
        """

        right = max(self.x + self.width, previous.x + previous.width)
        indent = max(0.0, self.x - glyph.x)
        self.x = min(self.x, glyph.x)
        self.width = right - self.x
        self.new_line = True
        self.height = line_spacing
        return indent

    @property
    def top(self) -> float:
        if self.ascent != 0:
            return self.baseline - self.ascent
        previous = self.previous
        bbox_ascent = _bbox_ascent(previous.font, previous.y_scale)
        if bbox_ascent != 0:
            return self.baseline - bbox_ascent
        return self.baseline - self.glyph_height

    @property
    def bottom(self) -> float:
        if self.descent != 0:
            return self.baseline - self.descent
        previous = self.previous
        return self.baseline - _bbox_descent(previous.font, previous.y_scale)

    @property
    def line_height(self) -> float:
        if self.new_line:
            return self.height
        return self.bottom - self.top
