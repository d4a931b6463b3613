"""Glyph segmentation: turns a glyph stream into paragraph boxes.

The engine sees one glyph at a time and compares it with the previous one
to decide between three outcomes:

* same visual line: the horizontal gap is converted to blank placeholders,
  or splits the line when it is wider than ``word_gap_tolerance`` average
  glyph widths;
* new visual line of the same paragraph: the line spacing matches the
  previous one and both lines share their start and margins;
* new paragraph: anything else.

Text is buffered as markup with ``<span class="seq">`` wrappers around
sentences ending in one of the configured terminators.
"""

from __future__ import annotations

import html
import logging
import math
from dataclasses import dataclass, field
from typing import Callable

from .config import LayoutOptions
from .fonts import FontStyle, FontTable
from .metrics import TextMetrics
from .primitives import Glyph, ParagraphBox
from .utils import format_number

__all__ = ["GlyphSegmentationEngine", "ParagraphBuffer"]

LOGGER = logging.getLogger(__name__)

SENTENCE_OPEN = '<span class="seq">'
SENTENCE_CLOSE = "</span>"


@dataclass(slots=True)
class ParagraphBuffer:
    """Marked-up text of the paragraph under construction."""

    parts: list[str] = field(default_factory=list)
    plain: list[str] = field(default_factory=list)
    metrics: TextMetrics | None = None
    style: FontStyle | None = None
    font_size: float = 0.0
    sentence_open: bool = False
    indent_applied: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.parts

    @property
    def is_blank(self) -> bool:
        return not "".join(self.plain).strip()

    def append_blanks(self, count: int, placeholder: str) -> None:
        if count <= 0:
            return
        blanks = placeholder * count
        self.parts.append(blanks)
        self.plain.append(blanks)

    def append_text(self, markup: str, raw: str, *, terminator: bool) -> None:
        if not self.sentence_open:
            self.parts.append(SENTENCE_OPEN)
            self.sentence_open = True
        self.parts.append(markup)
        self.plain.append(raw)
        if terminator:
            self.parts.append(SENTENCE_CLOSE)
            self.sentence_open = False

    def insert_indent(self, width: float, unit: str) -> None:
        self.parts.insert(
            0, f'<span style="display:inline-block;width:{format_number(width)}{unit};"></span>'
        )

    def markup(self) -> str:
        content = "".join(self.parts)
        if self.sentence_open:
            content += SENTENCE_CLOSE
        return content


class GlyphSegmentationEngine:
    """Stateful glyph visitor emitting :class:`ParagraphBox` objects."""

    def __init__(
        self,
        options: LayoutOptions,
        font_table: FontTable,
        sink: Callable[[ParagraphBox], None],
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.options = options
        self.font_table = font_table
        self._sink = sink
        self._logger = logger or LOGGER
        self.errors = 0
        self._buffer = ParagraphBuffer()
        self._previous: Glyph | None = None
        self._line_start: Glyph | None = None
        self._last_line_start: Glyph | None = None
        self._line_spacing: float | None = None
        self._page_width = 0.0
        self._left_margin = math.inf
        self._right_margin = math.inf

    # ------------------------------------------------------------------ #
    # Page lifecycle
    # ------------------------------------------------------------------ #
    def begin_page(self, page_width: float | None) -> None:
        self._reset_page_state()
        # Margins are relative, so any width works for pages without one.
        self._page_width = page_width or 0.0

    def end_page(self) -> None:
        self.flush()
        self._reset_page_state()

    def _reset_page_state(self) -> None:
        self._buffer = ParagraphBuffer()
        self._previous = None
        self._line_start = None
        self._last_line_start = None
        self._line_spacing = None
        self._left_margin = math.inf
        self._right_margin = math.inf

    @property
    def buffer(self) -> ParagraphBuffer:
        return self._buffer

    # ------------------------------------------------------------------ #
    # Glyph handling
    # ------------------------------------------------------------------ #
    def feed(self, glyph: Glyph) -> None:
        previous = self._previous
        if previous is None:
            self._line_start = glyph
            self._last_line_start = None
            self._left_margin = glyph.x
        else:
            vertical_gap = abs(previous.y - glyph.y)
            if vertical_gap > max(previous.height, glyph.height):
                self._handle_new_line(previous, glyph, vertical_gap)
            else:
                self._handle_same_line(previous, glyph)
        self._append(glyph)
        self._previous = glyph

    def _handle_same_line(self, previous: Glyph, glyph: Glyph) -> None:
        gap = abs(glyph.x - (previous.x + previous.width))
        average = (previous.width + glyph.width) / 2
        if average > 0:
            blanks = gap / average
        else:
            blanks = 0.0 if gap == 0 else math.inf
        if blanks > self.options.word_gap_tolerance:
            self._break_before(glyph)
        else:
            self._buffer.append_blanks(int(blanks), self.options.blank_placeholder)

    def _handle_new_line(self, previous: Glyph, glyph: Glyph, vertical_gap: float) -> None:
        previous_right = previous.x + previous.width
        self._right_margin = min(self._right_margin, self._page_width - previous_right)
        self._left_margin = min(self._left_margin, glyph.x)

        if not self.options.paragraph_mode:
            self._break_before(glyph)
            return
        if (
            self._line_spacing is not None
            and abs(vertical_gap - self._line_spacing) > self.options.line_spacing_tolerance
        ):
            self._break_before(glyph)
            return

        self._line_spacing = vertical_gap
        right_space = self._page_width - previous_right - self._right_margin
        left_space = glyph.x - self._left_margin
        self._last_line_start = self._line_start
        self._line_start = glyph

        margin_limit = max(previous.width, glyph.width) * self.options.margin_factor
        if (
            previous.text != " "
            and self._starts_aligned(self._last_line_start, self._line_start)
            and abs(right_space - left_space) < margin_limit
        ):
            self._merge_line(previous, glyph, vertical_gap)
        else:
            self._break_before(glyph)

    def _starts_aligned(self, last_start: Glyph | None, current_start: Glyph | None) -> bool:
        if last_start is None or current_start is None:
            return False
        limit = max(last_start.width, current_start.width) * self.options.alignment_factor
        return abs(last_start.x - current_start.x) < limit

    def _merge_line(self, previous: Glyph, glyph: Glyph, line_spacing: float) -> None:
        buffer = self._buffer
        if buffer.metrics is None:
            buffer.metrics = TextMetrics.start(glyph)
        indent = buffer.metrics.begin_visual_line(glyph, previous, line_spacing)
        if self.options.first_line_indent_correction and not buffer.indent_applied:
            if indent > 0:
                buffer.insert_indent(indent, self.options.unit)
            buffer.indent_applied = True

    def _break_before(self, glyph: Glyph) -> None:
        self.flush()
        self._line_start = glyph

    def _append(self, glyph: Glyph) -> None:
        buffer = self._buffer
        if buffer.metrics is None:
            buffer.metrics = TextMetrics.start(glyph)
        else:
            buffer.metrics.append(glyph)
        buffer.style = self.font_table.style_for(glyph.font)
        buffer.font_size = glyph.x_scale

        text = glyph.text
        display = text
        if self.options.special_quote_spacing and text in self.options.quote_characters:
            display = f" {text} "
        buffer.append_text(
            html.escape(display, quote=False),
            text,
            terminator=text in self.options.sentence_terminators,
        )

    # ------------------------------------------------------------------ #
    # Flushing
    # ------------------------------------------------------------------ #
    def flush(self) -> ParagraphBox | None:
        """Emit the pending paragraph, if any, and reset paragraph state."""

        buffer = self._buffer
        self._line_spacing = None
        self._last_line_start = None
        self._line_start = None
        if buffer.is_empty:
            return None
        self._buffer = ParagraphBuffer()
        if buffer.is_blank or buffer.metrics is None:
            return None
        try:
            box = self._build_box(buffer, buffer.metrics)
            self._sink(box)
        except Exception:
            self.errors += 1
            self._logger.exception("Failed to emit paragraph, dropping it")
            return None
        return box

    def _build_box(self, buffer: ParagraphBuffer, metrics: TextMetrics) -> ParagraphBox:
        style = buffer.style or FontStyle(family=self.font_table.fallback_family)
        return ParagraphBox(
            left=metrics.x,
            top=metrics.top,
            # padded by the last glyph so pre-wrap text does not wrap early
            width=metrics.width + metrics.previous.width,
            line_height=metrics.line_height,
            content=buffer.markup(),
            font_size=buffer.font_size,
            font_family=style.family,
            font_weight=style.weight,
            font_style=style.style,
        )
