"""Event listener turning page content events into positioned HTML."""

from __future__ import annotations

import logging
from typing import Any, Callable, Sequence, TextIO

from .config import LayoutOptions
from .emitter import LayoutEmitter
from .exceptions import ImageEncodingError
from .fonts import FontTable
from .images import ImagePlacer
from .paths import PathAccumulator
from .primitives import (
    CropBox,
    Glyph,
    ImageXObject,
    LayoutStats,
    LineBox,
    Matrix,
    OperatorEvent,
    PageResources,
    ParagraphBox,
    ResolvedImage,
)
from .segmentation import GlyphSegmentationEngine
from .transform import AffineTransform, PageContext, build_page_context

__all__ = ["LayoutEngine"]

LOGGER = logging.getLogger(__name__)


def _numbers(operands: Sequence[Any], count: int) -> list[float] | None:
    """Return the first *count* operands as floats, or ``None`` if too few.

    Non-numeric operands read as ``0``.
    """

    if len(operands) < count:
        return None
    values: list[float] = []
    for operand in operands[:count]:
        try:
            values.append(float(operand))
        except (TypeError, ValueError):
            values.append(0.0)
    return values


class LayoutEngine:
    """Consumes one document's events and writes its HTML rendition.

    The document engine drives the ``on_*`` methods in order::

        on_document_begin
          (on_page_begin, on_resources, {on_glyph | on_operator | on_image}*, on_page_end)*
        on_document_end
    """

    def __init__(
        self,
        output: TextIO,
        options: LayoutOptions | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.options = (options or LayoutOptions()).validate()
        self._logger = logger or LOGGER
        self.stats = LayoutStats()
        self.emitter = LayoutEmitter(output, unit=self.options.unit)
        self.font_table = FontTable(self.options.fallback_font_family, logger=self._logger)
        self.paths = PathAccumulator(min_stroke_width=self.options.min_stroke_width)
        self.images = ImagePlacer(self.options, logger=self._logger)
        self.segmenter = GlyphSegmentationEngine(
            self.options, self.font_table, self._emit_paragraph, logger=self._logger
        )
        self.page: PageContext | None = None
        self._handlers: dict[str, Callable[[OperatorEvent], None]] = {
            "m": self._move_to,
            "l": self._line_to,
            "c": self._curve_to,
            "v": self._curve_to,
            "y": self._curve_to,
            "re": self._rectangle,
            "h": self._close_path,
            "S": self._stroke,
            "B": self._stroke,
            "B*": self._stroke,
            "s": self._close_and_stroke,
            "b": self._close_and_stroke,
            "b*": self._close_and_stroke,
            "f": self._discard,
            "F": self._discard,
            "f*": self._discard,
            "n": self._discard,
            "Do": self._draw_xobject,
        }

    # ------------------------------------------------------------------ #
    # Document and page lifecycle
    # ------------------------------------------------------------------ #
    def on_document_begin(self, title: str | None = None) -> None:
        self.emitter.begin_document(title)

    def on_document_end(self) -> None:
        if self.page is not None:
            self.on_page_end()
        self.emitter.end_document()
        self.stats.unsupported_fonts = self.font_table.unsupported_count
        self.stats.errors += self.segmenter.errors
        self.segmenter.errors = 0

    def on_page_begin(self, number: int, crop_box: CropBox | None, rotation: int = 0) -> None:
        if self.page is not None:
            self._logger.warning("Page %s began before page %s ended", number, self.page.number)
            self.on_page_end()
        self.page = build_page_context(number, crop_box, rotation)
        self.paths.reset(self.page.transform)
        self.segmenter.begin_page(self.page.width)
        self.emitter.begin_page(self.page)
        self._logger.debug("Page %s: crop box %s, rotation %s", number, crop_box, self.page.rotation)

    def on_page_end(self) -> None:
        if self.page is None:
            return
        self.segmenter.end_page()
        self.paths.discard()
        self.emitter.end_page()
        self.stats.pages += 1
        self.page = None

    def on_resources(self, resources: PageResources | None) -> None:
        self.font_table.update_from_resources(resources)
        self.stats.unsupported_fonts = self.font_table.unsupported_count

    # ------------------------------------------------------------------ #
    # Content events
    # ------------------------------------------------------------------ #
    def on_glyph(self, glyph: Glyph) -> None:
        if self.page is None:
            self._logger.debug("Ignoring glyph %r outside of a page", glyph.text)
            return
        self.segmenter.feed(glyph)

    def on_operator(self, event: OperatorEvent) -> None:
        if self.page is None:
            return
        handler = self._handlers.get(event.name)
        if handler is not None:
            handler(event)

    def on_image(self, image: ResolvedImage, ctm: Matrix) -> None:
        if self.page is None:
            return
        try:
            box = self.images.place(image, self.page.transform, ctm)
        except (ImageEncodingError, OSError) as exc:
            self._logger.error("Dropping image %s: %s", image.name or "<inline>", exc)
            self.stats.errors += 1
            self.stats.skipped_images += 1
            return
        if box is None:
            self.stats.skipped_images += 1
            return
        self.emitter.image(box)
        self.stats.images += 1

    # ------------------------------------------------------------------ #
    # Operators
    # ------------------------------------------------------------------ #
    def _device_transform(self, event: OperatorEvent) -> AffineTransform:
        assert self.page is not None
        return self.page.transform.concatenate(AffineTransform.from_matrix(event.graphics.ctm))

    def _operands(self, event: OperatorEvent, count: int) -> list[float] | None:
        values = _numbers(event.operands, count)
        if values is None:
            self._logger.debug("Skipping %s with %d operands", event.name, len(event.operands))
        return values

    def _move_to(self, event: OperatorEvent) -> None:
        values = self._operands(event, 2)
        if values is not None:
            self.paths.move_to(values[0], values[1], self._device_transform(event))

    def _line_to(self, event: OperatorEvent) -> None:
        values = self._operands(event, 2)
        if values is not None:
            self.paths.line_to(values[0], values[1], self._device_transform(event))

    def _curve_to(self, event: OperatorEvent) -> None:
        count = 4 if event.name in {"v", "y"} else 6
        values = self._operands(event, count)
        if values is not None:
            self.paths.curve_to(values[-2], values[-1], self._device_transform(event))

    def _rectangle(self, event: OperatorEvent) -> None:
        values = self._operands(event, 4)
        if values is not None:
            self.paths.rectangle(*values, transform=self._device_transform(event))

    def _close_path(self, event: OperatorEvent) -> None:
        self.paths.close()

    def _stroke_width(self, event: OperatorEvent) -> float:
        return AffineTransform.from_matrix(event.graphics.ctm).scale_length(event.graphics.line_width)

    def _stroke(self, event: OperatorEvent) -> None:
        self._emit_lines(self.paths.stroke(self._stroke_width(event)))

    def _close_and_stroke(self, event: OperatorEvent) -> None:
        self._emit_lines(self.paths.close_and_stroke(self._stroke_width(event)))

    def _discard(self, event: OperatorEvent) -> None:
        self.paths.discard()

    def _draw_xobject(self, event: OperatorEvent) -> None:
        if not event.operands or event.resources is None:
            return
        name = str(event.operands[0])
        xobjects = event.resources.xobjects
        xobject = xobjects.get(name) or xobjects.get(name.lstrip("/"))
        if not isinstance(xobject, ImageXObject):
            return
        try:
            resolved = xobject.resolve()
        except Exception as exc:
            self._logger.warning("Failed to decode image %s: %s", name, exc)
            self.stats.skipped_images += 1
            return
        if resolved is None:
            self._logger.warning("Image %s could not be resolved", name)
            self.stats.skipped_images += 1
            return
        self.on_image(resolved, event.graphics.ctm)

    # ------------------------------------------------------------------ #
    # Sinks
    # ------------------------------------------------------------------ #
    def _emit_paragraph(self, box: ParagraphBox) -> None:
        self.emitter.paragraph(box, self.options.fallback_font_family)
        self.stats.paragraphs += 1

    def _emit_lines(self, boxes: list[LineBox]) -> None:
        for box in boxes:
            try:
                self.emitter.line(box)
            except Exception:
                self._logger.exception("Failed to emit line box")
                self.stats.errors += 1
                continue
            self.stats.lines += 1
