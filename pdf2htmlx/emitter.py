"""HTML serialisation of layout boxes."""

from __future__ import annotations

import html
from typing import TextIO

from .primitives import ImageBox, LineBox, ParagraphBox
from .transform import PageContext
from .utils import format_number

__all__ = ["LayoutEmitter", "STYLESHEET"]

STYLESHEET = (
    ".page{position:relative;margin:0.5em;"
    "box-shadow: 5px 5px 10px rgba(0, 0, 0, 0.2), 10px 10px 20px rgba(0, 0, 0, 0.2),"
    "15px 15px 30px rgba(0, 0, 0, 0.2);"
    "margin-bottom:16px;}\n"
    ".p{position:absolute;white-space:pre-wrap;border:1px solid blue;border-radius:3px;}\n"
    ".l{position:absolute;}\n"
    ".seq{background-color:rgba(255,127,80,0.5);margin-left:3px;margin-right:3px;}\n"
)


class LayoutEmitter:
    """Writes the document, page wrappers and boxes to a text stream.

    The emitter only formats; every layout decision has been taken by the
    time a box reaches it.
    """

    def __init__(self, output: TextIO, unit: str = "pt") -> None:
        self.output = output
        self.unit = unit
        self._page_open = False

    def _length(self, value: float) -> str:
        return f"{format_number(value)}{self.unit}"

    def begin_document(self, title: str | None) -> None:
        self.output.write(
            "<!DOCTYPE html>\n"
            "<html><head>"
            '<meta charset="utf-8">\n'
            f"<title>{html.escape(title or '')}</title>\n"
            '<style type="text/css">\n'
            f"{STYLESHEET}"
            "</style>\n"
            "</head>\n<body>\n"
        )

    def end_document(self) -> None:
        if self._page_open:
            self.end_page()
        self.output.write("\n</body></html>")

    def begin_page(self, page: PageContext) -> None:
        style = ""
        if page.width is not None and page.height is not None:
            style = f"width:{self._length(page.width)}; height:{self._length(page.height)};"
        self.output.write(f'<div class="page" id="page_{page.number}" style="{style}overflow:hidden;">\n')
        self._page_open = True

    def end_page(self) -> None:
        self.output.write("</div>\n")
        self._page_open = False

    def paragraph(self, box: ParagraphBox, fallback_family: str = "serif") -> None:
        style = (
            f"left:{self._length(box.left)};"
            f"top:{self._length(box.top)};"
            f"width:{self._length(box.width)};"
            f"line-height:{self._length(box.line_height)};"
            f"font-size:{self._length(box.font_size)};"
            f"font-family:{box.font_family or fallback_family};"
            f"font-weight:{box.font_weight};"
            f"font-style:{box.font_style};"
        )
        self.output.write(f'<div class="p" style="{style}">{box.content}</div>')

    def line(self, box: LineBox) -> None:
        style = (
            f"left:{self._length(box.left)};"
            f"top:{self._length(box.top)};"
            f"width:{self._length(box.width)};"
            f"height:{self._length(box.height)};"
            f"{box.border_side}:{self._length(box.stroke_width)} solid #000000;"
        )
        if box.angle != 0:
            style += f"transform:rotate({format_number(box.angle)}deg);"
        self.output.write(f'<div class="l" style="{style}">&nbsp;</div>')

    def image(self, box: ImageBox) -> None:
        self.output.write(
            f'<img src="{html.escape(box.src)}" style="position:absolute;'
            f"left:{self._length(box.left)};"
            f"top:{self._length(box.top)};"
            f"width:{self._length(box.width)};"
            f'height:{self._length(box.height)};"/>'
        )
