from __future__ import annotations

import io

import pytest

from pdf2htmlx.emitter import STYLESHEET, LayoutEmitter
from pdf2htmlx.primitives import CropBox, ImageBox, LineBox, ParagraphBox
from pdf2htmlx.transform import build_page_context
from pdf2htmlx.utils import format_number


@pytest.fixture()
def emitter() -> LayoutEmitter:
    return LayoutEmitter(io.StringIO())


def _output(emitter: LayoutEmitter) -> str:
    return emitter.output.getvalue()


def test_document_head_and_tail(emitter: LayoutEmitter) -> None:
    emitter.begin_document("Q&A <draft>")
    emitter.end_document()

    html = _output(emitter)
    assert html.startswith("<!DOCTYPE html>\n<html><head>")
    assert "<title>Q&amp;A &lt;draft&gt;</title>" in html
    assert STYLESHEET in html
    assert html.endswith("\n</body></html>")


def test_page_wrapper_uses_rotated_size(emitter: LayoutEmitter) -> None:
    emitter.begin_page(build_page_context(2, CropBox(0, 0, 200, 100), 90))
    emitter.end_page()

    assert _output(emitter) == (
        '<div class="page" id="page_2" style="width:100pt; height:200pt;overflow:hidden;">\n</div>\n'
    )


def test_page_without_crop_box_has_no_size(emitter: LayoutEmitter) -> None:
    emitter.begin_page(build_page_context(1, None))

    assert _output(emitter) == '<div class="page" id="page_1" style="overflow:hidden;">\n'


def test_end_document_closes_open_page(emitter: LayoutEmitter) -> None:
    emitter.begin_page(build_page_context(1, None))
    emitter.end_document()

    assert _output(emitter).endswith("</div>\n\n</body></html>")


def test_paragraph_markup(emitter: LayoutEmitter) -> None:
    box = ParagraphBox(
        left=10,
        top=10.5,
        width=30,
        line_height=12,
        content='<span class="seq">Hi!</span>',
        font_size=10,
        font_family=None,
        font_weight="bold",
    )

    emitter.paragraph(box, fallback_family="serif")

    assert _output(emitter) == (
        '<div class="p" style="left:10pt;top:10.5pt;width:30pt;line-height:12pt;font-size:10pt;'
        'font-family:serif;font-weight:bold;font-style:normal;"><span class="seq">Hi!</span></div>'
    )


def test_horizontal_line_markup(emitter: LayoutEmitter) -> None:
    emitter.line(LineBox(left=0, top=0, width=10, height=0, border_side="border-bottom", stroke_width=1))

    assert _output(emitter) == (
        '<div class="l" style="left:0pt;top:0pt;width:10pt;height:0pt;'
        'border-bottom:1pt solid #000000;">&nbsp;</div>'
    )


def test_diagonal_line_is_rotated(emitter: LayoutEmitter) -> None:
    emitter.line(
        LineBox(left=-10, top=20, width=50, height=0, border_side="border-bottom", stroke_width=1, angle=53.130102)
    )

    assert "left:-10pt;" in _output(emitter)
    assert "transform:rotate(53.13deg);" in _output(emitter)


def test_image_markup(emitter: LayoutEmitter) -> None:
    emitter.image(ImageBox(src="./image/a&b.png", left=20, top=120, width=100, height=50))

    assert _output(emitter) == (
        '<img src="./image/a&amp;b.png" style="position:absolute;'
        'left:20pt;top:120pt;width:100pt;height:50pt;"/>'
    )


def test_custom_unit() -> None:
    emitter = LayoutEmitter(io.StringIO(), unit="px")
    emitter.image(ImageBox(src="x.png", left=1, top=2, width=3, height=4))

    assert "left:1px;top:2px;width:3px;height:4px;" in _output(emitter)


@pytest.mark.parametrize(
    ("value", "text"),
    [(10.0, "10"), (10.5, "10.5"), (1 / 3, "0.333"), (-0.0001, "0"), (53.1301, "53.13"), (-2.25, "-2.25")],
)
def test_format_number(value: float, text: str) -> None:
    assert format_number(value) == text
